from typing import Optional

from loguru import logger

from bizscan.clients import OpenRouterClient, reply_text
from bizscan.config import CONTACT_MODEL, UNCONFIRMED
from bizscan.models import ContactInfo, ExtractedRecord
from bizscan.replies import as_text, parse_json_object

PROMPT_TEMPLATE = """다음 업체의 전화번호와 영업시간을 네이버나 구글에서 검색해서 찾아주세요:

업체명: {name}
주소: {address}
지역: {region}

인터넷에서 이 업체를 검색해서 다음 정보를 JSON 형식으로 제공해주세요:
- phoneNumber: 전화번호 (없으면 빈 문자열)
- openTime: 영업시간 (없으면 빈 문자열)

응답 예시:
{{
  "phoneNumber": "031-123-4567",
  "openTime": "09:00-22:00"
}}

반드시 JSON 형식으로만 응답하고, 다른 설명은 포함하지 마세요."""


def region_from_address(address: str) -> str:
    """
    Pick the most specific locality from a Korean address.

    "충청북도 진천군 진천읍 ..." -> "진천", "서울특별시 강남구" -> "강남".
    """
    parts = (address or "").split()
    if len(parts) >= 3:
        return parts[2].rstrip("읍면동") or parts[2]
    if len(parts) == 2:
        return parts[1].rstrip("군시구") or parts[1]
    return parts[0] if parts else ""


async def lookup_contact(
    record: ExtractedRecord,
    client: Optional[OpenRouterClient] = None,
    model: str = CONTACT_MODEL,
) -> ContactInfo:
    """
    Ask a text model for the business's phone number and opening hours.

    Args:
        record (ExtractedRecord): Record with at least a company name.

    Returns:
        ContactInfo: Unconfirmed placeholders for anything the model could not
                     supply; never raises.
    """
    if not record.company_name:
        return ContactInfo()

    prompt = PROMPT_TEMPLATE.format(
        name=record.company_name,
        address=record.address,
        region=region_from_address(record.address),
    )
    try:
        client = client or OpenRouterClient()
        resp = await client.chat_completions_create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
        )
        data = parse_json_object(reply_text(resp))
    except Exception as e:
        logger.debug(f"🔍 Contact lookup failed for '{record.company_name}': {e}")
        return ContactInfo()

    phone = as_text(data.get("phoneNumber"))
    hours = as_text(data.get("openTime"))
    logger.debug(f"🔍 Contact lookup for '{record.company_name}': phone={phone!r} hours={hours!r}")
    return ContactInfo(phone_number=phone or UNCONFIRMED, open_hours=hours or UNCONFIRMED)
