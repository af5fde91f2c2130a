import asyncio
import time
from typing import Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from bizscan.clients import OpenRouterClient, reply_text
from bizscan.config import EXTRACTION_TIMEOUT, OPENROUTER_API_KEYS, RATE_LIMIT_BACKOFF, VISION_MODELS
from bizscan.errors import ConfigurationError, ExtractionError, ReplyParseError
from bizscan.image_utils import compress_image, to_data_url
from bizscan.models import ExtractedRecord
from bizscan.normalizer import canonical_or_empty
from bizscan.replies import as_text, parse_json_object

SYSTEM_PROMPT = """당신은 대한민국 사업자등록증 이미지 분석 전문가입니다.

당신의 임무:
사업자등록증 이미지에서 정확히 다음 4가지 정보만 추출하세요:
1. "대표자명" - 대표자 성명
2. "상호명" - 사업체 이름
3. "사업자주소" - 사업장 소재지 전체 주소
4. "사업자등록번호" - 10자리 사업자번호

중요 규칙:
- 반드시 JSON 형식으로만 응답하세요
- 다른 설명이나 추가 텍스트 없이 JSON만 반환하세요
- 찾을 수 없는 정보는 빈 문자열("")로 표시하세요
- 사업자등록번호는 반드시 "XXX-XX-XXXXX" 형식으로 변환하세요
- 주소는 발견된 전체 주소를 그대로 포함하세요

응답 예시:
{
  "대표자명": "홍길동",
  "상호명": "주식회사 샘플",
  "사업자주소": "서울특별시 강남구 테헤란로 123 샘플빌딩 5층",
  "사업자등록번호": "123-45-67890"
}"""

USER_INSTRUCTION = "이 사업자등록증 이미지를 분석해주세요."

# Reply keys, as requested in the prompt
FIELD_COMPANY = "상호명"
FIELD_ADDRESS = "사업자주소"
FIELD_NUMBER = "사업자등록번호"
FIELD_REPRESENTATIVE = "대표자명"


def attempt_plan(api_keys: Sequence[str], models: Sequence[str]) -> Iterator[Tuple[str, str]]:
    """Yield (api_key, model) pairs in priority order: every model for the first key, then the next key."""
    for api_key in api_keys:
        for model in models:
            yield api_key, model


def is_rate_limited(error: BaseException) -> bool:
    """True when the error signals HTTP 429 / rate limiting."""
    if getattr(error, "status_code", None) == 429:
        return True
    text = str(error).lower()
    return "429" in text or "rate limit" in text


def parse_extraction_reply(text: str, source_file: str = "") -> ExtractedRecord:
    """
    Turn a vision model reply into a record.

    Missing fields become empty strings; only a reply that is not a JSON
    object raises ReplyParseError. A registration number that does not
    normalize to "NNN-NN-NNNNN" is cleared.
    """
    data = parse_json_object(text)
    representative = as_text(data.get(FIELD_REPRESENTATIVE))
    return ExtractedRecord(
        company_name=as_text(data.get(FIELD_COMPANY)),
        address=as_text(data.get(FIELD_ADDRESS)),
        registration_number=canonical_or_empty(as_text(data.get(FIELD_NUMBER))),
        representative_name=representative or None,
        source_file=source_file,
    )


class Extractor:
    """
    Reads company name, address and registration number off a certificate image.

    Tries every (API key, model) pair in order and returns the first reply
    that parses; rate-limited attempts wait `backoff` seconds before moving on.
    """

    def __init__(
        self,
        api_keys: Optional[List[str]] = None,
        models: Optional[List[str]] = None,
        client: Optional[OpenRouterClient] = None,
        backoff: float = RATE_LIMIT_BACKOFF,
        timeout: float = EXTRACTION_TIMEOUT,
    ):
        self.api_keys = list(api_keys if api_keys is not None else OPENROUTER_API_KEYS)
        self.models = list(models if models is not None else VISION_MODELS)
        self._client = client
        self.backoff = backoff
        self.timeout = timeout

    @property
    def client(self) -> OpenRouterClient:
        if self._client is None:
            self._client = OpenRouterClient()
        return self._client

    def _messages(self, data_url: str) -> list:
        return [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": f"{SYSTEM_PROMPT}\n\n{USER_INSTRUCTION}"},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            }
        ]

    async def extract(self, image_bytes: bytes, compress: bool = True, source_file: str = "") -> ExtractedRecord:
        """
        Extract a record from one certificate image.

        Args:
            image_bytes (bytes): Raw image.
            compress (bool): Downscale/re-encode large images first.
            source_file (str): File name recorded on the result.

        Returns:
            ExtractedRecord: First successful parse.

        Raises:
            ConfigurationError: No API key or model is configured.
            ExtractionError: Every key x model combination failed.
        """
        if not self.api_keys:
            raise ConfigurationError("OPENROUTER_API_KEY is not set")
        if not self.models:
            raise ConfigurationError("No vision models configured")

        if compress:
            image_bytes = compress_image(image_bytes)
        messages = self._messages(to_data_url(image_bytes))

        last_error: Optional[BaseException] = None
        for attempt, (api_key, model) in enumerate(attempt_plan(self.api_keys, self.models), start=1):
            start = time.perf_counter()
            try:
                response = await self.client.chat_completions_create(
                    api_key=api_key,
                    model=model,
                    messages=messages,
                    timeout=self.timeout,
                )
                record = parse_extraction_reply(reply_text(response), source_file=source_file)
            except ReplyParseError as e:
                last_error = e
                logger.debug(f"🧹 [{model}] unparseable reply for '{source_file}': {e}")
                continue
            except Exception as e:
                last_error = e
                if is_rate_limited(e):
                    logger.debug(f"⏳ [{model}] rate limited (attempt {attempt}), backing off {self.backoff}s")
                    await asyncio.sleep(self.backoff)
                else:
                    logger.debug(f"⚠️ [{model}] extraction failed for '{source_file}': {e}")
                continue

            logger.info(
                f"✅ Extracted '{record.company_name}' ({record.registration_number or 'no number'}) "
                f"from '{source_file}' with {model} in {time.perf_counter() - start:.2f}s"
            )
            return record

        raise ExtractionError(
            f"All API keys and models failed: {last_error}" if last_error else "All API keys and models failed",
            last_error=last_error,
        )
