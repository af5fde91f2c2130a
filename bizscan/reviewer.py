"""
Second-pass LLM review of extracted text.

The reviewer proposes spelling/format fixes for OCR output. It is an
enrichment only: any failure leaves the records exactly as they were.
"""
from dataclasses import replace
from typing import Any, List, Optional, Sequence, Tuple, Union

from loguru import logger

from bizscan.clients import OpenRouterClient, reply_text
from bizscan.config import REVIEW_MODELS
from bizscan.errors import ReplyParseError
from bizscan.models import CorrectionEntry, ExtractedRecord, ReviewResult
from bizscan.normalizer import canonical_or_empty
from bizscan.replies import as_text, parse_json_object

SYSTEM_PROMPT = (
    "당신은 사업자등록증 OCR 데이터를 검토하는 전문가입니다. "
    "정확한 한국어 처리와 사업자등록증 형식을 잘 알고 있습니다."
)

REVIEW_CHECKLIST = """검토 사항:
- 오타나 잘못된 문자 (예: ㅣ → l, ㅇ → o, 0 → O 등)
- 누락된 문자나 불완전한 단어
- 사업자등록번호 형식 (xxx-xx-xxxxx)
- 주소 정보의 완성도"""

SINGLE_TEMPLATE = """
아래는 사업자등록증에서 OCR로 추출한 데이터입니다. 다음 사항을 검토하고 수정사항을 제안해주세요:

1. 상호명: {company_name}
2. 대표자명: {representative_name}
3. 사업자주소: {address}
4. 사업자등록번호: {registration_number}

{checklist}

응답 형식 (JSON만 출력):
{{
  "needsCorrection": true/false,
  "correctedData": {{
    "상호명": "수정된 상호명",
    "대표자명": "수정된 대표자명",
    "사업자주소": "수정된 주소",
    "사업자등록번호": "수정된 등록번호"
  }},
  "corrections": [
    {{"field": "필드명", "original": "원본 데이터", "corrected": "수정된 데이터", "reason": "수정 이유"}}
  ]
}}
"""

BATCH_TEMPLATE = """
아래는 사업자등록증에서 OCR로 추출한 {count}개의 데이터입니다.
모든 데이터를 한 번에 검토하고 수정사항을 제안해주세요:

{entries}

{checklist}

응답 형식 (JSON만 출력, correctedData는 입력과 같은 순서와 개수):
{{
  "correctedData": [
    {{"상호명": "수정된 상호명", "대표자명": "수정된 대표자명", "사업자주소": "수정된 주소", "사업자등록번호": "수정된 등록번호"}}
  ],
  "corrections": [
    {{"index": 0, "field": "필드명", "original": "원본 데이터", "corrected": "수정된 데이터", "reason": "수정 이유"}}
  ]
}}
"""

# reply key -> record attribute
FIELD_MAP = (
    ("상호명", "company_name"),
    ("대표자명", "representative_name"),
    ("사업자주소", "address"),
    ("사업자등록번호", "registration_number"),
)


def _format_entry(index: int, record: ExtractedRecord) -> str:
    return (
        f"{index + 1}. 상호명: {record.company_name}\n"
        f"   대표자명: {record.representative_name or ''}\n"
        f"   사업자주소: {record.address}\n"
        f"   사업자등록번호: {record.registration_number}"
    )


def apply_correction(original: ExtractedRecord, corrected: Any) -> ExtractedRecord:
    """
    Overlay the reviewer's corrected fields on a copy of `original`.

    Empty or non-string values are ignored, and a registration number that is
    not canonical after normalization keeps the original value.
    """
    if not isinstance(corrected, dict):
        return original
    changes = {}
    for key, attr in FIELD_MAP:
        value = as_text(corrected.get(key))
        if not value:
            continue
        if attr == "registration_number":
            value = canonical_or_empty(value)
            if not value:
                continue
        changes[attr] = value
    return replace(original, **changes) if changes else original


def parse_corrections(raw: Any) -> List[CorrectionEntry]:
    entries = []
    if not isinstance(raw, list):
        return entries
    for item in raw:
        if not isinstance(item, dict) or not item.get("field"):
            continue
        index = item.get("index")
        entries.append(
            CorrectionEntry(
                field=as_text(item.get("field")),
                original=as_text(item.get("original")),
                corrected=as_text(item.get("corrected")),
                reason=as_text(item.get("reason")),
                index=index if isinstance(index, int) else None,
            )
        )
    return entries


class TextReviewer:
    """Best-effort spelling/format review of one record or a batch of records."""

    def __init__(
        self,
        models: Optional[List[str]] = None,
        client: Optional[OpenRouterClient] = None,
    ):
        self.models = list(models if models is not None else REVIEW_MODELS)
        self._client = client

    @property
    def client(self) -> OpenRouterClient:
        if self._client is None:
            self._client = OpenRouterClient()
        return self._client

    async def review(
        self, record_or_batch: Union[ExtractedRecord, Sequence[ExtractedRecord]]
    ) -> ReviewResult:
        """
        Review a single record or a list of records.

        Returns:
            ReviewResult: Corrected record(s) with the list of corrections; the
                          unmodified input and no corrections on any failure.
        """
        if isinstance(record_or_batch, ExtractedRecord):
            return await self.review_one(record_or_batch)
        return await self.review_batch(list(record_or_batch))

    async def review_one(self, record: ExtractedRecord) -> ReviewResult:
        prompt = SINGLE_TEMPLATE.format(
            company_name=record.company_name,
            representative_name=record.representative_name or "",
            address=record.address,
            registration_number=record.registration_number,
            checklist=REVIEW_CHECKLIST,
        )
        reply = await self._ask(prompt, max_tokens=1000)
        if reply is None:
            return ReviewResult(corrected=record)

        data, model = reply
        corrected = apply_correction(record, data.get("correctedData"))
        corrections = parse_corrections(data.get("corrections"))
        logger.debug(f"✅ Text review of '{record.company_name}' via {model}: {len(corrections)} corrections")
        return ReviewResult(corrected=corrected, corrections=corrections)

    async def review_batch(self, records: List[ExtractedRecord]) -> ReviewResult:
        if not records:
            return ReviewResult(corrected=[])

        prompt = BATCH_TEMPLATE.format(
            count=len(records),
            entries="\n".join(_format_entry(i, r) for i, r in enumerate(records)),
            checklist=REVIEW_CHECKLIST,
        )
        reply = await self._ask(prompt, max_tokens=4000)
        if reply is None:
            return ReviewResult(corrected=list(records))

        data, model = reply
        corrected_data = data.get("correctedData")
        if not isinstance(corrected_data, list) or len(corrected_data) != len(records):
            logger.warning(f"⚠️ Batch review via {model} returned a mismatched list, keeping originals")
            return ReviewResult(corrected=list(records))

        corrected = [apply_correction(r, c) for r, c in zip(records, corrected_data)]
        corrections = parse_corrections(data.get("corrections"))
        logger.info(f"✅ Batch text review of {len(records)} records via {model}: {len(corrections)} corrections")
        return ReviewResult(corrected=corrected, corrections=corrections)

    async def _ask(self, prompt: str, max_tokens: int) -> Optional[Tuple[dict, str]]:
        """
        Send the review prompt to each model in turn.

        Returns (parsed reply, model) from the first model that answers, or None
        when every model failed or the answer was not a JSON object.
        """
        for model in self.models:
            try:
                resp = await self.client.chat_completions_create(
                    model=model,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=0.1,
                    max_tokens=max_tokens,
                )
                content = reply_text(resp)
            except Exception as e:
                logger.debug(f"❌ Text review failed with {model}: {e}")
                continue

            try:
                return parse_json_object(content), model
            except ReplyParseError as e:
                logger.debug(f"⚠️ Text review reply from {model} is not JSON, keeping originals: {e}")
                return None

        logger.debug("⚠️ All text review models failed, keeping originals")
        return None
