from typing import Any, Tuple

from bizscan.clients.platform_client import BROWSER_UA
from bizscan.config import COUPANGEATS_URL
from bizscan.models import Verdict
from bizscan.probes.base import PlatformProbe, message_of

HEADERS = {"User-Agent": BROWSER_UA}

REGISTERED_MARKER = "이미 등록된 사업자등록번호"
INVALID_MARKER = "유효하지 않습니다"


class CoupangEatsProbe(PlatformProbe):
    """Coupang Eats: GET with `bizNo`; success is `{"code": "SUCCESS", "data": true}`."""

    name = "COUPANG"
    label = "쿠팡이츠"
    icon = "🥘"

    async def _request(self, digits: str) -> Tuple[int, Any]:
        return await self.client.get_json(
            COUPANGEATS_URL,
            params={"bizNo": digits},
            headers=HEADERS,
            timeout=self.timeout,
        )

    def interpret(self, data: Any) -> Verdict:
        if not isinstance(data, dict):
            return Verdict.UNKNOWN
        error_message = message_of(data, "error", "message")
        if REGISTERED_MARKER in error_message:
            return Verdict.REGISTERED
        if INVALID_MARKER in error_message:
            return Verdict.UNKNOWN
        if data.get("data") is True and data.get("code") == "SUCCESS":
            return Verdict.AVAILABLE
        return Verdict.UNKNOWN
