from typing import Any, Tuple

from bizscan.clients.platform_client import BROWSER_UA
from bizscan.config import YOGIYO_URL
from bizscan.models import Verdict
from bizscan.probes.base import PlatformProbe, message_of

HEADERS = {
    "User-Agent": BROWSER_UA,
    "Accept": "application/json, text/plain, */*",
    "Origin": "https://ceo.yogiyo.co.kr",
    "Referer": "https://ceo.yogiyo.co.kr/",
}

REGISTERED_MARKER = "이미 등록된"
AVAILABLE_MARKER = "입점신청 가능"


class YogiyoProbe(PlatformProbe):
    """Yogiyo: GET with `company_number`, verdict carried in a human-readable message."""

    name = "YOGIYO"
    label = "요기요"
    icon = "🍕"

    async def _request(self, digits: str) -> Tuple[int, Any]:
        return await self.client.get_json(
            YOGIYO_URL,
            params={"company_number": digits},
            headers=HEADERS,
            timeout=self.timeout,
        )

    def interpret(self, data: Any) -> Verdict:
        message = message_of(data, "message")
        if REGISTERED_MARKER in message:
            return Verdict.REGISTERED
        if AVAILABLE_MARKER in message:
            return Verdict.AVAILABLE
        return Verdict.UNKNOWN
