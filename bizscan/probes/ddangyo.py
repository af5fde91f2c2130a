from typing import Any, Tuple

from bizscan.clients.platform_client import BROWSER_UA
from bizscan.config import DDANGYO_URL
from bizscan.models import Verdict
from bizscan.probes.base import PlatformProbe, message_of

HEADERS = {
    "Content-Type": "application/json; charset=UTF-8",
    "User-Agent": BROWSER_UA,
    "Origin": "https://boss.ddangyo.com",
    "Referer": "https://boss.ddangyo.com/join",
    "Accept": "application/json",
}


class DdangyoProbe(PlatformProbe):
    """Ddangyo: POST with the digits in a `dma_onlineApply04` envelope."""

    name = "DDANGYO"
    label = "땡겨요"
    icon = "🚚"

    async def _request(self, digits: str) -> Tuple[int, Any]:
        body = {"dma_onlineApply04": {"biz_reg_no": digits, "sotid": "0000"}}
        return await self.client.post_json(
            DDANGYO_URL, request_body=body, headers=HEADERS, timeout=self.timeout
        )

    def interpret(self, data: Any) -> Verdict:
        # dma_result.result "1000" means the number already has a shop
        if message_of(data, "dma_result", "result") == "1000":
            return Verdict.REGISTERED
        # the "error" envelope with code "000" is how the join form says "go ahead"
        if message_of(data, "dma_error", "resultCode") == "000":
            return Verdict.AVAILABLE
        return Verdict.UNKNOWN
