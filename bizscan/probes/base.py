import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from loguru import logger

from bizscan.clients import PlatformClient
from bizscan.config import PROBE_TIMEOUT
from bizscan.models import Verdict


class PlatformProbe(ABC):
    """
    Checks whether a business is already onboarded on one delivery platform.

    Subclasses issue exactly one HTTP call in `_request` and map the parsed
    response onto a verdict in `interpret`. Any response that matches neither
    an explicit "registered" nor an explicit "available" signal is UNKNOWN.
    """

    name: str = ""
    label: str = ""
    icon: str = "🔎"

    def __init__(self, client: Optional[PlatformClient] = None, timeout: float = PROBE_TIMEOUT):
        self._client = client
        self.timeout = timeout

    @property
    def client(self) -> PlatformClient:
        if self._client is None:
            self._client = PlatformClient()
        return self._client

    @abstractmethod
    async def _request(self, digits: str) -> Tuple[int, Any]:
        """Issue the platform call and return (status, parsed JSON body)."""

    @abstractmethod
    def interpret(self, data: Any) -> Verdict:
        """Map a parsed 200 response onto a verdict."""

    async def check(self, digits: str) -> Verdict:
        """
        Query the platform for a digits-only registration number.

        Args:
            digits (str): 10-digit registration number without hyphens.

        Returns:
            Verdict: Never raises; failures and ambiguous replies are UNKNOWN.
        """
        start = time.perf_counter()
        try:
            status, data = await asyncio.wait_for(self._request(digits), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug(f"⏱️ [{self.name}] TIMEOUT for {digits} after {self.timeout:.0f}s")
            return Verdict.UNKNOWN
        except Exception as e:
            logger.debug(f"⚠️ [{self.name}] ERROR for {digits}: {e!r}")
            return Verdict.UNKNOWN

        if status != 200:
            logger.debug(f"⚠️ [{self.name}] HTTP {status} for {digits}")
            return Verdict.UNKNOWN

        try:
            verdict = self.interpret(data)
        except Exception as e:
            logger.debug(f"⚠️ [{self.name}] unreadable response for {digits}: {e!r}")
            return Verdict.UNKNOWN

        duration = time.perf_counter() - start
        logger.debug(f"{self.icon} [{self.name}] {digits} → {verdict.value} in {duration:.2f}s")
        return verdict


def message_of(data: Any, *path: str) -> str:
    """Follow `path` through nested dicts and return the string found there, or ""."""
    node = data
    for key in path:
        if not isinstance(node, dict):
            return ""
        node = node.get(key)
    return node if isinstance(node, str) else ""
