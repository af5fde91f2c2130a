"""
Singleton HTTP client for the delivery platforms, rate limited with aiolimiter.
"""
from typing import Any, Dict, Optional, Tuple

from aiohttp import ClientSession, ClientTimeout, ContentTypeError
from aiolimiter import AsyncLimiter
from loguru import logger

from bizscan.config import CONCURRENCY, PROBE_TIMEOUT

BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/138.0.0.0 Safari/537.36"
)


class PlatformClient:
    """
    Singleton client shared by all platform probes.
    Uses AsyncLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not PlatformClient._initialized:
            self.rate_limiter = AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
            self._session: Optional[ClientSession] = None
            PlatformClient._initialized = True

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=ClientTimeout(total=PROBE_TIMEOUT))
        return self._session

    @staticmethod
    async def _read_json(resp) -> Any:
        try:
            return await resp.json(content_type=None)
        except (ContentTypeError, ValueError):
            return None

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = PROBE_TIMEOUT,
    ) -> Tuple[int, Any]:
        """
        Send a GET request and return the status code with the parsed JSON body.

        Args:
            url: Target URL.
            params: Query parameters.
            headers: Optional HTTP headers.
            timeout: Total request timeout in seconds.

        Returns:
            (status, body) where body is None when the response is not JSON.
        """
        async with self.rate_limiter:
            session = await self._get_session()
            try:
                async with session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=ClientTimeout(total=timeout),
                ) as resp:
                    return resp.status, await self._read_json(resp)
            except Exception as e:
                logger.debug(f"⚠️ Platform GET {url} failed: {e!r}")
                raise

    async def post_json(
        self,
        url: str,
        request_body: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: float = PROBE_TIMEOUT,
    ) -> Tuple[int, Any]:
        """
        Send a JSON POST request and return the status code with the parsed JSON body.

        Args:
            url: Target URL.
            request_body: JSON payload.
            headers: Optional HTTP headers.
            timeout: Total request timeout in seconds.

        Returns:
            (status, body) where body is None when the response is not JSON.
        """
        async with self.rate_limiter:
            session = await self._get_session()
            try:
                async with session.post(
                    url,
                    json=request_body,
                    headers=headers,
                    timeout=ClientTimeout(total=timeout),
                ) as resp:
                    return resp.status, await self._read_json(resp)
            except Exception as e:
                logger.debug(f"⚠️ Platform POST {url} failed: {e!r}")
                raise

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
