"""
Singleton OpenRouter client (OpenAI-compatible API) with rate limiting using aiolimiter.
"""
from typing import Dict, List, Optional

from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI
from loguru import logger

from bizscan.config import (
    CONCURRENCY,
    EXTRACTION_TIMEOUT,
    OPENROUTER_API_KEYS,
    OPENROUTER_URL,
    SITE_URL,
)
from bizscan.errors import ConfigurationError


class OpenRouterClient:
    """
    Singleton client for chat completions routed through OpenRouter.
    Keeps one AsyncOpenAI instance per API key so callers can rotate keys.
    Retries are left to the callers, so the SDK's own retries are disabled.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not OpenRouterClient._initialized:
            self.api_keys: List[str] = list(OPENROUTER_API_KEYS)
            self._clients: Dict[str, AsyncOpenAI] = {}
            self.rate_limiter = AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
            OpenRouterClient._initialized = True

    def _client_for(self, api_key: str) -> AsyncOpenAI:
        client = self._clients.get(api_key)
        if client is None:
            client = AsyncOpenAI(
                api_key=api_key,
                base_url=OPENROUTER_URL,
                timeout=EXTRACTION_TIMEOUT,
                max_retries=0,
                default_headers={"HTTP-Referer": SITE_URL, "X-Title": "BizScan"},
            )
            self._clients[api_key] = client
        return client

    def primary_key(self) -> str:
        if not self.api_keys:
            raise ConfigurationError("OPENROUTER_API_KEY is not set")
        return self.api_keys[0]

    async def chat_completions_create(self, api_key: Optional[str] = None, **kwargs):
        """
        Create a chat completion with rate limiting.
        Accepts all arguments that AsyncOpenAI.chat.completions.create accepts.

        Args:
            api_key: Key to use; defaults to the first configured key.

        Returns:
            The response from the chat completions API.
        """
        key = api_key or self.primary_key()
        async with self.rate_limiter:
            try:
                return await self._client_for(key).chat.completions.create(**kwargs)
            except Exception as e:
                logger.debug(f"⚠️ OpenRouter request failed ({kwargs.get('model')}): {e}")
                raise

    async def close(self):
        for client in self._clients.values():
            await client.close()
        self._clients.clear()


def reply_text(response) -> str:
    """Pull the assistant text out of a chat completion, or raise ValueError."""
    choices = getattr(response, "choices", None)
    if not choices or choices[0].message is None:
        raise ValueError("Invalid API response structure")
    return choices[0].message.content or ""
