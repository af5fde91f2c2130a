import pytest
from unittest.mock import AsyncMock, MagicMock

from bizscan.models import Verdict


def make_response(content):
    """Chat completion lookalike with `.choices[0].message.content`."""
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class FakeProbe:
    """Stands in for a PlatformProbe; records the digits it was asked about."""

    def __init__(self, verdict=Verdict.UNKNOWN):
        self.verdict = verdict
        self.calls = []

    async def check(self, digits):
        self.calls.append(digits)
        return self.verdict


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.chat_completions_create = AsyncMock()
    return client


@pytest.fixture(autouse=True)
def reset_singletons():
    from bizscan.clients import openrouter_client, platform_client

    yield
    openrouter_client.OpenRouterClient._instance = None
    openrouter_client.OpenRouterClient._initialized = False
    platform_client.PlatformClient._instance = None
    platform_client.PlatformClient._initialized = False
