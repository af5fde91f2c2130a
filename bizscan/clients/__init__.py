"""Client singletons for external API interactions."""
from bizscan.clients.platform_client import PlatformClient
from bizscan.clients.openrouter_client import OpenRouterClient, reply_text

__all__ = ["PlatformClient", "OpenRouterClient", "reply_text"]
