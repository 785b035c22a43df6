"""Client singletons for external API interactions."""
from propmatch.clients.zyte_client import ZyteClient, ZyteAPIError
from propmatch.clients.openai_client import OpenAIClient

__all__ = ["ZyteClient", "ZyteAPIError", "OpenAIClient"]
