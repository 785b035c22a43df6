"""
Singleton Zyte client with rate limiting using aiolimiter.
"""
from aiohttp import ClientSession, ClientTimeout, BasicAuth
from aiolimiter import AsyncLimiter
from typing import Dict, Any, Optional
from loguru import logger

from propmatch.config import ZYTE_API_KEY, ZYTE_URL, CONCURRENCY, REQUEST_TIMEOUT


class ZyteAPIError(Exception):
    """Zyte returned an error payload instead of an extraction result."""


class ZyteClient:
    """
    Singleton Zyte client for AI extraction of structured data from listing pages.
    Uses AsyncRateLimiter for rate limiting instead of semaphores.
    """
    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not ZyteClient._initialized:
            self.api_key = ZYTE_API_KEY
            self.base_url = ZYTE_URL
            # Token bucket: CONCURRENCY requests per second
            self.rate_limiter = AsyncLimiter(max_rate=CONCURRENCY, time_period=1.0)
            self._session: Optional[ClientSession] = None
            ZyteClient._initialized = True

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = ClientSession(timeout=ClientTimeout(total=REQUEST_TIMEOUT))
        return self._session

    async def extract(
        self,
        url: str,
        custom_attributes: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Render a page through Zyte and extract the given custom attributes.

        Args:
            url: Listing page to extract from.
            custom_attributes: Attribute schema, e.g. {"properties": {"type": "array", ...}}.

        Returns:
            The extracted attribute values keyed by attribute name.
        """
        async with self.rate_limiter:
            session = await self._get_session()
            payload = {
                "url": url,
                "browserHtml": True,
                "customAttributes": custom_attributes,
            }

            try:
                async with session.post(
                    self.base_url,
                    auth=BasicAuth(self.api_key or "", ""),
                    json=payload,
                    timeout=ClientTimeout(total=REQUEST_TIMEOUT)
                ) as resp:
                    data = await resp.json()

                    # Zyte API error (ban, quota, bad request), not the target site's response
                    if "status" in data and data.get("status") not in [200, None]:
                        raise ZyteAPIError(
                            f"Zyte API error ({data.get('title', 'unknown')}): "
                            f"{data.get('detail', 'no details')}. "
                            f"Status: {data.get('status')}, Type: {data.get('type', 'unknown')}"
                        )

                    attributes = data.get("customAttributes")
                    if not attributes or "values" not in attributes:
                        raise ZyteAPIError(
                            f"Missing customAttributes in Zyte response. "
                            f"Response keys: {list(data.keys())}"
                        )
                    return attributes["values"]
            except Exception as e:
                logger.debug(f"⚠️ Zyte extraction failed for {url}: {e}")
                raise

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
