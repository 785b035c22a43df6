import asyncio
import re
import time
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger

from propmatch.cache import TTLCache
from propmatch.clients import ZyteClient
from propmatch.config import CACHE_DURATIONS, LISTINGS_DOMAIN, PLACEHOLDER_ADDRESS

LISTINGS_SCHEMA = {
    "listings": {
        "type": "array",
        "description": "Every apartment property listed on the search results page, in page order.",
        "items": {
            "type": "object",
            "properties": {
                "url": {"type": "string", "description": "Absolute URL of the property's detail page"},
                "name": {"type": "string", "description": "Property name"},
                "address": {"type": "string", "description": "Full street address with city, state and zip"},
            },
        },
    }
}

UNITS_SCHEMA = {
    "units": {
        "type": "array",
        "description": "Every rentable unit or floor plan listed on the property page.",
        "items": {
            "type": "object",
            "properties": {
                "unit_number": {"type": "string"},
                "unit_type": {"type": "string", "description": "Floor plan label, e.g. '1BR/1BA' or 'Studio'"},
                "bedrooms": {"type": "integer"},
                "bathrooms": {"type": "number"},
                "square_footage": {"type": "integer"},
                "rent": {"type": "string", "description": "Monthly rent as shown, e.g. '$1,450'"},
                "availability_date": {"type": "string"},
                "status": {"type": "string", "description": "available, occupied or pending"},
            },
        },
    }
}

_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")


def is_listing_url(url: Optional[str]) -> bool:
    """True for absolute URLs on the listings site."""
    if not url:
        return False
    host = urlparse(url).netloc.lower()
    return host == LISTINGS_DOMAIN or host.endswith("." + LISTINGS_DOMAIN)


def parse_rent(value: Any) -> Optional[float]:
    """
    Parse a rent figure; ranges keep their lower bound.

    Example:
        "$1,450 - $1,600" -> 1450.0
    """
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.search(str(value))
    if not match:
        return None
    return float(match.group(0).replace(",", ""))


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(float(value)) if value not in (None, "") else None
    except (ValueError, TypeError):
        return None


def _as_float(value: Any) -> Optional[float]:
    try:
        return float(value) if value not in (None, "") else None
    except (ValueError, TypeError):
        return None


def _clean_listing(raw: Dict[str, Any]) -> Optional[Dict[str, str]]:
    url = (raw.get("url") or "").strip()
    if not is_listing_url(url):
        logger.debug(f"Skipping listing without a {LISTINGS_DOMAIN} URL: {raw}")
        return None
    name = (raw.get("name") or "").strip() or "Unknown Property"
    address = (raw.get("address") or "").strip() or PLACEHOLDER_ADDRESS
    return {"url": url, "name": name, "address": address}


def _clean_unit(raw: Dict[str, Any]) -> Dict[str, Any]:
    bedrooms = _as_int(raw.get("bedrooms"))
    unit_type = (raw.get("unit_type") or "").strip()
    if not unit_type:
        unit_type = "Studio" if bedrooms == 0 else f"{bedrooms}BR" if bedrooms else "Unknown"
    status = (raw.get("status") or "available").strip().lower()
    return {
        "unit_number": (raw.get("unit_number") or None),
        "unit_type": unit_type,
        "bedrooms": bedrooms,
        "bathrooms": _as_float(raw.get("bathrooms")),
        "square_footage": _as_int(raw.get("square_footage")),
        "rent": parse_rent(raw.get("rent")),
        "availability_date": raw.get("availability_date") or None,
        "status": status if status in ("available", "occupied", "pending") else "available",
    }


async def discover_listings(
    source_url: str,
    cache: Optional[TTLCache] = None,
) -> List[Dict[str, str]]:
    """
    Extract the competitor listings shown on a listings-site search page.

    Args:
        source_url (str): City search page, e.g. https://www.apartments.com/omaha-ne/.
        cache (TTLCache): Optional cache keyed by source URL.

    Returns:
        List[Dict[str, str]]: {url, name, address} dicts in page order.
                              Returns an empty list on timeout or failure.
    """
    cache_key = f"listings:{source_url}"
    if cache is not None:
        cached = cache.get(cache_key, CACHE_DURATIONS["competitor_properties"])
        if cached is not None:
            return cached

    start = time.perf_counter()
    logger.debug(f"▶️ [{datetime.now().strftime('%H:%M:%S')}] START discovery for {source_url}")
    try:
        zyte_client = ZyteClient()
        values = await zyte_client.extract(url=source_url, custom_attributes=LISTINGS_SCHEMA)
    except asyncio.TimeoutError:
        logger.debug(f"⏱️ [{datetime.now().strftime('%H:%M:%S')}] TIMEOUT discovery for {source_url}")
        return []
    except Exception as e:
        logger.debug(f"⚠️ [{datetime.now().strftime('%H:%M:%S')}] ERROR discovery for {source_url}: {e}")
        return []

    raw_listings = values.get("listings") or []
    listings = []
    seen_urls = set()
    for raw in raw_listings if isinstance(raw_listings, list) else []:
        listing = _clean_listing(raw) if isinstance(raw, dict) else None
        if listing and listing["url"] not in seen_urls:
            seen_urls.add(listing["url"])
            listings.append(listing)

    duration = time.perf_counter() - start
    logger.debug(
        f"✅ [{datetime.now().strftime('%H:%M:%S')}] Discovered {len(listings)} listings "
        f"for {source_url} in {duration:.2f}s"
    )
    if cache is not None and listings:
        cache.set(cache_key, listings)
    return listings


async def extract_units(
    listing_url: str,
    cache: Optional[TTLCache] = None,
) -> List[Dict[str, Any]]:
    """
    Extract per-unit rent, size and availability from a listing page.

    Args:
        listing_url (str): Listing detail page.
        cache (TTLCache): Optional cache keyed by listing URL.

    Returns:
        List[Dict[str, Any]]: Unit field dicts ready for `ListingStore.create_unit`.
                              Returns an empty list on timeout or failure.
    """
    cache_key = f"units:{listing_url}"
    if cache is not None:
        cached = cache.get(cache_key, CACHE_DURATIONS["unit_details"])
        if cached is not None:
            return cached

    start = time.perf_counter()
    logger.debug(f"📥 [{datetime.now().strftime('%H:%M:%S')}] Fetching units for {listing_url}")
    try:
        zyte_client = ZyteClient()
        values = await zyte_client.extract(url=listing_url, custom_attributes=UNITS_SCHEMA)
    except asyncio.TimeoutError:
        logger.debug(f"⏱️ [{datetime.now().strftime('%H:%M:%S')}] TIMEOUT units for {listing_url}")
        return []
    except Exception as e:
        logger.debug(f"⚠️ [{datetime.now().strftime('%H:%M:%S')}] ERROR units for {listing_url}: {e}")
        return []

    raw_units = values.get("units") or []
    units = [_clean_unit(u) for u in raw_units if isinstance(u, dict)] if isinstance(raw_units, list) else []

    duration = time.perf_counter() - start
    logger.debug(
        f"🏁 [{datetime.now().strftime('%H:%M:%S')}] Done fetching {len(units)} units "
        f"for {listing_url} in {duration:.2f}s"
    )
    if cache is not None and units:
        cache.set(cache_key, units)
    return units
