import re
from typing import Optional, Tuple

from loguru import logger

from propmatch.cache import TTLCache
from propmatch.clients import OpenAIClient
from propmatch.config import CACHE_DURATIONS, LISTINGS_BASE_URL
from propmatch.models import SubjectPropertyRecord

PROMPT_TEMPLATE = """You are given a US street address for an apartment property. Identify the city and the two-letter state abbreviation it belongs to.

Return JUST "City, ST" (for example "Omaha, NE"). If you cannot tell, return "UNKNOWN".

Address: {address}
"""

_CITY_STATE = re.compile(
    r",\s*(?P<city>[^,]+?),?\s+(?P<state>[A-Za-z]{2})(?:\s+\d{5}(?:-\d{4})?)?\s*$"
)
_LLM_ANSWER = re.compile(r"^\s*(?P<city>[^,]+?)\s*,\s*(?P<state>[A-Za-z]{2})\s*$")


def parse_city_state(address: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Pull (city, state) out of a "street, city, ST zip" address.

    Example:
        "222 S 15th St, Omaha, NE 68102" -> ("Omaha", "NE")
    """
    if not address:
        return None, None
    match = _CITY_STATE.search(address.strip())
    if not match:
        return None, None
    return match.group("city").strip(), match.group("state").upper()


async def _ask_llm_for_location(address: str) -> Tuple[Optional[str], Optional[str]]:
    try:
        openai_client = OpenAIClient()
        answer = await openai_client.complete_text(
            PROMPT_TEMPLATE.format(address=address),
            system="You extract US city and state from street addresses.",
        )
    except Exception as e:
        logger.debug(f"LLM location lookup failed for '{address}': {e}")
        return None, None

    match = _LLM_ANSWER.match(answer)
    if not match:
        logger.debug(f"LLM could not place '{address}': {answer!r}")
        return None, None
    return match.group("city"), match.group("state").upper()


async def resolve_location(
    subject: SubjectPropertyRecord,
    cache: Optional[TTLCache] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Determine the city and state used to build the discovery search.

    The record's own fields win, then the address is parsed, and only then
    is the LLM asked.

    Args:
        subject (SubjectPropertyRecord): Property under analysis.
        cache (TTLCache): Optional cache for LLM answers, keyed by address.

    Returns:
        Tuple[Optional[str], Optional[str]]: (city, state); (None, None) if unknown.
    """
    if subject.city and subject.state:
        return subject.city, subject.state

    city, state = parse_city_state(subject.address)
    if city and state:
        return subject.city or city, subject.state or state

    cache_key = f"location:{subject.address}"
    if cache is not None:
        cached = cache.get(cache_key, CACHE_DURATIONS["property_search"])
        if cached is not None:
            return cached

    city, state = await _ask_llm_for_location(subject.address)
    if city and state and cache is not None:
        cache.set(cache_key, (city, state))
    return subject.city or city, subject.state or state


def build_discovery_url(city: str, state: str) -> str:
    """
    Listings search page for a city.

    Example:
        ("Omaha", "NE") -> "https://www.apartments.com/omaha-ne/"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", f"{city} {state}".lower()).strip("-")
    return f"{LISTINGS_BASE_URL}/{slug}/"
