import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from propmatch.cache import TTLCache
from propmatch.location_query import build_discovery_url, parse_city_state, resolve_location
from propmatch.models import SubjectPropertyRecord


def _subject(address, city=None, state=None):
    return SubjectPropertyRecord(id="s", name="The Atlas", address=address, city=city, state=state)


def test_parse_city_state():
    assert parse_city_state("222 S 15th St, Omaha, NE 68102") == ("Omaha", "NE")
    assert parse_city_state("1000 Main Street, Omaha NE") == ("Omaha", "NE")
    assert parse_city_state("12 Elm St, Apt 4, San Jose, ca 95112-1234") == ("San Jose", "CA")
    assert parse_city_state("1000 Main Street") == (None, None)
    assert parse_city_state(None) == (None, None)


def test_build_discovery_url():
    assert build_discovery_url("Omaha", "NE") == "https://www.apartments.com/omaha-ne/"
    assert build_discovery_url("San Jose", "CA") == "https://www.apartments.com/san-jose-ca/"


@pytest.mark.asyncio
async def test_record_fields_win():
    with patch("propmatch.location_query.OpenAIClient") as mock_openai:
        location = await resolve_location(_subject("222 S 15th St, Lincoln, NE", "Omaha", "NE"))

    assert location == ("Omaha", "NE")
    mock_openai.assert_not_called()


@pytest.mark.asyncio
async def test_address_parsing_before_llm():
    with patch("propmatch.location_query.OpenAIClient") as mock_openai:
        location = await resolve_location(_subject("222 S 15th St, Omaha, NE 68102"))

    assert location == ("Omaha", "NE")
    mock_openai.assert_not_called()


@pytest.mark.asyncio
async def test_llm_fallback_is_cached():
    cache = TTLCache()
    with patch("propmatch.location_query.OpenAIClient") as mock_openai:
        instance = MagicMock()
        instance.complete_text = AsyncMock(return_value="Omaha, ne")
        mock_openai.return_value = instance

        first = await resolve_location(_subject("1000 Main Street"), cache=cache)
        second = await resolve_location(_subject("1000 Main Street"), cache=cache)

    assert first == second == ("Omaha", "NE")
    assert instance.complete_text.await_count == 1


@pytest.mark.asyncio
async def test_llm_unknown_answer():
    with patch("propmatch.location_query.OpenAIClient") as mock_openai:
        instance = MagicMock()
        instance.complete_text = AsyncMock(return_value="UNKNOWN")
        mock_openai.return_value = instance

        assert await resolve_location(_subject("1000 Main Street")) == (None, None)


@pytest.mark.asyncio
async def test_llm_unavailable():
    with patch("propmatch.location_query.OpenAIClient", side_effect=ValueError("OPENAI_API_KEY must be set")):
        assert await resolve_location(_subject("1000 Main Street")) == (None, None)
