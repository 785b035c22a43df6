import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from propmatch.cache import TTLCache
from propmatch.listings_fetcher import (
    discover_listings,
    extract_units,
    is_listing_url,
    parse_rent,
)

SEARCH_URL = "https://www.apartments.com/omaha-ne/"


def _mock_zyte(mock_cls, values=None, side_effect=None):
    instance = MagicMock()
    instance.extract = AsyncMock(return_value=values, side_effect=side_effect)
    mock_cls.return_value = instance
    return instance


def test_is_listing_url():
    assert is_listing_url("https://www.apartments.com/the-duo-omaha-ne/abc123/")
    assert is_listing_url("https://apartments.com/x/")
    assert not is_listing_url("https://www.zillow.com/x/")
    assert not is_listing_url("/relative/path")
    assert not is_listing_url("")


def test_parse_rent():
    assert parse_rent("$1,450") == 1450.0
    assert parse_rent("$1,450 - $1,600") == 1450.0
    assert parse_rent(1850) == 1850.0
    assert parse_rent("Call for Rent") is None
    assert parse_rent(None) is None


@pytest.mark.asyncio
async def test_discover_listings_cleans_and_orders_results():
    values = {
        "listings": [
            {"url": "https://www.apartments.com/the-duo/1/", "name": "The Duo", "address": "222 S 15th St, Omaha, NE"},
            {"url": "https://www.zillow.com/elsewhere/", "name": "Offsite", "address": "1 Main St"},
            {"url": "https://www.apartments.com/hello/2/", "name": "HELLO", "address": ""},
            {"url": "https://www.apartments.com/the-duo/1/", "name": "The Duo (dup)", "address": "x"},
        ]
    }
    with patch("propmatch.listings_fetcher.ZyteClient") as mock_zyte:
        instance = _mock_zyte(mock_zyte, values=values)
        listings = await discover_listings(SEARCH_URL)

    assert [l["name"] for l in listings] == ["The Duo", "HELLO"]
    assert listings[1]["address"] == "Address to be determined"
    instance.extract.assert_awaited_once()
    assert instance.extract.await_args.kwargs["url"] == SEARCH_URL


@pytest.mark.asyncio
async def test_discover_listings_uses_cache():
    cache = TTLCache()
    values = {"listings": [{"url": "https://www.apartments.com/a/", "name": "A", "address": "1 A St"}]}
    with patch("propmatch.listings_fetcher.ZyteClient") as mock_zyte:
        instance = _mock_zyte(mock_zyte, values=values)
        first = await discover_listings(SEARCH_URL, cache=cache)
        second = await discover_listings(SEARCH_URL, cache=cache)

    assert first == second
    assert instance.extract.await_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [asyncio.TimeoutError(), RuntimeError("Website Ban")])
async def test_discover_listings_failure_returns_empty(error):
    with patch("propmatch.listings_fetcher.ZyteClient") as mock_zyte:
        _mock_zyte(mock_zyte, side_effect=error)
        assert await discover_listings(SEARCH_URL) == []


@pytest.mark.asyncio
async def test_extract_units_normalizes_fields():
    values = {
        "units": [
            {"unit_number": "A101", "unit_type": "1BR/1BA", "bedrooms": "1", "bathrooms": "1",
             "square_footage": "720", "rent": "$1,450", "status": "Available"},
            {"bedrooms": 0, "rent": "Call for Rent", "status": "leased"},
        ]
    }
    with patch("propmatch.listings_fetcher.ZyteClient") as mock_zyte:
        _mock_zyte(mock_zyte, values=values)
        units = await extract_units("https://www.apartments.com/the-duo/1/")

    assert units[0]["rent"] == 1450.0
    assert units[0]["bedrooms"] == 1
    assert units[0]["square_footage"] == 720
    assert units[0]["status"] == "available"
    assert units[1]["unit_type"] == "Studio"
    assert units[1]["rent"] is None
    assert units[1]["status"] == "available"


@pytest.mark.asyncio
async def test_extract_units_failure_returns_empty():
    with patch("propmatch.listings_fetcher.ZyteClient") as mock_zyte:
        _mock_zyte(mock_zyte, side_effect=RuntimeError("boom"))
        assert await extract_units("https://www.apartments.com/the-duo/1/") == []
