from datetime import datetime
from typing import Optional

from loguru import logger

from propmatch.cache import TTLCache
from propmatch.listings_fetcher import discover_listings
from propmatch.location_query import build_discovery_url, resolve_location
from propmatch.models import TIER_CONFIDENT, TIER_NONE, AnalysisResult, SubjectPropertyRecord
from propmatch.matchers.matching_orchestrator import EMPTY_BATCH_SUGGESTIONS, sync_subject_units
from propmatch.matchers.resolution import ResolutionError, resolve_subject
from propmatch.storage.base import ListingStore


async def process_subject(
    subject: SubjectPropertyRecord,
    store: ListingStore,
    cache: Optional[TTLCache] = None,
) -> AnalysisResult:
    """
    Run discovery, subject matching and unit sync for one stored subject property.

    Args:
        subject (SubjectPropertyRecord): Property under analysis (already stored).
        store (ListingStore): Persistence collaborator.
        cache (TTLCache): Optional cache shared by the network collaborators.

    Returns:
        AnalysisResult: Which listing became the subject, how, and how many units were synced.
    """
    # 1) Work out where to search
    city, state = await resolve_location(subject, cache=cache)
    if not city or not state:
        logger.warning(f"⚠️ Could not determine city/state for '{subject.name}' ({subject.address})")
        return AnalysisResult(
            name=subject.name,
            batch_id=None,
            tier=TIER_NONE,
            suggestions=["Add the city and state to the property's address"],
        )

    # 2) Discover competitor listings in that city
    source_url = build_discovery_url(city, state)
    batch = store.create_batch(subject.id, source_url)
    store.update_batch(batch.id, status="processing")
    listings = await discover_listings(source_url, cache=cache)
    candidates = [
        store.create_candidate(batch.id, listing["name"], listing["address"], listing["url"])
        for listing in listings
    ]

    # 3) Pick the subject listing among them and pull its units
    try:
        resolution = resolve_subject(store, subject, candidates)
        sync = await sync_subject_units(store, subject.id, batch.id, cache=cache)
    except ResolutionError as e:
        logger.error(f"❌ Resolution failed for '{subject.name}': {e}")
        store.update_batch(batch.id, status="failed", error_message=str(e))
        return AnalysisResult(
            name=subject.name,
            batch_id=batch.id,
            tier=e.tier,
            suggestions=["Retry the analysis; no subject listing was confirmed"],
        )

    store.update_batch(batch.id, status="completed", completed_at=datetime.now())

    chosen = sync.subject_candidate
    if chosen is None:
        return AnalysisResult(
            name=subject.name,
            batch_id=batch.id,
            tier=resolution.tier,
            suggestions=sync.suggestions or list(EMPTY_BATCH_SUGGESTIONS),
        )

    chosen_score = next(
        (r.score for r in resolution.all_scores if r.candidate_id == chosen.id), None
    )
    return AnalysisResult(
        name=subject.name,
        batch_id=batch.id,
        tier=resolution.tier,
        subject_listing_name=chosen.name,
        subject_listing_url=chosen.url,
        match_score=chosen_score,
        units_count=len(sync.units),
        fallback_used=sync.fallback_used or resolution.tier != TIER_CONFIDENT,
    )
