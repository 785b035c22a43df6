# propmatch/matchers/matching_orchestrator.py

from typing import List, Optional, Sequence

from loguru import logger

from propmatch.cache import TTLCache
from propmatch.config import GOOD_MATCH_THRESHOLD, MATCH_THRESHOLD
from propmatch.listings_fetcher import extract_units
from propmatch.models import (
    TIER_NONE,
    CandidateListing,
    InspectionReport,
    MatchResult,
    SubjectPropertyRecord,
    SyncResult,
)
from propmatch.matchers.resolution import (
    ResolutionError,
    apply_fallback_cascade,
    batch_lock,
    enforce_single_subject,
    score_batch,
)
from propmatch.storage.base import ListingStore

EMPTY_BATCH_SUGGESTIONS = [
    "Re-run listings discovery for the property's city",
    "Manually link the correct listing as the subject property",
    "Inspect match scores to see why no listing was chosen",
]


def _recommendation(best: Optional[MatchResult], threshold: int, good_threshold: int) -> str:
    if best is None:
        return "No candidate listings found: re-run discovery"
    if best.score >= threshold:
        return f"Best match scores {best.score}%: auto-link is safe"
    if best.score >= good_threshold:
        return f"Best match scores {best.score}%: manual force-link recommended"
    return f"Best match scores only {best.score}%: re-scrape with a better address"


def inspect_matches(
    subject: SubjectPropertyRecord,
    candidates: Sequence[CandidateListing],
    threshold: int = MATCH_THRESHOLD,
    good_threshold: int = GOOD_MATCH_THRESHOLD,
) -> InspectionReport:
    """
    Re-score a stored batch without changing anything.

    Args:
        subject (SubjectPropertyRecord): Property under analysis.
        candidates (Sequence[CandidateListing]): The stored batch.
        threshold (int): Confident-match threshold.
        good_threshold (int): Lower bound for a force-link recommendation.

    Returns:
        InspectionReport: Results ranked by score (discovery order on ties), the
                          current subject's result and a recommendation.
    """
    scores = score_batch(subject, candidates, threshold=threshold)
    ranked = sorted(scores, key=lambda r: r.score, reverse=True)
    best = ranked[0] if ranked else None

    holder = next((c for c in candidates if c.is_subject_property), None)
    current = None
    if holder is not None:
        current = next(r for r in scores if r.candidate_id == holder.id)

    warnings = []
    if current is not None and current.score < threshold:
        warnings.append(
            f"Current subject '{holder.name}' scores only {current.score}% "
            f"(below {threshold}%): verify it is really this property"
        )
        logger.warning(f"⚠️ Low-confidence subject for '{subject.name}': {holder.name} ({current.score}%)")

    return InspectionReport(
        ranked=ranked,
        current=current,
        recommendation=_recommendation(best, threshold, good_threshold),
        warnings=warnings,
    )


def override_subject(
    store: ListingStore,
    candidates: Sequence[CandidateListing],
    chosen_id: str,
) -> None:
    """
    Operator override: make `chosen_id` the batch's only subject, skipping scoring.

    Raises:
        KeyError: If `chosen_id` is not in the batch.
        ResolutionError: If the store fails to persist the change.
    """
    chosen = next((c for c in candidates if c.id == chosen_id), None)
    if chosen is None:
        raise KeyError(f"Candidate {chosen_id} is not part of this batch")

    with batch_lock(chosen.batch_id):
        try:
            for candidate in store.list_candidates_for_batch(chosen.batch_id):
                if candidate.is_subject_property and candidate.id != chosen_id:
                    store.update_candidate(candidate.id, is_subject_property=False)
                    logger.info(f"Unmarked previous subject {candidate.name}")
            if store.update_candidate(chosen_id, is_subject_property=True) is None:
                raise KeyError(chosen_id)
        except Exception as exc:
            raise ResolutionError(
                f"Could not override subject with {chosen_id}: {exc}", all_scores=[]
            ) from exc

    for candidate in candidates:
        candidate.is_subject_property = candidate.id == chosen_id
    logger.info(f"✅ Subject manually set to {chosen.name}")


async def sync_subject_units(
    store: ListingStore,
    subject_id: str,
    batch_id: str,
    cache: Optional[TTLCache] = None,
) -> SyncResult:
    """
    Materialize the subject listing's units, repairing a missing subject first.

    If no candidate is flagged, the fallback tiers run before units are fetched.
    Previously stored units for the subject listing are replaced.

    Args:
        store (ListingStore): Persistence collaborator.
        subject_id (str): Subject property id.
        batch_id (str): Discovery batch to sync from.
        cache (TTLCache): Optional cache passed to unit extraction.

    Returns:
        SyncResult: Subject listing, stored units, whether a fallback fired and every score.

    Raises:
        KeyError: If the subject does not exist.
        ResolutionError: If the fallback could not be persisted.
    """
    subject = store.get_subject(subject_id)
    if subject is None:
        raise KeyError(f"Subject property {subject_id} not found")

    candidates = store.list_candidates_for_batch(batch_id)
    if not candidates:
        logger.warning(f"⚠️ No listings in batch {batch_id} for '{subject.name}'")
        return SyncResult(
            subject_candidate=None,
            tier=TIER_NONE,
            suggestions=list(EMPTY_BATCH_SUGGESTIONS),
        )

    current = enforce_single_subject(store, batch_id)
    fallback_used = False
    tier = None
    if current is None:
        resolution = apply_fallback_cascade(store, subject, candidates)
        current = store.get_candidate(resolution.chosen_id)
        all_scores: List[MatchResult] = resolution.all_scores
        fallback_used = True
        tier = resolution.tier
    else:
        all_scores = score_batch(subject, candidates)

    raw_units = await extract_units(current.url, cache=cache)
    store.clear_units_for_candidate(current.id)
    units = [store.create_unit(current.id, **fields) for fields in raw_units]
    logger.info(
        f"✅ Synced {len(units)} units for '{current.name}'"
        + (f" (fallback: {tier})" if fallback_used else "")
    )

    return SyncResult(
        subject_candidate=current,
        units=units,
        fallback_used=fallback_used,
        tier=tier,
        all_scores=all_scores,
    )
