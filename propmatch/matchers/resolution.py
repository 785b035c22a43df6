"""
Subject resolution policy.

Turns a scored batch of candidate listings into exactly one subject listing
(or none for an empty batch), falling back through progressively weaker
tiers when no candidate clears the match threshold.
"""
import threading
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple
from weakref import WeakValueDictionary

from loguru import logger

from propmatch.config import GOOD_MATCH_THRESHOLD, MATCH_THRESHOLD
from propmatch.models import (
    TIER_CONFIDENT,
    TIER_EMERGENCY_FALLBACK,
    TIER_FORCED_FALLBACK,
    TIER_GOOD_FALLBACK,
    TIER_NONE,
    CandidateListing,
    MatchResult,
    ResolutionResult,
    SubjectPropertyRecord,
)
from propmatch.matchers.classical_matcher import score_match
from propmatch.storage.base import ListingStore


class ResolutionError(Exception):
    """Persisting the subject flag failed; the scores are still attached."""

    def __init__(self, message: str, all_scores: List[MatchResult], tier: str = TIER_NONE):
        super().__init__(message)
        self.all_scores = all_scores
        self.tier = tier


# Entries disappear once no caller holds or waits on the batch's lock
_locks: "WeakValueDictionary[str, threading.Lock]" = WeakValueDictionary()
_locks_guard = threading.Lock()


@contextmanager
def batch_lock(batch_id: str) -> Iterator[None]:
    """Serialize subject-flag mutations for one batch."""
    with _locks_guard:
        lock = _locks.get(batch_id)
        if lock is None:
            lock = threading.Lock()
            _locks[batch_id] = lock
    with lock:
        yield


def score_batch(
    subject: SubjectPropertyRecord,
    candidates: Sequence[CandidateListing],
    threshold: int = MATCH_THRESHOLD,
) -> List[MatchResult]:
    """Score every candidate, preserving discovery order."""
    results = []
    for candidate in candidates:
        result = score_match(subject, candidate, threshold=threshold)
        logger.debug(f"🔎 {candidate.name} ({candidate.address}) → {result.score}%")
        results.append(result)
    return results


def find_best_match(scores: Sequence[MatchResult]) -> Optional[MatchResult]:
    """Highest-scoring result; the earliest one wins ties."""
    best = None
    for result in scores:
        if best is None or result.score > best.score:
            best = result
    return best


def _log_ties(scores: Sequence[MatchResult]) -> None:
    best = find_best_match(scores)
    if best is None:
        return
    tied = [r.candidate_id for r in scores if r.score == best.score]
    if len(tied) > 1:
        logger.warning(
            f"⚠️ {len(tied)} candidates tied at {best.score}%: {tied}; keeping the first"
        )


def choose_fallback(
    candidates: Sequence[CandidateListing],
    scores: Sequence[MatchResult],
    good_threshold: int = GOOD_MATCH_THRESHOLD,
) -> Tuple[Optional[str], str, Optional[MatchResult]]:
    """
    Pick a subject when nothing cleared the match threshold.

    Returns:
        Tuple[Optional[str], str, Optional[MatchResult]]: (chosen id, tier, its score).
    """
    if not candidates:
        return None, TIER_NONE, None

    best = find_best_match(scores)
    if best is not None and best.score >= good_threshold:
        return best.candidate_id, TIER_GOOD_FALLBACK, best
    if best is not None and best.score > 0:
        return best.candidate_id, TIER_FORCED_FALLBACK, best

    first = candidates[0]
    first_score = next((r for r in scores if r.candidate_id == first.id), None)
    return first.id, TIER_EMERGENCY_FALLBACK, first_score


def _mark_subject(
    store: ListingStore,
    candidates: Sequence[CandidateListing],
    chosen_id: str,
    scores: Sequence[MatchResult],
    tier: str,
) -> None:
    """Persist scores, clear the flag everywhere else, then flag `chosen_id`."""
    by_id = {r.candidate_id: r for r in scores}
    # The chosen candidate is written last so a partial failure never leaves two flags
    ordered = [c for c in candidates if c.id != chosen_id]
    ordered += [c for c in candidates if c.id == chosen_id]
    try:
        for candidate in ordered:
            result = by_id.get(candidate.id)
            patch = {"is_subject_property": candidate.id == chosen_id}
            if result is not None:
                patch["match_score"] = result.score
            updated = store.update_candidate(candidate.id, **patch)
            if updated is None:
                raise KeyError(candidate.id)
            candidate.is_subject_property = updated.is_subject_property
            candidate.match_score = updated.match_score
    except Exception as exc:
        logger.debug(f"⚠️ Failed to persist subject flag for {chosen_id}: {exc}")
        raise ResolutionError(
            f"Could not mark candidate {chosen_id} as subject: {exc}",
            all_scores=list(scores),
            tier=tier,
        ) from exc


def resolve_subject(
    store: ListingStore,
    subject: SubjectPropertyRecord,
    candidates: Sequence[CandidateListing],
    threshold: int = MATCH_THRESHOLD,
    good_threshold: int = GOOD_MATCH_THRESHOLD,
) -> ResolutionResult:
    """
    Score a freshly discovered batch and mark exactly one candidate as subject.

    Tiers, in order:
        confident          - first candidate in discovery order with score >= threshold
        good-fallback      - best candidate scoring in [good_threshold, threshold)
        forced-fallback    - best candidate with any positive score
        emergency-fallback - first candidate when every score is 0
        none               - empty batch, nothing is mutated

    Args:
        store (ListingStore): Persistence collaborator for the flag update.
        subject (SubjectPropertyRecord): The property under analysis.
        candidates (Sequence[CandidateListing]): Batch in discovery order.
        threshold (int): Confident-match threshold.
        good_threshold (int): Lower bound of the good-fallback tier.

    Returns:
        ResolutionResult: Chosen candidate id, tier and every candidate's score.

    Raises:
        ResolutionError: If the store fails to persist the flag.
    """
    if not candidates:
        logger.info(f"⚠️ No candidate listings for '{subject.name}'; no subject chosen")
        return ResolutionResult(chosen_id=None, tier=TIER_NONE, all_scores=[])

    scores = score_batch(subject, candidates, threshold=threshold)
    _log_ties(scores)

    confident = next((r for r in scores if r.is_match), None)
    if confident is not None:
        chosen_id, tier, chosen = confident.candidate_id, TIER_CONFIDENT, confident
    else:
        chosen_id, tier, chosen = choose_fallback(candidates, scores, good_threshold)

    with batch_lock(candidates[0].batch_id):
        _mark_subject(store, candidates, chosen_id, scores, tier)

    chosen_name = next(c.name for c in candidates if c.id == chosen_id)
    chosen_score = chosen.score if chosen is not None else 0
    if tier == TIER_CONFIDENT:
        logger.info(f"✅ Subject for '{subject.name}': {chosen_name} ({chosen_score}%)")
    else:
        logger.warning(
            f"⚠️ Subject for '{subject.name}' chosen by {tier}: {chosen_name} ({chosen_score}%)"
        )
    return ResolutionResult(chosen_id=chosen_id, tier=tier, all_scores=scores)


def apply_fallback_cascade(
    store: ListingStore,
    subject: SubjectPropertyRecord,
    candidates: Sequence[CandidateListing],
    threshold: int = MATCH_THRESHOLD,
    good_threshold: int = GOOD_MATCH_THRESHOLD,
) -> ResolutionResult:
    """
    Repair step for a batch with no flagged subject: run only the fallback
    tiers (good, forced, emergency). The confident tier already had its
    chance during discovery.
    """
    scores = score_batch(subject, candidates, threshold=threshold)
    _log_ties(scores)
    chosen_id, tier, chosen = choose_fallback(candidates, scores, good_threshold)
    if chosen_id is None:
        return ResolutionResult(chosen_id=None, tier=TIER_NONE, all_scores=scores)

    with batch_lock(candidates[0].batch_id):
        _mark_subject(store, candidates, chosen_id, scores, tier)
    logger.warning(
        f"⚠️ Fallback {tier} marked {chosen_id} as subject "
        f"({chosen.score if chosen else 0}%)"
    )
    return ResolutionResult(chosen_id=chosen_id, tier=tier, all_scores=scores)


def enforce_single_subject(store: ListingStore, batch_id: str) -> Optional[CandidateListing]:
    """
    Make sure at most one candidate in the batch is flagged. When several
    are, keep the highest-scored (earliest on ties) and unflag the rest.

    Returns:
        Optional[CandidateListing]: The remaining subject, if any.
    """
    with batch_lock(batch_id):
        flagged = [
            c for c in store.list_candidates_for_batch(batch_id) if c.is_subject_property
        ]
        if len(flagged) <= 1:
            return flagged[0] if flagged else None

        keep = flagged[0]
        for candidate in flagged[1:]:
            if (candidate.match_score or 0) > (keep.match_score or 0):
                keep = candidate
        logger.warning(
            f"⚠️ {len(flagged)} subjects flagged in batch {batch_id}; keeping {keep.name}"
        )
        for candidate in flagged:
            if candidate.id != keep.id:
                store.update_candidate(candidate.id, is_subject_property=False)
        return keep
