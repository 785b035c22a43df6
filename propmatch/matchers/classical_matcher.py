import re
from typing import List, Tuple

from propmatch.config import MATCH_THRESHOLD
from propmatch.models import (
    CandidateListing,
    ComponentScores,
    MatchResult,
    SubjectPropertyRecord,
)
from propmatch.matchers.normalizer import (
    extract_street_name,
    extract_street_number,
    is_placeholder_address,
    normalize_address,
    normalize_property_name,
)
from propmatch.matchers.similarity import calculate_string_similarity

# Max points per component
STREET_NUMBER_POINTS = 30
STREET_NAME_POINTS = 25
PROPERTY_NAME_POINTS = 20
FULL_ADDRESS_POINTS = 15
CITY_STATE_POINTS = 10

_LEADING_ARTICLE = re.compile(r"^(?:the|a|an)\s+")


def _score_street_number(subject_addr: str, cand_addr: str, reasons: List[str]) -> int:
    if is_placeholder_address(subject_addr) or is_placeholder_address(cand_addr):
        reasons.append("❌ Street number: no address to compare")
        return 0

    subject_num = extract_street_number(subject_addr)
    cand_num = extract_street_number(cand_addr)
    if not subject_num or not cand_num:
        reasons.append(
            f"⚠️ Street number missing ('{subject_num or '-'}' vs '{cand_num or '-'}')"
        )
        return 10
    if subject_num == cand_num:
        reasons.append(f"✅ Street number match: {subject_num}")
        return STREET_NUMBER_POINTS
    if subject_num.startswith(cand_num) or cand_num.startswith(subject_num):
        reasons.append(f"⚠️ Partial street number match: {subject_num} vs {cand_num}")
        return 15
    reasons.append(f"❌ Street number mismatch: {subject_num} vs {cand_num}")
    return 0


def _score_street_name(subject_addr: str, cand_addr: str, reasons: List[str]) -> int:
    if is_placeholder_address(subject_addr) or is_placeholder_address(cand_addr):
        reasons.append("❌ Street name: no address to compare")
        return 0

    subject_street = extract_street_name(subject_addr)
    cand_street = extract_street_name(cand_addr)
    similarity = calculate_string_similarity(subject_street, cand_street)
    if similarity >= 80:
        reasons.append(
            f"✅ Street name match ({similarity}%): '{subject_street}' vs '{cand_street}'"
        )
        return round(similarity / 100 * STREET_NAME_POINTS)
    if similarity >= 60:
        reasons.append(
            f"⚠️ Partial street name match ({similarity}%): '{subject_street}' vs '{cand_street}'"
        )
        return round(similarity / 100 * 20)
    reasons.append(
        f"❌ Street name mismatch ({similarity}%): '{subject_street}' vs '{cand_street}'"
    )
    return 0


def _containment_score(a: str, b: str) -> float:
    """Share of the shorter name's significant words found in the other name."""
    words_a = [w for w in a.split() if len(w) > 2]
    words_b = [w for w in b.split() if len(w) > 2]
    if not words_a or not words_b:
        return 0.0
    common = len(set(words_a) & set(words_b))
    return common / min(len(words_a), len(words_b)) * 100


def _score_property_name(subject_name: str, cand_name: str, reasons: List[str]) -> int:
    norm_subject = normalize_property_name(subject_name)
    norm_cand = normalize_property_name(cand_name)
    if not norm_subject or not norm_cand:
        reasons.append("❌ Property name: nothing to compare")
        return 0

    similarity = calculate_string_similarity(norm_subject, norm_cand)
    containment = _containment_score(norm_subject, norm_cand)
    label = f"'{norm_subject}' vs '{norm_cand}'"

    if similarity >= 70:
        reasons.append(f"✅ Property name match ({similarity}%): {label}")
        return PROPERTY_NAME_POINTS
    if containment >= 50 or norm_subject in norm_cand or norm_cand in norm_subject:
        reasons.append(
            f"✅ Property name contained ({round(containment)}% words shared): {label}"
        )
        return 15
    if similarity >= 50:
        reasons.append(f"⚠️ Partial property name match ({similarity}%): {label}")
        return round(similarity / 100 * PROPERTY_NAME_POINTS)

    core_subject = _LEADING_ARTICLE.sub("", norm_subject)
    core_cand = _LEADING_ARTICLE.sub("", norm_cand)
    if core_subject and core_subject == core_cand:
        reasons.append(f"⚠️ Core property name match: '{core_subject}'")
        return 12
    reasons.append(f"❌ Property name mismatch ({similarity}%): {label}")
    return 0


def _score_full_address(subject_addr: str, cand_addr: str, reasons: List[str]) -> int:
    if is_placeholder_address(subject_addr) or is_placeholder_address(cand_addr):
        reasons.append("❌ Full address: no address to compare")
        return 0

    norm_subject = normalize_address(subject_addr)
    norm_cand = normalize_address(cand_addr)
    similarity = calculate_string_similarity(norm_subject, norm_cand)
    if similarity >= 70:
        reasons.append(f"✅ Full address similarity {similarity}%")
        return round(similarity / 100 * FULL_ADDRESS_POINTS)
    reasons.append(
        f"❌ Full address similarity {similarity}%: '{norm_subject}' vs '{norm_cand}'"
    )
    return 0


def _score_city_state(
    subject: SubjectPropertyRecord, cand_addr: str, reasons: List[str]
) -> Tuple[int, int]:
    """Return (awarded, applicable max) for the city/state component."""
    city = normalize_address(subject.city)
    state = normalize_address(subject.state)
    if not city and not state:
        reasons.append("➖ City/state not applicable: subject has no city or state")
        return 0, 0

    norm_cand = "" if is_placeholder_address(cand_addr) else normalize_address(cand_addr)
    points = 0
    found = []
    for value in (city, state):
        if value and re.search(rf"\b{re.escape(value)}\b", norm_cand):
            points += 5
            found.append(value)
    if points == CITY_STATE_POINTS:
        reasons.append(f"✅ City/state match: {', '.join(found)}")
    elif points:
        reasons.append(f"⚠️ Partial city/state match: {', '.join(found)}")
    else:
        reasons.append(
            f"❌ City/state not found in address: {', '.join(v for v in (city, state) if v)}"
        )
    return points, CITY_STATE_POINTS


def score_match(
    subject: SubjectPropertyRecord,
    candidate: CandidateListing,
    threshold: int = MATCH_THRESHOLD,
) -> MatchResult:
    """
    Score how likely a scraped listing is the user's own property.

    Five weighted components are combined: street number (30), street name (25),
    property name (20), full address (15) and city/state (10, only when the
    subject has a city or state). The score is the awarded share of the
    applicable maximum.

    Args:
        subject (SubjectPropertyRecord): The property under analysis.
        candidate (CandidateListing): Scraped listing to compare against.
        threshold (int): Minimum score for `is_match` (default=MATCH_THRESHOLD).

    Returns:
        MatchResult: Score 0-100, match flag, per-component points and reasons.
    """
    reasons: List[str] = []
    components = ComponentScores(
        street_number=_score_street_number(subject.address, candidate.address, reasons),
        street_name=_score_street_name(subject.address, candidate.address, reasons),
        property_name=_score_property_name(subject.name, candidate.name, reasons),
        full_address=_score_full_address(subject.address, candidate.address, reasons),
    )
    max_points = (
        STREET_NUMBER_POINTS + STREET_NAME_POINTS + PROPERTY_NAME_POINTS + FULL_ADDRESS_POINTS
    )

    components.city_state, city_state_max = _score_city_state(subject, candidate.address, reasons)
    max_points += city_state_max

    score = round(components.total() / max_points * 100)
    score = max(0, min(score, 100))
    return MatchResult(
        candidate_id=candidate.id,
        score=score,
        is_match=score >= threshold,
        reasons=reasons,
        component_scores=components,
    )
