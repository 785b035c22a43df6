from propmatch.models import CandidateListing, SubjectPropertyRecord
from propmatch.matchers.classical_matcher import score_match


def _subject(name, address, city=None, state=None):
    return SubjectPropertyRecord(id="subject", name=name, address=address, city=city, state=state)


def _candidate(name, address, candidate_id="cand"):
    return CandidateListing(
        id=candidate_id,
        batch_id="batch",
        name=name,
        address=address,
        url="https://www.apartments.com/listing/",
    )


def test_duo_matches_duo_apartments():
    subject = _subject("The Duo", "222 S 15th St, Omaha, NE 68102", city="Omaha", state="NE")
    candidate = _candidate("The Duo Apartments", "222 S 15th Street, Omaha, NE 68102")

    result = score_match(subject, candidate)

    assert result.score >= 85
    assert result.is_match is True
    assert result.candidate_id == "cand"
    assert result.component_scores.street_number == 30
    assert result.component_scores.street_name == 25
    assert result.component_scores.property_name >= 15
    assert 12 <= result.component_scores.full_address <= 15
    assert result.component_scores.city_state == 10
    assert len(result.reasons) == 5
    assert "222" in result.reasons[0]


def test_unrelated_placeholder_listing_scores_low():
    subject = _subject("The Atlas", "1000 Main Street, Omaha, NE 68102", city="Omaha", state="NE")
    candidate = _candidate("HELLO", "Address to be determined")

    result = score_match(subject, candidate)

    assert result.score <= 10
    assert result.is_match is False
    assert any("no address to compare" in r for r in result.reasons)


def test_empty_inputs_score_zero():
    result = score_match(_subject("", ""), _candidate("", ""))

    assert result.score == 0
    assert result.is_match is False


def test_partial_street_number_gets_half_credit():
    subject = _subject("The Duo", "222 S 15th St, Omaha, NE 68102")
    candidate = _candidate("The Duo", "2221 S 15th Street, Omaha, NE 68102")

    result = score_match(subject, candidate)

    assert result.component_scores.street_number == 15
    assert any("Partial street number" in r for r in result.reasons)


def test_missing_street_number_gets_neutral_credit():
    subject = _subject("The Duo", "S 15th St, Omaha, NE 68102")
    candidate = _candidate("The Duo", "222 S 15th Street, Omaha, NE 68102")

    result = score_match(subject, candidate)

    assert result.component_scores.street_number == 10
    assert any("Street number missing" in r for r in result.reasons)


def test_name_containment_override():
    subject = _subject("Duo Lofts", "222 S 15th St, Omaha, NE 68102")
    candidate = _candidate("The Duo", "900 Farnam St, Omaha, NE 68102")

    result = score_match(subject, candidate)

    assert result.component_scores.property_name == 15
    assert any("contained" in r for r in result.reasons)


def test_moderately_similar_names_get_proportional_points():
    subject = _subject("Parkview", "1 A St")
    candidate = _candidate("Parkside", "99 Z Ave")

    result = score_match(subject, candidate)

    assert 10 <= result.component_scores.property_name <= 13


def test_city_state_component_only_counts_when_subject_has_it():
    candidate = _candidate("Elsewhere Flats", "500 Oak Ave, Lincoln, NE 68508")
    with_location = score_match(_subject("The Duo", "222 S 15th St", "Omaha", "NE"), candidate)
    without_location = score_match(_subject("The Duo", "222 S 15th St"), candidate)

    # State matches on a whole word, city does not
    assert with_location.component_scores.city_state == 5
    assert without_location.component_scores.city_state == 0
    assert len(without_location.reasons) == 5
    assert "not applicable" in without_location.reasons[-1]


def test_state_does_not_match_inside_other_words():
    subject = _subject("The Atlas", "1000 Main Street", city=None, state="NE")
    candidate = _candidate("Other", "45 Pinecone Determined Rd")

    result = score_match(subject, candidate)

    assert result.component_scores.city_state == 0


def test_scoring_is_deterministic():
    subject = _subject("The Duo", "222 S 15th St, Omaha, NE 68102", city="Omaha", state="NE")
    candidate = _candidate("Duo", "2221 S 15th Street, Omaha, NE")

    assert score_match(subject, candidate) == score_match(subject, candidate)


def test_scores_stay_within_bounds():
    subject = _subject("The Duo", "222 S 15th St, Omaha, NE 68102", city="Omaha", state="NE")
    candidates = [
        _candidate("The Duo", "222 S 15th St, Omaha, NE 68102"),
        _candidate("X", "1"),
        _candidate("", "Address to be determined"),
        _candidate("Duo Duo Duo Apartments", "222222 North 15th Street"),
    ]
    for candidate in candidates:
        assert 0 <= score_match(subject, candidate).score <= 100


def test_threshold_is_configurable():
    subject = _subject("The Duo", "222 S 15th St, Omaha, NE 68102", city="Omaha", state="NE")
    candidate = _candidate("The Duo", "222 S 15th St, Omaha, NE 68102")

    assert score_match(subject, candidate, threshold=101).is_match is False
