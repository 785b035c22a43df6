import pytest

from propmatch.models import MatchResult
from propmatch.storage import MemoryListingStore


@pytest.fixture
def store():
    return MemoryListingStore()


@pytest.fixture
def duo_subject(store):
    return store.create_subject(
        name="The Duo",
        address="222 S 15th St, Omaha, NE 68102",
        city="Omaha",
        state="NE",
    )


@pytest.fixture
def make_batch(store, duo_subject):
    """Create a batch of candidates from (name, address) pairs, in order."""
    def _make(listings):
        batch = store.create_batch(duo_subject.id, "https://www.apartments.com/omaha-ne/")
        candidates = [
            store.create_candidate(
                batch.id, name, address, f"https://www.apartments.com/listing-{i}/"
            )
            for i, (name, address) in enumerate(listings)
        ]
        return batch, candidates
    return _make


@pytest.fixture
def fake_scorer():
    """Stand-in for score_match returning fixed scores keyed by candidate name."""
    def _factory(scores_by_name):
        def _score(subject, candidate, threshold=50):
            score = scores_by_name[candidate.name]
            return MatchResult(candidate_id=candidate.id, score=score, is_match=score >= threshold)
        return _score
    return _factory
