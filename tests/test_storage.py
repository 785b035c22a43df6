from datetime import datetime

import pytest

from propmatch.storage import MemoryListingStore, SQLiteListingStore


@pytest.fixture(params=["memory", "sqlite", "sqlite-file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        yield MemoryListingStore()
        return
    path = ":memory:" if request.param == "sqlite" else str(tmp_path / "data" / "propmatch.db")
    store = SQLiteListingStore(path)
    yield store
    store.close()


@pytest.fixture
def seeded(any_store):
    subject = any_store.create_subject("The Duo", "222 S 15th St, Omaha, NE 68102", "Omaha", "NE")
    batch = any_store.create_batch(subject.id, "https://www.apartments.com/omaha-ne/")
    candidates = [
        any_store.create_candidate(batch.id, name, "Address to be determined", f"https://www.apartments.com/{name}/")
        for name in ["zulu", "alpha", "mike"]
    ]
    return any_store, subject, batch, candidates


def test_subject_round_trip(seeded):
    store, subject, _, _ = seeded

    loaded = store.get_subject(subject.id)

    assert loaded.name == "The Duo"
    assert loaded.city == "Omaha"
    assert store.get_subject("missing") is None


def test_candidates_keep_discovery_order(seeded):
    store, _, batch, candidates = seeded

    listed = store.list_candidates_for_batch(batch.id)

    assert [c.name for c in listed] == ["zulu", "alpha", "mike"]
    assert all(c.is_subject_property is False for c in listed)
    assert all(c.match_score is None for c in listed)


def test_update_candidate(seeded):
    store, _, batch, candidates = seeded

    updated = store.update_candidate(candidates[1].id, is_subject_property=True, match_score=64)

    assert updated.is_subject_property is True
    assert updated.match_score == 64
    assert store.get_subject_candidate(batch.id).id == candidates[1].id
    assert store.update_candidate("missing", is_subject_property=True) is None


def test_get_subject_candidate_none(seeded):
    store, _, batch, _ = seeded

    assert store.get_subject_candidate(batch.id) is None


def test_batch_status_updates(seeded):
    store, subject, batch, _ = seeded
    finished = datetime(2025, 1, 2, 3, 4, 5)

    store.update_batch(batch.id, status="completed", completed_at=finished)
    loaded = store.get_batch(batch.id)

    assert loaded.status == "completed"
    assert loaded.completed_at == finished
    assert [b.id for b in store.list_batches_for_subject(subject.id)] == [batch.id]


def test_units_are_scoped_and_clearable(seeded):
    store, _, _, candidates = seeded
    store.create_unit(candidates[0].id, unit_type="1BR/1BA", unit_number="A101", rent=1450.0)
    store.create_unit(candidates[0].id, unit_type="Studio", bedrooms=0)
    store.create_unit(candidates[1].id, unit_type="2BR/2BA")

    units = store.list_units_for_candidate(candidates[0].id)
    assert [u.unit_type for u in units] == ["1BR/1BA", "Studio"]
    assert units[0].rent == 1450.0
    assert units[0].status == "available"

    store.clear_units_for_candidate(candidates[0].id)

    assert store.list_units_for_candidate(candidates[0].id) == []
    assert len(store.list_units_for_candidate(candidates[1].id)) == 1


def test_update_rejects_unknown_fields(seeded):
    store, _, batch, candidates = seeded

    with pytest.raises(TypeError):
        store.update_candidate(candidates[0].id, rating=5)
    with pytest.raises(TypeError):
        store.update_batch(batch.id, owner="someone")
