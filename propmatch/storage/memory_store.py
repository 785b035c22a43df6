from dataclasses import replace
from typing import Any, Dict, List, Optional
from uuid import uuid4

from loguru import logger

from propmatch.models import (
    CandidateListing,
    DiscoveryBatch,
    ScrapedUnit,
    SubjectPropertyRecord,
)
from propmatch.storage.base import ListingStore


class MemoryListingStore(ListingStore):
    """Dict-backed store; dicts keep insertion order, so discovery order is preserved."""

    def __init__(self):
        self.subjects: Dict[str, SubjectPropertyRecord] = {}
        self.batches: Dict[str, DiscoveryBatch] = {}
        self.candidates: Dict[str, CandidateListing] = {}
        self.units: Dict[str, ScrapedUnit] = {}

    def create_subject(self, name, address, city=None, state=None):
        subject = SubjectPropertyRecord(
            id=str(uuid4()), name=name, address=address, city=city, state=state
        )
        self.subjects[subject.id] = subject
        return subject

    def get_subject(self, subject_id):
        return self.subjects.get(subject_id)

    def create_batch(self, subject_id, source_url):
        batch = DiscoveryBatch(id=str(uuid4()), subject_id=subject_id, source_url=source_url)
        self.batches[batch.id] = batch
        return batch

    def get_batch(self, batch_id):
        return self.batches.get(batch_id)

    def list_batches_for_subject(self, subject_id):
        return [b for b in self.batches.values() if b.subject_id == subject_id]

    def update_batch(self, batch_id, **patch: Any) -> Optional[DiscoveryBatch]:
        batch = self.batches.get(batch_id)
        if batch is None:
            return None
        updated = replace(batch, **patch)
        self.batches[batch_id] = updated
        return updated

    def create_candidate(self, batch_id, name, address, url):
        candidate = CandidateListing(
            id=str(uuid4()), batch_id=batch_id, name=name, address=address, url=url
        )
        self.candidates[candidate.id] = candidate
        return candidate

    def get_candidate(self, candidate_id):
        return self.candidates.get(candidate_id)

    def list_candidates_for_batch(self, batch_id) -> List[CandidateListing]:
        return [c for c in self.candidates.values() if c.batch_id == batch_id]

    def update_candidate(self, candidate_id, **patch: Any) -> Optional[CandidateListing]:
        candidate = self.candidates.get(candidate_id)
        if candidate is None:
            logger.debug(f"⚠️ update_candidate: no candidate {candidate_id}")
            return None
        updated = replace(candidate, **patch)
        self.candidates[candidate_id] = updated
        return updated

    def create_unit(self, candidate_id, **fields: Any) -> ScrapedUnit:
        unit = ScrapedUnit(id=str(uuid4()), candidate_id=candidate_id, **fields)
        self.units[unit.id] = unit
        return unit

    def list_units_for_candidate(self, candidate_id):
        return [u for u in self.units.values() if u.candidate_id == candidate_id]

    def clear_units_for_candidate(self, candidate_id):
        stale = [uid for uid, u in self.units.items() if u.candidate_id == candidate_id]
        for uid in stale:
            del self.units[uid]
        logger.debug(f"🧹 Cleared {len(stale)} units for candidate {candidate_id}")
