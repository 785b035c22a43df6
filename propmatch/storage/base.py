"""
Storage interface shared by the in-memory and SQLite backends.

Every list operation returns records in insertion order, which for
candidates is discovery order. Tie-breaking depends on it.
"""
from abc import ABC, abstractmethod
from typing import Any, List, Optional

from propmatch.models import (
    CandidateListing,
    DiscoveryBatch,
    ScrapedUnit,
    SubjectPropertyRecord,
)


class ListingStore(ABC):

    # Subject properties
    @abstractmethod
    def create_subject(
        self, name: str, address: str, city: Optional[str] = None, state: Optional[str] = None
    ) -> SubjectPropertyRecord: ...

    @abstractmethod
    def get_subject(self, subject_id: str) -> Optional[SubjectPropertyRecord]: ...

    # Discovery batches
    @abstractmethod
    def create_batch(self, subject_id: str, source_url: str) -> DiscoveryBatch: ...

    @abstractmethod
    def get_batch(self, batch_id: str) -> Optional[DiscoveryBatch]: ...

    @abstractmethod
    def list_batches_for_subject(self, subject_id: str) -> List[DiscoveryBatch]: ...

    @abstractmethod
    def update_batch(self, batch_id: str, **patch: Any) -> Optional[DiscoveryBatch]: ...

    # Candidate listings
    @abstractmethod
    def create_candidate(
        self, batch_id: str, name: str, address: str, url: str
    ) -> CandidateListing: ...

    @abstractmethod
    def get_candidate(self, candidate_id: str) -> Optional[CandidateListing]: ...

    @abstractmethod
    def list_candidates_for_batch(self, batch_id: str) -> List[CandidateListing]: ...

    @abstractmethod
    def update_candidate(self, candidate_id: str, **patch: Any) -> Optional[CandidateListing]:
        """Apply `patch` to the candidate; None if it does not exist."""

    def get_subject_candidate(self, batch_id: str) -> Optional[CandidateListing]:
        """First candidate in the batch flagged as the subject, if any."""
        for candidate in self.list_candidates_for_batch(batch_id):
            if candidate.is_subject_property:
                return candidate
        return None

    # Units
    @abstractmethod
    def create_unit(self, candidate_id: str, **fields: Any) -> ScrapedUnit: ...

    @abstractmethod
    def list_units_for_candidate(self, candidate_id: str) -> List[ScrapedUnit]: ...

    @abstractmethod
    def clear_units_for_candidate(self, candidate_id: str) -> None: ...
