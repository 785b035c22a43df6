"""
SQLite storage layer on SQLAlchemy Core.
Handles storage and retrieval of subjects, discovery batches, candidate listings and units.
"""
import os
from typing import Any, Dict, Optional
from uuid import uuid4

from loguru import logger
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.pool import StaticPool

from propmatch.models import (
    CandidateListing,
    DiscoveryBatch,
    ScrapedUnit,
    SubjectPropertyRecord,
)
from propmatch.storage.base import ListingStore

metadata = MetaData()

# `seq` keeps insertion (discovery) order; `id` is the public UUID.
subjects = Table(
    "subjects",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String, unique=True, nullable=False),
    Column("name", Text, nullable=False),
    Column("address", Text, nullable=False),
    Column("city", Text),
    Column("state", Text),
    Column("created_at", DateTime, nullable=False),
)

batches = Table(
    "batches",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String, unique=True, nullable=False),
    Column("subject_id", String, ForeignKey("subjects.id"), nullable=False),
    Column("source_url", Text, nullable=False),
    Column("status", String, nullable=False, default="pending"),
    Column("error_message", Text),
    Column("created_at", DateTime, nullable=False),
    Column("completed_at", DateTime),
)

candidates = Table(
    "candidates",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String, unique=True, nullable=False),
    Column("batch_id", String, ForeignKey("batches.id"), nullable=False, index=True),
    Column("name", Text, nullable=False),
    Column("address", Text, nullable=False),
    Column("url", Text, nullable=False),
    Column("match_score", Float),
    Column("is_subject_property", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
)

units = Table(
    "units",
    metadata,
    Column("seq", Integer, primary_key=True, autoincrement=True),
    Column("id", String, unique=True, nullable=False),
    Column("candidate_id", String, ForeignKey("candidates.id"), nullable=False, index=True),
    Column("unit_type", Text, nullable=False),
    Column("unit_number", Text),
    Column("bedrooms", Integer),
    Column("bathrooms", Float),
    Column("square_footage", Integer),
    Column("rent", Float),
    Column("availability_date", Text),
    Column("status", String, nullable=False, default="available"),
    Column("created_at", DateTime, nullable=False),
)

_IMMUTABLE = {"seq", "id", "created_at"}


def _record(cls, row):
    fields = dict(row._mapping)
    fields.pop("seq")
    return cls(**fields)


class SQLiteListingStore(ListingStore):
    """
    Relational backend on a SQLAlchemy engine.
    Pass ":memory:" for a throwaway database shared by every thread.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        if db_path == ":memory:":
            self.engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
            self.engine = create_engine(
                f"sqlite:///{db_path}", connect_args={"check_same_thread": False}
            )
        self.ensure_schema()

    def ensure_schema(self) -> None:
        metadata.create_all(self.engine)
        logger.debug(f"Database ensured at {self.db_path}")

    def close(self) -> None:
        self.engine.dispose()

    def _insert(self, table: Table, record) -> None:
        with self.engine.begin() as conn:
            conn.execute(insert(table).values(**vars(record)))

    def _get(self, table: Table, cls, row_id: str):
        with self.engine.connect() as conn:
            row = conn.execute(select(table).where(table.c.id == row_id)).first()
        return _record(cls, row) if row else None

    def _list(self, table: Table, cls, column, value):
        with self.engine.connect() as conn:
            rows = conn.execute(
                select(table).where(column == value).order_by(table.c.seq)
            ).all()
        return [_record(cls, r) for r in rows]

    def _update(self, table: Table, row_id: str, patch: Dict[str, Any]) -> None:
        unknown = set(patch) - (set(table.c.keys()) - _IMMUTABLE)
        if unknown:
            raise TypeError(f"Cannot update {table.name} fields: {sorted(unknown)}")
        if not patch:
            return
        with self.engine.begin() as conn:
            conn.execute(update(table).where(table.c.id == row_id).values(**patch))

    # Subject properties
    def create_subject(self, name, address, city=None, state=None):
        subject = SubjectPropertyRecord(
            id=str(uuid4()), name=name, address=address, city=city, state=state
        )
        self._insert(subjects, subject)
        return subject

    def get_subject(self, subject_id):
        return self._get(subjects, SubjectPropertyRecord, subject_id)

    # Discovery batches
    def create_batch(self, subject_id, source_url):
        batch = DiscoveryBatch(id=str(uuid4()), subject_id=subject_id, source_url=source_url)
        self._insert(batches, batch)
        return batch

    def get_batch(self, batch_id):
        return self._get(batches, DiscoveryBatch, batch_id)

    def list_batches_for_subject(self, subject_id):
        return self._list(batches, DiscoveryBatch, batches.c.subject_id, subject_id)

    def update_batch(self, batch_id, **patch):
        self._update(batches, batch_id, patch)
        return self.get_batch(batch_id)

    # Candidate listings
    def create_candidate(self, batch_id, name, address, url):
        candidate = CandidateListing(
            id=str(uuid4()), batch_id=batch_id, name=name, address=address, url=url
        )
        self._insert(candidates, candidate)
        return candidate

    def get_candidate(self, candidate_id):
        return self._get(candidates, CandidateListing, candidate_id)

    def list_candidates_for_batch(self, batch_id):
        return self._list(candidates, CandidateListing, candidates.c.batch_id, batch_id)

    def update_candidate(self, candidate_id, **patch):
        self._update(candidates, candidate_id, patch)
        return self.get_candidate(candidate_id)

    # Units
    def create_unit(self, candidate_id, **fields):
        unit = ScrapedUnit(id=str(uuid4()), candidate_id=candidate_id, **fields)
        self._insert(units, unit)
        return unit

    def list_units_for_candidate(self, candidate_id):
        return self._list(units, ScrapedUnit, units.c.candidate_id, candidate_id)

    def clear_units_for_candidate(self, candidate_id):
        with self.engine.begin() as conn:
            result = conn.execute(delete(units).where(units.c.candidate_id == candidate_id))
        logger.debug(f"🧹 Cleared {result.rowcount} units for candidate {candidate_id}")
