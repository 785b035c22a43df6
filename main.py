import os
import asyncio
import csv
import sys
from typing import List
import pandas as pd
from loguru import logger

from propmatch.cache import TTLCache
from propmatch.clients import ZyteClient
from propmatch.config import INPUT_CSV, OUTPUT_CSV, BATCH_SIZE, LOG_LEVEL, DB_PATH
from propmatch.models import SubjectPropertyRecord
from propmatch.pipeline import process_subject
from propmatch.storage import ListingStore, MemoryListingStore, SQLiteListingStore

OUTPUT_COLUMNS = [
    "Name",
    "tier",
    "subjectListing",
    "subjectUrl",
    "matchScore",
    "unitsCount",
    "fallbackUsed",
    "suggestions",
]


def load_subjects_from_csv(file_path: str, store: ListingStore, nrows: int = None) -> List[SubjectPropertyRecord]:
    """Load subject properties from CSV and store them as SubjectPropertyRecord objects."""
    df = pd.read_csv(file_path, nrows=nrows)
    subjects = []
    for _, row in df.iterrows():
        # Helper to safely extract values from pandas Series, converting NaN to None
        def safe_get(col):
            if col not in row.index:
                return None
            val = row[col]
            if pd.isna(val):
                return None
            return str(val).strip() or None

        name = safe_get("Name")
        address = safe_get("Address")
        if not name or not address:
            logger.warning(f"Skipping row without name/address: {row.to_dict()}")
            continue

        subjects.append(
            store.create_subject(
                name=name,
                address=address,
                city=safe_get("City"),
                state=safe_get("State"),
            )
        )
    return subjects


def batch_iter(records: List[SubjectPropertyRecord], batch_size: int):
    """
    Yield index and SubjectPropertyRecord slices of size `batch_size` for batched processing.
    """
    n = len(records)
    for i in range(0, n, batch_size):
        yield i, records[i:i+batch_size]


async def main():
    """
    Orchestrate the full batch processing pipeline.

    - Loads subject properties from the input CSV.
    - Discovers listings and resolves each subject listing, a batch at a time.
    - Writes results incrementally to an output CSV.
    """
    # Initialize logs
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=LOG_LEVEL, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>")

    store = SQLiteListingStore(DB_PATH) if DB_PATH else MemoryListingStore()
    cache = TTLCache()
    all_subjects = load_subjects_from_csv(INPUT_CSV, store)

    # Initialize output file
    output_path = OUTPUT_CSV
    if os.path.exists(output_path):
        os.remove(output_path)
    with open(output_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(OUTPUT_COLUMNS)

    # Process in batches, but use async.gather for parallelism within each batch
    try:
        for start_idx, batch_subjects in batch_iter(all_subjects, BATCH_SIZE):
            logger.info(f"Processing rows {start_idx}..{start_idx + len(batch_subjects) - 1}")

            results = await asyncio.gather(
                *[process_subject(subject, store, cache=cache) for subject in batch_subjects]
            )

            with open(output_path, "a", newline="") as f:
                writer = csv.writer(f)
                for result in results:
                    writer.writerow([
                        result.name,
                        result.tier,
                        result.subject_listing_name or "",
                        result.subject_listing_url or "",
                        "" if result.match_score is None else result.match_score,
                        result.units_count,
                        result.fallback_used,
                        " | ".join(result.suggestions),
                    ])
    finally:
        # Cleanup: close ZyteClient session to prevent unclosed connector warnings
        zyte_client = ZyteClient()
        await zyte_client.close()

if __name__ == "__main__":
    asyncio.run(main())
