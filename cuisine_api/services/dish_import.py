"""
Bulk import of the dish dataset from CSV.

Rows are streamed from disk and inserted in fixed-size batches, each batch
committed on its own, so memory use is bounded by the batch size rather
than by the file size. A failure part-way through leaves earlier batches in
place.
"""
import csv
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from cuisine_api.config import get_settings
from cuisine_api.models.dish import Dish
from cuisine_api.services.query_builder import split_tokens
from cuisine_api.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

UNKNOWN = "Unknown"
DEFAULTED_FIELDS = ("region", "course", "diet", "flavor_profile", "state")


def _parse_minutes(raw: Optional[str]) -> Optional[int]:
    # The dataset uses -1 for "not recorded"
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value >= 0 else None


def row_to_dish(row: dict) -> Optional[dict]:
    """Map one CSV row to Dish column values, or None if the row has no name."""
    name = (row.get("name") or "").strip()
    if not name:
        return None

    record = {
        "name": name,
        "ingredients": split_tokens(row.get("ingredients")),
        "prep_time": _parse_minutes(row.get("prep_time")),
        "cook_time": _parse_minutes(row.get("cook_time")),
    }
    for field_name in DEFAULTED_FIELDS:
        value = (row.get(field_name) or "").strip()
        record[field_name] = value if value and value != "-1" else UNKNOWN
    return record


def iter_dish_records(csv_path: Path) -> Iterator[dict]:
    with csv_path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            # Normalise header keys to lowercase, strip whitespace
            row = {k.strip().lower(): v for k, v in row.items() if k}
            record = row_to_dish(row)
            if record is None:
                logger.debug(f"Skipping CSV line {reader.line_num}: no dish name")
                continue
            yield record


def batched(records: Iterable[dict], size: int) -> Iterator[list[dict]]:
    iterator = iter(records)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


async def import_dishes(
    session: AsyncSession,
    csv_path: Optional[str | Path] = None,
    batch_size: Optional[int] = None,
) -> int:
    """Insert every dish in the CSV file and return how many were inserted."""
    path = Path(csv_path or settings.DISHES_CSV_PATH)
    size = batch_size or settings.IMPORT_BATCH_SIZE
    if size < 1:
        raise ValueError("batch_size must be positive")
    if not path.exists():
        raise FileNotFoundError(f"Dish dataset not found: {path}")

    logger.info(f"Importing dishes from {path} (batch size {size})")
    inserted = 0
    for batch in batched(iter_dish_records(path), size):
        session.add_all([Dish(**record) for record in batch])
        await session.commit()
        inserted += len(batch)
        logger.debug(f"Committed batch of {len(batch)} dishes ({inserted} so far)")

    logger.info(f"CSV data imported successfully: {inserted} dishes")
    return inserted
