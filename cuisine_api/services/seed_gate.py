"""
Seed-once gate for lazily importing the dish dataset.

The first call to the dish listing checks whether the store is empty and, if
so, imports the CSV dataset. The check-and-import runs under an asyncio lock
and the gate is marked done afterwards whatever the outcome, so the import
happens at most once per process even when the first requests arrive
together or the import fails.
"""
import asyncio
import csv
import enum
from typing import Awaitable, Callable, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cuisine_api.models.dish import Dish
from cuisine_api.services.dish_import import import_dishes
from cuisine_api.utils.logger import get_logger

logger = get_logger(__name__)


class SeedState(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class SeedGate:
    def __init__(self):
        self.state = SeedState.NOT_STARTED
        self._lock = asyncio.Lock()

    @property
    def done(self) -> bool:
        return self.state == SeedState.DONE

    def reset(self) -> None:
        self.state = SeedState.NOT_STARTED
        self._lock = asyncio.Lock()

    async def run_once(self, action: Callable[[], Awaitable[None]]) -> bool:
        """Run ``action`` unless it already ran; True if this call ran it."""
        if self.done:
            return False

        async with self._lock:
            if self.state != SeedState.NOT_STARTED:
                return False
            self.state = SeedState.IN_PROGRESS
            try:
                await action()
            finally:
                self.state = SeedState.DONE
        return True


async def count_dishes(session: AsyncSession) -> int:
    result = await session.execute(select(func.count()).select_from(Dish))
    return result.scalar_one()


async def seed_if_empty(session: AsyncSession, csv_path: Optional[str] = None) -> int:
    """Import the dataset when the store holds no dishes.

    Import errors are logged, never raised to the caller.
    """
    try:
        existing = await count_dishes(session)
        if existing:
            logger.debug(f"Store already holds {existing} dishes, skipping import")
            return 0

        logger.info("No dishes in the database. Importing from CSV...")
        return await import_dishes(session, csv_path)
    except (OSError, ValueError, csv.Error, SQLAlchemyError) as e:
        await session.rollback()
        logger.error(f"Error importing dish dataset: {e}")
        return 0


seed_gate = SeedGate()
