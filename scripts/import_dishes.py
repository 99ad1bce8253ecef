"""
Import the dish dataset from CSV into the configured database.

Usage:
    python scripts/import_dishes.py [path/to/indian_food.csv]

Unlike the lazy import on first listing, this always imports, even if the
database already holds dishes.
"""
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from cuisine_api.config import get_settings  # noqa: E402
from cuisine_api.database import AsyncSessionLocal, create_tables, engine  # noqa: E402
from cuisine_api.services.dish_import import import_dishes  # noqa: E402


async def main(csv_path: str):
    print(f"Creating tables and importing {csv_path}...")
    await create_tables()

    async with AsyncSessionLocal() as session:
        inserted = await import_dishes(session, csv_path)

    await engine.dispose()
    print(f"Imported {inserted} dishes")


if __name__ == "__main__":
    path = sys.argv[1] if len(sys.argv) > 1 else get_settings().DISHES_CSV_PATH
    asyncio.run(main(path))
