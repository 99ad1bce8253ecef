"""
CSV import and lazy seeding tests.
"""
import asyncio

import pytest

from cuisine_api.config import get_settings
from cuisine_api.services import seed_gate as seed_module
from cuisine_api.services.dish_import import (
    UNKNOWN,
    batched,
    import_dishes,
    row_to_dish,
)
from cuisine_api.services.seed_gate import SeedGate, SeedState, count_dishes, seed_gate, seed_if_empty


# ===================== ROW MAPPING =====================


class TestRowToDish:

    def test_missing_text_fields_default_to_unknown(self):
        record = row_to_dish({"name": "Kaju katli", "ingredients": "Cashews, sugar"})
        for field in ("region", "course", "diet", "flavor_profile", "state"):
            assert record[field] == UNKNOWN

    def test_minus_one_means_unknown(self):
        record = row_to_dish({
            "name": "Khichdi", "ingredients": "rice", "state": "-1", "region": "-1",
            "prep_time": "-1", "cook_time": "20",
        })
        assert record["state"] == UNKNOWN
        assert record["region"] == UNKNOWN
        assert record["prep_time"] is None
        assert record["cook_time"] == 20

    def test_ingredients_split_and_trimmed(self):
        record = row_to_dish({"name": "Boondi", "ingredients": "Gram flour,  ghee , sugar,"})
        assert record["ingredients"] == ["Gram flour", "ghee", "sugar"]

    def test_present_fields_kept(self):
        record = row_to_dish({
            "name": "Dhokla", "ingredients": "besan", "diet": "vegetarian",
            "flavor_profile": "savory", "course": "snack", "state": "Gujarat", "region": "West",
        })
        assert record["diet"] == "vegetarian"
        assert record["state"] == "Gujarat"
        assert record["region"] == "West"

    def test_non_numeric_times_become_null(self):
        record = row_to_dish({"name": "X", "prep_time": "ten", "cook_time": ""})
        assert record["prep_time"] is None
        assert record["cook_time"] is None

    def test_row_without_name_is_skipped(self):
        assert row_to_dish({"name": "  ", "ingredients": "rice"}) is None


def test_batched_bounds_batch_size():
    batches = list(batched(({"n": i} for i in range(7)), 3))
    assert [len(b) for b in batches] == [3, 3, 1]


# ===================== IMPORT =====================


async def test_import_dishes(db_session, dataset_csv):
    inserted = await import_dishes(db_session, dataset_csv, batch_size=2)
    assert inserted == 3
    assert await count_dishes(db_session) == 3


async def test_import_missing_file(db_session, tmp_path):
    with pytest.raises(FileNotFoundError):
        await import_dishes(db_session, tmp_path / "missing.csv")


async def test_imported_dishes_are_queryable(empty_client, db_session, dataset_csv):
    await import_dishes(db_session, dataset_csv)

    r = await empty_client.get("/dishes/by-ingredients", params={"ingredients": "sugar"})
    assert r.status_code == 200
    assert {d["name"] for d in r.json()["items"]} == {"Balu shahi", "Kaju katli"}

    r = await empty_client.get("/dishes/search", params={"flavor_profile": "unknown"})
    assert r.status_code == 200
    idli = r.json()[0]
    assert idli["name"] == "Idli"
    assert idli["region"] == UNKNOWN
    assert idli["cook_time"] is None


# ===================== SEED GATE =====================


async def test_gate_runs_action_once_under_concurrency():
    gate = SeedGate()
    calls = 0

    async def action():
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)

    results = await asyncio.gather(*(gate.run_once(action) for _ in range(5)))
    assert calls == 1
    assert results.count(True) == 1
    assert gate.state == SeedState.DONE


async def test_gate_done_even_when_action_fails():
    gate = SeedGate()

    async def action():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await gate.run_once(action)
    assert gate.done
    assert await gate.run_once(action) is False


async def test_concurrent_first_seeding_imports_at_most_once(db_session, monkeypatch):
    calls = 0

    async def fake_import(session, csv_path=None):
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.01)
        return 0

    monkeypatch.setattr(seed_module, "import_dishes", fake_import)
    gate = SeedGate()

    async def seed():
        await seed_if_empty(db_session)

    await asyncio.gather(gate.run_once(seed), gate.run_once(seed))
    assert calls == 1


async def test_seed_skips_non_empty_store(db_session, add_dish, monkeypatch):
    await add_dish("Existing", ["rice"])

    async def fail_import(session, csv_path=None):
        raise AssertionError("import must not run")

    monkeypatch.setattr(seed_module, "import_dishes", fail_import)
    assert await seed_if_empty(db_session) == 0


async def test_seed_logs_and_swallows_import_errors(db_session, tmp_path):
    assert await seed_if_empty(db_session, str(tmp_path / "missing.csv")) == 0
    assert await count_dishes(db_session) == 0


async def test_first_listing_seeds_empty_store(empty_client, dataset_csv, monkeypatch):
    monkeypatch.setattr(get_settings(), "DISHES_CSV_PATH", str(dataset_csv))
    seed_gate.reset()

    r = await empty_client.get("/dishes")
    assert r.status_code == 200
    assert {d["name"] for d in r.json()} == {"Balu shahi", "Kaju katli", "Idli"}
    assert seed_gate.done

    # Store emptied again: the gate is closed, so no second import
    for dish in r.json():
        await empty_client.delete(f"/dishes/deletedish/{dish['id']}")
    r = await empty_client.get("/dishes")
    assert r.json() == []


async def test_failed_seed_still_serves_listing(empty_client, tmp_path, monkeypatch):
    monkeypatch.setattr(get_settings(), "DISHES_CSV_PATH", str(tmp_path / "missing.csv"))
    seed_gate.reset()

    r = await empty_client.get("/dishes")
    assert r.status_code == 200
    assert r.json() == []
    assert seed_gate.done


async def test_other_endpoints_do_not_seed(empty_client, dataset_csv, monkeypatch):
    monkeypatch.setattr(get_settings(), "DISHES_CSV_PATH", str(dataset_csv))
    seed_gate.reset()

    r = await empty_client.get("/dishes/search", params={"flavor_profile": "sweet"})
    assert r.status_code == 404
    assert seed_gate.state == SeedState.NOT_STARTED
