# tests/test_cache_load.py

from __future__ import annotations

import sqlite3

import pytest

from gym_log.cli.bootstrap import create_initial_state
from gym_log.records.cache import LoadStatus, RecordCache, load_cache
from gym_log.records.coordinator import MutationStatus, RecordCoordinator
from gym_log.records.export import export_all
from gym_log.records.models import Collection, Exercise, SetEntry
from gym_log.records.store import RecordStore

from .conftest import DAY, squat
from .fakes import FakeRecordRepo


@pytest.mark.asyncio
async def test_first_run_loads_empty_mappings(store: RecordStore) -> None:
    loaded = await load_cache(store)
    assert loaded.status is LoadStatus.OK
    assert loaded.cache.workouts == {}
    assert loaded.cache.tasks == {}


@pytest.mark.asyncio
async def test_history_survives_restart(records: RecordCoordinator, store: RecordStore) -> None:
    await records.add_exercise(DAY, squat())
    await records.add_task(DAY, "Buy shoes")
    await records.toggle_task(DAY, 0)
    await records.add_task("2024-03-02", "Rest")

    loaded = await load_cache(RecordStore(store.db_path))

    assert loaded.status is LoadStatus.OK
    assert loaded.cache.get_workouts(DAY) == records.get_workouts(DAY)
    assert loaded.cache.get_tasks(DAY) == records.get_tasks(DAY)
    assert loaded.cache.has_tasks("2024-03-02")
    assert not loaded.cache.has_workout("2024-03-02")


@pytest.mark.asyncio
async def test_load_failure_degrades_to_session_only_mode() -> None:
    repo = FakeRecordRepo()
    repo.rows[Collection.TASKS][DAY] = [{"text": "x", "completed": False}]
    repo.fail_scan = True

    loaded = await load_cache(repo)

    assert loaded.status is LoadStatus.FAILED
    assert loaded.error is not None
    assert loaded.cache.tasks == {}

    # Still usable for the session, but nothing reaches the store.
    repo.fail_scan = False
    records = RecordCoordinator(repo, loaded.cache, persistent=False)
    result = await records.add_task(DAY, "session only")
    assert result.status is MutationStatus.NOT_PERSISTED
    assert result.changed and not result.ok
    assert records.has_tasks(DAY)
    assert (await records.delete_task(DAY, 0)).status is MutationStatus.NOT_PERSISTED
    assert not records.has_tasks(DAY)
    assert repo.rows[Collection.TASKS] == {DAY: [{"text": "x", "completed": False}]}
    assert [c[0] for c in repo.calls] == ["scan_all"]


@pytest.mark.asyncio
async def test_failed_startup_load_never_overwrites_stored_history(
        settings, store: RecordStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    history = [
        Exercise(name=name, sets=[SetEntry("5", "100")]).to_dict()
        for name in ("Squat", "Bench", "Row")
    ]
    await store.put(Collection.WORKOUTS, DAY, history)

    def unavailable(self, collection):
        raise sqlite3.OperationalError("database is locked")

    with monkeypatch.context() as m:
        m.setattr(RecordStore, "_scan_all_sync", unavailable)
        state = await create_initial_state(settings=settings)

    assert state.load_status is LoadStatus.FAILED
    assert not state.records.persistent

    result = await state.records.add_exercise(DAY, Exercise(name="Deadlift", sets=[SetEntry("3", "140")]))

    assert result.status is MutationStatus.NOT_PERSISTED
    assert [e.name for e in state.records.get_workouts(DAY)] == ["Deadlift"]
    rows = await store.scan_all(Collection.WORKOUTS)
    assert [(r.key, r.value) for r in rows] == [(DAY, history)]


@pytest.mark.asyncio
async def test_successful_startup_load_persists(settings) -> None:
    state = await create_initial_state(settings=settings)
    assert state.load_status is LoadStatus.OK
    assert state.records.persistent
    assert (await state.records.add_task(DAY, "Stretch")).status is MutationStatus.SAVED


@pytest.mark.asyncio
async def test_unreadable_and_empty_rows_are_skipped(store: RecordStore) -> None:
    await store.put(Collection.WORKOUTS, DAY, [squat().to_dict()])
    await store.put(Collection.WORKOUTS, "2024-03-02", ["not an exercise"])
    _insert_raw(store, "tasks", "2024-03-03", "[]")

    loaded = await load_cache(store)

    assert loaded.status is LoadStatus.OK
    assert loaded.skipped == 1
    assert list(loaded.cache.workouts) == [DAY]
    assert loaded.cache.tasks == {}
    # A stray empty row is absent from exports too.
    assert (await export_all(store)).tasks == []


@pytest.mark.asyncio
async def test_one_corrupt_row_hides_only_its_date(store: RecordStore) -> None:
    await store.put(Collection.TASKS, "2024-03-02", [{"id": "t1", "text": "Rest", "completed": False}])
    _insert_raw(store, "tasks", DAY, "garbage")

    loaded = await load_cache(store)

    assert loaded.status is LoadStatus.OK
    assert list(loaded.cache.tasks) == ["2024-03-02"]


def _insert_raw(store: RecordStore, table: str, key: str, payload: str) -> None:
    conn = sqlite3.connect(str(store.db_path))
    try:
        conn.execute(
            f"INSERT INTO {table}(id, date, payload, updated_at) VALUES (?, ?, ?, ?)",
            (key, key, payload, 0.0),
        )
        conn.commit()
    finally:
        conn.close()


@pytest.mark.asyncio
async def test_reload_after_write_failure_reverts_to_committed_state() -> None:
    repo = FakeRecordRepo()
    records = RecordCoordinator(repo, RecordCache())
    await records.add_task(DAY, "committed")

    repo.fail_put = True
    await records.add_task(DAY, "provisional")
    assert len(records.get_tasks(DAY)) == 2

    reloaded = await load_cache(repo)
    assert [t.text for t in reloaded.cache.get_tasks(DAY)] == ["committed"]


def test_marked_days_filters_by_month() -> None:
    cache = RecordCache(
        workouts={"2024-03-01": [squat()], "2024-04-01": [squat()]},
        tasks={"2024-03-01": [], "2024-03-09": []},
    )
    # Empty task lists never reach the cache in practice; they still read as "no tasks".
    assert cache.marked_days("2024-03-") == {
        "2024-03-01": (True, False),
        "2024-03-09": (False, False),
    }
