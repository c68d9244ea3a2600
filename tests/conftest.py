# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from gym_log.core.state import AppState
from gym_log.records.cache import LoadStatus, RecordCache
from gym_log.records.coordinator import RecordCoordinator
from gym_log.records.models import Exercise, SetEntry
from gym_log.records.store import RecordStore

from .fakes import FakeRecordRepo

DAY = "2024-03-01"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    A SimpleNamespace rather than the real config keeps tests away from the
    environment and any local .env.
    """
    return SimpleNamespace(
        app_name="gym-log-test",
        log_level="DEBUG",
        console_enabled=False,
        data_dir=tmp_path,
        db_path=tmp_path / "gym_log.sqlite3",
        export_dir=tmp_path / "backups",
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> RecordStore:
    return RecordStore(settings.db_path)


@pytest.fixture()
def records(store: RecordStore) -> RecordCoordinator:
    # A fresh store is empty, so an empty cache is an exact projection of it.
    return RecordCoordinator(store, RecordCache())


@pytest.fixture()
def fake_repo() -> FakeRecordRepo:
    return FakeRecordRepo()


@pytest.fixture()
def fake_records(fake_repo: FakeRecordRepo) -> RecordCoordinator:
    return RecordCoordinator(fake_repo, RecordCache())


@pytest.fixture()
def state(settings: SimpleNamespace, store: RecordStore, records: RecordCoordinator) -> AppState:
    return AppState(
        settings=settings,
        store=store,
        records=records,
        load_status=LoadStatus.OK,
        selected_day=date(2024, 3, 1),
    )


def squat() -> Exercise:
    return Exercise(name="Squat", sets=[SetEntry(reps="5", weight="100")])
