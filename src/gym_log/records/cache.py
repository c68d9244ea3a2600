# src/gym_log/records/cache.py

from __future__ import annotations

import copy
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, TypeVar

from ..core.ports import RecordRepo
from .models import Collection, DateKey, Exercise, StoredRecord, Task
from .store import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class RecordCache:
    """
    In-memory projection of the record store.

    Only the coordinator writes here. Read helpers hand out copies so the
    presentation layer can't bypass the coordinator.
    """

    workouts: dict[DateKey, list[Exercise]] = field(default_factory=dict)
    tasks: dict[DateKey, list[Task]] = field(default_factory=dict)

    def get_workouts(self, key: DateKey) -> list[Exercise]:
        return copy.deepcopy(self.workouts.get(key, []))

    def get_tasks(self, key: DateKey) -> list[Task]:
        return copy.deepcopy(self.tasks.get(key, []))

    def has_workout(self, key: DateKey) -> bool:
        return len(self.workouts.get(key, [])) > 0

    def has_tasks(self, key: DateKey) -> bool:
        return len(self.tasks.get(key, [])) > 0

    def marked_days(self, prefix: str = "") -> dict[DateKey, tuple[bool, bool]]:
        """Map each key starting with `prefix` to (has_workout, has_tasks)."""
        keys = {k for k in self.workouts if k.startswith(prefix)}
        keys |= {k for k in self.tasks if k.startswith(prefix)}
        return {k: (self.has_workout(k), self.has_tasks(k)) for k in sorted(keys)}


class LoadStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"


@dataclass(slots=True)
class LoadResult:
    cache: RecordCache
    status: LoadStatus
    error: Exception | None = None
    skipped: int = 0


def _rehydrate(
        collection: Collection,
        rows: list[StoredRecord],
        parse: Callable[[dict[str, Any]], T],
) -> tuple[dict[DateKey, list[T]], int]:
    out: dict[DateKey, list[T]] = {}
    skipped = 0
    for row in rows:
        try:
            entries = [parse(item) for item in row.value]
        except (TypeError, ValueError, AttributeError):
            logger.warning("Skipping unreadable %s record %s", collection.value, row.key, exc_info=True)
            skipped += 1
            continue
        if not entries:
            # Empty records are never written; a stray one is treated as absent.
            logger.warning("Skipping empty %s record %s", collection.value, row.key)
            skipped += 1
            continue
        out[row.key] = entries
    return out, skipped


async def load_cache(store: RecordRepo) -> LoadResult:
    """
    Scan both collections once and build the cache.

    On a storage failure the cache comes back empty and the status says so;
    the session keeps running without persisted history.
    """
    try:
        workout_rows = await store.scan_all(Collection.WORKOUTS)
        task_rows = await store.scan_all(Collection.TASKS)
    except StoreError as e:
        logger.exception("Initial load failed; continuing with an empty cache.")
        return LoadResult(cache=RecordCache(), status=LoadStatus.FAILED, error=e)

    workouts, skipped_w = _rehydrate(Collection.WORKOUTS, workout_rows, Exercise.from_dict)
    tasks, skipped_t = _rehydrate(Collection.TASKS, task_rows, Task.from_dict)

    skipped = skipped_w + skipped_t
    logger.info("Loaded cache: workouts=%d tasks=%d skipped=%d", len(workouts), len(tasks), skipped)
    return LoadResult(
        cache=RecordCache(workouts=workouts, tasks=tasks),
        status=LoadStatus.OK,
        skipped=skipped,
    )
