# src/gym_log/records/coordinator.py

from __future__ import annotations

"""
Mutation coordinator.

Every mutation runs in two phases under a per-(collection, date) lock:
- apply the change to the in-memory cache,
- persist the full resulting sequence (or delete the record once it is empty).

A failed durable write is reported in the result but the cache is left as is:
the in-memory view stays ahead of the store until the next successful write
for that date, or until the next reload drops the unsaved change.

A coordinator built with persistent=False (the initial load failed) never
touches the store: the cache does not hold the committed history, so a
whole-sequence write would overwrite it.
"""

import asyncio
import contextlib
import copy
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from ..core.ports import RecordRepo
from .cache import RecordCache
from .models import Collection, DateKey, Exercise, Task, to_date_key
from .store import StoreError

logger = logging.getLogger(__name__)

DateLike = date | datetime | str
LockSlot = tuple[Collection, DateKey]


class MutationStatus(StrEnum):
    SAVED = "saved"
    DELETED = "deleted"
    REJECTED = "rejected"  # invalid input, nothing changed
    NOT_FOUND = "not_found"  # index/id did not resolve, nothing changed
    NOT_PERSISTED = "not_persisted"  # session-only mode, cache changed, store untouched
    WRITE_FAILED = "write_failed"
    DELETE_FAILED = "delete_failed"


@dataclass(slots=True, frozen=True)
class MutationResult:
    status: MutationStatus
    collection: Collection
    date_key: DateKey
    entry_id: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.status in (MutationStatus.SAVED, MutationStatus.DELETED)

    @property
    def changed(self) -> bool:
        """True when the cache was modified (even if nothing reached the store)."""
        return self.status not in (MutationStatus.REJECTED, MutationStatus.NOT_FOUND)


class RecordCoordinator:
    """Collaborator-facing API over the cache and the record store."""

    def __init__(self, store: RecordRepo, cache: RecordCache, *, persistent: bool = True) -> None:
        self._store = store
        self._cache = cache
        self._persistent = persistent
        # Only slots with a holder or a waiter are kept.
        self._locks: dict[LockSlot, asyncio.Lock] = {}
        self._lock_users: dict[LockSlot, int] = {}

    @property
    def cache(self) -> RecordCache:
        return self._cache

    @property
    def persistent(self) -> bool:
        return self._persistent

    # ---- reads (always from the cache) ----

    def get_workouts(self, day: DateLike) -> list[Exercise]:
        return self._cache.get_workouts(to_date_key(day))

    def get_tasks(self, day: DateLike) -> list[Task]:
        return self._cache.get_tasks(to_date_key(day))

    def has_workout(self, day: DateLike) -> bool:
        return self._cache.has_workout(to_date_key(day))

    def has_tasks(self, day: DateLike) -> bool:
        return self._cache.has_tasks(to_date_key(day))

    # ---- workouts ----

    async def add_exercise(self, day: DateLike, exercise: Exercise) -> MutationResult:
        key = to_date_key(day)
        if not exercise.is_savable():
            logger.debug("Rejected exercise for %s (name=%r sets=%d)", key, exercise.name, len(exercise.sets))
            return MutationResult(MutationStatus.REJECTED, Collection.WORKOUTS, key)

        entry = copy.deepcopy(exercise)
        async with self._slot_lock(Collection.WORKOUTS, key):
            seq = self._cache.workouts.setdefault(key, [])
            seq.append(entry)
            return await self._persist(Collection.WORKOUTS, key, seq, entry.entry_id)

    async def delete_exercise(self, day: DateLike, index: int) -> MutationResult:
        return await self._remove(Collection.WORKOUTS, day, index=index)

    async def delete_exercise_by_id(self, day: DateLike, entry_id: str) -> MutationResult:
        return await self._remove(Collection.WORKOUTS, day, entry_id=entry_id)

    # ---- tasks ----

    async def add_task(self, day: DateLike, text: str) -> MutationResult:
        key = to_date_key(day)
        if not text or not text.strip():
            logger.debug("Rejected empty task for %s", key)
            return MutationResult(MutationStatus.REJECTED, Collection.TASKS, key)

        entry = Task(text=text, completed=False)
        async with self._slot_lock(Collection.TASKS, key):
            seq = self._cache.tasks.setdefault(key, [])
            seq.append(entry)
            return await self._persist(Collection.TASKS, key, seq, entry.entry_id)

    async def toggle_task(self, day: DateLike, index: int) -> MutationResult:
        return await self._toggle(day, index=index)

    async def toggle_task_by_id(self, day: DateLike, entry_id: str) -> MutationResult:
        return await self._toggle(day, entry_id=entry_id)

    async def delete_task(self, day: DateLike, index: int) -> MutationResult:
        return await self._remove(Collection.TASKS, day, index=index)

    async def delete_task_by_id(self, day: DateLike, entry_id: str) -> MutationResult:
        return await self._remove(Collection.TASKS, day, entry_id=entry_id)

    # ---- internals ----

    @contextlib.asynccontextmanager
    async def _slot_lock(self, collection: Collection, key: DateKey) -> AsyncIterator[None]:
        """
        Serialize mutations on one (collection, date).

        Users are counted before waiting, so a slot is dropped only once nobody
        holds or waits on it; a later caller then starts a fresh lock.
        """
        slot = (collection, key)
        lock = self._locks.get(slot)
        if lock is None:
            lock = self._locks[slot] = asyncio.Lock()
        self._lock_users[slot] = self._lock_users.get(slot, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[slot] -= 1
            if self._lock_users[slot] == 0:
                del self._lock_users[slot]
                del self._locks[slot]

    def _sequences(self, collection: Collection) -> dict[DateKey, list[Any]]:
        if collection is Collection.WORKOUTS:
            return self._cache.workouts
        return self._cache.tasks

    @staticmethod
    def _resolve(seq: list[Any], index: int | None, entry_id: str | None) -> int | None:
        if entry_id is not None:
            for pos, entry in enumerate(seq):
                if entry.entry_id == entry_id:
                    return pos
            return None
        if index is None or not 0 <= index < len(seq):
            return None
        return index

    async def _toggle(
            self,
            day: DateLike,
            *,
            index: int | None = None,
            entry_id: str | None = None,
    ) -> MutationResult:
        key = to_date_key(day)
        async with self._slot_lock(Collection.TASKS, key):
            seq = self._cache.tasks.get(key, [])
            pos = self._resolve(seq, index, entry_id)
            if pos is None:
                logger.debug("toggle_task: nothing at %s index=%s id=%s", key, index, entry_id)
                return MutationResult(MutationStatus.NOT_FOUND, Collection.TASKS, key)

            task = seq[pos]
            task.completed = not task.completed
            return await self._persist(Collection.TASKS, key, seq, task.entry_id)

    async def _remove(
            self,
            collection: Collection,
            day: DateLike,
            *,
            index: int | None = None,
            entry_id: str | None = None,
    ) -> MutationResult:
        key = to_date_key(day)
        mapping = self._sequences(collection)
        async with self._slot_lock(collection, key):
            seq = mapping.get(key, [])
            pos = self._resolve(seq, index, entry_id)
            if pos is None:
                logger.debug("remove %s: nothing at %s index=%s id=%s", collection.value, key, index, entry_id)
                return MutationResult(MutationStatus.NOT_FOUND, collection, key)

            removed = seq.pop(pos)
            if not seq:
                mapping.pop(key, None)
            return await self._persist(collection, key, seq, removed.entry_id)

    async def _persist(
            self,
            collection: Collection,
            key: DateKey,
            seq: list[Any],
            entry_id: str | None,
    ) -> MutationResult:
        if not self._persistent:
            logger.debug("Session-only change for %s/%s (store not loaded)", collection.value, key)
            return MutationResult(MutationStatus.NOT_PERSISTED, collection, key, entry_id)

        if not seq:
            try:
                await self._store.delete(collection, key)
            except StoreError as e:
                logger.exception("Delete failed for %s/%s; cache is ahead of the store.", collection.value, key)
                return MutationResult(MutationStatus.DELETE_FAILED, collection, key, entry_id, e)
            return MutationResult(MutationStatus.DELETED, collection, key, entry_id)

        payload = [entry.to_dict() for entry in seq]
        try:
            await self._store.put(collection, key, payload)
        except StoreError as e:
            logger.exception("Save failed for %s/%s; cache is ahead of the store.", collection.value, key)
            return MutationResult(MutationStatus.WRITE_FAILED, collection, key, entry_id, e)
        return MutationResult(MutationStatus.SAVED, collection, key, entry_id)
