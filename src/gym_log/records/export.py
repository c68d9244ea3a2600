# src/gym_log/records/export.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import StrEnum
from pathlib import Path
from typing import Any

from ..core.ports import RecordRepo
from .models import Collection, StoredRecord
from .store import StoreError

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "gym-tracker-backup"


def _iso_utc(ts: datetime) -> str:
    # 2024-03-01T10:00:00.000Z
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Everything durably committed in both collections at one point in time."""

    workouts: list[StoredRecord] = field(default_factory=list)
    tasks: list[StoredRecord] = field(default_factory=list)
    exported_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @staticmethod
    def _entries(collection: Collection, rows: list[StoredRecord]) -> list[dict[str, Any]]:
        return [{"id": r.key, "date": r.key, collection.payload_field: r.value} for r in rows]

    def to_dict(self) -> dict[str, Any]:
        return {
            "workouts": self._entries(Collection.WORKOUTS, self.workouts),
            "tasks": self._entries(Collection.TASKS, self.tasks),
            "exportDate": _iso_utc(self.exported_at),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2)


async def export_all(store: RecordRepo, *, now: datetime | None = None) -> Snapshot:
    """
    Build a snapshot straight from the store (not the cache), so it only holds
    what has actually been committed. Raises StoreError if a scan fails.
    """
    workouts = await store.scan_all(Collection.WORKOUTS)
    tasks = await store.scan_all(Collection.TASKS)
    return Snapshot(
        workouts=workouts,
        tasks=tasks,
        exported_at=now or datetime.now(timezone.utc),
    )


def backup_filename(today: date | None = None) -> str:
    today = today or date.today()
    return f"{BACKUP_PREFIX}-{today.isoformat()}.json"


class ExportStatus(StrEnum):
    OK = "ok"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ExportResult:
    status: ExportStatus
    path: Path | None = None
    snapshot: Snapshot | None = None
    error: Exception | None = None


async def write_backup(
        store: RecordRepo,
        out_dir: str | Path,
        *,
        now: datetime | None = None,
) -> ExportResult:
    """
    Export all records to `<out_dir>/gym-tracker-backup-YYYY-MM-DD.json`.

    The file is written to a temp name and moved into place, so a failure
    never leaves a partial backup behind.
    """
    now = now or datetime.now().astimezone()
    try:
        snapshot = await export_all(store, now=now)
    except StoreError as e:
        logger.exception("Export failed: could not scan the store.")
        return ExportResult(status=ExportStatus.FAILED, error=e)

    out_dir = Path(out_dir)
    path = out_dir / backup_filename(now.date())
    tmp = path.with_suffix(".tmp")
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        tmp.write_text(snapshot.to_json(), "utf-8")
        os.replace(tmp, path)
    except OSError as e:
        with contextlib.suppress(OSError):
            tmp.unlink(missing_ok=True)
        logger.exception("Export failed: could not write %s", path)
        return ExportResult(status=ExportStatus.FAILED, error=e)

    logger.info(
        "Exported backup to %s (workouts=%d tasks=%d)",
        path,
        len(snapshot.workouts),
        len(snapshot.tasks),
    )
    return ExportResult(status=ExportStatus.OK, path=path, snapshot=snapshot)
