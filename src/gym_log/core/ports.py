# src/gym_log/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The cache loader, coordinator and exporter depend on this Protocol rather than
on the SQLite store, so tests can inject fakes that fail on demand.
"""

from typing import Any, Protocol

from ..records.models import Collection, DateKey, StoredRecord


class RecordRepo(Protocol):
    async def put(
            self,
            collection: Collection,
            key: DateKey,
            value: list[dict[str, Any]],
    ) -> None: ...

    async def delete(self, collection: Collection, key: DateKey) -> None: ...

    async def scan_all(self, collection: Collection) -> list[StoredRecord]: ...
