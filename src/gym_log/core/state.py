# src/gym_log/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..records.cache import LoadStatus
from ..records.coordinator import RecordCoordinator
from ..records.store import RecordStore


@dataclass
class AppState:
    """
    Session state shared by the console connector and command handlers.

    Built once by cli.bootstrap; the store lives exactly as long as the session.
    """

    settings: Any
    store: RecordStore
    records: RecordCoordinator
    load_status: LoadStatus

    # Day the user is looking at (the calendar selection).
    selected_day: date = field(default_factory=date.today)
    # Last status line shown to the user ("Saved", "Save failed", ...).
    last_status: str = ""
