# src/gym_log/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- constructs the record store and injects it into the cache loader and coordinator.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..records.cache import LoadStatus, load_cache
from ..records.coordinator import RecordCoordinator
from ..records.store import RecordStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


async def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings and load the cache.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = RecordStore(settings.db_path)
    loaded = await load_cache(store)

    state = AppState(
        settings=settings,
        store=store,
        records=RecordCoordinator(store, loaded.cache, persistent=loaded.status is LoadStatus.OK),
        load_status=loaded.status,
    )
    if loaded.status is LoadStatus.FAILED:
        state.last_status = "Error loading data; changes this session will not be saved"
    else:
        state.last_status = "Connected"
    return state


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)
