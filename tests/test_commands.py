# tests/test_commands.py

from __future__ import annotations

from datetime import date

import pytest

from gym_log.cli.commands import CommandRegistry, parse_exercise, registry
from gym_log.core.state import AppState
from gym_log.records.cache import RecordCache
from gym_log.records.coordinator import RecordCoordinator
from gym_log.records.models import Collection, SetEntry

from .conftest import DAY


@pytest.mark.asyncio
async def test_command_registry_routes_and_aliases(state: AppState) -> None:
    reg = CommandRegistry()
    called: list[list[str]] = []

    async def handler(state, args):
        called.append(args)
        return "ok"

    reg.register("a", handler, "a", aliases=["b"])

    assert await reg.handle(state, "/a x y") == "ok"
    assert await reg.handle(state, "/B") == "ok"
    assert called == [["x", "y"], []]


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


def test_parse_exercise() -> None:
    ex = parse_exercise(["Front", "Squat", "5x100", "3x", "x42,5"])
    assert ex is not None
    assert ex.name == "Front Squat"
    assert ex.sets == [SetEntry("5", "100"), SetEntry("3", ""), SetEntry("", "42.5")]

    assert parse_exercise(["Squat", "5x100", "oops"]) is None
    nameless = parse_exercise(["5x100"])
    assert nameless is not None and not nameless.is_savable()


@pytest.mark.asyncio
async def test_workout_commands(state: AppState) -> None:
    assert await registry.handle(state, "/ex add Squat 5x100 5x100") == "Saved"
    assert state.records.has_workout(DAY)

    shown = await registry.handle(state, "/day")
    assert "1. Squat: 5x100, 5x100" in (shown or "")

    assert await registry.handle(state, "/ex add Squat") == "Nothing saved (invalid input)"
    assert await registry.handle(state, "/ex del 2") == "No such entry"
    assert await registry.handle(state, "/ex del 1") == "Deleted"
    assert not state.records.has_workout(DAY)
    assert state.last_status == "Deleted"


@pytest.mark.asyncio
async def test_task_commands(state: AppState) -> None:
    assert await registry.handle(state, "/task add Buy running shoes") == "Saved"
    assert await registry.handle(state, "/task toggle 1") == "Saved"
    tasks = state.records.get_tasks(DAY)
    assert [(t.text, t.completed) for t in tasks] == [("Buy running shoes", True)]

    assert "[x] Buy running shoes" in (await registry.handle(state, "/day") or "")
    assert "Usage" in (await registry.handle(state, "/task toggle zero") or "")
    assert await registry.handle(state, "/task del 1") == "Deleted"


@pytest.mark.asyncio
async def test_day_navigation(state: AppState) -> None:
    await registry.handle(state, "/day +1")
    assert state.selected_day == date(2024, 3, 2)
    await registry.handle(state, "/day 2024-02-29")
    assert state.selected_day == date(2024, 2, 29)
    assert "Usage" in (await registry.handle(state, "/day someday") or "")
    assert state.selected_day == date(2024, 2, 29)


@pytest.mark.asyncio
async def test_month_markers(state: AppState) -> None:
    await registry.handle(state, "/ex add Squat 5x100")
    await registry.handle(state, "/task add Stretch")
    await registry.handle(state, "/day 2024-03-09")
    await registry.handle(state, "/task add Rest")

    out = await registry.handle(state, "/month 2024-03") or ""
    assert "2024-03-01 WT" in out
    assert "2024-03-09 -T" in out
    assert "nothing logged" in (await registry.handle(state, "/month 2024-04") or "")


@pytest.mark.asyncio
async def test_export_command_writes_backup(state: AppState) -> None:
    await registry.handle(state, "/task add Stretch")
    out = await registry.handle(state, "/export") or ""
    assert out.startswith("Exported to ")
    files = list(state.settings.export_dir.glob("gym-tracker-backup-*.json"))
    assert len(files) == 1


@pytest.mark.asyncio
async def test_session_only_mode_is_reported(state: AppState) -> None:
    state.records = RecordCoordinator(state.store, RecordCache(), persistent=False)

    assert await registry.handle(state, "/task add Stretch") == "Not saved (storage unavailable this session)"
    assert state.records.has_tasks(DAY)
    assert await state.store.scan_all(Collection.TASKS) == []
