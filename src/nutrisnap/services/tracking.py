"""Water and weight tracking service."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol, TypeVar
from zoneinfo import ZoneInfo

from nutrisnap.domain.errors import ValidationError
from nutrisnap.domain.tracking import (
    WaterEntry,
    WaterSummary,
    WeightEntry,
    WeightSummary,
)

_logger = logging.getLogger(__name__)
_E = TypeVar("_E")

WEEK = timedelta(days=7)


class TrackingRepository(Protocol):
    """Persistence interface for water and weight history."""

    def get_document(self, user_id: str) -> dict[str, object] | None:
        """Return the stored user document."""

    def update_fields(self, user_id: str, fields: dict[str, object]) -> None:
        """Overwrite the given top-level fields."""

    def append_to_array_field(self, user_id: str, field: str, value: object) -> None:
        """Append a value to an array field."""


@dataclass
class TrackingService:
    """Records water and weight entries and summarises them."""

    repository: TrackingRepository

    def add_water(self, user_id: str, amount: float, now: datetime) -> WaterEntry:
        """Record a water intake in fluid ounces."""
        entry = WaterEntry(amount=_require_positive("amount", amount), logged_at=now)
        self.repository.append_to_array_field(
            user_id, "waterEntries", entry.to_document()
        )
        return entry

    def set_water_goal(self, user_id: str, goal: float) -> None:
        """Set the daily water goal in fluid ounces."""
        self.repository.update_fields(
            user_id, {"waterGoal": _require_positive("goal", goal)}
        )

    def add_weight(self, user_id: str, weight: float, now: datetime) -> WeightEntry:
        """Record a body weight in pounds."""
        entry = WeightEntry(weight=_require_positive("weight", weight), logged_at=now)
        self.repository.append_to_array_field(
            user_id, "weightEntries", entry.to_document()
        )
        return entry

    def set_weight_goal(self, user_id: str, goal: float) -> None:
        """Set the target weight in pounds."""
        self.repository.update_fields(
            user_id, {"weightGoal": _require_positive("goal", goal)}
        )

    def water_summary(self, user_id: str, now: datetime) -> WaterSummary:
        """Return today's water progress and the trailing weekly average."""
        document = self.repository.get_document(user_id) or {}
        entries = _parse_entries(document.get("waterEntries"), WaterEntry.from_document)
        goal = _optional_float(document.get("waterGoal"))
        total = today_total(entries, now)
        return WaterSummary(
            today_total=total,
            goal=goal,
            progress_percentage=progress_percentage(total, goal),
            remaining=remaining_water(total, goal),
            weekly_average=water_weekly_average(entries, now),
            entries=[e for e in entries if _same_day(e.logged_at, now)],
        )

    def weight_summary(self, user_id: str, now: datetime) -> WeightSummary:
        """Return weight progress over the recorded history."""
        document = self.repository.get_document(user_id) or {}
        entries = _parse_entries(
            document.get("weightEntries"), WeightEntry.from_document
        )
        entries.sort(key=lambda entry: entry.logged_at)
        return WeightSummary(
            latest=entries[-1].weight if entries else None,
            goal=_optional_float(document.get("weightGoal")),
            change=weight_change(entries),
            weekly_average=weight_weekly_average(entries, now),
            entries=entries,
        )


def today_total(entries: list[WaterEntry], now: datetime) -> float:
    """Sum water logged on the same local day as ``now``."""
    return sum(entry.amount for entry in entries if _same_day(entry.logged_at, now))


def progress_percentage(total: float, goal: float | None) -> float:
    """Percentage of the goal reached, capped at 100; 0 without a goal."""
    if not goal:
        return 0.0
    return min(total / goal * 100, 100.0)


def remaining_water(total: float, goal: float | None) -> float:
    """Amount left to reach the goal, never negative."""
    if not goal:
        return 0.0
    return max(0.0, goal - total)


def water_weekly_average(entries: list[WaterEntry], now: datetime) -> float:
    """Average daily intake over the trailing 7 days; 0 without entries."""
    cutoff = now - WEEK
    recent = [entry for entry in entries if entry.logged_at >= cutoff]
    if not recent:
        return 0.0
    return sum(entry.amount for entry in recent) / 7


def weight_weekly_average(entries: list[WeightEntry], now: datetime) -> float | None:
    """Mean weight over the trailing 7 days; None without entries."""
    cutoff = now - WEEK
    recent = [entry for entry in entries if entry.logged_at >= cutoff]
    if not recent:
        return None
    return sum(entry.weight for entry in recent) / len(recent)


def weight_change(entries: list[WeightEntry]) -> float | None:
    """Latest minus first recorded weight; None with fewer than 2 entries."""
    if len(entries) < 2:  # noqa: PLR2004
        return None
    return entries[-1].weight - entries[0].weight


def _parse_entries(
    raw: object, parse: Callable[[dict[str, object]], _E]
) -> list[_E]:
    entries: list[_E] = []
    if not isinstance(raw, list):
        return entries
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            entries.append(parse(item))
        except ValueError:
            _logger.warning("Skipping unreadable tracking entry: %r", item)
    return entries


def _same_day(moment: datetime, now: datetime) -> bool:
    tz = now.tzinfo or ZoneInfo("UTC")
    return moment.astimezone(tz).date() == now.astimezone(tz).date()


def _require_positive(name: str, value: float) -> float:
    if value is None or value != value or value <= 0:
        raise ValidationError({name: f"Please enter a valid {name}"})
    return float(value)


def _optional_float(value: object) -> float | None:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return float(value)
    return None


def local_now(timezone_name: str) -> datetime:
    """Return the current time in a named timezone, UTC when unknown."""
    try:
        return datetime.now(tz=ZoneInfo(timezone_name))
    except (KeyError, ValueError):
        return datetime.now(tz=UTC)
