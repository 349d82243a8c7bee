"""Domain models for water and weight tracking."""

from dataclasses import dataclass
from datetime import UTC, datetime


@dataclass(frozen=True)
class WaterEntry:
    """Water intake in fluid ounces."""

    amount: float
    logged_at: datetime

    def to_document(self) -> dict[str, object]:
        return {"amount": self.amount, "date": self.logged_at.isoformat()}

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "WaterEntry":
        return cls(
            amount=_parse_number(data.get("amount")),
            logged_at=_parse_datetime(data.get("date")),
        )


@dataclass(frozen=True)
class WeightEntry:
    """Body weight in pounds."""

    weight: float
    logged_at: datetime

    def to_document(self) -> dict[str, object]:
        return {"weight": self.weight, "date": self.logged_at.isoformat()}

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "WeightEntry":
        return cls(
            weight=_parse_number(data.get("weight")),
            logged_at=_parse_datetime(data.get("date")),
        )


@dataclass(frozen=True)
class WaterSummary:
    """Water totals for the current day and trailing week."""

    today_total: float
    goal: float | None
    progress_percentage: float
    remaining: float
    weekly_average: float
    entries: list[WaterEntry]


@dataclass(frozen=True)
class WeightSummary:
    """Weight progress over the recorded history."""

    latest: float | None
    goal: float | None
    change: float | None
    weekly_average: float | None
    entries: list[WeightEntry]


def _parse_number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise ValueError(f"Invalid tracking value: {value!r}")
    return float(value)


def _parse_datetime(value: object) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise ValueError(f"Invalid tracking timestamp: {value!r}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed
