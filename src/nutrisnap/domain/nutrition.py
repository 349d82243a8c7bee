"""Nutrition domain models and their stored document shapes."""

import json
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from uuid import NAMESPACE_OID, uuid5

from nutrisnap.domain.profile import DEFAULT_PROFILE, UserProfile

MEAL_CATEGORIES = ("breakfast", "lunch", "dinner", "snacks")
DEFAULT_TARGET = 1898.0


@dataclass(frozen=True)
class DailyNutrition:
    """Running totals for one user and one calendar day."""

    consumed: float = 0.0
    target: float = DEFAULT_TARGET
    remaining: float = DEFAULT_TARGET
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    fiber_g: float = 0.0
    sugar_g: float = 0.0
    sodium_mg: float = 0.0

    def to_document(self) -> dict[str, object]:
        """Return the stored document representation."""
        return {
            "consumed": self.consumed,
            "target": self.target,
            "remaining": self.remaining,
            "protein": self.protein_g,
            "carbs": self.carbs_g,
            "fat": self.fat_g,
            "fiber": self.fiber_g,
            "sugar": self.sugar_g,
            "sodium": self.sodium_mg,
        }

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "DailyNutrition":
        """Build totals from a stored document."""
        target = _to_float(data.get("target"), DEFAULT_TARGET)
        consumed = _to_float(data.get("consumed"))
        return cls(
            consumed=consumed,
            target=target,
            remaining=target - consumed,
            protein_g=_to_float(data.get("protein")),
            carbs_g=_to_float(data.get("carbs")),
            fat_g=_to_float(data.get("fat")),
            fiber_g=_to_float(data.get("fiber")),
            sugar_g=_to_float(data.get("sugar")),
            sodium_mg=_to_float(data.get("sodium")),
        )


@dataclass(frozen=True)
class FoodRecord:
    """A logged food, either analysed from a photo or added manually."""

    id: str
    name: str
    calories: float
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None
    serving_size: str = ""
    confidence: int = 70
    meal_type: str = "snack"
    health_score: int = 5
    image_ref: str | None = None
    captured_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    tips: tuple[str, ...] = ()

    def with_tips(self, tips: list[str]) -> "FoodRecord":
        """Return a copy with the given tips attached."""
        return replace(self, tips=tuple(tips))

    def to_document(self) -> dict[str, object]:
        """Return the stored document representation."""
        return {
            "id": self.id,
            "name": self.name,
            "calories": self.calories,
            "protein": self.protein_g,
            "carbs": self.carbs_g,
            "fat": self.fat_g,
            "fiber": self.fiber_g or 0.0,
            "sugar": self.sugar_g or 0.0,
            "sodium": self.sodium_mg or 0.0,
            "servingSize": self.serving_size,
            "confidence": self.confidence,
            "mealType": self.meal_type,
            "healthScore": self.health_score,
            "imageUri": self.image_ref,
            "timestamp": self.captured_at.isoformat(),
            "nutritionTips": list(self.tips),
        }

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "FoodRecord":
        """Build a record from a stored document."""
        tips = data.get("nutritionTips") or []
        return cls(
            id=str(data.get("id") or _fallback_id(data)),
            name=str(data.get("name") or "Food Item"),
            calories=_to_float(data.get("calories")),
            protein_g=_to_float(data.get("protein")),
            carbs_g=_to_float(data.get("carbs")),
            fat_g=_to_float(data.get("fat")),
            fiber_g=_to_float(data.get("fiber")),
            sugar_g=_to_float(data.get("sugar")),
            sodium_mg=_to_float(data.get("sodium")),
            serving_size=str(data.get("servingSize") or ""),
            confidence=int(_to_float(data.get("confidence"), 70)),
            meal_type=str(data.get("mealType") or "snack"),
            health_score=int(_to_float(data.get("healthScore"), 5)),
            image_ref=_optional_str(data.get("imageUri")),
            captured_at=_parse_timestamp(data.get("timestamp")),
            tips=tuple(str(tip) for tip in tips if isinstance(tip, str)),
        )


@dataclass(frozen=True)
class MealPlanEntry:
    """One suggested item in a meal plan category."""

    id: str
    item: str
    calories: float
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    description: str = ""

    def to_document(self) -> dict[str, object]:
        """Return the stored document representation."""
        return {
            "id": self.id,
            "item": self.item,
            "calories": self.calories,
            "protein": self.protein_g,
            "carbs": self.carbs_g,
            "fat": self.fat_g,
            "description": self.description,
        }

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "MealPlanEntry":
        """Build an entry from a stored or generated document."""
        return cls(
            id=str(data.get("id") or _fallback_id(data)),
            item=str(data.get("item") or data.get("name") or "Meal"),
            calories=_to_float(data.get("calories")),
            protein_g=_to_float(data.get("protein")),
            carbs_g=_to_float(data.get("carbs")),
            fat_g=_to_float(data.get("fat")),
            description=str(data.get("description") or ""),
        )


@dataclass(frozen=True)
class MealPlan:
    """Meal plan entries grouped by category."""

    breakfast: tuple[MealPlanEntry, ...] = ()
    lunch: tuple[MealPlanEntry, ...] = ()
    dinner: tuple[MealPlanEntry, ...] = ()
    snacks: tuple[MealPlanEntry, ...] = ()

    def categories(self) -> dict[str, tuple[MealPlanEntry, ...]]:
        """Return entries keyed by category name, in display order."""
        return {name: getattr(self, name) for name in MEAL_CATEGORIES}

    def find_entry(self, entry_id: str) -> tuple[str, MealPlanEntry] | None:
        """Return the category and entry for an id, if present."""
        for category, entries in self.categories().items():
            for entry in entries:
                if entry.id == entry_id:
                    return category, entry
        return None

    def total_calories(self) -> float:
        """Return the sum of calories across every category."""
        return sum(
            entry.calories
            for entries in self.categories().values()
            for entry in entries
        )

    def to_document(self) -> dict[str, object]:
        """Return the stored document representation."""
        return {
            name: [entry.to_document() for entry in entries]
            for name, entries in self.categories().items()
        }

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "MealPlan":
        """Build a plan from a stored or generated document."""
        parsed: dict[str, tuple[MealPlanEntry, ...]] = {}
        for name in MEAL_CATEGORIES:
            raw_entries = data.get(name) or []
            if not isinstance(raw_entries, list):
                raw_entries = []
            parsed[name] = tuple(
                MealPlanEntry.from_document(entry)
                for entry in raw_entries
                if isinstance(entry, dict)
            )
        return cls(**parsed)


@dataclass(frozen=True)
class NutritionState:
    """Per-user aggregate folded by the nutrition aggregator."""

    profile: UserProfile = DEFAULT_PROFILE
    daily: DailyNutrition = DailyNutrition()
    scanned_foods: tuple[FoodRecord, ...] = ()
    meal_plan: MealPlan = MealPlan()
    last_reset_date: date | None = None

    def to_document(self) -> dict[str, object]:
        """Return the stored document representation."""
        return {
            "profile": self.profile.to_document(),
            "dailyNutrition": self.daily.to_document(),
            "mealPlan": self.meal_plan.to_document(),
            "scannedFoods": [food.to_document() for food in self.scanned_foods],
            "lastResetDate": (
                self.last_reset_date.isoformat() if self.last_reset_date else None
            ),
        }


def _to_float(value: object, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    return str(value)


def _fallback_id(data: dict[str, object]) -> str:
    """Derive a stable id for stored rows saved without one."""
    content = json.dumps(data, sort_keys=True, default=str)
    return uuid5(NAMESPACE_OID, content).hex


def _parse_timestamp(value: object) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.now(tz=UTC)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed
    return datetime.now(tz=UTC)
