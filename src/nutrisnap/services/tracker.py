"""Per-user nutrition state with persistence side effects."""

import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime

from nutrisnap.domain.errors import PersistenceError, ValidationError
from nutrisnap.domain.nutrition import (
    DailyNutrition,
    FoodRecord,
    MealPlan,
    NutritionState,
)
from nutrisnap.domain.profile import UserProfile
from nutrisnap.services import aggregator
from nutrisnap.services.documents import DebouncedWriter, UserDocumentRepository

_logger = logging.getLogger(__name__)


@dataclass
class NutritionTrackerService:
    """Owns one user's in-memory state and mirrors it to the document store.

    The in-memory state is the source of truth for the session. Writes go
    through the debounced writer and never roll local changes back.
    """

    user_id: str
    writer: DebouncedWriter
    state: NutritionState = field(default_factory=NutritionState)

    def load_document(self, document: dict[str, object]) -> None:
        """Replace local state with a stored document."""
        state = NutritionState()
        raw_profile = document.get("profile")
        if isinstance(raw_profile, dict):
            try:
                profile = UserProfile.from_document(raw_profile)
            except ValidationError:
                _logger.warning(
                    "Stored profile is invalid, keeping defaults",
                    extra={"user_id": self.user_id},
                )
            else:
                state = replace(state, profile=profile)
        raw_daily = document.get("dailyNutrition")
        if isinstance(raw_daily, dict):
            state = aggregator.apply_daily_snapshot(
                state, DailyNutrition.from_document(raw_daily)
            )
        raw_plan = document.get("mealPlan")
        if isinstance(raw_plan, dict):
            state = aggregator.apply_meal_plan(state, MealPlan.from_document(raw_plan))
        raw_foods = document.get("scannedFoods")
        if isinstance(raw_foods, list):
            state = replace(
                state,
                scanned_foods=tuple(
                    FoodRecord.from_document(food)
                    for food in raw_foods
                    if isinstance(food, dict)
                ),
            )
        state = replace(
            state, last_reset_date=_parse_reset_date(document.get("lastResetDate"))
        )
        self.state = state

    async def ensure_today(self, today: date) -> bool:
        """Roll the day over if needed; return True when a reset happened."""
        updated = aggregator.rollover(self.state, today)
        if updated is self.state:
            return False
        _logger.info("Resetting daily nutrition for %s", today.isoformat())
        self.state = updated
        fields: dict[str, object] = {
            "dailyNutrition": updated.daily.to_document(),
            "scannedFoods": [],
        }
        if self.writer.has_pending(self.user_id):
            # stale coalesced fields must not resurrect yesterday's totals
            self.writer.schedule(self.user_id, fields)
        await self.writer.write_now(
            self.user_id, {**fields, "lastResetDate": today.isoformat()}
        )
        return True

    async def reset_daily(self, today: date) -> NutritionState:
        """Force a reset of today's totals, keeping the target."""
        self.state = replace(self.state, last_reset_date=None)
        await self.ensure_today(today)
        return self.state

    async def update_profile(self, profile: UserProfile) -> NutritionState:
        """Apply a validated profile and persist it."""
        self.state = aggregator.apply_profile_update(self.state, profile)
        await self.writer.write_now(
            self.user_id, {"profile": profile.to_document()}
        )
        self.writer.schedule(
            self.user_id, {"dailyNutrition": self.state.daily.to_document()}
        )
        return self.state

    async def add_food(self, food: FoodRecord) -> NutritionState:
        """Fold a food into today's totals and record it in history."""
        self.state = aggregator.apply_food_record(self.state, food)
        await self.writer.append_now(self.user_id, "foodHistory", food.to_document())
        await self.writer.write_now(
            self.user_id, {"dailyNutrition": self.state.daily.to_document()}
        )
        self.writer.schedule(
            self.user_id,
            {
                "scannedFoods": [
                    item.to_document() for item in self.state.scanned_foods
                ]
            },
        )
        return self.state

    async def update_meal_plan(self, plan: MealPlan) -> NutritionState:
        """Replace the meal plan and persist it."""
        self.state = aggregator.apply_meal_plan(self.state, plan)
        await self.writer.write_now(self.user_id, {"mealPlan": plan.to_document()})
        return self.state

    def remove_scanned_food(self, food_id: str) -> NutritionState:
        """Drop a food from today's scanned list."""
        updated = aggregator.remove_food_record(self.state, food_id)
        if updated is not self.state:
            self.state = updated
            self.writer.schedule(
                self.user_id,
                {
                    "scannedFoods": [
                        item.to_document() for item in updated.scanned_foods
                    ]
                },
            )
        return self.state


@dataclass
class TrackerRegistry:
    """Creates and caches one tracker per signed-in user."""

    repository: UserDocumentRepository
    writer: DebouncedWriter
    _trackers: dict[str, NutritionTrackerService] = field(default_factory=dict)

    async def get(self, user_id: str, today: date) -> NutritionTrackerService:
        """Return the user's tracker, loading it on first access."""
        tracker = self._trackers.get(user_id)
        if tracker is None:
            tracker = NutritionTrackerService(user_id=user_id, writer=self.writer)
            self._load(tracker)
            self._trackers[user_id] = tracker
        await tracker.ensure_today(today)
        return tracker

    def forget(self, user_id: str) -> None:
        """Drop a cached tracker, e.g. on sign-out."""
        self._trackers.pop(user_id, None)

    def _load(self, tracker: NutritionTrackerService) -> None:
        try:
            document = self.repository.get_document(tracker.user_id)
        except PersistenceError:
            # an unread document must never be overwritten with defaults
            _logger.exception(
                "Failed to load user document", extra={"user_id": tracker.user_id}
            )
            raise
        if document is not None:
            tracker.load_document(document)
            return
        _logger.info("Creating initial document", extra={"user_id": tracker.user_id})
        try:
            self.repository.set_document(tracker.user_id, initial_document())
        except PersistenceError:
            _logger.exception(
                "Failed to create user document", extra={"user_id": tracker.user_id}
            )


def initial_document() -> dict[str, object]:
    """Return the document stored for a brand-new user."""
    state = NutritionState()
    return {
        **state.to_document(),
        "foodHistory": [],
        "waterEntries": [],
        "weightEntries": [],
        "waterGoal": None,
        "weightGoal": None,
        "createdAt": datetime.now(tz=UTC).isoformat(),
    }


def _parse_reset_date(value: object) -> date | None:
    if not isinstance(value, str) or len(value) < 10:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
