"""Pure state transitions for daily nutrition totals."""

import math
from dataclasses import replace
from datetime import date

from nutrisnap.domain.nutrition import (
    DailyNutrition,
    FoodRecord,
    MealPlan,
    NutritionState,
)
from nutrisnap.domain.profile import ActivityLevel, Gender, UserProfile

ACTIVITY_MULTIPLIERS: dict[ActivityLevel, float] = {
    ActivityLevel.SEDENTARY: 1.2,
    ActivityLevel.LIGHT: 1.375,
    ActivityLevel.MODERATE: 1.55,
    ActivityLevel.ACTIVE: 1.725,
    ActivityLevel.VERY_ACTIVE: 1.9,
}


def compute_target(profile: UserProfile) -> int:
    """Return the daily calorie target (TDEE) for a profile.

    Mifflin-St Jeor with constants calibrated for pounds and inches, scaled
    by the activity multiplier and rounded half-up once at the end.
    """
    bmr = 4.536 * profile.weight_lb + 15.875 * profile.height_in - 5 * profile.age
    bmr += 5 if profile.gender == Gender.MALE else -161
    return math.floor(bmr * ACTIVITY_MULTIPLIERS[profile.activity_level] + 0.5)


def apply_profile_update(state: NutritionState, profile: UserProfile) -> NutritionState:
    """Recompute the target for a new profile, keeping consumption."""
    target = float(compute_target(profile))
    daily = replace(
        state.daily,
        target=target,
        remaining=target - state.daily.consumed,
    )
    return replace(state, profile=profile, daily=daily)


def apply_food_record(state: NutritionState, food: FoodRecord) -> NutritionState:
    """Fold a food record into today's totals and scanned list."""
    current = state.daily
    consumed = current.consumed + food.calories
    daily = replace(
        current,
        consumed=consumed,
        remaining=current.target - consumed,
        protein_g=current.protein_g + food.protein_g,
        carbs_g=current.carbs_g + food.carbs_g,
        fat_g=current.fat_g + food.fat_g,
        fiber_g=current.fiber_g + (food.fiber_g or 0.0),
        sugar_g=current.sugar_g + (food.sugar_g or 0.0),
        sodium_mg=current.sodium_mg + (food.sodium_mg or 0.0),
    )
    return replace(state, daily=daily, scanned_foods=(*state.scanned_foods, food))


def rollover(state: NutritionState, today: date) -> NutritionState:
    """Reset accumulators when the local calendar day has changed."""
    if state.last_reset_date == today:
        return state
    target = state.daily.target
    return replace(
        state,
        daily=DailyNutrition(target=target, remaining=target),
        scanned_foods=(),
        last_reset_date=today,
    )


def apply_daily_snapshot(
    state: NutritionState, daily: DailyNutrition
) -> NutritionState:
    """Restore persisted totals as stored, recomputing only the remainder."""
    restored = replace(daily, remaining=daily.target - daily.consumed)
    return replace(state, daily=restored)


def apply_meal_plan(state: NutritionState, plan: MealPlan) -> NutritionState:
    """Replace the meal plan wholesale."""
    return replace(state, meal_plan=plan)


def remove_food_record(state: NutritionState, food_id: str) -> NutritionState:
    """Drop a record from today's scanned list without rewinding totals."""
    remaining = tuple(food for food in state.scanned_foods if food.id != food_id)
    if len(remaining) == len(state.scanned_foods):
        return state
    return replace(state, scanned_foods=remaining)
