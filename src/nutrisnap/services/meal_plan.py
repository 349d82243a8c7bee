"""Meal plan generation with a sample-plan fallback."""

import json
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from nutrisnap.domain.errors import InferenceUnavailable, MalformedInferenceResponse
from nutrisnap.domain.nutrition import (
    MEAL_CATEGORIES,
    FoodRecord,
    MealPlan,
    MealPlanEntry,
)
from nutrisnap.domain.profile import UserProfile
from nutrisnap.services import prompts
from nutrisnap.services.aggregator import compute_target
from nutrisnap.services.interpreter import FoodImageInterpreter

_logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_SAMPLE_PLAN: dict[str, list[tuple[str, float, float, float, float]]] = {
    "breakfast": [
        ("Oatmeal with Berries and Nuts", 350, 15, 50, 12),
        ("Greek Yogurt with Honey", 200, 20, 25, 5),
    ],
    "lunch": [
        ("Grilled Chicken Salad", 450, 35, 15, 25),
        ("Quinoa Bowl with Vegetables", 380, 18, 45, 15),
    ],
    "dinner": [
        ("Salmon with Roasted Vegetables", 550, 40, 20, 30),
        ("Lean Beef Stir-Fry", 480, 35, 25, 22),
    ],
    "snacks": [
        ("Greek Yogurt with Nuts", 200, 15, 10, 12),
        ("Apple with Almond Butter", 180, 8, 25, 10),
    ],
}

_CATEGORY_MEAL_TYPES = {
    "breakfast": "breakfast",
    "lunch": "lunch",
    "dinner": "dinner",
    "snacks": "snack",
}


@dataclass(frozen=True)
class MealPlanResult:
    """Generated plan and whether the sample plan was used."""

    plan: MealPlan
    is_sample: bool


@dataclass
class MealPlanService:
    """Generates meal plans through the inference endpoint."""

    interpreter: FoodImageInterpreter

    async def generate(
        self, profile: UserProfile, preferences: dict[str, object] | None = None
    ) -> MealPlanResult:
        """Generate a plan for a profile; fall back to the sample plan."""
        prompt = prompts.meal_plan_prompt(
            age=profile.age,
            gender=profile.gender.value,
            weight_lb=profile.weight_lb,
            height_in=profile.height_in,
            activity_level=profile.activity_level.value,
            target=compute_target(profile),
            preferences=json.dumps(preferences or {}),
        )
        try:
            text = await self.interpreter.generate_text(prompt)
            plan = parse_meal_plan(text)
        except (InferenceUnavailable, MalformedInferenceResponse) as exc:
            _logger.warning("Meal plan generation failed, using sample plan: %s", exc)
            return MealPlanResult(plan=sample_plan(), is_sample=True)
        return MealPlanResult(plan=plan, is_sample=False)


def parse_meal_plan(text: str) -> MealPlan:
    """Parse the first JSON object of a response into a plan with fresh ids."""
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        raise MalformedInferenceResponse("Failed to parse meal plan")
    try:
        raw = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise MalformedInferenceResponse("Failed to parse meal plan") from exc
    if not isinstance(raw, dict) or not any(
        isinstance(raw.get(name), list) for name in MEAL_CATEGORIES
    ):
        raise MalformedInferenceResponse("Meal plan has no categories")
    for name in MEAL_CATEGORIES:
        entries = raw.get(name)
        if isinstance(entries, list):
            raw[name] = [
                {**entry, "id": uuid4().hex}
                for entry in entries
                if isinstance(entry, dict)
            ]
    return MealPlan.from_document(raw)


def sample_plan() -> MealPlan:
    """Return the fixed plan used when generation is unavailable."""
    document = {
        name: [
            {
                "id": uuid4().hex,
                "item": item,
                "calories": calories,
                "protein": protein,
                "carbs": carbs,
                "fat": fat,
            }
            for item, calories, protein, carbs, fat in entries
        ]
        for name, entries in _SAMPLE_PLAN.items()
    }
    return MealPlan.from_document(document)


def entry_to_food(category: str, entry: MealPlanEntry) -> FoodRecord:
    """Turn a plan entry into a food record for the daily totals."""
    return FoodRecord(
        id=uuid4().hex,
        name=entry.item,
        calories=entry.calories,
        protein_g=entry.protein_g,
        carbs_g=entry.carbs_g,
        fat_g=entry.fat_g,
        meal_type=_CATEGORY_MEAL_TYPES.get(category, category),
        captured_at=datetime.now(tz=UTC),
    )
