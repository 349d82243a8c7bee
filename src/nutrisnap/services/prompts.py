"""Prompt text for food analysis and meal planning."""

PRESENCE_PROMPT = (
    "Analyze this image and determine if it contains food or drink items. "
    'Return only "food" if it contains edible items, or "not_food" if it does '
    "not contain food or drink."
)

NUTRITION_PROMPT = """Analyze this food image and provide detailed nutrition \
information in JSON format. Include:
- Food name (be specific)
- Estimated calories
- Protein (grams)
- Carbohydrates (grams)
- Fat (grams)
- Fiber (grams)
- Sugar (grams)
- Sodium (mg)
- Serving size estimate
- Confidence level (0-100)

Format the response as valid JSON with these exact field names:
{
  "name": "food name",
  "calories": number,
  "protein": number,
  "carbs": number,
  "fat": number,
  "fiber": number,
  "sugar": number,
  "sodium": number,
  "servingSize": "description",
  "confidence": number
}"""

MEAL_TYPE_PROMPT = """Analyze this food image and determine the most likely \
meal type. Return only one of these options:
- breakfast
- lunch
- dinner
- snack
- dessert"""

HEALTH_SCORE_PROMPT = """Rate this food's healthiness on a scale of 1-10, where:
1 = Very unhealthy (high in processed ingredients, sugar, unhealthy fats)
10 = Very healthy (whole foods, balanced nutrients, low in processed ingredients)

Return only the number."""


def tips_prompt(
    name: str,
    calories: float,
    protein_g: float,
    carbs_g: float,
    fat_g: float,
    health_score: int,
) -> str:
    """Build the nutrition tips prompt for an analysed food."""
    return (
        "Based on this food analysis:\n"
        f"- Food: {name}\n"
        f"- Calories: {calories:g}\n"
        f"- Protein: {protein_g:g}g\n"
        f"- Carbs: {carbs_g:g}g\n"
        f"- Fat: {fat_g:g}g\n"
        f"- Health Score: {health_score}/10\n\n"
        "Provide 2-3 brief nutrition tips or suggestions for this food. "
        "Keep each tip under 50 words."
    )


def meal_plan_prompt(  # noqa: PLR0913
    age: int,
    gender: str,
    weight_lb: float,
    height_in: float,
    activity_level: str,
    target: int,
    preferences: str,
) -> str:
    """Build the meal plan prompt for a profile and calorie target."""
    return f"""Generate a personalized meal plan for a {age}-year-old {gender} \
with the following characteristics:
- Weight: {weight_lb:g} lb
- Height: {height_in:g} in
- Activity Level: {activity_level}
- Daily Calorie Target: {target} calories

Preferences: {preferences}

Please provide a meal plan in JSON format with the following structure:
{{
  "breakfast": [
    {{
      "item": "meal name",
      "calories": number,
      "protein": number,
      "carbs": number,
      "fat": number,
      "description": "brief description"
    }}
  ],
  "lunch": [...],
  "dinner": [...],
  "snacks": [...]
}}

Make sure the total daily calories are close to the target and meals are \
balanced."""
