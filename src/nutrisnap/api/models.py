"""Pydantic models for HTTP request bodies."""

from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Credentials(BaseModel):
    """Email and password sign-up or sign-in payload."""

    email: str = Field(min_length=3)
    password: str = Field(min_length=6)


class ProfileUpdate(BaseModel):
    """Profile fields as entered by the user, validated by the domain."""

    model_config = ConfigDict(populate_by_name=True)

    gender: str | None = None
    weight: float | str | None = None
    height: float | str | None = None
    age: float | str | None = None
    activity_level: str | None = Field(default=None, alias="activityLevel")


class ScanRequest(BaseModel):
    """Base64 encoded photo, optionally as a data URL."""

    model_config = ConfigDict(populate_by_name=True)

    image_base64: str = Field(alias="imageBase64")
    image_ref: str | None = Field(default=None, alias="imageRef")
    log_food: bool = Field(default=True, alias="logFood")


class FoodInput(BaseModel):
    """Food record to fold into today's totals."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=lambda: uuid4().hex, min_length=1)
    name: str = Field(min_length=1)
    calories: float = Field(ge=0)
    protein: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    fiber: float | None = Field(default=None, ge=0)
    sugar: float | None = Field(default=None, ge=0)
    sodium: float | None = Field(default=None, ge=0)
    serving_size: str = Field(default="", alias="servingSize")
    confidence: int = Field(default=70, ge=0, le=100)
    meal_type: str = Field(default="snack", alias="mealType")
    health_score: int = Field(default=5, ge=1, le=10, alias="healthScore")
    image_ref: str | None = Field(default=None, alias="imageUri")
    tips: list[str] = Field(default_factory=list, alias="nutritionTips")


class MealPlanRequest(BaseModel):
    """Free-form dietary preferences passed to the plan prompt."""

    preferences: dict[str, object] = Field(default_factory=dict)


class AmountInput(BaseModel):
    """A single positive quantity, such as water in fl oz."""

    amount: float


class WeightInput(BaseModel):
    """A body weight in pounds."""

    weight: float


class GoalInput(BaseModel):
    """A water or weight goal."""

    goal: float
