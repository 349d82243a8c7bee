"""Models for food image analysis results."""

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NutritionPayload(BaseModel):
    """Nutrition facts returned by the extraction prompt."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    calories: float = Field(ge=0.0)
    protein: float = Field(default=0.0, ge=0.0)
    carbs: float = Field(default=0.0, ge=0.0)
    fat: float = Field(default=0.0, ge=0.0)
    fiber: float = Field(default=0.0, ge=0.0)
    sugar: float = Field(default=0.0, ge=0.0)
    sodium: float = Field(default=0.0, ge=0.0)
    serving_size: str = Field(default="", alias="servingSize")
    confidence: int | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("name must not be blank")
        return stripped

    @field_validator(
        "protein", "carbs", "fat", "fiber", "sugar", "sodium", mode="before"
    )
    @classmethod
    def _null_as_zero(cls, value: object) -> object:
        return 0.0 if value is None else value

    @field_validator("serving_size", mode="before")
    @classmethod
    def _serving_as_text(cls, value: object) -> object:
        return "" if value is None else str(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: object) -> object:
        if isinstance(value, bool) or not isinstance(value, int | float):
            return value
        return min(max(round(value), 0), 100)


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing an extraction response: a payload or an error."""

    payload: NutritionPayload | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when a payload was parsed."""
        return self.payload is not None
