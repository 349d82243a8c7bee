"""User profile models and input validation."""

from dataclasses import dataclass
from enum import StrEnum

from nutrisnap.domain.errors import ValidationError


class Gender(StrEnum):
    """Gender values used by the BMR formula."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class ActivityLevel(StrEnum):
    """Activity tiers, ordered from least to most active."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "veryActive"


@dataclass(frozen=True)
class UserProfile:
    """Body metrics in pounds and inches."""

    gender: Gender
    weight_lb: float
    height_in: float
    age: int
    activity_level: ActivityLevel

    def to_document(self) -> dict[str, object]:
        """Return the stored document representation."""
        return {
            "gender": self.gender.value,
            "weight": self.weight_lb,
            "height": self.height_in,
            "age": self.age,
            "activityLevel": self.activity_level.value,
        }

    @classmethod
    def from_document(cls, data: dict[str, object]) -> "UserProfile":
        """Build a profile from a stored document, validating every field."""
        return validate_profile_input(data)


DEFAULT_PROFILE = UserProfile(
    gender=Gender.FEMALE,
    weight_lb=65.0,
    height_in=165.0,
    age=30,
    activity_level=ActivityLevel.MODERATE,
)


def validate_profile_input(raw: dict[str, object]) -> UserProfile:
    """Validate user-entered profile fields and return a typed profile.

    Accepts the stored document keys (``weight``, ``height``, ``age``,
    ``gender``, ``activityLevel``) as strings or numbers. Every invalid field
    is reported at once through ``ValidationError.field_errors``.
    """
    errors: dict[str, str] = {}
    weight = _positive_number(raw.get("weight"))
    if weight is None:
        errors["weight"] = "Please enter a valid weight"
    height = _positive_number(raw.get("height"))
    if height is None:
        errors["height"] = "Please enter a valid height"
    age = _positive_int(raw.get("age"))
    if age is None:
        errors["age"] = "Please enter a valid age"
    gender = _parse_gender(raw.get("gender"))
    if gender is None:
        errors["gender"] = "Please choose male, female, or other"
    activity = _parse_activity(raw.get("activityLevel", raw.get("activity_level")))
    if activity is None:
        errors["activityLevel"] = "Please choose an activity level"
    if errors:
        raise ValidationError(errors)
    return UserProfile(
        gender=gender,
        weight_lb=weight,
        height_in=height,
        age=age,
        activity_level=activity,
    )


def _positive_number(value: object) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if number != number or number <= 0:
        return None
    return number


def _positive_int(value: object) -> int | None:
    number = _positive_number(value)
    if number is None:
        return None
    whole = int(number)
    return whole if whole > 0 else None


def _parse_gender(value: object) -> Gender | None:
    if not isinstance(value, str):
        return None
    try:
        return Gender(value.strip().lower())
    except ValueError:
        return None


def _parse_activity(value: object) -> ActivityLevel | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    for level in ActivityLevel:
        if cleaned.lower() == level.value.lower():
            return level
    return None
