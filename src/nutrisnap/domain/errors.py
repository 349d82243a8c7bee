"""Error taxonomy for food analysis, tracking, and persistence."""


class NutriSnapError(Exception):
    """Base class for application errors."""


class NotFoodError(NutriSnapError):
    """The presence check classified the image as not containing food."""

    code = "NOT_FOOD"

    def __init__(self) -> None:
        super().__init__(
            "This image does not appear to contain food. "
            "Please take a photo of food or drink items."
        )


class MalformedInferenceResponse(NutriSnapError):
    """Inference text could not be turned into the expected payload."""


class InferenceUnavailable(NutriSnapError):
    """Inference endpoint failed (network, timeout, or quota)."""


class InvalidImageError(NutriSnapError):
    """Image bytes could not be decoded for analysis."""


class PersistenceError(NutriSnapError):
    """A write to or read from the document store failed."""


class AuthError(NutriSnapError):
    """Authentication failed or timed out."""


class IllegalTransitionError(NutriSnapError):
    """Interpreter state machine was driven through an undeclared transition."""


class ValidationError(NutriSnapError):
    """User-entered fields were rejected before reaching the aggregator."""

    def __init__(self, field_errors: dict[str, str]) -> None:
        self.field_errors = field_errors
        message = "; ".join(f"{name}: {text}" for name, text in field_errors.items())
        super().__init__(message or "Invalid input")
