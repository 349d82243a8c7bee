"""Food image analysis pipeline using a multimodal inference endpoint."""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from nutrisnap.domain.errors import (
    IllegalTransitionError,
    InferenceUnavailable,
    InvalidImageError,
    MalformedInferenceResponse,
    NotFoodError,
)
from nutrisnap.domain.nutrition import FoodRecord
from nutrisnap.domain.vision import NutritionPayload, ParseResult
from nutrisnap.services import prompts
from nutrisnap.services.images import prepare_image

_logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

DEFAULT_CONFIDENCE = 70
DEFAULT_HEALTH_SCORE = 5

FALLBACK_TIPS = (
    "This appears to be a balanced food item.",
    "Consider portion size for accurate tracking.",
    "Pair with vegetables for a complete meal.",
)
FALLBACK_NUTRITION_TIPS = (
    "Consider portion size for balanced nutrition.",
    "Pair with vegetables for a complete meal.",
)

_RECOVERABLE = (InferenceUnavailable, MalformedInferenceResponse, InvalidImageError)


class InferenceClient(Protocol):
    """Interface for a text-out multimodal inference endpoint."""

    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str | None,
        max_output_tokens: int,
        temperature: float,
    ) -> str:
        """Return the model's text response for a prompt and optional image."""


class InterpreterState(StrEnum):
    """States of a single scan."""

    CAPTURED = "captured"
    PRESENCE_CHECKED = "presence_checked"
    NUTRITION_EXTRACTED = "nutrition_extracted"
    MEAL_TYPE_CLASSIFIED = "meal_type_classified"
    HEALTH_SCORED = "health_scored"
    NORMALIZED = "normalized"
    REJECTED = "rejected"
    FALLBACK = "fallback"


TRANSITIONS: dict[InterpreterState, frozenset[InterpreterState]] = {
    InterpreterState.CAPTURED: frozenset(
        {
            InterpreterState.PRESENCE_CHECKED,
            InterpreterState.REJECTED,
            InterpreterState.FALLBACK,
        }
    ),
    InterpreterState.PRESENCE_CHECKED: frozenset(
        {InterpreterState.NUTRITION_EXTRACTED, InterpreterState.FALLBACK}
    ),
    InterpreterState.NUTRITION_EXTRACTED: frozenset(
        {InterpreterState.MEAL_TYPE_CLASSIFIED, InterpreterState.FALLBACK}
    ),
    InterpreterState.MEAL_TYPE_CLASSIFIED: frozenset(
        {InterpreterState.HEALTH_SCORED, InterpreterState.FALLBACK}
    ),
    InterpreterState.HEALTH_SCORED: frozenset({InterpreterState.NORMALIZED}),
    InterpreterState.NORMALIZED: frozenset(),
    InterpreterState.REJECTED: frozenset(),
    InterpreterState.FALLBACK: frozenset(),
}


@dataclass(frozen=True)
class AnalysisResult:
    """Terminal outcome of a scan that produced a record."""

    record: FoodRecord
    state: InterpreterState
    reason: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.state == InterpreterState.FALLBACK


@dataclass
class ScanPipeline:
    """Mutable progress of one scan; each scan owns its own instance."""

    image_ref: str | None
    state: InterpreterState = InterpreterState.CAPTURED
    history: list[InterpreterState] = field(
        default_factory=lambda: [InterpreterState.CAPTURED]
    )
    payload: NutritionPayload | None = None
    meal_type: str | None = None
    health_score: int | None = None

    def advance(self, target: InterpreterState) -> None:
        """Move to the next state, rejecting undeclared transitions."""
        if target not in TRANSITIONS[self.state]:
            raise IllegalTransitionError(f"{self.state} -> {target}")
        self.state = target
        self.history.append(target)

    def record_nutrition(self, payload: NutritionPayload) -> None:
        self.advance(InterpreterState.NUTRITION_EXTRACTED)
        self.payload = payload

    def record_meal_type(self, meal_type: str) -> None:
        self.advance(InterpreterState.MEAL_TYPE_CLASSIFIED)
        self.meal_type = meal_type

    def record_health_score(self, score: int) -> None:
        self.advance(InterpreterState.HEALTH_SCORED)
        self.health_score = score

    def normalize(self, captured_at: datetime) -> FoodRecord:
        """Assemble the typed record from every extracted piece."""
        self.advance(InterpreterState.NORMALIZED)
        payload = self.payload
        if payload is None or self.meal_type is None or self.health_score is None:
            raise IllegalTransitionError("normalized without extracted data")
        confidence = (
            payload.confidence
            if payload.confidence is not None
            else DEFAULT_CONFIDENCE
        )
        return FoodRecord(
            id=uuid4().hex,
            name=payload.name,
            calories=payload.calories,
            protein_g=payload.protein,
            carbs_g=payload.carbs,
            fat_g=payload.fat,
            fiber_g=payload.fiber,
            sugar_g=payload.sugar,
            sodium_mg=payload.sodium,
            serving_size=payload.serving_size,
            confidence=confidence,
            meal_type=self.meal_type,
            health_score=self.health_score,
            image_ref=self.image_ref,
            captured_at=captured_at,
        )

    def fall_back(self, captured_at: datetime) -> FoodRecord:
        self.advance(InterpreterState.FALLBACK)
        return fallback_record(self.image_ref, captured_at)


@dataclass
class FoodImageInterpreter:
    """Runs the presence, nutrition, meal type, and health score prompts."""

    client: InferenceClient
    model: str
    max_output_tokens: int = 2048
    temperature: float = 0.3
    timeout_seconds: float = 20.0
    parallel_classification: bool = False

    async def analyze(
        self, image_bytes: bytes, image_ref: str | None = None
    ) -> AnalysisResult:
        """Analyse a food photo.

        Raises ``NotFoodError`` only when the presence check explicitly says
        the image is not food. Every other failure yields the fallback record.
        """
        pipeline = ScanPipeline(image_ref=image_ref)
        try:
            image_data_url = prepare_image(image_bytes)
            presence = normalize_label(
                await self._generate(prompts.PRESENCE_PROMPT, image_data_url)
            )
            _logger.info("Food check result: %s", presence)
            if presence == "not_food" or "not_food" in presence:
                pipeline.advance(InterpreterState.REJECTED)
                raise NotFoodError()
            pipeline.advance(InterpreterState.PRESENCE_CHECKED)

            if self.parallel_classification:
                outcomes = await asyncio.gather(
                    self._generate(prompts.NUTRITION_PROMPT, image_data_url),
                    self._generate(prompts.MEAL_TYPE_PROMPT, image_data_url),
                    self._generate(prompts.HEALTH_SCORE_PROMPT, image_data_url),
                    return_exceptions=True,
                )
                for outcome in outcomes:
                    if isinstance(outcome, BaseException):
                        raise outcome
                nutrition_text, meal_text, score_text = outcomes
                pipeline.record_nutrition(_require_payload(nutrition_text))
                pipeline.record_meal_type(normalize_label(meal_text))
                pipeline.record_health_score(parse_health_score(score_text))
            else:
                nutrition_text = await self._generate(
                    prompts.NUTRITION_PROMPT, image_data_url
                )
                pipeline.record_nutrition(_require_payload(nutrition_text))
                pipeline.record_meal_type(
                    normalize_label(
                        await self._generate(prompts.MEAL_TYPE_PROMPT, image_data_url)
                    )
                )
                pipeline.record_health_score(
                    parse_health_score(
                        await self._generate(
                            prompts.HEALTH_SCORE_PROMPT, image_data_url
                        )
                    )
                )
        except _RECOVERABLE as exc:
            _logger.warning(
                "Food analysis failed in state %s, using fallback: %s",
                pipeline.state,
                exc,
            )
            record = pipeline.fall_back(datetime.now(tz=UTC))
            return AnalysisResult(record=record, state=pipeline.state, reason=str(exc))

        record = pipeline.normalize(datetime.now(tz=UTC))
        return AnalysisResult(record=record, state=pipeline.state)

    async def get_tips(self, record: FoodRecord) -> list[str]:
        """Ask for 2-3 short tips about an analysed food."""
        prompt = prompts.tips_prompt(
            name=record.name,
            calories=record.calories,
            protein_g=record.protein_g,
            carbs_g=record.carbs_g,
            fat_g=record.fat_g,
            health_score=record.health_score,
        )
        try:
            text = await self._generate(prompt, None)
        except _RECOVERABLE:
            _logger.warning("Nutrition tips failed, using fallback tips")
            return list(FALLBACK_NUTRITION_TIPS)
        tips = [line.strip() for line in text.split("\n") if line.strip()]
        return tips or list(FALLBACK_NUTRITION_TIPS)

    async def scan(
        self, image_bytes: bytes, image_ref: str | None = None
    ) -> AnalysisResult:
        """Analyse a photo and attach tips to a successful record."""
        result = await self.analyze(image_bytes, image_ref)
        if result.is_fallback:
            return result
        tips = await self.get_tips(result.record)
        return AnalysisResult(
            record=result.record.with_tips(tips),
            state=result.state,
            reason=result.reason,
        )

    async def generate_text(self, prompt: str) -> str:
        """Run a text-only prompt with the interpreter's model settings."""
        return await self._generate(prompt, None)

    async def _generate(self, prompt: str, image_data_url: str | None) -> str:
        try:
            return await asyncio.wait_for(
                self.client.generate(
                    model=self.model,
                    prompt=prompt,
                    image_data_url=image_data_url,
                    max_output_tokens=self.max_output_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except TimeoutError as exc:
            raise InferenceUnavailable("Analysis timed out") from exc


def parse_nutrition_response(text: str) -> ParseResult:
    """Extract and validate the nutrition JSON embedded in free text."""
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        return ParseResult(error="No JSON found in response")
    try:
        raw = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        return ParseResult(error=f"Failed to parse nutrition data: {exc.msg}")
    if not isinstance(raw, dict):
        return ParseResult(error="Nutrition data is not an object")
    if not raw.get("name") or raw.get("calories") is None:
        return ParseResult(error="Incomplete nutrition data received")
    try:
        return ParseResult(payload=NutritionPayload.model_validate(raw))
    except PydanticValidationError as exc:
        return ParseResult(error=f"Invalid nutrition data: {exc.error_count()} errors")


def parse_health_score(text: str) -> int:
    """Parse the leading integer of a rating, clamped to 1-10, default 5."""
    match = _LEADING_INT.match(text or "")
    if match is None:
        return DEFAULT_HEALTH_SCORE
    score = int(match.group(1))
    if score == 0:
        return DEFAULT_HEALTH_SCORE
    return min(max(score, 1), 10)


def normalize_label(text: str) -> str:
    """Trim and lowercase a one-word classification answer."""
    return (text or "").strip().lower()


def fallback_record(image_ref: str | None, captured_at: datetime) -> FoodRecord:
    """Return the placeholder record used when analysis cannot complete."""
    return FoodRecord(
        id=uuid4().hex,
        name="Food Item",
        calories=250.0,
        protein_g=15.0,
        carbs_g=30.0,
        fat_g=8.0,
        fiber_g=5.0,
        sugar_g=10.0,
        sodium_mg=300.0,
        serving_size="",
        confidence=85,
        meal_type="meal",
        health_score=7,
        image_ref=image_ref,
        captured_at=captured_at,
        tips=FALLBACK_TIPS,
    )


def _require_payload(text: str) -> NutritionPayload:
    result = parse_nutrition_response(text)
    if result.payload is None:
        raise MalformedInferenceResponse(result.error or "Malformed nutrition data")
    return result.payload
