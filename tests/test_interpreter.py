"""Tests for the food image interpreter."""

import asyncio

import pytest

from nutrisnap.domain.errors import (
    IllegalTransitionError,
    InferenceUnavailable,
    MalformedInferenceResponse,
    NotFoodError,
)
from nutrisnap.services.interpreter import (
    FALLBACK_NUTRITION_TIPS,
    FALLBACK_TIPS,
    FoodImageInterpreter,
    InterpreterState,
    ScanPipeline,
    parse_health_score,
    parse_nutrition_response,
)
from tests.conftest import ScriptedInferenceClient, make_image


def _interpreter(
    client: ScriptedInferenceClient, **overrides: object
) -> FoodImageInterpreter:
    return FoodImageInterpreter(client=client, model="gpt-4o-mini", **overrides)


def test_scan_normalizes_apple(inference_client: ScriptedInferenceClient) -> None:
    interpreter = _interpreter(inference_client)

    result = asyncio.run(interpreter.scan(make_image(), image_ref="photo-1"))

    record = result.record
    assert result.state == InterpreterState.NORMALIZED
    assert not result.is_fallback
    assert record.name == "Apple"
    assert record.calories == 95
    assert record.carbs_g == 25
    assert record.fiber_g == 4.4
    assert record.serving_size == "1 medium"
    assert record.confidence == 90
    assert record.meal_type == "snack"
    assert record.health_score == 9
    assert record.image_ref == "photo-1"
    assert record.tips == (
        "Eat the skin for fiber.",
        "Pair with nut butter for protein.",
    )
    assert inference_client.steps() == [
        "presence",
        "nutrition",
        "meal_type",
        "health_score",
        "tips",
    ]


def test_image_steps_receive_jpeg_data_url(
    inference_client: ScriptedInferenceClient,
) -> None:
    asyncio.run(_interpreter(inference_client).analyze(make_image()))

    image_urls = [url for step, url in inference_client.calls]
    assert all(url.startswith("data:image/jpeg;base64,") for url in image_urls)


def test_missing_calories_yields_fallback(
    inference_client: ScriptedInferenceClient,
) -> None:
    inference_client.replies["nutrition"] = '{"name": "Apple"}'

    result = asyncio.run(_interpreter(inference_client).scan(make_image()))

    assert result.state == InterpreterState.FALLBACK
    assert result.record.name == "Food Item"
    assert result.record.calories == 250
    assert result.record.protein_g == 15
    assert result.record.carbs_g == 30
    assert result.record.fat_g == 8
    assert result.record.confidence == 85
    assert result.record.meal_type == "meal"
    assert result.record.health_score == 7
    assert result.record.tips == FALLBACK_TIPS
    assert "tips" not in inference_client.steps()


def test_zero_calories_is_accepted(inference_client: ScriptedInferenceClient) -> None:
    inference_client.replies["nutrition"] = '{"name": "Water", "calories": 0}'

    result = asyncio.run(_interpreter(inference_client).analyze(make_image()))

    assert result.state == InterpreterState.NORMALIZED
    assert result.record.calories == 0
    assert result.record.confidence == 70
    assert result.record.protein_g == 0


def test_not_food_raises(inference_client: ScriptedInferenceClient) -> None:
    inference_client.replies["presence"] = "  NOT_FOOD "

    with pytest.raises(NotFoodError) as excinfo:
        asyncio.run(_interpreter(inference_client).scan(make_image()))

    assert excinfo.value.code == "NOT_FOOD"
    assert inference_client.steps() == ["presence"]


def test_presence_failure_yields_fallback(
    inference_client: ScriptedInferenceClient,
) -> None:
    inference_client.replies["presence"] = InferenceUnavailable("quota")

    result = asyncio.run(_interpreter(inference_client).analyze(make_image()))

    assert result.is_fallback
    assert result.reason == "quota"
    assert inference_client.steps() == ["presence"]


def test_late_step_failure_yields_fallback(
    inference_client: ScriptedInferenceClient,
) -> None:
    inference_client.replies["health_score"] = MalformedInferenceResponse("empty")

    result = asyncio.run(_interpreter(inference_client).analyze(make_image()))

    assert result.is_fallback
    assert result.record.name == "Food Item"


def test_slow_step_times_out_to_fallback(
    inference_client: ScriptedInferenceClient,
) -> None:
    inference_client.delays["nutrition"] = 0.5
    interpreter = _interpreter(inference_client, timeout_seconds=0.05)

    result = asyncio.run(interpreter.analyze(make_image()))

    assert result.is_fallback
    assert result.reason == "Analysis timed out"


def test_undecodable_image_yields_fallback_without_inference(
    inference_client: ScriptedInferenceClient,
) -> None:
    result = asyncio.run(_interpreter(inference_client).analyze(b"not an image"))

    assert result.is_fallback
    assert inference_client.calls == []


def test_parallel_classification_assembles_all_results(
    inference_client: ScriptedInferenceClient,
) -> None:
    inference_client.delays.update(
        {"nutrition": 0.03, "meal_type": 0.02, "health_score": 0.01}
    )
    interpreter = _interpreter(inference_client, parallel_classification=True)

    result = asyncio.run(interpreter.analyze(make_image()))

    assert result.state == InterpreterState.NORMALIZED
    assert result.record.name == "Apple"
    assert result.record.meal_type == "snack"
    assert result.record.health_score == 9
    assert inference_client.steps()[0] == "presence"
    assert sorted(inference_client.steps()[1:]) == [
        "health_score",
        "meal_type",
        "nutrition",
    ]


def test_parallel_failure_waits_for_siblings_then_falls_back(
    inference_client: ScriptedInferenceClient,
) -> None:
    inference_client.replies["meal_type"] = InferenceUnavailable("boom")
    inference_client.delays["health_score"] = 0.02
    interpreter = _interpreter(inference_client, parallel_classification=True)

    result = asyncio.run(interpreter.analyze(make_image()))

    assert result.is_fallback
    assert len(inference_client.calls) == 4


def test_get_tips_falls_back_on_failure(
    inference_client: ScriptedInferenceClient,
) -> None:
    interpreter = _interpreter(inference_client)
    record = asyncio.run(interpreter.analyze(make_image())).record
    inference_client.replies["tips"] = InferenceUnavailable("down")

    tips = asyncio.run(interpreter.get_tips(record))

    assert tips == list(FALLBACK_NUTRITION_TIPS)


def test_get_tips_prompt_mentions_the_food(
    inference_client: ScriptedInferenceClient,
) -> None:
    interpreter = _interpreter(inference_client)
    record = asyncio.run(interpreter.analyze(make_image())).record

    asyncio.run(interpreter.get_tips(record))

    prompt = inference_client.prompts_seen[-1]
    assert "- Food: Apple" in prompt
    assert "- Health Score: 9/10" in prompt


def test_parse_nutrition_response_extracts_embedded_json() -> None:
    result = parse_nutrition_response(
        'Sure! {"name": " Toast ", "calories": "120", "fat": null} Hope this helps.'
    )

    assert result.ok
    assert result.payload is not None
    assert result.payload.name == "Toast"
    assert result.payload.calories == 120
    assert result.payload.fat == 0
    assert result.payload.confidence is None


@pytest.mark.parametrize(
    "text",
    [
        "no json here",
        "{not valid json}",
        '{"calories": 100}',
        '{"name": "", "calories": 100}',
        '{"name": "Soup", "calories": null}',
        '{"name": "Soup", "calories": -5}',
    ],
)
def test_parse_nutrition_response_reports_errors(text: str) -> None:
    result = parse_nutrition_response(text)

    assert not result.ok
    assert result.error


def test_parse_nutrition_response_clamps_confidence() -> None:
    result = parse_nutrition_response(
        '{"name": "Cake", "calories": 400, "confidence": 140}'
    )

    assert result.payload is not None
    assert result.payload.confidence == 100


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("8", 8),
        (" 7/10", 7),
        ("0", 5),
        ("12", 10),
        ("-3", 1),
        ("great", 5),
        ("", 5),
    ],
)
def test_parse_health_score(text: str, expected: int) -> None:
    assert parse_health_score(text) == expected


def test_pipeline_rejects_undeclared_transition() -> None:
    pipeline = ScanPipeline(image_ref=None)

    with pytest.raises(IllegalTransitionError):
        pipeline.advance(InterpreterState.NORMALIZED)


def test_pipeline_terminal_states_are_final() -> None:
    pipeline = ScanPipeline(image_ref=None)
    pipeline.advance(InterpreterState.REJECTED)

    with pytest.raises(IllegalTransitionError):
        pipeline.advance(InterpreterState.FALLBACK)
    assert pipeline.history == [InterpreterState.CAPTURED, InterpreterState.REJECTED]
