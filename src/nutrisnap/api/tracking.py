"""Water and weight tracking endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, status

from nutrisnap.api.dependencies import current_time, get_container, require_user
from nutrisnap.api.models import AmountInput, GoalInput, WeightInput
from nutrisnap.containers import AppContainer
from nutrisnap.domain.tracking import WaterSummary, WeightSummary

router = APIRouter(prefix="/me", tags=["tracking"])


@router.get("/water")
async def water_summary(
    user_id: str = Depends(require_user),
    now: datetime = Depends(current_time),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return today's water intake against the goal."""
    summary = container.tracking_service.water_summary(user_id, now)
    return _water_body(summary)


@router.post("/water", status_code=status.HTTP_201_CREATED)
async def add_water(
    payload: AmountInput,
    user_id: str = Depends(require_user),
    now: datetime = Depends(current_time),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Log a water intake in fluid ounces."""
    container.tracking_service.add_water(user_id, payload.amount, now)
    return _water_body(container.tracking_service.water_summary(user_id, now))


@router.put("/water/goal")
async def set_water_goal(
    payload: GoalInput,
    user_id: str = Depends(require_user),
    now: datetime = Depends(current_time),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Set the daily water goal."""
    container.tracking_service.set_water_goal(user_id, payload.goal)
    return _water_body(container.tracking_service.water_summary(user_id, now))


@router.get("/weight")
async def weight_summary(
    user_id: str = Depends(require_user),
    now: datetime = Depends(current_time),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Return weight progress."""
    summary = container.tracking_service.weight_summary(user_id, now)
    return _weight_body(summary)


@router.post("/weight", status_code=status.HTTP_201_CREATED)
async def add_weight(
    payload: WeightInput,
    user_id: str = Depends(require_user),
    now: datetime = Depends(current_time),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Log a body weight in pounds."""
    container.tracking_service.add_weight(user_id, payload.weight, now)
    return _weight_body(container.tracking_service.weight_summary(user_id, now))


@router.put("/weight/goal")
async def set_weight_goal(
    payload: GoalInput,
    user_id: str = Depends(require_user),
    now: datetime = Depends(current_time),
    container: AppContainer = Depends(get_container),
) -> dict[str, object]:
    """Set the target weight."""
    container.tracking_service.set_weight_goal(user_id, payload.goal)
    return _weight_body(container.tracking_service.weight_summary(user_id, now))


def _water_body(summary: WaterSummary) -> dict[str, object]:
    return {
        "todayTotal": summary.today_total,
        "goal": summary.goal,
        "progressPercentage": summary.progress_percentage,
        "remaining": summary.remaining,
        "weeklyAverage": summary.weekly_average,
        "entries": [entry.to_document() for entry in summary.entries],
    }


def _weight_body(summary: WeightSummary) -> dict[str, object]:
    return {
        "latest": summary.latest,
        "goal": summary.goal,
        "change": summary.change,
        "weeklyAverage": summary.weekly_average,
        "entries": [entry.to_document() for entry in summary.entries],
    }
