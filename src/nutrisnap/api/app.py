"""FastAPI application factory."""

import base64
import binascii
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from nutrisnap.api.dependencies import (
    current_time,
    get_container,
    require_token,
    require_user,
)
from nutrisnap.api.models import (
    Credentials,
    FoodInput,
    MealPlanRequest,
    ProfileUpdate,
    ScanRequest,
)
from nutrisnap.api.tracking import router as tracking_router
from nutrisnap.app_logging import configure_logging
from nutrisnap.containers import AppContainer
from nutrisnap.domain.errors import (
    AuthError,
    NotFoodError,
    PersistenceError,
    ValidationError,
)
from nutrisnap.domain.models import AuthSession
from nutrisnap.domain.nutrition import FoodRecord, NutritionState
from nutrisnap.domain.profile import validate_profile_input
from nutrisnap.services.aggregator import compute_target
from nutrisnap.services.meal_plan import entry_to_food


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(tracking_router)

    @app.exception_handler(NotFoodError)
    async def not_food_handler(request: Request, exc: NotFoodError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"code": exc.code, "detail": str(exc)},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"code": "VALIDATION_ERROR", "fields": exc.field_errors},
        )

    @app.exception_handler(AuthError)
    async def auth_handler(request: Request, exc: AuthError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"code": "AUTH_FAILED", "detail": str(exc)},
        )

    @app.exception_handler(PersistenceError)
    async def persistence_handler(
        request: Request, exc: PersistenceError
    ) -> JSONResponse:
        logger.error("Storage request failed: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"code": "STORAGE_UNAVAILABLE", "detail": "Please try again."},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/auth/signup", status_code=status.HTTP_201_CREATED)
    async def sign_up(
        payload: Credentials, container: AppContainer = Depends(get_container)
    ) -> dict[str, object]:
        """Create an account with its initial nutrition document."""
        session = await container.auth_service.sign_up(
            payload.email, payload.password
        )
        return _session_body(session)

    @app.post("/auth/login")
    async def login(
        payload: Credentials, container: AppContainer = Depends(get_container)
    ) -> dict[str, object]:
        """Sign in with email and password."""
        session = await container.auth_service.sign_in(payload.email, payload.password)
        return _session_body(session)

    @app.post("/auth/logout")
    async def logout(
        token: str = Depends(require_token),
        user_id: str = Depends(require_user),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, str]:
        """Flush pending writes and end the session."""
        await container.writer.flush(user_id)
        container.trackers.forget(user_id)
        await container.auth_service.sign_out(token)
        return {"status": "ok"}

    @app.get("/me/nutrition")
    async def nutrition(
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return today's totals, scanned foods, and profile."""
        tracker = await container.trackers.get(user_id, now.date())
        return _state_body(tracker.state)

    @app.post("/me/nutrition/reset")
    async def reset_nutrition(
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Zero today's totals, keeping the calorie target."""
        tracker = await container.trackers.get(user_id, now.date())
        state = await tracker.reset_daily(now.date())
        return _state_body(state)

    @app.get("/me/profile")
    async def get_profile(
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return the profile and its calorie target."""
        tracker = await container.trackers.get(user_id, now.date())
        profile = tracker.state.profile
        return {"profile": profile.to_document(), "target": compute_target(profile)}

    @app.put("/me/profile")
    async def update_profile(
        payload: ProfileUpdate,
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Validate and save the profile, recomputing the calorie target."""
        profile = validate_profile_input(payload.model_dump(by_alias=True))
        tracker = await container.trackers.get(user_id, now.date())
        state = await tracker.update_profile(profile)
        return {
            "profile": state.profile.to_document(),
            "dailyNutrition": state.daily.to_document(),
        }

    @app.post("/me/scans")
    async def scan_food(
        payload: ScanRequest,
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Analyse a food photo and, unless disabled, log it for today."""
        image_bytes = _decode_image(payload.image_base64)
        result = await container.interpreter.scan(image_bytes, payload.image_ref)
        if result.is_fallback:
            logger.info(
                "Using fallback analysis",
                extra={"user_id": user_id, "reason": result.reason},
            )
        body: dict[str, object] = {
            "food": result.record.to_document(),
            "state": result.state.value,
            "isFallback": result.is_fallback,
            "logged": payload.log_food,
        }
        if payload.log_food:
            tracker = await container.trackers.get(user_id, now.date())
            state = await tracker.add_food(result.record)
            body["dailyNutrition"] = state.daily.to_document()
        return body

    @app.post("/me/foods", status_code=status.HTTP_201_CREATED)
    async def add_food(
        payload: FoodInput,
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Add a food to today's totals and the history."""
        food = FoodRecord.from_document(
            payload.model_dump(by_alias=True, exclude_none=True)
        )
        tracker = await container.trackers.get(user_id, now.date())
        state = await tracker.add_food(food)
        return {
            "food": food.to_document(),
            "dailyNutrition": state.daily.to_document(),
        }

    @app.get("/me/history")
    async def history(
        limit: int | None = Query(default=None, ge=1),
        user_id: str = Depends(require_user),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return logged foods, newest first."""
        records = container.history_service.list_history(user_id, limit=limit)
        return {"foods": [record.to_document() for record in records]}

    @app.delete("/me/history/{food_id}")
    async def delete_history_item(
        food_id: str,
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, str]:
        """Delete a food from the history and today's scanned list."""
        deleted = container.history_service.delete_food(user_id, food_id)
        tracker = await container.trackers.get(user_id, now.date())
        tracker.remove_scanned_food(food_id)
        if not deleted:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Food not found"
            )
        return {"status": "deleted"}

    @app.get("/me/meal-plan")
    async def meal_plan(
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Return the current meal plan."""
        tracker = await container.trackers.get(user_id, now.date())
        plan = tracker.state.meal_plan
        return {"mealPlan": plan.to_document(), "totalCalories": plan.total_calories()}

    @app.post("/me/meal-plan")
    async def generate_meal_plan(
        payload: MealPlanRequest,
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Generate a new plan for the user's profile and replace the old one."""
        tracker = await container.trackers.get(user_id, now.date())
        result = await container.meal_plan_service.generate(
            tracker.state.profile, payload.preferences
        )
        state = await tracker.update_meal_plan(result.plan)
        return {
            "mealPlan": state.meal_plan.to_document(),
            "totalCalories": state.meal_plan.total_calories(),
            "isSample": result.is_sample,
        }

    @app.post("/me/meal-plan/{entry_id}/add", status_code=status.HTTP_201_CREATED)
    async def add_meal_plan_entry(
        entry_id: str,
        user_id: str = Depends(require_user),
        now: datetime = Depends(current_time),
        container: AppContainer = Depends(get_container),
    ) -> dict[str, object]:
        """Log a meal plan entry as eaten."""
        tracker = await container.trackers.get(user_id, now.date())
        found = tracker.state.meal_plan.find_entry(entry_id)
        if found is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Meal plan entry not found",
            )
        category, entry = found
        food = entry_to_food(category, entry)
        state = await tracker.add_food(food)
        return {
            "food": food.to_document(),
            "dailyNutrition": state.daily.to_document(),
        }

    return app


def _session_body(session: AuthSession) -> dict[str, object]:
    return {
        "userId": session.user_id,
        "accessToken": session.access_token,
        "email": session.email,
    }


def _state_body(state: NutritionState) -> dict[str, object]:
    return {
        **state.to_document(),
        "targetFromProfile": compute_target(state.profile),
    }


def _decode_image(raw: str) -> bytes:
    data = raw.strip()
    if data.startswith("data:"):
        _, _, data = data.partition(",")
    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError({"image": "Image must be base64 encoded"}) from exc
    if not image_bytes:
        raise ValidationError({"image": "Image is empty"})
    return image_bytes
