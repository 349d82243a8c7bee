"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from nutrisnap.adapters.openai_inference_client import OpenAIInferenceClient
from nutrisnap.adapters.supabase_auth_gateway import SupabaseAuthGateway
from nutrisnap.adapters.supabase_document_repository import (
    SupabaseDocumentRepository,
)
from nutrisnap.config import Settings
from nutrisnap.services.auth import AuthService
from nutrisnap.services.documents import DebouncedWriter
from nutrisnap.services.history import HistoryService
from nutrisnap.services.interpreter import FoodImageInterpreter
from nutrisnap.services.meal_plan import MealPlanService
from nutrisnap.services.tracker import TrackerRegistry
from nutrisnap.services.tracking import TrackingService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    auth_service: AuthService
    trackers: TrackerRegistry
    interpreter: FoodImageInterpreter
    meal_plan_service: MealPlanService
    history_service: HistoryService
    tracking_service: TrackingService
    writer: DebouncedWriter
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    # Auth gets its own client: signing in swaps the client's bearer token.
    data_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    auth_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    documents = SupabaseDocumentRepository(
        data_client, table_name=resolved_settings.supabase_documents_table
    )
    writer = DebouncedWriter(
        repository=documents,
        delay_seconds=resolved_settings.persistence_debounce_seconds,
    )
    inference_client = OpenAIInferenceClient.create(
        resolved_settings.openai_api_key,
        store=resolved_settings.openai_store,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
    )
    interpreter = FoodImageInterpreter(
        client=inference_client,
        model=resolved_settings.openai_model,
        max_output_tokens=resolved_settings.inference_max_output_tokens,
        temperature=resolved_settings.inference_temperature,
        timeout_seconds=resolved_settings.inference_timeout_seconds,
        parallel_classification=resolved_settings.parallel_classification,
    )
    auth_service = AuthService(
        gateway=SupabaseAuthGateway(auth_client),
        documents=documents,
        timeout_seconds=resolved_settings.auth_timeout_seconds,
    )

    async def close_resources() -> None:
        await writer.flush()
        await inference_client.client.close()

    return AppContainer(
        settings=resolved_settings,
        auth_service=auth_service,
        trackers=TrackerRegistry(repository=documents, writer=writer),
        interpreter=interpreter,
        meal_plan_service=MealPlanService(interpreter),
        history_service=HistoryService(documents),
        tracking_service=TrackingService(documents),
        writer=writer,
        close_resources=close_resources,
    )
