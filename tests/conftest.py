"""Shared test fixtures."""

import asyncio
import json
from dataclasses import dataclass, field
from io import BytesIO
from uuid import uuid4

import pytest
from PIL import Image

from nutrisnap.config import Settings
from nutrisnap.containers import AppContainer
from nutrisnap.domain.errors import AuthError, PersistenceError
from nutrisnap.domain.models import AuthSession
from nutrisnap.services import prompts
from nutrisnap.services.auth import AuthGateway, AuthService
from nutrisnap.services.documents import DebouncedWriter, UserDocumentRepository
from nutrisnap.services.history import HistoryService
from nutrisnap.services.interpreter import FoodImageInterpreter, InferenceClient
from nutrisnap.services.meal_plan import MealPlanService
from nutrisnap.services.tracker import TrackerRegistry
from nutrisnap.services.tracking import TrackingService

APPLE_JSON = json.dumps(
    {
        "name": "Apple",
        "calories": 95,
        "protein": 0.5,
        "carbs": 25,
        "fat": 0.3,
        "fiber": 4.4,
        "sugar": 19,
        "sodium": 2,
        "servingSize": "1 medium",
        "confidence": 90,
    }
)

MEAL_PLAN_JSON = json.dumps(
    {
        "breakfast": [
            {
                "item": "Porridge",
                "calories": 300,
                "protein": 10,
                "carbs": 50,
                "fat": 6,
                "description": "Oats with milk",
            }
        ],
        "lunch": [
            {"item": "Chicken Wrap", "calories": 500, "protein": 35, "carbs": 45, "fat": 15}
        ],
        "dinner": [
            {"item": "Tofu Curry", "calories": 600, "protein": 25, "carbs": 70, "fat": 20}
        ],
        "snacks": [
            {"item": "Banana", "calories": 105, "protein": 1, "carbs": 27, "fat": 0.4}
        ],
    }
)


def make_image(width: int = 64, height: int = 48, mode: str = "RGB") -> bytes:
    """Return PNG bytes for a solid-colour test image."""
    color = (200, 80, 40, 128) if mode == "RGBA" else (200, 80, 40)
    buffer = BytesIO()
    Image.new(mode, (width, height), color).save(buffer, "PNG")
    return buffer.getvalue()


def prompt_step(prompt: str) -> str:
    """Name the analysis step a prompt belongs to."""
    if prompt == prompts.PRESENCE_PROMPT:
        return "presence"
    if prompt == prompts.NUTRITION_PROMPT:
        return "nutrition"
    if prompt == prompts.MEAL_TYPE_PROMPT:
        return "meal_type"
    if prompt == prompts.HEALTH_SCORE_PROMPT:
        return "health_score"
    if prompt.startswith("Based on this food analysis"):
        return "tips"
    return "meal_plan"


@dataclass
class ScriptedInferenceClient(InferenceClient):
    """Fake inference client answering each step from a script."""

    replies: dict[str, str | Exception] = field(
        default_factory=lambda: {
            "presence": "food",
            "nutrition": f"Here you go:\n{APPLE_JSON}\nEnjoy!",
            "meal_type": " Snack\n",
            "health_score": "9",
            "tips": "Eat the skin for fiber.\n\nPair with nut butter for protein.",
            "meal_plan": MEAL_PLAN_JSON,
        }
    )
    delays: dict[str, float] = field(default_factory=dict)
    calls: list[tuple[str, str | None]] = field(default_factory=list)
    prompts_seen: list[str] = field(default_factory=list)

    async def generate(
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str | None,
        max_output_tokens: int,
        temperature: float,
    ) -> str:
        step = prompt_step(prompt)
        self.calls.append((step, image_data_url))
        self.prompts_seen.append(prompt)
        delay = self.delays.get(step, 0.0)
        if delay:
            await asyncio.sleep(delay)
        reply = self.replies[step]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def steps(self) -> list[str]:
        return [step for step, _ in self.calls]


@dataclass
class InMemoryDocumentRepository(UserDocumentRepository):
    """In-memory user document store with injectable write failures."""

    documents: dict[str, dict[str, object]] = field(default_factory=dict)
    fail_writes: int = 0
    fail_reads: bool = False
    writes: list[tuple[str, dict[str, object]]] = field(default_factory=list)

    def get_document(self, user_id: str) -> dict[str, object] | None:
        if self.fail_reads:
            raise PersistenceError("read failed")
        document = self.documents.get(user_id)
        return json.loads(json.dumps(document)) if document is not None else None

    def set_document(self, user_id: str, data: dict[str, object]) -> None:
        self._maybe_fail()
        self.documents[user_id] = json.loads(json.dumps(data))
        self.writes.append(("set", dict(data)))

    def update_fields(self, user_id: str, fields: dict[str, object]) -> None:
        self._maybe_fail()
        if user_id not in self.documents:
            raise PersistenceError(f"No document for user {user_id}")
        self.documents[user_id].update(json.loads(json.dumps(fields)))
        self.writes.append(("update", dict(fields)))

    def append_to_array_field(self, user_id: str, field: str, value: object) -> None:
        self._maybe_fail()
        document = self.documents.get(user_id)
        if document is None:
            raise PersistenceError(f"No document for user {user_id}")
        current = document.get(field) or []
        document[field] = [*current, json.loads(json.dumps(value))]
        self.writes.append(("append", {field: value}))

    def _maybe_fail(self) -> None:
        if self.fail_writes > 0:
            self.fail_writes -= 1
            raise PersistenceError("write failed")


@dataclass
class FakeAuthGateway(AuthGateway):
    """In-memory auth backend issuing opaque tokens."""

    accounts: dict[str, tuple[str, str]] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)
    signed_out: list[str] = field(default_factory=list)
    delay: float = 0.0

    async def create_account(self, email: str, password: str) -> AuthSession:
        await self._wait()
        if email in self.accounts:
            raise AuthError("User already registered")
        user_id = uuid4().hex
        self.accounts[email] = (password, user_id)
        return self._issue(user_id, email)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        await self._wait()
        account = self.accounts.get(email)
        if account is None or account[0] != password:
            raise AuthError("Invalid login credentials")
        return self._issue(account[1], email)

    async def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)
        self.tokens.pop(access_token, None)

    async def get_user_id(self, access_token: str) -> str | None:
        return self.tokens.get(access_token)

    def issue_token(self, user_id: str) -> str:
        token = f"token-{uuid4().hex}"
        self.tokens[token] = user_id
        return token

    def _issue(self, user_id: str, email: str) -> AuthSession:
        return AuthSession(
            user_id=user_id, access_token=self.issue_token(user_id), email=email
        )

    async def _wait(self) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        openai_api_key="openai-key",
    )


@pytest.fixture
def documents() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def inference_client() -> ScriptedInferenceClient:
    return ScriptedInferenceClient()


@pytest.fixture
def auth_gateway() -> FakeAuthGateway:
    return FakeAuthGateway()


@pytest.fixture
def container(
    settings: Settings,
    documents: InMemoryDocumentRepository,
    inference_client: ScriptedInferenceClient,
    auth_gateway: FakeAuthGateway,
) -> AppContainer:
    writer = DebouncedWriter(
        repository=documents, delay_seconds=0.01, retry_delay_seconds=0.0
    )
    interpreter = FoodImageInterpreter(
        client=inference_client,
        model=settings.openai_model,
        timeout_seconds=1.0,
    )

    async def close_resources() -> None:
        await writer.flush()

    return AppContainer(
        settings=settings,
        auth_service=AuthService(
            gateway=auth_gateway, documents=documents, timeout_seconds=1.0
        ),
        trackers=TrackerRegistry(repository=documents, writer=writer),
        interpreter=interpreter,
        meal_plan_service=MealPlanService(interpreter),
        history_service=HistoryService(documents),
        tracking_service=TrackingService(documents),
        writer=writer,
        close_resources=close_resources,
    )
