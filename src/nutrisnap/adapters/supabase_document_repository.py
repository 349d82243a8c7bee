"""Supabase-backed user document repository."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from supabase import Client

from nutrisnap.domain.errors import PersistenceError
from nutrisnap.services.documents import UserDocumentRepository

_T = TypeVar("_T")

# Document keys and their columns in the user_documents table.
COLUMNS = {
    "profile": "profile",
    "dailyNutrition": "daily_nutrition",
    "mealPlan": "meal_plan",
    "scannedFoods": "scanned_foods",
    "foodHistory": "food_history",
    "lastResetDate": "last_reset_date",
    "waterEntries": "water_entries",
    "weightEntries": "weight_entries",
    "waterGoal": "water_goal",
    "weightGoal": "weight_goal",
    "email": "email",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}
_KEYS = {column: key for key, column in COLUMNS.items()}


@dataclass
class SupabaseDocumentRepository(UserDocumentRepository):
    """Stores one row per user with JSON columns."""

    client: Client
    table_name: str = "user_documents"

    def get_document(self, user_id: str) -> dict[str, object] | None:
        """Return the stored document for a user, if present."""
        response = self._run(
            lambda: self.client.table(self.table_name)
            .select("*")
            .eq("user_id", user_id)
            .limit(1)
            .execute(),
            action="get",
        )
        if not response.data:
            return None
        row = response.data[0]
        return {_KEYS[column]: value for column, value in row.items() if column in _KEYS}

    def set_document(self, user_id: str, data: dict[str, object]) -> None:
        """Create or replace the document for a user."""
        payload = {"user_id": user_id, **_to_columns(data)}
        self._run(
            lambda: self.client.table(self.table_name)
            .upsert(payload, on_conflict="user_id")
            .execute(),
            action="set",
        )

    def update_fields(self, user_id: str, fields: dict[str, object]) -> None:
        """Overwrite top-level fields of a user's document."""
        self._run(
            lambda: self.client.table(self.table_name)
            .update(_to_columns(fields))
            .eq("user_id", user_id)
            .execute(),
            action="update",
        )

    def append_to_array_field(self, user_id: str, field: str, value: object) -> None:
        """Append a value to an array column with a read-modify-write."""
        column = _column(field)
        response = self._run(
            lambda: self.client.table(self.table_name)
            .select(column)
            .eq("user_id", user_id)
            .limit(1)
            .execute(),
            action="append",
        )
        if not response.data:
            raise PersistenceError(f"No document for user {user_id}")
        current = response.data[0].get(column) or []
        if not isinstance(current, list):
            current = []
        self._run(
            lambda: self.client.table(self.table_name)
            .update({column: [*current, value]})
            .eq("user_id", user_id)
            .execute(),
            action="append",
        )

    def _run(self, call: Callable[[], _T], *, action: str) -> _T:
        try:
            return call()
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"Supabase {action} failed: {exc}") from exc


def _column(key: str) -> str:
    column = COLUMNS.get(key)
    if column is None:
        raise PersistenceError(f"Unknown document field: {key}")
    return column


def _to_columns(data: dict[str, object]) -> dict[str, object]:
    return {_column(key): value for key, value in data.items()}
