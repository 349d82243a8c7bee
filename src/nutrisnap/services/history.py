"""Food history service."""

from dataclasses import dataclass
from typing import Protocol

from nutrisnap.domain.errors import ValidationError
from nutrisnap.domain.nutrition import FoodRecord


class HistoryRepository(Protocol):
    """Persistence interface for the food history list."""

    def get_document(self, user_id: str) -> dict[str, object] | None:
        """Return the stored user document."""

    def update_fields(self, user_id: str, fields: dict[str, object]) -> None:
        """Overwrite the given top-level fields."""


@dataclass
class HistoryService:
    """Reads and prunes the user's food history."""

    repository: HistoryRepository

    def list_history(self, user_id: str, limit: int | None = None) -> list[FoodRecord]:
        """Return history records, newest first."""
        if limit is not None and limit < 1:
            raise ValidationError({"limit": "Limit must be at least 1"})
        records = self._load(user_id)
        records.sort(key=lambda record: record.captured_at, reverse=True)
        return records[:limit] if limit is not None else records

    def delete_food(self, user_id: str, food_id: str) -> bool:
        """Remove a record from history; return False if it was not found."""
        records = self._load(user_id)
        kept = [record for record in records if record.id != food_id]
        if len(kept) == len(records):
            return False
        self.repository.update_fields(
            user_id, {"foodHistory": [record.to_document() for record in kept]}
        )
        return True

    def _load(self, user_id: str) -> list[FoodRecord]:
        document = self.repository.get_document(user_id) or {}
        return [
            FoodRecord.from_document(item)
            for item in document.get("foodHistory") or []
            if isinstance(item, dict)
        ]
