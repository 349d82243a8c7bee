"""User document persistence port and write scheduling."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from nutrisnap.domain.errors import PersistenceError

_logger = logging.getLogger(__name__)


class UserDocumentRepository(Protocol):
    """Persistence interface for the per-user document."""

    def get_document(self, user_id: str) -> dict[str, object] | None:
        """Return the stored document, or None when absent."""

    def set_document(self, user_id: str, data: dict[str, object]) -> None:
        """Create or replace the whole document."""

    def update_fields(self, user_id: str, fields: dict[str, object]) -> None:
        """Overwrite the given top-level fields."""

    def append_to_array_field(self, user_id: str, field: str, value: object) -> None:
        """Append a value to an array field."""


@dataclass
class DebouncedWriter:
    """Writes document fields with a single retry, optionally coalesced.

    Failures are logged and swallowed; callers keep their in-memory state.
    """

    repository: UserDocumentRepository
    delay_seconds: float = 1.0
    retry_delay_seconds: float = 0.3
    _pending: dict[str, dict[str, object]] = field(default_factory=dict)
    _timers: dict[str, asyncio.Task[None]] = field(default_factory=dict)

    def schedule(self, user_id: str, fields: dict[str, object]) -> None:
        """Queue fields for a coalesced write after the debounce window."""
        pending = self._pending.setdefault(user_id, {})
        pending.update(fields)
        if user_id in self._timers:
            return
        self._timers[user_id] = asyncio.get_running_loop().create_task(
            self._flush_later(user_id)
        )

    async def write_now(self, user_id: str, fields: dict[str, object]) -> bool:
        """Write fields immediately; return False if both attempts failed."""
        payload = {**fields, "updatedAt": _now_iso()}
        return await self._with_retry(
            lambda: self.repository.update_fields(user_id, payload),
            action=f"update_fields:{','.join(sorted(fields))}",
        )

    async def append_now(self, user_id: str, field_name: str, value: object) -> bool:
        """Append to an array field immediately with a single retry."""
        return await self._with_retry(
            lambda: self.repository.append_to_array_field(user_id, field_name, value),
            action=f"append:{field_name}",
        )

    async def flush(self, user_id: str | None = None) -> None:
        """Write pending fields now, for one user or everyone."""
        user_ids = [user_id] if user_id is not None else list(self._pending)
        for key in user_ids:
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            fields = self._pending.pop(key, None)
            if fields:
                await self.write_now(key, fields)

    def has_pending(self, user_id: str) -> bool:
        """Return True when a coalesced write is waiting for a user."""
        return user_id in self._pending

    async def _flush_later(self, user_id: str) -> None:
        await asyncio.sleep(self.delay_seconds)
        self._timers.pop(user_id, None)
        fields = self._pending.pop(user_id, None)
        if fields:
            await self.write_now(user_id, fields)

    async def _with_retry(self, func: Callable[[], None], *, action: str) -> bool:
        for attempt in (1, 2):
            try:
                func()
            except PersistenceError:
                if attempt == 1:
                    _logger.warning("Persistence %s failed, retrying once", action)
                    await asyncio.sleep(self.retry_delay_seconds)
                    continue
                _logger.exception("Persistence %s failed after retry", action)
                return False
            return True
        return False


def _now_iso() -> str:
    return datetime.now(tz=UTC).isoformat()
