"""Account sign-up and sign-in with bounded network calls."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from nutrisnap.domain.errors import AuthError, PersistenceError
from nutrisnap.domain.models import AuthSession
from nutrisnap.services.documents import UserDocumentRepository
from nutrisnap.services.tracker import initial_document

_logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class AuthGateway(Protocol):
    """Interface for the hosted authentication backend."""

    async def create_account(self, email: str, password: str) -> AuthSession:
        """Create an account and return its session."""

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in and return a session."""

    async def sign_out(self, access_token: str) -> None:
        """Invalidate a session."""

    async def get_user_id(self, access_token: str) -> str | None:
        """Resolve an access token to a user id, or None if invalid."""


@dataclass
class AuthService:
    """Application service for account lifecycle actions."""

    gateway: AuthGateway
    documents: UserDocumentRepository
    timeout_seconds: float = 30.0

    async def sign_up(self, email: str, password: str) -> AuthSession:
        """Create an account and its initial user document."""
        session = await self._bounded(
            self.gateway.create_account(email, password), action="sign up"
        )
        try:
            self.documents.set_document(
                session.user_id, {**initial_document(), "email": email}
            )
        except PersistenceError:
            _logger.exception(
                "Failed to create user document", extra={"user_id": session.user_id}
            )
        return session

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""
        return await self._bounded(
            self.gateway.sign_in(email, password), action="sign in"
        )

    async def sign_out(self, access_token: str) -> None:
        """Sign out; failures are logged and ignored."""
        try:
            await self._bounded(self.gateway.sign_out(access_token), action="sign out")
        except AuthError:
            _logger.exception("Sign out failed")

    async def resolve_user(self, access_token: str) -> str:
        """Return the user id for a token or raise AuthError."""
        user_id = await self._bounded(
            self.gateway.get_user_id(access_token), action="resolve user"
        )
        if not user_id:
            raise AuthError("Invalid or expired session")
        return user_id

    async def _bounded(self, call: Awaitable[_T], *, action: str) -> _T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except TimeoutError as exc:
            raise AuthError(f"{action.capitalize()} timed out") from exc
