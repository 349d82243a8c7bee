"""Supabase Auth implementation of the auth gateway."""

import asyncio
from dataclasses import dataclass

from supabase import Client

from nutrisnap.domain.errors import AuthError
from nutrisnap.domain.models import AuthSession
from nutrisnap.services.auth import AuthGateway


@dataclass
class SupabaseAuthGateway(AuthGateway):
    """Runs the blocking Supabase auth calls in a worker thread."""

    client: Client

    async def create_account(self, email: str, password: str) -> AuthSession:
        """Sign up with email and password."""
        response = await self._call(
            self.client.auth.sign_up, {"email": email, "password": password}
        )
        return _to_session(response, email)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password."""
        response = await self._call(
            self.client.auth.sign_in_with_password,
            {"email": email, "password": password},
        )
        return _to_session(response, email)

    async def sign_out(self, access_token: str) -> None:
        """Revoke every session for the token's user."""
        await self._call(self.client.auth.admin.sign_out, access_token)

    async def get_user_id(self, access_token: str) -> str | None:
        """Resolve a JWT to a user id."""
        try:
            response = await self._call(self.client.auth.get_user, access_token)
        except AuthError:
            return None
        user = getattr(response, "user", None)
        return str(user.id) if user is not None else None

    async def _call(self, func, *args):  # type: ignore[no-untyped-def]
        try:
            return await asyncio.to_thread(func, *args)
        except Exception as exc:
            raise AuthError(str(exc) or "Authentication failed") from exc


def _to_session(response: object, email: str) -> AuthSession:
    user = getattr(response, "user", None)
    session = getattr(response, "session", None)
    if user is None:
        raise AuthError("Authentication returned no user")
    token = getattr(session, "access_token", None) or ""
    return AuthSession(user_id=str(user.id), access_token=token, email=email)
