"""Domain models for accounts."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthSession:
    """Represents a signed-in user session."""

    user_id: str
    access_token: str
    email: str | None = None
