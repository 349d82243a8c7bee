"""Request dependencies shared by the API routers."""

from datetime import datetime

from fastapi import Depends, Header, HTTPException, Request, status

from nutrisnap.config import parse_bearer_token
from nutrisnap.containers import AppContainer
from nutrisnap.services.tracking import local_now


def get_container(request: Request) -> AppContainer:
    """Return the container attached to the running app."""
    return request.app.state.container


async def require_token(authorization: str | None = Header(default=None)) -> str:
    """Ensure requests carry a bearer token."""
    token = parse_bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
        )
    return token


async def require_user(
    token: str = Depends(require_token),
    container: AppContainer = Depends(get_container),
) -> str:
    """Resolve the bearer token to a user id; AuthError maps to 401."""
    return await container.auth_service.resolve_user(token)


def current_time(
    x_timezone: str | None = Header(default=None),
    container: AppContainer = Depends(get_container),
) -> datetime:
    """Return now in the caller's timezone, used for the local calendar day."""
    return local_now(x_timezone or container.settings.default_timezone)
