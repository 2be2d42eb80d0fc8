"""FastAPI dependency injection for database sessions, auth, and capabilities.

Provides get_async_session, get_current_user, get_current_actor, and the
``require_capability`` factory that guards routes with the role table in
``core.permissions``.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.config import Settings, get_settings
from voter_intake.core.database import get_session_factory
from voter_intake.core.permissions import Action, Actor
from voter_intake.core.security import decode_token
from voter_intake.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Decode the bearer token and return the authenticated, active user.

    Raises:
        HTTPException: 401 if the token is invalid or the user is unknown or inactive.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        if payload.get("type") != "access":
            raise credentials_exception
        user_id = uuid.UUID(str(payload.get("sub")))
    except (jwt.InvalidTokenError, ValueError) as exc:
        raise credentials_exception from exc

    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        raise credentials_exception
    return user


async def get_current_actor(current_user: Annotated[User, Depends(get_current_user)]) -> Actor:
    """Reduce the authenticated user to the identity passed into services."""
    return Actor(user_id=current_user.id, role=current_user.role)


def require_capability(action: Action) -> Callable[..., Any]:
    """Factory that creates a dependency requiring a role capability.

    Args:
        action: The capability the caller's role must grant.

    Returns:
        A FastAPI dependency that yields the caller's Actor.
    """

    async def capability_checker(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if not actor.can(action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role}' does not have the '{action.value}' capability",
            )
        return actor

    return capability_checker
