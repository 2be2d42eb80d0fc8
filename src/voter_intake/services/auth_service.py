"""Authentication and user management service.

Handles user authentication, creation, token generation, and refresh.
Tokens identify the user by id so a renamed account keeps its session.
"""

import uuid
from datetime import UTC, datetime

import jwt
from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from voter_intake.core.config import Settings
from voter_intake.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from voter_intake.models.user import User
from voter_intake.schemas.auth import TokenResponse, UserCreateRequest


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    """Authenticate a user by username and password.

    Args:
        session: The database session.
        username: The username to authenticate.
        password: The plaintext password.

    Returns:
        The User if authentication succeeds, None otherwise.
    """
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    user.last_login_at = datetime.now(UTC)
    await session.commit()
    return user


async def create_user(session: AsyncSession, request: UserCreateRequest) -> User:
    """Create a new user.

    Raises:
        ValueError: If username or email already exists.
    """
    existing = await session.execute(
        select(User).where((User.username == request.username) | (User.email == request.email))
    )
    if existing.scalar_one_or_none() is not None:
        msg = "Username or email already exists"
        raise ValueError(msg)

    user = User(
        username=request.username,
        email=request.email,
        full_name=request.full_name,
        hashed_password=hash_password(request.password),
        role=request.role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info(f"Created {user.role} user {user.username}")
    return user


async def list_users(session: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    """List users with pagination.

    Returns:
        Tuple of (users list, total count).
    """
    count_result = await session.execute(select(func.count(User.id)))
    total = count_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(select(User).order_by(User.created_at).offset(offset).limit(page_size))
    return list(result.scalars().all()), total


async def get_user(session: AsyncSession, user_id: uuid.UUID) -> User | None:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


def generate_tokens(user: User, settings: Settings) -> TokenResponse:
    """Generate access and refresh tokens for a user.

    Args:
        user: The authenticated user.
        settings: Application settings.

    Returns:
        Token response with access and refresh tokens.
    """
    access_token = create_access_token(
        subject=str(user.id),
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_access_token_expire_minutes,
    )
    refresh_token = create_refresh_token(
        subject=str(user.id),
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_days=settings.jwt_refresh_token_expire_days,
    )
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


async def refresh_access_token(
    session: AsyncSession,
    refresh_token_str: str,
    settings: Settings,
) -> TokenResponse:
    """Issue a new token pair from a refresh token.

    Raises:
        ValueError: If the refresh token is invalid or the user is not found.
    """
    try:
        payload = decode_token(refresh_token_str, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.InvalidTokenError as e:
        msg = "Invalid refresh token"
        raise ValueError(msg) from e

    if payload.get("type") != "refresh":
        msg = "Token is not a refresh token"
        raise ValueError(msg)

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError as e:
        msg = "Invalid token payload"
        raise ValueError(msg) from e

    user = await get_user(session, user_id)
    if user is None or not user.is_active:
        msg = "User not found or inactive"
        raise ValueError(msg)

    return generate_tokens(user, settings)


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()
