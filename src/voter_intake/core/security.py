"""JWT token creation/validation and password hashing.

Uses PyJWT for JWT operations and passlib with bcrypt for password hashing.
Access tokens carry the user id as ``sub`` and the role as ``role``.
"""

from datetime import UTC, datetime, timedelta

import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt.

    Args:
        password: The password as entered by the user.

    Returns:
        The bcrypt hash to store on the user row.
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a bcrypt hash.

    Args:
        plain_password: The password presented at login.
        hashed_password: The stored bcrypt hash.

    Returns:
        Whether the password matches the hash.
    """
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    subject: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 30,
) -> str:
    """Create a JWT access token.

    Args:
        subject: The token subject (the user id as a string).
        role: The user's role.
        secret_key: Secret key for signing.
        algorithm: JWT signing algorithm.
        expires_minutes: Token expiration in minutes.

    Returns:
        The encoded JWT string.
    """
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": subject,
        "role": role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def create_refresh_token(
    subject: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_days: int = 7,
) -> str:
    """Create a JWT refresh token.

    Refresh tokens carry no role; the role is re-read from the user row
    when a new access token is issued.

    Args:
        subject: The token subject (the user id as a string).
        secret_key: Secret key for signing.
        algorithm: JWT signing algorithm.
        expires_days: Token lifetime in days.

    Returns:
        The encoded JWT string.
    """
    expire = datetime.now(UTC) + timedelta(days=expires_days)
    payload = {
        "sub": subject,
        "exp": expire,
        "type": "refresh",
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict:
    """Decode and validate a JWT token.

    Args:
        token: The encoded JWT from the request.
        secret_key: Secret key the token was signed with.
        algorithm: Expected signing algorithm.

    Returns:
        The token payload; callers check its ``type`` claim.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is invalid.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm])
