"""Authentication and user Pydantic v2 schemas.

Defines request/response schemas for login, token refresh, and user management.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

ROLE_PATTERN = "^(submitter|approver|admin)$"


class RefreshRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """JWT token pair response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Access token expiration in seconds")


class UserCreateRequest(BaseModel):
    """Request to create a new user."""

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    full_name: str | None = Field(default=None, max_length=200)
    password: str = Field(min_length=8)
    role: str = Field(default="submitter", pattern=ROLE_PATTERN)


class UserResponse(BaseModel):
    """User information response."""

    id: UUID
    username: str
    email: str
    full_name: str | None = None
    role: str
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}
