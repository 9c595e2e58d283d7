"""
User and Session Models

A user is identified by a normalized email address. Sessions are not
stored anywhere: an AccessToken is a signed, time-limited credential
that is verified statelessly on every request.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from expense_tracker.models.common import utc_now


class User(BaseModel):
    """
    A registered account.

    CRITICAL: password_hash is a bcrypt hash. The plaintext password is
    never stored, logged or returned.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique user ID"
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=255,
        description="Normalized (trimmed, lowercase) email address"
    )
    password_hash: str = Field(
        ...,
        min_length=1,
        repr=False,
        description="bcrypt password hash"
    )
    is_active: bool = Field(
        default=True,
        description="Inactive users cannot log in and do not reserve their email"
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        description="When the account was registered"
    )
    last_login_at: Optional[datetime] = Field(
        default=None,
        description="Last successful authentication"
    )


class TokenClaims(BaseModel):
    """Identity recovered from a verified session token."""

    user_id: UUID
    email: str
    expires_at: datetime


class AccessToken(BaseModel):
    """Result of a successful login."""

    token: str = Field(
        ...,
        repr=False,
        description="Signed bearer token"
    )
    token_type: str = Field(
        default="Bearer"
    )
    expires_in: int = Field(
        ...,
        gt=0,
        description="Validity window in seconds"
    )
    expires_at: datetime
    user_id: UUID
    email: str
