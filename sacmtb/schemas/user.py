"""User profile schemas."""

from datetime import datetime

from pydantic import Field

from sacmtb.schemas.common import CamelModel


class UserResponse(CamelModel):
    """Public view of a user. Credentials and OTP state are never included."""

    id: str = Field(description="User ID")
    name: str = Field(description="Display name")
    email: str = Field(description="Email address")
    phone: str | None = Field(default=None, description="Phone number (digits only)")
    avatar: str | None = Field(default=None, description="Avatar image URL")
    is_verified: bool = Field(default=False, description="Whether the email was verified")
    is_blocked: bool = Field(default=False, description="Whether the user is blocked")
    is_admin: bool = Field(default=False, description="Whether the user is an admin")
    created_at: datetime | None = Field(default=None, description="Registration timestamp")


class ProfileUpdateRequest(CamelModel):
    """Request schema for updating the caller's profile.

    Blank values are ignored.
    """

    name: str | None = Field(default=None, max_length=255, description="Display name")
    phone: str | None = Field(default=None, max_length=32, description="Phone number")
    avatar: str | None = Field(default=None, max_length=2048, description="Avatar image URL")


class BlockToggleResponse(CamelModel):
    """Result of blocking or unblocking a user."""

    message: str = Field(description="Result message")
    user: UserResponse = Field(description="The updated user")
