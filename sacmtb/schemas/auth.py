"""Authentication schemas for tokens, caller context and auth requests."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sacmtb.schemas.common import CamelModel
from sacmtb.schemas.user import UserResponse

EMAIL_PATTERN = r"^\S+@\S+\.\S+$"


class UserContext(BaseModel):
    """Authenticated caller, loaded from the user record named by the token."""

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str = Field(description="User's email address")
    name: str = Field(default="", description="User's display name")
    is_admin: bool = Field(default=False, description="Whether the user has admin rights")

    @property
    def role(self) -> str:
        """Role name carried in issued tokens."""
        return "admin" if self.is_admin else "user"


class TokenPayload(BaseModel):
    """JWT token payload structure.

    Represents the claims contained in a token issued by this service.
    """

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's id")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")

    @property
    def expiration_datetime(self) -> datetime:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp, tz=timezone.utc)


class GoogleIdentity(BaseModel):
    """Identity asserted by a verified Google ID token."""

    sub: str
    email: str
    name: str
    picture: str | None = None


class RegisterRequest(CamelModel):
    """Request schema for registration; an OTP is emailed on success."""

    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=255, description="Email address")
    password: str = Field(..., min_length=1, max_length=100, description="Password")
    phone: str | None = Field(default=None, max_length=32, description="Phone number; non-digits are dropped")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class VerifyOtpRequest(CamelModel):
    """Request schema for confirming a registration OTP."""

    email: str = Field(..., pattern=EMAIL_PATTERN, description="Email address")
    otp: str = Field(..., min_length=1, max_length=12, description="One-time password")


class LoginRequest(CamelModel):
    """Request schema for password login."""

    email: str = Field(..., pattern=EMAIL_PATTERN, description="Email address")
    password: str = Field(..., min_length=1, description="Password")


class GoogleLoginRequest(CamelModel):
    """Request schema for Google Sign-In."""

    token: str = Field(..., min_length=1, description="Google ID token credential")


class ForgotPasswordRequest(CamelModel):
    """Request schema for a password reset OTP."""

    email: str = Field(..., pattern=EMAIL_PATTERN, description="Email address")


class ResetPasswordRequest(CamelModel):
    """Request schema for setting a new password with an emailed OTP."""

    email: str = Field(..., pattern=EMAIL_PATTERN, description="Email address")
    otp: str = Field(..., min_length=1, max_length=12, description="One-time password")
    new_password: str = Field(..., min_length=1, max_length=100, description="New password")


class AdminOtpRequest(CamelModel):
    """Request schema for the admin OTP email."""

    email: str = Field(..., description="Admin email address")


class AdminVerifyOtpRequest(CamelModel):
    """Request schema for admin OTP login."""

    email: str = Field(..., description="Admin email address")
    otp: str = Field(..., min_length=1, max_length=12, description="One-time password")


class AuthResponse(CamelModel):
    """Bearer token plus the public user profile."""

    message: str = Field(description="Result message")
    token: str = Field(description="Bearer token")
    user: UserResponse = Field(description="Authenticated user")
