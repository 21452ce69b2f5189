"""User model type definitions for database operations."""

from typing import TypedDict


class User(TypedDict):
    """User table row representation.

    password_hash and the otp_* columns never leave the service layer.
    """

    id: str
    name: str
    email: str
    phone: str | None
    password_hash: str | None
    avatar: str | None
    google_id: str | None
    otp_hash: str | None
    otp_expires_at: str | None
    otp_attempts: int
    is_verified: bool
    is_blocked: bool
    is_admin: bool
    created_at: str
    updated_at: str


PRIVATE_USER_FIELDS = ("password_hash", "otp_hash", "otp_expires_at", "otp_attempts")
