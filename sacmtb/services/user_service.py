"""User records: lookup, profile updates and admin management."""

import logging
import re
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from sacmtb.api.middleware.error_handler import NotFoundError, ValidationError
from sacmtb.core.supabase import get_supabase_client
from sacmtb.models.user import PRIVATE_USER_FIELDS, User

logger = logging.getLogger(__name__)

_NON_DIGITS = re.compile(r"\D")


def sanitize_phone(phone: str | None) -> str:
    """Keep only the digits of a phone number."""
    return _NON_DIGITS.sub("", phone or "")


def public_user(user: dict[str, Any]) -> dict[str, Any]:
    """Copy of a user row without credential or OTP columns."""
    return {k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS}


class UserService:
    """Service for user record operations."""

    def __init__(self, supabase_client: Client | None = None):
        """Initialize user service.

        Args:
            supabase_client: Optional Supabase client for testing.
        """
        self._supabase_client = supabase_client

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    async def get_by_id(self, user_id: str) -> User | None:
        """Get a user by ID, or None."""
        result = (
            self.supabase.table("users")
            .select("*")
            .eq("id", str(user_id))
            .execute()
        )
        return result.data[0] if result.data else None

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by (case-insensitive) email, or None."""
        result = (
            self.supabase.table("users")
            .select("*")
            .eq("email", email.strip().lower())
            .execute()
        )
        return result.data[0] if result.data else None

    async def create(self, data: dict[str, Any]) -> User:
        """Insert a user row with default flags."""
        row = {
            "phone": None,
            "password_hash": None,
            "avatar": None,
            "google_id": None,
            "otp_hash": None,
            "otp_expires_at": None,
            "otp_attempts": 0,
            "is_verified": False,
            "is_blocked": False,
            "is_admin": False,
            **data,
        }
        row["email"] = row["email"].strip().lower()
        result = self.supabase.table("users").insert(row).execute()
        if not result.data:
            raise Exception("Failed to create user")
        return result.data[0]

    async def update(self, user_id: str, data: dict[str, Any]) -> User:
        """Apply column changes to a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        data = {**data, "updated_at": datetime.now(timezone.utc).isoformat()}
        result = (
            self.supabase.table("users")
            .update(data)
            .eq("id", str(user_id))
            .execute()
        )
        if not result.data:
            raise NotFoundError("User not found")
        return result.data[0]

    async def get_profile(self, user_id: str) -> dict[str, Any]:
        """Public profile of a user.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return public_user(user)

    async def update_profile(
        self,
        user_id: str,
        name: str | None = None,
        phone: str | None = None,
        avatar: str | None = None,
    ) -> dict[str, Any]:
        """Update name, phone and avatar; blank values leave a field unchanged."""
        changes: dict[str, Any] = {}
        if name and name.strip():
            changes["name"] = name.strip()
        if phone and sanitize_phone(phone):
            changes["phone"] = sanitize_phone(phone)
        if avatar and avatar.strip():
            changes["avatar"] = avatar.strip()

        if not changes:
            return await self.get_profile(user_id)
        return public_user(await self.update(user_id, changes))

    async def list_users(self) -> list[dict[str, Any]]:
        """All users, newest first, without private columns."""
        result = (
            self.supabase.table("users")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return [public_user(u) for u in result.data or []]

    async def delete_user(self, user_id: str, acting_admin_id: str) -> None:
        """Delete a user account.

        Raises:
            ValidationError: If an admin tries to delete their own account.
            NotFoundError: If the user does not exist.
        """
        if str(user_id) == str(acting_admin_id):
            raise ValidationError("Admins cannot delete their own account")
        result = (
            self.supabase.table("users")
            .delete()
            .eq("id", str(user_id))
            .execute()
        )
        if not result.data:
            raise NotFoundError("User not found")
        logger.info("User %s deleted by admin %s", user_id, acting_admin_id)

    async def toggle_block(self, user_id: str, acting_admin_id: str) -> dict[str, Any]:
        """Flip a user's blocked flag.

        Raises:
            ValidationError: If an admin tries to block their own account.
            NotFoundError: If the user does not exist.
        """
        if str(user_id) == str(acting_admin_id):
            raise ValidationError("Admins cannot block their own account")
        user = await self.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        updated = await self.update(user_id, {"is_blocked": not user.get("is_blocked", False)})
        logger.info(
            "User %s %s by admin %s",
            user_id,
            "blocked" if updated["is_blocked"] else "unblocked",
            acting_admin_id,
        )
        return public_user(updated)
