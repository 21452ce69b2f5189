"""Authentication business logic: registration, OTP, password and Google login."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from sacmtb.api.middleware.auth import AuthError, create_access_token, verify_google_id_token
from sacmtb.api.middleware.error_handler import (
    AuthenticationError,
    AuthorizationError,
    DependencyFailureError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from sacmtb.core.config import Settings, get_settings
from sacmtb.core.security import (
    generate_otp,
    get_otp_expiry_time,
    get_password_hash,
    hash_otp,
    otp_matches,
    verify_password,
)
from sacmtb.models.user import User
from sacmtb.services import email_templates
from sacmtb.services.email_service import EmailService
from sacmtb.services.user_service import UserService, public_user, sanitize_phone

logger = logging.getLogger(__name__)

CLEARED_OTP = {"otp_hash": None, "otp_expires_at": None, "otp_attempts": 0}


@dataclass
class AuthResult:
    """A bearer token and the public profile it was issued for."""

    token: str
    user: dict[str, Any]


def _parse_ts(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class AuthService:
    """Service for managing user authentication."""

    def __init__(
        self,
        user_service: UserService | None = None,
        email_service: EmailService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.users = user_service or UserService()
        self._email_service = email_service
        self.settings = settings or get_settings()

    @property
    def email_service(self) -> EmailService:
        """Get email service."""
        if self._email_service is None:
            self._email_service = EmailService()
        return self._email_service

    # OTP helpers

    def _new_otp(self) -> tuple[str, dict[str, Any]]:
        otp = generate_otp(self.settings.otp_length)
        fields = {
            "otp_hash": hash_otp(otp),
            "otp_expires_at": get_otp_expiry_time(self.settings.otp_expire_minutes).isoformat(),
            "otp_attempts": 0,
        }
        return otp, fields

    async def _send_otp(self, email: str, otp: str, purpose: str) -> None:
        subject, html = email_templates.otp_email(otp, self.settings.otp_expire_minutes, purpose)
        result = await self.email_service.send_email(email, subject, html)
        if not result.success:
            raise DependencyFailureError("Could not send the OTP email, please try again")

    def _otp_cooldown_remaining(self, user: User) -> int:
        """Seconds until another OTP may be issued for this user."""
        expires_at = _parse_ts(user.get("otp_expires_at"))
        if expires_at is None:
            return 0
        issued_at = expires_at - timedelta(minutes=self.settings.otp_expire_minutes)
        available_at = issued_at + timedelta(seconds=self.settings.otp_resend_cooldown_seconds)
        remaining = (available_at - datetime.now(timezone.utc)).total_seconds()
        return int(remaining) + 1 if remaining > 0 else 0

    async def _check_otp(self, user: User, otp: str) -> None:
        """Validate a submitted OTP against the stored hash.

        Raises:
            ValidationError: If no OTP is pending, it expired, or it does not match.
        """
        if not user.get("otp_hash") or not user.get("otp_expires_at"):
            raise ValidationError("No OTP found. Please request a new one.")
        if datetime.now(timezone.utc) > _parse_ts(user["otp_expires_at"]):
            await self.users.update(user["id"], CLEARED_OTP)
            raise ValidationError("OTP expired. Please request a new one.")
        if not otp_matches(otp, user["otp_hash"]):
            raise ValidationError("Invalid OTP")

    def _issue(self, user: User, is_admin: bool | None = None) -> AuthResult:
        admin = user.get("is_admin", False) if is_admin is None else is_admin
        token = create_access_token(user["id"], user["email"], is_admin=admin)
        return AuthResult(token=token, user=public_user(user))

    # Registration and login

    async def register(self, name: str, email: str, password: str, phone: str | None = None) -> None:
        """Create or refresh a pending account and email it an OTP.

        Raises:
            ValidationError: If a verified account already uses the email.
            RateLimitError: If an OTP was sent to this account moments ago.
            DependencyFailureError: If the OTP email cannot be sent.
        """
        email = email.strip().lower()
        user = await self.users.get_by_email(email)

        if user and user.get("is_verified"):
            raise ValidationError("User already exists. Please login.")

        if user:
            wait = self._otp_cooldown_remaining(user)
            if wait:
                raise RateLimitError("Please wait before requesting another OTP.", retry_after=wait)

        otp, otp_fields = self._new_otp()
        profile = {
            "name": name.strip(),
            "phone": sanitize_phone(phone) or None,
            "password_hash": get_password_hash(password),
            **otp_fields,
        }
        if user:
            await self.users.update(user["id"], profile)
        else:
            await self.users.create({"email": email, **profile})

        await self._send_otp(email, otp, "verify your email")
        logger.info("Registration OTP sent to %s", email)

    async def verify_otp(self, email: str, otp: str) -> AuthResult:
        """Confirm a registration OTP and sign the user in.

        Raises:
            NotFoundError: If no account uses the email.
            ValidationError: If the OTP is missing, expired or wrong.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        await self._check_otp(user, otp)

        user = await self.users.update(user["id"], {"is_verified": True, **CLEARED_OTP})
        logger.info("User %s verified their email", user["id"])
        return self._issue(user)

    async def login(self, email: str, password: str) -> AuthResult:
        """Sign in with email and password.

        Raises:
            AuthenticationError: If the credentials are wrong.
            AuthorizationError: If the account is unverified or blocked.
        """
        user = await self.users.get_by_email(email)
        if user is None or not verify_password(password, user.get("password_hash")):
            raise AuthenticationError("Invalid credentials")
        if not user.get("is_verified"):
            raise AuthorizationError("Please verify your email first")
        if user.get("is_blocked"):
            raise AuthorizationError("Your account has been blocked")
        return self._issue(user)

    async def google_login(self, id_token: str) -> AuthResult:
        """Sign in with a Google ID token, creating a verified account if needed.

        Raises:
            AuthenticationError: If the Google token does not verify.
            AuthorizationError: If the account is blocked.
        """
        try:
            identity = verify_google_id_token(id_token)
        except AuthError as e:
            logger.warning("Google login rejected: %s", e.message)
            raise AuthenticationError("Google login failed") from e

        user = await self.users.get_by_email(identity.email)
        if user is None:
            user = await self.users.create(
                {
                    "name": identity.name,
                    "email": identity.email,
                    "google_id": identity.sub,
                    "avatar": identity.picture,
                    "is_verified": True,
                }
            )
            logger.info("Created user %s from Google login", user["id"])
        elif not user.get("google_id") or not user.get("is_verified"):
            user = await self.users.update(
                user["id"],
                {"google_id": identity.sub, "is_verified": True, **CLEARED_OTP},
            )

        if user.get("is_blocked"):
            raise AuthorizationError("Your account has been blocked")
        return self._issue(user)

    # Password reset

    async def forgot_password(self, email: str) -> None:
        """Email a password reset OTP.

        Raises:
            NotFoundError: If no account uses the email.
            RateLimitError: If an OTP was sent to this account moments ago.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        wait = self._otp_cooldown_remaining(user)
        if wait:
            raise RateLimitError("Please wait before requesting another OTP.", retry_after=wait)

        otp, otp_fields = self._new_otp()
        await self.users.update(user["id"], otp_fields)
        await self._send_otp(user["email"], otp, "reset your password")
        logger.info("Password reset OTP sent to %s", user["email"])

    async def reset_password(self, email: str, otp: str, new_password: str) -> None:
        """Set a new password after checking the emailed OTP.

        Raises:
            NotFoundError: If no account uses the email.
            ValidationError: If the OTP is missing, expired or wrong.
        """
        user = await self.users.get_by_email(email)
        if user is None:
            raise NotFoundError("User not found")
        await self._check_otp(user, otp)
        await self.users.update(
            user["id"],
            {"password_hash": get_password_hash(new_password), **CLEARED_OTP},
        )
        logger.info("Password reset for user %s", user["id"])

    # Admin

    async def ensure_admin_exists(self) -> User:
        """Create the seeded admin identity if it is missing.

        Safe to call repeatedly; an existing account with the admin email is
        promoted rather than duplicated.
        """
        email = self.settings.admin_email.strip().lower()
        admin = await self.users.get_by_email(email)
        if admin is None:
            password = self.settings.admin_bootstrap_password
            admin = await self.users.create(
                {
                    "name": self.settings.admin_name,
                    "email": email,
                    "phone": sanitize_phone(self.settings.admin_phone) or None,
                    "password_hash": get_password_hash(password) if password else None,
                    "is_verified": True,
                    "is_admin": True,
                }
            )
            logger.info("Admin account created: %s", email)
        elif not admin.get("is_admin") or not admin.get("is_verified"):
            admin = await self.users.update(admin["id"], {"is_admin": True, "is_verified": True})
            logger.info("Existing account %s promoted to admin", email)
        else:
            logger.info("Admin already exists")
        return admin

    def _require_admin_email(self, email: str) -> None:
        if email.strip().lower() != self.settings.admin_email.strip().lower():
            raise AuthorizationError("Not authorized")

    async def admin_send_otp(self, email: str) -> None:
        """Email a login OTP to the configured admin.

        Raises:
            AuthorizationError: If the email is not the admin email or the
                admin is blocked.
        """
        self._require_admin_email(email)
        admin = await self.ensure_admin_exists()
        if admin.get("is_blocked"):
            raise AuthorizationError("Admin account is blocked")

        otp, otp_fields = self._new_otp()
        await self.users.update(admin["id"], otp_fields)
        await self._send_otp(admin["email"], otp, "sign in to the admin panel")
        logger.info("Admin OTP sent")

    async def admin_verify_otp(self, email: str, otp: str) -> AuthResult:
        """Sign the admin in with an emailed OTP.

        Every wrong OTP counts as a failed attempt; reaching the configured
        maximum blocks the admin account.

        Raises:
            AuthorizationError: If the email is not the admin email, the admin
                is blocked, or this attempt exhausted the allowance.
            NotFoundError: If the admin account does not exist.
            ValidationError: If the OTP is missing, expired or wrong.
        """
        self._require_admin_email(email)
        admin = await self.users.get_by_email(email)
        if admin is None or not admin.get("is_admin"):
            raise NotFoundError("Admin not found")
        if admin.get("is_blocked"):
            raise AuthorizationError("Admin account is blocked")

        if not admin.get("otp_hash") or not admin.get("otp_expires_at"):
            raise ValidationError("No OTP found, please request a new one")
        if datetime.now(timezone.utc) > _parse_ts(admin["otp_expires_at"]):
            await self.users.update(admin["id"], CLEARED_OTP)
            raise ValidationError("OTP expired, please request a new one")

        if not otp_matches(otp, admin["otp_hash"]):
            attempts = int(admin.get("otp_attempts") or 0) + 1
            if attempts >= self.settings.otp_max_attempts:
                await self.users.update(admin["id"], {"otp_attempts": attempts, "is_blocked": True})
                logger.warning("Admin %s blocked after %d failed OTP attempts", admin["id"], attempts)
                raise AuthorizationError("Too many failed attempts. Admin blocked.")
            await self.users.update(admin["id"], {"otp_attempts": attempts})
            raise ValidationError("Invalid OTP, please try again")

        admin = await self.users.update(admin["id"], CLEARED_OTP)
        logger.info("Admin %s signed in", admin["id"])
        return self._issue(admin, is_admin=True)
