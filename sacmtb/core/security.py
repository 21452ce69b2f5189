"""Password hashing and one-time password helpers."""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext

bcrypt_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def get_password_hash(password: str) -> str:
    # Bcrypt has a 72-byte limit, truncate if necessary
    return bcrypt_context.hash(password[:72])


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        return False
    return bcrypt_context.verify(plain_password[:72], hashed_password)


def generate_otp(length: int = 6) -> str:
    """Generate a numeric OTP with no leading zero."""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_otp(otp: str) -> str:
    """Hash an OTP for storage; OTPs are never stored in plain text."""
    return hashlib.sha256(str(otp).strip().encode("utf-8")).hexdigest()


def otp_matches(otp: str, otp_hash: str | None) -> bool:
    if not otp_hash:
        return False
    return hmac.compare_digest(hash_otp(otp), otp_hash)


def get_otp_expiry_time(minutes: int = 5) -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=minutes)
