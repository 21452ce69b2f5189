"""JWT authentication utilities: token issue, token validation and Google ID tokens."""

from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWKClient

from sacmtb.core.config import get_settings
from sacmtb.schemas.auth import GoogleIdentity, TokenPayload

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class AuthErrorCode(str, Enum):
    """Authentication error codes."""

    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


class AuthError(Exception):
    """Authentication error with specific error code.

    Raised when JWT validation fails for any reason.
    The error code indicates the specific failure reason.
    """

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        """Initialize authentication error.

        Args:
            message: Human-readable error description.
            code: Specific error code for programmatic handling.
        """
        self.message = message
        self.code = code
        super().__init__(message)


def create_access_token(user_id: str, email: str, is_admin: bool = False) -> str:
    """Issue a signed bearer token for a user.

    Args:
        user_id: The user's id, stored as the `sub` claim.
        email: The user's email address.
        is_admin: Whether the token carries the admin role.

    Returns:
        str: Encoded JWT.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "email": email,
        "role": "admin" if is_admin else "user",
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.jwt_expire_days)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> TokenPayload:
    """Decode and validate a JWT token.

    Validates the token signature, expiration, and structure against the
    configured shared secret.

    Args:
        token: The JWT token string to decode.

    Returns:
        TokenPayload: Validated token payload.

    Raises:
        AuthError: If token is invalid, expired, or has wrong signature.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iat": True,
                "require": ["exp", "iat", "sub"],
            },
        )

        return TokenPayload(
            sub=payload["sub"],
            email=payload.get("email"),
            role=payload.get("role"),
            exp=payload["exp"],
            iat=payload["iat"],
        )

    except jwt.ExpiredSignatureError as e:
        raise AuthError(
            "Token has expired",
            AuthErrorCode.TOKEN_EXPIRED,
        ) from e

    except jwt.InvalidSignatureError as e:
        raise AuthError(
            "Invalid token signature",
            AuthErrorCode.INVALID_SIGNATURE,
        ) from e

    except jwt.MissingRequiredClaimError as e:
        raise AuthError(
            f"Token missing required claim: {e}",
            AuthErrorCode.INVALID_TOKEN,
        ) from e

    except jwt.InvalidTokenError as e:
        raise AuthError(
            f"Invalid token: {e}",
            AuthErrorCode.INVALID_TOKEN,
        ) from e


@lru_cache
def get_google_jwks_client() -> PyJWKClient:
    """Get the cached JWKS client for Google's signing keys."""
    return PyJWKClient(GOOGLE_JWKS_URL)


def verify_google_id_token(id_token: str) -> GoogleIdentity:
    """Verify a Google ID token and extract the identity it asserts.

    Args:
        id_token: The credential returned by Google Sign-In.

    Returns:
        GoogleIdentity: Subject, email, name and picture from the token.

    Raises:
        AuthError: If Google login is not configured or the token fails
            signature, audience, issuer or expiry checks.
    """
    settings = get_settings()
    if not settings.google_client_id:
        raise AuthError("Google login is not configured", AuthErrorCode.UNAUTHORIZED)

    try:
        signing_key = get_google_jwks_client().get_signing_key_from_jwt(id_token)
        claims: dict[str, Any] = jwt.decode(
            id_token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.google_client_id,
            options={"require": ["exp", "iat", "sub", "iss"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Google token has expired", AuthErrorCode.TOKEN_EXPIRED) from e
    except (jwt.InvalidTokenError, jwt.PyJWKClientError) as e:
        raise AuthError(f"Invalid Google token: {e}", AuthErrorCode.INVALID_TOKEN) from e

    if claims.get("iss") not in GOOGLE_ISSUERS:
        raise AuthError("Invalid Google token issuer", AuthErrorCode.INVALID_TOKEN)
    if not claims.get("email"):
        raise AuthError("Google token carries no email", AuthErrorCode.INVALID_TOKEN)

    return GoogleIdentity(
        sub=claims["sub"],
        email=claims["email"],
        name=claims.get("name") or claims["email"].split("@")[0],
        picture=claims.get("picture"),
    )
