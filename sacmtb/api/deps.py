"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, Request

from sacmtb.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from sacmtb.api.middleware.error_handler import AuthenticationError, AuthorizationError, RateLimitError
from sacmtb.core.rate_limiter import client_key, get_rate_limiter
from sacmtb.schemas.auth import UserContext
from sacmtb.services.user_service import UserService


def _bearer_token(authorization: str) -> str:
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format. Expected: Bearer <token>")
    return parts[1]


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Resolve the caller from the Authorization header.

    The token only names the user; verification, block and admin state are
    read from the current user record.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or expired,
            or the user no longer exists.
        AuthorizationError: 403 if the user is unverified or blocked.
    """
    if not authorization:
        raise AuthenticationError("Not authorized, no token")

    token = _bearer_token(authorization)
    try:
        payload = decode_jwt(token)
    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise AuthenticationError("Token has expired") from e
        raise AuthenticationError("Not authorized, token failed") from e

    user = await UserService().get_by_id(payload.sub)
    if user is None:
        raise AuthenticationError("User not found")
    if not user.get("is_verified"):
        raise AuthorizationError("Please verify your email first")
    if user.get("is_blocked"):
        raise AuthorizationError("Your account has been blocked")

    return UserContext(
        user_id=str(user["id"]),
        email=user["email"],
        name=user.get("name") or "",
        is_admin=bool(user.get("is_admin")),
    )


async def get_admin_user(user: Annotated[UserContext, Depends(get_current_user)]) -> UserContext:
    """Require the caller to be an admin.

    Raises:
        AuthorizationError: 403 if the caller is not an admin.
    """
    if not user.is_admin:
        raise AuthorizationError("Not authorized as admin")
    return user


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Resolve the caller if an Authorization header is present.

    A present but invalid token is still rejected.
    """
    if not authorization:
        return None
    return await get_current_user(authorization)


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
AdminUser = Annotated[UserContext, Depends(get_admin_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


async def check_otp_rate_limit(request: Request) -> None:
    """Limit OTP-issuing requests per client address and endpoint.

    Raises:
        RateLimitError: If the client exceeded the configured window.
    """
    key = client_key("otp", request.url.path, request.client.host if request.client else None)

    decision = await get_rate_limiter().hit(key)
    if not decision.allowed:
        raise RateLimitError(
            message="Too many OTP requests. Please try again later.",
            retry_after=decision.retry_after,
        )


# Type alias for rate limit dependency
OtpRateLimit = Annotated[None, Depends(check_otp_rate_limit)]
