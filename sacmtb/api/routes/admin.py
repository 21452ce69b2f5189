"""Admin API routes: OTP login and user management."""

from fastapi import APIRouter

from sacmtb.api.deps import AdminUser, OtpRateLimit
from sacmtb.schemas.auth import AdminOtpRequest, AdminVerifyOtpRequest, AuthResponse
from sacmtb.schemas.common import MessageResponse
from sacmtb.schemas.user import BlockToggleResponse, UserResponse
from sacmtb.services.auth_service import AuthService
from sacmtb.services.user_service import UserService

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/send-otp",
    response_model=MessageResponse,
    summary="Send admin OTP",
    description="Email a login OTP to the configured admin address. Rate limited per client.",
)
async def send_otp(data: AdminOtpRequest, _: OtpRateLimit) -> MessageResponse:
    """Send the admin login OTP."""
    await AuthService().admin_send_otp(data.email)
    return MessageResponse(message="OTP sent successfully to admin email")


@router.post("/verify-otp", response_model=AuthResponse, summary="Admin OTP login")
async def verify_otp(data: AdminVerifyOtpRequest) -> AuthResponse:
    """Verify the admin OTP and return an admin token."""
    result = await AuthService().admin_verify_otp(data.email, data.otp)
    return AuthResponse(message="Admin logged in successfully", token=result.token, user=result.user)


@router.get("/users", response_model=list[UserResponse], summary="List users")
async def list_users(admin: AdminUser) -> list[UserResponse]:
    """Return every user."""
    return [UserResponse.model_validate(u) for u in await UserService().list_users()]


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete user")
async def delete_user(user_id: str, admin: AdminUser) -> MessageResponse:
    """Delete a user account."""
    await UserService().delete_user(user_id, acting_admin_id=admin.user_id)
    return MessageResponse(message="User deleted successfully")


@router.patch("/users/{user_id}/block", response_model=BlockToggleResponse, summary="Block or unblock user")
async def toggle_block(user_id: str, admin: AdminUser) -> BlockToggleResponse:
    """Flip a user's blocked flag."""
    user = await UserService().toggle_block(user_id, acting_admin_id=admin.user_id)
    state = "blocked" if user.get("is_blocked") else "unblocked"
    return BlockToggleResponse(
        message=f"User {state} successfully",
        user=UserResponse.model_validate(user),
    )
