"""User API routes: registration, login, password reset and profile."""

from fastapi import APIRouter, status

from sacmtb.api.deps import AdminUser, CurrentUser, OtpRateLimit
from sacmtb.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    GoogleLoginRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    VerifyOtpRequest,
)
from sacmtb.schemas.common import MessageResponse
from sacmtb.schemas.user import ProfileUpdateRequest, UserResponse
from sacmtb.services.auth_service import AuthService
from sacmtb.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "/register",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create a pending account and email a verification OTP. Rate limited per client.",
)
async def register(data: RegisterRequest, _: OtpRateLimit) -> MessageResponse:
    """Register a new account and send its OTP."""
    await AuthService().register(
        name=data.name,
        email=data.email,
        password=data.password,
        phone=data.phone,
    )
    return MessageResponse(message="OTP sent to email. Please verify.")


@router.post("/verify-otp", response_model=AuthResponse, summary="Verify registration OTP")
async def verify_otp(data: VerifyOtpRequest) -> AuthResponse:
    """Confirm the emailed OTP and return a bearer token."""
    result = await AuthService().verify_otp(data.email, data.otp)
    return AuthResponse(message="OTP verified successfully", token=result.token, user=result.user)


@router.post("/login", response_model=AuthResponse, summary="Password login")
async def login(data: LoginRequest) -> AuthResponse:
    """Sign in with email and password."""
    result = await AuthService().login(data.email, data.password)
    return AuthResponse(message="Login successful", token=result.token, user=result.user)


@router.post("/google-login", response_model=AuthResponse, summary="Google login")
async def google_login(data: GoogleLoginRequest) -> AuthResponse:
    """Sign in with a Google ID token."""
    result = await AuthService().google_login(data.token)
    return AuthResponse(message="Google login successful", token=result.token, user=result.user)


@router.post(
    "/forgot-password",
    response_model=MessageResponse,
    summary="Request password reset OTP",
    description="Email a password reset OTP. Rate limited per client.",
)
async def forgot_password(data: ForgotPasswordRequest, _: OtpRateLimit) -> MessageResponse:
    """Send a password reset OTP."""
    await AuthService().forgot_password(data.email)
    return MessageResponse(message="OTP sent to email for password reset")


@router.post("/reset-password", response_model=MessageResponse, summary="Reset password")
async def reset_password(data: ResetPasswordRequest) -> MessageResponse:
    """Set a new password using the emailed OTP."""
    await AuthService().reset_password(data.email, data.otp, data.new_password)
    return MessageResponse(message="Password reset successfully")


@router.get("/profile", response_model=UserResponse, summary="Get my profile")
async def get_profile(user: CurrentUser) -> UserResponse:
    """Return the caller's profile."""
    return UserResponse.model_validate(await UserService().get_profile(user.user_id))


@router.put("/profile", response_model=UserResponse, summary="Update my profile")
async def update_profile(data: ProfileUpdateRequest, user: CurrentUser) -> UserResponse:
    """Update the caller's name, phone or avatar."""
    profile = await UserService().update_profile(
        user.user_id,
        name=data.name,
        phone=data.phone,
        avatar=data.avatar,
    )
    return UserResponse.model_validate(profile)


@router.get("", response_model=list[UserResponse], summary="List users (admin)")
async def list_users(admin: AdminUser) -> list[UserResponse]:
    """Return every user."""
    return [UserResponse.model_validate(u) for u in await UserService().list_users()]
