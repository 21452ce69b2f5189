"""User media upload API routes."""

from fastapi import APIRouter, Depends, File, UploadFile

from sacmtb.api.deps import CurrentUser
from sacmtb.schemas.media import AvatarUploadResponse
from sacmtb.services.media_service import MediaService, get_media_service

router = APIRouter(prefix="/upload", tags=["uploads"])


@router.post(
    "/avatar",
    response_model=AvatarUploadResponse,
    summary="Upload my avatar",
    description="Store an image in the media bucket and set it as the caller's avatar.",
)
async def upload_avatar(
    user: CurrentUser,
    avatar: UploadFile | None = File(default=None, description="Avatar image (jpeg, png or webp)"),
    media_service: MediaService = Depends(get_media_service),
) -> AvatarUploadResponse:
    """Upload the caller's avatar."""
    url = await media_service.upload_avatar(user.user_id, avatar)
    return AvatarUploadResponse(image_url=url)
