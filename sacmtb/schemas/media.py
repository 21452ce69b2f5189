"""Media upload response schemas."""

from pydantic import Field

from sacmtb.schemas.common import CamelModel


class ImageUploadResponse(CamelModel):
    """Public URLs of newly stored product images."""

    success: bool = Field(default=True, description="Whether the upload succeeded")
    message: str = Field(default="Images uploaded", description="Result message")
    image_urls: list[str] = Field(description="Public image URLs, in upload order")


class VideoUploadResponse(CamelModel):
    """Public URL of a newly stored product video."""

    success: bool = Field(default=True, description="Whether the upload succeeded")
    video_url: str = Field(description="Public video URL")


class AvatarUploadResponse(CamelModel):
    message: str = Field(default="Avatar uploaded successfully", description="Result message")
    image_url: str = Field(description="Public URL of the new avatar")
