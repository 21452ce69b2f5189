"""Product media and avatar uploads to Supabase Storage."""

import asyncio
import logging
from typing import Any
from uuid import uuid4

from fastapi import UploadFile
from supabase import Client

from sacmtb.api.middleware.error_handler import DependencyFailureError, InvalidMediaError
from sacmtb.core.config import Settings, get_settings
from sacmtb.core.supabase import get_supabase_client
from sacmtb.services.user_service import UserService

logger = logging.getLogger(__name__)

# Allowed MIME types and the extension stored for each
IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}
VIDEO_TYPES = {
    "video/mp4": "mp4",
    "video/quicktime": "mov",
    "video/webm": "webm",
}


class MediaService:
    """Validates uploaded files and stores them in the public media bucket.

    Objects are stored under a folder per kind (``products/images``,
    ``products/videos``, ``avatars/<user id>``) with a random file name, and
    returned as public URLs.
    """

    def __init__(
        self,
        supabase_client: Client | None = None,
        user_service: UserService | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._supabase_client = supabase_client
        self._user_service = user_service
        self.settings = settings or get_settings()

    @property
    def supabase(self) -> Client:
        """Get Supabase client."""
        if self._supabase_client is None:
            self._supabase_client = get_supabase_client()
        return self._supabase_client

    @property
    def user_service(self) -> UserService:
        """Get user service (lazy load)."""
        if self._user_service is None:
            self._user_service = UserService(self._supabase_client)
        return self._user_service

    @property
    def bucket(self) -> Any:
        return self.supabase.storage.from_(self.settings.media_bucket)

    async def upload_product_images(self, files: list[UploadFile] | None) -> list[str]:
        """Store up to the configured number of product images.

        Every file is validated before anything is stored. If storing one
        fails, the images already stored by this call are removed.

        Args:
            files: Uploaded image files.

        Returns:
            list[str]: Public URLs, in upload order.

        Raises:
            InvalidMediaError: If no images were sent, too many were sent,
                or one has a disallowed type or size.
            DependencyFailureError: If storage rejects an upload.
        """
        files = [f for f in files or [] if f is not None]
        if not files:
            raise InvalidMediaError("No images provided")
        limit = self.settings.max_product_images
        if len(files) > limit:
            raise InvalidMediaError(f"At most {limit} images can be uploaded at once")

        validated = [
            await self._read_validated(f, IMAGE_TYPES, self.settings.max_image_size_bytes)
            for f in files
        ]

        stored: list[str] = []
        try:
            for content, mime in validated:
                stored.append(await self._store("products/images", content, mime, IMAGE_TYPES[mime]))
        except DependencyFailureError:
            await self._discard(stored)
            raise

        logger.info("Stored %d product images", len(stored))
        return [self.public_url(path) for path in stored]

    async def upload_product_video(self, file: UploadFile | None) -> str:
        """Store one product video and return its public URL.

        Raises:
            InvalidMediaError: If no video was sent or it has a disallowed type or size.
            DependencyFailureError: If storage rejects the upload.
        """
        if file is None:
            raise InvalidMediaError("No video provided")
        content, mime = await self._read_validated(file, VIDEO_TYPES, self.settings.max_video_size_bytes)
        path = await self._store("products/videos", content, mime, VIDEO_TYPES[mime])
        logger.info("Stored product video %s", path)
        return self.public_url(path)

    async def upload_avatar(self, user_id: str, file: UploadFile | None) -> str:
        """Store a user's avatar image and set it on their profile.

        Returns:
            str: Public URL of the new avatar.

        Raises:
            InvalidMediaError: If no file was sent or it is not an allowed image.
            DependencyFailureError: If storage rejects the upload.
            NotFoundError: If the user no longer exists.
        """
        if file is None:
            raise InvalidMediaError("No file uploaded")
        content, mime = await self._read_validated(file, IMAGE_TYPES, self.settings.max_image_size_bytes)
        path = await self._store(f"avatars/{user_id}", content, mime, IMAGE_TYPES[mime])
        url = self.public_url(path)
        await self.user_service.update_profile(user_id, avatar=url)
        logger.info("User %s uploaded a new avatar", user_id)
        return url

    def public_url(self, path: str) -> str:
        """Public URL of an object in the media bucket."""
        return self.bucket.get_public_url(path)

    async def _read_validated(self, file: UploadFile, allowed: dict[str, str], max_bytes: int) -> tuple[bytes, str]:
        """Check type and size of an uploaded file and return its content.

        Raises:
            InvalidMediaError: If validation fails.
        """
        mime = (file.content_type or "").lower()
        if mime not in allowed:
            raise InvalidMediaError(
                f"Invalid file type: {file.content_type or 'unknown'}. "
                f"Allowed types: {', '.join(sorted(allowed))}",
                details=[{"loc": ["file", file.filename or ""], "msg": "Unsupported type", "type": "invalid_type"}],
            )

        # One byte past the limit is enough to reject without buffering the rest
        content = await file.read(max_bytes + 1)
        await file.seek(0)

        if not content:
            raise InvalidMediaError(f"File is empty: {file.filename or 'upload'}")
        if len(content) > max_bytes:
            raise InvalidMediaError(
                f"File too large: {file.filename or 'upload'}. "
                f"Maximum size: {max_bytes / (1024 * 1024):.0f} MB",
                details=[{"loc": ["file", file.filename or ""], "msg": "File too large", "type": "too_large"}],
            )
        return content, mime

    async def _store(self, folder: str, content: bytes, mime: str, extension: str) -> str:
        """Upload bytes to the media bucket. Returns the storage path."""
        path = f"{folder}/{uuid4().hex}.{extension}"
        try:
            await asyncio.to_thread(
                self.bucket.upload,
                path=path,
                file=content,
                file_options={"content-type": mime},
            )
        except Exception as e:
            logger.exception("Failed to upload %s to bucket %s", path, self.settings.media_bucket)
            raise DependencyFailureError("Could not store the uploaded file") from e
        return path

    async def _discard(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            await asyncio.to_thread(self.bucket.remove, paths)
        except Exception:
            logger.exception("Could not remove %d partially uploaded files", len(paths))


def get_media_service() -> MediaService:
    """Dependency provider for MediaService."""
    return MediaService()
