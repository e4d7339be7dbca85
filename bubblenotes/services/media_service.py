"""
Media upload service
Writes uploaded files to the blob store and describes them as media items.
"""

import time
from typing import Optional
from uuid import uuid4

from bubblenotes.models.media import MediaItem, MediaType
from bubblenotes.services.blob_storage import BlobStorage
from bubblenotes.utils.errors import BlobStorageError, UploadError
from bubblenotes.utils.logger import logger


def pasted_file_name(content_type: Optional[str]) -> str:
    """Name for a clipboard image that arrived without one"""
    subtype = (content_type or "").split("/")[-1] or "png"
    return f"pasted-image-{int(time.time() * 1000)}.{subtype}"


def _extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"


class MediaService:
    """Media upload service"""

    def __init__(self, storage: BlobStorage):
        self.storage = storage

    async def upload(self, file_name: Optional[str], content_type: Optional[str], data: bytes) -> MediaItem:
        """
        Store a file and build its media item.

        Args:
            file_name: original file name; pasted images may have none
            content_type: MIME type reported by the client
            data: file contents

        Returns:
            the media item, ready to be attached to a note

        Raises:
            UploadError: the blob could not be written
        """
        content_type = content_type or "application/octet-stream"
        file_name = file_name or pasted_file_name(content_type)
        media_id = str(uuid4())
        storage_path = f"{media_id}.{_extension(file_name)}"

        try:
            await self.storage.upload(storage_path, data, content_type)
        except BlobStorageError as e:
            logger.error(f"Upload failed for {file_name}: {e}")
            raise UploadError(f"Failed to upload {file_name}") from e

        item = MediaItem(
            id=media_id,
            url=self.storage.public_url(storage_path),
            storage_path=storage_path,
            type=MediaType.from_mime(content_type),
            file_name=file_name,
            file_size=len(data),
            file_type=content_type,
        )
        logger.info(f"Uploaded {file_name} as {storage_path} ({item.type.value}, {len(data)} bytes)")
        return item

    async def discard(self, storage_path: str) -> None:
        """
        Remove an uploaded file that was never attached to a note.

        Raises:
            UploadError: the blob could not be removed
        """
        try:
            await self.storage.remove([storage_path])
        except BlobStorageError as e:
            logger.error(f"Failed to discard upload {storage_path}: {e}")
            raise UploadError(f"Failed to discard {storage_path}") from e
