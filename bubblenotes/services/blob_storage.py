"""
Blob storage
One blob per media item, addressed by its storage path. Backed either by a
local directory served under a URL prefix or by Supabase Storage.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import httpx

from bubblenotes.utils.errors import BlobStorageError
from bubblenotes.utils.logger import logger


class BlobStorage(ABC):
    """Blob store"""

    @abstractmethod
    async def upload(self, storage_path: str, data: bytes, content_type: str) -> None:
        pass

    @abstractmethod
    def public_url(self, storage_path: str) -> str:
        pass

    @abstractmethod
    async def remove(self, storage_paths: List[str]) -> None:
        """Remove a batch of blobs by key"""

    async def close(self) -> None:
        pass


def _check_key(storage_path: str) -> str:
    if not storage_path or "/" in storage_path or "\\" in storage_path or ".." in storage_path:
        raise BlobStorageError(f"Invalid storage path: {storage_path!r}")
    return storage_path


class LocalBlobStorage(BlobStorage):
    """Blobs as files in one directory"""

    def __init__(self, root_dir: str, base_url: str):
        """
        Args:
            root_dir: directory holding the blobs (created if missing)
            base_url: URL prefix the directory is served under
        """
        self.root = Path(root_dir)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = base_url.rstrip("/")

    async def upload(self, storage_path: str, data: bytes, content_type: str) -> None:
        path = self.root / _check_key(storage_path)
        if path.exists():
            raise BlobStorageError(f"Blob already exists: {storage_path}")
        try:
            path.write_bytes(data)
        except OSError as e:
            raise BlobStorageError(f"Failed to write blob {storage_path}: {e}") from e

    def public_url(self, storage_path: str) -> str:
        return f"{self.base_url}/{storage_path}"

    async def remove(self, storage_paths: List[str]) -> None:
        for storage_path in storage_paths:
            path = self.root / _check_key(storage_path)
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                raise BlobStorageError(f"Failed to remove blob {storage_path}: {e}") from e
        logger.info(f"Removed {len(storage_paths)} blob(s)")


class SupabaseBlobStorage(BlobStorage):
    """Blobs in a Supabase Storage bucket"""

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str, bucket: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
        }

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {**self.headers, **kwargs.pop("headers", {})}
        try:
            response = await self.client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            raise BlobStorageError(f"Storage request failed: {e}") from e
        if response.status_code >= 400:
            raise BlobStorageError(
                f"Storage {method} failed: {response.status_code} {response.text[:200]}"
            )
        return response

    async def upload(self, storage_path: str, data: bytes, content_type: str) -> None:
        await self._request(
            "POST",
            f"{self.base_url}/storage/v1/object/{self.bucket}/{_check_key(storage_path)}",
            content=data,
            headers={"Content-Type": content_type or "application/octet-stream"},
        )

    def public_url(self, storage_path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{storage_path}"

    async def remove(self, storage_paths: List[str]) -> None:
        if not storage_paths:
            return
        await self._request(
            "DELETE",
            f"{self.base_url}/storage/v1/object/{self.bucket}",
            json={"prefixes": storage_paths},
        )
        logger.info(f"Removed {len(storage_paths)} blob(s) from {self.bucket}")
