import asyncio

import pytest

from bubblenotes.models.media import MediaType
from bubblenotes.services.blob_storage import LocalBlobStorage
from bubblenotes.services.media_service import MediaService, pasted_file_name
from bubblenotes.utils.errors import BlobStorageError, UploadError
from conftest import MemoryStorage


@pytest.mark.parametrize("mime,expected", [
    ("image/png", MediaType.IMAGE),
    ("image/jpeg", MediaType.IMAGE),
    ("image/gif", MediaType.GIF),
    ("video/mp4", MediaType.VIDEO),
    ("application/pdf", MediaType.DOCUMENT),
    (None, MediaType.DOCUMENT),
])
def test_mime_classification(mime, expected):
    assert MediaType.from_mime(mime) is expected


def test_upload_builds_media_item():
    storage = MemoryStorage()
    item = asyncio.run(MediaService(storage).upload("Trip.MP4", "video/mp4", b"12345"))

    assert item.type is MediaType.VIDEO
    assert item.storage_path == f"{item.id}.mp4"
    assert item.url == f"https://cdn.example/{item.id}.mp4"
    assert item.file_size == 5
    assert storage.blobs[item.storage_path] == b"12345"
    assert set(item.to_wire()) >= {"id", "url", "storagePath", "type", "fileName", "fileSize", "fileType"}


def test_pasted_image_gets_a_name():
    item = asyncio.run(MediaService(MemoryStorage()).upload(None, "image/png", b"x"))

    assert item.file_name.startswith("pasted-image-")
    assert item.file_name.endswith(".png")
    assert pasted_file_name("image/jpeg").endswith(".jpeg")


def test_failed_upload_leaves_nothing_behind():
    storage = MemoryStorage()
    storage.fail = True

    with pytest.raises(UploadError):
        asyncio.run(MediaService(storage).upload("a.png", "image/png", b"x"))
    assert storage.blobs == {}


def test_discard_removes_blob(tmp_path):
    storage = LocalBlobStorage(str(tmp_path), "/media")
    service = MediaService(storage)
    item = asyncio.run(service.upload("a.png", "image/png", b"x"))
    assert (tmp_path / item.storage_path).exists()

    asyncio.run(service.discard(item.storage_path))

    assert not (tmp_path / item.storage_path).exists()
    assert item.url == f"/media/{item.storage_path}"


def test_local_storage_rejects_path_traversal(tmp_path):
    storage = LocalBlobStorage(str(tmp_path), "/media")
    with pytest.raises(BlobStorageError):
        asyncio.run(storage.upload("../escape.png", b"x", "image/png"))
