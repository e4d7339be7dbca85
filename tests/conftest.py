from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Any

import pytest
from fastapi.testclient import TestClient

from bubblenotes.app import create_app
from bubblenotes.bot.whatsapp_client import DriverState, WhatsAppDriver
from bubblenotes.models.media import MediaItem, MediaType
from bubblenotes.models.note import Note, fields_to_columns
from bubblenotes.services.blob_storage import BlobStorage
from bubblenotes.services.note_repository import NoteRepository
from bubblenotes.utils.config import Settings
from bubblenotes.utils.errors import BlobStorageError, RepositoryError, WhatsAppError

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def make_note(note_id: str, order: Optional[int] = None, minutes: int = 0, **kwargs) -> Note:
    kwargs.setdefault("description", f"note {note_id}")
    return Note(id=note_id, order=order, created_at=BASE_TIME + timedelta(minutes=minutes), **kwargs)


def make_media(name: str = "photo.png", storage_path: Optional[str] = None) -> MediaItem:
    storage_path = storage_path or f"{name.replace('.', '-')}.bin"
    return MediaItem(
        url=f"/media/{storage_path}",
        storage_path=storage_path,
        type=MediaType.IMAGE,
        file_name=name,
        file_size=10,
        file_type="image/png",
    )


class MemoryRepository(NoteRepository):
    """Repository over a dict; failures can be switched on per operation"""

    def __init__(self, notes: Optional[List[Note]] = None):
        self.rows: Dict[str, Note] = {note.id: note for note in notes or []}
        self.fail_on: set = set()
        self.fail_ids: set = set()
        self.calls: List[tuple] = []

    def _maybe_fail(self, operation: str, note_id: Optional[str] = None) -> None:
        if operation in self.fail_on and (not self.fail_ids or note_id in self.fail_ids):
            raise RepositoryError(f"{operation} failed")

    async def fetch_all(self) -> List[Note]:
        self.calls.append(("fetch_all",))
        self._maybe_fail("fetch_all")
        return sorted(self.rows.values(), key=lambda note: note.sort_key())

    async def insert(self, note: Note) -> None:
        self.calls.append(("insert", note.id))
        self._maybe_fail("insert", note.id)
        self.rows[note.id] = note

    async def update(self, note_id: str, fields: Dict[str, Any]) -> None:
        self.calls.append(("update", note_id, fields_to_columns(fields)))
        self._maybe_fail("update", note_id)
        if note_id in self.rows:
            self.rows[note_id] = self.rows[note_id].model_copy(update=fields)

    async def delete(self, note_id: str) -> None:
        self.calls.append(("delete", note_id))
        self._maybe_fail("delete", note_id)
        self.rows.pop(note_id, None)

    async def exists(self, note_id: str) -> bool:
        self._maybe_fail("exists", note_id)
        return note_id in self.rows


class MemoryStorage(BlobStorage):
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.fail = False

    async def upload(self, storage_path: str, data: bytes, content_type: str) -> None:
        if self.fail:
            raise BlobStorageError("storage offline")
        self.blobs[storage_path] = data

    def public_url(self, storage_path: str) -> str:
        return f"https://cdn.example/{storage_path}"

    async def remove(self, storage_paths: List[str]) -> None:
        if self.fail:
            raise BlobStorageError("storage offline")
        for storage_path in storage_paths:
            self.blobs.pop(storage_path, None)


class FakeDriver(WhatsAppDriver):
    """Scripted WhatsApp driver"""

    def __init__(self):
        self.current = DriverState()
        self.started: List[str] = []
        self.destroyed: List[str] = []
        self.logged_out: List[str] = []
        self.sent: List[str] = []
        self.fail_start = False

    async def start(self, session_id: str, data_path: str) -> None:
        if self.fail_start:
            raise WhatsAppError("browser did not start")
        self.started.append(session_id)

    async def state(self, session_id: str) -> DriverState:
        return self.current

    async def logout(self, session_id: str) -> None:
        self.logged_out.append(session_id)

    async def destroy(self, session_id: str) -> None:
        self.destroyed.append(session_id)

    async def send_sticker_to_self(self, session_id: str, webp_base64: str) -> None:
        self.sent.append(webp_base64)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def settings(tmp_path):
    return Settings(
        storage_backend="sqlite",
        database_url=f"sqlite:///{tmp_path}/notes.db",
        media_dir=str(tmp_path / "media"),
        whatsapp_session_root=str(tmp_path / "sessions"),
        whatsapp_logout_grace=0.0,
        whatsapp_poll_interval=0.0,
    )


@pytest.fixture()
def driver():
    return FakeDriver()


@pytest.fixture()
def client(settings, driver):
    app = create_app(settings, whatsapp_driver=driver)
    with TestClient(app) as test_client:
        yield test_client
