import asyncio
from datetime import datetime, timedelta, timezone

from bubblenotes.models.note import Note
from bubblenotes.services.note_repository import SqliteNoteRepository
from bubblenotes.utils.database import Database


def test_created_at_is_stored_as_utc(tmp_path):
    repository = SqliteNoteRepository(Database(f"sqlite:///{tmp_path}/notes.db"))
    plus_two = timezone(timedelta(hours=2))
    # 11:30 UTC, written with a +02:00 offset
    earlier = Note(id="earlier", description="a", created_at=datetime(2024, 1, 1, 13, 30, tzinfo=plus_two))
    later = Note(id="later", description="b", created_at=datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))

    asyncio.run(repository.insert(later))
    asyncio.run(repository.insert(earlier))

    notes = asyncio.run(repository.fetch_all())
    assert [note.id for note in notes] == ["earlier", "later"]
    assert earlier.to_row()["created_at"] == "2024-01-01T11:30:00+00:00"


def test_fetch_orders_manual_order_first(tmp_path):
    repository = SqliteNoteRepository(Database(f"sqlite:///{tmp_path}/notes.db"))
    asyncio.run(repository.insert(Note(id="unordered", description="x")))
    asyncio.run(repository.insert(Note(id="second", description="x", order=2)))
    asyncio.run(repository.insert(Note(id="first", description="x", order=1)))

    assert [note.id for note in asyncio.run(repository.fetch_all())] == ["first", "second", "unordered"]
