"""
Note store and ordering engine
Holds the ordered list of notes for the session, applies every mutation
locally first and then reconciles it with the relational and blob stores.

Failure policy:
    add / update          logged, local state kept
    remove / swap / bulk  full reload from the store, then NoteSyncError
"""

import asyncio
from typing import List, Dict, Any, Optional, Tuple

from bubblenotes.models.note import Note
from bubblenotes.models.sticker import StickerTransform
from bubblenotes.services.blob_storage import BlobStorage
from bubblenotes.services.note_repository import NoteRepository
from bubblenotes.utils.errors import (
    BlobStorageError,
    InvalidNoteEditError,
    NoteNotFoundError,
    NoteSyncError,
    ReorderDisabledError,
    RepositoryError,
)
from bubblenotes.utils.logger import logger


class NoteStore:
    """In-memory ordered note list backed by a repository and a blob store"""

    def __init__(self, repository: NoteRepository, storage: BlobStorage):
        """
        Args:
            repository: relational store for note rows
            storage: blob store for media files
        """
        self.repository = repository
        self.storage = storage
        self._notes: List[Note] = []

    @property
    def notes(self) -> Tuple[Note, ...]:
        return tuple(self._notes)

    def _index_of(self, note_id: str) -> Optional[int]:
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                return index
        return None

    def get(self, note_id: str) -> Note:
        index = self._index_of(note_id)
        if index is None:
            raise NoteNotFoundError(note_id)
        return self._notes[index]

    # ========== Loading ==========

    async def load(self) -> Tuple[Note, ...]:
        """
        Replace the list with the store's contents.

        Returns:
            the loaded notes

        Raises:
            RepositoryError: the fetch failed; the previous list is kept
        """
        try:
            notes = await self.repository.fetch_all()
        except RepositoryError as e:
            logger.error(f"Failed to load notes: {e}")
            raise
        self._notes = list(notes)
        logger.info(f"Loaded {len(self._notes)} notes")
        return self.notes

    async def _resync(self) -> None:
        try:
            await self.load()
        except RepositoryError:
            logger.error("Resync after failed operation did not complete")

    # ========== Create / edit ==========

    def _next_order(self) -> int:
        orders = [note.order for note in self._notes if note.order is not None]
        return max(orders) + 1 if orders else 1

    async def add(self, note: Note) -> Note:
        """
        Append a note and persist it.

        A countdown note drops any uploaded media (their blobs are removed).
        A persistence failure is logged and the note stays in the list.

        Args:
            note: the new note

        Returns:
            the note as stored locally, with its order assigned
        """
        if self._index_of(note.id) is not None:
            raise InvalidNoteEditError(f"Note id already in use: {note.id}")

        orphaned = []
        if note.is_countdown and note.contents:
            orphaned = [item.storage_path for item in note.contents]
            note = note.model_copy(update={"contents": []})
        if note.is_empty():
            raise InvalidNoteEditError("A note needs a description or media")

        note = note.model_copy(update={"order": self._next_order()})
        self._notes.append(note)

        if orphaned:
            await self._remove_blobs(orphaned)

        try:
            await self.repository.insert(note)
            logger.info(f"Note saved: {note.id} (order {note.order})")
        except RepositoryError as e:
            logger.error(f"Failed to save note {note.id}: {e}")
        return note

    def _apply_local(self, note_id: str, fields: Dict[str, Any]) -> Note:
        index = self._index_of(note_id)
        if index is None:
            raise NoteNotFoundError(note_id)
        updated = self._notes[index].model_copy(update=fields)
        self._notes[index] = updated
        return updated

    async def _persist_update(self, note_id: str, fields: Dict[str, Any]) -> None:
        try:
            await self.repository.update(note_id, fields)
        except RepositoryError as e:
            logger.error(f"Failed to update note {note_id}: {e}")

    async def update(self, note_id: str, fields: Dict[str, Any]) -> Note:
        """
        Merge fields into a note and persist the same fields.

        Args:
            note_id: note id
            fields: attribute values to merge (description, contents, order, ...)

        Returns:
            the merged note
        """
        updated = self._apply_local(note_id, fields)
        await self._persist_update(note_id, fields)
        return updated

    async def edit(self, note_id: str, fields: Dict[str, Any]) -> Note:
        """
        User edit of a note.

        The note must still exist in the store, and the edit must keep the
        note in its mode: media notes take contents, countdown notes take a
        countdown date, and neither may be flipped into the other.

        Args:
            note_id: note id
            fields: description, contents, countdown_date or is_countdown

        Returns:
            the merged note

        Raises:
            NoteNotFoundError: the note was deleted; the edit is discarded
            InvalidNoteEditError: the edit breaks the mode or empties the note
        """
        note = self.get(note_id)
        fields = dict(fields)

        if "is_countdown" in fields:
            if bool(fields.pop("is_countdown")) != note.is_countdown:
                raise InvalidNoteEditError("A note cannot switch between countdown and media mode")
        if note.is_countdown:
            if "contents" in fields:
                raise InvalidNoteEditError("Countdown notes carry no media")
            if "countdown_date" in fields and fields["countdown_date"] is None:
                raise InvalidNoteEditError("Countdown notes need a countdown date")
        elif fields.get("countdown_date") is not None:
            raise InvalidNoteEditError("Only countdown notes have a countdown date")

        if note.model_copy(update=fields).is_empty():
            raise InvalidNoteEditError("A note needs a description or media")

        try:
            still_there = await self.repository.exists(note_id)
        except RepositoryError as e:
            logger.error(f"Existence check failed for note {note_id}: {e}")
            still_there = False
        if not still_there:
            logger.warning(f"Edit discarded, note was deleted: {note_id}")
            raise NoteNotFoundError(note_id)

        return await self.update(note_id, fields)

    async def remove_media_item(self, note_id: str, media_id: str) -> bool:
        """
        Detach one media item from a note and delete its blob.

        Args:
            note_id: note id
            media_id: media item id

        Returns:
            False when the note has no such item
        """
        note = self.get(note_id)
        item = next((i for i in note.contents if i.id == media_id), None)
        if item is None:
            return False

        contents = [i for i in note.contents if i.id != media_id]
        self._apply_local(note_id, {"contents": contents})
        await self._remove_blobs([item.storage_path])
        await self._persist_update(note_id, {"contents": contents})
        return True

    async def set_media_transform(self, note_id: str, media_id: str, transform: StickerTransform) -> bool:
        """
        Attach a baked sticker edit to one media item and persist the contents.

        Args:
            note_id: note id
            media_id: media item id
            transform: baked edit; replaces any earlier one

        Returns:
            False when the note has no such item
        """
        note = self.get(note_id)
        if not any(item.id == media_id for item in note.contents):
            return False

        contents = [
            item.model_copy(update={"sticker": transform}) if item.id == media_id else item
            for item in note.contents
        ]
        await self.update(note_id, {"contents": contents})
        logger.info(f"Sticker edit saved for media {media_id} of note {note_id}")
        return True

    # ========== Deletion ==========

    async def _remove_blobs(self, storage_paths: List[str]) -> None:
        # Orphaned blobs are tolerated; row deletion goes on regardless
        try:
            await self.storage.remove(storage_paths)
        except BlobStorageError as e:
            logger.warning(f"Blob removal failed, {len(storage_paths)} blob(s) orphaned: {e}")

    async def _delete_remote(self, note_id: str, note: Optional[Note]) -> None:
        if note is not None and note.contents:
            await self._remove_blobs([item.storage_path for item in note.contents])
        await self.repository.delete(note_id)

    def _pop(self, note_id: str) -> Optional[Note]:
        index = self._index_of(note_id)
        return self._notes.pop(index) if index is not None else None

    async def remove(self, note_id: str) -> bool:
        """
        Delete a note, its blobs and its row.

        Calling it again for the same id is harmless.

        Args:
            note_id: note id

        Returns:
            True when the note was in the list

        Raises:
            NoteSyncError: the row delete failed; the list has been reloaded
        """
        note = self._pop(note_id)
        try:
            await self._delete_remote(note_id, note)
        except RepositoryError as e:
            logger.error(f"Failed to delete note {note_id}: {e}")
            await self._resync()
            raise NoteSyncError("Failed to delete note") from e
        logger.info(f"Note deleted: {note_id}")
        return note is not None

    async def remove_many(self, note_ids: List[str]) -> int:
        """
        Delete several notes; all deletions run concurrently.

        Args:
            note_ids: note ids

        Returns:
            how many of the notes were in the list

        Raises:
            NoteSyncError: at least one deletion failed; the list has been reloaded
        """
        ids = list(dict.fromkeys(note_ids))
        popped = [(note_id, self._pop(note_id)) for note_id in ids]

        results = await asyncio.gather(
            *(self._delete_remote(note_id, note) for note_id, note in popped),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            logger.error(f"{len(failures)} of {len(ids)} deletions failed: {failures[0]}")
            await self._resync()
            raise NoteSyncError(f"Failed to delete {len(failures)} note(s)") from failures[0]

        removed = sum(1 for _, note in popped if note is not None)
        logger.info(f"Bulk delete finished: {removed} note(s)")
        return removed

    # ========== Ordering ==========

    async def swap_order(self, id_a: str, id_b: str) -> Tuple[Note, Note]:
        """
        Exchange the order values and list positions of two notes.

        A note without an order contributes its 1-based list position.

        Args:
            id_a: first note id
            id_b: second note id

        Returns:
            the two notes after the swap (a, b)

        Raises:
            NoteSyncError: a write failed; the list has been reloaded
        """
        index_a, index_b = self._index_of(id_a), self._index_of(id_b)
        if index_a is None:
            raise NoteNotFoundError(id_a)
        if index_b is None:
            raise NoteNotFoundError(id_b)

        note_a, note_b = self._notes[index_a], self._notes[index_b]
        order_a = note_a.order if note_a.order is not None else index_a + 1
        order_b = note_b.order if note_b.order is not None else index_b + 1

        moved_a = note_a.model_copy(update={"order": order_b})
        moved_b = note_b.model_copy(update={"order": order_a})
        self._notes[index_a], self._notes[index_b] = moved_b, moved_a

        try:
            await asyncio.gather(
                self.repository.update(id_a, {"order": order_b}),
                self.repository.update(id_b, {"order": order_a}),
            )
        except RepositoryError as e:
            logger.error(f"Failed to reorder notes {id_a} / {id_b}: {e}")
            await self._resync()
            raise NoteSyncError("Failed to reorder notes") from e
        return moved_a, moved_b

    async def move(self, note_id: str, direction: str, search_text: Optional[str] = None) -> bool:
        """
        Swap a note with its neighbour above ("up") or below ("down").

        Args:
            note_id: note id
            direction: "up" or "down"
            search_text: the active search, if any; reordering is refused while searching

        Returns:
            False when the note is already at that end of the list
        """
        if search_text and search_text.strip():
            raise ReorderDisabledError("Notes cannot be reordered while a search is active")
        if direction not in ("up", "down"):
            raise ValueError(f"Unknown direction: {direction}")

        index = self._index_of(note_id)
        if index is None:
            raise NoteNotFoundError(note_id)
        neighbour = index - 1 if direction == "up" else index + 1
        if neighbour < 0 or neighbour >= len(self._notes):
            return False

        await self.swap_order(note_id, self._notes[neighbour].id)
        return True

    async def move_up(self, note_id: str, search_text: Optional[str] = None) -> bool:
        return await self.move(note_id, "up", search_text)

    async def move_down(self, note_id: str, search_text: Optional[str] = None) -> bool:
        return await self.move(note_id, "down", search_text)

    # ========== Search ==========

    def filter(self, text: Optional[str]) -> Tuple[Note, ...]:
        """Notes whose description or media file names contain the text"""
        return tuple(note for note in self._notes if note.matches(text or ""))
