"""
Notes API
List, search, create, edit, reorder and delete note bubbles.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response

from bubblenotes.api.deps import get_note_store
from bubblenotes.models.note import BulkDeleteRequest, MoveRequest, Note, NoteCreate, NoteUpdate
from bubblenotes.models.sticker import StickerTransform
from bubblenotes.services.countdown import countdown_remaining, format_countdown
from bubblenotes.services.note_store import NoteStore
from bubblenotes.utils.errors import (
    InvalidNoteEditError,
    NoteNotFoundError,
    NoteSyncError,
    ReorderDisabledError,
    RepositoryError,
)
from bubblenotes.utils.logger import logger

router = APIRouter(prefix="/api/notes", tags=["notes"])

DELETED_WHILE_EDITING = "This note was deleted and can no longer be edited."


def _find(store: NoteStore, note_id: str) -> Note:
    try:
        return store.get(note_id)
    except NoteNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")


@router.get("", response_model=List[Note])
async def list_notes(q: Optional[str] = None, store: NoteStore = Depends(get_note_store)):
    """Notes in display order, optionally narrowed by a search text"""
    return list(store.filter(q))


@router.post("/refresh", response_model=List[Note])
async def refresh_notes(store: NoteStore = Depends(get_note_store)):
    """Reload the list from the store"""
    try:
        return list(await store.load())
    except RepositoryError:
        raise HTTPException(status_code=502, detail="Failed to load notes")


@router.post("", response_model=Note, status_code=201)
async def create_note(payload: NoteCreate, store: NoteStore = Depends(get_note_store)):
    """
    Create a note.

    The note is kept even if it could not be saved; a later refresh shows
    what the store actually holds.
    """
    try:
        note = payload.to_note()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    try:
        return await store.add(note)
    except InvalidNoteEditError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/{note_id}", response_model=Note)
async def get_note(note_id: str, store: NoteStore = Depends(get_note_store)):
    return _find(store, note_id)


@router.patch("/{note_id}", response_model=Note)
async def edit_note(note_id: str, payload: NoteUpdate, store: NoteStore = Depends(get_note_store)):
    _find(store, note_id)
    try:
        return await store.edit(note_id, payload.fields())
    except NoteNotFoundError:
        raise HTTPException(status_code=409, detail=DELETED_WHILE_EDITING)
    except InvalidNoteEditError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{note_id}", status_code=204)
async def delete_note(note_id: str, store: NoteStore = Depends(get_note_store)):
    # Idempotent: deleting an unknown note is not an error
    try:
        await store.remove(note_id)
    except NoteSyncError:
        raise HTTPException(status_code=502, detail="Failed to delete note")
    return Response(status_code=204)


@router.post("/bulk-delete")
async def bulk_delete_notes(payload: BulkDeleteRequest, store: NoteStore = Depends(get_note_store)) -> Dict[str, Any]:
    try:
        deleted = await store.remove_many(payload.ids)
    except NoteSyncError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"deleted": deleted}


@router.post("/{note_id}/move")
async def move_note(note_id: str, payload: MoveRequest, store: NoteStore = Depends(get_note_store)) -> Dict[str, Any]:
    """Move a note one place up or down"""
    try:
        moved = await store.move(note_id, payload.direction, payload.search_text)
    except ReorderDisabledError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except NoteNotFoundError:
        raise HTTPException(status_code=404, detail="Note not found")
    except NoteSyncError:
        raise HTTPException(status_code=502, detail="Failed to reorder notes")
    return {"moved": moved, "notes": list(store.notes)}


@router.delete("/{note_id}/media/{media_id}", response_model=Note)
async def remove_media_item(note_id: str, media_id: str, store: NoteStore = Depends(get_note_store)):
    _find(store, note_id)
    if not await store.remove_media_item(note_id, media_id):
        raise HTTPException(status_code=404, detail="Media item not found")
    return store.get(note_id)


@router.put("/{note_id}/media/{media_id}/sticker", response_model=Note)
async def save_sticker_edit(
    note_id: str,
    media_id: str,
    payload: StickerTransform,
    store: NoteStore = Depends(get_note_store),
):
    """Store a baked sticker edit on one media item of a note"""
    _find(store, note_id)
    if not await store.set_media_transform(note_id, media_id, payload):
        raise HTTPException(status_code=404, detail="Media item not found")
    return store.get(note_id)


@router.get("/{note_id}/countdown")
async def get_countdown(note_id: str, store: NoteStore = Depends(get_note_store)) -> Dict[str, Any]:
    note = _find(store, note_id)
    if not note.is_countdown or note.countdown_date is None:
        logger.warning(f"Countdown requested for a media note: {note_id}")
        raise HTTPException(status_code=400, detail="Not a countdown note")
    remaining = countdown_remaining(note.countdown_date)
    return {
        "text": format_countdown(note.countdown_date),
        "remainingSeconds": remaining,
        "finished": remaining == 0,
    }
