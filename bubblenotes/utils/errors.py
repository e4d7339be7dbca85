"""
Exception types
Adapters raise these; the note store and the routes translate them.
"""


class BubbleNotesError(Exception):
    """Base class for every application error"""


class RepositoryError(BubbleNotesError):
    """The relational store rejected or failed a call"""


class BlobStorageError(BubbleNotesError):
    """The blob store rejected or failed a call"""


class NoteNotFoundError(BubbleNotesError):
    """The note no longer exists (deleted locally or remotely)"""

    def __init__(self, note_id: str):
        super().__init__(f"Note not found: {note_id}")
        self.note_id = note_id


class NoteSyncError(BubbleNotesError):
    """A destructive operation failed; the list was reloaded from the store"""


class ReorderDisabledError(BubbleNotesError):
    """Reordering was requested while a search filter is active"""


class InvalidNoteEditError(BubbleNotesError):
    """The edit would break the note's mode or leave it empty"""


class UploadError(BubbleNotesError):
    """A media upload failed; nothing was attached"""


class WhatsAppError(BubbleNotesError):
    """The WhatsApp driver failed"""


class WhatsAppNotReadyError(WhatsAppError):
    """An action needs a linked, ready WhatsApp session"""


class StickerRenderError(BubbleNotesError):
    """The media cannot be rendered as a sticker"""
