"""
Service container
Builds every client and service from the settings and owns their lifecycle.
The application creates one on startup and disposes it on shutdown.
"""

from typing import Optional

import httpx

from bubblenotes.bot.whatsapp_client import WhatsAppBridgeDriver, WhatsAppDriver
from bubblenotes.services.blob_storage import BlobStorage, LocalBlobStorage, SupabaseBlobStorage
from bubblenotes.services.media_service import MediaService
from bubblenotes.services.note_repository import (
    NoteRepository,
    SqliteNoteRepository,
    SupabaseNoteRepository,
)
from bubblenotes.services.note_store import NoteStore
from bubblenotes.services.whatsapp_service import WhatsAppService
from bubblenotes.utils.config import Settings
from bubblenotes.utils.database import Database
from bubblenotes.utils.errors import RepositoryError
from bubblenotes.utils.logger import logger


class ServiceContainer:
    """Composition root for the application's services"""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        repository: NoteRepository,
        storage: BlobStorage,
        whatsapp_driver: WhatsAppDriver,
    ):
        self.settings = settings
        self.http_client = http_client
        self.repository = repository
        self.storage = storage
        self.note_store = NoteStore(repository, storage)
        self.media_service = MediaService(storage)
        self.whatsapp_driver = whatsapp_driver
        self.whatsapp = WhatsAppService(
            whatsapp_driver,
            session_root=settings.whatsapp_session_root,
            init_timeout=settings.whatsapp_init_timeout,
            logout_grace=settings.whatsapp_logout_grace,
        )

    @classmethod
    def build(cls, settings: Settings, whatsapp_driver: Optional[WhatsAppDriver] = None) -> "ServiceContainer":
        """
        Create the clients for the configured backend.

        Args:
            settings: application settings
            whatsapp_driver: driver override; defaults to the HTTP bridge driver

        Returns:
            the container (call init() before use)
        """
        http_client = httpx.AsyncClient(timeout=settings.http_timeout)

        if settings.storage_backend == "supabase":
            if not settings.supabase_url or not settings.supabase_key:
                raise ValueError("SUPABASE_URL and SUPABASE_KEY are required for the supabase backend")
            repository: NoteRepository = SupabaseNoteRepository(
                http_client, settings.supabase_url, settings.supabase_key
            )
            storage: BlobStorage = SupabaseBlobStorage(
                http_client, settings.supabase_url, settings.supabase_key, settings.storage_bucket
            )
        elif settings.storage_backend == "sqlite":
            repository = SqliteNoteRepository(Database(settings.database_url))
            storage = LocalBlobStorage(settings.media_dir, settings.media_base_url)
        else:
            raise ValueError(f"Unknown storage backend: {settings.storage_backend}")

        driver = whatsapp_driver or WhatsAppBridgeDriver(http_client, settings.whatsapp_bridge_url)
        logger.info(f"Services built with the {settings.storage_backend} backend")
        return cls(settings, http_client, repository, storage, driver)

    async def init(self) -> None:
        """Initial load of the note list; a failed load leaves it empty"""
        try:
            await self.note_store.load()
        except RepositoryError:
            logger.error("Initial note load failed; the list starts empty")

    async def dispose(self) -> None:
        await self.whatsapp.close()
        await self.whatsapp_driver.close()
        await self.storage.close()
        await self.repository.close()
        await self.http_client.aclose()
        logger.info("Services disposed")
