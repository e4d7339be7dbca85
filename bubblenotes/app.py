"""
Application factory
Assembles the FastAPI application: routes, static media and the service
lifecycle.
"""

from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from bubblenotes.api import media, notes, sticker, whatsapp
from bubblenotes.bot.whatsapp_client import WhatsAppDriver
from bubblenotes.services.container import ServiceContainer
from bubblenotes.utils.config import Settings, settings as default_settings
from bubblenotes.utils.logger import logger


def create_app(settings: Optional[Settings] = None, whatsapp_driver: Optional[WhatsAppDriver] = None) -> FastAPI:
    """
    Create the application.

    Args:
        settings: settings to use instead of the environment's
        whatsapp_driver: WhatsApp driver override

    Returns:
        the FastAPI application
    """
    settings = settings or default_settings

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug
    )

    app.include_router(notes.router)
    app.include_router(media.router)
    app.include_router(sticker.router)
    app.include_router(whatsapp.router)

    if settings.storage_backend == "sqlite":
        Path(settings.media_dir).mkdir(parents=True, exist_ok=True)
        app.mount(settings.media_base_url, StaticFiles(directory=settings.media_dir), name="media")

    @app.on_event("startup")
    async def startup_event():
        """Build the services and load the notes"""
        app.state.services = ServiceContainer.build(settings, whatsapp_driver)
        await app.state.services.init()
        logger.info(f"{settings.app_name} v{settings.app_version} started")

    @app.on_event("shutdown")
    async def shutdown_event():
        """Dispose the services"""
        await app.state.services.dispose()
        logger.info(f"{settings.app_name} stopped")

    @app.get("/")
    async def root():
        """Application info"""
        return {
            "app_name": settings.app_name,
            "version": settings.app_version,
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        """Health check"""
        return {"status": "healthy", "code": 0}

    return app

