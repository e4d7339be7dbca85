"""
Route dependencies
Hand the services held by the application to the routes.
"""

from fastapi import Request

from bubblenotes.services.container import ServiceContainer
from bubblenotes.services.media_service import MediaService
from bubblenotes.services.note_store import NoteStore
from bubblenotes.services.whatsapp_service import WhatsAppService


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_note_store(request: Request) -> NoteStore:
    return get_services(request).note_store


def get_media_service(request: Request) -> MediaService:
    return get_services(request).media_service


def get_whatsapp(request: Request) -> WhatsAppService:
    return get_services(request).whatsapp
