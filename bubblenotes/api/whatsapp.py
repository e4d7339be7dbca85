"""
WhatsApp API
Status polling and actions for pairing a WhatsApp account and sending
stickers to it.
"""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sse_starlette.sse import EventSourceResponse

from bubblenotes.api.deps import get_services, get_whatsapp
from bubblenotes.services.container import ServiceContainer
from bubblenotes.services.whatsapp_service import PairingMonitor, WhatsAppService
from bubblenotes.utils.errors import WhatsAppError, WhatsAppNotReadyError
from bubblenotes.utils.logger import logger

router = APIRouter(prefix="/api/whatsapp", tags=["whatsapp"])


class WhatsAppActionRequest(BaseModel):
    action: str
    media: Optional[str] = None


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


@router.get("")
async def whatsapp_get(action: Optional[str] = None, whatsapp: WhatsAppService = Depends(get_whatsapp)):
    """
    GET actions:
        status      -> {isReady, hasQR, phoneNumber, error}
        qr          -> {qrCode}
        init        start pairing
        disconnect  log out and remove the session
    """
    if action == "status":
        status = await whatsapp.refresh()
        return status.model_dump(by_alias=True)

    if action == "qr":
        return {"qrCode": whatsapp.qr() or ""}

    if action == "init":
        try:
            await whatsapp.init()
        except WhatsAppError:
            return _error("Failed to initialize WhatsApp", 500)
        return {"success": True, "message": "WhatsApp initialization started"}

    if action == "disconnect":
        await whatsapp.disconnect()
        return {"success": True, "message": "WhatsApp disconnected and session cleaned"}

    return _error("Invalid action", 400)


@router.post("")
async def whatsapp_post(payload: WhatsAppActionRequest, whatsapp: WhatsAppService = Depends(get_whatsapp)):
    if payload.action != "send-sticker":
        return _error("Invalid action", 400)

    try:
        await whatsapp.send_sticker(payload.media or "")
    except WhatsAppNotReadyError:
        return _error("WhatsApp is not connected", 400)
    except ValueError as e:
        return _error(str(e), 400)
    except WhatsAppError as e:
        logger.error(f"Failed to send sticker: {e}")
        return _error("Failed to send sticker", 500)

    return {"success": True, "message": "Sticker sent successfully!"}


@router.get("/events")
async def whatsapp_events(services: ServiceContainer = Depends(get_services)):
    """Server-sent pairing events: status, qr, ready, timeout"""
    monitor = PairingMonitor(
        services.whatsapp.refresh,
        interval=services.settings.whatsapp_poll_interval,
        timeout=services.settings.whatsapp_init_timeout,
    )

    async def stream():
        async for event in monitor.events():
            yield _sse(event)

    return EventSourceResponse(stream())


def _sse(event: Dict[str, Any]) -> Dict[str, str]:
    return {"event": event["event"], "data": json.dumps(event["data"])}
