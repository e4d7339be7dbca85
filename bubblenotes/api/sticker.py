"""
Sticker API
Turn an editor session into a transform descriptor and render image stickers.
"""

import base64
import binascii
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from bubblenotes.api.deps import get_services
from bubblenotes.models.media import MediaType
from bubblenotes.models.sticker import StickerEditRequest, StickerTransform
from bubblenotes.services.container import ServiceContainer
from bubblenotes.services.sticker_editor import editor_from_request
from bubblenotes.services.sticker_renderer import check_renderable, render_sticker, to_data_url
from bubblenotes.utils.errors import StickerRenderError

router = APIRouter(prefix="/api/sticker", tags=["sticker"])


class StickerRenderRequest(BaseModel):
    image: str  # data: URL or bare base64
    transform: StickerTransform


def _decode_image(image: str) -> tuple:
    mime = "image/png"
    payload = image
    if image.startswith("data:"):
        header, _, payload = image.partition(",")
        mime = header[5:].split(";")[0] or mime
    try:
        return mime, base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=422, detail="Image must be base64 encoded")


@router.post("/bake", response_model=StickerTransform)
async def bake_sticker(payload: StickerEditRequest):
    """Clamp the submitted edit and return the final descriptor"""
    return editor_from_request(payload).bake()


@router.post("/render")
async def render(payload: StickerRenderRequest, services: ServiceContainer = Depends(get_services)) -> Dict[str, Any]:
    mime, data = _decode_image(payload.image)
    try:
        check_renderable(MediaType.from_mime(mime))
        webp = render_sticker(
            data,
            payload.transform,
            viewport_size=services.settings.sticker_viewport_size,
            content_size=services.settings.sticker_content_size,
        )
    except StickerRenderError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"media": to_data_url(webp)}
