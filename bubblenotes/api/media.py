"""
Media API
Upload files for a note being composed, and discard uploads that were never
attached.
"""

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile

from bubblenotes.api.deps import get_media_service
from bubblenotes.models.media import MediaItem
from bubblenotes.services.media_service import MediaService
from bubblenotes.utils.errors import UploadError

router = APIRouter(prefix="/api/media", tags=["media"])


@router.post("", response_model=MediaItem, status_code=201)
async def upload_media(file: UploadFile = File(...), media: MediaService = Depends(get_media_service)):
    data = await file.read()
    try:
        return await media.upload(file.filename, file.content_type, data)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))


@router.delete("", status_code=204)
async def discard_media(
    storage_path: str = Query(..., alias="storagePath"),
    media: MediaService = Depends(get_media_service),
):
    try:
        await media.discard(storage_path)
    except UploadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return Response(status_code=204)
