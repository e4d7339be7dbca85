"""
Bubble Notes entry point
Starts the FastAPI application: notes journal, media uploads, sticker editor
and WhatsApp sticker sending.
"""

from bubblenotes.app import create_app
from bubblenotes.utils.config import settings
from bubblenotes.utils.logger import logger

app = create_app(settings)


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server: {settings.host}:{settings.port}")
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
