"""
Configuration
Holds every setting of the application: server, storage backends, WhatsApp
bridge, sticker editor and logging.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Storage backend: "sqlite" (local) or "supabase" (hosted)
    storage_backend: str = "sqlite"
    database_url: str = "sqlite:///./data/bubble_notes.db"
    media_dir: str = "./data/media"
    media_base_url: str = "/media"

    # Supabase (hosted relational + blob store)
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "notes-media"
    http_timeout: float = 30.0

    # WhatsApp automation bridge
    whatsapp_bridge_url: str = "http://127.0.0.1:3001"
    whatsapp_session_root: str = "."
    whatsapp_init_timeout: float = 30.0
    whatsapp_poll_interval: float = 2.0
    whatsapp_logout_grace: float = 2.0

    # Sticker editor
    sticker_viewport_size: int = 512
    sticker_content_size: int = 256

    # Logging
    log_level: str = "INFO"
    log_file: str = "logs/app.log"

    # Application
    app_name: str = "Bubble Notes"
    app_version: str = "1.0.0"
    debug: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """
    Return the process-wide settings instance.
    lru_cache keeps a single instance per process.
    """
    return Settings()


settings = get_settings()
