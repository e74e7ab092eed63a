"""Configuration models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Settings loaded from .env file (secrets and credentials)."""

    google_api_key: Optional[str] = Field(None, description="Google API key for Gemini")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class AppConfig(BaseModel):
    """Application configuration from config.yaml."""

    # Server settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Server port")

    # Storage
    storage_path: Optional[str] = Field(
        None,
        description="Directory of the bookmark store (defaults to <config_dir>/storage)",
    )
    storage_key: str = Field(
        default="bookmarkbrain_bookmarks",
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Key the bookmark collection is stored under",
    )
    recover_interrupted_on_start: bool = Field(
        default=True,
        description="Move bookmarks left 'pending' by an interrupted run to 'error' on startup",
    )
    storage_lock_timeout: float = Field(
        default=5.0, ge=0.05, le=60.0, description="Seconds to wait for the store lock on writes"
    )

    # Batch pacing (5 concurrent requests every 4.5s stays under 15 requests/minute)
    batch_size: int = Field(default=5, ge=1, le=50)
    batch_delay_seconds: float = Field(default=4.5, ge=0.0, le=300.0)

    # Page fetch
    page_fetch_timeout: float = Field(
        default=10.0, ge=1.0, le=60.0, description="Page fetch timeout in seconds"
    )
    max_page_chars: int = Field(default=8000, ge=500, le=100000)

    # Summarizer model
    summarizer_endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    )
    summarizer_model: str = Field(default="gemini-2.0-flash")
    summarizer_temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    summarizer_max_output_tokens: int = Field(default=500, ge=50, le=8192)
    summarizer_timeout_seconds: float = Field(default=30.0, ge=5.0, le=120.0)
    remote_summarize_url: Optional[str] = Field(
        None,
        description="POST {url} to this summarize endpoint instead of calling the model directly",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "host": "127.0.0.1",
            "port": 8000,
            "storage_path": "/home/user/.bookmarkbrain/storage",
            "batch_size": 5,
            "batch_delay_seconds": 4.5,
            "summarizer_model": "gemini-2.0-flash",
            "log_level": "INFO",
        }
    })
