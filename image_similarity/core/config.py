"""Application configuration management."""
from pathlib import Path
from typing import Annotated, List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage backend
    storage_backend: str = Field(
        default="memory",
        description="Image store and history backend (memory, database)"
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./image_similarity.db",
        description="SQLAlchemy async connection URL"
    )
    database_pool_size: int = Field(default=20, description="Database connection pool size")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Redis (image record cache, disabled when unset)
    redis_url: Optional[str] = Field(default=None, description="Redis connection URL")
    image_cache_ttl_seconds: int = Field(
        default=3600,
        description="Image record cache TTL in seconds"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000"],
        description="CORS allowed origins"
    )

    # Feature extraction
    feature_extractor: str = Field(
        default="histogram",
        description="Feature extractor type (histogram, clip)"
    )
    clip_model_name: str = Field(default="ViT-B-32", description="open_clip model name")
    clip_pretrained: str = Field(default="openai", description="open_clip pretrained weights")
    clip_device: str = Field(default="auto", description="Torch device (auto, cpu, cuda)")
    processed_image_size: int = Field(
        default=224,
        ge=1,
        description="Side of the square display image stored with each record"
    )
    processed_image_quality: int = Field(
        default=85,
        ge=1,
        le=100,
        description="JPEG quality of the stored display image"
    )
    extractor_workers: int = Field(default=2, ge=1, description="Extraction worker threads")

    # Uploads
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1,
        description="Largest accepted upload in bytes"
    )
    accepted_mime_types: Annotated[List[str], NoDecode] = Field(
        default=["image/jpeg", "image/png"],
        description="Accepted upload MIME types"
    )

    # Search
    default_search_limit: int = Field(default=10, ge=1, description="Results when no limit is given")
    max_search_limit: int = Field(default=100, ge=1, description="Upper bound for requested limits")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Log file path")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cors_origins", "accepted_mime_types", mode="before")
    @classmethod
    def parse_list(cls, v):
        """Parse list settings from a JSON or comma separated string."""
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("storage_backend", "feature_extractor", mode="after")
    @classmethod
    def normalize_choice(cls, v: str) -> str:
        """Choices are matched case-insensitively."""
        return v.strip().lower()

    @property
    def uses_database(self) -> bool:
        """Whether images and history are kept in the relational database."""
        return self.storage_backend == "database"

    def ensure_directories_exist(self):
        """Create the log directory if a log file is configured."""
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)


# Singleton instance - will be initialized when config is imported
# In production, this reads from .env file
# In tests, services accept their own Settings instance
try:
    settings = Settings()
except Exception as e:
    print(f"Error loading configuration: {e}")
    print("Check the environment variables and the .env file (see .env.example).")
    raise
