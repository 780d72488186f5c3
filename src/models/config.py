"""Configuration data models."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    store_backend: str  # "file", "object" or "memory"
    data_file: Path
    log_level: str
    object_store_url: str | None = None  # Bucket or gateway base URL, required for "object"
    object_key: str = "public/game-data.json"
    request_timeout: float = 30.0
    max_retries: int = 3
    default_top_limit: int = 5
