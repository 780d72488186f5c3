"""Service layer for ranking logic and storage integrations."""

from .catalog import GameCatalogService, slugify
from .config import ConfigurationService, ValidationResult
from .errors import (
    AppError,
    ConfigurationError,
    ErrorCategory,
    ErrorHandlingService,
    ErrorSeverity,
    GameNotFoundError,
    InvalidArgumentError,
    NetworkError,
    StorageFailure,
    UserFriendlyError,
    get_error_service,
    handle_error,
)
from .filesystem import FileSystemService
from .http_client import HttpClientService
from .ranking_service import GameRankingService
from .store import FileGameStore, GameStore, InMemoryGameStore, ObjectStoreGameStore

__all__ = [
    "AppError",
    "ConfigurationError",
    "ConfigurationService",
    "ErrorCategory",
    "ErrorHandlingService",
    "ErrorSeverity",
    "FileGameStore",
    "FileSystemService",
    "GameCatalogService",
    "GameNotFoundError",
    "GameRankingService",
    "GameStore",
    "HttpClientService",
    "InMemoryGameStore",
    "InvalidArgumentError",
    "NetworkError",
    "ObjectStoreGameStore",
    "StorageFailure",
    "UserFriendlyError",
    "ValidationResult",
    "get_error_service",
    "handle_error",
    "slugify",
]
