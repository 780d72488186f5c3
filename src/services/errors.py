"""Error handling module for the game ranking backend.

This module provides:
- Typed exceptions for the ranking domain (not found, invalid argument, storage)
- User-friendly error messages with suggested actions
- Mapping of error categories to HTTP-equivalent status codes and CLI exit codes
- A centralized error handling service that logs technical details
"""

import json
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog

log = structlog.stdlib.get_logger()


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    NOT_FOUND = "not_found"
    INVALID_ARGUMENT = "invalid_argument"
    STORAGE = "storage"
    NETWORK = "network"
    FILE_SYSTEM = "file_system"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# HTTP-equivalent status per category; anything not listed is a server fault
_STATUS_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.NOT_FOUND: 404,
    ErrorCategory.INVALID_ARGUMENT: 400,
}

_EXIT_CODES: dict[ErrorCategory, int] = {
    ErrorCategory.INVALID_ARGUMENT: 2,
    ErrorCategory.NOT_FOUND: 3,
}


def status_code_for(category: ErrorCategory) -> int:
    return _STATUS_CODES.get(category, 500)


def exit_code_for(category: ErrorCategory) -> int:
    return _EXIT_CODES.get(category, 1)


@dataclass(frozen=True)
class ErrorContext:
    """Context information for an error."""
    operation: str
    component: str
    details: dict[str, Any]


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True

    @property
    def status_code(self) -> int:
        return status_code_for(self.category)

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.category)


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context

    @property
    def status_code(self) -> int:
        return status_code_for(self.category)

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


class GameNotFoundError(AppError):
    """Raised when a game id is absent from the collection."""

    def __init__(self, game_id: str) -> None:
        super().__init__(
            message=f"Game with ID {game_id} not found",
            category=ErrorCategory.NOT_FOUND,
            severity=ErrorSeverity.WARNING,
            suggested_actions=[
                "Verify the game ID is correct",
                "The game may have been deleted",
            ],
            technical_details=f"Game ID: {game_id}",
        )
        self.game_id = game_id


class InvalidArgumentError(AppError):
    """Raised for malformed input, before any collection mutation."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        constraints: list[str] | None = None,
    ) -> None:
        suggested_actions = ["Review the input requirements"]
        if constraints:
            suggested_actions.extend([f"Ensure: {c}" for c in constraints])

        technical_details = None
        if field:
            technical_details = f"Field: {field}"
        if value is not None:
            value_str = str(value)[:100]  # Truncate long values
            technical_details = (technical_details or "") + f"\nValue: {value_str}"

        super().__init__(
            message=message,
            category=ErrorCategory.INVALID_ARGUMENT,
            severity=ErrorSeverity.WARNING,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
        )
        self.field = field
        self.value = value
        self.constraints = constraints or []


class StorageFailure(AppError):
    """Raised when the game store cannot load or save the collection."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        location: str | None = None,
        operation: str | None = None,
    ) -> None:
        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {str(original_error)}"
        if location:
            technical_details = f"Location: {location}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            severity=ErrorSeverity.ERROR,
            suggested_actions=[
                "Check that the game store is reachable",
                "Verify storage credentials and permissions",
                "Try again in a few moments",
            ],
            technical_details=technical_details,
        )
        self.original_error = original_error
        self.location = location
        self.operation = operation


class NetworkError(AppError):
    """Exception for network-related errors."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        suggested_actions = [
            "Check your network connection",
            "Verify the object store URL is correct",
            "Try again in a few moments",
        ]
        if status_code in (401, 403):
            suggested_actions = [
                "Check the object store credentials",
                "Verify the bucket policy allows this operation",
            ]
        elif status_code and status_code >= 500:
            suggested_actions = [
                "The object store is experiencing issues",
                "Try again later",
            ]

        technical_details = None
        if original_error:
            technical_details = f"{type(original_error).__name__}: {str(original_error)}"
        if url:
            technical_details = f"URL: {url}" + (f"\n{technical_details}" if technical_details else "")
        if status_code:
            technical_details = f"Status: {status_code}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
        )
        self.original_error = original_error
        self.url = url
        self.http_status = status_code


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration settings",
            "Reset to default values if needed",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=False,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class ErrorHandlingService:
    """Centralized error handling service.

    Converts arbitrary exceptions into AppError instances, logs them with
    full technical detail and keeps a bounded history for diagnostics.
    """

    def __init__(self, max_history_size: int = 100) -> None:
        self._error_history: list[tuple[float, AppError]] = []
        self._max_history_size = max_history_size
        log.info("Error handling service initialized")

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information

        Returns:
            User-friendly error representation
        """
        app_error = self._convert_to_app_error(error, operation, component, context)

        self._log_error(app_error, operation, component, context)

        self._error_history.append((time.time(), app_error))
        if len(self._error_history) > self._max_history_size:
            self._error_history.pop(0)

        return app_error.to_user_friendly()

    def _convert_to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            return NetworkError(
                message=f"The object store returned HTTP {error.response.status_code}.",
                original_error=error,
                url=str(error.request.url) if error.request else None,
                status_code=error.response.status_code,
            )
        elif isinstance(error, (httpx.RequestError, httpx.TimeoutException)):
            return NetworkError(
                message="Unable to reach the object store. Please check your connection.",
                original_error=error,
                url=context.get("url") if context else None,
            )
        elif isinstance(error, json.JSONDecodeError):
            return StorageFailure(
                message="The stored game data is not valid JSON.",
                original_error=error,
                location=context.get("path") if context else None,
                operation=operation,
            )
        elif isinstance(error, OSError):
            return StorageFailure(
                message=f"A file system error occurred: {str(error)}",
                original_error=error,
                location=context.get("path") if context else None,
                operation=operation,
            )
        elif isinstance(error, (ValueError, TypeError)):
            return InvalidArgumentError(
                message=str(error),
                field=context.get("field") if context else None,
                value=context.get("value") if context else None,
            )

        return AppError(
            message="An unexpected error occurred. Please try again.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.ERROR,
            technical_details=f"{type(error).__name__}: {str(error)}",
            context=ErrorContext(
                operation=operation,
                component=component,
                details=context or {},
            ),
        )

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        """Log error with full technical details."""
        log_method = log.warning if error.severity == ErrorSeverity.WARNING else log.error

        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            status_code=error.status_code,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            recoverable=error.recoverable,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Get the most recent handled errors, oldest first."""
        recent = self._error_history[-count:] if self._error_history else []
        return [error for _, error in recent]

    def get_error_count_by_category(self) -> dict[ErrorCategory, int]:
        counts: dict[ErrorCategory, int] = {}
        for _, error in self._error_history:
            counts[error.category] = counts.get(error.category, 0) + 1
        return counts

    def create_user_message(
        self,
        error: UserFriendlyError,
        include_suggestions: bool = True,
    ) -> str:
        """Create a formatted user message from an error.

        Args:
            error: The user-friendly error
            include_suggestions: Whether to include suggested actions

        Returns:
            Formatted message string
        """
        parts = [error.message]

        if include_suggestions and error.suggested_actions:
            parts.append("\nSuggested actions:")
            for action in error.suggested_actions[:3]:  # Limit to 3 suggestions
                parts.append(f"  • {action}")

        return "\n".join(parts)


# Global error handling service instance
_error_service: ErrorHandlingService | None = None


def get_error_service() -> ErrorHandlingService:
    """Get the global error handling service instance."""
    global _error_service
    if _error_service is None:
        _error_service = ErrorHandlingService()
    return _error_service


def handle_error(
    error: Exception,
    operation: str,
    component: str,
    context: dict[str, Any] | None = None,
) -> UserFriendlyError:
    """Convenience function to handle errors using the global service."""
    return get_error_service().handle_error(error, operation, component, context)
