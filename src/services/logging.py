"""structlog setup for the game ranking CLI.

Command results are printed to stdout as JSON, so log lines never go there:
the console handler writes to stderr, and ``quiet`` removes it entirely for
scripted use. Events carry any context bound with
``structlog.contextvars.bind_contextvars`` (the CLI binds the command name).
"""

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import Any

import structlog

# (file name, max bytes, backups, minimum level; None follows the configured level)
LOG_FILES: tuple[tuple[str, int, int, int | None], ...] = (
    ("app.log", 10 * 1024 * 1024, 5, None),
    ("error.log", 5 * 1024 * 1024, 3, logging.ERROR),
)


def _numeric_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


class LoggingService:
    """Routes structlog events through stdlib handlers on stderr and disk."""

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        quiet: bool = False,
    ) -> None:
        """Initialize the logging service.

        Args:
            log_level: The minimum log level to capture
            log_dir: Directory for rotating log files (None for console only)
            quiet: If True, nothing is written to the console
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.quiet = quiet
        self.is_development = os.getenv("ENVIRONMENT", "development") == "development"
        self._level_following: list[logging.Handler] = []

    @property
    def renders_json(self) -> bool:
        """JSON whenever logs may be machine-read: production, or files on disk."""
        return not self.is_development or self.log_dir is not None

    def configure(self) -> None:
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        self._level_following = []

        if self.quiet:
            # Keeps logging's last-resort stderr handler from firing
            root_logger.addHandler(logging.NullHandler())
        else:
            self._add_handler(root_logger, self._console_handler(), None)
        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            for file_name, max_bytes, backups, level in LOG_FILES:
                handler = logging.handlers.RotatingFileHandler(
                    filename=self.log_dir / file_name,
                    maxBytes=max_bytes,
                    backupCount=backups,
                    encoding="utf-8",
                )
                handler.setFormatter(logging.Formatter("%(message)s"))
                self._add_handler(root_logger, handler, level)

        self.set_level(self.log_level)

        structlog.configure(
            processors=self._get_processors(),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )

    def set_level(self, log_level: str) -> None:
        """Change the minimum level after configuration (e.g. once config is loaded).

        The error log keeps its own ERROR threshold.
        """
        self.log_level = log_level.upper()
        level = _numeric_level(self.log_level)
        logging.getLogger().setLevel(level)
        for handler in self._level_following:
            handler.setLevel(level)
        # httpx logs every request at INFO; the HTTP client service logs its own
        logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    def _add_handler(self, root_logger: logging.Logger, handler: logging.Handler, level: int | None) -> None:
        if level is None:
            self._level_following.append(handler)
        else:
            handler.setLevel(level)
        root_logger.addHandler(handler)

    def _console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        if self.renders_json:
            handler.setFormatter(logging.Formatter("%(message)s"))
        else:
            handler.setFormatter(logging.Formatter(
                fmt="%(asctime)s [%(levelname)8s] %(name)s: %(message)s",
                datefmt="%H:%M:%S",
            ))
        return handler

    def _get_processors(self) -> list[Any]:
        processors: list[Any] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]
        if self.renders_json:
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))
        return processors


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str | None = None,
    quiet: bool = False,
) -> LoggingService:
    """Configure logging for one CLI run.

    Args:
        log_level: Minimum log level to capture
        log_dir: Directory for rotating log files (None for console only)
        environment: Environment name (development/production)
        quiet: If True, disable console logging

    Returns:
        Configured LoggingService instance
    """
    if environment:
        os.environ["ENVIRONMENT"] = environment

    service = LoggingService(log_level=log_level, log_dir=log_dir, quiet=quiet)
    service.configure()
    return service
