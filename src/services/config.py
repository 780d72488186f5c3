"""Configuration service for managing application settings."""

import json
import os
from pathlib import Path
from typing import Any

import structlog

from ..models import AppConfig
from .errors import ConfigurationError

log = structlog.stdlib.get_logger()

VALID_BACKENDS = ("file", "object", "memory")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Environment variable -> config key
ENV_OVERRIDES: dict[str, str] = {
    "GAME_RANKING_STORE": "store_backend",
    "GAME_RANKING_DATA_FILE": "data_file",
    "GAME_RANKING_OBJECT_URL": "object_store_url",
    "GAME_RANKING_OBJECT_KEY": "object_key",
    "GAME_RANKING_TIMEOUT": "request_timeout",
    "GAME_RANKING_LOG_LEVEL": "log_level",
}


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Service for managing application configuration.

    Settings come from the JSON config file (if present), then environment
    variables override individual keys.
    """

    def __init__(self, config_path: Path | None = None, environ: dict[str, str] | None = None) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "game-ranking" / "config.json"
        self._environ = environ if environ is not None else os.environ
        log.info("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file and environment.

        An unreadable or malformed config file is ignored (defaults stand in
        for its values) but environment overrides still apply. Merged values that do not
        validate raise instead of falling back to defaults.

        Raises:
            ConfigurationError: If the merged settings are invalid
        """
        data = self.config_to_dict(self._get_default_config())

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    file_data = json.load(f)
                if not isinstance(file_data, dict):
                    raise ValueError("configuration must be a JSON object")
                data.update(file_data)
            except (json.JSONDecodeError, OSError, ValueError) as e:
                log.error("Failed to read configuration file, ignoring it", path=str(self.config_path), error=str(e))
        else:
            log.info("Configuration file not found, using defaults")

        overridden = []
        for env_name, key in ENV_OVERRIDES.items():
            value = self._environ.get(env_name)
            if value:
                data[key] = value
                overridden.append(env_name)

        try:
            config = self._dict_to_config(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid configuration value: {e}",
                expected="numeric request_timeout, max_retries and default_top_limit",
            ) from e

        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            log.error("Invalid configuration", errors=validation_result.errors, env_overrides=overridden)
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(validation_result.errors)}",
                expected="a valid config file and GAME_RANKING_* environment variables",
            )

        log.info("Configuration loaded", store_backend=config.store_backend, env_overrides=overridden)
        return config

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file.

        Raises:
            ConfigurationError: If the configuration does not validate
            OSError: If the file cannot be written
        """
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ConfigurationError(
                f"Invalid configuration: {', '.join(validation_result.errors)}",
                current_value=config,
            )

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self.config_to_dict(config), f, indent=2, ensure_ascii=False)
            log.info("Configuration saved successfully")

        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if config.store_backend not in VALID_BACKENDS:
            errors.append(f"store_backend must be one of: {', '.join(VALID_BACKENDS)}")

        if not isinstance(config.data_file, Path):
            errors.append("data_file must be a Path object")
        elif not config.data_file.is_absolute():
            errors.append("data_file must be an absolute path")

        if config.store_backend == "object":
            url = config.object_store_url or ""
            if not url.startswith(("http://", "https://")):
                errors.append("object_store_url must be an http(s) URL when store_backend is 'object'")

        if not config.object_key or not config.object_key.strip("/"):
            errors.append("object_key cannot be empty")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")
        elif config.request_timeout > 300:
            errors.append("request_timeout should not exceed 300 seconds")

        if not isinstance(config.max_retries, int) or not 0 <= config.max_retries <= 10:
            errors.append("max_retries must be an integer between 0 and 10")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        if not isinstance(config.default_top_limit, int) or config.default_top_limit < 0:
            errors.append("default_top_limit must be a non-negative integer")

        return ValidationResult(len(errors) == 0, errors)

    def _get_default_config(self) -> AppConfig:
        return AppConfig(
            store_backend="file",
            data_file=Path.home() / ".local" / "share" / "game-ranking" / "game-data.json",
            log_level="INFO",
        )

    def config_to_dict(self, config: AppConfig) -> dict[str, Any]:
        """Convert AppConfig to dictionary for JSON serialization."""
        return {
            "store_backend": config.store_backend,
            "data_file": str(config.data_file),
            "object_store_url": config.object_store_url,
            "object_key": config.object_key,
            "request_timeout": config.request_timeout,
            "max_retries": config.max_retries,
            "log_level": config.log_level,
            "default_top_limit": config.default_top_limit,
        }

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert dictionary (file values and env strings) to AppConfig."""
        url = data.get("object_store_url")
        return AppConfig(
            store_backend=str(data["store_backend"]).lower(),
            data_file=Path(str(data["data_file"])).expanduser(),
            log_level=str(data["log_level"]).upper(),
            object_store_url=str(url).rstrip("/") if url else None,
            object_key=str(data["object_key"]),
            request_timeout=float(data["request_timeout"]),
            max_retries=int(data["max_retries"]),
            default_top_limit=int(data["default_top_limit"]),
        )
