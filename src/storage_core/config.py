"""
Settings for the storage core library.

Settings come from built-in defaults, an optional YAML file and
STORAGE_CORE_* environment variables, applied in that order.
"""

import codecs
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .errors import ConfigurationError, ValidationError
from .validation import (
    validate_array,
    validate_boolean,
    validate_enum,
    validate_integer,
    validate_non_empty_string,
    validate_object,
    validate_string,
)

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

ENV_PREFIX = "STORAGE_CORE_"


@dataclass
class StorageSettings:
    """Runtime configuration for storage and logging."""

    default_encoding: str = "utf-8"
    default_pattern: Union[str, List[str]] = "*.*"
    stream_chunk_size: int = 64 * 1024

    log_level: str = "INFO"
    log_file: Optional[Path] = None
    log_json: bool = False

    def validate(self) -> "StorageSettings":
        """Check every field, raising ConfigurationError on the first bad value."""
        try:
            validate_non_empty_string(self.default_encoding, "default_encoding")
            try:
                codecs.lookup(self.default_encoding)
            except LookupError:
                raise ValidationError(f"default_encoding is not a known codec: {self.default_encoding}")

            if isinstance(self.default_pattern, str):
                validate_non_empty_string(self.default_pattern, "default_pattern")
            else:
                patterns = validate_array(self.default_pattern, "default_pattern")
                if not patterns:
                    raise ValidationError("default_pattern must not be empty")
                for pattern in patterns:
                    validate_non_empty_string(pattern, "default_pattern")

            validate_integer(self.stream_chunk_size, "stream_chunk_size", minimum=1)
            self.log_level = validate_string(self.log_level, "log_level").upper()
            validate_enum(self.log_level, LOG_LEVELS, "log_level")
            validate_boolean(self.log_json, "log_json")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid storage settings: {e}") from e
        return self


TRUE_VALUES = ("1", "true", "yes", "on")
FALSE_VALUES = ("0", "false", "no", "off")


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{name} must be one of: {', '.join(TRUE_VALUES + FALSE_VALUES)}. Got: {value}"
    )


def _read_config_file(config_file: Path) -> Dict[str, Any]:
    if not config_file.exists():
        raise ConfigurationError(f"Settings file not found: {config_file}")

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger.error(f"Invalid YAML in settings file {config_file}: {e}")
        raise ConfigurationError(f"Invalid settings file {config_file}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read settings file {config_file}: {e}") from e

    if raw_config is None:
        return {}
    try:
        return validate_object(raw_config, "settings file")
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e


def load_settings(
    config_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None
) -> StorageSettings:
    """
    Load settings from an optional YAML file and the environment.

    The YAML file may contain a ``storage`` section (``default_encoding``,
    ``default_pattern``, ``stream_chunk_size``) and a ``logging`` section
    (``level``, ``file``, ``json``).

    Args:
        config_file: Optional path to a YAML settings file
        environ: Environment mapping, defaults to ``os.environ``

    Returns:
        Validated StorageSettings

    Raises:
        ConfigurationError: If the file is missing or malformed, or a value is invalid
    """
    environ = os.environ if environ is None else environ
    settings = StorageSettings()

    if config_file is not None:
        raw_config = _read_config_file(Path(config_file))
        try:
            storage_section = validate_object(raw_config.get("storage", {}) or {}, "storage")
            logging_section = validate_object(raw_config.get("logging", {}) or {}, "logging")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid settings file {config_file}: {e}") from e

        settings.default_encoding = storage_section.get("default_encoding", settings.default_encoding)
        settings.default_pattern = storage_section.get("default_pattern", settings.default_pattern)
        settings.stream_chunk_size = storage_section.get("stream_chunk_size", settings.stream_chunk_size)
        settings.log_level = logging_section.get("level", settings.log_level)
        settings.log_json = logging_section.get("json", settings.log_json)
        if logging_section.get("file") is not None:
            try:
                log_file = validate_non_empty_string(logging_section["file"], "logging.file")
            except ValidationError as e:
                raise ConfigurationError(f"Invalid settings file {config_file}: {e}") from e
            settings.log_file = Path(log_file)

    if environ.get(f"{ENV_PREFIX}ENCODING"):
        settings.default_encoding = environ[f"{ENV_PREFIX}ENCODING"]
    if environ.get(f"{ENV_PREFIX}PATTERN"):
        # Comma separated list selects several patterns
        patterns = [p.strip() for p in environ[f"{ENV_PREFIX}PATTERN"].split(",") if p.strip()]
        settings.default_pattern = patterns[0] if len(patterns) == 1 else patterns
    if environ.get(f"{ENV_PREFIX}STREAM_CHUNK_SIZE"):
        raw_size = environ[f"{ENV_PREFIX}STREAM_CHUNK_SIZE"]
        try:
            settings.stream_chunk_size = int(raw_size)
        except ValueError as e:
            raise ConfigurationError(f"{ENV_PREFIX}STREAM_CHUNK_SIZE must be an integer. Got: {raw_size}") from e
    if environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        settings.log_level = environ[f"{ENV_PREFIX}LOG_LEVEL"]
    if environ.get(f"{ENV_PREFIX}LOG_FILE"):
        settings.log_file = Path(environ[f"{ENV_PREFIX}LOG_FILE"])
    if environ.get(f"{ENV_PREFIX}LOG_JSON"):
        settings.log_json = _parse_bool(f"{ENV_PREFIX}LOG_JSON", environ[f"{ENV_PREFIX}LOG_JSON"])

    return settings.validate()
