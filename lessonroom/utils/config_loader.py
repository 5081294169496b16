"""
Configuration loader for LessonRoom.

Settings are resolved in order: built-in defaults, an optional YAML file,
then LESSONROOM_* environment variables (a .env file is read first).
"""

import os
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from lessonroom.errors import InvalidArgumentError
from lessonroom.schemas import DEFAULT_COMPLETION_THRESHOLD

ENV_PREFIX = "LESSONROOM_"
DEFAULT_DATABASE_PATH = ":memory:"
DEFAULT_PIN_MAX_ATTEMPTS = 10

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EngineConfig(BaseModel):
    database_path: str = DEFAULT_DATABASE_PATH
    completion_threshold: float = Field(DEFAULT_COMPLETION_THRESHOLD, gt=0, le=1)
    pin_max_attempts: int = Field(DEFAULT_PIN_MAX_ATTEMPTS, ge=1)
    log_level: LogLevel = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        return v.strip().upper() if isinstance(v, str) else v


def load_config_file(path: Path) -> dict[str, Any]:
    """
    Read a YAML settings file.

    Args:
        path: Path to a YAML mapping of EngineConfig fields

    Returns:
        Dict of raw settings (empty if the file is empty)

    Raises:
        FileNotFoundError: If the file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise InvalidArgumentError(f"Config file must hold a mapping: {path}")
    return data


def _env_overrides() -> dict[str, str]:
    overrides = {}
    for field_name in EngineConfig.model_fields:
        value = os.environ.get(ENV_PREFIX + field_name.upper())
        if value is not None:
            overrides[field_name] = value
    return overrides


def load_config(
    path: Optional[Path] = None,
    env_file: Optional[Path] = None,
    **overrides: Any,
) -> EngineConfig:
    """
    Build an EngineConfig from file, environment and explicit overrides.

    Args:
        path: Optional YAML settings file
        env_file: Optional .env file (default: search from the working directory)
        **overrides: Values that win over everything else

    Returns:
        Validated EngineConfig
    """
    load_dotenv(env_file if env_file is not None else find_dotenv(usecwd=True))

    settings: dict[str, Any] = {}
    if path is not None:
        settings.update(load_config_file(Path(path)))
    settings.update(_env_overrides())
    settings.update(overrides)

    try:
        return EngineConfig(**settings)
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid configuration: {e}") from e
