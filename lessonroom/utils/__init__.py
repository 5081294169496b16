"""LessonRoom utilities."""

from .config_loader import (
    EngineConfig,
    load_config,
    load_config_file,
    DEFAULT_DATABASE_PATH,
    DEFAULT_PIN_MAX_ATTEMPTS,
)
from .pins import random_pin, PinGenerator, PIN_SPACE

__all__ = [
    "EngineConfig",
    "load_config",
    "load_config_file",
    "DEFAULT_DATABASE_PATH",
    "DEFAULT_PIN_MAX_ATTEMPTS",
    "random_pin",
    "PinGenerator",
    "PIN_SPACE",
]
