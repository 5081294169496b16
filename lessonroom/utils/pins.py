"""PIN generation for classroom enrollment."""

import secrets
from typing import Callable

from lessonroom.schemas import PIN_LENGTH

PinGenerator = Callable[[], str]

PIN_SPACE = 10 ** PIN_LENGTH


def random_pin() -> str:
    """Uniform draw over 000000-999999."""
    return f"{secrets.randbelow(PIN_SPACE):0{PIN_LENGTH}d}"
