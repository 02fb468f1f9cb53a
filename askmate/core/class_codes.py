"""Join-code generation for classes."""

from __future__ import annotations

import logging
import random
import re
import string
from collections.abc import Callable

from askmate.core import config
from askmate.core.exceptions import ClassCodeAllocationError

logger = logging.getLogger(__name__)

CLASS_CODE_ALPHABET = string.ascii_uppercase + string.digits
CLASS_CODE_PATTERN = re.compile(rf"^[A-Z0-9]{{{config.CLASS_CODE_LENGTH}}}$")

_rng = random.SystemRandom()


def generate_class_code(length: int = config.CLASS_CODE_LENGTH) -> str:
    return "".join(_rng.choice(CLASS_CODE_ALPHABET) for _ in range(length))


def normalize_class_code(code: str) -> str:
    return code.strip().upper()


def is_valid_class_code(code: str) -> bool:
    return bool(CLASS_CODE_PATTERN.match(code))


def allocate_class_code(
    try_claim: Callable[[str], bool],
    max_attempts: int = config.CLASS_CODE_MAX_ATTEMPTS,
    generate: Callable[[], str] | None = None,
) -> str:
    """Generate candidate codes until ``try_claim`` accepts one and return it.

    ``try_claim`` returns False when the candidate is already taken, whether
    found by a lookup or by the store's unique constraint on insert. After
    ``max_attempts`` rejected candidates ``ClassCodeAllocationError`` is raised.
    """
    generate = generate or generate_class_code
    for attempt in range(1, max_attempts + 1):
        candidate = generate()
        if try_claim(candidate):
            return candidate
        logger.warning('Class code collision on attempt %d/%d', attempt, max_attempts)

    raise ClassCodeAllocationError(max_attempts)
