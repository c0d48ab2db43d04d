"""Small argument checks shared by the engine and page handles."""

from __future__ import annotations

import math
import re
from typing import Any, Union

from phantom_pages.exceptions import ValidationError

_INTEGER = re.compile(r"^[-+]?([0-9]+|Infinity)$")


def is_between(low: float, high: float, value: Union[str, int, float]) -> bool:
    """Check ``low < value < high`` for numbers or integer strings.

    Booleans, non-numeric strings, NaN and infinities are never in range.
    """
    if isinstance(value, bool):
        return False

    if isinstance(value, str):
        if not _INTEGER.match(value):
            return False
        try:
            value = int(value)
        except ValueError:
            # "Infinity"
            return False

    if not isinstance(value, (int, float)) or math.isnan(value) or math.isinf(value):
        return False

    return low < value < high


def require_str(value: Any, message: str, *, allow_empty: bool = True) -> str:
    """Return ``value`` if it is a string, else raise :class:`ValidationError`."""
    if not isinstance(value, str) or (not allow_empty and value == ""):
        raise ValidationError(message)
    return value


__all__ = ["is_between", "require_str"]
