"""Lenient numeric coercion for partial planning inputs.

Prospect data is frequently incomplete (a bill missing a reading, an
unconfirmed roof area). Optional numeric fields are therefore never fatal:
missing or non-numeric values fall back to a default and physically
meaningless negatives are clamped to zero. Every substitution is logged.
"""

from __future__ import annotations

import logging
import math
from typing import Any

logger = logging.getLogger(__name__)


def as_float(value: Any, default: float = 0.0, *, field: str = "value") -> float:
    """Convert *value* to a finite float, falling back to *default*.

    Args:
        value: Raw input (number, numeric string, ``None`` or anything else).
        default: Value returned when *value* is missing or not numeric.
        field: Field name used in the log message.

    Returns:
        The parsed float, or *default*.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        logger.warning("Non-numeric %s %r – using %s.", field, value, default)
        return default
    if math.isnan(result) or math.isinf(result):
        logger.warning("Non-finite %s %r – using %s.", field, value, default)
        return default
    return result


def non_negative(value: Any, *, field: str = "value") -> float:
    """Coerce *value* to a float and clamp negatives to ``0.0``.

    Missing and non-numeric values also become ``0.0``.
    """
    result = as_float(value, 0.0, field=field)
    if result < 0.0:
        logger.warning("Negative %s %.6g clamped to 0.", field, result)
        return 0.0
    return result


def optional_positive(value: Any, *, field: str = "value") -> float | None:
    """Return a positive float, or ``None`` when absent, non-numeric or ≤ 0.

    Used for constraints such as roof area or budget where "missing" means
    unconstrained rather than zero.
    """
    result = as_float(value, 0.0, field=field)
    if result <= 0.0:
        return None
    return result


def as_int(value: Any, default: int = 0, *, field: str = "value") -> int:
    """Coerce *value* to a non-negative integer (truncating), else *default*."""
    result = as_float(value, float(default), field=field)
    if result < 0.0:
        logger.warning("Negative %s %.6g clamped to 0.", field, result)
        return 0
    return int(result)
