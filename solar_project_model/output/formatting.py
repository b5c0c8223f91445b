"""Output-boundary rounding and formatting.

Engine values are carried in full float precision; this module is the only
place they are rounded. The ``round_*`` helpers return numbers for the JSON
KPI record, the ``fmt_*`` helpers return strings for CSV files and stdout.
None values are kept as None (JSON ``null``) or an empty string.

Public API
----------
round_currency – Round a monetary value to cents.
round_float    – Round a non-monetary float.
fmt_float      – Format a float with configurable decimal places.
fmt_currency   – Format a monetary value in dollars.
fmt_pct        – Format a fraction as a percentage string.
fmt_optional   – Format any optional value, returning "" for None.
"""

from __future__ import annotations

from solar_project_model.config.defaults import CURRENCY_PRECISION, FLOAT_PRECISION


def round_currency(value: float | None) -> float | None:
    """Round a monetary value to the nearest cent (None stays None)."""
    if value is None:
        return None
    return round(float(value), CURRENCY_PRECISION)


def round_float(value: float | None, precision: int = FLOAT_PRECISION) -> float | None:
    """Round a non-monetary float to *precision* places (None stays None)."""
    if value is None:
        return None
    return round(float(value), precision)


def fmt_float(
    value: float | None,
    precision: int = FLOAT_PRECISION,
) -> str:
    """Format a float to a fixed number of decimal places.

    Parameters
    ----------
    value:
        The value to format. None is returned as an empty string.
    precision:
        Number of decimal places.

    Returns
    -------
    str
        Formatted string, e.g. ``"3.1416"``.
    """
    if value is None:
        return ""
    return f"{value:.{precision}f}"


def fmt_currency(
    value: float | None,
    precision: int = CURRENCY_PRECISION,
) -> str:
    """Format a monetary value in dollars, e.g. ``"1234567.89"``."""
    if value is None:
        return ""
    return f"{value:.{precision}f}"


def fmt_pct(
    value: float | None,
    precision: int = 2,
    *,
    already_pct: bool = False,
) -> str:
    """Format a fraction (or percentage) as a percentage string.

    Parameters
    ----------
    value:
        The value to format. If ``already_pct=False`` (default), the value is
        treated as a decimal fraction (e.g. 0.0735) and multiplied by 100
        before formatting. If ``already_pct=True``, the value is already in
        percent (e.g. 7.35).
    precision:
        Number of decimal places in the formatted output.
    already_pct:
        Set to True when *value* is already in percent units.

    Returns
    -------
    str
        Formatted percentage string, e.g. ``"7.35"`` (without the % sign).
    """
    if value is None:
        return ""
    display = value if already_pct else value * 100.0
    return f"{display:.{precision}f}"


def fmt_optional(value: int | float | None, precision: int = FLOAT_PRECISION) -> str:
    """Format an optional value: ints verbatim, floats via :func:`fmt_float`."""
    if value is None:
        return ""
    if isinstance(value, int):
        return str(value)
    return fmt_float(value, precision=precision)
