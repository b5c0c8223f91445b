"""Compound escalation of tariffs, O&M costs and replacement prices.

Year 1 is the base year (no escalation applied). Escalation begins in year 2:

    escalated_value[year] = base_value × (1 + rate) ^ max(0, year - 1)

Replacement pricing is the exception: the battery price index nets inflation
against the yearly price decline and compounds from year 0, so a replacement
in year *Y* costs ``base × (1 + inflation − decline) ^ Y``.
"""

from __future__ import annotations

import numpy as np


def inflate_value(
    base_value: float,
    inflation_rate: float,
    year: int,
) -> float:
    """Apply compound escalation to a base value for a given project year.

    Args:
        base_value: The value in the base year (year 1).
        inflation_rate: Annual escalation rate as decimal (e.g. 0.025 for 2.5 %).
        year: Project year (1-indexed). Year 1 = no escalation.

    Returns:
        Escalated value.
    """
    return base_value * (1.0 + inflation_rate) ** max(0, year - 1)


def build_inflation_factors(
    inflation_rate: float,
    n_years: int,
) -> np.ndarray:
    """Build an array of cumulative escalation factors for each project year.

    Index 0 corresponds to year 1 (factor = 1.0, no escalation).

    Args:
        inflation_rate: Annual escalation rate as decimal.
        n_years: Number of project years (length of output array).

    Returns:
        Array of shape ``(n_years,)`` where element ``i`` equals
        ``(1 + inflation_rate) ** i``.
    """
    years = np.arange(max(n_years, 0))
    return (1.0 + inflation_rate) ** years


def net_price_index(
    inflation_rate: float,
    price_decline_rate: float,
    year: int,
) -> float:
    """Return the battery price index for *year* relative to year 0.

    Args:
        inflation_rate: Annual general inflation as decimal.
        price_decline_rate: Annual technology price decline as decimal.
        year: Project year of the purchase.

    Returns:
        ``(1 + inflation_rate − price_decline_rate) ** year``.
    """
    return (1.0 + inflation_rate - price_decline_rate) ** year
