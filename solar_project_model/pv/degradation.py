"""Annual PV production degradation.

For project year *Y* (1-indexed, Y = 1 is the first operating year):

    production[Y] = base_production × (1 − degradation_rate) ^ (Y − 1)

Year 1 therefore equals the undegraded baseline exactly. Year 0 is the
investment year and produces nothing.

Typical usage::

    from solar_project_model.pv.degradation import degraded_series
    yearly = degraded_series(120_000.0, degradation_rate=0.005, horizon_years=25)
    # yearly[0] is year-1 production, yearly[24] is year-25 production
"""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)


def degradation_factor(degradation_rate: float, year: int) -> float:
    """Return the production multiplier for a single project year.

    Parameters
    ----------
    degradation_rate:
        Annual degradation fraction (e.g. ``0.005``).
    year:
        1-indexed project year (year 1 = first operating year).

    Returns
    -------
    float
        ``(1 − degradation_rate) ^ (year − 1)``

    Raises
    ------
    ValueError
        When *degradation_rate* is outside [0, 1) or *year* < 1.
    """
    if not 0.0 <= degradation_rate < 1.0:
        raise ValueError(
            f"degradation_rate must be in [0, 1), got {degradation_rate}. "
            "For a 0.5 %/year rate pass 0.005, not 0.5."
        )
    if year < 1:
        raise ValueError(f"year must be ≥ 1, got {year}.")
    return (1.0 - degradation_rate) ** (year - 1)


def degradation_factors(degradation_rate: float, horizon_years: int) -> np.ndarray:
    """Return multipliers for years 1..*horizon_years* as an array.

    Element ``[i]`` belongs to project year ``i + 1``.
    """
    if not 0.0 <= degradation_rate < 1.0:
        raise ValueError(f"degradation_rate must be in [0, 1), got {degradation_rate}.")
    exponents = np.arange(max(horizon_years, 0), dtype=float)
    return (1.0 - degradation_rate) ** exponents


def degraded_series(
    base_value: float,
    degradation_rate: float,
    horizon_years: int,
) -> np.ndarray:
    """Return *base_value* degraded for each of years 1..*horizon_years*."""
    factors = degradation_factors(degradation_rate, horizon_years)
    if horizon_years > 0:
        logger.debug(
            "Degradation %.3f%%/yr over %d years (final factor %.6f)",
            degradation_rate * 100,
            horizon_years,
            factors[-1],
        )
    return base_value * factors
