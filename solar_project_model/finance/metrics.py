"""Financial metrics: NPV, IRR, simple payback, LCOE.

NPV uses ``numpy_financial``; a discount rate of exactly zero is an
undiscounted sum. IRR is solved with a bracketing scan followed by
:func:`scipy.optimize.brentq`; a series without a root in the scanned range
returns ``None`` instead of raising.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
import numpy_financial as npf
from scipy import optimize

from solar_project_model.config.defaults import (
    DEFAULT_DISCOUNT_RATE,
    IRR_BRACKET_STEPS,
    IRR_LOWER_BOUND,
    IRR_MAX_ITERATIONS,
    IRR_TOLERANCE,
    IRR_UPPER_BOUND,
)

logger = logging.getLogger(__name__)


def _truncate(cashflows: Sequence[float] | np.ndarray, horizon: int | None) -> np.ndarray:
    values = np.asarray(cashflows, dtype=float)
    if horizon is not None:
        values = values[: max(horizon, 0) + 1]
    return values


def discount_factors(discount_rate: float, n_years: int) -> np.ndarray:
    """Return ``1 / (1 + r)^year`` for years 0..*n_years* − 1.

    A zero rate yields all ones.
    """
    years = np.arange(max(n_years, 0), dtype=float)
    if discount_rate == 0.0:
        return np.ones_like(years)
    return 1.0 / (1.0 + discount_rate) ** years


def calculate_npv(
    cashflows: Sequence[float] | np.ndarray,
    discount_rate: float = DEFAULT_DISCOUNT_RATE,
    horizon: int | None = None,
) -> float:
    """Calculate Net Present Value.

    Args:
        cashflows: Cashflows for year 0 through N.
        discount_rate: Annual discount rate as decimal.
        horizon: Last year included, or None for the full series.

    Returns:
        NPV in $.
    """
    values = _truncate(cashflows, horizon)
    if values.size == 0:
        return 0.0
    if discount_rate == 0.0:
        return float(values.sum())
    return float(npf.npv(discount_rate, values))


def _npv_at(rate: float, values: np.ndarray) -> float:
    return float(np.sum(values / (1.0 + rate) ** np.arange(values.size)))


def solve_irr(
    cashflows: Sequence[float] | np.ndarray,
    horizon: int | None = None,
    lower: float = IRR_LOWER_BOUND,
    upper: float = IRR_UPPER_BOUND,
) -> float | None:
    """Find the rate that zeroes the NPV of *cashflows*.

    The NPV curve is sampled on an even grid over ``[lower, upper]``; every
    sign change is a bracket. The bracket closest to 0 % is refined with
    Brent's method to ``IRR_TOLERANCE``.

    Args:
        cashflows: Cashflows for year 0 through N.
        horizon: Last year included, or None for the full series.
        lower: Lowest rate considered (must be > −1).
        upper: Highest rate considered.

    Returns:
        IRR as a decimal, or None when the series has no sign change, no root
        lies in the range, or the solver does not converge.
    """
    values = _truncate(cashflows, horizon)
    if values.size < 2 or not (np.any(values > 0.0) and np.any(values < 0.0)):
        logger.debug("IRR undefined: cashflows do not change sign")
        return None

    rates = np.linspace(lower, upper, IRR_BRACKET_STEPS)
    years = np.arange(values.size, dtype=float)
    with np.errstate(over="ignore", invalid="ignore"):
        npvs = (values / (1.0 + rates[:, None]) ** years).sum(axis=1)

    finite = np.isfinite(npvs)
    exact = np.where(finite & (npvs == 0.0))[0]
    if exact.size:
        return float(rates[exact[np.argmin(np.abs(rates[exact]))]])

    signs = np.sign(npvs)
    brackets = np.where(finite[:-1] & finite[1:] & (signs[:-1] * signs[1:] < 0.0))[0]
    if brackets.size == 0:
        logger.debug("IRR undefined: no root in [%.2f, %.2f]", lower, upper)
        return None

    # Several roots are possible for non-conventional series; report the one nearest 0 %.
    midpoints = (rates[brackets] + rates[brackets + 1]) / 2.0
    i = int(brackets[np.argmin(np.abs(midpoints))])

    root, info = optimize.brentq(
        _npv_at,
        rates[i],
        rates[i + 1],
        args=(values,),
        xtol=IRR_TOLERANCE,
        maxiter=IRR_MAX_ITERATIONS,
        full_output=True,
        disp=False,
    )
    if not info.converged or not np.isfinite(root):
        logger.debug("IRR solver did not converge after %d iterations", info.iterations)
        return None
    return float(root)


def calculate_payback_year(cumulative: Sequence[float] | np.ndarray) -> int | None:
    """Find the first year whose cumulative cash position is non-negative.

    Year 0 is never a payback year.

    Args:
        cumulative: Cumulative cash position for year 0 through N.

    Returns:
        Year index where the cumulative value first reaches ≥ 0, or None if
        it never does within the series.
    """
    values = np.asarray(cumulative, dtype=float)
    reached = np.where(values[1:] >= 0.0)[0]
    if reached.size == 0:
        return None
    return int(reached[0]) + 1


def calculate_lcoe(
    discounted_costs: float,
    discounted_production_kwh: float,
) -> float | None:
    """Calculate Levelized Cost of Energy.

    Args:
        discounted_costs: Present value of lifetime costs net of incentives in $.
        discounted_production_kwh: Present value of lifetime production in kWh.

    Returns:
        LCOE in ¢/kWh, or None if production is zero.
    """
    if discounted_production_kwh <= 0.0:
        return None
    return discounted_costs / discounted_production_kwh * 100.0
