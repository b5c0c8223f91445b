"""Tests for finance/metrics.py – NPV, IRR, payback and LCOE."""

from __future__ import annotations

import math

import numpy as np
import numpy_financial as npf
import pytest

from solar_project_model.finance.metrics import (
    calculate_lcoe,
    calculate_npv,
    calculate_payback_year,
    discount_factors,
    solve_irr,
)

# Conventional project: −1 000 then +150 per year for 10 years.
CONVENTIONAL = [-1000.0] + [150.0] * 10


# ---------------------------------------------------------------------------
# discount_factors
# ---------------------------------------------------------------------------


class TestDiscountFactors:
    def test_year_zero_is_one(self) -> None:
        assert discount_factors(0.08, 5)[0] == 1.0

    def test_values(self) -> None:
        factors = discount_factors(0.10, 3)
        assert factors == pytest.approx([1.0, 1 / 1.1, 1 / 1.21])

    def test_zero_rate_all_ones(self) -> None:
        assert np.all(discount_factors(0.0, 26) == 1.0)


# ---------------------------------------------------------------------------
# calculate_npv
# ---------------------------------------------------------------------------


class TestCalculateNpv:
    """NPV with year 0 undiscounted."""

    def test_matches_numpy_financial(self) -> None:
        assert math.isclose(
            calculate_npv(CONVENTIONAL, 0.08),
            float(npf.npv(0.08, CONVENTIONAL)),
            rel_tol=1e-12,
        )

    def test_manual_two_year(self) -> None:
        """−100 + 110 / 1.1 = 0."""
        assert calculate_npv([-100.0, 110.0], 0.10) == pytest.approx(0.0, abs=1e-9)

    def test_zero_rate_is_plain_sum(self) -> None:
        assert calculate_npv(CONVENTIONAL, 0.0) == pytest.approx(500.0)

    def test_horizon_truncates(self) -> None:
        full = calculate_npv(CONVENTIONAL, 0.08)
        short = calculate_npv(CONVENTIONAL, 0.08, horizon=5)
        assert short == pytest.approx(float(npf.npv(0.08, CONVENTIONAL[:6])))
        assert short < full

    def test_higher_rate_lower_npv(self) -> None:
        assert calculate_npv(CONVENTIONAL, 0.12) < calculate_npv(CONVENTIONAL, 0.05)

    def test_empty_series(self) -> None:
        assert calculate_npv([], 0.08) == 0.0


# ---------------------------------------------------------------------------
# solve_irr
# ---------------------------------------------------------------------------


class TestSolveIrr:
    """IRR root-finding via bracket scan + Brent."""

    def test_matches_numpy_financial(self) -> None:
        expected = float(npf.irr(CONVENTIONAL))
        result = solve_irr(CONVENTIONAL)
        assert result is not None
        assert result == pytest.approx(expected, abs=1e-8)

    def test_npv_at_irr_is_zero(self) -> None:
        irr = solve_irr(CONVENTIONAL)
        assert irr is not None
        assert calculate_npv(CONVENTIONAL, irr) == pytest.approx(0.0, abs=1e-6)

    def test_simple_ten_percent(self) -> None:
        assert solve_irr([-100.0, 110.0]) == pytest.approx(0.10, abs=1e-9)

    def test_negative_irr(self) -> None:
        """Cashflows that never recover the investment have a negative IRR."""
        result = solve_irr([-1000.0] + [50.0] * 10)
        assert result is not None
        assert result < 0.0
        assert result == pytest.approx(float(npf.irr([-1000.0] + [50.0] * 10)), abs=1e-8)

    def test_all_positive_returns_none(self) -> None:
        assert solve_irr([100.0, 100.0, 100.0]) is None

    def test_all_negative_returns_none(self) -> None:
        assert solve_irr([-100.0, -10.0, -10.0]) is None

    def test_all_zero_returns_none(self) -> None:
        assert solve_irr([0.0] * 5) is None

    def test_single_value_returns_none(self) -> None:
        assert solve_irr([-100.0]) is None

    def test_horizon_truncates(self) -> None:
        short = solve_irr(CONVENTIONAL, horizon=8)
        assert short == pytest.approx(float(npf.irr(CONVENTIONAL[:9])), abs=1e-8)

    def test_root_outside_range_returns_none(self) -> None:
        """A 2 000 % return lies above the scanned range."""
        assert solve_irr([-1.0, 21.0]) is None

    def test_deterministic(self) -> None:
        assert solve_irr(CONVENTIONAL) == solve_irr(CONVENTIONAL)


# ---------------------------------------------------------------------------
# calculate_payback_year
# ---------------------------------------------------------------------------


class TestPaybackYear:
    def test_first_non_negative_year(self) -> None:
        assert calculate_payback_year([-100.0, -50.0, 0.0, 50.0]) == 2

    def test_never_pays_back(self) -> None:
        assert calculate_payback_year([-100.0, -90.0, -80.0]) is None

    def test_year_zero_ignored(self) -> None:
        """A non-negative start (e.g. lease) is not itself a payback."""
        assert calculate_payback_year([0.0, 10.0, 20.0]) == 1

    def test_dip_after_payback_keeps_first_year(self) -> None:
        assert calculate_payback_year([-10.0, 5.0, -1.0, 3.0]) == 1


# ---------------------------------------------------------------------------
# calculate_lcoe
# ---------------------------------------------------------------------------


class TestLcoe:
    def test_cents_per_kwh(self) -> None:
        """100 000 $ over 1 000 000 kWh = 10 ¢/kWh."""
        assert calculate_lcoe(100_000.0, 1_000_000.0) == pytest.approx(10.0)

    def test_zero_production(self) -> None:
        assert calculate_lcoe(100_000.0, 0.0) is None
