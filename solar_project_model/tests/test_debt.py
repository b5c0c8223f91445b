"""Tests for finance/debt.py – monthly fixed-rate amortization.

Reference: 140 000 $ loan at 7 % over 10 years (120 monthly payments).
Monthly payment ≈ 1 625.52 $, annual ≈ 19 506.22 $.
"""

from __future__ import annotations

import math

import numpy_financial as npf
import pytest

from solar_project_model.finance.debt import (
    annual_payment,
    build_amortization_schedule,
    get_payment,
    monthly_payment,
)

PRINCIPAL = 140_000.0
RATE = 0.07
TERM = 10
MONTHLY = abs(float(npf.pmt(RATE / 12, TERM * 12, PRINCIPAL)))


def _closed_form(principal: float, annual_rate: float, term_years: int) -> float:
    r = annual_rate / 12
    n = term_years * 12
    return principal * r * (1 + r) ** n / ((1 + r) ** n - 1)


# ---------------------------------------------------------------------------
# monthly_payment / annual_payment
# ---------------------------------------------------------------------------


class TestMonthlyPayment:
    """Tests for the standalone payment formula."""

    def test_matches_numpy_financial(self) -> None:
        assert math.isclose(monthly_payment(PRINCIPAL, RATE, TERM), MONTHLY, rel_tol=1e-12)

    def test_matches_closed_form(self) -> None:
        """P = L·r·(1+r)^n / ((1+r)^n − 1)."""
        assert math.isclose(
            monthly_payment(PRINCIPAL, RATE, TERM),
            _closed_form(PRINCIPAL, RATE, TERM),
            rel_tol=1e-12,
        )

    def test_reference_value(self) -> None:
        assert monthly_payment(PRINCIPAL, RATE, TERM) == pytest.approx(1625.52, abs=0.01)

    def test_zero_interest_is_exact_division(self) -> None:
        """A zero rate degenerates to L / n exactly (no NaN, no Infinity)."""
        result = monthly_payment(120_000.0, 0.0, 10)
        assert result == 120_000.0 / 120
        assert math.isfinite(result)

    def test_zero_principal(self) -> None:
        assert monthly_payment(0.0, RATE, TERM) == 0.0

    def test_negative_principal(self) -> None:
        assert monthly_payment(-5_000.0, RATE, TERM) == 0.0

    def test_zero_term(self) -> None:
        assert monthly_payment(PRINCIPAL, RATE, 0) == 0.0

    def test_annual_is_twelve_months(self) -> None:
        assert annual_payment(PRINCIPAL, RATE, TERM) == pytest.approx(MONTHLY * 12)


# ---------------------------------------------------------------------------
# build_amortization_schedule
# ---------------------------------------------------------------------------


class TestBuildAmortizationSchedule:
    """Tests for the per-year schedule aggregated from monthly amortization."""

    def test_schedule_length(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert len(sched.interest_payments) == TERM
        assert len(sched.principal_payments) == TERM
        assert len(sched.remaining_balance) == TERM

    def test_principal_sum_equals_loan(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert math.isclose(sum(sched.principal_payments), PRINCIPAL, rel_tol=1e-9)

    def test_payments_reproduce_annuity_total(self) -> None:
        """Sum of yearly interest + principal equals payment × number of payments."""
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        yearly_totals = [i + p for i, p in zip(sched.interest_payments, sched.principal_payments)]
        for total in yearly_totals:
            assert math.isclose(total, sched.annual_payment, rel_tol=1e-9)
        assert math.isclose(sum(yearly_totals), MONTHLY * TERM * 12, rel_tol=1e-9)
        assert math.isclose(sched.total_paid, PRINCIPAL + sched.total_interest, rel_tol=1e-9)

    def test_balance_reaches_zero(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert sched.remaining_balance[-1] == pytest.approx(0.0, abs=1e-6)

    def test_balance_strictly_decreasing(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        balances = [PRINCIPAL] + sched.remaining_balance
        assert all(b1 < b0 for b0, b1 in zip(balances, balances[1:-1]))

    def test_interest_declines_principal_grows(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert sched.interest_payments[0] > sched.interest_payments[-1]
        assert sched.principal_payments[0] < sched.principal_payments[-1]

    def test_zero_interest_schedule(self) -> None:
        sched = build_amortization_schedule(120_000.0, 0.0, 10)
        assert sched.total_interest == 0.0
        assert all(p == pytest.approx(12_000.0) for p in sched.principal_payments)

    def test_empty_schedule_for_zero_principal(self) -> None:
        sched = build_amortization_schedule(0.0, RATE, TERM)
        assert sched.annual_payment == 0.0
        assert sched.interest_payments == []


# ---------------------------------------------------------------------------
# get_payment
# ---------------------------------------------------------------------------


class TestGetPayment:
    """Tests for year-based payment lookup."""

    def test_year_zero_is_free(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert get_payment(sched, 0) == 0.0

    @pytest.mark.parametrize("year", [1, 5, TERM])
    def test_within_term(self, year: int) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert get_payment(sched, year) == sched.annual_payment

    def test_after_term(self) -> None:
        sched = build_amortization_schedule(PRINCIPAL, RATE, TERM)
        assert get_payment(sched, TERM + 1) == 0.0
