"""Fixed-rate amortization shared by the loan and lease tracks.

Payments are computed monthly with the standard annuity formula

    P = L · r · (1 + r)^n / ((1 + r)^n − 1)

where ``r`` is the monthly rate (annual rate / 12) and ``n`` the term in
months, then annualised by ×12. A zero rate degenerates to ``L / n`` exactly.
Payments are due in project years 1..term and stop afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy_financial as npf

from solar_project_model.config.defaults import MONTHS_PER_YEAR


@dataclass(frozen=True)
class AmortizationSchedule:
    """Year-by-year schedule aggregated from monthly amortization.

    Attributes:
        principal: Amount financed in $.
        annual_rate: Nominal annual rate as decimal.
        term_years: Term in years.
        monthly_payment: Constant monthly payment (positive = outflow).
        annual_payment: ``monthly_payment × 12``.
        interest_payments: Interest paid per year (list, length = term).
        principal_payments: Principal repaid per year (list, length = term).
        remaining_balance: Outstanding balance at end of each year (list, length = term).
    """

    principal: float
    annual_rate: float
    term_years: int
    monthly_payment: float
    annual_payment: float
    interest_payments: list[float]
    principal_payments: list[float]
    remaining_balance: list[float]

    @property
    def total_paid(self) -> float:
        """Sum of all payments over the term."""
        return self.annual_payment * len(self.interest_payments)

    @property
    def total_interest(self) -> float:
        """Sum of interest over the term."""
        return sum(self.interest_payments)


def monthly_payment(principal: float, annual_rate: float, term_years: int) -> float:
    """Calculate the constant monthly payment for a fixed-rate amortization.

    Args:
        principal: Amount financed in $.
        annual_rate: Nominal annual rate as decimal (e.g. 0.07 for 7 %).
        term_years: Term in years.

    Returns:
        Monthly payment as a positive value (cash outflow); 0.0 when there is
        nothing to finance or the term is not positive.
    """
    n_payments = int(term_years) * MONTHS_PER_YEAR
    if principal <= 0.0 or n_payments <= 0:
        return 0.0
    monthly_rate = max(annual_rate, 0.0) / MONTHS_PER_YEAR
    if monthly_rate == 0.0:
        return principal / n_payments
    return abs(float(npf.pmt(monthly_rate, n_payments, principal)))


def annual_payment(principal: float, annual_rate: float, term_years: int) -> float:
    """Return the monthly payment annualised by ×12."""
    return monthly_payment(principal, annual_rate, term_years) * MONTHS_PER_YEAR


def build_amortization_schedule(
    principal: float,
    annual_rate: float,
    term_years: int,
) -> AmortizationSchedule:
    """Build the full year-by-year amortization schedule.

    Interest and principal are accumulated month by month and reported per
    year, so ``principal_payments`` sums to the amount financed.

    Args:
        principal: Amount financed in $.
        annual_rate: Nominal annual rate as decimal.
        term_years: Term in years.

    Returns:
        :class:`AmortizationSchedule` with per-year interest/principal split.
    """
    term_years = int(term_years)
    payment = monthly_payment(principal, annual_rate, term_years)

    if payment == 0.0:
        return AmortizationSchedule(
            principal=0.0,
            annual_rate=annual_rate,
            term_years=max(term_years, 0),
            monthly_payment=0.0,
            annual_payment=0.0,
            interest_payments=[],
            principal_payments=[],
            remaining_balance=[],
        )

    monthly_rate = max(annual_rate, 0.0) / MONTHS_PER_YEAR
    interest_payments: list[float] = []
    principal_payments: list[float] = []
    remaining_balance: list[float] = []
    balance = principal

    for _ in range(term_years):
        year_interest = 0.0
        year_principal = 0.0
        for _ in range(MONTHS_PER_YEAR):
            interest = balance * monthly_rate
            repaid = payment - interest
            balance -= repaid
            year_interest += interest
            year_principal += repaid
        interest_payments.append(year_interest)
        principal_payments.append(year_principal)
        remaining_balance.append(max(balance, 0.0))

    return AmortizationSchedule(
        principal=principal,
        annual_rate=annual_rate,
        term_years=term_years,
        monthly_payment=payment,
        annual_payment=payment * MONTHS_PER_YEAR,
        interest_payments=interest_payments,
        principal_payments=principal_payments,
        remaining_balance=remaining_balance,
    )


def get_payment(schedule: AmortizationSchedule, year: int) -> float:
    """Return the payment due in a given project year (1-indexed).

    Args:
        schedule: The amortization schedule.
        year: Project year. Year 0 is the investment year with no payment.

    Returns:
        Annual payment, or 0.0 if *year* is outside the term.
    """
    if year < 1 or year > len(schedule.interest_payments):
        return 0.0
    return schedule.annual_payment
