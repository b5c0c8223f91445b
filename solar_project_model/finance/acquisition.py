"""Cash, loan and lease acquisition tracks for a chosen system.

The three tracks share one savings stream (year-1 savings degraded by
``(1 − d)^(y−1)``) and the same incentive timing, but each starts from its
own principal base and amortizes independently:

* cash  – starts at ``−(capex − utility solar − ½ utility battery)``
* loan  – starts at ``−capex × down payment``; pays the loan annuity through its term
* lease – starts at 0; pays the lease annuity on
  ``capex − utility solar − ½ utility battery`` through its term

Every track then receives the other half of the battery incentive plus the
tax shield in year 1 and the federal ITC in year 2.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from solar_project_model.config.coerce import non_negative
from solar_project_model.config.defaults import (
    BATTERY_INCENTIVE_UPFRONT_SHARE,
    FEDERAL_ITC_RECEIPT_YEAR,
    TAX_SHIELD_RECEIPT_YEAR,
    UTILITY_INCENTIVE_RECEIPT_YEAR,
)
from solar_project_model.finance.cashflow import FinancialAssumptions
from solar_project_model.finance.debt import (
    AmortizationSchedule,
    build_amortization_schedule,
    get_payment,
)
from solar_project_model.finance.incentives import IncentiveStack
from solar_project_model.finance.metrics import calculate_payback_year
from solar_project_model.pv.degradation import degradation_factors

logger = logging.getLogger(__name__)

METHOD_CASH = "cash"
METHOD_LOAN = "loan"
METHOD_LEASE = "lease"


@dataclass(frozen=True)
class AcquisitionSeries:
    """Cumulative cash position of one financing method.

    Attributes:
        method: ``"cash"``, ``"loan"`` or ``"lease"``.
        cumulative: Cumulative cash position for years 0..N.
        payback_year: First year > 0 with a non-negative position, or None.
    """

    method: str
    cumulative: list[float]
    payback_year: int | None


@dataclass(frozen=True)
class AcquisitionComparison:
    """The three acquisition tracks plus their financing figures.

    Attributes:
        cash: Cash-purchase track.
        loan: Debt-financed purchase track.
        lease: Lease track.
        loan_down_payment: Upfront payment of the loan track in $.
        loan_schedule: Amortization of ``capex × (1 − down payment)``.
        lease_financed_amount: Amount financed by the lease in $.
        lease_schedule: Amortization of the lease financed amount.
    """

    cash: AcquisitionSeries
    loan: AcquisitionSeries
    lease: AcquisitionSeries
    loan_down_payment: float
    loan_schedule: AmortizationSchedule
    lease_financed_amount: float
    lease_schedule: AmortizationSchedule

    @property
    def loan_amount(self) -> float:
        return self.loan_schedule.principal

    @property
    def annual_loan_payment(self) -> float:
        return self.loan_schedule.annual_payment

    @property
    def annual_lease_payment(self) -> float:
        return self.lease_schedule.annual_payment

    @property
    def series(self) -> tuple[AcquisitionSeries, AcquisitionSeries, AcquisitionSeries]:
        """The tracks in reporting order."""
        return (self.cash, self.loan, self.lease)

    def fastest(self) -> AcquisitionSeries | None:
        """Track reaching payback first (earliest listed wins ties), or None."""
        reached = [s for s in self.series if s.payback_year is not None]
        if not reached:
            return None
        return min(reached, key=lambda s: s.payback_year)


def _inflows(savings: list[float], incentives: IncentiveStack) -> list[float]:
    """Yearly inflows common to every track, index = project year."""
    battery_deferred = incentives.utility_battery * (1.0 - BATTERY_INCENTIVE_UPFRONT_SHARE)
    flows = [0.0] + list(savings)
    for year in range(1, len(flows)):
        if year == UTILITY_INCENTIVE_RECEIPT_YEAR:
            flows[year] += battery_deferred
        if year == TAX_SHIELD_RECEIPT_YEAR:
            flows[year] += incentives.tax_shield
        if year == FEDERAL_ITC_RECEIPT_YEAR:
            flows[year] += incentives.federal_itc
    return flows


def _track(
    method: str,
    start: float,
    inflows: list[float],
    schedule: AmortizationSchedule | None = None,
) -> AcquisitionSeries:
    cumulative = [start]
    for year in range(1, len(inflows)):
        payment = get_payment(schedule, year) if schedule is not None else 0.0
        cumulative.append(cumulative[-1] + inflows[year] - payment)
    payback = calculate_payback_year(cumulative)
    logger.debug("%s track: start=%.2f, payback year=%s", method, start, payback)
    return AcquisitionSeries(method=method, cumulative=cumulative, payback_year=payback)


def compare_acquisition(
    capex: float,
    year1_savings: float,
    incentives: IncentiveStack,
    assumptions: FinancialAssumptions,
) -> AcquisitionComparison:
    """Build the cash, loan and lease tracks for one system.

    Args:
        capex: Gross capital cost in $.
        year1_savings: Year-1 savings in $ (degraded afterwards, not escalated).
        incentives: Incentive stack of the system.
        assumptions: Financial assumptions (loan, lease, degradation, horizon).

    Returns:
        :class:`AcquisitionComparison` over ``assumptions.horizon_years``.
    """
    assumptions = assumptions.sanitized()
    incentives = incentives.sanitized()
    capex = non_negative(capex, field="capex")
    year1_savings = non_negative(year1_savings, field="year1_savings")

    horizon = assumptions.horizon_years
    savings = [
        year1_savings * float(f)
        for f in degradation_factors(assumptions.degradation_rate, horizon)
    ]
    inflows = _inflows(savings, incentives)

    upfront_offset = (
        incentives.utility_solar
        + incentives.utility_battery * BATTERY_INCENTIVE_UPFRONT_SHARE
    )
    net_cost = capex - upfront_offset

    down_payment = capex * assumptions.loan_down_payment_pct
    loan_schedule = build_amortization_schedule(
        capex - down_payment,
        assumptions.loan_interest_rate,
        assumptions.loan_term_years,
    )
    lease_financed = max(net_cost, 0.0)
    lease_schedule = build_amortization_schedule(
        lease_financed,
        assumptions.lease_implicit_rate,
        assumptions.lease_term_years,
    )

    comparison = AcquisitionComparison(
        cash=_track(METHOD_CASH, -net_cost, inflows),
        loan=_track(METHOD_LOAN, -down_payment, inflows, loan_schedule),
        lease=_track(METHOD_LEASE, 0.0, inflows, lease_schedule),
        loan_down_payment=down_payment,
        loan_schedule=loan_schedule,
        lease_financed_amount=lease_financed,
        lease_schedule=lease_schedule,
    )
    logger.info(
        "Acquisition paybacks: cash=%s, loan=%s, lease=%s",
        comparison.cash.payback_year,
        comparison.loan.payback_year,
        comparison.lease.payback_year,
    )
    return comparison
