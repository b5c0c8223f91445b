"""Annual cashflow projection for one fixed system design.

Builds a year-by-year cashflow table over the projection horizon and derives
the summary KPIs of the design.

Year 0 carries the gross capital cost (negative). For years 1..N:

    savings_y  = year-1 savings × (1 − d)^(y−1) × (1 + tariff inflation)^(y−1)
    surplus_y  = exported kWh × compensation rate × (1 − d)^(y−1)
                 × (1 + tariff inflation)^(y−1), from year 3
    opex_y     = (capex_pv × om_pv + capex_batt × om_batt) × (1 + om escalation)^(y−1)
    incentives = utility + tax shield in year 1, federal ITC in year 2
    investment = −battery replacement cost in each replacement year
    net_y      = savings_y + surplus_y − opex_y + incentives_y + investment_y

All arithmetic stays in full float precision; rounding belongs to the output
layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np

from solar_project_model.config.coerce import as_float, as_int, non_negative
from solar_project_model.config.defaults import (
    DEFAULT_BATTERY_PRICE_DECLINE_RATE,
    DEFAULT_BATTERY_REPLACEMENT_COST_FACTOR,
    DEFAULT_BATTERY_REPLACEMENT_YEARS,
    DEFAULT_DEGRADATION_RATE,
    DEFAULT_DISCOUNT_RATE,
    DEFAULT_LEASE_IMPLICIT_RATE,
    DEFAULT_LEASE_TERM_YEARS,
    DEFAULT_LOAN_DOWN_PAYMENT_PCT,
    DEFAULT_LOAN_INTEREST_RATE,
    DEFAULT_LOAN_TERM_YEARS,
    DEFAULT_OM_BATTERY_PCT_OF_CAPEX,
    DEFAULT_OM_ESCALATION_RATE,
    DEFAULT_OM_SOLAR_PCT_OF_CAPEX,
    DEFAULT_SURPLUS_COMPENSATION_RATE,
    DEFAULT_TARIFF_INFLATION_RATE,
    DEFAULT_TAX_RATE,
    NPV_HORIZONS_YEARS,
    PROJECTION_HORIZON_YEARS,
    SURPLUS_CREDIT_START_YEAR,
)
from solar_project_model.finance.costs import (
    CapexBreakdown,
    CostAssumptions,
    calculate_capex,
)
from solar_project_model.finance.incentives import IncentiveStack
from solar_project_model.finance.inflation import build_inflation_factors, net_price_index
from solar_project_model.finance.metrics import (
    calculate_lcoe,
    calculate_npv,
    calculate_payback_year,
    discount_factors,
    solve_irr,
)
from solar_project_model.pv.degradation import degradation_factors
from solar_project_model.site.energy import (
    EnergyBalance,
    EnergyModelParams,
    estimate_energy_balance,
)
from solar_project_model.site.profile import SiteEnergyProfile, SystemDesign, resolve_yield
from solar_project_model.site.tariffs import TariffTable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Assumptions
# ---------------------------------------------------------------------------


def _replacement_years(years: object) -> tuple[int, ...]:
    """Normalise replacement years to a sorted tuple of distinct years ≥ 1.

    A single year is accepted in place of a sequence; ``None`` means none.
    """
    if years is None:
        return ()
    if isinstance(years, (int, float, str)):
        years = (years,)
    normalised = {as_int(y, field="battery_replacement_years") for y in years}
    return tuple(sorted(y for y in normalised if y >= 1))


@dataclass(frozen=True)
class FinancialAssumptions:
    """Financial assumption set shared by the engine and the acquisition tracks.

    All rates and percentages are decimal fractions.

    Attributes:
        discount_rate: Discount rate for NPV and LCOE.
        tariff_inflation_rate: Annual escalation of avoided tariff charges.
        tax_rate: Corporate tax rate (feeds the tax-shield estimate).
        om_solar_pct: Annual PV O&M as a fraction of PV capex.
        om_battery_pct: Annual battery O&M as a fraction of battery capex.
        om_escalation_rate: Annual O&M escalation.
        battery_replacement_years: Project years of the battery replacements (empty = none).
        battery_replacement_cost_factor: Replacement cost as a fraction of battery capex.
        battery_price_decline_rate: Annual battery price decline.
        loan_interest_rate: Annual loan interest rate.
        loan_term_years: Loan term in years.
        loan_down_payment_pct: Down payment as a fraction of capex.
        lease_implicit_rate: Annual implicit lease rate.
        lease_term_years: Lease term in years.
        degradation_rate: Annual production degradation.
        surplus_compensation_rate: Export credit in $/kWh.
        horizon_years: Number of projected operating years.
    """

    discount_rate: float = DEFAULT_DISCOUNT_RATE
    tariff_inflation_rate: float = DEFAULT_TARIFF_INFLATION_RATE
    tax_rate: float = DEFAULT_TAX_RATE
    om_solar_pct: float = DEFAULT_OM_SOLAR_PCT_OF_CAPEX
    om_battery_pct: float = DEFAULT_OM_BATTERY_PCT_OF_CAPEX
    om_escalation_rate: float = DEFAULT_OM_ESCALATION_RATE
    battery_replacement_years: tuple[int, ...] = DEFAULT_BATTERY_REPLACEMENT_YEARS
    battery_replacement_cost_factor: float = DEFAULT_BATTERY_REPLACEMENT_COST_FACTOR
    battery_price_decline_rate: float = DEFAULT_BATTERY_PRICE_DECLINE_RATE
    loan_interest_rate: float = DEFAULT_LOAN_INTEREST_RATE
    loan_term_years: int = DEFAULT_LOAN_TERM_YEARS
    loan_down_payment_pct: float = DEFAULT_LOAN_DOWN_PAYMENT_PCT
    lease_implicit_rate: float = DEFAULT_LEASE_IMPLICIT_RATE
    lease_term_years: int = DEFAULT_LEASE_TERM_YEARS
    degradation_rate: float = DEFAULT_DEGRADATION_RATE
    surplus_compensation_rate: float = DEFAULT_SURPLUS_COMPENSATION_RATE
    horizon_years: int = PROJECTION_HORIZON_YEARS

    def sanitized(self) -> FinancialAssumptions:
        """Return a copy with missing or negative values clamped to 0.

        A degradation rate of 100 % or more is meaningless and falls back to
        the default; a down payment above 100 % is capped at 100 %.
        """
        degradation = non_negative(self.degradation_rate, field="degradation_rate")
        if degradation >= 1.0:
            logger.warning(
                "Degradation rate %.4f is not a fraction below 1 – using default %.4f.",
                degradation,
                DEFAULT_DEGRADATION_RATE,
            )
            degradation = DEFAULT_DEGRADATION_RATE
        down = min(non_negative(self.loan_down_payment_pct, field="loan_down_payment_pct"), 1.0)
        return FinancialAssumptions(
            discount_rate=non_negative(self.discount_rate, field="discount_rate"),
            tariff_inflation_rate=non_negative(
                self.tariff_inflation_rate, field="tariff_inflation_rate"
            ),
            tax_rate=non_negative(self.tax_rate, field="tax_rate"),
            om_solar_pct=non_negative(self.om_solar_pct, field="om_solar_pct"),
            om_battery_pct=non_negative(self.om_battery_pct, field="om_battery_pct"),
            om_escalation_rate=non_negative(self.om_escalation_rate, field="om_escalation_rate"),
            battery_replacement_years=_replacement_years(self.battery_replacement_years),
            battery_replacement_cost_factor=non_negative(
                self.battery_replacement_cost_factor, field="battery_replacement_cost_factor"
            ),
            battery_price_decline_rate=as_float(
                self.battery_price_decline_rate, field="battery_price_decline_rate"
            ),
            loan_interest_rate=non_negative(self.loan_interest_rate, field="loan_interest_rate"),
            loan_term_years=as_int(self.loan_term_years, field="loan_term_years"),
            loan_down_payment_pct=down,
            lease_implicit_rate=non_negative(
                self.lease_implicit_rate, field="lease_implicit_rate"
            ),
            lease_term_years=as_int(self.lease_term_years, field="lease_term_years"),
            degradation_rate=degradation,
            surplus_compensation_rate=non_negative(
                self.surplus_compensation_rate, field="surplus_compensation_rate"
            ),
            horizon_years=as_int(
                self.horizon_years, PROJECTION_HORIZON_YEARS, field="horizon_years"
            ),
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CashflowEntry:
    """Cashflow breakdown for a single project year."""

    year: int
    production_kwh: float
    savings: float
    surplus_revenue: float
    revenue: float
    opex: float
    incentives: float
    investment: float
    net_cashflow: float
    cumulative: float


@dataclass(frozen=True)
class ScenarioResult:
    """One evaluated system design with its derived KPIs.

    Attributes:
        design: The evaluated system design.
        coverage_ratio: Candidate coverage ratio, or None for a fixed design.
        specific_yield: Yield used for production (kWh/kW/year).
        energy: Year-1 energy balance.
        capex: Gross capex and base O&M breakdown.
        incentives: Incentive stack applied.
        capex_net: Gross capex minus all incentives.
        replacement_costs: Battery replacement outlay by project year (empty when none
            falls in the horizon).
        npv: NPV by horizon in years.
        irr: IRR by horizon in years (None when unsolvable).
        payback_year: Simple payback year, or None if never reached.
        lcoe_cents_per_kwh: Levelized cost of energy, or None without production.
        cashflows: Year 0..N :class:`CashflowEntry` series.
    """

    design: SystemDesign
    coverage_ratio: float | None
    specific_yield: float
    energy: EnergyBalance
    capex: CapexBreakdown
    incentives: IncentiveStack
    capex_net: float
    replacement_costs: dict[int, float]
    npv: dict[int, float] = field(default_factory=dict)
    irr: dict[int, float | None] = field(default_factory=dict)
    payback_year: int | None = None
    lcoe_cents_per_kwh: float | None = None
    cashflows: list[CashflowEntry] = field(default_factory=list)

    @property
    def replacement_cost(self) -> float:
        """Total battery replacement outlay over the horizon in $."""
        return float(sum(self.replacement_costs.values()))

    @property
    def annual_savings(self) -> float:
        """Year-1 bill savings in $."""
        return self.energy.annual_savings

    @property
    def self_sufficiency_pct(self) -> float:
        return self.energy.self_sufficiency_pct

    @property
    def co2_avoided_tonnes_per_year(self) -> float:
        return self.energy.co2_avoided_tonnes_per_year

    @property
    def lifetime_npv(self) -> float:
        """NPV over the longest reported horizon."""
        return self.npv[max(self.npv)] if self.npv else 0.0

    @property
    def lifetime_irr(self) -> float | None:
        """IRR over the longest reported horizon."""
        return self.irr[max(self.irr)] if self.irr else None


# ---------------------------------------------------------------------------
# Projection
# ---------------------------------------------------------------------------


def battery_replacement_cost(
    capex_battery: float,
    assumptions: FinancialAssumptions,
    year: int,
) -> float:
    """Cost of a battery replacement in *year*, or 0.0 outside the horizon.

    ``capex_battery × factor × (1 + tariff inflation − price decline)^year``
    """
    if capex_battery <= 0.0 or year < 1 or year > assumptions.horizon_years:
        return 0.0
    return (
        capex_battery
        * assumptions.battery_replacement_cost_factor
        * net_price_index(
            assumptions.tariff_inflation_rate,
            assumptions.battery_price_decline_rate,
            year,
        )
    )


def battery_replacement_schedule(
    capex_battery: float,
    assumptions: FinancialAssumptions,
) -> dict[int, float]:
    """Replacement cost by project year for every replacement inside the horizon."""
    schedule = {}
    for year in assumptions.battery_replacement_years:
        cost = battery_replacement_cost(capex_battery, assumptions, year)
        if cost > 0.0:
            schedule[year] = cost
    return schedule


def build_cashflow_projection(
    capex: CapexBreakdown,
    year1_savings: float,
    year1_production_kwh: float,
    exported_kwh: float,
    incentives: IncentiveStack,
    assumptions: FinancialAssumptions,
) -> list[CashflowEntry]:
    """Build the year 0..N cashflow table.

    Args:
        capex: Gross capex and base O&M of the design.
        year1_savings: Undegraded, unescalated year-1 bill savings in $.
        year1_production_kwh: Year-1 PV production in kWh.
        exported_kwh: Year-1 surplus exported to the grid in kWh.
        incentives: Incentive amounts (received in their fixed years).
        assumptions: Sanitised financial assumptions.

    Returns:
        List of :class:`CashflowEntry` for years 0 through ``horizon_years``.
    """
    horizon = assumptions.horizon_years
    degradation = degradation_factors(assumptions.degradation_rate, horizon)
    tariff_escalation = build_inflation_factors(assumptions.tariff_inflation_rate, horizon)
    om_escalation = build_inflation_factors(assumptions.om_escalation_rate, horizon)
    replacements = battery_replacement_schedule(capex.capex_battery, assumptions)

    entries: list[CashflowEntry] = [
        CashflowEntry(
            year=0,
            production_kwh=0.0,
            savings=0.0,
            surplus_revenue=0.0,
            revenue=0.0,
            opex=0.0,
            incentives=0.0,
            investment=-capex.capex_gross,
            net_cashflow=-capex.capex_gross,
            cumulative=-capex.capex_gross,
        )
    ]
    cumulative = -capex.capex_gross

    for y in range(1, horizon + 1):
        i = y - 1
        savings = year1_savings * degradation[i] * tariff_escalation[i]
        surplus = 0.0
        if y >= SURPLUS_CREDIT_START_YEAR:
            surplus = (
                exported_kwh
                * assumptions.surplus_compensation_rate
                * degradation[i]
                * tariff_escalation[i]
            )
        revenue = savings + surplus
        opex = capex.om_total * om_escalation[i]
        received = incentives.received_in_year(y)
        investment = -replacements.get(y, 0.0)
        net = revenue - opex + received + investment
        cumulative += net

        entries.append(
            CashflowEntry(
                year=y,
                production_kwh=float(year1_production_kwh * degradation[i]),
                savings=float(savings),
                surplus_revenue=float(surplus),
                revenue=float(revenue),
                opex=float(opex),
                incentives=received,
                investment=investment,
                net_cashflow=float(net),
                cumulative=float(cumulative),
            )
        )

    return entries


def _lcoe(
    entries: list[CashflowEntry],
    capex_gross: float,
    discount_rate: float,
) -> float | None:
    factors = discount_factors(discount_rate, len(entries))
    costs = np.array([e.opex - e.investment for e in entries])
    costs[0] = capex_gross
    incentives = np.array([e.incentives for e in entries])
    production = np.array([e.production_kwh for e in entries])
    return calculate_lcoe(
        float(np.sum((costs - incentives) * factors)),
        float(np.sum(production * factors)),
    )


def project_scenario(
    design: SystemDesign,
    site: SiteEnergyProfile,
    assumptions: FinancialAssumptions,
    incentives: IncentiveStack,
    costs: CostAssumptions | None = None,
    tariffs: TariffTable | None = None,
    energy_params: EnergyModelParams | None = None,
    coverage_ratio: float | None = None,
) -> ScenarioResult:
    """Evaluate one fixed system design.

    Args:
        design: System design (sanitised here).
        site: Site energy profile.
        assumptions: Financial assumptions (sanitised here).
        incentives: Incentive amounts for this design.
        costs: Installed-cost assumptions; defaults when None.
        tariffs: Tariff table; built-in rates when None.
        energy_params: Energy-balance parameters; defaults when None.
        coverage_ratio: Candidate coverage ratio, carried through for reporting.

    Returns:
        :class:`ScenarioResult` with the full cashflow series and KPIs.
    """
    design = design.sanitized()
    assumptions = assumptions.sanitized()
    incentives = incentives.sanitized()
    costs = costs or CostAssumptions()
    tariffs = tariffs or TariffTable()

    specific_yield = resolve_yield(site)
    rates = site.rates(tariffs)
    energy = estimate_energy_balance(design, site, specific_yield, rates, energy_params)
    capex = calculate_capex(
        design, costs, assumptions.om_solar_pct, assumptions.om_battery_pct
    )

    if capex.capex_gross <= 0.0 and incentives.total > 0.0:
        logger.warning(
            "Design has no capital cost – ignoring incentives of %.2f.", incentives.total
        )
        incentives = IncentiveStack()

    entries = build_cashflow_projection(
        capex=capex,
        year1_savings=energy.annual_savings,
        year1_production_kwh=energy.production_kwh,
        exported_kwh=energy.exported_kwh,
        incentives=incentives,
        assumptions=assumptions,
    )
    net = np.array([e.net_cashflow for e in entries])
    cumulative = np.array([e.cumulative for e in entries])
    horizons = [h for h in NPV_HORIZONS_YEARS if h <= assumptions.horizon_years]

    npv = {h: calculate_npv(net, assumptions.discount_rate, h) for h in horizons}
    if capex.capex_gross <= 0.0:
        logger.debug("Design pv=%.1f kW has no capital cost – metrics undefined", design.pv_kw)
        irr: dict[int, float | None] = {h: None for h in horizons}
        payback = None
        lcoe = None
    else:
        irr = {h: solve_irr(net, h) for h in horizons}
        payback = calculate_payback_year(cumulative)
        lcoe = _lcoe(entries, capex.capex_gross, assumptions.discount_rate)

    result = ScenarioResult(
        design=design,
        coverage_ratio=coverage_ratio,
        specific_yield=specific_yield,
        energy=energy,
        capex=capex,
        incentives=incentives,
        capex_net=capex.capex_gross - incentives.total,
        replacement_costs=battery_replacement_schedule(capex.capex_battery, assumptions),
        npv=npv,
        irr=irr,
        payback_year=payback,
        lcoe_cents_per_kwh=lcoe,
        cashflows=entries,
    )
    logger.debug(
        "Scenario pv=%.1f kW batt=%.1f kWh: capex=%.0f, NPV=%.0f, IRR=%s, payback=%s",
        design.pv_kw,
        design.battery_kwh,
        capex.capex_gross,
        result.lifetime_npv,
        result.lifetime_irr,
        payback,
    )
    return result
