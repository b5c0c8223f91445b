"""Incentive stack and default eligibility policy.

The financial engine treats incentive amounts as opaque inputs with fixed
receipt years:

* utility solar and battery incentives – year 1
* accelerated-depreciation tax shield  – year 1
* federal investment tax credit        – year 2

Amounts are never pro-rated or spread across years.

When the sizing optimizer prices candidates of different sizes it needs an
amount per candidate; :class:`IncentivePolicy` reproduces the programme rules
in force when this model was calibrated (utility self-generation incentive
capped at 40 % of capex, 30 % federal ITC, 90 % realisable tax shield).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from solar_project_model.config.coerce import as_float, non_negative
from solar_project_model.config.defaults import (
    DEFAULT_FEDERAL_ITC_RATE,
    DEFAULT_TAX_SHIELD_FACTOR,
    DEFAULT_UTILITY_INCENTIVE_CAP_PCT_OF_CAPEX,
    DEFAULT_UTILITY_INCENTIVE_MAX_KW,
    DEFAULT_UTILITY_SOLAR_INCENTIVE_PER_KW,
    FEDERAL_ITC_RECEIPT_YEAR,
    TAX_SHIELD_RECEIPT_YEAR,
    UTILITY_INCENTIVE_RECEIPT_YEAR,
)
from solar_project_model.finance.costs import CapexBreakdown
from solar_project_model.site.profile import SystemDesign

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncentiveStack:
    """Incentive amounts for one system, in $.

    Attributes:
        utility_solar: Utility incentive for the PV array.
        utility_battery: Utility incentive for the battery.
        federal_itc: Federal investment tax credit.
        tax_shield: Cash-equivalent benefit of accelerated depreciation.
    """

    utility_solar: float = 0.0
    utility_battery: float = 0.0
    federal_itc: float = 0.0
    tax_shield: float = 0.0

    @property
    def utility_total(self) -> float:
        """Sum of utility solar and battery incentives."""
        return self.utility_solar + self.utility_battery

    @property
    def total(self) -> float:
        """Sum of every incentive in the stack."""
        return self.utility_total + self.federal_itc + self.tax_shield

    def sanitized(self) -> IncentiveStack:
        """Return a copy with missing or negative amounts clamped to 0."""
        return IncentiveStack(
            utility_solar=non_negative(self.utility_solar, field="utility_solar"),
            utility_battery=non_negative(self.utility_battery, field="utility_battery"),
            federal_itc=non_negative(self.federal_itc, field="federal_itc"),
            tax_shield=non_negative(self.tax_shield, field="tax_shield"),
        )

    def received_in_year(self, year: int) -> float:
        """Return the incentive cash received in project *year*."""
        amount = 0.0
        if year == UTILITY_INCENTIVE_RECEIPT_YEAR:
            amount += self.utility_solar + self.utility_battery
        if year == TAX_SHIELD_RECEIPT_YEAR:
            amount += self.tax_shield
        if year == FEDERAL_ITC_RECEIPT_YEAR:
            amount += self.federal_itc
        return amount


@dataclass(frozen=True)
class IncentivePolicy:
    """Eligibility rules used to estimate an :class:`IncentiveStack`.

    Attributes:
        utility_solar_per_kw: Utility incentive in $/kW of PV.
        utility_max_kw: PV capacity eligible for the utility incentive.
        utility_cap_pct_of_capex: Cap on combined utility incentives.
        federal_itc_rate: ITC rate applied to capex net of utility incentives.
        tax_rate: Corporate tax rate used for the tax shield.
        tax_shield_factor: Realisable share of the depreciation tax benefit.
    """

    utility_solar_per_kw: float = DEFAULT_UTILITY_SOLAR_INCENTIVE_PER_KW
    utility_max_kw: float = DEFAULT_UTILITY_INCENTIVE_MAX_KW
    utility_cap_pct_of_capex: float = DEFAULT_UTILITY_INCENTIVE_CAP_PCT_OF_CAPEX
    federal_itc_rate: float = DEFAULT_FEDERAL_ITC_RATE
    tax_rate: float = 0.0
    tax_shield_factor: float = DEFAULT_TAX_SHIELD_FACTOR

    def estimate(self, design: SystemDesign, capex: CapexBreakdown) -> IncentiveStack:
        """Estimate the incentive stack for *design* at cost *capex*.

        Args:
            design: Sanitised system design.
            capex: Capital cost breakdown of the same design.

        Returns:
            Estimated :class:`IncentiveStack`.
        """
        gross = capex.capex_gross
        if gross <= 0.0:
            return IncentiveStack()

        cap = gross * self.utility_cap_pct_of_capex
        eligible_kw = min(design.pv_kw, self.utility_max_kw)
        utility_solar = min(eligible_kw * self.utility_solar_per_kw, cap)

        # Battery shares the remaining cap and requires a PV array.
        utility_battery = 0.0
        if design.pv_kw > 0.0 and design.has_battery:
            utility_battery = min(max(0.0, cap - utility_solar), capex.capex_battery)

        utility_total = utility_solar + utility_battery
        federal_itc = (gross - utility_total) * self.federal_itc_rate
        depreciable = max(0.0, gross - utility_total - federal_itc)
        tax_shield = depreciable * self.tax_rate * self.tax_shield_factor

        return IncentiveStack(
            utility_solar=utility_solar,
            utility_battery=utility_battery,
            federal_itc=federal_itc,
            tax_shield=tax_shield,
        )


def incentive_stack_from_dict(config: dict | None) -> IncentiveStack | None:
    """Read explicit incentive amounts, or None when the block gives none.

    Args:
        config: The request's ``incentives.amounts`` block.
    """
    if not config:
        return None
    return IncentiveStack(
        utility_solar=non_negative(config.get("utility_solar"), field="utility_solar"),
        utility_battery=non_negative(config.get("utility_battery"), field="utility_battery"),
        federal_itc=non_negative(config.get("federal_itc"), field="federal_itc"),
        tax_shield=non_negative(config.get("tax_shield"), field="tax_shield"),
    )


def incentive_policy_from_dict(config: dict | None, tax_rate: float) -> IncentivePolicy:
    """Build an :class:`IncentivePolicy` from the request's ``incentives.policy`` block."""
    config = config or {}
    return IncentivePolicy(
        utility_solar_per_kw=non_negative(
            as_float(config.get("utility_solar_per_kw"), DEFAULT_UTILITY_SOLAR_INCENTIVE_PER_KW),
            field="utility_solar_per_kw",
        ),
        utility_max_kw=non_negative(
            as_float(config.get("utility_max_kw"), DEFAULT_UTILITY_INCENTIVE_MAX_KW),
            field="utility_max_kw",
        ),
        utility_cap_pct_of_capex=non_negative(
            as_float(
                config.get("utility_cap_pct_of_capex"),
                DEFAULT_UTILITY_INCENTIVE_CAP_PCT_OF_CAPEX,
            ),
            field="utility_cap_pct_of_capex",
        ),
        federal_itc_rate=non_negative(
            as_float(config.get("federal_itc_rate"), DEFAULT_FEDERAL_ITC_RATE),
            field="federal_itc_rate",
        ),
        tax_rate=non_negative(tax_rate, field="tax_rate"),
        tax_shield_factor=non_negative(
            as_float(config.get("tax_shield_factor"), DEFAULT_TAX_SHIELD_FACTOR),
            field="tax_shield_factor",
        ),
    )
