"""Capital and base-year O&M cost of a system design.

CAPEX_pv      = pv_kw × 1000 × $/W (size-tiered unless overridden)
CAPEX_battery = battery_kwh × $/kWh + battery_kw × $/kW
OPEX_asset    = pct_of_capex × CAPEX_asset  (base year, before escalation)

Missing fields are treated as 0.
"""

from __future__ import annotations

from dataclasses import dataclass

from solar_project_model.config.coerce import as_float, non_negative
from solar_project_model.config.defaults import (
    DEFAULT_BATTERY_CAPACITY_COST_PER_KWH,
    DEFAULT_BATTERY_POWER_COST_PER_KW,
    PV_COST_TIERS_PER_W,
    WATTS_PER_KW,
)
from solar_project_model.site.profile import SystemDesign


@dataclass(frozen=True)
class CostAssumptions:
    """Installed-cost assumptions.

    Attributes:
        pv_cost_per_w: Fixed PV cost in $/W, or None to use ``pv_cost_tiers``.
        pv_cost_tiers: ``(minimum size kW, $/W)`` pairs, largest tier first.
        battery_capacity_cost_per_kwh: Battery energy cost in $/kWh.
        battery_power_cost_per_kw: Battery power cost in $/kW.
    """

    pv_cost_per_w: float | None = None
    pv_cost_tiers: tuple[tuple[float, float], ...] = PV_COST_TIERS_PER_W
    battery_capacity_cost_per_kwh: float = DEFAULT_BATTERY_CAPACITY_COST_PER_KWH
    battery_power_cost_per_kw: float = DEFAULT_BATTERY_POWER_COST_PER_KW


@dataclass(frozen=True)
class CapexBreakdown:
    """Gross capital cost and base-year O&M split by asset."""

    capex_solar: float
    capex_battery: float
    capex_gross: float
    om_solar: float
    om_battery: float

    @property
    def om_total(self) -> float:
        """Base-year O&M of both assets."""
        return self.om_solar + self.om_battery


def pv_cost_per_w(pv_kw: float, costs: CostAssumptions) -> float:
    """Return the PV installed cost in $/W for an array of *pv_kw*.

    Args:
        pv_kw: PV nameplate power in kW.
        costs: Cost assumptions; an explicit ``pv_cost_per_w`` wins over tiers.

    Returns:
        Cost in $/W.
    """
    if costs.pv_cost_per_w is not None:
        return non_negative(costs.pv_cost_per_w, field="pv_cost_per_w")
    for min_kw, price in sorted(costs.pv_cost_tiers, key=lambda t: t[0], reverse=True):
        if pv_kw >= min_kw:
            return price
    # Below the smallest tier threshold: use the smallest tier's price.
    return min(costs.pv_cost_tiers, key=lambda t: t[0])[1]


def calculate_capex(
    design: SystemDesign,
    costs: CostAssumptions,
    om_solar_pct: float,
    om_battery_pct: float,
) -> CapexBreakdown:
    """Calculate gross capex and base-year O&M for *design*.

    Args:
        design: Sanitised system design.
        costs: Installed-cost assumptions.
        om_solar_pct: PV O&M as a fraction of PV capex.
        om_battery_pct: Battery O&M as a fraction of battery capex.

    Returns:
        :class:`CapexBreakdown` with per-asset figures.
    """
    capex_solar = design.pv_kw * WATTS_PER_KW * pv_cost_per_w(design.pv_kw, costs)
    capex_battery = (
        design.battery_kwh * non_negative(costs.battery_capacity_cost_per_kwh)
        + design.battery_kw * non_negative(costs.battery_power_cost_per_kw)
    )
    return CapexBreakdown(
        capex_solar=capex_solar,
        capex_battery=capex_battery,
        capex_gross=capex_solar + capex_battery,
        om_solar=capex_solar * om_solar_pct,
        om_battery=capex_battery * om_battery_pct,
    )


def cost_assumptions_from_dict(config: dict | None) -> CostAssumptions:
    """Build :class:`CostAssumptions` from the request's ``costs`` block.

    Missing keys fall back to the documented defaults; a ``pv_cost_tiers``
    list of ``{"min_kw": ..., "cost_per_w": ...}`` replaces the built-in tiers.
    """
    config = config or {}
    tiers = PV_COST_TIERS_PER_W
    if config.get("pv_cost_tiers"):
        tiers = tuple(
            (
                non_negative(t.get("min_kw"), field="pv_cost_tiers.min_kw"),
                non_negative(t.get("cost_per_w"), field="pv_cost_tiers.cost_per_w"),
            )
            for t in config["pv_cost_tiers"]
        )
    pv_cost = config.get("pv_cost_per_w")
    return CostAssumptions(
        pv_cost_per_w=None if pv_cost is None else non_negative(pv_cost, field="pv_cost_per_w"),
        pv_cost_tiers=tiers,
        battery_capacity_cost_per_kwh=as_float(
            config.get("battery_capacity_cost_per_kwh"),
            DEFAULT_BATTERY_CAPACITY_COST_PER_KWH,
            field="battery_capacity_cost_per_kwh",
        ),
        battery_power_cost_per_kw=as_float(
            config.get("battery_power_cost_per_kw"),
            DEFAULT_BATTERY_POWER_COST_PER_KW,
            field="battery_power_cost_per_kw",
        ),
    )
