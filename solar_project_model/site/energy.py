"""Annual energy balance of one system design at one site.

The balance is computed on annual totals:

1. ``production = pv_kw × specific_yield``
2. Direct self-consumption is limited to the daytime share of the load.
3. The battery shifts PV surplus into the remaining (night) load, limited by
   its annual cycling throughput and round-trip losses.
4. What is left of the surplus is exported to the grid.
5. The battery shaves the monthly peak down to the demand setpoint, limited
   by its power rating.

Year-1 bill savings are ``self_consumption × energy_rate`` plus the demand
charge avoided over twelve months. Export credits are reported separately
because they start later than the savings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from solar_project_model.config.coerce import non_negative
from solar_project_model.config.defaults import (
    DEFAULT_BATTERY_CYCLES_PER_YEAR,
    DEFAULT_BATTERY_ROUND_TRIP_EFFICIENCY,
    DEFAULT_DAYTIME_LOAD_SHARE,
    DEFAULT_DEMAND_SETPOINT_SHARE_OF_PEAK,
    GRID_EMISSION_FACTOR_KG_PER_KWH,
    KG_PER_TONNE,
    MONTHS_PER_YEAR,
)
from solar_project_model.site.profile import SiteEnergyProfile, SystemDesign
from solar_project_model.site.tariffs import TariffRates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnergyModelParams:
    """Behavioural parameters of the annual energy balance.

    Attributes:
        daytime_load_share: Fraction of consumption coincident with PV output.
        battery_cycles_per_year: Full equivalent cycles available for shifting.
        battery_round_trip_efficiency: Battery round-trip efficiency (0, 1].
        demand_setpoint_share_of_peak: Default setpoint as a share of peak.
    """

    daytime_load_share: float = DEFAULT_DAYTIME_LOAD_SHARE
    battery_cycles_per_year: float = DEFAULT_BATTERY_CYCLES_PER_YEAR
    battery_round_trip_efficiency: float = DEFAULT_BATTERY_ROUND_TRIP_EFFICIENCY
    demand_setpoint_share_of_peak: float = DEFAULT_DEMAND_SETPOINT_SHARE_OF_PEAK


@dataclass(frozen=True)
class EnergyBalance:
    """Year-1 energy and bill figures for one design.

    Attributes:
        production_kwh: Annual PV production.
        direct_self_consumption_kwh: PV energy consumed on site as produced.
        battery_shifted_kwh: PV energy delivered to the load via the battery.
        self_consumption_kwh: Total on-site use of PV energy.
        exported_kwh: Surplus PV energy exported to the grid.
        demand_reduction_kw: Monthly peak reduction achieved by the battery.
        energy_savings: Avoided energy charges in $.
        demand_savings: Avoided demand charges in $.
        annual_savings: ``energy_savings + demand_savings``.
        self_sufficiency_pct: Share of consumption met on site, in %.
        co2_avoided_tonnes_per_year: Emissions avoided by self-consumption.
    """

    production_kwh: float
    direct_self_consumption_kwh: float
    battery_shifted_kwh: float
    self_consumption_kwh: float
    exported_kwh: float
    demand_reduction_kw: float
    energy_savings: float
    demand_savings: float
    annual_savings: float
    self_sufficiency_pct: float
    co2_avoided_tonnes_per_year: float


def demand_setpoint_kw(
    design: SystemDesign,
    peak_demand_kw: float,
    params: EnergyModelParams,
) -> float:
    """Return the demand-shaving setpoint for *design*.

    Without a battery the setpoint is the peak itself (no shaving).
    """
    if not design.has_battery:
        return peak_demand_kw
    if design.demand_setpoint_kw is not None:
        return min(design.demand_setpoint_kw, peak_demand_kw)
    return peak_demand_kw * params.demand_setpoint_share_of_peak


def estimate_energy_balance(
    design: SystemDesign,
    site: SiteEnergyProfile,
    specific_yield: float,
    rates: TariffRates,
    params: EnergyModelParams | None = None,
) -> EnergyBalance:
    """Compute the year-1 :class:`EnergyBalance` of *design* at *site*.

    Args:
        design: Sanitised system design.
        site: Site energy profile.
        specific_yield: Annual yield in kWh per installed kW.
        rates: Effective tariff rates for the site.
        params: Behavioural parameters; defaults when None.

    Returns:
        The annual energy balance and year-1 savings.
    """
    if params is None:
        params = EnergyModelParams()

    consumption = non_negative(site.annual_consumption_kwh, field="annual_consumption_kwh")
    peak = non_negative(site.peak_demand_kw, field="peak_demand_kw")

    production = design.pv_kw * specific_yield
    daytime_load = consumption * params.daytime_load_share
    direct = min(production, daytime_load)
    surplus = production - direct

    battery_shifted = 0.0
    if design.has_battery and surplus > 0.0:
        rte = params.battery_round_trip_efficiency
        throughput = design.battery_kwh * params.battery_cycles_per_year * rte
        night_load = consumption - direct
        battery_shifted = max(0.0, min(surplus * rte, throughput, night_load))

    # Charging draws battery_shifted / rte from the surplus.
    charged = battery_shifted / params.battery_round_trip_efficiency if battery_shifted else 0.0
    exported = max(0.0, surplus - charged)
    self_consumption = direct + battery_shifted

    setpoint = demand_setpoint_kw(design, peak, params)
    demand_reduction = 0.0
    if design.has_battery:
        demand_reduction = max(0.0, min(design.battery_kw, peak - setpoint))

    energy_savings = self_consumption * rates.energy_rate
    demand_savings = demand_reduction * rates.demand_rate * MONTHS_PER_YEAR
    self_sufficiency = (self_consumption / consumption * 100.0) if consumption > 0.0 else 0.0
    co2 = self_consumption * GRID_EMISSION_FACTOR_KG_PER_KWH / KG_PER_TONNE

    logger.debug(
        "Energy balance pv=%.1f kW batt=%.1f kWh: production=%.0f kWh, "
        "self-consumption=%.0f kWh, export=%.0f kWh, demand reduction=%.1f kW",
        design.pv_kw,
        design.battery_kwh,
        production,
        self_consumption,
        exported,
        demand_reduction,
    )

    return EnergyBalance(
        production_kwh=production,
        direct_self_consumption_kwh=direct,
        battery_shifted_kwh=battery_shifted,
        self_consumption_kwh=self_consumption,
        exported_kwh=exported,
        demand_reduction_kw=demand_reduction,
        energy_savings=energy_savings,
        demand_savings=demand_savings,
        annual_savings=energy_savings + demand_savings,
        self_sufficiency_pct=self_sufficiency,
        co2_avoided_tonnes_per_year=co2,
    )
