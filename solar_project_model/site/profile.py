"""Site energy profile and system design value objects.

Both are supplied by the surrounding CRM layer and are read-only to the
engine. Helpers here resolve the site's specific yield (with a province-wide
fallback) and the largest PV array the usable roof can host.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from solar_project_model.config.coerce import non_negative, optional_positive
from solar_project_model.config.defaults import (
    DEFAULT_ROOF_UTILIZATION_RATIO,
    DEFAULT_YIELD_KWH_PER_KW,
    PANEL_AREA_M2,
    PANEL_POWER_KW,
)
from solar_project_model.site.tariffs import TariffRates, TariffTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SystemDesign:
    """One candidate solar + storage system.

    Attributes:
        pv_kw: PV nameplate power in kW.
        battery_kwh: Battery energy capacity in kWh (0 = no battery).
        battery_kw: Battery power rating in kW.
        demand_setpoint_kw: Demand-shaving setpoint in kW, or None for the
            default share of peak demand.
    """

    pv_kw: float
    battery_kwh: float = 0.0
    battery_kw: float = 0.0
    demand_setpoint_kw: float | None = None

    @property
    def has_battery(self) -> bool:
        """True when the design includes usable storage."""
        return self.battery_kwh > 0.0

    def sanitized(self) -> SystemDesign:
        """Return a copy with missing or negative capacities clamped to 0."""
        return SystemDesign(
            pv_kw=non_negative(self.pv_kw, field="pv_kw"),
            battery_kwh=non_negative(self.battery_kwh, field="battery_kwh"),
            battery_kw=non_negative(self.battery_kw, field="battery_kw"),
            demand_setpoint_kw=optional_positive(
                self.demand_setpoint_kw, field="demand_setpoint_kw"
            ),
        )


@dataclass(frozen=True)
class SiteEnergyProfile:
    """Annual energy profile of a client site.

    Attributes:
        annual_consumption_kwh: Annual grid consumption in kWh.
        peak_demand_kw: Annual peak demand in kW.
        tariff_code: Utility tariff code (e.g. ``"M"``).
        energy_rate: Explicit energy rate in $/kWh, or None to use the tariff table.
        demand_rate: Explicit demand rate in $/kW-month, or None to use the table.
        yield_kwh_per_kw: Site-specific annual yield, or None for the fallback.
        roof_area_m2: Gross roof area in m², or None when unconstrained.
    """

    annual_consumption_kwh: float
    peak_demand_kw: float = 0.0
    tariff_code: str | None = None
    energy_rate: float | None = None
    demand_rate: float | None = None
    yield_kwh_per_kw: float | None = None
    roof_area_m2: float | None = None

    def rates(self, table: TariffTable) -> TariffRates:
        """Return effective rates: explicit site rates override the table."""
        base = table.lookup(self.tariff_code)
        energy = base.energy_rate if self.energy_rate is None else self.energy_rate
        demand = base.demand_rate if self.demand_rate is None else self.demand_rate
        return TariffRates(
            code=base.code,
            energy_rate=non_negative(energy, field="energy_rate"),
            demand_rate=non_negative(demand, field="demand_rate"),
        )


def resolve_yield(
    site: SiteEnergyProfile,
    default_yield: float = DEFAULT_YIELD_KWH_PER_KW,
) -> float:
    """Return the site's specific yield in kWh/kW/year.

    Missing, non-numeric or non-positive yield data falls back to
    *default_yield* instead of failing.
    """
    value = optional_positive(site.yield_kwh_per_kw, field="yield_kwh_per_kw")
    if value is None:
        logger.warning(
            "Site yield missing or invalid (%r) – using default %.0f kWh/kW.",
            site.yield_kwh_per_kw,
            default_yield,
        )
        return default_yield
    return value


def max_pv_kw_from_roof(
    roof_area_m2: float | None,
    utilization_ratio: float = DEFAULT_ROOF_UTILIZATION_RATIO,
) -> float | None:
    """Largest PV array (kW) the roof can host, or None if unconstrained.

    ``usable m² / panel footprint`` gives the number of whole panels; each
    contributes :data:`PANEL_POWER_KW`.
    """
    area = optional_positive(roof_area_m2, field="roof_area_m2")
    if area is None:
        return None
    n_panels = math.floor(area * utilization_ratio / PANEL_AREA_M2)
    return n_panels * PANEL_POWER_KW


def round_to_panels(pv_kw: float) -> float:
    """Floor *pv_kw* to a whole number of panels."""
    if pv_kw <= 0.0:
        return 0.0
    # Tolerance absorbs float noise such as 2.9999999 panels.
    n_panels = math.floor(pv_kw / PANEL_POWER_KW + 1e-9)
    return n_panels * PANEL_POWER_KW
