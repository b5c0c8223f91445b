"""Utility tariff table: energy and demand rates per tariff code.

The table is an explicit object passed to whoever needs rates, so the engine
stays a pure function and tests never depend on process-wide state. The
built-in table holds the Hydro-Québec 2025 business rates (first-tier energy
price, monthly demand charge); a request may override or extend it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from solar_project_model.config.coerce import non_negative
from solar_project_model.config.defaults import DEFAULT_TARIFF_CODE

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TariffRates:
    """Rates applicable to one tariff code.

    Attributes:
        code: Tariff code (e.g. ``"M"``).
        energy_rate: Energy price in $/kWh.
        demand_rate: Demand charge in $/kW per month.
    """

    code: str
    energy_rate: float
    demand_rate: float


DEFAULT_TARIFFS: dict[str, TariffRates] = {
    "D": TariffRates(code="D", energy_rate=0.06905, demand_rate=0.0),
    "G": TariffRates(code="G", energy_rate=0.11933, demand_rate=21.261),
    "M": TariffRates(code="M", energy_rate=0.06061, demand_rate=17.573),
    "L": TariffRates(code="L", energy_rate=0.03681, demand_rate=14.476),
}


@dataclass(frozen=True)
class TariffTable:
    """Lookup of :class:`TariffRates` by code with a fallback code."""

    rates: dict[str, TariffRates] = field(default_factory=lambda: dict(DEFAULT_TARIFFS))
    fallback_code: str = DEFAULT_TARIFF_CODE

    def lookup(self, code: str | None) -> TariffRates:
        """Return rates for *code*, or the fallback tariff when unknown.

        Codes are matched case-insensitively.
        """
        key = (code or "").strip().upper()
        if key in self.rates:
            return self.rates[key]
        logger.warning(
            "Unknown tariff code %r – falling back to tariff %s.",
            code,
            self.fallback_code,
        )
        return self.rates[self.fallback_code]


def tariff_table_from_dict(overrides: dict | None) -> TariffTable:
    """Build a :class:`TariffTable` from the built-in rates plus *overrides*.

    Args:
        overrides: Mapping ``code -> {"energy_rate": ..., "demand_rate": ...}``.
            Missing rate fields inherit the built-in value for that code, or 0
            for a new code.

    Returns:
        A new table; the built-in table is never mutated.
    """
    rates = dict(DEFAULT_TARIFFS)
    for code, cfg in (overrides or {}).items():
        key = code.strip().upper()
        base = rates.get(key, TariffRates(code=key, energy_rate=0.0, demand_rate=0.0))
        cfg = cfg or {}
        rates[key] = TariffRates(
            code=key,
            energy_rate=non_negative(
                cfg.get("energy_rate", base.energy_rate), field=f"{key}.energy_rate"
            ),
            demand_rate=non_negative(
                cfg.get("demand_rate", base.demand_rate), field=f"{key}.demand_rate"
            ),
        )
    return TariffTable(rates=rates)
