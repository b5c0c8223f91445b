"""Flat KPI record of the chosen scenario.

Downstream renderers bind to these field names, so names and units are part
of the public contract:

* money in $ rounded to cents (``*_capex*``, ``npv_*``, ``incentive_*``, ...)
* IRR as a decimal fraction (``irr_25 = 0.1234`` means 12.34 %)
* ``lcoe_cents_per_kwh`` in ¢/kWh, ``self_sufficiency_pct`` in %
* ``payback_years`` as an integer year or null

Rounding happens here and nowhere earlier.
"""

from __future__ import annotations

from typing import Any

from solar_project_model.config.defaults import NPV_HORIZONS_YEARS, RATE_PRECISION
from solar_project_model.finance.acquisition import AcquisitionComparison
from solar_project_model.finance.cashflow import CashflowEntry, ScenarioResult
from solar_project_model.output.formatting import round_currency, round_float


def cashflow_record(entry: CashflowEntry) -> dict[str, Any]:
    """One cashflow year with money rounded to cents."""
    return {
        "year": entry.year,
        "production_kwh": round_float(entry.production_kwh),
        "savings": round_currency(entry.savings),
        "surplus_revenue": round_currency(entry.surplus_revenue),
        "revenue": round_currency(entry.revenue),
        "opex": round_currency(entry.opex),
        "incentives": round_currency(entry.incentives),
        "investment": round_currency(entry.investment),
        "net_cashflow": round_currency(entry.net_cashflow),
        "cumulative": round_currency(entry.cumulative),
    }


def acquisition_record(comparison: AcquisitionComparison) -> dict[str, Any]:
    """The three acquisition series and their financing figures."""
    record: dict[str, Any] = {
        "loan_down_payment": round_currency(comparison.loan_down_payment),
        "loan_amount": round_currency(comparison.loan_amount),
        "annual_loan_payment": round_currency(comparison.annual_loan_payment),
        "lease_financed_amount": round_currency(comparison.lease_financed_amount),
        "annual_lease_payment": round_currency(comparison.annual_lease_payment),
    }
    for series in comparison.series:
        record[series.method] = {
            "payback_year": series.payback_year,
            "cumulative": [round_currency(v) for v in series.cumulative],
        }
    return record


def build_kpi_record(
    result: ScenarioResult,
    acquisition: AcquisitionComparison | None = None,
    *,
    name: str = "",
    target: str = "",
) -> dict[str, Any]:
    """Flatten *result* (and optionally *acquisition*) into the KPI record.

    Args:
        result: The chosen scenario.
        acquisition: Acquisition comparison for the same scenario, or None.
        name: Request name.
        target: Optimization target the scenario was chosen for.

    Returns:
        JSON-serialisable dictionary with stable field names.
    """
    energy = result.energy
    record: dict[str, Any] = {
        "name": name,
        "target": target,
        "pv_kw": round_float(result.design.pv_kw),
        "battery_kwh": round_float(result.design.battery_kwh),
        "battery_kw": round_float(result.design.battery_kw),
        "coverage_ratio": round_float(result.coverage_ratio),
        "specific_yield_kwh_per_kw": round_float(result.specific_yield),
        "annual_production_kwh": round_float(energy.production_kwh),
        "self_consumption_kwh": round_float(energy.self_consumption_kwh),
        "exported_kwh": round_float(energy.exported_kwh),
        "demand_reduction_kw": round_float(energy.demand_reduction_kw),
        "annual_savings": round_currency(result.annual_savings),
        "capex_solar": round_currency(result.capex.capex_solar),
        "capex_battery": round_currency(result.capex.capex_battery),
        "capex_gross": round_currency(result.capex.capex_gross),
        "capex_net": round_currency(result.capex_net),
        "incentive_utility_solar": round_currency(result.incentives.utility_solar),
        "incentive_utility_battery": round_currency(result.incentives.utility_battery),
        "incentive_federal_itc": round_currency(result.incentives.federal_itc),
        "tax_shield": round_currency(result.incentives.tax_shield),
        "incentives_total": round_currency(result.incentives.total),
        "battery_replacement_cost": round_currency(result.replacement_cost),
        "battery_replacements": [
            {"year": year, "cost": round_currency(cost)}
            for year, cost in sorted(result.replacement_costs.items())
        ],
    }
    for horizon in NPV_HORIZONS_YEARS:
        record[f"npv_{horizon}"] = round_currency(result.npv.get(horizon))
    for horizon in NPV_HORIZONS_YEARS:
        record[f"irr_{horizon}"] = round_float(result.irr.get(horizon), RATE_PRECISION)
    record.update(
        {
            "payback_years": result.payback_year,
            "lcoe_cents_per_kwh": round_float(result.lcoe_cents_per_kwh),
            "co2_avoided_tonnes_per_year": round_float(result.co2_avoided_tonnes_per_year),
            "self_sufficiency_pct": round_float(result.self_sufficiency_pct),
            "cashflows": [cashflow_record(e) for e in result.cashflows],
        }
    )
    if acquisition is not None:
        record["acquisition"] = acquisition_record(acquisition)
    return record
