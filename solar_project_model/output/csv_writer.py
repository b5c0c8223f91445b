"""Write project results to CSV and JSON files.

Five output files are produced per request:

1. ``{name}_kpis.json``         – Flat KPI record (see :mod:`output.kpi`).
2. ``{name}_summary.csv``       – Single row: the scalar KPIs.
3. ``{name}_cashflows.csv``     – One row per project year (0..N).
4. ``{name}_candidates.csv``    – One row per evaluated candidate size.
5. ``{name}_acquisition.csv``   – One row per year with the cash/loan/lease positions.

Money is in $, energy in kWh. None values are written as empty strings
(``null`` in JSON).

Public API
----------
write_kpi_json          – Write the KPI record as JSON.
write_summary_csv       – Write the single-row summary file.
write_cashflows_csv     – Write the per-year cashflow table.
write_candidates_csv    – Write the candidate comparison table.
write_acquisition_csv   – Write the acquisition comparison table.
"""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Any

from solar_project_model.config.defaults import CSV_DELIMITER, NPV_HORIZONS_YEARS
from solar_project_model.finance.acquisition import AcquisitionComparison
from solar_project_model.finance.cashflow import ScenarioResult
from solar_project_model.optimization.sizing import SizingResult
from solar_project_model.output.formatting import (
    fmt_currency,
    fmt_float,
    fmt_optional,
    fmt_pct,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# KPI JSON
# ---------------------------------------------------------------------------


def write_kpi_json(path: Path | str, record: dict[str, Any]) -> None:
    """Write the KPI record to *path* as indented JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(record, fh, indent=2)
        fh.write("\n")
    logger.info("Wrote KPI JSON: %s", path)


# ---------------------------------------------------------------------------
# Summary CSV
# ---------------------------------------------------------------------------


def write_summary_csv(path: Path | str, record: dict[str, Any]) -> None:
    """Write the scalar fields of the KPI record as a single-row CSV.

    Nested fields (cashflows, acquisition series) are left to their own
    files; acquisition payback years are flattened into the summary.

    Parameters
    ----------
    path:
        Destination file path.
    record:
        KPI record from :func:`~solar_project_model.output.kpi.build_kpi_record`.
    """
    row = {
        key: fmt_optional(value) if not isinstance(value, str) else value
        for key, value in record.items()
        if not isinstance(value, (list, dict))
    }
    acquisition = record.get("acquisition")
    if acquisition:
        for method in ("cash", "loan", "lease"):
            row[f"{method}_payback_year"] = fmt_optional(acquisition[method]["payback_year"])

    _write_dicts(path, [row])
    logger.info("Wrote summary CSV: %s", path)


# ---------------------------------------------------------------------------
# Cashflows CSV
# ---------------------------------------------------------------------------


def write_cashflows_csv(path: Path | str, result: ScenarioResult) -> None:
    """Write the per-year cashflow table (year 0 investment row included)."""
    rows = [
        {
            "year": str(e.year),
            "production_kwh": fmt_float(e.production_kwh),
            "savings": fmt_currency(e.savings),
            "surplus_revenue": fmt_currency(e.surplus_revenue),
            "revenue": fmt_currency(e.revenue),
            "opex": fmt_currency(e.opex),
            "incentives": fmt_currency(e.incentives),
            "investment": fmt_currency(e.investment),
            "net_cashflow": fmt_currency(e.net_cashflow),
            "cumulative": fmt_currency(e.cumulative),
        }
        for e in result.cashflows
    ]
    _write_dicts(path, rows)
    logger.info("Wrote cashflows CSV (%d rows): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Candidates CSV
# ---------------------------------------------------------------------------


def write_candidates_csv(path: Path | str, sizing: SizingResult) -> None:
    """Write one row per evaluated candidate, sorted by coverage ratio.

    ``in_comparison`` marks candidates the winner was chosen from and
    ``is_optimal`` marks the winner.
    """
    compared = {id(r) for r in sizing.comparison}
    rows = []
    for r in sizing.evaluated:
        row = {
            "coverage_ratio": fmt_float(r.coverage_ratio),
            "pv_kw": fmt_float(r.design.pv_kw),
            "battery_kwh": fmt_float(r.design.battery_kwh),
            "annual_production_kwh": fmt_float(r.energy.production_kwh),
            "annual_savings": fmt_currency(r.annual_savings),
            "capex_gross": fmt_currency(r.capex.capex_gross),
            "capex_net": fmt_currency(r.capex_net),
        }
        for horizon in NPV_HORIZONS_YEARS:
            row[f"npv_{horizon}"] = fmt_currency(r.npv.get(horizon))
        row.update(
            {
                "irr_25_pct": fmt_pct(r.irr.get(max(NPV_HORIZONS_YEARS))),
                "payback_years": fmt_optional(r.payback_year),
                "lcoe_cents_per_kwh": fmt_float(r.lcoe_cents_per_kwh),
                "self_sufficiency_pct": fmt_float(r.self_sufficiency_pct),
                "in_comparison": str(id(r) in compared),
                "is_optimal": str(r is sizing.winner),
            }
        )
        rows.append(row)

    _write_dicts(path, rows)
    logger.info("Wrote candidates CSV (%d rows): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Acquisition CSV
# ---------------------------------------------------------------------------


def write_acquisition_csv(path: Path | str, comparison: AcquisitionComparison) -> None:
    """Write the cumulative cash position of each track per year."""
    rows = []
    for year, (cash, loan, lease) in enumerate(
        zip(comparison.cash.cumulative, comparison.loan.cumulative, comparison.lease.cumulative)
    ):
        rows.append(
            {
                "year": str(year),
                "cash_cumulative": fmt_currency(cash),
                "loan_cumulative": fmt_currency(loan),
                "lease_cumulative": fmt_currency(lease),
            }
        )
    _write_dicts(path, rows)
    logger.info("Wrote acquisition CSV (%d rows): %s", len(rows), path)


# ---------------------------------------------------------------------------
# Internal helper
# ---------------------------------------------------------------------------


def _write_dicts(path: Path | str, rows: list[dict]) -> None:
    """Write a list of dicts to a CSV file, creating parent directories.

    Parameters
    ----------
    path:
        Destination file path.
    rows:
        List of row dicts. The first dict determines the column order.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    if not rows:
        path.write_text("", encoding="utf-8")
        return

    fieldnames = list(rows[0].keys())
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=fieldnames, delimiter=CSV_DELIMITER)
        writer.writeheader()
        writer.writerows(rows)
