"""CLI entrypoint and orchestrator for the solar project financial engine.

Execution flow
--------------
1.  Load & validate the request JSON (and monthly consumption CSV, if any).
2.  Sizing search: evaluate candidate PV sizes over the coverage-ratio grid.
3.  Acquisition comparison (cash / loan / lease) for the winning size.
4.  Write the KPI JSON and output CSVs.
5.  Print a summary to stdout.

Usage
-----
    python -m solar_project_model.main --request requests/client.json
    python -m solar_project_model.main --request client.json --target bestIRR
    python -m solar_project_model.main --request client.json --workers 4
    python -m solar_project_model.main --request client.json --dry-run
    python -m solar_project_model.main --request client.json -v
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from solar_project_model.config.defaults import OPTIMIZATION_TARGETS
from solar_project_model.config.loader import RequestConfig, load_request
from solar_project_model.finance.acquisition import AcquisitionComparison, compare_acquisition
from solar_project_model.finance.cashflow import ScenarioResult
from solar_project_model.optimization.sizing import SizingResult, run_sizing_optimizer
from solar_project_model.output.csv_writer import (
    write_acquisition_csv,
    write_candidates_csv,
    write_cashflows_csv,
    write_kpi_json,
    write_summary_csv,
)
from solar_project_model.output.kpi import build_kpi_record

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    p = argparse.ArgumentParser(
        prog="python -m solar_project_model.main",
        description="Solar + storage project financial engine",
    )
    p.add_argument(
        "--request",
        required=True,
        metavar="PATH",
        help="Path to request JSON file.",
    )
    p.add_argument(
        "--output",
        metavar="DIR",
        default=None,
        help="Output directory (overrides request JSON setting).",
    )
    p.add_argument(
        "--target",
        choices=OPTIMIZATION_TARGETS,
        default=None,
        help="Optimization target (overrides request JSON setting).",
    )
    p.add_argument(
        "--workers",
        type=int,
        default=1,
        metavar="N",
        help="Worker processes for candidate evaluation (default 1 = in-process).",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Enable DEBUG logging.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Validate JSON and inputs, then exit without running the search.",
    )
    return p


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


def _write_outputs(
    output_dir: Path,
    request: RequestConfig,
    sizing: SizingResult,
    acquisition: AcquisitionComparison,
) -> dict:
    winner = sizing.winner
    record = build_kpi_record(winner, acquisition, name=request.name, target=sizing.target)
    write_kpi_json(output_dir / f"{request.name}_kpis.json", record)
    write_summary_csv(output_dir / f"{request.name}_summary.csv", record)
    write_cashflows_csv(output_dir / f"{request.name}_cashflows.csv", winner)
    write_candidates_csv(output_dir / f"{request.name}_candidates.csv", sizing)
    write_acquisition_csv(output_dir / f"{request.name}_acquisition.csv", acquisition)
    return record


def run(args: argparse.Namespace) -> int:
    """Execute the full request.

    Parameters
    ----------
    args:
        Parsed CLI arguments.

    Returns
    -------
    int
        Exit code (0 = success, 1 = error).
    """
    # ------------------------------------------------------------------
    # Step 1: Load & validate request JSON
    # ------------------------------------------------------------------
    logger.info("Loading request: %s", args.request)
    try:
        request = load_request(args.request)
        config = request.sizing_config(target=args.target, max_workers=args.workers)
    except Exception as exc:
        logger.error("Failed to load request: %s", exc)
        return 1

    if args.dry_run:
        print(f"Dry run: request '{request.name}' validated successfully.")
        return 0

    output_base = Path(args.output) if args.output else Path(request.output_dir)
    output_dir = output_base / request.name
    logger.info("Output directory: %s", output_dir)

    # ------------------------------------------------------------------
    # Step 2: Sizing search
    # ------------------------------------------------------------------
    try:
        sizing = run_sizing_optimizer(config)
    except Exception as exc:
        logger.error("Sizing search failed: %s", exc)
        return 1

    if sizing.winner is None:
        logger.error("No candidate could be evaluated – nothing to report.")
        return 1

    # ------------------------------------------------------------------
    # Step 3: Acquisition comparison
    # ------------------------------------------------------------------
    winner = sizing.winner
    acquisition = compare_acquisition(
        capex=winner.capex.capex_gross,
        year1_savings=winner.annual_savings,
        incentives=winner.incentives,
        assumptions=config.assumptions,
    )

    # ------------------------------------------------------------------
    # Step 4: Write outputs
    # ------------------------------------------------------------------
    try:
        _write_outputs(output_dir, request, sizing, acquisition)
    except OSError as exc:
        logger.error("Failed to write outputs to '%s': %s", output_dir, exc)
        return 1

    # ------------------------------------------------------------------
    # Step 5: Print summary
    # ------------------------------------------------------------------
    _print_summary(request.name, sizing, winner, acquisition)
    return 0


def _print_summary(
    name: str,
    sizing: SizingResult,
    winner: ScenarioResult,
    acquisition: AcquisitionComparison,
) -> None:
    """Print a concise result summary to stdout."""
    irr = winner.lifetime_irr
    irr_str = f"{irr * 100:.2f} %" if irr is not None else "n/a"
    payback = winner.payback_year if winner.payback_year is not None else "never"
    print()
    print("=" * 60)
    print(f"  Request: {name}  (target {sizing.target})")
    print("=" * 60)
    print(f"  PV size:               {winner.design.pv_kw:,.2f} kW")
    if winner.design.has_battery:
        print(
            f"  Battery:               {winner.design.battery_kwh:,.0f} kWh / "
            f"{winner.design.battery_kw:,.0f} kW"
        )
    print(f"  Candidates compared:   {len(sizing.comparison)} of {len(sizing.evaluated)}")
    print(f"  Gross CAPEX:           {winner.capex.capex_gross:,.0f} $")
    print(f"  Net CAPEX:             {winner.capex_net:,.0f} $")
    print(f"  Year-1 savings:        {winner.annual_savings:,.0f} $")
    print()
    for horizon, value in sorted(winner.npv.items()):
        print(f"  NPV {horizon:>2} years:          {value:,.0f} $")
    print(f"  IRR (lifetime):        {irr_str}")
    print(f"  Payback year:          {payback}")
    if winner.lcoe_cents_per_kwh is not None:
        print(f"  LCOE:                  {winner.lcoe_cents_per_kwh:.2f} ¢/kWh")
    print(f"  Self-sufficiency:      {winner.self_sufficiency_pct:.1f} %")
    print(f"  CO2 avoided:           {winner.co2_avoided_tonnes_per_year:.2f} t/yr")
    print()
    for series in acquisition.series:
        year = series.payback_year if series.payback_year is not None else "never"
        print(f"  {series.method.capitalize():<5} payback year:    {year}")
    print("=" * 60)
    print()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Parse CLI arguments and run the request."""
    parser = _build_parser()
    args = parser.parse_args()

    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    sys.exit(run(args))


if __name__ == "__main__":
    main()
