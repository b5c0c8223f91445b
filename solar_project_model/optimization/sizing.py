"""Coverage-ratio search over PV array sizes.

Candidate PV sizes are derived from evenly spaced coverage ratios (estimated
annual production / annual consumption):

    pv_kw = ratio × annual consumption / specific yield

clamped to the roof-area limit and floored to whole panels. Sizes that
collapse onto the same panel count after clamping are evaluated once.

Every candidate is evaluated independently by the cashflow engine, so the
fan-out is a plain map that may run in worker processes. Results are sorted
by coverage ratio before the winner is picked, which makes the outcome
independent of evaluation order.

Public API
----------
SizingConfig          – All inputs required by the search.
SizingResult          – Winner, all evaluated candidates and the comparison set.
generate_candidates   – Candidate ``(coverage ratio, SystemDesign)`` pairs.
evaluate_candidates   – Run the engine on each candidate (failures excluded).
select_winner         – Pick the best feasible candidate for a target.
run_sizing_optimizer  – Main entry point.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field

import numpy as np

from solar_project_model.config.coerce import non_negative, optional_positive
from solar_project_model.config.defaults import (
    DEFAULT_COVERAGE_RATIO_MAX,
    DEFAULT_COVERAGE_RATIO_MIN,
    DEFAULT_COVERAGE_RATIO_STEPS,
    DEFAULT_ROOF_UTILIZATION_RATIO,
    OPTIMIZATION_TARGETS,
    TARGET_BEST_IRR,
    TARGET_BEST_NPV,
    TARGET_BEST_SELF_SUFFICIENCY,
)
from solar_project_model.finance.cashflow import (
    FinancialAssumptions,
    ScenarioResult,
    project_scenario,
)
from solar_project_model.finance.costs import CostAssumptions, calculate_capex
from solar_project_model.finance.incentives import IncentivePolicy, IncentiveStack
from solar_project_model.site.energy import EnergyModelParams
from solar_project_model.site.profile import (
    SiteEnergyProfile,
    SystemDesign,
    max_pv_kw_from_roof,
    resolve_yield,
    round_to_panels,
)
from solar_project_model.site.tariffs import TariffTable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass
class SizingConfig:
    """Complete configuration for the PV sizing search.

    All fields are frozen dataclasses or primitives so candidate arguments
    can be sent to worker processes.

    Parameters
    ----------
    site:
        Site energy profile (consumption, peak, tariff, yield, roof area).
    assumptions:
        Financial assumptions held fixed across candidates.
    target:
        ``"bestNPV"``, ``"bestIRR"`` or ``"bestSelfSufficiency"``.
    battery:
        Storage sizing applied to every candidate; its ``pv_kw`` is ignored.
    costs:
        Installed-cost assumptions.
    tariffs:
        Tariff table used to resolve the site's rates.
    incentive_policy:
        Eligibility rules pricing incentives for each candidate size.
    fixed_incentives:
        Incentive amounts applied unchanged to every candidate instead of
        the policy, or None.
    energy_params:
        Energy-balance parameters.
    budget:
        Maximum gross capex in $, or None when unconstrained.
    roof_utilization_ratio:
        Usable share of the roof area.
    ratio_min, ratio_max, ratio_steps:
        Coverage-ratio range and number of evenly spaced candidates.
    max_workers:
        Worker processes for evaluation. ``1`` evaluates in-process;
        None = ``os.cpu_count()``.
    """

    site: SiteEnergyProfile
    assumptions: FinancialAssumptions = field(default_factory=FinancialAssumptions)
    target: str = TARGET_BEST_NPV
    battery: SystemDesign = field(default_factory=lambda: SystemDesign(pv_kw=0.0))
    costs: CostAssumptions = field(default_factory=CostAssumptions)
    tariffs: TariffTable = field(default_factory=TariffTable)
    incentive_policy: IncentivePolicy = field(default_factory=IncentivePolicy)
    fixed_incentives: IncentiveStack | None = None
    energy_params: EnergyModelParams = field(default_factory=EnergyModelParams)
    budget: float | None = None
    roof_utilization_ratio: float = DEFAULT_ROOF_UTILIZATION_RATIO
    ratio_min: float = DEFAULT_COVERAGE_RATIO_MIN
    ratio_max: float = DEFAULT_COVERAGE_RATIO_MAX
    ratio_steps: int = DEFAULT_COVERAGE_RATIO_STEPS
    max_workers: int | None = 1


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class SizingResult:
    """Complete result of the sizing search.

    Attributes
    ----------
    target:
        Optimization target used for ranking.
    winner:
        Selected candidate, or None when no candidate could be evaluated.
    evaluated:
        Every successfully evaluated candidate, sorted by coverage ratio.
    comparison:
        Feasible candidates the winner was chosen from, sorted by coverage
        ratio; empty when at most one candidate was feasible.
    """

    target: str
    winner: ScenarioResult | None
    evaluated: list[ScenarioResult]
    comparison: list[ScenarioResult]


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------


def coverage_ratios(ratio_min: float, ratio_max: float, steps: int) -> np.ndarray:
    """Evenly spaced coverage ratios, ``steps`` values from min to max inclusive."""
    if steps <= 0:
        return np.array([], dtype=float)
    return np.linspace(ratio_min, ratio_max, steps)


def generate_candidates(config: SizingConfig) -> list[tuple[float, SystemDesign]]:
    """Derive candidate ``(coverage ratio, SystemDesign)`` pairs.

    Parameters
    ----------
    config:
        Sizing configuration.

    Returns
    -------
    list[tuple[float, SystemDesign]]
        One entry per distinct installable PV size, in ascending ratio order.
    """
    consumption = non_negative(config.site.annual_consumption_kwh, field="annual_consumption_kwh")
    specific_yield = resolve_yield(config.site)
    roof_max_kw = max_pv_kw_from_roof(config.site.roof_area_m2, config.roof_utilization_ratio)
    battery = config.battery.sanitized()

    candidates: list[tuple[float, SystemDesign]] = []
    seen: set[float] = set()
    for ratio in coverage_ratios(config.ratio_min, config.ratio_max, config.ratio_steps):
        pv_kw = float(ratio) * consumption / specific_yield
        if roof_max_kw is not None:
            pv_kw = min(pv_kw, roof_max_kw)
        pv_kw = round_to_panels(pv_kw)
        key = round(pv_kw, 6)
        if key in seen:
            logger.debug("Ratio %.3f collapses onto %.2f kW – skipped.", ratio, pv_kw)
            continue
        seen.add(key)
        candidates.append(
            (
                float(ratio),
                SystemDesign(
                    pv_kw=pv_kw,
                    battery_kwh=battery.battery_kwh,
                    battery_kw=battery.battery_kw,
                    demand_setpoint_kw=battery.demand_setpoint_kw,
                ),
            )
        )
    return candidates


# ---------------------------------------------------------------------------
# Internal worker helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _CandidateArgs:
    """All parameters needed to evaluate one candidate (pickle-safe)."""

    coverage_ratio: float
    design: SystemDesign
    site: SiteEnergyProfile
    assumptions: FinancialAssumptions
    costs: CostAssumptions
    tariffs: TariffTable
    incentive_policy: IncentivePolicy
    fixed_incentives: IncentiveStack | None
    energy_params: EnergyModelParams


def _evaluate_candidate(args: _CandidateArgs) -> ScenarioResult:
    """Evaluate one candidate design.

    Module-level so it can be pickled and sent to worker processes.
    """
    incentives = args.fixed_incentives
    if incentives is None:
        capex = calculate_capex(
            args.design.sanitized(),
            args.costs,
            args.assumptions.om_solar_pct,
            args.assumptions.om_battery_pct,
        )
        incentives = args.incentive_policy.estimate(args.design.sanitized(), capex)
    return project_scenario(
        design=args.design,
        site=args.site,
        assumptions=args.assumptions,
        incentives=incentives,
        costs=args.costs,
        tariffs=args.tariffs,
        energy_params=args.energy_params,
        coverage_ratio=args.coverage_ratio,
    )


def _log_failure(args: _CandidateArgs) -> None:
    logger.warning(
        "Candidate ratio=%.3f (pv=%.2f kW) failed – excluded from comparison.",
        args.coverage_ratio,
        args.design.pv_kw,
        exc_info=True,
    )


def evaluate_candidates(
    candidates: list[tuple[float, SystemDesign]],
    config: SizingConfig,
) -> list[ScenarioResult]:
    """Run the cashflow engine on every candidate.

    A candidate whose evaluation raises is logged and excluded; the
    remaining candidates are still evaluated.

    Parameters
    ----------
    candidates:
        ``(coverage ratio, SystemDesign)`` pairs in any order.
    config:
        Sizing configuration supplying the fixed assumptions.

    Returns
    -------
    list[ScenarioResult]
        Successful evaluations sorted by coverage ratio, then PV size.
    """
    worker_args = [
        _CandidateArgs(
            coverage_ratio=ratio,
            design=design,
            site=config.site,
            assumptions=config.assumptions,
            costs=config.costs,
            tariffs=config.tariffs,
            incentive_policy=config.incentive_policy,
            fixed_incentives=config.fixed_incentives,
            energy_params=config.energy_params,
        )
        for ratio, design in candidates
    ]

    results: list[ScenarioResult] = []
    if config.max_workers == 1 or len(worker_args) <= 1:
        for a in worker_args:
            try:
                results.append(_evaluate_candidate(a))
            except Exception:
                _log_failure(a)
    else:
        with concurrent.futures.ProcessPoolExecutor(
            max_workers=config.max_workers
        ) as executor:
            futures = {executor.submit(_evaluate_candidate, a): a for a in worker_args}
            for future in concurrent.futures.as_completed(futures):
                try:
                    results.append(future.result())
                except Exception:
                    _log_failure(futures[future])

    results.sort(key=lambda r: (r.coverage_ratio or 0.0, r.design.pv_kw))
    return results


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------


def target_metric(result: ScenarioResult, target: str) -> float | None:
    """Value of the optimization *target* for *result* (None when undefined)."""
    if target == TARGET_BEST_NPV:
        return result.lifetime_npv
    if target == TARGET_BEST_IRR:
        return result.lifetime_irr
    if target == TARGET_BEST_SELF_SUFFICIENCY:
        return result.self_sufficiency_pct
    raise ValueError(
        f"Unknown optimization target {target!r}; expected one of {OPTIMIZATION_TARGETS}."
    )


def is_feasible(result: ScenarioResult, budget: float | None) -> bool:
    """True when the candidate installs PV and fits within *budget*."""
    if result.design.pv_kw <= 0.0:
        return False
    return budget is None or result.capex.capex_gross <= budget


def _ranking_key(result: ScenarioResult, target: str) -> tuple[float, float, float]:
    metric = target_metric(result, target)
    return (
        metric if metric is not None else float("-inf"),
        -result.capex_net,
        -result.design.pv_kw,
    )


def _contenders(feasible: list[ScenarioResult], target: str) -> list[ScenarioResult]:
    """Candidates allowed to win *target*.

    ``bestIRR`` ranks only the positive-NPV designs when there are any.
    """
    if target != TARGET_BEST_IRR:
        return feasible
    profitable = [r for r in feasible if r.lifetime_npv > 0.0]
    if not profitable:
        logger.info("No candidate has a positive NPV – ranking all feasible ones by IRR.")
        return feasible
    return profitable


def select_winner(
    results: list[ScenarioResult],
    target: str,
    budget: float | None = None,
) -> SizingResult:
    """Pick the best feasible candidate for *target*.

    Ties on the metric go to the lowest net capex, then the smaller array.
    For ``bestIRR`` only positive-NPV candidates compete when any exist.
    When at most one candidate is feasible, that candidate (or, with none
    feasible, the cheapest evaluated one) wins and no comparison set is
    returned.

    Parameters
    ----------
    results:
        Evaluated candidates in any order.
    target:
        Optimization target.
    budget:
        Maximum gross capex, or None.

    Returns
    -------
    SizingResult
    """
    if target not in OPTIMIZATION_TARGETS:
        raise ValueError(
            f"Unknown optimization target {target!r}; expected one of {OPTIMIZATION_TARGETS}."
        )
    ordered = sorted(results, key=lambda r: (r.coverage_ratio or 0.0, r.design.pv_kw))
    feasible = [r for r in ordered if is_feasible(r, budget)]

    if len(feasible) > 1:
        winner = max(_contenders(feasible, target), key=lambda r: _ranking_key(r, target))
        return SizingResult(target=target, winner=winner, evaluated=ordered, comparison=feasible)

    if feasible:
        winner = feasible[0]
    elif ordered:
        winner = min(ordered, key=lambda r: (r.capex.capex_gross, r.design.pv_kw))
        logger.warning(
            "No feasible candidate – returning the lowest-capex design (pv=%.2f kW).",
            winner.design.pv_kw,
        )
    else:
        winner = None
        logger.warning("Sizing search produced no evaluated candidates.")
    return SizingResult(target=target, winner=winner, evaluated=ordered, comparison=[])


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def run_sizing_optimizer(config: SizingConfig) -> SizingResult:
    """Search the coverage-ratio grid for the best PV size.

    Parameters
    ----------
    config:
        Complete sizing configuration.

    Returns
    -------
    SizingResult
        Winner, all evaluated candidates and the comparison set.
    """
    if config.target not in OPTIMIZATION_TARGETS:
        raise ValueError(
            f"Unknown optimization target {config.target!r}; "
            f"expected one of {OPTIMIZATION_TARGETS}."
        )
    budget = optional_positive(config.budget, field="budget")
    candidates = generate_candidates(config)
    logger.info(
        "Sizing search: %d candidates (ratios %.2f–%.2f, %d steps), target %s.",
        len(candidates),
        config.ratio_min,
        config.ratio_max,
        config.ratio_steps,
        config.target,
    )

    results = evaluate_candidates(candidates, config)
    sizing = select_winner(results, config.target, budget)

    if sizing.winner is not None:
        metric = target_metric(sizing.winner, config.target)
        logger.info(
            "Sizing optimum: pv=%.2f kW (ratio %.2f), %s=%s.",
            sizing.winner.design.pv_kw,
            sizing.winner.coverage_ratio or 0.0,
            config.target,
            "n/a" if metric is None else f"{metric:.4f}",
        )
    return sizing
