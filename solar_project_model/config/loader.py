"""Load and validate project request JSON files and monthly consumption CSVs.

Public API
----------
load_request(path)          – Parse + validate a request JSON file.
load_request_dict(data)     – Validate an already-parsed request dictionary.
load_consumption_csv(path)  – Annual consumption and peak from monthly readings.

Structural problems (missing file, invalid JSON, schema violation, unusable
CSV) raise errors naming the file, field or row. Numeric values inside a
valid structure are coerced leniently by the typed accessors on
:class:`RequestConfig`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd

from solar_project_model.config.coerce import (
    as_float,
    as_int,
    non_negative,
    optional_positive,
)
from solar_project_model.config.defaults import (
    CSV_DELIMITER,
    DEFAULT_BATTERY_CYCLES_PER_YEAR,
    DEFAULT_BATTERY_PRICE_DECLINE_RATE,
    DEFAULT_BATTERY_REPLACEMENT_COST_FACTOR,
    DEFAULT_BATTERY_REPLACEMENT_YEARS,
    DEFAULT_BATTERY_ROUND_TRIP_EFFICIENCY,
    DEFAULT_COVERAGE_RATIO_MAX,
    DEFAULT_COVERAGE_RATIO_MIN,
    DEFAULT_COVERAGE_RATIO_STEPS,
    DEFAULT_DAYTIME_LOAD_SHARE,
    DEFAULT_DEGRADATION_RATE,
    DEFAULT_DEMAND_SETPOINT_SHARE_OF_PEAK,
    DEFAULT_DISCOUNT_RATE,
    DEFAULT_LEASE_IMPLICIT_RATE,
    DEFAULT_LEASE_TERM_YEARS,
    DEFAULT_LOAN_DOWN_PAYMENT_PCT,
    DEFAULT_LOAN_INTEREST_RATE,
    DEFAULT_LOAN_TERM_YEARS,
    DEFAULT_OM_BATTERY_PCT_OF_CAPEX,
    DEFAULT_OM_ESCALATION_RATE,
    DEFAULT_OM_SOLAR_PCT_OF_CAPEX,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_ROOF_UTILIZATION_RATIO,
    DEFAULT_SURPLUS_COMPENSATION_RATE,
    DEFAULT_TARIFF_INFLATION_RATE,
    DEFAULT_TAX_RATE,
    MONTHS_PER_YEAR,
    SQFT_PER_M2,
    TARGET_BEST_NPV,
)
from solar_project_model.config.schema import validate_request
from solar_project_model.finance.cashflow import FinancialAssumptions
from solar_project_model.finance.costs import CostAssumptions, cost_assumptions_from_dict
from solar_project_model.finance.incentives import (
    IncentivePolicy,
    IncentiveStack,
    incentive_policy_from_dict,
    incentive_stack_from_dict,
)
from solar_project_model.optimization.sizing import SizingConfig
from solar_project_model.site.energy import EnergyModelParams
from solar_project_model.site.profile import SiteEnergyProfile, SystemDesign
from solar_project_model.site.tariffs import TariffTable, tariff_table_from_dict

logger = logging.getLogger(__name__)

_PERCENT = 100.0

CONSUMPTION_COLUMN_MONTH = "month"
CONSUMPTION_COLUMN_KWH = "consumption_kwh"
CONSUMPTION_COLUMN_PEAK = "peak_kw"


# ---------------------------------------------------------------------------
# Typed result containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConsumptionSummary:
    """Annual figures derived from monthly bill readings.

    Attributes
    ----------
    annual_consumption_kwh:
        Sum of 12 readings, otherwise the mean reading × 12.
    peak_demand_kw:
        Highest monthly peak (0 when no peak column is present).
    n_readings:
        Number of usable monthly consumption readings.
    """

    annual_consumption_kwh: float
    peak_demand_kw: float
    n_readings: int


@dataclass
class RequestConfig:
    """Validated project request.

    Attributes
    ----------
    raw:
        The original validated dictionary. The typed accessors below read
        from it and apply defaults and lenient coercion.
    name:
        Request name (``request.name``), used to prefix output files.
    target:
        Optimization target.
    output_dir:
        Output directory from the request (CLI may override).
    path:
        Absolute path to the source JSON file (``None`` if loaded from a dict).
    """

    raw: dict[str, Any]
    name: str
    target: str
    output_dir: str
    path: Path | None = field(default=None, repr=False)

    def _block(self, key: str) -> dict:
        return self.raw.get(key) or {}

    # ------------------------------------------------------------------
    # Typed accessors
    # ------------------------------------------------------------------

    def site_profile(self) -> SiteEnergyProfile:
        """Build the :class:`SiteEnergyProfile`.

        A ``consumption_csv`` (relative to the request file) supplies annual
        consumption and peak demand unless those are given explicitly.
        Roof area may be given in m² or ft².
        """
        site = self._block("site")
        consumption = site.get("annual_consumption_kwh")
        peak = site.get("peak_demand_kw")

        csv_path = site.get("consumption_csv")
        if csv_path and (consumption is None or peak is None):
            summary = load_consumption_csv(self._resolve(csv_path))
            if consumption is None:
                consumption = summary.annual_consumption_kwh
            if peak is None:
                peak = summary.peak_demand_kw

        roof_m2 = optional_positive(site.get("roof_area_m2"), field="roof_area_m2")
        if roof_m2 is None:
            roof_sqft = optional_positive(site.get("roof_area_sqft"), field="roof_area_sqft")
            if roof_sqft is not None:
                roof_m2 = roof_sqft / SQFT_PER_M2

        energy_rate = site.get("energy_rate")
        demand_rate = site.get("demand_rate")
        return SiteEnergyProfile(
            annual_consumption_kwh=non_negative(consumption, field="annual_consumption_kwh"),
            peak_demand_kw=non_negative(peak, field="peak_demand_kw"),
            tariff_code=site.get("tariff_code"),
            energy_rate=(
                None if energy_rate is None else non_negative(energy_rate, field="energy_rate")
            ),
            demand_rate=(
                None if demand_rate is None else non_negative(demand_rate, field="demand_rate")
            ),
            yield_kwh_per_kw=optional_positive(
                site.get("yield_kwh_per_kw"), field="yield_kwh_per_kw"
            ),
            roof_area_m2=roof_m2,
        )

    def battery_design(self) -> SystemDesign:
        """Storage sizing from the ``design`` block (PV size is searched)."""
        design = self._block("design")
        return SystemDesign(
            pv_kw=0.0,
            battery_kwh=non_negative(design.get("battery_kwh"), field="battery_kwh"),
            battery_kw=non_negative(design.get("battery_kw"), field="battery_kw"),
            demand_setpoint_kw=optional_positive(
                design.get("demand_setpoint_kw"), field="demand_setpoint_kw"
            ),
        )

    def financial_assumptions(self) -> FinancialAssumptions:
        """Build :class:`FinancialAssumptions`; ``*_pct`` keys are percentages."""
        fin = self._block("finance")

        def rate(key: str, default: float) -> float:
            return as_float(fin.get(key), default, field=key)

        def pct(key: str, default: float) -> float:
            value = fin.get(key)
            if value is None:
                return default
            return as_float(value, default * _PERCENT, field=key) / _PERCENT

        return FinancialAssumptions(
            discount_rate=rate("discount_rate", DEFAULT_DISCOUNT_RATE),
            tariff_inflation_rate=rate("tariff_inflation_rate", DEFAULT_TARIFF_INFLATION_RATE),
            tax_rate=rate("tax_rate", DEFAULT_TAX_RATE),
            om_solar_pct=pct("om_solar_pct", DEFAULT_OM_SOLAR_PCT_OF_CAPEX),
            om_battery_pct=pct("om_battery_pct", DEFAULT_OM_BATTERY_PCT_OF_CAPEX),
            om_escalation_rate=rate("om_escalation_rate", DEFAULT_OM_ESCALATION_RATE),
            battery_replacement_years=_years(
                fin.get("battery_replacement_years"),
                DEFAULT_BATTERY_REPLACEMENT_YEARS,
                field="battery_replacement_years",
            ),
            battery_replacement_cost_factor=rate(
                "battery_replacement_cost_factor", DEFAULT_BATTERY_REPLACEMENT_COST_FACTOR
            ),
            battery_price_decline_rate=rate(
                "battery_price_decline_rate", DEFAULT_BATTERY_PRICE_DECLINE_RATE
            ),
            loan_interest_rate=rate("loan_interest_rate", DEFAULT_LOAN_INTEREST_RATE),
            loan_term_years=as_int(
                fin.get("loan_term_years"), DEFAULT_LOAN_TERM_YEARS, field="loan_term_years"
            ),
            loan_down_payment_pct=pct("loan_down_payment_pct", DEFAULT_LOAN_DOWN_PAYMENT_PCT),
            lease_implicit_rate=rate("lease_implicit_rate", DEFAULT_LEASE_IMPLICIT_RATE),
            lease_term_years=as_int(
                fin.get("lease_term_years"), DEFAULT_LEASE_TERM_YEARS, field="lease_term_years"
            ),
            degradation_rate=rate("degradation_rate", DEFAULT_DEGRADATION_RATE),
            surplus_compensation_rate=rate(
                "surplus_compensation_rate", DEFAULT_SURPLUS_COMPENSATION_RATE
            ),
        )

    def cost_assumptions(self) -> CostAssumptions:
        return cost_assumptions_from_dict(self._block("costs"))

    def tariff_table(self) -> TariffTable:
        return tariff_table_from_dict(self._block("tariffs"))

    def incentive_policy(self) -> IncentivePolicy:
        """Eligibility policy; the tax rate comes from the ``finance`` block."""
        return incentive_policy_from_dict(
            self._block("incentives").get("policy"),
            tax_rate=self.financial_assumptions().tax_rate,
        )

    def fixed_incentives(self) -> IncentiveStack | None:
        """Explicit incentive amounts, or None to price them with the policy."""
        return incentive_stack_from_dict(self._block("incentives").get("amounts"))

    def energy_params(self) -> EnergyModelParams:
        energy = self._block("energy")
        return EnergyModelParams(
            daytime_load_share=non_negative(
                as_float(energy.get("daytime_load_share"), DEFAULT_DAYTIME_LOAD_SHARE),
                field="daytime_load_share",
            ),
            battery_cycles_per_year=non_negative(
                as_float(energy.get("battery_cycles_per_year"), DEFAULT_BATTERY_CYCLES_PER_YEAR),
                field="battery_cycles_per_year",
            ),
            battery_round_trip_efficiency=optional_positive(
                energy.get("battery_round_trip_efficiency"),
                field="battery_round_trip_efficiency",
            )
            or DEFAULT_BATTERY_ROUND_TRIP_EFFICIENCY,
            demand_setpoint_share_of_peak=non_negative(
                as_float(
                    energy.get("demand_setpoint_share_of_peak"),
                    DEFAULT_DEMAND_SETPOINT_SHARE_OF_PEAK,
                ),
                field="demand_setpoint_share_of_peak",
            ),
        )

    def sizing_config(
        self,
        target: str | None = None,
        max_workers: int | None = 1,
    ) -> SizingConfig:
        """Assemble the :class:`SizingConfig` for this request.

        Parameters
        ----------
        target:
            Overrides ``request.target`` when given.
        max_workers:
            Worker processes for candidate evaluation.
        """
        constraints = self._block("constraints")
        return SizingConfig(
            site=self.site_profile(),
            assumptions=self.financial_assumptions(),
            target=target or self.target,
            battery=self.battery_design(),
            costs=self.cost_assumptions(),
            tariffs=self.tariff_table(),
            incentive_policy=self.incentive_policy(),
            fixed_incentives=self.fixed_incentives(),
            energy_params=self.energy_params(),
            budget=optional_positive(constraints.get("budget"), field="budget"),
            roof_utilization_ratio=non_negative(
                as_float(
                    constraints.get("roof_utilization_ratio"), DEFAULT_ROOF_UTILIZATION_RATIO
                ),
                field="roof_utilization_ratio",
            ),
            ratio_min=non_negative(
                as_float(constraints.get("coverage_ratio_min"), DEFAULT_COVERAGE_RATIO_MIN),
                field="coverage_ratio_min",
            ),
            ratio_max=non_negative(
                as_float(constraints.get("coverage_ratio_max"), DEFAULT_COVERAGE_RATIO_MAX),
                field="coverage_ratio_max",
            ),
            ratio_steps=as_int(
                constraints.get("coverage_ratio_steps"),
                DEFAULT_COVERAGE_RATIO_STEPS,
                field="coverage_ratio_steps",
            ),
            max_workers=max_workers,
        )

    def _resolve(self, relative: str) -> Path:
        candidate = Path(relative)
        if candidate.is_absolute() or self.path is None:
            return candidate
        return self.path.parent / candidate


# ---------------------------------------------------------------------------
# Public functions
# ---------------------------------------------------------------------------


def _wrap(data: dict, path: Path | None) -> RequestConfig:
    request = data["request"]
    output = request.get("output") or {}
    return RequestConfig(
        raw=data,
        name=request["name"],
        target=request.get("target", TARGET_BEST_NPV),
        output_dir=output.get("directory", DEFAULT_OUTPUT_DIR),
        path=path,
    )


def load_request(path: str | Path) -> RequestConfig:
    """Load and validate a request JSON file.

    Parameters
    ----------
    path:
        Path to the request ``.json`` file.

    Returns
    -------
    RequestConfig
        Validated request.

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    json.JSONDecodeError
        When the file contains invalid JSON.
    jsonschema.ValidationError
        When the JSON does not conform to the request schema.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Request file not found: '{path}'. "
            "Check that the path is correct and the file exists."
        )

    logger.debug("Loading request from '%s'", path)

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise json.JSONDecodeError(
            f"Invalid JSON in request file '{path}': {exc.msg}",
            exc.doc,
            exc.pos,
        ) from exc

    validate_request(data)
    config = _wrap(data, path.resolve())

    logger.info(
        "Loaded request '%s' (target=%s) from '%s'",
        config.name,
        config.target,
        path,
    )
    return config


def load_request_dict(data: dict) -> RequestConfig:
    """Validate and wrap an already-parsed request dictionary.

    Raises
    ------
    jsonschema.ValidationError
        When *data* does not conform to the request schema.
    """
    validate_request(data)
    return _wrap(data, None)


def load_consumption_csv(path: str | Path) -> ConsumptionSummary:
    """Derive annual consumption and peak demand from monthly readings.

    The CSV needs ``month`` and ``consumption_kwh`` columns; ``peak_kw`` is
    optional. Blank or non-numeric readings count as missing: with all 12
    readings the annual figure is their sum, otherwise the mean of the
    available readings × 12.

    Parameters
    ----------
    path:
        Path to the monthly consumption CSV.

    Returns
    -------
    ConsumptionSummary

    Raises
    ------
    FileNotFoundError
        When *path* does not exist.
    ValueError
        When a required column is missing, a reading is negative, or no
        usable reading remains.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Consumption CSV file not found: '{path}'. "
            "Check the 'site.consumption_csv' path in the request JSON."
        )

    try:
        df = pd.read_csv(path, sep=CSV_DELIMITER)
    except Exception as exc:
        raise ValueError(f"Failed to parse consumption CSV '{path}': {exc}") from exc

    required = [CONSUMPTION_COLUMN_MONTH, CONSUMPTION_COLUMN_KWH]
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(
            f"Consumption CSV '{path}' is missing required column(s): {missing}. "
            f"Available columns: {sorted(df.columns)}."
        )

    kwh = pd.to_numeric(df[CONSUMPTION_COLUMN_KWH], errors="coerce")
    _check_non_negative(kwh, df, path, CONSUMPTION_COLUMN_KWH)
    n_missing = int(kwh.isna().sum())
    if n_missing:
        logger.warning(
            "Consumption CSV '%s': %d missing or non-numeric reading(s) ignored.",
            path,
            n_missing,
        )
    readings = kwh.dropna()
    if readings.empty:
        raise ValueError(f"Consumption CSV '{path}' contains no usable consumption readings.")

    n_readings = len(readings)
    if n_readings == MONTHS_PER_YEAR:
        annual = float(readings.sum())
    else:
        annual = float(readings.mean()) * MONTHS_PER_YEAR
        logger.warning(
            "Consumption CSV '%s' has %d readings – annualised from the monthly mean.",
            path,
            n_readings,
        )

    peak = 0.0
    if CONSUMPTION_COLUMN_PEAK in df.columns:
        peaks = pd.to_numeric(df[CONSUMPTION_COLUMN_PEAK], errors="coerce")
        _check_non_negative(peaks, df, path, CONSUMPTION_COLUMN_PEAK)
        if peaks.notna().any():
            peak = float(peaks.max())

    logger.info(
        "Loaded consumption CSV '%s': %d readings, %.0f kWh/yr, peak %.1f kW",
        path,
        n_readings,
        annual,
        peak,
    )
    return ConsumptionSummary(
        annual_consumption_kwh=annual,
        peak_demand_kw=peak,
        n_readings=n_readings,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _check_non_negative(
    values: pd.Series,
    df: pd.DataFrame,
    path: Path,
    column: str,
) -> None:
    """Raise ValueError naming the first row with a negative reading."""
    negative = values[values < 0]
    if not negative.empty:
        row = int(negative.index[0])
        raise ValueError(
            f"Consumption CSV '{path}' column '{column}' has a negative value "
            f"{negative.iloc[0]} in row {row + 1} "
            f"(month {df[CONSUMPTION_COLUMN_MONTH].iloc[row]!r})."
        )


def _years(value: Any, default: tuple[int, ...], *, field: str) -> tuple[int, ...]:
    """Project years from a list or a single number; None keeps *default*."""
    if value is None:
        return default
    if not isinstance(value, list):
        value = [value]
    return tuple(as_int(v, field=field) for v in value)
