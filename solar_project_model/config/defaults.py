"""Global default values and constants.

All numeric constants used throughout the solar_project_model package must be
defined here rather than as inline literals. Import from this module wherever a
constant is needed to ensure a single source of truth and full traceability.

Rates and shares are decimal fractions (``0.07`` = 7 %) throughout, including
constants named ``*_PCT*``; request files give ``*_pct`` keys in percent and
the loader divides them by 100. Monetary values are in Canadian dollars.
"""

# ---------------------------------------------------------------------------
# Horizon
# ---------------------------------------------------------------------------

PROJECTION_HORIZON_YEARS: int = 25
"""Number of operating years projected after the year-0 investment."""

NPV_HORIZONS_YEARS: tuple[int, ...] = (10, 20, 25)
"""Horizons (years) at which NPV and IRR are reported."""

MONTHS_PER_YEAR: int = 12
"""Months per year, used for monthly amortization and demand charges."""

# ---------------------------------------------------------------------------
# Incentive timing (modelling invariant, never a per-request parameter)
# ---------------------------------------------------------------------------

UTILITY_INCENTIVE_RECEIPT_YEAR: int = 1
"""Project year in which the utility solar and battery incentives are received."""

TAX_SHIELD_RECEIPT_YEAR: int = 1
"""Project year in which the accelerated-depreciation tax shield is realised."""

FEDERAL_ITC_RECEIPT_YEAR: int = 2
"""Project year in which the federal investment tax credit is received."""

BATTERY_INCENTIVE_UPFRONT_SHARE: float = 0.5
"""Share of the utility battery incentive realisable as an upfront cash offset.

The remaining share is received in :data:`UTILITY_INCENTIVE_RECEIPT_YEAR`.
"""

# ---------------------------------------------------------------------------
# Default incentive eligibility policy
# ---------------------------------------------------------------------------

DEFAULT_UTILITY_SOLAR_INCENTIVE_PER_KW: float = 1000.0
"""Utility self-generation incentive in $/kW of PV."""

DEFAULT_UTILITY_INCENTIVE_MAX_KW: float = 1000.0
"""PV capacity (kW) eligible for the utility incentive (1 MW programme limit)."""

DEFAULT_UTILITY_INCENTIVE_CAP_PCT_OF_CAPEX: float = 0.40
"""Combined utility incentives may not exceed this fraction of gross capex."""

DEFAULT_FEDERAL_ITC_RATE: float = 0.30
"""Federal investment tax credit as a fraction of capex net of utility incentives."""

DEFAULT_TAX_SHIELD_FACTOR: float = 0.90
"""Fraction of (net capex × tax rate) realised through accelerated depreciation."""

# ---------------------------------------------------------------------------
# Financial defaults
# ---------------------------------------------------------------------------

DEFAULT_DISCOUNT_RATE: float = 0.08
"""Default discount rate (8 % WACC) used for NPV and LCOE."""

DEFAULT_TARIFF_INFLATION_RATE: float = 0.048
"""Default annual utility tariff escalation (4.8 %)."""

DEFAULT_TAX_RATE: float = 0.265
"""Default combined corporate income tax rate (26.5 %)."""

DEFAULT_OM_SOLAR_PCT_OF_CAPEX: float = 0.01
"""Default annual PV O&M cost as a fraction of PV capex."""

DEFAULT_OM_BATTERY_PCT_OF_CAPEX: float = 0.005
"""Default annual battery O&M cost as a fraction of battery capex."""

DEFAULT_OM_ESCALATION_RATE: float = 0.025
"""Default annual O&M cost escalation (2.5 %)."""

DEFAULT_BATTERY_REPLACEMENT_YEARS: tuple[int, ...] = (10, 20)
"""Default project years of the battery replacements (an empty tuple disables them)."""

DEFAULT_BATTERY_REPLACEMENT_COST_FACTOR: float = 0.60
"""Replacement cost as a fraction of the original battery capex."""

DEFAULT_BATTERY_PRICE_DECLINE_RATE: float = 0.05
"""Annual decline of battery prices (5 %), netted against inflation."""

DEFAULT_LOAN_INTEREST_RATE: float = 0.07
"""Default annual loan interest rate (7 %)."""

DEFAULT_LOAN_TERM_YEARS: int = 10
"""Default loan term in years."""

DEFAULT_LOAN_DOWN_PAYMENT_PCT: float = 0.30
"""Default loan down payment as a fraction of gross capex."""

DEFAULT_LEASE_IMPLICIT_RATE: float = 0.085
"""Default implicit annual lease rate (8.5 %)."""

DEFAULT_LEASE_TERM_YEARS: int = 15
"""Default lease term in years."""

DEFAULT_DEGRADATION_RATE: float = 0.005
"""Baseline annual PV production degradation (0.5 %/year)."""

DEFAULT_SURPLUS_COMPENSATION_RATE: float = 0.0454
"""Credit in $/kWh paid for exported surplus energy."""

SURPLUS_CREDIT_START_YEAR: int = 3
"""First project year in which exported surplus is credited (24-month reconciliation)."""

# ---------------------------------------------------------------------------
# IRR root-finding
# ---------------------------------------------------------------------------

IRR_LOWER_BOUND: float = -0.99
"""Lowest rate searched for an IRR root."""

IRR_UPPER_BOUND: float = 10.0
"""Highest rate searched for an IRR root (1 000 %)."""

IRR_BRACKET_STEPS: int = 1100
"""Number of grid points scanned for a sign change before root polishing."""

IRR_TOLERANCE: float = 1e-10
"""Absolute rate tolerance passed to the root-finder."""

IRR_MAX_ITERATIONS: int = 200
"""Iteration cap for the root-finder."""

# ---------------------------------------------------------------------------
# Costs
# ---------------------------------------------------------------------------

PV_COST_TIERS_PER_W: tuple[tuple[float, float], ...] = (
    (3000.0, 1.70),
    (1000.0, 1.85),
    (500.0, 2.00),
    (100.0, 2.15),
    (0.0, 2.30),
)
"""PV installed cost tiers as ``(minimum size kW, $/W)``, largest tier first."""

WATTS_PER_KW: float = 1000.0
"""Conversion factor from kW to W."""

DEFAULT_BATTERY_CAPACITY_COST_PER_KWH: float = 550.0
"""Battery energy cost in $/kWh."""

DEFAULT_BATTERY_POWER_COST_PER_KW: float = 800.0
"""Battery power conversion cost in $/kW."""

# ---------------------------------------------------------------------------
# Site / energy
# ---------------------------------------------------------------------------

DEFAULT_YIELD_KWH_PER_KW: float = 1150.0
"""Province-wide fallback specific yield (kWh per installed kW per year)."""

DEFAULT_TARIFF_CODE: str = "M"
"""Tariff used when a site's tariff code is missing or unknown."""

DEFAULT_DAYTIME_LOAD_SHARE: float = 0.65
"""Fraction of annual consumption occurring while the PV array produces."""

DEFAULT_BATTERY_CYCLES_PER_YEAR: float = 250.0
"""Full equivalent battery cycles per year available for solar shifting."""

DEFAULT_BATTERY_ROUND_TRIP_EFFICIENCY: float = 0.90
"""Battery round-trip efficiency."""

DEFAULT_DEMAND_SETPOINT_SHARE_OF_PEAK: float = 0.90
"""Demand-shaving setpoint as a share of peak demand when none is given."""

GRID_EMISSION_FACTOR_KG_PER_KWH: float = 0.002
"""Emission factor of the displaced grid supply (kg CO2 per kWh)."""

KG_PER_TONNE: float = 1000.0
"""Kilograms per metric tonne."""

# ---------------------------------------------------------------------------
# Roof geometry
# ---------------------------------------------------------------------------

DEFAULT_ROOF_UTILIZATION_RATIO: float = 0.80
"""Usable fraction of the gross roof area."""

PANEL_AREA_M2: float = 3.71
"""Footprint of one installed module including racking spacing (m²)."""

PANEL_POWER_KW: float = 0.660
"""Nameplate power of one module (kW); PV sizes are whole multiples of it."""

SQFT_PER_M2: float = 10.764
"""Square feet per square metre."""

# ---------------------------------------------------------------------------
# Optimizer
# ---------------------------------------------------------------------------

DEFAULT_COVERAGE_RATIO_MIN: float = 0.25
"""Smallest candidate coverage ratio (PV production / consumption)."""

DEFAULT_COVERAGE_RATIO_MAX: float = 1.50
"""Largest candidate coverage ratio."""

DEFAULT_COVERAGE_RATIO_STEPS: int = 11
"""Number of evenly spaced candidate coverage ratios."""

TARGET_BEST_NPV: str = "bestNPV"
"""Optimization target: maximise 25-year NPV."""

TARGET_BEST_IRR: str = "bestIRR"
"""Optimization target: maximise 25-year IRR."""

TARGET_BEST_SELF_SUFFICIENCY: str = "bestSelfSufficiency"
"""Optimization target: maximise self-sufficiency %."""

OPTIMIZATION_TARGETS: tuple[str, ...] = (
    TARGET_BEST_NPV,
    TARGET_BEST_IRR,
    TARGET_BEST_SELF_SUFFICIENCY,
)
"""All supported optimization targets."""

# ---------------------------------------------------------------------------
# Output defaults
# ---------------------------------------------------------------------------

DEFAULT_OUTPUT_DIR: str = "output"
"""Default root directory for result files."""

CSV_DELIMITER: str = ","
"""Delimiter used in all input and output CSV files."""

FLOAT_PRECISION: int = 4
"""Number of decimal places for non-monetary floats in outputs."""

CURRENCY_PRECISION: int = 2
"""Number of decimal places (cents) for monetary values in outputs."""

RATE_PRECISION: int = 6
"""Number of decimal places for rates (IRR) expressed as fractions in outputs."""
