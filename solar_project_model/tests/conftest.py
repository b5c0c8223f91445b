"""Shared pytest fixtures for the solar_project_model test suite.

All fixtures provide synthetic, deterministic data. Numerical reference
fixtures document expected results for key calculations to enable regression
testing.

Reference acquisition scenario (used by the ``reference_*`` fixtures)
----------------------------------------------------------------------
capex 200 000 $, year-1 savings 25 000 $, degradation 0.5 %/yr
utility solar 40 000 $ (year 1 offset), utility battery 0 $
federal ITC 30 000 $ (year 2), tax shield 15 000 $ (year 1)
loan : 7 % / 10 yrs / 30 % down → down payment 60 000 $, loan 140 000 $
       monthly r = 0.07 / 12, n = 120 → 1 625.52 $/month ≈ 19 506.22 $/yr
lease: 8.5 % / 15 yrs on 160 000 $
       monthly r = 0.085 / 12, n = 180 → 1 575.59 $/month ≈ 18 907.06 $/yr

Cumulative positions:
  cash : −160 000 → −120 000 → −65 125 → −40 374.38 → −15 747.50 → +8 756.24 (payback 5)
  loan :  −60 000 → −39 506.22 → −4 137.44 → +1 106.97                     (payback 3)
  lease:        0 → +21 092.94                                             (payback 1)

Reference site
--------------
400 000 kWh/yr, 150 kW peak, tariff M, yield 1 150 kWh/kW, no roof limit.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from solar_project_model.finance.cashflow import FinancialAssumptions
from solar_project_model.finance.incentives import IncentiveStack
from solar_project_model.site.profile import SiteEnergyProfile, SystemDesign

# ---------------------------------------------------------------------------
# Reference acquisition scenario
# ---------------------------------------------------------------------------

REFERENCE_CAPEX = 200_000.0
REFERENCE_SAVINGS = 25_000.0


@pytest.fixture
def reference_capex() -> float:
    return REFERENCE_CAPEX


@pytest.fixture
def reference_savings() -> float:
    return REFERENCE_SAVINGS


@pytest.fixture
def reference_incentives() -> IncentiveStack:
    """Incentives of the reference acquisition scenario."""
    return IncentiveStack(
        utility_solar=40_000.0,
        utility_battery=0.0,
        federal_itc=30_000.0,
        tax_shield=15_000.0,
    )


@pytest.fixture
def reference_assumptions() -> FinancialAssumptions:
    """Loan 7 % / 10 y / 30 % down, lease 8.5 % / 15 y, 0.5 %/yr degradation."""
    return FinancialAssumptions(
        loan_interest_rate=0.07,
        loan_term_years=10,
        loan_down_payment_pct=0.30,
        lease_implicit_rate=0.085,
        lease_term_years=15,
        degradation_rate=0.005,
    )


# ---------------------------------------------------------------------------
# Site / design fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def reference_site() -> SiteEnergyProfile:
    """Commercial site on tariff M without roof constraint."""
    return SiteEnergyProfile(
        annual_consumption_kwh=400_000.0,
        peak_demand_kw=150.0,
        tariff_code="M",
        yield_kwh_per_kw=1150.0,
    )


@pytest.fixture
def pv_only_design() -> SystemDesign:
    return SystemDesign(pv_kw=200.0)


@pytest.fixture
def pv_battery_design() -> SystemDesign:
    return SystemDesign(pv_kw=200.0, battery_kwh=200.0, battery_kw=100.0)


# ---------------------------------------------------------------------------
# Request file fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_request_dict() -> dict:
    """Minimal-but-complete request dictionary."""
    return {
        "request": {"name": "acme_warehouse", "target": "bestNPV"},
        "site": {
            "annual_consumption_kwh": 400000,
            "peak_demand_kw": 150,
            "tariff_code": "M",
            "yield_kwh_per_kw": 1150,
            "roof_area_m2": 3000,
        },
        "design": {"battery_kwh": 0, "battery_kw": 0},
        "constraints": {"coverage_ratio_steps": 6},
        "finance": {
            "discount_rate": 0.06,
            "om_solar_pct": 1.0,
            "loan_down_payment_pct": 20,
        },
    }


@pytest.fixture
def request_file(tmp_path: Path, sample_request_dict: dict) -> Path:
    """Write :func:`sample_request_dict` to a temporary JSON file."""
    path = tmp_path / "request.json"
    path.write_text(json.dumps(sample_request_dict), encoding="utf-8")
    return path


@pytest.fixture
def consumption_csv(tmp_path: Path) -> Path:
    """Twelve monthly readings of 10 000 kWh with peaks from 100 to 155 kW."""
    lines = ["month,consumption_kwh,peak_kw"]
    for month in range(1, 13):
        lines.append(f"2024-{month:02d},10000,{95 + 5 * month}")
    path = tmp_path / "consumption.csv"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
