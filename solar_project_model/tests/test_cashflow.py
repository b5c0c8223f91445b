"""Tests for finance/cashflow.py – yearly projection and scenario KPIs."""

from __future__ import annotations

import math

import numpy as np
import pytest

from solar_project_model.config.defaults import (
    DEFAULT_SURPLUS_COMPENSATION_RATE,
    DEFAULT_TARIFF_INFLATION_RATE,
    SURPLUS_CREDIT_START_YEAR,
)
from solar_project_model.finance.cashflow import (
    FinancialAssumptions,
    battery_replacement_cost,
    battery_replacement_schedule,
    build_cashflow_projection,
    project_scenario,
)
from solar_project_model.finance.costs import CapexBreakdown
from solar_project_model.finance.incentives import IncentiveStack
from solar_project_model.finance.metrics import calculate_npv
from solar_project_model.site.profile import SystemDesign

CAPEX = CapexBreakdown(
    capex_solar=100_000.0,
    capex_battery=0.0,
    capex_gross=100_000.0,
    om_solar=1_000.0,
    om_battery=0.0,
)


def _projection(**overrides) -> list:
    assumptions = FinancialAssumptions(**overrides)
    return build_cashflow_projection(
        capex=CAPEX,
        year1_savings=12_000.0,
        year1_production_kwh=120_000.0,
        exported_kwh=10_000.0,
        incentives=IncentiveStack(
            utility_solar=20_000.0, federal_itc=24_000.0, tax_shield=5_000.0
        ),
        assumptions=assumptions,
    )


# ---------------------------------------------------------------------------
# build_cashflow_projection
# ---------------------------------------------------------------------------


class TestBuildCashflowProjection:
    def test_length(self) -> None:
        assert len(_projection()) == 26
        assert len(_projection(horizon_years=10)) == 11

    def test_year_zero_is_investment(self) -> None:
        year0 = _projection()[0]
        assert year0.net_cashflow == -100_000.0
        assert year0.cumulative == -100_000.0
        assert year0.savings == 0.0
        assert year0.production_kwh == 0.0

    def test_cumulative_is_running_sum(self) -> None:
        entries = _projection()
        running = np.cumsum([e.net_cashflow for e in entries])
        for entry, expected in zip(entries, running):
            assert entry.cumulative == pytest.approx(expected, rel=1e-12)

    def test_year1_savings_equal_baseline(self) -> None:
        """Year 1 carries neither degradation nor tariff escalation."""
        assert _projection()[1].savings == 12_000.0

    def test_savings_degrade_and_escalate(self) -> None:
        entries = _projection(degradation_rate=0.005, tariff_inflation_rate=0.03)
        for y in (2, 10, 25):
            expected = 12_000.0 * 0.995 ** (y - 1) * 1.03 ** (y - 1)
            assert entries[y].savings == pytest.approx(expected, rel=1e-12)

    def test_production_degrades(self) -> None:
        entries = _projection(degradation_rate=0.01)
        assert entries[1].production_kwh == 120_000.0
        assert entries[11].production_kwh == pytest.approx(120_000.0 * 0.99**10)

    def test_opex_escalates(self) -> None:
        entries = _projection(om_escalation_rate=0.025)
        assert entries[1].opex == pytest.approx(1_000.0)
        assert entries[5].opex == pytest.approx(1_000.0 * 1.025**4)

    def test_incentive_receipt_years(self) -> None:
        entries = _projection()
        assert entries[1].incentives == pytest.approx(25_000.0)
        assert entries[2].incentives == pytest.approx(24_000.0)
        assert all(e.incentives == 0.0 for e in entries[3:])

    def test_surplus_credit_starts_in_year_three(self) -> None:
        entries = _projection(degradation_rate=0.005, surplus_compensation_rate=0.05)
        for y in range(1, SURPLUS_CREDIT_START_YEAR):
            assert entries[y].surplus_revenue == 0.0
        expected = 10_000.0 * 0.05 * 0.995**2 * (1.0 + DEFAULT_TARIFF_INFLATION_RATE) ** 2
        assert entries[3].surplus_revenue == pytest.approx(expected)

    def test_surplus_degrades_and_escalates(self) -> None:
        entries = _projection(degradation_rate=0.005, tariff_inflation_rate=0.048)
        ratio = entries[4].surplus_revenue / entries[3].surplus_revenue
        assert ratio == pytest.approx(0.995 * 1.048, rel=1e-12)
        expected = 10_000.0 * DEFAULT_SURPLUS_COMPENSATION_RATE * 0.995**9 * 1.048**9
        assert entries[10].surplus_revenue == pytest.approx(expected, rel=1e-12)

    def test_net_identity(self) -> None:
        for e in _projection()[1:]:
            expected = e.savings + e.surplus_revenue - e.opex + e.incentives + e.investment
            assert e.net_cashflow == pytest.approx(expected, rel=1e-12)

    def test_no_replacement_without_battery(self) -> None:
        assert all(e.investment == 0.0 for e in _projection()[1:])

    def test_deterministic(self) -> None:
        assert _projection() == _projection()


# ---------------------------------------------------------------------------
# Battery replacements
# ---------------------------------------------------------------------------


class TestBatteryReplacementCost:
    def test_net_price_index(self) -> None:
        assumptions = FinancialAssumptions(
            battery_replacement_cost_factor=0.6,
            tariff_inflation_rate=0.048,
            battery_price_decline_rate=0.05,
        )
        expected = 190_000.0 * 0.6 * (1.0 + 0.048 - 0.05) ** 10
        assert battery_replacement_cost(190_000.0, assumptions, 10) == pytest.approx(expected)

    def test_no_battery(self) -> None:
        assert battery_replacement_cost(0.0, FinancialAssumptions(), 10) == 0.0

    def test_year_zero(self) -> None:
        assert battery_replacement_cost(190_000.0, FinancialAssumptions(), 0) == 0.0

    def test_beyond_horizon(self) -> None:
        assert battery_replacement_cost(190_000.0, FinancialAssumptions(), 30) == 0.0


class TestBatteryReplacementSchedule:
    def test_default_years_ten_and_twenty(self) -> None:
        assumptions = FinancialAssumptions()
        schedule = battery_replacement_schedule(190_000.0, assumptions)
        assert sorted(schedule) == [10, 20]
        for year, cost in schedule.items():
            assert cost == pytest.approx(battery_replacement_cost(190_000.0, assumptions, year))
        assert schedule[20] != schedule[10]

    def test_disabled(self) -> None:
        assumptions = FinancialAssumptions(battery_replacement_years=())
        assert battery_replacement_schedule(190_000.0, assumptions) == {}

    def test_years_beyond_horizon_dropped(self) -> None:
        assumptions = FinancialAssumptions(battery_replacement_years=(10, 30))
        assert list(battery_replacement_schedule(190_000.0, assumptions)) == [10]

    def test_no_battery(self) -> None:
        assert battery_replacement_schedule(0.0, FinancialAssumptions()) == {}

    def test_sanitized_years(self) -> None:
        assumptions = FinancialAssumptions(battery_replacement_years=(20, 0, 10, 20))
        assert assumptions.sanitized().battery_replacement_years == (10, 20)
        single = FinancialAssumptions(battery_replacement_years=12)
        assert single.sanitized().battery_replacement_years == (12,)


# ---------------------------------------------------------------------------
# project_scenario
# ---------------------------------------------------------------------------


class TestProjectScenario:
    def test_pv_only_energy(self, pv_only_design, reference_site) -> None:
        """200 kW × 1 150 kWh/kW all self-consumed on tariff M."""
        result = project_scenario(
            pv_only_design, reference_site, FinancialAssumptions(), IncentiveStack()
        )
        assert result.energy.production_kwh == pytest.approx(230_000.0)
        assert result.energy.exported_kwh == 0.0
        assert result.annual_savings == pytest.approx(230_000.0 * 0.06061)
        assert result.cashflows[1].savings == pytest.approx(result.annual_savings)

    def test_capex_and_net(self, pv_only_design, reference_site) -> None:
        incentives = IncentiveStack(utility_solar=50_000.0, federal_itc=10_000.0)
        result = project_scenario(
            pv_only_design, reference_site, FinancialAssumptions(), incentives
        )
        assert result.capex.capex_gross == pytest.approx(200.0 * 1000.0 * 2.15)
        assert result.capex_net == pytest.approx(result.capex.capex_gross - 60_000.0)
        assert result.cashflows[0].net_cashflow == pytest.approx(-result.capex.capex_gross)

    def test_npv_horizons(self, pv_only_design, reference_site) -> None:
        assumptions = FinancialAssumptions(discount_rate=0.06)
        result = project_scenario(pv_only_design, reference_site, assumptions, IncentiveStack())
        net = [e.net_cashflow for e in result.cashflows]
        assert set(result.npv) == {10, 20, 25}
        for horizon, value in result.npv.items():
            assert value == pytest.approx(calculate_npv(net, 0.06, horizon))
        assert result.lifetime_npv == result.npv[25]

    def test_irr_zeroes_npv(self, pv_only_design, reference_site) -> None:
        incentives = IncentiveStack(utility_solar=100_000.0, federal_itc=90_000.0)
        result = project_scenario(
            pv_only_design, reference_site, FinancialAssumptions(), incentives
        )
        irr = result.lifetime_irr
        assert irr is not None
        net = [e.net_cashflow for e in result.cashflows]
        assert calculate_npv(net, irr) == pytest.approx(0.0, abs=1e-4)

    def test_payback_matches_cumulative(self, pv_only_design, reference_site) -> None:
        incentives = IncentiveStack(utility_solar=100_000.0, federal_itc=90_000.0)
        result = project_scenario(
            pv_only_design, reference_site, FinancialAssumptions(), incentives
        )
        year = result.payback_year
        assert year is not None
        assert result.cashflows[year].cumulative >= 0.0
        assert all(e.cumulative < 0.0 for e in result.cashflows[1:year])

    def test_zero_discount_rate(self, pv_only_design, reference_site) -> None:
        """Undiscounted NPV equals the final cumulative position."""
        result = project_scenario(
            pv_only_design,
            reference_site,
            FinancialAssumptions(discount_rate=0.0),
            IncentiveStack(),
        )
        assert result.npv[25] == pytest.approx(result.cashflows[-1].cumulative)

    def test_lcoe_positive(self, pv_only_design, reference_site) -> None:
        result = project_scenario(
            pv_only_design, reference_site, FinancialAssumptions(), IncentiveStack()
        )
        assert result.lcoe_cents_per_kwh is not None
        assert result.lcoe_cents_per_kwh > 0.0

    def test_battery_replacements_in_cashflow(self, pv_battery_design, reference_site) -> None:
        result = project_scenario(
            pv_battery_design, reference_site, FinancialAssumptions(), IncentiveStack()
        )
        assert sorted(result.replacement_costs) == [10, 20]
        for year in (10, 20):
            expected = -result.replacement_costs[year]
            assert result.cashflows[year].investment == pytest.approx(expected)
        others = [e for e in result.cashflows[1:] if e.year not in (10, 20)]
        assert all(e.investment == 0.0 for e in others)
        assert result.replacement_cost == pytest.approx(sum(result.replacement_costs.values()))

    def test_single_replacement_year(self, pv_battery_design, reference_site) -> None:
        assumptions = FinancialAssumptions(battery_replacement_years=(10,))
        result = project_scenario(pv_battery_design, reference_site, assumptions, IncentiveStack())
        assert list(result.replacement_costs) == [10]
        assert result.cashflows[20].investment == 0.0

    def test_pv_only_has_no_replacement(self, pv_only_design, reference_site) -> None:
        result = project_scenario(
            pv_only_design, reference_site, FinancialAssumptions(), IncentiveStack()
        )
        assert result.replacement_costs == {}
        assert result.replacement_cost == 0.0

    def test_battery_adds_demand_savings(
        self, pv_only_design, pv_battery_design, reference_site
    ) -> None:
        assumptions = FinancialAssumptions()
        pv = project_scenario(pv_only_design, reference_site, assumptions, IncentiveStack())
        pv_batt = project_scenario(
            pv_battery_design, reference_site, assumptions, IncentiveStack()
        )
        assert pv.energy.demand_savings == 0.0
        assert pv_batt.energy.demand_savings > 0.0

    def test_surplus_exported_for_oversized_array(self, reference_site) -> None:
        result = project_scenario(
            SystemDesign(pv_kw=500.0), reference_site, FinancialAssumptions(), IncentiveStack()
        )
        assert result.energy.exported_kwh > 0.0
        assert result.cashflows[2].surplus_revenue == 0.0
        assert result.cashflows[3].surplus_revenue > 0.0

    def test_zero_capex_metrics_undefined(self, reference_site) -> None:
        result = project_scenario(
            SystemDesign(pv_kw=0.0),
            reference_site,
            FinancialAssumptions(),
            IncentiveStack(utility_solar=10_000.0),
        )
        assert result.capex.capex_gross == 0.0
        assert result.incentives.total == 0.0
        assert all(v is None for v in result.irr.values())
        assert result.payback_year is None
        assert result.lcoe_cents_per_kwh is None
        assert all(math.isclose(v, 0.0, abs_tol=1e-9) for v in result.npv.values())

    def test_negative_inputs_clamped(self, reference_site) -> None:
        result = project_scenario(
            SystemDesign(pv_kw=-50.0, battery_kwh=-10.0),
            reference_site,
            FinancialAssumptions(),
            IncentiveStack(utility_solar=-5.0),
        )
        assert result.design.pv_kw == 0.0
        assert result.design.battery_kwh == 0.0
        assert result.incentives.utility_solar == 0.0

    def test_short_horizon_reports_available_horizons(
        self, pv_only_design, reference_site
    ) -> None:
        result = project_scenario(
            pv_only_design,
            reference_site,
            FinancialAssumptions(horizon_years=15),
            IncentiveStack(),
        )
        assert set(result.npv) == {10}
        assert len(result.cashflows) == 16

    def test_deterministic(self, pv_battery_design, reference_site) -> None:
        args = (pv_battery_design, reference_site, FinancialAssumptions(), IncentiveStack())
        assert project_scenario(*args) == project_scenario(*args)
