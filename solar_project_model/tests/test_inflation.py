"""Tests for finance/inflation.py – compound escalation helpers."""

from __future__ import annotations

import numpy as np
import pytest

from solar_project_model.finance.inflation import (
    build_inflation_factors,
    inflate_value,
    net_price_index,
)


class TestInflateValue:
    def test_year_one_unchanged(self) -> None:
        assert inflate_value(1_000.0, 0.025, 1) == 1_000.0

    def test_year_three(self) -> None:
        assert inflate_value(1_000.0, 0.025, 3) == pytest.approx(1_000.0 * 1.025**2)

    def test_year_zero_clamped(self) -> None:
        assert inflate_value(1_000.0, 0.025, 0) == 1_000.0


class TestBuildInflationFactors:
    def test_first_factor_is_one(self) -> None:
        assert build_inflation_factors(0.048, 25)[0] == 1.0

    def test_consistent_with_inflate_value(self) -> None:
        factors = build_inflation_factors(0.048, 25)
        for i, f in enumerate(factors):
            assert f == pytest.approx(inflate_value(1.0, 0.048, i + 1))

    def test_zero_rate(self) -> None:
        assert np.all(build_inflation_factors(0.0, 10) == 1.0)


class TestNetPriceIndex:
    def test_compounds_from_year_zero(self) -> None:
        assert net_price_index(0.048, 0.05, 10) == pytest.approx(0.998**10)

    def test_balanced_rates(self) -> None:
        assert net_price_index(0.03, 0.03, 15) == pytest.approx(1.0)
