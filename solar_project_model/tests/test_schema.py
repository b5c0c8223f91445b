"""Tests for config/schema.py – request JSON schema validation."""

from __future__ import annotations

import copy

import jsonschema
import pytest

from solar_project_model.config.schema import REQUEST_SCHEMA, get_schema, validate_request


class TestValidateRequest:
    def test_valid_request(self, sample_request_dict: dict) -> None:
        validate_request(sample_request_dict)

    def test_minimal_request(self) -> None:
        validate_request({"request": {"name": "x"}, "site": {}})

    @pytest.mark.parametrize("block", ["request", "site"])
    def test_missing_required_block(self, sample_request_dict: dict, block: str) -> None:
        del sample_request_dict[block]
        with pytest.raises(jsonschema.ValidationError, match="root"):
            validate_request(sample_request_dict)

    def test_missing_name(self, sample_request_dict: dict) -> None:
        del sample_request_dict["request"]["name"]
        with pytest.raises(jsonschema.ValidationError, match="request"):
            validate_request(sample_request_dict)

    def test_unknown_target(self, sample_request_dict: dict) -> None:
        sample_request_dict["request"]["target"] = "bestPayback"
        with pytest.raises(jsonschema.ValidationError, match="target"):
            validate_request(sample_request_dict)

    def test_unknown_block(self, sample_request_dict: dict) -> None:
        sample_request_dict["monte_carlo"] = {}
        with pytest.raises(jsonschema.ValidationError):
            validate_request(sample_request_dict)

    def test_unknown_finance_key(self, sample_request_dict: dict) -> None:
        sample_request_dict["finance"]["wacc"] = 0.08
        with pytest.raises(jsonschema.ValidationError, match="finance"):
            validate_request(sample_request_dict)

    def test_numeric_leaves_accept_strings_and_null(self, sample_request_dict: dict) -> None:
        sample_request_dict["site"]["roof_area_m2"] = None
        sample_request_dict["site"]["yield_kwh_per_kw"] = "1100"
        validate_request(sample_request_dict)

    @pytest.mark.parametrize("years", [[10, 20], 15, "10", None])
    def test_replacement_years_shapes(self, sample_request_dict: dict, years: object) -> None:
        sample_request_dict["finance"]["battery_replacement_years"] = years
        validate_request(sample_request_dict)

    def test_replacement_years_reject_nested(self, sample_request_dict: dict) -> None:
        sample_request_dict["finance"]["battery_replacement_years"] = [{"year": 10}]
        with pytest.raises(jsonschema.ValidationError):
            validate_request(sample_request_dict)

    def test_numeric_leaf_rejects_object(self, sample_request_dict: dict) -> None:
        sample_request_dict["site"]["peak_demand_kw"] = {"value": 150}
        with pytest.raises(jsonschema.ValidationError, match="peak_demand_kw"):
            validate_request(sample_request_dict)

    def test_deepest_error_reported(self, sample_request_dict: dict) -> None:
        sample_request_dict["costs"] = {"pv_cost_tiers": [{"min_kw": 0}]}
        with pytest.raises(jsonschema.ValidationError, match="pv_cost_tiers → 0"):
            validate_request(sample_request_dict)

    def test_tariff_overrides(self, sample_request_dict: dict) -> None:
        sample_request_dict["tariffs"] = {"M": {"energy_rate": 0.07}, "X": {"demand_rate": 10}}
        validate_request(sample_request_dict)

    def test_tariff_unknown_rate_key(self, sample_request_dict: dict) -> None:
        sample_request_dict["tariffs"] = {"M": {"fixed_charge": 12}}
        with pytest.raises(jsonschema.ValidationError):
            validate_request(sample_request_dict)


class TestGetSchema:
    def test_returns_copy(self) -> None:
        schema = get_schema()
        schema["properties"].clear()
        assert REQUEST_SCHEMA["properties"]

    def test_is_draft7(self) -> None:
        jsonschema.Draft7Validator.check_schema(copy.deepcopy(REQUEST_SCHEMA))
