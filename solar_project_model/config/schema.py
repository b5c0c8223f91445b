"""JSON schema definition and validation for project request files.

Validation uses the ``jsonschema`` library (Draft 7). The schema checks
*structure* (known blocks and keys, object/array shapes, enumerations).
Numeric leaves also accept strings and ``null``: partial prospect data is
coerced leniently later instead of being rejected here.

Usage::

    from solar_project_model.config.schema import validate_request
    validate_request(data)   # raises jsonschema.ValidationError on failure
"""

from __future__ import annotations

import copy

import jsonschema

from solar_project_model.config.defaults import OPTIMIZATION_TARGETS

# ---------------------------------------------------------------------------
# Re-usable sub-schemas
# ---------------------------------------------------------------------------

_NUMERIC = {"type": ["number", "string", "null"]}


def _numeric_block(*keys: str) -> dict:
    return {
        "type": "object",
        "properties": {k: _NUMERIC for k in keys},
        "additionalProperties": False,
    }


_REQUEST = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "target": {"type": "string", "enum": list(OPTIMIZATION_TARGETS)},
        "output": {
            "type": "object",
            "properties": {
                "directory": {"type": "string", "minLength": 1},
            },
            "additionalProperties": False,
        },
    },
    "additionalProperties": False,
}

_SITE = {
    "type": "object",
    "properties": {
        "annual_consumption_kwh": _NUMERIC,
        "peak_demand_kw": _NUMERIC,
        "tariff_code": {"type": ["string", "null"]},
        "energy_rate": _NUMERIC,
        "demand_rate": _NUMERIC,
        "yield_kwh_per_kw": _NUMERIC,
        "roof_area_m2": _NUMERIC,
        "roof_area_sqft": _NUMERIC,
        "consumption_csv": {"type": "string", "minLength": 1},
    },
    "additionalProperties": False,
}

_DESIGN = _numeric_block("battery_kwh", "battery_kw", "demand_setpoint_kw")

_CONSTRAINTS = _numeric_block(
    "budget",
    "roof_utilization_ratio",
    "coverage_ratio_min",
    "coverage_ratio_max",
    "coverage_ratio_steps",
)

_FINANCE = _numeric_block(
    "discount_rate",
    "tariff_inflation_rate",
    "tax_rate",
    "om_solar_pct",
    "om_battery_pct",
    "om_escalation_rate",
    "battery_replacement_cost_factor",
    "battery_price_decline_rate",
    "loan_interest_rate",
    "loan_term_years",
    "loan_down_payment_pct",
    "lease_implicit_rate",
    "lease_term_years",
    "degradation_rate",
    "surplus_compensation_rate",
)
_FINANCE["properties"]["battery_replacement_years"] = {
    "anyOf": [_NUMERIC, {"type": "array", "items": _NUMERIC}],
}

_COSTS = {
    "type": "object",
    "properties": {
        "pv_cost_per_w": _NUMERIC,
        "pv_cost_tiers": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["min_kw", "cost_per_w"],
                "properties": {"min_kw": _NUMERIC, "cost_per_w": _NUMERIC},
                "additionalProperties": False,
            },
        },
        "battery_capacity_cost_per_kwh": _NUMERIC,
        "battery_power_cost_per_kw": _NUMERIC,
    },
    "additionalProperties": False,
}

_INCENTIVES = {
    "type": "object",
    "properties": {
        "amounts": _numeric_block(
            "utility_solar", "utility_battery", "federal_itc", "tax_shield"
        ),
        "policy": _numeric_block(
            "utility_solar_per_kw",
            "utility_max_kw",
            "utility_cap_pct_of_capex",
            "federal_itc_rate",
            "tax_shield_factor",
        ),
    },
    "additionalProperties": False,
}

_TARIFFS = {
    "type": "object",
    "additionalProperties": _numeric_block("energy_rate", "demand_rate"),
}

_ENERGY = _numeric_block(
    "daytime_load_share",
    "battery_cycles_per_year",
    "battery_round_trip_efficiency",
    "demand_setpoint_share_of_peak",
)

REQUEST_SCHEMA: dict = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "Solar project request",
    "type": "object",
    "required": ["request", "site"],
    "properties": {
        "request": _REQUEST,
        "site": _SITE,
        "design": _DESIGN,
        "constraints": _CONSTRAINTS,
        "finance": _FINANCE,
        "costs": _COSTS,
        "incentives": _INCENTIVES,
        "tariffs": _TARIFFS,
        "energy": _ENERGY,
    },
    "additionalProperties": False,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_request(data: dict) -> None:
    """Validate a request dictionary against the JSON schema.

    Parameters
    ----------
    data:
        Parsed request dictionary (e.g. from ``json.load``).

    Raises
    ------
    jsonschema.ValidationError
        When *data* does not conform to the schema. The message names the
        deepest failing path.
    """
    validator = jsonschema.Draft7Validator(REQUEST_SCHEMA)
    errors = sorted(
        validator.iter_errors(data),
        key=lambda e: (-len(e.absolute_path), list(map(str, e.absolute_path))),
    )

    if errors:
        first = errors[0]
        path_str = " → ".join(str(p) for p in first.absolute_path) or "(root)"
        raise jsonschema.ValidationError(
            f"Request validation failed at '{path_str}': {first.message}",
            path=first.absolute_path,
            schema_path=first.absolute_schema_path,
            validator=first.validator,
            validator_value=first.validator_value,
            instance=first.instance,
            schema=first.schema,
            cause=first.cause,
        )


def get_schema() -> dict:
    """Return a deep copy of the request JSON schema dictionary."""
    return copy.deepcopy(REQUEST_SCHEMA)
