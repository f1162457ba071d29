from __future__ import annotations

from dataclasses import replace

from reserve_fund.engine import derive_result
from reserve_fund.input_metadata import FIELD_SPECS, NUMERIC_FIELDS, advisory_warnings, help_with_guidance
from reserve_fund.schema import INPUT_FIELD_NAMES


def test_every_numeric_field_is_an_input_field():
    assert set(NUMERIC_FIELDS) <= set(INPUT_FIELD_NAMES)
    assert FIELD_SPECS["duration_months"]["integer"] is True
    assert FIELD_SPECS["total_complex_area"]["use_commas"] is True


def test_help_with_guidance_appends_range():
    text = help_with_guidance("household_area", "관리비 고지서 또는 K-Apt에서 확인 가능")
    assert "권장 범위: 20 ~ 300." in text
    assert help_with_guidance("period_amount", "base") == "base"


def test_reference_example_has_no_advisories(rate_inputs):
    assert advisory_warnings(rate_inputs, derive_result(rate_inputs)) == []


def test_out_of_range_values_are_flagged(rate_inputs):
    inputs = replace(rate_inputs, household_area=900.0, total_repair_cost=1_000_000_000_000)
    warnings = advisory_warnings(inputs, derive_result(inputs))
    assert any("우리 집 공급면적" in w for w in warnings)
    assert any("㎡당 월 단가" in w for w in warnings)


def test_blank_and_inactive_fields_are_skipped(amount_inputs):
    inputs = replace(amount_inputs, household_area=0.0, accumulation_rate=99.0)
    assert advisory_warnings(inputs) == []
