from __future__ import annotations

from dataclasses import replace

import pytest

from reserve_fund.period import (
    apply_duration_edit,
    apply_field_edit,
    apply_mode_switch,
    apply_period_mode_switch,
    apply_range_edit,
    duration_to_years,
    range_to_months,
)
from reserve_fund.schema import AMOUNT, RANGE, RATE, CalculationInputs, default_inputs


def test_default_inputs_cover_five_years():
    inputs = default_inputs(2025)
    assert inputs.duration_months == 60
    assert inputs.start_year == 2025
    assert inputs.end_year == 2029
    assert inputs.mode == RATE


def test_range_edit_recomputes_inclusive_months():
    inputs = CalculationInputs(start_year=2025, end_year=2029, duration_months=60)
    updated = apply_range_edit(inputs, "end", 2030)
    assert (updated.start_year, updated.end_year) == (2025, 2030)
    assert updated.duration_months == 72


def test_start_past_end_pulls_end_up():
    inputs = CalculationInputs(start_year=2025, end_year=2030, duration_months=72)
    updated = apply_range_edit(inputs, "start", 2032)
    assert updated.start_year == 2032
    assert updated.end_year == 2032
    assert updated.duration_months == 12


def test_end_before_start_pulls_start_down():
    inputs = CalculationInputs(start_year=2025, end_year=2030, duration_months=72)
    updated = apply_range_edit(inputs, "end", 2020)
    assert (updated.start_year, updated.end_year) == (2020, 2020)
    assert updated.duration_months == 12


def test_range_edit_overrides_previous_duration():
    inputs = CalculationInputs(start_year=2025, end_year=2029, duration_months=65)
    assert apply_range_edit(inputs, "start", 2025).duration_months == 60


def test_range_edit_falls_back_to_reference_year_without_start():
    inputs = CalculationInputs(start_year=None, end_year=None, duration_months=0)
    updated = apply_range_edit(inputs, "end", 2030, reference_year=2026)
    assert (updated.start_year, updated.end_year) == (2026, 2030)
    assert updated.duration_months == 60


def test_blank_year_clears_boundary_and_duration():
    inputs = CalculationInputs(start_year=2025, end_year=2030, duration_months=72)
    updated = apply_range_edit(inputs, "start", 0)
    assert updated.start_year is None
    assert updated.end_year == 2030
    assert updated.duration_months == 0


def test_unknown_range_side_is_rejected():
    with pytest.raises(ValueError):
        apply_range_edit(default_inputs(2025), "middle", 2030)


def test_duration_edit_derives_end_year_with_lossy_round_trip():
    inputs = CalculationInputs(start_year=2025, end_year=2029, duration_months=60)
    updated = apply_duration_edit(inputs, 65)
    assert updated.duration_months == 65
    assert updated.end_year == 2029
    assert range_to_months(updated.start_year, updated.end_year) == 60


def test_duration_edit_rounds_half_years_up():
    inputs = CalculationInputs(start_year=2025, end_year=2029, duration_months=60)
    assert apply_duration_edit(inputs, 30).end_year == 2027
    assert duration_to_years(30) == 3
    assert duration_to_years(17) == 1


def test_duration_edit_keeps_at_least_one_year():
    inputs = CalculationInputs(start_year=2025, end_year=2029, duration_months=60)
    updated = apply_duration_edit(inputs, 3)
    assert updated.end_year == 2025
    assert updated.duration_months == 3


def test_duration_edit_without_start_year_leaves_end_year():
    inputs = CalculationInputs(start_year=None, end_year=2029, duration_months=60)
    updated = apply_duration_edit(inputs, 120)
    assert updated.end_year == 2029
    assert updated.duration_months == 120


def test_mode_switch_round_trip_preserves_values(rate_inputs):
    there = apply_mode_switch(rate_inputs, AMOUNT)
    back = apply_mode_switch(there, RATE)
    assert back == rate_inputs
    assert back.total_repair_cost == 10_000_000_000
    assert back.accumulation_rate == 20


def test_period_mode_switch_is_plain_assignment(rate_inputs):
    updated = apply_period_mode_switch(replace(rate_inputs, duration_months=65), RANGE)
    assert updated.period_input_mode == RANGE
    assert updated.duration_months == 65
    assert (updated.start_year, updated.end_year) == (2025, 2029)


def test_invalid_mode_values_are_rejected(rate_inputs):
    with pytest.raises(ValueError):
        apply_mode_switch(rate_inputs, "PERCENT")
    with pytest.raises(ValueError):
        apply_period_mode_switch(rate_inputs, "WEEKS")


def test_field_edit_dispatch(rate_inputs):
    assert apply_field_edit(rate_inputs, "household_area", 59.5).household_area == 59.5
    assert apply_field_edit(rate_inputs, "household_area", -3).household_area == 0.0
    assert apply_field_edit(rate_inputs, "duration_months", 24).end_year == 2026
    assert apply_field_edit(rate_inputs, "end_year", 2034).duration_months == 120
    assert apply_field_edit(rate_inputs, "mode", AMOUNT).mode == AMOUNT
    with pytest.raises(KeyError):
        apply_field_edit(rate_inputs, "monthly_fee", 1)


def test_edits_return_new_values(rate_inputs):
    updated = apply_field_edit(rate_inputs, "total_complex_area", 120_000)
    assert updated is not rate_inputs
    assert rate_inputs.total_complex_area == 150_000
