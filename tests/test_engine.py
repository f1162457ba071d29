from __future__ import annotations

from dataclasses import replace

import pytest

from reserve_fund.engine import derivation_table, derive_result, formula_text, missing_requirements
from reserve_fund.schema import AMOUNT, RATE


def test_rate_mode_reference_example(rate_inputs):
    result = derive_result(rate_inputs)
    assert result is not None
    assert result.period_target_amount == pytest.approx(2_000_000_000)
    assert result.monthly_total_target == pytest.approx(33_333_333.33, abs=0.01)
    assert result.monthly_rate_per_sqm == pytest.approx(222.22, abs=0.01)
    assert result.household_monthly_fee == pytest.approx(18_866.67, abs=0.01)


def test_amount_mode_matches_rate_mode_for_same_target(rate_inputs, amount_inputs):
    assert derive_result(amount_inputs) == derive_result(rate_inputs)


def test_derivation_is_deterministic(rate_inputs):
    first = derive_result(rate_inputs)
    second = derive_result(rate_inputs)
    assert first == second
    assert first.household_monthly_fee == second.household_monthly_fee


@pytest.mark.parametrize(
    "updates",
    [
        {"duration_months": 0},
        {"total_complex_area": 0},
        {"household_area": 0},
        {"total_repair_cost": 0},
        {"accumulation_rate": 0},
    ],
)
def test_any_failed_precondition_means_no_result(rate_inputs, updates):
    assert derive_result(replace(rate_inputs, **updates)) is None


def test_amount_mode_ignores_rate_fields(amount_inputs):
    inputs = replace(amount_inputs, total_repair_cost=0, accumulation_rate=0)
    assert derive_result(inputs) is not None
    assert derive_result(replace(inputs, period_amount=0)) is None


def test_rate_mode_ignores_period_amount(rate_inputs):
    assert derive_result(replace(rate_inputs, period_amount=0)) is not None


def test_rate_above_one_hundred_is_not_clamped(rate_inputs):
    result = derive_result(replace(rate_inputs, accumulation_rate=150))
    assert result.period_target_amount == pytest.approx(15_000_000_000)


def test_missing_requirements_lists_blockers_in_order(rate_inputs):
    inputs = replace(rate_inputs, household_area=0, accumulation_rate=0, duration_months=0)
    assert missing_requirements(inputs) == ["duration_months", "household_area", "accumulation_rate"]
    assert missing_requirements(rate_inputs) == []
    assert missing_requirements(replace(rate_inputs, mode=AMOUNT)) == ["period_amount"]


def test_formula_text_follows_mode():
    assert "적립요율" in formula_text(RATE)
    assert formula_text(AMOUNT).startswith("기간 적립 총액")


def test_derivation_table_has_one_row_per_step(rate_inputs):
    result = derive_result(rate_inputs)
    table = derivation_table(rate_inputs, result)
    assert list(table.columns) == ["Step", "Formula", "Value", "Unit"]
    assert len(table) == 4
    assert float(table["Value"].iloc[-1]) == result.household_monthly_fee
    assert "60개월" in table["Formula"].iloc[1]
