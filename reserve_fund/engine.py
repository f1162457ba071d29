"""Fee derivation engine: period target to per-household monthly fee."""

from __future__ import annotations

import pandas as pd

from reserve_fund.schema import AMOUNT, RATE, CalculationInputs, CalculationResult


REQUIREMENT_LABELS = {
    "duration_months": "적용 기간 (개월)",
    "total_complex_area": "아파트 총 공급면적",
    "household_area": "우리 집 공급면적",
    "total_repair_cost": "장기수선계획 총 수선비",
    "accumulation_rate": "해당기간 적립 요율",
    "period_amount": "해당 적용기간 적립 총액",
}

FORMULA_TEXT = {
    RATE: "(수선비 총액 × 적립요율) ÷ (총 공급면적 × 기간(월)) × 세대 공급면적",
    AMOUNT: "기간 적립 총액 ÷ (총 공급면적 × 기간(월)) × 세대 공급면적",
}


def missing_requirements(inputs: CalculationInputs) -> list[str]:
    """Field names whose value blocks the derivation, in precondition order."""
    missing: list[str] = []
    if inputs.duration_months <= 0:
        missing.append("duration_months")
    if inputs.total_complex_area <= 0:
        missing.append("total_complex_area")
    if inputs.household_area <= 0:
        missing.append("household_area")
    if inputs.mode == RATE:
        if inputs.total_repair_cost <= 0:
            missing.append("total_repair_cost")
        if inputs.accumulation_rate <= 0:
            missing.append("accumulation_rate")
    elif inputs.period_amount <= 0:
        missing.append("period_amount")
    return missing


def derive_result(inputs: CalculationInputs) -> CalculationResult | None:
    """Return the four derived amounts, or None when inputs are insufficient."""
    if inputs.duration_months <= 0 or inputs.total_complex_area <= 0 or inputs.household_area <= 0:
        return None

    if inputs.mode == RATE:
        if inputs.total_repair_cost <= 0 or inputs.accumulation_rate <= 0:
            return None
        period_target_amount = inputs.total_repair_cost * (inputs.accumulation_rate / 100)
    else:
        if inputs.period_amount <= 0:
            return None
        period_target_amount = float(inputs.period_amount)

    monthly_total_target = period_target_amount / inputs.duration_months
    monthly_rate_per_sqm = monthly_total_target / inputs.total_complex_area
    household_monthly_fee = monthly_rate_per_sqm * inputs.household_area

    return CalculationResult(
        period_target_amount=period_target_amount,
        monthly_total_target=monthly_total_target,
        monthly_rate_per_sqm=monthly_rate_per_sqm,
        household_monthly_fee=household_monthly_fee,
    )


def formula_text(mode: str) -> str:
    return FORMULA_TEXT.get(mode, FORMULA_TEXT[RATE])


def derivation_table(inputs: CalculationInputs, result: CalculationResult) -> pd.DataFrame:
    """Step-by-step breakdown used by the result panel and the PDF appendix."""
    if inputs.mode == RATE:
        first_formula = "수선비 총액 × 적립요율 ÷ 100"
    else:
        first_formula = "기간 적립 총액"
    rows = [
        {"Step": "기간 내 총 적립 목표", "Formula": first_formula, "Value": result.period_target_amount, "Unit": "원"},
        {
            "Step": "단지 전체 월 적립 목표",
            "Formula": f"총 적립 목표 ÷ {inputs.duration_months}개월",
            "Value": result.monthly_total_target,
            "Unit": "원/월",
        },
        {
            "Step": "㎡당 월 단가",
            "Formula": "월 적립 목표 ÷ 총 공급면적",
            "Value": result.monthly_rate_per_sqm,
            "Unit": "원/㎡",
        },
        {
            "Step": "세대별 월 부과액",
            "Formula": "㎡당 월 단가 × 세대 공급면적",
            "Value": result.household_monthly_fee,
            "Unit": "원/월",
        },
    ]
    return pd.DataFrame(rows, columns=["Step", "Formula", "Value", "Unit"])
