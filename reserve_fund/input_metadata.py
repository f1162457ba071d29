"""Form field metadata and advisory range checks."""

from __future__ import annotations

from typing import Any

from reserve_fund.schema import AMOUNT, RATE, CalculationInputs, CalculationResult


FIELD_SPECS: dict[str, dict[str, Any]] = {
    "total_repair_cost": {
        "label": "장기수선계획 총 수선비",
        "sub_label": "계획 기간(보통 40~60년) 동안 소요되는 총 예상 비용",
        "unit": "원",
        "placeholder": "예: 10,000,000,000",
        "use_commas": True,
        "integer": False,
        "modes": {RATE},
    },
    "accumulation_rate": {
        "label": "해당기간 적립 요율",
        "sub_label": "전체 계획 대비 해당 기간의 적립 비율",
        "unit": "%",
        "placeholder": "예: 20",
        "use_commas": True,
        "integer": False,
        "modes": {RATE},
    },
    "period_amount": {
        "label": "해당 적용기간 적립 총액",
        "sub_label": "설정된 기간 동안 적립하기로 계획된 총 금액",
        "unit": "원",
        "placeholder": "예: 2,000,000,000",
        "use_commas": True,
        "integer": False,
        "modes": {AMOUNT},
    },
    "duration_months": {
        "label": "적용 기간 (개월)",
        "sub_label": "위 요율 또는 금액을 적용하는 총 기간",
        "unit": "개월",
        "placeholder": "예: 60",
        "use_commas": False,
        "integer": True,
        "modes": {RATE, AMOUNT},
    },
    "start_year": {
        "label": "시작 연도",
        "sub_label": "",
        "unit": "년",
        "placeholder": "2025",
        "use_commas": False,
        "integer": True,
        "modes": {RATE, AMOUNT},
    },
    "end_year": {
        "label": "종료 연도",
        "sub_label": "",
        "unit": "년",
        "placeholder": "2030",
        "use_commas": False,
        "integer": True,
        "modes": {RATE, AMOUNT},
    },
    "total_complex_area": {
        "label": "아파트 총 공급면적",
        "sub_label": "관리비 부과 대상 전체 면적의 합계",
        "unit": "m²",
        "placeholder": "예: 150,000",
        "use_commas": True,
        "integer": False,
        "modes": {RATE, AMOUNT},
    },
    "household_area": {
        "label": "우리 집 공급면적",
        "sub_label": "관리비 고지서 또는 K-Apt에서 확인 가능",
        "unit": "m²",
        "placeholder": "예: 84.9",
        "use_commas": True,
        "integer": False,
        "modes": {RATE, AMOUNT},
    },
}

NUMERIC_FIELDS = tuple(FIELD_SPECS.keys())

INPUT_GUIDANCE: dict[str, dict[str, Any]] = {
    "accumulation_rate": {"min": 0.5, "max": 60.0, "note": "장기수선계획의 기간별 적립 요율은 보통 이 범위에 있습니다."},
    "duration_months": {"min": 12, "max": 120, "note": "적립 요율은 대개 1~10년 단위 구간으로 정합니다."},
    "household_area": {"min": 20.0, "max": 300.0, "note": "공급면적 기준이며 전용면적보다 큽니다."},
    "total_complex_area": {"min": 1000.0, "max": 2000000.0, "note": "단지 전체의 관리비 부과 면적 합계입니다."},
}

RESULT_GUIDANCE: dict[str, dict[str, Any]] = {
    "monthly_rate_per_sqm": {"min": 100.0, "max": 300.0, "note": "일반적인 m²당 월 부과 수준입니다."},
}


def _fmt(v: float) -> str:
    if abs(v - round(v)) < 1e-9:
        return f"{int(round(v)):,}"
    return f"{v:,.3f}".rstrip("0").rstrip(".")


def help_with_guidance(key: str, base_help: str) -> str:
    g = INPUT_GUIDANCE.get(key)
    if not g:
        return base_help
    guidance = f"권장 범위: {_fmt(g['min'])} ~ {_fmt(g['max'])}. {g['note']}"
    return f"{base_help} {guidance}".strip()


def _out_of_range(name: str, value: float, g: dict[str, Any]) -> str | None:
    if g["min"] <= value <= g["max"]:
        return None
    return f"{name}={_fmt(value)} 값이 권장 범위 [{_fmt(g['min'])}, {_fmt(g['max'])}]를 벗어났습니다. {g['note']}"


def advisory_warnings(inputs: CalculationInputs, result: CalculationResult | None = None) -> list[str]:
    """Non-blocking range notes; blank (0) fields are skipped."""
    warnings: list[str] = []
    for key, g in INPUT_GUIDANCE.items():
        if FIELD_SPECS.get(key, {}).get("modes") and inputs.mode not in FIELD_SPECS[key]["modes"]:
            continue
        value = float(getattr(inputs, key))
        if value <= 0:
            continue
        message = _out_of_range(FIELD_SPECS[key]["label"], value, g)
        if message:
            warnings.append(message)
    if result is not None:
        for key, g in RESULT_GUIDANCE.items():
            message = _out_of_range("㎡당 월 단가", float(getattr(result, key)), g)
            if message:
                warnings.append(message)
    return warnings
