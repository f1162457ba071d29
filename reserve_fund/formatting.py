"""Text buffer parsing and display formatting for numeric form fields."""

from __future__ import annotations

import re
from typing import Any

from reserve_fund.schema import RANGE, CalculationInputs, non_negative_number, round_half_up


_DISALLOWED_CHARS = re.compile(r"[^\d.,]")
MAX_INPUT_FRACTION_DIGITS = 4
WON_PER_EOK = 100_000_000


def clean_numeric_text(text: str) -> str | None:
    """Strip everything but digits, dots and commas.

    Returns None when the text holds more than one decimal point; the caller
    keeps its previous buffer in that case. "84." is returned unchanged so a
    decimal can still be typed.
    """
    cleaned = _DISALLOWED_CHARS.sub("", str(text or ""))
    if cleaned.count(".") > 1:
        return None
    return cleaned


def parse_numeric_text(text: Any, integer: bool = False) -> float | int:
    """Numeric value of a text buffer; 0 when empty or unparseable."""
    cleaned = clean_numeric_text(text)
    if cleaned is None:
        return 0 if integer else 0.0
    value = non_negative_number(cleaned.replace(",", ""))
    return int(value) if integer else value


def _trim_fraction(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_input_value(value: Any, use_commas: bool = True) -> str:
    """Buffer text for a model value; blank for 0 so placeholders show."""
    num = non_negative_number(value)
    if num == 0:
        return ""
    if float(num).is_integer():
        return f"{int(num):,}" if use_commas else str(int(num))
    if use_commas:
        return _trim_fraction(f"{num:,.{MAX_INPUT_FRACTION_DIGITS}f}")
    return _trim_fraction(f"{num:.{MAX_INPUT_FRACTION_DIGITS}f}")


def format_won(value: float) -> str:
    return f"{round_half_up(value):,}원"


def format_rate_per_sqm(value: float) -> str:
    return f"{float(value):,.1f}원"


def format_eok(value: float) -> str:
    return f"{float(value) / WON_PER_EOK:,.2f}억원"


def format_area(value: float) -> str:
    return f"{_trim_fraction(f'{float(value):,.{MAX_INPUT_FRACTION_DIGITS}f}')}m²"


def format_period(inputs: CalculationInputs) -> str:
    if inputs.period_input_mode == RANGE and inputs.start_year and inputs.end_year:
        return f"{inputs.start_year}년 ~ {inputs.end_year}년 ({inputs.duration_months}개월간)"
    return f"{inputs.duration_months}개월"
