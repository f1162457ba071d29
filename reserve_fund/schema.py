"""Calculator input/result records, enumerations, and boundary coercion."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields
from datetime import date
from typing import Any


RATE = "RATE"
AMOUNT = "AMOUNT"
COST_BASIS_MODES = {RATE, AMOUNT}

DURATION = "DURATION"
RANGE = "RANGE"
PERIOD_INPUT_MODES = {DURATION, RANGE}

DEFAULT_DURATION_MONTHS = 60
DEFAULT_DURATION_YEARS = 5

MONEY_FIELDS = ("period_amount", "total_repair_cost")
AREA_FIELDS = ("total_complex_area", "household_area")
YEAR_FIELDS = ("start_year", "end_year")


@dataclass(frozen=True)
class CalculationInputs:
    """Single source of truth for one calculator session.

    Values are replaced wholesale on every edit; ``duration_months`` is the
    period consumed by the engine regardless of ``period_input_mode``.
    """

    mode: str = RATE
    period_input_mode: str = DURATION
    period_amount: float = 0.0
    total_repair_cost: float = 0.0
    accumulation_rate: float = 0.0
    duration_months: int = DEFAULT_DURATION_MONTHS
    start_year: int | None = None
    end_year: int | None = None
    total_complex_area: float = 0.0
    household_area: float = 0.0


@dataclass(frozen=True)
class CalculationResult:
    period_target_amount: float
    monthly_total_target: float
    monthly_rate_per_sqm: float
    household_monthly_fee: float


@dataclass(frozen=True)
class Source:
    title: str
    uri: str


@dataclass(frozen=True)
class AreaLookupResult:
    """Best-effort area estimates for a named complex; 0 means not found."""

    total_area: float = 0.0
    household_area: float = 0.0
    found: bool = False
    sources: tuple[Source, ...] = ()


INPUT_FIELD_NAMES = tuple(f.name for f in fields(CalculationInputs))


def current_year() -> int:
    return date.today().year


def default_inputs(reference_year: int | None = None) -> CalculationInputs:
    start = int(reference_year) if reference_year else current_year()
    return CalculationInputs(
        duration_months=DEFAULT_DURATION_MONTHS,
        start_year=start,
        end_year=start + DEFAULT_DURATION_YEARS - 1,
    )


def inputs_to_dict(inputs: CalculationInputs) -> dict[str, Any]:
    return asdict(inputs)


def result_to_dict(result: CalculationResult | None) -> dict[str, float] | None:
    if result is None:
        return None
    return asdict(result)


def non_negative_number(value: Any) -> float:
    """Map any incoming value to a finite non-negative float, 0 when unusable."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(num) or math.isinf(num) or num < 0:
        return 0.0
    return num


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative values (2.5 -> 3)."""
    return int(math.floor(float(value) + 0.5))


def _is_unusable(value: Any) -> bool:
    if value is None or (isinstance(value, str) and not value.strip()):
        return False
    if isinstance(value, bool):
        return True
    try:
        num = float(str(value).replace(",", "")) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        return True
    return math.isnan(num) or math.isinf(num) or num < 0


def optional_year(value: Any) -> int | None:
    year = int(non_negative_number(value))
    return year if year > 0 else None


def coerce_inputs(raw: dict) -> tuple[CalculationInputs, list[str], list[str]]:
    """Build a ``CalculationInputs`` from a loose mapping.

    Returns (inputs, warnings, unknown_keys). Fields absent from ``raw`` keep
    their session defaults.
    """
    warnings: list[str] = []
    unknown_keys: list[str] = []
    payload = raw if isinstance(raw, dict) else {}
    base = inputs_to_dict(default_inputs())

    for key, value in payload.items():
        if key in base:
            base[key] = value
        else:
            unknown_keys.append(key)

    mode = str(base["mode"]).upper()
    if mode not in COST_BASIS_MODES:
        warnings.append("mode invalid; reset to RATE.")
        mode = RATE
    base["mode"] = mode

    period_mode = str(base["period_input_mode"]).upper()
    if period_mode not in PERIOD_INPUT_MODES:
        warnings.append("period_input_mode invalid; reset to DURATION.")
        period_mode = DURATION
    base["period_input_mode"] = period_mode

    for key in MONEY_FIELDS + AREA_FIELDS + ("accumulation_rate",):
        num = non_negative_number(base[key])
        if num == 0.0 and _is_unusable(base[key]):
            warnings.append(f"{key} invalid and reset to 0.")
        base[key] = num

    base["duration_months"] = int(non_negative_number(base["duration_months"]))
    for key in YEAR_FIELDS:
        base[key] = optional_year(base[key])

    return CalculationInputs(**base), warnings, sorted(unknown_keys)
