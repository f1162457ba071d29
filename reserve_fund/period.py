"""Period reconciliation between month duration and start/end year views."""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from reserve_fund.schema import (
    COST_BASIS_MODES,
    INPUT_FIELD_NAMES,
    PERIOD_INPUT_MODES,
    CalculationInputs,
    current_year,
    non_negative_number,
    optional_year,
    round_half_up,
)


RANGE_SIDES = {"start", "end"}
MONTHS_PER_YEAR = 12


def duration_to_years(duration_months: float) -> int:
    """Whole years shown for a month count; at least one year."""
    return max(1, round_half_up(float(duration_months) / MONTHS_PER_YEAR))


def range_to_months(start_year: int, end_year: int) -> int:
    """Inclusive-year span in months; 2025..2030 is 72 months."""
    return (int(end_year) - int(start_year) + 1) * MONTHS_PER_YEAR


def apply_duration_edit(inputs: CalculationInputs, new_duration_months: int) -> CalculationInputs:
    """Set the duration exactly and derive the end year from a fixed start year.

    The year view is approximate: 65 months from 2025 shows 2025..2029, which
    reads back as 60 months.
    """
    updated = replace(inputs, duration_months=new_duration_months)
    if inputs.start_year:
        years = duration_to_years(new_duration_months)
        updated = replace(updated, end_year=inputs.start_year + years - 1)
    return updated


def apply_range_edit(
    inputs: CalculationInputs,
    side: str,
    year: int | None,
    reference_year: int | None = None,
) -> CalculationInputs:
    """Move one range boundary, dragging the other along, then resync months.

    A blank year (``None`` or 0) clears that boundary and zeroes the duration
    so the engine reports the inputs as insufficient.
    """
    if side not in RANGE_SIDES:
        raise ValueError(f"Unsupported range side: {side}")

    if not year:
        if side == "start":
            return replace(inputs, start_year=None, duration_months=0)
        return replace(inputs, end_year=None, duration_months=0)

    new_start = inputs.start_year or reference_year or current_year()
    new_end = inputs.end_year or new_start

    if side == "start":
        new_start = int(year)
        if new_start > new_end:
            new_end = new_start
    else:
        new_end = int(year)
        if new_end < new_start:
            new_start = new_end

    return replace(
        inputs,
        start_year=new_start,
        end_year=new_end,
        duration_months=range_to_months(new_start, new_end),
    )


def apply_mode_switch(inputs: CalculationInputs, mode: str) -> CalculationInputs:
    if mode not in COST_BASIS_MODES:
        raise ValueError(f"Unsupported calculation mode: {mode}")
    return replace(inputs, mode=mode)


def apply_period_mode_switch(inputs: CalculationInputs, period_input_mode: str) -> CalculationInputs:
    if period_input_mode not in PERIOD_INPUT_MODES:
        raise ValueError(f"Unsupported period input mode: {period_input_mode}")
    return replace(inputs, period_input_mode=period_input_mode)


def apply_field_edit(
    inputs: CalculationInputs,
    field: str,
    value: Any,
    reference_year: int | None = None,
) -> CalculationInputs:
    """Route one edited form field through the matching reconciliation rule."""
    if field not in INPUT_FIELD_NAMES:
        raise KeyError(field)

    if field == "mode":
        return apply_mode_switch(inputs, value)
    if field == "period_input_mode":
        return apply_period_mode_switch(inputs, value)
    if field == "duration_months":
        return apply_duration_edit(inputs, int(non_negative_number(value)))
    if field == "start_year":
        return apply_range_edit(inputs, "start", optional_year(value), reference_year)
    if field == "end_year":
        return apply_range_edit(inputs, "end", optional_year(value), reference_year)
    return replace(inputs, **{field: non_negative_number(value)})
