"""Session state transitions: reconcile an edit, then re-derive the result."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from itertools import count
from typing import Any, Callable

from reserve_fund.engine import derive_result
from reserve_fund.formatting import format_area
from reserve_fund.period import apply_field_edit
from reserve_fund.schema import AreaLookupResult, CalculationInputs, CalculationResult, default_inputs


LOOKUP_NAME_REQUIRED = "아파트 단지명을 입력해주세요."


class AdviceStatus(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


@dataclass(frozen=True)
class CalculatorState:
    inputs: CalculationInputs
    result: CalculationResult | None = None


def recompute(inputs: CalculationInputs) -> CalculatorState:
    return CalculatorState(inputs=inputs, result=derive_result(inputs))


def start_session(reference_year: int | None = None) -> CalculatorState:
    return recompute(default_inputs(reference_year))


def apply_edit(
    state: CalculatorState,
    field_name: str,
    value: Any,
    reference_year: int | None = None,
) -> CalculatorState:
    """Apply one form edit; the result is always rebuilt from the new inputs."""
    inputs = apply_field_edit(state.inputs, field_name, value, reference_year)
    return recompute(inputs)


@dataclass(frozen=True)
class LookupNotice:
    """User-facing lookup outcome; ``complete`` is set only when both areas were filled."""

    text: str
    complete: bool = False


def lookup_message(lookup: AreaLookupResult) -> LookupNotice:
    filled_total = lookup.found and lookup.total_area > 0
    filled_household = lookup.found and lookup.household_area > 0
    if filled_total and filled_household:
        return LookupNotice(
            f"검색 성공! 총 공급면적과 세대 면적({format_area(lookup.household_area)})이 입력되었습니다.",
            complete=True,
        )
    if filled_total:
        return LookupNotice("총 공급면적만 확인되었습니다. 세대 면적은 직접 입력해주세요.")
    if filled_household:
        return LookupNotice("세대 면적만 확인되었습니다. 총 공급면적은 직접 입력해주세요.")
    return LookupNotice("정확한 면적 정보를 찾지 못했습니다. 아래 K-Apt 링크에서 확인 후 직접 입력해주세요.")


def apply_area_lookup(state: CalculatorState, lookup: AreaLookupResult) -> tuple[CalculatorState, LookupNotice]:
    """Copy usable lookup areas into the inputs; zero values leave fields alone."""
    if lookup.found:
        if lookup.total_area > 0:
            state = apply_edit(state, "total_complex_area", lookup.total_area)
        if lookup.household_area > 0:
            state = apply_edit(state, "household_area", lookup.household_area)
    return state, lookup_message(lookup)


@dataclass
class RequestSlot:
    """Tracks the single meaningful in-flight request for one collaborator.

    A newer ``begin`` supersedes any pending token, so only the latest
    completion is applied.
    """

    pending_token: int | None = None
    payload: Any = None
    _tokens: Any = field(default_factory=lambda: count(1), repr=False)

    @property
    def busy(self) -> bool:
        return self.pending_token is not None

    def begin(self) -> int:
        token = next(self._tokens)
        self.pending_token = token
        return token

    def complete(self, token: int, payload: Any) -> bool:
        if token != self.pending_token:
            return False
        self.payload = payload
        self.pending_token = None
        return True

    def release(self, token: int) -> None:
        if token == self.pending_token:
            self.pending_token = None

    def run(self, call: Callable[[], Any]) -> tuple[bool, Any]:
        """Run ``call`` under a fresh token; the slot never stays busy after it returns or raises."""
        token = self.begin()
        try:
            payload = call()
            return self.complete(token, payload), payload
        finally:
            self.release(token)
