from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

import reserve_fund.runtime_logging as runtime_logging
from reserve_fund.schema import AMOUNT, RATE, CalculationInputs


@pytest.fixture(autouse=True)
def isolated_runtime_log(tmp_path, monkeypatch) -> Path:
    log_dir = Path(tmp_path) / "runtime"
    monkeypatch.setattr(runtime_logging, "LOG_DIR", log_dir)
    monkeypatch.setattr(runtime_logging, "RUNTIME_EVENTS_LOG_FILE", log_dir / "calculator_events.jsonl")
    return log_dir


@pytest.fixture
def rate_inputs() -> CalculationInputs:
    return CalculationInputs(
        mode=RATE,
        total_repair_cost=10_000_000_000,
        accumulation_rate=20,
        duration_months=60,
        start_year=2025,
        end_year=2029,
        total_complex_area=150_000,
        household_area=84.9,
    )


@pytest.fixture
def amount_inputs(rate_inputs) -> CalculationInputs:
    return CalculationInputs(
        mode=AMOUNT,
        period_amount=2_000_000_000,
        duration_months=rate_inputs.duration_months,
        start_year=rate_inputs.start_year,
        end_year=rate_inputs.end_year,
        total_complex_area=rate_inputs.total_complex_area,
        household_area=rate_inputs.household_area,
    )


class FakeModels:
    """Stands in for ``client.aio.models``; records each request."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    async def generate_content(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def fake_genai():
    """Build a (client, models) pair whose async call returns ``response`` or raises ``error``."""

    def _make(response=None, error: Exception | None = None):
        models = FakeModels(response=response, error=error)
        return SimpleNamespace(aio=SimpleNamespace(models=models)), models

    return _make
