from __future__ import annotations

from pathlib import Path

import pytest
from streamlit.testing.v1 import AppTest

import reserve_fund.runtime_logging as runtime_logging
from reserve_fund.advisor import ADVICE_ERROR_TEXT
from reserve_fund.schema import AMOUNT, RANGE, current_year
from reserve_fund.session import LOOKUP_NAME_REQUIRED, AdviceStatus

APP_PATH = Path(__file__).resolve().parents[1] / "app.py"


@pytest.fixture(autouse=True)
def no_api_key(monkeypatch):
    for var in ("GEMINI_API_KEY", "API_KEY"):
        monkeypatch.setenv(var, "placeholder")
        monkeypatch.delenv(var)


def _assert_no_app_exceptions(at: AppTest) -> None:
    assert len(at.exception) == 0


def _started_app() -> AppTest:
    at = AppTest.from_file(str(APP_PATH))
    at.run(timeout=180)
    _assert_no_app_exceptions(at)
    return at


def _fill_reference_example(at: AppTest) -> None:
    for field, text in [
        ("total_repair_cost", "10,000,000,000"),
        ("accumulation_rate", "20"),
        ("total_complex_area", "150,000"),
        ("household_area", "84.9"),
    ]:
        at.text_input(key=f"txt_{field}").set_value(text)
        at.run(timeout=180)
    _assert_no_app_exceptions(at)


def test_app_initial_run_has_no_exceptions():
    at = _started_app()
    state = at.session_state["calc_state"]
    assert state.result is None
    assert state.inputs.duration_months == 60
    assert at.text_input(key="txt_duration_months").value == "60"


def test_reference_example_shows_household_fee():
    at = _started_app()
    _fill_reference_example(at)
    assert at.session_state["calc_state"].result.household_monthly_fee == pytest.approx(18_866.67, abs=0.01)
    assert at.metric[0].value == "18,867원/월"
    assert at.text_input(key="txt_total_repair_cost").value == "10,000,000,000"


def test_year_range_edit_snaps_end_year():
    at = _started_app()
    at.radio(key="period_mode_choice").set_value(RANGE)
    at.run(timeout=180)
    later = current_year() + 10
    at.text_input(key="txt_start_year").set_value(str(later))
    at.run(timeout=180)
    _assert_no_app_exceptions(at)
    inputs = at.session_state["calc_state"].inputs
    assert inputs.start_year == later
    assert inputs.end_year == later
    assert inputs.duration_months == 12
    assert at.text_input(key="txt_end_year").value == str(later)


def test_mode_switch_keeps_rate_fields():
    at = _started_app()
    _fill_reference_example(at)
    at.radio(key="mode_choice").set_value(AMOUNT)
    at.run(timeout=180)
    _assert_no_app_exceptions(at)
    state = at.session_state["calc_state"]
    assert state.result is None
    assert state.inputs.total_repair_cost == 10_000_000_000


def test_advice_without_api_key_shows_error():
    at = _started_app()
    _fill_reference_example(at)
    at.button(key="consult_ai").click()
    at.run(timeout=180)
    _assert_no_app_exceptions(at)
    assert at.session_state["advice_status"] == AdviceStatus.ERROR
    assert at.error[0].value == ADVICE_ERROR_TEXT


def test_lookup_requires_apartment_name():
    at = _started_app()
    at.button(key="apt_search").click()
    at.run(timeout=180)
    _assert_no_app_exceptions(at)
    assert at.session_state["lookup_message"] == LOOKUP_NAME_REQUIRED
    assert any(w.value == LOOKUP_NAME_REQUIRED for w in at.warning)
    assert at.session_state["lookup_complete"] is False


def test_diagnostics_render_partial_and_undecodable_log_lines():
    log_file = runtime_logging.RUNTIME_EVENTS_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    log_file.write_bytes(
        b'{"event":"legacy"}\n'
        b'{"timestamp_utc":"2026-01-01T00:00:00+00:00","level":"ERROR","event":"advice_request_failed",'
        b'"message":"failed","context":{"model":"m"},"exception_type":"ConnectionError","exception_message":"offline"}\n'
        b"\xff\xfe garbage\n"
    )
    at = _started_app()
    frame = at.dataframe[0].value
    assert list(frame.columns[:7]) == [
        "timestamp_utc",
        "level",
        "event",
        "message",
        "exception_type",
        "exception_message",
        "context",
    ]
    assert frame["event"].tolist() == ["legacy", "advice_request_failed", "log_parse_error"]
    assert frame.loc[1, "context"] == '{"model": "m"}'
