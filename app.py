import asyncio
import json

import pandas as pd
import streamlit as st

from reserve_fund.advisor import ADVICE_ERROR_TEXT, request_advice
from reserve_fund.area_lookup import lookup_complex_area
from reserve_fund.charts import build_fee_share_figure, render_figure_png
from reserve_fund.config import load_settings
from reserve_fund.engine import REQUIREMENT_LABELS, derivation_table, formula_text, missing_requirements
from reserve_fund.formatting import (
    clean_numeric_text,
    format_eok,
    format_input_value,
    format_rate_per_sqm,
    format_won,
    parse_numeric_text,
)
from reserve_fund.input_metadata import FIELD_SPECS, NUMERIC_FIELDS, advisory_warnings, help_with_guidance
from reserve_fund.pdf_export import REPORT_FILE_NAME, build_report_pdf_bytes
from reserve_fund.runtime_logging import (
    append_runtime_event,
    install_global_exception_logging,
    read_runtime_events,
    runtime_log_path,
)
from reserve_fund.schema import AMOUNT, DURATION, RANGE, RATE, current_year
from reserve_fund.session import (
    LOOKUP_NAME_REQUIRED,
    AdviceStatus,
    RequestSlot,
    apply_area_lookup,
    apply_edit,
    start_session,
)


install_global_exception_logging()

SETTINGS = load_settings()
REFERENCE_YEAR = current_year()
K_APT_URL = "https://www.k-apt.go.kr/web/main/index.do"

MODE_LABELS = {RATE: "해당기간 적립요율", AMOUNT: "해당 적용기간 금액"}
PERIOD_MODE_LABELS = {DURATION: "단순 개월 입력", RANGE: "적립 기간(년도) 설정"}

UI_DEFAULTS = {
    "apt_name": "",
    "lookup_message": "",
    "lookup_complete": False,
    "lookup_sources": [],
    "advice_status": AdviceStatus.IDLE,
    "advice_text": "",
    "pdf_bytes": None,
    "pdf_signature": None,
    "runtime_log_limit": 50,
}


def _text_key(field: str) -> str:
    return f"txt_{field}"


def _state():
    return st.session_state["calc_state"]


def _format_field(field: str, value) -> str:
    return format_input_value(value or 0, use_commas=FIELD_SPECS[field]["use_commas"])


def _sync_text_buffers(previous, current, edited: str | None = None) -> None:
    """Rewrite buffers whose model value changed outside the edited widget."""
    for field in NUMERIC_FIELDS:
        new_value = getattr(current.inputs, field)
        if field == edited or getattr(previous.inputs, field) != new_value:
            st.session_state[_text_key(field)] = _format_field(field, new_value)


def _commit_edit(field: str, value) -> None:
    previous = _state()
    st.session_state["calc_state"] = apply_edit(previous, field, value, REFERENCE_YEAR)
    _sync_text_buffers(previous, _state(), edited=field)


def _on_text_change(field: str) -> None:
    spec = FIELD_SPECS[field]
    cleaned = clean_numeric_text(st.session_state[_text_key(field)])
    if cleaned is None:
        st.session_state[_text_key(field)] = _format_field(field, getattr(_state().inputs, field))
        return
    _commit_edit(field, parse_numeric_text(cleaned, integer=spec["integer"]))


def _on_mode_change() -> None:
    _commit_edit("mode", st.session_state["mode_choice"])


def _on_period_mode_change() -> None:
    _commit_edit("period_input_mode", st.session_state["period_mode_choice"])


def _run_area_lookup() -> None:
    name = str(st.session_state.get("apt_name", "")).strip()
    if not name:
        st.session_state["lookup_message"] = LOOKUP_NAME_REQUIRED
        st.session_state["lookup_complete"] = False
        return
    slot: RequestSlot = st.session_state["lookup_slot"]
    st.session_state["lookup_message"] = ""
    st.session_state["lookup_sources"] = []
    applied, lookup = slot.run(lambda: asyncio.run(lookup_complex_area(name, settings=SETTINGS)))
    if not applied:
        return
    previous = _state()
    st.session_state["calc_state"], notice = apply_area_lookup(previous, lookup)
    _sync_text_buffers(previous, _state())
    st.session_state["lookup_message"] = notice.text
    st.session_state["lookup_complete"] = notice.complete
    st.session_state["lookup_sources"] = [{"title": s.title, "uri": s.uri} for s in lookup.sources]
    append_runtime_event(
        level="INFO",
        event="area_lookup_completed",
        message=notice.text,
        context={"apartment_name": name, "found": lookup.found, "source_count": len(lookup.sources)},
    )


def _run_advice() -> None:
    state = _state()
    if state.result is None:
        return
    slot: RequestSlot = st.session_state["advice_slot"]
    st.session_state["advice_status"] = AdviceStatus.LOADING
    st.session_state["advice_text"] = ""
    try:
        applied, outcome = slot.run(lambda: asyncio.run(request_advice(state.inputs, state.result, settings=SETTINGS)))
    except Exception:
        st.session_state["advice_status"] = AdviceStatus.ERROR
        st.session_state["advice_text"] = ADVICE_ERROR_TEXT
        raise
    if not applied:
        return
    st.session_state["advice_status"] = AdviceStatus.SUCCESS if outcome.ok else AdviceStatus.ERROR
    st.session_state["advice_text"] = outcome.text


def _report_signature() -> tuple:
    state = _state()
    return (state.inputs, state.result, st.session_state.get("advice_text", ""))


def _prepare_pdf() -> None:
    state = _state()
    if state.result is None:
        return
    chart_png = None
    try:
        chart_png = render_figure_png(build_fee_share_figure(state.result))
    except RuntimeError as exc:
        append_runtime_event(
            level="WARNING",
            event="pdf_chart_render_failed",
            message="Chart image unavailable; exporting report without it.",
            exc=exc,
        )
    advice = st.session_state["advice_text"] if st.session_state["advice_status"] == AdviceStatus.SUCCESS else ""
    st.session_state["pdf_bytes"] = build_report_pdf_bytes(
        state.inputs,
        state.result,
        advice_text=advice,
        chart_png=chart_png,
        options={"log_event": append_runtime_event},
    )
    st.session_state["pdf_signature"] = _report_signature()


def _runtime_events_frame(events: list[dict]) -> pd.DataFrame:
    runtime_df = pd.DataFrame(events)
    preferred_cols = [
        "timestamp_utc",
        "level",
        "event",
        "message",
        "exception_type",
        "exception_message",
        "context",
    ]
    runtime_cols = [c for c in preferred_cols if c in runtime_df.columns] + [
        c for c in runtime_df.columns if c not in preferred_cols
    ]
    runtime_df = runtime_df[runtime_cols].copy()
    # Nested values render as JSON text.
    for col in runtime_df.columns:
        runtime_df[col] = runtime_df[col].map(
            lambda v: json.dumps(v, ensure_ascii=False, default=str) if isinstance(v, (dict, list)) else v
        )
    return runtime_df


def _numeric_input(field: str) -> None:
    spec = FIELD_SPECS[field]
    label = f"{spec['label']} ({spec['unit']})" if spec["unit"] not in spec["label"] else spec["label"]
    st.text_input(
        label,
        key=_text_key(field),
        placeholder=spec["placeholder"],
        help=help_with_guidance(field, spec["sub_label"]) or None,
        on_change=_on_text_change,
        args=(field,),
    )
    if spec["sub_label"]:
        st.caption(spec["sub_label"])


st.set_page_config(page_title="장기수선충당금 계산기", layout="wide")

st.session_state.setdefault("calc_state", start_session(REFERENCE_YEAR))
st.session_state.setdefault("advice_slot", RequestSlot())
st.session_state.setdefault("lookup_slot", RequestSlot())
for k, v in UI_DEFAULTS.items():
    st.session_state.setdefault(k, v)
for field in NUMERIC_FIELDS:
    st.session_state.setdefault(_text_key(field), _format_field(field, getattr(_state().inputs, field)))
st.session_state.setdefault("mode_choice", _state().inputs.mode)
st.session_state.setdefault("period_mode_choice", _state().inputs.period_input_mode)

st.title("장기수선충당금 적립현황")
st.caption("주택관리규약에 따른 적립 요율 또는 계획 금액을 기반으로 우리 집의 장기수선충당금을 미리 계산해보세요.")

input_col, result_col = st.columns(2, gap="large")

with input_col:
    st.subheader("장기수선충당금 산출 정보")
    st.caption("관리소 또는 장기수선계획서를 참고하여 입력해주세요.")

    st.radio(
        "계산 기준 선택",
        options=[RATE, AMOUNT],
        format_func=MODE_LABELS.get,
        key="mode_choice",
        horizontal=True,
        on_change=_on_mode_change,
    )
    if _state().inputs.mode == RATE:
        _numeric_input("total_repair_cost")
        _numeric_input("accumulation_rate")
    else:
        _numeric_input("period_amount")

    st.divider()
    st.radio(
        "적용 기간 설정",
        options=[DURATION, RANGE],
        format_func=PERIOD_MODE_LABELS.get,
        key="period_mode_choice",
        horizontal=True,
        on_change=_on_period_mode_change,
    )
    if _state().inputs.period_input_mode == DURATION:
        _numeric_input("duration_months")
    else:
        y1, y2 = st.columns(2)
        with y1:
            _numeric_input("start_year")
        with y2:
            _numeric_input("end_year")
        st.metric(
            "자동 산출 기간",
            f"{_state().inputs.duration_months}개월",
            help="시작~종료 연도 기준 (1년=12개월)",
        )

    st.divider()
    head_left, head_right = st.columns([3, 2])
    head_left.markdown("**아파트 면적 정보 찾기**")
    head_right.link_button("K-Apt (공동주택관리정보) 바로가기", K_APT_URL)
    search_col, button_col = st.columns([4, 1])
    search_col.text_input(
        "아파트 단지명",
        key="apt_name",
        placeholder="예: 00동 XX아파트 (평형 포함 검색 권장)",
        label_visibility="collapsed",
    )
    button_col.button(
        "AI 검색",
        key="apt_search",
        on_click=_run_area_lookup,
        disabled=st.session_state["lookup_slot"].busy,
    )
    lookup_message = st.session_state.get("lookup_message", "")
    if lookup_message:
        if st.session_state.get("lookup_complete"):
            st.success(lookup_message)
        else:
            st.warning(lookup_message)
    sources = st.session_state.get("lookup_sources") or []
    if sources:
        st.caption("참조: " + " · ".join(f"[{s['title']}]({s['uri']})" for s in sources))

    _numeric_input("total_complex_area")
    _numeric_input("household_area")

    st.info(f"💡 장기수선충당금 산출 공식\n\n{formula_text(_state().inputs.mode)}")

with result_col:
    state = _state()
    st.subheader("계산 결과")
    if state.result is None:
        st.info("왼쪽의 항목을 입력하면 자동으로 계산 결과가 표시됩니다.")
        missing = missing_requirements(state.inputs)
        if missing:
            st.caption("필요한 항목: " + ", ".join(REQUIREMENT_LABELS[m] for m in missing))
    else:
        result = state.result
        st.metric("우리 집 월 부과 금액", f"{format_won(result.household_monthly_fee)}/월")
        m1, m2 = st.columns(2)
        m1.metric("㎡당 월 단가", format_rate_per_sqm(result.monthly_rate_per_sqm))
        m2.metric("기간 내 총 적립 목표", format_eok(result.period_target_amount))

        st.plotly_chart(build_fee_share_figure(result), use_container_width=True)

        breakdown = derivation_table(state.inputs, result)
        st.dataframe(
            breakdown.assign(Value=breakdown["Value"].map(lambda v: f"{v:,.2f}")),
            hide_index=True,
            use_container_width=True,
        )

        for warning in advisory_warnings(state.inputs, result):
            st.warning(warning)

        a_col, p_col = st.columns(2)
        a_col.button(
            "AI 분석 요청",
            key="consult_ai",
            on_click=_run_advice,
            disabled=st.session_state["advice_slot"].busy,
        )
        p_col.button("PDF 생성", key="prepare_pdf", on_click=_prepare_pdf)
        if st.session_state.get("pdf_bytes") and st.session_state.get("pdf_signature") == _report_signature():
            p_col.download_button(
                "PDF 다운로드",
                data=st.session_state["pdf_bytes"],
                file_name=REPORT_FILE_NAME,
                mime="application/pdf",
            )

    status = st.session_state["advice_status"]
    if status != AdviceStatus.IDLE:
        st.subheader("AI 분석 리포트")
        if status == AdviceStatus.ERROR:
            st.error(st.session_state["advice_text"])
        elif status == AdviceStatus.SUCCESS:
            st.markdown(st.session_state["advice_text"])

with st.expander("Runtime Diagnostics", expanded=False):
    st.caption(f"Log file: `{runtime_log_path()}`")
    st.number_input("Events to show", min_value=10, max_value=500, step=10, key="runtime_log_limit")
    events = read_runtime_events(int(st.session_state["runtime_log_limit"]))
    if events:
        st.dataframe(_runtime_events_frame(events), hide_index=True)
    else:
        st.caption("No runtime events recorded.")

st.caption("본 계산 결과는 참고용이며, 실제 관리비 부과 내역과 차이가 있을 수 있습니다.")
