"""PDF export of the current calculation as a one-document report."""

from __future__ import annotations

import html
import re
from copy import deepcopy
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Callable

import pandas as pd

from reserve_fund.engine import derivation_table, formula_text
from reserve_fund.formatting import (
    format_area,
    format_eok,
    format_input_value,
    format_period,
    format_rate_per_sqm,
    format_won,
)
from reserve_fund.schema import RATE, CalculationInputs, CalculationResult


DEFAULT_OPTIONS = {
    "title": "장기수선충당금 계산 결과",
    "font_name": "HYGothic-Medium",
    "chart_width_mm": 150,
    "chart_height_mm": 100,
}

DISCLAIMER = "본 계산 결과는 참고용이며, 실제 관리비 부과 내역과 차이가 있을 수 있습니다."
CHART_PLACEHOLDER = "차트 이미지를 생성하지 못했습니다."
REPORT_FILE_NAME = "장기수선충당금_계산결과.pdf"

_MARKDOWN_PREFIX = re.compile(r"^\s*(#{1,6}\s+|[-*+]\s+)")


def _merge_options(options: dict | None) -> dict:
    out = deepcopy(DEFAULT_OPTIONS)
    if isinstance(options, dict):
        out.update(options)
    return out


def _log_event(options: dict, *, level: str, event: str, message: str, context: dict[str, Any] | None = None) -> None:
    logger: Callable[..., Any] | None = options.get("log_event")
    if not callable(logger):
        return
    logger(level=level, event=event, message=message, context=context or {})


def _utc_iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_inputs_table(inputs: CalculationInputs) -> pd.DataFrame:
    rows = [{"항목": "계산 기준", "값": "해당기간 적립요율" if inputs.mode == RATE else "해당 적용기간 금액"}]
    if inputs.mode == RATE:
        rows.append({"항목": "장기수선계획 총 수선비", "값": f"{format_input_value(inputs.total_repair_cost) or '0'}원"})
        rows.append({"항목": "해당기간 적립 요율", "값": f"{inputs.accumulation_rate:g}%"})
    else:
        rows.append({"항목": "해당 적용기간 적립 총액", "값": f"{format_input_value(inputs.period_amount) or '0'}원"})
    rows.extend(
        [
            {"항목": "적용 기간", "값": format_period(inputs)},
            {"항목": "아파트 총 공급면적", "값": format_area(inputs.total_complex_area)},
            {"항목": "우리 집 공급면적", "값": format_area(inputs.household_area)},
        ]
    )
    return pd.DataFrame(rows, columns=["항목", "값"])


def build_results_table(result: CalculationResult) -> pd.DataFrame:
    rows = [
        {"항목": "우리 집 월 부과 금액", "값": f"{format_won(result.household_monthly_fee)}/월"},
        {"항목": "㎡당 월 단가", "값": format_rate_per_sqm(result.monthly_rate_per_sqm)},
        {"항목": "단지 전체 월 적립 목표", "값": format_won(result.monthly_total_target)},
        {"항목": "기간 내 총 적립 목표", "값": format_eok(result.period_target_amount)},
    ]
    return pd.DataFrame(rows, columns=["항목", "값"])


def _printable_derivation(inputs: CalculationInputs, result: CalculationResult) -> pd.DataFrame:
    out = derivation_table(inputs, result)
    out["Value"] = out["Value"].map(lambda v: f"{float(v):,.2f}")
    return out.rename(columns={"Step": "단계", "Formula": "계산식", "Value": "값", "Unit": "단위"})


def advice_paragraphs(advice_text: str) -> list[str]:
    """Flatten markdown advice into plain paragraphs; bullets become '• '."""
    paragraphs: list[str] = []
    for raw in str(advice_text or "").splitlines():
        line = raw.strip()
        if not line:
            continue
        is_bullet = bool(re.match(r"^[-*+]\s+", line))
        line = _MARKDOWN_PREFIX.sub("", line).replace("**", "").replace("__", "")
        paragraphs.append(f"• {line}" if is_bullet else line)
    return paragraphs


def build_report_sections(
    inputs: CalculationInputs,
    result: CalculationResult,
    advice_text: str = "",
    chart_png: bytes | None = None,
) -> list[dict]:
    sections = [
        {
            "title": "입력 정보",
            "paragraphs": [],
            "tables": [{"title": "", "dataframe": build_inputs_table(inputs)}],
            "charts": [],
        },
        {
            "title": "계산 결과",
            "paragraphs": [f"산출 공식: {formula_text(inputs.mode)}"],
            "tables": [
                {"title": "", "dataframe": build_results_table(result)},
                {"title": "단계별 산출 내역", "dataframe": _printable_derivation(inputs, result)},
            ],
            "charts": [{"title": "월 적립 목표 중 우리 집 비중", "image_bytes": chart_png}],
        },
    ]
    paragraphs = advice_paragraphs(advice_text)
    if paragraphs:
        sections.append({"title": "AI 분석 리포트", "paragraphs": paragraphs, "tables": [], "charts": []})
    return sections


def _reportlab_imports():
    from reportlab.lib import colors
    from reportlab.lib.pagesizes import A4
    from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
    from reportlab.lib.units import mm
    from reportlab.pdfbase import pdfmetrics
    from reportlab.pdfbase.cidfonts import UnicodeCIDFont
    from reportlab.platypus import Image, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

    return {
        "colors": colors,
        "A4": A4,
        "ParagraphStyle": ParagraphStyle,
        "getSampleStyleSheet": getSampleStyleSheet,
        "mm": mm,
        "pdfmetrics": pdfmetrics,
        "UnicodeCIDFont": UnicodeCIDFont,
        "Image": Image,
        "Paragraph": Paragraph,
        "SimpleDocTemplate": SimpleDocTemplate,
        "Spacer": Spacer,
        "Table": Table,
        "TableStyle": TableStyle,
    }


def _register_font(rl: dict, font_name: str) -> None:
    pdfmetrics = rl["pdfmetrics"]
    if font_name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(rl["UnicodeCIDFont"](font_name))


def _styles(rl: dict, font_name: str) -> dict:
    ParagraphStyle = rl["ParagraphStyle"]
    base = rl["getSampleStyleSheet"]()
    return {
        "Title": ParagraphStyle(name="ReportTitle", parent=base["Title"], fontName=font_name, fontSize=18, leading=24),
        "Heading": ParagraphStyle(name="ReportHeading", parent=base["Heading2"], fontName=font_name, fontSize=13, leading=18),
        "Body": ParagraphStyle(name="ReportBody", parent=base["BodyText"], fontName=font_name, fontSize=9.5, leading=14, wordWrap="CJK"),
        "Small": ParagraphStyle(name="ReportSmall", parent=base["BodyText"], fontName=font_name, fontSize=8, leading=11, wordWrap="CJK"),
        "Cell": ParagraphStyle(name="ReportCell", parent=base["BodyText"], fontName=font_name, fontSize=8.5, leading=11, wordWrap="CJK"),
    }


def _table_flowable(df: pd.DataFrame, rl: dict, styles: dict, font_name: str):
    Paragraph = rl["Paragraph"]
    colors = rl["colors"]
    header = [Paragraph(html.escape(str(c)), styles["Cell"]) for c in df.columns]
    body = [[Paragraph(html.escape(str(v)), styles["Cell"]) for v in row] for row in df.itertuples(index=False)]
    table = rl["Table"]([header] + body, repeatRows=1, hAlign="LEFT")
    table.setStyle(
        rl["TableStyle"](
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e0e7ff")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.HexColor("#312e81")),
                ("FONTNAME", (0, 0), (-1, -1), font_name),
                ("VALIGN", (0, 0), (-1, -1), "TOP"),
                ("GRID", (0, 0), (-1, -1), 0.3, colors.HexColor("#cbd5e1")),
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f8fafc")]),
            ]
        )
    )
    return table


def _build_reportlab_pdf(sections: list[dict], options: dict) -> bytes:
    rl = _reportlab_imports()
    mm = rl["mm"]
    Paragraph = rl["Paragraph"]
    Spacer = rl["Spacer"]
    font_name = str(options["font_name"])
    _register_font(rl, font_name)
    styles = _styles(rl, font_name)

    buf = BytesIO()
    doc = rl["SimpleDocTemplate"](
        buf,
        pagesize=rl["A4"],
        leftMargin=18 * mm,
        rightMargin=18 * mm,
        topMargin=16 * mm,
        bottomMargin=16 * mm,
        title=str(options["title"]),
    )

    story: list[Any] = [
        Paragraph(html.escape(str(options["title"])), styles["Title"]),
        Paragraph(f"생성 시각 (UTC): {html.escape(str(options.get('generated_at_utc') or _utc_iso_now()))}", styles["Small"]),
        Spacer(1, 6 * mm),
    ]
    for section in sections:
        story.append(Paragraph(html.escape(str(section.get("title", ""))), styles["Heading"]))
        for para in section.get("paragraphs", []):
            story.append(Paragraph(html.escape(str(para)), styles["Body"]))
        for table_spec in section.get("tables", []):
            if table_spec.get("title"):
                story.append(Paragraph(html.escape(str(table_spec["title"])), styles["Small"]))
            story.append(_table_flowable(table_spec["dataframe"], rl, styles, font_name))
            story.append(Spacer(1, 4 * mm))
        for chart in section.get("charts", []):
            image_bytes = chart.get("image_bytes")
            if image_bytes:
                story.append(
                    rl["Image"](
                        BytesIO(image_bytes),
                        width=float(options["chart_width_mm"]) * mm,
                        height=float(options["chart_height_mm"]) * mm,
                    )
                )
            else:
                story.append(Paragraph(CHART_PLACEHOLDER, styles["Small"]))
            story.append(Spacer(1, 4 * mm))
        story.append(Spacer(1, 4 * mm))
    story.append(Paragraph(DISCLAIMER, styles["Small"]))

    doc.build(story)
    return buf.getvalue()


def build_report_pdf_bytes(
    inputs: CalculationInputs,
    result: CalculationResult | None,
    advice_text: str = "",
    chart_png: bytes | None = None,
    options: dict | None = None,
) -> bytes:
    """Render the calculation report; there is nothing to export without a result."""
    if result is None:
        raise ValueError("A calculation result is required for export.")
    merged = _merge_options(options)
    sections = build_report_sections(inputs, result, advice_text, chart_png)
    if not chart_png:
        _log_event(
            merged,
            level="INFO",
            event="pdf_export_chart_placeholder",
            message="Report exported without chart image.",
        )
    return _build_reportlab_pdf(sections, merged)
