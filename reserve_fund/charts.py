"""Plotly figures for the result panel and report export."""

from __future__ import annotations

import plotly.graph_objects as go

from reserve_fund.schema import CalculationResult, round_half_up


FEE_COLORS = ["#6366f1", "#e2e8f0"]


def build_fee_share_figure(result: CalculationResult) -> go.Figure:
    """Donut of this household's monthly fee against the rest of the complex target."""
    household = result.household_monthly_fee
    rest = max(0.0, result.monthly_total_target - household)
    fig = go.Figure(
        go.Pie(
            labels=["세대부과액", "단지 내 기타 세대"],
            values=[household, rest],
            hole=0.55,
            sort=False,
            marker=dict(colors=FEE_COLORS),
            textinfo="percent",
            hovertemplate="%{label}: %{customdata}원<extra></extra>",
            customdata=[f"{round_half_up(household):,}", f"{round_half_up(rest):,}"],
        )
    )
    fig.update_layout(
        title="월 적립 목표 중 우리 집 비중",
        showlegend=True,
        margin=dict(l=20, r=20, t=60, b=20),
        annotations=[dict(text="납부 비중", x=0.5, y=0.5, showarrow=False, font=dict(size=13, color="#94a3b8"))],
    )
    return fig


def render_figure_png(fig: go.Figure, width_px: int = 900, height_px: int = 600) -> bytes:
    """Render a figure into PNG bytes using Kaleido."""
    if fig is None:
        raise ValueError("Figure is required.")
    width_px = max(480, int(width_px))
    height_px = max(320, int(height_px))
    fig = go.Figure(fig)
    fig.update_layout(template="plotly_white", width=width_px, height=height_px)
    try:
        image = fig.to_image(format="png", width=width_px, height=height_px, scale=1)
    except Exception as exc:
        raise RuntimeError("Chart image render failed.") from exc
    return bytes(image)
