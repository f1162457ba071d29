"""Natural-language advice on a computed fee, generated with Gemini."""

from __future__ import annotations

from dataclasses import dataclass

from google.genai import types as genai_types

from reserve_fund.config import Settings, load_settings, make_genai_client
from reserve_fund.formatting import format_input_value, format_period, format_won
from reserve_fund.runtime_logging import append_runtime_event
from reserve_fund.schema import RATE, CalculationInputs, CalculationResult


EMPTY_ADVICE_TEXT = "죄송합니다. 조언을 생성하지 못했습니다."
ADVICE_ERROR_TEXT = "오류가 발생했습니다. 잠시 후 다시 시도해주세요."


@dataclass(frozen=True)
class AdviceOutcome:
    ok: bool
    text: str


def build_advice_prompt(inputs: CalculationInputs, result: CalculationResult) -> str:
    if inputs.mode == RATE:
        input_block = (
            "[입력 데이터 - 요율 방식]\n"
            f"- 계획 기간 전체 수선비 총액: {format_input_value(inputs.total_repair_cost) or '0'}원\n"
            f"- 해당 기간 적립 요율: {inputs.accumulation_rate:g}%"
        )
    else:
        input_block = (
            "[입력 데이터 - 금액 방식]\n"
            f"- 해당 기간 적립 목표 금액: {format_input_value(inputs.period_amount) or '0'}원"
        )

    return "\n".join(
        [
            "당신은 대한민국 아파트 관리비 및 장기수선충당금 전문가입니다.",
            "사용자가 다음과 같은 조건으로 장기수선충당금을 계산했습니다.",
            "",
            input_block,
            "[공통 입력 데이터]",
            f"- 적립 적용 기간: {format_period(inputs)}",
            f"- 단지 총 면적: {format_input_value(inputs.total_complex_area) or '0'}m²",
            f"- 우리 집 면적: {inputs.household_area:g}m²",
            "",
            "[계산 결과]",
            f"- m²당 단가: {format_won(result.monthly_rate_per_sqm)}",
            f"- 세대별 월 부과 금액: {format_won(result.household_monthly_fee)}",
            f"- 이 기간 동안 단지 전체 적립 목표액: {format_won(result.period_target_amount)}",
            "",
            "이 결과에 대해 다음 내용을 포함하여 입주민이 이해하기 쉽게 조언해주세요:",
            "1. 산출된 세대별 월 부담금이 대한민국 평균적인 수준(보통 m²당 100~300원 내외이나 단지 사정에 따라 다름)과 "
            "비교해 어떤지 대략적인 뉘앙스 (정확한 통계보다는 일반론).",
            "2. 장기수선충당금이 왜 중요한지, 이 돈이 주로 어디에 쓰이는지(승강기, 도색, 배관 등) 간략 설명.",
            "3. 적립 요율이나 금액이 너무 낮거나 높을 때 발생할 수 있는 문제점.",
            "",
            "말투는 정중하고 신뢰감 있게, 핵심 내용은 불렛포인트로 정리해주세요.",
        ]
    )


async def request_advice(
    inputs: CalculationInputs,
    result: CalculationResult,
    client=None,
    settings: Settings | None = None,
) -> AdviceOutcome:
    """Ask the model for advice; failures come back as ``ok=False`` text."""
    settings = settings or load_settings()
    try:
        client = client or make_genai_client(settings)
        response = await client.aio.models.generate_content(
            model=settings.gemini_model,
            contents=build_advice_prompt(inputs, result),
            config=genai_types.GenerateContentConfig(
                thinking_config=genai_types.ThinkingConfig(thinking_budget=0),
            ),
        )
    except Exception as exc:
        append_runtime_event(
            level="ERROR",
            event="advice_request_failed",
            message="Advice generation failed.",
            context={"model": settings.gemini_model, "mode": inputs.mode},
            exc=exc,
        )
        return AdviceOutcome(ok=False, text=ADVICE_ERROR_TEXT)

    text = (getattr(response, "text", None) or "").strip()
    if not text:
        append_runtime_event(
            level="WARNING",
            event="advice_empty_response",
            message="Model returned no advice text.",
            context={"model": settings.gemini_model},
        )
        return AdviceOutcome(ok=True, text=EMPTY_ADVICE_TEXT)
    return AdviceOutcome(ok=True, text=text)
