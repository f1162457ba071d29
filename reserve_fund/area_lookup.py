"""Search-grounded lookup of complex and household supply areas by name."""

from __future__ import annotations

import json
import re
from typing import Any, Iterable

from google.genai import types as genai_types

from reserve_fund.config import Settings, load_settings, make_genai_client
from reserve_fund.runtime_logging import append_runtime_event
from reserve_fund.schema import AreaLookupResult, Source, non_negative_number


NOT_FOUND = AreaLookupResult()
DEFAULT_SOURCE_TITLE = "Web Source"

_FENCED_JSON = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)
_BARE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def build_lookup_prompt(apartment_name: str) -> str:
    return f"""
Search for information about the apartment complex "{apartment_name}" in South Korea.

Task 1: Find the 'Total Supply Area' (총 공급면적) or 'Management Area' (관리비 부과 면적) for the *entire complex* in square meters (m²).
Task 2: Find a representative 'Household Supply Area' (세대 공급면적) in square meters (m²).
        If the search query contains a specific size (e.g. "34pyeong"), use that.
        Otherwise, pick the most common household size (e.g. 84m² is very common) found in the results.

Respond with a single JSON object and nothing else:
{{"totalComplexArea": <number, 0 if not found>, "householdArea": <number, 0 if not found>}}
""".strip()


def _json_payload(text: str) -> dict:
    candidates = [text]
    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.insert(0, fenced.group(1))
    bare = _BARE_OBJECT.search(text)
    if bare:
        candidates.append(bare.group(0))
    for candidate in candidates:
        try:
            payload = json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
        if isinstance(payload, dict):
            return payload
    raise ValueError("No JSON object in lookup response.")


def _area(payload: dict, key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return non_negative_number(value)


def _web_sources(grounding_chunks: Iterable[Any] | None) -> tuple[Source, ...]:
    sources: list[Source] = []
    for chunk in grounding_chunks or []:
        web = getattr(chunk, "web", None)
        if web is None:
            continue
        sources.append(Source(title=getattr(web, "title", None) or DEFAULT_SOURCE_TITLE, uri=getattr(web, "uri", None) or ""))
    return tuple(sources)


def parse_lookup_response(text: str | None, grounding_chunks: Iterable[Any] | None = None) -> AreaLookupResult:
    sources = _web_sources(grounding_chunks)
    try:
        payload = _json_payload(text or "{}")
    except ValueError as exc:
        append_runtime_event(
            level="WARNING",
            event="area_lookup_parse_failed",
            message="Lookup response was not valid JSON.",
            context={"text": (text or "")[:500]},
            exc=exc,
        )
        return AreaLookupResult(sources=sources)

    total_area = _area(payload, "totalComplexArea")
    household_area = _area(payload, "householdArea")
    return AreaLookupResult(
        total_area=total_area,
        household_area=household_area,
        found=total_area > 0 or household_area > 0,
        sources=sources,
    )


def _grounding_chunks(response: Any) -> list[Any]:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    return list(getattr(metadata, "grounding_chunks", None) or [])


async def lookup_complex_area(
    apartment_name: str,
    client=None,
    settings: Settings | None = None,
) -> AreaLookupResult:
    """Best-effort areas for ``apartment_name``; any failure reads as not found."""
    settings = settings or load_settings()
    try:
        client = client or make_genai_client(settings)
        response = await client.aio.models.generate_content(
            model=settings.gemini_model,
            contents=build_lookup_prompt(apartment_name),
            config=genai_types.GenerateContentConfig(
                tools=[genai_types.Tool(google_search=genai_types.GoogleSearch())],
            ),
        )
    except Exception as exc:
        append_runtime_event(
            level="ERROR",
            event="area_lookup_failed",
            message="Apartment area lookup failed.",
            context={"apartment_name": apartment_name, "model": settings.gemini_model},
            exc=exc,
        )
        return NOT_FOUND

    return parse_lookup_response(getattr(response, "text", None), _grounding_chunks(response))
