"""Runtime event log (JSON lines) for calculator sessions and collaborator calls."""

from __future__ import annotations

import json
import sys
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from streamlit.runtime.scriptrunner import get_script_run_ctx

from reserve_fund.config import expand_path, load_settings


EVENTS_FILE_NAME = "calculator_events.jsonl"

LOG_DIR = Path(".local_store")
RUNTIME_EVENTS_LOG_FILE = LOG_DIR / EVENTS_FILE_NAME

_EXCEPTION_HOOK_INSTALLED = False


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_default(value: Any):
    if isinstance(value, (set, tuple)):
        return list(value)
    return str(value)


def configure_log_root(path_value: str | Path | None) -> Path:
    global LOG_DIR, RUNTIME_EVENTS_LOG_FILE
    LOG_DIR = expand_path(path_value)
    RUNTIME_EVENTS_LOG_FILE = LOG_DIR / EVENTS_FILE_NAME
    return LOG_DIR


def runtime_log_path() -> str:
    return str(RUNTIME_EVENTS_LOG_FILE.resolve())


def _exception_fields(exc: BaseException) -> dict[str, str]:
    if exc.__traceback__ is not None:
        tb_text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        tb_text = traceback.format_exc()
    return {
        "exception_type": type(exc).__name__,
        "exception_message": str(exc),
        "traceback": tb_text,
    }


def append_runtime_event(
    level: str,
    event: str,
    message: str,
    context: dict[str, Any] | None = None,
    exc: BaseException | None = None,
) -> None:
    """Append one event record; any failure while recording is dropped."""
    try:
        record: dict[str, Any] = {
            "timestamp_utc": _now_iso(),
            "level": str(level).upper(),
            "event": str(event),
            "message": str(message),
            "context": context or {},
        }
        if exc is not None:
            record.update(_exception_fields(exc))
        line = json.dumps(record, default=_json_default, ensure_ascii=False)
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        with RUNTIME_EVENTS_LOG_FILE.open("a", encoding="utf-8") as f:
            f.write(line + "\n")
    except Exception:
        # Diagnostics must not interrupt a calculation.
        pass


def _parse_error_record(line: str) -> dict[str, Any]:
    return {
        "timestamp_utc": _now_iso(),
        "level": "ERROR",
        "event": "log_parse_error",
        "message": "Malformed log line encountered.",
        "context": {"line": line},
    }


def read_runtime_events(limit: int = 200) -> list[dict[str, Any]]:
    if limit <= 0 or not RUNTIME_EVENTS_LOG_FILE.exists():
        return []
    try:
        lines = RUNTIME_EVENTS_LOG_FILE.read_text(encoding="utf-8", errors="replace").splitlines()
    except Exception:
        return []
    events: list[dict[str, Any]] = []
    for line in lines[-int(limit) :]:
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError:
            events.append(_parse_error_record(line))
            continue
        events.append(payload if isinstance(payload, dict) else _parse_error_record(line))
    return events


def install_global_exception_logging() -> None:
    """Record uncaught exceptions raised inside Streamlit script runs."""
    global _EXCEPTION_HOOK_INSTALLED
    if _EXCEPTION_HOOK_INSTALLED:
        return
    previous_hook = sys.excepthook

    def _hook(exc_type, exc, exc_tb):
        if get_script_run_ctx() is not None:
            append_runtime_event(
                level="ERROR",
                event="uncaught_exception",
                message=str(exc),
                exc=exc,
            )
        previous_hook(exc_type, exc, exc_tb)

    sys.excepthook = _hook
    _EXCEPTION_HOOK_INSTALLED = True


configure_log_root(load_settings().storage_root)
