"""Environment-driven settings and the Gemini client factory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_STORAGE_ROOT = Path(".local_store")
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

STORAGE_ENV_VAR = "RESERVE_STORAGE_ROOT"
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")
MODEL_ENV_VAR = "RESERVE_GEMINI_MODEL"


class MissingApiKeyError(RuntimeError):
    """Raised when a collaborator call is attempted without an API key."""


@dataclass(frozen=True)
class Settings:
    storage_root: Path = DEFAULT_STORAGE_ROOT
    gemini_api_key: str = ""
    gemini_model: str = DEFAULT_GEMINI_MODEL

    @property
    def ai_enabled(self) -> bool:
        return bool(self.gemini_api_key)


def expand_path(path_value: str | Path | None, default: Path = DEFAULT_STORAGE_ROOT) -> Path:
    if path_value is None:
        return default
    text = str(path_value).strip()
    if not text:
        return default
    return Path(os.path.expandvars(os.path.expanduser(text)))


def load_settings(env_file: str | Path | None = None) -> Settings:
    """Read settings from the process environment after loading ``.env``."""
    load_dotenv(dotenv_path=env_file, override=False)
    api_key = ""
    for var in API_KEY_ENV_VARS:
        api_key = os.getenv(var, "").strip()
        if api_key:
            break
    return Settings(
        storage_root=expand_path(os.getenv(STORAGE_ENV_VAR, "")),
        gemini_api_key=api_key,
        gemini_model=os.getenv(MODEL_ENV_VAR, "").strip() or DEFAULT_GEMINI_MODEL,
    )


def make_genai_client(settings: Settings):
    if not settings.gemini_api_key:
        raise MissingApiKeyError(f"No Gemini API key configured; set {API_KEY_ENV_VARS[0]}.")
    from google import genai

    return genai.Client(api_key=settings.gemini_api_key)
