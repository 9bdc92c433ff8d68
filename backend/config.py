"""Runtime settings loaded from the environment (and an optional .env file)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

from model_registry import DEFAULT_MODEL_ID, MODEL_REGISTRY, list_models

load_dotenv()

LOGGER = logging.getLogger(__name__)

# Values shipped in the example config; treated the same as "no key".
PLACEHOLDER_API_KEYS = {
    "YOUR_OPENAI_API_KEY_HERE",
    "your_openai_api_key_here",
}

# Extraction never returns more than this many keywords.
KEYWORD_HARD_LIMIT = 5

DEFAULT_DB_PATH = Path(__file__).parent / "outputs" / "live_reference.db"

# Upper bound accepted by the chat-completions API.
MAX_TEMPERATURE = 2.0

_warned_models = set()


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError):
        LOGGER.warning("config:invalid_float name=%s value=%r", name, raw)
        return default
    if value < minimum:
        return default
    return value


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        LOGGER.warning("config:invalid_int name=%s value=%r", name, raw)
        return default
    if value < minimum:
        return default
    return value


def _env_languages(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return default
    langs = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    return langs or default


@dataclass(frozen=True)
class Settings:
    openai_api_key: str = ""
    openai_model: str = DEFAULT_MODEL_ID
    openai_max_tokens: int = 300
    openai_temperature: float = 0.3
    debounce_seconds: float = 1.0
    max_keywords: int = 3
    wikipedia_languages: Tuple[str, ...] = ("ja", "en")
    wikipedia_timeout: float = 10.0
    lookup_cache_ttl: float = 300.0
    lookup_workers: int = 5
    history_limit: int = 50
    database_url: str = field(default_factory=lambda: f"sqlite:///{DEFAULT_DB_PATH}")

    @property
    def has_openai_key(self) -> bool:
        key = (self.openai_api_key or "").strip()
        return bool(key) and key not in PLACEHOLDER_API_KEYS

    def public_dict(self) -> dict:
        """Settings that are safe to hand to a client (no secrets)."""
        return {
            "debounceSeconds": self.debounce_seconds,
            "maxKeywords": self.max_keywords,
            "openaiModel": self.openai_model,
            "models": [model.id for model in list_models("openai")],
            "openaiMaxTokens": self.openai_max_tokens,
            "openaiTemperature": self.openai_temperature,
            "wikipediaLanguages": list(self.wikipedia_languages),
            "llmEnabled": self.has_openai_key,
        }


def load_settings() -> Settings:
    model = (os.getenv("OPENAI_MODEL") or DEFAULT_MODEL_ID).strip()
    if model not in MODEL_REGISTRY:
        if model not in _warned_models:
            _warned_models.add(model)
            LOGGER.warning("config:unknown_model model=%s fallback=%s", model, DEFAULT_MODEL_ID)
        model = DEFAULT_MODEL_ID
    max_tokens_limit = MODEL_REGISTRY[model].max_tokens_limit

    max_tokens = _env_int("OPENAI_MAX_TOKENS", 300, minimum=1)
    temperature = _env_float("OPENAI_TEMPERATURE", 0.3)
    max_keywords = _env_int("MAX_KEYWORDS", 3, minimum=1)

    return Settings(
        openai_api_key=os.getenv("OPENAI_API_KEY", ""),
        openai_model=model,
        openai_max_tokens=min(max_tokens, max_tokens_limit),
        openai_temperature=min(temperature, MAX_TEMPERATURE),
        debounce_seconds=_env_float("DEBOUNCE_SECONDS", 1.0),
        max_keywords=min(max_keywords, KEYWORD_HARD_LIMIT),
        wikipedia_languages=_env_languages("WIKIPEDIA_LANGUAGES", ("ja", "en")),
        wikipedia_timeout=_env_float("WIKIPEDIA_TIMEOUT", 10.0, minimum=0.1),
        lookup_cache_ttl=_env_float("LOOKUP_CACHE_TTL", 300.0),
        lookup_workers=_env_int("LOOKUP_WORKERS", 5, minimum=1),
        history_limit=_env_int("HISTORY_LIMIT", 50, minimum=1),
        database_url=os.getenv("DATABASE_URL", f"sqlite:///{DEFAULT_DB_PATH}"),
    )


__all__ = ["DEFAULT_DB_PATH", "KEYWORD_HARD_LIMIT", "MAX_TEMPERATURE", "PLACEHOLDER_API_KEYS", "Settings", "load_settings"]
