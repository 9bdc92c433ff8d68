"""Catalogue of the chat-completion models the lookup service can call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict


DEFAULT_MODEL_ID = "gpt-4o-mini"


@dataclass(frozen=True)
class ModelInfo:
    id: str
    provider: str
    human_name: str
    max_tokens_limit: int  # upper bound we allow for a single explanation
    metadata: Dict[str, str] = field(default_factory=dict)


MODEL_REGISTRY: Dict[str, ModelInfo] = {
    "gpt-4o-mini": ModelInfo(
        id="gpt-4o-mini",
        provider="openai",
        human_name="OpenAI GPT-4o mini",
        max_tokens_limit=1000,
        metadata={"tier": "fast"},
    ),
    "gpt-4o": ModelInfo(
        id="gpt-4o",
        provider="openai",
        human_name="OpenAI GPT-4o",
        max_tokens_limit=1000,
        metadata={"tier": "quality"},
    ),
    "gpt-3.5-turbo": ModelInfo(
        id="gpt-3.5-turbo",
        provider="openai",
        human_name="OpenAI GPT-3.5 Turbo",
        max_tokens_limit=1000,
        metadata={"tier": "legacy"},
    ),
}


def list_models(provider: str | None = None):
    if provider:
        return [model for model in MODEL_REGISTRY.values() if model.provider == provider]
    return list(MODEL_REGISTRY.values())


def get_model(model_id: str) -> ModelInfo:
    return MODEL_REGISTRY[model_id]
