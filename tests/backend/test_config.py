"""
Unit tests for environment-driven settings.
"""

import logging

import pytest

from config import KEYWORD_HARD_LIMIT, MAX_TEMPERATURE, load_settings


@pytest.mark.unit
def test_defaults(monkeypatch):
    for name in ("OPENAI_MODEL", "OPENAI_MAX_TOKENS", "OPENAI_TEMPERATURE", "DEBOUNCE_SECONDS", "MAX_KEYWORDS"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.openai_model == "gpt-4o-mini"
    assert settings.openai_max_tokens == 300
    assert settings.openai_temperature == pytest.approx(0.3)
    assert settings.debounce_seconds == pytest.approx(1.0)
    assert settings.max_keywords == 3
    assert settings.wikipedia_languages == ("ja", "en")
    assert settings.has_openai_key is False


@pytest.mark.unit
def test_invalid_values_fall_back(monkeypatch):
    monkeypatch.setenv("OPENAI_MODEL", "gpt-99")
    monkeypatch.setenv("OPENAI_MAX_TOKENS", "lots")
    monkeypatch.setenv("DEBOUNCE_SECONDS", "-1")
    monkeypatch.setenv("MAX_KEYWORDS", "0")

    settings = load_settings()

    assert settings.openai_model == "gpt-4o-mini"
    assert settings.openai_max_tokens == 300
    assert settings.debounce_seconds == pytest.approx(1.0)
    assert settings.max_keywords == 3


@pytest.mark.unit
def test_max_keywords_is_capped(monkeypatch):
    monkeypatch.setenv("MAX_KEYWORDS", "12")

    assert load_settings().max_keywords == KEYWORD_HARD_LIMIT


@pytest.mark.unit
def test_languages_are_parsed(monkeypatch):
    monkeypatch.setenv("WIKIPEDIA_LANGUAGES", " EN , de ,,")

    assert load_settings().wikipedia_languages == ("en", "de")


@pytest.mark.unit
def test_public_dict_hides_key(llm_key):
    data = load_settings().public_dict()

    assert data["llmEnabled"] is True
    assert llm_key not in str(data)


@pytest.mark.unit
def test_public_dict_lists_registered_models():
    from model_registry import get_model

    models = load_settings().public_dict()["models"]

    assert models == ["gpt-4o-mini", "gpt-4o", "gpt-3.5-turbo"]
    assert get_model("gpt-4o").human_name == "OpenAI GPT-4o"


@pytest.mark.unit
def test_temperature_is_clamped_to_api_range(monkeypatch):
    monkeypatch.setenv("OPENAI_TEMPERATURE", "1.5")
    assert load_settings().openai_temperature == pytest.approx(1.5)

    monkeypatch.setenv("OPENAI_TEMPERATURE", "7")
    assert load_settings().openai_temperature == pytest.approx(MAX_TEMPERATURE)


@pytest.mark.unit
def test_unknown_model_is_warned_about_once(monkeypatch, caplog):
    monkeypatch.setenv("OPENAI_MODEL", "gpt-unreleased")

    with caplog.at_level(logging.WARNING, logger="config"):
        for _ in range(3):
            assert load_settings().openai_model == "gpt-4o-mini"

    warnings = [record for record in caplog.records if "config:unknown_model" in record.getMessage()]
    assert len(warnings) == 1
