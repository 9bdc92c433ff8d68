# backend/llm.py
import json
import logging
import re
from typing import Dict, Optional

import openai

from categories import CATEGORIES, categorize
from config import load_settings

LOGGER = logging.getLogger(__name__)

CONTEXT_CHAR_LIMIT = 600

SYSTEM_PROMPT = (
    "You are a concise reference assistant. Given a keyword (and optionally the text it "
    "was taken from) explain what it means in that context in two or three sentences. "
    "Answer in the language of the keyword. Respond ONLY with valid JSON of the form: "
    "{\"title\": \"...\", \"summary\": \"...\", \"category\": \"...\"} where category is one of "
    + ", ".join(CATEGORIES)
    + ". Do not include explanations outside the JSON."
)


class LLMUnavailable(RuntimeError):
    """Raised when the chat-completion lookup cannot produce an explanation."""


def has_valid_api_key() -> bool:
    return load_settings().has_openai_key


def _chat_completion(**kwargs):
    return openai.chat.completions.create(**kwargs)


def _extract_json_block(text: str):
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Attempt to locate first JSON object in the string.
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        return None
    try:
        return json.loads(match.group(0))
    except json.JSONDecodeError:
        return None


def _usage_dict(response) -> Dict:
    usage = getattr(response, "usage", None)
    if usage is None:
        return {}
    if hasattr(usage, "model_dump"):
        return usage.model_dump()
    if isinstance(usage, dict):
        return dict(usage)
    return {}


def explain_keyword(keyword: str, context: Optional[str] = None) -> Dict:
    """
    Ask the chat-completions API for a short explanation of ``keyword``.

    Returns a result shaped like the Wikipedia lookup plus ``category`` and a
    ``_usage`` block. Raises LLMUnavailable when no key is configured, the
    call fails, or the reply carries no usable summary.
    """
    settings = load_settings()
    if not settings.has_openai_key:
        raise LLMUnavailable("OPENAI_API_KEY is not configured")

    keyword = (keyword or "").strip()
    if not keyword:
        raise LLMUnavailable("keyword is empty")

    user_payload = {"keyword": keyword}
    if context:
        user_payload["context"] = context.strip()[:CONTEXT_CHAR_LIMIT]

    openai.api_key = settings.openai_api_key
    try:
        response = _chat_completion(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(user_payload, ensure_ascii=False)},
            ],
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
        )
        raw = (response.choices[0].message.content or "").strip()
    except Exception as exc:
        raise LLMUnavailable(f"LLM lookup failed: {exc}") from exc

    data = _extract_json_block(raw)
    if not isinstance(data, dict):
        raise LLMUnavailable("LLM did not return JSON")

    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise LLMUnavailable("LLM JSON missing 'summary'")

    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        title = keyword

    category = data.get("category")
    if category not in CATEGORIES:
        category = categorize(keyword)

    LOGGER.debug("llm:explained keyword=%s model=%s", keyword, settings.openai_model)
    return {
        "title": title.strip(),
        "extract": summary.strip(),
        "url": None,
        "thumbnail": None,
        "lang": None,
        "found": True,
        "source": "openai",
        "category": category,
        "_usage": {
            "provider": "openai",
            "model": settings.openai_model,
            "usage": _usage_dict(response),
        },
    }
