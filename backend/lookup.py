"""Per-keyword lookups (LLM with Wikipedia fallback) and the settled fan-out over them."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from categories import categorize
from config import load_settings
from llm import LLMUnavailable, explain_keyword
from wikipedia_client import search_wikipedia

LOOKUP_MODES = ("auto", "wikipedia", "llm")

logger = logging.getLogger(__name__)


@dataclass
class LookupOutcome:
    keyword: str
    status: str  # fulfilled | rejected
    value: Optional[Dict] = None
    error: Optional[str] = None
    usage: Dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "fulfilled"

    def as_dict(self) -> Dict[str, object]:
        return {
            "keyword": self.keyword,
            "status": self.status,
            "value": self.value,
            "error": self.error,
            "usage": self.usage,
        }


def _wikipedia_result(keyword: str, fallback: bool) -> Dict:
    result = search_wikipedia(keyword)
    result.setdefault("category", categorize(keyword))
    result["fallback"] = fallback
    return result


def lookup_keyword(keyword: str, context: Optional[str] = None, mode: str = "auto") -> Dict:
    """
    Resolve one keyword.

    ``auto`` prefers the LLM and substitutes the Wikipedia summary when no key
    is configured or the call fails; ``wikipedia`` and ``llm`` force a single
    source (``llm`` raises LLMUnavailable instead of falling back).
    """
    if mode not in LOOKUP_MODES:
        raise ValueError(f"Unsupported lookup mode: {mode}")

    if mode == "wikipedia":
        return _wikipedia_result(keyword, fallback=False)

    if mode == "llm":
        result = explain_keyword(keyword, context)
        result["fallback"] = False
        return result

    if not load_settings().has_openai_key:
        return _wikipedia_result(keyword, fallback=True)

    try:
        result = explain_keyword(keyword, context)
    except LLMUnavailable as exc:
        logger.warning("lookup_llm_failed keyword=%s error=%s", keyword, exc)
        return _wikipedia_result(keyword, fallback=True)
    result["fallback"] = False
    return result


def lookup_keywords(
    keywords: Sequence[str],
    context: Optional[str] = None,
    mode: str = "auto",
) -> List[LookupOutcome]:
    """
    Look every keyword up concurrently and wait for all of them to settle.

    The returned list lines up with ``keywords``; a failed lookup becomes a
    ``rejected`` outcome rather than failing the batch.
    """
    if mode not in LOOKUP_MODES:
        raise ValueError(f"Unsupported lookup mode: {mode}")
    keywords = [str(kw) for kw in keywords or []]
    if not keywords:
        return []

    max_workers = min(load_settings().lookup_workers, len(keywords))
    outcomes: List[LookupOutcome] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [executor.submit(lookup_keyword, kw, context, mode) for kw in keywords]
        for kw, future in zip(keywords, futures):
            try:
                value = future.result()
            except Exception as exc:
                logger.warning("lookup_failed keyword=%s error=%s", kw, exc)
                outcomes.append(LookupOutcome(keyword=kw, status="rejected", error=str(exc)))
                continue
            usage = value.pop("_usage", None) or {}
            outcomes.append(LookupOutcome(keyword=kw, status="fulfilled", value=value, usage=usage))

    logger.info(
        "lookup_settled mode=%s total=%s fulfilled=%s",
        mode,
        len(outcomes),
        sum(1 for outcome in outcomes if outcome.ok),
    )
    return outcomes


__all__ = ["LOOKUP_MODES", "LookupOutcome", "lookup_keyword", "lookup_keywords"]
