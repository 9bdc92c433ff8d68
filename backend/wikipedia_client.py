# backend/wikipedia_client.py
import logging
import threading
import time
from typing import Dict, Iterable, Optional
from urllib.parse import quote

import requests

from config import load_settings

LOGGER = logging.getLogger(__name__)

SUMMARY_URL = "https://{lang}.wikipedia.org/api/rest_v1/page/summary/{title}"
USER_AGENT = "LiveReferenceInfo/1.0 (keyword lookup demo)"
NOT_FOUND_EXTRACT = "No results found"

# Simple in-memory TTL cache so a user typing the same paragraph does not
# refetch every summary on each debounce tick.
_CACHE: Dict[str, tuple] = {}
_CACHE_LOCK = threading.Lock()


class WikipediaLookupError(RuntimeError):
    """Raised when no configured Wikipedia language has a page for the keyword."""


def _cache_get(key, ttl):
    with _CACHE_LOCK:
        entry = _CACHE.get(key)
        if not entry:
            return None
        ts, data = entry
        if time.time() - ts > ttl:
            del _CACHE[key]
            return None
        return data


def _cache_set(key, data):
    with _CACHE_LOCK:
        _CACHE[key] = (time.time(), data)


def clear_cache() -> None:
    with _CACHE_LOCK:
        _CACHE.clear()


def placeholder_result(keyword: str) -> Dict:
    return {
        "title": keyword,
        "extract": NOT_FOUND_EXTRACT,
        "url": "#",
        "thumbnail": None,
        "lang": None,
        "found": False,
        "source": "wikipedia",
    }


def _normalise_summary(data: Dict, keyword: str, lang: str) -> Dict:
    urls = data.get("content_urls") or {}
    desktop = urls.get("desktop") or {}
    thumbnail = data.get("thumbnail") or {}
    return {
        "title": data.get("title") or keyword,
        "extract": data.get("extract") or NOT_FOUND_EXTRACT,
        "url": desktop.get("page") or "#",
        "thumbnail": thumbnail.get("source"),
        "lang": lang,
        "found": True,
        "source": "wikipedia",
    }


def fetch_summary(keyword: str, languages: Iterable[str], timeout: float = 10.0) -> Dict:
    """
    Try each language edition in order and return the first summary found.

    Raises WikipediaLookupError when every edition answers with a non-2xx status.
    requests.RequestException propagates to the caller.
    """
    title = quote(keyword.strip().replace(" ", "_"), safe="")
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
    statuses = []
    for lang in languages:
        url = SUMMARY_URL.format(lang=lang, title=title)
        resp = requests.get(url, headers=headers, timeout=timeout)
        if not resp.ok:
            statuses.append(f"{lang}:{resp.status_code}")
            continue
        return _normalise_summary(resp.json(), keyword, lang)
    raise WikipediaLookupError(f"No Wikipedia page for {keyword!r} ({', '.join(statuses) or 'no languages'})")


def search_wikipedia(keyword: str, languages: Optional[Iterable[str]] = None) -> Dict:
    """
    Look up a keyword's Wikipedia summary, falling back across language editions.

    Never raises for lookup problems: a placeholder result with found=False is
    returned instead so callers can render something for every keyword.
    """
    settings = load_settings()
    langs = tuple(languages) if languages else settings.wikipedia_languages
    keyword = (keyword or "").strip()
    if not keyword:
        return placeholder_result(keyword)

    key = f"wikipedia:{','.join(langs)}:{keyword.lower()}"
    cached = _cache_get(key, settings.lookup_cache_ttl)
    if cached is not None:
        return dict(cached)

    try:
        result = fetch_summary(keyword, langs, timeout=settings.wikipedia_timeout)
    except WikipediaLookupError as exc:
        LOGGER.info("wikipedia:not_found keyword=%s detail=%s", keyword, exc)
        return placeholder_result(keyword)
    except (requests.RequestException, ValueError) as exc:
        LOGGER.warning("wikipedia:request_failed keyword=%s error=%s", keyword, exc)
        return placeholder_result(keyword)

    _cache_set(key, result)
    return dict(result)
