"""
Shared fixtures for the backend tests.

The environment is pinned before any backend module is imported so the
SQLite history database lands in a temporary directory and no real
OpenAI key from a developer's .env leaks into the run.
"""

import os
import sys
import tempfile

import pytest

_TMP_DIR = tempfile.mkdtemp(prefix="live-reference-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'history.db')}"
os.environ["OPENAI_API_KEY"] = ""
os.environ["WIKIPEDIA_LANGUAGES"] = "ja,en"
os.environ["HISTORY_LIMIT"] = "50"

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../backend"))

import wikipedia_client as wikipedia  # noqa: E402


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        return self._payload


def summary_payload(title, extract, lang="ja"):
    return {
        "title": title,
        "extract": extract,
        "content_urls": {"desktop": {"page": f"https://{lang}.wikipedia.org/wiki/{title}"}},
        "thumbnail": {"source": f"https://upload.wikimedia.org/{title}.png"},
    }


@pytest.fixture(autouse=True)
def _clear_wikipedia_cache():
    wikipedia.clear_cache()
    yield
    wikipedia.clear_cache()


@pytest.fixture
def fake_wikipedia(monkeypatch):
    """
    Route requests.get through a table of {(lang, title): FakeResponse}.

    Unknown pages answer 404. Every requested URL is appended to ``calls``.
    """
    pages = {}
    calls = []

    def _get(url, headers=None, timeout=None):
        calls.append(url)
        lang = url.split("://", 1)[1].split(".", 1)[0]
        title = url.rsplit("/", 1)[1]
        return pages.get((lang, title), FakeResponse(status_code=404))

    monkeypatch.setattr(wikipedia.requests, "get", _get)
    return pages, calls


@pytest.fixture
def llm_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test-key")
    return "sk-test-key"
