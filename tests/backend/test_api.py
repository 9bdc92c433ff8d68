"""
API tests for the Flask backend.
"""

from types import SimpleNamespace

import pytest

import app as app_module
import database
from conftest import FakeResponse, summary_payload
from lookup import LookupOutcome

TEXT = "Pythonで機械学習のモデルを作る方法について調べています。"


@pytest.fixture
def client():
    app_module.app.config["TESTING"] = True
    with app_module.app.test_client() as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def _empty_history():
    session = database.get_session()
    try:
        database.clear_history(session)
        yield
        database.clear_history(session)
    finally:
        session.close()


class TestHealthAndConfig:
    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.get_json() == {"status": "ok"}
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_config_endpoint(self, client):
        data = client.get("/api/config").get_json()

        assert data["maxKeywords"] == 3
        assert data["llmEnabled"] is False
        assert "openaiApiKey" not in data


class TestKeywordsEndpoint:
    def test_extracts_keywords(self, client):
        response = client.post("/api/keywords", json={"text": TEXT})

        assert response.status_code == 200
        data = response.get_json()
        assert data["keywords"] == ["Python", "機械学習", "モデル"]
        assert data["scored"][0]["keyword"] == "Python"

    def test_limit_parameter(self, client):
        data = client.post("/api/keywords", json={"text": TEXT, "limit": 5}).get_json()

        assert len(data["keywords"]) == 4

    def test_rejects_missing_text(self, client):
        response = client.post("/api/keywords", json={})

        assert response.status_code == 400


class TestLookupEndpoints:
    def test_lookup_uses_wikipedia_without_key(self, client, fake_wikipedia):
        pages, _calls = fake_wikipedia
        pages[("ja", "Python")] = FakeResponse(payload=summary_payload("Python", "Language"))

        response = client.post("/api/lookup", json={"keywords": ["Python", "Nope"]})

        assert response.status_code == 200
        results = response.get_json()["results"]
        assert [item["keyword"] for item in results] == ["Python", "Nope"]
        assert results[0]["status"] == "fulfilled"
        assert results[0]["value"]["found"] is True
        assert results[0]["value"]["fallback"] is True
        assert results[1]["value"]["found"] is False

    def test_llm_mode_without_key_is_rejected_per_keyword(self, client):
        response = client.post("/api/lookup", json={"keywords": ["Python"], "mode": "llm"})

        assert response.status_code == 200
        result = response.get_json()["results"][0]
        assert result["status"] == "rejected"
        assert "OPENAI_API_KEY" in result["error"]

    def test_lookup_validation(self, client):
        assert client.post("/api/lookup", json={"keywords": []}).status_code == 400
        assert client.post("/api/lookup", json={"keywords": "Python"}).status_code == 400
        assert client.post("/api/lookup", json={"keywords": ["  "]}).status_code == 400
        assert client.post("/api/lookup", json={"keywords": ["Python"], "mode": "bing"}).status_code == 400

    def test_single_search(self, client, fake_wikipedia):
        pages, _calls = fake_wikipedia
        pages[("en", "React")] = FakeResponse(payload=summary_payload("React", "UI library", lang="en"))

        response = client.get("/api/search?keyword=React")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "fulfilled"
        assert data["value"]["extract"] == "UI library"

    def test_single_search_llm_failure(self, client):
        response = client.get("/api/search?keyword=React&mode=llm")

        assert response.status_code == 502
        assert response.get_json()["status"] == "rejected"

    def test_llm_search_reports_token_usage(self, client, llm_key, monkeypatch):
        import llm

        def _fake_completion(**_kwargs):
            message = SimpleNamespace(content='{"title": "React", "summary": "UI library", "category": "technology"}')
            return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage={"total_tokens": 42})

        monkeypatch.setattr(llm, "_chat_completion", _fake_completion)

        data = client.get("/api/search?keyword=React&mode=llm").get_json()
        assert data["status"] == "fulfilled"
        assert "_usage" not in data["value"]
        assert data["usage"]["provider"] == "openai"
        assert data["usage"]["usage"] == {"total_tokens": 42}

        results = client.post("/api/lookup", json={"keywords": ["React"], "mode": "llm"}).get_json()["results"]
        assert results[0]["usage"]["usage"] == {"total_tokens": 42}

    def test_wikipedia_results_carry_empty_usage(self, client, fake_wikipedia):
        pages, _calls = fake_wikipedia
        pages[("ja", "Python")] = FakeResponse(payload=summary_payload("Python", "Language"))

        results = client.post("/api/lookup", json={"keywords": ["Python"], "mode": "wikipedia"}).get_json()["results"]

        assert results[0]["usage"] == {}

    def test_single_search_requires_keyword(self, client):
        assert client.get("/api/search").status_code == 400


class TestAnalyzeEndpoint:
    def test_analyze_records_history(self, client, monkeypatch):
        def _lookup(keywords, context=None, mode="auto"):
            return [LookupOutcome(keyword=kw, status="fulfilled", value={"title": kw}) for kw in keywords]

        monkeypatch.setattr(app_module, "lookup_keywords", _lookup)

        response = client.post("/api/analyze", json={"text": TEXT, "sessionId": "tab-1"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "done"
        assert data["keywords"] == ["Python", "機械学習", "モデル"]
        assert len(data["results"]) == 3

        history = client.get("/api/history").get_json()["history"]
        assert len(history) == 1
        assert history[0]["id"] == data["historyId"]
        assert history[0]["sessionId"] == "tab-1"
        assert history[0]["resultCount"] == 3

    def test_analyze_short_text_is_empty(self, client):
        data = client.post("/api/analyze", json={"text": "短い"}).get_json()

        assert data == {"keywords": [], "results": [], "status": "empty", "mode": "auto"}
        assert client.get("/api/history").get_json()["history"] == []

    def test_analyze_requires_text(self, client):
        assert client.post("/api/analyze", json={"text": "   "}).status_code == 400

    def test_clear_history(self, client):
        session = database.get_session()
        try:
            database.record_search(session, text="old", keywords=["x"])
        finally:
            session.close()

        response = client.delete("/api/history")

        assert response.get_json() == {"removed": 1}
        assert client.get("/api/history").get_json()["history"] == []


class TestLiveEndpoints:
    def test_live_flow(self, client, monkeypatch):
        def _lookup(keywords, context=None, mode="auto"):
            return [LookupOutcome(keyword=kw, status="fulfilled", value={"title": kw}) for kw in keywords]

        import live_session

        monkeypatch.setattr(live_session, "lookup_keywords", _lookup)
        monkeypatch.setenv("DEBOUNCE_SECONDS", "30")

        response = client.post("/api/live/tab-9/input", json={"text": TEXT})
        assert response.status_code == 202
        assert response.get_json()["status"] == "typing"

        data = client.post("/api/live/tab-9/analyze").get_json()
        assert data["status"] == "done"
        assert data["keywords"] == ["Python", "機械学習", "モデル"]

        snapshot = client.get("/api/live/tab-9").get_json()
        assert snapshot["searchCount"] == 1

        history = client.get("/api/history?sessionId=tab-9").get_json()["history"]
        assert len(history) == 1

        cleared = client.delete("/api/live/tab-9").get_json()
        assert cleared["keywords"] == []
        assert client.get("/api/live/tab-9").status_code == 404
        assert app_module.live_sessions.get("tab-9") is None

    def test_unknown_live_session(self, client):
        assert client.get("/api/live/missing").status_code == 404
        assert client.post("/api/live/missing/analyze").status_code == 404
        assert client.delete("/api/live/missing").status_code == 404

    def test_live_input_validation(self, client):
        assert client.post("/api/live/tab-x/input", json={}).status_code == 400
        assert client.post("/api/live/tab-x/input", json={"text": "a", "mode": "bing"}).status_code == 400
