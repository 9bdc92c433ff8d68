# backend/app.py
import os
from contextlib import contextmanager

from dotenv import load_dotenv
from flask import Flask, jsonify, request
from flask_cors import CORS

from config import load_settings
from database import clear_history, get_session, init_db, list_history, record_search
from keywords import extract_keywords, score_candidates
from live_session import LiveSessionRegistry
from llm import LLMUnavailable
from lookup import LOOKUP_MODES, lookup_keyword, lookup_keywords

load_dotenv()
app = Flask(__name__)
CORS(app, resources={r"/*": {"origins": "*"}})

# Initialise database (idempotent)
init_db()


@contextmanager
def _db_session():
    session = get_session()
    try:
        yield session
    finally:
        session.close()


def _record_live_search(live_session, keywords, outcomes):
    with _db_session() as session:
        record_search(
            session,
            text=live_session.text,
            keywords=keywords,
            mode=live_session.mode,
            result_count=sum(1 for outcome in outcomes if outcome.ok),
            session_id=live_session.session_id,
        )


live_sessions = LiveSessionRegistry(on_complete=_record_live_search)


@app.after_request
def apply_cors_headers(response):
    """Attach permissive CORS headers to every response."""
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type,Authorization"
    response.headers["Access-Control-Allow-Methods"] = "GET,POST,DELETE,OPTIONS"
    return response


@app.route("/", methods=["GET"])
def healthcheck():
    """Simple health endpoint so platform monitors see a 200 OK."""
    return jsonify({"status": "ok"}), 200


def _coerce_positive_int(value, default=1):
    try:
        cast = int(value)
        if cast <= 0:
            return default
        return cast
    except (TypeError, ValueError):
        return default


def _resolve_mode(value):
    mode = (value or "auto").strip().lower() if isinstance(value, str) else "auto"
    if mode not in LOOKUP_MODES:
        return None
    return mode


def _mode_error(value):
    return jsonify({"error": f"mode must be one of {', '.join(LOOKUP_MODES)}", "mode": value}), 400


@app.route("/api/config", methods=["GET"])
def api_config():
    return jsonify(load_settings().public_dict())


# Keyword extraction Route---------------------

@app.route("/api/keywords", methods=["POST"])
def api_keywords():
    """
    POST /api/keywords
    body: { text: "...", limit?: 5 }
    returns: { keywords: [...], scored: [ { keyword, score, category, breakdown }, ... ] }
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str):
        return jsonify({"error": "text must be a string"}), 400
    limit = _coerce_positive_int(data.get("limit"), default=load_settings().max_keywords)

    keywords = extract_keywords(text, limit=limit)
    scored = [item.as_dict() for item in score_candidates(text)]
    return jsonify({"keywords": keywords, "scored": scored})


# Lookup Routes---------------------

@app.route("/api/lookup", methods=["POST"])
def api_lookup():
    """
    POST /api/lookup
    body: { keywords: ["one", "two"], context?: "...", mode?: "auto"|"wikipedia"|"llm" }
    returns: { results: [ { keyword, status, value, error, usage }, ... ] }
    """
    data = request.get_json(silent=True) or {}
    keywords = data.get("keywords") or []
    mode = _resolve_mode(data.get("mode"))
    if mode is None:
        return _mode_error(data.get("mode"))

    if not isinstance(keywords, list) or len(keywords) == 0:
        return jsonify({"error": "keywords must be a non-empty array"}), 400
    keywords = [str(kw).strip() for kw in keywords if str(kw).strip()]
    if not keywords:
        return jsonify({"error": "keywords must contain at least one non-empty string"}), 400

    context = data.get("context") if isinstance(data.get("context"), str) else None
    outcomes = lookup_keywords(keywords, context=context, mode=mode)
    return jsonify({"results": [outcome.as_dict() for outcome in outcomes], "mode": mode})


@app.route("/api/search", methods=["GET"])
def api_search():
    keyword = (request.args.get("keyword") or "").strip()
    mode = _resolve_mode(request.args.get("mode"))
    if mode is None:
        return _mode_error(request.args.get("mode"))
    if not keyword:
        return jsonify({"error": "keyword is required"}), 400

    try:
        result = lookup_keyword(keyword, mode=mode)
    except LLMUnavailable as exc:
        app.logger.warning("api_search_failed keyword=%s error=%s", keyword, exc)
        return jsonify({"keyword": keyword, "status": "rejected", "error": str(exc)}), 502

    usage = result.pop("_usage", None) or {}
    return jsonify({"keyword": keyword, "status": "fulfilled", "value": result, "usage": usage})


@app.route("/api/analyze", methods=["POST"])
def api_analyze():
    """
    POST /api/analyze
    body: { text: "...", mode?: "auto", sessionId?: "..." }
    Extracts keywords, looks them all up, and records the search in history.
    """
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        return jsonify({"error": "text is required"}), 400
    mode = _resolve_mode(data.get("mode"))
    if mode is None:
        return _mode_error(data.get("mode"))
    session_id = data.get("sessionId") if isinstance(data.get("sessionId"), str) else None

    keywords = extract_keywords(text, limit=load_settings().max_keywords)
    if not keywords:
        return jsonify({"keywords": [], "results": [], "status": "empty", "mode": mode})

    outcomes = lookup_keywords(keywords, context=text, mode=mode)
    fulfilled = sum(1 for outcome in outcomes if outcome.ok)

    with _db_session() as session:
        entry = record_search(
            session,
            text=text,
            keywords=keywords,
            mode=mode,
            result_count=fulfilled,
            session_id=session_id,
        )
        history_id = entry.id

    app.logger.info("analyze_complete keywords=%s fulfilled=%s mode=%s", len(keywords), fulfilled, mode)
    return jsonify(
        {
            "keywords": keywords,
            "results": [outcome.as_dict() for outcome in outcomes],
            "status": "done",
            "mode": mode,
            "historyId": history_id,
        }
    )


# Live session Routes---------------------

@app.route("/api/live/<session_id>", methods=["GET"])
def api_live_status(session_id):
    live = live_sessions.get(session_id)
    if live is None:
        return jsonify({"error": "Session not found"}), 404
    return jsonify(live.snapshot())


@app.route("/api/live/<session_id>/input", methods=["POST"])
def api_live_input(session_id):
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not isinstance(text, str):
        return jsonify({"error": "text must be a string"}), 400
    mode = None
    if data.get("mode") is not None:
        mode = _resolve_mode(data.get("mode"))
        if mode is None:
            return _mode_error(data.get("mode"))

    live = live_sessions.get_or_create(session_id, mode=mode)
    return jsonify(live.feed(text)), 202


@app.route("/api/live/<session_id>/analyze", methods=["POST"])
def api_live_analyze(session_id):
    live = live_sessions.get(session_id)
    if live is None:
        return jsonify({"error": "Session not found"}), 404
    return jsonify(live.analyze_now())


@app.route("/api/live/<session_id>", methods=["DELETE"])
def api_live_clear(session_id):
    live = live_sessions.get(session_id)
    if live is None:
        return jsonify({"error": "Session not found"}), 404
    snapshot = live.clear()
    live_sessions.remove(session_id)
    return jsonify(snapshot)


# History Routes---------------------

@app.route("/api/history", methods=["GET"])
def api_history():
    limit = _coerce_positive_int(request.args.get("limit"), default=20)
    session_id = request.args.get("sessionId") or None
    with _db_session() as session:
        entries = [entry.as_dict() for entry in list_history(session, limit=limit, session_id=session_id)]
    return jsonify({"history": entries})


@app.route("/api/history", methods=["DELETE"])
def api_history_clear():
    session_id = request.args.get("sessionId") or None
    with _db_session() as session:
        removed = clear_history(session, session_id=session_id)
    return jsonify({"removed": removed})


if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    debug = os.getenv("FLASK_DEBUG") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
