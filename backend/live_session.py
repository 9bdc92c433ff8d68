"""Debounced live analysis: text comes in as the user types, lookups run once typing pauses."""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional

from config import load_settings
from keywords import extract_keywords
from lookup import LOOKUP_MODES, LookupOutcome, lookup_keywords


class Debouncer:
    """Run ``callback`` once no new call has arrived for ``delay`` seconds."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = max(0.0, float(delay))
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def call(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            token = object()
            timer = threading.Timer(self.delay, self._fire, args=(token,))
            timer.daemon = True
            timer.token = token
            self._timer = timer
            timer.start()

    def _fire(self, token: object) -> None:
        with self._lock:
            # A newer call() superseded this timer.
            if self._timer is None or self._timer.token is not token:
                return
            self._timer = None
        self.callback()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def cancel(self) -> bool:
        with self._lock:
            timer, self._timer = self._timer, None
        if timer is None:
            return False
        timer.cancel()
        return True


HistoryRecorder = Callable[["LiveSession", List[str], List[LookupOutcome]], None]


class LiveSession:
    def __init__(
        self,
        session_id: Optional[str] = None,
        *,
        mode: str = "auto",
        debounce_seconds: Optional[float] = None,
        max_keywords: Optional[int] = None,
        on_complete: Optional[HistoryRecorder] = None,
    ):
        if mode not in LOOKUP_MODES:
            raise ValueError(f"Unsupported lookup mode: {mode}")
        settings = load_settings()
        self.session_id = session_id or uuid.uuid4().hex
        self.mode = mode
        self.max_keywords = max_keywords or settings.max_keywords
        self.on_complete = on_complete
        self.debouncer = Debouncer(
            settings.debounce_seconds if debounce_seconds is None else debounce_seconds,
            self._analyze_latest,
        )
        self.lock = threading.Lock()
        self._run_lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

        self.text = ""
        self.status = "idle"
        self.keywords: List[str] = []
        self.results: List[Dict] = []
        self.error: Optional[str] = None
        self.search_count = 0
        self.last_update: Optional[datetime] = None
        self._generation = 0
        self._completed_generation = -1

    def feed(self, text: str) -> Dict:
        """Replace the session text and (re)start the debounce timer."""
        with self.lock:
            self.text = text or ""
            self._generation += 1
            self.status = "typing"
        self.debouncer.call()
        return self.snapshot()

    def analyze_now(self) -> Dict:
        self.debouncer.cancel()
        return self.analyze()

    def _analyze_latest(self) -> None:
        self.analyze()

    def analyze(self) -> Dict:
        """Run one analysis; concurrent callers queue and reuse a finished result."""
        with self._run_lock:
            return self._analyze()

    def _analyze(self) -> Dict:
        with self.lock:
            text = self.text
            generation = self._generation
            already_done = generation == self._completed_generation

        if already_done:
            return self.snapshot()

        if not text.strip():
            self._update(generation, status="idle", keywords=[], results=[], error=None)
            return self.snapshot()

        self._update(generation, status="extracting", error=None)
        try:
            keywords = extract_keywords(text, limit=self.max_keywords)
            if not keywords:
                self._update(generation, status="empty", keywords=[], results=[])
                return self.snapshot()

            self._update(generation, status="searching", keywords=keywords)
            outcomes = lookup_keywords(keywords, context=text, mode=self.mode)
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.exception("live_analyze_error session=%s error=%s", self.session_id, exc)
            self._update(generation, status="error", error=str(exc))
            return self.snapshot()

        applied = self._update(
            generation,
            status="done",
            keywords=keywords,
            results=[outcome.as_dict() for outcome in outcomes],
            last_update=datetime.utcnow(),
            _completed_generation=generation,
            count_search=True,
        )
        if not applied:
            self.logger.debug("live_analyze_stale session=%s generation=%s", self.session_id, generation)
            return self.snapshot()

        self.logger.info(
            "live_analyze_complete session=%s keywords=%s mode=%s",
            self.session_id,
            len(keywords),
            self.mode,
        )
        if self.on_complete is not None:
            try:
                self.on_complete(self, keywords, outcomes)
            except Exception as exc:  # pylint: disable=broad-except
                self.logger.warning("live_history_failed session=%s error=%s", self.session_id, exc)
        return self.snapshot()

    def _update(self, generation: int, count_search: bool = False, **updates) -> bool:
        with self.lock:
            # Text changed while we were working; a newer analysis will follow.
            if generation != self._generation:
                return False
            for key, value in updates.items():
                setattr(self, key, value)
            if count_search:
                self.search_count += 1
            return True

    def clear(self) -> Dict:
        self.debouncer.cancel()
        with self.lock:
            self._generation += 1
            self.text = ""
            self.status = "idle"
            self.keywords = []
            self.results = []
            self.error = None
            self.last_update = datetime.utcnow()
        return self.snapshot()

    def snapshot(self) -> Dict:
        with self.lock:
            return {
                "sessionId": self.session_id,
                "status": self.status,
                "mode": self.mode,
                "text": self.text,
                "keywords": list(self.keywords),
                "results": list(self.results),
                "error": self.error,
                "searchCount": self.search_count,
                "lastUpdate": self.last_update.isoformat() if self.last_update else None,
                "pending": self.debouncer.pending,
            }


class LiveSessionRegistry:
    def __init__(self, on_complete: Optional[HistoryRecorder] = None, **session_options):
        self.on_complete = on_complete
        self.session_options = session_options
        self.sessions: Dict[str, LiveSession] = {}
        self.lock = threading.Lock()

    def get(self, session_id: str) -> Optional[LiveSession]:
        with self.lock:
            return self.sessions.get(session_id)

    def get_or_create(self, session_id: str, mode: Optional[str] = None) -> LiveSession:
        with self.lock:
            session = self.sessions.get(session_id)
            if session is None:
                options = dict(self.session_options)
                if mode:
                    options["mode"] = mode
                session = LiveSession(session_id, on_complete=self.on_complete, **options)
                self.sessions[session_id] = session
            elif mode and mode != session.mode:
                if mode not in LOOKUP_MODES:
                    raise ValueError(f"Unsupported lookup mode: {mode}")
                session.mode = mode
            return session

    def remove(self, session_id: str) -> bool:
        with self.lock:
            session = self.sessions.pop(session_id, None)
        if session is None:
            return False
        session.debouncer.cancel()
        return True


__all__ = ["Debouncer", "LiveSession", "LiveSessionRegistry"]
