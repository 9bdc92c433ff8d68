"""Database models and helpers for the search history."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import DEFAULT_DB_PATH, load_settings


# ---------------------------------------------------------------------------
# Engine & session configuration
# ---------------------------------------------------------------------------

DEFAULT_DB_PATH.parent.mkdir(parents=True, exist_ok=True)

_settings = load_settings()
DATABASE_URL = _settings.database_url
HISTORY_LIMIT = _settings.history_limit
TEXT_EXCERPT_LENGTH = 200

connect_args: Dict[str, Any] = {}
if DATABASE_URL.startswith("sqlite"):
    # Needed so SQLite plays nicely with threads in Flask dev server.
    connect_args["check_same_thread"] = False

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


# ---------------------------------------------------------------------------
# ORM models
# ---------------------------------------------------------------------------


class SearchHistoryEntry(Base):
    __tablename__ = "search_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String, nullable=True, index=True)
    text_excerpt = Column(String, nullable=False, default="")
    keywords = Column(JSON, default=list)
    mode = Column(String, nullable=False, default="auto")
    result_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "sessionId": self.session_id,
            "text": self.text_excerpt,
            "keywords": list(self.keywords or []),
            "mode": self.mode,
            "resultCount": self.result_count,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


# ---------------------------------------------------------------------------
# Helper utilities
# ---------------------------------------------------------------------------


def init_db() -> None:
    """Create tables (idempotent)."""

    Base.metadata.create_all(engine)


def get_session():
    return SessionLocal()


def _prune_history(session, limit: int) -> int:
    stale_ids = [
        row.id
        for row in session.query(SearchHistoryEntry.id)
        .order_by(SearchHistoryEntry.id.desc())
        .offset(limit)
        .all()
    ]
    if not stale_ids:
        return 0
    session.query(SearchHistoryEntry).filter(SearchHistoryEntry.id.in_(stale_ids)).delete(
        synchronize_session=False
    )
    return len(stale_ids)


def record_search(
    session,
    *,
    text: str,
    keywords: Sequence[str],
    mode: str = "auto",
    result_count: int = 0,
    session_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> SearchHistoryEntry:
    """Store one search and drop the oldest entries beyond ``limit``."""
    entry = SearchHistoryEntry(
        session_id=session_id,
        text_excerpt=(text or "").strip()[:TEXT_EXCERPT_LENGTH],
        keywords=list(keywords or []),
        mode=mode,
        result_count=result_count or 0,
    )
    session.add(entry)
    session.flush()
    _prune_history(session, limit or HISTORY_LIMIT)
    session.commit()
    session.refresh(entry)
    return entry


def list_history(session, *, limit: int = 20, session_id: Optional[str] = None) -> List[SearchHistoryEntry]:
    query = session.query(SearchHistoryEntry)
    if session_id:
        query = query.filter(SearchHistoryEntry.session_id == session_id)
    return (
        query.order_by(SearchHistoryEntry.id.desc())
        .limit(max(1, limit))
        .all()
    )


def clear_history(session, *, session_id: Optional[str] = None) -> int:
    query = session.query(SearchHistoryEntry)
    if session_id:
        query = query.filter(SearchHistoryEntry.session_id == session_id)
    removed = query.delete(synchronize_session=False)
    session.commit()
    return removed
