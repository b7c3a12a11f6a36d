"""Bounded, persisted collection of chat sessions.

The store keeps an in-memory mirror of every session, ordered most
recently updated first, and writes the whole collection to durable
storage after each mutation.  The mirror is authoritative for the
running process: a failed write is logged and never rolled back.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ..models.session import Session, SessionSummary
from ..utils.error_handler import NotFoundError, PersistenceError, handle_persistence_error
from .storage import CHAT_HISTORY_KEY, KeyValueStorage

DEFAULT_HISTORY_LIMIT = 50

RECENCY_GROUPS = ("Today", "Yesterday", "Last 7 days", "Older")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """Manage the durable list of sessions.

    Sessions are upserted by identifier.  A new session pushes the
    collection past ``limit`` at most by one, in which case the least
    recently updated of the other sessions is evicted; the session
    being saved is always kept.  Each session's ``updated_at``
    is clamped so it never moves backwards relative to its stored copy.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        limit: int = DEFAULT_HISTORY_LIMIT,
        clock: Callable[[], datetime] = _utc_now,
        key: str = CHAT_HISTORY_KEY,
    ) -> None:
        self._storage = storage
        self._limit = limit
        self._clock = clock
        self._key = key
        self._sessions: List[Session] = []
        self.reload()

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return any(session.id == session_id for session in self._sessions)

    def list_sessions(self) -> List[SessionSummary]:
        """Return summaries, most recently updated first."""
        return [session.summary() for session in self._sessions]

    def save(self, session: Session) -> Session:
        """Insert or replace ``session`` and persist the collection."""
        stored = session.model_copy(deep=True)
        previous = self._pop(stored.id)
        if previous is not None:
            stored.created_at = previous.created_at
            if stored.updated_at < previous.updated_at:
                stored.updated_at = previous.updated_at

        self._sessions.insert(0, stored)
        self._sessions.sort(key=lambda item: item.updated_at, reverse=True)
        # The session being saved always survives; eviction takes the
        # least recently updated of the others.
        while len(self._sessions) > self._limit:
            old = next(item for item in reversed(self._sessions) if item is not stored)
            self._sessions = [item for item in self._sessions if item is not old]
            logger.info("Evicted session {} ({!r}) past the history limit", old.id, old.title)

        logger.debug("Saved session {} with {} entries", stored.id, stored.entry_count)
        self._persist()
        return stored.model_copy(deep=True)

    def load(self, session_id: str) -> Session:
        """Return a copy of a stored session.

        Raises
        ------
        NotFoundError
            If no session with ``session_id`` is stored.
        """
        for session in self._sessions:
            if session.id == session_id:
                return session.model_copy(deep=True)
        raise NotFoundError(session_id)

    def delete(self, session_id: str) -> None:
        """Remove a session; deleting an absent session is a no-op."""
        if self._pop(session_id) is None:
            logger.debug("Session {} already absent", session_id)
            return
        logger.info("Deleted session {}", session_id)
        self._persist()

    def group_by_recency(
        self,
        now: datetime | None = None,
        search: str = "",
    ) -> Dict[str, List[SessionSummary]]:
        """Bucket summaries into Today, Yesterday, Last 7 days and Older.

        Day boundaries are midnights in the timezone of ``now`` (local
        time by default).  ``search`` keeps only sessions whose title
        contains it, ignoring case.
        """
        if now is None:
            now = self._clock().astimezone()
        elif now.tzinfo is None:
            now = now.astimezone()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        yesterday = today - timedelta(days=1)
        last_week = today - timedelta(days=7)
        needle = search.strip().lower()

        groups: Dict[str, List[SessionSummary]] = {label: [] for label in RECENCY_GROUPS}
        for summary in self.list_sessions():
            if needle and needle not in summary.title.lower():
                continue
            updated = summary.updated_at
            if updated >= today:
                groups["Today"].append(summary)
            elif updated >= yesterday:
                groups["Yesterday"].append(summary)
            elif updated >= last_week:
                groups["Last 7 days"].append(summary)
            else:
                groups["Older"].append(summary)
        return groups

    def reload(self) -> None:
        """Replace the mirror with the durable copy.

        Unreadable storage or undecodable records are logged and skipped;
        the store then starts from whatever could be recovered.
        """
        try:
            raw = self._storage.get(self._key)
        except PersistenceError as exc:
            logger.warning("Failed to read session history: {}", exc)
            return
        if not raw:
            self._sessions = []
            return

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.warning("Ignoring corrupt session history: {}", exc)
            self._sessions = []
            return
        if not isinstance(payload, list):
            logger.warning("Ignoring session history of unexpected type {}", type(payload).__name__)
            self._sessions = []
            return

        sessions: List[Session] = []
        for item in payload:
            try:
                session = Session.model_validate(item)
            except PydanticValidationError as exc:
                logger.warning("Skipping unreadable stored session: {}", exc)
                continue
            # An entry can only stream inside the process that created it.
            for entry in session.entries:
                entry.is_streaming = False
            sessions.append(session)

        sessions.sort(key=lambda item: item.updated_at, reverse=True)
        self._sessions = sessions[: self._limit]
        logger.info("Loaded {} stored sessions", len(self._sessions))

    # ------------------------------------------------------------------
    # Persistence helpers

    def _pop(self, session_id: str) -> Session | None:
        for index, session in enumerate(self._sessions):
            if session.id == session_id:
                return self._sessions.pop(index)
        return None

    @handle_persistence_error
    def _persist(self) -> None:
        payload = [session.model_dump(mode="json") for session in self._sessions]
        self._storage.set(self._key, json.dumps(payload, ensure_ascii=False))
