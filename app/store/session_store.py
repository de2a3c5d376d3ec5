"""
Session storage.

The orchestrator only sees the SessionStore interface, so the in-memory
implementation can be swapped for a durable one without touching it.

InMemorySessionStore keeps every session for the process lifetime: no TTL,
no eviction, nothing survives a restart. The upstream API stays the system
of record for actual payment execution.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable

from app.engine.errors import SessionNotFound
from app.models.session import Session


class SessionStore(ABC):
    @abstractmethod
    def put(self, session: Session) -> None:
        """Insert or replace a session under session.id."""

    @abstractmethod
    def get(self, session_id: str) -> Session:
        """Return a copy of the session. Raises SessionNotFound."""

    @abstractmethod
    def list(self) -> list[Session]:
        """Return copies of all sessions. Order carries no meaning."""

    @abstractmethod
    def find_by_correlation_token(self, token: str) -> Session:
        """Return the session whose correlation token or id equals token. Raises SessionNotFound."""

    @abstractmethod
    def update(self, session_id: str, apply: Callable[[Session], bool]) -> Session:
        """
        Atomically apply a change to a stored session.

        apply receives a private copy and mutates it in place; returning False
        leaves the stored record untouched. Returns the resulting session.
        """


class InMemorySessionStore(SessionStore):
    """
    Dict-backed store guarded by a lock.

    Reads and writes exchange deep copies, so no caller can observe or
    produce a half-written record. The lock is never held across an await:
    every method is synchronous.

    Correlation tokens are indexed, so callback matching is O(1) rather than
    a scan over all sessions.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}
        self._by_token: dict[str, str] = {}

    def put(self, session: Session) -> None:
        stored = session.model_copy(deep=True)
        with self._lock:
            previous = self._sessions.get(stored.id)
            if previous is not None and previous.correlation_token != stored.correlation_token:
                self._by_token.pop(previous.correlation_token, None)
            self._sessions[stored.id] = stored
            self._by_token[stored.correlation_token] = stored.id

    def get(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(session_id)
            return session.model_copy(deep=True)

    def list(self) -> list[Session]:
        with self._lock:
            return [s.model_copy(deep=True) for s in self._sessions.values()]

    def find_by_correlation_token(self, token: str) -> Session:
        with self._lock:
            session_id = self._by_token.get(token, token)
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(token)
            return session.model_copy(deep=True)

    def update(self, session_id: str, apply: Callable[[Session], bool]) -> Session:
        with self._lock:
            current = self._sessions.get(session_id)
            if current is None:
                raise SessionNotFound(session_id)
            draft = current.model_copy(deep=True)
            if not apply(draft):
                return draft
            draft.updated_at = datetime.now(timezone.utc)
            if draft.correlation_token != current.correlation_token:
                self._by_token.pop(current.correlation_token, None)
            self._sessions[session_id] = draft
            self._by_token[draft.correlation_token] = session_id
            return draft.model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
