"""
Hinglish Meal Assistant - Conversation Session Store

Storage layer for conversation sessions and their turn history.
The in-memory store can be replaced with a database-backed one
(Redis, PostgreSQL) without touching the session manager.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from app.core.conversation import ConversationSession, ConversationTurn

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    """
    Keeps sessions, their turns and one re-entrant lock per session.

    Callers take ``lock(session_id)`` around any read-modify-write of a
    session. Locks are never shared between sessions.
    """

    @abstractmethod
    def get(self, session_id: str) -> Optional["ConversationSession"]:
        """Return the session, or None if it does not exist."""

    @abstractmethod
    def put(self, session: "ConversationSession") -> None:
        """Create or replace a session."""

    @abstractmethod
    def delete(self, session_id: str) -> bool:
        """Remove a session and its history. Returns False if it was absent."""

    @abstractmethod
    def sessions(self) -> list["ConversationSession"]:
        """Snapshot of all stored sessions."""

    @abstractmethod
    def append_turn(self, session_id: str, turn: "ConversationTurn") -> None:
        """Append a turn to a session's history."""

    @abstractmethod
    def history(self, session_id: str) -> list["ConversationTurn"]:
        """Turns of a session, oldest first. Empty for unknown sessions."""

    @abstractmethod
    def lock(self, session_id: str) -> Optional[threading.RLock]:
        """The session's lock, or None if the session does not exist."""

    def __len__(self) -> int:
        return len(self.sessions())


class InMemorySessionStore(SessionStore):
    """
    Thread-safe in-memory session store.

    A registry lock guards the maps themselves; per-session locks are
    handed to callers for session-level read-modify-write.
    """

    def __init__(self):
        self._registry_lock = threading.Lock()
        self._sessions: dict[str, "ConversationSession"] = {}
        self._history: dict[str, list["ConversationTurn"]] = {}
        self._locks: dict[str, threading.RLock] = {}

    def get(self, session_id: str) -> Optional["ConversationSession"]:
        with self._registry_lock:
            return self._sessions.get(session_id)

    def put(self, session: "ConversationSession") -> None:
        with self._registry_lock:
            if session.session_id not in self._sessions:
                self._history[session.session_id] = []
                self._locks[session.session_id] = threading.RLock()
                logger.debug(f"Stored new session {session.session_id}")
            self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> bool:
        with self._registry_lock:
            if session_id not in self._sessions:
                return False
            del self._sessions[session_id]
            turn_count = len(self._history.pop(session_id, []))
            self._locks.pop(session_id, None)
        logger.info(f"Deleted session {session_id} with {turn_count} turns")
        return True

    def sessions(self) -> list["ConversationSession"]:
        with self._registry_lock:
            return list(self._sessions.values())

    def append_turn(self, session_id: str, turn: "ConversationTurn") -> None:
        with self._registry_lock:
            self._history.setdefault(session_id, []).append(turn)

    def history(self, session_id: str) -> list["ConversationTurn"]:
        with self._registry_lock:
            return list(self._history.get(session_id, []))

    def lock(self, session_id: str) -> Optional[threading.RLock]:
        with self._registry_lock:
            return self._locks.get(session_id)

    def clear_all(self):
        """Clear all data (for testing)."""
        with self._registry_lock:
            self._sessions.clear()
            self._history.clear()
            self._locks.clear()
        logger.info("All sessions cleared")
