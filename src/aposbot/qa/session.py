"""Per-session conversation history."""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from aposbot.qa.schemas import Message


@dataclass
class SessionHistory:
    """Ordered message log for one conversation."""

    messages: list[Message] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    last_accessed: datetime = field(default_factory=datetime.now)

    def is_expired(self, ttl_minutes: int) -> bool:
        """Check if the session has been idle longer than the TTL."""
        return datetime.now() > self.last_accessed + timedelta(minutes=ttl_minutes)

    def touch(self) -> None:
        """Update last_accessed timestamp."""
        self.last_accessed = datetime.now()


class SessionHistoryStore:
    """In-memory store mapping session IDs to conversation histories.

    Sessions are created on first reference. The store holds at most
    ``max_sessions`` histories; the least recently used one is dropped to
    make room, and histories idle for longer than ``ttl_minutes`` are
    treated as new.

    The store takes no locks. Callers must not run two requests for the
    same session at once (see InFlightRequests); appends from overlapping
    requests would interleave.
    """

    def __init__(self, max_sessions: int = 1000, ttl_minutes: int = 120) -> None:
        self.max_sessions = max_sessions
        self.ttl_minutes = ttl_minutes
        self._sessions: OrderedDict[str, SessionHistory] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _get_or_create(self, session_id: str) -> SessionHistory:
        session = self._sessions.get(session_id)
        if session is not None and session.is_expired(self.ttl_minutes):
            del self._sessions[session_id]
            session = None

        if session is None:
            session = SessionHistory()
            self._sessions[session_id] = session
            while len(self._sessions) > self.max_sessions:
                self._sessions.popitem(last=False)

        self._sessions.move_to_end(session_id)
        session.touch()
        return session

    def get_messages(self, session_id: str) -> list[Message]:
        """Get a session's messages in insertion order.

        Args:
            session_id: Conversation identifier.

        Returns:
            A copy of the message list; empty for a new session.
        """
        return list(self._get_or_create(session_id).messages)

    def append_message(self, session_id: str, message: Message) -> None:
        """Append one message to a session.

        Precondition: no other request for this session is in flight.
        """
        self._get_or_create(session_id).messages.append(message)

    def append_exchange(self, session_id: str, question: str, answer: str) -> None:
        """Append a question and its answer, in that order.

        Precondition: no other request for this session is in flight.
        """
        self._get_or_create(session_id).messages.extend(
            [Message.human(question), Message.ai(answer)]
        )

    def clear(self, session_id: str) -> bool:
        """Forget a session.

        Returns:
            True if the session existed.
        """
        return self._sessions.pop(session_id, None) is not None

    def cleanup_expired(self) -> int:
        """Remove all expired sessions.

        Returns:
            Number of sessions removed.
        """
        expired_ids = [
            sid for sid, session in self._sessions.items() if session.is_expired(self.ttl_minutes)
        ]
        for sid in expired_ids:
            del self._sessions[sid]
        return len(expired_ids)


class InFlightRequests:
    """Tracks which sessions have a request being answered.

    Gives callers a per-session token so that a second question for the
    same session is rejected instead of racing the first.
    """

    def __init__(self) -> None:
        self._active: set[str] = set()

    def try_acquire(self, session_id: str) -> bool:
        """Mark a session busy.

        Returns:
            False if the session already has a request in flight.
        """
        if session_id in self._active:
            return False
        self._active.add(session_id)
        return True

    def release(self, session_id: str) -> None:
        """Mark a session idle again."""
        self._active.discard(session_id)
