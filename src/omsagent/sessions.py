"""
Session registry for ongoing conversations.

Sessions are created lazily on first contact and hold the conversation log.
Create, lookup and delete are serialized by a registry lock; each session
also carries its own lock so concurrent turns for one session run one at a
time. Eviction is delegated to a pluggable policy (TTL, LRU, or both);
sessions with a turn in progress are skipped and go on a later access.
"""

import logging
import threading
import time
import uuid
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol

from omsagent.graph.state import Message

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One user's conversation."""

    session_id: str
    messages: list[Message] = field(default_factory=list)
    created_at: float = 0.0
    last_active: float = 0.0
    deleted: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class EvictionPolicy(Protocol):
    """Decides which sessions to drop. Sessions are ordered oldest-access first."""

    def select(self, sessions: "OrderedDict[str, Session]", now: float) -> list[str]:
        ...


class TTLEvictionPolicy:
    """Evict sessions idle for longer than ttl_seconds."""

    def __init__(self, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self.ttl_seconds = ttl_seconds

    def select(self, sessions: "OrderedDict[str, Session]", now: float) -> list[str]:
        return [
            sid for sid, session in sessions.items()
            if now - session.last_active > self.ttl_seconds
        ]


class LRUEvictionPolicy:
    """Keep at most max_sessions, dropping the least recently used."""

    def __init__(self, max_sessions: int) -> None:
        if max_sessions < 1:
            raise ValueError(f"max_sessions must be at least 1, got {max_sessions}")
        self.max_sessions = max_sessions

    def select(self, sessions: "OrderedDict[str, Session]", now: float) -> list[str]:
        excess = len(sessions) - self.max_sessions
        if excess <= 0:
            return []
        return list(sessions.keys())[:excess]


class CompositeEvictionPolicy:
    """Apply several policies; a session goes if any policy selects it."""

    def __init__(self, policies: list[EvictionPolicy]) -> None:
        self.policies = policies

    def select(self, sessions: "OrderedDict[str, Session]", now: float) -> list[str]:
        selected: list[str] = []
        remaining = OrderedDict(sessions)
        for policy in self.policies:
            for sid in policy.select(remaining, now):
                if sid in remaining:
                    del remaining[sid]
                    selected.append(sid)
        return selected


class SessionRegistry:
    """
    Thread-safe map of session id to Session.

    Example:
        >>> registry = SessionRegistry(system_prompt="You are helpful.")
        >>> session = registry.get_or_create(None)
        >>> registry.delete(session.session_id)
        True
    """

    def __init__(
        self,
        system_prompt: Optional[str] = None,
        eviction_policy: Optional[EvictionPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the registry.

        Args:
            system_prompt: Seed message for new sessions (none if None)
            eviction_policy: Policy consulted on every access (never evict if None)
            clock: Time source, injectable for tests
        """
        if system_prompt is None:
            from omsagent.nodes import SYSTEM_PROMPT

            system_prompt = SYSTEM_PROMPT
        self.system_prompt = system_prompt
        self.eviction_policy = eviction_policy
        self._clock = clock
        self._sessions: "OrderedDict[str, Session]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        with self._lock:
            return session_id in self._sessions

    def _evict(self, now: float, keep: Optional[str] = None) -> None:
        if self.eviction_policy is None:
            return
        for sid in self.eviction_policy.select(self._sessions, now):
            session = self._sessions.get(sid)
            if sid == keep or session is None or session.lock.locked():
                continue
            del self._sessions[sid]
            logger.info(f"Evicted session {sid[:8]}")

    def _new_session(self, session_id: str, now: float) -> Session:
        messages = [Message.system(self.system_prompt)] if self.system_prompt else []
        session = Session(session_id=session_id, messages=messages, created_at=now, last_active=now)
        self._sessions[session_id] = session
        logger.info(f"Created session {session_id[:8]}")
        return session

    def create(self, session_id: Optional[str] = None) -> Session:
        """
        Create a session, replacing any existing one with the same id.

        Args:
            session_id: Id to use (a new uuid4 if None)
        """
        now = self._clock()
        with self._lock:
            self._evict(now)
            replaced = self._sessions.pop(session_id or "", None)
            if replaced is not None:
                replaced.deleted = True
            session = self._new_session(session_id or str(uuid.uuid4()), now)
            self._evict(now, keep=session.session_id)
            return session

    def get(self, session_id: str) -> Optional[Session]:
        """Look up a session and mark it as recently used."""
        now = self._clock()
        with self._lock:
            self._evict(now)
            session = self._sessions.get(session_id)
            if session is not None:
                session.last_active = now
                self._sessions.move_to_end(session_id)
            return session

    def get_or_create(self, session_id: Optional[str] = None) -> Session:
        """Return the session with this id, creating it on first contact."""
        now = self._clock()
        with self._lock:
            self._evict(now)
            session = self._sessions.get(session_id) if session_id else None
            if session is None:
                session = self._new_session(session_id or str(uuid.uuid4()), now)
                self._evict(now, keep=session.session_id)
            else:
                session.last_active = now
                self._sessions.move_to_end(session.session_id)
            return session

    def delete(self, session_id: str) -> bool:
        """Remove a session. Returns False if it did not exist."""
        with self._lock:
            session = self._sessions.pop(session_id, None)
            if session is None:
                return False
            session.deleted = True
            logger.info(f"Deleted session {session_id[:8]}")
            return True

    def reattach(self, session: Session) -> bool:
        """
        Put a session back after a turn if it was evicted meanwhile.

        Deleted sessions stay deleted, and a session whose id now belongs to
        a newer Session is left out.

        Returns:
            True if the session is registered when the call returns
        """
        now = self._clock()
        with self._lock:
            current = self._sessions.get(session.session_id)
            if current is session:
                return True
            if session.deleted or current is not None:
                return False
            session.last_active = now
            self._sessions[session.session_id] = session
            logger.info(f"Restored session {session.session_id[:8]}")
            self._evict(now, keep=session.session_id)
            return True
