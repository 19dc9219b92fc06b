"""Per-conversation sessions keyed by a hash of the opening message."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field

from .discovery import DiscoveryState
from .state import NexusState, StateFactory, create_initial_state

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "default-session"


@dataclass(slots=True)
class Session:
    key: str
    state: NexusState
    discovery: DiscoveryState = field(default_factory=DiscoveryState)


def session_key(history: Sequence[Mapping[str, str]] | None) -> str:
    """Stable key for a conversation: SHA-256 of its system message.

    Histories without a system message share ``DEFAULT_SESSION_KEY``, so a
    conversation that starts empty keeps its key once turns pile up.
    """
    system = next((m for m in history or () if m.get("role") == "system"), None)
    if system is None:
        return DEFAULT_SESSION_KEY
    content = str(system.get("content") or "")
    digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
    return f"session-{digest[:16]}"


class SessionStore:
    """Owns live sessions; create one per game (or per test)."""

    def __init__(self, factory: StateFactory = create_initial_state):
        self._factory = factory
        self._sessions: dict[str, Session] = {}

    def get_or_create(self, key: str) -> Session:
        session = self._sessions.get(key)
        if session is None:
            session = Session(key=key, state=self._factory())
            self._sessions[key] = session
            logger.debug("Created session %s", key)
        return session

    def get(self, key: str) -> Session | None:
        return self._sessions.get(key)

    def evict(self, key: str) -> bool:
        return self._sessions.pop(key, None) is not None

    def clear(self) -> None:
        self._sessions.clear()

    def keys(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))


# Fallback for callers that do not manage their own store
default_store = SessionStore()
