"""
In-memory session store.

Maps session_id -> at most one paused ``SessionState``, tracks which
sessions have a run in progress and keeps a bounded event history of
recent conversations. Uses asyncio.Lock for safe concurrent access; state is
lost when the process exits.
"""

import asyncio
import logging
from collections import OrderedDict, deque
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Deque, Optional

from ..models.agent import ExecutionContext
from .events import StreamEvent
from .plan import PlanTracker

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONVERSATIONS = 20
DEFAULT_MAX_EVENTS = 1000
DEFAULT_MAX_SESSIONS = 1000


class SessionBusyError(RuntimeError):
    """Raised when a run is started for a session that is already running."""

    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' already has a run in progress")
        self.session_id = session_id


class PauseReason(str, Enum):
    WAIT_FOR_INPUT = "wait_for_input"
    STEP_CONFIRMATION = "step_confirmation"


@dataclass
class SessionState:
    """Everything needed to continue a suspended conversation."""

    context: ExecutionContext
    next_iteration: int
    session_id: str
    conversation_id: str
    plan: PlanTracker
    pause_reason: PauseReason
    is_paused: bool = True
    waiting_reason: Optional[str] = None


class SessionStore:
    """Async-safe store shared by every run of one ``Orchestrator``."""

    def __init__(
        self,
        max_conversations: int = DEFAULT_MAX_CONVERSATIONS,
        max_events: int = DEFAULT_MAX_EVENTS,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
    ):
        self._states: dict[str, SessionState] = {}
        self._active: set[str] = set()
        # Oldest first at both levels, so eviction pops from the front.
        self._history: "OrderedDict[str, OrderedDict[str, Deque[StreamEvent]]]" = OrderedDict()
        self._max_conversations = max_conversations
        self._max_events = max_events
        self._max_sessions = max_sessions
        self._lock = asyncio.Lock()

    async def save(self, state: SessionState) -> None:
        """Store ``state``, replacing any previous state of the session."""
        async with self._lock:
            self._states[state.session_id] = state
        logger.info(
            f"[{state.session_id}/{state.conversation_id}] Session paused at iteration "
            f"{state.next_iteration} ({state.pause_reason.value})"
        )

    async def resume(self, session_id: str, conversation_id: Optional[str]) -> Optional[SessionState]:
        """
        Take the paused state of a conversation, if there is one.

        The entry is removed under the lock, so a second call with the
        same ids returns None. A missing or different conversation id
        also returns None and leaves the stored state untouched.
        """
        if not conversation_id:
            return None
        async with self._lock:
            state = self._states.get(session_id)
            if state is None or not state.is_paused or state.conversation_id != conversation_id:
                return None
            del self._states[session_id]
            state.is_paused = False
            return state

    async def discard(self, session_id: str) -> bool:
        """Drop any paused state of the session. Returns True if one existed."""
        async with self._lock:
            return self._states.pop(session_id, None) is not None

    async def get(self, session_id: str) -> Optional[SessionState]:
        async with self._lock:
            return self._states.get(session_id)

    async def paused_sessions(self) -> list[str]:
        async with self._lock:
            return [sid for sid, state in self._states.items() if state.is_paused]

    @asynccontextmanager
    async def claim(self, session_id: str) -> AsyncIterator[None]:
        """Hold the session's run slot for the duration of the block.

        Raises:
            SessionBusyError: If another run holds the slot.
        """
        async with self._lock:
            if session_id in self._active:
                raise SessionBusyError(session_id)
            self._active.add(session_id)
        try:
            yield
        finally:
            async with self._lock:
                self._active.discard(session_id)

    def is_active(self, session_id: str) -> bool:
        return session_id in self._active

    def record(self, envelope: StreamEvent) -> None:
        """Append an event to its conversation's history.

        Keeps the latest ``max_conversations`` conversations of a session
        and the ``max_sessions`` most recently active sessions. Each
        conversation keeps its last ``max_events`` events.
        """
        session_id, conversation_id = envelope.session_id, envelope.conversation_id
        conversations = self._history.get(session_id)
        if conversations is None:
            conversations = self._history[session_id] = OrderedDict()
            while len(self._history) > self._max_sessions:
                evicted, _ = self._history.popitem(last=False)
                logger.debug(f"Evicted event history of session {evicted}")
        else:
            self._history.move_to_end(session_id)

        events = conversations.get(conversation_id)
        if events is None:
            events = conversations[conversation_id] = deque(maxlen=self._max_events)
            while len(conversations) > self._max_conversations:
                evicted, _ = conversations.popitem(last=False)
                logger.debug(f"[{session_id}/{evicted}] Evicted conversation history")
        events.append(envelope)

    def conversation_events(self, session_id: str, conversation_id: str) -> Optional[list[StreamEvent]]:
        """Recorded events of a conversation, or None if it is unknown."""
        events = self._history.get(session_id, {}).get(conversation_id)
        return list(events) if events is not None else None

    def conversations(self, session_id: str) -> list[str]:
        """Conversation ids of a session in the order they started."""
        return list(self._history.get(session_id, {}))
