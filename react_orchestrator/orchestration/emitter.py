"""
Event fan-out.

``EventEmitter`` is the process-wide hub: it keeps a bounded ring of
recent envelopes for diagnostics and delivers every envelope, in order,
to its subscribers. ``ConversationEmitter`` is created per run; it
stamps events with the run's session and conversation ids, records
them in the session store history and forwards them to the run's own
observer before publishing.
"""

import inspect
import json
import logging
from collections import Counter, deque
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, Optional, Union

from ..tools.registry import ToolResult
from .events import (
    NormalEvent,
    PlanUpdateEvent,
    StreamEvent,
    ToolCallEvent,
    WaitingForInputEvent,
    new_id,
)
from .plan import PlanTracker

if TYPE_CHECKING:
    from .session_store import SessionStore

logger = logging.getLogger(__name__)

Observer = Callable[[StreamEvent], Union[None, Awaitable[None]]]

DEFAULT_HISTORY_SIZE = 100


async def _notify(observer: Observer, envelope: StreamEvent) -> None:
    result = observer(envelope)
    if inspect.isawaitable(result):
        await result


class EventEmitter:
    """Process-wide event hub with a bounded history."""

    def __init__(self, history_size: int = DEFAULT_HISTORY_SIZE):
        self._observers: list[Observer] = []
        self._history: deque[StreamEvent] = deque(maxlen=history_size)
        self._counts: Counter[str] = Counter()

    def subscribe(self, observer: Observer) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> bool:
        try:
            self._observers.remove(observer)
            return True
        except ValueError:
            return False

    async def publish(self, envelope: StreamEvent) -> None:
        """Record ``envelope`` and deliver it to every subscriber in order.

        A failing subscriber is logged and skipped so one bad observer
        cannot stall the run.
        """
        self._history.append(envelope)
        self._counts[envelope.event.type] += 1
        for observer in list(self._observers):
            try:
                await _notify(observer, envelope)
            except Exception as e:
                logger.error(f"Event observer {observer!r} failed: {e}")

    def recent(self, limit: Optional[int] = None) -> list[StreamEvent]:
        """Most recent envelopes, oldest first."""
        items = list(self._history)
        if limit is not None:
            items = items[-limit:] if limit > 0 else []
        return items

    def clear(self) -> None:
        self._history.clear()
        self._counts.clear()

    def stats(self) -> dict:
        return {
            "total": sum(self._counts.values()),
            "buffered": len(self._history),
            "capacity": self._history.maxlen,
            "by_type": dict(self._counts),
            "observers": len(self._observers),
        }


class ConversationEmitter:
    """Builds and publishes the events of one run."""

    def __init__(
        self,
        emitter: EventEmitter,
        session_id: str,
        conversation_id: str,
        observer: Optional[Observer] = None,
        store: Optional["SessionStore"] = None,
    ):
        self.emitter = emitter
        self.session_id = session_id
        self.conversation_id = conversation_id
        self.observer = observer
        self.store = store
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop emitting; later calls become no-ops."""
        self._closed = True

    async def emit(self, event) -> Optional[StreamEvent]:
        if self._closed:
            return None
        envelope = StreamEvent(
            session_id=self.session_id,
            conversation_id=self.conversation_id,
            event=event,
        )
        if self.store is not None:
            self.store.record(envelope)
        if self.observer is not None:
            await _notify(self.observer, envelope)
        await self.emitter.publish(envelope)
        return envelope

    async def normal(
        self,
        content: str,
        event_id: Optional[str] = None,
        role: str = "assistant",
        stream: bool = False,
        done: bool = False,
    ) -> NormalEvent:
        event = NormalEvent(
            id=event_id or new_id("message"),
            role=role,
            content=content,
            stream=stream,
            done=done,
        )
        await self.emit(event)
        return event

    async def stream_text(self, fragments: AsyncIterator[str], event_id: str) -> str:
        """Emit each fragment under ``event_id``, then one empty ``done`` fragment.

        Returns the concatenated text.
        """
        parts = []
        async for fragment in fragments:
            if not fragment:
                continue
            parts.append(fragment)
            await self.normal(fragment, event_id=event_id, stream=True)
        await self.normal("", event_id=event_id, stream=True, done=True)
        return "".join(parts)

    async def plan_update(self, plan: PlanTracker, force: bool = False) -> bool:
        """Publish the plan if it changed since the last publish."""
        if not force and not plan.has_unpublished_changes():
            return False
        await self.emit(PlanUpdateEvent(id=new_id("plan"), steps=tuple(plan.copy_steps())))
        plan.mark_published()
        return True

    async def tool_call_start(
        self, event_id: str, tool_name: str, args, iteration: int, started_at: int
    ) -> None:
        await self.emit(ToolCallEvent(
            id=event_id,
            status="start",
            tool_name=tool_name,
            args=args,
            started_at=started_at,
            iteration=iteration,
        ))

    async def tool_call_end(
        self,
        event_id: str,
        tool_name: str,
        args,
        result: ToolResult,
        iteration: int,
        started_at: int,
        finished_at: int,
    ) -> None:
        await self.emit(ToolCallEvent(
            id=event_id,
            status="end",
            tool_name=tool_name,
            args=args,
            result=json.loads(json.dumps(result.to_dict(), default=str)),
            success=result.success,
            started_at=started_at,
            finished_at=finished_at,
            duration_ms=finished_at - started_at,
            iteration=iteration,
        ))

    async def waiting_for_input(self, message: str, reason: Optional[str] = None) -> None:
        await self.emit(WaitingForInputEvent(
            id=new_id("waiting"), message=message, reason=reason
        ))
