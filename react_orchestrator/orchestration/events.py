"""
Conversation event protocol.

Events are immutable pydantic models discriminated on ``type``. Every
event has an ``id``; fragments of one streamed message share the same
id and the last one carries ``done=True``. Events travel wrapped in a
``StreamEvent`` envelope that names the session and conversation.
"""

import secrets
import time
from typing import Annotated, Any, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .plan import PlanStep

Role = Literal["user", "assistant"]


def now_ms() -> int:
    return int(time.time() * 1000)


def new_id(prefix: str) -> str:
    """``<prefix>_<epoch ms>_<random>`` identifier."""
    return f"{prefix}_{now_ms()}_{secrets.token_hex(3)}"


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role = "assistant"


class NormalEvent(_Event):
    """Plain text, either complete or one fragment of a stream."""

    type: Literal["normal"] = "normal"
    content: str
    stream: bool = False
    done: bool = False


class PlanUpdateEvent(_Event):
    type: Literal["plan_update"] = "plan_update"
    steps: tuple[PlanStep, ...]


class ToolCallEvent(_Event):
    """Start or end of one tool invocation; both share the same id."""

    type: Literal["tool_call"] = "tool_call"
    status: Literal["start", "end"]
    tool_name: str
    args: Any = None
    result: Optional[dict] = None
    success: Optional[bool] = None
    started_at: Optional[int] = None
    finished_at: Optional[int] = None
    duration_ms: Optional[int] = None
    iteration: Optional[int] = None


class WaitingForInputEvent(_Event):
    type: Literal["waiting_for_input"] = "waiting_for_input"
    message: str
    reason: Optional[str] = None


ConversationEvent = Annotated[
    Union[NormalEvent, PlanUpdateEvent, ToolCallEvent, WaitingForInputEvent],
    Field(discriminator="type"),
]


class StreamEvent(BaseModel):
    """Envelope for one event on the wire."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    conversation_id: str
    event: ConversationEvent
    timestamp: int = Field(default_factory=now_ms)


def coalesce_fragments(
    events: Iterable[Union[StreamEvent, NormalEvent, PlanUpdateEvent, ToolCallEvent, WaitingForInputEvent]],
) -> list:
    """
    Merge streamed ``normal`` fragments that share an id into one event.

    The merged event takes the position of the first fragment. Non-stream
    events pass through unchanged. Envelopes are unwrapped.
    """
    merged: list = []
    fragments: dict[str, int] = {}
    for item in events:
        event = item.event if isinstance(item, StreamEvent) else item
        if not (isinstance(event, NormalEvent) and event.stream):
            merged.append(event)
            continue

        index = fragments.get(event.id)
        if index is None:
            fragments[event.id] = len(merged)
            merged.append(event.model_copy(update={"stream": False}))
            continue

        current = merged[index]
        merged[index] = current.model_copy(update={
            "content": current.content + event.content,
            "done": current.done or event.done,
        })
    return merged
