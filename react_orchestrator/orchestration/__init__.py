"""
Reasoning orchestration core.

The loop interleaves model calls and tool calls, tracks a plan, and
reports progress as events. Paused conversations live in the session
store until they are resumed.
"""

from .emitter import ConversationEmitter, EventEmitter
from .events import (
    ConversationEvent,
    NormalEvent,
    PlanUpdateEvent,
    StreamEvent,
    ToolCallEvent,
    WaitingForInputEvent,
    coalesce_fragments,
)
from .loop import LoopOutcome, OrchestrationError, ReasoningLoop, WAIT_FOR_USER_INPUT
from .parser import CONTINUE_THINKING, ParsedOutput, parse_react_output
from .plan import PlanStatus, PlanStep, PlanTracker, generate_plan
from .session_store import PauseReason, SessionBusyError, SessionState, SessionStore

__all__ = [
    "ConversationEmitter",
    "EventEmitter",
    "ConversationEvent",
    "NormalEvent",
    "PlanUpdateEvent",
    "StreamEvent",
    "ToolCallEvent",
    "WaitingForInputEvent",
    "coalesce_fragments",
    "LoopOutcome",
    "OrchestrationError",
    "ReasoningLoop",
    "WAIT_FOR_USER_INPUT",
    "CONTINUE_THINKING",
    "ParsedOutput",
    "parse_react_output",
    "PlanStatus",
    "PlanStep",
    "PlanTracker",
    "generate_plan",
    "PauseReason",
    "SessionBusyError",
    "SessionState",
    "SessionStore",
]
