"""
Pydantic schemas for the API.

Event payloads reuse the models from ``orchestration.events`` so the
wire format and the in-process format cannot drift apart.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..models.agent import Language
from ..orchestration.events import StreamEvent


class RunSettings(BaseModel):
    """Per-run overrides shared by the streaming and blocking endpoints."""

    language: Optional[Language] = Field(default=None, description="Answer language")
    model: Optional[str] = Field(default=None, description="Model name override")
    temperature: Optional[float] = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature"
    )
    max_iterations: Optional[int] = Field(default=None, ge=1, description="Iteration cap")
    pause_after_each_step: Optional[bool] = Field(
        default=None, description="Suspend after every tool call"
    )

    def overrides(self) -> dict:
        return self.model_dump(exclude_none=True)


class RunRequest(RunSettings):
    """Request body for POST /api/agent/run."""

    prompt: str = Field(..., min_length=1, description="Question, or the reply to a pause")
    session_id: Optional[str] = Field(default=None, description="Session to continue")
    conversation_id: Optional[str] = Field(
        default=None, description="Paused conversation to resume"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "prompt": "What is 15 * 23?",
                "language": "english",
            }
        }
    }


class RunResponse(BaseModel):
    """Response body for POST /api/agent/run."""

    session_id: str
    conversation_id: str
    final_answer: str
    is_paused: bool


class DonePayload(BaseModel):
    """Data of the terminal ``done`` SSE frame."""

    ok: bool
    session_id: Optional[str] = None
    conversation_id: Optional[str] = None
    is_paused: bool = False
    message: Optional[str] = None


class SessionStatusResponse(BaseModel):
    session_id: str
    is_paused: bool
    is_running: bool
    paused_conversation_id: Optional[str] = None
    pause_reason: Optional[str] = None
    waiting_reason: Optional[str] = None
    conversations: list[str] = Field(default_factory=list)


class ConversationEventsResponse(BaseModel):
    session_id: str
    conversation_id: str
    events: list[StreamEvent]


class RecentEventsResponse(BaseModel):
    events: list[StreamEvent]
    stats: dict


class HealthResponse(BaseModel):
    """Response body for /health endpoint."""

    status: Literal["healthy", "unhealthy"]
    version: str
    model: str


class ErrorResponse(BaseModel):
    detail: str
