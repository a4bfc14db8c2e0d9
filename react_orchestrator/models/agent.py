"""
Agent data models.

``AgentConfig`` is validated with pydantic since it arrives from HTTP
query strings and YAML overrides; the runtime records the loop appends
to are plain dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from ..config import config
from ..tools.registry import ToolRegistry, ToolResult

Language = Literal["auto", "chinese", "english"]


class AgentConfig(BaseModel):
    """Settings for one reasoning run."""

    model: str = Field(default_factory=lambda: config.llm.model)
    temperature: float = Field(default_factory=lambda: config.llm.temperature, ge=0, le=2)
    max_tokens: int = Field(default_factory=lambda: config.llm.max_tokens, gt=0)
    max_iterations: int = Field(default_factory=lambda: config.agent.max_iterations, gt=0)
    language: Language = Field(default_factory=lambda: config.agent.language)
    pause_after_each_step: bool = Field(default_factory=lambda: config.agent.pause_after_each_step)
    stream_output: bool = Field(default_factory=lambda: config.agent.stream_output)
    announce_start: bool = Field(default_factory=lambda: config.agent.announce_start)
    history_window: int = Field(default_factory=lambda: config.agent.history_window, gt=0)
    observation_preview_chars: int = Field(
        default_factory=lambda: config.agent.observation_preview_chars, gt=0
    )

    def merged(self, overrides: Optional[dict] = None) -> "AgentConfig":
        """Return a validated copy with ``overrides`` applied (``None`` values ignored)."""
        if not overrides:
            return self
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return AgentConfig.model_validate(data)


class StepType(str, Enum):
    THOUGHT = "thought"
    ACTION = "action"
    OBSERVATION = "observation"


@dataclass
class ReasoningStep:
    """One entry of the append-only reasoning trace."""

    type: StepType
    content: str
    tool_name: Optional[str] = None
    tool_input: Any = None
    tool_output: Optional[ToolResult] = None


@dataclass
class ExecutionContext:
    """State of one conversation: the question, its trace, tools and settings."""

    input: str
    tools: ToolRegistry
    config: AgentConfig
    steps: list[ReasoningStep] = field(default_factory=list)

    def add_step(self, step: ReasoningStep) -> ReasoningStep:
        self.steps.append(step)
        return step

    def recent_steps(self, window: int) -> list[ReasoningStep]:
        return self.steps[-window:] if window > 0 else []
