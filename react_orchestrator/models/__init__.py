"""
Data models for react_orchestrator.
"""

from .agent import (
    AgentConfig,
    ExecutionContext,
    Language,
    ReasoningStep,
    StepType,
)

__all__ = [
    "AgentConfig",
    "ExecutionContext",
    "Language",
    "ReasoningStep",
    "StepType",
]
