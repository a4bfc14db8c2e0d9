"""
Prompt wording for react_orchestrator.

The reasoning loop builds every model message through these helpers.
"""

from .templates import (
    final_answer_prompt,
    fallback_plan,
    instructions,
    language_prompt,
    planner_prompt,
    pre_action_prompt,
    preparing_answer,
    step_confirmation_message,
    system_prompt,
    tool_hint,
    waiting_message,
)

__all__ = [
    "final_answer_prompt",
    "fallback_plan",
    "instructions",
    "language_prompt",
    "planner_prompt",
    "pre_action_prompt",
    "preparing_answer",
    "step_confirmation_message",
    "system_prompt",
    "tool_hint",
    "waiting_message",
]
