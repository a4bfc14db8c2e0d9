"""
Parser for the Thought / Action / Final Answer text grammar.

    Thought: <free text>
    Action: <tool_name>
    Input: <JSON object>

or

    Thought: <free text>
    Final Answer: <free text>

``parse_react_output`` is total: any string yields a ``ParsedOutput``.
Text with neither marker becomes a ``continue_thinking`` action so the
loop records it and moves on.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

CONTINUE_THINKING = "continue_thinking"

_THOUGHT_RE = re.compile(r"Thought:\s*(.*?)(?=Action:|Final Answer:|\Z)", re.DOTALL)
_FINAL_RE = re.compile(r"Final Answer:\s*(.*)", re.DOTALL)
_ACTION_RE = re.compile(r"Action:[ \t]*([^\n]*)")
_INPUT_RE = re.compile(r"Input:\s*(.*)", re.DOTALL)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass
class ParsedOutput:
    """One model turn, either a tool action or a final answer."""

    kind: Literal["action", "final_answer"]
    thought: str = ""
    answer: Optional[str] = None
    tool_name: Optional[str] = None
    tool_input: dict[str, Any] = field(default_factory=dict)

    @property
    def is_final(self) -> bool:
        return self.kind == "final_answer"


def _parse_input(raw: str) -> dict[str, Any]:
    """Decode the text after ``Input:``; fall back to ``{"input": raw}``."""
    raw = raw.strip()
    match = _OBJECT_RE.search(raw)
    candidate = match.group(0) if match else raw
    try:
        value = json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        logger.warning(f"Tool input is not valid JSON, passing raw string: {raw[:200]}")
        return {"input": raw}
    if isinstance(value, dict):
        return value
    return {"input": raw}


def parse_react_output(text: str) -> ParsedOutput:
    """Parse raw model text. Never raises."""
    text = text or ""

    thought_match = _THOUGHT_RE.search(text)
    thought = thought_match.group(1).strip() if thought_match else ""

    if "Final Answer:" in text:
        answer = _FINAL_RE.search(text).group(1).strip()
        return ParsedOutput(kind="final_answer", thought=thought, answer=answer)

    action_match = _ACTION_RE.search(text)
    if action_match and action_match.group(1).strip():
        tool_input: dict[str, Any] = {}
        input_match = _INPUT_RE.search(text, action_match.end())
        if input_match:
            tool_input = _parse_input(input_match.group(1))
        return ParsedOutput(
            kind="action",
            thought=thought,
            tool_name=action_match.group(1).strip(),
            tool_input=tool_input,
        )

    return ParsedOutput(
        kind="action",
        thought=thought,
        tool_name=CONTINUE_THINKING,
        tool_input={"thought": text},
    )
