"""
Plan tracking for a single conversation.

A plan is an ordered list of steps whose status only ever moves
pending -> doing -> done. At most one step is ``doing`` at a time.
Steps are never reordered or removed. The tracker also remembers the
last snapshot it published so callers only emit a plan update when
something actually changed.
"""

import json
import logging
import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..llm_call import ChatModel
from ..prompts import fallback_plan, planner_prompt

logger = logging.getLogger(__name__)

_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


class PlanStatus(str, Enum):
    PENDING = "pending"
    DOING = "doing"
    DONE = "done"


class PlanStep(BaseModel):
    id: str
    title: str
    status: PlanStatus = PlanStatus.PENDING
    note: Optional[str] = None


class PlanTracker:
    """Ordered plan steps plus change detection for publishing."""

    def __init__(self, titles: list[str]):
        self.steps = [
            PlanStep(id=f"plan_{i}", title=title) for i, title in enumerate(titles, 1)
        ]
        self._published: Optional[str] = None

    def advance(self, note: Optional[str] = None) -> bool:
        """Move the first pending step to doing. Returns whether anything changed."""
        for step in self.steps:
            if step.status == PlanStatus.PENDING:
                step.status = PlanStatus.DOING
                if note:
                    step.note = note
                return True
        return False

    def complete(self, note: Optional[str] = None) -> bool:
        """Mark the doing step done. Returns whether anything changed."""
        for step in self.steps:
            if step.status == PlanStatus.DOING:
                step.status = PlanStatus.DONE
                if note:
                    step.note = note
                return True
        return False

    def ensure_doing(self, note: Optional[str] = None) -> bool:
        """Advance only when no step is currently doing."""
        if any(step.status == PlanStatus.DOING for step in self.steps):
            return False
        return self.advance(note)

    def current_step(self) -> Optional[PlanStep]:
        """The doing step, else the first pending one."""
        for status in (PlanStatus.DOING, PlanStatus.PENDING):
            for step in self.steps:
                if step.status == status:
                    return step
        return None

    def snapshot(self) -> str:
        return json.dumps(
            [step.model_dump(mode="json") for step in self.steps], sort_keys=True
        )

    def has_unpublished_changes(self) -> bool:
        return self.snapshot() != self._published

    def mark_published(self) -> None:
        self._published = self.snapshot()

    def copy_steps(self) -> list[PlanStep]:
        return [step.model_copy() for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)


def parse_plan(text: str) -> list[str]:
    """Extract step titles from a model response; empty list if unusable."""
    match = _ARRAY_RE.search(text or "")
    try:
        data = json.loads(match.group(0) if match else text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return []
    if not isinstance(data, list):
        return []

    titles = []
    for item in data:
        title = item.get("title") if isinstance(item, dict) else item
        if isinstance(title, str) and title.strip():
            titles.append(title.strip())
    return titles


async def generate_plan(
    llm: ChatModel, user_input: str, language: str = "auto"
) -> PlanTracker:
    """Ask the model for a short plan, falling back to a fixed three-step plan."""
    try:
        response = await llm.invoke([
            {"role": "system", "content": planner_prompt(user_input)},
        ])
        titles = parse_plan(response)
    except Exception as e:
        logger.warning(f"Plan generation failed, using fallback plan: {e}")
        titles = []

    if not titles:
        logger.info("No usable plan from model, using fallback plan")
        titles = fallback_plan(language)
    return PlanTracker(titles)
