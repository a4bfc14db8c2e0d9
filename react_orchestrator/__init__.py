"""
react_orchestrator - Reason/Act/Observe agent orchestration

This package provides:
- A reasoning loop interleaving model calls and tool calls
- Plan tracking and a structured event stream of the loop's progress
- Pause/resume of conversations through an in-memory session store
- Built-in tools (calculator, weather, web search, RAG, filesystem)
- An SSE API and an interactive CLI
"""

__version__ = "0.1.0"

from .llm_call import LLMClient
from .orchestrator import Orchestrator, RunResult, run_query

__all__ = [
    "Orchestrator",
    "RunResult",
    "LLMClient",
    "run_query",
]
