"""
FastAPI server module for react_orchestrator.

Provides the SSE streaming endpoint and session/event views.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
