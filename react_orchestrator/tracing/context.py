"""
Run-scoped tracing context using Langfuse SDK v3.

One ``TracingContext`` covers one orchestration run. Model calls are
recorded as generations and tool calls as spans, all children of the
run's root span through explicit trace_context propagation.
"""

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from langfuse.types import TraceContext

from .client import get_tracing_client

logger = logging.getLogger(__name__)


class _Observation:
    """A span or generation; inert when tracing is disabled."""

    def __init__(self, as_type: str, name: str, enabled: bool, **attributes):
        self.as_type = as_type
        self.name = name
        self.enabled = enabled
        self.attributes = attributes
        self._cm: Any = None
        self._observation: Any = None
        self._start_time = 0.0
        self._output: Any = None
        self._usage: Optional[dict] = None
        self._status = "success"

    def start(self) -> None:
        client = get_tracing_client()
        if not self.enabled or not client or not client.client:
            return
        try:
            self._start_time = time.time()
            self._cm = client.client.start_as_current_observation(
                as_type=self.as_type,
                name=self.name,
                **{k: v for k, v in self.attributes.items() if v is not None},
            )
            self._observation = self._cm.__enter__()
        except Exception as e:
            logger.warning(f"Failed to start {self.as_type} '{self.name}': {e}")
            self._observation = None

    def end(self) -> None:
        if not self._observation:
            return
        try:
            update: dict[str, Any] = {
                "metadata": {
                    "status": self._status,
                    "duration_ms": round((time.time() - self._start_time) * 1000, 2),
                }
            }
            if self._output is not None:
                update["output"] = self._output
            if self._usage:
                update["usage_details"] = self._usage
            self._observation.update(**update)
            self._cm.__exit__(None, None, None)
        except Exception as e:
            logger.warning(f"Failed to end {self.as_type} '{self.name}': {e}")

    def set_output(self, output: Any) -> None:
        self._output = output

    def set_status(self, status: str) -> None:
        self._status = status

    def set_usage(
        self,
        prompt_tokens: Optional[int] = None,
        completion_tokens: Optional[int] = None,
    ) -> None:
        self._usage = {}
        if prompt_tokens is not None:
            self._usage["input"] = prompt_tokens
        if completion_tokens is not None:
            self._usage["output"] = completion_tokens


# Public names for type hints at call sites.
SpanContext = _Observation
GenerationContext = _Observation


class TracingContext:
    """Tracing for one (session, conversation) run."""

    def __init__(self, session_id: str, conversation_id: Optional[str] = None):
        self.session_id = session_id
        self.conversation_id = conversation_id
        client = get_tracing_client()
        self._enabled = client is not None and client.enabled
        self._root: Optional[_Observation] = None
        self._trace_id: Optional[str] = None
        self._root_span_id: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_trace(self, name: str = "agent_run", input: Any = None, metadata: Optional[dict] = None) -> None:
        """Open the run's root span."""
        if not self._enabled:
            return
        trace_metadata = {"conversation_id": self.conversation_id, **(metadata or {})}
        self._root = _Observation("span", name, True, input=input, metadata=trace_metadata)
        self._root.start()
        span = self._root._observation
        if span is None:
            return
        self._trace_id = getattr(span, "trace_id", None)
        self._root_span_id = getattr(span, "id", None)
        try:
            span.update_trace(session_id=self.session_id)
        except Exception as e:
            logger.debug(f"Failed to set trace attributes: {e}")

    def end_trace(self, output: Any = None, status: str = "success") -> None:
        if self._root is None:
            return
        self._root.set_output(output)
        self._root.set_status(status)
        self._root.end()
        self._root = None

    def _trace_context(self) -> Optional[TraceContext]:
        if not self._trace_id or not self._root_span_id:
            return None
        return TraceContext(trace_id=self._trace_id, parent_span_id=self._root_span_id)

    @contextmanager
    def span(self, name: str, input: Any = None, metadata: Optional[dict] = None) -> Iterator[_Observation]:
        """Span for a tool call or other non-model step."""
        obs = _Observation(
            "span", name, self._enabled,
            trace_context=self._trace_context(), input=input, metadata=metadata,
        )
        obs.start()
        try:
            yield obs
        finally:
            obs.end()

    @contextmanager
    def generation(
        self,
        name: str,
        model: str,
        input: Any = None,
        model_parameters: Optional[dict] = None,
    ) -> Iterator[_Observation]:
        """Generation for a model call."""
        obs = _Observation(
            "generation", name, self._enabled,
            trace_context=self._trace_context(), model=model, input=input,
            model_parameters=model_parameters,
        )
        obs.start()
        try:
            yield obs
        finally:
            obs.end()
