"""
Reasoning loop for one conversation.

Each iteration makes one model call, parses it with the Thought /
Action / Final Answer grammar and either runs a tool, suspends the
conversation, or produces the final answer. Progress is reported as
events through the run's ``ConversationEmitter``; suspension hands the
execution context and plan to the ``SessionStore``.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

from .. import prompts
from ..llm_call import ChatModel, LLMCallError
from ..models.agent import ExecutionContext, ReasoningStep, StepType
from ..tools.registry import ToolResult
from ..tracing import TracingContext
from .emitter import ConversationEmitter
from .events import new_id, now_ms
from .parser import ParsedOutput, parse_react_output
from .plan import PlanTracker
from .session_store import PauseReason, SessionState, SessionStore

logger = logging.getLogger(__name__)

# Reserved action name that suspends the conversation.
WAIT_FOR_USER_INPUT = "wait_for_user_input"

# Length of the result preview shown in observation events.
PREVIEW_CHARS = 100

DEFAULT_WAIT_REASON = "More information is needed"


class OrchestrationError(RuntimeError):
    """Raised when the loop cannot continue because the model failed."""


@dataclass
class LoopOutcome:
    final_answer: str
    is_paused: bool


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


def observation_text(result: ToolResult, rendered: Optional[str] = None) -> str:
    """Observation recorded in the reasoning trace for a tool result.

    ``rendered`` is the tool's own formatting of a successful result;
    without it the raw result is serialized.
    """
    if result.success:
        text = rendered if rendered is not None else _to_text(result.result)
        return f"Tool executed successfully. Result: {text}"
    return f"Tool execution failed. Error: {result.error}"


def result_preview(result: ToolResult, rendered: Optional[str] = None, limit: int = PREVIEW_CHARS) -> str:
    if not result.success:
        return f"Tool failed\nError: {result.error}"
    if result.result in (None, "", [], {}):
        text = "(empty)"
    elif rendered is not None:
        text = rendered
    else:
        text = _to_text(result.result)
    if len(text) > limit:
        text = text[:limit] + "..."
    return f"Tool succeeded\nResult: {text}"


class ReasoningLoop:
    """
    Iteration state machine for one conversation.

    Per-iteration flow:
        1. Make sure a plan step is in progress (publish if changed)
        2. Build [system, history..., instructions] messages
        3. Call the model and parse its output
        4. Final answer: complete the plan step and generate the answer
        5. wait_for_user_input: save state and suspend
        6. Other action: run the tool, record the observation, and
           optionally suspend for step confirmation
    """

    def __init__(
        self,
        llm: ChatModel,
        context: ExecutionContext,
        plan: PlanTracker,
        emitter: ConversationEmitter,
        store: SessionStore,
        tracing_context: Optional[TracingContext] = None,
    ):
        self.llm = llm
        self.context = context
        self.plan = plan
        self.emitter = emitter
        self.store = store
        self.tracing_context = tracing_context
        self._iteration = 0
        self._prefix = f"[{emitter.session_id}/{emitter.conversation_id}]"

    @property
    def config(self):
        return self.context.config

    async def run(self, start_iteration: int = 0) -> LoopOutcome:
        """
        Run from ``start_iteration`` until a final answer or a pause.

        Raises:
            OrchestrationError: If a model call fails. Any other failure
                is re-raised unchanged after the error event goes out.
            asyncio.CancelledError: If the run is cancelled; the emitter
                is closed first so no further events go out.
        """
        try:
            return await self._run_loop(start_iteration)
        except asyncio.CancelledError:
            logger.info(f"{self._prefix} Run cancelled at iteration {self._iteration}")
            self.emitter.close()
            raise
        except LLMCallError as e:
            logger.error(f"{self._prefix} Iteration {self._iteration} failed: {e}")
            await self.emitter.normal(f"Error: {e}", event_id=new_id("error"))
            raise OrchestrationError(f"Reasoning failed: {e}") from e
        except Exception as e:
            logger.exception(f"{self._prefix} Iteration {self._iteration} failed unexpectedly: {e}")
            await self.emitter.normal(f"Error: {e}", event_id=new_id("error"))
            raise
        finally:
            self._log_trace_summary()

    async def _run_loop(self, start_iteration: int) -> LoopOutcome:
        for iteration in range(start_iteration, self.config.max_iterations):
            self._iteration = iteration

            self.plan.ensure_doing("Reasoning")
            await self.emitter.plan_update(self.plan)

            text = await self._invoke(self._build_messages(), f"react_step_{iteration}")
            parsed = parse_react_output(text)
            logger.debug(f"{self._prefix} Step {iteration} parsed as {parsed.kind}")

            self.context.add_step(ReasoningStep(type=StepType.THOUGHT, content=parsed.thought))
            if parsed.thought:
                await self.emitter.normal(parsed.thought, event_id=new_id("thought"))

            if parsed.is_final:
                if self.plan.complete("Completed"):
                    await self.emitter.plan_update(self.plan)
                await self.emitter.normal(
                    prompts.preparing_answer(self.config.language),
                    event_id=new_id("prepare_answer"),
                )
                answer = await self._final_answer()
                return LoopOutcome(final_answer=answer, is_paused=False)

            if parsed.tool_name == WAIT_FOR_USER_INPUT:
                return await self._wait_for_input(parsed, iteration)

            await self._act(parsed, iteration)

            if self.config.pause_after_each_step:
                return await self._pause_for_confirmation(iteration)

        logger.warning(
            f"{self._prefix} Max iterations ({self.config.max_iterations}) reached, forcing answer"
        )
        answer = await self._final_answer()
        return LoopOutcome(final_answer=answer, is_paused=False)

    def _history(self) -> list[dict]:
        """User question plus the most recent reasoning steps."""
        messages = [{"role": "user", "content": f"User Question: {self.context.input}"}]
        limit = self.config.observation_preview_chars
        for step in self.context.recent_steps(self.config.history_window):
            if step.type == StepType.THOUGHT:
                content = f"Thought: {step.content}"
            elif step.type == StepType.ACTION:
                content = f"Action: {step.tool_name or 'unknown'}\nInput: {_to_text(step.tool_input)}"
            else:
                observation = step.content
                if len(observation) > limit:
                    observation = observation[:limit] + "... (truncated)"
                content = f"Observation: {observation}"
            messages.append({"role": "assistant", "content": content})
        return messages

    def _build_messages(self) -> list[dict]:
        current = self.plan.current_step()
        system = prompts.system_prompt(self.config.language, current.title if current else None)
        return [
            {"role": "system", "content": system},
            *self._history(),
            {"role": "user", "content": prompts.instructions(self.context.tools.get_tools_summary())},
        ]

    def _final_messages(self) -> list[dict]:
        return [
            {"role": "system", "content": prompts.system_prompt(self.config.language)},
            *self._history(),
            {"role": "user", "content": prompts.final_answer_prompt(self.context.input)},
        ]

    async def _invoke(self, messages: list[dict], name: str) -> str:
        """Single model call, traced as a generation when tracing is on."""
        if self.tracing_context is None:
            return await self._call_model(messages)
        with self.tracing_context.generation(
            name=name,
            model=self.config.model,
            input=messages,
            model_parameters={
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
            },
        ) as gen:
            try:
                content = await self._call_model(messages)
            except LLMCallError:
                gen.set_status("error")
                raise
            gen.set_output(content[:2000])
            return content

    async def _call_model(self, messages: list[dict]) -> str:
        try:
            return await self.llm.invoke(messages)
        except LLMCallError:
            raise
        except Exception as e:
            raise LLMCallError(str(e) or type(e).__name__) from e

    async def _stream_model(self, messages: list[dict]):
        try:
            async for fragment in self.llm.stream(messages):
                yield fragment
        except LLMCallError:
            raise
        except Exception as e:
            raise LLMCallError(str(e) or type(e).__name__) from e

    async def _final_answer(self) -> str:
        """Generate the answer from the history, streamed or in one piece."""
        messages = self._final_messages()
        if not self.config.stream_output:
            answer = await self._invoke(messages, "final_answer")
            await self.emitter.normal(answer, event_id=new_id("final_full"))
            return answer

        event_id = f"final_answer_{self.emitter.conversation_id}"
        if self.tracing_context is None:
            return await self.emitter.stream_text(self._stream_model(messages), event_id)
        with self.tracing_context.generation(
            name="final_answer", model=self.config.model, input=messages
        ) as gen:
            try:
                answer = await self.emitter.stream_text(self._stream_model(messages), event_id)
            except LLMCallError:
                gen.set_status("error")
                raise
            gen.set_output(answer[:2000])
            return answer

    async def _act(self, parsed: ParsedOutput, iteration: int) -> ToolResult:
        """Run one tool call and record it in the trace, events and plan."""
        name, args = parsed.tool_name, parsed.tool_input

        hint = prompts.tool_hint(name, args)
        if hint:
            await self.emitter.normal(hint, event_id=new_id("action"))

        self.context.add_step(ReasoningStep(
            type=StepType.ACTION,
            content=f"Using tool: {name}",
            tool_name=name,
            tool_input=args,
        ))

        event_id = f"tool_{iteration}_{self.emitter.conversation_id}"
        started_at = now_ms()
        await self.emitter.tool_call_start(event_id, name, args, iteration, started_at)

        result = await self._execute_tool(name, args)
        finished_at = now_ms()

        rendered = self.context.tools.format_result(name, result) if result.success else None
        self.context.add_step(ReasoningStep(
            type=StepType.OBSERVATION,
            content=observation_text(result, rendered),
            tool_name=name,
            tool_output=result,
        ))
        await self.emitter.tool_call_end(
            event_id, name, args, result, iteration, started_at, finished_at
        )
        await self.emitter.normal(result_preview(result, rendered), event_id=new_id("observation"))

        if result.success and self.plan.complete(f"Used {name}"):
            await self.emitter.plan_update(self.plan)
        return result

    async def _execute_tool(self, name: str, args: dict) -> ToolResult:
        logger.debug(f"{self._prefix} Step {self._iteration}: executing tool '{name}'")
        if self.tracing_context is None:
            return await self.context.tools.execute(name, args)
        with self.tracing_context.span(name=f"tool:{name}", input=args) as span:
            result = await self.context.tools.execute(name, args)
            span.set_output({"result": observation_text(result)[:500]})
            if not result.success:
                span.set_status("error")
            return result

    async def _suspend(self, iteration: int, reason: PauseReason, waiting_reason: Optional[str]) -> None:
        await self.store.save(SessionState(
            context=self.context,
            next_iteration=iteration + 1,
            session_id=self.emitter.session_id,
            conversation_id=self.emitter.conversation_id,
            plan=self.plan,
            pause_reason=reason,
            waiting_reason=waiting_reason,
        ))

    async def _wait_for_input(self, parsed: ParsedOutput, iteration: int) -> LoopOutcome:
        args = parsed.tool_input
        message = args.get("message") or prompts.waiting_message(self.config.language)
        reason = args.get("reason") or DEFAULT_WAIT_REASON
        await self._suspend(iteration, PauseReason.WAIT_FOR_INPUT, reason)
        await self.emitter.waiting_for_input(message, reason)
        return LoopOutcome(final_answer="", is_paused=True)

    async def _pause_for_confirmation(self, iteration: int) -> LoopOutcome:
        reason = "Waiting for confirmation after each step"
        await self._suspend(iteration, PauseReason.STEP_CONFIRMATION, reason)
        await self.emitter.waiting_for_input(
            prompts.step_confirmation_message(self.config.language), reason
        )
        return LoopOutcome(final_answer="", is_paused=True)

    def _log_trace_summary(self) -> None:
        """Log a compact trace summary."""
        logger.info(f"{self._prefix} {'─' * 50}")
        logger.info(f"{self._prefix} TRACE SUMMARY ({len(self.context.steps)} steps)")
        for step in self.context.steps:
            if step.type == StepType.OBSERVATION and step.tool_output is not None:
                ok = step.tool_output.success
                preview = step.content[:80] + ("..." if len(step.content) > 80 else "")
                status = "ok" if ok else "failed"
                logger.info(f"{self._prefix}   {step.tool_name} [{status}] -> {preview}")
