"""
react_orchestrator Main Orchestrator

Entry point for running the reasoning loop. ``Orchestrator.start``
either resumes a paused conversation or starts a new one, then hands
the conversation to a ``ReasoningLoop``. Paused state, event history
and the process-wide event hub are owned here and shared by all runs.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Optional, Union

from .config import config as app_config
from .llm_call import ChatModel, LLMCallError, LLMClient
from .models.agent import AgentConfig, ExecutionContext, ReasoningStep, StepType
from .orchestration.emitter import ConversationEmitter, EventEmitter, Observer
from .orchestration.events import new_id
from .orchestration.loop import ReasoningLoop
from .orchestration.plan import generate_plan
from .orchestration.session_store import SessionStore
from .prompts import pre_action_prompt
from .tools import default_registry
from .tools.registry import ToolRegistry
from .tracing import TracingContext

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of one ``start`` call."""

    session_id: str
    conversation_id: str
    final_answer: str
    is_paused: bool

    def to_dict(self) -> dict:
        return asdict(self)


class Orchestrator:
    """
    Session-aware front end of the reasoning loop.

    A run for a session whose paused conversation id matches resumes
    that conversation; anything else starts a new conversation with a
    fresh plan. Only one run per session may be in progress.
    """

    def __init__(
        self,
        llm: Optional[ChatModel] = None,
        tools: Optional[ToolRegistry] = None,
        config: Optional[AgentConfig] = None,
        store: Optional[SessionStore] = None,
        events: Optional[EventEmitter] = None,
    ):
        self.llm = llm if llm is not None else LLMClient()
        self.tools = tools if tools is not None else default_registry()
        self.config = config or AgentConfig()
        self.store = store or SessionStore(
            max_conversations=app_config.agent.max_conversations_per_session,
            max_events=app_config.agent.max_events_per_conversation,
            max_sessions=app_config.agent.max_history_sessions,
        )
        self.events = events or EventEmitter(app_config.agent.event_history_size)

    def update_config(self, **overrides) -> AgentConfig:
        """Merge overrides into the default run settings.

        Raises:
            pydantic.ValidationError: If a value is out of range.
        """
        self.config = self.config.merged(overrides)
        logger.info(f"Agent config updated: {overrides}")
        return self.config

    def _run_config(self, overrides: Union[AgentConfig, dict, None]) -> AgentConfig:
        if isinstance(overrides, AgentConfig):
            return overrides
        return self.config.merged(overrides)

    def _llm_for(self, run_config: AgentConfig) -> ChatModel:
        if isinstance(self.llm, LLMClient):
            return self.llm.with_settings(
                model=run_config.model,
                temperature=run_config.temperature,
                max_tokens=run_config.max_tokens,
            )
        return self.llm

    async def start(
        self,
        input: str,
        session_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
        on_event: Optional[Observer] = None,
        config: Union[AgentConfig, dict, None] = None,
    ) -> RunResult:
        """
        Run (or resume) a conversation until a final answer or a pause.

        Args:
            input: The user's question, or the reply to a pause
            session_id: Continuity scope; a new one is generated if omitted
            conversation_id: Id of the paused conversation to resume
            on_event: Observer receiving every event of this run in order
            config: Per-run overrides for new conversations

        Raises:
            SessionBusyError: If the session already has a run in progress.
            OrchestrationError: If a model call fails mid-run.
        """
        session_id = session_id or new_id("session")

        async with self.store.claim(session_id):
            state = await self.store.resume(session_id, conversation_id)
            if state is not None:
                conversation_id = state.conversation_id
                context, plan = state.context, state.plan
                start_iteration = state.next_iteration
                emitter = self._emitter(session_id, conversation_id, on_event)
                logger.info(
                    f"[{session_id}/{conversation_id}] Resuming at iteration {start_iteration}"
                )
            else:
                if await self.store.discard(session_id):
                    logger.info(f"[{session_id}] Discarded stale paused conversation")
                conversation_id = new_id("conv")
                run_config = self._run_config(config)
                context = ExecutionContext(input=input, tools=self.tools.copy(), config=run_config)
                emitter = self._emitter(session_id, conversation_id, on_event)
                plan = None
                start_iteration = 0
                logger.info(f"[{session_id}/{conversation_id}] New conversation")

            llm = self._llm_for(context.config)
            tracing = TracingContext(session_id, conversation_id)
            tracing_context = tracing if tracing.enabled else None

            try:
                if plan is None:
                    if context.config.announce_start:
                        await self._announce(llm, emitter, input, context.config)
                    plan = await generate_plan(llm, input, context.config.language)
                else:
                    context.add_step(ReasoningStep(
                        type=StepType.OBSERVATION,
                        content=f"User provided additional input: {input}",
                    ))
                    await emitter.normal(input, event_id=new_id("user_input"), role="user")

                if tracing_context:
                    tracing_context.start_trace(
                        name="agent_run",
                        input={"input": input},
                        metadata={"start_iteration": start_iteration},
                    )
                loop = ReasoningLoop(llm, context, plan, emitter, self.store, tracing_context)
                try:
                    outcome = await loop.run(start_iteration)
                except Exception:
                    if tracing_context:
                        tracing_context.end_trace(status="error")
                    raise
                if tracing_context:
                    tracing_context.end_trace(
                        output=outcome.final_answer[:500],
                        status="paused" if outcome.is_paused else "success",
                    )
            except asyncio.CancelledError:
                emitter.close()
                raise

        return RunResult(
            session_id=session_id,
            conversation_id=conversation_id,
            final_answer=outcome.final_answer,
            is_paused=outcome.is_paused,
        )

    def _emitter(self, session_id: str, conversation_id: str, observer: Optional[Observer]) -> ConversationEmitter:
        return ConversationEmitter(
            self.events, session_id, conversation_id, observer=observer, store=self.store
        )

    async def _announce(
        self, llm: ChatModel, emitter: ConversationEmitter, user_input: str, run_config: AgentConfig
    ) -> None:
        """Stream a short confirmation that work on the request is starting."""
        messages = [
            {"role": "system", "content": pre_action_prompt(user_input)},
            {"role": "user", "content": user_input},
        ]
        try:
            if run_config.stream_output:
                await emitter.stream_text(llm.stream(messages), new_id("pre_action"))
            else:
                await emitter.normal(await llm.invoke(messages), event_id=new_id("pre_action"))
        except LLMCallError as e:
            logger.warning(f"[{emitter.session_id}] Start announcement failed: {e}")

    async def session_status(self, session_id: str) -> dict:
        """Paused state and conversation ids of a session."""
        state = await self.store.get(session_id)
        return {
            "session_id": session_id,
            "is_paused": bool(state and state.is_paused),
            "is_running": self.store.is_active(session_id),
            "paused_conversation_id": state.conversation_id if state else None,
            "pause_reason": state.pause_reason.value if state else None,
            "waiting_reason": state.waiting_reason if state else None,
            "conversations": self.store.conversations(session_id),
        }

    async def close(self) -> None:
        if isinstance(self.llm, LLMClient):
            await self.llm.close()


async def run_query(query: str, **config_overrides) -> str:
    """
    Convenience function to run a single query to completion.

    Pauses are not answered; the (empty) answer of a paused run is
    returned as is.
    """
    orchestrator = Orchestrator()
    try:
        result = await orchestrator.start(query, config=config_overrides or None)
        return result.final_answer
    finally:
        await orchestrator.close()
