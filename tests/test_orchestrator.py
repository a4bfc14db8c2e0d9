"""
End-to-end tests for Orchestrator.start.

Covers new conversations, pause/resume, session exclusivity and
cancellation with a scripted model and the built-in tools.
"""

import asyncio

import pytest
from pydantic import ValidationError

from conftest import PLAN_RESPONSE, Recorder
from react_orchestrator.llm_call import LLMCallError
from react_orchestrator.models.agent import StepType
from react_orchestrator.orchestration.loop import OrchestrationError
from react_orchestrator.orchestration.session_store import SessionBusyError, SessionStore

CALCULATOR_STEP = 'Thought: I need to multiply.\nAction: calculator\nInput: {"expression": "15 * 23"}'
WAIT_STEP = (
    "Thought: I need the city.\n"
    "Action: wait_for_user_input\n"
    'Input: {"message": "Which city?", "reason": "location missing"}'
)


class TestNewConversation:
    """Tests for runs that start a conversation."""

    async def test_calculator_query(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, CALCULATOR_STEP, "Thought: I have it.\nFinal Answer: 345"],
            streams=[["15 * 23 ", "= 345"]],
        )

        result = await orchestrator.start("What is 15 * 23?", on_event=recorder)

        assert result.final_answer == "15 * 23 = 345"
        assert result.is_paused is False
        assert result.session_id.startswith("session_")
        assert result.conversation_id.startswith("conv_")

        tool_events = recorder.of_type("tool_call")
        assert len(tool_events) == 2
        assert tool_events[0].id == tool_events[1].id

        first = recorder.events[0]
        assert first.type == "plan_update"
        assert [s.title for s in first.steps] == ["Compute the product", "Report the result"]

        assert {e.conversation_id for e in recorder.envelopes} == {result.conversation_id}

    async def test_plan_updates_only_on_change(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, CALCULATOR_STEP, "Final Answer: 345"], streams=[["345"]]
        )

        await orchestrator.start("What is 15 * 23?", on_event=recorder)

        snapshots = [
            tuple(s.status.value for s in e.steps) for e in recorder.of_type("plan_update")
        ]
        assert snapshots == [
            ("doing", "pending"),
            ("done", "pending"),
            ("done", "doing"),
            ("done", "done"),
        ]
        assert len(set(snapshots)) == len(snapshots)

    async def test_events_recorded_and_published(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator([PLAN_RESPONSE, "Final Answer: 345"])

        result = await orchestrator.start("q", session_id="s1", on_event=recorder)

        stored = orchestrator.store.conversation_events("s1", result.conversation_id)
        assert [e.event for e in stored] == recorder.events
        assert orchestrator.events.recent()[-1] == recorder.envelopes[-1]

    async def test_max_iterations_override(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator([PLAN_RESPONSE, CALCULATOR_STEP], streams=[["345"]])

        result = await orchestrator.start("q", on_event=recorder, config={"max_iterations": 1})

        assert result.final_answer == "345"
        assert len(recorder.of_type("tool_call")) == 2
        assert orchestrator.config.max_iterations == 5

    async def test_invalid_override_rejected(self, make_orchestrator):
        orchestrator = make_orchestrator([PLAN_RESPONSE])

        with pytest.raises(ValidationError):
            await orchestrator.start("q", config={"temperature": 5})

    async def test_announce_start(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, "Final Answer: 345"],
            streams=[["On it."], ["345"]],
            announce_start=True,
        )

        await orchestrator.start("q", on_event=recorder)

        announcement = [e for e in recorder.of_type("normal") if e.id.startswith("pre_action")]
        assert "".join(e.content for e in announcement) == "On it."

    async def test_model_failure(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator([PLAN_RESPONSE, LLMCallError("connection refused")])

        with pytest.raises(OrchestrationError):
            await orchestrator.start("q", session_id="s1", on_event=recorder)

        assert not orchestrator.store.is_active("s1")
        assert recorder.events[-1].id.startswith("error_")

    def test_update_config(self, make_orchestrator):
        orchestrator = make_orchestrator()

        orchestrator.update_config(language="chinese", model=None)

        assert orchestrator.config.language == "chinese"
        assert orchestrator.config.model == "test-model"


class TestPauseResume:
    """Tests for wait_for_user_input and step confirmation."""

    async def test_wait_and_resume(self, make_orchestrator):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, WAIT_STEP, "Thought: Paris it is.\nFinal Answer: Sunny"],
            streams=[["Sunny in Paris"]],
        )
        first_run = Recorder()

        paused = await orchestrator.start("What's the weather?", session_id="s1", on_event=first_run)

        assert paused.is_paused is True
        assert paused.final_answer == ""
        assert first_run.events[-1].type == "waiting_for_input"
        assert first_run.events[-1].message == "Which city?"

        second_run = Recorder()
        resumed = await orchestrator.start(
            "Paris", session_id="s1", conversation_id=paused.conversation_id, on_event=second_run
        )

        assert resumed.conversation_id == paused.conversation_id
        assert resumed.final_answer == "Sunny in Paris"
        assert resumed.is_paused is False

        # plan + wait step + final step; no second plan request
        assert len(orchestrator.llm.calls) == 3

        user_event = second_run.events[0]
        assert user_event.role == "user"
        assert user_event.content == "Paris"

        history = "\n".join(m["content"] for m in orchestrator.llm.calls[2])
        assert "User provided additional input: Paris" in history

        # The plan was already published; only the completion is new.
        assert len(second_run.of_type("plan_update")) == 1

    async def test_resume_appends_observation(self, make_orchestrator):
        orchestrator = make_orchestrator([PLAN_RESPONSE, WAIT_STEP, WAIT_STEP])
        paused = await orchestrator.start("q", session_id="s1")

        await orchestrator.start("Paris", session_id="s1", conversation_id=paused.conversation_id)

        state = await orchestrator.store.get("s1")
        observations = [s for s in state.context.steps if s.type == StepType.OBSERVATION]
        assert observations[-1].content == "User provided additional input: Paris"
        assert state.next_iteration == 2

    async def test_mismatched_conversation_starts_fresh(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, WAIT_STEP, PLAN_RESPONSE, "Final Answer: fresh"], streams=[["fresh"]]
        )
        paused = await orchestrator.start("q", session_id="s1")

        result = await orchestrator.start(
            "another question", session_id="s1", conversation_id="conv_unknown", on_event=recorder
        )

        assert result.conversation_id != paused.conversation_id
        assert result.final_answer == "fresh"
        assert await orchestrator.store.get("s1") is None
        assert recorder.events[0].type == "plan_update"
        assert orchestrator.store.conversations("s1") == [paused.conversation_id, result.conversation_id]

    async def test_pause_after_each_step(self, make_orchestrator):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, CALCULATOR_STEP, "Final Answer: 345"],
            streams=[["345"]],
            pause_after_each_step=True,
        )

        paused = await orchestrator.start("What is 15 * 23?", session_id="s1")
        status = await orchestrator.session_status("s1")

        assert paused.is_paused is True
        assert status["pause_reason"] == "step_confirmation"
        assert status["paused_conversation_id"] == paused.conversation_id

        resumed = await orchestrator.start("ok", session_id="s1", conversation_id=paused.conversation_id)

        assert resumed.final_answer == "345"

    async def test_session_status(self, make_orchestrator):
        orchestrator = make_orchestrator([PLAN_RESPONSE, WAIT_STEP])

        paused = await orchestrator.start("q", session_id="s1")
        status = await orchestrator.session_status("s1")

        assert status == {
            "session_id": "s1",
            "is_paused": True,
            "is_running": False,
            "paused_conversation_id": paused.conversation_id,
            "pause_reason": "wait_for_input",
            "waiting_reason": "location missing",
            "conversations": [paused.conversation_id],
        }


class TestConcurrency:
    """Tests for session exclusivity and cancellation."""

    async def test_busy_session_rejected(self, make_orchestrator):
        orchestrator = make_orchestrator([PLAN_RESPONSE, "Final Answer: 345"])

        async with orchestrator.store.claim("s1"):
            with pytest.raises(SessionBusyError):
                await orchestrator.start("q", session_id="s1")

    async def test_other_sessions_unaffected(self, make_orchestrator):
        orchestrator = make_orchestrator([PLAN_RESPONSE, "Final Answer: 345"], streams=[["345"]])

        async with orchestrator.store.claim("s1"):
            result = await orchestrator.start("q", session_id="s2")

        assert result.final_answer == "345"

    async def test_cancellation_stops_events(self, make_orchestrator, recorder):
        orchestrator = make_orchestrator()
        started = asyncio.Event()

        async def slow_invoke(messages):
            started.set()
            await asyncio.sleep(10)

        orchestrator.llm.invoke = slow_invoke
        task = asyncio.create_task(orchestrator.start("q", session_id="s1", on_event=recorder))
        await started.wait()

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert recorder.envelopes == []
        assert not orchestrator.store.is_active("s1")


class TestEventHistory:
    """Tests for the history kept across conversations."""

    async def test_history_bounded_across_conversations(self, make_orchestrator):
        orchestrator = make_orchestrator([PLAN_RESPONSE, "Final Answer: 345"] * 8)
        orchestrator.store = SessionStore(max_conversations=3, max_events=4)

        results = [await orchestrator.start("q", session_id="s1") for _ in range(8)]

        retained = orchestrator.store.conversations("s1")
        assert retained == [r.conversation_id for r in results[-3:]]
        for conversation_id in retained:
            assert len(orchestrator.store.conversation_events("s1", conversation_id)) <= 4
