"""Tests for the interactive CLI helpers."""

import json

from conftest import PLAN_RESPONSE
from react_orchestrator.interactive import EventPrinter, InteractiveCLI, run_single
from react_orchestrator.orchestration.events import (
    NormalEvent,
    StreamEvent,
    ToolCallEvent,
    WaitingForInputEvent,
)

WAIT_STEP = 'Action: wait_for_user_input\nInput: {"message": "Which city?"}'


def wrap(event) -> StreamEvent:
    return StreamEvent(session_id="s", conversation_id="c", event=event)


class TestEventPrinter:
    """Tests for console rendering of events."""

    def test_stream_fragments_print_inline(self, capsys):
        printer = EventPrinter()
        for content, done in (("15 * 23 ", False), ("= 345", False), ("", True)):
            printer(wrap(NormalEvent(id="f", content=content, stream=True, done=done)))

        assert "15 * 23 = 345\n" in capsys.readouterr().out

    def test_tool_and_waiting_events(self, capsys):
        printer = EventPrinter(verbose=True)
        printer(wrap(ToolCallEvent(id="t", status="start", tool_name="calculator", args={"expression": "1+1"})))
        printer(wrap(ToolCallEvent(id="t", status="end", tool_name="calculator", success=True, duration_ms=3)))
        printer(wrap(WaitingForInputEvent(id="w", message="Which city?", reason="location missing")))

        out = capsys.readouterr().out
        assert '-> calculator {"expression": "1+1"}' in out
        assert "<- calculator ok (3 ms)" in out
        assert "[waiting] Which city?" in out

    def test_user_echo(self, capsys):
        EventPrinter()(wrap(NormalEvent(id="u", role="user", content="Paris")))

        assert "[you] Paris" in capsys.readouterr().out


class TestRunSingle:
    """Tests for single-query mode."""

    async def test_json_output(self, make_orchestrator, capsys):
        orchestrator = make_orchestrator([PLAN_RESPONSE, "Final Answer: 345"], streams=[["34", "5"]])

        code = await run_single(orchestrator, "What is 15 * 23?", as_json=True, verbose=False)

        assert code == 0
        output = json.loads(capsys.readouterr().out)
        assert output["final_answer"] == "345"
        assert output["is_paused"] is False
        final = [e for e in output["events"] if e["id"].startswith("final_answer_")]
        assert len(final) == 1 and final[0]["content"] == "345"


class TestInteractiveCLI:
    """Tests for pause handling across queries."""

    async def test_reply_resumes_paused_conversation(self, make_orchestrator, capsys):
        orchestrator = make_orchestrator(
            [PLAN_RESPONSE, WAIT_STEP, "Final Answer: Sunny"], streams=[["Sunny"]]
        )
        cli = InteractiveCLI(orchestrator)

        await cli.process_query("What's the weather?")
        assert cli.paused
        conversation_id = cli.last.conversation_id

        await cli.process_query("Paris")

        assert not cli.paused
        assert cli.last.conversation_id == conversation_id
        assert cli.last.final_answer == "Sunny"
