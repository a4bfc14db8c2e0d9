"""
Tests for the Thought / Action / Final Answer parser.
"""

from react_orchestrator.orchestration.parser import CONTINUE_THINKING, parse_react_output


class TestFinalAnswer:
    """Tests for final answer detection."""

    def test_final_answer_with_thought(self):
        """Thought and answer are both extracted."""
        parsed = parse_react_output("Thought: I know this.\nFinal Answer: 345")

        assert parsed.is_final
        assert parsed.thought == "I know this."
        assert parsed.answer == "345"

    def test_final_answer_wins_over_action(self):
        """A final answer takes precedence when both markers are present."""
        text = "Thought: done\nAction: calculator\nInput: {}\nFinal Answer: 42"
        parsed = parse_react_output(text)

        assert parsed.kind == "final_answer"
        assert parsed.answer == "42"
        assert parsed.tool_name is None

    def test_multiline_answer(self):
        parsed = parse_react_output("Final Answer: line one\nline two")

        assert parsed.answer == "line one\nline two"
        assert parsed.thought == ""


class TestAction:
    """Tests for tool action parsing."""

    def test_action_with_json_input(self):
        text = 'Thought: multiply\nAction: calculator\nInput: {"expression": "15 * 23"}'
        parsed = parse_react_output(text)

        assert parsed.kind == "action"
        assert parsed.thought == "multiply"
        assert parsed.tool_name == "calculator"
        assert parsed.tool_input == {"expression": "15 * 23"}

    def test_json_object_embedded_in_text(self):
        """The first {...} block after Input: is used."""
        text = 'Action: weather\nInput: here you go {"location": "Paris"} thanks'
        parsed = parse_react_output(text)

        assert parsed.tool_input == {"location": "Paris"}

    def test_invalid_json_is_wrapped(self):
        """Malformed input becomes {"input": raw} instead of failing."""
        parsed = parse_react_output("Action: web_search\nInput: latest python release")

        assert parsed.tool_name == "web_search"
        assert parsed.tool_input == {"input": "latest python release"}

    def test_broken_braces_are_wrapped(self):
        parsed = parse_react_output('Action: calculator\nInput: {"expression": 2 +}')

        assert parsed.tool_input == {"input": '{"expression": 2 +}'}

    def test_action_without_input(self):
        parsed = parse_react_output("Thought: look around\nAction: list_directory")

        assert parsed.tool_name == "list_directory"
        assert parsed.tool_input == {}

    def test_wait_for_user_input_action(self):
        text = (
            "Thought: I need the city.\n"
            "Action: wait_for_user_input\n"
            'Input: {"message": "Which city?", "reason": "location missing"}'
        )
        parsed = parse_react_output(text)

        assert parsed.tool_name == "wait_for_user_input"
        assert parsed.tool_input["message"] == "Which city?"


class TestFallback:
    """The parser never fails."""

    def test_plain_text_continues_thinking(self):
        parsed = parse_react_output("Let me think about this some more.")

        assert parsed.kind == "action"
        assert parsed.tool_name == CONTINUE_THINKING
        assert parsed.tool_input == {"thought": "Let me think about this some more."}
        assert parsed.thought == ""

    def test_thought_only(self):
        parsed = parse_react_output("Thought: still working")

        assert parsed.tool_name == CONTINUE_THINKING
        assert parsed.thought == "still working"

    def test_empty_text(self):
        parsed = parse_react_output("")

        assert parsed.tool_name == CONTINUE_THINKING
        assert not parsed.is_final

    def test_none_text(self):
        parsed = parse_react_output(None)

        assert parsed.tool_name == CONTINUE_THINKING

    def test_empty_action_name_falls_back(self):
        parsed = parse_react_output("Thought: hmm\nAction:\n")

        assert parsed.tool_name == CONTINUE_THINKING
