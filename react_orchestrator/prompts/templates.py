"""
Prompt templates for the reasoning loop.

Plain string builders; nothing here talks to a model.
"""

from typing import Optional

SYSTEM_PROMPT = """You are a ReAct (Reasoning + Acting) agent. Follow this STRICT format:

**Format:**
Thought: [Brief reasoning - 1-2 sentences MAX]
Action: [tool_name] OR Final Answer: [answer]
Input: [JSON object] (only if using Action)

**Rules:**
1. Keep Thought CONCISE - max 2 sentences
2. Choose Action OR Final Answer, never both
3. Use tools to gather information when needed
4. When you have enough info, provide Final Answer
5. Follow the exact format above - no extra text

{language}

Be efficient and direct in your reasoning."""

PLANNER_PROMPT = """
You are a planner. Create a concise step-by-step plan (2-5 steps) to solve the user's question.
Return ONLY a compact JSON array like:
[
  {{"title":"Step 1 ..."}},
  {{"title":"Step 2 ..."}}
]
Do not include any extra text.
The user's goals are as follows:
---
{input}
---
"""

PRE_ACTION_PROMPT = (
    "Please generate a natural confirmation statement for the following user "
    "request, indicating that you are about to start the task: {input}\n"
    "Keep it brief, natural and polite."
)

LANGUAGE_PROMPTS = {
    "chinese": """Language Requirement:
- MUST respond in Chinese (中文)
- All thoughts, actions, and final answers should be in Chinese
- Use Chinese for all reasoning and explanations""",
    "english": """Language Requirement:
- MUST respond in English only
- All thoughts, actions, and final answers should be in English
- Use English for all reasoning and explanations""",
    "auto": """Language Requirement:
- Respond in the same language as the user's question
- If the user asks in Chinese, respond in Chinese
- If the user asks in English, respond in English
- Maintain language consistency throughout the conversation""",
}

# Reserved action the model uses to ask the user a question.
WAIT_FOR_INPUT_TOOL = """wait_for_user_input: Pause and ask the user for missing information.
Parameters:
  - message: string (required) - Question to show the user
  - reason: string (optional) - Why the input is needed"""

INSTRUCTIONS = """Follow the ReAct format:

Thought: [Brief reasoning about what to do next - 1-2 sentences]
Action: [tool_name] OR Final Answer: [your answer]
Input: [tool_input_json] (only if Action is used)

Available tools:
{tools}

Remember: Keep Thought CONCISE. Output ONLY the above format."""

FINAL_ANSWER_PROMPT = """Based on the above reasoning and observations, please provide a final answer to: {input}

Please be concise and direct in your response."""

PREPARING_ANSWER = {
    "chinese": "正在整理最终答案...",
    "english": "Preparing the final answer...",
}

WAITING_MESSAGE = {
    "chinese": "请提供更多信息以便继续...",
    "english": "Please provide more information to continue...",
}

STEP_CONFIRMATION_MESSAGE = {
    "chinese": "当前步骤已完成，请确认是否继续。",
    "english": "Step completed. Reply to continue.",
}

FALLBACK_PLAN = {
    "chinese": ["分析问题", "执行必要操作", "整理并给出答案"],
    "english": ["Analyze the question", "Take the necessary actions", "Synthesize the answer"],
}


def _lang_key(language: str) -> str:
    return "chinese" if language == "chinese" else "english"


def language_prompt(language: Optional[str] = None) -> str:
    return LANGUAGE_PROMPTS.get(language or "auto", LANGUAGE_PROMPTS["auto"])


def system_prompt(language: Optional[str] = None, current_step: Optional[str] = None) -> str:
    """Task framing plus language constraint and, when known, the active plan step."""
    prompt = SYSTEM_PROMPT.format(language=language_prompt(language))
    if current_step:
        prompt += (
            f"\n\n**Current Task Step**: {current_step}\n"
            "Focus on completing this step efficiently."
        )
    return prompt


def planner_prompt(user_input: str) -> str:
    return PLANNER_PROMPT.format(input=user_input)


def pre_action_prompt(user_input: str) -> str:
    return PRE_ACTION_PROMPT.format(input=user_input)


def instructions(tools_summary: str) -> str:
    tools = f"{tools_summary}\n\n{WAIT_FOR_INPUT_TOOL}" if tools_summary else WAIT_FOR_INPUT_TOOL
    return INSTRUCTIONS.format(tools=tools)


def final_answer_prompt(user_input: str) -> str:
    return FINAL_ANSWER_PROMPT.format(input=user_input)


def preparing_answer(language: str) -> str:
    return PREPARING_ANSWER[_lang_key(language)]


def waiting_message(language: str) -> str:
    return WAITING_MESSAGE[_lang_key(language)]


def step_confirmation_message(language: str) -> str:
    return STEP_CONFIRMATION_MESSAGE[_lang_key(language)]


def fallback_plan(language: str) -> list[str]:
    return list(FALLBACK_PLAN[_lang_key(language)])


def tool_hint(tool_name: str, tool_input: dict) -> str:
    """Short human-readable line announcing a tool call ("" for silent tools)."""
    hints = {
        "calculator": lambda i: f"Calculating: {i.get('expression', '')}",
        "web_search": lambda i: f"Searching the web: {i.get('query') or i.get('input', '')}",
        "rag_query": lambda i: f"Looking up the knowledge base: {i.get('query', '')}",
        "weather": lambda i: f"Checking the weather in {i.get('location', '')}",
        "read_file": lambda i: f"Reading file: {i.get('path', '')}",
        "write_file": lambda i: f"Writing file: {i.get('path', '')}",
        "append_file": lambda i: f"Appending to file: {i.get('path', '')}",
        "list_directory": lambda i: f"Listing directory: {i.get('path', '')}",
        "file_info": lambda i: f"Inspecting: {i.get('path', '')}",
        "wait_for_user_input": lambda i: "",
    }
    hint = hints.get(tool_name)
    if hint is None:
        return f"Using tool: {tool_name}"
    return hint(tool_input if isinstance(tool_input, dict) else {})
