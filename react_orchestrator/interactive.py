#!/usr/bin/env python3
"""
react_orchestrator Interactive CLI

Runs the reasoning loop from the terminal, printing its events as they
arrive. When the agent pauses for input, the reply typed at the prompt
resumes the same conversation.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from .config import config
from .llm_call import LLMClient
from .orchestration.events import StreamEvent, coalesce_fragments
from .orchestration.session_store import SessionBusyError
from .orchestration.loop import OrchestrationError
from .orchestrator import Orchestrator, RunResult

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_banner() -> None:
    """Print the welcome banner."""
    banner = """
╔════════════════════════════════════════════════════════════════╗
║                  react_orchestrator Interactive                 ║
║                                                                 ║
║  Reason / act / observe agent with tools and pause/resume       ║
╚════════════════════════════════════════════════════════════════╝

Available commands:
  /help     - Show this help message
  /tools    - List available tools
  /events   - Show the events of the last conversation
  /new      - Start a new session
  /quit     - Exit the CLI

Type your questions or tasks below. When the agent asks for more
information, your next line answers it.
"""
    print(banner)


class EventPrinter:
    """Prints events to stdout as they arrive."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._streaming: Optional[str] = None

    def __call__(self, envelope: StreamEvent) -> None:
        event = envelope.event
        if event.type == "normal" and event.stream:
            if self._streaming != event.id:
                self._streaming = event.id
                print()
            print(event.content, end="", flush=True)
            if event.done:
                print()
                self._streaming = None
            return

        if event.type == "normal":
            if event.role == "user":
                print(f"\n[you] {event.content}")
            else:
                print(f"\n{event.content}")
        elif event.type == "plan_update":
            print("\nPlan:")
            marks = {"pending": " ", "doing": ">", "done": "x"}
            for step in event.steps:
                print(f"  [{marks[step.status.value]}] {step.title}")
        elif event.type == "tool_call":
            if event.status == "start":
                args = json.dumps(event.args, ensure_ascii=False) if self.verbose else ""
                print(f"\n-> {event.tool_name} {args}".rstrip())
            else:
                status = "ok" if event.success else "failed"
                print(f"<- {event.tool_name} {status} ({event.duration_ms} ms)")
        elif event.type == "waiting_for_input":
            print(f"\n[waiting] {event.message}")
            if event.reason:
                print(f"          ({event.reason})")


class InteractiveCLI:
    """Interactive CLI for the orchestrator."""

    def __init__(self, orchestrator: Orchestrator, verbose: bool = False):
        self.orchestrator = orchestrator
        self.verbose = verbose
        self.printer = EventPrinter(verbose)
        self.session_id: Optional[str] = None
        self.last: Optional[RunResult] = None

    @property
    def paused(self) -> bool:
        return self.last is not None and self.last.is_paused

    def print_tools(self) -> None:
        print("\nAvailable Tools:")
        print("─" * 64)
        for name, tool in self.orchestrator.tools.all_tools().items():
            print(f"  {name.ljust(16)} - {tool.description}")
        print()

    def print_events(self) -> None:
        if self.last is None:
            print("\nNo conversation yet. Run a query first.\n")
            return
        events = self.orchestrator.store.conversation_events(
            self.last.session_id, self.last.conversation_id
        ) or []
        print("\n" + "═" * 70)
        for event in coalesce_fragments(events):
            print(event.model_dump_json(exclude_none=True))
        print("═" * 70 + "\n")

    async def process_query(self, query: str) -> None:
        conversation_id = self.last.conversation_id if self.paused else None
        try:
            self.last = await self.orchestrator.start(
                query,
                session_id=self.session_id,
                conversation_id=conversation_id,
                on_event=self.printer,
            )
        except (OrchestrationError, SessionBusyError) as e:
            print(f"\nError: {e}\n")
            return
        self.session_id = self.last.session_id
        if not self.last.is_paused:
            print("\n" + "═" * 70 + "\n")

    async def run(self) -> None:
        """Run the interactive CLI loop."""
        print_banner()
        while True:
            prompt = "reply> " if self.paused else ">>> "
            try:
                user_input = (await asyncio.to_thread(input, prompt)).strip()
            except EOFError:
                print("\nGoodbye!\n")
                return

            if not user_input:
                continue

            command = user_input.lower()
            if command in ("/quit", "/exit", "/q"):
                print("\nGoodbye!\n")
                return
            if command in ("/help", "/h", "/?"):
                print_banner()
            elif command == "/tools":
                self.print_tools()
            elif command == "/events":
                self.print_events()
            elif command == "/new":
                self.session_id, self.last = None, None
                print("\nStarted a new session.\n")
            elif command.startswith("/"):
                print(f"\nUnknown command: {user_input}")
                print("Type /help for available commands.\n")
            else:
                await self.process_query(user_input)


async def run_single(orchestrator: Orchestrator, query: str, as_json: bool, verbose: bool) -> int:
    """Run one query; answer pauses from stdin while it is a terminal."""
    printer = None if as_json else EventPrinter(verbose)
    result = await orchestrator.start(query, on_event=printer)
    while result.is_paused and sys.stdin.isatty():
        reply = (await asyncio.to_thread(input, "reply> ")).strip()
        result = await orchestrator.start(
            reply,
            session_id=result.session_id,
            conversation_id=result.conversation_id,
            on_event=printer,
        )

    if as_json:
        events = orchestrator.store.conversation_events(result.session_id, result.conversation_id) or []
        output = {
            "query": query,
            **result.to_dict(),
            "events": [e.model_dump(mode="json") for e in coalesce_fragments(events)],
        }
        print(json.dumps(output, indent=2, ensure_ascii=False))
    return 0


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="react_orchestrator Interactive CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          # Start interactive mode
  %(prog)s -v                       # Start with verbose logging
  %(prog)s -q "What is 15 * 23?"    # Run a single query
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--query", type=str, help="Run a single query and exit")
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help=f"Model endpoint URL (default: from LLM_BASE_URL or {config.llm.base_url})",
    )
    parser.add_argument("--model", type=str, default=None, help="Model name")
    parser.add_argument(
        "--language", choices=["auto", "chinese", "english"], default=None, help="Answer language"
    )
    parser.add_argument(
        "--pause-after-each-step",
        action="store_true",
        help="Ask for confirmation after every tool call",
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON (for scripting)")
    args = parser.parse_args()

    setup_logging(args.verbose)

    orchestrator = Orchestrator(llm=LLMClient(base_url=args.base_url))
    orchestrator.update_config(
        model=args.model,
        language=args.language,
        pause_after_each_step=args.pause_after_each_step or None,
    )

    async def _main() -> int:
        try:
            if args.query:
                return await run_single(orchestrator, args.query, args.json, args.verbose)
            await InteractiveCLI(orchestrator, verbose=args.verbose).run()
            return 0
        except OrchestrationError as e:
            print(f"\nError: {e}\n", file=sys.stderr)
            return 1
        finally:
            await orchestrator.close()

    try:
        sys.exit(asyncio.run(_main()))
    except KeyboardInterrupt:
        print("\n\nInterrupted.\n")
        sys.exit(130)


if __name__ == "__main__":
    main()
