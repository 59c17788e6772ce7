"""
baton/cli/__main__.py

baton CLI entry point.

Commands:
  baton run <prompt>            Run a single agent on a prompt

Examples:
  baton run "Summarise RFC 2119" --provider openai --model gpt-4o-mini
  baton run "hello" --provider ollama --model llama3.2 --session-db chat.db --session-id me
  baton run "ping" --provider noop --json
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from baton.config import ProviderKind
from baton.core.agent import Agent
from baton.core.runner import Runner
from baton.errors import BatonError
from baton.interfaces import Session
from baton.memory.sqlite import SQLiteSession
from baton.models.factory import create_provider
from baton.observability.tracer import LoggingTracer, NoOpTracer

_DEFAULT_MODELS = {
    ProviderKind.OLLAMA: "llama3.2",
    ProviderKind.ANTHROPIC: "claude-sonnet-4-5",
    ProviderKind.GEMINI: "gemini-2.5-flash",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="baton", description="baton agent runtime")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Run a single agent on a prompt")
    run_p.add_argument("prompt", help="User input for the agent")
    run_p.add_argument(
        "--provider",
        default=ProviderKind.OPENAI.value,
        choices=[k.value for k in ProviderKind],
        help="Completion backend (default: openai)",
    )
    run_p.add_argument("--model", default=None, help="Model name (default depends on --provider)")
    run_p.add_argument("--instructions", default="You are a helpful assistant.", help="Agent instructions")
    run_p.add_argument("--name", default="Assistant", help="Agent name")
    run_p.add_argument("--base-url", default=None, help="Override the provider endpoint")
    run_p.add_argument("--api-key", default=None, help="API key (default: from environment)")
    run_p.add_argument("--max-turns", type=int, default=10, help="Turn budget (default: 10)")
    run_p.add_argument("--timeout", type=float, default=300.0, help="Run deadline in seconds (default: 300)")
    run_p.add_argument("--session-db", default=None, metavar="PATH", help="SQLite file for session history")
    run_p.add_argument("--session-id", default=None, help="Session key inside --session-db")
    run_p.add_argument("--json", action="store_true", help="Print the full RunResult as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "run":
        if args.session_id and not args.session_db:
            parser.error("--session-id requires --session-db")
        return asyncio.run(_cmd_run(args))
    return 2


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        stream=sys.stderr,
    )


async def _cmd_run(args: argparse.Namespace) -> int:
    model = args.model or _DEFAULT_MODELS.get(ProviderKind(args.provider), "gpt-4")
    try:
        provider = create_provider(args.provider, base_url=args.base_url, api_key=args.api_key)
        agent = Agent(name=args.name, instructions=args.instructions, model=model)
    except BatonError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    session: Optional[Session] = None
    if args.session_db:
        session = SQLiteSession(args.session_id, db_path=args.session_db)

    runner = Runner(
        provider=provider,
        tracer=LoggingTracer() if args.verbose >= 2 else NoOpTracer(),
        session=session,
        max_turns=args.max_turns,
        timeout_s=args.timeout,
    )
    try:
        result = await runner.run(agent, args.prompt)
    except BatonError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        await provider.aclose()
        if session is not None:
            await session.close()

    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print(result.final_output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
