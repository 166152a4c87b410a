"""Command line entry point: let your code chat with LLMs.

Usage::

    trackway run PATH [--trace] [--no-exit] [--prompts FILE] [-- ARGS...]
    trackway debug PATH [--no-exit] [--prompts FILE] [-- ARGS...]
    trackway config ATTR VALUE
    trackway --version

An agent module must define ``create_agent(argv)`` returning an ``Agent``
(or an iterable of capabilities). It may be a coroutine function.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib.util
import inspect
import json
import logging
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, List, Optional, Sequence, Tuple

from pydantic_core import to_jsonable_python

from . import __version__
from .core.config import CONFIG_ATTRIBUTES, Settings, set_config
from .core.logging_config import setup_logging
from .errors import Interrupt, TrackwayRuntimeError
from .llm.openai import OpenAIChatCompletion
from .prompts.graph import DeclarationGraph, artifact_name
from .runtime.controller import AgentController
from .runtime.models import AgentOptions

logger = logging.getLogger(__name__)

AGENT_FACTORY = "create_agent"


@dataclass(frozen=True)
class RunFlags:
    path: Path
    trace: bool = False
    allow_exit: bool = True
    is_debug: bool = False
    prompts: Optional[Path] = None
    argv: List[str] = field(default_factory=list)


def _split_user_args(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split ``argv`` at the first ``--``; everything after it goes to the agent."""
    args = list(argv)
    if "--" not in args:
        return args, []
    idx = args.index("--")
    return args[:idx], args[idx + 1 :]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trackway",
        description="Let your code chat with LLMs.",
    )
    parser.add_argument("--version", action="version", version=f"trackway {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    for command, help_text in (("run", "Run an agent"), ("debug", "Run an agent in debug mode")):
        sub = subparsers.add_parser(command, help=help_text, description=help_text)
        sub.add_argument("path", type=Path, help="Path to the agent to run")
        if command == "run":
            sub.add_argument("--trace", action="store_true", help="Enable trace logging")
        sub.add_argument(
            "--no-exit",
            dest="allow_exit",
            action="store_false",
            help="Do not allow the agent to call exit by itself",
        )
        sub.add_argument(
            "--prompts",
            type=Path,
            default=None,
            help="Declaration artifact to use (default: <agent>.prompts.json next to the agent)",
        )

    config_parser = subparsers.add_parser(
        "config",
        help="Set configuration options",
        description=f"Set configuration options ({', '.join(CONFIG_ATTRIBUTES)})",
    )
    config_parser.add_argument("attr", help="The configuration attribute to set (e.g. openai.key)")
    config_parser.add_argument("value", help="The value to set the configuration attribute to")
    return parser


def load_agent_module(path: Path) -> ModuleType:
    """Import the agent module at ``path``.

    Raises:
        TrackwayRuntimeError: If the file does not exist or cannot be imported.
    """
    path = path.resolve()
    if not path.is_file():
        raise TrackwayRuntimeError(f"agent not found: {path}")
    module_name = f"trackway_agent_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise TrackwayRuntimeError(f"cannot import agent from {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module


async def _create_agent(module: ModuleType, argv: List[str]) -> Any:
    factory = getattr(module, AGENT_FACTORY, None)
    if factory is None or not callable(factory):
        raise TrackwayRuntimeError(
            f"module does not define a {AGENT_FACTORY} factory\n\n"
            f"try adding:\n\n    def {AGENT_FACTORY}(argv):\n        return MyAgent()"
        )
    agent = factory(argv)
    if inspect.isawaitable(agent):
        agent = await agent
    return agent


async def load_graph(flags: RunFlags, settings: Settings) -> DeclarationGraph:
    """Load the declaration graph for the agent, building it when no artifact exists."""
    if flags.prompts is not None:
        return DeclarationGraph.from_json_file(flags.prompts)

    default = flags.path.resolve().with_name(artifact_name(flags.path))
    if default.is_file():
        return DeclarationGraph.from_json_file(default)

    logger.debug("load_graph: no artifact at %s, building with %s", default, settings.compiler)
    with tempfile.TemporaryDirectory(prefix="trackway-") as work_dir:
        return await DeclarationGraph.build(flags.path, work_dir=work_dir, executable=settings.compiler)


async def do_run(flags: RunFlags, settings: Optional[Settings] = None) -> Any:
    """Run the agent at ``flags.path`` to completion and return its output."""
    settings = settings or Settings()
    llm = OpenAIChatCompletion.from_settings(settings)
    try:
        module = load_agent_module(flags.path)
        graph = asyncio.ensure_future(load_graph(flags, settings))
        try:
            agent = await _create_agent(module, flags.argv)
        except BaseException:
            graph.cancel()
            raise
        ctl = AgentController(agent, graph, llm, options=AgentOptions(allow_exit=flags.allow_exit))
        return await ctl.run_to_completion()
    finally:
        await llm.aclose()


def _error(message: str) -> None:
    print(f"trackway: error: {message}", file=sys.stderr)


def main(argv: Optional[Sequence[str]] = None) -> int:
    cli_args, user_args = _split_user_args(sys.argv[1:] if argv is None else argv)
    parser = build_parser()
    args = parser.parse_args(cli_args)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        if args.command == "config":
            path = set_config(args.attr, args.value)
            print(f"{args.attr} saved to {path}", file=sys.stderr)
            return 0

        settings = Settings()
        trace = args.command == "debug" or getattr(args, "trace", False)
        setup_logging(
            log_level="DEBUG" if trace else settings.log_level,
            log_format="simple" if trace else settings.log_format,
            log_file=settings.log_file,
        )
        flags = RunFlags(
            path=args.path,
            trace=trace,
            allow_exit=args.allow_exit,
            is_debug=args.command == "debug",
            prompts=args.prompts,
            argv=user_args,
        )
        result = asyncio.run(do_run(flags, settings))
    except TrackwayRuntimeError as err:
        _error(err.message)
        return err.code
    except Interrupt as err:
        _error(f"interrupted: {err}")
        return 1
    except Exception as err:
        # the controller re-raises an interrupt's cause chained from the interrupt
        if not isinstance(err.__cause__, Interrupt):
            raise
        _error(f"interrupted: {err.__cause__} ({type(err).__name__}: {err})")
        return 1

    if result is not None:
        print(json.dumps(to_jsonable_python(result, fallback=str), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
