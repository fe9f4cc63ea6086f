"""
Command-line entry point: race one prompt across one or more models.

Usage:
    multimodel "Explain the CAP theorem"
    multimodel -m openai:gpt-5-mini -m anthropic:claude-3-5-sonnet-20241022 "Explain the CAP theorem"
    multimodel --system "Answer in one sentence" -m deepseek:deepseek-chat "What is Rust?"

Models come from -m options, then RACE_MODELS, then the default model.
Ctrl+C cancels the whole batch.
"""

import argparse
import asyncio
import signal
import sys

from pydantic import ValidationError
from pydantic_settings import SettingsError
from rich.console import Console

from multimodel import __version__
from multimodel.config import Settings
from multimodel.models.internal import ChatMessage, MessageRole, ProviderModel
from multimodel.race.batch import run_batch
from multimodel.race.sink import ConsoleSink
from multimodel.transport.router import build_router
from multimodel.utils.cancellation import CancellationToken
from multimodel.utils.errors import MultiModelError
from multimodel.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ALL_FAILED = 1
EXIT_USAGE = 2
EXIT_CANCELLED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multimodel",
        description="Send one prompt to several language models and stream the fastest answer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("prompt", nargs="+", help="Prompt text (joined with spaces)")
    parser.add_argument(
        "-m",
        "--model",
        dest="models",
        action="append",
        default=[],
        metavar="PROVIDER:MODEL",
        help="Model to race; repeat to race several (default: RACE_MODELS or the default model)",
    )
    parser.add_argument(
        "--system",
        type=str,
        default=None,
        help="Optional system message sent before the prompt",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Override LOG_LEVEL for this run",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def build_messages(prompt: str, system: str | None = None) -> list[ChatMessage]:
    messages = []
    if system:
        messages.append(ChatMessage(role=MessageRole.SYSTEM, content=system))
    messages.append(ChatMessage(role=MessageRole.USER, content=prompt))
    return messages


def resolve_models(specs: list[str], settings: Settings) -> list[ProviderModel]:
    """
    Models bound to this command.

    An empty list lets the batch fall back to the router's default model.

    Raises:
        PreconditionError: If a specifier is not `provider:model`
    """
    if specs:
        return [ProviderModel.parse(spec) for spec in specs]
    return settings.race_provider_models


def _install_signal_handlers(token: CancellationToken) -> list[signal.Signals]:
    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel, sig.name)
        except (NotImplementedError, RuntimeError):
            # Event loops without signal support (e.g. Windows Proactor)
            continue
        installed.append(sig)
    return installed


async def run(args: argparse.Namespace, settings: Settings, console: Console | None = None) -> int:
    """
    Execute one batch for parsed CLI arguments.

    Returns:
        Process exit code
    """
    router = build_router(settings)
    models = resolve_models(args.models, settings)
    messages = build_messages(" ".join(args.prompt), args.system)

    token = CancellationToken()
    sink = ConsoleSink(console)
    installed = _install_signal_handlers(token)
    loop = asyncio.get_running_loop()

    try:
        outcome = await run_batch(
            models,
            messages,
            router,
            sink,
            token,
            default_model=router.default,
        )
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    if outcome.cancelled:
        sink.console.print()
        sink.console.print("[dim]cancelled[/dim]")
        return EXIT_CANCELLED

    return EXIT_ALL_FAILED if outcome.all_failed else EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """
    Parse arguments and run one batch.

    Returns:
        Exit code (0 success, 1 every model failed, 2 usage or configuration
        error, 130 cancelled)
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    overrides = {"log_level": args.log_level} if args.log_level else {}
    try:
        settings = Settings(**overrides)
    except (ValidationError, SettingsError) as exc:
        print(f"ERROR: Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        setup_logging(settings)
        return asyncio.run(run(args, settings))
    except MultiModelError as exc:
        logger.debug("Batch aborted before start", extra={"error_code": exc.error_code})
        print(f"ERROR: {exc.message}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
