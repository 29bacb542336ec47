"""Command line interface for microprompts."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
import shlex
import signal
from pathlib import Path

import click

from .catalog import DEFAULT_CATALOG, load_catalog
from .engine import DEFAULT_AUTH_TOKEN, DEFAULT_SOURCE_TAG, SuggestionEngine
from .exceptions import MicropromptsError
from .messages import Message, MessageState, Role
from .pool import PromptPool
from .protocols import DEFAULT_API_BASE, HTTPAnswerService
from .selector import SuggestionSelector
from .streaming import REVEAL_INTERVAL_SECONDS, REVEAL_STEP_CHARS
from .transcript import export_transcript

HELP_TEXT = """Commands
/help                          Show command help
/clear                         Start over (also /new)
/pool                          Show prompts not yet asked
/export [jsonl|md] [path]      Export the conversation
/quit                          Leave the chat
1, 2, 3                        Ask the numbered suggestion
Ctrl-C while an answer is revealing stops it."""

_EXIT_COMMANDS = {"/quit", "/exit"}


def _resolve_catalog(catalog_path: str | None) -> tuple[str, ...]:
    return load_catalog(catalog_path) if catalog_path else DEFAULT_CATALOG


class TranscriptPrinter:
    """Store listener that echoes assistant text as it is revealed."""

    def __init__(self) -> None:
        self._printed: dict[str, int] = {}
        self._closed: set[str] = set()

    def __call__(self, message: Message) -> None:
        if message.role is not Role.ASSISTANT or message.id in self._closed:
            return

        text = message.revealed_text
        shown = self._printed.get(message.id, 0)
        if len(text) > shown:
            if shown == 0:
                click.secho("assistant> ", fg="cyan", nl=False)
            click.echo(text[shown:], nl=False)
            self._printed[message.id] = len(text)

        if message.state.is_terminal:
            self._closed.add(message.id)
            if message.state is MessageState.STOPPED:
                click.secho(" [stopped]", fg="yellow", nl=False)
            elif message.state is MessageState.SUPERSEDED:
                click.secho(" [interrupted]", fg="yellow", nl=False)
            click.echo()
            if message.suggestions:
                print_suggestions(message.suggestions)


def print_suggestions(prompts: tuple[str, ...]) -> None:
    for number, prompt in enumerate(prompts, start=1):
        click.secho(f"  [{number}] {prompt}", fg="green")


def _current_choices(engine: SuggestionEngine) -> tuple[str, ...]:
    if not engine.started:
        return engine.starter_prompts
    last = engine.store.find_last(lambda m: bool(m.suggestions))
    return last.suggestions if last is not None and last.suggestions else ()


async def _reveal_with_interrupt(engine: SuggestionEngine) -> None:
    """Wait for the active reveal; SIGINT stops it instead of exiting."""
    loop = asyncio.get_running_loop()
    installed = False
    with contextlib.suppress(NotImplementedError, RuntimeError):
        loop.add_signal_handler(signal.SIGINT, engine.stop)
        installed = True
    try:
        await engine.wait_for_reveal()
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _run_slash_command(engine: SuggestionEngine, raw_text: str) -> bool:
    """Handle a slash command.  Returns ``False`` when the chat should end."""
    try:
        tokens = shlex.split(raw_text)
    except ValueError as exc:
        click.echo(f"Command parse error: {exc}")
        return True
    if not tokens:
        return True

    command = tokens[0].lower()
    args = tokens[1:]

    if command in _EXIT_COMMANDS:
        return False

    if command == "/help":
        click.echo(HELP_TEXT)
    elif command in {"/new", "/clear"}:
        engine.clear_conversation()
        click.echo("Conversation cleared.")
        print_suggestions(engine.starter_prompts)
    elif command == "/pool":
        for prompt in engine.unused_prompts:
            click.echo(f"  {prompt}")
        click.echo(f"{len(engine.unused_prompts)} unused, {len(engine.pool.used)} used.")
    elif command == "/export":
        if not engine.messages:
            click.echo("Nothing to export yet.")
            return True
        fmt: str | None = None
        destination: Path | None = None
        if args and args[0].lower() in {"jsonl", "md"}:
            fmt = args[0].lower()
            args = args[1:]
        if args:
            destination = Path(args[0]).expanduser()
        if destination is None:
            destination = Path.cwd() / f"conversation.{fmt or 'jsonl'}"
        try:
            written = export_transcript(engine.messages, destination, fmt)
        except OSError as exc:
            click.echo(f"Export failed: {exc}")
            return True
        click.echo(f"Export complete: {written}")
    else:
        click.echo(f"Unknown command: {command}. Try /help.")
    return True


async def run_chat(engine: SuggestionEngine) -> None:
    """Interactive loop: read a line, submit it, reveal the answer."""
    printer = TranscriptPrinter()
    unsubscribe = engine.store.subscribe(printer)
    click.echo("Ask a question, pick a suggestion by number, or type /help.")
    print_suggestions(engine.starter_prompts)

    try:
        while True:
            try:
                raw = await asyncio.to_thread(
                    click.prompt, "you", prompt_suffix="> ", default="", show_default=False
                )
            except click.Abort:
                click.echo()
                break

            text = raw.strip()
            if not text:
                continue
            if text.startswith("/"):
                if not _run_slash_command(engine, text):
                    break
                continue

            choices = _current_choices(engine)
            if text.isdigit() and 1 <= int(text) <= len(choices):
                text = choices[int(text) - 1]
                click.echo(f"you> {text}")

            await engine.submit(text)
            await _reveal_with_interrupt(engine)
    finally:
        unsubscribe()


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log engine activity to stderr.")
def cli(verbose: bool) -> None:
    """Follow-up prompt suggestions for a conversational assistant."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@click.option(
    "--api-base",
    envvar="MICROPROMPTS_API_BASE",
    default=DEFAULT_API_BASE,
    show_default=True,
    help="Base URL of the answer service.",
)
@click.option("--source", envvar="MICROPROMPTS_SOURCE", default=DEFAULT_SOURCE_TAG, show_default=True)
@click.option("--token", envvar="MICROPROMPTS_TOKEN", default=DEFAULT_AUTH_TOKEN, show_default=True)
@click.option(
    "--catalog",
    "catalog_path",
    envvar="MICROPROMPTS_CATALOG",
    type=click.Path(exists=True, dir_okay=False),
    help="Prompt catalog (.json list or one prompt per line).",
)
@click.option("--seed", type=int, default=None, help="Seed for reproducible suggestions.")
@click.option("--interval", type=click.FloatRange(min=0), default=REVEAL_INTERVAL_SECONDS)
@click.option("--step", type=click.IntRange(min=1), default=REVEAL_STEP_CHARS)
def chat(
    api_base: str,
    source: str,
    token: str,
    catalog_path: str | None,
    seed: int | None,
    interval: float,
    step: int,
) -> None:
    """Chat with the answer service and get follow-up suggestions."""
    engine = SuggestionEngine(
        _resolve_catalog(catalog_path),
        HTTPAnswerService(api_base),
        source_tag=source,
        auth_token=token,
        rng=random.Random(seed),
        interval=interval,
        step=step,
    )
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run_chat(engine))


@cli.command()
@click.argument("question")
@click.argument("answer", required=False, default="")
@click.option("--catalog", "catalog_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--seed", type=int, default=None)
def suggest(question: str, answer: str, catalog_path: str | None, seed: int | None) -> None:
    """Print suggestions for QUESTION (and optional ANSWER) from a fresh pool."""
    rng = random.Random(seed)
    pool = PromptPool(_resolve_catalog(catalog_path), rng=rng)
    for prompt in SuggestionSelector(pool, rng=rng).select(question, answer):
        click.echo(prompt)


@cli.command("catalog")
@click.option("--catalog", "catalog_path", type=click.Path(exists=True, dir_okay=False))
def show_catalog(catalog_path: str | None) -> None:
    """List the prompt catalog."""
    for prompt in _resolve_catalog(catalog_path):
        click.echo(prompt)


def cli_entry() -> None:
    """Console-script entry point."""
    try:
        cli()
    except MicropromptsError as exc:
        click.echo(str(exc), err=True)
        raise SystemExit(2) from exc
