"""Main CLI entry point for novtl."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional

import click
import structlog
from dotenv import load_dotenv
from rich.console import Console

from novtl import __version__
from novtl.config import LLM_PROVIDERS, AppConfig, get_config, set_config

logger = structlog.get_logger()
console = Console(stderr=True)


def setup_config(env_file: Optional[Path] = None) -> None:
    """Load configuration from environment."""
    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    config = AppConfig.load(env_file)
    set_config(config)


def build_project(
    target_language: Optional[str],
    instruction: Optional[str],
    glossary_path: Optional[str],
):
    """Assemble a project from CLI options."""
    from novtl.models import NovelProject
    from novtl.translator.glossary import Glossary

    project = NovelProject()
    updates = {}
    if target_language:
        updates["target_language"] = target_language
    if instruction:
        updates["translation_instruction"] = instruction
    if glossary_path:
        updates["glossary"] = Glossary.from_csv(Path(glossary_path)).entries
    return project.model_copy(update=updates)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option("--quiet", "-q", is_flag=True, help="Minimal output")
@click.option("--log-file", type=click.Path(), help="Write JSON logs to file")
@click.option("--env-file", type=click.Path(exists=True), help="Path to .env file")
@click.option(
    "--provider",
    type=click.Choice(LLM_PROVIDERS),
    help="Override the active provider",
)
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx,
    verbose: bool,
    quiet: bool,
    log_file: Optional[str],
    env_file: Optional[str],
    provider: Optional[str],
) -> None:
    """Novel translation and assistant dispatch.

    Translate long chapters through Gemini, OpenAI, DeepSeek or Grok, and
    talk to the glossary assistant.
    """
    from novtl.log import configure_logging

    ctx.ensure_object(dict)

    setup_config(Path(env_file) if env_file else None)
    config = get_config()

    verbosity = 1 if verbose else (-1 if quiet else 0)
    log_path = Path(log_file) if log_file else None
    configure_logging(verbosity=verbosity, log_file=log_path, level=config.log_level)

    if provider:
        config.active_provider = provider


# =============================================================================
# Translate Command
# =============================================================================


@cli.command()
@click.argument("input_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", type=click.Path(), help="Write the translation to a file")
@click.option(
    "--mode",
    type=click.Choice(["standard", "high_quality"]),
    help="Translation mode (default from NOVTL_TRANSLATION_MODE)",
)
@click.option("--target-language", "-t", help="Target language")
@click.option("--instruction", help="Style instruction for the translator")
@click.option("--glossary", type=click.Path(exists=True), help="Glossary CSV (original,translated)")
@click.option(
    "--previous-chapter",
    type=click.Path(exists=True, dir_okay=False),
    help="Text of the previous chapter, used as story context",
)
def translate(
    input_file: str,
    output: Optional[str],
    mode: Optional[str],
    target_language: Optional[str],
    instruction: Optional[str],
    glossary: Optional[str],
    previous_chapter: Optional[str],
) -> None:
    """Translate a text file, streaming the result to stdout.

    Press Ctrl+C to stop; text already printed is kept.

    Examples:

        novtl translate chapter1.txt -t English

        novtl --provider DeepSeek translate chapter2.txt --mode high_quality \\
            --glossary glossary.csv --previous-chapter chapter1.txt
    """
    from novtl.cancel import CancelToken
    from novtl.errors import AbortedByUser, NovtlError, error_message
    from novtl.models import AppSettings
    from novtl.translator.engine import translate_text

    config = get_config()
    settings = AppSettings.from_config(config)
    project = build_project(target_language, instruction, glossary)
    text = Path(input_file).read_text(encoding="utf-8")
    previous = Path(previous_chapter).read_text(encoding="utf-8") if previous_chapter else None

    def emit(fragment: str) -> None:
        sys.stdout.write(fragment)
        sys.stdout.flush()

    async def run():
        cancel = CancelToken()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, cancel.cancel)
        except (NotImplementedError, RuntimeError):
            pass  # Signal handlers are unavailable on some platforms
        try:
            return await translate_text(
                text,
                settings,
                project,
                on_chunk=emit,
                cancel=cancel,
                mode=mode,
                previous_chapter_context=previous,
                config=config.translation,
            )
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

    try:
        result = asyncio.run(run())
    except AbortedByUser as e:
        console.print(f"\n[yellow]{error_message(e, settings.app_language)}[/yellow]")
        raise SystemExit(130)
    except NovtlError as e:
        console.print(f"\n[red]{error_message(e, settings.app_language)}[/red]")
        raise SystemExit(1)

    sys.stdout.write("\n")
    if output:
        Path(output).write_text(result.text, encoding="utf-8")
        logger.info("translation_saved", path=output, chunks=result.chunks)


# =============================================================================
# Chat Command
# =============================================================================


@cli.command()
@click.argument("message")
@click.option("--glossary", type=click.Path(exists=True), help="Glossary CSV for context")
@click.option(
    "--editor-source",
    type=click.Path(exists=True, dir_okay=False),
    help="File shown to the assistant as the editor's source text",
)
@click.option(
    "--editor-translation",
    type=click.Path(exists=True, dir_okay=False),
    help="File shown to the assistant as the editor's translation",
)
@click.option("--stream/--no-stream", default=True, help="Stream the reply as it arrives")
def chat(
    message: str,
    glossary: Optional[str],
    editor_source: Optional[str],
    editor_translation: Optional[str],
    stream: bool,
) -> None:
    """Send one message to the glossary assistant."""
    from novtl.assistant.session import ChatSession
    from novtl.assistant.stores import (
        InMemoryHistoryStore,
        InMemoryProjectStore,
        InMemoryTranslationStore,
        StaticEditor,
    )
    from novtl.models import AppSettings, EditorContent

    config = get_config()
    settings = AppSettings.from_config(config)
    editor = EditorContent(
        source_text=Path(editor_source).read_text(encoding="utf-8") if editor_source else "",
        translated_text=Path(editor_translation).read_text(encoding="utf-8")
        if editor_translation
        else "",
    )
    session = ChatSession(
        settings=settings,
        projects=InMemoryProjectStore(build_project(None, None, glossary)),
        history=InMemoryHistoryStore(),
        translations=InMemoryTranslationStore(),
        editor=StaticEditor(editor),
        config=config.chat,
    )

    def emit(fragment: str) -> None:
        click.echo(fragment, nl=False)

    reply = asyncio.run(session.process_user_message(message, on_chunk=emit if stream else None))
    if reply is None:
        return
    if stream:
        click.echo()
    else:
        click.echo(reply.text)

    if reply.pending_action is not None:
        console.print(f"[yellow]Pending action: {reply.pending_action.type}[/yellow]")
        for item in reply.pending_action.payload:
            console.print(f"  • {item.original} → {item.translated or ''}")


# =============================================================================
# Provider Commands
# =============================================================================


@cli.command()
def providers() -> None:
    """Show configured providers and the active one."""
    from novtl.config import log_provider_summary

    log_provider_summary()


@cli.command("config")
def show_config() -> None:
    """Show the effective translation and chat settings."""
    from rich.table import Table

    config = get_config()
    out = Console()

    out.print(
        f"Active provider: [cyan]{config.active_provider}[/cyan]  "
        f"Language: [cyan]{config.app_language}[/cyan]  "
        f"Mode: [cyan]{config.translation_mode}[/cyan]"
    )
    for title, section in (("Translation", config.translation), ("Chat", config.chat)):
        table = Table(title=title, show_header=True, header_style="bold blue")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="green")
        for name, value in section.model_dump().items():
            table.add_row(name, str(value))
        out.print(table)


# =============================================================================
# Glossary Commands
# =============================================================================


@cli.group()
def glossary():
    """Inspect glossary CSV files."""
    pass


@glossary.command("show")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--limit", default=50, help="Maximum entries to show")
@click.option("--text", "text_file", type=click.Path(exists=True), help="Only entries occurring in this file")
def glossary_show(csv_file: str, limit: int, text_file: Optional[str]) -> None:
    """Display glossary contents."""
    from novtl.translator.glossary import Glossary

    g = Glossary.from_csv(Path(csv_file))
    entries = g.entries
    if text_file:
        entries = g.matcher().relevant_entries(Path(text_file).read_text(encoding="utf-8"))

    click.echo(f"Glossary ({len(entries)} entries):")
    for entry in entries[:limit]:
        click.echo(f"  {entry.original} → {entry.translated}")

    if len(entries) > limit:
        click.echo(f"  ... and {len(entries) - limit} more")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
