"""
Command-Line Interface

CLI commands for infopiece.

Commands:
    infopiece extract       - Extract information pieces from a text
    infopiece conversation  - Process the assistant messages of a conversation export
    infopiece login         - Store an OpenAI API key locally
    infopiece logout        - Remove the stored API key

Usage:
    # Extract with verification and up to 3 iterations
    infopiece extract "Deploy the service on Friday after QA signs off." -n 3

    # Extract from a file and save the session log
    infopiece extract --file notes.txt --log ./logs --log-format json

    # List conversations in an export, then process one
    infopiece conversation conversations.json
    infopiece conversation conversations.json --index 0 --results results.json

Environment variables (including OPENAI_API_KEY) are also read from a
.env file in the working directory.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from infopiece.config.credentials import CredentialStore
from infopiece.config.settings import ExtractorConfig
from infopiece.exceptions import ConversationFormatError, CredentialStoreError, MissingCredentialError
from infopiece.export.log_export import LOG_FORMATS, LogExportOptions, format_combined_logs, write_log
from infopiece.providers.base import CompletionClient
from infopiece.types.results import ProcessedMessage

__all__ = ["main", "app"]

app = typer.Typer(
    name="infopiece",
    help="Extract essential information pieces from text with iterative LLM verification",
    no_args_is_help=True,
)
console = Console()

_state: dict[str, Optional[Path]] = {"config": None}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def _load_config(**overrides) -> ExtractorConfig:
    config_path = _state["config"]
    config = ExtractorConfig.from_file(config_path) if config_path else ExtractorConfig()
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return config.with_overrides(**overrides) if overrides else config


def _build_client(config: ExtractorConfig, api_key: Optional[str]) -> CompletionClient:
    from infopiece.providers.llm.openai import OpenAICompletionClient

    return OpenAICompletionClient.from_config(config, api_key=api_key)


def _client_or_exit(config: ExtractorConfig, api_key: Optional[str]) -> CompletionClient:
    try:
        return _build_client(config, api_key)
    except (MissingCredentialError, CredentialStoreError) as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)


def _check_log_format(log_format: str) -> None:
    if log_format not in LOG_FORMATS:
        console.print(f"[red]Unknown log format '{log_format}'. Use one of: {', '.join(LOG_FORMATS)}[/]")
        raise typer.Exit(code=2)


def _print_result(result: ProcessedMessage, title: str = "Extractions") -> None:
    table = Table(title=title)
    table.add_column("Rank", justify="right", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Information Piece", style="bold")
    table.add_column("Reasoning", style="dim")

    for extraction in result.extractions:
        table.add_row(
            str(extraction.rank),
            extraction.label,
            extraction.information_piece,
            extraction.reasoning,
        )
    console.print(table)

    verification = result.verification
    if verification is not None:
        missed = "\n".join(
            f"  - [{item.importance}] {item.information_piece}"
            for item in verification.missed_information
        )
        body = (
            f"Comprehensive: {'yes' if verification.is_comprehensive else 'no'}\n"
            f"Confidence: {verification.confidence_score:.0%}\n"
            f"Summary: {verification.summary or '-'}"
        )
        if missed:
            body += f"\n\nMissed information:\n{missed}"
        console.print(Panel(
            body,
            title=f"Verification (iterations: {result.iteration_count or 0})",
            border_style="green" if not verification.needs_refinement() else "yellow",
        ))


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    config: Optional[Path] = typer.Option(
        None,
        "--config", "-c",
        help="TOML configuration file",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """Extract essential information pieces from text."""
    load_dotenv()
    _configure_logging(verbose)
    _state["config"] = config


@app.command()
def extract(
    text: Optional[str] = typer.Argument(None, help="Text to extract from"),
    file: Optional[Path] = typer.Option(
        None,
        "--file", "-f",
        help="Read the text from a file",
        exists=True,
        dir_okay=False,
    ),
    verify: Optional[bool] = typer.Option(
        None,
        "--verify/--no-verify",
        help="Verify extractions (default from config)",
    ),
    max_iterations: Optional[int] = typer.Option(
        None,
        "--max-iterations", "-n",
        min=1,
        help="Maximum refinement iterations",
    ),
    keep_refining: bool = typer.Option(
        False,
        "--continue",
        help="Keep continuing refinement while verification is unsatisfied",
    ),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key"),
    log: Optional[Path] = typer.Option(None, "--log", help="Write the session log to this file or directory"),
    log_format: str = typer.Option("txt", "--log-format", help="Session log format: txt, json or csv"),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON"),
) -> None:
    """Extract information pieces from a text."""
    from infopiece.extraction.batch import build_text_results_payload
    from infopiece.extraction.refiner import continue_refinement, refine_text

    _check_log_format(log_format)
    if file is not None:
        text = file.read_text(encoding="utf-8")
    if not text or not text.strip():
        console.print("[red]Please provide input text or --file.[/]")
        raise typer.Exit(code=2)

    config = _load_config(include_verification=verify, max_iterations=max_iterations)
    client = _client_or_exit(config, api_key)

    async def _run() -> ProcessedMessage:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Extracting...")

            def _on_stage(stage: str, iteration: int) -> None:
                progress.update(task, description=f"Iteration {iteration}: {stage}...")

            result = await refine_text(text, client=client, config=config, progress=_on_stage)
            while keep_refining and not result.failed and result.can_continue(config):
                result = await continue_refinement(result, client=client, config=config, progress=_on_stage)
            return result

    result = asyncio.run(_run())

    if log is not None and result.full_log is not None:
        written = write_log(result.full_log, log, LogExportOptions(format=log_format))
        console.print(f"[dim]Session log written to {written}[/]")

    if as_json:
        payload = build_text_results_payload(result, max_iterations=config.max_iterations)
        console.print_json(json.dumps(payload))
    elif result.extractions:
        _print_result(result)
    elif not result.failed:
        console.print("[yellow]Nothing to extract (text too short).[/]")

    if result.failed:
        console.print(f"[red]Extraction failed: {result.processing_error}[/]")
        raise typer.Exit(code=1)


@app.command()
def conversation(
    path: Path = typer.Argument(
        ...,
        help="Conversation export (JSON)",
        exists=True,
        dir_okay=False,
    ),
    index: Optional[int] = typer.Option(
        None,
        "--index", "-i",
        min=0,
        help="Conversation to process (lists conversations when omitted)",
    ),
    verify: Optional[bool] = typer.Option(
        None,
        "--verify/--no-verify",
        help="Verify extractions (default from config)",
    ),
    max_iterations: Optional[int] = typer.Option(
        None,
        "--max-iterations", "-n",
        min=1,
        help="Maximum refinement iterations per message",
    ),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key"),
    results: Optional[Path] = typer.Option(None, "--results", help="Write accepted extractions (JSON)"),
    logs: Optional[Path] = typer.Option(None, "--logs", help="Write per-message processing logs (JSON)"),
    session_logs: Optional[Path] = typer.Option(
        None,
        "--session-logs",
        help="Write all session logs combined into one file",
    ),
    log_format: str = typer.Option("txt", "--log-format", help="Session log format: txt, json or csv"),
) -> None:
    """Process the assistant messages of one conversation."""
    from infopiece.extraction.batch import build_logs_payload, build_results_payload, process_conversation
    from infopiece.extraction.refiner import ExtractionRefiner
    from infopiece.ingestion.conversations import load_conversation_file

    _check_log_format(log_format)
    try:
        conversations = load_conversation_file(path)
    except ConversationFormatError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)

    if not conversations:
        console.print("[red]No conversations found in the file[/]")
        raise typer.Exit(code=1)

    if index is None:
        table = Table(title=f"Conversations in {path.name}")
        table.add_column("#", justify="right", style="cyan")
        table.add_column("Title")
        table.add_column("Messages", justify="right", style="green")
        for idx, conv in enumerate(conversations):
            table.add_row(str(idx), conv.display_title, str(len(conv.messages)))
        console.print(table)
        return

    if index >= len(conversations):
        console.print(f"[red]No conversation at index {index} ({len(conversations)} available)[/]")
        raise typer.Exit(code=2)

    config = _load_config(include_verification=verify, max_iterations=max_iterations)
    refiner = ExtractionRefiner(_client_or_exit(config, api_key), config)
    selected = conversations[index]

    async def _run():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Processing messages...", total=None)

            def _on_message(current: int, total: int) -> None:
                progress.update(
                    task,
                    total=total,
                    completed=current - 1,
                    description=f"Message {current}/{total}",
                )

            processed = await process_conversation(selected, refiner, progress=_on_message)
            progress.update(task, completed=processed.summary.processed_messages)
            return processed

    processed = asyncio.run(_run())

    for number, message in enumerate(processed.processed_messages, start=1):
        if message.failed:
            console.print(f"[red]Message {number}: {message.processing_error}[/]")
        elif message.extractions:
            _print_result(message, title=f"Message {number}")

    summary = processed.summary
    console.print(Panel(
        f"Messages: {summary.total_messages}\n"
        f"Processed: {summary.processed_messages}\n"
        f"Extractions: {summary.total_extractions}\n"
        f"Errors: {summary.errors}",
        title=selected.display_title,
        border_style="red" if summary.errors else "green",
    ))

    for target, builder in ((results, build_results_payload), (logs, build_logs_payload)):
        if target is None:
            continue
        payload = builder(
            processed,
            include_verification=config.include_verification,
            max_iterations=config.max_iterations,
        )
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[dim]Wrote {target}[/]")

    if session_logs is not None:
        sessions = [m.full_log for m in processed.processed_messages if m.full_log is not None]
        session_logs.parent.mkdir(parents=True, exist_ok=True)
        session_logs.write_text(
            format_combined_logs(sessions, LogExportOptions(format=log_format)),
            encoding="utf-8",
        )
        console.print(f"[dim]Wrote {len(sessions)} session logs to {session_logs}[/]")


@app.command()
def login(
    api_key: str = typer.Option(
        ...,
        "--api-key",
        prompt="OpenAI API key",
        hide_input=True,
        help="Key to store",
    ),
) -> None:
    """Store an OpenAI API key for later runs."""
    config = _load_config()
    store = CredentialStore(config.credentials_file)
    try:
        store.save(api_key)
    except (ValueError, CredentialStoreError) as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)
    console.print(f"[green]API key saved to {store.path}[/]")


@app.command()
def logout() -> None:
    """Remove the stored OpenAI API key."""
    config = _load_config()
    store = CredentialStore(config.credentials_file)
    try:
        removed = store.clear()
    except CredentialStoreError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=1)
    if removed:
        console.print(f"[green]Removed {store.path}[/]")
    else:
        console.print("[yellow]No stored API key.[/]")


def main() -> None:
    """Entry point for the CLI."""
    app()
