"""
Session Log Export

Renders ProcessingSession logs for download or archiving.

Formats:
    json  The session structure as-is (camelCase keys)
    txt   Human-readable report: header, original text, every interaction
          with its prompt and response, final extractions and verification
    csv   One row per interaction with prompt length and a response summary

Example:
    >>> text = format_log(result.full_log, LogExportOptions(format="txt"))
    >>> write_log(result.full_log, "./logs", LogExportOptions(format="csv"))
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from infopiece.types.results import ProcessingSession

logger = logging.getLogger(__name__)

LogFormat = Literal["json", "txt", "csv"]
LOG_FORMATS: tuple[str, ...] = ("json", "txt", "csv")

_RESPONSE_SUMMARY_CHARS = 100


@dataclass(frozen=True)
class LogExportOptions:
    """Options for rendering a session log."""

    include_raw_responses: bool = True
    include_timestamps: bool = True
    format: LogFormat = "txt"


def format_log(session: ProcessingSession, options: LogExportOptions | None = None) -> str:
    """Render one session log in the requested format."""
    options = options or LogExportOptions()
    if options.format == "json":
        return json.dumps(session.to_wire(), indent=2, ensure_ascii=False)
    if options.format == "csv":
        return _format_csv(session, options.include_timestamps)
    return _format_text(session, options.include_raw_responses, options.include_timestamps)


def format_combined_logs(
    sessions: list[ProcessingSession],
    options: LogExportOptions | None = None,
) -> str:
    """
    Render several session logs as one document.

    JSON yields an array of sessions; every other format yields the text
    reports separated by numbered banners.
    """
    options = options or LogExportOptions()
    if options.format == "json":
        return json.dumps([s.to_wire() for s in sessions], indent=2, ensure_ascii=False)

    text_options = replace(options, format="txt")
    banner = "=" * 100
    rendered = [
        f"\n{banner}\nLOG {idx} OF {len(sessions)}\n{banner}\n" + format_log(session, text_options)
        for idx, session in enumerate(sessions, start=1)
    ]
    return "\n\n".join(rendered)


def default_log_filename(session: ProcessingSession | None, fmt: str = "txt") -> str:
    """processing_log_<session id>_<date>.<fmt>, or a combined name when no session is given."""
    today = datetime.now(timezone.utc).date().isoformat()
    if session is None:
        return f"combined_processing_logs_{today}.{fmt}"
    return f"processing_log_{session.session_id}_{today}.{fmt}"


def write_log(
    session: ProcessingSession,
    path: str | Path,
    options: LogExportOptions | None = None,
) -> Path:
    """
    Write a session log to a file.

    If `path` is an existing directory, the default file name is used.

    Returns:
        Path of the written file
    """
    options = options or LogExportOptions()
    target = Path(path)
    if target.is_dir():
        target = target / default_log_filename(session, options.format)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(format_log(session, options), encoding="utf-8")
    logger.info(f"Wrote {options.format} log for {session.session_id} to {target}")
    return target


# -----------------------------------------------------------------------------
# Renderers
# -----------------------------------------------------------------------------


def _iso(epoch_ms: int) -> str:
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _bool(value: bool) -> str:
    return "true" if value else "false"


def _format_text(
    session: ProcessingSession,
    include_raw_responses: bool,
    include_timestamps: bool,
) -> str:
    lines = ["=" * 80, "DETAILED PROCESSING LOG", "=" * 80, ""]

    lines.append(f"Session ID: {session.session_id}")
    if include_timestamps:
        lines.append(f"Start Time: {_iso(session.start_timestamp)}")
        lines.append(f"End Time: {_iso(session.end_timestamp)}")
        lines.append(f"Total Duration: {session.duration_ms}ms")
    lines.append(f"Total Iterations: {session.total_iterations}")
    lines.append("")

    lines.extend(["ORIGINAL TEXT:", "-" * 40, session.original_text, ""])

    lines.extend(["INTERACTION LOG:", "-" * 40])
    for idx, interaction in enumerate(session.all_interactions, start=1):
        lines.append(f"\n[{idx}] {interaction.kind.upper()} INTERACTION")
        if include_timestamps:
            lines.append(f"Timestamp: {_iso(interaction.timestamp)}")
            if interaction.processing_time:
                lines.append(f"Processing Time: {interaction.processing_time}ms")
        lines.append("")

        lines.extend(["PROMPT:", interaction.prompt, ""])

        lines.append("RESPONSE:")
        if include_raw_responses and interaction.raw_response:
            lines.append(interaction.raw_response)
        else:
            lines.append(json.dumps(interaction.response, indent=2, ensure_ascii=False, default=str))
        lines.extend(["", "-" * 60])

    lines.extend(["\nFINAL RESULTS:", "-" * 40, ""])

    final = session.final_result
    lines.append("EXTRACTIONS:")
    for idx, extraction in enumerate(final.extractions, start=1):
        lines.append(f"{idx}. [{extraction.label}] {extraction.information_piece}")
        lines.append(f"   Reasoning: {extraction.reasoning}")
        lines.append(f"   Rank: {extraction.rank}")

    if final.verification is not None:
        verification = final.verification
        lines.extend([
            "",
            "VERIFICATION:",
            f"Comprehensive: {_bool(verification.is_comprehensive)}",
            f"Confidence Score: {verification.confidence_score:g}",
            f"Summary: {verification.summary}",
        ])
        if verification.missed_information:
            lines.extend(["", "MISSED INFORMATION:"])
            for idx, missed in enumerate(verification.missed_information, start=1):
                lines.append(f"{idx}. [{missed.importance.upper()}] {missed.information_piece}")
                lines.append(f"   Reasoning: {missed.reasoning}")

    lines.extend(["", "=" * 80])
    return "\n".join(lines)


def _format_csv(session: ProcessingSession, include_timestamps: bool) -> str:
    headers = ["Interaction_Index", "Type", "Prompt_Length", "Response_Summary"]
    if include_timestamps:
        headers.extend(["Timestamp", "Processing_Time_MS"])

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)

    for idx, interaction in enumerate(session.all_interactions, start=1):
        summary = json.dumps(interaction.response, ensure_ascii=False, separators=(",", ":"), default=str)
        row = [
            str(idx),
            interaction.kind,
            str(len(interaction.prompt)),
            summary[:_RESPONSE_SUMMARY_CHARS] + "...",
        ]
        if include_timestamps:
            row.extend([_iso(interaction.timestamp), str(interaction.processing_time or 0)])
        writer.writerow(row)

    return buffer.getvalue().rstrip("\n")
