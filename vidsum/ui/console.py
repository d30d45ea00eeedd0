"""Plain-text rendering of analysis results for the terminal."""

from __future__ import annotations

from typing import Callable, List, Optional

from ..data.models import (
    AnalysisRecord,
    DownloadOutcome,
    ErrorEvent,
    UploadState,
    UploadStatus,
)

NO_TRANSCRIPT_WARNING = (
    "No transcript was generated for this video. This could be due to:\n"
    "  - The video has no audio track\n"
    "  - The audio quality is too low\n"
    "  - The video format is not supported for transcription"
)

DOWNLOAD_CHOICES = (
    ("analysis", "txt", "Analysis (TXT)"),
    ("analysis", "docx", "Analysis (DOCX)"),
    ("analysis", "pdf", "Analysis (PDF)"),
    ("transcript", "txt", "Transcript (TXT)"),
    ("transcript", "docx", "Transcript (DOCX)"),
)


def _section(title: str, lines: List[str]) -> List[str]:
    return [title, "-" * len(title), *lines, ""]


def _bullets(items) -> List[str]:
    return [f"  - {item}" for item in items] or ["  (none)"]


class AnalysisConsoleView:
    """Formats records, progress and errors; printing is delegated to ``echo``."""

    def __init__(self, echo: Callable[[str], None] = print) -> None:
        self._echo = echo

    def render_record(self, record: AnalysisRecord) -> str:
        lines: List[str] = []
        info = [f"Duration: {round(record.duration)} seconds"]
        if record.resolution is not None:
            width, height = record.resolution
            info.append(f"Resolution: {width}x{height}")
        info.append(f"FPS: {record.fps}")
        lines += _section("Video Information", info)

        if not record.has_transcript:
            lines += [NO_TRANSCRIPT_WARNING, ""]
        else:
            choices = [
                f"  {label}: vidsum download {record.filename} {kind} {fmt}"
                for kind, fmt, label in DOWNLOAD_CHOICES
            ]
            choices.append(f"  Highlights Video: vidsum highlights {record.filename}")
            lines += _section("Download Options", choices)

        summaries = record.visible_summaries
        if summaries is not None:
            lines += _section("Summary", [summaries.paragraph_summary])
            lines += _section("Key Points", _bullets(summaries.key_points))
            lines += _section("Decisions", _bullets(summaries.decisions))
            lines += _section("Action Items", _bullets(summaries.action_items))

        timestamps = record.visible_timestamps
        if timestamps:
            lines += _section(
                "Transcript with Timestamps",
                [f"  [{entry.timestamp}] {entry.text}" for entry in timestamps],
            )
        return "\n".join(lines).rstrip() + "\n"

    def render_state(self, state: UploadState) -> Optional[str]:
        if state.status is UploadStatus.IN_FLIGHT:
            return "Uploading and analyzing video..."
        if state.status is UploadStatus.SUCCEEDED and state.record is not None:
            return f"Analysis complete for {state.record.filename}"
        return None

    def render_error(self, event: Optional[ErrorEvent]) -> Optional[str]:
        if event is None:
            return None
        return f"Error: {event.message}"

    def render_download(self, outcome: DownloadOutcome) -> str:
        if outcome.ok:
            return f"Saved {outcome.artifact.filename} to {outcome.artifact.path}"
        return self.render_error(outcome.error) or "Error: download failed"

    # Listener hooks for UploadSession.subscribe and ErrorFeed.subscribe.
    def show_state(self, state: UploadState) -> None:
        text = self.render_state(state)
        if text:
            self._echo(text)

    def show_error(self, event: Optional[ErrorEvent]) -> None:
        text = self.render_error(event)
        if text:
            self._echo(text)

    def show_record(self, record: AnalysisRecord) -> None:
        self._echo(self.render_record(record))


__all__ = ["AnalysisConsoleView", "DOWNLOAD_CHOICES", "NO_TRANSCRIPT_WARNING"]
