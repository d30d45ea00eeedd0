"""Typer CLI entry point for VidSum."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

import typer

from .config import (
    EnvironmentSettingError,
    clear_environment_setting,
    list_environment_settings,
    update_environment_setting,
)
from .core.pipeline.workspace import AnalysisWorkspace
from .data.models import ArtifactFormat, ArtifactKind, DownloadOutcome, UploadOptions
from .data.storage import ArtifactStore
from .logging import configure_logging, get_logger
from .services.api import AnalysisApiClient
from .ui.console import AnalysisConsoleView

app = typer.Typer(help="VidSum video analysis client")
LOGGER = get_logger(__name__)


def _parse_download(value: str) -> Tuple[ArtifactKind, ArtifactFormat]:
    kind, sep, fmt = value.partition(":")
    if not sep:
        raise typer.BadParameter(f"Expected KIND:FORMAT, got {value!r}")
    try:
        return ArtifactKind(kind.strip().lower()), ArtifactFormat(fmt.strip().lower())
    except ValueError as exc:
        raise typer.BadParameter(
            f"Unknown artifact {value!r}; kinds: analysis/transcript, formats: txt/docx/pdf"
        ) from exc


def _build_workspace(
    base_url: Optional[str], output_dir: Optional[Path], credentials: Optional[bool] = None
) -> AnalysisWorkspace:
    client = AnalysisApiClient(base_url, include_credentials=credentials)
    store = ArtifactStore(output_dir) if output_dir is not None else None
    return AnalysisWorkspace(client, store=store)


def _attach_view(workspace: AnalysisWorkspace) -> AnalysisConsoleView:
    view = AnalysisConsoleView(echo=typer.echo)
    workspace.uploads.subscribe(view.show_state)
    workspace.errors.subscribe(view.show_error)
    return view


def _report_downloads(view: AnalysisConsoleView, outcomes: List[DownloadOutcome]) -> bool:
    for outcome in outcomes:
        if outcome.ok:
            typer.echo(view.render_download(outcome))
    return all(outcome.ok for outcome in outcomes)


async def _analyze(
    workspace: AnalysisWorkspace,
    view: AnalysisConsoleView,
    videos: List[Path],
    options: UploadOptions,
    downloads: List[Tuple[ArtifactKind, ArtifactFormat]],
    highlights: bool,
) -> bool:
    async with workspace:
        outcome = await workspace.analyze(videos, options)
        if outcome is None or not outcome.ok:
            return False
        view.show_record(outcome.record)

        jobs = [workspace.download(kind, fmt) for kind, fmt in downloads]
        if highlights:
            jobs.append(workspace.download_highlights())
        if not jobs:
            return True
        return _report_downloads(view, list(await asyncio.gather(*jobs)))


@app.command()
def analyze(
    videos: List[Path] = typer.Argument(..., help="Video file to analyze; extra files are ignored"),
    transcription: bool = typer.Option(True, "--transcription/--no-transcription", help="Request a transcript"),
    summary: bool = typer.Option(True, "--summary/--no-summary", help="Request a summary"),
    highlight: bool = typer.Option(False, "--highlight/--no-highlight", help="Request a highlight reel"),
    download: Optional[List[str]] = typer.Option(
        None, "--download", "-d", help="Artifact to fetch afterwards as KIND:FORMAT, e.g. analysis:pdf"
    ),
    highlights: bool = typer.Option(False, "--highlights", help="Fetch the highlight video afterwards"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for downloaded artifacts"),
    base_url: Optional[str] = typer.Option(None, help="Analysis service base URL"),
    credentials: bool = typer.Option(True, "--credentials/--no-credentials", help="Send and keep cookies"),
) -> None:
    """Upload a video for analysis and print the result."""

    configure_logging()
    requested = [_parse_download(value) for value in download or []]
    options = UploadOptions(transcription=transcription, summary=summary, highlight=highlight)
    workspace = _build_workspace(base_url, output_dir, credentials)
    view = _attach_view(workspace)
    if not asyncio.run(_analyze(workspace, view, videos, options, requested, highlights)):
        raise typer.Exit(code=1)


async def _fetch_one(workspace: AnalysisWorkspace, filename: str, kind, fmt) -> DownloadOutcome:
    async with workspace:
        if kind is None:
            return await workspace.downloads.download_highlight(filename)
        return await workspace.downloads.download_artifact(filename, kind, fmt)


@app.command("download")
def download_artifact(
    filename: str = typer.Argument(..., help="Filename reported by the analysis"),
    kind: ArtifactKind = typer.Argument(..., help="Artifact kind"),
    fmt: ArtifactFormat = typer.Argument(..., metavar="FORMAT", help="Document format"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for downloaded artifacts"),
    base_url: Optional[str] = typer.Option(None, help="Analysis service base URL"),
) -> None:
    """Download an analysis or transcript document."""

    configure_logging()
    workspace = _build_workspace(base_url, output_dir)
    view = _attach_view(workspace)
    outcome = asyncio.run(_fetch_one(workspace, filename, kind, fmt))
    if not _report_downloads(view, [outcome]):
        raise typer.Exit(code=1)


@app.command("highlights")
def download_highlights(
    filename: str = typer.Argument(..., help="Filename reported by the analysis"),
    output_dir: Optional[Path] = typer.Option(None, help="Directory for downloaded artifacts"),
    base_url: Optional[str] = typer.Option(None, help="Analysis service base URL"),
) -> None:
    """Download the highlight reel of an analyzed video."""

    configure_logging()
    workspace = _build_workspace(base_url, output_dir)
    view = _attach_view(workspace)
    outcome = asyncio.run(_fetch_one(workspace, filename, None, None))
    if not _report_downloads(view, [outcome]):
        raise typer.Exit(code=1)


@app.command("settings")
def show_settings() -> None:
    """List configuration values and their environment variables."""

    for entry in list_environment_settings():
        typer.echo(f"{entry.env_name}={entry.value}  (default: {entry.default})")


@app.command("set-setting")
def set_setting(field: str, value: str) -> None:
    """Persist an override in the .env file."""

    try:
        update_environment_setting(field, value)
    except EnvironmentSettingError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Updated {field}")


@app.command("unset-setting")
def unset_setting(field: str) -> None:
    """Remove an override from the .env file."""

    try:
        clear_environment_setting(field)
    except EnvironmentSettingError as exc:
        raise typer.BadParameter(str(exc)) from exc
    typer.echo(f"Cleared {field}")


if __name__ == "__main__":  # pragma: no cover
    app()
