"""Tests for CLI helpers."""

from __future__ import annotations

import httpx
import pytest
import typer
from typer.testing import CliRunner

from vidsum import cli
from vidsum.core.pipeline.workspace import AnalysisWorkspace
from vidsum.data.models import ArtifactFormat, ArtifactKind
from vidsum.data.storage import ArtifactStore
from vidsum.services.api import AnalysisApiClient

runner = CliRunner()

PAYLOAD = {
    "summary": {
        "filename": "meeting",
        "duration": 30,
        "fps": 25,
        "resolution": [1280, 720],
        "transcript": "hello there",
        "summaries": {"paragraph_summary": "A greeting.", "key_points": ["hello"]},
    }
}


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/upload":
        return httpx.Response(200, json=PAYLOAD)
    if request.url.path.startswith("/highlights/"):
        return httpx.Response(404, content=b'{"error": "Highlights were not requested"}')
    return httpx.Response(
        200,
        content=b"analysis text",
        headers={"content-disposition": 'attachment; filename="meeting_analysis.txt"'},
    )


@pytest.fixture
def fake_workspace(monkeypatch, tmp_path):
    captured: dict = {}

    def fake_build(base_url, output_dir, credentials=None):
        captured["credentials"] = credentials
        client = AnalysisApiClient("http://testserver", transport=httpx.MockTransport(_handler))
        return AnalysisWorkspace(client, store=ArtifactStore(tmp_path / "out"))

    monkeypatch.setattr(cli, "_build_workspace", fake_build)
    monkeypatch.setattr(cli, "configure_logging", lambda: None)
    return captured


def test_parse_download_option() -> None:
    assert cli._parse_download("analysis:pdf") == (ArtifactKind.ANALYSIS, ArtifactFormat.PDF)
    assert cli._parse_download(" Transcript : DOCX ") == (ArtifactKind.TRANSCRIPT, ArtifactFormat.DOCX)


@pytest.mark.parametrize("value", ["analysis", "video:pdf", "analysis:mp3"])
def test_parse_download_rejects_invalid(value) -> None:
    with pytest.raises(typer.BadParameter):
        cli._parse_download(value)


def test_analyze_prints_record_and_downloads(fake_workspace, tmp_path) -> None:
    video = tmp_path / "meeting.mp4"
    video.write_bytes(b"video")

    result = runner.invoke(cli.app, ["analyze", str(video), "--download", "analysis:txt", "--no-credentials"])

    assert result.exit_code == 0, result.output
    assert "Duration: 30 seconds" in result.output
    assert "A greeting." in result.output
    assert "Saved meeting_analysis.txt" in result.output
    assert (tmp_path / "out" / "meeting_analysis.txt").read_bytes() == b"analysis text"
    assert fake_workspace["credentials"] is False


def test_analyze_rejects_unsupported_file(fake_workspace, tmp_path) -> None:
    document = tmp_path / "notes.txt"
    document.write_text("not a video")

    result = runner.invoke(cli.app, ["analyze", str(document)])

    assert result.exit_code == 1
    assert "Please upload a valid video file" in result.output


def test_highlights_failure_exit_code(fake_workspace) -> None:
    result = runner.invoke(cli.app, ["highlights", "meeting"])

    assert result.exit_code == 1
    assert "Error: Highlights were not requested" in result.output


def test_download_command(fake_workspace, tmp_path) -> None:
    result = runner.invoke(cli.app, ["download", "meeting", "analysis", "txt"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "out" / "meeting_analysis.txt").exists()
