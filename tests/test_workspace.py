import asyncio

import httpx

from vidsum.core.pipeline.workspace import NO_RECORD_MESSAGE, AnalysisWorkspace
from vidsum.data.models import ErrorKind, UploadOptions, UploadStatus
from vidsum.data.storage import ArtifactStore
from vidsum.services.api import AnalysisApiClient

FIRST = {
    "summary": {
        "filename": "first",
        "duration": 10,
        "fps": 30,
        "resolution": [640, 480],
        "transcript": "first transcript",
        "transcript_file": "first_transcript.txt",
        "summaries": {"paragraph_summary": "first", "key_points": ["a"]},
        "timestamps": [{"timestamp": "00:00:01", "text": "first"}],
    }
}
SECOND = {"summary": {"filename": "second", "duration": 20, "fps": 24}}


class _Server:
    """Scripted responses keyed by request path prefix."""

    def __init__(self) -> None:
        self.uploads = [FIRST, SECOND]
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request.url.path)
        if request.url.path == "/upload":
            return httpx.Response(200, json=self.uploads.pop(0))
        if request.url.path.startswith("/highlights/"):
            return httpx.Response(404, content=b'{"error": "Highlights not found"}')
        return httpx.Response(200, content=b"document")


def _workspace(server, tmp_path) -> AnalysisWorkspace:
    client = AnalysisApiClient("http://testserver", transport=httpx.MockTransport(server))
    return AnalysisWorkspace(client, store=ArtifactStore(tmp_path / "downloads"))


def _video(tmp_path):
    path = tmp_path / "meeting.mp4"
    path.write_bytes(b"video")
    return path


def test_second_upload_replaces_first_record(tmp_path):
    server = _Server()
    video = _video(tmp_path)

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            await workspace.analyze([video])
            first = workspace.record
            await workspace.analyze([video], UploadOptions(summary=False))
            return first, workspace.record

    first, second = asyncio.run(scenario())

    assert first.filename == "first"
    assert second.filename == "second"
    assert second.transcript is None
    assert second.transcript_file is None
    assert second.summaries is None
    assert second.timestamps is None
    assert second.resolution is None


def test_download_uses_record_filename(tmp_path):
    server = _Server()
    video = _video(tmp_path)

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            await workspace.analyze([video])
            return await workspace.download("transcript", "docx")

    outcome = asyncio.run(scenario())

    assert outcome.ok
    assert server.requests == ["/upload", "/download/transcript/docx/first"]
    assert outcome.artifact.filename == "first_transcript.docx"


def test_download_failure_leaves_upload_state_alone(tmp_path):
    server = _Server()
    video = _video(tmp_path)

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            await workspace.analyze([video])
            outcome = await workspace.download_highlights()
            return workspace, outcome

    workspace, outcome = asyncio.run(scenario())

    assert outcome.error.message == "Highlights not found"
    assert workspace.current_error == outcome.error
    assert workspace.upload_state.status is UploadStatus.SUCCEEDED
    assert workspace.record.filename == "first"

    workspace.dismiss_error()
    assert workspace.current_error is None


def test_successful_upload_clears_previous_error(tmp_path):
    server = _Server()
    video = _video(tmp_path)

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            await workspace.analyze([video])
            await workspace.download_highlights()
            assert workspace.current_error is not None
            await workspace.analyze([video])
            return workspace.current_error

    assert asyncio.run(scenario()) is None


def test_download_without_record(tmp_path):
    server = _Server()

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            return await workspace.download("analysis", "pdf")

    outcome = asyncio.run(scenario())

    assert outcome.error.message == NO_RECORD_MESSAGE
    assert outcome.error.kind is ErrorKind.REQUEST_SETUP
    assert server.requests == []


def test_missing_video_file_is_reported(tmp_path):
    server = _Server()

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            return await workspace.analyze([tmp_path / "missing.mp4"])

    outcome = asyncio.run(scenario())

    assert outcome.error.kind is ErrorKind.REQUEST_SETUP
    assert server.requests == []


def test_only_first_path_is_read(tmp_path):
    server = _Server()
    video = _video(tmp_path)

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            outcome = await workspace.analyze([video, tmp_path / "gone.mp4"])
            return workspace, outcome

    workspace, outcome = asyncio.run(scenario())

    assert outcome.ok
    assert server.requests == ["/upload"]
    assert workspace.record.filename == "first"
    assert workspace.current_error is None


def test_empty_selection_does_nothing(tmp_path):
    server = _Server()

    async def scenario():
        async with _workspace(server, tmp_path) as workspace:
            return await workspace.analyze([])

    assert asyncio.run(scenario()) is None
    assert server.requests == []
