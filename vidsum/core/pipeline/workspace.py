"""Workspace composing the upload session and artifact downloads."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional

from ...data.models import (
    AnalysisRecord,
    ArtifactFormat,
    ArtifactKind,
    CandidateFile,
    DownloadOutcome,
    DownloadRequest,
    ErrorEvent,
    ErrorKind,
    Operation,
    UploadOptions,
    UploadOutcome,
    UploadState,
)
from ...data.storage import ArtifactStore
from ...logging import get_logger
from ...services.api import AnalysisApiClient, RequestOptions
from ..validation import FileValidator
from .downloads import ArtifactDownloader
from .events import ErrorFeed
from .upload import UploadSession

LOGGER = get_logger(__name__)

NO_RECORD_MESSAGE = "No analysis is available yet. Upload a video first."


class AnalysisWorkspace:
    """High-level coordinator used by the user interfaces.

    Upload state and download state are kept in separate objects; the only
    thing they share is the error feed and the read-only latest record.
    """

    def __init__(
        self,
        client: Optional[AnalysisApiClient] = None,
        *,
        store: Optional[ArtifactStore] = None,
        validator: Optional[FileValidator] = None,
        errors: Optional[ErrorFeed] = None,
        request_options: Optional[RequestOptions] = None,
    ) -> None:
        self.client = client or AnalysisApiClient()
        self.errors = errors or ErrorFeed()
        self.uploads = UploadSession(
            self.client,
            errors=self.errors,
            validator=validator,
            request_options=request_options,
        )
        self.downloads = ArtifactDownloader(
            self.client,
            store=store,
            errors=self.errors,
            request_options=request_options,
        )

    async def __aenter__(self) -> "AnalysisWorkspace":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.client.aclose()

    @property
    def record(self) -> Optional[AnalysisRecord]:
        return self.uploads.latest_record

    @property
    def upload_state(self) -> UploadState:
        return self.uploads.state

    @property
    def current_error(self) -> Optional[ErrorEvent]:
        return self.errors.current

    def dismiss_error(self) -> None:
        self.errors.dismiss()

    async def analyze(
        self, paths: Iterable[Path | str], options: Optional[UploadOptions] = None
    ) -> Optional[UploadOutcome]:
        options = options or UploadOptions()
        selection = list(paths)
        if not selection:
            return None
        if len(selection) > 1:
            LOGGER.debug("Ignoring %d additional path(s) in selection", len(selection) - 1)
        # Only the first path is inspected; the others may not even exist.
        try:
            candidate = CandidateFile.from_path(selection[0])
        except OSError as exc:
            event = ErrorEvent(message=str(exc), operation=Operation.UPLOAD, kind=ErrorKind.REQUEST_SETUP)
            self.errors.publish(event)
            return UploadOutcome(error=event)
        outcome = await self.uploads.handle_selection([candidate], options)
        if outcome is not None and outcome.ok:
            # Errors raised against the previous record no longer apply.
            self.errors.dismiss()
        return outcome

    def _missing_record(self, request: DownloadRequest) -> DownloadOutcome:
        operation = Operation.HIGHLIGHT if request.is_highlight else Operation.ARTIFACT
        event = ErrorEvent(
            message=NO_RECORD_MESSAGE,
            operation=operation,
            kind=ErrorKind.REQUEST_SETUP,
            request=request,
        )
        self.errors.publish(event)
        return DownloadOutcome(request=request, error=event)

    async def download(self, kind: ArtifactKind | str, fmt: ArtifactFormat | str) -> DownloadOutcome:
        record = self.record
        if record is None:
            return self._missing_record(DownloadRequest.artifact(kind, fmt))
        return await self.downloads.download_artifact(record.filename, kind, fmt)

    async def download_highlights(self) -> DownloadOutcome:
        record = self.record
        if record is None:
            return self._missing_record(DownloadRequest.highlights())
        return await self.downloads.download_highlight(record.filename)


__all__ = ["AnalysisWorkspace", "NO_RECORD_MESSAGE"]
