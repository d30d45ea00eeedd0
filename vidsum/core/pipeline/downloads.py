"""Artifact retrieval for a completed analysis."""

from __future__ import annotations

import asyncio
import re
from collections import Counter
from typing import Optional, Set

import httpx

from ...data.models import (
    ArtifactBlob,
    ArtifactFormat,
    ArtifactKind,
    DownloadOutcome,
    DownloadRequest,
    Operation,
)
from ...data.storage import ArtifactStore
from ...logging import get_logger
from ...services.api import AnalysisApiClient, RequestOptions
from ...services.errors import DownloadError, ResponseMode, classify_failure
from .events import ErrorFeed

LOGGER = get_logger(__name__)

_DISPOSITION_FILENAME = re.compile(r'filename="(.+)"')


def resolve_filename(response: httpx.Response, default: str) -> str:
    """Prefer the quoted filename of ``Content-Disposition`` over ``default``."""

    disposition = response.headers.get("content-disposition")
    if disposition:
        match = _DISPOSITION_FILENAME.search(disposition)
        if match:
            return match.group(1)
    return default


class ArtifactDownloader:
    """Fetches artifacts and highlight reels, independent of any upload state."""

    def __init__(
        self,
        client: AnalysisApiClient,
        store: Optional[ArtifactStore] = None,
        errors: Optional[ErrorFeed] = None,
        request_options: Optional[RequestOptions] = None,
    ) -> None:
        self.client = client
        self.store = store or ArtifactStore()
        self.errors = errors or ErrorFeed()
        self.request_options = request_options
        self._active: Counter[DownloadRequest] = Counter()

    @property
    def active_requests(self) -> Set[DownloadRequest]:
        return {request for request, count in self._active.items() if count > 0}

    def is_active(self, request: DownloadRequest) -> bool:
        return self._active[request] > 0

    async def _fetch(self, url: str, filename: str, request: DownloadRequest) -> ArtifactBlob:
        operation = Operation.HIGHLIGHT if request.is_highlight else Operation.ARTIFACT
        LOGGER.info("Downloading %s for %s", request.describe(), filename)
        try:
            response = await self.client.fetch_binary(url, self.request_options)
        except Exception as exc:
            event = await classify_failure(exc, operation, ResponseMode.BINARY, request)
            raise DownloadError(event) from exc
        return ArtifactBlob(
            data=response.content,
            content_type=response.headers.get("content-type"),
            filename=resolve_filename(response, request.default_filename(filename)),
        )

    async def fetch_artifact(
        self, filename: str, kind: ArtifactKind | str, fmt: ArtifactFormat | str
    ) -> ArtifactBlob:
        request = DownloadRequest.artifact(kind, fmt)
        url = self.client.endpoints.download(request.kind, request.format, filename)
        return await self._fetch(url, filename, request)

    async def fetch_highlight(self, filename: str) -> ArtifactBlob:
        request = DownloadRequest.highlights()
        return await self._fetch(self.client.endpoints.highlights(filename), filename, request)

    async def _download(self, filename: str, request: DownloadRequest) -> DownloadOutcome:
        self._active[request] += 1
        try:
            if request.is_highlight:
                blob = await self.fetch_highlight(filename)
            else:
                blob = await self.fetch_artifact(filename, request.kind, request.format)
            saved = await asyncio.to_thread(self.store.save, blob)
        except DownloadError as exc:
            self.errors.publish(exc.event)
            return DownloadOutcome(request=request, error=exc.event)
        except Exception as exc:
            operation = Operation.HIGHLIGHT if request.is_highlight else Operation.ARTIFACT
            event = await classify_failure(exc, operation, ResponseMode.BINARY, request)
            self.errors.publish(event)
            return DownloadOutcome(request=request, error=event)
        finally:
            self._active[request] -= 1
            if self._active[request] <= 0:
                del self._active[request]
        LOGGER.info("Successfully downloaded %s", saved.filename)
        return DownloadOutcome(request=request, artifact=saved)

    async def download_artifact(
        self, filename: str, kind: ArtifactKind | str, fmt: ArtifactFormat | str
    ) -> DownloadOutcome:
        try:
            request = DownloadRequest.artifact(kind, fmt)
        except ValueError as exc:
            event = await classify_failure(exc, Operation.ARTIFACT, ResponseMode.BINARY)
            self.errors.publish(event)
            return DownloadOutcome(request=None, error=event)
        return await self._download(filename, request)

    async def download_highlight(self, filename: str) -> DownloadOutcome:
        return await self._download(filename, DownloadRequest.highlights())


__all__ = ["ArtifactDownloader", "resolve_filename"]
