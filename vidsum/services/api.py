"""HTTP transport for the remote video analysis service."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from ..config import get_settings
from ..data.models import ArtifactFormat, ArtifactKind, CandidateFile, UploadOptions
from ..logging import get_logger
from .errors import MalformedResponseError

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class RequestOptions:
    """Per-request transport settings; ``None`` falls back to the client default."""

    include_credentials: Optional[bool] = None
    timeout: Optional[float] = None


class ApiEndpoints:
    def __init__(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    def upload(self) -> str:
        return f"{self.base_url}/upload"

    def download(self, kind: ArtifactKind | str, fmt: ArtifactFormat | str, filename: str) -> str:
        kind_value = ArtifactKind(kind).value
        format_value = ArtifactFormat(fmt).value
        return f"{self.base_url}/download/{kind_value}/{format_value}/{quote(filename, safe='')}"

    def highlights(self, filename: str) -> str:
        return f"{self.base_url}/highlights/{quote(filename, safe='')}"


class AnalysisApiClient:
    """Thin async wrapper around :class:`httpx.AsyncClient`.

    Cookies live in a jar owned by this object rather than the underlying
    client, so each request decides whether credentials are sent and stored.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        include_credentials: Optional[bool] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cookies: Optional[Dict[str, str]] = None,
    ) -> None:
        settings = get_settings()
        self.endpoints = ApiEndpoints(base_url or settings.api_base_url)
        self.include_credentials = (
            settings.include_credentials if include_credentials is None else include_credentials
        )
        self.cookies = httpx.Cookies(cookies)
        self._client = httpx.AsyncClient(
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "AnalysisApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _build_request(self, method: str, url: str, options: RequestOptions, **kwargs: Any) -> httpx.Request:
        if options.timeout is not None:
            kwargs["timeout"] = options.timeout
        return self._client.build_request(method, url, **kwargs)

    async def _send(
        self, request: httpx.Request, options: RequestOptions, *, stream: bool = False
    ) -> httpx.Response:
        include = self.include_credentials if options.include_credentials is None else options.include_credentials
        if include:
            self.cookies.set_cookie_header(request)
        LOGGER.debug("%s %s (credentials=%s)", request.method, request.url, include)
        try:
            response = await self._client.send(request, stream=stream)
        finally:
            self._client.cookies.clear()
        if include:
            self.cookies.extract_cookies(response)
        LOGGER.debug("%s %s -> %s", request.method, request.url, response.status_code)
        return response

    async def upload(
        self,
        file: CandidateFile,
        options: UploadOptions,
        request_options: Optional[RequestOptions] = None,
    ) -> Dict[str, Any]:
        """Submit ``file`` for analysis and return the decoded JSON payload.

        Raises :class:`httpx.HTTPStatusError` for non-2xx replies and
        :class:`MalformedResponseError` when a 2xx reply is not a JSON object.
        """

        request_options = request_options or RequestOptions()
        with file.path.open("rb") as stream:
            request = self._build_request(
                "POST",
                self.endpoints.upload(),
                request_options,
                data=options.as_form_fields(),
                files={"video": (file.name, stream, file.media_type)},
            )
            response = await self._send(request, request_options)
        response.raise_for_status()
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Invalid response format from server") from exc
        if not isinstance(payload, dict):
            raise MalformedResponseError("Invalid response format from server")
        return payload

    async def fetch_binary(self, url: str, request_options: Optional[RequestOptions] = None) -> httpx.Response:
        """GET ``url`` in binary mode and return the fully read response.

        Error bodies are buffered before the stream closes so they can be
        decoded afterwards; non-2xx replies raise :class:`httpx.HTTPStatusError`.
        """

        request_options = request_options or RequestOptions()
        request = self._build_request("GET", url, request_options)
        response = await self._send(request, request_options, stream=True)
        try:
            if response.is_success:
                await response.aread()
            else:
                try:
                    await response.aread()
                except (httpx.HTTPError, httpx.StreamError):
                    LOGGER.debug("Failed to buffer error body for %s", url, exc_info=True)
                response.raise_for_status()
        finally:
            await response.aclose()
        return response


__all__ = ["AnalysisApiClient", "ApiEndpoints", "RequestOptions"]
