"""Shared classification of failures raised by network operations."""

from __future__ import annotations

import enum
import json
from typing import Any, Optional

import httpx

from ..data.models import DownloadRequest, ErrorEvent, ErrorKind, Operation
from ..logging import get_logger

LOGGER = get_logger(__name__)

GENERIC_MESSAGES = {
    Operation.UPLOAD: "Error uploading video. Please try again.",
    Operation.ARTIFACT: "Error downloading file. Please try again.",
    Operation.HIGHLIGHT: "Error downloading highlights. Please try again.",
}
NO_RESPONSE_MESSAGE = "No response from server. Please check if the server is running."

# Failures raised before anything was put on the wire.
_REQUEST_SETUP_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError)


class ResponseMode(str, enum.Enum):
    """How the caller asked for the response body."""

    JSON = "json"
    BINARY = "binary"


class MalformedResponseError(ValueError):
    """Raised when a successful response does not carry a usable result."""


class DownloadError(RuntimeError):
    """Raised when an artifact could not be fetched; carries the classified event."""

    def __init__(self, event: ErrorEvent) -> None:
        super().__init__(event.message)
        self.event = event


def _message_from_payload(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict):
        return None
    message = payload.get("error")
    return str(message) if message else None


async def read_error_message(response: httpx.Response, mode: ResponseMode) -> Optional[str]:
    """Extract the server's ``error`` field from a failed response.

    Binary-mode responses hand back raw bytes even when the server reported
    the failure as JSON, so the body is decoded as UTF-8 and parsed by hand.
    Returns ``None`` whenever no message can be recovered.
    """

    if mode is ResponseMode.JSON:
        try:
            return _message_from_payload(response.json())
        except (ValueError, httpx.ResponseNotRead):
            return None

    try:
        body = await response.aread()
    except (httpx.HTTPError, httpx.StreamError):
        LOGGER.debug("Could not read error body (status %s)", response.status_code, exc_info=True)
        return None
    try:
        text = body.decode("utf-8")
        payload = json.loads(text)
    except ValueError:
        LOGGER.debug("Error body is not JSON text (%d bytes)", len(body))
        return None
    return _message_from_payload(payload)


async def classify_failure(
    exc: BaseException,
    operation: Operation,
    mode: ResponseMode = ResponseMode.JSON,
    request: Optional[DownloadRequest] = None,
) -> ErrorEvent:
    """Map any failure of a network operation onto a user-facing error event."""

    generic = GENERIC_MESSAGES[operation]
    if isinstance(exc, MalformedResponseError):
        kind, message = ErrorKind.MALFORMED_RESPONSE, str(exc) or generic
    elif isinstance(exc, httpx.HTTPStatusError):
        server_message = await read_error_message(exc.response, mode)
        if server_message:
            kind, message = ErrorKind.SERVER, server_message
        else:
            kind, message = ErrorKind.UNDECODABLE_SERVER, generic
    elif isinstance(exc, _REQUEST_SETUP_ERRORS):
        kind, message = ErrorKind.REQUEST_SETUP, str(exc) or generic
    elif isinstance(exc, httpx.TransportError):
        kind, message = ErrorKind.NO_RESPONSE, NO_RESPONSE_MESSAGE
    else:
        kind, message = ErrorKind.REQUEST_SETUP, str(exc) or generic

    LOGGER.warning("%s failed (%s): %s", operation.value, kind.value, message)
    return ErrorEvent(message=message, operation=operation, kind=kind, request=request)


__all__ = [
    "DownloadError",
    "GENERIC_MESSAGES",
    "MalformedResponseError",
    "NO_RESPONSE_MESSAGE",
    "ResponseMode",
    "classify_failure",
    "read_error_message",
]
