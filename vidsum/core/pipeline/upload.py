"""Upload session driving one video submission at a time."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional

from pydantic import ValidationError

from ...data.models import (
    AnalysisRecord,
    CandidateFile,
    ErrorEvent,
    ErrorKind,
    Operation,
    UploadOptions,
    UploadOutcome,
    UploadState,
)
from ...logging import get_logger
from ...services.api import AnalysisApiClient, RequestOptions
from ...services.errors import GENERIC_MESSAGES, MalformedResponseError, classify_failure
from ..validation import FileValidator
from .events import ErrorFeed

LOGGER = get_logger(__name__)

BUSY_MESSAGE = "An upload is already in progress."

StateListener = Callable[[UploadState], None]


def parse_upload_payload(payload: Dict[str, Any]) -> AnalysisRecord:
    """Turn the server's upload reply into an :class:`AnalysisRecord`.

    A 2xx status is not enough: the reply must carry a ``summary`` object
    with truthy ``duration`` and ``fps``.
    """

    summary = payload.get("summary")
    if not isinstance(summary, dict):
        raise MalformedResponseError("Invalid response format from server")
    if not summary.get("duration") or not summary.get("fps"):
        raise MalformedResponseError("Invalid video metadata in response")
    try:
        return AnalysisRecord.from_payload(summary)
    except ValidationError as exc:
        raise MalformedResponseError("Invalid response format from server") from exc


class UploadSession:
    """Owns the Upload State machine.

    A submission made while another is in flight is rejected with a ``busy``
    error and leaves the running upload untouched.
    """

    def __init__(
        self,
        client: AnalysisApiClient,
        errors: Optional[ErrorFeed] = None,
        validator: Optional[FileValidator] = None,
        request_options: Optional[RequestOptions] = None,
    ) -> None:
        self.client = client
        self.errors = errors or ErrorFeed()
        self.validator = validator or FileValidator()
        self.request_options = request_options
        self._state = UploadState.idle()
        self._latest_record: Optional[AnalysisRecord] = None
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> UploadState:
        return self._state

    @property
    def latest_record(self) -> Optional[AnalysisRecord]:
        return self._latest_record

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set_state(self, state: UploadState) -> None:
        LOGGER.debug("Upload state %s -> %s", self._state.status.value, state.status.value)
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:  # pragma: no cover - listeners should not break the workflow
                LOGGER.exception("Upload state listener raised an exception")

    def _fail(self, event: ErrorEvent) -> UploadOutcome:
        self.errors.publish(event)
        return UploadOutcome(error=event)

    async def handle_selection(
        self, files: Iterable[CandidateFile], options: UploadOptions
    ) -> Optional[UploadOutcome]:
        """Validate the first selected file and submit it; ``None`` for an empty selection."""

        file = self.validator.first_candidate(files)
        if file is None:
            return None
        result = self.validator.validate(file)
        if not result.ok:
            return self._fail(
                ErrorEvent(
                    message=result.message,
                    operation=Operation.UPLOAD,
                    kind=ErrorKind.VALIDATION,
                )
            )
        return await self.submit(file, options)

    async def submit(self, file: CandidateFile, options: UploadOptions) -> UploadOutcome:
        if self._state.is_in_flight:
            LOGGER.warning("Rejecting upload of %s: another upload is in flight", file.name)
            return self._fail(ErrorEvent(message=BUSY_MESSAGE, operation=Operation.UPLOAD, kind=ErrorKind.BUSY))

        self._set_state(UploadState.in_flight())
        final_state = UploadState.failed(GENERIC_MESSAGES[Operation.UPLOAD])
        try:
            LOGGER.info("Uploading %s (%d bytes, options=%s)", file.name, file.size, options.as_form_fields())
            payload = await self.client.upload(file, options, self.request_options)
            record = parse_upload_payload(payload)
        except Exception as exc:
            event = await classify_failure(exc, Operation.UPLOAD)
            final_state = UploadState.failed(event.message)
            return self._fail(event)
        else:
            LOGGER.info("Analysis ready for %s (%.1fs @ %s fps)", record.filename, record.duration, record.fps)
            self._latest_record = record
            final_state = UploadState.succeeded(record)
            return UploadOutcome(record=record)
        finally:
            self._set_state(final_state)


__all__ = ["BUSY_MESSAGE", "UploadSession", "parse_upload_payload"]
