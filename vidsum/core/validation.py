"""Local checks applied to a video before it is uploaded."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from ..config import get_settings
from ..data.models import CandidateFile
from ..logging import get_logger

LOGGER = get_logger(__name__)

ALLOWED_MEDIA_TYPES = frozenset(
    {
        "video/mp4",
        "video/avi",
        "video/x-msvideo",
        "video/quicktime",
        "video/x-matroska",
    }
)


class RejectionReason(str, enum.Enum):
    UNSUPPORTED_TYPE = "unsupported type"
    TOO_LARGE = "too large"


def _format_limit(max_bytes: int) -> str:
    megabytes = max_bytes / (1024 * 1024)
    if megabytes >= 1:
        return f"{megabytes:g}MB"
    return f"{max_bytes} bytes"


@dataclass(frozen=True)
class ValidationResult:
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reason is None


class FileValidator:
    """Pure predicate over a candidate file's metadata."""

    def __init__(self, max_bytes: Optional[int] = None) -> None:
        self.max_bytes = max_bytes if max_bytes is not None else get_settings().max_upload_bytes

    def describe(self, reason: RejectionReason) -> str:
        """Return the user-facing text for a rejection under this validator's limits."""

        if reason is RejectionReason.UNSUPPORTED_TYPE:
            return "Please upload a valid video file (MP4, AVI, MOV, or MKV)"
        return f"File size must be less than {_format_limit(self.max_bytes)}"

    def _reject(self, reason: RejectionReason) -> ValidationResult:
        return ValidationResult(reason, self.describe(reason))

    def validate(self, file: CandidateFile) -> ValidationResult:
        if file.media_type not in ALLOWED_MEDIA_TYPES:
            LOGGER.info("Rejected %s: unsupported media type %s", file.name, file.media_type)
            return self._reject(RejectionReason.UNSUPPORTED_TYPE)
        if file.size > self.max_bytes:
            LOGGER.info("Rejected %s: %d bytes exceeds %d", file.name, file.size, self.max_bytes)
            return self._reject(RejectionReason.TOO_LARGE)
        return ValidationResult()

    @staticmethod
    def first_candidate(files: Iterable[CandidateFile]) -> Optional[CandidateFile]:
        """Return the first file of a selection; the rest are ignored."""

        candidates = list(files)
        if len(candidates) > 1:
            LOGGER.debug("Ignoring %d additional file(s) in selection", len(candidates) - 1)
        return candidates[0] if candidates else None


__all__ = ["ALLOWED_MEDIA_TYPES", "FileValidator", "RejectionReason", "ValidationResult"]
