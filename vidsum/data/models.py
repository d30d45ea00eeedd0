"""Data models used by VidSum."""

from __future__ import annotations

import enum
import mimetypes
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

_EXTENSION_MEDIA_TYPES = {
    ".mp4": "video/mp4",
    ".avi": "video/avi",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",
}


def _bool_field(value: bool) -> str:
    return "true" if value else "false"


@dataclass(frozen=True)
class CandidateFile:
    path: Path
    name: str
    size: int
    media_type: str

    @classmethod
    def from_path(cls, path: Path | str) -> "CandidateFile":
        path = Path(path)
        media_type = _EXTENSION_MEDIA_TYPES.get(path.suffix.lower())
        if media_type is None:
            media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(path=path, name=path.name, size=path.stat().st_size, media_type=media_type)


@dataclass(frozen=True)
class UploadOptions:
    """Artifacts requested from the analysis service for one upload."""

    transcription: bool = True
    summary: bool = True
    highlight: bool = False

    def as_form_fields(self) -> Dict[str, str]:
        """Return the flags as the string-typed form fields the server expects."""

        return {
            "transcription": _bool_field(self.transcription),
            "summary": _bool_field(self.summary),
            "highlight": _bool_field(self.highlight),
        }


class SummarySections(BaseModel):
    model_config = ConfigDict(frozen=True)

    paragraph_summary: str = ""
    bullet_points: Tuple[str, ...] = ()
    key_points: Tuple[str, ...] = ()
    decisions: Tuple[str, ...] = ()
    action_items: Tuple[str, ...] = ()

    @field_validator("paragraph_summary", mode="before")
    @classmethod
    def _blank_paragraph(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("bullet_points", "key_points", "decisions", "action_items", mode="before")
    @classmethod
    def _empty_sections(cls, value: Any) -> Any:
        # The service sends null for sections it did not produce.
        return () if value is None else value


class CaptionEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    text: str

    @field_validator("timestamp", mode="before")
    @classmethod
    def _stringify_timestamp(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("text", mode="before")
    @classmethod
    def _blank_text(cls, value: Any) -> Any:
        return "" if value is None else value


class AnalysisRecord(BaseModel):
    """Normalized result of one successful upload."""

    model_config = ConfigDict(frozen=True)

    filename: str
    duration: float
    fps: float
    resolution: Optional[Tuple[int, int]] = None
    transcript: Optional[str] = None
    transcript_file: Optional[str] = None
    analysis_file: Optional[str] = None
    highlight_file: Optional[str] = None
    summaries: Optional[SummarySections] = None
    timestamps: Optional[Tuple[CaptionEntry, ...]] = None

    @classmethod
    def from_payload(cls, summary: Dict[str, Any]) -> "AnalysisRecord":
        return cls.model_validate(summary)

    @property
    def has_transcript(self) -> bool:
        return bool(self.transcript)

    # Without a transcript the video had no usable audio, so anything derived
    # from it is hidden even when the server returned it.
    @property
    def visible_summaries(self) -> Optional[SummarySections]:
        return self.summaries if self.has_transcript else None

    @property
    def visible_timestamps(self) -> Optional[Tuple[CaptionEntry, ...]]:
        return self.timestamps if self.has_transcript else None


class UploadStatus(str, enum.Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass(frozen=True)
class UploadState:
    status: UploadStatus = UploadStatus.IDLE
    message: Optional[str] = None
    record: Optional[AnalysisRecord] = None

    @classmethod
    def idle(cls) -> "UploadState":
        return cls()

    @classmethod
    def in_flight(cls) -> "UploadState":
        return cls(status=UploadStatus.IN_FLIGHT)

    @classmethod
    def failed(cls, message: str) -> "UploadState":
        return cls(status=UploadStatus.FAILED, message=message)

    @classmethod
    def succeeded(cls, record: AnalysisRecord) -> "UploadState":
        return cls(status=UploadStatus.SUCCEEDED, record=record)

    @property
    def is_in_flight(self) -> bool:
        return self.status is UploadStatus.IN_FLIGHT


class ArtifactKind(str, enum.Enum):
    ANALYSIS = "analysis"
    TRANSCRIPT = "transcript"


class ArtifactFormat(str, enum.Enum):
    TXT = "txt"
    DOCX = "docx"
    PDF = "pdf"


@dataclass(frozen=True)
class DownloadRequest:
    """One artifact download; ``kind`` and ``format`` are unset for highlights."""

    kind: Optional[ArtifactKind] = None
    format: Optional[ArtifactFormat] = None

    @classmethod
    def artifact(cls, kind: ArtifactKind | str, fmt: ArtifactFormat | str) -> "DownloadRequest":
        return cls(kind=ArtifactKind(kind), format=ArtifactFormat(fmt))

    @classmethod
    def highlights(cls) -> "DownloadRequest":
        return cls()

    @property
    def is_highlight(self) -> bool:
        return self.kind is None

    def default_filename(self, filename: str) -> str:
        if self.is_highlight:
            return f"{filename}_highlights.mp4"
        return f"{filename}_{self.kind.value}.{self.format.value}"

    def describe(self) -> str:
        if self.is_highlight:
            return "highlights video"
        return f"{self.kind.value} ({self.format.value})"


@dataclass(frozen=True)
class ArtifactBlob:
    data: bytes
    content_type: Optional[str]
    filename: str


@dataclass(frozen=True)
class SavedArtifact:
    path: Path
    filename: str
    content_type: Optional[str]
    size: int


class Operation(str, enum.Enum):
    UPLOAD = "upload"
    ARTIFACT = "artifact"
    HIGHLIGHT = "highlight"


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    MALFORMED_RESPONSE = "malformed_response"
    SERVER = "server"
    UNDECODABLE_SERVER = "undecodable_server"
    NO_RESPONSE = "no_response"
    REQUEST_SETUP = "request_setup"
    BUSY = "busy"


@dataclass(frozen=True)
class ErrorEvent:
    message: str
    operation: Operation
    kind: ErrorKind
    request: Optional[DownloadRequest] = None
    created_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class UploadOutcome:
    record: Optional[AnalysisRecord] = None
    error: Optional[ErrorEvent] = None

    @property
    def ok(self) -> bool:
        return self.record is not None and self.error is None


@dataclass(frozen=True)
class DownloadOutcome:
    request: Optional[DownloadRequest]
    artifact: Optional[SavedArtifact] = None
    error: Optional[ErrorEvent] = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None and self.error is None


__all__ = [
    "AnalysisRecord",
    "ArtifactBlob",
    "ArtifactFormat",
    "ArtifactKind",
    "CandidateFile",
    "CaptionEntry",
    "DownloadOutcome",
    "DownloadRequest",
    "ErrorEvent",
    "ErrorKind",
    "Operation",
    "SavedArtifact",
    "SummarySections",
    "UploadOptions",
    "UploadOutcome",
    "UploadState",
    "UploadStatus",
]
