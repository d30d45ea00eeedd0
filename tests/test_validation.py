from pathlib import Path

import pytest

from vidsum.core.validation import FileValidator, RejectionReason
from vidsum.data.models import CandidateFile

LIMIT = 500 * 1024 * 1024


def _file(media_type: str = "video/mp4", size: int = 1024, name: str = "clip.mp4") -> CandidateFile:
    return CandidateFile(path=Path(name), name=name, size=size, media_type=media_type)


@pytest.mark.parametrize(
    "media_type",
    ["video/mp4", "video/avi", "video/x-msvideo", "video/quicktime", "video/x-matroska"],
)
def test_allowed_types_pass(media_type):
    result = FileValidator(max_bytes=LIMIT).validate(_file(media_type=media_type))

    assert result.ok
    assert result.reason is None


@pytest.mark.parametrize("media_type", ["video/webm", "image/png", "application/octet-stream", ""])
def test_disallowed_types_are_rejected(media_type):
    result = FileValidator(max_bytes=LIMIT).validate(_file(media_type=media_type))

    assert not result.ok
    assert result.message == "Please upload a valid video file (MP4, AVI, MOV, or MKV)"
    assert result.reason is RejectionReason.UNSUPPORTED_TYPE
    assert result.reason.value == "unsupported type"


def test_size_limit_is_inclusive():
    validator = FileValidator(max_bytes=LIMIT)

    assert validator.validate(_file(size=LIMIT)).ok

    rejected = validator.validate(_file(size=LIMIT + 1))
    assert rejected.reason is RejectionReason.TOO_LARGE
    assert rejected.message == "File size must be less than 500MB"


@pytest.mark.parametrize(
    "limit, expected",
    [(100 * 1024 * 1024, "100MB"), (int(1.5 * 1024 * 1024), "1.5MB"), (1024, "1024 bytes")],
)
def test_size_message_follows_configured_limit(limit, expected):
    rejected = FileValidator(max_bytes=limit).validate(_file(size=limit + 1))

    assert rejected.message == f"File size must be less than {expected}"


def test_type_rule_wins_over_size_rule():
    result = FileValidator(max_bytes=LIMIT).validate(_file(media_type="text/plain", size=LIMIT + 1))

    assert result.reason is RejectionReason.UNSUPPORTED_TYPE


def test_default_limit_is_500_mib():
    assert FileValidator().max_bytes == LIMIT


def test_first_candidate_ignores_extra_files():
    first = _file(name="a.mp4")
    second = _file(name="b.mp4")

    assert FileValidator.first_candidate([first, second]) is first
    assert FileValidator.first_candidate([]) is None


def test_candidate_from_path_detects_media_type(tmp_path):
    for name, expected in [
        ("movie.MOV", "video/quicktime"),
        ("movie.mkv", "video/x-matroska"),
        ("movie.avi", "video/avi"),
        ("notes.txt", "text/plain"),
    ]:
        path = tmp_path / name
        path.write_bytes(b"12345")
        candidate = CandidateFile.from_path(path)
        assert candidate.media_type == expected
        assert candidate.size == 5
        assert candidate.name == name
