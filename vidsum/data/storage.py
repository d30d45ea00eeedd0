"""Client-side persistence for downloaded artifacts."""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path
from typing import Iterator, Optional

from ..config import get_settings
from ..logging import get_logger
from .models import ArtifactBlob, SavedArtifact

LOGGER = get_logger(__name__)


class ArtifactStore:
    """Save artifact payloads under a download directory."""

    def __init__(self, directory: Optional[Path] = None) -> None:
        self.directory = Path(directory or get_settings().download_dir)

    @contextlib.contextmanager
    def _staging_file(self) -> Iterator[Path]:
        handle, name = tempfile.mkstemp(dir=self.directory, prefix=".vidsum-", suffix=".part")
        os.close(handle)
        staging = Path(name)
        try:
            yield staging
        finally:
            with contextlib.suppress(FileNotFoundError):
                staging.unlink()

    def _unique_path(self, filename: str) -> Path:
        candidate = self.directory / filename
        stem, suffix = candidate.stem, candidate.suffix
        counter = 1
        while candidate.exists():
            candidate = self.directory / f"{stem} ({counter}){suffix}"
            counter += 1
        return candidate

    def save(self, blob: ArtifactBlob) -> SavedArtifact:
        # Server-suggested names may carry path components; keep the basename only.
        filename = Path(blob.filename.replace("\\", "/")).name or "download"
        self.directory.mkdir(parents=True, exist_ok=True)
        with self._staging_file() as staging:
            staging.write_bytes(blob.data)
            target = self._unique_path(filename)
            os.replace(staging, target)
        LOGGER.info("Saved %s (%d bytes)", target, len(blob.data))
        return SavedArtifact(
            path=target,
            filename=target.name,
            content_type=blob.content_type,
            size=len(blob.data),
        )


__all__ = ["ArtifactStore"]
