"""Upload and download workflow."""

from .downloads import ArtifactDownloader
from .events import ErrorFeed
from .upload import UploadSession
from .workspace import AnalysisWorkspace

__all__ = ["AnalysisWorkspace", "ArtifactDownloader", "ErrorFeed", "UploadSession"]
