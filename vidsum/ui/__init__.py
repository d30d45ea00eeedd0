"""User interface components for VidSum."""

from .console import AnalysisConsoleView

__all__ = ["AnalysisConsoleView"]
