"""Diagnostic capture (screenshots) for scenarios."""

from regress.diagnostics.capture import (
    DiagnosticCapture,
    create_diagnostic_capture,
    format_timestamp,
    sanitize_filename,
)
from regress.diagnostics.types import (
    ArtifactKind,
    ComparisonArtifacts,
    DiagnosticArtifact,
    ScreenshotStats,
)

__all__ = [
    "ArtifactKind",
    "ComparisonArtifacts",
    "DiagnosticArtifact",
    "DiagnosticCapture",
    "ScreenshotStats",
    "create_diagnostic_capture",
    "format_timestamp",
    "sanitize_filename",
]
