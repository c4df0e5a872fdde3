"""Types for diagnostic artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any


class ArtifactKind(Enum):
    FAILURE = "failure"
    MANUAL = "manual"
    FULL_PAGE = "fullpage"
    ELEMENT = "element"
    COMPARISON = "comparison"


@dataclass(slots=True, frozen=True)
class DiagnosticArtifact:
    """A screenshot persisted for a scenario."""

    filename: str
    path: Path
    timestamp: datetime
    kind: ArtifactKind
    scenario_name: str | None = None
    size: int = 0

    @property
    def full_path(self) -> Path:
        return self.path.resolve()

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "path": str(self.path),
            "timestamp": self.timestamp.isoformat(),
            "kind": self.kind.value,
            "scenario": self.scenario_name,
            "size": self.size,
        }


@dataclass(slots=True, frozen=True)
class ComparisonArtifacts:
    before: DiagnosticArtifact
    after: DiagnosticArtifact


@dataclass(slots=True, frozen=True)
class ScreenshotStats:
    count: int
    total_size: int
    directory: Path

    @property
    def total_size_mb(self) -> float:
        return round(self.total_size / (1024 * 1024), 2)
