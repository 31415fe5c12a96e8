"""Dependency edge model."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .manifest import PROVENANCE_PRECEDENCE

_VALID_KINDS = set(PROVENANCE_PRECEDENCE)


@dataclass(frozen=True)
class DependencyEdge:
    """Directed ``consumer -> dependency`` relation between two canonical paths."""

    consumer: Path
    dependency: Path
    kind: str
    name: str
    spec: str = ""

    def __post_init__(self) -> None:
        if self.kind not in _VALID_KINDS:
            raise ValueError(f"Invalid edge kind: {self.kind}")

    @property
    def rank(self) -> int:
        """Lower is more specific."""
        return PROVENANCE_PRECEDENCE.index(self.kind)
