"""Workspace (monorepo) context model."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

_VALID_DIALECTS = {"npm", "yarn", "pnpm", "lerna"}


@dataclass(frozen=True)
class WorkspaceContext:
    """Located monorepo root and its member directories.

    ``root`` is None when no enclosing workspace was found; the start directory
    is then the only top-level consumer.
    """

    root: Path | None = None
    dialect: str | None = None
    members: tuple[Path, ...] = ()

    def __post_init__(self) -> None:
        if self.root is None and self.members:
            raise ValueError("Members require a workspace root")
        if self.dialect is not None and self.dialect not in _VALID_DIALECTS:
            raise ValueError(f"Invalid workspace dialect: {self.dialect}")

    @property
    def found(self) -> bool:
        return self.root is not None
