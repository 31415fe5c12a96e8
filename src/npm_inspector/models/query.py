"""Query result models."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors import ModuleNotFound
from .package import InstalledPackage


@dataclass(frozen=True)
class Dependent:
    """A consumer of a package and the reason it depends on it."""

    package: InstalledPackage
    kind: str
    spec: str = ""
    satisfied: bool | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.package.name,
            "path": str(self.package.path),
            "kind": self.kind,
            "spec": self.spec,
            "satisfied": self.satisfied,
        }


@dataclass(frozen=True)
class PackageMatch:
    """A matched package together with everything that depends on it."""

    package: InstalledPackage
    dependents: tuple[Dependent, ...]
    symlinked: bool = False

    def to_dict(self) -> dict[str, object]:
        data = self.package.to_dict()
        data["symlinked"] = self.symlinked
        data["dependents"] = [dependent.to_dict() for dependent in self.dependents]
        return data


@dataclass(frozen=True)
class QueryResult:
    """Outcome of a lookup by name: matches, or nothing plus suggestions."""

    name: str
    matches: tuple[PackageMatch, ...] = ()
    suggestions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.matches and self.suggestions:
            raise ValueError("Suggestions are only computed when nothing matched")

    @property
    def found(self) -> bool:
        return bool(self.matches)

    def raise_for_status(self) -> None:
        """Raise ModuleNotFound when the query matched nothing."""
        if not self.matches:
            raise ModuleNotFound(self.name, self.suggestions)

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "found": self.found,
            "matches": [match.to_dict() for match in self.matches],
            "suggestions": list(self.suggestions),
        }
