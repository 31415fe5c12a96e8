"""Exception hierarchy shared by the graph builder, queries and CLI."""

from __future__ import annotations

from collections.abc import Iterable


class InspectorError(RuntimeError):
    """Base error for npm-inspector failures."""


class UnresolvablePathError(InspectorError):
    """Raised when a path has a missing segment or a symlink cycle."""

    def __init__(self, path: object, reason: str) -> None:
        super().__init__(f"Cannot resolve {path}: {reason}")
        self.path = path
        self.reason = reason


class BuildError(InspectorError):
    """Raised when the starting directory itself cannot be read."""


class ConfigError(InspectorError):
    """Raised when the configuration file cannot be loaded or is invalid."""


class RegistryError(InspectorError):
    """Raised when remote package metadata cannot be fetched or parsed."""


class ModuleNotFound(InspectorError):
    """Raised when a queried name matches no installed package."""

    def __init__(self, name: str, suggestions: Iterable[str] = ()) -> None:
        self.name = name
        self.suggestions = tuple(suggestions)
        message = f'Could not find any module by the name: "{name}".'
        if self.suggestions:
            quoted = ", ".join(f'"{s}"' for s in self.suggestions)
            message += f" Did you mean {quoted}?"
        super().__init__(message)
