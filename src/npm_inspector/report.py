"""Plain-text and JSON rendering of query results."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from collections.abc import Iterable

from .models import DependencyGraph, InstalledPackage, PackageMatch, QueryResult
from .query import dependents_of

KIND_LABELS = {
    "direct": "",
    "dev": "dev",
    "peer": "peer",
    "bundled": "bundled",
    "resolution": "resolution",
    "workspace-internal": "workspace",
}


def _display_path(path: Path, start: Path) -> str:
    try:
        return os.path.relpath(path, start)
    except ValueError:  # pragma: no cover - different drive on Windows
        return str(path)


def _version(pkg: InstalledPackage) -> str:
    return pkg.version or "(unknown version)"


def _render_match(match: PackageMatch, start: Path) -> list[str]:
    pkg = match.package
    line = f"  {_version(pkg)}  {_display_path(pkg.path, start)}"
    if match.symlinked:
        line += " [symlink]"
    if pkg.workspace_member:
        line += " [workspace]"
    lines = [line]
    for dependent in match.dependents:
        label = KIND_LABELS.get(dependent.kind, dependent.kind)
        entry = f"    required by {dependent.package.name}"
        if dependent.spec:
            entry += f"@{dependent.spec}"
        if label:
            entry += f" ({label})"
        if dependent.satisfied is False:
            entry += " [unsatisfied]"
        lines.append(entry)
    return lines


def render_query(result: QueryResult, start: Path, latest: str | None = None) -> str:
    """Return the text shown for ``npm-inspector <name>``."""
    header = result.name
    if latest:
        header += f" (latest: {latest})"
    lines = [header]
    for match in result.matches:
        lines.extend(_render_match(match, start))
    return "\n".join(lines) + "\n"


def render_matches(matches: Iterable[PackageMatch], start: Path) -> str:
    """Return the text shown for ``npm-inspector match <partial>``."""
    lines: list[str] = []
    current: str | None = None
    for match in matches:
        if match.package.name != current:
            current = match.package.name
            lines.append(current)
        lines.extend(_render_match(match, start))
    return "\n".join(lines) + "\n" if lines else ""


def render_list(packages: Iterable[InstalledPackage], graph: DependencyGraph) -> str:
    """One line per package: name, version and who requires it."""
    lines: list[str] = []
    for pkg in packages:
        line = f"{pkg.name} {_version(pkg)}"
        consumers = sorted({d.package.name for d in dependents_of(graph, pkg)})
        if consumers:
            line += f"  <- {', '.join(consumers)}"
        lines.append(line)
    return "\n".join(lines) + "\n" if lines else ""


def list_to_dict(packages: Iterable[InstalledPackage], graph: DependencyGraph) -> dict[str, Any]:
    """Aggregate a listing into a JSON-friendly document."""
    items = [
        PackageMatch(
            package=pkg,
            dependents=dependents_of(graph, pkg),
            symlinked=graph.is_symlinked(pkg.path),
        ).to_dict()
        for pkg in packages
    ]
    return {
        "start": str(graph.start),
        "workspaceRoot": str(graph.workspace.root) if graph.workspace.root else None,
        "packages": items,
        "unresolved": [u.to_dict() for u in graph.unresolved],
        "skipped": [str(path) for path in graph.skipped],
        "totals": {"packages": len(items)},
    }
