"""Locate the enclosing monorepo root and enumerate its members.

Recognised markers, checked in this order in each directory:

- ``pnpm-workspace.yaml`` with a ``packages`` list (pnpm)
- ``package.json`` with ``workspaces`` (npm, or yarn when a ``yarn.lock`` sits
  next to it)
- ``lerna.json`` with ``packages`` (lerna; ``packages/*`` when omitted)
"""

from __future__ import annotations

import fnmatch
import json
import logging
from pathlib import Path

import yaml

from .config import Settings
from .errors import UnresolvablePathError
from .manifest import MANIFEST_NAME, read_manifest
from .models import Manifest, WorkspaceContext
from .paths import MAX_SYMLINK_HOPS, canonicalize
from .walker import NODE_MODULES

logger = logging.getLogger(__name__)

PNPM_WORKSPACE_FILE = "pnpm-workspace.yaml"
LERNA_FILE = "lerna.json"
DEFAULT_LERNA_PACKAGES = ("packages/*",)


def _pnpm_patterns(directory: Path) -> tuple[str, ...] | None:
    path = directory / PNPM_WORKSPACE_FILE
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return None
    packages = data.get("packages") if isinstance(data, dict) else None
    if not isinstance(packages, list):
        return None
    return tuple(str(p) for p in packages if p)


def _lerna_patterns(directory: Path) -> tuple[str, ...] | None:
    path = directory / LERNA_FILE
    if not path.is_file():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable %s: %s", path, exc)
        return None
    packages = data.get("packages") if isinstance(data, dict) else None
    if packages is None:
        return DEFAULT_LERNA_PACKAGES
    if not isinstance(packages, list):
        return None
    return tuple(str(p) for p in packages if p)


def detect_workspace_root(directory: Path) -> tuple[str, tuple[str, ...]] | None:
    """Return (dialect, member patterns) when ``directory`` is a monorepo root."""
    patterns = _pnpm_patterns(directory)
    if patterns:
        return "pnpm", patterns

    manifest = read_manifest(directory)
    if isinstance(manifest, Manifest) and manifest.declares_workspaces:
        dialect = "yarn" if (directory / "yarn.lock").exists() else "npm"
        return dialect, manifest.workspaces

    patterns = _lerna_patterns(directory)
    if patterns:
        return "lerna", patterns

    return None


def _normalise_pattern(pattern: str) -> str:
    pattern = pattern.strip()
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.rstrip("/")


def expand_members(
    root: Path, patterns: tuple[str, ...], max_hops: int = MAX_SYMLINK_HOPS
) -> tuple[Path, ...]:
    """Expand glob-style member patterns into member directories.

    ``!pattern`` entries exclude. A member is any matched directory holding a
    ``package.json``, readable or not; members are returned canonicalized and in
    path order.
    """
    includes = [_normalise_pattern(p) for p in patterns if not p.startswith("!")]
    excludes = [_normalise_pattern(p[1:]) for p in patterns if p.startswith("!")]

    members: set[Path] = set()
    for pattern in includes:
        if not pattern:
            continue
        if Path(pattern).is_absolute():
            logger.warning("Skipping absolute workspace pattern %r in %s", pattern, root)
            continue
        try:
            candidates = sorted(root.glob(pattern))
        except (NotImplementedError, ValueError) as exc:
            logger.warning("Skipping workspace pattern %r in %s: %s", pattern, root, exc)
            continue
        for candidate in candidates:
            relative = candidate.relative_to(root)
            if NODE_MODULES in relative.parts:
                continue
            if any(fnmatch.fnmatch(relative.as_posix(), ex) for ex in excludes):
                continue
            if not (candidate / MANIFEST_NAME).exists():
                continue
            try:
                members.add(canonicalize(candidate, max_hops))
            except UnresolvablePathError as exc:
                logger.warning("Skipping workspace member %s: %s", candidate, exc.reason)

    return tuple(sorted(members, key=str))


def locate_workspace(start: Path, settings: Settings | None = None) -> WorkspaceContext:
    """Walk upward from ``start`` to the nearest directory declaring members.

    When no such directory exists up to the filesystem root, the returned
    context has no root and ``start`` is the only top-level consumer.
    """
    settings = settings or Settings()
    for directory in (start, *start.parents):
        detected = detect_workspace_root(directory)
        if detected is None:
            continue
        dialect, patterns = detected
        members = expand_members(directory, patterns, settings.max_symlink_hops)
        logger.debug(
            "Found %s workspace at %s with %d member(s)", dialect, directory, len(members)
        )
        return WorkspaceContext(root=directory, dialect=dialect, members=members)

    return WorkspaceContext()
