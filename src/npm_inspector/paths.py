"""Symlink-free canonical paths, the identity of every graph node."""

from __future__ import annotations

import os
import stat
from collections import deque
from pathlib import Path

from .errors import UnresolvablePathError

MAX_SYMLINK_HOPS = 40


def canonicalize(path: Path | str, max_hops: int = MAX_SYMLINK_HOPS) -> Path:
    """Return the real location of ``path`` with every symlink expanded.

    Segments are resolved left to right, the way the kernel does it, so ``..``
    after a symlink refers to the parent of the link target. Each symlink
    expansion counts as one hop; more than ``max_hops`` expansions is treated
    as a cycle.

    Raises:
        UnresolvablePathError: a segment does not exist or the chain of
            symlinks is longer than ``max_hops``.
    """
    absolute = Path(path)
    if not absolute.is_absolute():
        absolute = Path.cwd() / absolute
    resolved = Path(absolute.anchor)
    pending: deque[str] = deque(absolute.parts[1:])
    hops = 0

    while pending:
        part = pending.popleft()
        if part in ("", "."):
            continue
        if part == "..":
            resolved = resolved.parent
            continue

        candidate = resolved / part
        try:
            mode = os.lstat(candidate).st_mode
        except OSError as exc:
            raise UnresolvablePathError(path, f"missing segment {candidate}") from exc

        if not stat.S_ISLNK(mode):
            resolved = candidate
            continue

        hops += 1
        if hops > max_hops:
            raise UnresolvablePathError(path, f"more than {max_hops} symlinks (cycle?)")

        target = Path(os.readlink(candidate))
        if target.is_absolute():
            resolved = Path(target.anchor)
            pending.extendleft(reversed(target.parts[1:]))
        else:
            pending.extendleft(reversed(target.parts))

    return resolved


def is_within(path: Path, ancestor: Path) -> bool:
    """Return True when ``path`` equals ``ancestor`` or lies beneath it."""
    return path == ancestor or ancestor in path.parents
