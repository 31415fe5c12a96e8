"""Minimal npm semver handling built atop packaging.version.

Supported range expressions:
- exact versions (e.g., "1.2.3", "=1.2.3", "v1.2.3")
- caret ranges ^x.y.z -> >=x.y.z,<x+1.0.0 (^0.y.z -> <0.y+1.0)
- tilde ranges ~x.y.z -> >=x.y.z,<x.y+1.0
- wildcards "*", "x", "" and partial versions "1", "1.2", "1.x"
- comparator sets split by spaces, e.g., ">=1.0.0 <2.0.0"
- alternatives joined by "||"
- protocol prefixes "npm:name@range" and "workspace:range"

Anything else (git urls, tarballs, file: links) is reported as unknown.
"""

from __future__ import annotations

import re

from packaging.version import InvalidVersion, Version

_PARTIAL = re.compile(r"^v?(\d+)(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$")
_UNSUPPORTED_PREFIXES = ("file:", "link:", "git", "http:", "https:", "github:", "portal:", "patch:")


class UnsupportedRange(ValueError):
    """Raised for range expressions that do not describe a version set."""


def parse_version(v: str | None) -> Version | None:
    """Return a comparable Version, or None when ``v`` is absent or malformed."""
    if not v:
        return None
    try:
        return Version(v.strip().lstrip("v="))
    except InvalidVersion:
        return None


def version_sort_key(v: str | None) -> tuple[int, Version | None, str]:
    """Sort key that puts malformed versions after every valid one."""
    parsed = parse_version(v)
    if parsed is None:
        return (1, None, v or "")
    return (0, parsed, v or "")


def _next_major(v: Version) -> Version:
    return Version(f"{v.major + 1}.0.0")


def _next_minor(v: Version) -> Version:
    return Version(f"{v.major}.{v.minor + 1}.0")


def _next_patch(v: Version) -> Version:
    return Version(f"{v.major}.{v.minor}.{v.micro + 1}")


def _parse_bound(expr: str) -> Version:
    parsed = parse_version(expr)
    if parsed is None:
        raise UnsupportedRange(f"Invalid version in range: {expr}")
    return parsed


def _satisfies_partial(v: Version, expr: str) -> bool | None:
    """Handle "1", "1.2", "1.x", "1.2.*"; None when ``expr`` is not partial."""
    match = _PARTIAL.match(expr)
    if not match:
        return None
    major, minor, patch = match.groups()
    wildcard = {"x", "X", "*"}
    if minor is None or minor in wildcard:
        return v.major == int(major)
    if patch is None or patch in wildcard:
        return v.major == int(major) and v.minor == int(minor)
    return None


def _satisfies_comparator(v: Version, token: str) -> bool:
    for prefix in (">=", "<=", ">", "<", "="):
        if token.startswith(prefix):
            bound = _parse_bound(token[len(prefix):])
            if prefix == ">=":
                return v >= bound
            if prefix == "<=":
                return v <= bound
            if prefix == ">":
                return v > bound
            if prefix == "<":
                return v < bound
            return v == bound

    if token in {"*", "x", "X"}:
        return True

    # caret ^x.y.z
    if token.startswith("^"):
        base = _parse_bound(token[1:])
        if base.major == 0:
            upper = _next_minor(base) if base.minor else _next_patch(base)
        else:
            upper = _next_major(base)
        return base <= v < upper

    # tilde ~x.y.z
    if token.startswith("~"):
        base = _parse_bound(token[1:].lstrip(">"))
        return base <= v < _next_minor(base)

    partial = _satisfies_partial(v, token)
    if partial is not None:
        return partial

    # exact version fallback
    return v == _parse_bound(token)


def _strip_protocol(expr: str) -> str:
    if expr.startswith("workspace:"):
        expr = expr[len("workspace:"):]
        return "*" if expr in {"", "^", "~"} else expr
    if expr.startswith("npm:"):
        target = expr[len("npm:"):]
        idx = target.find("@", 1)
        return target[idx + 1:] if idx > 0 else "*"
    return expr


def satisfies(installed: str, expr: str) -> bool:
    """Return True when version ``installed`` lies in range ``expr``.

    Raises:
        UnsupportedRange: ``installed`` or ``expr`` cannot be interpreted.
    """
    v = parse_version(installed)
    if v is None:
        raise UnsupportedRange(f"Invalid installed version: {installed}")

    expr = _strip_protocol(expr.strip())
    if expr.startswith(_UNSUPPORTED_PREFIXES) or "/" in expr:
        raise UnsupportedRange(f"Not a version range: {expr}")

    for alternative in expr.split("||"):
        tokens = alternative.split()
        if not tokens:
            return True
        # hyphen ranges "1.0.0 - 2.0.0"
        if len(tokens) == 3 and tokens[1] == "-":
            if _parse_bound(tokens[0]) <= v <= _parse_bound(tokens[2]):
                return True
            continue
        # comparators may be written with a space after the operator
        merged: list[str] = []
        for t in tokens:
            if merged and merged[-1] in {">=", "<=", ">", "<", "="}:
                merged[-1] += t
            else:
                merged.append(t)
        if all(_satisfies_comparator(v, t) for t in merged):
            return True
    return False


def satisfies_or_none(installed: str | None, expr: str) -> bool | None:
    """Like :func:`satisfies` but returns None when the answer is unknown."""
    if not installed or not expr:
        return None
    try:
        return satisfies(installed, expr)
    except UnsupportedRange:
        return None
