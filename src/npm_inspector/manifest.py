"""Read ``package.json`` into a :class:`Manifest` record.

Missing files and undecodable JSON are reported through marker records rather
than exceptions, so a broken package still shows up in the graph. Fields with
the wrong shape are located with a JSON Schema validator and dropped one by one
instead of discarding the whole manifest.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator

from .models import AnyManifest, MalformedManifest, Manifest, MissingManifest

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"

# (field in package.json, Manifest attribute)
DEPENDENCY_FIELDS = (
    ("dependencies", "dependencies"),
    ("optionalDependencies", "optional_dependencies"),
    ("devDependencies", "dev_dependencies"),
    ("peerDependencies", "peer_dependencies"),
)

# Both historical spellings are accepted; the first one present wins.
BUNDLED_FIELDS = ("bundledDependencies", "bundleDependencies")

# yarn, npm and pnpm spell "pin this version everywhere" differently. Names
# from every present field are merged, in this order.
RESOLUTION_FIELDS = (
    ("resolutions",),
    ("overrides",),
    ("pnpm", "overrides"),
)

_MAPPING_FIELDS = {field_name for field_name, _ in DEPENDENCY_FIELDS}

_STRING_MAP = {"type": "object", "additionalProperties": {"type": "string"}}
_NAME_LIST_OR_FLAG = {
    "oneOf": [
        {"type": "array", "items": {"type": "string"}},
        {"type": "boolean"},
    ]
}

MANIFEST_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "version": {"type": "string"},
        "dependencies": _STRING_MAP,
        "optionalDependencies": _STRING_MAP,
        "devDependencies": _STRING_MAP,
        "peerDependencies": _STRING_MAP,
        "bundledDependencies": _NAME_LIST_OR_FLAG,
        "bundleDependencies": _NAME_LIST_OR_FLAG,
        "resolutions": {"type": "object"},
        "overrides": {"type": "object"},
        "pnpm": {
            "type": "object",
            "properties": {"overrides": {"type": "object"}},
        },
        "workspaces": {
            "oneOf": [
                {"type": "array", "items": {"type": "string"}},
                {
                    "type": "object",
                    "properties": {
                        "packages": {"type": "array", "items": {"type": "string"}}
                    },
                },
            ]
        },
    },
}

_VALIDATOR = Draft202012Validator(MANIFEST_SCHEMA)


def read_manifest(directory: Path) -> AnyManifest:
    """Return the parsed manifest of the package in ``directory``.

    Never raises for absent or oddly shaped optional fields: version and every
    dependency mapping default to empty.
    """
    path = directory / MANIFEST_NAME
    try:
        # utf-8-sig drops a leading byte order mark, as Node does
        text = path.read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        return MissingManifest(path=path)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return MalformedManifest(path=path, reason=str(exc))

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning("Invalid JSON in %s: %s", path, exc)
        return MalformedManifest(path=path, reason=f"Invalid JSON: {exc}")

    if not isinstance(data, dict):
        logger.warning("%s is not a JSON object", path)
        return MalformedManifest(path=path, reason="Manifest must be a JSON object")

    return parse_manifest(path, data)


def parse_manifest(path: Path, data: dict[str, Any]) -> Manifest:
    """Build a Manifest from an already decoded ``package.json`` object."""
    data = _drop_invalid_fields(path, data)

    mappings: dict[str, dict[str, str]] = {}
    for field_name, attribute in DEPENDENCY_FIELDS:
        mappings[attribute] = {
            name: spec for name, spec in (data.get(field_name) or {}).items() if name
        }

    return Manifest(
        path=path,
        name=data.get("name") or None,
        version=data.get("version") or None,
        bundled=_bundled_names(data, mappings["dependencies"]),
        resolutions=_resolution_names(data),
        workspaces=_workspace_patterns(data),
        **mappings,
    )


def _drop_invalid_fields(path: Path, data: dict[str, Any]) -> dict[str, Any]:
    """Drop what the schema rejects.

    A bad entry inside a dependency mapping only costs that entry; any other
    error drops the top-level field it sits under.
    """
    invalid: set[str] = set()
    bad_entries: dict[str, set[str]] = {}
    for error in _VALIDATOR.iter_errors(data):
        location = [str(part) for part in error.absolute_path]
        if not location:
            continue
        if location[0] in _MAPPING_FIELDS and len(location) > 1:
            bad_entries.setdefault(location[0], set()).add(location[1])
        else:
            invalid.add(location[0])
    if not invalid and not bad_entries:
        return data

    dropped = sorted(invalid) + sorted(
        f"{field_name}.{name}"
        for field_name, names in bad_entries.items()
        if field_name not in invalid
        for name in names
    )
    logger.warning("Ignoring malformed field(s) in %s: %s", path, ", ".join(dropped))

    cleaned = {key: value for key, value in data.items() if key not in invalid}
    for field_name, names in bad_entries.items():
        if field_name in cleaned:
            cleaned[field_name] = {
                name: spec for name, spec in cleaned[field_name].items() if name not in names
            }
    return cleaned


def _bundled_names(data: dict[str, Any], dependencies: dict[str, str]) -> tuple[str, ...]:
    for field_name in BUNDLED_FIELDS:
        if field_name not in data:
            continue
        value = data[field_name]
        if value is True:
            return tuple(dependencies)
        if value is False:
            return ()
        return tuple(dict.fromkeys(name for name in value if name))
    return ()


def _resolution_names(data: dict[str, Any]) -> tuple[str, ...]:
    names: dict[str, None] = {}
    for field_path in RESOLUTION_FIELDS:
        value: Any = data
        for key in field_path:
            value = value.get(key) if isinstance(value, dict) else None
        if not isinstance(value, dict):
            continue
        for pattern in value:
            name = package_name_from_pattern(pattern)
            if name:
                names[name] = None
    return tuple(names)


def _workspace_patterns(data: dict[str, Any]) -> tuple[str, ...]:
    value = data.get("workspaces")
    if isinstance(value, dict):
        value = value.get("packages")
    if not isinstance(value, list):
        return ()
    return tuple(pattern for pattern in value if pattern)


def strip_version_suffix(name: str) -> str:
    """``foo@1.x`` -> ``foo``; ``@scope/foo@^2`` -> ``@scope/foo``."""
    idx = name.find("@", 1)
    return name[:idx] if idx > 0 else name


def package_name_from_pattern(pattern: str) -> str:
    """Return the package a resolution/override key targets.

    Handles yarn paths (``**/foo``, ``parent/foo``, ``a/**/@scope/foo``) and
    npm keys with a version selector (``foo@1``, ``@scope/foo@^2``).
    """
    parts = [part for part in pattern.split("/") if part and part != "**"]
    if not parts:
        return ""
    if len(parts) >= 2 and parts[-2].startswith("@"):
        candidate = f"{parts[-2]}/{parts[-1]}"
    else:
        candidate = parts[-1]
        if candidate.startswith("@"):
            # "@scope" alone cannot name a package
            return ""
    return strip_version_suffix(candidate)
