"""Command-line entrypoint.

Usage:
  npm-inspector <name> [--no-remote] [--json]
  npm-inspector match <partial>
  npm-inspector list [--deps] [--json]

Common options: --cwd DIR, --config FILE, --verbose.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .builder import build_graph
from .config import load_settings
from .errors import BuildError, ConfigError, ModuleNotFound, RegistryError
from .query import list_all, match_by_name, resolve_by_name
from .registry import fetch_latest_version
from .report import list_to_dict, render_list, render_matches, render_query

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="npm-inspector",
        description="Inspect installed node_modules: versions, locations and dependents.",
    )
    parser.add_argument(
        "query",
        nargs="+",
        help="a module name, 'list', or 'match <partial>'",
    )
    parser.add_argument("--cwd", type=Path, default=Path("."), help="Directory to inspect")
    parser.add_argument("--config", type=Path, default=None, help="Path to a JSON config file")
    parser.add_argument(
        "--deps",
        action="store_true",
        help="With 'list': only packages named in the project's package.json",
    )
    parser.add_argument(
        "--no-remote",
        dest="remote",
        action="store_false",
        help="Do not query the registry for the latest version",
    )
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _latest_version(name: str, registry_url: str) -> str | None:
    try:
        return fetch_latest_version(name, registry_url)
    except RegistryError as exc:
        logger.warning("%s", exc)
        return None


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    graph = build_graph(args.cwd, settings)
    command = args.query[0]

    if command == "list" and len(args.query) == 1:
        packages = list_all(graph, declared_only=args.deps)
        if args.json:
            print(json.dumps(list_to_dict(packages, graph), indent=2))
        else:
            sys.stdout.write(render_list(packages, graph))
        return 0

    if command == "match" and len(args.query) == 2:
        matches = match_by_name(graph, args.query[1])
        if args.json:
            print(json.dumps([m.to_dict() for m in matches], indent=2))
        else:
            sys.stdout.write(render_matches(matches, graph.start))
        return 0

    status = 0
    for name in args.query:
        result = resolve_by_name(graph, name)
        if args.json:
            print(json.dumps(result.to_dict(), indent=2))
            status = status or (0 if result.found else 1)
            continue
        try:
            result.raise_for_status()
        except ModuleNotFound as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            status = 1
            continue
        latest = None
        if args.remote and settings.remote:
            latest = _latest_version(name, settings.registry_url)
        sys.stdout.write(render_query(result, graph.start, latest))
    return status


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return run(args)
    except ConfigError as exc:
        print(f"ERROR: Invalid configuration: {exc}", file=sys.stderr)
        return 1
    except BuildError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
