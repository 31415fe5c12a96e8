"""npm-inspector core package.

Builds a dependency graph out of an installed ``node_modules`` tree and answers
"which versions of X are installed and who needs them" style queries. The
command-line wrapper in :mod:`npm_inspector.cli` is a thin layer over
:func:`build_graph` and the query helpers re-exported here.
"""

from .builder import build_graph
from .errors import (
    BuildError,
    ConfigError,
    InspectorError,
    ModuleNotFound,
    RegistryError,
    UnresolvablePathError,
)
from .query import dependents_of, list_all, match_by_name, resolve_by_name

__all__ = [
    "BuildError",
    "ConfigError",
    "InspectorError",
    "ModuleNotFound",
    "RegistryError",
    "UnresolvablePathError",
    "build_graph",
    "dependents_of",
    "list_all",
    "match_by_name",
    "resolve_by_name",
]
