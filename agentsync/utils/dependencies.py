"""Derive a dependency manifest from the source of a function tool."""

from __future__ import annotations

import ast
import sys
from importlib import metadata

import structlog

logger = structlog.get_logger(__name__)


def imported_modules(source: str) -> list[str]:
    """Top-level module names imported by ``source``, in first-seen order."""
    tree = ast.parse(source)
    seen: dict[str, None] = {}
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                seen.setdefault(alias.name.split(".")[0], None)
        elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
            seen.setdefault(node.module.split(".")[0], None)
    return list(seen)


def detect_dependencies(source: str) -> dict[str, str]:
    """Map each third-party import in ``source`` to its installed version.

    Standard-library modules are skipped. Imports that no installed
    distribution provides are logged and left out.
    """
    distributions = metadata.packages_distributions()
    dependencies: dict[str, str] = {}
    for module in imported_modules(source):
        if module in sys.stdlib_module_names or module in sys.builtin_module_names:
            continue
        dist_names = distributions.get(module)
        if not dist_names:
            logger.warning("function_dependency_unresolved", module=module)
            continue
        for dist_name in dist_names:
            try:
                dependencies[dist_name] = metadata.version(dist_name)
            except metadata.PackageNotFoundError:
                logger.warning("function_dependency_unresolved", module=module)
    return dependencies
