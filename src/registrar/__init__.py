"""
Registrar - component registry engine.

Analyzes submitted component/demo source, classifies their dependencies,
resolves registry-to-registry dependency closures and serves installable
manifests.
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

# Re-export commonly used types for convenience
from .core import ir
from .core.errors import (
    BackingStoreUnavailable,
    DependencyNotFound,
    MultipleOrNoDemoExport,
    ParseError,
    RegistryError,
    UnresolvedInternalDependency,
)


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    # In editable mode, read directly from pyproject.toml
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("registrar")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "RegistryError",
    "ParseError",
    "MultipleOrNoDemoExport",
    "UnresolvedInternalDependency",
    "DependencyNotFound",
    "BackingStoreUnavailable",
]
