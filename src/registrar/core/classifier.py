"""
Dependency classifier.

Folds analyzer import facts into the three dependency maps stored on a
registry entry and guards publishing on unresolved internal dependencies.
"""

import logging
from collections.abc import Iterable, Mapping

from . import ir
from .analyzer import LATEST, ResolutionTable, extract_dependencies
from .errors import UnresolvedInternalDependency

logger = logging.getLogger(__name__)

__all__ = [
    "ResolutionTable",
    "partition_imports",
    "local_import_paths",
    "merge_internal_dependencies",
    "classify_dependencies",
    "unresolved_paths",
    "check_publishable",
    "canonical_identifier",
    "direct_registry_dependencies",
]


def partition_imports(
    facts: Iterable[ir.ImportFact],
) -> tuple[list[ir.ImportFact], list[ir.ImportFact]]:
    """Split import facts into ``(package, local)``; every fact lands in exactly one."""
    package: list[ir.ImportFact] = []
    local: list[ir.ImportFact] = []
    for fact in facts:
        if fact.kind == ir.ImportKind.LOCAL:
            local.append(fact)
        else:
            package.append(fact)
    return package, local


def local_import_paths(*fact_lists: Iterable[ir.ImportFact]) -> list[str]:
    """Distinct local import paths in discovery order across all lists."""
    paths: list[str] = []
    for facts in fact_lists:
        for fact in facts:
            if fact.kind == ir.ImportKind.LOCAL and fact.raw_path not in paths:
                paths.append(fact.raw_path)
    return paths


def merge_internal_dependencies(
    discovered: Iterable[str],
    existing: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Merge discovered local paths with the stored internal dependency map.

    Known paths keep their resolved slug, new paths start unresolved (empty)
    and paths no longer imported are dropped.
    """
    existing = existing or {}
    merged: dict[str, str] = {}
    for path in discovered:
        if path not in merged:
            merged[path] = existing.get(path, "")

    dropped = [path for path in existing if path not in merged]
    if dropped:
        logger.debug(f"Dropping stale internal dependencies: {dropped}")
    return merged


def classify_dependencies(
    component_facts: list[ir.ImportFact],
    demo_facts: list[ir.ImportFact],
    existing_internal: Mapping[str, str] | None = None,
    known_versions: Mapping[str, str] | None = None,
    sentinel: str = LATEST,
) -> ir.DependencyMaps:
    """
    Produce the persisted dependency maps for a component and its demo.

    Args:
        component_facts: Import facts of the component source
        demo_facts: Import facts of the (rewritten) demo source
        existing_internal: Internal dependency map currently stored
        known_versions: Package name -> version source
        sentinel: Version recorded when no version is known

    Returns:
        DependencyMaps with external, demo external and internal maps
    """
    component_packages, component_locals = partition_imports(component_facts)
    demo_packages, demo_locals = partition_imports(demo_facts)

    return ir.DependencyMaps(
        external_dependencies=extract_dependencies(component_packages, known_versions, sentinel),
        demo_external_dependencies=extract_dependencies(demo_packages, known_versions, sentinel),
        internal_dependencies=merge_internal_dependencies(
            local_import_paths(component_locals, demo_locals),
            existing_internal,
        ),
    )


def unresolved_paths(internal_dependencies: Mapping[str, str]) -> list[str]:
    return [path for path, slug in internal_dependencies.items() if not slug.strip()]


def check_publishable(internal_dependencies: Mapping[str, str]) -> None:
    """
    Raise if any internal dependency is still missing its slug.

    Raises:
        UnresolvedInternalDependency: With the unresolved import paths
    """
    missing = unresolved_paths(internal_dependencies)
    if missing:
        raise UnresolvedInternalDependency(missing)


def canonical_identifier(owner: str, value: str) -> str:
    """Qualify a bare ``slug`` with its owner; ``owner/slug`` is returned as is."""
    value = value.strip()
    if not value or "/" in value:
        return value
    return f"{owner}/{value}"


def direct_registry_dependencies(owner: str, internal_dependencies: Mapping[str, str]) -> list[str]:
    """Distinct canonical identifiers referenced by an entry, in map order."""
    identifiers: list[str] = []
    for value in internal_dependencies.values():
        identifier = canonical_identifier(owner, value)
        if identifier not in identifiers:
            identifiers.append(identifier)
    return identifiers
