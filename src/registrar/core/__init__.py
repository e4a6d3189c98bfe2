"""Core registrar functionality: source analysis, rewrites, classification, resolution."""

from . import ir
from .analyzer import (
    ResolutionTable,
    analyze_source,
    extract_component_names,
    extract_demo_component_name,
    extract_dependencies,
    extract_import_facts,
)
from .classifier import (
    check_publishable,
    classify_dependencies,
    direct_registry_dependencies,
    merge_internal_dependencies,
    partition_imports,
)
from .config import RegistryConfig, load_config
from .errors import (
    BackingStoreUnavailable,
    ConcurrentModification,
    DependencyNotFound,
    DuplicateEntry,
    ErrorContext,
    MultipleOrNoDemoExport,
    ParseError,
    RegistryError,
    ResolutionTimeout,
    UnresolvedInternalDependency,
)
from .manifest_builder import build_registry_manifest
from .resolver import DependencyResolver, resolve_registry_dependency_tree
from .rewriter import remove_async_from_export, remove_component_imports, wrap_default_export
from .submission import SubmissionAnalysis, analyze_submission, build_entry

__all__ = [
    "ir",
    "ResolutionTable",
    "analyze_source",
    "extract_component_names",
    "extract_demo_component_name",
    "extract_dependencies",
    "extract_import_facts",
    "check_publishable",
    "classify_dependencies",
    "direct_registry_dependencies",
    "merge_internal_dependencies",
    "partition_imports",
    "RegistryConfig",
    "load_config",
    "RegistryError",
    "ErrorContext",
    "ParseError",
    "MultipleOrNoDemoExport",
    "UnresolvedInternalDependency",
    "DependencyNotFound",
    "ResolutionTimeout",
    "BackingStoreUnavailable",
    "ConcurrentModification",
    "DuplicateEntry",
    "build_registry_manifest",
    "DependencyResolver",
    "resolve_registry_dependency_tree",
    "wrap_default_export",
    "remove_async_from_export",
    "remove_component_imports",
    "SubmissionAnalysis",
    "analyze_submission",
    "build_entry",
]
