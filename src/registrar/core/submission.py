"""
Submission pipeline.

A submission is analyzed once per change, as an explicit call: rewrite the
component, analyze it, rewrite the demo against the component's exports,
analyze the demo, then classify dependencies.
"""

import logging
import re
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from . import ir
from .analyzer import ResolutionTable, analyze_source, demo_entry_name
from .classifier import check_publishable, classify_dependencies
from .config import AnalysisConfig
from .rewriter import remove_async_from_export, remove_component_imports, wrap_default_export

logger = logging.getLogger(__name__)


class SubmissionAnalysis(BaseModel):
    """
    Everything the submission flow needs to persist an entry.

    Attributes:
        exported_names: Components the entry defines
        demo_export_name: Render entry of the demo
        external_dependencies: Component package -> version
        demo_external_dependencies: Demo package -> version
        internal_dependencies: Local import path -> slug ("" when unresolved)
        rewritten_component: Component text after wrapping the default export
        rewritten_demo: Demo text with async entry points and self-imports removed
        removed_imports: Demo import paths touched by self-import removal
        main_component_name: Display name derived from the exports
        preview_ready: Whether the preview sandbox can render the submission
    """

    exported_names: list[str] = Field(default_factory=list)
    demo_export_name: str
    external_dependencies: dict[str, str] = Field(default_factory=dict)
    demo_external_dependencies: dict[str, str] = Field(default_factory=dict)
    internal_dependencies: dict[str, str] = Field(default_factory=dict)
    rewritten_component: str
    rewritten_demo: str
    removed_imports: list[str] = Field(default_factory=list)
    main_component_name: str | None = None
    preview_ready: bool = False

    model_config = ConfigDict(frozen=True)

    @property
    def publishable(self) -> bool:
        return all(slug.strip() for slug in self.internal_dependencies.values())


def main_component_display_name(names: list[str]) -> str | None:
    """
    Human-readable name of the main component.

    The first capitalized export, split before each capital letter:
    ``HoverCard`` -> ``Hover Card``.
    """
    for name in names:
        if re.match(r"^[A-Z]", name):
            return re.sub(r"([A-Z])", r" \1", name).strip()
    return None


def is_preview_ready(
    component_text: str,
    demo_text: str,
    internal_dependencies: Mapping[str, str],
) -> bool:
    """Preview needs both (already rewritten) sources and no internal deps."""
    return (
        bool(component_text.strip())
        and bool(demo_text.strip())
        and not internal_dependencies
    )


def analyze_submission(
    component_text: str,
    demo_text: str,
    existing_internal: Mapping[str, str] | None = None,
    known_versions: Mapping[str, str] | None = None,
    config: AnalysisConfig | None = None,
) -> SubmissionAnalysis:
    """
    Analyze a component and its demo.

    Args:
        component_text: Raw component source
        demo_text: Raw demo source
        existing_internal: Internal dependency map already stored for the entry
        known_versions: Package name -> version source (e.g. from package.json)
        config: Analysis configuration (resolution table, version sentinel)

    Returns:
        SubmissionAnalysis

    Raises:
        ParseError: If either source cannot be parsed
        MultipleOrNoDemoExport: If the demo has no single render entry
    """
    config = config or AnalysisConfig()
    table = ResolutionTable.from_config(config)

    rewritten_component = wrap_default_export(component_text, "component")
    component_facts = analyze_source(rewritten_component, "component", table)
    exported_names = component_facts.exported_names

    demo = remove_async_from_export(demo_text, "demo")
    removal = remove_component_imports(demo, exported_names, "demo")
    demo_facts = analyze_source(removal.modified_code, "demo", table)
    demo_export_name = demo_entry_name(demo_facts)

    maps = classify_dependencies(
        component_facts.import_facts,
        demo_facts.import_facts,
        existing_internal=existing_internal,
        known_versions=known_versions,
        sentinel=config.version_sentinel,
    )

    logger.info(
        f"Analyzed submission: exports={exported_names} demo={demo_export_name} "
        f"internal={list(maps.internal_dependencies)}"
    )

    return SubmissionAnalysis(
        exported_names=exported_names,
        demo_export_name=demo_export_name,
        external_dependencies=maps.external_dependencies,
        demo_external_dependencies=maps.demo_external_dependencies,
        internal_dependencies=maps.internal_dependencies,
        rewritten_component=rewritten_component,
        rewritten_demo=removal.modified_code,
        removed_imports=removal.removed_imports,
        main_component_name=main_component_display_name(exported_names),
        preview_ready=is_preview_ready(
            rewritten_component,
            removal.modified_code,
            maps.internal_dependencies,
        ),
    )


def build_entry(
    owner: str,
    slug: str,
    analysis: SubmissionAnalysis,
    code_ref: str,
    demo_ref: str,
    name: str | None = None,
    registry: str = "ui",
    description: str | None = None,
) -> ir.RegistryEntry:
    """
    Build a publishable RegistryEntry from an analysis.

    Raises:
        UnresolvedInternalDependency: If any internal dependency lacks a slug
    """
    check_publishable(analysis.internal_dependencies)
    return ir.RegistryEntry(
        owner=owner,
        slug=slug,
        name=name or analysis.main_component_name or slug,
        registry=registry,
        code_ref=code_ref,
        demo_ref=demo_ref,
        exported_names=analysis.exported_names,
        demo_export_name=analysis.demo_export_name,
        external_dependencies=analysis.external_dependencies,
        demo_external_dependencies=analysis.demo_external_dependencies,
        internal_dependencies=analysis.internal_dependencies,
        description=description,
    )
