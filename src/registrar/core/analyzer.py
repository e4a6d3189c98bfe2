"""
Source analyzer for component and demo files.

Extracts the facts the registry stores about a submission:
- exported component names
- the demo's render entry name
- import facts (package vs local) and package version maps

All functions are pure; they parse the text on every call and never touch
the backing store.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from . import ir
from .config import AnalysisConfig
from .errors import MultipleOrNoDemoExport
from .parser import ExportKind, ExportStatement, ImportStatement, ModuleSyntax, parse_source

logger = logging.getLogger(__name__)

LATEST = "latest"


@dataclass(frozen=True)
class ResolutionTable:
    """
    Decides which import paths stay inside the registry.

    A path is local when it is relative (``./``, ``../``) or starts with one
    of the configured aliases that resolve within the same package root.
    """

    local_prefixes: tuple[str, ...] = ("./", "../")
    alias_prefixes: tuple[str, ...] = ()

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "ResolutionTable":
        return cls(
            local_prefixes=tuple(config.local_prefixes),
            alias_prefixes=tuple(config.alias_prefixes),
        )

    def is_local(self, path: str) -> bool:
        if path in (".", ".."):
            return True
        return path.startswith(self.local_prefixes) or path.startswith(self.alias_prefixes)

    def kind_of(self, path: str) -> ir.ImportKind:
        return ir.ImportKind.LOCAL if self.is_local(path) else ir.ImportKind.PACKAGE


DEFAULT_TABLE = ResolutionTable()


def package_name(path: str) -> str:
    """
    Return the installable package name for a module specifier.

    ``@radix-ui/react-slot/dist`` -> ``@radix-ui/react-slot``,
    ``lodash/debounce`` -> ``lodash``.
    """
    parts = path.split("/")
    if path.startswith("@") and len(parts) > 1:
        return "/".join(parts[:2])
    return parts[0]


def analyze_source(
    text: str,
    source: str = "<source>",
    table: ResolutionTable | None = None,
) -> ir.SourceFacts:
    """
    Analyze one source unit.

    Args:
        text: Source text
        source: Source unit name (for error messages)
        table: Local/package resolution table

    Returns:
        SourceFacts with exported names, default export and import facts

    Raises:
        ParseError: If the text cannot be parsed
    """
    syntax = parse_source(text, source)
    names, default_export = _exported_names(syntax)
    facts = _import_facts(syntax, table or DEFAULT_TABLE)
    logger.debug(
        f"Analyzed {source}: exports={names} default={default_export} imports={len(facts)}"
    )
    return ir.SourceFacts(
        exported_names=names,
        default_export=default_export,
        import_facts=facts,
    )


def extract_component_names(text: str, source: str = "component") -> list[str]:
    """Return the component's runtime export names in declaration order."""
    return analyze_source(text, source).exported_names


def extract_demo_component_name(text: str, source: str = "demo") -> str:
    """
    Return the demo's single render entry name.

    The default export wins when it is named; otherwise the demo must have
    exactly one named runtime export.

    Raises:
        MultipleOrNoDemoExport: If zero or several candidates are found
        ParseError: If the text cannot be parsed
    """
    facts = analyze_source(text, source)
    return demo_entry_name(facts)


def demo_entry_name(facts: ir.SourceFacts) -> str:
    """Pick the render entry from already-analyzed demo facts."""
    default = facts.default_export
    if default and default != "default":
        return default
    if default == "default":
        raise MultipleOrNoDemoExport(
            [], "Demo default export must be a named function or component"
        )

    candidates = [name for name in facts.exported_names if name != "default"]
    if len(candidates) != 1:
        raise MultipleOrNoDemoExport(candidates)
    return candidates[0]


def extract_import_facts(
    text: str,
    source: str = "<source>",
    table: ResolutionTable | None = None,
) -> list[ir.ImportFact]:
    """Return one ImportFact per import or re-export statement."""
    return analyze_source(text, source, table).import_facts


def extract_dependencies(
    facts: list[ir.ImportFact],
    known_versions: Mapping[str, str] | None = None,
    sentinel: str = LATEST,
) -> dict[str, str]:
    """
    Build the package -> version map for the package imports in ``facts``.

    Several statements importing the same package collapse to one entry; the
    first non-sentinel version seen wins.
    """
    known_versions = known_versions or {}
    dependencies: dict[str, str] = {}
    for fact in facts:
        if fact.kind != ir.ImportKind.PACKAGE:
            continue
        name = package_name(fact.raw_path)
        version = known_versions.get(fact.raw_path) or known_versions.get(name) or sentinel
        existing = dependencies.get(name)
        if existing is None or (existing == sentinel and version != sentinel):
            dependencies[name] = version
    return dependencies


def versions_from_package_json(text: str) -> dict[str, str]:
    """
    Read a version source from package.json text.

    ``dependencies`` take precedence over ``devDependencies`` and
    ``peerDependencies``.
    """
    data = json.loads(text)
    versions: dict[str, str] = {}
    for section in ("peerDependencies", "devDependencies", "dependencies"):
        versions.update(data.get(section) or {})
    return versions


def _exported_names(syntax: ModuleSyntax) -> tuple[list[str], str | None]:
    names: list[str] = []
    default_export: str | None = None

    def add(name: str) -> None:
        if name not in names:
            names.append(name)

    for statement in syntax.exports:
        if statement.type_only:
            continue
        if statement.is_default:
            default_export = statement.default_name or "default"

        if statement.kind == ExportKind.NAMED_LIST and statement.source is None:
            # Clause order, with "x as default" contributing x in place
            for spec in statement.specifiers:
                if spec.type_only:
                    continue
                name = spec.imported if spec.local == "default" else spec.local
                if name != "default":
                    add(name)
            continue

        for name in statement.names:
            add(name)
        default_name = statement.default_name
        if statement.is_default and statement.source is None and default_name:
            if default_name != "default":
                add(default_name)

    # A file whose only export is an anonymous default still gets an entry
    if not names and default_export == "default":
        names.append("default")

    return names, default_export


def _import_facts(syntax: ModuleSyntax, table: ResolutionTable) -> list[ir.ImportFact]:
    statements: list[ImportStatement | ExportStatement] = [*syntax.imports]
    statements.extend(stmt for stmt in syntax.exports if stmt.source is not None)
    statements.sort(key=lambda stmt: stmt.start)

    facts = []
    for statement in statements:
        if isinstance(statement, ImportStatement):
            path = statement.source
            names = frozenset(statement.local_names)
            type_only = statement.type_only or (
                bool(statement.specifiers) and all(s.type_only for s in statement.specifiers)
            )
        else:
            path = statement.source or ""
            if statement.kind == ExportKind.NAMESPACE:
                names = frozenset(["*"])
            else:
                names = frozenset(spec.imported for spec in statement.specifiers)
            type_only = statement.type_only

        facts.append(
            ir.ImportFact(
                raw_path=path,
                kind=table.kind_of(path),
                imported_names=names,
                type_only=type_only,
                line=statement.line,
            )
        )
    return facts
