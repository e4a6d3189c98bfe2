"""
Intermediate representation for registry entries and analysis results.

These models are the facts produced by source analysis, the metadata stored
for each registry entry, and the resolved/served shapes built from them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ImportKind(str, Enum):
    """Whether an import refers to a third-party package or a registry-local file."""

    PACKAGE = "package"
    LOCAL = "local"


class ImportFact(BaseModel):
    """
    A single import (or re-export) statement found in source text.

    Attributes:
        raw_path: Module specifier exactly as written
        kind: Package or local import
        imported_names: Local names bound by the statement
        type_only: True for ``import type`` statements
        line: 1-indexed line of the statement
    """

    raw_path: str
    kind: ImportKind
    imported_names: frozenset[str] = Field(default_factory=frozenset)
    type_only: bool = False
    line: int = 0

    model_config = ConfigDict(frozen=True)


class SourceFacts(BaseModel):
    """
    Everything the analyzer extracts from one source unit.

    Attributes:
        exported_names: Runtime export names in declaration order
        default_export: Name bound by the default export, ``"default"`` when
            anonymous, None when there is no default export
        import_facts: One fact per import/re-export statement
    """

    exported_names: list[str] = Field(default_factory=list)
    default_export: str | None = None
    import_facts: list[ImportFact] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class DependencyMaps(BaseModel):
    """The three dependency maps persisted on a registry entry."""

    external_dependencies: dict[str, str] = Field(default_factory=dict)
    demo_external_dependencies: dict[str, str] = Field(default_factory=dict)
    internal_dependencies: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)


class SourceUnit(BaseModel):
    """An immutable, stored blob of source text (component or demo)."""

    ref: str
    name: str
    text: str

    model_config = ConfigDict(frozen=True)


class RegistryEntry(BaseModel):
    """
    A published registry entry, addressed by ``owner/slug``.

    Attributes:
        owner: Username of the publisher
        slug: Entry slug, unique per owner
        name: Display name
        registry: Registry namespace, e.g. "ui" or "hook"
        code_ref: Reference to the component SourceUnit
        demo_ref: Reference to the demo SourceUnit
        exported_names: Components the entry defines
        demo_export_name: Render entry of the demo
        external_dependencies: Package name -> version range (component)
        demo_external_dependencies: Package name -> version range (demo)
        internal_dependencies: Local import path -> entry slug
        description: Optional free-text description
        version: Monotonic revision used for compare-and-set updates
    """

    owner: str
    slug: str
    name: str
    registry: str = "ui"
    code_ref: str
    demo_ref: str = ""
    exported_names: list[str] = Field(default_factory=list)
    demo_export_name: str = ""
    external_dependencies: dict[str, str] = Field(default_factory=dict)
    demo_external_dependencies: dict[str, str] = Field(default_factory=dict)
    internal_dependencies: dict[str, str] = Field(default_factory=dict)
    description: str | None = None
    version: int = 1

    model_config = ConfigDict(frozen=True)

    @property
    def identifier(self) -> str:
        return f"{self.owner}/{self.slug}"


class ResolvedEntry(BaseModel):
    """One entry of a ResolvedSet: the source text and its registry namespace."""

    identifier: str
    source_text: str
    registry: str

    model_config = ConfigDict(frozen=True)


class ResolvedSet(BaseModel):
    """
    Transitive closure of registry entries, keyed by ``owner/slug``.

    Insertion order is discovery order, which keeps served output stable.
    """

    entries: dict[str, ResolvedEntry] = Field(default_factory=dict)

    def identifiers(self) -> list[str]:
        return list(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, identifier: object) -> bool:
        return identifier in self.entries


class ManifestFile(BaseModel):
    """A single file in the served registry manifest."""

    path: str
    content: str
    type: str
    target: str = ""


class RegistryManifest(BaseModel):
    """
    The manifest served to the command-line installer.

    Field names and nesting are part of the installer contract.
    """

    name: str
    type: str
    dependencies: list[str] | None = None
    files: list[ManifestFile] = Field(default_factory=list)

    def to_wire(self) -> dict[str, object]:
        """Serialize for the wire, omitting ``dependencies`` when absent."""
        return self.model_dump(exclude_none=True)
