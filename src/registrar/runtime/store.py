"""
Registry backing stores.

Two implementations of the same surface:
- InMemoryRegistryStore: dict-backed, lock-guarded (tests, embedding)
- SQLiteRegistryStore: SQLite file, connection-per-call, JSON columns

Source units are append-only: every write creates a new ref. Entries carry a
monotonic ``version`` and are only ever patched with compare-and-set.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager, nullcontext
from pathlib import Path
from typing import Any

from registrar.core import ir
from registrar.core.classifier import check_publishable
from registrar.core.config import AnalysisConfig
from registrar.core.errors import (
    BackingStoreUnavailable,
    ConcurrentModification,
    DependencyNotFound,
    DuplicateEntry,
)
from registrar.core.submission import SubmissionAnalysis, analyze_submission, build_entry

logger = logging.getLogger(__name__)

# Metadata fields an update may patch
UPDATABLE_FIELDS = (
    "name",
    "registry",
    "code_ref",
    "demo_ref",
    "exported_names",
    "demo_export_name",
    "external_dependencies",
    "demo_external_dependencies",
    "internal_dependencies",
    "description",
)

JSON_FIELDS = (
    "exported_names",
    "external_dependencies",
    "demo_external_dependencies",
    "internal_dependencies",
)


def new_source_ref() -> str:
    return uuid.uuid4().hex


def changed_fields(entry: ir.RegistryEntry, proposed: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return only the proposed fields whose value differs from ``entry``.

    Raises:
        ValueError: If a proposed field is not an updatable metadata field
    """
    changes: dict[str, Any] = {}
    for field_name, value in proposed.items():
        if field_name not in UPDATABLE_FIELDS:
            raise ValueError(f"Field '{field_name}' cannot be updated")
        if getattr(entry, field_name) != value:
            changes[field_name] = value
    return changes


def _apply_changes(
    current: ir.RegistryEntry, changes: Mapping[str, Any], expected_version: int
) -> ir.RegistryEntry:
    if current.version != expected_version:
        raise ConcurrentModification(current.identifier, expected_version, current.version)
    unknown = [name for name in changes if name not in UPDATABLE_FIELDS]
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(unknown)}")
    if "internal_dependencies" in changes:
        check_publishable(changes["internal_dependencies"])
    data = current.model_dump()
    data.update(changes)
    data["version"] = current.version + 1
    return ir.RegistryEntry.model_validate(data)


def _not_found(owner: str, slug: str) -> DependencyNotFound:
    identifier = f"{owner}/{slug}"
    return DependencyNotFound(identifier, f"Registry entry '{identifier}' not found")


# =============================================================================
# In-memory store
# =============================================================================


class InMemoryRegistryStore:
    """Dict-backed store; every operation holds one lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sources: dict[str, ir.SourceUnit] = {}
        self._entries: dict[tuple[str, str], ir.RegistryEntry] = {}

    def put_source(self, name: str, text: str) -> str:
        ref = new_source_ref()
        with self._lock:
            self._sources[ref] = ir.SourceUnit(ref=ref, name=name, text=text)
        return ref

    def get_source(self, ref: str) -> ir.SourceUnit | None:
        with self._lock:
            return self._sources.get(ref)

    def fetch_source_text(self, ref: str) -> str | None:
        unit = self.get_source(ref)
        return unit.text if unit else None

    def fetch_entry(self, owner: str, slug: str) -> ir.RegistryEntry | None:
        with self._lock:
            return self._entries.get((owner, slug))

    def list_entries(self, owner: str | None = None) -> list[ir.RegistryEntry]:
        with self._lock:
            entries = list(self._entries.values())
        return [e for e in entries if owner is None or e.owner == owner]

    def create_entry(self, entry: ir.RegistryEntry) -> ir.RegistryEntry:
        """
        Store a new, publishable entry at version 1.

        Raises:
            UnresolvedInternalDependency: If the entry is not publishable
            DuplicateEntry: If ``(owner, slug)`` is taken
        """
        check_publishable(entry.internal_dependencies)
        stored = entry.model_copy(update={"version": 1})
        with self._lock:
            key = (entry.owner, entry.slug)
            if key in self._entries:
                raise DuplicateEntry(f"Entry '{entry.identifier}' already exists")
            self._entries[key] = stored
        logger.info(f"Created entry {entry.identifier}")
        return stored

    def update_entry(
        self,
        owner: str,
        slug: str,
        changes: Mapping[str, Any],
        expected_version: int,
    ) -> ir.RegistryEntry:
        """
        Patch metadata fields if the stored version still matches.

        Raises:
            ConcurrentModification: If the entry changed since it was read
        """
        with self._lock:
            current = self._entries.get((owner, slug))
            if current is None:
                raise _not_found(owner, slug)
            updated = _apply_changes(current, changes, expected_version)
            self._entries[(owner, slug)] = updated
        logger.info(f"Updated entry {owner}/{slug} to version {updated.version}: {list(changes)}")
        return updated


# =============================================================================
# SQLite store
# =============================================================================


class SQLiteRegistryStore:
    """
    SQLite-backed registry store.

    Thread-safe via connection-per-call pattern; in-memory databases keep a
    single persistent connection guarded by a lock.
    """

    def __init__(self, db_path: str | Path = ":memory:"):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database, or ":memory:" for in-memory.
        """
        self._db_path = str(db_path)
        self._is_memory = self._db_path == ":memory:"
        self._lock = threading.RLock()
        self._persistent_conn: sqlite3.Connection | None = None
        if self._is_memory:
            self._persistent_conn = self._create_connection()
        else:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new database connection with proper settings."""
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        if not self._is_memory:
            conn.execute("PRAGMA journal_mode = WAL")
        return conn

    def _get_connection(self) -> sqlite3.Connection:
        if self._is_memory and self._persistent_conn:
            return self._persistent_conn
        return self._create_connection()

    def _close_connection(self, conn: sqlite3.Connection) -> None:
        """Close a connection (but not the persistent one for in-memory DBs)."""
        if not self._is_memory:
            conn.close()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection; operational failures become BackingStoreUnavailable."""
        with self._lock if self._is_memory else nullcontext():
            try:
                conn = self._get_connection()
            except sqlite3.OperationalError as e:
                raise BackingStoreUnavailable(f"Registry database unavailable: {e}") from e
            try:
                yield conn
            except sqlite3.OperationalError as e:
                conn.rollback()
                raise BackingStoreUnavailable(f"Registry database unavailable: {e}") from e
            finally:
                self._close_connection(conn)

    def _init_schema(self) -> None:
        with self._connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS sources (
                    ref TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    text TEXT NOT NULL,
                    created_at REAL NOT NULL
                );

                CREATE TABLE IF NOT EXISTS entries (
                    owner TEXT NOT NULL,
                    slug TEXT NOT NULL,
                    name TEXT NOT NULL,
                    registry TEXT NOT NULL DEFAULT 'ui',
                    code_ref TEXT NOT NULL,
                    demo_ref TEXT NOT NULL DEFAULT '',
                    exported_names TEXT NOT NULL DEFAULT '[]',
                    demo_export_name TEXT NOT NULL DEFAULT '',
                    external_dependencies TEXT NOT NULL DEFAULT '{}',
                    demo_external_dependencies TEXT NOT NULL DEFAULT '{}',
                    internal_dependencies TEXT NOT NULL DEFAULT '{}',
                    description TEXT,
                    version INTEGER NOT NULL DEFAULT 1,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    PRIMARY KEY (owner, slug)
                );

                CREATE INDEX IF NOT EXISTS idx_entries_owner ON entries(owner);
            """
            )
            conn.commit()

    # =========================================================================
    # Source units
    # =========================================================================

    def put_source(self, name: str, text: str) -> str:
        ref = new_source_ref()
        with self._connection() as conn:
            conn.execute(
                "INSERT INTO sources (ref, name, text, created_at) VALUES (?, ?, ?, ?)",
                (ref, name, text, time.time()),
            )
            conn.commit()
        return ref

    def get_source(self, ref: str) -> ir.SourceUnit | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT ref, name, text FROM sources WHERE ref = ?", (ref,)
            ).fetchone()
        if row is None:
            return None
        return ir.SourceUnit(ref=row["ref"], name=row["name"], text=row["text"])

    def fetch_source_text(self, ref: str) -> str | None:
        unit = self.get_source(ref)
        return unit.text if unit else None

    # =========================================================================
    # Entries
    # =========================================================================

    def fetch_entry(self, owner: str, slug: str) -> ir.RegistryEntry | None:
        with self._connection() as conn:
            row = conn.execute(
                "SELECT * FROM entries WHERE owner = ? AND slug = ?", (owner, slug)
            ).fetchone()
        return self._row_to_entry(row) if row else None

    def list_entries(self, owner: str | None = None) -> list[ir.RegistryEntry]:
        with self._connection() as conn:
            if owner is None:
                rows = conn.execute("SELECT * FROM entries ORDER BY owner, slug").fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM entries WHERE owner = ? ORDER BY slug", (owner,)
                ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def create_entry(self, entry: ir.RegistryEntry) -> ir.RegistryEntry:
        """
        Store a new, publishable entry at version 1.

        Raises:
            UnresolvedInternalDependency: If the entry is not publishable
            DuplicateEntry: If ``(owner, slug)`` is taken
        """
        check_publishable(entry.internal_dependencies)
        stored = entry.model_copy(update={"version": 1})
        now = time.time()
        values = self._entry_values(stored)
        columns = ", ".join([*values, "created_at", "updated_at"])
        placeholders = ", ".join("?" for _ in range(len(values) + 2))

        with self._connection() as conn:
            try:
                conn.execute(
                    f"INSERT INTO entries ({columns}) VALUES ({placeholders})",
                    (*values.values(), now, now),
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                raise DuplicateEntry(f"Entry '{entry.identifier}' already exists") from e

        logger.info(f"Created entry {entry.identifier}")
        return stored

    def update_entry(
        self,
        owner: str,
        slug: str,
        changes: Mapping[str, Any],
        expected_version: int,
    ) -> ir.RegistryEntry:
        """
        Patch metadata fields if the stored version still matches.

        The version check and the write happen in one UPDATE statement.

        Raises:
            ConcurrentModification: If the entry changed since it was read
        """
        current = self.fetch_entry(owner, slug)
        if current is None:
            raise _not_found(owner, slug)
        # Validates fields and publishability against the version we read
        updated = _apply_changes(current, changes, expected_version)

        values = {
            name: value
            for name, value in self._entry_values(updated).items()
            if name in changes
        }
        assignments = ", ".join(f"{name} = ?" for name in values)
        if assignments:
            assignments += ", "

        with self._connection() as conn:
            cursor = conn.execute(
                f"UPDATE entries SET {assignments}version = version + 1, updated_at = ? "
                "WHERE owner = ? AND slug = ? AND version = ?",
                (*values.values(), time.time(), owner, slug, expected_version),
            )
            conn.commit()
            rowcount = cursor.rowcount

        if rowcount == 0:
            latest = self.fetch_entry(owner, slug)
            if latest is None:
                raise _not_found(owner, slug)
            raise ConcurrentModification(current.identifier, expected_version, latest.version)

        logger.info(f"Updated entry {owner}/{slug} to version {updated.version}: {list(changes)}")
        return updated

    @staticmethod
    def _entry_values(entry: ir.RegistryEntry) -> dict[str, Any]:
        data = entry.model_dump()
        for name in JSON_FIELDS:
            data[name] = json.dumps(data[name])
        return data

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> ir.RegistryEntry:
        data = {key: row[key] for key in row.keys() if key not in ("created_at", "updated_at")}
        for name in JSON_FIELDS:
            data[name] = json.loads(data[name])
        return ir.RegistryEntry.model_validate(data)


# =============================================================================
# Submission flow
# =============================================================================


def publish_submission(
    store: InMemoryRegistryStore | SQLiteRegistryStore,
    owner: str,
    slug: str,
    analysis: SubmissionAnalysis,
    name: str | None = None,
    registry: str = "ui",
    description: str | None = None,
) -> ir.RegistryEntry:
    """
    Persist an analyzed submission as a new entry.

    The publish gate and the duplicate check run before any source unit is
    written; ``create_entry`` still rejects a duplicate that races in.

    Raises:
        UnresolvedInternalDependency: If any internal dependency lacks a slug
        DuplicateEntry: If ``owner/slug`` already exists
    """
    check_publishable(analysis.internal_dependencies)
    if store.fetch_entry(owner, slug) is not None:
        raise DuplicateEntry(f"Entry '{owner}/{slug}' already exists")
    code_ref = store.put_source(f"{slug}.tsx", analysis.rewritten_component)
    demo_ref = store.put_source(f"{slug}.demo.tsx", analysis.rewritten_demo)
    entry = build_entry(
        owner,
        slug,
        analysis,
        code_ref=code_ref,
        demo_ref=demo_ref,
        name=name,
        registry=registry,
        description=description,
    )
    return store.create_entry(entry)


def revise_submission(
    store: InMemoryRegistryStore | SQLiteRegistryStore,
    owner: str,
    slug: str,
    component_text: str,
    demo_text: str,
    internal_slugs: Mapping[str, str] | None = None,
    known_versions: Mapping[str, str] | None = None,
    config: AnalysisConfig | None = None,
) -> ir.RegistryEntry:
    """
    Re-analyze an existing entry's sources and patch what changed.

    Stored internal slugs are kept for paths that are still imported;
    ``internal_slugs`` supplies slugs for new paths. Unchanged sources are
    not rewritten.

    Raises:
        DependencyNotFound: If the entry does not exist
        UnresolvedInternalDependency: If a new local import has no slug
        ConcurrentModification: If the entry changed during the revision
    """
    current = store.fetch_entry(owner, slug)
    if current is None:
        raise _not_found(owner, slug)

    existing = {**current.internal_dependencies, **(internal_slugs or {})}
    analysis = analyze_submission(component_text, demo_text, existing, known_versions, config)
    check_publishable(analysis.internal_dependencies)

    code_ref = current.code_ref
    if store.fetch_source_text(code_ref) != analysis.rewritten_component:
        code_ref = store.put_source(f"{slug}.tsx", analysis.rewritten_component)
    demo_ref = current.demo_ref
    if store.fetch_source_text(demo_ref) != analysis.rewritten_demo:
        demo_ref = store.put_source(f"{slug}.demo.tsx", analysis.rewritten_demo)

    changes = changed_fields(
        current,
        {
            "code_ref": code_ref,
            "demo_ref": demo_ref,
            "exported_names": analysis.exported_names,
            "demo_export_name": analysis.demo_export_name,
            "external_dependencies": analysis.external_dependencies,
            "demo_external_dependencies": analysis.demo_external_dependencies,
            "internal_dependencies": analysis.internal_dependencies,
        },
    )
    if not changes:
        logger.info(f"No changes for {current.identifier}")
        return current
    return store.update_entry(owner, slug, changes, expected_version=current.version)
