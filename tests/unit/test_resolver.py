"""Tests for the transitive registry dependency resolver."""

import threading

import pytest

from registrar.core import ir
from registrar.core.errors import (
    BackingStoreUnavailable,
    DependencyNotFound,
    ResolutionTimeout,
)
from registrar.core.resolver import (
    BackingStore,
    DependencyResolver,
    parse_identifier,
    resolve_registry_dependency_tree,
)
from tests.conftest import CountingStore, add_entry


class FakeStore:
    """Dict-backed store that skips the publish gate."""

    def __init__(self):
        self.entries: dict[str, ir.RegistryEntry] = {}
        self.sources: dict[str, str] = {}

    def add(self, identifier: str, internal: dict[str, str] | None = None) -> None:
        owner, slug = identifier.split("/")
        self.sources[identifier] = f"// {identifier}\n"
        self.entries[identifier] = ir.RegistryEntry(
            owner=owner,
            slug=slug,
            name=slug,
            code_ref=identifier,
            internal_dependencies=internal or {},
        )

    def fetch_entry(self, owner: str, slug: str) -> ir.RegistryEntry | None:
        return self.entries.get(f"{owner}/{slug}")

    def fetch_source_text(self, ref: str) -> str | None:
        return self.sources.get(ref)


@pytest.fixture
def diamond(store):
    """root -> (left, right) -> icon."""
    add_entry(store, "alice/icon")
    add_entry(store, "alice/left", internal={"./icon": "icon"})
    add_entry(store, "alice/right", internal={"../icon": "alice/icon"})
    add_entry(store, "alice/root", internal={"./left": "left", "./right": "right"})
    return store


class TestResolve:
    """Closure contents and discovery order."""

    def test_single_entry(self, store):
        add_entry(store, "alice/button", code="export function Button() {}\n")
        resolved = resolve_registry_dependency_tree(store, ["alice/button"])
        assert resolved.identifiers() == ["alice/button"]
        entry = resolved.entries["alice/button"]
        assert entry.source_text == "export function Button() {}\n"
        assert entry.registry == "ui"

    def test_discovery_order(self, diamond):
        resolved = resolve_registry_dependency_tree(diamond, ["alice/root"])
        assert resolved.identifiers() == ["alice/root", "alice/left", "alice/right", "alice/icon"]

    def test_shared_dependency_fetched_once(self, diamond):
        counting = CountingStore(diamond)
        resolve_registry_dependency_tree(counting, ["alice/root"], max_workers=4)
        assert counting.calls["alice/icon"] == 1
        assert set(counting.calls.values()) == {1}

    def test_prefetched_entry_is_not_fetched_again(self, diamond):
        root = diamond.fetch_entry("alice", "root")
        counting = CountingStore(diamond)
        resolved = DependencyResolver(counting).resolve(
            ["alice/root"], prefetched={"alice/root": root}
        )
        assert resolved.identifiers() == ["alice/root", "alice/left", "alice/right", "alice/icon"]
        assert "alice/root" not in counting.calls

    def test_cycle_terminates(self):
        fake = FakeStore()
        fake.add("alice/a", {"./b": "b"})
        fake.add("alice/b", {"./a": "alice/a"})
        resolved = DependencyResolver(fake).resolve(["alice/a"])
        assert resolved.identifiers() == ["alice/a", "alice/b"]

    def test_self_dependency(self):
        fake = FakeStore()
        fake.add("alice/a", {"./a": "a"})
        assert DependencyResolver(fake).resolve(["alice/a"]).identifiers() == ["alice/a"]

    def test_duplicate_seeds(self, diamond):
        resolved = DependencyResolver(diamond).resolve(["alice/root", "alice/left", "alice/root"])
        assert resolved.identifiers() == ["alice/root", "alice/left", "alice/right", "alice/icon"]

    def test_same_set_regardless_of_seed_order(self, diamond):
        forward = DependencyResolver(diamond).resolve(["alice/left", "alice/right"])
        backward = DependencyResolver(diamond).resolve(["alice/right", "alice/left"])
        assert set(forward.identifiers()) == set(backward.identifiers())
        assert forward.identifiers() == ["alice/left", "alice/right", "alice/icon"]

    def test_cross_owner_dependency(self, store):
        add_entry(store, "bob/utils")
        add_entry(store, "alice/card", internal={"../lib/utils": "bob/utils"})
        resolved = DependencyResolver(store).resolve(["alice/card"])
        assert resolved.identifiers() == ["alice/card", "bob/utils"]

    def test_registry_namespace_carried(self, store):
        add_entry(store, "alice/use-toggle", registry="hook")
        resolved = DependencyResolver(store).resolve(["alice/use-toggle"])
        assert resolved.entries["alice/use-toggle"].registry == "hook"

    def test_empty_seeds(self, store):
        assert len(DependencyResolver(store).resolve([])) == 0

    def test_store_satisfies_protocol(self, store):
        assert isinstance(store, BackingStore)
        assert isinstance(FakeStore(), BackingStore)


class TestResolveErrors:
    """Any failure aborts the whole resolution."""

    def test_missing_dependency(self, store):
        add_entry(store, "alice/card", internal={"./ghost": "ghost"})
        with pytest.raises(DependencyNotFound) as exc_info:
            DependencyResolver(store).resolve(["alice/card"])
        assert exc_info.value.identifier == "alice/ghost"
        assert str(exc_info.value) == "Registry dependency 'alice/ghost' not found"

    def test_missing_seed(self, store):
        with pytest.raises(DependencyNotFound):
            DependencyResolver(store).resolve(["alice/nothing"])

    def test_missing_source(self):
        fake = FakeStore()
        fake.add("alice/a")
        del fake.sources["alice/a"]
        with pytest.raises(DependencyNotFound, match="Source for registry dependency"):
            DependencyResolver(fake).resolve(["alice/a"])

    def test_unresolved_slug_in_stored_entry(self):
        fake = FakeStore()
        fake.add("alice/a", {"./b": ""})
        with pytest.raises(DependencyNotFound, match="has no slug"):
            DependencyResolver(fake).resolve(["alice/a"])

    def test_malformed_seed(self, store):
        with pytest.raises(DependencyNotFound, match="Malformed registry identifier"):
            DependencyResolver(store).resolve(["button"])

    def test_store_unavailable_propagates(self):
        class DownStore(FakeStore):
            def fetch_entry(self, owner, slug):
                raise BackingStoreUnavailable("database is locked")

        with pytest.raises(BackingStoreUnavailable):
            DependencyResolver(DownStore()).resolve(["alice/a"])

    def test_timeout(self):
        release = threading.Event()

        class SlowStore(FakeStore):
            def fetch_entry(self, owner, slug):
                release.wait(5)
                return super().fetch_entry(owner, slug)

        slow = SlowStore()
        slow.add("alice/a")
        try:
            with pytest.raises(ResolutionTimeout) as exc_info:
                DependencyResolver(slow, fetch_timeout=0.05).resolve(["alice/a"])
        finally:
            release.set()
        assert exc_info.value.identifier == "alice/a"
        assert isinstance(exc_info.value, DependencyNotFound)


class TestConcurrency:
    """Siblings on one frontier are fetched concurrently."""

    def test_siblings_overlap(self):
        barrier = threading.Barrier(2, timeout=5)

        class BarrierStore(FakeStore):
            def fetch_entry(self, owner, slug):
                if slug in ("left", "right"):
                    barrier.wait()
                return super().fetch_entry(owner, slug)

        fake = BarrierStore()
        fake.add("alice/root", {"./left": "left", "./right": "right"})
        fake.add("alice/left")
        fake.add("alice/right")
        resolved = DependencyResolver(fake, max_workers=2).resolve(["alice/root"])
        assert resolved.identifiers() == ["alice/root", "alice/left", "alice/right"]


class TestParseIdentifier:
    @pytest.mark.parametrize("value", ["alice/button", " alice/button "])
    def test_valid(self, value):
        assert parse_identifier(value) == ("alice", "button")

    @pytest.mark.parametrize("value", ["", "button", "a/b/c", "/button", "alice/"])
    def test_malformed(self, value):
        with pytest.raises(DependencyNotFound):
            parse_identifier(value)
