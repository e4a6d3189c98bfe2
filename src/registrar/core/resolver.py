"""
Registry dependency resolver.

Walks internal dependencies from a set of seed identifiers and returns the
transitive closure with source payloads. Traversal is frontier-at-a-time:
sibling fetches on one frontier run concurrently, while the visited-set and
result map are only written from the calling thread, in frontier order.

Termination does not rely on a depth limit: an identifier is added to the
visited-set before it is fetched, so no identifier is ever fetched twice.
"""

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Protocol, runtime_checkable

from . import ir
from .classifier import canonical_identifier
from .errors import DependencyNotFound, ResolutionTimeout

logger = logging.getLogger(__name__)


@runtime_checkable
class BackingStore(Protocol):
    """Read access the resolver needs from the registry store."""

    def fetch_entry(self, owner: str, slug: str) -> ir.RegistryEntry | None:
        """Return the entry, or None when it does not exist."""
        ...

    def fetch_source_text(self, ref: str) -> str | None:
        """Return the stored source text, or None when it does not exist."""
        ...


def parse_identifier(identifier: str) -> tuple[str, str]:
    """
    Split ``owner/slug`` into its parts.

    Raises:
        DependencyNotFound: If the identifier is not of the form ``owner/slug``
    """
    parts = identifier.strip().split("/")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise DependencyNotFound(identifier, f"Malformed registry identifier '{identifier}'")
    return parts[0].strip(), parts[1].strip()


_Fetched = tuple[str, ir.RegistryEntry, str]


class DependencyResolver:
    """
    Resolve registry entries and everything they transitively depend on.

    Args:
        store: Backing store to read entries and source text from
        max_workers: Concurrent fetches per frontier
        fetch_timeout: Seconds to wait for one frontier's fetches (None waits)
    """

    def __init__(
        self,
        store: BackingStore,
        max_workers: int = 4,
        fetch_timeout: float | None = None,
    ):
        self.store = store
        self.max_workers = max(1, max_workers)
        self.fetch_timeout = fetch_timeout

    def resolve(
        self,
        seeds: Sequence[str],
        prefetched: Mapping[str, ir.RegistryEntry] | None = None,
    ) -> ir.ResolvedSet:
        """
        Compute the ResolvedSet for ``seeds``.

        Entries in ``prefetched`` (keyed by ``owner/slug``) are used as is
        instead of being fetched again; their source text is still read.

        Returns:
            ResolvedSet keyed by ``owner/slug`` in discovery order

        Raises:
            DependencyNotFound: If any reachable entry or its source is missing
            ResolutionTimeout: If a frontier does not finish in time
            BackingStoreUnavailable: If the store cannot be reached
        """
        visited: set[str] = set()
        frontier: list[str] = []
        for seed in seeds:
            identifier = seed.strip()
            parse_identifier(identifier)
            if identifier not in visited:
                visited.add(identifier)
                frontier.append(identifier)

        prefetched = prefetched or {}
        resolved: dict[str, ir.ResolvedEntry] = {}
        pool = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="registrar-resolve"
        )
        try:
            depth = 0
            while frontier:
                logger.debug(f"Resolving frontier {depth}: {frontier}")
                next_frontier: list[str] = []

                for identifier, entry, text in self._fetch_frontier(pool, frontier, prefetched):
                    resolved[identifier] = ir.ResolvedEntry(
                        identifier=identifier,
                        source_text=text,
                        registry=entry.registry,
                    )
                    for dependency in self._dependencies_of(identifier, entry):
                        if dependency not in visited:
                            visited.add(dependency)
                            next_frontier.append(dependency)

                frontier = next_frontier
                depth += 1
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

        logger.debug(f"Resolved {len(resolved)} entries: {list(resolved)}")
        return ir.ResolvedSet(entries=resolved)

    def _fetch_frontier(
        self,
        pool: ThreadPoolExecutor,
        frontier: list[str],
        prefetched: Mapping[str, ir.RegistryEntry],
    ) -> list[_Fetched]:
        futures: dict[Future[_Fetched], str] = {
            pool.submit(self._fetch, identifier, prefetched.get(identifier)): identifier
            for identifier in frontier
        }
        results: dict[str, _Fetched] = {}
        try:
            for future in as_completed(futures, timeout=self.fetch_timeout):
                results[futures[future]] = future.result()
        except FuturesTimeoutError:
            pending = next(ident for future, ident in futures.items() if not future.done())
            raise ResolutionTimeout(pending, self.fetch_timeout or 0.0) from None
        return [results[identifier] for identifier in frontier]

    def _fetch(self, identifier: str, entry: ir.RegistryEntry | None = None) -> _Fetched:
        if entry is None:
            owner, slug = parse_identifier(identifier)
            entry = self.store.fetch_entry(owner, slug)
        if entry is None:
            raise DependencyNotFound(identifier)
        text = self.store.fetch_source_text(entry.code_ref)
        if text is None:
            raise DependencyNotFound(
                identifier, f"Source for registry dependency '{identifier}' not found"
            )
        return identifier, entry, text

    @staticmethod
    def _dependencies_of(identifier: str, entry: ir.RegistryEntry) -> list[str]:
        dependencies = []
        for path, value in entry.internal_dependencies.items():
            if not value.strip():
                raise DependencyNotFound(
                    path, f"Internal dependency '{path}' of '{identifier}' has no slug"
                )
            dependency = canonical_identifier(entry.owner, value)
            parse_identifier(dependency)
            dependencies.append(dependency)
        return dependencies


def resolve_registry_dependency_tree(
    store: BackingStore,
    seeds: Sequence[str],
    max_workers: int = 4,
    fetch_timeout: float | None = None,
) -> ir.ResolvedSet:
    """Convenience wrapper around DependencyResolver.resolve."""
    return DependencyResolver(store, max_workers, fetch_timeout).resolve(seeds)
