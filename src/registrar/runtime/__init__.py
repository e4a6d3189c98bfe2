"""Runtime: backing stores and the HTTP manifest server."""

from .store import (
    InMemoryRegistryStore,
    SQLiteRegistryStore,
    changed_fields,
    publish_submission,
    revise_submission,
)

__all__ = [
    "InMemoryRegistryStore",
    "SQLiteRegistryStore",
    "changed_fields",
    "publish_submission",
    "revise_submission",
]
