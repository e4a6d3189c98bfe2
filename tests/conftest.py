"""Shared pytest fixtures for registrar tests."""

import threading
from collections import Counter

import pytest

from registrar.core import ir
from registrar.runtime.store import InMemoryRegistryStore

BUTTON_COMPONENT = """\
import * as React from "react"
import { motion } from "framer-motion"

export default function Button({ children }: { children: React.ReactNode }) {
  return <motion.button className="btn">{children}</motion.button>
}
"""

BUTTON_DEMO = """\
import { Button } from "./button"

export default function Demo() {
  return <Button>Click me</Button>
}
"""


class CountingStore:
    """Wraps a store and counts entry fetches per identifier."""

    def __init__(self, inner):
        self.inner = inner
        self.calls: Counter[str] = Counter()
        self._lock = threading.Lock()

    def fetch_entry(self, owner: str, slug: str) -> ir.RegistryEntry | None:
        with self._lock:
            self.calls[f"{owner}/{slug}"] += 1
        return self.inner.fetch_entry(owner, slug)

    def fetch_source_text(self, ref: str) -> str | None:
        return self.inner.fetch_source_text(ref)


def add_entry(
    store,
    identifier: str,
    internal: dict[str, str] | None = None,
    external: dict[str, str] | None = None,
    registry: str = "ui",
    code: str | None = None,
) -> ir.RegistryEntry:
    """Store a minimal entry with its component source."""
    owner, slug = identifier.split("/")
    text = code if code is not None else f"export function {slug.title()}() {{}}\n"
    code_ref = store.put_source(f"{slug}.tsx", text)
    entry = ir.RegistryEntry(
        owner=owner,
        slug=slug,
        name=slug.title(),
        registry=registry,
        code_ref=code_ref,
        exported_names=[slug.title()],
        external_dependencies=external or {},
        internal_dependencies=internal or {},
    )
    return store.create_entry(entry)


@pytest.fixture
def store() -> InMemoryRegistryStore:
    """Return an empty in-memory registry store."""
    return InMemoryRegistryStore()


@pytest.fixture
def button_sources() -> tuple[str, str]:
    """Return the Button component and its demo."""
    return BUTTON_COMPONENT, BUTTON_DEMO
