"""Tests for dependency classification and the publish gate."""

import pytest

from registrar.core import ir
from registrar.core.analyzer import extract_import_facts
from registrar.core.classifier import (
    canonical_identifier,
    check_publishable,
    classify_dependencies,
    direct_registry_dependencies,
    local_import_paths,
    merge_internal_dependencies,
    partition_imports,
    unresolved_paths,
)
from registrar.core.errors import UnresolvedInternalDependency

COMPONENT = """\
import * as React from "react"
import { cn } from "../lib/utils"
import { Icon } from "./icon"
"""

DEMO = """\
import { useState } from "react"
import { toast } from "sonner"
import { Icon } from "./icon"
import { Spinner } from "./spinner"
"""


class TestPartition:
    """Every import fact lands in exactly one bucket."""

    def test_partition(self):
        facts = extract_import_facts(COMPONENT)
        package, local = partition_imports(facts)
        assert [f.raw_path for f in package] == ["react"]
        assert [f.raw_path for f in local] == ["../lib/utils", "./icon"]
        assert len(package) + len(local) == len(facts)

    def test_local_paths_across_lists(self):
        paths = local_import_paths(extract_import_facts(COMPONENT), extract_import_facts(DEMO))
        assert paths == ["../lib/utils", "./icon", "./spinner"]


class TestClassify:
    """The three persisted dependency maps."""

    def test_maps(self):
        maps = classify_dependencies(
            extract_import_facts(COMPONENT),
            extract_import_facts(DEMO),
            existing_internal={"./icon": "icon"},
            known_versions={"react": "^18.2.0"},
        )
        assert maps.external_dependencies == {"react": "^18.2.0"}
        assert maps.demo_external_dependencies == {"react": "^18.2.0", "sonner": "latest"}
        assert maps.internal_dependencies == {
            "../lib/utils": "",
            "./icon": "icon",
            "./spinner": "",
        }

    def test_stale_internal_entries_dropped(self):
        maps = classify_dependencies(
            extract_import_facts('import { Icon } from "./icon"'),
            [],
            existing_internal={"./icon": "icon", "./old": "old"},
        )
        assert maps.internal_dependencies == {"./icon": "icon"}

    def test_no_imports(self):
        maps = classify_dependencies([], [])
        assert maps == ir.DependencyMaps()

    def test_merge_keeps_discovery_order(self):
        merged = merge_internal_dependencies(["./b", "./a", "./b"], {"./a": "a"})
        assert list(merged.items()) == [("./b", ""), ("./a", "a")]


class TestPublishGate:
    """Entries with unresolved internal dependencies cannot be published."""

    def test_unresolved_paths(self):
        assert unresolved_paths({"./a": "a", "./b": "", "./c": "  "}) == ["./b", "./c"]

    def test_blocks_unresolved(self):
        with pytest.raises(UnresolvedInternalDependency) as exc_info:
            check_publishable({"./icon": "icon", "./spinner": ""})
        assert exc_info.value.paths == ["./spinner"]
        assert "Please specify the slug for all internal dependencies" in str(exc_info.value)

    def test_allows_resolved(self):
        check_publishable({"./icon": "icon"})
        check_publishable({})


class TestIdentifiers:
    """Canonical owner/slug identifiers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("icon", "alice/icon"),
            ("bob/icon", "bob/icon"),
            (" icon ", "alice/icon"),
            ("", ""),
        ],
    )
    def test_canonical_identifier(self, value, expected):
        assert canonical_identifier("alice", value) == expected

    def test_direct_dependencies_deduplicated(self):
        internal = {"./icon": "icon", "../icon": "alice/icon", "./x": "bob/x"}
        assert direct_registry_dependencies("alice", internal) == ["alice/icon", "bob/x"]
