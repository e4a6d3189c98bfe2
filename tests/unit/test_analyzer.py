"""Tests for source analysis."""

import pytest

from registrar.core import ir
from registrar.core.analyzer import (
    ResolutionTable,
    analyze_source,
    extract_component_names,
    extract_demo_component_name,
    extract_dependencies,
    extract_import_facts,
    package_name,
    versions_from_package_json,
)
from registrar.core.config import AnalysisConfig
from registrar.core.errors import MultipleOrNoDemoExport, ParseError


def package_fact(path: str) -> ir.ImportFact:
    return ir.ImportFact(raw_path=path, kind=ir.ImportKind.PACKAGE)


class TestExportedNames:
    """Component export name extraction."""

    def test_declaration_order_and_dedup(self):
        text = "export function A() {}\nexport const b = 1\nexport { A }"
        assert extract_component_names(text) == ["A", "b"]

    def test_types_are_excluded(self):
        text = "export interface P {}\nexport type T = string\nexport function C() {}"
        assert extract_component_names(text) == ["C"]

    def test_enums_are_included(self):
        assert extract_component_names("export enum Size { Sm, Lg }") == ["Size"]

    def test_named_default_contributes_name(self):
        facts = analyze_source("export default function Button() {}")
        assert facts.exported_names == ["Button"]
        assert facts.default_export == "Button"

    def test_default_name_after_declaration(self):
        text = "const Badge = () => null\nexport default Badge"
        assert extract_component_names(text) == ["Badge"]

    def test_default_in_export_list_keeps_clause_order(self):
        text = (
            "function Card() {}\n"
            "function CardHeader() {}\n"
            "export { Card as default, CardHeader }\n"
        )
        facts = analyze_source(text)
        assert facts.exported_names == ["Card", "CardHeader"]
        assert facts.default_export == "Card"

    def test_default_in_middle_of_export_list(self):
        text = "export { a, B as default, c }"
        assert extract_component_names(text) == ["a", "B", "c"]

    def test_sole_anonymous_default_is_synthesized(self):
        facts = analyze_source("export default () => null")
        assert facts.exported_names == ["default"]
        assert facts.default_export == "default"

    def test_anonymous_default_with_other_exports(self):
        facts = analyze_source("export const a = 1\nexport default () => null")
        assert facts.exported_names == ["a"]
        assert facts.default_export == "default"

    def test_namespace_reexport(self):
        assert extract_component_names('export * as icons from "./icons"') == ["icons"]

    def test_reexported_default_alias(self):
        text = 'export { default as Icon } from "./icon"'
        assert extract_component_names(text) == ["Icon"]

    def test_no_exports(self):
        facts = analyze_source("const a = 1")
        assert facts.exported_names == []
        assert facts.default_export is None

    def test_parse_error_propagates(self):
        with pytest.raises(ParseError):
            extract_component_names("export { a")


class TestDemoComponentName:
    """Demo render entry extraction."""

    def test_named_default_wins(self):
        text = "export function Helper() {}\nexport default function Demo() {}"
        assert extract_demo_component_name(text) == "Demo"

    def test_single_named_export(self):
        assert extract_demo_component_name("export function Demo() {}") == "Demo"

    def test_several_named_exports(self):
        with pytest.raises(MultipleOrNoDemoExport) as exc_info:
            extract_demo_component_name("export function A() {}\nexport function B() {}")
        assert exc_info.value.candidates == ["A", "B"]

    def test_no_exports(self):
        with pytest.raises(MultipleOrNoDemoExport) as exc_info:
            extract_demo_component_name("function Demo() {}")
        assert exc_info.value.candidates == []

    def test_anonymous_default(self):
        with pytest.raises(MultipleOrNoDemoExport):
            extract_demo_component_name("export default () => <div />")


class TestImportFacts:
    """Import facts and local/package classification."""

    def test_kinds_and_names(self):
        text = (
            'import { motion, AnimatePresence } from "framer-motion"\n'
            'import { Card } from "./card"\n'
            'import type { Props } from "../types"\n'
        )
        facts = extract_import_facts(text)
        assert [(f.raw_path, f.kind) for f in facts] == [
            ("framer-motion", ir.ImportKind.PACKAGE),
            ("./card", ir.ImportKind.LOCAL),
            ("../types", ir.ImportKind.LOCAL),
        ]
        assert facts[0].imported_names == frozenset({"motion", "AnimatePresence"})
        assert facts[2].type_only is True
        assert [f.line for f in facts] == [1, 2, 3]

    def test_reexports_are_facts(self):
        text = 'export { Button } from "./button"\nexport * from "clsx"'
        facts = extract_import_facts(text)
        assert [f.raw_path for f in facts] == ["./button", "clsx"]
        assert facts[0].imported_names == frozenset({"Button"})
        assert facts[1].imported_names == frozenset({"*"})

    def test_alias_prefixes(self):
        table = ResolutionTable.from_config(AnalysisConfig(alias_prefixes=["@/"]))
        facts = extract_import_facts('import { cn } from "@/lib/utils"', table=table)
        assert facts[0].kind == ir.ImportKind.LOCAL

    def test_scoped_package_without_alias(self):
        facts = extract_import_facts('import { Slot } from "@radix-ui/react-slot"')
        assert facts[0].kind == ir.ImportKind.PACKAGE

    @pytest.mark.parametrize("path", [".", "..", "./a", "../a/b"])
    def test_relative_paths_are_local(self, path):
        assert ResolutionTable().is_local(path)

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("react", "react"),
            ("lodash/debounce", "lodash"),
            ("@radix-ui/react-slot", "@radix-ui/react-slot"),
            ("@radix-ui/react-slot/dist/index", "@radix-ui/react-slot"),
        ],
    )
    def test_package_name(self, path, expected):
        assert package_name(path) == expected


class TestDependencies:
    """Package version maps."""

    def test_sentinel_when_unknown(self):
        assert extract_dependencies([package_fact("framer-motion")]) == {"framer-motion": "latest"}

    def test_collapses_subpaths(self):
        facts = [package_fact("lodash"), package_fact("lodash/debounce")]
        assert extract_dependencies(facts) == {"lodash": "latest"}

    def test_first_non_sentinel_replaces_sentinel(self):
        facts = [package_fact("lodash"), package_fact("lodash/debounce")]
        versions = {"lodash/debounce": "^4.0.0"}
        assert extract_dependencies(facts, versions) == {"lodash": "^4.0.0"}

    def test_first_non_sentinel_is_kept(self):
        facts = [package_fact("lodash"), package_fact("lodash/debounce")]
        versions = {"lodash": "^4.17.0", "lodash/debounce": "^4.0.0"}
        assert extract_dependencies(facts, versions) == {"lodash": "^4.17.0"}

    def test_local_imports_are_ignored(self):
        facts = [ir.ImportFact(raw_path="./card", kind=ir.ImportKind.LOCAL)]
        assert extract_dependencies(facts) == {}

    def test_custom_sentinel(self):
        assert extract_dependencies([package_fact("clsx")], sentinel="*") == {"clsx": "*"}

    def test_package_json_precedence(self):
        text = """{
            "dependencies": {"react": "^18.2.0"},
            "devDependencies": {"react": "^18.0.0", "vitest": "^1.0.0"},
            "peerDependencies": {"clsx": "^2.0.0"}
        }"""
        assert versions_from_package_json(text) == {
            "react": "^18.2.0",
            "vitest": "^1.0.0",
            "clsx": "^2.0.0",
        }


class TestIdempotence:
    """Analyzing the same text twice gives the same facts."""

    @pytest.mark.parametrize(
        "text",
        [
            'import * as React from "react"\nexport default function Button() {}',
            'import { a } from "./a"\nexport { a }\nexport const b = () => null',
            "export default () => null",
        ],
    )
    def test_repeatable(self, text):
        assert analyze_source(text) == analyze_source(text)
