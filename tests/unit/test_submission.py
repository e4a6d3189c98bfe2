"""Tests for the submission pipeline."""

import pytest

from registrar.core.config import AnalysisConfig
from registrar.core.errors import (
    MultipleOrNoDemoExport,
    ParseError,
    UnresolvedInternalDependency,
)
from registrar.core.submission import (
    analyze_submission,
    build_entry,
    is_preview_ready,
    main_component_display_name,
)

CARD_COMPONENT = """\
import { cn } from "@/lib/utils"
import { Icon } from "./icon"

export function Card() {
  return <div className={cn("card")}><Icon /></div>
}

export function CardHeader() {
  return <header />
}
"""

CARD_DEMO = """\
import { Card, CardHeader } from "./card"
import { toast } from "sonner"

export default async function CardDemo() {
  return <Card><CardHeader /></Card>
}
"""


class TestAnalyzeSubmission:
    """End-to-end analysis of a component and its demo."""

    def test_button(self, button_sources):
        component, demo = button_sources
        analysis = analyze_submission(component, demo, known_versions={"react": "^18.2.0"})

        assert analysis.exported_names == ["Button"]
        assert analysis.demo_export_name == "Demo"
        assert analysis.external_dependencies == {
            "react": "^18.2.0",
            "framer-motion": "latest",
        }
        assert analysis.demo_external_dependencies == {}
        assert analysis.internal_dependencies == {}
        assert analysis.removed_imports == ["./button"]
        assert analysis.main_component_name == "Button"
        assert analysis.preview_ready is True
        assert analysis.publishable is True

    def test_component_default_is_wrapped(self, button_sources):
        component, demo = button_sources
        analysis = analyze_submission(component, demo)
        assert "export function Button(" in analysis.rewritten_component
        assert analysis.rewritten_component.endswith("\n\nexport default Button;\n")

    def test_demo_is_rewritten(self):
        analysis = analyze_submission(CARD_COMPONENT, CARD_DEMO)
        assert "./card" not in analysis.rewritten_demo
        assert "async" not in analysis.rewritten_demo
        assert analysis.rewritten_demo.startswith('import { toast } from "sonner"')
        assert analysis.demo_export_name == "CardDemo"
        assert analysis.demo_external_dependencies == {"sonner": "latest"}

    def test_internal_dependencies_block_publishing(self):
        analysis = analyze_submission(CARD_COMPONENT, CARD_DEMO)
        # "@/lib/utils" is a package unless configured as an alias
        assert analysis.internal_dependencies == {"./icon": ""}
        assert analysis.external_dependencies == {"@/lib": "latest"}
        assert analysis.publishable is False
        assert analysis.preview_ready is False

    def test_alias_prefix_makes_import_local(self):
        config = AnalysisConfig(alias_prefixes=["@/"])
        analysis = analyze_submission(CARD_COMPONENT, CARD_DEMO, config=config)
        assert analysis.internal_dependencies == {"@/lib/utils": "", "./icon": ""}
        assert analysis.external_dependencies == {}

    def test_existing_slugs_are_kept(self):
        analysis = analyze_submission(
            CARD_COMPONENT, CARD_DEMO, existing_internal={"./icon": "icon", "./gone": "gone"}
        )
        assert analysis.internal_dependencies == {"./icon": "icon"}
        assert analysis.publishable is True

    def test_default_export_list_display_name(self):
        component = (
            "function Card() {\n  return <div />\n}\n"
            "function CardHeader() {\n  return <header />\n}\n"
            "export { Card as default, CardHeader }\n"
        )
        demo = "export default function CardDemo() {\n  return <div />\n}\n"
        analysis = analyze_submission(component, demo)
        assert analysis.exported_names == ["Card", "CardHeader"]
        assert analysis.main_component_name == "Card"
        assert analysis.rewritten_component.endswith("export { Card };\n")

    def test_custom_sentinel(self, button_sources):
        component, demo = button_sources
        analysis = analyze_submission(component, demo, config=AnalysisConfig(version_sentinel="*"))
        assert analysis.external_dependencies["framer-motion"] == "*"

    def test_demo_without_entry(self, button_sources):
        component, _ = button_sources
        with pytest.raises(MultipleOrNoDemoExport):
            analyze_submission(component, "export const a = 1\nexport const b = 2\n")

    def test_unparseable_component(self, button_sources):
        _, demo = button_sources
        with pytest.raises(ParseError) as exc_info:
            analyze_submission("export { Button", demo)
        assert exc_info.value.context.source == "component"

    def test_repeatable(self, button_sources):
        component, demo = button_sources
        assert analyze_submission(component, demo) == analyze_submission(component, demo)


class TestBuildEntry:
    """Entries built from an analysis."""

    def test_defaults(self, button_sources):
        analysis = analyze_submission(*button_sources)
        entry = build_entry("alice", "button", analysis, code_ref="c", demo_ref="d")
        assert entry.identifier == "alice/button"
        assert entry.name == "Button"
        assert entry.registry == "ui"
        assert entry.exported_names == ["Button"]
        assert entry.demo_export_name == "Demo"
        assert entry.version == 1

    def test_explicit_name(self, button_sources):
        analysis = analyze_submission(*button_sources)
        entry = build_entry("alice", "button", analysis, "c", "d", name="Fancy Button")
        assert entry.name == "Fancy Button"

    def test_unresolved_blocks(self):
        analysis = analyze_submission(CARD_COMPONENT, CARD_DEMO)
        with pytest.raises(UnresolvedInternalDependency) as exc_info:
            build_entry("alice", "card", analysis, "c", "d")
        assert exc_info.value.paths == ["./icon"]


class TestDisplayHelpers:
    @pytest.mark.parametrize(
        "names,expected",
        [
            (["HoverCard", "HoverCardContent"], "Hover Card"),
            (["buttonVariants", "Button"], "Button"),
            (["useToggle"], None),
            ([], None),
        ],
    )
    def test_main_component_display_name(self, names, expected):
        assert main_component_display_name(names) == expected

    def test_preview_ready(self):
        assert is_preview_ready("a", "b", {})
        assert not is_preview_ready("a", "  ", {})
        assert not is_preview_ready("", "b", {})
        assert not is_preview_ready("a", "b", {"./x": "x"})
