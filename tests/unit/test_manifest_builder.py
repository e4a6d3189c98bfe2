"""Tests for the installer manifest builder."""

from registrar.core import ir
from registrar.core.manifest_builder import build_registry_manifest, file_path_for, registry_type


def resolved_set(*items: tuple[str, str, str]) -> ir.ResolvedSet:
    return ir.ResolvedSet(
        entries={
            identifier: ir.ResolvedEntry(identifier=identifier, source_text=text, registry=ns)
            for identifier, text, ns in items
        }
    )


def root_entry(**overrides) -> ir.RegistryEntry:
    data = {"owner": "alice", "slug": "button", "name": "Button", "code_ref": "ref"}
    data.update(overrides)
    return ir.RegistryEntry(**data)


class TestBuildManifest:
    """Manifest shape served to the installer."""

    def test_wire_shape(self):
        root = root_entry(external_dependencies={"framer-motion": "^11.0.0", "clsx": "latest"})
        resolved = resolved_set(
            ("alice/button", "button source", "ui"),
            ("alice/use-press", "hook source", "hook"),
        )
        manifest = build_registry_manifest(root, resolved)
        assert manifest.to_wire() == {
            "name": "button",
            "type": "registry:ui",
            "dependencies": ["framer-motion", "clsx"],
            "files": [
                {
                    "path": "alice/button.tsx",
                    "content": "button source",
                    "type": "registry:ui",
                    "target": "",
                },
                {
                    "path": "alice/use-press.tsx",
                    "content": "hook source",
                    "type": "registry:hook",
                    "target": "",
                },
            ],
        }

    def test_dependencies_omitted_when_empty(self):
        manifest = build_registry_manifest(
            root_entry(), resolved_set(("alice/button", "x", "ui"))
        )
        assert "dependencies" not in manifest.to_wire()

    def test_dependency_externals_not_flattened(self):
        # Only the root's package names are listed, whatever the files import
        root = root_entry(external_dependencies={"react": "latest"})
        resolved = resolved_set(("alice/button", "a", "ui"), ("alice/icon", "b", "ui"))
        assert build_registry_manifest(root, resolved).dependencies == ["react"]

    def test_one_file_per_identifier_in_order(self):
        resolved = resolved_set(
            ("alice/button", "a", "ui"),
            ("bob/icon", "b", "ui"),
            ("alice/spinner", "c", "ui"),
        )
        manifest = build_registry_manifest(root_entry(), resolved)
        assert [f.path for f in manifest.files] == [
            "alice/button.tsx",
            "bob/icon.tsx",
            "alice/spinner.tsx",
        ]

    def test_custom_extension(self):
        manifest = build_registry_manifest(
            root_entry(), resolved_set(("alice/button", "a", "ui")), file_extension=".jsx"
        )
        assert manifest.files[0].path == "alice/button.jsx"

    def test_root_namespace(self):
        manifest = build_registry_manifest(
            root_entry(registry="hook"), resolved_set(("alice/button", "a", "hook"))
        )
        assert manifest.type == "registry:hook"
        assert manifest.name == "button"


def test_helpers():
    assert registry_type("ui") == "registry:ui"
    assert file_path_for("alice/button") == "alice/button.tsx"
