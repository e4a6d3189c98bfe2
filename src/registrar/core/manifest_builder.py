"""
Manifest builder.

Renders a ResolvedSet into the JSON manifest consumed by the command-line
installer. Field names and nesting must not change.
"""

from . import ir

DEFAULT_FILE_EXTENSION = ".tsx"


def registry_type(namespace: str) -> str:
    """``ui`` -> ``registry:ui``."""
    return f"registry:{namespace}"


def file_path_for(identifier: str, file_extension: str = DEFAULT_FILE_EXTENSION) -> str:
    """Stable file path for a resolved identifier, e.g. ``alice/button.tsx``."""
    return f"{identifier}{file_extension}"


def build_registry_manifest(
    root: ir.RegistryEntry,
    resolved: ir.ResolvedSet,
    file_extension: str = DEFAULT_FILE_EXTENSION,
) -> ir.RegistryManifest:
    """
    Build the installer manifest for ``root``.

    One file per resolved identifier, in discovery order. ``dependencies``
    lists only the root entry's external package names; dependencies of
    internal dependencies are not flattened in.

    Args:
        root: The requested registry entry
        resolved: ResolvedSet computed from the root (and its direct deps)
        file_extension: Appended to each identifier to form the file path

    Returns:
        RegistryManifest ready for ``to_wire()``
    """
    files = [
        ir.ManifestFile(
            path=file_path_for(entry.identifier, file_extension),
            content=entry.source_text,
            type=registry_type(entry.registry),
            target="",
        )
        for entry in resolved.entries.values()
    ]
    dependencies = list(root.external_dependencies)

    return ir.RegistryManifest(
        name=root.slug,
        type=registry_type(root.registry),
        dependencies=dependencies or None,
        files=files,
    )
