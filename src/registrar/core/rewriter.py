"""
Source rewrites applied before a submission is stored.

Each rewrite is idempotent: running it on its own output returns the text
unchanged. Edits are computed as spans over the original text and applied
back to front so earlier offsets stay valid.
"""

import logging
from dataclasses import dataclass, field

from .parser import ExportKind, ImportSpecifier, ImportStatement, parse_source

logger = logging.getLogger(__name__)


@dataclass
class RemovalResult:
    """Demo text with self-imports removed, plus the paths that were touched."""

    modified_code: str
    removed_imports: list[str] = field(default_factory=list)


Edit = tuple[int, int, str]


def apply_edits(text: str, edits: list[Edit]) -> str:
    """Apply non-overlapping ``(start, end, replacement)`` edits."""
    for start, end, replacement in sorted(edits, key=lambda edit: edit[0], reverse=True):
        text = text[:start] + replacement + text[end:]
    return text


def wrap_default_export(text: str, source: str = "component") -> str:
    """
    Make the default export importable by name as well.

    - ``export default Button;`` becomes ``export { Button, Button as default };``
    - ``export default function Button()`` becomes ``export function Button()``
      with ``export default Button;`` appended
    - ``export { Button as default }`` gets an ``export { Button };`` appended

    Anonymous defaults and defaults that are already exported by name are
    left alone.
    """
    syntax = parse_source(text, source)
    named: set[str] = set()
    for statement in syntax.exports:
        if not statement.type_only:
            named.update(statement.names)

    edits: list[Edit] = []
    trailer = None
    for statement in syntax.exports:
        name = statement.default_name
        if not name or name == "default" or name in named or statement.source is not None:
            continue

        if statement.kind == ExportKind.DEFAULT_NAME:
            replacement = f"export {{ {name}, {name} as default }};"
            edits.append((statement.start, statement.end, replacement))
        elif statement.kind == ExportKind.DEFAULT_DECLARATION and statement.default_token:
            keyword = statement.async_token or statement.declaration_token
            if keyword is None:
                continue
            edits.append((statement.default_token.start, keyword.start, ""))
            trailer = f"export default {name};"
        elif statement.kind == ExportKind.NAMED_LIST:
            trailer = f"export {{ {name} }};"

    if not edits and trailer is None:
        return text

    result = apply_edits(text, edits)
    if trailer is not None:
        result = result.rstrip("\n") + f"\n\n{trailer}\n"
    logger.debug(f"Wrapped default export in {source}")
    return result


def remove_async_from_export(text: str, source: str = "demo") -> str:
    """
    Strip ``async`` from exported functions and arrow functions.

    Demo entry points are rendered synchronously, so ``export default async
    function Demo()`` becomes ``export default function Demo()``.
    """
    syntax = parse_source(text, source)
    edits: list[Edit] = []
    for statement in syntax.exports:
        token = statement.async_token
        if token is None:
            continue
        end = token.end
        while end < len(text) and text[end] in " \t":
            end += 1
        edits.append((token.start, end, ""))

    if not edits:
        return text
    logger.debug(f"Removed {len(edits)} async modifier(s) from {source}")
    return apply_edits(text, edits)


def remove_component_imports(
    text: str,
    component_names: list[str] | set[str],
    source: str = "demo",
) -> RemovalResult:
    """
    Remove demo imports of names the component itself exports.

    Only the matching specifiers are dropped; a statement left with no
    bindings is deleted entirely (never turned into a side-effect import).

    Args:
        text: Demo source text
        component_names: Names exported by the component being demonstrated
        source: Source unit name (for error messages)

    Returns:
        RemovalResult with the modified text and each touched path once
    """
    names = set(component_names)
    syntax = parse_source(text, source)
    edits: list[Edit] = []
    removed: list[str] = []

    for statement in syntax.imports:
        kept = [spec for spec in statement.specifiers if spec.local not in names]
        if len(kept) == len(statement.specifiers):
            continue
        if statement.source not in removed:
            removed.append(statement.source)
        if kept:
            edits.append((statement.start, statement.end, _render_import(statement, kept)))
        else:
            edits.append((statement.start, _line_end(text, statement.end), ""))

    if removed:
        logger.debug(f"Removed self-imports from {source}: {removed}")
    return RemovalResult(modified_code=apply_edits(text, edits), removed_imports=removed)


def _line_end(text: str, end: int) -> int:
    """Extend a deleted span over trailing blanks and one line break."""
    position = end
    while position < len(text) and text[position] in " \t":
        position += 1
    if text.startswith("\r\n", position):
        return position + 2
    if position < len(text) and text[position] == "\n":
        return position + 1
    return end if position < len(text) else position


def _render_import(statement: ImportStatement, specifiers: list[ImportSpecifier]) -> str:
    parts: list[str] = []
    clause: list[str] = []
    for spec in specifiers:
        if spec.imported == "default":
            parts.append(spec.local)
        elif spec.imported == "*":
            parts.append(f"* as {spec.local}")
        else:
            entry = spec.imported
            if spec.imported != spec.local:
                entry = f"{spec.imported} as {spec.local}"
            if spec.type_only and not statement.type_only:
                entry = f"type {entry}"
            clause.append(entry)
    if clause:
        parts.append("{ " + ", ".join(clause) + " }")

    keyword = "import type" if statement.type_only else "import"
    terminator = ";" if statement.terminated else ""
    return f"{keyword} {', '.join(parts)} from {statement.source_raw}{terminator}"
