"""
Error types for source analysis, dependency classification, and resolution.
"""

from dataclasses import dataclass
from typing import Optional


class RegistryError(Exception):
    """Base exception for all registrar errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(RegistryError):
    """
    Raised when submitted source text cannot be tokenized or parsed.

    Examples:
    - Unterminated block comment or template literal
    - Unbalanced braces
    - Malformed import or export statement
    """

    pass


class MultipleOrNoDemoExport(RegistryError):
    """
    Raised when a demo file does not export exactly one render entry.

    Submitter-correctable; blocks publishing.
    """

    def __init__(self, candidates: list[str], message: str | None = None):
        self.candidates = list(candidates)
        if message is None:
            if candidates:
                message = (
                    "Demo must export exactly one component, found "
                    f"{len(candidates)}: {', '.join(candidates)}"
                )
            else:
                message = "Demo must export exactly one component, found none"
        super().__init__(message)


class UnresolvedInternalDependency(RegistryError):
    """
    Raised at publish time when an internal dependency has no slug.

    Submitter-correctable; blocks publishing.
    """

    def __init__(self, paths: list[str]):
        self.paths = list(paths)
        super().__init__(
            "Please specify the slug for all internal dependencies: " + ", ".join(self.paths)
        )


class DependencyNotFound(RegistryError):
    """
    Raised when a registry entry required during resolution cannot be fetched.

    Aborts the whole resolution; no partial result is ever returned.
    """

    def __init__(self, identifier: str, message: str | None = None):
        self.identifier = identifier
        super().__init__(message or f"Registry dependency '{identifier}' not found")


class ResolutionTimeout(DependencyNotFound):
    """Raised when a backing-store fetch exceeds the resolver's timeout."""

    def __init__(self, identifier: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            identifier,
            f"Timed out after {timeout}s fetching registry dependency '{identifier}'",
        )


class BackingStoreUnavailable(RegistryError):
    """
    Raised when the backing store cannot be reached.

    Transient; safe to retry with backoff at the serving layer.
    """

    pass


class ConcurrentModification(RegistryError):
    """Raised when an entry update loses a compare-and-set race."""

    def __init__(self, identifier: str, expected: int, actual: int):
        self.identifier = identifier
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Entry '{identifier}' was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )


class DuplicateEntry(RegistryError):
    """Raised when creating an entry whose (owner, slug) already exists."""

    pass


@dataclass
class ErrorContext:
    """
    Context information for an error, including source location.

    Attributes:
        source: Name of the source unit (e.g. "component" or "button.tsx")
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        snippet: Optional lines of code surrounding the error location
    """

    source: str
    line: int
    column: int
    snippet: str | None = None

    def format(self) -> str:
        """
        Format error context as a human-readable string.

        Returns:
            Formatted string like: "button.tsx:10:5"
        """
        location = f"{self.source}:{self.line}:{self.column}"
        if self.snippet:
            return f"{location}\n{self._format_snippet()}"
        return location

    def _format_snippet(self) -> str:
        """Format code snippet with line numbers and error marker."""
        if not self.snippet:
            return ""

        lines = self.snippet.split("\n")
        formatted = []

        # Snippet starts up to 2 lines before the error line
        start_line = max(1, self.line - 2)

        for i, line in enumerate(lines):
            line_num = start_line + i
            prefix = f"{line_num:4d} | "
            formatted.append(prefix + line)

            if line_num == self.line:
                marker_pos = len(prefix) + self.column - 1
                formatted.append(" " * marker_pos + "^^^")

        return "\n".join(formatted)


def extract_snippet(text: str, line: int, radius: int = 2) -> str:
    """Return the lines of ``text`` within ``radius`` of ``line`` (1-indexed)."""
    lines = text.split("\n")
    start = max(1, line - radius)
    end = min(len(lines), line + radius)
    return "\n".join(lines[start - 1 : end])


def make_parse_error(
    message: str,
    source: str,
    line: int,
    column: int,
    text: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        source: Source unit name
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        text: Full source text, used to cut a snippet around the error

    Returns:
        ParseError with context attached
    """
    snippet = extract_snippet(text, line) if text is not None else None
    context = ErrorContext(source=source, line=line, column=column, snippet=snippet)
    return ParseError(message, context)
