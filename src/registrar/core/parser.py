"""
Parser for top-level import and export statements.

Walks the token stream from the lexer, tracks bracket depth, and parses only
the statements that sit at module level. Function bodies, JSX and expressions
are skipped without being interpreted.
"""

from dataclasses import dataclass, field
from enum import Enum

from .errors import make_parse_error
from .lexer import Token, TokenType, tokenize

OPENERS = {TokenType.LBRACE, TokenType.LPAREN, TokenType.LBRACKET}
CLOSERS = {TokenType.RBRACE, TokenType.RPAREN, TokenType.RBRACKET}

# Keyword tokens that are valid binding/property names
NAME_KEYWORDS = {
    TokenType.IMPORT,
    TokenType.EXPORT,
    TokenType.FROM,
    TokenType.AS,
    TokenType.DEFAULT,
    TokenType.FUNCTION,
    TokenType.CLASS,
    TokenType.CONST,
    TokenType.LET,
    TokenType.VAR,
    TokenType.ASYNC,
    TokenType.TYPE,
    TokenType.INTERFACE,
    TokenType.ENUM,
    TokenType.DECLARE,
    TokenType.ABSTRACT,
}
NAME_TYPES = NAME_KEYWORDS | {TokenType.IDENTIFIER}

# Tokens after which a line break ends an expression
EXPRESSION_ENDERS = NAME_TYPES | {
    TokenType.STRING,
    TokenType.NUMBER,
    TokenType.TEMPLATE,
    TokenType.REGEX,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.RBRACE,
}


class ExportKind(Enum):
    """Shapes of export statements."""

    DECLARATION = "declaration"  # export function F / export const a = ...
    DEFAULT_DECLARATION = "default_declaration"  # export default function F
    DEFAULT_NAME = "default_name"  # export default F
    DEFAULT_EXPRESSION = "default_expression"  # export default memo(F)
    NAMED_LIST = "named_list"  # export { a, b as c }
    NAMESPACE = "namespace"  # export * from "x" / export * as ns from "x"


@dataclass
class ImportSpecifier:
    """
    One binding introduced by an import (or listed by an export clause).

    ``imported`` is the name in the source module: ``"default"`` for default
    imports, ``"*"`` for namespace imports.
    """

    imported: str
    local: str
    type_only: bool = False


@dataclass
class ImportStatement:
    """A top-level import statement with its source span."""

    source: str
    source_raw: str
    specifiers: list[ImportSpecifier]
    type_only: bool
    terminated: bool
    start: int
    end: int
    line: int
    column: int

    @property
    def local_names(self) -> list[str]:
        return [spec.local for spec in self.specifiers]


@dataclass
class ExportStatement:
    """
    A top-level export statement.

    Attributes:
        kind: Shape of the statement
        names: Runtime names this statement exports (never "default")
        default_name: Local name bound to the default export, if any
        declaration: Declaration keyword ("function", "class", "const", ...)
        specifiers: Clause entries for list exports (local -> exported)
        source: Re-export module specifier
        type_only: True for interfaces, type aliases, ``export type {...}``
        default_token: The ``default`` keyword token
        async_token: An ``async`` modifier on the exported function/arrow
        declaration_token: The ``function``/``class`` keyword token
    """

    kind: ExportKind
    start: int
    end: int
    line: int
    column: int
    names: list[str] = field(default_factory=list)
    default_name: str | None = None
    declaration: str | None = None
    specifiers: list[ImportSpecifier] = field(default_factory=list)
    source: str | None = None
    source_raw: str | None = None
    type_only: bool = False
    terminated: bool = False
    default_token: Token | None = None
    async_token: Token | None = None
    declaration_token: Token | None = None

    @property
    def is_default(self) -> bool:
        return self.kind in (
            ExportKind.DEFAULT_DECLARATION,
            ExportKind.DEFAULT_NAME,
            ExportKind.DEFAULT_EXPRESSION,
        ) or self.default_name is not None


@dataclass
class ModuleSyntax:
    """Top-level import/export structure of one source unit."""

    text: str
    imports: list[ImportStatement] = field(default_factory=list)
    exports: list[ExportStatement] = field(default_factory=list)


class BaseParser:
    """
    Base parser class with token manipulation utilities.

    Provides the token navigation, matching, and error generation used by the
    statement parser.
    """

    def __init__(self, tokens: list[Token], text: str, source: str):
        """
        Initialize parser.

        Args:
            tokens: List of tokens from lexer
            text: Original source text (for spans and error snippets)
            source: Source unit name (for error reporting)
        """
        self.tokens = tokens
        self.text = text
        self.source = source
        self.pos = 0

    def current_token(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[self.pos]

    def peek_token(self, offset: int = 1) -> Token:
        """Peek ahead at token."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[pos]

    def previous_token(self) -> Token | None:
        """Return the last consumed token."""
        if self.pos == 0:
            return None
        return self.tokens[self.pos - 1]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.current_token()
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def match(self, *token_types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current_token().type in token_types

    def error(self, message: str, token: Token | None = None) -> Exception:
        token = token or self.current_token()
        return make_parse_error(message, self.source, token.line, token.column, self.text)

    def expect(self, token_type: TokenType) -> Token:
        """
        Expect a specific token type and consume it.

        Raises:
            ParseError: If token doesn't match
        """
        token = self.current_token()
        if token.type != token_type:
            got = "end of input" if token.type == TokenType.EOF else repr(token.value)
            raise self.error(f"Expected {token_type.value!r}, got {got}", token)
        return self.advance()

    def expect_name(self) -> Token:
        """Expect an identifier, accepting contextual keywords as names."""
        token = self.current_token()
        if token.type in NAME_TYPES:
            return self.advance()
        got = "end of input" if token.type == TokenType.EOF else repr(token.value)
        raise self.error(f"Expected identifier, got {got}", token)

    def expect_module_name(self) -> Token:
        """Expect a name in an import/export clause (identifier or string)."""
        if self.match(TokenType.STRING):
            return self.advance()
        return self.expect_name()

    def consume_semicolon(self) -> bool:
        """Consume an optional statement-terminating semicolon."""
        if self.match(TokenType.SEMICOLON):
            self.advance()
            return True
        return False

    def end_offset(self) -> int:
        """Offset just past the last consumed token."""
        previous = self.previous_token()
        return previous.end if previous else 0


class StatementParser(BaseParser):
    """
    Recursive descent parser for module-level import/export statements.

    Everything that is not an import or export at depth zero is skipped while
    keeping bracket depth, so nested code can never be mistaken for a
    top-level statement.
    """

    def parse(self) -> ModuleSyntax:
        """
        Parse the token stream.

        Returns:
            ModuleSyntax with imports and exports in source order

        Raises:
            ParseError: If an import or export statement is malformed
        """
        module = ModuleSyntax(text=self.text)
        depth = 0

        while not self.match(TokenType.EOF):
            token = self.current_token()

            if depth == 0 and self._at_statement_start():
                if token.type == TokenType.IMPORT and self.peek_token().type not in (
                    TokenType.LPAREN,
                    TokenType.DOT,
                ):
                    statement = self.parse_import()
                    if statement is not None:
                        module.imports.append(statement)
                    continue
                if token.type == TokenType.EXPORT:
                    module.exports.append(self.parse_export())
                    continue

            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth = max(0, depth - 1)
            self.advance()

        return module

    def _at_statement_start(self) -> bool:
        previous = self.previous_token()
        if previous is None:
            return True
        if previous.type in (TokenType.SEMICOLON, TokenType.RBRACE):
            return True
        return previous.line < self.current_token().line and previous.type != TokenType.DOT

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def parse_import(self) -> ImportStatement | None:
        """
        Parse an import statement starting at the ``import`` keyword.

        Returns None for TypeScript namespace aliases (``import A = B.C``),
        which do not reference a module.
        """
        start = self.expect(TokenType.IMPORT)
        specifiers: list[ImportSpecifier] = []
        type_only = False

        if self._is_type_modifier():
            self.advance()
            type_only = True

        if self.match(TokenType.STRING):
            source_token = self.advance()
            return self._finish_import(start, source_token, specifiers, type_only)

        if self.match(*NAME_TYPES):
            default = self.advance()
            if self.match(TokenType.EQUALS):
                return self._parse_import_equals(start, default, type_only)
            specifiers.append(ImportSpecifier("default", default.value, type_only))
            if self.match(TokenType.COMMA):
                self.advance()
                if not self.match(TokenType.LBRACE, TokenType.STAR):
                    raise self.error("Expected '{' or '*' after default import")

        if self.match(TokenType.STAR):
            self.advance()
            self.expect(TokenType.AS)
            namespace = self.expect_name()
            specifiers.append(ImportSpecifier("*", namespace.value, type_only))
        elif self.match(TokenType.LBRACE):
            specifiers.extend(self.parse_clause(type_only))
        elif not specifiers:
            raise self.error("Malformed import statement")

        self.expect(TokenType.FROM)
        source_token = self.expect(TokenType.STRING)
        return self._finish_import(start, source_token, specifiers, type_only)

    def _is_type_modifier(self) -> bool:
        """``type`` after ``import`` is a modifier unless it is the default binding."""
        if not self.match(TokenType.TYPE):
            return False
        following = self.peek_token()
        if following.type in (TokenType.LBRACE, TokenType.STAR):
            return True
        if following.type in NAME_TYPES and following.type != TokenType.FROM:
            return True
        # "import type from 'x'" binds a default named "type"
        return following.type == TokenType.FROM and self.peek_token(2).type == TokenType.FROM

    def _parse_import_equals(
        self, start: Token, default: Token, type_only: bool
    ) -> ImportStatement | None:
        self.expect(TokenType.EQUALS)
        if self.current_token().value == "require" and self.peek_token().type == TokenType.LPAREN:
            self.advance()
            self.expect(TokenType.LPAREN)
            source_token = self.expect(TokenType.STRING)
            self.expect(TokenType.RPAREN)
            specifiers = [ImportSpecifier("default", default.value, type_only)]
            return self._finish_import(start, source_token, specifiers, type_only)
        # Namespace alias: skip the qualified name
        self.expect_name()
        while self.match(TokenType.DOT):
            self.advance()
            self.expect_name()
        self.consume_semicolon()
        return None

    def _finish_import(
        self,
        start: Token,
        source_token: Token,
        specifiers: list[ImportSpecifier],
        type_only: bool,
    ) -> ImportStatement:
        self._skip_import_attributes(source_token)
        terminated = self.consume_semicolon()
        return ImportStatement(
            source=source_token.value,
            source_raw=self.text[source_token.start : source_token.end],
            specifiers=specifiers,
            type_only=type_only,
            terminated=terminated,
            start=start.start,
            end=self.end_offset(),
            line=start.line,
            column=start.column,
        )

    def _skip_import_attributes(self, source_token: Token) -> None:
        """Skip ``with { type: "json" }`` / ``assert { ... }`` clauses."""
        token = self.current_token()
        if (
            token.value in ("with", "assert")
            and token.line == source_token.line
            and self.peek_token().type == TokenType.LBRACE
        ):
            self.advance()
            self.advance()
            while not self.match(TokenType.RBRACE, TokenType.EOF):
                self.advance()
            self.expect(TokenType.RBRACE)

    def parse_clause(self, type_only: bool = False) -> list[ImportSpecifier]:
        """Parse ``{ a, b as c, type T, "x-y" as z }``."""
        self.expect(TokenType.LBRACE)
        specifiers: list[ImportSpecifier] = []

        while not self.match(TokenType.RBRACE):
            spec_type_only = type_only
            following = self.peek_token()
            if self.match(TokenType.TYPE) and (
                following.type == TokenType.STRING
                or (following.type in NAME_TYPES and following.type != TokenType.AS)
            ):
                self.advance()
                spec_type_only = True

            imported = self.expect_module_name()
            local = imported
            if self.match(TokenType.AS):
                self.advance()
                local = self.expect_module_name()
            specifiers.append(ImportSpecifier(imported.value, local.value, spec_type_only))

            if self.match(TokenType.COMMA):
                self.advance()
            elif not self.match(TokenType.RBRACE):
                got = self.current_token()
                value = "end of input" if got.type == TokenType.EOF else repr(got.value)
                raise self.error(f"Expected ',' or '}}' in import/export clause, got {value}")

        self.expect(TokenType.RBRACE)
        return specifiers

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def parse_export(self) -> ExportStatement:
        """Parse an export statement starting at the ``export`` keyword."""
        start = self.expect(TokenType.EXPORT)
        following = self.peek_token()

        if self.match(TokenType.DEFAULT):
            return self._parse_export_default(start)
        if self.match(TokenType.STAR):
            return self._parse_export_star(start, type_only=False)
        if self.match(TokenType.LBRACE):
            return self._parse_export_list(start, type_only=False)
        if self.match(TokenType.TYPE) and following.type == TokenType.LBRACE:
            self.advance()
            return self._parse_export_list(start, type_only=True)
        if self.match(TokenType.TYPE) and following.type == TokenType.STAR:
            self.advance()
            return self._parse_export_star(start, type_only=True)
        if self.match(TokenType.EQUALS):
            # TypeScript "export = value" behaves like an anonymous default
            self.advance()
            self._skip_expression()
            return self._export(start, ExportKind.DEFAULT_EXPRESSION, default_name="default")
        if self.match(TokenType.AS):
            # "export as namespace Name" only affects ambient typings
            self.advance()
            self.expect_name()
            self.expect_name()
            return self._export(start, ExportKind.DECLARATION, type_only=True)
        return self._parse_export_declaration(start)

    def _export(self, start: Token, kind: ExportKind, **fields: object) -> ExportStatement:
        terminated = self.consume_semicolon()
        return ExportStatement(
            kind=kind,
            start=start.start,
            end=self.end_offset(),
            line=start.line,
            column=start.column,
            terminated=terminated,
            **fields,  # type: ignore[arg-type]
        )

    def _parse_export_star(self, start: Token, type_only: bool) -> ExportStatement:
        self.expect(TokenType.STAR)
        names: list[str] = []
        if self.match(TokenType.AS):
            self.advance()
            names.append(self.expect_module_name().value)
        self.expect(TokenType.FROM)
        source_token = self.expect(TokenType.STRING)
        return self._export(
            start,
            ExportKind.NAMESPACE,
            names=[] if type_only else names,
            source=source_token.value,
            source_raw=self.text[source_token.start : source_token.end],
            type_only=type_only,
        )

    def _parse_export_list(self, start: Token, type_only: bool) -> ExportStatement:
        specifiers = self.parse_clause(type_only)
        source: Token | None = None
        if self.match(TokenType.FROM):
            self.advance()
            source = self.expect(TokenType.STRING)

        names: list[str] = []
        default_name = None
        for spec in specifiers:
            if spec.type_only:
                continue
            if spec.local == "default":
                default_name = spec.imported
            else:
                names.append(spec.local)

        return self._export(
            start,
            ExportKind.NAMED_LIST,
            names=names,
            default_name=default_name,
            specifiers=specifiers,
            source=source.value if source else None,
            source_raw=self.text[source.start : source.end] if source else None,
            type_only=type_only,
        )

    def _parse_export_default(self, start: Token) -> ExportStatement:
        default_token = self.expect(TokenType.DEFAULT)
        async_token = None
        if self.match(TokenType.ASYNC) and self.peek_token().type == TokenType.FUNCTION:
            async_token = self.advance()

        if self.match(TokenType.FUNCTION):
            keyword = self.advance()
            if self.match(TokenType.STAR):
                self.advance()
            name = self.advance().value if self.match(*NAME_TYPES) else None
            return ExportStatement(
                kind=ExportKind.DEFAULT_DECLARATION,
                start=start.start,
                end=self.end_offset(),
                line=start.line,
                column=start.column,
                names=[],
                default_name=name or "default",
                declaration="function",
                default_token=default_token,
                async_token=async_token,
                declaration_token=keyword,
            )

        if self.match(TokenType.CLASS) or (
            self.match(TokenType.ABSTRACT) and self.peek_token().type == TokenType.CLASS
        ):
            if self.match(TokenType.ABSTRACT):
                self.advance()
            keyword = self.advance()
            name = None
            if self.match(*NAME_TYPES) and self.current_token().value not in (
                "extends",
                "implements",
            ):
                name = self.advance().value
            return ExportStatement(
                kind=ExportKind.DEFAULT_DECLARATION,
                start=start.start,
                end=self.end_offset(),
                line=start.line,
                column=start.column,
                default_name=name or "default",
                declaration="class",
                default_token=default_token,
                declaration_token=keyword,
            )

        if self.match(TokenType.INTERFACE):
            self.advance()
            self.expect_name()
            return ExportStatement(
                kind=ExportKind.DECLARATION,
                start=start.start,
                end=self.end_offset(),
                line=start.line,
                column=start.column,
                declaration="interface",
                type_only=True,
            )

        token = self.current_token()
        following = self.peek_token()
        if token.type in NAME_TYPES and (
            following.type in (TokenType.SEMICOLON, TokenType.EOF)
            or following.line > token.line
        ):
            self.advance()
            return self._export(
                start,
                ExportKind.DEFAULT_NAME,
                default_name=token.value,
                default_token=default_token,
            )

        if self.match(TokenType.ASYNC):
            async_token = self.current_token()
        self._skip_expression()
        return self._export(
            start,
            ExportKind.DEFAULT_EXPRESSION,
            default_name="default",
            default_token=default_token,
            async_token=async_token,
        )

    def _parse_export_declaration(self, start: Token) -> ExportStatement:
        type_only = False
        async_token = None

        while True:
            if self.match(TokenType.DECLARE):
                self.advance()
                type_only = True
            elif self.match(TokenType.ABSTRACT):
                self.advance()
            elif self.match(TokenType.ASYNC) and self.peek_token().type == TokenType.FUNCTION:
                async_token = self.advance()
            else:
                break

        token = self.current_token()

        def declaration(kind: str, names: list[str], keyword: Token) -> ExportStatement:
            return ExportStatement(
                kind=ExportKind.DECLARATION,
                start=start.start,
                end=self.end_offset(),
                line=start.line,
                column=start.column,
                names=[] if type_only else names,
                declaration=kind,
                type_only=type_only,
                async_token=async_token,
                declaration_token=keyword,
            )

        if token.type == TokenType.FUNCTION:
            self.advance()
            if self.match(TokenType.STAR):
                self.advance()
            name = self.expect_name()
            return declaration("function", [name.value], token)

        if token.type == TokenType.CLASS:
            self.advance()
            name = self.expect_name()
            return declaration("class", [name.value], token)

        if token.type == TokenType.ENUM or (
            token.type == TokenType.CONST and self.peek_token().type == TokenType.ENUM
        ):
            if token.type == TokenType.CONST:
                self.advance()
            self.advance()
            name = self.expect_name()
            return declaration("enum", [name.value], token)

        if token.type in (TokenType.CONST, TokenType.LET, TokenType.VAR):
            self.advance()
            names, arrow_async = self._parse_declarators()
            if async_token is None:
                async_token = arrow_async
            stmt = declaration(token.value, names, token)
            stmt.terminated = self.consume_semicolon()
            stmt.end = self.end_offset()
            return stmt

        if token.type in (TokenType.INTERFACE, TokenType.TYPE):
            self.advance()
            self.expect_name()
            type_only = True
            return declaration(token.value, [], token)

        if token.type == TokenType.IDENTIFIER and token.value in ("namespace", "module"):
            self.advance()
            name = self.expect_module_name()
            return declaration("namespace", [name.value], token)

        if token.type == TokenType.IMPORT:
            # "export import A = B.C"
            self.advance()
            name = self.expect_name()
            self.expect(TokenType.EQUALS)
            self.expect_name()
            while self.match(TokenType.DOT):
                self.advance()
                self.expect_name()
            stmt = declaration("import", [name.value], token)
            stmt.terminated = self.consume_semicolon()
            stmt.end = self.end_offset()
            return stmt

        got = "end of input" if token.type == TokenType.EOF else repr(token.value)
        raise self.error(f"Unsupported export statement near {got}", token)

    # ------------------------------------------------------------------
    # Variable declarations
    # ------------------------------------------------------------------

    def _parse_declarators(self) -> tuple[list[str], Token | None]:
        """
        Parse ``a = 1, { b, c: d } = obj, [e] = arr``.

        Returns the bound names and the ``async`` token of the first
        declarator's initializer when it is an async arrow function.
        """
        names: list[str] = []
        async_token = None
        first = True

        while True:
            names.extend(self._parse_binding())
            if self.match(TokenType.COLON):
                self.advance()
                self._skip_type_annotation()
            if self.match(TokenType.EQUALS):
                self.advance()
                if first and self._at_async_arrow():
                    async_token = self.current_token()
                self._skip_expression()
            first = False
            if self.match(TokenType.COMMA):
                self.advance()
                continue
            return names, async_token

    def _at_async_arrow(self) -> bool:
        if not self.match(TokenType.ASYNC):
            return False
        following = self.peek_token()
        if following.type in (TokenType.LPAREN, TokenType.LESS_THAN):
            return True
        return following.type in NAME_TYPES and self.peek_token(2).type == TokenType.ARROW

    def _parse_binding(self) -> list[str]:
        """Parse an identifier or destructuring pattern and return bound names."""
        if self.match(TokenType.LBRACE):
            return self._parse_object_pattern()
        if self.match(TokenType.LBRACKET):
            return self._parse_array_pattern()
        return [self.expect_name().value]

    def _parse_object_pattern(self) -> list[str]:
        self.expect(TokenType.LBRACE)
        names: list[str] = []
        while not self.match(TokenType.RBRACE):
            if self.match(TokenType.ELLIPSIS):
                self.advance()
                names.extend(self._parse_binding())
            else:
                if self.match(TokenType.LBRACKET):
                    # Computed key: must be renamed with ":"
                    self._skip_balanced()
                    key = None
                else:
                    key = self.expect_module_name()
                if self.match(TokenType.COLON):
                    self.advance()
                    names.extend(self._parse_binding())
                elif key is not None:
                    names.append(key.value)
                else:
                    raise self.error("Computed property in a pattern needs a binding")
                if self.match(TokenType.EQUALS):
                    self.advance()
                    self._skip_expression()
            if self.match(TokenType.COMMA):
                self.advance()
            elif not self.match(TokenType.RBRACE):
                raise self.error("Expected ',' or '}' in destructuring pattern")
        self.expect(TokenType.RBRACE)
        return names

    def _parse_array_pattern(self) -> list[str]:
        self.expect(TokenType.LBRACKET)
        names: list[str] = []
        while not self.match(TokenType.RBRACKET):
            if self.match(TokenType.COMMA):
                self.advance()
                continue
            if self.match(TokenType.ELLIPSIS):
                self.advance()
            names.extend(self._parse_binding())
            if self.match(TokenType.EQUALS):
                self.advance()
                self._skip_expression()
            if self.match(TokenType.COMMA):
                self.advance()
            elif not self.match(TokenType.RBRACKET):
                raise self.error("Expected ',' or ']' in destructuring pattern")
        self.expect(TokenType.RBRACKET)
        return names

    # ------------------------------------------------------------------
    # Skipping
    # ------------------------------------------------------------------

    def _skip_balanced(self) -> None:
        """Skip one bracketed group starting at an opener."""
        depth = 0
        while not self.match(TokenType.EOF):
            token = self.advance()
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
                if depth == 0:
                    return

    def _ends_statement(self, previous: Token | None, token: Token) -> bool:
        """Automatic semicolon insertion at a line break."""
        if previous is None or token.line <= previous.line:
            return False
        if previous.type not in EXPRESSION_ENDERS:
            return False
        if token.type in NAME_TYPES:
            return True
        return token.type == TokenType.OPERATOR and token.value == "@"

    def _skip_expression(self) -> None:
        """
        Skip an expression up to ``,``, ``;`` or a closing bracket at depth
        zero, or a line break that ends the statement.
        """
        depth = 0
        # Open type-argument lists, e.g. forwardRef<HTMLDivElement, Props>(...)
        angle = 0
        while not self.match(TokenType.EOF):
            token = self.current_token()
            previous = self.previous_token()
            if token.type == TokenType.LESS_THAN and self._opens_type_arguments(previous, token):
                angle += 1
            elif token.type == TokenType.GREATER_THAN and angle > 0:
                angle -= 1
            if depth == 0:
                if token.type == TokenType.SEMICOLON:
                    return
                if token.type == TokenType.COMMA and angle == 0:
                    return
                if token.type in CLOSERS:
                    return
                if self._ends_statement(previous, token):
                    return
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
            self.advance()

    @staticmethod
    def _opens_type_arguments(previous: Token | None, token: Token) -> bool:
        """``name<`` with no space between is a type-argument list, not a comparison."""
        return (
            previous is not None and previous.type in NAME_TYPES and previous.end == token.start
        )

    def _skip_type_annotation(self) -> None:
        """Skip a type annotation up to ``=``, ``,`` or ``;`` at depth zero."""
        depth = 0
        while not self.match(TokenType.EOF):
            token = self.current_token()
            if depth == 0:
                if token.type in (TokenType.EQUALS, TokenType.COMMA, TokenType.SEMICOLON):
                    return
                if token.type in CLOSERS:
                    return
                if self._ends_statement(self.previous_token(), token):
                    return
            if token.type in OPENERS or token.type == TokenType.LESS_THAN:
                depth += 1
            elif token.type in CLOSERS or token.type == TokenType.GREATER_THAN:
                depth -= 1
            self.advance()


def parse_source(text: str, source: str = "<source>") -> ModuleSyntax:
    """
    Tokenize and parse source text into its top-level import/export structure.

    Args:
        text: Source text
        source: Source unit name (for error messages)

    Returns:
        ModuleSyntax

    Raises:
        ParseError: If the text cannot be tokenized or a statement is malformed
    """
    tokens = tokenize(text, source)
    return StatementParser(tokens, text, source).parse()
