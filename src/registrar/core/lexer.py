"""
Lexer/Tokenizer for component source files.

Converts raw JavaScript/TypeScript (JSX/TSX) text into a flat stream of tokens
with source location tracking. Only the grammar needed to find top-level
``import`` and ``export`` statements is distinguished; everything else becomes
generic punctuation, literal or identifier tokens.
"""

from dataclasses import dataclass
from enum import Enum

from .errors import make_parse_error


class TokenType(Enum):
    """Token types in component source."""

    # Literals
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    TEMPLATE = "TEMPLATE"
    REGEX = "REGEX"
    NUMBER = "NUMBER"

    # Contextual keywords (may still appear as plain names)
    IMPORT = "import"
    EXPORT = "export"
    FROM = "from"
    AS = "as"
    DEFAULT = "default"
    FUNCTION = "function"
    CLASS = "class"
    CONST = "const"
    LET = "let"
    VAR = "var"
    ASYNC = "async"
    TYPE = "type"
    INTERFACE = "interface"
    ENUM = "enum"
    DECLARE = "declare"
    ABSTRACT = "abstract"

    # Punctuation
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","
    SEMICOLON = ";"
    COLON = ":"
    DOT = "."
    ELLIPSIS = "..."
    STAR = "*"
    EQUALS = "="
    ARROW = "=>"
    LESS_THAN = "<"
    GREATER_THAN = ">"
    SLASH = "/"
    OPERATOR = "OPERATOR"

    # Special
    EOF = "EOF"


KEYWORDS = {
    "import",
    "export",
    "from",
    "as",
    "default",
    "function",
    "class",
    "const",
    "let",
    "var",
    "async",
    "type",
    "interface",
    "enum",
    "declare",
    "abstract",
}

SINGLE_CHAR_TOKENS = {
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ";": TokenType.SEMICOLON,
    ":": TokenType.COLON,
    "*": TokenType.STAR,
    "<": TokenType.LESS_THAN,
    ">": TokenType.GREATER_THAN,
}

# A "/" after one of these starts a regex literal rather than a division.
# "<" is deliberately absent: "</" is a JSX closing tag.
REGEX_PRECEDING_TYPES = {
    TokenType.LPAREN,
    TokenType.LBRACKET,
    TokenType.LBRACE,
    TokenType.COMMA,
    TokenType.SEMICOLON,
    TokenType.COLON,
    TokenType.EQUALS,
    TokenType.ARROW,
    TokenType.STAR,
    TokenType.OPERATOR,
    TokenType.DEFAULT,
    TokenType.EXPORT,
}

REGEX_PRECEDING_WORDS = {
    "return",
    "typeof",
    "case",
    "do",
    "else",
    "in",
    "of",
    "new",
    "delete",
    "void",
    "throw",
    "instanceof",
    "yield",
    "await",
}

# Brace stack markers
_BLOCK = "{"
_TEMPLATE_EXPR = "${"


@dataclass
class Token:
    """
    A single token in a source file.

    Attributes:
        type: Type of token
        value: String value of the token (unquoted for strings)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
        start: Offset of the first character in the source text
        end: Offset one past the last character in the source text
    """

    type: TokenType
    value: str
    line: int
    column: int
    start: int
    end: int

    def __repr__(self) -> str:
        return f"Token({self.type.value}, {self.value!r}, {self.line}:{self.column})"


class Lexer:
    """
    Lexer for component source files.

    Tracks brace nesting so template literal ``${...}`` expressions resume the
    surrounding template when their closing brace is reached.
    """

    def __init__(self, text: str, source: str = "<source>"):
        """
        Initialize lexer.

        Args:
            text: Source text to tokenize
            source: Source unit name (for error reporting)
        """
        self.text = text
        self.source = source
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: list[Token] = []
        # (marker, line, column) for every open "{" or "${"
        self.brace_stack: list[tuple[str, int, int]] = []

    def current_char(self) -> str | None:
        """Get current character or None if at end."""
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def peek_char(self, offset: int = 1) -> str | None:
        """Peek ahead at character."""
        pos = self.pos + offset
        if pos >= len(self.text):
            return None
        return self.text[pos]

    def advance(self) -> None:
        """Move to next character, updating line/column."""
        if self.pos < len(self.text):
            if self.text[self.pos] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.pos += 1

    def _mark(self) -> tuple[int, int, int]:
        return self.pos, self.line, self.column

    def _reset(self, mark: tuple[int, int, int]) -> None:
        self.pos, self.line, self.column = mark

    def _error(self, message: str, line: int, column: int) -> Exception:
        return make_parse_error(message, self.source, line, column, self.text)

    def _emit(self, token_type: TokenType, value: str, mark: tuple[int, int, int]) -> None:
        start, line, column = mark
        self.tokens.append(Token(token_type, value, line, column, start, self.pos))

    def skip_line_comment(self) -> None:
        """Skip comment from // to end of line."""
        while self.current_char() is not None and self.current_char() != "\n":
            self.advance()

    def skip_block_comment(self) -> None:
        """Skip a /* ... */ comment."""
        start_line, start_col = self.line, self.column
        self.advance()
        self.advance()
        while True:
            ch = self.current_char()
            if ch is None:
                raise self._error("Unterminated block comment", start_line, start_col)
            if ch == "*" and self.peek_char() == "/":
                self.advance()
                self.advance()
                return
            self.advance()

    def read_string(self) -> str | None:
        """
        Read a quoted string.

        Returns None (with position restored) when the closing quote is not
        found on the same line. Such quotes are JSX text, e.g. ``Don't``.
        """
        mark = self._mark()
        quote = self.current_char()
        self.advance()

        chars = []
        while True:
            current = self.current_char()
            if current is None or current == "\n":
                self._reset(mark)
                return None
            if current == quote:
                self.advance()
                return "".join(chars)
            if current == "\\":
                self.advance()
                escaped = self.current_char()
                if escaped is None:
                    self._reset(mark)
                    return None
                if escaped == "n":
                    chars.append("\n")
                elif escaped == "t":
                    chars.append("\t")
                elif escaped != "\n":
                    chars.append(escaped)
                self.advance()
            else:
                chars.append(current)
                self.advance()

    def read_template_chunk(self, start_line: int, start_col: int) -> str:
        """
        Read template literal text up to the closing backtick or a ``${``.

        The opening backtick (or the ``}`` closing an embedded expression)
        must already be consumed.
        """
        chars = []
        while True:
            ch = self.current_char()
            if ch is None:
                raise self._error("Unterminated template literal", start_line, start_col)
            if ch == "\\":
                chars.append(ch)
                self.advance()
                if self.current_char() is not None:
                    chars.append(self.current_char() or "")
                    self.advance()
                continue
            if ch == "`":
                self.advance()
                return "".join(chars)
            if ch == "$" and self.peek_char() == "{":
                self.advance()
                self.advance()
                self.brace_stack.append((_TEMPLATE_EXPR, start_line, start_col))
                return "".join(chars)
            chars.append(ch)
            self.advance()

    def read_regex(self) -> str | None:
        """
        Read a regex literal including flags.

        Returns None (with position restored) when no closing slash is found
        on the same line.
        """
        mark = self._mark()
        self.advance()
        in_class = False
        while True:
            ch = self.current_char()
            if ch is None or ch == "\n":
                self._reset(mark)
                return None
            if ch == "\\":
                self.advance()
                if self.current_char() in (None, "\n"):
                    self._reset(mark)
                    return None
                self.advance()
                continue
            if ch == "[":
                in_class = True
            elif ch == "]":
                in_class = False
            elif ch == "/" and not in_class:
                self.advance()
                break
            self.advance()

        while (flag := self.current_char()) is not None and flag.isalnum():
            self.advance()
        return self.text[mark[0] : self.pos]

    def read_number(self) -> str:
        """Read a numeric literal (decimal, hex, bigint, separators, exponents)."""
        start = self.pos
        while (ch := self.current_char()) is not None and (ch.isalnum() or ch in "._"):
            self.advance()
        return self.text[start : self.pos]

    def read_identifier(self) -> str:
        """Read an identifier or keyword."""
        start = self.pos
        while (ch := self.current_char()) is not None and (ch.isalnum() or ch in "_$"):
            self.advance()
        return self.text[start : self.pos]

    def regex_allowed(self) -> bool:
        """Decide whether a "/" at the current position starts a regex literal."""
        if not self.tokens:
            return True
        previous = self.tokens[-1]
        if previous.type in REGEX_PRECEDING_TYPES:
            return True
        return previous.type == TokenType.IDENTIFIER and previous.value in REGEX_PRECEDING_WORDS

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source text.

        Returns:
            List of tokens ending with EOF

        Raises:
            ParseError: If the text is structurally malformed
        """
        if self.text.startswith("#!"):
            self.skip_line_comment()

        while True:
            ch = self.current_char()
            if ch is None:
                break

            if ch in (" ", "\t", "\r", "\n", "\ufeff"):
                self.advance()
                continue

            mark = self._mark()

            # Comments
            if ch == "/" and self.peek_char() == "/":
                self.skip_line_comment()
                continue
            if ch == "/" and self.peek_char() == "*":
                self.skip_block_comment()
                continue

            # Strings
            if ch in ('"', "'"):
                value = self.read_string()
                if value is None:
                    self.advance()
                    self._emit(TokenType.OPERATOR, ch, mark)
                else:
                    self._emit(TokenType.STRING, value, mark)

            # Template literals
            elif ch == "`":
                self.advance()
                value = self.read_template_chunk(mark[1], mark[2])
                self._emit(TokenType.TEMPLATE, value, mark)

            # Regex literals or division
            elif ch == "/":
                value = self.read_regex() if self.regex_allowed() else None
                if value is None:
                    self.advance()
                    self._emit(TokenType.SLASH, "/", mark)
                else:
                    self._emit(TokenType.REGEX, value, mark)

            # Numbers
            elif ch.isdigit() or (ch == "." and (self.peek_char() or "").isdigit()):
                self._emit(TokenType.NUMBER, self.read_number(), mark)

            # Identifiers and keywords
            elif ch.isalpha() or ch in "_$":
                value = self.read_identifier()
                token_type = TokenType(value) if value in KEYWORDS else TokenType.IDENTIFIER
                self._emit(token_type, value, mark)

            # Braces
            elif ch == "{":
                self.advance()
                self.brace_stack.append((_BLOCK, mark[1], mark[2]))
                self._emit(TokenType.LBRACE, "{", mark)

            elif ch == "}":
                if not self.brace_stack:
                    raise self._error("Unexpected '}'", mark[1], mark[2])
                marker, start_line, start_col = self.brace_stack.pop()
                self.advance()
                if marker == _TEMPLATE_EXPR:
                    # Closing an embedded expression resumes the template text
                    value = self.read_template_chunk(start_line, start_col)
                    self._emit(TokenType.TEMPLATE, value, mark)
                else:
                    self._emit(TokenType.RBRACE, "}", mark)

            # Multi-character operators
            elif ch == "=":
                if self.peek_char() == ">":
                    self.advance()
                    self.advance()
                    self._emit(TokenType.ARROW, "=>", mark)
                else:
                    self.advance()
                    self._emit(TokenType.EQUALS, "=", mark)

            elif ch == ".":
                if self.peek_char() == "." and self.peek_char(2) == ".":
                    self.advance()
                    self.advance()
                    self.advance()
                    self._emit(TokenType.ELLIPSIS, "...", mark)
                else:
                    self.advance()
                    self._emit(TokenType.DOT, ".", mark)

            elif ch in SINGLE_CHAR_TOKENS:
                self.advance()
                self._emit(SINGLE_CHAR_TOKENS[ch], ch, mark)

            # Anything else (operators, decorators, JSX text punctuation)
            else:
                self.advance()
                self._emit(TokenType.OPERATOR, ch, mark)

        if self.brace_stack:
            marker, line, column = self.brace_stack[-1]
            if marker == _TEMPLATE_EXPR:
                raise self._error("Unterminated template literal", line, column)
            raise self._error("Unclosed '{'", line, column)

        self.tokens.append(Token(TokenType.EOF, "", self.line, self.column, self.pos, self.pos))
        return self.tokens


def tokenize(text: str, source: str = "<source>") -> list[Token]:
    """
    Convenience function to tokenize source text.

    Args:
        text: Source text
        source: Source unit name

    Returns:
        List of tokens
    """
    lexer = Lexer(text, source)
    return lexer.tokenize()
