"""State-machine scanner for annotated headers.

The scanner understands just enough grammar to know where it is: inside a
namespace block it expects type declarations, inside a struct body it
expects members, inside an enum body it expects enumerators. That context
lets it capture method bodies, argument lists, template arguments and
default values as single verbatim blobs without parsing C++ expressions.

Each state is a bound method that consumes input, emits zero or more
tokens and returns the next state (or None to stop). Iterating a
:class:`Lexer` runs the machine lazily, one state at a time, so the
parser pulls tokens on demand. :class:`TokenQueue` runs the same machine
on a producer thread behind a bounded queue instead.

Example
-------
::

    from beamsplitter.lexer import Lexer

    for token in Lexer("namespace a { enum class E { X }; }"):
        print(token)
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
from collections import deque
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from beamsplitter.docstrings import Comment, DocstringIndex, is_group_begin, is_group_end

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_IGNORED_MACROS",
    "Lexer",
    "Token",
    "TokenKind",
    "TokenQueue",
    "TokenStream",
    "lex",
]

EOF = ""

# Project annotation macros that carry no meaning for code generation
DEFAULT_IGNORED_MACROS: frozenset[str] = frozenset(
    {
        "UTILS_PUBLIC",
        "UTILS_PRIVATE",
        "UTILS_DEPRECATED",
        "UTILS_NOINLINE",
        "UTILS_ALWAYS_INLINE",
        "UTILS_PACKED",
        "UTILS_WARN_UNUSED_RESULT",
    }
)

DEFAULT_QUEUE_SIZE = 16


class TokenKind(enum.Enum):
    """Kinds of lexical tokens."""

    ERROR = enum.auto()  # text is the diagnostic; always the last token
    EOF = enum.auto()

    GROUP_BEGIN = enum.auto()  # block comment containing @{
    GROUP_END = enum.auto()  # block comment containing @}
    SIMPLE_TYPE = enum.auto()  # e.g. `Texture* const`, `uint8_t`, `BlendMode`
    METHOD_BODY = enum.auto()  # entire inline body, including outer {}
    METHOD_ARGS = enum.auto()  # argument list, including outer ()
    TEMPLATE_ARGS = enum.auto()  # template parameters, including outer <>
    DEFAULT_VALUE = enum.auto()  # unparsed right-hand side
    IDENTIFIER = enum.auto()

    OPEN_BRACE = enum.auto()
    CLOSE_BRACE = enum.auto()
    SEMICOLON = enum.auto()
    COLON = enum.auto()
    EQUALS = enum.auto()
    COMMA = enum.auto()

    NAMESPACE = enum.auto()
    CLASS = enum.auto()
    STRUCT = enum.auto()
    ENUM = enum.auto()
    TEMPLATE = enum.auto()
    CONST = enum.auto()
    NOEXCEPT = enum.auto()
    PUBLIC = enum.auto()
    PROTECTED = enum.auto()
    PRIVATE = enum.auto()
    USING = enum.auto()

    @property
    def is_symbol(self) -> bool:
        return self in _SYMBOLS

    @property
    def is_keyword(self) -> bool:
        return self in _KEYWORDS.values()

    @property
    def is_blob(self) -> bool:
        return self in _BLOBS


_SYMBOLS = frozenset(
    {
        TokenKind.OPEN_BRACE,
        TokenKind.CLOSE_BRACE,
        TokenKind.SEMICOLON,
        TokenKind.COLON,
        TokenKind.EQUALS,
        TokenKind.COMMA,
    }
)

_BLOBS = frozenset(
    {
        TokenKind.METHOD_BODY,
        TokenKind.METHOD_ARGS,
        TokenKind.TEMPLATE_ARGS,
        TokenKind.DEFAULT_VALUE,
    }
)

_KEYWORDS: dict[str, TokenKind] = {
    "namespace": TokenKind.NAMESPACE,
    "class": TokenKind.CLASS,
    "struct": TokenKind.STRUCT,
    "enum": TokenKind.ENUM,
    "template": TokenKind.TEMPLATE,
    "const": TokenKind.CONST,
    "noexcept": TokenKind.NOEXCEPT,
    "public": TokenKind.PUBLIC,
    "protected": TokenKind.PROTECTED,
    "private": TokenKind.PRIVATE,
    "using": TokenKind.USING,
}

_ACCESS_KEYWORDS = ("public", "protected", "private")

# Method specifiers that carry no meaning for code generation
_IGNORED_METHOD_SPECIFIERS = ("override", "final")

_CLOSERS = {")": "(", "}": "{", ">": "<"}


@dataclass(frozen=True)
class Token:
    """A lexical token.

    :param kind: Token kind.
    :param text: Source text, or the diagnostic for ERROR tokens.
    :param offset: Character offset of the token start in the input.
    :param line: 1-based line of the token start.
    """

    kind: TokenKind
    text: str
    offset: int
    line: int

    def __str__(self) -> str:
        if self.kind is TokenKind.EOF:
            return "EOF"
        if self.kind is TokenKind.ERROR:
            return self.text
        if self.kind.is_keyword:
            return f"<{self.text}>"
        if len(self.text) > 10:
            return f"{self.text[:10]!r}..."
        return repr(self.text)


StateFn = Callable[[], "StateFn | None"]


def _is_identifier_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_alphanumeric(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


class Lexer:
    """Scanner state plus the state functions that drive it.

    :param text: Entire contents of the header.
    :param name: Name of the input, used only for logging.
    :param ignored_macros: Annotation macros discarded wherever they appear.
    """

    def __init__(
        self,
        text: str,
        name: str = "<input>",
        ignored_macros: frozenset[str] = DEFAULT_IGNORED_MACROS,
    ) -> None:
        self.name = name
        self.input = text
        self.ignored_macros = frozenset(ignored_macros)
        self.docstrings = DocstringIndex()
        self.line = 1  # 1 + number of newlines consumed
        self.start_line = 1  # line at the start of the pending token
        self.pos = 0
        self.start = 0
        self.paren_depth = 0
        self.brace_depth = 0
        self.angle_depth = 0
        self._at_eof = False
        self._pending: deque[Token] = deque()
        self._scopes: list[str] = []
        self._seen_namespace = False
        self._last_token_line = 0
        self._started = False

    # -------------------------------------------------------------------------
    # Iteration
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[Token]:
        if self._started:
            raise RuntimeError("Lexer can only be iterated once; construct a new one to rescan")
        self._started = True
        return self._run()

    def _run(self) -> Iterator[Token]:
        state: StateFn | None = self._lex_root
        while state is not None:
            state = state()
            while self._pending:
                token = self._pending.popleft()
                yield token
                if token.kind in (TokenKind.ERROR, TokenKind.EOF):
                    logger.debug("%s: scanner stopped at %s (line %d)", self.name, token.kind.name, token.line)
                    return

    # -------------------------------------------------------------------------
    # Rune-level primitives
    # -------------------------------------------------------------------------

    def next(self) -> str:
        """Consume and return the next character, or EOF."""
        if self.pos >= len(self.input):
            self._at_eof = True
            return EOF
        ch = self.input[self.pos]
        self.pos += 1
        if ch == "\n":
            self.line += 1
        return ch

    def peek(self) -> str:
        """Return but do not consume the next character."""
        ch = self.next()
        self.backup()
        return ch

    def backup(self) -> None:
        """Step back one character, undoing its effect on the line count."""
        if self._at_eof:
            self._at_eof = False
            return
        if self.pos > 0:
            self.pos -= 1
            if self.input[self.pos] == "\n":
                self.line -= 1

    def backup_multiple(self, count: int) -> None:
        for _ in range(count):
            self.backup()

    def eof(self) -> bool:
        return self.pos >= len(self.input)

    def accept(self, valid: str) -> bool:
        """Consume the next character if it is in ``valid``."""
        ch = self.next()
        if ch and ch in valid:
            return True
        self.backup()
        return False

    def accept_run(self, valid: str) -> None:
        while self.accept(valid):
            pass

    def accept_rune(self, expected: str) -> bool:
        if self.next() == expected:
            return True
        self.backup()
        return False

    def accept_string(self, expected: str) -> bool:
        for i, ch in enumerate(expected):
            if self.next() != ch:
                self.backup_multiple(i + 1)
                return False
        return True

    def accept_identifier(self) -> bool:
        if not _is_identifier_start(self.next()):
            self.backup()
            return False
        while _is_alphanumeric(self.next()):
            pass
        self.backup()
        return True

    def accept_keyword(self, keyword: str) -> bool:
        """Consume ``keyword`` only if it is not the prefix of a longer identifier."""
        start = self.pos
        if not self.accept_string(keyword):
            return False
        if _is_alphanumeric(self.peek()):
            self.backup_multiple(self.pos - start)
            return False
        return True

    def accept_space(self) -> bool:
        return self.accept(" \t\r\n\f\v")

    # -------------------------------------------------------------------------
    # Token plumbing
    # -------------------------------------------------------------------------

    def emit(self, kind: TokenKind, text: str | None = None) -> None:
        """Emit the pending span (or ``text``) as a token of ``kind``."""
        value = self.input[self.start : self.pos] if text is None else text
        self._push(Token(kind, value, self.start, self.start_line))
        self.ignore()

    def _push(self, token: Token) -> None:
        self._pending.append(token)
        self._last_token_line = self.line

    def ignore(self) -> None:
        """Skip over the pending input before this point."""
        self.start = self.pos
        self.start_line = self.line

    def errorf(self, message: str, *args: object) -> None:
        """Emit an ERROR token and stop the machine by returning no state."""
        text = message % args if args else message
        self._pending.append(Token(TokenKind.ERROR, text, self.start, self.line))
        return None

    def _scope(self) -> str | None:
        return self._scopes[-1] if self._scopes else None

    def _scope_state(self) -> StateFn:
        """State that resumes scanning the innermost open scope."""
        scope = self._scope()
        if scope is None:
            return self._lex_root
        if scope == "namespace":
            return self._lex_block
        if scope == "enum":
            return self._lex_enum_body
        return self._lex_members

    # -------------------------------------------------------------------------
    # Trivia: whitespace, comments, preprocessor lines, ignored macros
    # -------------------------------------------------------------------------

    def _skip_trivia(self) -> bool:
        """Skip everything that never becomes a token.

        Returns False after emitting an ERROR token.
        """
        while True:
            self.ignore()
            if self.accept_space():
                self.accept_run(" \t\r\n\f\v")
                continue
            if self.accept_string("//"):
                self._line_comment()
                continue
            if self.accept_string("/*"):
                if not self._block_comment():
                    return False
                continue
            if self.peek() == "#" and self._at_line_start():
                if not self._preprocessor_line():
                    return False
                continue
            if self._skip_ignored_macro():
                continue
            self.ignore()
            return True

    def _at_line_start(self) -> bool:
        line_start = self.input.rfind("\n", 0, self.pos) + 1
        return not self.input[line_start : self.pos].strip()

    def _line_comment(self) -> None:
        line = self.start_line
        while self.peek() not in ("\n", EOF):
            self.next()
        text = self.input[self.start : self.pos]
        self.docstrings.add(Comment(line, line, text, is_block=False, trailing=self._last_token_line == line))
        self.ignore()

    def _block_comment(self) -> bool:
        line = self.start_line
        trailing = self._last_token_line == line
        while not self.accept_string("*/"):
            if self.next() == EOF:
                self.errorf("Unterminated block comment")
                return False
        text = self.input[self.start : self.pos]
        comment = Comment(line, self.line, text, is_block=True, trailing=trailing)
        self.docstrings.add(comment)
        if self._scope() in ("struct", "class") and text.startswith("/**"):
            if is_group_begin(text):
                self.emit(TokenKind.GROUP_BEGIN)
                return True
            if is_group_end(text):
                self.emit(TokenKind.GROUP_END)
                return True
        self.ignore()
        return True

    def _preprocessor_line(self) -> bool:
        self.next()  # '#'
        self.accept_run(" \t")
        if self._scopes and self.accept_keyword("define"):
            self.errorf("Macro definitions are not supported inside a namespace")
            return False
        while True:
            ch = self.next()
            if ch == EOF:
                break
            if ch == "\\" and self.peek() == "\n":
                self.next()
                continue
            if ch == "\n":
                self.backup()
                break
        self.ignore()
        return True

    def _skip_ignored_macro(self) -> bool:
        start = self.pos
        if not self.accept_identifier():
            return False
        if self.input[start : self.pos] not in self.ignored_macros:
            self.backup_multiple(self.pos - start)
            return False
        self.accept_run(" \t")
        if self.peek() == "(":
            error = self._consume_delimited("(")
            if error:
                self.backup_multiple(self.pos - start)
                return False
        self.ignore()
        return True

    # -------------------------------------------------------------------------
    # Blob extraction
    # -------------------------------------------------------------------------

    def _consume_delimited(self, opener: str) -> str | None:
        """Consume a balanced span starting at ``opener``.

        Returns an error message, or None on success.
        """
        closer = {"(": ")", "{": "}", "<": ">"}[opener]
        self.next()
        self._reset_depths()
        self._adjust_depth(opener)
        while True:
            ch = self.next()
            if ch == EOF:
                return f"Unterminated '{opener}...{closer}' block"
            if ch in "\"'":
                error = self._skip_literal(ch)
                if error:
                    return error
            elif ch == "/" and self.accept_rune("/"):
                while self.peek() not in ("\n", EOF):
                    self.next()
            elif ch == "/" and self.accept_rune("*"):
                while not self.accept_string("*/"):
                    if self.next() == EOF:
                        return "Unterminated block comment"
            elif ch in "({<" or ch in _CLOSERS:
                if ch == "<" and opener != "<" and not self._looks_like_template_open():
                    continue
                self._adjust_depth(ch)
                if self._depth(opener) == 0:
                    return None

    def _consume_until(self, stop: str) -> str | None:
        """Consume up to (not including) an unnested character from ``stop``.

        Template argument lists never contain ``;``, so a ``;`` ends the span
        even while an angle bracket that was really a comparison is open.
        """
        self._reset_depths()
        while True:
            ch = self.peek()
            if ch == EOF:
                return "Unexpected end of input in expression"
            if ch in stop and not (self.paren_depth or self.brace_depth) and (not self.angle_depth or ch == ";"):
                return None
            self.next()
            if ch in "\"'":
                error = self._skip_literal(ch)
                if error:
                    return error
            elif ch == "<":
                if self._looks_like_template_open():
                    self.angle_depth += 1
            elif ch == ">":
                if self.angle_depth:
                    self.angle_depth -= 1
            elif ch in "({" or ch in ")}":
                self._adjust_depth(ch)
                if self.paren_depth < 0 or self.brace_depth < 0:
                    return f"Unbalanced '{ch}'"

    def _looks_like_template_open(self) -> bool:
        """Whether the ``<`` just consumed opens a template argument list.

        ``std::vector<int>`` does; ``1 < 2``, ``1<2``, ``a << 4`` and ``a <= b`` do not.
        """
        if self.peek() in ("<", "="):
            return False
        end = self.pos - 1
        if end > 0 and self.input[end - 1] == "<":
            return False
        begin = end
        while begin > 0 and _is_alphanumeric(self.input[begin - 1]):
            begin -= 1
        return begin < end and _is_identifier_start(self.input[begin])

    def _skip_literal(self, quote: str) -> str | None:
        while True:
            ch = self.next()
            if ch == EOF:
                return "Unterminated literal"
            if ch == "\n":
                # Report on the line of the literal
                self.backup()
                return "Multi-line string literals are not supported"
            if ch == "\\":
                self.next()
            elif ch == quote:
                return None

    def _reset_depths(self) -> None:
        self.paren_depth = self.brace_depth = self.angle_depth = 0

    def _adjust_depth(self, ch: str) -> None:
        if ch == "(":
            self.paren_depth += 1
        elif ch == ")":
            self.paren_depth -= 1
        elif ch == "{":
            self.brace_depth += 1
        elif ch == "}":
            self.brace_depth -= 1
        elif ch == "<":
            self.angle_depth += 1
        elif ch == ">":
            self.angle_depth -= 1

    def _depth(self, opener: str) -> int:
        if opener == "(":
            return self.paren_depth
        if opener == "{":
            return self.brace_depth
        return self.angle_depth

    def _emit_trimmed(self, kind: TokenKind) -> None:
        """Emit the pending span with surrounding whitespace removed."""
        raw = self.input[self.start : self.pos]
        lead = len(raw) - len(raw.lstrip())
        self.start_line += raw.count("\n", 0, lead)
        self.start += lead
        self.emit(kind, raw.strip())

    # -------------------------------------------------------------------------
    # State functions: top level
    # -------------------------------------------------------------------------

    def _lex_root(self) -> StateFn | None:
        if not self._skip_trivia():
            return None
        if self.eof():
            if not self._seen_namespace:
                return self.errorf("Expected namespace")
            self.emit(TokenKind.EOF)
            return None
        if self._seen_namespace:
            return self.errorf("Expected end of input after the top-level namespace")
        if self.accept_keyword("namespace"):
            self._seen_namespace = True
            self.emit(TokenKind.NAMESPACE)
            return self._lex_namespace
        return self.errorf("Expected namespace")

    def _lex_namespace(self) -> StateFn | None:
        """Just past the ``namespace`` keyword."""
        if not self._skip_trivia():
            return None
        if self.accept_identifier():
            self.emit(TokenKind.IDENTIFIER)
            if not self._skip_trivia():
                return None
        if self.accept_rune("{"):
            self.emit(TokenKind.OPEN_BRACE)
            self._scopes.append("namespace")
            return self._lex_block
        return self.errorf("Badly formed namespace")

    def _lex_block(self) -> StateFn | None:
        """Inside a namespace body."""
        if not self._skip_trivia():
            return None
        if self.eof():
            return self.errorf("Unexpected end of input inside namespace")
        if self.accept_rune("}"):
            self.emit(TokenKind.CLOSE_BRACE)
            self._scopes.pop()
            return self._scope_state()
        if self.accept_keyword("namespace"):
            self.emit(TokenKind.NAMESPACE)
            return self._lex_namespace
        if self.accept_keyword("struct"):
            self.emit(TokenKind.STRUCT)
            return self._lex_struct_header
        if self.accept_keyword("class"):
            self.emit(TokenKind.CLASS)
            return self._lex_class_header
        if self.accept_keyword("enum"):
            self.emit(TokenKind.ENUM)
            return self._lex_enum_header
        return self.errorf("Expected namespace, struct, class, or enum.")

    # -------------------------------------------------------------------------
    # State functions: type headers
    # -------------------------------------------------------------------------

    def _lex_struct_header(self) -> StateFn | None:
        """Just past ``struct``; the name is optional."""
        if not self._skip_trivia():
            return None
        if self.accept_identifier():
            self.emit(TokenKind.IDENTIFIER)
            if not self._skip_trivia():
                return None
        if not self.accept_rune("{"):
            return self.errorf("Badly formed struct")
        self.emit(TokenKind.OPEN_BRACE)
        self._scopes.append("struct")
        return self._lex_members

    def _lex_class_header(self) -> StateFn | None:
        """Just past ``class``; the name is required, one base is allowed."""
        if not self._skip_trivia():
            return None
        if not self.accept_identifier():
            return self.errorf("Anonymous classes are illegal.")
        self.emit(TokenKind.IDENTIFIER)
        if not self._skip_trivia():
            return None
        if self.accept_rune(":"):
            self.emit(TokenKind.COLON)
            if not self._skip_trivia():
                return None
            for keyword in _ACCESS_KEYWORDS:
                if self.accept_keyword(keyword):
                    self.emit(_KEYWORDS[keyword])
                    if not self._skip_trivia():
                        return None
                    break
            if not self._accept_qualified_name():
                return self.errorf("Badly formed base class")
            self.emit(TokenKind.IDENTIFIER)
            if not self._skip_trivia():
                return None
            if self.peek() == "<":
                return self.errorf("Template base classes are not supported")
        if self.accept_keyword("final"):
            if not self._skip_trivia():
                return None
        if not self.accept_rune("{"):
            return self.errorf("Badly formed class")
        self.emit(TokenKind.OPEN_BRACE)
        self._scopes.append("class")
        return self._lex_members

    def _lex_enum_header(self) -> StateFn | None:
        """Just past ``enum``."""
        if not self._skip_trivia():
            return None
        if self.accept_keyword("class"):
            self.emit(TokenKind.CLASS)
            if not self._skip_trivia():
                return None
        if not self.accept_identifier():
            return self.errorf("Anonymous enums are illegal.")
        self.emit(TokenKind.IDENTIFIER)
        if not self._skip_trivia():
            return None
        if self.accept_rune(":"):
            self.emit(TokenKind.COLON)
            error = self._consume_until("{;")
            if error:
                return self.errorf(error)
            self._emit_trimmed(TokenKind.SIMPLE_TYPE)
            if not self._skip_trivia():
                return None
        if not self.accept_rune("{"):
            return self.errorf("Badly formed enum")
        self.emit(TokenKind.OPEN_BRACE)
        self._scopes.append("enum")
        return self._lex_enum_body

    def _lex_enum_body(self) -> StateFn | None:
        if not self._skip_trivia():
            return None
        if self.eof():
            return self.errorf("Unexpected end of input inside enum")
        if self.accept_rune("}"):
            self.emit(TokenKind.CLOSE_BRACE)
            self._scopes.pop()
            return self._lex_declaration_end
        if self.accept_rune(","):
            self.emit(TokenKind.COMMA)
            return self._lex_enum_body
        if self.accept_rune("="):
            self.emit(TokenKind.EQUALS)
            error = self._consume_until(",}")
            if error:
                return self.errorf(error)
            self._emit_trimmed(TokenKind.DEFAULT_VALUE)
            return self._lex_enum_body
        if self.accept_identifier():
            self.emit(TokenKind.IDENTIFIER)
            return self._lex_enum_body
        return self.errorf("Unexpected input in enum: %r", self.peek())

    def _lex_declaration_end(self) -> StateFn | None:
        """After the closing brace of a struct, class or enum."""
        if not self._skip_trivia():
            return None
        if self.accept_identifier():
            self.emit(TokenKind.IDENTIFIER)
            if not self._skip_trivia():
                return None
        if not self.accept_rune(";"):
            return self.errorf("Expected ';' after type declaration")
        self.emit(TokenKind.SEMICOLON)
        return self._scope_state()

    def _accept_qualified_name(self) -> bool:
        self.accept_string("::")
        if not self.accept_identifier():
            return False
        while self.accept_string("::"):
            if not self.accept_identifier():
                return False
        return True

    # -------------------------------------------------------------------------
    # State functions: class and struct members
    # -------------------------------------------------------------------------

    def _lex_members(self) -> StateFn | None:
        """Inside a struct or class body."""
        if not self._skip_trivia():
            return None
        if self.eof():
            return self.errorf("Unexpected end of input inside %s", self._scope())
        if self.accept_rune("}"):
            self.emit(TokenKind.CLOSE_BRACE)
            self._scopes.pop()
            return self._lex_declaration_end
        for keyword in _ACCESS_KEYWORDS:
            if self.accept_keyword(keyword):
                self.emit(_KEYWORDS[keyword])
                if not self._skip_trivia():
                    return None
                if not self.accept_rune(":"):
                    return self.errorf("Expected ':' after access specifier")
                self.emit(TokenKind.COLON)
                return self._lex_members
        if self.accept_keyword("using"):
            self.emit(TokenKind.USING)
            return self._lex_using
        if self.accept_keyword("struct"):
            self.emit(TokenKind.STRUCT)
            return self._lex_struct_header
        if self.accept_keyword("class"):
            self.emit(TokenKind.CLASS)
            return self._lex_class_header
        if self.accept_keyword("enum"):
            self.emit(TokenKind.ENUM)
            return self._lex_enum_header
        if self.accept_keyword("template"):
            self.emit(TokenKind.TEMPLATE)
            if not self._skip_trivia():
                return None
            if self.peek() != "<":
                return self.errorf("Expected template argument list")
            error = self._consume_delimited("<")
            if error:
                return self.errorf(error)
            self.emit(TokenKind.TEMPLATE_ARGS)
            return self._lex_declaration
        return self._lex_declaration

    def _lex_using(self) -> StateFn | None:
        """Just past ``using``: only ``using name = type;`` is accepted."""
        if not self._skip_trivia():
            return None
        if not self.accept_identifier():
            return self.errorf("Badly formed using declaration")
        self.emit(TokenKind.IDENTIFIER)
        if not self._skip_trivia():
            return None
        if not self.accept_rune("="):
            return self.errorf("Only alias declarations (using name = type) are supported")
        self.emit(TokenKind.EQUALS)
        error = self._consume_until(";")
        if error:
            return self.errorf(error)
        self._emit_trimmed(TokenKind.SIMPLE_TYPE)
        self.accept_rune(";")
        self.emit(TokenKind.SEMICOLON)
        return self._lex_members

    def _lex_declaration(self) -> StateFn | None:
        """A field or method: a type, a name, then what follows the name."""
        pieces: list[tuple[str, int, int]] = []  # (text, offset, line)
        while True:
            if not self._skip_trivia():
                return None
            ch = self.peek()
            offset, line = self.pos, self.line
            if _is_identifier_start(ch) or ch == "~" or self.input.startswith("::", self.pos):
                self.accept_rune("~")
                if not self._accept_qualified_name():
                    return self.errorf("Badly formed name")
                text = self.input[offset : self.pos]
                if text == "operator":
                    self.accept_run(" \t")
                    if self.input.startswith("()", self.pos):
                        self.accept_string("()")
                    else:
                        self.accept_run("=!<>+-*/%&|^~[]")
                    text = self.input[offset : self.pos].replace(" ", "")
                pieces.append((text, offset, line))
                continue
            if ch and ch in "*&":
                self.next()
                pieces.append((ch, offset, line))
                continue
            break

        ch = self.peek()
        if not pieces:
            if ch == ";":
                # Stray semicolon, e.g. after an inline method body
                self.next()
                self.ignore()
                return self._lex_members
            if ch == EOF:
                return self.errorf("Unexpected end of input inside %s", self._scope())
            return self.errorf("Unexpected input: %r", ch)
        if ch == "<":
            return self.errorf("Template types are not supported; introduce the type with a using alias")
        if ch == ",":
            return self.errorf("Multiple declarators in one declaration are not supported")
        if ch == "[":
            return self.errorf("Array members are not supported")
        if ch == ":":
            return self.errorf("Bit-fields are not supported")
        if ch == "{":
            return self.errorf("Brace-initialized members must be written as '= {...}'")
        if ch == EOF:
            return self.errorf("Unexpected end of input inside %s", self._scope())
        if ch not in "(;=":
            return self.errorf("Unexpected input: %r", ch)

        name, name_offset, name_line = pieces[-1]
        if not (_is_identifier_start(name[0]) or name[0] == "~" or name.startswith("::")):
            return self.errorf("Expected a name after type %r", _join_type(pieces))
        type_pieces = pieces[:-1]
        if type_pieces:
            first_offset, first_line = type_pieces[0][1], type_pieces[0][2]
            self._push(Token(TokenKind.SIMPLE_TYPE, _join_type(type_pieces), first_offset, first_line))
        self._push(Token(TokenKind.IDENTIFIER, name, name_offset, name_line))
        self.ignore()

        if ch == "(":
            return self._lex_method_args
        if ch == ";":
            self.next()
            self.emit(TokenKind.SEMICOLON)
            return self._lex_members
        self.next()
        self.emit(TokenKind.EQUALS)
        return self._lex_default_value

    def _lex_default_value(self) -> StateFn | None:
        """Just past ``=`` in a member declaration."""
        error = self._consume_until(";")
        if error:
            return self.errorf(error)
        if not self.input[self.start : self.pos].strip():
            return self.errorf("Missing value after '='")
        self._emit_trimmed(TokenKind.DEFAULT_VALUE)
        self.accept_rune(";")
        self.emit(TokenKind.SEMICOLON)
        return self._lex_members

    def _lex_method_args(self) -> StateFn | None:
        error = self._consume_delimited("(")
        if error:
            return self.errorf(error)
        args = self.input[self.start : self.pos]
        if args[1:].lstrip().startswith(("*", "&", "^")):
            return self.errorf("Function pointer members are not supported; introduce the type with a using alias")
        self.emit(TokenKind.METHOD_ARGS)
        return self._lex_method_tail

    def _lex_method_tail(self) -> StateFn | None:
        """After the argument list: qualifiers, then ``;``, a body or ``= ...;``."""
        if not self._skip_trivia():
            return None
        if self.accept_keyword("const"):
            self.emit(TokenKind.CONST)
            if not self._skip_trivia():
                return None
        if self.accept_keyword("noexcept"):
            self.emit(TokenKind.NOEXCEPT)
            if not self._skip_trivia():
                return None
        for specifier in _IGNORED_METHOD_SPECIFIERS:
            if self.accept_keyword(specifier):
                if not self._skip_trivia():
                    return None
        ch = self.peek()
        if ch == "(":
            return self.errorf("Function pointer members are not supported; introduce the type with a using alias")
        if self.accept_rune(";"):
            self.emit(TokenKind.SEMICOLON)
            return self._lex_members
        if ch == "{":
            error = self._consume_delimited("{")
            if error:
                return self.errorf(error)
            self.emit(TokenKind.METHOD_BODY)
            return self._lex_members
        if self.accept_rune("="):
            self.emit(TokenKind.EQUALS)
            return self._lex_default_value
        return self.errorf("Expected ';' or a method body")


def _join_type(pieces: list[tuple[str, int, int]]) -> str:
    """Join type pieces, attaching ``*`` and ``&`` to what precedes them."""
    out = ""
    for text, _, _ in pieces:
        if not out:
            out = text
        elif text in ("*", "&"):
            out += text
        else:
            out += " " + text
    return out


# =============================================================================
# Token sources
# =============================================================================


class TokenStream:
    """Pull-based token source: the lexer runs only when a token is requested."""

    def __init__(self, lexer: Lexer) -> None:
        self.lexer = lexer
        self._tokens = iter(lexer)
        self._last: Token | None = None

    @property
    def docstrings(self) -> DocstringIndex:
        return self.lexer.docstrings

    def next_token(self) -> Token:
        """Return the next token; repeats the terminal token once the stream ends."""
        token = next(self._tokens, None)
        if token is None:
            if self._last is None:
                raise RuntimeError("Token stream ended without a terminal token")
            return self._last
        self._last = token
        return token

    def drain(self) -> None:
        """Consume and discard whatever the lexer has not produced yet."""
        for _ in self._tokens:
            pass


class TokenQueue:
    """Runs a lexer on a producer thread behind a bounded hand-off queue.

    The producer blocks while the queue is full; :meth:`next_token` blocks
    while it is empty. Tokens arrive in production order. Call :meth:`drain`
    when abandoning the stream early so the producer thread can finish.

    :param lexer: The lexer to run.
    :param maxsize: Queue capacity.
    """

    def __init__(self, lexer: Lexer, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self.lexer = lexer
        self._queue: queue.Queue[Token | None] = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._last: Token | None = None
        self._thread = threading.Thread(target=self._produce, name=f"lexer:{lexer.name}", daemon=True)
        self._thread.start()

    @property
    def docstrings(self) -> DocstringIndex:
        return self.lexer.docstrings

    def _produce(self) -> None:
        try:
            for token in self.lexer:
                self._queue.put(token)
        finally:
            # End-of-stream sentinel, also sent if the lexer itself blew up
            self._queue.put(None)

    def next_token(self) -> Token:
        if self._closed:
            if self._last is None:
                raise RuntimeError("Token stream ended without a terminal token")
            return self._last
        token = self._queue.get()
        if token is None:
            self._closed = True
            self._thread.join()
            if self._last is None or self._last.kind not in (TokenKind.EOF, TokenKind.ERROR):
                raise RuntimeError(f"Lexer thread for {self.lexer.name} stopped unexpectedly")
            return self._last
        self._last = token
        return token

    def drain(self) -> None:
        while not self._closed:
            if self._queue.get() is None:
                self._closed = True
        self._thread.join()


def lex(
    text: str,
    name: str = "<input>",
    threaded: bool = False,
    ignored_macros: frozenset[str] = DEFAULT_IGNORED_MACROS,
) -> TokenStream | TokenQueue:
    """Create a token source for ``text``.

    :param threaded: Run the scanner on its own thread behind a bounded queue
        instead of lazily on the caller's thread.
    """
    lexer = Lexer(text, name, ignored_macros)
    if threaded:
        return TokenQueue(lexer)
    return TokenStream(lexer)
