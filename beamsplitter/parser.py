"""Recursive-descent parser producing the :mod:`beamsplitter.ir` tree.

The parser reads tokens strictly left to right with one token of
lookahead. It never backtracks: the scanner already knows enough context
to hand over blobs and split type text from names. The first token that
does not fit the grammar raises :class:`~beamsplitter.errors.ParseError`;
there is no recovery.

Grammar::

    root      = namespace
    namespace = "namespace" [ident] "{" {class | struct | enum | namespace} "}"
    class     = "class" ident [":" [access] ident] "{" {member} "}" ";"
    struct    = "struct" [ident] "{" {member} "}" [ident] ";"
    enum      = "enum" "class" ident [":" type] "{" ident {"," ident} [","] "}" ";"
    member    = access ":" | group-marker | "using" ident "=" type ";"
              | class | struct | enum | field | method
    field     = type ident ["=" default] ";"
    method    = ["template" targs] [type] ident args ["const"] ["noexcept"]
                (";" | body | "=" default ";")
"""

from __future__ import annotations

import logging
from pathlib import Path

from beamsplitter.errors import LexError, ParseError
from beamsplitter.ir import (
    AccessLevel,
    AccessSpecifier,
    Class,
    Declaration,
    Enum,
    Field,
    GroupingDelimiter,
    Header,
    Member,
    Method,
    Namespace,
    Root,
    Struct,
    Using,
)
from beamsplitter.lexer import DEFAULT_IGNORED_MACROS, Token, TokenKind, TokenQueue, TokenStream, lex

logger = logging.getLogger(__name__)

_ACCESS_TOKENS: dict[TokenKind, AccessLevel] = {
    TokenKind.PUBLIC: "public",
    TokenKind.PROTECTED: "protected",
    TokenKind.PRIVATE: "private",
}


def _describe(token: Token) -> str:
    if token.kind is TokenKind.EOF:
        return "end of input"
    if token.kind.is_keyword:
        return f"keyword '{token.text}'"
    if token.kind in (TokenKind.GROUP_BEGIN, TokenKind.GROUP_END):
        return "documentation group marker"
    if token.kind.is_blob or token.kind is TokenKind.SIMPLE_TYPE:
        return f"{token.kind.name.lower().replace('_', ' ')} {token}"
    return f"'{token.text}'"


class Parser:
    """One-token-lookahead parser over a token source.

    :param tokens: A :class:`~beamsplitter.lexer.TokenStream` or
        :class:`~beamsplitter.lexer.TokenQueue`.
    :param path: Name of the input, recorded on the resulting header.
    """

    def __init__(self, tokens: TokenStream | TokenQueue, path: str = "<input>") -> None:
        self._tokens = tokens
        self.path = path
        self._lookahead: Token | None = None

    # -------------------------------------------------------------------------
    # Token access
    # -------------------------------------------------------------------------

    def peek(self) -> Token:
        if self._lookahead is None:
            token = self._tokens.next_token()
            if token.kind is TokenKind.ERROR:
                raise LexError(token.text, token.line)
            self._lookahead = token
        return self._lookahead

    def next(self) -> Token:
        token = self.peek()
        self._lookahead = None
        return token

    def at(self, kind: TokenKind) -> bool:
        return self.peek().kind is kind

    def accept(self, kind: TokenKind) -> Token | None:
        if self.at(kind):
            return self.next()
        return None

    def expect(self, kind: TokenKind, what: str) -> Token:
        token = self.next()
        if token.kind is not kind:
            raise ParseError(f"Expected {what}, found {_describe(token)}", token.line)
        return token

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def parse(self) -> Header:
        """Parse the whole input.

        The token source is always drained, including on failure, so a
        threaded scanner can terminate.
        """
        try:
            root = self.parse_root()
        finally:
            self._tokens.drain()
        logger.debug("%s: parsed namespace %r", self.path, root.namespace.name)
        return Header(self.path, root, self._tokens.docstrings)

    def parse_root(self) -> Root:
        token = self.peek()
        namespace = self.parse_namespace()
        self.expect(TokenKind.EOF, "end of input after the top-level namespace")
        return Root(token.line, namespace)

    # -------------------------------------------------------------------------
    # Namespace level
    # -------------------------------------------------------------------------

    def parse_namespace(self) -> Namespace:
        keyword = self.expect(TokenKind.NAMESPACE, "namespace")
        name = self.accept(TokenKind.IDENTIFIER)
        self.expect(TokenKind.OPEN_BRACE, "'{' after namespace name")
        children: list[Declaration] = []
        while not self.accept(TokenKind.CLOSE_BRACE):
            children.append(self.parse_block_item())
        return Namespace(keyword.line, name.text if name else "", tuple(children))

    def parse_block_item(self) -> Declaration:
        token = self.peek()
        if token.kind is TokenKind.NAMESPACE:
            return self.parse_namespace()
        if token.kind is TokenKind.CLASS:
            return self.parse_class()
        if token.kind is TokenKind.STRUCT:
            return self.parse_struct()
        if token.kind is TokenKind.ENUM:
            return self.parse_enum()
        raise ParseError(f"Expected namespace, struct, class, or enum, found {_describe(token)}", token.line)

    # -------------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------------

    def parse_class(self) -> Class:
        keyword = self.expect(TokenKind.CLASS, "class")
        if not self.at(TokenKind.IDENTIFIER):
            raise ParseError("Anonymous classes are illegal", keyword.line)
        name = self.next().text
        base = None
        if self.accept(TokenKind.COLON):
            for kind in _ACCESS_TOKENS:
                if self.accept(kind):
                    break
            base = self.expect(TokenKind.IDENTIFIER, "base class name").text
        self.expect(TokenKind.OPEN_BRACE, f"'{{' to open class {name}")
        members = self.parse_members()
        if self.at(TokenKind.IDENTIFIER):
            raise ParseError(f"Class {name} may not declare an instance", self.peek().line)
        self.expect(TokenKind.SEMICOLON, f"';' after class {name}")
        return Class(keyword.line, name, members, base)

    def parse_struct(self) -> Struct:
        keyword = self.expect(TokenKind.STRUCT, "struct")
        name = self.accept(TokenKind.IDENTIFIER)
        self.expect(TokenKind.OPEN_BRACE, "'{' to open struct")
        members = self.parse_members()
        instance = self.accept(TokenKind.IDENTIFIER)
        self.expect(TokenKind.SEMICOLON, "';' after struct")
        return Struct(
            keyword.line,
            name.text if name else None,
            members,
            instance.text if instance else None,
        )

    def parse_enum(self) -> Enum:
        keyword = self.expect(TokenKind.ENUM, "enum")
        if not self.accept(TokenKind.CLASS):
            raise ParseError("Only scoped enums ('enum class') are supported", keyword.line)
        if not self.at(TokenKind.IDENTIFIER):
            raise ParseError("Anonymous enums are illegal", keyword.line)
        name = self.next().text
        underlying = None
        if self.accept(TokenKind.COLON):
            underlying = self.expect(TokenKind.SIMPLE_TYPE, f"underlying type of enum {name}").text
        self.expect(TokenKind.OPEN_BRACE, f"'{{' to open enum {name}")

        values: list[str] = []
        while True:
            token = self.next()
            if token.kind is TokenKind.CLOSE_BRACE and values:
                break
            if token.kind is not TokenKind.IDENTIFIER:
                raise ParseError(f"Expected enumerator in enum {name}, found {_describe(token)}", token.line)
            if token.text in values:
                raise ParseError(f"Duplicate enumerator {token.text} in enum {name}", token.line)
            values.append(token.text)
            if self.at(TokenKind.EQUALS):
                raise ParseError(
                    f"Enumerator {name}::{token.text} may not have an explicit value; values are implicit ordinals",
                    self.peek().line,
                )
            if self.accept(TokenKind.CLOSE_BRACE):
                break
            self.expect(TokenKind.COMMA, f"',' or '}}' after enumerator {token.text}")
            if self.accept(TokenKind.CLOSE_BRACE):
                break
        if self.at(TokenKind.IDENTIFIER):
            raise ParseError(f"Enum {name} may not declare an instance", self.peek().line)
        self.expect(TokenKind.SEMICOLON, f"';' after enum {name}")
        return Enum(keyword.line, name, tuple(values), underlying)

    # -------------------------------------------------------------------------
    # Members
    # -------------------------------------------------------------------------

    def parse_members(self) -> tuple[Member, ...]:
        """Parse members up to and including the closing brace."""
        members: list[Member] = []
        while not self.accept(TokenKind.CLOSE_BRACE):
            members.append(self.parse_member())
        return tuple(members)

    def parse_member(self) -> Member:
        token = self.peek()
        kind = token.kind
        if kind in _ACCESS_TOKENS:
            self.next()
            self.expect(TokenKind.COLON, f"':' after {token.text}")
            return AccessSpecifier(token.line, _ACCESS_TOKENS[kind])
        if kind is TokenKind.GROUP_BEGIN or kind is TokenKind.GROUP_END:
            self.next()
            return GroupingDelimiter(token.line, token.text, kind is TokenKind.GROUP_BEGIN)
        if kind is TokenKind.USING:
            return self.parse_using()
        if kind is TokenKind.CLASS:
            return self.parse_class()
        if kind is TokenKind.STRUCT:
            return self.parse_struct()
        if kind is TokenKind.ENUM:
            return self.parse_enum()
        if kind is TokenKind.TEMPLATE:
            self.next()
            targs = self.expect(TokenKind.TEMPLATE_ARGS, "template argument list")
            member = self.parse_declaration()
            if not isinstance(member, Method):
                raise ParseError(f"Only methods may be templates, not field {member.name}", token.line)
            return Method(
                member.line,
                member.name,
                member.return_type,
                member.arguments,
                member.body,
                True,
                targs.text,
                member.is_const,
                member.is_noexcept,
            )
        if kind is TokenKind.SIMPLE_TYPE or kind is TokenKind.IDENTIFIER:
            return self.parse_declaration()
        raise ParseError(f"Expected a member declaration, found {_describe(token)}", token.line)

    def parse_using(self) -> Using:
        keyword = self.expect(TokenKind.USING, "using")
        name = self.expect(TokenKind.IDENTIFIER, "alias name")
        self.expect(TokenKind.EQUALS, f"'=' after using {name.text}")
        rhs = self.expect(TokenKind.SIMPLE_TYPE, f"aliased type for {name.text}")
        self.expect(TokenKind.SEMICOLON, f"';' after using {name.text}")
        return Using(keyword.line, name.text, rhs.text)

    def parse_declaration(self) -> Field | Method:
        """A field or a method, told apart by what follows the name."""
        type_token = self.accept(TokenKind.SIMPLE_TYPE)
        name = self.expect(TokenKind.IDENTIFIER, "member name")
        type_text = type_token.text if type_token else ""
        line = type_token.line if type_token else name.line

        args = self.accept(TokenKind.METHOD_ARGS)
        if args is not None:
            is_const = self.accept(TokenKind.CONST) is not None
            is_noexcept = self.accept(TokenKind.NOEXCEPT) is not None
            body = self.accept(TokenKind.METHOD_BODY)
            if body is None:
                if self.accept(TokenKind.EQUALS):
                    # `= default`, `= delete` and pure virtual declarations
                    self.expect(TokenKind.DEFAULT_VALUE, f"value after '=' in method {name.text}")
                self.expect(TokenKind.SEMICOLON, f"';' or a body after method {name.text}")
            return Method(
                line,
                name.text,
                type_text,
                args.text,
                body.text if body else None,
                is_const=is_const,
                is_noexcept=is_noexcept,
            )

        if type_token is None:
            raise ParseError(f"Field {name.text} has no type", name.line)
        default = None
        if self.accept(TokenKind.EQUALS):
            default = self.expect(TokenKind.DEFAULT_VALUE, f"default value for {name.text}").text
        self.expect(TokenKind.SEMICOLON, f"';' after field {name.text}")
        return Field(line, name.text, type_text, default)


def parse(
    text: str,
    path: str = "<input>",
    threaded: bool = False,
    ignored_macros: frozenset[str] = DEFAULT_IGNORED_MACROS,
) -> Header:
    """Parse header text into a :class:`~beamsplitter.ir.Header`.

    :param text: Header source.
    :param path: Name used in diagnostics.
    :param threaded: Run the scanner on its own thread (see
        :class:`~beamsplitter.lexer.TokenQueue`).
    :raises LexError: On malformed input text.
    :raises ParseError: On a token sequence outside the grammar.

    Example
    -------
    ::

        from beamsplitter.parser import parse

        header = parse("namespace app { struct S { int x = 1; }; }")
        print(header.namespace.children[0])
    """
    tokens = lex(text, path, threaded=threaded, ignored_macros=ignored_macros)
    return Parser(tokens, path).parse()


def parse_file(path: str | Path, threaded: bool = False) -> Header:
    """Read and parse a header file."""
    p = Path(path)
    return parse(p.read_text(encoding="utf-8"), str(p), threaded=threaded)
