"""Tests for the state-machine scanner and its token sources."""

from __future__ import annotations

import pytest

from beamsplitter.lexer import Lexer, Token, TokenKind, TokenQueue, TokenStream, lex

K = TokenKind


def kinds(text: str) -> list[TokenKind]:
    return [t.kind for t in Lexer(text)]


def last(text: str) -> Token:
    return list(Lexer(text))[-1]


def tokens_text(text: str, kind: TokenKind) -> list[str]:
    return [t.text for t in Lexer(text) if t.kind is kind]


class TestTokens:
    def test_enum(self) -> None:
        assert kinds("namespace a { enum class E { X }; }") == [
            K.NAMESPACE,
            K.IDENTIFIER,
            K.OPEN_BRACE,
            K.ENUM,
            K.CLASS,
            K.IDENTIFIER,
            K.OPEN_BRACE,
            K.IDENTIFIER,
            K.CLOSE_BRACE,
            K.SEMICOLON,
            K.CLOSE_BRACE,
            K.EOF,
        ]

    def test_enum_separator_is_a_symbol(self) -> None:
        tokens = list(Lexer("namespace a { enum class E { X, Y }; }"))
        comma = next(t for t in tokens if t.kind is K.COMMA)
        assert comma.text == ","
        assert comma.kind.is_symbol

    def test_field_with_default(self) -> None:
        tokens = list(Lexer("namespace a { struct S { float x = 1.0f; }; }"))
        assert [t.kind for t in tokens] == [
            K.NAMESPACE,
            K.IDENTIFIER,
            K.OPEN_BRACE,
            K.STRUCT,
            K.IDENTIFIER,
            K.OPEN_BRACE,
            K.SIMPLE_TYPE,
            K.IDENTIFIER,
            K.EQUALS,
            K.DEFAULT_VALUE,
            K.SEMICOLON,
            K.CLOSE_BRACE,
            K.SEMICOLON,
            K.CLOSE_BRACE,
            K.EOF,
        ]
        assert tokens[6].text == "float"
        assert tokens[9].text == "1.0f"

    def test_brace_default_is_one_blob(self) -> None:
        tokens = list(Lexer("namespace a { struct S { float3 v = {1, 2, 3}; }; }"))
        blob = next(t for t in tokens if t.kind is K.DEFAULT_VALUE)
        assert blob.text == "{1, 2, 3}"
        assert blob.kind.is_blob

    @pytest.mark.parametrize(
        "default",
        ["1<<4", "1<2", "a<b", "a << 4", "x <= 3", "1.0f<2.0f", "std::numeric_limits<int>::max()"],
    )
    def test_comparisons_and_shifts_in_default(self, default: str) -> None:
        tokens = list(Lexer(f"namespace a {{\nstruct S {{\n    int v = {default};\n    int w;\n}};\n}}"))
        assert tokens[-1].kind is K.EOF
        assert tokens_text(f"namespace a {{ struct S {{ int v = {default}; }}; }}", K.DEFAULT_VALUE) == [default]
        assert next(t for t in tokens if t.text == "w").line == 4

    def test_pointer_type_text(self) -> None:
        tokens = list(Lexer("namespace a { struct S { const Texture * tex; }; }"))
        type_token = next(t for t in tokens if t.kind is K.SIMPLE_TYPE)
        assert type_token.text == "const Texture*"

    def test_qualified_type(self) -> None:
        tokens = list(Lexer("namespace a { struct S { math::float3 v; }; }"))
        assert next(t for t in tokens if t.kind is K.SIMPLE_TYPE).text == "math::float3"

    def test_method_blobs(self) -> None:
        tokens = list(Lexer("namespace a { struct S { int get(int i) const noexcept { return i; } }; }"))
        by_kind = {t.kind: t.text for t in tokens}
        assert by_kind[K.METHOD_ARGS] == "(int i)"
        assert by_kind[K.METHOD_BODY] == "{ return i; }"
        assert K.CONST in by_kind
        assert K.NOEXCEPT in by_kind

    def test_template_method(self) -> None:
        tokens = list(Lexer("namespace a { struct S { template<typename T> T as() const; }; }"))
        assert next(t for t in tokens if t.kind is K.TEMPLATE_ARGS).text == "<typename T>"

    def test_body_with_nested_braces_and_strings(self) -> None:
        text = 'namespace a { struct S { void f() { if (x) { log("}"); } } }; }'
        tokens = list(Lexer(text))
        assert next(t for t in tokens if t.kind is K.METHOD_BODY).text == '{ if (x) { log("}"); } }'
        assert tokens[-1].kind is K.EOF

    def test_keyword_prefix_is_identifier(self) -> None:
        tokens = list(Lexer("namespace a { struct S { int classic; }; }"))
        assert next(t for t in tokens if t.kind is K.IDENTIFIER and t.text == "classic")

    def test_lines(self) -> None:
        tokens = list(Lexer("namespace a {\n\nstruct S {\n    int x;\n};\n}\n"))
        lines = {t.text: t.line for t in tokens if t.kind in (K.STRUCT, K.SIMPLE_TYPE)}
        assert lines == {"struct": 3, "int": 4}

    def test_access_specifiers(self) -> None:
        assert kinds("namespace a { class C { public: int x; private: int y; }; }")[4:8] == [
            K.IDENTIFIER,
            K.OPEN_BRACE,
            K.PUBLIC,
            K.COLON,
        ]

    def test_using_alias(self) -> None:
        tokens = list(Lexer("namespace a { struct S { using Cb = void(*)(int); }; }"))
        assert next(t for t in tokens if t.kind is K.SIMPLE_TYPE).text == "void(*)(int)"

    def test_token_str(self) -> None:
        assert str(Token(K.EOF, "", 0, 1)) == "EOF"
        assert str(Token(K.STRUCT, "struct", 0, 1)) == "<struct>"
        assert str(Token(K.IDENTIFIER, "x", 0, 1)) == "'x'"


class TestTrivia:
    def test_preprocessor_lines_skipped(self) -> None:
        text = "#pragma once\n#include <a.h>\n#define LONG \\\n    1\nnamespace a { }"
        assert kinds(text) == [K.NAMESPACE, K.IDENTIFIER, K.OPEN_BRACE, K.CLOSE_BRACE, K.EOF]

    def test_ignored_macros(self) -> None:
        text = "namespace a { struct UTILS_PUBLIC S { UTILS_DEPRECATED int x; }; }"
        tokens = list(Lexer(text))
        assert [t.text for t in tokens if t.kind is K.IDENTIFIER] == ["a", "S", "x"]

    def test_ignored_macro_with_arguments(self) -> None:
        text = "namespace a { struct S { UTILS_WARN_UNUSED_RESULT(1) int f(); }; }"
        assert tokens_text(text, K.IDENTIFIER) == ["a", "S", "f"]

    def test_custom_ignored_macros(self) -> None:
        text = "namespace a { struct MY_API S { }; }"
        tokens = list(Lexer(text, ignored_macros=frozenset({"MY_API"})))
        assert [t.text for t in tokens if t.kind is K.IDENTIFIER] == ["a", "S"]

    def test_comments_are_indexed(self) -> None:
        lexer = Lexer("namespace a {\n// above\nstruct S {\n    int x; //!< after\n};\n}")
        list(lexer)
        texts = [c.text for c in lexer.docstrings.comments]
        assert texts == ["// above", "//!< after"]
        assert [c.trailing for c in lexer.docstrings.comments] == [False, True]

    def test_group_markers_in_struct_body(self) -> None:
        text = "namespace a { struct S {\n/** @{ */\nint x;\n/** @} */\n}; }"
        tokens = list(Lexer(text))
        groups = [t for t in tokens if t.kind in (K.GROUP_BEGIN, K.GROUP_END)]
        assert [(t.kind, t.text, t.line) for t in groups] == [
            (K.GROUP_BEGIN, "/** @{ */", 2),
            (K.GROUP_END, "/** @} */", 4),
        ]

    def test_group_markers_outside_struct_are_comments(self) -> None:
        assert K.GROUP_BEGIN not in kinds("namespace a {\n/** @{ */\n}")


class TestErrors:
    @pytest.mark.parametrize(
        ("text", "message", "line"),
        [
            ("struct S {};", "Expected namespace", 1),
            ("", "Expected namespace", 1),
            ("namespace a { }\nint x;", "Expected end of input", 2),
            ("namespace a {\nclass { };\n}", "Anonymous classes", 2),
            ("namespace a {\nenum { A };\n}", "Anonymous enums", 2),
            ("namespace a {\nstruct S {\n    std::vector<int> v;\n};\n}", "Template types", 3),
            ("namespace a {\nstruct S {\n    int a, b;\n};\n}", "Multiple declarators", 3),
            ("namespace a {\nstruct S {\n    float v[3];\n};\n}", "Array members", 3),
            ("namespace a {\nstruct S {\n    uint32_t bits : 4;\n};\n}", "Bit-fields", 3),
            ("namespace a {\nstruct S {\n    int x{1};\n};\n}", "Brace-initialized", 3),
            ("namespace a {\nstruct S {\n    void (*cb)(int);\n};\n}", "Function pointer", 3),
            ('namespace a {\nstruct S {\n    const char* s = "ab\ncd";\n};\n}', "Multi-line string", 3),
            ("namespace a {\n#define X 1\n}", "Macro definitions", 2),
            ("namespace a {\nint x;\n}", "Expected namespace, struct, class, or enum", 2),
        ],
    )
    def test_error_token(self, text: str, message: str, line: int) -> None:
        token = last(text)
        assert token.kind is K.ERROR
        assert message in token.text
        assert token.line == line

    def test_unterminated_block_comment(self) -> None:
        token = last("namespace a { /* never closed")
        assert token.kind is K.ERROR
        assert "Unterminated block comment" in token.text

    def test_unterminated_body(self) -> None:
        token = last("namespace a { struct S { void f() { ")
        assert token.kind is K.ERROR
        assert "Unterminated" in token.text

    def test_nothing_after_error(self) -> None:
        tokens = list(Lexer("namespace a { struct S { int a[2]; int b; }; }"))
        assert [t.kind for t in tokens].count(K.ERROR) == 1
        assert tokens[-1].kind is K.ERROR


class TestIteration:
    def test_lazy(self) -> None:
        text = "namespace a { struct S { int x; }; }"
        lexer = Lexer(text)
        first = next(iter(lexer))
        assert first.kind is K.NAMESPACE
        assert lexer.pos < len(text)

    def test_single_pass(self) -> None:
        lexer = Lexer("namespace a { }")
        list(lexer)
        with pytest.raises(RuntimeError, match="only be iterated once"):
            iter(lexer)

    def test_stream_repeats_terminal_token(self) -> None:
        stream = TokenStream(Lexer("namespace a { }"))
        seen = [stream.next_token() for _ in range(6)]
        assert seen[-1].kind is K.EOF
        assert stream.next_token().kind is K.EOF

    def test_lex_picks_source(self) -> None:
        assert isinstance(lex("namespace a { }"), TokenStream)
        source = lex("namespace a { }", threaded=True)
        assert isinstance(source, TokenQueue)
        source.drain()


class TestTokenQueue:
    def test_same_order_as_lazy_iteration(self, sample_text: str) -> None:
        expected = list(Lexer(sample_text))
        source = TokenQueue(Lexer(sample_text), maxsize=2)
        received = []
        while True:
            token = source.next_token()
            received.append(token)
            if token.kind in (K.EOF, K.ERROR):
                break
        source.drain()
        assert received == expected

    def test_drain_releases_producer(self, sample_text: str) -> None:
        source = TokenQueue(Lexer(sample_text), maxsize=1)
        assert source.next_token().kind is K.NAMESPACE
        source.drain()
        assert not source._thread.is_alive()

    def test_error_is_delivered(self) -> None:
        source = TokenQueue(Lexer("namespace a { int x; }"))
        tokens = [source.next_token() for _ in range(4)]
        assert tokens[-1].kind is K.ERROR
        source.drain()

    def test_docstrings_shared_with_lexer(self) -> None:
        source = TokenQueue(Lexer("namespace a {\n// hello\n}"))
        source.drain()
        assert len(source.docstrings) == 1
