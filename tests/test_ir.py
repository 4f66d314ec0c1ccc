"""Tests for the IR module."""

import dataclasses

import pytest

from beamsplitter.docstrings import DocstringIndex
from beamsplitter.ir import (
    AccessSpecifier,
    Class,
    Enum,
    Field,
    GroupingDelimiter,
    Header,
    Method,
    Namespace,
    Root,
    Struct,
    Using,
    split_top_level,
)


class TestField:
    def test_str(self):
        assert str(Field(1, "x", "int")) == "int x"
        assert str(Field(1, "x", "int", "1")) == "int x = 1"


class TestSplitTopLevel:
    def test_nested(self):
        assert split_top_level("{1, 2}, 3") == ["{1, 2}", "3"]

    def test_quoted_commas(self):
        assert split_top_level('"a,b", c') == ['"a,b"', "c"]

    def test_trailing_comma(self):
        assert split_top_level("1, 2,") == ["1", "2"]

    def test_call(self):
        assert split_top_level("f(1, 2), g()") == ["f(1, 2)", "g()"]


class TestEnum:
    def test_ordinal(self):
        e = Enum(1, "E", ("A", "B", "C"))
        assert [e.ordinal(v) for v in e.values] == [0, 1, 2]

    def test_underlying_type(self):
        assert Enum(1, "E", ("A",), "uint8_t").underlying_type == "uint8_t"


class TestMethod:
    def test_inline(self):
        assert Method(1, "f", "int", "()", "{ return 1; }").is_inline
        assert not Method(1, "f", "int", "()").is_inline

    def test_str(self):
        m = Method(1, "get", "int", "(int i)", is_const=True, is_noexcept=True)
        assert str(m) == "int get(int i) const noexcept"

    def test_constructor_has_no_return_type(self):
        assert str(Method(1, "S", "", "()")) == "S()"


class TestNodes:
    def test_frozen(self):
        f = Field(1, "x", "int")
        with pytest.raises(dataclasses.FrozenInstanceError):
            f.name = "y"  # type: ignore[misc]

    def test_hashable(self):
        s = Struct(1, "S", (Field(2, "x", "int"), AccessSpecifier(3, "public")))
        assert {s: "ok"}[s] == "ok"

    def test_equal_by_value(self):
        assert Enum(3, "E", ("A",)) == Enum(3, "E", ("A",))
        assert Enum(3, "E", ("A",)) != Enum(4, "E", ("A",))

    def test_grouping_delimiter(self):
        begin = GroupingDelimiter(1, "/** @{ */", True)
        assert begin.opening and not begin.closing

    def test_str(self):
        assert str(Struct(1, None, ())) == "struct (anonymous)"
        assert str(Class(1, "C", ())) == "class C"
        assert str(Namespace(1, "", ())) == "namespace (anonymous)"
        assert str(Using(1, "Cb", "void(*)()")) == "using Cb = void(*)()"
        assert str(AccessSpecifier(1, "private")) == "private:"


class TestHeader:
    def test_namespace(self):
        ns = Namespace(1, "app", ())
        header = Header("a.h", Root(1, ns), DocstringIndex())
        assert header.namespace is ns
