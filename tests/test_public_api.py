"""Tests for the public API re-exports from the beamsplitter package."""


def test_all_matches_module_exports():
    """__all__ should list every public name exported from beamsplitter."""
    import beamsplitter

    for name in beamsplitter.__all__:
        assert hasattr(beamsplitter, name), f"beamsplitter.__all__ lists {name!r} but it is not an attribute"

    # Reverse check: every public non-module attribute should be listed in __all__
    import types

    public_attrs = {
        name
        for name in dir(beamsplitter)
        if not name.startswith("_") and not isinstance(getattr(beamsplitter, name), types.ModuleType)
    }
    missing = public_attrs - set(beamsplitter.__all__)
    assert missing == set(), f"Public attributes missing from __all__: {missing}"


def test_type_aliases_are_unions():
    """Member and Declaration should be Union type aliases."""
    import typing

    import beamsplitter
    from beamsplitter import AccessSpecifier, Class, Enum, Field, GroupingDelimiter, Method, Namespace, Struct, Using

    member_types = set(typing.get_args(beamsplitter.Member))
    assert member_types == {AccessSpecifier, GroupingDelimiter, Using, Method, Field, Struct, Class, Enum}

    decl_types = set(typing.get_args(beamsplitter.Declaration))
    assert decl_types == {Namespace, Class, Struct, Enum}


def test_errors_share_a_base():
    from beamsplitter import (
        BeamsplitterError,
        DirectiveError,
        EmissionError,
        LexError,
        ParseError,
        PatchError,
    )

    for error in (LexError, ParseError, DirectiveError, EmissionError, PatchError):
        assert issubclass(error, BeamsplitterError)


def test_ir_types_match_direct_import():
    """Types from the package are the same objects as from beamsplitter.ir."""
    import beamsplitter
    import beamsplitter.ir

    assert beamsplitter.Field is beamsplitter.ir.Field
    assert beamsplitter.Header is beamsplitter.ir.Header
