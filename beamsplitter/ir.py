"""Abstract syntax tree for annotated headers.

The parser produces these nodes once per input file. They are frozen:
the only later enrichment (emitter directives, cleaned docstrings) lives
beside the tree in :class:`~beamsplitter.directives.ResolvedHeader`.

Node kinds form a closed set. Emitters dispatch over :data:`Member` and
:data:`Declaration` with ``isinstance`` chains that cover every variant.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal, Union

if TYPE_CHECKING:
    from beamsplitter.docstrings import DocstringIndex

AccessLevel = Literal["public", "protected", "private"]


# =============================================================================
# Members
# =============================================================================


@dataclass(frozen=True)
class AccessSpecifier:
    """``public:``, ``protected:`` or ``private:`` inside a class body."""

    line: int
    access: AccessLevel

    def __str__(self) -> str:
        return f"{self.access}:"


@dataclass(frozen=True)
class GroupingDelimiter:
    """A ``/** @{ */`` or ``/** @} */`` documentation group marker.

    :param docstring: The block comment, verbatim.
    :param opening: True for a group begin, False for a group end.
    """

    line: int
    docstring: str
    opening: bool

    @property
    def closing(self) -> bool:
        return not self.opening


@dataclass(frozen=True)
class Using:
    """``using name = rhs;`` -- names a type the grammar cannot spell inline."""

    line: int
    name: str
    rhs: str

    def __str__(self) -> str:
        return f"using {self.name} = {self.rhs}"


@dataclass(frozen=True)
class Method:
    """A method declaration or inline definition.

    The argument list and body are kept as unparsed blobs.

    :param arguments: Argument list including the outer parentheses.
    :param body: Body including the outer braces, or None for a declaration.
    :param template_args: ``<...>`` blob following ``template``, if any.
    """

    line: int
    name: str
    return_type: str
    arguments: str
    body: str | None = None
    is_template: bool = False
    template_args: str | None = None
    is_const: bool = False
    is_noexcept: bool = False

    @property
    def is_inline(self) -> bool:
        return self.body is not None

    def __str__(self) -> str:
        suffix = "".join(
            [
                " const" if self.is_const else "",
                " noexcept" if self.is_noexcept else "",
            ]
        )
        ret = f"{self.return_type} " if self.return_type else ""
        return f"{ret}{self.name}{self.arguments}{suffix}"


@dataclass(frozen=True)
class Field:
    """A data member.

    :param type: Type text as written, e.g. ``"float"`` or ``"math::float3"``.
    :param default: Unparsed default-value expression, or None.
    """

    line: int
    name: str
    type: str
    default: str | None = None

    def __str__(self) -> str:
        if self.default is None:
            return f"{self.type} {self.name}"
        return f"{self.type} {self.name} = {self.default}"


# =============================================================================
# Declarations
# =============================================================================


@dataclass(frozen=True)
class Enum:
    """A scoped enum. Values are implicit ordinals starting at zero."""

    line: int
    name: str
    values: tuple[str, ...]
    underlying_type: str | None = None

    def ordinal(self, value: str) -> int:
        return self.values.index(value)

    def __str__(self) -> str:
        return f"enum class {self.name}"


@dataclass(frozen=True)
class Struct:
    """A struct, possibly anonymous, possibly declaring an instance."""

    line: int
    name: str | None
    members: tuple[Member, ...]
    instance_name: str | None = None

    def __str__(self) -> str:
        return f"struct {self.name or '(anonymous)'}"


@dataclass(frozen=True)
class Class:
    """A named class with an optional single base retained as text."""

    line: int
    name: str
    members: tuple[Member, ...]
    base: str | None = None

    def __str__(self) -> str:
        return f"class {self.name}"


@dataclass(frozen=True)
class Namespace:
    """A namespace; an empty name is an anonymous namespace."""

    line: int
    name: str
    children: tuple[Declaration, ...]

    def __str__(self) -> str:
        return f"namespace {self.name or '(anonymous)'}"


@dataclass(frozen=True)
class Root:
    """Top of the tree. Always wraps exactly one namespace."""

    line: int
    namespace: Namespace


# Closed variant sets
Member = Union[AccessSpecifier, GroupingDelimiter, Using, Method, Field, Struct, Class, Enum]
Declaration = Union[Namespace, Class, Struct, Enum]
Node = Union[Root, Namespace, Class, Struct, Enum, Using, AccessSpecifier, GroupingDelimiter, Method, Field]


@dataclass
class Header:
    """Result of parsing one input file.

    :param path: Name of the input, used in diagnostics and generated banners.
    :param root: The syntax tree.
    :param docstrings: Comments indexed by line, owned by this parse.
    """

    path: str
    root: Root
    docstrings: DocstringIndex

    @property
    def namespace(self) -> Namespace:
        return self.root.namespace


def split_top_level(text: str) -> list[str]:
    """Split ``text`` on commas that are not nested in brackets or literals.

    Empty items (from a trailing comma) are dropped.
    """
    items: list[str] = []
    depth = 0
    quote = ""
    current: list[str] = []
    escaped = False
    for ch in text:
        if quote:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "({[<":
            depth += 1
        elif ch in ")}]>":
            depth -= 1
        elif ch == "," and depth == 0:
            items.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        items.append(tail)
    return [item for item in items if item]
