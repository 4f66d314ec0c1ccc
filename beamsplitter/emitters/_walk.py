"""Tree walking, naming and literal helpers shared by the emitters."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass

from beamsplitter.errors import EmissionError
from beamsplitter.ir import (
    AccessSpecifier,
    Class,
    Enum,
    Field,
    GroupingDelimiter,
    Method,
    Namespace,
    Struct,
    Using,
    split_top_level,
)

logger = logging.getLogger(__name__)

BANNER = "This file was generated by beamsplitter. Do not edit."

TypeNode = Enum | Struct | Class

# A numeric literal with its C++ suffix split off
NUMBER = re.compile(r"(?<![\w.])((?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)([fFuUlL]*)(?![\w.])")
_IDENTIFIER = re.compile(r"(?<![\w.])[A-Za-z_]\w*")
_ARITHMETIC = re.compile(r"[\w\s.+\-*/()]+")


@dataclass(frozen=True)
class TypeEntry:
    """A type declaration with its location.

    :param path: Qualified name below the root namespace.
    :param node: The declaration.
    :param scope: Scope used to resolve names inside the declaration.
    """

    path: tuple[str, ...]
    node: TypeNode

    @property
    def scope(self) -> tuple[str, ...]:
        # Members of a record see the record's own scope, an enum has none
        if isinstance(self.node, Enum):
            return self.path[:-1]
        return self.path

    @property
    def name(self) -> str:
        return self.path[-1]


def collect_types(
    namespace: Namespace,
    exclude: Callable[[TypeNode], bool] | None = None,
) -> list[TypeEntry]:
    """All named types in declaration order, each record before its nested types.

    :param exclude: Predicate dropping a type and everything nested in it.
    """
    return list(_walk_namespace(namespace, (), exclude))


def _walk_namespace(
    namespace: Namespace,
    path: tuple[str, ...],
    exclude: Callable[[TypeNode], bool] | None,
) -> Iterator[TypeEntry]:
    for child in namespace.children:
        if isinstance(child, Namespace):
            inner = path + (child.name,) if child.name else path
            yield from _walk_namespace(child, inner, exclude)
        elif isinstance(child, (Enum, Struct, Class)):
            yield from _walk_type(child, path, exclude)
        else:
            raise TypeError(f"Unexpected namespace child: {child!r}")


def _walk_type(
    node: TypeNode,
    path: tuple[str, ...],
    exclude: Callable[[TypeNode], bool] | None,
) -> Iterator[TypeEntry]:
    if node.name is None:
        logger.warning("line %d: skipping anonymous struct", node.line)
        return
    if exclude is not None and exclude(node):
        logger.debug("line %d: excluded %s", node.line, node)
        return
    entry = TypeEntry(path + (node.name,), node)
    yield entry
    if isinstance(node, Enum):
        return
    if isinstance(node, Struct) and node.instance_name:
        logger.warning("line %d: ignoring instance name %r of %s", node.line, node.instance_name, node)
    for member in node.members:
        if isinstance(member, (Enum, Struct, Class)):
            yield from _walk_type(member, entry.path, exclude)


def members_of(
    record: Struct | Class,
    nested: bool = False,
) -> Iterator[Field | GroupingDelimiter | TypeNode]:
    """Public fields and group markers of ``record``, in member order.

    Struct members start public, class members private; access specifiers
    switch visibility for the members after them.

    :param nested: Also yield nested type declarations, whatever their access.
    """
    public = isinstance(record, Struct)
    for member in record.members:
        if isinstance(member, AccessSpecifier):
            public = member.access == "public"
        elif isinstance(member, GroupingDelimiter):
            yield member
        elif isinstance(member, Field):
            if public:
                yield member
            else:
                logger.debug("line %d: skipping non-public field %s", member.line, member.name)
        elif isinstance(member, (Enum, Struct, Class)):
            if nested:
                yield member
        elif isinstance(member, (Method, Using)):
            continue
        else:
            raise TypeError(f"Unexpected member: {member!r}")


def fields_of(record: Struct | Class) -> list[Field]:
    """Public fields of ``record`` in declaration order."""
    return [m for m in members_of(record) if isinstance(m, Field)]


def cpp_name(path: tuple[str, ...]) -> str:
    return "::".join(path)


def js_name(path: tuple[str, ...]) -> str:
    return "$".join(path)


def java_name(path: tuple[str, ...]) -> str:
    return ".".join(path)


def split_brace_list(text: str) -> list[str]:
    """Items of a ``{a, b, c}`` literal, optionally prefixed by a type name.

    :raises ValueError: If ``text`` is not a brace list.
    """
    stripped = text.strip()
    open_at = stripped.find("{")
    if open_at < 0 or not stripped.endswith("}"):
        raise ValueError(f"Not a brace list: {text!r}")
    prefix = stripped[:open_at].strip()
    if prefix and not re.fullmatch(r"[A-Za-z_][\w:]*", prefix):
        raise ValueError(f"Not a brace list: {text!r}")
    return split_top_level(stripped[open_at + 1 : -1])


def parse_literal(text: str) -> list[str]:
    """Split a default-value blob into scalar items.

    >>> parse_literal("{1, 2, 3}")
    ['1', '2', '3']
    >>> parse_literal("0.5f")
    ['0.5f']
    """
    try:
        return split_brace_list(text)
    except ValueError:
        return [text.strip()]


def is_brace_list(text: str) -> bool:
    try:
        split_brace_list(text)
    except ValueError:
        return False
    return True


def strip_number_suffixes(expr: str) -> str:
    """Drop C++ literal suffixes: ``1.0f / 60.0f`` becomes ``1.0 / 60.0``."""
    return NUMBER.sub(lambda m: m.group(1), expr)


def enum_value(default: str, node: Enum, line: int) -> str:
    """The enumerator named by a default such as ``BlendMode::ADD``."""
    value = default.strip().rsplit("::", 1)[-1]
    if value not in node.values:
        raise EmissionError(f"Default {default!r} is not a value of enum {node.name}", line)
    return value


def doc_comment(text: str | None, indent: str = "") -> list[str]:
    """Format documentation as a ``/** ... */`` block."""
    if not text:
        return []
    lines = [f"{indent}/**"]
    for line in text.split("\n"):
        lines.append(f"{indent} * {line}".rstrip())
    lines.append(f"{indent} */")
    return lines


def is_plain_expression(expr: str, keywords: frozenset[str]) -> bool:
    """True if ``expr`` is arithmetic over literals and ``keywords`` only."""
    if not _ARITHMETIC.fullmatch(expr):
        return False
    return all(word in keywords for word in _IDENTIFIER.findall(expr))
