"""Attach emitter directives and cleaned docs to a parsed header.

Directives are ``%name%`` markers written in the comments of a field or
type declaration::

    float radius = 0.3f;   //!< Radius in meters %codegen_skip_json%

The resolver keeps parsing independent of emission policy: it never
touches the syntax tree, it builds a :class:`ResolvedHeader` that maps
nodes to their directive flags and to their documentation with the
markers removed.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from beamsplitter.docstrings import MARKER_PATTERN, Comment, strip_markers
from beamsplitter.errors import DirectiveError
from beamsplitter.ir import (
    AccessSpecifier,
    Class,
    Enum,
    Field,
    GroupingDelimiter,
    Header,
    Method,
    Namespace,
    Struct,
    Using,
)

logger = logging.getLogger(__name__)


class Directive(enum.Enum):
    """The recognized directive vocabulary. Values are the marker names."""

    SKIP_JSON = "codegen_skip_json"
    SKIP_JAVASCRIPT = "codegen_skip_javascript"
    # Reserved: accepted and recorded, no backend acts on it yet
    JAVA_FLATTEN = "codegen_java_flatten"
    JAVA_FLOAT = "codegen_java_float"

    @property
    def marker(self) -> str:
        return f"%{self.value}%"


_BY_NAME = {d.value: d for d in Directive}

# Nodes that may carry directives and documentation
Documented = Field | Struct | Class | Enum | Method | Using


@dataclass
class ResolvedHeader:
    """A parsed header plus the per-node metadata emitters consult.

    :param header: The parse result, unchanged.
    :param directives: Directive flags per annotated node.
    :param docs: Documentation per annotated node, markers removed.
    """

    header: Header
    directives: dict[Documented, frozenset[Directive]] = field(default_factory=dict)
    docs: dict[Documented, str] = field(default_factory=dict)

    @property
    def path(self) -> str:
        return self.header.path

    @property
    def namespace(self) -> Namespace:
        return self.header.namespace

    def flags(self, node: Documented) -> frozenset[Directive]:
        return self.directives.get(node, frozenset())

    def has(self, node: Documented, directive: Directive) -> bool:
        return directive in self.flags(node)

    def doc(self, node: Documented) -> str | None:
        return self.docs.get(node)


def parse_markers(names: list[str], line: int) -> frozenset[Directive]:
    """Map marker names to directives, rejecting anything unknown.

    :raises DirectiveError: For a marker outside the vocabulary.
    """
    found: set[Directive] = set()
    for name in names:
        directive = _BY_NAME.get(name)
        if directive is None:
            raise DirectiveError(name, line)
        found.add(directive)
    return frozenset(found)


def _annotated_nodes(namespace: Namespace) -> Iterator[Documented]:
    """Every node that may carry comments, in declaration order."""
    for child in namespace.children:
        if isinstance(child, Namespace):
            yield from _annotated_nodes(child)
        elif isinstance(child, Enum):
            yield child
        elif isinstance(child, (Struct, Class)):
            yield from _record_nodes(child)
        else:
            raise TypeError(f"Unexpected namespace child: {child!r}")


def _record_nodes(record: Struct | Class) -> Iterator[Documented]:
    yield record
    for member in record.members:
        if isinstance(member, (Struct, Class)):
            yield from _record_nodes(member)
        elif isinstance(member, (Field, Enum, Method, Using)):
            yield member
        elif isinstance(member, (AccessSpecifier, GroupingDelimiter)):
            continue
        else:
            raise TypeError(f"Unexpected member: {member!r}")


def resolve(header: Header) -> ResolvedHeader:
    """Collect directives and cleaned documentation for every declaration.

    Comments that belong to no declaration are still checked: an unknown
    marker there is an error, a known one is reported as having no effect.

    :param header: Parse result from :func:`beamsplitter.parser.parse`.
    :returns: The header with its emission metadata.
    :raises DirectiveError: If any comment holds an unknown ``%name%`` marker.
    """
    resolved = ResolvedHeader(header)
    index = header.docstrings
    claimed: set[Comment] = set()
    for node in _annotated_nodes(header.namespace):
        comments = index.for_line(node.line)
        claimed.update(comments)
        flags = parse_markers(index.markers(node.line), node.line)
        if flags:
            resolved.directives[node] = flags
            if Directive.JAVA_FLATTEN in flags:
                logger.warning(
                    "%s:%d: %s is reserved and has no effect",
                    header.path,
                    node.line,
                    Directive.JAVA_FLATTEN.marker,
                )
        doc = index.docstring(node.line)
        if doc is not None:
            cleaned = strip_markers(doc)
            if cleaned:
                resolved.docs[node] = cleaned
    for comment in index.comments:
        if comment in claimed:
            continue
        stray = parse_markers(MARKER_PATTERN.findall(comment.text), comment.line)
        for directive in sorted(stray, key=lambda d: d.value):
            logger.warning(
                "%s:%d: %s is not attached to a declaration and has no effect",
                header.path,
                comment.line,
                directive.marker,
            )
    logger.debug("%s: resolved directives for %d declarations", header.path, len(resolved.directives))
    return resolved
