"""Generate Java classes mirroring the header's types.

The output is the generated region of a hand-written Java class
(``View.java`` by default). The header's root namespace corresponds to
that class; nested namespaces become ``public static final class``
holders, structs and classes become ``public static class`` and enums
become ``public enum``. Each public field becomes a public Java field
with its default.

A ``double`` field flagged ``%codegen_java_float%`` is narrowed to
``float``.
"""

from __future__ import annotations

import logging
import re

from beamsplitter.directives import Directive, ResolvedHeader
from beamsplitter.emitters import Artifact
from beamsplitter.emitters._types import TypeInfo, TypeKind, TypeMapper
from beamsplitter.emitters._walk import (
    NUMBER,
    doc_comment,
    enum_value,
    is_brace_list,
    is_plain_expression,
    java_name,
    members_of,
    parse_literal,
)
from beamsplitter.errors import EmissionError
from beamsplitter.ir import Class, Enum, Field, GroupingDelimiter, Namespace, Struct

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "View.java"
INDENT = "    "

_JAVA_KEYWORDS = frozenset({"true", "false"})
_LONG_TYPES = frozenset({"int64_t", "uint64_t", "size_t"})


def _java_primitive(target: str, narrow: bool) -> str:
    if target == "bool":
        return "boolean"
    if target == "float":
        return "float"
    if target == "double":
        return "float" if narrow else "double"
    if target in _LONG_TYPES:
        return "long"
    return "int"


def java_literal(text: str, java_type: str, line: int) -> str:
    """Translate a C++ scalar expression to a Java one of ``java_type``.

    >>> java_literal("0.5", "float", 1)
    '0.5f'
    >>> java_literal("1.0f / 60.0f", "double", 1)
    '1.0 / 60.0'
    """

    def convert(match: re.Match[str]) -> str:
        number = match.group(1)
        if java_type == "float" and re.search(r"[.eE]", number):
            return number + "f"
        if java_type == "long" and not re.search(r"[.eE]", number):
            return number + "L"
        return number

    expr = NUMBER.sub(convert, text.strip())
    if not is_plain_expression(expr, _JAVA_KEYWORDS):
        raise EmissionError(f"Cannot translate default {text!r} to Java", line)
    return expr


class _JavaWriter:
    """Emits the Java region for one resolved header."""

    def __init__(self, resolved: ResolvedHeader) -> None:
        self.resolved = resolved
        self.mapper = TypeMapper(resolved.namespace)
        self.lines: list[str] = []

    def write(self) -> str:
        self._namespace_body(self.resolved.namespace, (), 1)
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        return "\n".join(self.lines) + "\n" if self.lines else ""

    def _blank(self) -> None:
        """Separate declarations, except right after an opening brace."""
        if self.lines and self.lines[-1] and not self.lines[-1].endswith("{"):
            self.lines.append("")

    def _namespace_body(self, namespace: Namespace, path: tuple[str, ...], depth: int) -> None:
        for child in namespace.children:
            if isinstance(child, Namespace):
                if not child.name:
                    self._namespace_body(child, path, depth)
                    continue
                pad = INDENT * depth
                self._blank()
                self.lines.append(f"{pad}public static final class {child.name} {{")
                self._namespace_body(child, path + (child.name,), depth + 1)
                self._close(pad)
            elif isinstance(child, Enum):
                self._enum(child, depth)
            elif isinstance(child, (Struct, Class)):
                self._record(child, path, depth)
            else:
                raise TypeError(f"Unexpected namespace child: {child!r}")

    def _close(self, pad: str) -> None:
        while self.lines and not self.lines[-1]:
            self.lines.pop()
        self.lines.append(f"{pad}}}")
        self.lines.append("")

    def _enum(self, node: Enum, depth: int) -> None:
        pad = INDENT * depth
        self._blank()
        self.lines.extend(doc_comment(self.resolved.doc(node), pad))
        self.lines.append(f"{pad}public enum {node.name} {{")
        self.lines.extend(f"{pad}{INDENT}{value}," for value in node.values)
        self._close(pad)

    def _record(self, node: Struct | Class, path: tuple[str, ...], depth: int) -> None:
        if node.name is None:
            logger.warning("line %d: skipping anonymous struct", node.line)
            return
        pad = INDENT * depth
        inner = path + (node.name,)
        self._blank()
        self.lines.extend(doc_comment(self.resolved.doc(node), pad))
        self.lines.append(f"{pad}public static class {node.name} {{")
        for member in members_of(node, nested=True):
            if isinstance(member, GroupingDelimiter):
                continue
            if isinstance(member, Field):
                self._blank()
                self._field(member, inner, pad + INDENT)
            elif isinstance(member, Enum):
                self._enum(member, depth + 1)
            elif isinstance(member, (Struct, Class)):
                self._record(member, inner, depth + 1)
            else:
                raise TypeError(f"Unexpected member: {member!r}")
        self._close(pad)
        logger.debug("java: emitted %s", java_name(inner))

    def _field(self, f: Field, scope: tuple[str, ...], pad: str) -> None:
        info = self.mapper.classify(f.type, scope)
        narrow = self.resolved.has(f, Directive.JAVA_FLOAT)
        annotations, java_type, initializer = self._declaration(f, info, narrow)
        self.lines.extend(doc_comment(self.resolved.doc(f), pad))
        if annotations:
            self.lines.append(pad + " ".join(annotations))
        suffix = f" = {initializer}" if initializer is not None else ""
        self.lines.append(f"{pad}public {java_type} {f.name}{suffix};")

    def _declaration(self, f: Field, info: TypeInfo, narrow: bool) -> tuple[list[str], str, str | None]:
        """Annotations, Java type and initializer of a field."""
        if info.kind is TypeKind.PRIMITIVE:
            assert info.target is not None
            java_type = _java_primitive(info.target, narrow)
            if f.default is None:
                return [], java_type, None
            return [], java_type, java_literal(f.default, java_type, f.line)
        if info.kind is TypeKind.STRING:
            default = (f.default or "").strip()
            if default in ("", "{}"):
                default = '""'
            elif not re.fullmatch(r'"(?:[^"\\]|\\.)*"', default):
                raise EmissionError(f"Cannot translate default {f.default!r} of {f.name} to Java", f.line)
            return ["@NonNull"], "String", default
        if info.kind is TypeKind.VECTOR:
            assert info.target is not None
            element = _java_primitive(info.target, narrow)
            annotations = ["@NonNull", f"@Size(min = {info.size})"]
            if f.default is None:
                return annotations, f"{element}[]", f"new {element}[{info.size}]"
            if not is_brace_list(f.default):
                raise EmissionError(f"Cannot translate default {f.default!r} of {f.name} to Java", f.line)
            items = parse_literal(f.default)
            if not items:
                return annotations, f"{element}[]", f"new {element}[{info.size}]"
            if len(items) != info.size:
                raise EmissionError(
                    f"Default of {f.name} has {len(items)} components, {info.text} needs {info.size}",
                    f.line,
                )
            values = ", ".join(java_literal(item, element, f.line) for item in items)
            return annotations, f"{element}[]", f"{{{values}}}"
        if info.kind is TypeKind.ENUM:
            assert isinstance(info.node, Enum)
            name = java_name(info.path)
            if f.default is None:
                value = info.node.values[0]
            else:
                value = enum_value(f.default, info.node, f.line)
            return ["@NonNull"], name, f"{name}.{value}"
        if info.kind is TypeKind.STRUCT:
            name = java_name(info.path)
            if f.default is not None and f.default.strip() != "{}":
                raise EmissionError(f"Cannot translate default {f.default!r} of {f.name} to Java", f.line)
            return ["@NonNull"], name, f"new {name}()"
        if info.kind in (TypeKind.ALIAS, TypeKind.POINTER):
            return ["@Nullable"], "Object", None
        raise EmissionError(f"Field {f.name} has type {f.type!r} that has no Java equivalent", f.line)


def header_to_java(resolved: ResolvedHeader) -> str:
    """The generated region of the Java class file."""
    return _JavaWriter(resolved).write()


class JavaEmitter:
    """Java classes for the generated region of a hand-written class.

    Options
    -------
    filename : str
        Java file whose generated region is replaced.
    """

    def __init__(self, filename: str = DEFAULT_FILENAME) -> None:
        self._filename = filename

    def emit(self, resolved: ResolvedHeader) -> list[Artifact]:
        return [Artifact(self._filename, header_to_java(resolved), patch=True)]

    @property
    def name(self) -> str:
        return "java"

    @property
    def format_description(self) -> str:
        return "Java classes for a hand-written class file"


from beamsplitter.emitters import register_emitter  # noqa: E402

register_emitter("java", JavaEmitter)
