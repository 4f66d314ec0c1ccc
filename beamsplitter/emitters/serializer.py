"""Generate C++ JSON readers and writers for every struct and enum.

The output pairs a declaration header with a source file. Readers walk a
jsmn token array: each struct reader first stores the declared defaults,
then assigns every key found in the JSON object. Writers stream an
object with one ``"key": value`` line per field.

Fields and types flagged ``%codegen_skip_json%`` are left out.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import PurePath

from beamsplitter.directives import Directive, ResolvedHeader
from beamsplitter.emitters import Artifact
from beamsplitter.emitters._types import TypeInfo, TypeKind, TypeMapper
from beamsplitter.emitters._walk import (
    BANNER,
    TypeEntry,
    collect_types,
    cpp_name,
    enum_value,
    fields_of,
    is_brace_list,
    parse_literal,
)
from beamsplitter.errors import EmissionError
from beamsplitter.ir import Enum, Field

logger = logging.getLogger(__name__)

DEFAULT_HEADER_NAME = "Settings_generated.h"
DEFAULT_SOURCE_NAME = "Settings_generated.cpp"
DEFAULT_INCLUDES = ("jsonParseUtils.h",)

_SERIALIZABLE = (TypeKind.PRIMITIVE, TypeKind.STRING, TypeKind.VECTOR, TypeKind.ENUM, TypeKind.STRUCT)


@dataclass(frozen=True)
class _Member:
    """A serialized field with its classified type."""

    field: Field
    info: TypeInfo


def _include_guard(filename: str) -> str:
    return "BEAMSPLITTER_" + re.sub(r"[^A-Za-z0-9]", "_", filename).upper()


def _members(
    entry: TypeEntry,
    resolved: ResolvedHeader,
    mapper: TypeMapper,
    emitted: set[tuple[str, ...]],
) -> list[_Member]:
    """Fields of a struct that take part in serialization, type-checked."""
    members: list[_Member] = []
    assert not isinstance(entry.node, Enum)
    for f in fields_of(entry.node):
        if resolved.has(f, Directive.SKIP_JSON):
            logger.debug("line %d: %s skipped for json", f.line, f.name)
            continue
        info = mapper.classify(f.type, entry.scope)
        if info.kind not in _SERIALIZABLE:
            raise EmissionError(f"Field {f.name} has type {f.type!r} that cannot be serialized", f.line)
        if info.is_declared and info.path not in emitted:
            raise EmissionError(
                f"Field {f.name} refers to {cpp_name(info.path)}, which is excluded from serialization",
                f.line,
            )
        members.append(_Member(f, info))
    return members


def _default_statements(member: _Member) -> list[str]:
    """Statements storing a field's default into ``out``."""
    f, info = member.field, member.info
    if f.default is None:
        return []
    target = f"out->{f.name}"
    if info.kind is TypeKind.VECTOR and is_brace_list(f.default):
        items = parse_literal(f.default)
        if not items:
            return [f"{target} = {{}};"]
        if len(items) != info.size:
            raise EmissionError(
                f"Default of {f.name} has {len(items)} components, {info.text} needs {info.size}",
                f.line,
            )
        return [f"{target}[{i}] = {item};" for i, item in enumerate(items)]
    if info.kind is TypeKind.ENUM:
        assert isinstance(info.node, Enum)
        value = enum_value(f.default, info.node, f.line)
        return [f"{target} = {cpp_name(info.path)}::{value};"]
    return [f"{target} = {f.default.strip()};"]


def _struct_reader(entry: TypeEntry, members: list[_Member]) -> list[str]:
    name = cpp_name(entry.path)
    lines = [
        f"int parse(jsmntok_t const* tokens, int i, const char* jsonChunk, {name}* out) {{",
        "    CHECK_TOKTYPE(tokens[i], JSMN_OBJECT);",
        "    int size = tokens[i++].size;",
    ]
    for member in members:
        lines.extend(f"    {stmt}" for stmt in _default_statements(member))
    lines.append("    for (int j = 0; j < size; ++j) {")
    lines.append("        const jsmntok_t tok = tokens[i];")
    lines.append("        CHECK_KEY(tok);")
    opener = "        if"
    for member in members:
        key = member.field.name
        lines.append(f'{opener} (compare(tok, jsonChunk, "{key}") == 0) {{')
        lines.append(f"            i = parse(tokens, i + 1, jsonChunk, &out->{key});")
        opener = "        } else if"
    warn = [
        f"slog.w << \"Invalid {name} key: '\" << STR(tok, jsonChunk) << \"'\" << io::endl;",
        "i = parse(tokens, i + 1);",
    ]
    if members:
        lines.append("        } else {")
        lines.extend(f"            {stmt}" for stmt in warn)
        lines.append("        }")
    else:
        lines.extend(f"        {stmt}" for stmt in warn)
    lines.extend(
        [
            "        if (i < 0) {",
            f"            slog.e << \"Invalid {name} value: '\" << STR(tok, jsonChunk) << \"'\" << io::endl;",
            "            return i;",
            "        }",
            "    }",
            "    return i;",
            "}",
        ]
    )
    return lines


def _struct_writer(entry: TypeEntry, members: list[_Member]) -> list[str]:
    name = cpp_name(entry.path)
    lines = [
        f"std::ostream& operator<<(std::ostream& out, const {name}& in) {{",
        '    return out << "{\\n"',
    ]
    for i, member in enumerate(members):
        key = member.field.name
        value = f"(in.{key})"
        if member.info.kind is TypeKind.PRIMITIVE and member.info.target == "bool":
            value = f"to_string(in.{key})"
        sep = ",\\n" if i < len(members) - 1 else "\\n"
        lines.append(f'        << "\\"{key}\\": " << {value} << "{sep}"')
    lines.append('        << "}";')
    lines.append("}")
    return lines


def _enum_reader(entry: TypeEntry) -> list[str]:
    assert isinstance(entry.node, Enum)
    name = cpp_name(entry.path)
    lines = [f"int parse(jsmntok_t const* tokens, int i, const char* jsonChunk, {name}* out) {{"]
    opener = "    if"
    for value in entry.node.values:
        lines.append(f'{opener} (compare(tokens[i], jsonChunk, "{value}") == 0) {{')
        lines.append(f"        *out = {name}::{value};")
        opener = "    } else if"
    lines.extend(
        [
            "    } else {",
            "        return -1;",
            "    }",
            "    return i + 1;",
            "}",
        ]
    )
    return lines


def _enum_writer(entry: TypeEntry) -> list[str]:
    assert isinstance(entry.node, Enum)
    name = cpp_name(entry.path)
    lines = [
        f"std::ostream& operator<<(std::ostream& out, {name} in) {{",
        "    switch (in) {",
    ]
    for value in entry.node.values:
        lines.append(f'        case {name}::{value}: return out << "\\"{value}\\"";')
    lines.extend(
        [
            "    }",
            '    return out << "\\"INVALID\\"";',
            "}",
        ]
    )
    return lines


def _declarations(entry: TypeEntry) -> list[str]:
    name = cpp_name(entry.path)
    if isinstance(entry.node, Enum):
        return [
            f"int parse(jsmntok_t const* tokens, int i, const char* jsonChunk, {name}* out);",
            f"std::ostream& operator<<(std::ostream& out, {name} in);",
        ]
    return [
        f"int parse(jsmntok_t const* tokens, int i, const char* jsonChunk, {name}* out);",
        f"std::ostream& operator<<(std::ostream& out, const {name}& in);",
    ]


def _open_namespace(lines: list[str], namespace: str) -> None:
    if namespace:
        lines.append(f"namespace {namespace} {{")
        lines.append("")


def _close_namespace(lines: list[str], namespace: str) -> None:
    if namespace:
        lines.append(f"}} // namespace {namespace}")
        lines.append("")


def header_to_serializer(
    resolved: ResolvedHeader,
    header_name: str = DEFAULT_HEADER_NAME,
    source_name: str = DEFAULT_SOURCE_NAME,
    includes: tuple[str, ...] = DEFAULT_INCLUDES,
) -> tuple[str, str]:
    """Generate the declaration header and the source file.

    :returns: ``(header_text, source_text)``.
    :raises EmissionError: On a field whose type has no JSON form.
    """
    namespace = resolved.namespace.name
    mapper = TypeMapper(resolved.namespace)
    entries = collect_types(resolved.namespace, exclude=lambda n: resolved.has(n, Directive.SKIP_JSON))
    emitted = {e.path for e in entries}
    source_base = PurePath(resolved.path).name

    decl = [f"// {BANNER}", f"// Source: {source_base}", ""]
    guard = _include_guard(header_name)
    decl += [f"#ifndef {guard}", f"#define {guard}", ""]
    decl += [f'#include "{source_base}"', "", "#include <jsmn.h>", "", "#include <ostream>", ""]
    _open_namespace(decl, namespace)

    body = [f"// {BANNER}", f"// Source: {source_base}", ""]
    body.append(f'#include "{header_name}"')
    body.append("")
    for include in includes:
        body.append(f"#include <{include[1:-1]}>" if include.startswith("<") else f'#include "{include}"')
    body += ["", "#include <ostream>", "#include <string>", "", "using namespace utils;", ""]
    _open_namespace(body, namespace)

    for entry in entries:
        decl.extend(_declarations(entry))
        decl.append("")
        if isinstance(entry.node, Enum):
            body.extend(_enum_reader(entry))
            body.append("")
            body.extend(_enum_writer(entry))
        else:
            members = _members(entry, resolved, mapper, emitted)
            body.extend(_struct_reader(entry, members))
            body.append("")
            body.extend(_struct_writer(entry, members))
        body.append("")
        logger.debug("json: emitted %s", cpp_name(entry.path))

    _close_namespace(decl, namespace)
    decl += [f"#endif // {guard}", ""]
    _close_namespace(body, namespace)
    return "\n".join(decl).rstrip("\n") + "\n", "\n".join(body).rstrip("\n") + "\n"


class SerializerEmitter:
    """C++ JSON readers and writers for every struct and enum.

    Options
    -------
    header_name : str
        Name of the generated declaration header.
    source_name : str
        Name of the generated source file.
    includes : tuple[str, ...]
        Extra includes of the source file; ``<...>`` entries are system includes.
    """

    def __init__(
        self,
        header_name: str = DEFAULT_HEADER_NAME,
        source_name: str = DEFAULT_SOURCE_NAME,
        includes: tuple[str, ...] = DEFAULT_INCLUDES,
    ) -> None:
        self._header_name = header_name
        self._source_name = source_name
        self._includes = tuple(includes)

    def emit(self, resolved: ResolvedHeader) -> list[Artifact]:
        header_text, source_text = header_to_serializer(
            resolved, self._header_name, self._source_name, self._includes
        )
        return [
            Artifact(self._header_name, header_text),
            Artifact(self._source_name, source_text),
        ]

    @property
    def name(self) -> str:
        return "json"

    @property
    def format_description(self) -> str:
        return "C++ JSON readers and writers"


from beamsplitter.emitters import register_emitter  # noqa: E402

register_emitter("json", SerializerEmitter)
