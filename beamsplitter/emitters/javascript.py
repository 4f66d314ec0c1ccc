"""Generate Embind glue, a defaults script and TypeScript declarations.

Four artifacts come out of one header:

* ``jsbindings_generated.cpp`` registers a ``value_object`` per struct.
* ``jsenums_generated.cpp`` registers an ``enum_`` per enum.
* ``extensions_generated.js`` adds a ``<Type>Defaults(overrides)`` factory
  per struct to the module object.
* A region for the hand-written TypeScript declaration file with an
  ``export enum`` or ``export interface`` per type.

Nested names are flattened with ``$``: ``View::BlendMode`` is bound as
``View$BlendMode``. Fields and types flagged ``%codegen_skip_javascript%``
are left out.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePath

from beamsplitter.directives import Directive, ResolvedHeader
from beamsplitter.emitters import Artifact
from beamsplitter.emitters._types import TypeInfo, TypeKind, TypeMapper
from beamsplitter.emitters._walk import (
    BANNER,
    TypeEntry,
    collect_types,
    cpp_name,
    doc_comment,
    enum_value,
    is_brace_list,
    is_plain_expression,
    js_name,
    members_of,
    parse_literal,
    strip_number_suffixes,
)
from beamsplitter.errors import EmissionError
from beamsplitter.ir import Enum, Field, GroupingDelimiter

logger = logging.getLogger(__name__)

DEFAULT_MODULE = "Filament"
DEFAULT_BINDINGS_NAME = "jsbindings_generated.cpp"
DEFAULT_ENUMS_NAME = "jsenums_generated.cpp"
DEFAULT_EXTENSIONS_NAME = "extensions_generated.js"
DEFAULT_TYPESCRIPT_NAME = "filament.d.ts"

_BINDABLE = (TypeKind.PRIMITIVE, TypeKind.STRING, TypeKind.VECTOR, TypeKind.ENUM, TypeKind.STRUCT)
_JS_KEYWORDS = frozenset({"true", "false", "null"})


class _Bindings:
    """Per-header state shared by the four artifacts."""

    def __init__(self, resolved: ResolvedHeader, module: str) -> None:
        self.resolved = resolved
        self.module = module
        self.mapper = TypeMapper(resolved.namespace)
        self.entries = collect_types(
            resolved.namespace, exclude=lambda n: resolved.has(n, Directive.SKIP_JAVASCRIPT)
        )
        self.emitted = {e.path for e in self.entries}

    def members(self, entry: TypeEntry) -> list[tuple[Field, TypeInfo] | GroupingDelimiter]:
        """Bound fields with their types, and group markers, in member order."""
        assert not isinstance(entry.node, Enum)
        result: list[tuple[Field, TypeInfo] | GroupingDelimiter] = []
        for member in members_of(entry.node):
            if isinstance(member, GroupingDelimiter):
                result.append(member)
                continue
            assert isinstance(member, Field)
            if self.resolved.has(member, Directive.SKIP_JAVASCRIPT):
                logger.debug("line %d: %s skipped for javascript", member.line, member.name)
                continue
            info = self.mapper.classify(member.type, entry.scope)
            if info.kind not in _BINDABLE:
                raise EmissionError(
                    f"Field {member.name} has type {member.type!r} that has no JavaScript binding",
                    member.line,
                )
            if info.is_declared and info.path not in self.emitted:
                raise EmissionError(
                    f"Field {member.name} refers to {cpp_name(info.path)}, which is excluded from JavaScript",
                    member.line,
                )
            result.append((member, info))
        return result

    def fields(self, entry: TypeEntry) -> list[tuple[Field, TypeInfo]]:
        return [m for m in self.members(entry) if not isinstance(m, GroupingDelimiter)]


# =============================================================================
# Literals and types
# =============================================================================


def _js_scalar(text: str, line: int) -> str:
    """Translate a C++ scalar expression to JavaScript."""
    expr = strip_number_suffixes(text.strip())
    expr = re.sub(r"\bnullptr\b", "null", expr)
    if not is_plain_expression(expr, _JS_KEYWORDS):
        raise EmissionError(f"Cannot translate default {text!r} to JavaScript", line)
    return expr


def _js_string(text: str, line: int) -> str:
    stripped = text.strip()
    if stripped in ("{}", '""'):
        return '""'
    if re.fullmatch(r'"(?:[^"\\]|\\.)*"', stripped):
        return stripped
    raise EmissionError(f"Cannot translate default {text!r} to JavaScript", line)


def js_default(f: Field, info: TypeInfo, module: str) -> str | None:
    """JavaScript value for a field's default, or None to leave it unset."""
    if info.kind is TypeKind.STRUCT:
        factory = f"{module}.{js_name(info.path)}Defaults()"
        if f.default is None or f.default.strip() == "{}":
            return factory
        raise EmissionError(f"Cannot translate default {f.default!r} of {f.name} to JavaScript", f.line)
    if f.default is None:
        return None
    if info.kind is TypeKind.VECTOR:
        if not is_brace_list(f.default):
            raise EmissionError(f"Cannot translate default {f.default!r} of {f.name} to JavaScript", f.line)
        items = parse_literal(f.default)
        if not items:
            items = ["false" if info.target == "bool" else "0"] * info.size
        if len(items) != info.size:
            raise EmissionError(
                f"Default of {f.name} has {len(items)} components, {info.text} needs {info.size}",
                f.line,
            )
        return "[" + ", ".join(_js_scalar(item, f.line) for item in items) + "]"
    if info.kind is TypeKind.ENUM:
        assert isinstance(info.node, Enum)
        return f"{module}.{js_name(info.path)}.{enum_value(f.default, info.node, f.line)}"
    if info.kind is TypeKind.STRING:
        return _js_string(f.default, f.line)
    return _js_scalar(f.default, f.line)


def ts_type(info: TypeInfo) -> str:
    """TypeScript spelling of a bound type."""
    if info.kind is TypeKind.PRIMITIVE:
        return "boolean" if info.target == "bool" else "number"
    if info.kind is TypeKind.STRING:
        return "string"
    if info.kind is TypeKind.VECTOR:
        element = "boolean" if info.target == "bool" else "number"
        return "[" + ", ".join([element] * info.size) + "]"
    if info.kind in (TypeKind.ENUM, TypeKind.STRUCT):
        return js_name(info.path)
    raise ValueError(f"No TypeScript type for {info.text!r}")


# =============================================================================
# Artifacts
# =============================================================================


def _cpp_preamble(resolved: ResolvedHeader) -> list[str]:
    return [
        f"// {BANNER}",
        f"// Source: {PurePath(resolved.path).name}",
        "",
        "#include <emscripten/bind.h>",
        "",
        f'#include "{PurePath(resolved.path).name}"',
        "",
        "using namespace emscripten;",
        "",
    ]


def _wrap_namespace(lines: list[str], namespace: str, body: list[str]) -> list[str]:
    if namespace:
        lines += [f"namespace {namespace} {{", ""]
    lines += body
    if namespace:
        lines += ["", f"}} // namespace {namespace}"]
    return lines


def emit_bindings(state: _Bindings) -> str:
    body = ["void registerGeneratedBindings() {"]
    for entry in state.entries:
        if isinstance(entry.node, Enum):
            continue
        name = cpp_name(entry.path)
        chain = [f'    value_object<{name}>("{js_name(entry.path)}")']
        for f, _info in state.fields(entry):
            chain.append(f'        .field("{f.name}", &{name}::{f.name})')
        body.append("\n".join(chain) + ";")
    body.append("}")
    return "\n".join(_wrap_namespace(_cpp_preamble(state.resolved), state.resolved.namespace.name, body)) + "\n"


def emit_enums(state: _Bindings) -> str:
    body = ["void registerGeneratedEnums() {"]
    for entry in state.entries:
        if not isinstance(entry.node, Enum):
            continue
        name = cpp_name(entry.path)
        chain = [f'    enum_<{name}>("{js_name(entry.path)}")']
        for value in entry.node.values:
            chain.append(f'        .value("{value}", {name}::{value})')
        body.append("\n".join(chain) + ";")
    body.append("}")
    return "\n".join(_wrap_namespace(_cpp_preamble(state.resolved), state.resolved.namespace.name, body)) + "\n"


def emit_extensions(state: _Bindings) -> str:
    module = state.module
    lines = [
        f"// {BANNER}",
        f"// Source: {PurePath(state.resolved.path).name}",
        "",
        f"{module}.loadGeneratedExtensions = function() {{",
    ]
    for entry in state.entries:
        if isinstance(entry.node, Enum):
            continue
        lines.append("")
        lines.extend(doc_comment(state.resolved.doc(entry.node), "    "))
        lines.append(f"    {module}.{js_name(entry.path)}Defaults = function(overrides) {{")
        values: list[str] = []
        for f, info in state.fields(entry):
            value = js_default(f, info, module)
            if value is not None:
                values.append(f"            {f.name}: {value},")
        if values:
            lines.append("        const options = {")
            lines.extend(values)
            lines.append("        };")
        else:
            lines.append("        const options = {};")
        lines.append("        return Object.assign(options, overrides);")
        lines.append("    };")
    lines.append("};")
    return "\n".join(lines) + "\n"


def emit_typescript(state: _Bindings) -> str:
    """The generated region of the TypeScript declaration file."""
    blocks: list[list[str]] = []
    for entry in state.entries:
        block = doc_comment(state.resolved.doc(entry.node))
        name = js_name(entry.path)
        if isinstance(entry.node, Enum):
            block.append(f"export enum {name} {{")
            block.extend(f"    {value} = {i}," for i, value in enumerate(entry.node.values))
        else:
            block.append(f"export interface {name} {{")
            for member in state.members(entry):
                if isinstance(member, GroupingDelimiter):
                    block.append(f"    {member.docstring.strip()}")
                    continue
                f, info = member
                block.extend(doc_comment(state.resolved.doc(f), "    "))
                block.append(f"    {f.name}?: {ts_type(info)};")
        block.append("}")
        blocks.append(block)
    return "\n\n".join("\n".join(block) for block in blocks) + "\n" if blocks else ""


class JavaScriptEmitter:
    """Embind bindings, a defaults script and TypeScript declarations.

    Options
    -------
    module : str
        Name of the Emscripten module object the script extends.
    bindings_name, enums_name, extensions_name : str
        Names of the generated files.
    typescript_name : str
        Name of the declaration file whose generated region is replaced.
    """

    def __init__(
        self,
        module: str = DEFAULT_MODULE,
        bindings_name: str = DEFAULT_BINDINGS_NAME,
        enums_name: str = DEFAULT_ENUMS_NAME,
        extensions_name: str = DEFAULT_EXTENSIONS_NAME,
        typescript_name: str = DEFAULT_TYPESCRIPT_NAME,
    ) -> None:
        self._module = module
        self._bindings_name = bindings_name
        self._enums_name = enums_name
        self._extensions_name = extensions_name
        self._typescript_name = typescript_name

    def emit(self, resolved: ResolvedHeader) -> list[Artifact]:
        state = _Bindings(resolved, self._module)
        logger.debug("javascript: %d types", len(state.entries))
        return [
            Artifact(self._bindings_name, emit_bindings(state)),
            Artifact(self._enums_name, emit_enums(state)),
            Artifact(self._extensions_name, emit_extensions(state)),
            Artifact(self._typescript_name, emit_typescript(state), patch=True),
        ]

    @property
    def name(self) -> str:
        return "javascript"

    @property
    def format_description(self) -> str:
        return "Embind bindings and TypeScript declarations"


from beamsplitter.emitters import register_emitter  # noqa: E402

register_emitter("javascript", JavaScriptEmitter)
