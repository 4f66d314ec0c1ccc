"""Classify C++ type text the way every backend needs it.

A field's type is kept as text in the AST. Backends turn it into a
:class:`TypeInfo` through a :class:`TypeMapper`, which knows the
primitive and vector vocabulary and every type declared in the header.
Name lookup follows C++ scope rules: the innermost enclosing scope
first, then outward to the root namespace.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from beamsplitter.ir import Class, Enum, Namespace, Struct, Using

# Primitive spellings mapped to a canonical name
PRIMITIVES: dict[str, str] = {
    "bool": "bool",
    "char": "char",
    "short": "short",
    "int": "int",
    "unsigned": "uint32_t",
    "unsigned int": "uint32_t",
    "long": "int64_t",
    "float": "float",
    "double": "double",
    "size_t": "size_t",
    "std::size_t": "size_t",
    "int8_t": "int8_t",
    "int16_t": "int16_t",
    "int32_t": "int32_t",
    "int64_t": "int64_t",
    "uint8_t": "uint8_t",
    "uint16_t": "uint16_t",
    "uint32_t": "uint32_t",
    "uint64_t": "uint64_t",
}

STRINGS = frozenset({"std::string", "utils::CString"})

# Vector name -> (element primitive, component count)
VECTORS: dict[str, tuple[str, int]] = {
    f"{prefix}{n}": (element, n)
    for prefix, element in (
        ("float", "float"),
        ("double", "double"),
        ("int", "int"),
        ("uint", "uint32_t"),
        ("bool", "bool"),
    )
    for n in (2, 3, 4)
}
VECTORS["LinearColor"] = ("float", 3)
VECTORS["LinearColorA"] = ("float", 4)

_MATH_PREFIX = "math::"

Declared = Enum | Struct | Class | Using


class TypeKind(enum.Enum):
    PRIMITIVE = "primitive"
    STRING = "string"
    VECTOR = "vector"
    ENUM = "enum"
    STRUCT = "struct"
    ALIAS = "alias"
    POINTER = "pointer"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TypeInfo:
    """A classified type reference.

    :param kind: What the text names.
    :param text: The type text, whitespace normalized, ``const`` dropped.
    :param target: Canonical primitive or vector element name, if any.
    :param size: Component count for vectors, else 0.
    :param node: The declaration for enums, structs and aliases.
    :param path: Qualified path of ``node`` below the root namespace.
    """

    kind: TypeKind
    text: str
    target: str | None = None
    size: int = 0
    node: Declared | None = None
    path: tuple[str, ...] = ()

    @property
    def is_declared(self) -> bool:
        return self.node is not None


def normalize_type(text: str) -> str:
    """Collapse whitespace and drop a leading ``const``."""
    normalized = " ".join(text.split())
    if normalized.startswith("const "):
        normalized = normalized[len("const ") :]
    return normalized


class TypeMapper:
    """Resolves type text against the declarations of one header.

    :param root: The root namespace of the header.
    """

    def __init__(self, root: Namespace) -> None:
        self._root_name = root.name
        self._declared: dict[tuple[str, ...], Declared] = {}
        self._index_namespace(root, ())

    def _index_namespace(self, namespace: Namespace, path: tuple[str, ...]) -> None:
        for child in namespace.children:
            if isinstance(child, Namespace):
                # Anonymous namespaces are transparent to lookup
                inner = path + (child.name,) if child.name else path
                self._index_namespace(child, inner)
            elif isinstance(child, Enum):
                self._declared[path + (child.name,)] = child
            elif isinstance(child, (Struct, Class)):
                self._index_record(child, path)
            else:
                raise TypeError(f"Unexpected namespace child: {child!r}")

    def _index_record(self, record: Struct | Class, path: tuple[str, ...]) -> None:
        if record.name is None:
            return
        inner = path + (record.name,)
        self._declared[inner] = record
        for member in record.members:
            if isinstance(member, (Struct, Class)):
                self._index_record(member, inner)
            elif isinstance(member, (Enum, Using)):
                self._declared[inner + (member.name,)] = member

    def lookup(self, name: str, scope: tuple[str, ...] = ()) -> tuple[tuple[str, ...], Declared] | None:
        """Find a declared type by (possibly qualified) name from ``scope``."""
        parts = tuple(name.split("::"))
        if parts and parts[0] == "":
            parts = parts[1:]
            # Fully qualified: only the root scope applies
            scope = ()
        if len(parts) > 1 and self._root_name and parts[0] == self._root_name:
            parts = parts[1:]
            scope = ()
        for depth in range(len(scope), -1, -1):
            candidate = scope[:depth] + parts
            node = self._declared.get(candidate)
            if node is not None:
                return candidate, node
        return None

    def classify(self, text: str, scope: tuple[str, ...] = ()) -> TypeInfo:
        """Classify ``text`` as seen from inside ``scope``.

        >>> mapper = TypeMapper(Namespace(1, "N", ()))
        >>> mapper.classify("math::float3").size
        3
        """
        normalized = normalize_type(text)
        if "*" in normalized or "&" in normalized:
            return TypeInfo(TypeKind.POINTER, normalized)
        bare = normalized[2:] if normalized.startswith("::") else normalized
        if bare in STRINGS:
            return TypeInfo(TypeKind.STRING, normalized, target="string")
        unprefixed = bare[len(_MATH_PREFIX) :] if bare.startswith(_MATH_PREFIX) else bare
        if unprefixed in PRIMITIVES:
            return TypeInfo(TypeKind.PRIMITIVE, normalized, target=PRIMITIVES[unprefixed])
        if unprefixed in VECTORS:
            element, size = VECTORS[unprefixed]
            return TypeInfo(TypeKind.VECTOR, normalized, target=element, size=size)
        found = self.lookup(bare, scope)
        if found is None:
            return TypeInfo(TypeKind.UNKNOWN, normalized)
        path, node = found
        if isinstance(node, Enum):
            kind = TypeKind.ENUM
        elif isinstance(node, (Struct, Class)):
            kind = TypeKind.STRUCT
        elif isinstance(node, Using):
            kind = TypeKind.ALIAS
        else:
            raise TypeError(f"Unexpected declaration: {node!r}")
        return TypeInfo(kind, normalized, node=node, path=path)
