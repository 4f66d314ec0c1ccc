"""beamsplitter - code generator for annotated C++ headers."""

from beamsplitter.directives import Directive, ResolvedHeader, resolve
from beamsplitter.emitters import (
    Artifact,
    EmitterBackend,
    get_emitter,
    get_emitter_info,
    list_emitters,
    register_emitter,
)
from beamsplitter.errors import (
    BeamsplitterError,
    DirectiveError,
    EmissionError,
    LexError,
    ParseError,
    PatchError,
)
from beamsplitter.ir import (
    AccessSpecifier,
    Class,
    Declaration,
    Enum,
    Field,
    GroupingDelimiter,
    Header,
    Member,
    Method,
    Namespace,
    Root,
    Struct,
    Using,
)
from beamsplitter.parser import parse, parse_file
from beamsplitter.pipeline import OutputConfig, RunResult, generate, run

__all__ = [
    # Members
    "AccessSpecifier",
    "GroupingDelimiter",
    "Using",
    "Method",
    "Field",
    "Member",
    # Declarations
    "Enum",
    "Struct",
    "Class",
    "Namespace",
    "Root",
    "Declaration",
    # Container
    "Header",
    # Parsing
    "parse",
    "parse_file",
    # Directives
    "Directive",
    "ResolvedHeader",
    "resolve",
    # Emitter Protocol
    "Artifact",
    "EmitterBackend",
    # Emitter API
    "get_emitter",
    "get_emitter_info",
    "list_emitters",
    "register_emitter",
    # Pipeline
    "OutputConfig",
    "RunResult",
    "generate",
    "run",
    # Errors
    "BeamsplitterError",
    "LexError",
    "ParseError",
    "DirectiveError",
    "EmissionError",
    "PatchError",
]
