"""Emitters that turn a resolved header into generated code.

Available Emitters
------------------
json
    C++ readers and writers for JSON documents (``Settings_generated.*``).
javascript
    Embind glue, enum bindings, a defaults script and a TypeScript
    declaration region.
java
    A Java class region mirroring the header's types.

Example
-------
::

    from beamsplitter.emitters import get_emitter, list_emitters

    emitter = get_emitter("java", filename="View.java")
    for artifact in emitter.emit(resolved):
        print(artifact.filename)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from beamsplitter.directives import ResolvedHeader

__all__ = [
    "Artifact",
    "EmitterBackend",
    "get_emitter",
    "get_emitter_info",
    "list_emitters",
    "register_emitter",
]


@dataclass(frozen=True)
class Artifact:
    """One output of an emitter.

    :param filename: Name of the generated file, or of the file to patch.
    :param content: File contents, or the region text when ``patch`` is set.
    :param patch: True if ``content`` replaces the generated region of an
        existing file instead of being the whole file.
    """

    filename: str
    content: str
    patch: bool = False


# =============================================================================
# Emitter Protocol
# =============================================================================


@runtime_checkable
class EmitterBackend(Protocol):
    """Protocol defining the interface for code emitters.

    Emitter options (file names, module names) are constructor
    parameters, not part of the ``emit()`` signature.
    """

    def emit(self, resolved: ResolvedHeader) -> list[Artifact]:
        """Generate every artifact of this backend.

        Output must be a deterministic function of the input.

        :param resolved: Parsed header with its directives.
        :returns: Artifacts in a fixed order.
        :raises EmissionError: If a type cannot be expressed in the target.
        """
        ...

    @property
    def name(self) -> str:
        """Registry name of this emitter (e.g., ``"java"``)."""
        ...

    @property
    def format_description(self) -> str:
        """Short description of the output format."""
        ...


# =============================================================================
# Emitter Registry
# =============================================================================

_EMITTER_REGISTRY: dict[str, type[EmitterBackend]] = {}
_EMITTERS_LOADED: bool = False


def register_emitter(name: str, emitter_class: type[EmitterBackend]) -> None:
    """Register an emitter.

    Called by emitter modules during import to self-register.

    :param name: Emitter name used in :func:`get_emitter` lookups.
    :param emitter_class: The class implementing :class:`EmitterBackend`.
        It must be constructible without arguments.
    :raises ValueError: If ``name`` is already registered.
    """
    if name in _EMITTER_REGISTRY:
        raise ValueError(f"Emitter already registered: {name!r}")
    _EMITTER_REGISTRY[name] = emitter_class


def list_emitters() -> list[str]:
    """Names of all registered emitters, sorted."""
    _ensure_emitters_loaded()
    return sorted(_EMITTER_REGISTRY)


def get_emitter_info() -> list[dict[str, str]]:
    """Name and output description of every registered emitter, sorted by name."""
    return [{"name": name, "description": get_emitter(name).format_description} for name in list_emitters()]


def get_emitter(name: str, **kwargs: object) -> EmitterBackend:
    """Get an emitter instance.

    Keyword arguments are forwarded to the emitter constructor::

        emitter = get_emitter("javascript", module="Filament")

    :param name: Emitter name.
    :raises ValueError: If the requested emitter is not available.
    """
    _ensure_emitters_loaded()
    if name not in _EMITTER_REGISTRY:
        available = ", ".join(sorted(_EMITTER_REGISTRY)) or "(none)"
        raise ValueError(f"Unknown emitter: {name!r}. Available: {available}")
    return _EMITTER_REGISTRY[name](**kwargs)


def _ensure_emitters_loaded() -> None:
    """Lazily import the emitter modules to populate the registry.

    NOTE: Managed circular import. The emitter modules import
    :func:`register_emitter` from here at the bottom of their module,
    and this function imports them on first use.
    """
    global _EMITTERS_LOADED  # pylint: disable=global-statement

    if _EMITTERS_LOADED:
        return

    _EMITTERS_LOADED = True

    # Import triggers module-level registration
    import beamsplitter.emitters.serializer  # noqa: F401
    import beamsplitter.emitters.javascript  # noqa: F401
    import beamsplitter.emitters.java  # noqa: F401
