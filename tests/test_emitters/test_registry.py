"""Tests for the emitter registry."""

from __future__ import annotations

from collections.abc import Generator

import pytest

from beamsplitter.directives import ResolvedHeader
from beamsplitter.emitters import (
    Artifact,
    EmitterBackend,
    get_emitter,
    get_emitter_info,
    list_emitters,
    register_emitter,
)
from beamsplitter.parser import parse


class StubEmitter:
    """Writes one file named after its ``filename`` option."""

    def __init__(self, filename: str = "stub.txt") -> None:
        self.filename = filename

    def emit(self, resolved: ResolvedHeader) -> list[Artifact]:
        return [Artifact(self.filename, resolved.path)]

    @property
    def name(self) -> str:
        return "stub"

    @property
    def format_description(self) -> str:
        return "Input path as text"


@pytest.fixture()
def empty_registry() -> Generator[None, None, None]:
    """Run with an empty, already-loaded registry and restore it afterwards."""
    import beamsplitter.emitters as e

    saved_registry = dict(e._EMITTER_REGISTRY)
    saved_loaded = e._EMITTERS_LOADED
    e._EMITTER_REGISTRY.clear()
    e._EMITTERS_LOADED = True

    yield

    e._EMITTER_REGISTRY.clear()
    e._EMITTER_REGISTRY.update(saved_registry)
    e._EMITTERS_LOADED = saved_loaded


@pytest.mark.usefixtures("empty_registry")
class TestRegistration:
    def test_names_sorted_regardless_of_registration_order(self) -> None:
        register_emitter("zeta", StubEmitter)
        register_emitter("alpha", StubEmitter)
        assert list_emitters() == ["alpha", "zeta"]

    def test_duplicate_name(self) -> None:
        register_emitter("stub", StubEmitter)
        with pytest.raises(ValueError, match="Emitter already registered: 'stub'"):
            register_emitter("stub", StubEmitter)

    def test_unknown_name_lists_available(self) -> None:
        register_emitter("stub", StubEmitter)
        with pytest.raises(ValueError, match="Unknown emitter: 'lua'. Available: stub"):
            get_emitter("lua")

    def test_options_reach_the_emitter(self) -> None:
        register_emitter("stub", StubEmitter)
        resolved = ResolvedHeader(parse("namespace a { }", "in.h"))
        assert get_emitter("stub", filename="out.txt").emit(resolved) == [Artifact("out.txt", "in.h")]

    def test_info_uses_format_description(self) -> None:
        register_emitter("stub", StubEmitter)
        assert get_emitter_info() == [{"name": "stub", "description": "Input path as text"}]


class TestBuiltinEmitters:
    def test_registered(self) -> None:
        assert list_emitters() == ["java", "javascript", "json"]

    @pytest.mark.parametrize("name", ["json", "javascript", "java"])
    def test_protocol(self, name: str) -> None:
        emitter = get_emitter(name)
        assert isinstance(emitter, EmitterBackend)
        assert emitter.name == name

    def test_info(self) -> None:
        info = {entry["name"]: entry["description"] for entry in get_emitter_info()}
        assert info == {
            "java": "Java classes for a hand-written class file",
            "javascript": "Embind bindings and TypeScript declarations",
            "json": "C++ JSON readers and writers",
        }

    def test_options_forwarded(self, scenario_resolved: ResolvedHeader) -> None:
        (artifact,) = get_emitter("java", filename="Settings.java").emit(scenario_resolved)
        assert artifact.filename == "Settings.java"
        assert artifact.patch
