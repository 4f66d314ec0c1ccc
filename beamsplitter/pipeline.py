"""Run the whole generator: parse, resolve, emit, write.

Failures are all-or-nothing. Every artifact is generated and every patch
is staged before the first byte is written, so a defect anywhere in the
input leaves all outputs untouched. Patches to hand-written files are
committed last.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from beamsplitter.directives import resolve
from beamsplitter.emitters import Artifact, EmitterBackend, get_emitter, list_emitters
from beamsplitter.errors import EmissionError
from beamsplitter.parser import parse
from beamsplitter.patch import StagedPatch, stage_patch, write_atomic

logger = logging.getLogger(__name__)

EmitterSpec = str | EmitterBackend


@dataclass
class OutputConfig:
    """Where artifacts go.

    :param output_dir: Directory for generated files.
    :param patch_targets: File to patch per patch artifact name. Artifacts
        without an entry are patched in ``output_dir``.
    """

    output_dir: Path = Path(".")
    patch_targets: dict[str, Path] = field(default_factory=dict)

    def target(self, artifact: Artifact) -> Path:
        if artifact.patch and artifact.filename in self.patch_targets:
            return Path(self.patch_targets[artifact.filename])
        return Path(self.output_dir) / artifact.filename


@dataclass
class RunResult:
    """What a run produced.

    :param artifacts: Every artifact, in emitter order.
    :param written: Generated files written.
    :param patched: Existing files whose generated region was replaced.
    """

    artifacts: list[Artifact]
    written: list[Path] = field(default_factory=list)
    patched: list[Path] = field(default_factory=list)


def _instantiate(emitters: Sequence[EmitterSpec] | None) -> list[EmitterBackend]:
    if emitters is None:
        return [get_emitter(name) for name in list_emitters()]
    return [get_emitter(e) if isinstance(e, str) else e for e in emitters]


def generate(
    text: str,
    path: str = "<input>",
    emitters: Sequence[EmitterSpec] | None = None,
    threaded: bool = False,
) -> list[Artifact]:
    """Generate every artifact for header ``text`` without writing anything.

    :param emitters: Emitter names or instances; all registered emitters
        when None.
    :param threaded: Scan on a separate thread.
    :raises BeamsplitterError: On the first defect in any stage.
    """
    header = parse(text, path, threaded=threaded)
    resolved = resolve(header)
    artifacts: list[Artifact] = []
    seen: dict[str, str] = {}
    for emitter in _instantiate(emitters):
        for artifact in emitter.emit(resolved):
            if artifact.filename in seen:
                raise EmissionError(
                    f"Emitters {seen[artifact.filename]!r} and {emitter.name!r} both produce {artifact.filename}"
                )
            seen[artifact.filename] = emitter.name
            artifacts.append(artifact)
        logger.debug("%s: %s emitter done (%s)", path, emitter.name, emitter.format_description)
    return artifacts


def run(
    input_path: str | Path,
    config: OutputConfig | None = None,
    emitters: Sequence[EmitterSpec] | None = None,
    threaded: bool = False,
) -> RunResult:
    """Regenerate every output of ``input_path``.

    :raises BeamsplitterError: Before anything is written if generation
        or patch staging fails.
    """
    config = config or OutputConfig()
    source = Path(input_path)
    text = source.read_text(encoding="utf-8")
    artifacts = generate(text, str(source), emitters, threaded=threaded)

    staged: list[StagedPatch] = [stage_patch(config.target(a), a.content) for a in artifacts if a.patch]

    result = RunResult(artifacts)
    for artifact in artifacts:
        if artifact.patch:
            continue
        target = config.target(artifact)
        write_atomic(target, artifact.content)
        logger.info("Wrote: %s", target)
        result.written.append(target)
    for patch in staged:
        patch.commit()
        result.patched.append(patch.path)
    return result
