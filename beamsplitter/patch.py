"""Marker-delimited, all-or-nothing patching of hand-maintained files.

A patchable file contains one generated region::

    // ... hand-written code ...
    // BEGIN GENERATED CODE
    ... replaced on every run ...
    // END GENERATED CODE
    // ... hand-written code ...

The marker lines themselves stay; only the lines strictly between them
are replaced. Patching is split in two steps so callers can stage every
patch first and commit only once everything else has succeeded.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from beamsplitter.errors import PatchError

logger = logging.getLogger(__name__)

BEGIN_MARKER = "BEGIN GENERATED CODE"
END_MARKER = "END GENERATED CODE"


def _find_marker(lines: list[str], marker: str, path: str) -> int:
    hits = [i for i, line in enumerate(lines) if marker in line]
    if not hits:
        raise PatchError(f"{path}: marker {marker!r} not found")
    if len(hits) > 1:
        raise PatchError(f"{path}: marker {marker!r} appears {len(hits)} times", hits[1] + 1)
    return hits[0]


def splice_region(
    text: str,
    region: str,
    begin: str = BEGIN_MARKER,
    end: str = END_MARKER,
    path: str = "<text>",
) -> str:
    """Replace the lines between the begin and end markers of ``text``.

    Bytes outside the region, including the marker lines and the original
    line endings, are preserved.

    :param text: Current file contents.
    :param region: New region contents; a trailing newline is added if missing.
    :raises PatchError: If a marker is missing, repeated, or out of order.
    """
    lines = text.splitlines(keepends=True)
    first = _find_marker(lines, begin, path)
    last = _find_marker(lines, end, path)
    if last <= first:
        raise PatchError(f"{path}: {end!r} precedes {begin!r}", last + 1)
    if region and not region.endswith("\n"):
        region += "\n"
    return "".join(lines[: first + 1]) + region + "".join(lines[last:])


def write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temporary file and a rename.

    Readers see either the old file or the new one, never a partial write.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(tmp_name)
        raise


@dataclass(frozen=True)
class StagedPatch:
    """A computed patch that has not touched the disk yet.

    :param path: File to patch.
    :param original: Contents read when staging.
    :param content: Contents to write on commit.
    """

    path: Path
    original: str
    content: str

    @property
    def changed(self) -> bool:
        return self.original != self.content

    def commit(self) -> None:
        """Write the patched contents atomically."""
        if not self.changed:
            logger.info("Unchanged: %s", self.path)
            return
        write_atomic(self.path, self.content)
        logger.info("Patched: %s", self.path)


def stage_patch(path: str | Path, region: str, begin: str = BEGIN_MARKER, end: str = END_MARKER) -> StagedPatch:
    """Read ``path`` and compute its patched contents without writing.

    :raises PatchError: If the file is missing or its markers are unusable.
    """
    p = Path(path)
    try:
        with open(p, encoding="utf-8", newline="") as f:
            original = f.read()
    except FileNotFoundError:
        raise PatchError(f"{p}: file to patch does not exist") from None
    return StagedPatch(p, original, splice_region(original, region, begin, end, str(p)))
