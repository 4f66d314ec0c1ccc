"""Exception hierarchy shared by every stage of the generator.

Every stage fails fast: the first defect raises one of these and nothing
downstream runs. The line number, when known, refers to the input header.
"""

from __future__ import annotations


class BeamsplitterError(Exception):
    """Base class for all generator failures.

    :param message: Human-readable description of the violation.
    :param line: 1-based line in the input header, if known.
    """

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line

    def __str__(self) -> str:
        if self.line is None:
            return self.message
        return f"line {self.line}: {self.message}"


class LexError(BeamsplitterError):
    """Malformed input detected by the scanner."""


class ParseError(BeamsplitterError):
    """Token sequence does not match the header grammar."""


class DirectiveError(BeamsplitterError):
    """A ``%name%`` marker outside the recognized vocabulary."""

    def __init__(self, marker: str, line: int | None = None) -> None:
        super().__init__(f"Unknown emitter directive: %{marker}%", line)
        self.marker = marker


class EmissionError(BeamsplitterError):
    """A backend cannot express part of the AST in its target language."""


class PatchError(BeamsplitterError):
    """A pre-existing file cannot be patched in place."""
