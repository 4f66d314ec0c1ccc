"""Side index of comments, keyed by source line.

The scanner drops comments from the token stream but records each one
here. Later stages ask for the comments that belong to a declaration:
the run of standalone comments directly above it plus any trailing
comment on the same line. A ``//!<`` or ``/**<`` comment on the lines
right below a trailing comment continues it.

Emitter directives are written inside these comments as ``%name%``.
Anything between percent signs that starts with ``codegen`` counts as a
marker, so a misspelled directive is reported rather than read as prose.
"""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field

MARKER_PATTERN = re.compile(r"%(codegen[^%\n]*|[A-Za-z_][A-Za-z0-9_]*)%")
GROUP_BEGIN = "@{"
GROUP_END = "@}"

_LINE_PREFIX = re.compile(r"^\s*(?:(?://[/!]?<?|\*(?!/))\s?)?")
_CONTINUATION_PREFIXES = ("//!<", "/**<")


@dataclass(frozen=True)
class Comment:
    """A single comment as it appeared in the source.

    :param line: Line the comment starts on.
    :param end_line: Line the comment ends on.
    :param text: The comment, including its delimiters.
    :param is_block: True for ``/* */`` comments.
    :param trailing: True if code precedes the comment on its first line.
    :param owner: Line of the code a trailing comment (or its continuation)
        documents. Filled in by :meth:`DocstringIndex.add`.
    """

    line: int
    end_line: int
    text: str
    is_block: bool = False
    trailing: bool = False
    owner: int | None = None


@dataclass
class DocstringIndex:
    """Comments of one parse, in source order."""

    comments: list[Comment] = field(default_factory=list)

    def add(self, comment: Comment) -> None:
        if comment.trailing and comment.owner is None:
            comment = dataclasses.replace(comment, owner=comment.line)
        elif not comment.trailing and comment.text.lstrip().startswith(_CONTINUATION_PREFIXES) and self.comments:
            previous = self.comments[-1]
            if previous.owner is not None and previous.end_line == comment.line - 1:
                comment = dataclasses.replace(comment, owner=previous.owner)
        self.comments.append(comment)

    def __len__(self) -> int:
        return len(self.comments)

    def trailing(self, line: int) -> list[Comment]:
        """Comments that follow code on ``line``, continuations included."""
        return [c for c in self.comments if c.owner == line]

    def preceding(self, line: int) -> list[Comment]:
        """The contiguous run of standalone comments ending just above ``line``."""
        standalone = {
            c.end_line: c
            for c in self.comments
            if c.owner is None and not (c.is_block and (is_group_begin(c.text) or is_group_end(c.text)))
        }
        run: list[Comment] = []
        expected = line - 1
        while expected in standalone:
            comment = standalone[expected]
            run.append(comment)
            # Only consecutive line comments chain into one doc block
            if comment.is_block:
                break
            expected = comment.line - 1
            previous = standalone.get(expected)
            if previous is None or previous.is_block:
                break
        run.reverse()
        return run

    def for_line(self, line: int) -> list[Comment]:
        """All comments associated with a declaration on ``line``."""
        return self.preceding(line) + self.trailing(line)

    def docstring(self, line: int) -> str | None:
        """Cleaned documentation text for a declaration on ``line``."""
        comments = self.for_line(line)
        if not comments:
            return None
        text = "\n".join(clean_comment(c.text) for c in comments).strip()
        return text or None

    def markers(self, line: int) -> list[str]:
        """Directive marker names found in the comments of ``line``, in order."""
        names: list[str] = []
        for comment in self.for_line(line):
            names.extend(MARKER_PATTERN.findall(comment.text))
        return names


def clean_comment(text: str) -> str:
    """Strip comment delimiters and per-line decoration.

    >>> clean_comment("/**\\n * Radius in meters.\\n */")
    'Radius in meters.'
    >>> clean_comment("//!< Strength of the effect")
    'Strength of the effect'
    """
    body = text.strip()
    if body.startswith("/*"):
        body = body[2:]
        if body.startswith("*") and not body.startswith("*/"):
            body = body[1:]
            body = body.removeprefix("<")
        if body.endswith("*/"):
            body = body[:-2]
    lines = [_LINE_PREFIX.sub("", raw, count=1).rstrip() for raw in body.splitlines()]
    # Drop blank lines at both ends, keep interior paragraph breaks
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def strip_markers(text: str) -> str:
    """Remove every ``%name%`` marker and the whitespace it leaves behind."""
    out_lines = []
    for line in text.split("\n"):
        if not MARKER_PATTERN.search(line):
            out_lines.append(line)
            continue
        stripped = MARKER_PATTERN.sub("", line)
        stripped = re.sub(r"[ \t]{2,}", " ", stripped).rstrip()
        if stripped.strip():
            out_lines.append(stripped)
    return "\n".join(out_lines).strip()


def is_group_begin(text: str) -> bool:
    return GROUP_BEGIN in text


def is_group_end(text: str) -> bool:
    return GROUP_END in text
