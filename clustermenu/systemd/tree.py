"""Line filters for ``systemctl list-dependencies`` tree output.

The listing is indented with box-drawing glyphs and, when colors are forced,
decorated with SGR sequences anywhere in the indentation. Subtree removal is a
single forward pass that recognizes descendants purely by their indentation.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from ..ansi import strip_ansi

TREE_GLYPHS = "│├└─"
CONNECTOR_GLYPHS = ("├─", "└─")

_SGR = r"(?:\x1b\[[0-9;]*m)*"
_NON_TREE_CHAR = r"[^│├└─]"
_ROOT_DESCENDANT_RE = re.compile(r"^(?:\x1b\[[0-9;]*m|[^\w\n])*?[│├└]")


def _compile(pattern: str | re.Pattern[str]) -> re.Pattern[str]:
    return pattern if isinstance(pattern, re.Pattern) else re.compile(pattern)


def filter_lines(lines: Iterable[str], pattern: str | re.Pattern[str]) -> list[str]:
    """Return the lines in which ``pattern`` matches anywhere."""
    regex = _compile(pattern)
    return [line for line in lines if regex.search(line)]


def descendant_pattern(leading_text: str) -> re.Pattern[str]:
    """Compile the indentation test for lines below a tree node.

    ``leading_text`` is whatever precedes the node name on its own line. Its
    trailing connector glyph is dropped; what remains is the indentation the
    node shares with its siblings. Descendants repeat that indentation and
    then carry a continuation column (``│`` or blank) before their own
    connector. Tree glyphs must match literally while any other character
    (status bullets, spaces) matches any non-glyph, so differently colored or
    differently shaped bullets do not end the subtree early. SGR sequences are
    tolerated before every column.
    """
    plain = strip_ansi(leading_text)
    if not plain.endswith(CONNECTOR_GLYPHS):
        return _ROOT_DESCENDANT_RE

    parts = ["^"]
    for ch in plain[:-2]:
        parts.append(_SGR)
        parts.append(re.escape(ch) if ch in TREE_GLYPHS else _NON_TREE_CHAR)
    parts.extend((_SGR, "[│ ]", _SGR, " "))
    return re.compile("".join(parts))


def exclude_subtree(lines: Iterable[str], marker: str | re.Pattern[str]) -> list[str]:
    """Drop the descendants of every node matching ``marker``.

    The matching node line itself is kept; lines below it are dropped while
    their indentation says they belong to it. The first line that does not is
    kept and ends the subtree. Everything else passes through unchanged and in
    order, so a marker that never matches returns the input as-is.
    """
    regex = _compile(marker)
    kept: list[str] = []
    descendant: re.Pattern[str] | None = None
    for line in lines:
        if descendant is not None:
            if descendant.match(line):
                continue
            descendant = None

        kept.append(line)
        match = regex.search(line)
        if match is not None:
            descendant = descendant_pattern(line[: match.start()])
    return kept
