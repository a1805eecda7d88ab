from __future__ import annotations

import re
from typing import List

CHECKBOX_PREFIX_PATTERN = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s*\[.\]\s*")
FRONTMATTER_FENCE = "---"

# Applied in order, one left-to-right pass each.
_DECORATIONS = (
    # [[target|alias]] -> alias, [[target]] -> target
    (re.compile(r"\[\[([^\]|]+)\|([^\]]+)\]\]"), r"\2"),
    (re.compile(r"\[\[([^\]]+)\]\]"), r"\1"),
    # [label](url) -> label
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\*\*([^*]+)\*\*"), r"\1"),
    (re.compile(r"__([^_]+)__"), r"\1"),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"_([^_]+)_"), r"\1"),
    (re.compile(r"~~([^~]+)~~"), r"\1"),
    (re.compile(r"==([^=]+)=="), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
    # #tag -> tag
    (re.compile(r"#(\S+)"), r"\1"),
)


def split_lines(content: str) -> List[str]:
    """Split on line feeds only, unlike ``str.splitlines``, so numbering matches the file.

    A trailing carriage return is dropped from each line.
    """
    if not content:
        return []
    lines = [line[:-1] if line.endswith("\r") else line for line in content.split("\n")]
    if lines[-1] == "":
        lines.pop()
    return lines


def frontmatter_span(content: str) -> int:
    """Return how many leading lines a ``---`` fenced frontmatter block occupies (0 if none)."""
    lines = split_lines(content)
    if not lines or lines[0].rstrip() != FRONTMATTER_FENCE:
        return 0
    for idx, line in enumerate(lines[1:], start=2):
        if line.rstrip() in (FRONTMATTER_FENCE, "..."):
            return idx
    return 0


def strip_checkbox(line: str) -> str:
    """Remove a leading list checkbox marker such as ``- [ ]``."""
    return CHECKBOX_PREFIX_PATTERN.sub("", line, count=1).strip()


def strip_markdown(text: str) -> str:
    """Collapse inline markdown decorations to their plain text."""
    for pattern, replacement in _DECORATIONS:
        text = pattern.sub(replacement, text)
    return text
