"""Trailing ``@`` date annotations on a line of text.

Four forms are recognized, always at the very end of the line::

    Write report @2025-01-01..2025-01-15    start and due
    Plan @2025-02-01..                      start only
    Review @..2025-03-01                    due only
    Buy milk @2025-01-15                    single day (start == due)

The range form is tried before the single-date form so its second date is
never read as a shorter trailing annotation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Tuple

from .dates import DATE_TOKEN, is_valid_date
from .schedule import UNSCHEDULED, ScheduleWindow

MARKER = "@"

_RANGE_PATTERN = re.compile(rf"\s*{MARKER}({DATE_TOKEN})\.\.({DATE_TOKEN})\s*$")
_START_PATTERN = re.compile(rf"\s*{MARKER}({DATE_TOKEN})\.\.\s*$")
_DUE_PATTERN = re.compile(rf"\s*{MARKER}\.\.({DATE_TOKEN})\s*$")
_SINGLE_PATTERN = re.compile(rf"\s*{MARKER}({DATE_TOKEN})\s*$")

HIGHLIGHT_PATTERN = re.compile(
    rf"{MARKER}(?:{DATE_TOKEN}\.\.{DATE_TOKEN}|{DATE_TOKEN}\.\.|\.\.{DATE_TOKEN}|{DATE_TOKEN})"
)


class Annotation(NamedTuple):
    text: str
    schedule: ScheduleWindow


@dataclass(frozen=True)
class _Form:
    pattern: re.Pattern[str]
    window: Callable[[re.Match[str]], Tuple[Optional[str], Optional[str]]]


# Precedence order matters: most specific first.
_FORMS: Tuple[_Form, ...] = (
    _Form(_RANGE_PATTERN, lambda m: (m.group(1), m.group(2))),
    _Form(_START_PATTERN, lambda m: (m.group(1), None)),
    _Form(_DUE_PATTERN, lambda m: (None, m.group(1))),
    _Form(_SINGLE_PATTERN, lambda m: (m.group(1), m.group(1))),
)


def _valid_or_none(token: Optional[str]) -> Optional[str]:
    return token if token and is_valid_date(token) else None


def extract_annotation(text: str) -> Annotation:
    """Split a trailing date annotation off ``text``.

    Returns the text with the annotation removed (trimmed) and the schedule
    window it declared. Text without a trailing annotation is returned as-is
    with an empty window. A token that is not a real calendar day leaves its
    field empty.
    """
    for form in _FORMS:
        match = form.pattern.search(text)
        if not match:
            continue
        start, due = form.window(match)
        window = ScheduleWindow(start=_valid_or_none(start), due=_valid_or_none(due))
        return Annotation(text[: match.start()].strip(), window)
    return Annotation(text, UNSCHEDULED)


def find_annotations(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) spans of every annotation-shaped token in ``text``."""
    return [match.span() for match in HIGHLIGHT_PATTERN.finditer(text)]


def format_annotation(window: ScheduleWindow) -> str:
    start, due = window.start, window.due
    if start and due:
        if start == due:
            return f"{MARKER}{start}"
        return f"{MARKER}{start}..{due}"
    if start:
        return f"{MARKER}{start}.."
    if due:
        return f"{MARKER}..{due}"
    return ""
