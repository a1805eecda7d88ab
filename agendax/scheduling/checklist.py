from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .annotations import extract_annotation
from .models import DocumentRef, TaskItem
from .text import frontmatter_span, split_lines, strip_checkbox, strip_markdown

# List items: "-", "*", "+" or "1." bullets, optionally carrying a "[ ]" checkbox.
LIST_ITEM_PATTERN = re.compile(
    r"^(?P<indent>\s*)"
    r"(?P<bullet>[-*+]|\d+[.)])\s+"
    r"(?:\[(?P<state>.)\](?:\s+|$))?"
    r"(?P<body>.*)$"
)
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")


@dataclass
class ListItem:
    line: int
    indent: int
    state: Optional[str]
    body: str
    parent: Optional[int] = None

    @property
    def is_checkbox(self) -> bool:
        return self.state is not None

    @property
    def done(self) -> bool:
        # Only an empty box is open; "x", "-", "/" and friends count as closed.
        return self.state is not None and self.state != " "


def _indent_width(indent: str) -> int:
    """Return a consistent width for mixed tabs/spaces indentation."""
    width = 0
    for ch in indent:
        width += 4 if ch == "\t" else 1
    return width


def parse_list_items(content: str) -> List[ListItem]:
    """Locate list items and link each one to its parent item.

    The parent is the nearest preceding item with a smaller indent. A
    non-indented line that is not a list item ends the current list. Lines in
    frontmatter and fenced code blocks are ignored.
    """
    items: List[ListItem] = []
    stack: List[Tuple[int, ListItem]] = []
    skip_until = frontmatter_span(content)
    in_fence = False

    for line_no, line in enumerate(split_lines(content), start=1):
        if line_no <= skip_until:
            continue
        if FENCE_PATTERN.match(line):
            in_fence = not in_fence
            stack.clear()
            continue
        if in_fence:
            continue
        match = LIST_ITEM_PATTERN.match(line)
        if not match:
            if line.strip() and not line[:1].isspace():
                stack.clear()
            continue

        indent_len = _indent_width(match.group("indent") or "")
        while stack and stack[-1][0] >= indent_len:
            stack.pop()
        parent = stack[-1][1] if stack else None

        item = ListItem(
            line=line_no,
            indent=indent_len,
            state=match.group("state"),
            body=(match.group("body") or "").strip(),
            parent=parent.line if parent else None,
        )
        items.append(item)
        stack.append((indent_len, item))
    return items


def display_text(text: str) -> str:
    return strip_markdown(extract_annotation(text).text).strip()


def _breadcrumbs(item: ListItem, by_line: Dict[int, ListItem]) -> Tuple[str, ...]:
    chain: List[str] = []
    parent_line = item.parent
    while parent_line is not None:
        parent = by_line[parent_line]
        chain.append(display_text(parent.body))
        parent_line = parent.parent
    chain.reverse()
    return tuple(chain)


def extract_task_items(
    document: DocumentRef, content: str, *, require_annotation: bool = True
) -> List[TaskItem]:
    """Build TaskItems for the checkbox lines of one document.

    With ``require_annotation`` (regular documents) a checkbox without a
    trailing date annotation is not a task. Daily notes pass False since the
    document itself supplies the date.
    """
    list_items = parse_list_items(content)
    by_line = {item.line: item for item in list_items}
    lines = split_lines(content)
    tasks: List[TaskItem] = []
    for item in list_items:
        if not item.is_checkbox:
            continue
        annotation = extract_annotation(strip_checkbox(lines[item.line - 1]))
        if require_annotation and annotation.schedule.is_unscheduled:
            continue
        tasks.append(
            TaskItem(
                text=strip_markdown(annotation.text).strip(),
                document=document,
                line=item.line,
                schedule=annotation.schedule,
                breadcrumbs=_breadcrumbs(item, by_line),
                done=item.done,
            )
        )
    return tasks
