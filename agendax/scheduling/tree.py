from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from .models import TaskItem


@dataclass
class TaskTreeNode:
    label: str
    children: Dict[str, "TaskTreeNode"] = field(default_factory=dict)
    items: List[TaskItem] = field(default_factory=list)


def item_path(item: TaskItem) -> List[str]:
    """Grouping path for an item: document name (non-daily only), then breadcrumbs."""
    path: List[str] = []
    if not item.document.is_daily:
        path.append(item.document.name)
    path.extend(item.breadcrumbs)
    return path


def build_task_tree(items: Iterable[TaskItem]) -> TaskTreeNode:
    root = TaskTreeNode(label="")
    for item in items:
        node = root
        for segment in item_path(item):
            child = node.children.get(segment)
            if child is None:
                child = TaskTreeNode(label=segment)
                node.children[segment] = child
            node = child
        node.items.append(item)
    return root


def walk_task_tree(
    node: TaskTreeNode, depth: int = 0
) -> Iterator[Tuple[int, Union[TaskItem, TaskTreeNode]]]:
    """Depth-first: a node's own items, then each child group in insertion order.

    The root itself is not yielded; its items sit at ``depth``.
    """
    for item in node.items:
        yield depth, item
    for child in node.children.values():
        yield depth, child
        yield from walk_task_tree(child, depth + 1)


def tree_to_dict(node: TaskTreeNode, serialize_item) -> dict:
    return {
        "label": node.label,
        "items": [serialize_item(item) for item in node.items],
        "children": [tree_to_dict(child, serialize_item) for child in node.children.values()],
    }
