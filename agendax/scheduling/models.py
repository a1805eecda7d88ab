from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .schedule import UNSCHEDULED, ScheduleWindow


@dataclass(frozen=True)
class DocumentRef:
    path: str
    name: str
    is_daily: bool = False


@dataclass(frozen=True)
class TaskItem:
    """An inline checkbox line."""

    text: str
    document: DocumentRef
    line: int
    schedule: ScheduleWindow = UNSCHEDULED
    breadcrumbs: Tuple[str, ...] = ()
    done: bool = False

    @property
    def key(self) -> Tuple[str, int]:
        return (self.document.path, self.line)

    def is_active_on(self, day: str) -> bool:
        return not self.done and self.schedule.is_active_on(day)

    def should_appear_on(self, day: str) -> bool:
        return not self.done and self.schedule.should_appear_on(day)


@dataclass(frozen=True)
class TaskNote:
    """A whole document acting as a task through its frontmatter."""

    document: DocumentRef
    name: str
    schedule: ScheduleWindow = UNSCHEDULED
    done: bool = False

    def is_active_on(self, day: str) -> bool:
        return not self.done and self.schedule.is_active_on(day)

    def should_appear_on(self, day: str) -> bool:
        return not self.done and self.schedule.should_appear_on(day)


@dataclass(frozen=True)
class DailyNote:
    document: DocumentRef
    date: str
    items: Tuple[TaskItem, ...] = ()

    def pending_items(self) -> List[TaskItem]:
        return [item for item in self.items if not item.done]


@dataclass
class DayBucket:
    task_items: List[TaskItem] = field(default_factory=list)
    task_notes: List[TaskNote] = field(default_factory=list)
    daily_note: Optional[DocumentRef] = None

    @property
    def is_empty(self) -> bool:
        return not self.task_items and not self.task_notes


@dataclass
class CategorizedTasks:
    """One categorization pass. Rebuilt from scratch on every request."""

    reference_date: str
    horizon: str
    overdue: Dict[str, DayBucket] = field(default_factory=dict)
    today: DayBucket = field(default_factory=DayBucket)
    upcoming: Dict[str, DayBucket] = field(default_factory=dict)
    no_schedule: List[TaskNote] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.overdue and self.today.is_empty and not self.upcoming and not self.no_schedule
