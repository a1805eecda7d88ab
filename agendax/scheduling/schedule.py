from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from .dates import format_date_short


@dataclass(frozen=True)
class ScheduleWindow:
    """Optional start/due pair of canonical date tokens.

    Values are taken literally: a window whose start is after its due date is
    not repaired.
    """

    start: Optional[str] = None
    due: Optional[str] = None

    @property
    def is_unscheduled(self) -> bool:
        return not self.start and not self.due

    def boundaries(self) -> Tuple[str, ...]:
        """Return the distinct boundary dates, start first."""
        found: list[str] = []
        for value in (self.start, self.due):
            if value and value not in found:
                found.append(value)
        return tuple(found)

    def is_active_on(self, day: str) -> bool:
        """True when ``day`` falls inside the (possibly open-ended) window."""
        if self.start and self.due:
            return self.start <= day <= self.due
        if self.start:
            return day >= self.start
        if self.due:
            return day <= self.due
        return False

    def should_appear_on(self, day: str) -> bool:
        """True when ``day`` is exactly one of the window's boundaries."""
        if self.is_unscheduled:
            return False
        return day == self.due or day == self.start


UNSCHEDULED = ScheduleWindow()


def describe_window(window: ScheduleWindow, reference: Optional[str] = None) -> Optional[str]:
    start, due = window.start, window.due
    if start and due:
        if start == due:
            return format_date_short(start, reference)
        return f"{format_date_short(start, reference)} → {format_date_short(due, reference)}"
    if start:
        return f"{format_date_short(start, reference)} →"
    if due:
        return f"→ {format_date_short(due, reference)}"
    return None
