"""Collect task-bearing entities from a corpus and bucket them by date.

``collect`` is the only part that touches the corpus; ``categorize`` is a pure
function over what was collected.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Set

from .checklist import extract_task_items
from .dates import normalize_date_value, parse_date, shift_date, today_token
from .models import CategorizedTasks, DailyNote, DayBucket, DocumentRef, TaskItem, TaskNote
from .schedule import ScheduleWindow

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = 14
TASK_NOTE_TYPE = "task"


@dataclass(frozen=True)
class Document:
    """A corpus entry with its pre-parsed metadata."""

    path: str
    name: str
    frontmatter: Mapping[str, Any] = field(default_factory=dict)
    daily_date: Optional[str] = None

    @property
    def ref(self) -> DocumentRef:
        return DocumentRef(path=self.path, name=self.name, is_daily=self.daily_date is not None)


class Corpus(Protocol):
    def documents(self, extension: str = ".md") -> Iterable[Document]: ...

    async def read(self, document: Document) -> str: ...


@dataclass
class Collection:
    task_notes: List[TaskNote] = field(default_factory=list)
    daily_notes: List[DailyNote] = field(default_factory=list)
    task_items: List[TaskItem] = field(default_factory=list)


def task_note_from(document: Document) -> Optional[TaskNote]:
    meta = document.frontmatter
    if meta.get("type") != TASK_NOTE_TYPE:
        return None
    window = ScheduleWindow(
        start=normalize_date_value(meta.get("startDate")),
        due=normalize_date_value(meta.get("dueDate")),
    )
    return TaskNote(
        document=document.ref,
        name=document.name,
        schedule=window,
        done=meta.get("completed") is True,
    )


async def collect(corpus: Corpus, extension: str = ".md") -> Collection:
    """Read every document once and build the pass's entities.

    Reads are gathered concurrently. A document that cannot be read is
    logged and skipped.
    """
    # Enumeration reads every page's frontmatter; keep it off the event loop.
    documents = await asyncio.to_thread(lambda: list(corpus.documents(extension)))
    collection = Collection()
    for document in documents:
        note = task_note_from(document)
        if note is not None:
            collection.task_notes.append(note)

    contents = await asyncio.gather(
        *(corpus.read(document) for document in documents), return_exceptions=True
    )
    for document, content in zip(documents, contents):
        if isinstance(content, BaseException):
            if not isinstance(content, Exception):
                raise content
            logger.warning("Skipping %s: %s", document.path, content)
            continue
        ref = document.ref
        if document.daily_date is not None:
            items = extract_task_items(ref, content, require_annotation=False)
            if items:
                collection.daily_notes.append(
                    DailyNote(document=ref, date=document.daily_date, items=tuple(items))
                )
        else:
            collection.task_items.extend(extract_task_items(ref, content))

    logger.debug(
        "Collected %d task notes, %d daily notes, %d task items from %d documents",
        len(collection.task_notes),
        len(collection.daily_notes),
        len(collection.task_items),
        len(documents),
    )
    return collection


def _bucket_for(
    day: str,
    daily_by_date: Mapping[str, DailyNote],
    task_notes: Sequence[TaskNote],
    task_items: Sequence[TaskItem],
    *,
    active: bool,
) -> DayBucket:
    bucket = DayBucket()
    seen: Set[tuple] = set()
    daily = daily_by_date.get(day)
    if daily is not None:
        bucket.daily_note = daily.document
        for item in daily.pending_items():
            bucket.task_items.append(item)
            seen.add(item.key)
    for item in task_items:
        matches = item.is_active_on(day) if active else item.should_appear_on(day)
        if matches and item.key not in seen:
            bucket.task_items.append(item)
            seen.add(item.key)
    for note in task_notes:
        if note.is_active_on(day) if active else note.should_appear_on(day):
            bucket.task_notes.append(note)
    return bucket


def categorize(
    reference_date: str,
    task_notes: Sequence[TaskNote],
    daily_notes: Sequence[DailyNote],
    task_items: Sequence[TaskItem],
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> CategorizedTasks:
    """Bucket everything into Overdue, Today, Upcoming and No Schedule.

    Overdue and Upcoming group by boundary date (an entity shows under its
    start and its due date). Today lists everything active on the reference
    date. Upcoming ends ``horizon_days`` after the reference date, inclusive.
    """
    parse_date(reference_date)
    horizon = shift_date(reference_date, horizon_days)

    pending_notes = [note for note in task_notes if not note.done]
    pending_items = [item for item in task_items if not item.done]
    daily_by_date: Dict[str, DailyNote] = {}
    for daily in daily_notes:
        existing = daily_by_date.get(daily.date)
        if existing is None:
            daily_by_date[daily.date] = daily
        else:
            # Two pages for one day: the first owns the bucket, items from both are listed.
            daily_by_date[daily.date] = DailyNote(
                document=existing.document, date=daily.date, items=existing.items + daily.items
            )

    overdue_dates: Set[str] = set()
    upcoming_dates: Set[str] = set()

    def place(day: str) -> None:
        if day < reference_date:
            overdue_dates.add(day)
        elif reference_date < day <= horizon:
            upcoming_dates.add(day)

    for day, daily in daily_by_date.items():
        if daily.pending_items():
            place(day)
    for entity in [*pending_notes, *pending_items]:
        for boundary in entity.schedule.boundaries():
            place(boundary)

    result = CategorizedTasks(reference_date=reference_date, horizon=horizon)
    for dates, target in ((overdue_dates, result.overdue), (upcoming_dates, result.upcoming)):
        for day in sorted(dates):
            bucket = _bucket_for(day, daily_by_date, pending_notes, pending_items, active=False)
            if not bucket.is_empty:
                target[day] = bucket

    result.today = _bucket_for(reference_date, daily_by_date, pending_notes, pending_items, active=True)
    result.no_schedule = [note for note in pending_notes if note.schedule.is_unscheduled]

    logger.debug(
        "Categorized for %s: %d overdue dates, %d today, %d upcoming dates, %d unscheduled",
        reference_date,
        len(result.overdue),
        len(result.today.task_items) + len(result.today.task_notes),
        len(result.upcoming),
        len(result.no_schedule),
    )
    return result


async def build_agenda(
    corpus: Corpus,
    reference_date: Optional[str] = None,
    horizon_days: int = DEFAULT_HORIZON_DAYS,
) -> CategorizedTasks:
    collection = await collect(corpus)
    return categorize(
        reference_date or today_token(),
        collection.task_notes,
        collection.daily_notes,
        collection.task_items,
        horizon_days=horizon_days,
    )


def daily_note_dates(corpus: Corpus, extension: str = ".md") -> Set[str]:
    return {doc.daily_date for doc in corpus.documents(extension) if doc.daily_date is not None}
