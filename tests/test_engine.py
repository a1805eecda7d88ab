import asyncio
import threading
from datetime import date

import pytest

from agendax.scheduling import engine
from agendax.scheduling.dates import InvalidDate
from agendax.scheduling.engine import Document, build_agenda, categorize, collect, task_note_from
from agendax.scheduling.models import DailyNote, DocumentRef, TaskItem, TaskNote
from agendax.scheduling.schedule import ScheduleWindow

REFERENCE = "2025-01-15"
PROJECT = DocumentRef(path="/Projects/Alpha.md", name="Alpha")


def note(name, start=None, due=None, done=False):
    ref = DocumentRef(path=f"/Tasks/{name}.md", name=name)
    return TaskNote(document=ref, name=name, schedule=ScheduleWindow(start, due), done=done)


def item(text, line, start=None, due=None, done=False, document=PROJECT):
    return TaskItem(text=text, document=document, line=line, schedule=ScheduleWindow(start, due), done=done)


def daily(day, *entries):
    ref = DocumentRef(path=f"/{day}.md", name=day, is_daily=True)
    items = tuple(
        TaskItem(text=text, document=ref, line=idx, done=done)
        for idx, (text, done) in enumerate(entries, start=1)
    )
    return DailyNote(document=ref, date=day, items=items)


class Sample:
    def __init__(self):
        self.n_overdue = note("Overdue note", due="2025-01-10")
        self.n_done = note("Done note", due="2025-01-05", done=True)
        self.n_range = note("Range note", start="2025-01-01", due="2025-01-31")
        self.n_upcoming = note("Upcoming note", start="2025-01-20", due="2025-01-20")
        self.n_far = note("Far note", due="2025-02-20")
        self.n_unscheduled = note("Someday")
        self.n_unscheduled_done = note("Someday done", done=True)
        self.task_notes = [
            self.n_overdue,
            self.n_done,
            self.n_range,
            self.n_upcoming,
            self.n_far,
            self.n_unscheduled,
            self.n_unscheduled_done,
        ]

        self.d_past = daily("2025-01-12", ("Pending past", False), ("Done past", True))
        self.d_past_done = daily("2025-01-11", ("All done", True))
        self.d_today = daily("2025-01-15", ("Today daily", False))
        self.d_future = daily("2025-01-18", ("Future daily", False))
        self.d_horizon = daily("2025-01-29", ("Horizon daily", False))
        self.d_too_far = daily("2025-02-10", ("Too far", False))
        self.daily_notes = [
            self.d_past,
            self.d_past_done,
            self.d_today,
            self.d_future,
            self.d_horizon,
            self.d_too_far,
        ]

        self.i_due = item("Due yesterday", 1, due="2025-01-14")
        self.i_single = item("Single today", 2, start=REFERENCE, due=REFERENCE)
        self.i_start = item("Starts tomorrow", 3, start="2025-01-16")
        self.i_done = item("Finished", 4, due="2025-01-13", done=True)
        self.task_items = [self.i_due, self.i_single, self.i_start, self.i_done]

    def categorize(self, **kwargs):
        return categorize(REFERENCE, self.task_notes, self.daily_notes, self.task_items, **kwargs)


def test_categorize_buckets_by_date():
    sample = Sample()
    result = sample.categorize()

    assert result.reference_date == REFERENCE
    assert result.horizon == "2025-01-29"
    assert list(result.overdue) == ["2025-01-01", "2025-01-10", "2025-01-12", "2025-01-14"]
    assert list(result.upcoming) == ["2025-01-16", "2025-01-18", "2025-01-20", "2025-01-29"]

    assert result.overdue["2025-01-01"].task_notes == [sample.n_range]
    assert result.overdue["2025-01-10"].task_notes == [sample.n_overdue]
    assert result.overdue["2025-01-14"].task_items == [sample.i_due]
    assert result.upcoming["2025-01-16"].task_items == [sample.i_start]
    assert result.upcoming["2025-01-20"].task_notes == [sample.n_upcoming]

    assert result.no_schedule == [sample.n_unscheduled]
    assert not result.is_empty


def test_daily_note_buckets():
    sample = Sample()
    result = sample.categorize()

    past = result.overdue["2025-01-12"]
    assert past.daily_note == sample.d_past.document
    assert [entry.text for entry in past.task_items] == ["Pending past"]

    assert "2025-01-11" not in result.overdue
    assert result.upcoming["2025-01-18"].daily_note == sample.d_future.document
    assert "2025-02-10" not in result.upcoming


def test_today_bucket_uses_active_range():
    sample = Sample()
    today = sample.categorize().today

    assert today.daily_note == sample.d_today.document
    assert [entry.text for entry in today.task_items] == ["Today daily", "Single today"]
    # Range note covers today; the due-only far note is active until its due date.
    assert today.task_notes == [sample.n_range, sample.n_far]


def test_completed_entities_never_appear():
    sample = Sample()
    result = sample.categorize()
    buckets = [*result.overdue.values(), result.today, *result.upcoming.values()]
    listed_notes = [entry for bucket in buckets for entry in bucket.task_notes] + result.no_schedule
    listed_items = [entry for bucket in buckets for entry in bucket.task_items]

    assert sample.n_done not in listed_notes
    assert sample.n_unscheduled_done not in listed_notes
    assert sample.i_done not in listed_items
    assert all(not entry.done for entry in listed_items)
    assert "2025-01-05" not in result.overdue
    assert "2025-01-13" not in result.overdue


def test_reference_date_itself_is_neither_overdue_nor_upcoming():
    result = Sample().categorize()
    assert REFERENCE not in result.overdue
    assert REFERENCE not in result.upcoming


def test_horizon_is_inclusive_and_configurable():
    sample = Sample()
    result = sample.categorize(horizon_days=3)
    assert result.horizon == "2025-01-18"
    assert list(result.upcoming) == ["2025-01-16", "2025-01-18"]


def test_categorize_is_idempotent():
    sample = Sample()
    first = sample.categorize()
    second = sample.categorize()
    assert first == second
    assert list(first.overdue) == list(second.overdue)
    assert list(first.upcoming) == list(second.upcoming)


def test_item_listed_once_per_bucket():
    entry = TaskItem(
        text="Shared",
        document=DocumentRef(path="/2025-01-12.md", name="2025-01-12", is_daily=True),
        line=1,
        schedule=ScheduleWindow(due="2025-01-12"),
    )
    day = DailyNote(document=entry.document, date="2025-01-12", items=(entry,))
    result = categorize(REFERENCE, [], [day], [entry])
    assert result.overdue["2025-01-12"].task_items == [entry]


def test_two_pages_for_one_day_are_merged():
    first = daily("2025-01-12", ("From first", False))
    journal_ref = DocumentRef(path="/Journal/2025/01/12/12.md", name="2025-01-12", is_daily=True)
    second = DailyNote(
        document=journal_ref,
        date="2025-01-12",
        items=(TaskItem(text="From journal", document=journal_ref, line=1),),
    )
    bucket = categorize(REFERENCE, [], [first, second], []).overdue["2025-01-12"]
    assert bucket.daily_note == first.document
    assert [entry.text for entry in bucket.task_items] == ["From first", "From journal"]


def test_empty_input_gives_empty_result():
    result = categorize(REFERENCE, [], [], [])
    assert result.is_empty
    assert result.today.is_empty


def test_invalid_reference_date():
    with pytest.raises(InvalidDate):
        categorize("2025-1-15", [], [], [])


def test_task_note_from_frontmatter():
    doc = Document(
        path="/Tasks/Report.md",
        name="Report",
        frontmatter={
            "type": "task",
            "startDate": date(2025, 1, 10),
            "dueDate": {"year": 2025, "month": 1, "day": 20},
            "completed": False,
        },
    )
    task = task_note_from(doc)
    assert task.name == "Report"
    assert task.schedule == ScheduleWindow("2025-01-10", "2025-01-20")
    assert not task.done
    assert task.document == DocumentRef(path="/Tasks/Report.md", name="Report")


def test_task_note_from_other_pages():
    assert task_note_from(Document(path="/Notes/Idea.md", name="Idea")) is None
    assert task_note_from(Document(path="/Notes/Idea.md", name="Idea", frontmatter={"type": "note"})) is None

    broken = task_note_from(
        Document(path="/Tasks/Broken.md", name="Broken", frontmatter={"type": "task", "dueDate": "soon"})
    )
    assert broken.schedule.is_unscheduled

    finished = task_note_from(
        Document(path="/Tasks/Old.md", name="Old", frontmatter={"type": "task", "completed": True})
    )
    assert finished.done


class MemoryCorpus:
    def __init__(self, pages):
        self.pages = pages
        self.reads = []

    def documents(self, extension=".md"):
        return [doc for doc, _ in self.pages if doc.path.endswith(extension)]

    async def read(self, document):
        self.reads.append(document.path)
        for doc, content in self.pages:
            if doc.path == document.path:
                if isinstance(content, Exception):
                    raise content
                return content
        raise FileNotFoundError(document.path)


def sample_corpus():
    return MemoryCorpus([
        (
            Document(
                path="/Tasks/Write report.md",
                name="Write report",
                frontmatter={"type": "task", "startDate": "2025-01-10", "dueDate": "2025-01-20"},
            ),
            "---\ntype: task\n---\nBody text",
        ),
        (
            Document(path="/Tasks/Broken.md", name="Broken", frontmatter={"type": "task", "dueDate": "not-a-date"}),
            "",
        ),
        (
            Document(path="/2025-01-15.md", name="2025-01-15", daily_date="2025-01-15"),
            "- [ ] Morning run\n- [x] Coffee\n- plain bullet",
        ),
        (
            Document(path="/Projects/Alpha.md", name="Alpha"),
            "- Phase 1\n  - [ ] Draft @2025-01-18\n  - [ ] No date here",
        ),
        (Document(path="/Broken/Unreadable.md", name="Unreadable"), OSError("disk on fire")),
        (Document(path="/notes.txt", name="notes"), "- [ ] Ignored @2025-01-16"),
    ])


def test_collect_builds_entities():
    corpus = sample_corpus()
    collection = asyncio.run(collect(corpus))

    assert [task.name for task in collection.task_notes] == ["Write report", "Broken"]
    (day,) = collection.daily_notes
    assert day.date == "2025-01-15"
    assert [(entry.text, entry.done) for entry in day.items] == [("Morning run", False), ("Coffee", True)]
    (draft,) = collection.task_items
    assert draft.text == "Draft"
    assert draft.breadcrumbs == ("Phase 1",)
    assert draft.line == 2
    assert "/notes.txt" not in corpus.reads


def test_collect_skips_unreadable_documents(caplog):
    with caplog.at_level("WARNING", logger=engine.__name__):
        collection = asyncio.run(collect(sample_corpus()))
    assert "/Broken/Unreadable.md" in caplog.text
    assert len(collection.task_items) == 1


def test_build_agenda_end_to_end():
    result = asyncio.run(build_agenda(sample_corpus(), REFERENCE))

    assert [entry.text for entry in result.today.task_items] == ["Morning run"]
    assert [task.name for task in result.today.task_notes] == ["Write report"]
    assert list(result.overdue) == ["2025-01-10"]
    assert [task.name for task in result.overdue["2025-01-10"].task_notes] == ["Write report"]
    assert list(result.upcoming) == ["2025-01-18", "2025-01-20"]
    assert result.upcoming["2025-01-18"].task_items[0].text == "Draft"
    assert [task.name for task in result.no_schedule] == ["Broken"]


def test_daily_note_dates():
    assert engine.daily_note_dates(sample_corpus()) == {"2025-01-15"}


class ThreadRecordingCorpus(MemoryCorpus):
    def __init__(self, pages):
        super().__init__(pages)
        self.enumerated_on = None
        self.read_on = None

    def documents(self, extension=".md"):
        self.enumerated_on = threading.get_ident()
        return super().documents(extension)

    async def read(self, document):
        self.read_on = threading.get_ident()
        return await super().read(document)


def test_enumeration_runs_off_the_event_loop():
    corpus = ThreadRecordingCorpus([(Document(path="/A.md", name="A"), "- [ ] Task @2025-01-16")])
    collection = asyncio.run(collect(corpus))
    assert len(collection.task_items) == 1
    assert corpus.read_on is not None
    assert corpus.enumerated_on != corpus.read_on


def test_annotated_daily_item_stays_under_its_page_date():
    corpus = MemoryCorpus([
        (
            Document(path="/2025-01-12.md", name="2025-01-12", daily_date="2025-01-12"),
            "- [ ] Book flights @2025-01-20",
        ),
    ])
    result = asyncio.run(build_agenda(corpus, REFERENCE))
    (entry,) = result.overdue["2025-01-12"].task_items
    assert entry.text == "Book flights"
    assert entry.schedule == ScheduleWindow("2025-01-20", "2025-01-20")
    assert "2025-01-20" not in result.upcoming
    assert result.today.is_empty
