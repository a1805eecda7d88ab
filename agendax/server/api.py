from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from agendax.app import config
from agendax.scheduling import engine
from agendax.scheduling.annotations import extract_annotation, find_annotations
from agendax.scheduling.dates import (
    InvalidDate,
    calendar_grid,
    format_date,
    format_date_with_weekday,
    parse_date,
    today_token,
)
from agendax.scheduling.models import CategorizedTasks, DayBucket, DocumentRef, TaskItem, TaskNote
from agendax.scheduling.schedule import ScheduleWindow, describe_window
from agendax.scheduling.tree import build_task_tree, tree_to_dict
from .state import current_vault

_ANSI_BLUE = "\033[94m"
_ANSI_RESET = "\033[0m"


def _get_vault_root() -> Path:
    try:
        return current_vault.root
    except RuntimeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _parse_reference_date(raw: Optional[str]) -> str:
    if not raw:
        return today_token()
    try:
        return format_date(parse_date(raw.strip()))
    except InvalidDate as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _serialize_window(window: ScheduleWindow, reference: str) -> dict:
    return {
        "start": window.start,
        "due": window.due,
        "period": describe_window(window, reference),
    }


def _serialize_document(document: Optional[DocumentRef]) -> Optional[dict]:
    if document is None:
        return None
    return {"path": document.path, "name": document.name, "daily": document.is_daily}


def _serialize_task_item(item: TaskItem, reference: str) -> dict:
    return {
        "id": f"{item.document.path}:{item.line}",
        "path": item.document.path,
        "line": item.line,
        "text": item.text,
        "done": item.done,
        "breadcrumbs": list(item.breadcrumbs),
        "schedule": _serialize_window(item.schedule, reference),
    }


def _serialize_task_note(note: TaskNote, reference: str) -> dict:
    return {
        "path": note.document.path,
        "name": note.name,
        "done": note.done,
        "schedule": _serialize_window(note.schedule, reference),
    }


def _serialize_bucket(day: str, bucket: DayBucket, reference: str) -> dict:
    return {
        "date": day,
        "label": format_date_with_weekday(day),
        "daily_note": _serialize_document(bucket.daily_note),
        "task_items": [_serialize_task_item(item, reference) for item in bucket.task_items],
        "task_notes": [_serialize_task_note(note, reference) for note in bucket.task_notes],
        "tree": tree_to_dict(
            build_task_tree(bucket.task_items),
            lambda item: _serialize_task_item(item, reference),
        ),
    }


def serialize_agenda(result: CategorizedTasks) -> dict:
    reference = result.reference_date
    return {
        "reference_date": reference,
        "horizon": result.horizon,
        "overdue": [_serialize_bucket(day, bucket, reference) for day, bucket in result.overdue.items()],
        "today": _serialize_bucket(reference, result.today, reference),
        "upcoming": [_serialize_bucket(day, bucket, reference) for day, bucket in result.upcoming.items()],
        "no_schedule": [_serialize_task_note(note, reference) for note in result.no_schedule],
        "empty": result.is_empty,
    }


class VaultSelectPayload(BaseModel):
    path: str


class AnnotationPayload(BaseModel):
    text: str = Field(..., description="A single line of text")


app = FastAPI(title="agendax Local API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://127.0.0.1",
        "http://localhost",
        "null",
    ],
    allow_origin_regex=r"^https?://(127\.0\.0\.1|localhost)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> dict:
    return {"ok": True}


@app.post("/api/vault/select")
def select_vault(payload: VaultSelectPayload) -> dict:
    try:
        root = current_vault.select(payload.path)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    config.save_last_vault(str(root))
    return {"root": str(root)}


@app.get("/api/tasks/agenda")
async def tasks_agenda(
    date: Optional[str] = None,
    horizon: Optional[int] = Query(None, ge=1, le=366),
) -> dict:
    _get_vault_root()
    reference = _parse_reference_date(date)
    horizon_days = horizon or config.load_upcoming_days()
    corpus = current_vault.corpus(templates_folder=config.load_templates_folder())
    result = await engine.build_agenda(corpus, reference, horizon_days=horizon_days)
    print(
        f"{_ANSI_BLUE}[API] GET /api/tasks/agenda date={reference} horizon={horizon_days} "
        f"overdue={len(result.overdue)} upcoming={len(result.upcoming)} "
        f"no_schedule={len(result.no_schedule)}{_ANSI_RESET}"
    )
    return serialize_agenda(result)


@app.get("/api/calendar")
def calendar_month(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
) -> dict:
    _get_vault_root()
    corpus = current_vault.corpus(templates_folder=config.load_templates_folder())
    daily_dates = engine.daily_note_dates(corpus)
    today = today_token()
    weeks: List[List[Optional[Dict[str, object]]]] = []
    for week in calendar_grid(year, month, config.load_first_weekday()):
        cells: List[Optional[Dict[str, object]]] = []
        for day in week:
            if day is None:
                cells.append(None)
                continue
            token = format_date(day)
            cells.append(
                {
                    "date": token,
                    "day": day.day,
                    "has_daily_note": token in daily_dates,
                    "is_today": token == today,
                    "weekend": day.weekday() >= 5,
                }
            )
        weeks.append(cells)
    print(f"{_ANSI_BLUE}[API] GET /api/calendar {year}-{month:02d} daily_notes={len(daily_dates)}{_ANSI_RESET}")
    return {"year": year, "month": month, "weeks": weeks}


@app.post("/api/annotations/parse")
def annotations_parse(payload: AnnotationPayload) -> dict:
    annotation = extract_annotation(payload.text)
    return {
        "text": annotation.text,
        "start": annotation.schedule.start,
        "due": annotation.schedule.due,
        "spans": [list(span) for span in find_annotations(payload.text)],
    }


def get_app() -> FastAPI:
    return app
