from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Dict, List, Optional

import uvicorn

from agendax.app import config
from agendax.scheduling import engine
from agendax.scheduling.dates import InvalidDate, format_date, format_date_with_weekday, parse_date, today_token
from agendax.scheduling.models import CategorizedTasks, DayBucket, TaskItem
from agendax.scheduling.schedule import describe_window
from agendax.scheduling.tree import TaskTreeNode, build_task_tree, walk_task_tree
from agendax.server import api as api_module
from agendax.server.adapters.files import VaultCorpus
from agendax.server.state import current_vault


# ============================================================================
# DEBUG CONFIGURATION - Environment Variables
# ============================================================================
# AGENDAX_DEBUG_TASKS - Collection and bucketing counts per pass
# AGENDAX_HOST        - Host/interface for --serve (default 127.0.0.1)
# AGENDAX_PORT        - Port for --serve (default 8000)
# ============================================================================

INDENT = "  "


def _debug_enabled(var_name: str) -> bool:
    """Check if a debug flag is enabled."""
    return os.getenv(var_name, "0") not in ("0", "false", "False", "", None)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Overdue, today and upcoming tasks for a notes vault.")
    parser.add_argument("--vault", default=None, help="Vault folder (defaults to the last used vault).")
    parser.add_argument("--date", default=None, help="Reference date YYYY-MM-DD (defaults to today).")
    parser.add_argument("--horizon", type=int, default=None, help="Days covered by Upcoming.")
    parser.add_argument("--json", action="store_true", help="Print the agenda as JSON.")
    parser.add_argument("--serve", action="store_true", help="Run the local API server instead.")
    parser.add_argument("--host", default=os.getenv("AGENDAX_HOST", "127.0.0.1"), help="Host/interface to bind the API server.")
    parser.add_argument("--port", type=int, default=int(os.getenv("AGENDAX_PORT", "8000")), help="API server port.")
    return parser.parse_args(argv)


def _render_item(item: TaskItem, reference: str) -> str:
    text = item.text or f"(L{item.line})"
    period = describe_window(item.schedule, reference)
    return f"[ ] {text}  ({period})" if period else f"[ ] {text}"


def _render_bucket(lines: List[str], bucket: DayBucket, reference: str) -> None:
    for depth, entry in walk_task_tree(build_task_tree(bucket.task_items), depth=1):
        if isinstance(entry, TaskTreeNode):
            lines.append(f"{INDENT * depth}{entry.label}")
        else:
            lines.append(f"{INDENT * depth}{_render_item(entry, reference)}")
    for note in bucket.task_notes:
        period = describe_window(note.schedule, reference)
        suffix = f"  ({period})" if period else ""
        lines.append(f"{INDENT}[ ] {note.name}{suffix}")


def _render_dated(lines: List[str], title: str, section: Dict[str, DayBucket], reference: str) -> None:
    if not section:
        return
    lines.append(f"# {title}")
    for day, bucket in section.items():
        lines.append(format_date_with_weekday(day))
        _render_bucket(lines, bucket, reference)


def render_agenda(result: CategorizedTasks) -> str:
    reference = result.reference_date
    lines: List[str] = []
    _render_dated(lines, "Overdue", result.overdue, reference)
    if not result.today.is_empty:
        lines.append("# Today")
        lines.append(format_date_with_weekday(reference))
        _render_bucket(lines, result.today, reference)
    _render_dated(lines, "Upcoming", result.upcoming, reference)
    if result.no_schedule:
        lines.append("# No Schedule")
        for note in result.no_schedule:
            lines.append(f"{INDENT}[ ] {note.name}")
    if not lines:
        lines.append("No tasks")
    return "\n".join(lines)


def _run_server(args: argparse.Namespace, vault: Optional[str]) -> int:
    if vault:
        current_vault.select(vault)
    print(f"[agendax] Starting server on http://{args.host}:{args.port}")
    uvicorn.run(api_module.get_app(), host=args.host, port=args.port, log_level="info")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if _debug_enabled("AGENDAX_DEBUG_TASKS") else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    vault = args.vault or config.load_last_vault()
    if args.serve:
        return _run_server(args, vault)
    if not vault:
        print("Error: no vault given and no previously used vault found. Pass --vault PATH.", file=sys.stderr)
        return 2
    try:
        reference = format_date(parse_date(args.date)) if args.date else today_token()
    except InvalidDate as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    corpus = VaultCorpus(vault, templates_folder=config.load_templates_folder())
    if not corpus.root.is_dir():
        print(f"Error: vault directory does not exist: {corpus.root}", file=sys.stderr)
        return 2
    horizon = args.horizon or config.load_upcoming_days()
    result = asyncio.run(engine.build_agenda(corpus, reference, horizon_days=horizon))
    if args.vault:
        config.save_last_vault(str(corpus.root))
    if args.json:
        print(json.dumps(api_module.serialize_agenda(result), indent=2, ensure_ascii=False))
    else:
        print(render_agenda(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
