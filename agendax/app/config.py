from __future__ import annotations

import calendar
import json
from pathlib import Path
from typing import Optional

GLOBAL_CONFIG = Path.home() / ".agendax_config.json"

DEFAULT_UPCOMING_DAYS = 14
DEFAULT_FIRST_WEEKDAY = calendar.SUNDAY


def init_settings() -> None:
    GLOBAL_CONFIG.parent.mkdir(parents=True, exist_ok=True)


def _read_global_config() -> dict:
    """Return the parsed global config, or an empty dict on error/missing."""
    if not GLOBAL_CONFIG.exists():
        return {}
    try:
        payload = json.loads(GLOBAL_CONFIG.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return payload if isinstance(payload, dict) else {}


def _update_global_config(updates: dict) -> None:
    """Merge updates into global config file."""
    existing = _read_global_config()
    existing.update(updates)
    init_settings()
    GLOBAL_CONFIG.write_text(json.dumps(existing, indent=2), encoding="utf-8")


def load_last_vault() -> Optional[str]:
    payload = _read_global_config()
    last = payload.get("last_vault")
    return last if isinstance(last, str) else None


def save_last_vault(path: str) -> None:
    _update_global_config({"last_vault": path})


def load_upcoming_days(default: int = DEFAULT_UPCOMING_DAYS) -> int:
    """Days after today covered by the Upcoming section (inclusive)."""
    payload = _read_global_config()
    try:
        return max(1, int(payload.get("upcoming_days", default)))
    except (TypeError, ValueError):
        return default


def save_upcoming_days(days: int) -> None:
    _update_global_config({"upcoming_days": max(1, int(days))})


def load_templates_folder() -> str:
    """Vault-relative folder whose pages are templates, never tasks. Empty when unset."""
    payload = _read_global_config()
    folder = payload.get("templates_folder")
    if isinstance(folder, str):
        return folder.strip().strip("/")
    return ""


def save_templates_folder(folder: Optional[str]) -> None:
    _update_global_config({"templates_folder": (folder or "").strip().strip("/")})


def load_first_weekday(default: int = DEFAULT_FIRST_WEEKDAY) -> int:
    """Calendar column 0, using calendar module numbering (0 = Monday, 6 = Sunday)."""
    payload = _read_global_config()
    value = payload.get("first_weekday", default)
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 6:
        return value
    return default


def save_first_weekday(weekday: int) -> None:
    if not 0 <= int(weekday) <= 6:
        raise ValueError("first_weekday must be between 0 (Monday) and 6 (Sunday)")
    _update_global_config({"first_weekday": int(weekday)})
