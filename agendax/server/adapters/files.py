from __future__ import annotations

import asyncio
import logging
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

import yaml

from agendax.scheduling.dates import DATE_TOKEN_PATTERN, is_valid_date
from agendax.scheduling.engine import Document
from agendax.scheduling.text import FRONTMATTER_FENCE

logger = logging.getLogger(__name__)

PAGE_SUFFIX = ".md"
JOURNAL_FOLDER = "Journal"
DAILY_TYPE = "daily"
# Frontmatter longer than this is not scanned for its closing fence.
MAX_FRONTMATTER_LINES = 200


class FileAccessError(RuntimeError):
    pass


def strip_page_suffix(name: str, suffix: str = PAGE_SUFFIX) -> str:
    if name.lower().endswith(suffix.lower()):
        return name[: -len(suffix)]
    return name


def _resolve(root: Path, relative_path: str) -> Path:
    if not relative_path:
        raise FileAccessError("Path must not be empty")
    rel = relative_path.lstrip("/")
    root = root.resolve()
    target = (root / rel).resolve()
    if root not in target.parents and target != root:
        raise FileAccessError("Attempted access outside the vault root")
    return target


def read_file(root: Path, path: str) -> str:
    target = _resolve(root, path)
    if not target.is_file():
        raise FileNotFoundError(target)
    try:
        return target.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise FileAccessError("File is not UTF-8 encoded text.") from exc


def parse_frontmatter(text: str) -> Dict[str, Any]:
    """Parse a YAML frontmatter block (without fences). Bad YAML yields {}."""
    try:
        payload = yaml.safe_load(text)
    # The timestamp constructor raises ValueError for impossible dates like 2025-02-30.
    except (yaml.YAMLError, ValueError) as exc:
        logger.warning("Ignoring malformed frontmatter: %s", exc)
        return {}
    return payload if isinstance(payload, dict) else {}


def read_frontmatter(path: Path) -> Dict[str, Any]:
    """Read only the leading ``---`` block of a page file."""
    lines: List[str] = []
    try:
        with open(path, "r", encoding="utf-8") as handle:
            first = handle.readline()
            if first.rstrip() != FRONTMATTER_FENCE:
                return {}
            for _ in range(MAX_FRONTMATTER_LINES):
                line = handle.readline()
                if not line:
                    return {}
                if line.rstrip() in (FRONTMATTER_FENCE, "..."):
                    break
                lines.append(line)
            else:
                return {}
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read frontmatter of %s: %s", path, exc)
        return {}
    return parse_frontmatter("".join(lines))


def daily_date_for(rel_path: PurePosixPath, frontmatter: Dict[str, Any]) -> Optional[str]:
    """Return the date of a daily page, or None for any other page.

    Two layouts are daily pages: ``2025-01-15.md`` anywhere in the vault and
    the journal tree ``Journal/2025/01/15/15.md``. A page declaring a
    frontmatter ``type`` other than ``daily`` is never daily.
    """
    declared = frontmatter.get("type")
    if declared is not None and declared != DAILY_TYPE:
        return None
    stem = strip_page_suffix(rel_path.name)
    if DATE_TOKEN_PATTERN.match(stem) and is_valid_date(stem):
        return stem
    parts = rel_path.parts
    if len(parts) >= 5 and parts[-5] == JOURNAL_FOLDER and stem == parts[-2]:
        token = "-".join(parts[-4:-1])
        if DATE_TOKEN_PATTERN.match(token) and is_valid_date(token):
            return token
    return None


class VaultCorpus:
    """Read-only view over the page files of a vault directory."""

    def __init__(self, root: Path, templates_folder: Optional[str] = None) -> None:
        self.root = Path(root).expanduser().resolve()
        self.templates_folder = (templates_folder or "").strip().strip("/")

    def _is_template(self, rel_path: PurePosixPath) -> bool:
        if not self.templates_folder:
            return False
        rel = rel_path.as_posix()
        return rel == self.templates_folder or rel.startswith(self.templates_folder + "/")

    def documents(self, extension: str = PAGE_SUFFIX) -> List[Document]:
        docs: List[Document] = []
        for path in sorted(self.root.rglob(f"*{extension}")):
            if not path.is_file():
                continue
            rel_path = PurePosixPath(path.relative_to(self.root).as_posix())
            if any(part.startswith(".") for part in rel_path.parts):
                continue
            if self._is_template(rel_path):
                continue
            frontmatter = read_frontmatter(path)
            daily = daily_date_for(rel_path, frontmatter)
            docs.append(
                Document(
                    path=f"/{rel_path.as_posix()}",
                    name=daily or strip_page_suffix(rel_path.name, extension),
                    frontmatter=frontmatter,
                    daily_date=daily,
                )
            )
        return docs

    async def read(self, document: Document) -> str:
        return await asyncio.to_thread(read_file, self.root, document.path)
