"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/trace.py
Version:        1.0.0
Description:    Resolves a knowledge item back to the body of its section in
                the paper's converted Markdown source.
------------------------------------------------------------------------------
"""

import re
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from researchkb.database import DatabaseManager
from researchkb.errors import ItemNotFound, SourceMissing, StorageError
from researchkb.logger import get_logger
from researchkb.repositories import ItemRepository

logger = get_logger("trace")

HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*$")
PAGE_MARKER_PREFIX = "<!-- page"


def extract_section(content: str, target_section: str) -> str:
    """
    Returns the body under the heading named ``target_section``.

    Capture ends at the next heading of the same or higher level (fewer or
    equal '#'), so subsections stay inside the span. Page-marker lines are
    dropped. Empty when the heading does not exist.
    """
    level: Optional[int] = None
    captured: List[str] = []

    for line in content.splitlines():
        stripped = line.strip()
        match = HEADING_RE.match(stripped)

        if level is None:
            if match and match.group(2) == target_section:
                level = len(match.group(1))
            continue

        if match and len(match.group(1)) <= level:
            break
        if stripped.startswith(PAGE_MARKER_PREFIX):
            continue
        captured.append(line)

    return "\n".join(captured).strip()


class TraceResolver:
    """Maps item ids to spans of the original converted text."""

    def __init__(self, db_manager: DatabaseManager, markdown_dir: Path) -> None:
        self.db = db_manager
        self.markdown_dir = Path(markdown_dir)
        self.items = ItemRepository(db_manager)

    def source_path(self, paper_id: str) -> Path:
        return self.markdown_dir / f"{paper_id}.md"

    def trace(self, item_id: str, cancel_event: Optional[threading.Event] = None) -> str:
        """
        Raises:
            ItemNotFound: No item has this id.
            SourceMissing: The paper's Markdown cannot be read.
            StorageError: The lookup query failed.
            CancellationError: ``cancel_event`` fired.
        """
        try:
            with self.db.interruptible(cancel_event):
                row = self.items.get_location(item_id)
        except sqlite3.Error as e:
            raise StorageError(f"looking up item {item_id}: {e}") from e

        if row is None:
            raise ItemNotFound(item_id)

        path = self.source_path(row["paper_id"])
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SourceMissing(path, e.strerror or str(e)) from e

        section = row["section"] or ""
        span = extract_section(content, section)
        if not span:
            logger.info(f"Section {section!r} not found in {path} for item {item_id}")
        return span
