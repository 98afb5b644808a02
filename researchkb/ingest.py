"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/ingest.py
Version:        1.0.0
Description:    Incremental ingestion of per-paper extraction files. Compares
                each file against its stored watermark and replaces the
                paper's items, metadata row and watermark in one transaction.
                A bad file is counted as failed without aborting the run.
------------------------------------------------------------------------------
"""

import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from researchkb.database import DatabaseManager
from researchkb.errors import IngestCancelled, InputError, StorageError
from researchkb.logger import get_logger, log_ingest_outcome
from researchkb.models import ExtractionResult, IngestSummary, Paper
from researchkb.repositories import ItemRepository, PaperRepository, WatermarkRepository

logger = get_logger("ingest")

EXTRACTION_SUFFIX = "-items.yaml"

STATUS_INDEXED = "indexed"
STATUS_UPDATED = "updated"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"

# Called as progress_callback(status, paper_id, detail)
ProgressCallback = Callable[[str, str, str], None]


def file_mod_time(path: Path) -> str:
    """UTC ISO-8601 modification time of a file, microsecond precision."""
    ns = path.stat().st_mtime_ns
    ts = datetime.fromtimestamp(ns // 1_000_000_000, tz=timezone.utc)
    return ts.replace(microsecond=(ns % 1_000_000_000) // 1000).isoformat()


def load_extraction(path: Path, paper_id: str) -> ExtractionResult:
    """
    Reads and validates one extraction file.

    Items without a paper id inherit the file's id; an item claiming a
    different paper is rejected so re-indexing can replace the set whole.

    Raises:
        InputError: The file is unreadable, not YAML, or fails validation.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise InputError(paper_id, f"reading {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise InputError(paper_id, f"parse error: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InputError(paper_id, "parse error: top level is not a mapping")

    items = data.get("items")
    if isinstance(items, list):
        for item in items:
            if isinstance(item, dict) and not item.get("paper_id"):
                item["paper_id"] = paper_id

    try:
        result = ExtractionResult.model_validate(data)
    except ValidationError as e:
        raise InputError(paper_id, f"invalid extraction: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e

    foreign = {item.paper_id for item in result.items if item.paper_id != paper_id}
    if foreign:
        raise InputError(paper_id, f"items reference other paper(s): {', '.join(sorted(foreign))}")

    if result.error:
        logger.warning(f"{paper_id}: extraction reported an error: {result.error}")

    unlinked = sum(1 for item in result.items for c in item.citations if not c.is_linked)
    if unlinked:
        logger.debug(f"{paper_id}: {unlinked} citation(s) not linked to the bibliography")

    return result


def load_paper_metadata(metadata_dir: Path, paper_id: str) -> Optional[Paper]:
    """
    Reads papers/metadata/<paper_id>.yaml. Returns None when the file is
    missing or unusable; the caller then stores a stub row.
    """
    path = metadata_dir / f"{paper_id}.yaml"
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("top level is not a mapping")
        data.setdefault("id", paper_id)
        return Paper.model_validate(data)
    except (OSError, yaml.YAMLError, ValidationError, ValueError, TypeError) as e:
        logger.warning(f"{paper_id}: ignoring unusable metadata {path}: {e}")
        return None


class IngestPipeline:
    """
    Coordinator for knowledge base indexing runs.
    """

    def __init__(self, db_manager: DatabaseManager, extraction_dir: Path,
                 metadata_dir: Path, on_changed: Optional[Callable[[], None]] = None) -> None:
        """
        Args:
            db_manager: The shared database manager.
            extraction_dir: Directory holding <paper_id>-items.yaml files.
            metadata_dir: Directory holding <paper_id>.yaml paper metadata.
            on_changed: Called once after a run that indexed or updated
                anything (the store writes its snapshot export here).
        """
        self.db = db_manager
        self.extraction_dir = Path(extraction_dir)
        self.metadata_dir = Path(metadata_dir)
        self.on_changed = on_changed
        self.items = ItemRepository(db_manager)
        self.papers = PaperRepository(db_manager)
        self.watermarks = WatermarkRepository(db_manager)

    def list_extraction_files(self) -> List[Path]:
        """
        Returns extraction files in file-name order.

        Raises:
            StorageError: The extraction directory cannot be listed.
        """
        try:
            entries = sorted(self.extraction_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            raise StorageError(f"reading extraction directory {self.extraction_dir}: {e}") from e
        return [p for p in entries if p.name.endswith(EXTRACTION_SUFFIX) and not p.is_dir()]

    def run(self, cancel_event: Optional[threading.Event] = None,
            progress_callback: Optional[ProgressCallback] = None) -> IngestSummary:
        """
        Ingests every changed extraction file.

        Returns:
            Per-paper outcome counts. Individual failures never raise.

        Raises:
            StorageError: The extraction directory cannot be listed.
            IngestCancelled: ``cancel_event`` was set between papers.
        """
        summary = IngestSummary()

        def report(status: str, paper_id: str, detail: str = "", error: bool = False) -> None:
            log_ingest_outcome(status, paper_id, detail, error=error)
            setattr(summary, status, getattr(summary, status) + 1)
            if progress_callback:
                progress_callback(status, paper_id, detail)

        for path in self.list_extraction_files():
            if cancel_event is not None and cancel_event.is_set():
                logger.info(f"Ingest cancelled ({summary})")
                raise IngestCancelled(summary)

            paper_id = path.name[: -len(EXTRACTION_SUFFIX)]
            try:
                status, detail = self._ingest_file(path, paper_id)
            except InputError as e:
                report(STATUS_FAILED, paper_id, e.reason)
                continue
            except StorageError as e:
                report(STATUS_FAILED, paper_id, str(e), error=True)
                continue

            report(status, paper_id, detail)

        logger.info(str(summary))

        if summary.changed and self.on_changed is not None:
            try:
                self.on_changed()
            except (StorageError, OSError) as e:
                logger.warning(f"export.yaml write failed: {e}")

        return summary

    def _ingest_file(self, path: Path, paper_id: str) -> Tuple[str, str]:
        try:
            mod_time = file_mod_time(path)
        except OSError as e:
            raise InputError(paper_id, f"stat {path}: {e}") from e

        with self.db.lock:
            stored = self.watermarks.get(paper_id)
        if stored == mod_time:
            return STATUS_SKIPPED, ""

        is_update = stored is not None
        result = load_extraction(path, paper_id)
        paper = load_paper_metadata(self.metadata_dir, paper_id)

        stored_items = self._apply(paper_id, result, paper, mod_time, is_update)

        detail = f"({stored_items} items)"
        return (STATUS_UPDATED if is_update else STATUS_INDEXED), detail

    def _apply(self, paper_id: str, result: ExtractionResult, paper: Optional[Paper],
               mod_time: str, is_update: bool) -> int:
        """
        Replaces a paper's state atomically: old items, metadata row, new
        items and watermark commit together or not at all. Returns the
        number of items stored for the paper (repeated ids collapse).
        """
        step = "beginning transaction"
        try:
            with self.db.transaction():
                if is_update:
                    step = "deleting old items"
                    removed = self.items.delete_by_paper(paper_id)
                    logger.debug(f"{paper_id}: removed {removed} stale item(s)")

                step = "upserting paper"
                if paper is not None:
                    paper.id = paper_id
                    self.papers.upsert(paper)
                else:
                    self.papers.ensure_stub(paper_id)

                step = "inserting items"
                self.items.insert_many(result.items)
                stored_items = self.items.count(paper_id)

                step = "updating indexing status"
                self.watermarks.set(paper_id, mod_time)
        except sqlite3.Error as e:
            raise StorageError(f"{step}: {e}") from e
        return stored_items
