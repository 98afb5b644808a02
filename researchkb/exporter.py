"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/exporter.py
Version:        1.0.0
Description:    Export service writing denormalized snapshots of the
                knowledge base (or a filtered subset) to YAML or JSON.
------------------------------------------------------------------------------
"""

import json
import threading
from pathlib import Path
from typing import List, Optional

import yaml

from researchkb.errors import StorageError
from researchkb.logger import get_logger
from researchkb.models import ExportEntry, QueryOptions
from researchkb.retrieve import QueryEngine

logger = get_logger("export")

# Ceiling used instead of removing the LIMIT for full scans
EXPORT_LIMIT = 100_000

EXPORT_FORMATS = ("yaml", "json")


class KnowledgeExporter:
    """
    Serializes query results to <index_dir>/export.yaml or export.json.
    Accepts the same filters as retrieval so partial exports are possible.
    """

    def __init__(self, engine: QueryEngine, index_dir: Path) -> None:
        self.engine = engine
        self.index_dir = Path(index_dir)

    def export_path(self, fmt: str) -> Path:
        return self.index_dir / f"export.{fmt}"

    def entries(self, options: Optional[QueryOptions] = None,
                cancel_event: Optional[threading.Event] = None) -> List[ExportEntry]:
        opts = (options or QueryOptions()).model_copy(update={"max_results": EXPORT_LIMIT})
        results = self.engine.retrieve(opts, cancel_event=cancel_event)
        return [ExportEntry.from_result(r) for r in results]

    def export(self, options: Optional[QueryOptions] = None, fmt: str = "yaml",
               cancel_event: Optional[threading.Event] = None) -> Path:
        """
        Writes the snapshot and returns its path.

        Raises:
            ValueError: Unsupported format.
            StorageError: Querying or writing failed.
        """
        fmt = (fmt or "yaml").lower()
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"unsupported format {fmt!r}: use yaml or json")

        records = [e.to_record() for e in self.entries(options, cancel_event)]

        if fmt == "json":
            data = json.dumps(records, indent=2, ensure_ascii=False) + "\n"
        else:
            data = yaml.safe_dump(records, sort_keys=False, allow_unicode=True)

        path = self.export_path(fmt)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(data, encoding="utf-8")
        except OSError as e:
            raise StorageError(f"writing {path}: {e}") from e

        logger.info(f"Exported {len(records)} item(s) to {path}")
        return path
