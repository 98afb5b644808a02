"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/store.py
Version:        1.0.0
Description:    Knowledge store facade. Resolves the directory layout and
                wires schema, ingestion, retrieval, tracing and export around
                one shared database manager.
------------------------------------------------------------------------------
"""

import threading
from pathlib import Path
from typing import List, Optional, Union

from researchkb.database import DatabaseManager
from researchkb.exporter import KnowledgeExporter
from researchkb.ingest import IngestPipeline, ProgressCallback
from researchkb.logger import get_logger
from researchkb.models import IngestSummary, KnowledgeBaseConfig, QueryOptions, QueryResult
from researchkb.retrieve import QueryEngine
from researchkb.trace import TraceResolver

logger = get_logger("store")

EXTRACTED_DIR = "extracted"
INDEX_DIR = "index"
METADATA_DIR = "metadata"
MARKDOWN_DIR = "markdown"
DB_FILE = "research.db"


class KnowledgeStore:
    """
    Local knowledge base rooted at ``knowledge_dir`` (extracted/, index/)
    reading paper metadata and Markdown from ``papers_dir``
    (metadata/, markdown/).
    """

    def __init__(self, config: Optional[KnowledgeBaseConfig] = None,
                 db_path: Optional[Union[str, Path]] = None) -> None:
        """
        Opens or creates the database and its schema.

        Args:
            config: Directory layout and default max results.
            db_path: Override of <knowledge_dir>/index/research.db.

        Raises:
            StorageError: The database or schema cannot be created.
        """
        self.config = config or KnowledgeBaseConfig()
        self.knowledge_dir = Path(self.config.knowledge_dir)
        self.papers_dir = Path(self.config.papers_dir)
        self.index_dir = self.knowledge_dir / INDEX_DIR

        self.db = DatabaseManager(db_path or self.index_dir / DB_FILE)
        self.engine = QueryEngine(self.db, default_max_results=self.config.max_results)
        self.exporter = KnowledgeExporter(self.engine, self.index_dir)
        self.tracer = TraceResolver(self.db, self.papers_dir / MARKDOWN_DIR)
        self.pipeline = IngestPipeline(
            self.db,
            extraction_dir=self.knowledge_dir / EXTRACTED_DIR,
            metadata_dir=self.papers_dir / METADATA_DIR,
            on_changed=self.write_snapshot,
        )

    @property
    def max_results(self) -> int:
        return self.engine.default_max_results

    def ingest(self, cancel_event: Optional[threading.Event] = None,
               progress_callback: Optional[ProgressCallback] = None) -> IngestSummary:
        return self.pipeline.run(cancel_event=cancel_event, progress_callback=progress_callback)

    def retrieve(self, options: QueryOptions,
                 cancel_event: Optional[threading.Event] = None) -> List[QueryResult]:
        return self.engine.retrieve(options, cancel_event=cancel_event)

    def trace(self, item_id: str, cancel_event: Optional[threading.Event] = None) -> str:
        return self.tracer.trace(item_id, cancel_event=cancel_event)

    def export(self, options: Optional[QueryOptions] = None, fmt: str = "yaml",
               cancel_event: Optional[threading.Event] = None) -> Path:
        return self.exporter.export(options, fmt=fmt, cancel_event=cancel_event)

    def write_snapshot(self) -> Path:
        """Full, unfiltered export.yaml written after a changing ingest."""
        return self.exporter.export(QueryOptions(), fmt="yaml")

    def close(self) -> None:
        self.db.close()

    def __enter__(self) -> "KnowledgeStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
