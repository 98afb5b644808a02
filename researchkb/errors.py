"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/errors.py
Version:        1.0.0
Description:    Exception hierarchy for the knowledge base. Per-paper input
                problems are isolated by the ingest pipeline; everything else
                surfaces to the caller.
------------------------------------------------------------------------------
"""

from pathlib import Path
from typing import Optional, Union


class KnowledgeBaseError(Exception):
    """Base class for all knowledge base failures."""


class InputError(KnowledgeBaseError):
    """Raised when a per-paper extraction file is unreadable or malformed."""

    def __init__(self, paper_id: str, reason: str) -> None:
        super().__init__(f"{paper_id}: {reason}")
        self.paper_id = paper_id
        self.reason = reason


class StorageError(KnowledgeBaseError):
    """Raised when schema setup, a transaction, or a query fails."""


class ItemNotFound(KnowledgeBaseError):
    """Raised when a trace request names an unknown item id."""

    def __init__(self, item_id: str) -> None:
        super().__init__(f"item {item_id} not found")
        self.item_id = item_id


class SourceMissing(KnowledgeBaseError):
    """Raised when the converted source text of a paper cannot be read."""

    def __init__(self, path: Union[str, Path], reason: Optional[str] = None) -> None:
        msg = f"reading {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
        self.path = Path(path)


class CancellationError(KnowledgeBaseError):
    """Raised when the caller's cancellation signal fires mid-operation."""


class IngestCancelled(CancellationError):
    """Ingest stopped between papers. Carries the counts gathered so far."""

    def __init__(self, summary) -> None:
        super().__init__(f"ingest cancelled after {summary.total} paper(s)")
        self.summary = summary
