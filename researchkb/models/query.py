"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/models/query.py
Version:        1.0.0
Description:    Request/response models for retrieval, ingestion summaries
                and denormalized export records.
------------------------------------------------------------------------------
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .item import KnowledgeItem
from .types import ItemType

DEFAULT_MAX_RESULTS = 20


class KnowledgeBaseConfig(BaseModel):
    """Settings for the knowledge base stage."""
    model_config = ConfigDict(extra="ignore")

    knowledge_dir: str = "knowledge"
    papers_dir: str = "papers"
    max_results: int = DEFAULT_MAX_RESULTS

    @field_validator("max_results", mode="before")
    @classmethod
    def positive_max(cls, v) -> int:
        if v is None or int(v) <= 0:
            return DEFAULT_MAX_RESULTS
        return int(v)


class QueryOptions(BaseModel):
    """
    Parameters of a knowledge base query.

    A non-empty ``query`` selects full-text mode; otherwise results are
    sorted structurally. ``tags`` are AND-combined. ``max_results`` of zero
    or None falls back to the store default.
    """
    model_config = ConfigDict(extra="ignore")

    query: str = ""
    type: Optional[ItemType] = None
    tags: List[str] = Field(default_factory=list)
    paper_id: str = ""
    max_results: Optional[int] = None

    @field_validator("query", "paper_id", mode="before")
    @classmethod
    def none_to_empty(cls, v) -> str:
        return "" if v is None else v

    @field_validator("type", mode="before")
    @classmethod
    def empty_type(cls, v):
        return v or None

    @field_validator("tags", mode="before")
    @classmethod
    def clean_tags(cls, v) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [t for t in v if t]

    @property
    def full_text(self) -> bool:
        return bool(self.query)

    def is_empty(self) -> bool:
        """True when the request carries neither a search query nor a filter."""
        return not self.query and self.type is None and not self.tags and not self.paper_id


class QueryResult(KnowledgeItem):
    """A knowledge item joined with its paper's title and authors."""
    paper_title: str = ""
    paper_authors: List[str] = Field(default_factory=list)


class IngestSummary(BaseModel):
    """Counts from a knowledge base indexing run."""
    indexed: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.indexed + self.updated + self.skipped + self.failed

    @property
    def changed(self) -> bool:
        return self.indexed > 0 or self.updated > 0

    def __str__(self) -> str:
        return (f"indexed: {self.indexed}, updated: {self.updated}, "
                f"skipped: {self.skipped}, failed: {self.failed}")


class ExportPaper(BaseModel):
    """Paper-level fields embedded in each export entry."""
    title: str = ""
    authors: List[str] = Field(default_factory=list)


class ExportEntry(BaseModel):
    """Denormalized snapshot record of one knowledge item."""
    id: str
    type: str
    content: str
    paper_id: str
    section: str = ""
    page: int = 0
    confidence: float = 0.0
    tags: List[str] = Field(default_factory=list)
    paper: Optional[ExportPaper] = None

    @classmethod
    def from_result(cls, result: QueryResult) -> "ExportEntry":
        paper = None
        if result.paper_title or result.paper_authors:
            paper = ExportPaper(title=result.paper_title, authors=list(result.paper_authors))
        return cls(
            id=result.id,
            type=result.type.value,
            content=result.content,
            paper_id=result.paper_id,
            section=result.section,
            page=result.page,
            confidence=result.confidence,
            tags=list(result.tags),
            paper=paper,
        )

    def to_record(self) -> dict:
        """Plain dict for serialization; 'paper' is left out when unknown."""
        return self.model_dump(mode="json", exclude_none=True)
