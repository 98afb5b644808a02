"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/models/item.py
Version:        1.0.0
Description:    Pydantic models for knowledge items and the per-paper
                extraction file that carries them.
------------------------------------------------------------------------------
"""

import json
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import ItemType

UNLINKED_BIB_INDEX = -1


def _coerce_str_id(v: Any) -> Any:
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return v


class Citation(BaseModel):
    """Inline reference inside an item, linked to a bibliography entry."""
    model_config = ConfigDict(extra="ignore")

    key: str
    bib_index: int = UNLINKED_BIB_INDEX
    context: str = ""

    @field_validator("bib_index", mode="before")
    @classmethod
    def normalize_bib_index(cls, v: Any) -> Any:
        if v is None or v == "unlinked":
            return UNLINKED_BIB_INDEX
        return v

    @property
    def is_linked(self) -> bool:
        return self.bib_index >= 0


class BibliographyEntry(BaseModel):
    """A parsed entry from a paper's reference section."""
    model_config = ConfigDict(extra="ignore")

    key: str = ""
    authors: List[str] = Field(default_factory=list)
    title: str = ""
    year: Optional[str] = None
    venue: str = ""

    @field_validator("key", "year", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Any:
        return _coerce_str_id(v)


class KnowledgeItem(BaseModel):
    """
    Typed knowledge unit extracted from a paper with section/page provenance.
    The id is a stable hash assigned upstream.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    type: ItemType
    content: str
    paper_id: str
    section: str = ""
    page: int = 0
    confidence: float = 0.0
    tags: List[str] = Field(default_factory=list)
    citations: List[Citation] = Field(default_factory=list)

    @field_validator("id", "paper_id", mode="before")
    @classmethod
    def coerce_ids(cls, v: Any) -> Any:
        return _coerce_str_id(v)

    @field_validator("section", mode="before")
    @classmethod
    def none_section(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("page", "confidence", mode="before")
    @classmethod
    def none_number(cls, v: Any) -> Any:
        return 0 if v is None else v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> List[str]:
        """Normalizes tag input from various formats."""
        if v is None: return []
        if isinstance(v, str):
            if v.startswith("["):
                try:
                    parsed = json.loads(v)
                    if isinstance(parsed, list): return [str(t) for t in parsed]
                except json.JSONDecodeError:
                    pass # Not a JSON list, treat as comma-separated string
            return [t.strip() for t in v.split(",") if t.strip()]
        if isinstance(v, list): return [str(t) for t in v if t is not None]
        return []

    @field_validator("citations", mode="before")
    @classmethod
    def none_citations(cls, v: Any) -> Any:
        return [] if v is None else v

    def tags_json(self) -> str:
        return json.dumps(self.tags, ensure_ascii=False)

    def citations_json(self) -> str:
        return json.dumps([c.model_dump() for c in self.citations], ensure_ascii=False)


class ExtractionResult(BaseModel):
    """Contents of knowledge/extracted/<paper_id>-items.yaml."""
    model_config = ConfigDict(extra="ignore")

    paper_id: str = ""
    items: List[KnowledgeItem] = Field(default_factory=list)
    bibliography: List[BibliographyEntry] = Field(default_factory=list)
    paper_tags: List[str] = Field(default_factory=list)
    error: Optional[str] = None

    @field_validator("paper_id", mode="before")
    @classmethod
    def coerce_paper_id(cls, v: Any) -> Any:
        return "" if v is None else _coerce_str_id(v)

    @field_validator("items", "bibliography", "paper_tags", mode="before")
    @classmethod
    def none_lists(cls, v: Any) -> Any:
        return [] if v is None else v
