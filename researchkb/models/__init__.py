"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/models/__init__.py
Version:        1.0.0
Description:    Package initializer for the knowledge base data models.
                Exports papers, knowledge items, query and export entities.
------------------------------------------------------------------------------
"""

from .types import ItemType, ConversionStatus
from .paper import Paper
from .item import Citation, BibliographyEntry, KnowledgeItem, ExtractionResult
from .query import (
    KnowledgeBaseConfig,
    QueryOptions,
    QueryResult,
    IngestSummary,
    ExportEntry,
    ExportPaper,
)
