"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/__init__.py
Version:        1.0.0
Description:    Local knowledge-base store for extracted research knowledge.
                Contains schema management, incremental ingestion, hybrid
                retrieval, source tracing and snapshot export.
------------------------------------------------------------------------------
"""

from researchkb.store import KnowledgeStore
from researchkb.models import KnowledgeBaseConfig, QueryOptions, QueryResult

__all__ = ["KnowledgeStore", "KnowledgeBaseConfig", "QueryOptions", "QueryResult"]
