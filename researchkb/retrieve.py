"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/retrieve.py
Version:        1.0.0
Description:    Query engine for the knowledge base. Full-text queries are
                ranked by FTS5 relevance; filter-only queries are sorted by
                paper, section and page. Both share one filter builder.
------------------------------------------------------------------------------
"""

import json
import sqlite3
import threading
from typing import Any, List, Optional, Tuple

from researchkb.database import DatabaseManager
from researchkb.errors import CancellationError, StorageError
from researchkb.logger import get_logger, log_sql_query
from researchkb.models import QueryOptions, QueryResult

logger = get_logger("query")

_SELECT_COLUMNS = """
    i.id, i.type, i.content, i.paper_id, i.section, i.page,
    i.confidence, i.tags, i.citations,
    p.title AS paper_title, p.authors AS paper_authors
"""


class RankingStrategy:
    """
    Supplies the row source and ordering of a query. Filtering is not the
    strategy's concern.
    """
    name: str = "base"

    def source(self, options: QueryOptions) -> Tuple[str, List[Any]]:
        raise NotImplementedError

    def order_by(self) -> str:
        raise NotImplementedError


class FullTextRanking(RankingStrategy):
    """FTS5 MATCH over item content, most relevant first."""
    name = "full-text"

    def source(self, options: QueryOptions) -> Tuple[str, List[Any]]:
        sql = """
            FROM items_fts
            JOIN items i ON i.rowid = items_fts.rowid
            LEFT JOIN papers p ON i.paper_id = p.id
            WHERE items_fts MATCH ?
        """
        return sql, [options.query]

    def order_by(self) -> str:
        return "ORDER BY items_fts.rank"


class StructuredRanking(RankingStrategy):
    """No relevance; deterministic (paper_id, section, page) order."""
    name = "structured"

    def source(self, options: QueryOptions) -> Tuple[str, List[Any]]:
        sql = """
            FROM items i
            LEFT JOIN papers p ON i.paper_id = p.id
            WHERE 1=1
        """
        return sql, []

    def order_by(self) -> str:
        return "ORDER BY i.paper_id, i.section, i.page, i.rowid"


def select_strategy(options: QueryOptions) -> RankingStrategy:
    """Mode selection is purely syntactic: any query text means full-text."""
    if options.full_text:
        return FullTextRanking()
    return StructuredRanking()


def build_filters(options: QueryOptions) -> Tuple[str, List[Any]]:
    """
    Builds the AND-combined filter predicate shared by both modes.
    Every requested tag must be present on the item.
    """
    clauses: List[str] = []
    params: List[Any] = []

    if options.type is not None:
        clauses.append("i.type = ?")
        params.append(options.type.value)

    if options.paper_id:
        clauses.append("i.paper_id = ?")
        params.append(options.paper_id)

    for tag in dict.fromkeys(options.tags):
        clauses.append("i.rowid IN (SELECT item_rowid FROM item_tags WHERE tag = ?)")
        params.append(tag)

    if not clauses:
        return "", params
    return " AND " + " AND ".join(clauses), params


def _load_json_list(raw: Optional[str]) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Ignoring corrupt JSON column value: {raw[:60]!r}")
        return []
    return value if isinstance(value, list) else []


def row_to_result(row: sqlite3.Row) -> QueryResult:
    """Hydrates a QueryResult; a missing paper row leaves title/authors empty."""
    return QueryResult(
        id=row["id"],
        type=row["type"],
        content=row["content"],
        paper_id=row["paper_id"],
        section=row["section"] or "",
        page=row["page"] or 0,
        confidence=row["confidence"] or 0.0,
        tags=_load_json_list(row["tags"]),
        citations=_load_json_list(row["citations"]),
        paper_title=row["paper_title"] or "",
        paper_authors=_load_json_list(row["paper_authors"]),
    )


class QueryEngine:
    """Answers retrieval requests against the knowledge base."""

    def __init__(self, db_manager: DatabaseManager, default_max_results: int = 20) -> None:
        self.db = db_manager
        self.default_max_results = default_max_results

    def _limit(self, options: QueryOptions) -> int:
        if options.max_results and options.max_results > 0:
            return options.max_results
        return self.default_max_results

    def build_sql(self, options: QueryOptions) -> Tuple[str, List[Any]]:
        strategy = select_strategy(options)
        source_sql, params = strategy.source(options)
        filter_sql, filter_params = build_filters(options)
        sql = f"SELECT {_SELECT_COLUMNS} {source_sql}{filter_sql} {strategy.order_by()} LIMIT ?"
        return sql, params + filter_params + [self._limit(options)]

    def retrieve(self, options: QueryOptions,
                 cancel_event: Optional[threading.Event] = None) -> List[QueryResult]:
        """
        Runs a query and returns ranked or sorted results, truncated to the
        effective max-results.

        Raises:
            StorageError: The query failed (including FTS5 syntax errors).
            CancellationError: ``cancel_event`` fired during execution.
        """
        sql, params = self.build_sql(options)
        try:
            with self.db.interruptible(cancel_event) as conn:
                rows = conn.execute(sql, params).fetchall()
        except CancellationError:
            logger.info("Query cancelled")
            raise
        except sqlite3.Error as e:
            logger.error(f"Query failed ({select_strategy(options).name}): {e}")
            raise StorageError(f"querying knowledge base: {e}") from e

        log_sql_query(sql, params, len(rows))
        return [row_to_result(row) for row in rows]
