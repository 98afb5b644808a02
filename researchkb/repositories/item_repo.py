import sqlite3
from typing import Iterable, Optional

from researchkb.logger import log_sql_query
from researchkb.models import KnowledgeItem
from .base import BaseRepository


class ItemRepository(BaseRepository):
    """
    Manages access to the 'items' table. The FTS and tag indexes follow
    automatically through triggers.
    """

    def delete_by_paper(self, paper_id: str) -> int:
        """Removes every item of a paper. Returns the number of rows deleted."""
        sql = "DELETE FROM items WHERE paper_id = ?"
        cursor = self.conn.execute(sql, (paper_id,))
        log_sql_query(sql, (paper_id,), cursor.rowcount)
        return cursor.rowcount

    def insert_many(self, items: Iterable[KnowledgeItem]) -> int:
        """
        Inserts items. An id that already exists (e.g. moved from another
        paper) is updated in place so the index triggers stay consistent.
        """
        sql = """
        INSERT INTO items (id, type, content, paper_id, section, page, confidence, tags, citations)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            type=excluded.type, content=excluded.content, paper_id=excluded.paper_id,
            section=excluded.section, page=excluded.page, confidence=excluded.confidence,
            tags=excluded.tags, citations=excluded.citations
        """
        count = 0
        for item in items:
            self.conn.execute(sql, (
                item.id,
                item.type.value,
                item.content,
                item.paper_id,
                item.section,
                item.page,
                item.confidence,
                item.tags_json(),
                item.citations_json(),
            ))
            count += 1
        log_sql_query(sql, None, count)
        return count

    def get_location(self, item_id: str) -> Optional[sqlite3.Row]:
        """Returns (paper_id, section, page) of an item, or None."""
        sql = "SELECT paper_id, section, page FROM items WHERE id = ?"
        row = self.conn.execute(sql, (item_id,)).fetchone()
        log_sql_query(sql, (item_id,), 1 if row else 0)
        return row

    def count(self, paper_id: Optional[str] = None) -> int:
        if paper_id is None:
            return self.conn.execute("SELECT count(*) FROM items").fetchone()[0]
        return self.conn.execute(
            "SELECT count(*) FROM items WHERE paper_id = ?", (paper_id,)
        ).fetchone()[0]
