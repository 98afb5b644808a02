from researchkb.logger import log_sql_query
from researchkb.models import Paper
from .base import BaseRepository


class PaperRepository(BaseRepository):
    """
    Manages access to the 'papers' table. Papers are never deleted.
    """

    def upsert(self, paper: Paper) -> None:
        """Insert or update the full metadata row of a paper."""
        sql = """
        INSERT INTO papers (id, title, authors, date, abstract, source_url, pdf_path, source, conversion_status)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
            title=excluded.title, authors=excluded.authors, date=excluded.date,
            abstract=excluded.abstract, source_url=excluded.source_url,
            pdf_path=excluded.pdf_path, source=excluded.source,
            conversion_status=excluded.conversion_status
        """
        values = (
            paper.id,
            paper.title,
            paper.authors_json(),
            paper.date or "",
            paper.abstract,
            paper.source_url,
            paper.pdf_path,
            paper.source,
            paper.conversion_status.value,
        )
        self.conn.execute(sql, values)
        log_sql_query(sql, values[:2], 1)

    def ensure_stub(self, paper_id: str) -> None:
        """Creates an id-only row so items always reference a paper."""
        sql = "INSERT OR IGNORE INTO papers (id) VALUES (?)"
        cursor = self.conn.execute(sql, (paper_id,))
        log_sql_query(sql, (paper_id,), cursor.rowcount)

