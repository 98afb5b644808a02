from typing import Optional

from .base import BaseRepository


class WatermarkRepository(BaseRepository):
    """
    Manages access to 'indexing_status', the last-seen modification time
    of each paper's extraction file.
    """

    def get(self, paper_id: str) -> Optional[str]:
        row = self.conn.execute(
            "SELECT file_mod_time FROM indexing_status WHERE paper_id = ?", (paper_id,)
        ).fetchone()
        return row[0] if row else None

    def set(self, paper_id: str, mod_time: str) -> None:
        self.conn.execute(
            """
            INSERT INTO indexing_status (paper_id, file_mod_time) VALUES (?, ?)
            ON CONFLICT(paper_id) DO UPDATE SET file_mod_time=excluded.file_mod_time
            """,
            (paper_id, mod_time),
        )
