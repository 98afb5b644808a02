"""
------------------------------------------------------------------------------
Project:        ResearchKB
File:           researchkb/database.py
Version:        1.0.0
Description:    Central database manager for SQLite persistence. Handles
                schema initialization for papers, knowledge items, change
                watermarks and the FTS5 / tag indexes kept in sync by
                triggers. Provides transaction and cancellation scopes.
------------------------------------------------------------------------------
"""

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

from researchkb.errors import CancellationError, StorageError
from researchkb.logger import get_logger

logger = get_logger("db")

# Number of SQLite VM instructions between cancellation checks
PROGRESS_HANDLER_STEPS = 1000


class DatabaseManager:
    """
    Manages the SQLite connection and the knowledge base schema.

    A single connection is shared by all components; ``lock`` serializes
    every transaction and read so a reader never observes half of a
    paper's replacement.
    """

    def __init__(self, db_path: Union[str, Path] = "research.db") -> None:
        """
        Initializes the DatabaseManager.

        Args:
            db_path: Path to the SQLite database file, or ':memory:'.
        """
        self.db_path: str = str(db_path)
        self.connection: Optional[sqlite3.Connection] = None
        self.lock = threading.RLock()
        self._connect()
        self.init_db()

    def _connect(self) -> None:
        """
        Establishes a connection to the database and configures PRAGMAs.
        Enables WAL mode and foreign key constraints.
        """
        try:
            if self.db_path != ":memory:":
                Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
            # check_same_thread=False allows using the connection across worker threads
            self.connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self.connection.row_factory = sqlite3.Row
            self.connection.execute("PRAGMA foreign_keys = ON")
            self.connection.execute("PRAGMA journal_mode = WAL")
            logger.info(f"Connected to database at {self.db_path} (WAL mode enabled)")
        except (sqlite3.Error, OSError) as e:
            logger.critical(f"Failed to open database {self.db_path}: {e}")
            raise StorageError(f"opening database {self.db_path}: {e}") from e

    def init_db(self) -> None:
        """
        Creates tables, indexes, the FTS5 table and its sync triggers.

        Every statement is idempotent and the whole set runs in one
        transaction, so this is safe to call on every start.
        """
        create_papers_table = """
        CREATE TABLE IF NOT EXISTS papers (
            id TEXT PRIMARY KEY,
            title TEXT,
            authors TEXT, -- JSON list of strings
            date TEXT,
            abstract TEXT,
            source_url TEXT,
            pdf_path TEXT,
            source TEXT,
            conversion_status TEXT
        );
        """

        create_items_table = """
        CREATE TABLE IF NOT EXISTS items (
            rowid INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            type TEXT NOT NULL,
            content TEXT NOT NULL,
            paper_id TEXT NOT NULL REFERENCES papers(id),
            section TEXT,
            page INTEGER,
            confidence REAL,
            tags TEXT, -- JSON list of strings
            citations TEXT -- JSON list of {key, bib_index, context}
        );
        """

        create_watermark_table = """
        CREATE TABLE IF NOT EXISTS indexing_status (
            paper_id TEXT PRIMARY KEY,
            file_mod_time TEXT
        );
        """

        # Tag postings, one row per (item, tag)
        create_item_tags_table = """
        CREATE TABLE IF NOT EXISTS item_tags (
            item_rowid INTEGER NOT NULL,
            tag TEXT NOT NULL,
            PRIMARY KEY (tag, item_rowid)
        ) WITHOUT ROWID;
        """

        # External-content FTS5 over items.content
        create_items_fts = """
        CREATE VIRTUAL TABLE IF NOT EXISTS items_fts USING fts5(
            content,
            content='items',
            content_rowid='rowid'
        );
        """

        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_items_paper_id ON items(paper_id)",
            "CREATE INDEX IF NOT EXISTS idx_items_type ON items(type)",
            "CREATE INDEX IF NOT EXISTS idx_item_tags_item ON item_tags(item_rowid)",
        ]

        steps = [
            ("papers table", create_papers_table),
            ("items table", create_items_table),
            ("indexing_status table", create_watermark_table),
            ("item_tags table", create_item_tags_table),
            ("items_fts table", create_items_fts),
        ]
        steps += [("index", sql) for sql in indexes]
        steps += [("fts trigger", sql) for sql in self._fts_triggers()]
        steps += [("tag trigger", sql) for sql in self._tag_triggers()]

        with self.lock:
            conn = self.connection
            current = "begin"
            try:
                conn.execute("BEGIN")
                for current, sql in steps:
                    conn.execute(sql)
                conn.commit()
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.rollback()
                logger.critical(f"Schema initialization failed at {current}: {e}")
                raise StorageError(f"creating schema ({current}): {e}") from e

        logger.debug(f"Schema ready: {', '.join(sorted(self.table_names()))}")

    def _fts_triggers(self) -> List[str]:
        """Maintains FTS synchronicity via SQLite triggers."""
        return [
            """
            CREATE TRIGGER IF NOT EXISTS items_ai AFTER INSERT ON items BEGIN
                INSERT INTO items_fts(rowid, content) VALUES (new.rowid, new.content);
            END;
            """,
            """
            CREATE TRIGGER IF NOT EXISTS items_ad AFTER DELETE ON items BEGIN
                INSERT INTO items_fts(items_fts, rowid, content)
                VALUES ('delete', old.rowid, old.content);
            END;
            """,
            """
            CREATE TRIGGER IF NOT EXISTS items_au AFTER UPDATE ON items BEGIN
                INSERT INTO items_fts(items_fts, rowid, content)
                VALUES ('delete', old.rowid, old.content);
                INSERT INTO items_fts(rowid, content) VALUES (new.rowid, new.content);
            END;
            """,
        ]

    def _tag_triggers(self) -> List[str]:
        """
        Maintains the item_tags postings from the JSON tag list of each item.
        """
        return [
            """
            CREATE TRIGGER IF NOT EXISTS items_tags_ai AFTER INSERT ON items BEGIN
                INSERT OR IGNORE INTO item_tags(item_rowid, tag)
                SELECT new.rowid, value FROM json_each(new.tags);
            END;
            """,
            """
            CREATE TRIGGER IF NOT EXISTS items_tags_ad AFTER DELETE ON items BEGIN
                DELETE FROM item_tags WHERE item_rowid = old.rowid;
            END;
            """,
            """
            CREATE TRIGGER IF NOT EXISTS items_tags_au AFTER UPDATE ON items
            WHEN (old.tags IS NOT new.tags)
            BEGIN
                DELETE FROM item_tags WHERE item_rowid = old.rowid;
                INSERT OR IGNORE INTO item_tags(item_rowid, tag)
                SELECT new.rowid, value FROM json_each(new.tags);
            END;
            """,
        ]

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Opens one atomic unit of work. Commits on success and rolls back
        everything on any exception.
        """
        with self.lock:
            conn = self.connection
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            else:
                conn.commit()

    @contextmanager
    def interruptible(self, cancel_event: Optional[threading.Event] = None) -> Iterator[sqlite3.Connection]:
        """
        Read scope that aborts the running statement once ``cancel_event``
        is set, raising CancellationError.
        """
        with self.lock:
            conn = self.connection
            if cancel_event is None:
                yield conn
                return
            if cancel_event.is_set():
                raise CancellationError("operation cancelled")

            conn.set_progress_handler(lambda: 1 if cancel_event.is_set() else 0, PROGRESS_HANDLER_STEPS)
            try:
                yield conn
            except sqlite3.OperationalError as e:
                if cancel_event.is_set():
                    raise CancellationError("operation cancelled") from e
                raise
            finally:
                conn.set_progress_handler(None, 0)

    def table_names(self) -> List[str]:
        """Returns the names of all tables and views in the schema."""
        with self.lock:
            cursor = self.connection.execute(
                "SELECT name FROM sqlite_master WHERE type IN ('table', 'view')"
            )
            return [row[0] for row in cursor.fetchall()]

    def close(self) -> None:
        """Safely closes the database connection."""
        with self.lock:
            if self.connection:
                self.connection.close()
                self.connection = None
