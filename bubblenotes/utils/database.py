"""
Database management
SQLite connection handling and the notes table schema.
"""

import sqlite3
from pathlib import Path
from typing import Optional, List, Dict, Any
from .logger import logger


class Database:
    """SQLite database"""

    def __init__(self, db_url: str):
        """
        Open (and create if needed) the database.

        Args:
            db_url: connection URL, e.g. sqlite:///./data/bubble_notes.db
        """
        self.db_url = db_url
        self.db_path = self._parse_db_path()
        self._init_db()

    def _parse_db_path(self) -> str:
        """Turn the sqlite URL into a file path"""
        if self.db_url.startswith("sqlite:///"):
            return self.db_url.replace("sqlite:///", "")
        return self.db_url

    def _init_db(self):
        """Create the notes table"""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        with self.get_connection() as conn:
            cursor = conn.cursor()

            # "order" is a keyword and must stay quoted
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS notes (
                    id TEXT PRIMARY KEY,
                    description TEXT,
                    contents TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL,
                    "order" INTEGER,
                    is_countdown INTEGER,
                    countdown_date TEXT
                )
            """)

            conn.commit()
            logger.info(f"Database initialised: {self.db_path}")

    def get_connection(self):
        """Open a connection with dict-like rows"""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def execute(self, query: str, params: tuple = ()) -> int:
        """
        Run a statement.

        Args:
            query: SQL statement
            params: statement parameters

        Returns:
            number of affected rows
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def fetch_one(self, query: str, params: tuple = ()) -> Optional[Dict[str, Any]]:
        """
        Fetch a single row.

        Args:
            query: SQL query
            params: query parameters

        Returns:
            the row as a dict, or None
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            row = cursor.fetchone()
            return dict(row) if row else None

    def fetch_all(self, query: str, params: tuple = ()) -> List[Dict[str, Any]]:
        """
        Fetch all rows.

        Args:
            query: SQL query
            params: query parameters

        Returns:
            list of row dicts
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()
            return [dict(row) for row in rows]
