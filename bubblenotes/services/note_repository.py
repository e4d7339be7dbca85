"""
Note repository
Remote relational store for note rows: a local SQLite table or a hosted
Supabase (PostgREST) table.
"""

import json
import sqlite3
from abc import ABC, abstractmethod
from typing import List, Dict, Any

import httpx

from bubblenotes.models.note import Note, fields_to_columns
from bubblenotes.utils.database import Database
from bubblenotes.utils.errors import RepositoryError
from bubblenotes.utils.logger import logger

# Columns a note update may touch
UPDATABLE_COLUMNS = ("description", "contents", "order", "is_countdown", "countdown_date")


class NoteRepository(ABC):
    """Relational store for note rows"""

    @abstractmethod
    async def fetch_all(self) -> List[Note]:
        """Every note, ordered by order ascending (missing last), then created_at"""

    @abstractmethod
    async def insert(self, note: Note) -> None:
        pass

    @abstractmethod
    async def update(self, note_id: str, fields: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete(self, note_id: str) -> None:
        """Delete a row; deleting a missing row is not an error"""

    @abstractmethod
    async def exists(self, note_id: str) -> bool:
        pass

    async def close(self) -> None:
        pass


def _check_columns(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - set(UPDATABLE_COLUMNS)
    if unknown:
        raise RepositoryError(f"Columns cannot be updated: {sorted(unknown)}")


class SqliteNoteRepository(NoteRepository):
    """Notes table in a local SQLite database"""

    def __init__(self, db: Database):
        self.db = db

    async def fetch_all(self) -> List[Note]:
        try:
            rows = self.db.fetch_all(
                'SELECT * FROM notes ORDER BY "order" IS NULL, "order" ASC, created_at ASC'
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to fetch notes: {e}") from e
        return [Note.from_row(row) for row in rows]

    async def insert(self, note: Note) -> None:
        row = note.to_row()
        try:
            self.db.execute(
                """
                INSERT INTO notes (id, description, contents, created_at, "order", is_countdown, countdown_date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    row["id"],
                    row["description"],
                    json.dumps(row["contents"], ensure_ascii=False),
                    row["created_at"],
                    row["order"],
                    int(row["is_countdown"]),
                    row["countdown_date"],
                ),
            )
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to insert note {note.id}: {e}") from e

    async def update(self, note_id: str, fields: Dict[str, Any]) -> None:
        _check_columns(fields)
        if not fields:
            return
        columns = fields_to_columns(fields)
        assignments = ", ".join(f'"{name}" = ?' for name in columns)
        params = []
        for name, value in columns.items():
            if name == "contents":
                value = json.dumps(value, ensure_ascii=False)
            elif name == "is_countdown" and value is not None:
                value = int(value)
            params.append(value)
        try:
            self.db.execute(f"UPDATE notes SET {assignments} WHERE id = ?", (*params, note_id))
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to update note {note_id}: {e}") from e

    async def delete(self, note_id: str) -> None:
        try:
            deleted = self.db.execute("DELETE FROM notes WHERE id = ?", (note_id,))
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to delete note {note_id}: {e}") from e
        if not deleted:
            logger.warning(f"Note row already absent: {note_id}")

    async def exists(self, note_id: str) -> bool:
        try:
            row = self.db.fetch_one("SELECT id FROM notes WHERE id = ?", (note_id,))
        except sqlite3.Error as e:
            raise RepositoryError(f"Failed to look up note {note_id}: {e}") from e
        return row is not None


class SupabaseNoteRepository(NoteRepository):
    """Notes table behind the Supabase REST (PostgREST) API"""

    def __init__(self, client: httpx.AsyncClient, base_url: str, api_key: str, table: str = "notes"):
        """
        Args:
            client: shared HTTP client, owned by the caller
            base_url: project URL, e.g. https://xyz.supabase.co
            api_key: anon or service key
            table: table name
        """
        self.client = client
        self.endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, self.endpoint, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            raise RepositoryError(f"Supabase request failed: {e}") from e
        if response.status_code >= 400:
            raise RepositoryError(
                f"Supabase {method} failed: {response.status_code} {response.text[:200]}"
            )
        return response

    async def fetch_all(self) -> List[Note]:
        response = await self._request(
            "GET",
            params={"select": "*", "order": "order.asc.nullslast,created_at.asc"},
        )
        return [Note.from_row(row) for row in response.json()]

    async def insert(self, note: Note) -> None:
        await self._request("POST", json=[note.to_row()])

    async def update(self, note_id: str, fields: Dict[str, Any]) -> None:
        _check_columns(fields)
        if not fields:
            return
        await self._request("PATCH", params={"id": f"eq.{note_id}"}, json=fields_to_columns(fields))

    async def delete(self, note_id: str) -> None:
        await self._request("DELETE", params={"id": f"eq.{note_id}"})

    async def exists(self, note_id: str) -> bool:
        response = await self._request("GET", params={"select": "id", "id": f"eq.{note_id}"})
        return bool(response.json())
