from __future__ import annotations

import json
import sqlite3
from typing import Any, Dict, Optional

from domain.errors import NotFound
from domain.repositories import DocumentStore


class SqliteDocumentStore(DocumentStore):
    """
    SQLite-backed implementation of `DocumentStore`.

    Every collection shares a single `documents` table keyed by
    (collection, key); documents are stored as JSON text.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_table()

    def _get_connection(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _ensure_table(self) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    key TEXT NOT NULL,
                    body TEXT NOT NULL,
                    PRIMARY KEY (collection, key)
                )
                """
            )
            conn.commit()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT body FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            )
            row = cur.fetchone()
            if not row:
                return None
            return json.loads(row[0])

    def set(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO documents (collection, key, body)
                VALUES (?, ?, ?)
                ON CONFLICT (collection, key)
                DO UPDATE SET body = excluded.body
                """,
                (collection, key, json.dumps(fields)),
            )
            conn.commit()

    def update(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        """
        Merge `fields` into the stored document.

        The read and the write run in one immediate transaction.
        """

        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            cur.execute(
                "SELECT body FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            )
            row = cur.fetchone()
            if not row:
                raise NotFound(f"No document {collection}/{key} to update.")
            body = json.loads(row[0])
            body.update(fields)
            cur.execute(
                "UPDATE documents SET body = ? WHERE collection = ? AND key = ?",
                (json.dumps(body), collection, key),
            )
            conn.commit()

    def delete(self, collection: str, key: str) -> None:
        with self._get_connection() as conn:
            cur = conn.cursor()
            cur.execute(
                "DELETE FROM documents WHERE collection = ? AND key = ?",
                (collection, key),
            )
            conn.commit()
