from __future__ import annotations

from typing import Any, Dict, Optional

import psycopg2
from psycopg2.extras import Json

from domain.errors import NotFound
from domain.repositories import DocumentStore


class PostgresDocumentStore(DocumentStore):
    """
    Postgres-backed implementation of `DocumentStore`.

    Documents live in a single `documents` table with a JSONB body. Merges
    are done by the database (`body || patch`) so a partial update never
    rewrites fields it was not given.
    """

    def __init__(self, db_params: dict) -> None:
        self._db_params = db_params
        self._ensure_table()

    def _get_connection(self):
        return psycopg2.connect(**self._db_params)

    def _ensure_table(self) -> None:
        """
        Ensure that the `documents` table exists.

        Schema (minimal):
          - collection TEXT
          - key TEXT
          - body JSONB
        """

        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    CREATE TABLE IF NOT EXISTS documents (
                        collection TEXT NOT NULL,
                        key TEXT NOT NULL,
                        body JSONB NOT NULL,
                        PRIMARY KEY (collection, key)
                    )
                    """
                )
                conn.commit()

    def get(self, collection: str, key: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    SELECT body
                    FROM documents
                    WHERE collection = %s AND key = %s
                    """,
                    (collection, key),
                )
                row = cur.fetchone()
                if not row:
                    return None
                # psycopg2 decodes JSONB into Python objects.
                return dict(row[0])

    def set(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO documents (collection, key, body)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (collection, key)
                    DO UPDATE SET body = excluded.body
                    """,
                    (collection, key, Json(fields)),
                )
                conn.commit()

    def update(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE documents
                    SET body = body || %s
                    WHERE collection = %s AND key = %s
                    """,
                    (Json(fields), collection, key),
                )
                if cur.rowcount == 0:
                    raise NotFound(f"No document {collection}/{key} to update.")
                conn.commit()

    def delete(self, collection: str, key: str) -> None:
        with self._get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "DELETE FROM documents WHERE collection = %s AND key = %s",
                    (collection, key),
                )
                conn.commit()
