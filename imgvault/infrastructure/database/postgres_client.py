"""PostgreSQL document store for local development.

Stands in for Firestore when ``USE_LOCAL_DB=1``: every index collection
(images, trash, collections) lives in one JSONB table keyed by
``(collection, id)``.
"""
from __future__ import annotations

import json
from contextlib import contextmanager
from typing import Any, Generator

import psycopg2
from psycopg2 import pool
from psycopg2.extras import Json, RealDictCursor

SCHEMA = """
CREATE TABLE IF NOT EXISTS vault_documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (collection, id)
)
"""


class PostgresClient:
    """PostgreSQL database client with connection pooling."""

    def __init__(self, dsn: str) -> None:
        try:
            self._pool: Any = pool.SimpleConnectionPool(minconn=1, maxconn=10, dsn=dsn)
        except psycopg2.Error as exc:  # pragma: no cover
            raise RuntimeError(f"Failed to initialize PostgreSQL connection pool: {exc}") from exc
        self.execute_update(SCHEMA)

    @contextmanager
    def get_connection(self) -> Generator[Any, None, None]:
        """Get a database connection from the pool.

        Yields:
            Database connection with automatic return to pool on exit.
        """
        conn = None
        try:
            conn = self._pool.getconn()
            yield conn
            conn.commit()
        except Exception:
            if conn:
                conn.rollback()
            raise
        finally:
            if conn:
                self._pool.putconn(conn)

    @contextmanager
    def get_cursor(self, dict_cursor: bool = True) -> Generator[Any, None, None]:
        with self.get_connection() as conn:
            cursor_factory = RealDictCursor if dict_cursor else None
            cursor = conn.cursor(cursor_factory=cursor_factory)
            try:
                yield cursor
            finally:
                cursor.close()

    def execute_one(self, query: str, params: tuple = ()) -> dict[str, Any] | None:
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            result = cursor.fetchone()
            return dict(result) if result else None

    def execute_many(self, query: str, params: tuple = ()) -> list[dict[str, Any]]:
        with self.get_cursor() as cursor:
            cursor.execute(query, params)
            return [dict(row) for row in cursor.fetchall()]

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT, UPDATE, DELETE or DDL statement.

        Returns:
            Number of rows affected.
        """
        with self.get_cursor(dict_cursor=False) as cursor:
            cursor.execute(query, params)
            return cursor.rowcount

    # Document helpers

    def put_document(self, collection: str, document_id: str, data: dict[str, Any]) -> None:
        self.execute_update(
            """
            INSERT INTO vault_documents (collection, id, data) VALUES (%s, %s, %s)
            ON CONFLICT (collection, id) DO UPDATE SET data = EXCLUDED.data
            """,
            (collection, document_id, Json(data, dumps=lambda obj: json.dumps(obj, default=str))),
        )

    def get_document(self, collection: str, document_id: str) -> dict[str, Any] | None:
        row = self.execute_one(
            "SELECT data FROM vault_documents WHERE collection = %s AND id = %s",
            (collection, document_id),
        )
        return row["data"] if row else None

    def delete_document(self, collection: str, document_id: str) -> bool:
        return self.execute_update(
            "DELETE FROM vault_documents WHERE collection = %s AND id = %s",
            (collection, document_id),
        ) > 0

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        rows = self.execute_many(
            "SELECT id, data FROM vault_documents WHERE collection = %s ORDER BY created_at DESC",
            (collection,),
        )
        return [(row["id"], row["data"]) for row in rows]

    def close(self) -> None:
        if self._pool:
            self._pool.closeall()


_POSTGRES_CLIENTS: dict[str, PostgresClient] = {}


def get_postgres_client(dsn: str) -> PostgresClient:
    """One pooled client per DSN for the life of the process."""
    if dsn not in _POSTGRES_CLIENTS:
        _POSTGRES_CLIENTS[dsn] = PostgresClient(dsn)
    return _POSTGRES_CLIENTS[dsn]
