"""
SQLite Document Store Adapter.

Implements DocumentStorePort on a single ``documents`` table holding one JSON
body per record. Every write runs inside ``BEGIN IMMEDIATE`` so the filter is
evaluated and the row rewritten under SQLite's write lock; concurrent
compare-and-set updates against the same record therefore serialise.

Connections use a bounded busy timeout; lock contention or I/O failures past
that timeout surface as StoreUnavailableError.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import uuid4

from accessgate.adapters._query import (
    apply_update,
    encode,
    matches,
    seed_from_filter,
    sort_documents,
)
from accessgate.core.ports.store import Document, Filter
from accessgate.domain.errors import DuplicateKeyError, StoreUnavailableError


def _unique_value(doc: Document, unique_field: str | None) -> str | None:
    if unique_field is None or doc.get(unique_field) is None:
        return None
    return str(doc[unique_field])


class SQLiteDocumentStore:
    """SQLite implementation of DocumentStorePort."""

    def __init__(
        self,
        db_path: str,
        timeout_seconds: float = 5.0,
        connection: sqlite3.Connection | None = None,
    ):
        self.db_path = db_path
        self.timeout_seconds = timeout_seconds
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        return sqlite3.connect(
            self.db_path,
            timeout=self.timeout_seconds,
            isolation_level=None,
        )

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    @contextmanager
    def _transaction(self, operation: str, write: bool = False) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StoreUnavailableError(operation, e) from e

        try:
            if write:
                conn.execute("BEGIN IMMEDIATE")
            yield conn
            if write:
                conn.execute("COMMIT")
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailableError(operation, e) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            if self._should_close():
                conn.close()

    def _load(self, conn: sqlite3.Connection, collection: str) -> list[tuple[str, Document]]:
        rows = conn.execute(
            "SELECT doc_id, body FROM documents WHERE collection = ? ORDER BY rowid",
            (collection,),
        ).fetchall()
        return [(row[0], json.loads(row[1])) for row in rows]

    def _write_body(
        self, conn: sqlite3.Connection, collection: str, doc_id: str, doc: Document
    ) -> None:
        # unique_key tracks the guarded field so retiring a value frees it
        conn.execute(
            "UPDATE documents SET body = ?, updated_at = CURRENT_TIMESTAMP, "
            "unique_key = CASE WHEN unique_field IS NULL THEN NULL "
            "ELSE json_extract(?, '$.' || unique_field) END "
            "WHERE collection = ? AND doc_id = ?",
            (json.dumps(doc), json.dumps(doc), collection, doc_id),
        )

    def _insert(
        self,
        conn: sqlite3.Connection,
        collection: str,
        doc: Document,
        unique_field: str | None = None,
    ) -> None:
        doc_id = str(doc.get("id") or doc.get("key") or uuid4().hex)
        unique_key = _unique_value(doc, unique_field)
        conn.execute(
            "INSERT INTO documents (collection, doc_id, unique_field, unique_key, body) "
            "VALUES (?, ?, ?, ?, ?)",
            (collection, doc_id, unique_field, unique_key, json.dumps(doc)),
        )

    # --- Reads ---

    def find_one(
        self,
        collection: str,
        filter: Filter,
        sort_by: str | None = None,
        descending: bool = True,
    ) -> Document | None:
        with self._transaction("find_one") as conn:
            found = [d for _, d in self._load(conn, collection) if matches(d, filter)]
        found = sort_documents(found, sort_by, descending)
        return found[0] if found else None

    def find(self, collection: str, filter: Filter) -> list[Document]:
        with self._transaction("find") as conn:
            return [d for _, d in self._load(conn, collection) if matches(d, filter)]

    def count(self, collection: str, filter: Filter) -> int:
        return len(self.find(collection, filter))

    # --- Writes ---

    def insert_one(
        self,
        collection: str,
        document: Document,
        unique_field: str | None = None,
    ) -> None:
        doc = encode(document)
        try:
            with self._transaction("insert_one", write=True) as conn:
                self._insert(conn, collection, doc, unique_field)
        except sqlite3.IntegrityError as e:
            key = _unique_value(doc, unique_field) or str(doc.get("id"))
            raise DuplicateKeyError(collection, key) from e

    def upsert(self, collection: str, filter: Filter, update: Document) -> Document:
        with self._transaction("upsert", write=True) as conn:
            for doc_id, doc in self._load(conn, collection):
                if matches(doc, filter):
                    updated = apply_update(doc, update)
                    self._write_body(conn, collection, doc_id, updated)
                    return updated
            created = apply_update(seed_from_filter(filter), update)
            self._insert(conn, collection, created)
            return created

    def update_one(self, collection: str, filter: Filter, update: Document) -> int:
        with self._transaction("update_one", write=True) as conn:
            for doc_id, doc in self._load(conn, collection):
                if matches(doc, filter):
                    self._write_body(conn, collection, doc_id, apply_update(doc, update))
                    return 1
            return 0

    def update_many(self, collection: str, filter: Filter, update: Document) -> int:
        with self._transaction("update_many", write=True) as conn:
            matched = 0
            for doc_id, doc in self._load(conn, collection):
                if matches(doc, filter):
                    self._write_body(conn, collection, doc_id, apply_update(doc, update))
                    matched += 1
            return matched

    def delete_one(self, collection: str, filter: Filter) -> int:
        with self._transaction("delete_one", write=True) as conn:
            for doc_id, doc in self._load(conn, collection):
                if matches(doc, filter):
                    conn.execute(
                        "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                        (collection, doc_id),
                    )
                    return 1
            return 0

    def delete_many(self, collection: str, filter: Filter) -> int:
        with self._transaction("delete_many", write=True) as conn:
            deleted = 0
            for doc_id, doc in self._load(conn, collection):
                if matches(doc, filter):
                    conn.execute(
                        "DELETE FROM documents WHERE collection = ? AND doc_id = ?",
                        (collection, doc_id),
                    )
                    deleted += 1
            return deleted
