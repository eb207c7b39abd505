"""
Document store interface.

The access core persists every record (hashed secrets, one-time codes,
maintenance config, emergency tokens, admin accounts) as one JSON document
per logical entity in a named collection.

Filters are equality matches on top-level fields. A filter value may also be
an operator dict using ``$gt``, ``$gte``, ``$lt``, ``$lte``, ``$ne`` or
``$in``; datetimes compare as datetimes.

Updates are plain field assignments (``$set`` semantics).

Write operations against a single collection are atomic: ``update_one``
re-evaluates the filter inside the write, so a filter such as
``{"id": x, "consumed": False}`` acts as a compare-and-set and the returned
matched count tells the caller whether it won.

Adapters raise ``StoreUnavailableError`` when the backend cannot be reached
within its timeout and ``DuplicateKeyError`` when a unique guard rejects an
insert.
"""

from __future__ import annotations

from typing import Any, Protocol

Document = dict[str, Any]
Filter = dict[str, Any]


class DocumentStorePort(Protocol):
    def find_one(
        self,
        collection: str,
        filter: Filter,
        sort_by: str | None = None,
        descending: bool = True,
    ) -> Document | None:
        """Return the first matching document (optionally after sorting)."""
        ...

    def find(self, collection: str, filter: Filter) -> list[Document]:
        """Return all matching documents."""
        ...

    def count(self, collection: str, filter: Filter) -> int:
        """Count matching documents."""
        ...

    def insert_one(
        self,
        collection: str,
        document: Document,
        unique_field: str | None = None,
    ) -> None:
        """Insert a document; reject duplicates of ``unique_field``."""
        ...

    def upsert(self, collection: str, filter: Filter, update: Document) -> Document:
        """Apply ``update`` to the matching document or insert ``filter | update``."""
        ...

    def update_one(self, collection: str, filter: Filter, update: Document) -> int:
        """Update the first matching document. Returns matched count (0 or 1)."""
        ...

    def update_many(self, collection: str, filter: Filter, update: Document) -> int:
        """Update all matching documents. Returns matched count."""
        ...

    def delete_one(self, collection: str, filter: Filter) -> int:
        """Delete the first matching document. Returns deleted count."""
        ...

    def delete_many(self, collection: str, filter: Filter) -> int:
        """Delete all matching documents. Returns deleted count."""
        ...
