"""In-memory document store adapter.

Implements DocumentStorePort for tests and single-process development.
A single lock serialises writes so compare-and-set updates stay atomic.
"""

from __future__ import annotations

import copy
from threading import Lock

from accessgate.adapters._query import (
    apply_update,
    encode,
    matches,
    seed_from_filter,
    sort_documents,
)
from accessgate.core.ports.store import Document, Filter
from accessgate.domain.errors import DuplicateKeyError


class InMemoryDocumentStore:
    """In-memory document storage - suitable for single-process deployments."""

    def __init__(self) -> None:
        self._collections: dict[str, list[Document]] = {}
        self._lock = Lock()

    def _docs(self, collection: str) -> list[Document]:
        return self._collections.setdefault(collection, [])

    def find_one(
        self,
        collection: str,
        filter: Filter,
        sort_by: str | None = None,
        descending: bool = True,
    ) -> Document | None:
        with self._lock:
            found = [d for d in self._docs(collection) if matches(d, filter)]
            found = sort_documents(found, sort_by, descending)
            return copy.deepcopy(found[0]) if found else None

    def find(self, collection: str, filter: Filter) -> list[Document]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._docs(collection) if matches(d, filter)]

    def count(self, collection: str, filter: Filter) -> int:
        with self._lock:
            return sum(1 for d in self._docs(collection) if matches(d, filter))

    def insert_one(
        self,
        collection: str,
        document: Document,
        unique_field: str | None = None,
    ) -> None:
        doc = encode(document)
        with self._lock:
            docs = self._docs(collection)
            if unique_field is not None:
                key = doc.get(unique_field)
                if key is not None and any(d.get(unique_field) == key for d in docs):
                    raise DuplicateKeyError(collection, str(key))
            docs.append(doc)

    def upsert(self, collection: str, filter: Filter, update: Document) -> Document:
        with self._lock:
            docs = self._docs(collection)
            for i, d in enumerate(docs):
                if matches(d, filter):
                    docs[i] = apply_update(d, update)
                    return copy.deepcopy(docs[i])
            doc = apply_update(seed_from_filter(filter), update)
            docs.append(doc)
            return copy.deepcopy(doc)

    def update_one(self, collection: str, filter: Filter, update: Document) -> int:
        with self._lock:
            docs = self._docs(collection)
            for i, d in enumerate(docs):
                if matches(d, filter):
                    docs[i] = apply_update(d, update)
                    return 1
            return 0

    def update_many(self, collection: str, filter: Filter, update: Document) -> int:
        with self._lock:
            docs = self._docs(collection)
            matched = 0
            for i, d in enumerate(docs):
                if matches(d, filter):
                    docs[i] = apply_update(d, update)
                    matched += 1
            return matched

    def delete_one(self, collection: str, filter: Filter) -> int:
        with self._lock:
            docs = self._docs(collection)
            for i, d in enumerate(docs):
                if matches(d, filter):
                    del docs[i]
                    return 1
            return 0

    def delete_many(self, collection: str, filter: Filter) -> int:
        with self._lock:
            docs = self._docs(collection)
            keep = [d for d in docs if not matches(d, filter)]
            deleted = len(docs) - len(keep)
            self._collections[collection] = keep
            return deleted

    def clear(self) -> None:
        """Clear all collections - useful for testing."""
        with self._lock:
            self._collections.clear()
