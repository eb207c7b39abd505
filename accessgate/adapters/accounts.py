"""Administrator account lookups backed by the document store."""

from __future__ import annotations

from accessgate.core.ports.store import DocumentStorePort
from accessgate.domain.entities import ACCOUNTS_COLLECTION, AdminAccount


class AccountDirectory:
    def __init__(self, store: DocumentStorePort) -> None:
        self._store = store

    def get(self, user_id: str) -> AdminAccount | None:
        """Raises StoreUnavailableError."""
        doc = self._store.find_one(ACCOUNTS_COLLECTION, {"id": user_id})
        return AdminAccount.model_validate(doc) if doc else None
