"""
Port interfaces for the access core.

Each port is a Protocol; adapters under ``accessgate.adapters`` implement
them and components depend only on the protocols.
"""

from accessgate.core.ports.email import EmailPort, EmailResult, EmailStatus
from accessgate.core.ports.store import Document, DocumentStorePort, Filter
from accessgate.core.ports.time import TimePort

__all__ = [
    "Document",
    "DocumentStorePort",
    "EmailPort",
    "EmailResult",
    "EmailStatus",
    "Filter",
    "TimePort",
]
