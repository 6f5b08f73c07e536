"""
Storage Services Package

Provides the repository interface and its implementations.
The JSON file backend is the default; Google Sheets and in-memory
backends implement the same interface.
"""

from messbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerRepository,
    StorageError,
)
from messbook.services.storage.json_file import JsonFileLedgerRepository
from messbook.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerRepository,
)
from messbook.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerRepository,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerRepository",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # Local implementations
    "InMemoryAuditStorage",
    "InMemoryLedgerRepository",
    "JsonFileLedgerRepository",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerRepository",
]
