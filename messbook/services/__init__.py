"""Services package."""

from messbook.services.backup import (
    BackupError,
    export_backup,
    restore_backup,
)
from messbook.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerRepository,
    InMemoryAuditStorage,
    InMemoryLedgerRepository,
    JsonFileLedgerRepository,
    LedgerRepository,
    StorageError,
)

__all__ = [
    # Backup codes
    "BackupError",
    "export_backup",
    "restore_backup",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerRepository",
    "InMemoryAuditStorage",
    "InMemoryLedgerRepository",
    "JsonFileLedgerRepository",
    "LedgerRepository",
    "StorageError",
]
