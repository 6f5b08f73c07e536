"""
JSON File Storage Implementation

DESIGN DECISION: The default backend keeps each user's ledger in one JSON
file on the local disk, in the same camelCase shape used by backup
codes. No account or network access is needed, and the file can be
inspected or copied by hand.

Files are written to a temporary sibling first and then moved into place,
so a crash mid-write never leaves a half-written ledger behind.
"""

import hashlib
import json
import os
import re
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from messbook.config import get_settings
from messbook.models.ledger import LedgerSnapshot, Member, Transaction
from messbook.services.storage.interface import LedgerRepository, StorageError

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileLedgerRepository(LedgerRepository):
    """
    One JSON file per ledger inside a data directory.

    File names are a readable slug of the user id followed by a SHA-256
    digest of the id itself, so ids that slug alike (`alice@x`, `alice_x`)
    still get separate files.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir or get_settings().storage.data_dir)

    def path_for(self, user_id: str) -> Path:
        if not user_id or not user_id.strip():
            raise StorageError("User id is required")
        user_id = user_id.strip()
        slug = _UNSAFE_CHARS.sub("_", user_id)[:40]
        digest = hashlib.sha256(user_id.encode("utf-8")).hexdigest()
        return self._data_dir / f"{slug}-{digest}.json"

    async def load(self, user_id: str) -> LedgerSnapshot:
        """Load a ledger file, or an empty ledger if there is none yet."""
        path = self.path_for(user_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return LedgerSnapshot()
        except OSError as e:
            raise StorageError(f"Failed to read ledger {path}: {e}")

        try:
            return LedgerSnapshot.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StorageError(f"Ledger file {path} is corrupt: {e}")

    async def save(
        self,
        user_id: str,
        members: Sequence[Member],
        transactions: Sequence[Transaction],
    ) -> bool:
        """Write the whole ledger atomically."""
        path = self.path_for(user_id)
        snapshot = LedgerSnapshot(members=list(members), transactions=list(transactions))
        tmp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(snapshot.to_record(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, path)
            return True
        except OSError as e:
            raise StorageError(f"Failed to save ledger {path}: {e}")

    async def exists(self, user_id: str) -> bool:
        return self.path_for(user_id).exists()
