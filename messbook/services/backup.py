"""
Backup Codes

A backup code is the whole ledger as a single copy-pasteable string:
base64 over the JSON object {"members": [...], "expenses": [...]}.
Codes exported by older versions of the app (flat joinDate/leaveDate
members, `type` instead of `kind`) restore cleanly. Personal charges
saved there without a target member are dropped, since they never
counted toward anyone.
"""

import base64
import binascii
import json

from pydantic import ValidationError

from messbook.models.ledger import LedgerSnapshot


class BackupError(Exception):
    """The backup code could not be decoded into a ledger."""
    pass


def export_backup(snapshot: LedgerSnapshot) -> str:
    """Encode a ledger snapshot as a backup code."""
    record = snapshot.to_record()
    payload = {
        "members": record["members"],
        "expenses": record["transactions"],
    }
    raw = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def restore_backup(code: str) -> LedgerSnapshot:
    """
    Decode a backup code.

    Raises:
        BackupError: If the code is empty, not valid base64/JSON, lacks the
            `members` and `expenses` collections, or holds invalid records.
    """
    if not code or not code.strip():
        raise BackupError("Backup code is empty")

    try:
        raw = base64.b64decode("".join(code.split()), validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise BackupError(f"Backup code is not valid: {e}")

    if not isinstance(data, dict):
        raise BackupError("Backup code does not contain a ledger")
    if not isinstance(data.get("members"), list) or not isinstance(data.get("expenses"), list):
        raise BackupError("Backup code is missing members or expenses")

    try:
        return LedgerSnapshot.model_validate(
            {"members": data["members"], "expenses": data["expenses"]}
        )
    except ValidationError as e:
        raise BackupError(f"Backup code contains invalid records: {e}")
