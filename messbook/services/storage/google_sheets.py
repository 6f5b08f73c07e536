"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a shared backend because:
1. Every member of the mess can look at the raw ledger in a spreadsheet
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (a household ledger is tiny)
- No transactions (a save appends the new rows, then deletes the old ones)
- Limited query capabilities (we filter in Python)

Several ledgers can share one spreadsheet: every row starts with the
owning user id.
"""

import json
from typing import Callable, Optional, Sequence

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from messbook.config import get_settings
from messbook.models.audit import AuditEvent, AuditEventType, AuditSeverity
from messbook.models.ledger import (
    LedgerSnapshot,
    Member,
    MembershipPeriod,
    Transaction,
    TransactionKind,
)
from messbook.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerRepository,
    StorageError,
)

logger = structlog.get_logger(__name__)


MEMBER_COLUMNS = [
    "user_id",
    "id",
    "name",
    "avatar",
    "periods_json",
]

TRANSACTION_COLUMNS = [
    "user_id",
    "id",
    "description",
    "amount",
    "kind",
    "target_member_id",
    "date",
]

AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "user_id",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_members_sheet(self) -> gspread.Worksheet:
        """Get or create the Members worksheet."""
        return self._get_or_create_sheet(
            self._settings.members_sheet_name, MEMBER_COLUMNS, rows=200
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, rows=2000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000
        )


class GoogleSheetsLedgerRepository(LedgerRepository):
    """
    Google Sheets implementation of ledger storage.

    One member per row in the Members sheet (periods JSON-serialized),
    one transaction per row in the Transactions sheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _member_to_row(self, user_id: str, member: Member) -> list:
        return [
            user_id,
            member.id,
            member.name,
            member.avatar or "",
            json.dumps([p.model_dump() for p in member.periods]),
        ]

    def _row_to_member(self, row: list) -> Member:
        periods = [MembershipPeriod(**p) for p in json.loads(_safe_get(row, 4, "[]"))]
        return Member(
            id=_safe_get(row, 1),
            name=_safe_get(row, 2),
            avatar=_safe_get(row, 3) or None,
            periods=periods,
        )

    def _transaction_to_row(self, user_id: str, transaction: Transaction) -> list:
        return [
            user_id,
            transaction.id,
            transaction.description,
            str(transaction.amount),
            transaction.kind.value,
            transaction.target_member_id or "",
            str(transaction.date),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        return Transaction(
            id=_safe_get(row, 1),
            description=_safe_get(row, 2),
            amount=float(_safe_get(row, 3)),
            kind=TransactionKind(_safe_get(row, 4)),
            target_member_id=_safe_get(row, 5) or None,
            date=int(_safe_get(row, 6)),
        )

    def _user_rows(self, sheet: gspread.Worksheet, user_id: str) -> list[list]:
        all_rows = sheet.get_all_values()[1:]  # Skip header
        return [row for row in all_rows if row and row[0] == user_id]

    def _replace_user_rows(
        self,
        sheet: gspread.Worksheet,
        user_id: str,
        rows: list[list],
        parse: Callable[[list], object],
    ) -> None:
        """
        Swap the user's rows for `rows`.

        New rows are appended before the old ones are removed, so a failed
        write leaves the previous ledger in the sheet. Owned rows that
        `parse` cannot read were never loaded and are kept for repair.
        """
        all_rows = sheet.get_all_values()
        stale = []
        for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
            if not row or row[0] != user_id:
                continue
            try:
                parse(row)
            except Exception:
                logger.warning("malformed_row_kept", sheet=sheet.title, row_index=idx)
                continue
            stale.append(idx)

        # Appended rows land below every existing row, so stale indices stay valid
        if rows:
            sheet.append_rows(rows, value_input_option="RAW")
        # Delete bottom-up so earlier indices stay valid
        for idx in reversed(stale):
            sheet.delete_rows(idx)

    async def load(self, user_id: str) -> LedgerSnapshot:
        """Load every member and transaction row owned by `user_id`."""
        try:
            member_rows = self._user_rows(self._client.get_members_sheet(), user_id)
            transaction_rows = self._user_rows(
                self._client.get_transactions_sheet(), user_id
            )
        except Exception as e:
            raise StorageError(f"Failed to load ledger: {e}")

        members = []
        for row in member_rows:
            try:
                members.append(self._row_to_member(row))
            except Exception as e:
                logger.warning("malformed_member_row", row=row, error=str(e))

        transactions = []
        for row in transaction_rows:
            try:
                transactions.append(self._row_to_transaction(row))
            except Exception as e:
                logger.warning("malformed_transaction_row", row=row, error=str(e))

        return LedgerSnapshot(members=members, transactions=transactions)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def save(
        self,
        user_id: str,
        members: Sequence[Member],
        transactions: Sequence[Transaction],
    ) -> bool:
        """Replace the user's rows in both sheets."""
        try:
            self._replace_user_rows(
                self._client.get_members_sheet(),
                user_id,
                [self._member_to_row(user_id, m) for m in members],
                self._row_to_member,
            )
            self._replace_user_rows(
                self._client.get_transactions_sheet(),
                user_id,
                [self._transaction_to_row(user_id, t) for t in transactions],
                self._row_to_transaction,
            )
            return True
        except Exception as e:
            raise StorageError(f"Failed to save ledger: {e}")

    async def exists(self, user_id: str) -> bool:
        try:
            return bool(self._user_rows(self._client.get_members_sheet(), user_id))
        except Exception as e:
            raise StorageError(f"Failed to check ledger: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=_safe_get(row, 0),
            timestamp=_safe_get(row, 1),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            user_id=_safe_get(row, 4) or None,
            entity_type=_safe_get(row, 5) or None,
            entity_id=_safe_get(row, 6) or None,
            correlation_id=_safe_get(row, 7) or None,
            description=_safe_get(row, 8),
            details=json.loads(_safe_get(row, 9)) if _safe_get(row, 9) else {},
            error_message=_safe_get(row, 10) or None,
            is_user_action=_safe_get(row, 11).lower() == "true",
        )

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.get_audit_sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception:
                continue  # Skip malformed rows
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging should not break the main flow
            logger.warning("audit_sheet_write_failed", error=str(e))
            return False

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._all_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._all_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
