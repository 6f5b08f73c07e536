"""
Core Data Models for the Mess Ledger

These models define the schemas for everything the balance engine consumes
and produces. They are designed to:
1. Enforce the membership and amount invariants at construction time
2. Stay compatible with the persisted camelCase format (joinDate, targetMemberId)
3. Be serializable for storage, backups and logging

DESIGN DECISION: Membership is always held as an ordered list of periods.
Records in the legacy flat shape (joinDate + optional leaveDate) are
normalized into a single period when they are loaded, so no caller ever
branches on the flat fields again.
"""

import math
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

import structlog
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

logger = structlog.get_logger(__name__)


def now_ms() -> int:
    """Current time as epoch milliseconds, the unit used for all ledger dates."""
    return int(time.time() * 1000)


def new_id() -> str:
    """Generate an opaque identifier for members and transactions."""
    return str(uuid4())


MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 200


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionKind(str, Enum):
    """
    The three kinds of dated financial events.

    DESIGN DECISION: This is a closed set. The engine dispatches on every
    member explicitly, so adding a kind means touching the engine too.
    """
    SHARED = "SHARED"        # Split evenly among members active on the date
    PERSONAL = "PERSONAL"    # Charged in full to one member
    PAYMENT = "PAYMENT"      # Deposit credited to one member

    @property
    def requires_target(self) -> bool:
        return self is not TransactionKind.SHARED


class DeletionPolicy(str, Enum):
    """What happens to a member's transactions when the member is deleted."""
    CASCADE = "cascade"  # Personal/payment transactions targeting them are removed
    ORPHAN = "orphan"    # Transactions are kept and show up as orphaned


# =============================================================================
# MEMBERS
# =============================================================================

class MembershipPeriod(BaseModel):
    """
    One continuous stay in the mess.

    Both ends are inclusive: a member is still present on the day they leave.
    """
    model_config = ConfigDict(frozen=True)

    join: int = Field(
        ...,
        ge=0,
        description="Join time (epoch ms)"
    )
    leave: Optional[int] = Field(
        default=None,
        ge=0,
        description="Leave time (epoch ms), None while the stay is open"
    )

    @model_validator(mode='after')
    def validate_bounds(self) -> 'MembershipPeriod':
        if self.leave is not None and self.leave < self.join:
            raise ValueError("Leave time cannot be before join time")
        return self

    @property
    def is_open(self) -> bool:
        return self.leave is None

    def covers(self, at: int) -> bool:
        """True if `at` falls inside this period, boundaries included."""
        return self.join <= at and (self.leave is None or self.leave >= at)


def _first_present(data: dict, *keys: str) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


class Member(BaseModel):
    """
    A member of the mess.

    Accepts either a `periods` list or the legacy `joinDate`/`leaveDate`
    pair. Legacy records without any join time are treated as having been
    present since the beginning (join = 0), like the seed roster.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Stable member identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_NAME_LENGTH,
        description="Display name"
    )
    avatar: Optional[str] = Field(
        default=None,
        description="Avatar image URL"
    )
    periods: list[MembershipPeriod] = Field(
        ...,
        min_length=1,
        description="Membership periods, ordered by join time"
    )

    @model_validator(mode='before')
    @classmethod
    def normalize_membership(cls, data: Any) -> Any:
        """Synthesize a single period from the legacy flat fields."""
        if not isinstance(data, dict):
            return data

        data = dict(data)
        join = _first_present(data, "join_date", "joinDate")
        leave = _first_present(data, "leave_date", "leaveDate")
        for key in ("join_date", "joinDate", "leave_date", "leaveDate"):
            data.pop(key, None)

        if not data.get("periods"):
            data["periods"] = [{"join": join if join is not None else 0, "leave": leave}]
        return data

    @field_validator('periods')
    @classmethod
    def validate_periods(cls, periods: list[MembershipPeriod]) -> list[MembershipPeriod]:
        """Periods must be ordered, disjoint, and only the last may be open."""
        for previous, current in zip(periods, periods[1:]):
            if previous.is_open:
                raise ValueError("Only the last membership period may be open")
            if current.join <= previous.leave:
                raise ValueError(
                    "Membership periods must be ordered by join time and must not overlap"
                )
        return periods

    @computed_field(alias="joinDate")
    @property
    def join_date(self) -> int:
        """First join time."""
        return self.periods[0].join

    @computed_field(alias="leaveDate")
    @property
    def leave_date(self) -> Optional[int]:
        """Leave time of the latest period, None while the member is present."""
        return self.periods[-1].leave

    @property
    def current_period(self) -> Optional[MembershipPeriod]:
        last = self.periods[-1]
        return last if last.is_open else None

    def with_periods(self, periods: list[MembershipPeriod]) -> 'Member':
        """Return a copy with a new period history, re-validated."""
        return Member(id=self.id, name=self.name, avatar=self.avatar, periods=periods)


# =============================================================================
# TRANSACTIONS
# =============================================================================

class Transaction(BaseModel):
    """
    A dated financial event: a shared purchase, a personal charge or a payment.

    Stored under the name "expenses" in older exports, where the kind
    was a loose `type` string. Both `kind` and `type` are accepted on load.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Transaction identifier"
    )
    description: str = Field(
        default="",
        max_length=MAX_DESCRIPTION_LENGTH,
        description="Free text description"
    )
    amount: float = Field(
        ...,
        gt=0,
        allow_inf_nan=False,
        description="Positive amount in the ledger currency"
    )
    kind: TransactionKind = Field(
        ...,
        validation_alias=AliasChoices("kind", "type"),
        description="Shared, personal or payment"
    )
    target_member_id: Optional[str] = Field(
        default=None,
        description="Member charged or credited (personal and payment only)"
    )
    date: int = Field(
        default_factory=now_ms,
        ge=0,
        description="When the event happened (epoch ms)"
    )

    @model_validator(mode='after')
    def validate_target(self) -> 'Transaction':
        if self.kind.requires_target and not self.target_member_id:
            raise ValueError(f"{self.kind.value} transactions need a target member")
        if not self.kind.requires_target:
            self.target_member_id = None
        return self


def _lacks_target(record: dict) -> bool:
    """True for a personal charge or payment saved without a target member."""
    kind = _first_present(record, "kind", "type")
    target = _first_present(record, "target_member_id", "targetMemberId")
    return kind in (TransactionKind.PERSONAL, TransactionKind.PAYMENT) and not str(target or "").strip()


class LedgerSnapshot(BaseModel):
    """
    The two persisted collections for one user identity.

    Older exports could hold personal charges with an empty target. Those
    never counted toward any member, so they are dropped on load.
    """
    model_config = ConfigDict(populate_by_name=True)

    members: list[Member] = Field(default_factory=list)
    transactions: list[Transaction] = Field(
        default_factory=list,
        validation_alias=AliasChoices("transactions", "expenses"),
    )

    @model_validator(mode='before')
    @classmethod
    def drop_untargeted_records(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        for key in ("transactions", "expenses"):
            records = data.get(key)
            if not isinstance(records, list):
                continue
            kept = []
            for record in records:
                if isinstance(record, dict) and _lacks_target(record):
                    logger.warning(
                        "untargeted_transaction_dropped",
                        transaction_id=record.get("id"),
                        kind=_first_present(record, "kind", "type"),
                    )
                    continue
                kept.append(record)
            data = {**data, key: kept}
        return data

    def to_record(self) -> dict:
        """Serialize to the persisted camelCase JSON shape."""
        return {
            "members": [m.model_dump(mode="json", by_alias=True) for m in self.members],
            "transactions": [
                t.model_dump(mode="json", by_alias=True) for t in self.transactions
            ],
        }


# =============================================================================
# SUMMARY MODELS (derived, never persisted)
# =============================================================================

class NetBalance(BaseModel):
    """
    A member's signed balance: payments minus attributed cost.

    Positive means the mess owes the member (credit).
    Negative means the member owes the mess (debt).
    """
    model_config = ConfigDict(frozen=True)

    value: float = 0.0

    @classmethod
    def from_totals(cls, paid: float, total_cost: float) -> 'NetBalance':
        return cls(value=paid - total_cost)

    @property
    def is_credit(self) -> bool:
        return self.value > 0

    @property
    def is_debt(self) -> bool:
        return self.value < 0

    @property
    def amount_owed(self) -> float:
        """How much the member still has to pay (0 when in credit)."""
        return max(0.0, -self.value)

    @property
    def credit(self) -> float:
        return max(0.0, self.value)

    def __float__(self) -> float:
        return self.value


class MemberBalance(BaseModel):
    """Per-member result of a summary computation."""

    member: Member
    shared_share: float = 0.0
    personal_total: float = 0.0
    total_cost: float = 0.0
    paid: float = 0.0
    breakfast_paid: float = Field(
        default=0.0,
        description="Payments in the breakfast sub-ledger (not netted)"
    )
    net_balance: NetBalance = Field(default_factory=NetBalance)


class MessSummary(BaseModel):
    """
    Full financial picture of the mess.

    Recomputed from the member and transaction lists on every change.
    """

    total_shared_expense: float = 0.0
    total_personal_expense: float = 0.0
    total_payments: float = Field(
        default=0.0,
        description="Plain payments, breakfast deposits excluded"
    )
    total_breakfast_payments: float = 0.0
    grand_total_debt: float = Field(
        default=0.0,
        description="(shared + personal) - plain payments"
    )
    average_per_person: float = Field(
        default=0.0,
        description="Shared total divided by the currently active roster size"
    )
    unattributed_shared_expense: float = Field(
        default=0.0,
        description="Shared amounts dated when nobody was active"
    )
    orphaned_transaction_ids: list[str] = Field(
        default_factory=list,
        description="Personal/payment transactions whose target no longer exists"
    )
    member_balances: list[MemberBalance] = Field(default_factory=list)

    def balance_for(self, member_id: str) -> Optional[MemberBalance]:
        for balance in self.member_balances:
            if balance.member.id == member_id:
                return balance
        return None


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'unknown_member')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (required fields, numeric sanity)
    Stage 2: Semantic validation (references, dates, suspicious values)
    """

    subject: str = Field(
        ...,
        description="What was validated (e.g., 'transaction', 'member')"
    )
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]


def is_finite_number(value: Any) -> bool:
    """True for real, finite numbers (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)
