"""
Two-Stage Validation Pipeline

DESIGN DECISION: The balance engine trusts its input. Anything malformed
is stopped here, at the point where a member or transaction is created.

STAGE 1 - SCHEMA VALIDATION:
- Required field presence and length limits
- Numeric sanity (amount must be a finite number above zero)
- Target member present for personal charges and payments
- Dates not before the epoch

STAGE 2 - SEMANTIC VALIDATION:
- Target member exists in the roster
- Target member was present on the transaction date
- Suspiciously large amounts
- Dates in the future

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the entry.
"""

from datetime import timedelta
from typing import Any, Optional, Sequence

from messbook.config import AppSettings, get_settings
from messbook.engine.membership import is_active_at
from messbook.models.ledger import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    Member,
    TransactionKind,
    ValidationIssue,
    ValidationResult,
    is_finite_number,
    now_ms,
)

_MS_PER_DAY = int(timedelta(days=1).total_seconds() * 1000)


class LedgerValidator:
    """
    Validates new transactions and members before they enter the ledger.

    Stage 1: Schema validation (no roster needed)
    Stage 2: Semantic validation (checks against the current roster)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_transaction_schema(
        self,
        description: str,
        amount: Any,
        kind: TransactionKind,
        target_member_id: Optional[str],
        at: int,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not description or not description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="A description is required",
                severity="error",
                suggested_fix="Describe what was bought or paid",
            ))
        elif len(description.strip()) > MAX_DESCRIPTION_LENGTH:
            issues.append(ValidationIssue(
                field="description",
                issue_type="too_long",
                message=f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
                severity="error",
                suggested_fix="Shorten the description",
            ))

        if not is_finite_number(amount):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a number",
                severity="error",
                suggested_fix="Enter the amount using digits only",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
            ))

        if kind.requires_target and not target_member_id:
            issues.append(ValidationIssue(
                field="target_member_id",
                issue_type="missing",
                message=f"Choose the member for this {kind.value.lower()} entry",
                severity="error",
            ))

        if at < 0:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_value",
                message="Transaction date cannot be before 1970",
                severity="error",
                suggested_fix="Check the date",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_transaction_semantic(
        self,
        amount: float,
        kind: TransactionKind,
        target_member_id: Optional[str],
        at: int,
        members: Sequence[Member],
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if kind.requires_target:
            target = next((m for m in members if m.id == target_member_id), None)
            if target is None:
                issues.append(ValidationIssue(
                    field="target_member_id",
                    issue_type="unknown_member",
                    message=f"No member with id {target_member_id}",
                    severity="error",
                    suggested_fix="Pick a member from the current roster",
                ))
            elif not is_active_at(target, at):
                issues.append(ValidationIssue(
                    field="target_member_id",
                    issue_type="inactive_member",
                    message=f"{target.name} was not a member on this date",
                    severity="warning",
                    suggested_fix="Check the date or the member",
                ))

        if amount > self._settings.max_transaction_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future = now_ms() + self._settings.future_date_tolerance_days * _MS_PER_DAY
        if at > max_future:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message="Transaction date is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate_transaction(
        self,
        description: str,
        amount: Any,
        kind: TransactionKind,
        target_member_id: Optional[str],
        at: int,
        members: Sequence[Member],
    ) -> ValidationResult:
        """
        Run full two-stage validation for a new transaction.

        Stage 2 only runs when stage 1 passes.
        """
        schema_valid, issues = self._validate_transaction_schema(
            description, amount, kind, target_member_id, at
        )

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_transaction_semantic(
                float(amount), kind, target_member_id, at, members
            )
            issues.extend(semantic_issues)

        return ValidationResult(
            subject="transaction",
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def validate_member_name(
        self,
        name: str,
        members: Sequence[Member],
    ) -> ValidationResult:
        """Check a new member's name against the roster."""
        issues = []
        cleaned = (name or "").strip()

        if not cleaned:
            issues.append(ValidationIssue(
                field="name",
                issue_type="missing",
                message="Member name is required",
                severity="error",
            ))
        elif len(cleaned) > MAX_NAME_LENGTH:
            issues.append(ValidationIssue(
                field="name",
                issue_type="too_long",
                message=f"Member name must be at most {MAX_NAME_LENGTH} characters",
                severity="error",
                suggested_fix="Use a shorter name or a nickname",
            ))
        elif any(m.name.casefold() == cleaned.casefold() for m in members):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"A member named {cleaned} already exists",
                severity="warning",
                suggested_fix="Add an initial or nickname to tell them apart",
            ))

        schema_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            subject="member",
            schema_valid=schema_valid,
            semantic_valid=schema_valid,
            is_valid=schema_valid,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate a short summary of validation results for display."""
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This entry cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
