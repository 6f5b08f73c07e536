"""
Shared fixtures.

Every fixture passes settings explicitly so tests never depend on the
environment (no API keys, no Google credentials, no data directory).
"""

import pytest

from messbook.agents import InsightAgent
from messbook.audit import AuditLogger
from messbook.config import AppSettings, GeminiSettings, LedgerSettings
from messbook.models import DeletionPolicy, Member, MembershipPeriod
from messbook.orchestrator import MessLedger
from messbook.services.storage import InMemoryAuditStorage, InMemoryLedgerRepository
from messbook.validation import LedgerValidator

DAY_MS = 24 * 60 * 60 * 1000


def make_member(member_id: str, *periods: tuple) -> Member:
    """Build a member from (join, leave) tuples; leave may be None."""
    return Member(
        id=member_id,
        name=member_id,
        periods=[MembershipPeriod(join=join, leave=leave) for join, leave in periods],
    )


@pytest.fixture
def app_settings():
    return AppSettings(max_transaction_amount=100000.0, future_date_tolerance_days=1)


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        currency_code="SAR",
        breakfast_tag="breakfast",
        deletion_policy=DeletionPolicy.CASCADE,
    )


@pytest.fixture
def validator(app_settings):
    return LedgerValidator(app_settings)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def repository():
    return InMemoryLedgerRepository()


@pytest.fixture
def ledger(repository, audit_storage, validator, ledger_settings):
    return MessLedger(
        user_id="user-1",
        repository=repository,
        audit_logger=AuditLogger(audit_storage),
        validator=validator,
        insight_agent=InsightAgent(settings=GeminiSettings(api_key=None)),
        settings=ledger_settings,
    )
