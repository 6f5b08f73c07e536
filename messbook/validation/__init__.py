"""Validation package."""

from messbook.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
