"""Audit logging package."""

from messbook.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
