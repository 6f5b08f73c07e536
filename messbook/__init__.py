"""
Messbook - Shared Household Ledger

Tracks shared purchases, personal charges and payments for a mess
(a shared apartment) whose members come and go, and works out what
each member owes or is owed.

DESIGN PRINCIPLES:
1. Balances are always recomputed from the raw log, never stored
2. Fail early, fail visibly
3. No silent corrections
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Messbook Team"
