"""
Commute Ledger - Source Package

Tracks shared-commute costs for a group of people who take turns driving,
and works out who owes whom at the end of each month.

DESIGN PRINCIPLES:
1. The settlement engine is pure and stateless
2. Money is Decimal, never float
3. Fail early, fail visibly
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Commute Ledger Team"
