"""
Mealshare - Source Package

Shared grocery and deposit bookkeeping for a household, with a balance
reconciliation engine at its core.

DESIGN PRINCIPLES:
1. Balances are derived, never stored
2. Fail early, fail visibly: bad records are reported, not coerced
3. Money is Decimal end to end
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Mealshare Team"
