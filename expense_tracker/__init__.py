"""
Expense Tracker - Source Package

Tracks personal expenses and answers questions about them:
listings scoped to their owner, and summaries by category and period.

DESIGN PRINCIPLES:
1. Every record belongs to exactly one caller
2. Money is Decimal, never float
3. Fail early, fail visibly
4. Every mutation is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
