"""
Finance Tracker - Source Package

A single-user personal finance tracker: transactions attributed to
people and tags, a people ledger with settlements, dashboard summaries
and budgets tracked against actual spend.

DESIGN PRINCIPLES:
1. Engines are pure functions of their inputs
2. Invalid input is rejected, never silently corrected
3. Multi-record writes are all-or-nothing
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
