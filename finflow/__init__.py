"""
finflow - Source Package

The calculation core of a personal budgeting application: monthly
ledger rollover, recurring-transaction projection and loan status.

DESIGN PRINCIPLES:
1. Inputs are snapshots, outputs are new values
2. Ground truth (recorded months) wins over projection
3. Derived fields are recomputed, never trusted from storage
4. A single malformed record never aborts a whole computation
5. Storage and UI live outside this package
"""

__version__ = "1.0.0"
__author__ = "Finance Flow Team"
