"""
Club Ledger

Bank-account ledger and statement engine for club finances: running
balances, inclusive date windows and reconciliation against the
authoritative current balance, all computed with Decimal precision.
"""

__version__ = "1.0.0"
