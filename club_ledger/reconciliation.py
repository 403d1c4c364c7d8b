"""
Statement Reconciliation

Re-derives the balances of a windowed statement so they agree with both the
full ledger and the account's authoritative current balance.

The newest displayed line is anchored at the authoritative balance (less any
transactions dated after the window) and every older line is obtained by
undoing the effect of the line above it. The top of a statement therefore
always matches the balance shown on the account itself, and any drift
between the stored balance and the forward projection ends up in the older
lines. That drift is measured and logged, never silently lost.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import List, Optional, Sequence

from .accounts import to_decimal
from .ledger import LedgerEntry, undo_transaction
from .logging_config import get_logger, log_action


logger = get_logger("club_ledger.reconciliation")


@dataclass(frozen=True)
class ReconciliationResult:
    """Reconciled statement lines (newest first) and the balances behind them"""
    entries: List[LedgerEntry] = field(default_factory=list)
    anchor_balance: Decimal = Decimal('0')
    current_balance: Decimal = Decimal('0')
    projected_balance: Decimal = Decimal('0')

    @property
    def drift(self) -> Decimal:
        """Authoritative balance minus the forward projection of the full ledger"""
        return self.current_balance - self.projected_balance

    @property
    def has_drift(self) -> bool:
        return self.drift != Decimal('0')


def order_descending(entries: Sequence[LedgerEntry]) -> List[LedgerEntry]:
    """Newest date first; same-date entries keep their supplied order"""
    return sorted(entries, key=lambda entry: entry.transaction.date, reverse=True)


def anchor_balance(current_balance: Decimal, ledger: Sequence[LedgerEntry], newest_date: date) -> Decimal:
    """
    Authoritative balance at the end of ``newest_date``

    Undoes every ledger transaction dated strictly after ``newest_date``.
    Equals current_balance when nothing is newer.
    """
    balance = current_balance
    for entry in ledger:
        if entry.transaction.date > newest_date:
            balance = undo_transaction(balance, entry.transaction)
    return balance


def walk_backward(descending: Sequence[LedgerEntry], anchor: Decimal) -> List[LedgerEntry]:
    """Assign ``anchor`` to the first entry and undo each entry for the next"""
    balance = anchor
    walked = []
    for entry in descending:
        walked.append(LedgerEntry(entry.transaction, balance))
        balance = undo_transaction(balance, entry.transaction)
    return walked


def reconcile_window(
    ledger: Sequence[LedgerEntry],
    window_entries: Sequence[LedgerEntry],
    current_balance,
    initial_balance,
    drift_tolerance=Decimal('0'),
    account_id: Optional[str] = None
) -> ReconciliationResult:
    """
    Reconcile the windowed entries against the authoritative balance

    Args:
        ledger: Full projected ledger in ascending order
        window_entries: The subset of ``ledger`` inside the statement window,
            ascending
        current_balance: Authoritative current balance of the account
        initial_balance: Opening balance of the account
        drift_tolerance: Absolute drift tolerated before a warning is logged
        account_id: Used only to label log records

    Returns:
        ReconciliationResult with entries newest first
    """
    current_balance = to_decimal(current_balance)
    projected = ledger[-1].balance_after if ledger else to_decimal(initial_balance)

    if not window_entries:
        result = ReconciliationResult(
            entries=[],
            anchor_balance=current_balance,
            current_balance=current_balance,
            projected_balance=projected
        )
    else:
        descending = order_descending(window_entries)
        anchor = anchor_balance(current_balance, ledger, descending[0].transaction.date)
        result = ReconciliationResult(
            entries=walk_backward(descending, anchor),
            anchor_balance=anchor,
            current_balance=current_balance,
            projected_balance=projected
        )

    if abs(result.drift) > to_decimal(drift_tolerance):
        log_action(
            logger, "warning", "Current balance differs from projected ledger balance",
            action="reconcile_window",
            resource=f"account:{account_id}" if account_id else None,
            extra={
                "current_balance": str(result.current_balance),
                "projected_balance": str(result.projected_balance),
                "drift": str(result.drift)
            }
        )

    return result
