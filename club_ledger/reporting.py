"""
Finance Summaries

Totals shown next to statements and on the club finance overview: income,
expense and net change of a statement window, and the club-wide balance with
its month-to-date change.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional

from .accounts import AccountManager
from .ledger import undo_transaction
from .statement import Statement
from .transactions import TransactionStore, TransactionType


@dataclass(frozen=True)
class StatementSummary:
    income_total: Decimal
    expense_total: Decimal
    net_change: Decimal
    opening_balance: Decimal  # Balance before the oldest line
    closing_balance: Decimal  # Balance after the newest line
    transaction_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "income_total": str(self.income_total),
            "expense_total": str(self.expense_total),
            "net_change": str(self.net_change),
            "opening_balance": str(self.opening_balance),
            "closing_balance": str(self.closing_balance),
            "transaction_count": self.transaction_count
        }


@dataclass(frozen=True)
class ClubBalanceSummary:
    club_id: str
    as_of: date
    total_balance: Decimal
    monthly_change: Decimal
    account_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "club_id": self.club_id,
            "as_of": self.as_of.isoformat(),
            "total_balance": str(self.total_balance),
            "monthly_change": str(self.monthly_change),
            "account_count": self.account_count
        }


def summarize_statement(statement: Statement) -> StatementSummary:
    """
    Income/expense totals and opening/closing balances of a statement

    For an empty statement both balances equal its anchor balance.
    """
    income = Decimal('0')
    expense = Decimal('0')
    for entry in statement.lines:
        if entry.transaction.transaction_type is TransactionType.INCOME:
            income += entry.transaction.amount
        else:
            expense += entry.transaction.amount

    if statement.lines:
        closing = statement.lines[0].balance_after
        oldest = statement.lines[-1]
        opening = undo_transaction(oldest.balance_after, oldest.transaction)
    else:
        closing = opening = statement.anchor_balance

    return StatementSummary(
        income_total=income,
        expense_total=expense,
        net_change=income - expense,
        opening_balance=opening,
        closing_balance=closing,
        transaction_count=len(statement.lines)
    )


class ReportingEngine:
    """
    Club-level finance summaries over the account and transaction stores
    """

    def __init__(self, account_manager: AccountManager, transaction_store: TransactionStore):
        self.account_manager = account_manager
        self.transaction_store = transaction_store

    def club_balance_summary(self, club_id: str, as_of: Optional[date] = None) -> ClubBalanceSummary:
        """
        Sum of authoritative balances and the net change of the month so far

        Args:
            club_id: Club whose accounts are summarised
            as_of: Reference day (default today); the month runs from its
                first day through ``as_of`` inclusive
        """
        as_of = as_of or date.today()
        month_start = as_of.replace(day=1)

        accounts = self.account_manager.list_club_accounts(club_id)
        total = sum((account.current_balance for account in accounts), Decimal('0'))

        monthly_change = Decimal('0')
        for account in accounts:
            for transaction in self.transaction_store.list_transactions(account.id):
                if month_start <= transaction.date <= as_of:
                    monthly_change += transaction.signed_amount

        return ClubBalanceSummary(
            club_id=club_id,
            as_of=as_of,
            total_balance=total,
            monthly_change=monthly_change,
            account_count=len(accounts)
        )
