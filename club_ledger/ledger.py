"""
Running Balance Ledger

Pure projection of an account's transactions into running balances. Every
function here is deterministic, side-effect free and uses Decimal arithmetic
only, so long histories never accumulate rounding drift.
"""

from decimal import Decimal
from typing import Iterable, List, NamedTuple, Sequence

from .accounts import to_decimal
from .transactions import Transaction
from .logging_config import get_logger, log_action


logger = get_logger("club_ledger.ledger")


class LedgerEntry(NamedTuple):
    """A transaction paired with the account balance right after it"""
    transaction: Transaction
    balance_after: Decimal


def apply_transaction(balance: Decimal, transaction: Transaction) -> Decimal:
    """Balance after the transaction: add income, subtract expense"""
    return balance + transaction.signed_amount


def undo_transaction(balance: Decimal, transaction: Transaction) -> Decimal:
    """Balance before the transaction, given the balance after it"""
    return balance - transaction.signed_amount


def order_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
    """
    Sort ascending by calendar date.

    The sort is stable: transactions sharing a date keep the order in which
    they were supplied.
    """
    return sorted(transactions, key=lambda transaction: transaction.date)


def select_valid_transactions(transactions: Iterable[Transaction]) -> List[Transaction]:
    """
    Drop malformed transactions (unknown type, negative amount, no date).

    Each dropped transaction is logged as a warning; nothing is raised.
    """
    valid = []
    for transaction in transactions:
        if transaction.is_well_formed:
            valid.append(transaction)
            continue
        log_action(
            logger, "warning", "Skipping malformed transaction",
            action="select_valid_transactions",
            resource=f"transaction:{transaction.id}",
            extra={
                "transaction_type": getattr(transaction.transaction_type, 'value', transaction.transaction_type),
                "amount": str(transaction.amount),
                "date": transaction.date
            }
        )
    return valid


def project_balances(initial_balance, transactions: Sequence[Transaction]) -> List[Decimal]:
    """
    Running balances for an ascending list of transactions

    Args:
        initial_balance: Balance before the first transaction
        transactions: Transactions already in ascending date order

    Returns:
        One balance per transaction; balance[i] is the balance right after
        transactions[i]
    """
    balance = to_decimal(initial_balance)
    balances = []
    for transaction in transactions:
        balance = apply_transaction(balance, transaction)
        balances.append(balance)
    return balances


def project_ledger(initial_balance, transactions: Iterable[Transaction]) -> List[LedgerEntry]:
    """Order transactions by date and pair each with its running balance"""
    ordered = order_transactions(transactions)
    balances = project_balances(initial_balance, ordered)
    return [LedgerEntry(transaction, balance) for transaction, balance in zip(ordered, balances)]


def final_balance(initial_balance, transactions: Iterable[Transaction]) -> Decimal:
    """Balance after applying every transaction to the initial balance"""
    balance = to_decimal(initial_balance)
    for transaction in transactions:
        balance = apply_transaction(balance, transaction)
    return balance


def verify_ledger(initial_balance, current_balance, transactions: Iterable[Transaction]) -> Decimal:
    """
    Difference between the authoritative balance and the projected one

    Returns:
        current_balance minus the forward projection; Decimal('0') when the
        ledger is consistent
    """
    return to_decimal(current_balance) - final_balance(initial_balance, transactions)
