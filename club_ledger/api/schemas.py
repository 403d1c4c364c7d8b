"""
Pydantic schemas for API requests and responses
"""

import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..accounts import Account
from ..ledger import LedgerEntry
from ..transactions import Transaction


class CreateAccountRequest(BaseModel):
    club_id: str
    label: str = Field(..., description="Display name, e.g. bank and branch")
    initial_balance: str = Field("0", description="Decimal amount as string")


class CreateTransactionRequest(BaseModel):
    account_id: str
    transaction_type: str = Field(..., description="income or expense")
    amount: str = Field(..., description="Non-negative decimal amount as string")
    date: datetime.date
    description: str = ""
    counterparty: str = ""
    status: str = Field("completed", description="completed, pending or cancelled")
    payment_method: Optional[str] = Field(None, description="pix, cash, transfer, credit_card or debit_card")


class UpdateTransactionRequest(BaseModel):
    account_id: Optional[str] = None
    transaction_type: Optional[str] = None
    amount: Optional[str] = None
    date: Optional[datetime.date] = None
    description: Optional[str] = None
    counterparty: Optional[str] = None
    status: Optional[str] = None
    payment_method: Optional[str] = None


def account_to_response(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "club_id": account.club_id,
        "label": account.label,
        "initial_balance": str(account.initial_balance),
        "current_balance": str(account.current_balance),
        "created_at": account.created_at.isoformat()
    }


def transaction_to_response(transaction: Transaction) -> Dict[str, Any]:
    return {
        "id": transaction.id,
        "account_id": transaction.account_id,
        "transaction_type": transaction.transaction_type.value,
        "amount": str(transaction.amount),
        "date": transaction.date.isoformat(),
        "description": transaction.description,
        "counterparty": transaction.counterparty,
        "status": transaction.status.value,
        "payment_method": transaction.payment_method.value if transaction.payment_method else None
    }


def line_to_response(entry: LedgerEntry) -> Dict[str, Any]:
    return {
        "transaction": transaction_to_response(entry.transaction),
        "balance_after": str(entry.balance_after)
    }
