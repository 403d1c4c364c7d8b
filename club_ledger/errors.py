"""
Ledger Error Types

Domain errors raised by the statement engine and the transaction store.
All derive from ValueError so existing ``except ValueError`` handlers keep working.
"""


class LedgerError(ValueError):
    """Base class for ledger and statement errors"""


class InvalidWindowError(LedgerError):
    """Statement window start date falls after its end date"""


class UnknownAccountError(LedgerError):
    """Account metadata could not be found"""

    def __init__(self, account_id: str):
        super().__init__(f"Account {account_id} not found")
        self.account_id = account_id


class TransactionNotFoundError(LedgerError):
    """Transaction could not be found"""

    def __init__(self, transaction_id: str):
        super().__init__(f"Transaction {transaction_id} not found")
        self.transaction_id = transaction_id


class MalformedTransactionError(LedgerError):
    """Transaction has a negative amount, unknown type or unreadable fields"""
