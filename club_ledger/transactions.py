"""
Transaction Module

Income and expense transactions of club bank accounts, and the transaction
store that persists them. Every write moves the owning account's
authoritative current balance by the transaction's signed effect, so the
stored current balance always equals the initial balance plus all
transactions.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, date, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
from enum import Enum
import uuid

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .accounts import Account, AccountManager
from .errors import MalformedTransactionError, TransactionNotFoundError
from .logging_config import get_logger, log_action


class TransactionType(Enum):
    """Direction of a transaction"""
    INCOME = "income"
    EXPENSE = "expense"

    @property
    def sign(self) -> Decimal:
        """+1 for income, -1 for expense"""
        return Decimal('1') if self is TransactionType.INCOME else Decimal('-1')


class TransactionStatus(Enum):
    """Status of a transaction; does not gate balance computation by default"""
    COMPLETED = "completed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    PIX = "pix"
    CASH = "cash"
    TRANSFER = "transfer"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"


def to_calendar_date(value: Union[date, datetime, str]) -> date:
    """Calendar date of a date, datetime or ISO string (time of day dropped)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Cannot interpret {value!r} as a date")


@dataclass
class Transaction(StorageRecord):
    """
    Income or expense on one bank account
    """
    account_id: str
    transaction_type: TransactionType
    amount: Decimal
    date: date
    description: str = ""
    counterparty: str = ""
    status: TransactionStatus = TransactionStatus.COMPLETED
    payment_method: Optional[PaymentMethod] = None

    def __post_init__(self):
        # Unknown type strings are kept as-is; the ledger reports and skips them
        if isinstance(self.transaction_type, str):
            try:
                self.transaction_type = TransactionType(self.transaction_type)
            except ValueError:
                pass

        if isinstance(self.status, str):
            self.status = TransactionStatus(self.status)

        if isinstance(self.payment_method, str):
            self.payment_method = PaymentMethod(self.payment_method)

        if not isinstance(self.amount, Decimal):
            try:
                self.amount = Decimal(str(self.amount))
            except InvalidOperation as e:
                raise MalformedTransactionError(f"Invalid amount {self.amount!r}") from e

        if self.date is not None:
            self.date = to_calendar_date(self.date)

    @property
    def is_well_formed(self) -> bool:
        """Known type, non-negative finite amount and a date"""
        return (
            isinstance(self.transaction_type, TransactionType)
            and self.amount.is_finite()
            and self.amount >= Decimal('0')
            and self.date is not None
        )

    @property
    def signed_amount(self) -> Decimal:
        """Effect on the account balance: +amount for income, -amount for expense"""
        return self.transaction_type.sign * self.amount

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['transaction_type'] = getattr(self.transaction_type, 'value', self.transaction_type)
        result['amount'] = str(self.amount)
        result['date'] = self.date.isoformat()
        result['status'] = self.status.value
        result['payment_method'] = self.payment_method.value if self.payment_method else None
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Transaction':
        """
        Rebuild a transaction from a stored record

        Raises:
            MalformedTransactionError: If the record cannot describe a valid transaction
        """
        try:
            transaction = cls(
                id=data['id'],
                created_at=datetime.fromisoformat(data['created_at']),
                updated_at=datetime.fromisoformat(data['updated_at']),
                account_id=data['account_id'],
                transaction_type=data['transaction_type'],
                amount=data['amount'],
                date=data['date'],
                description=data.get('description') or "",
                counterparty=data.get('counterparty') or "",
                status=data.get('status') or TransactionStatus.COMPLETED.value,
                payment_method=data.get('payment_method')
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedTransactionError(
                f"Unreadable transaction record {data.get('id')!r}: {e}"
            ) from e

        if not transaction.is_well_formed:
            raise MalformedTransactionError(
                f"Transaction {transaction.id} has type {transaction.transaction_type!r} "
                f"and amount {transaction.amount}"
            )
        return transaction


class TransactionStore:
    """
    Persists transactions and keeps each account's current balance in step
    """

    def __init__(
        self,
        storage: StorageInterface,
        account_manager: AccountManager,
        audit_trail: AuditTrail
    ):
        self.storage = storage
        self.account_manager = account_manager
        self.audit_trail = audit_trail
        self.table_name = "transactions"
        self.logger = get_logger("club_ledger.transactions")

    def get_account(self, account_id: str) -> Optional[Account]:
        """Account metadata (initial and current balance), or None"""
        return self.account_manager.get_account(account_id)

    def list_transactions(self, account_id: str) -> List[Transaction]:
        """
        All transactions of an account in store order (not date order)

        Malformed stored records are logged and skipped.
        """
        transactions = []
        for data in self.storage.find(self.table_name, {"account_id": account_id}):
            try:
                transactions.append(Transaction.from_dict(data))
            except MalformedTransactionError as e:
                log_action(
                    self.logger, "warning", f"Skipping malformed transaction record: {e}",
                    action="list_transactions", resource=f"account:{account_id}",
                    extra={"record_id": data.get('id')}
                )
        return transactions

    def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """
        Transaction by ID, or None

        Raises:
            MalformedTransactionError: If the stored record no longer decodes
        """
        data = self.storage.load(self.table_name, transaction_id)
        if data:
            return Transaction.from_dict(data)
        return None

    def require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    def record_transaction(
        self,
        account_id: str,
        transaction_type: Union[TransactionType, str],
        amount: Any,
        transaction_date: Union[date, datetime, str],
        description: str = "",
        counterparty: str = "",
        status: Union[TransactionStatus, str] = TransactionStatus.COMPLETED,
        payment_method: Optional[Union[PaymentMethod, str]] = None
    ) -> Transaction:
        """
        Record a new transaction and apply it to the account's current balance

        Args:
            account_id: Owning bank account
            transaction_type: income or expense
            amount: Non-negative amount
            transaction_date: Calendar date of the transaction
            description: Free text
            counterparty: Payer or beneficiary
            status: completed, pending or cancelled
            payment_method: Optional payment method

        Returns:
            The stored Transaction

        Raises:
            UnknownAccountError: If the account does not exist
            MalformedTransactionError: If type or amount are invalid
        """
        self.account_manager.require_account(account_id)

        now = datetime.now(timezone.utc)
        transaction = Transaction(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            date=transaction_date,
            description=description,
            counterparty=counterparty,
            status=status,
            payment_method=payment_method
        )
        self._validate(transaction)

        with self.storage.atomic():
            self._save_transaction(transaction)
            self.account_manager.apply_balance_delta(
                account_id, transaction.signed_amount, f"transaction {transaction.id} recorded"
            )

        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction.id,
            metadata=self._audit_metadata(transaction)
        )
        log_action(
            self.logger, "info", f"Transaction recorded: {transaction.transaction_type.value}",
            action="record_transaction", resource=f"transaction:{transaction.id}",
            extra=self._audit_metadata(transaction)
        )
        return transaction

    def update_transaction(self, transaction_id: str, **changes: Any) -> Transaction:
        """
        Change fields of a stored transaction

        The old effect is reverted on the old account and the new effect
        applied on the (possibly different) new account.

        Accepted keys: account_id, transaction_type, amount, date,
        description, counterparty, status, payment_method. Only payment_method,
        description and counterparty may be set to None.
        """
        allowed = {
            'account_id', 'transaction_type', 'amount', 'date',
            'description', 'counterparty', 'status', 'payment_method'
        }
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Unknown transaction fields: {sorted(unknown)}")
        nulls = {'account_id', 'transaction_type', 'amount', 'date', 'status'} & {
            key for key, value in changes.items() if value is None
        }
        if nulls:
            raise MalformedTransactionError(f"Fields cannot be cleared: {sorted(nulls)}")

        original = self.require_transaction(transaction_id)
        data = original.to_dict()
        for key, value in changes.items():
            data[key] = getattr(value, 'value', value)
        data['updated_at'] = datetime.now(timezone.utc).isoformat()
        if isinstance(data['date'], (date, datetime)):
            data['date'] = to_calendar_date(data['date']).isoformat()
        if not isinstance(data['amount'], str):
            data['amount'] = str(data['amount'])

        updated = Transaction.from_dict(data)
        self.account_manager.require_account(updated.account_id)

        with self.storage.atomic():
            self._save_transaction(updated)
            self.account_manager.apply_balance_delta(
                original.account_id, -original.signed_amount, f"transaction {transaction_id} updated"
            )
            self.account_manager.apply_balance_delta(
                updated.account_id, updated.signed_amount, f"transaction {transaction_id} updated"
            )

        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            metadata={
                "before": self._audit_metadata(original),
                "after": self._audit_metadata(updated)
            }
        )
        log_action(
            self.logger, "info", "Transaction updated",
            action="update_transaction", resource=f"transaction:{transaction_id}",
            extra={"changed": sorted(changes)}
        )
        return updated

    def delete_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """
        Delete a transaction and revert its effect on the account balance

        A stored record that no longer decodes is removed without touching
        any balance; None is returned in that case.
        """
        data = self.storage.load(self.table_name, transaction_id)
        if not data:
            raise TransactionNotFoundError(transaction_id)
        try:
            transaction = Transaction.from_dict(data)
        except MalformedTransactionError as e:
            self._delete_malformed(transaction_id, data, e)
            return None

        with self.storage.atomic():
            self.storage.delete(self.table_name, transaction_id)
            self.account_manager.apply_balance_delta(
                transaction.account_id, -transaction.signed_amount, f"transaction {transaction_id} deleted"
            )

        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            metadata=self._audit_metadata(transaction)
        )
        log_action(
            self.logger, "info", "Transaction deleted",
            action="delete_transaction", resource=f"transaction:{transaction_id}"
        )
        return transaction

    def _delete_malformed(self, transaction_id: str, data: Dict[str, Any],
                          error: MalformedTransactionError) -> None:
        self.storage.delete(self.table_name, transaction_id)
        self.audit_trail.log_event(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            metadata={"malformed": True, "record": data}
        )
        log_action(
            self.logger, "warning", f"Deleted malformed transaction record without balance change: {error}",
            action="delete_transaction", resource=f"transaction:{transaction_id}",
            extra={"account_id": data.get('account_id')}
        )

    def _validate(self, transaction: Transaction) -> None:
        if not isinstance(transaction.transaction_type, TransactionType):
            raise MalformedTransactionError(
                f"Unknown transaction type: {transaction.transaction_type!r}"
            )
        if not transaction.is_well_formed:
            raise MalformedTransactionError(
                f"Transaction needs a non-negative amount and a date, "
                f"got amount={transaction.amount} date={transaction.date}"
            )

    def _save_transaction(self, transaction: Transaction) -> None:
        self.storage.save(self.table_name, transaction.id, transaction.to_dict())

    @staticmethod
    def _audit_metadata(transaction: Transaction) -> Dict[str, Any]:
        return {
            "account_id": transaction.account_id,
            "transaction_type": transaction.transaction_type.value,
            "amount": str(transaction.amount),
            "date": transaction.date.isoformat(),
            "status": transaction.status.value
        }
