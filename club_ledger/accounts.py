"""
Bank Account Module

Club bank accounts with an opening (initial) balance and the authoritative
current balance that the transaction store keeps up to date on every write.
"""

from decimal import Decimal, InvalidOperation
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import uuid

from .storage import StorageInterface, StorageRecord
from .audit import AuditTrail, AuditEventType
from .errors import UnknownAccountError
from .logging_config import get_logger, log_action


def to_decimal(value: Any) -> Decimal:
    """Convert a monetary value to Decimal without passing through float"""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid monetary value: {value!r}") from e


@dataclass
class Account(StorageRecord):
    """
    Bank account owned by a club
    """
    club_id: str
    label: str
    initial_balance: Decimal
    current_balance: Optional[Decimal] = None  # Authoritative, maintained by the store

    def __post_init__(self):
        self.initial_balance = to_decimal(self.initial_balance)
        if self.current_balance is None:
            self.current_balance = self.initial_balance
        else:
            self.current_balance = to_decimal(self.current_balance)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['initial_balance'] = str(self.initial_balance)
        result['current_balance'] = str(self.current_balance)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            club_id=data['club_id'],
            label=data['label'],
            initial_balance=Decimal(data['initial_balance']),
            current_balance=Decimal(data['current_balance'])
        )


class AccountManager:
    """
    Manages club bank accounts and their authoritative current balance
    """

    def __init__(self, storage: StorageInterface, audit_trail: AuditTrail):
        self.storage = storage
        self.audit_trail = audit_trail
        self.table_name = "bank_accounts"
        self.logger = get_logger("club_ledger.accounts")

    def create_account(self, club_id: str, label: str, initial_balance: Any = Decimal('0')) -> Account:
        """
        Create a new bank account

        Args:
            club_id: Owning club
            label: Display name, e.g. "Bank - Branch 0001"
            initial_balance: Opening balance (may be negative)

        Returns:
            Created Account with current_balance equal to initial_balance
        """
        now = datetime.now(timezone.utc)
        account = Account(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            club_id=club_id,
            label=label,
            initial_balance=to_decimal(initial_balance)
        )
        self._save_account(account)

        self.audit_trail.log_event(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account.id,
            metadata={
                "club_id": club_id,
                "label": label,
                "initial_balance": account.initial_balance
            }
        )
        log_action(
            self.logger, "info", "Bank account created",
            action="create_account", resource=f"account:{account.id}",
            extra={"club_id": club_id, "initial_balance": str(account.initial_balance)}
        )
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        data = self.storage.load(self.table_name, account_id)
        if data:
            return Account.from_dict(data)
        return None

    def require_account(self, account_id: str) -> Account:
        """Get account by ID or raise UnknownAccountError"""
        account = self.get_account(account_id)
        if account is None:
            raise UnknownAccountError(account_id)
        return account

    def list_club_accounts(self, club_id: str) -> List[Account]:
        """All accounts of a club ordered by label"""
        accounts = [Account.from_dict(data) for data in self.storage.find(self.table_name, {"club_id": club_id})]
        accounts.sort(key=lambda account: account.label)
        return accounts

    def apply_balance_delta(self, account_id: str, delta: Decimal, reason: str) -> Account:
        """
        Move the authoritative current balance by a signed amount

        Args:
            account_id: Account to update
            delta: Signed amount added to current_balance
            reason: Why the balance moved (stored in the audit trail)
        """
        account = self.require_account(account_id)
        old_balance = account.current_balance
        account.current_balance = old_balance + delta
        account.updated_at = datetime.now(timezone.utc)
        self._save_account(account)

        self.audit_trail.log_event(
            event_type=AuditEventType.ACCOUNT_BALANCE_UPDATED,
            entity_type="account",
            entity_id=account.id,
            metadata={
                "old_balance": old_balance,
                "new_balance": account.current_balance,
                "delta": delta,
                "reason": reason
            }
        )
        return account

    def _save_account(self, account: Account) -> None:
        self.storage.save(self.table_name, account.id, account.to_dict())
