"""
Account Statement Assembly

Turns an account and its transactions into a newest-first statement with a
running balance on every line:

    project (full ledger) -> filter (date window) -> reconcile (backward walk)

``build_statement`` is a pure function over its inputs and is recomputed in
full on every call; there is no cached or incremental path. The services
below only fetch the inputs (synchronously or by awaiting an async storage
port) and hand them to it.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Union

from .accounts import Account, AccountManager, to_decimal
from .async_storage import AsyncStorageInterface
from .audit import AuditTrail, AuditEventType
from .config import ClubLedgerConfig, get_config
from .errors import UnknownAccountError, MalformedTransactionError
from .ledger import LedgerEntry, project_ledger, select_valid_transactions
from .reconciliation import reconcile_window
from .transactions import Transaction, TransactionStatus, TransactionStore
from .window import DateWindow, filter_window
from .logging_config import get_logger, log_action


logger = get_logger("club_ledger.statement")


@dataclass(frozen=True)
class StatementRequest:
    """Command: statement of one account, optionally limited to a date window"""
    account_id: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def window(self) -> DateWindow:
        """Validated window; raises InvalidWindowError when start > end"""
        return DateWindow(self.start_date, self.end_date)


@dataclass(frozen=True)
class Statement:
    """Result: newest-first statement lines and the balances they rest on"""
    account_id: str
    window: DateWindow
    lines: List[LedgerEntry] = field(default_factory=list)
    initial_balance: Decimal = Decimal('0')
    current_balance: Decimal = Decimal('0')
    projected_balance: Decimal = Decimal('0')
    anchor_balance: Decimal = Decimal('0')

    @property
    def drift(self) -> Decimal:
        return self.current_balance - self.projected_balance

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)


def _status_values(statuses: Iterable[Union[TransactionStatus, str]]) -> set:
    return {getattr(status, 'value', status) for status in statuses}


def build_statement(
    account: Optional[Account],
    transactions: Iterable[Transaction],
    window: Optional[DateWindow] = None,
    excluded_statuses: Sequence[Union[TransactionStatus, str]] = (),
    drift_tolerance=Decimal('0')
) -> Statement:
    """
    Assemble the statement of one account

    Args:
        account: Account metadata (initial and current balance)
        transactions: Every transaction of the account, in any order;
            same-date transactions keep the order given here
        window: Inclusive date window; None shows the whole ledger
        excluded_statuses: Statuses left out of the ledger entirely
            (default: none, every status counts)
        drift_tolerance: Drift tolerated before a warning is logged

    Returns:
        Statement with lines newest first

    Raises:
        UnknownAccountError: If account metadata is missing
    """
    if account is None:
        raise UnknownAccountError("<missing>")

    window = window or DateWindow()
    excluded = _status_values(excluded_statuses)

    valid = select_valid_transactions(transactions)
    if excluded:
        valid = [t for t in valid if t.status.value not in excluded]

    ledger = project_ledger(account.initial_balance, valid)
    in_window = filter_window(ledger, window)
    reconciled = reconcile_window(
        ledger,
        in_window,
        current_balance=account.current_balance,
        initial_balance=account.initial_balance,
        drift_tolerance=drift_tolerance,
        account_id=account.id
    )

    return Statement(
        account_id=account.id,
        window=window,
        lines=reconciled.entries,
        initial_balance=to_decimal(account.initial_balance),
        current_balance=reconciled.current_balance,
        projected_balance=reconciled.projected_balance,
        anchor_balance=reconciled.anchor_balance
    )


class StatementService:
    """
    Generates statements from the transaction store
    """

    def __init__(
        self,
        account_manager: AccountManager,
        transaction_store: TransactionStore,
        audit_trail: Optional[AuditTrail] = None,
        config: Optional[ClubLedgerConfig] = None
    ):
        self.account_manager = account_manager
        self.transaction_store = transaction_store
        self.audit_trail = audit_trail
        self.config = config or get_config()

    def generate(self, request: StatementRequest) -> Statement:
        """
        Fetch the account and its transactions and build the statement

        Raises:
            InvalidWindowError: Before anything is fetched, if start > end
            UnknownAccountError: If the account does not exist
        """
        window = request.window()
        account = self.account_manager.require_account(request.account_id)
        transactions = self.transaction_store.list_transactions(account.id)

        statement = build_statement(
            account,
            transactions,
            window=window,
            excluded_statuses=self.config.get_excluded_statuses(),
            drift_tolerance=self.config.get_drift_tolerance()
        )
        self._record_drift(statement)

        log_action(
            logger, "debug", "Statement generated",
            action="generate_statement", resource=f"account:{account.id}",
            extra={"lines": len(statement), **window.to_dict()}
        )
        return statement

    def _record_drift(self, statement: Statement) -> None:
        """Audit drift beyond tolerance once per distinct drift value"""
        if self.audit_trail is None:
            return
        if abs(statement.drift) <= self.config.get_drift_tolerance():
            return

        previous = self.audit_trail.get_events_for_entity("account", statement.account_id)
        drift_events = [e for e in previous if e.event_type is AuditEventType.BALANCE_DRIFT_DETECTED]
        if drift_events and Decimal(drift_events[-1].metadata["drift"]) == statement.drift:
            return

        self.audit_trail.log_event(
            event_type=AuditEventType.BALANCE_DRIFT_DETECTED,
            entity_type="account",
            entity_id=statement.account_id,
            metadata={
                "current_balance": statement.current_balance,
                "projected_balance": statement.projected_balance,
                "drift": statement.drift
            }
        )


class AsyncStatementService:
    """
    Statement generation over an async storage port

    Account and transaction records are awaited first; the synchronous
    engine runs only once both fetches have completed.
    """

    def __init__(
        self,
        storage: AsyncStorageInterface,
        config: Optional[ClubLedgerConfig] = None,
        accounts_table: str = "bank_accounts",
        transactions_table: str = "transactions"
    ):
        self.storage = storage
        self.config = config or get_config()
        self.accounts_table = accounts_table
        self.transactions_table = transactions_table

    async def get_account(self, account_id: str) -> Optional[Account]:
        data = await self.storage.load(self.accounts_table, account_id)
        return Account.from_dict(data) if data else None

    async def list_transactions(self, account_id: str) -> List[Transaction]:
        transactions = []
        for data in await self.storage.find(self.transactions_table, {"account_id": account_id}):
            try:
                transactions.append(Transaction.from_dict(data))
            except MalformedTransactionError as e:
                log_action(
                    logger, "warning", f"Skipping malformed transaction record: {e}",
                    action="list_transactions", resource=f"account:{account_id}",
                    extra={"record_id": data.get('id')}
                )
        return transactions

    async def generate(self, request: StatementRequest) -> Statement:
        window = request.window()
        account = await self.get_account(request.account_id)
        if account is None:
            raise UnknownAccountError(request.account_id)
        transactions = await self.list_transactions(account.id)

        return build_statement(
            account,
            transactions,
            window=window,
            excluded_statuses=self.config.get_excluded_statuses(),
            drift_tolerance=self.config.get_drift_tolerance()
        )
