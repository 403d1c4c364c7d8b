"""
Test suite for statement generation

Tests the full pipeline from stored transactions to newest-first statement
lines: window filtering, reconciliation against the authoritative balance,
status exclusion and drift auditing.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone
from unittest.mock import Mock

from club_ledger.storage import InMemoryStorage
from club_ledger.audit import AuditTrail, AuditEventType
from club_ledger.accounts import Account, AccountManager
from club_ledger.transactions import (
    Transaction, TransactionStore, TransactionType, TransactionStatus
)
from club_ledger.config import ClubLedgerConfig
from club_ledger.errors import InvalidWindowError, UnknownAccountError
from club_ledger.window import DateWindow
from club_ledger.statement import (
    Statement, StatementRequest, StatementService, build_statement
)


def make_transaction(txn_id, day, transaction_type, amount, status=TransactionStatus.COMPLETED):
    now = datetime.now(timezone.utc)
    return Transaction(
        id=txn_id, created_at=now, updated_at=now, account_id="ACC001",
        transaction_type=transaction_type, amount=Decimal(str(amount)), date=day,
        status=status
    )


def make_account(initial_balance, current_balance):
    now = datetime.now(timezone.utc)
    return Account(
        id="ACC001", created_at=now, updated_at=now, club_id="CLUB001",
        label="Main", initial_balance=Decimal(str(initial_balance)),
        current_balance=Decimal(str(current_balance))
    )


def lines(statement):
    return [(entry.transaction.date, entry.balance_after) for entry in statement]


@pytest.fixture
def scenario():
    """Initial 1000; Jan5 +200, Jan10 -50, Jan20 +300; current 1450"""
    account = make_account(1000, 1450)
    transactions = [
        make_transaction("T10", date(2024, 1, 10), TransactionType.EXPENSE, 50),
        make_transaction("T20", date(2024, 1, 20), TransactionType.INCOME, 300),
        make_transaction("T05", date(2024, 1, 5), TransactionType.INCOME, 200),
    ]
    return account, transactions


class TestBuildStatement:
    """Test the pure statement builder"""

    def test_full_statement(self, scenario):
        """No window shows every line newest first"""
        account, transactions = scenario
        statement = build_statement(account, transactions)
        assert lines(statement) == [
            (date(2024, 1, 20), Decimal('1450')),
            (date(2024, 1, 10), Decimal('1150')),
            (date(2024, 1, 5), Decimal('1200')),
        ]
        assert statement.drift == Decimal('0')

    def test_windowed_statement(self, scenario):
        """Jan8 to Jan31 keeps the ledger balances of the lines it shows"""
        account, transactions = scenario
        statement = build_statement(account, transactions, DateWindow(date(2024, 1, 8), date(2024, 1, 31)))
        assert lines(statement) == [
            (date(2024, 1, 20), Decimal('1450')),
            (date(2024, 1, 10), Decimal('1150')),
        ]

    def test_window_bounds_inclusive(self, scenario):
        """Transactions dated on the bounds are shown"""
        account, transactions = scenario
        statement = build_statement(account, transactions, DateWindow(date(2024, 1, 5), date(2024, 1, 10)))
        assert [line.transaction.id for line in statement] == ["T10", "T05"]

    def test_window_ending_early(self, scenario):
        """A window that stops before Jan20 still shows true balances"""
        account, transactions = scenario
        statement = build_statement(account, transactions, DateWindow(end_date=date(2024, 1, 12)))
        assert lines(statement) == [
            (date(2024, 1, 10), Decimal('1150')),
            (date(2024, 1, 5), Decimal('1200')),
        ]

    def test_empty_window(self, scenario):
        """A window with no transactions is an empty statement, not an error"""
        account, transactions = scenario
        statement = build_statement(account, transactions, DateWindow(date(2023, 1, 1), date(2023, 1, 31)))
        assert statement.is_empty
        assert len(statement) == 0

    def test_no_transactions(self):
        """An account without transactions has an empty statement"""
        statement = build_statement(make_account(250, 250), [])
        assert statement.is_empty
        assert statement.projected_balance == Decimal('250')

    def test_idempotent(self, scenario):
        """Building twice from the same inputs gives the same lines"""
        account, transactions = scenario
        window = DateWindow(date(2024, 1, 8), None)
        assert lines(build_statement(account, transactions, window)) == \
            lines(build_statement(account, transactions, window))

    def test_input_order_irrelevant(self, scenario):
        """Distinct dates make the statement independent of store order"""
        account, transactions = scenario
        assert lines(build_statement(account, transactions)) == \
            lines(build_statement(account, list(reversed(transactions))))

    def test_same_date_order_stable(self):
        """Same-date transactions keep store order and are all shown"""
        account = make_account(0, 5)
        transactions = [
            make_transaction("INC", date(2024, 1, 10), TransactionType.INCOME, 10),
            make_transaction("EXP", date(2024, 1, 10), TransactionType.EXPENSE, 5),
        ]
        first = build_statement(account, transactions)
        second = build_statement(account, transactions)

        assert [line.transaction.id for line in first] == ["INC", "EXP"]
        assert [line.transaction.id for line in second] == ["INC", "EXP"]
        assert first.lines[0].balance_after == Decimal('5')
        assert first.lines[1].balance_after == Decimal('-5')

    def test_unknown_account(self, scenario):
        """Missing account metadata raises UnknownAccountError"""
        _, transactions = scenario
        with pytest.raises(UnknownAccountError):
            build_statement(None, transactions)

    def test_malformed_transactions_skipped(self, scenario):
        """Malformed transactions are dropped from ledger and display"""
        account, transactions = scenario
        transactions = transactions + [
            make_transaction("NEG", date(2024, 1, 15), TransactionType.INCOME, -999),
            make_transaction("ODD", date(2024, 1, 16), "transfer", 999),
        ]
        statement = build_statement(account, transactions)
        assert [line.transaction.id for line in statement] == ["T20", "T10", "T05"]
        assert statement.drift == Decimal('0')

    def test_statuses_counted_by_default(self):
        """Pending and cancelled transactions count unless excluded"""
        account = make_account(0, 30)
        transactions = [
            make_transaction("A", date(2024, 1, 1), TransactionType.INCOME, 10),
            make_transaction("B", date(2024, 1, 2), TransactionType.INCOME, 20, TransactionStatus.PENDING),
        ]
        statement = build_statement(account, transactions)
        assert len(statement) == 2
        assert statement.drift == Decimal('0')

    def test_excluded_statuses(self):
        """Excluded statuses leave the ledger entirely"""
        account = make_account(0, 10)
        transactions = [
            make_transaction("A", date(2024, 1, 1), TransactionType.INCOME, 10),
            make_transaction("B", date(2024, 1, 2), TransactionType.INCOME, 20, TransactionStatus.CANCELLED),
        ]
        statement = build_statement(account, transactions, excluded_statuses=["cancelled"])
        assert lines(statement) == [(date(2024, 1, 1), Decimal('10'))]

    def test_drift_reported(self, scenario):
        """A stale current balance is reported and kept on the top line"""
        account, transactions = scenario
        account.current_balance = Decimal('1460')
        statement = build_statement(account, transactions)
        assert statement.drift == Decimal('10')
        assert statement.lines[0].balance_after == Decimal('1460')

    def test_statement_is_iterable(self, scenario):
        """Statement iterates over its lines"""
        account, transactions = scenario
        statement = build_statement(account, transactions)
        assert isinstance(statement, Statement)
        assert list(statement) == statement.lines


class TestStatementRequest:
    """Test statement requests"""

    def test_inverted_window(self):
        """start after end is rejected when the window is built"""
        request = StatementRequest("ACC001", date(2024, 2, 1), date(2024, 1, 1))
        with pytest.raises(InvalidWindowError):
            request.window()

    def test_open_window(self):
        """No bounds gives an unbounded window"""
        assert not StatementRequest("ACC001").window().is_bounded


class TestStatementService:
    """Test statement generation over the stores"""

    @pytest.fixture
    def storage(self):
        return InMemoryStorage()

    @pytest.fixture
    def audit_trail(self, storage):
        return AuditTrail(storage)

    @pytest.fixture
    def account_manager(self, storage, audit_trail):
        return AccountManager(storage, audit_trail)

    @pytest.fixture
    def transaction_store(self, storage, account_manager, audit_trail):
        return TransactionStore(storage, account_manager, audit_trail)

    @pytest.fixture
    def service(self, account_manager, transaction_store, audit_trail):
        return StatementService(account_manager, transaction_store, audit_trail, ClubLedgerConfig())

    @pytest.fixture
    def account(self, account_manager, transaction_store):
        account = account_manager.create_account("CLUB001", "Main", Decimal('1000'))
        transaction_store.record_transaction(account.id, TransactionType.INCOME, "200", date(2024, 1, 5))
        transaction_store.record_transaction(account.id, TransactionType.EXPENSE, "50", date(2024, 1, 10))
        transaction_store.record_transaction(account.id, TransactionType.INCOME, "300", date(2024, 1, 20))
        return account

    def test_generate(self, service, account):
        """Stored transactions produce the expected statement"""
        statement = service.generate(StatementRequest(account.id))
        assert lines(statement) == [
            (date(2024, 1, 20), Decimal('1450')),
            (date(2024, 1, 10), Decimal('1150')),
            (date(2024, 1, 5), Decimal('1200')),
        ]
        assert statement.current_balance == Decimal('1450')

    def test_generate_windowed(self, service, account):
        """Window bounds on the request are applied"""
        statement = service.generate(StatementRequest(account.id, date(2024, 1, 8), date(2024, 1, 31)))
        assert [line.balance_after for line in statement] == [Decimal('1450'), Decimal('1150')]

    def test_unknown_account(self, service):
        """Unknown accounts raise UnknownAccountError"""
        with pytest.raises(UnknownAccountError):
            service.generate(StatementRequest("missing"))

    def test_invalid_window_checked_before_fetch(self):
        """An inverted window fails without touching the stores"""
        account_manager = Mock()
        transaction_store = Mock()
        service = StatementService(account_manager, transaction_store, config=ClubLedgerConfig())

        with pytest.raises(InvalidWindowError):
            service.generate(StatementRequest("ACC001", date(2024, 2, 1), date(2024, 1, 1)))

        account_manager.require_account.assert_not_called()
        transaction_store.list_transactions.assert_not_called()

    def test_statement_follows_updates(self, service, account, transaction_store):
        """Statements are recomputed after a transaction changes"""
        expense = [t for t in transaction_store.list_transactions(account.id)
                   if t.transaction_type is TransactionType.EXPENSE][0]
        transaction_store.update_transaction(expense.id, amount="150")

        statement = service.generate(StatementRequest(account.id))
        assert [line.balance_after for line in statement] == [
            Decimal('1350'), Decimal('1050'), Decimal('1200')
        ]
        assert statement.drift == Decimal('0')

    def test_drift_audited(self, service, account, account_manager, audit_trail):
        """Drift between stored and projected balance is written to the audit trail"""
        account_manager.apply_balance_delta(account.id, Decimal('7'), "manual correction")

        statement = service.generate(StatementRequest(account.id))
        assert statement.drift == Decimal('7')
        assert statement.lines[0].balance_after == Decimal('1457')

        events = audit_trail.get_events_by_type(AuditEventType.BALANCE_DRIFT_DETECTED)
        assert len(events) == 1
        assert events[0].entity_id == account.id
        assert events[0].metadata["drift"] == "7"

    def test_repeated_reads_audit_drift_once(self, service, account, account_manager, audit_trail):
        """Reading the same drift again adds no event; a new drift value does"""
        account_manager.apply_balance_delta(account.id, Decimal('7'), "manual correction")

        for _ in range(3):
            service.generate(StatementRequest(account.id))
        assert len(audit_trail.get_events_by_type(AuditEventType.BALANCE_DRIFT_DETECTED)) == 1

        account_manager.apply_balance_delta(account.id, Decimal('1'), "manual correction")
        service.generate(StatementRequest(account.id))

        events = audit_trail.get_events_by_type(AuditEventType.BALANCE_DRIFT_DETECTED)
        assert [e.metadata["drift"] for e in events] == ["7", "8"]

    def test_no_drift_no_audit(self, service, account, audit_trail):
        """A consistent ledger records no drift event"""
        service.generate(StatementRequest(account.id))
        assert audit_trail.get_events_by_type(AuditEventType.BALANCE_DRIFT_DETECTED) == []

    def test_configured_exclusions(self, account_manager, transaction_store, audit_trail):
        """excluded_statuses from config are honoured"""
        account = account_manager.create_account("CLUB001", "Petty cash", Decimal('0'))
        transaction_store.record_transaction(account.id, "income", "10", date(2024, 3, 1))
        transaction_store.record_transaction(
            account.id, "expense", "4", date(2024, 3, 2), status=TransactionStatus.CANCELLED
        )
        service = StatementService(
            account_manager, transaction_store, audit_trail,
            ClubLedgerConfig(excluded_statuses="cancelled")
        )

        statement = service.generate(StatementRequest(account.id))
        assert len(statement) == 1
        # The stored balance still includes the cancelled expense
        assert statement.drift == Decimal('-4')
