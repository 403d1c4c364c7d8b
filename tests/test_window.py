"""
Tests for statement date windows
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from club_ledger.errors import InvalidWindowError
from club_ledger.ledger import LedgerEntry
from club_ledger.transactions import Transaction, TransactionType
from club_ledger.window import DateWindow, filter_window


def make_entry(txn_id, day, balance):
    now = datetime.now(timezone.utc)
    txn = Transaction(
        id=txn_id, created_at=now, updated_at=now, account_id="ACC001",
        transaction_type=TransactionType.INCOME, amount=Decimal('1'), date=day
    )
    return LedgerEntry(txn, Decimal(balance))


@pytest.fixture
def entries():
    return [
        make_entry("T05", date(2024, 1, 5), "1200"),
        make_entry("T10", date(2024, 1, 10), "1150"),
        make_entry("T20", date(2024, 1, 20), "1450"),
    ]


class TestDateWindow:
    """Test window construction and membership"""

    def test_bounds_inclusive(self):
        """Both boundary dates are inside the window"""
        window = DateWindow(date(2024, 1, 5), date(2024, 1, 20))
        assert window.contains(date(2024, 1, 5))
        assert window.contains(date(2024, 1, 20))
        assert not window.contains(date(2024, 1, 4))
        assert not window.contains(date(2024, 1, 21))

    def test_single_day_window(self):
        """start == end is a valid one-day window"""
        window = DateWindow(date(2024, 1, 10), date(2024, 1, 10))
        assert window.contains(date(2024, 1, 10))

    def test_start_after_end_rejected(self):
        """Inverted bounds are rejected on construction"""
        with pytest.raises(InvalidWindowError, match="after end"):
            DateWindow(date(2024, 2, 1), date(2024, 1, 1))

    def test_invalid_window_is_value_error(self):
        """InvalidWindowError is still a ValueError"""
        with pytest.raises(ValueError):
            DateWindow(date(2024, 2, 1), date(2024, 1, 1))

    def test_open_bounds(self):
        """Missing bounds are unbounded"""
        assert DateWindow(start_date=date(2024, 1, 10)).contains(date(2099, 1, 1))
        assert DateWindow(end_date=date(2024, 1, 10)).contains(date(1990, 1, 1))
        assert not DateWindow().is_bounded
        assert DateWindow().contains(date(2024, 1, 1))

    def test_datetimes_truncated(self):
        """Bounds and values compare by calendar date only"""
        window = DateWindow(datetime(2024, 1, 5, 18, 30), datetime(2024, 1, 20, 6, 0))
        assert window.start_date == date(2024, 1, 5)
        assert window.contains(datetime(2024, 1, 20, 23, 59))
        assert window.contains(datetime(2024, 1, 5, 0, 1))

    def test_to_dict(self):
        """Effective bounds serialise as ISO dates"""
        assert DateWindow(date(2024, 1, 8), None).to_dict() == {
            "start_date": "2024-01-08", "end_date": None
        }


class TestFilterWindow:
    """Test filtering ledger entries"""

    def test_filters_inside_window(self, entries):
        """Only entries within the bounds are kept"""
        result = filter_window(entries, DateWindow(date(2024, 1, 8), date(2024, 1, 31)))
        assert [e.transaction.id for e in result] == ["T10", "T20"]

    def test_boundary_dates_included(self, entries):
        """Entries dated exactly on either bound are kept"""
        result = filter_window(entries, DateWindow(date(2024, 1, 5), date(2024, 1, 10)))
        assert [e.transaction.id for e in result] == ["T05", "T10"]

    def test_no_matches_is_empty(self, entries):
        """An empty window gives an empty list, not an error"""
        assert filter_window(entries, DateWindow(date(2023, 1, 1), date(2023, 12, 31))) == []

    def test_none_keeps_everything(self, entries):
        """No window keeps every entry"""
        assert filter_window(entries, None) == entries

    def test_balances_untouched(self, entries):
        """Filtering neither reorders nor changes balances"""
        snapshot = list(entries)
        result = filter_window(entries, DateWindow(start_date=date(2024, 1, 6)))
        assert [e.balance_after for e in result] == [Decimal('1150'), Decimal('1450')]
        assert entries == snapshot

    def test_accepts_plain_pairs(self, entries):
        """(transaction, balance) tuples are accepted too"""
        pairs = [(e.transaction, e.balance_after) for e in entries]
        result = filter_window(pairs, DateWindow(end_date=date(2024, 1, 5)))
        assert result == [pairs[0]]
