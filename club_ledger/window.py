"""
Statement Date Windows

Inclusive calendar-date ranges used to select which ledger entries appear
in a statement.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Union

from .errors import InvalidWindowError
from .ledger import LedgerEntry
from .transactions import to_calendar_date


DateLike = Union[date, datetime, str]


@dataclass(frozen=True)
class DateWindow:
    """
    Inclusive date range; a missing bound is unbounded on that side

    Raises:
        InvalidWindowError: If start_date falls after end_date
    """
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def __post_init__(self):
        # Bounds compare at calendar-date granularity
        if self.start_date is not None:
            object.__setattr__(self, 'start_date', to_calendar_date(self.start_date))
        if self.end_date is not None:
            object.__setattr__(self, 'end_date', to_calendar_date(self.end_date))

        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidWindowError(
                f"Window start {self.start_date.isoformat()} is after end {self.end_date.isoformat()}"
            )

    @property
    def is_bounded(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    def contains(self, value: DateLike) -> bool:
        day = to_calendar_date(value)
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        return True

    def to_dict(self) -> dict:
        return {
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None
        }


def filter_window(entries: Iterable[LedgerEntry], window: Optional[DateWindow]) -> List[LedgerEntry]:
    """
    Entries whose transaction date lies inside the window

    Order is preserved and the input is not modified. ``window=None`` keeps
    every entry.
    """
    if window is None or not window.is_bounded:
        return list(entries)
    return [entry for entry in entries if window.contains(entry[0].date)]
