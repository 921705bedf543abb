# frontend/funnel_dashboard/state.py
# DESIGNER'S NOTE:
# Subscriber table state: the raw collection, the filtered/sorted view derived
# from it, and the selection. The view is always recomputed from the raw
# collection, never from the previous view. Selection is keyed by subscriber
# identity (email + signup time) and only turned into row positions when the
# table is drawn, so re-sorting can never move a tick onto another person.

import datetime
import functools
import threading
from dataclasses import dataclass
from typing import Iterable, Optional

import pandas as pd

from .models import Subscriber

SORT_COLUMNS = {
    "firstName": "first_name",
    "email": "email",
    "timestamp": "timestamp",
    "source": "source",
}
DATE_WINDOWS = ("all", "today", "week", "month")
ASC, DESC = "asc", "desc"


def window_start(window: str, now: Optional[datetime.datetime] = None) -> Optional[datetime.datetime]:
    """
    First instant inside a date window, or None for 'all'.
    today = local midnight, week = midnight - 7 days, month = midnight - 1 calendar month.
    Arithmetic runs on local wall-clock time; the UTC offset is looked up for
    the resulting instant, so DST changes do not shift the boundary.
    """
    now = now or datetime.datetime.now(datetime.timezone.utc)
    if window == "all":
        return None
    midnight = pd.Timestamp(now.astimezone().replace(tzinfo=None)).normalize()
    if window == "today":
        start = midnight
    elif window == "week":
        start = midnight - pd.DateOffset(days=7)
    elif window == "month":
        start = midnight - pd.DateOffset(months=1)
    else:
        raise ValueError(f"Unknown date window: {window}")
    return start.to_pydatetime().astimezone()


def matches_search(record: Subscriber, search_term: str) -> bool:
    if not search_term:
        return True
    term = search_term.casefold()
    return term in record.first_name.casefold() or term in record.email.casefold()


def filter_subscribers(records: Iterable[Subscriber], search_term: str = "", window: str = "all",
                       now: Optional[datetime.datetime] = None) -> list[Subscriber]:
    """Records matching the search term (name or email) and inside the date window."""
    start = window_start(window, now)
    term = (search_term or "").strip()
    return [
        r for r in records
        if matches_search(r, term) and (start is None or r.timestamp >= start)
    ]


def compare_values(a, b) -> int:
    if a is None or b is None:
        return 0
    if isinstance(a, str):
        a, b = a.casefold(), b.casefold()
    if a > b:
        return 1
    if a < b:
        return -1
    return 0


def sort_subscribers(records: list[Subscriber], column: str, direction: str = ASC) -> None:
    """Sorts in place by one column; strings case-folded, timestamps chronological."""
    attr = SORT_COLUMNS[column]
    sign = 1 if direction == ASC else -1

    def compare(x, y):
        return sign * compare_values(getattr(x, attr), getattr(y, attr))

    records.sort(key=functools.cmp_to_key(compare))


@dataclass(frozen=True)
class SortState:
    column: str
    direction: str = ASC

    def toggled(self, column: str) -> "SortState":
        """Same column flips direction; a new column starts ascending."""
        if column not in SORT_COLUMNS:
            raise ValueError(f"Unknown sort column: {column}")
        if column == self.column:
            return SortState(column, DESC if self.direction == ASC else ASC)
        return SortState(column, ASC)


class SelectionTracker:
    """Selected subscribers, by identity key."""

    def __init__(self):
        self._keys: set = set()

    def toggle(self, key) -> bool:
        """Flips one key; returns whether it is now selected."""
        if key in self._keys:
            self._keys.discard(key)
            return False
        self._keys.add(key)
        return True

    def select_all(self, view: Iterable[Subscriber]):
        self._keys = {record.key for record in view}

    def clear(self):
        self._keys.clear()

    def size(self) -> int:
        return len(self._keys)

    def __len__(self):
        return len(self._keys)

    def is_selected(self, record: Subscriber) -> bool:
        return record.key in self._keys

    def retain(self, records: Iterable[Subscriber]):
        """Drops keys that no longer belong to any of the given records."""
        present = {record.key for record in records}
        self._keys &= present

    def resolve(self, view: list[Subscriber]) -> list[int]:
        """Row positions of selected records in the view as it is now."""
        return [i for i, record in enumerate(view) if record.key in self._keys]

    def selected_in(self, records: Iterable[Subscriber]) -> list[Subscriber]:
        return [record for record in records if record.key in self._keys]


class SubscriberTable:
    """The dashboard's subscriber collection, its derived view and its selection."""

    def __init__(self, records: Optional[list[Subscriber]] = None):
        self._lock = threading.RLock()
        self.records: list[Subscriber] = []
        self.view: list[Subscriber] = []
        self.search_term = ""
        self.window = "all"
        self.sort_state: Optional[SortState] = None
        self.selection = SelectionTracker()
        self.is_placeholder = False
        if records:
            self.set_all(records)

    def _recompute(self, now: Optional[datetime.datetime] = None):
        view = filter_subscribers(self.records, self.search_term, self.window, now)
        if self.sort_state is not None:
            sort_subscribers(view, self.sort_state.column, self.sort_state.direction)
        self.view = view
        # Hidden rows are never acted on by bulk actions.
        self.selection.retain(view)

    def set_all(self, records: list[Subscriber], placeholder: bool = False):
        """Replaces the whole collection, e.g. after a load or a reconciling refresh."""
        with self._lock:
            self.records = list(records)
            self.is_placeholder = placeholder
            self._recompute()

    def prepend(self, record: Subscriber):
        """Optimistic local insert; the next refresh is the source of truth."""
        with self._lock:
            self.records.insert(0, record)
            self._recompute()

    def contains_email(self, email: str) -> bool:
        wanted = (email or "").strip().casefold()
        with self._lock:
            return any(r.email.casefold() == wanted for r in self.records)

    def apply_filter(self, search_term: Optional[str] = None, window: Optional[str] = None,
                     now: Optional[datetime.datetime] = None) -> list[Subscriber]:
        with self._lock:
            if search_term is not None:
                self.search_term = search_term
            if window is not None:
                if window not in DATE_WINDOWS:
                    raise ValueError(f"Unknown date window: {window}")
                self.window = window
            self._recompute(now)
            return list(self.view)

    def sort_by(self, column: str) -> SortState:
        with self._lock:
            if self.sort_state is None:
                if column not in SORT_COLUMNS:
                    raise ValueError(f"Unknown sort column: {column}")
                self.sort_state = SortState(column, ASC)
            else:
                self.sort_state = self.sort_state.toggled(column)
            sort_subscribers(self.view, self.sort_state.column, self.sort_state.direction)
            return self.sort_state

    def toggle_row(self, position: int) -> Optional[Subscriber]:
        """Toggles the record currently drawn at `position`; None when out of range."""
        with self._lock:
            if not 0 <= position < len(self.view):
                return None
            record = self.view[position]
            self.selection.toggle(record.key)
            return record

    def select_all_visible(self):
        with self._lock:
            self.selection.select_all(self.view)

    def clear_selection(self):
        with self._lock:
            self.selection.clear()

    def selected_records(self) -> list[Subscriber]:
        with self._lock:
            return self.selection.selected_in(self.view)

    def stats(self, now: Optional[datetime.datetime] = None) -> dict:
        with self._lock:
            start = window_start("today", now)
            return {
                "total": len(self.records),
                "today": sum(1 for r in self.records if r.timestamp >= start),
                "visible": len(self.view),
                "selected": self.selection.size(),
            }
