"""Data models for feed synchronization and calendar rendering."""
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Set


@dataclass
class FeedSuite:
    """One suite entry of the booking feed configuration."""
    slug: str
    name: str
    ical_url: str


@dataclass
class BookingFeedConfig:
    """Mapping of suite slug to its feed settings."""
    suites: Dict[str, FeedSuite] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.suites)

    def __iter__(self):
        return iter(self.suites.values())


@dataclass
class CalendarEvent:
    """All-day event span parsed from a feed; end date is exclusive."""
    start_date: date
    end_date_exclusive: date


@dataclass
class AvailabilityRecord:
    """Persisted set of booked dates for a single suite."""
    booked_dates: Set[date] = field(default_factory=set)
    note: Optional[str] = None

    def sorted_iso_dates(self) -> List[str]:
        return [d.isoformat() for d in sorted(self.booked_dates)]


@dataclass
class SuiteSyncOutcome:
    """Result of synchronizing one suite."""
    slug: str
    name: str
    status: str
    booked_days: int = 0
    error: Optional[str] = None


@dataclass
class SyncResult:
    """Result of a full synchronization run."""
    synced: int
    skipped: int
    failed: int
    outcomes: List[SuiteSyncOutcome]

    @property
    def errors(self) -> List[str]:
        return [
            f"{outcome.name} ({outcome.slug}): {outcome.error}"
            for outcome in self.outcomes
            if outcome.status == 'failed'
        ]


@dataclass
class DayCell:
    """A single day of a month grid."""
    date: date
    is_booked: bool
    is_today: bool
    is_past: bool


@dataclass
class MonthGrid:
    """A month of day cells preceded by blank padding cells."""
    year: int
    month: int
    title: str
    leading_blanks: int
    days: List[DayCell]

    @property
    def cells(self) -> List[Optional[DayCell]]:
        """Padding cells (None) followed by one cell per day."""
        return [None] * self.leading_blanks + list(self.days)


@dataclass
class CalendarView:
    """Derived multi-month view, or a placeholder when no data exists."""
    reference_date: date
    months: List[MonthGrid] = field(default_factory=list)
    weekday_labels: List[str] = field(default_factory=list)
    placeholder: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return self.placeholder is None
