"""Derivation of the multi-month availability calendar view."""
import calendar
import logging
from datetime import date, datetime
from typing import List, Optional, Set

from processor.models import CalendarView, DayCell, MonthGrid
from storage.availability_store import RecordUnavailableError

logger = logging.getLogger(__name__)

NO_DATA_MESSAGE = (
    "No availability loaded yet. Add the Airbnb iCal URL in data/config.json "
    "and run the calendar sync."
)
NOT_FOUND_MESSAGE = (
    "Availability not found. Add the Airbnb iCal URL in data/config.json "
    "and run the calendar sync."
)


class CalendarRenderer:
    """Builds CalendarView objects from persisted availability records."""

    DEFAULT_MONTHS = 6

    def __init__(self, source, first_weekday: int = calendar.SUNDAY):
        """
        Initialize the renderer.

        Args:
            source: Record source exposing load(slug) -> AvailabilityRecord
            first_weekday: Weekday of the first grid column, as in the
                calendar module (default: calendar.SUNDAY)
        """
        self.source = source
        self.first_weekday = first_weekday

    def render(self, suite_id: str, reference_date: Optional[date] = None,
               months_to_show: int = DEFAULT_MONTHS) -> CalendarView:
        """
        Render the availability calendar of a suite.

        Args:
            suite_id: Suite slug
            reference_date: Date treated as today (default: date.today())
            months_to_show: Number of months, starting at the reference month

        Returns:
            CalendarView, or a placeholder view when no data is available
        """
        today = _as_date(reference_date or date.today())

        try:
            record = self.source.load(suite_id)
        except RecordUnavailableError as e:
            logger.info(f"No availability record for {suite_id}: {e}")
            return CalendarView(reference_date=today, placeholder=NOT_FOUND_MESSAGE)

        if not record.booked_dates:
            return CalendarView(reference_date=today, placeholder=NO_DATA_MESSAGE)

        return self.build_view(record.booked_dates, today, months_to_show)

    def build_view(self, booked_dates: Set[date], today: date,
                   months_to_show: int = DEFAULT_MONTHS) -> CalendarView:
        """Lay out months_to_show month grids starting at today's month."""
        months = []
        year, month = today.year, today.month
        for _ in range(months_to_show):
            months.append(self._build_month(year, month, booked_dates, today))
            year, month = (year + 1, 1) if month == 12 else (year, month + 1)

        return CalendarView(
            reference_date=today,
            months=months,
            weekday_labels=self.weekday_labels()
        )

    def weekday_labels(self) -> List[str]:
        return [
            calendar.day_abbr[(self.first_weekday + i) % 7] for i in range(7)
        ]

    def _build_month(self, year: int, month: int, booked_dates: Set[date],
                     today: date) -> MonthGrid:
        first_weekday, days_in_month = calendar.monthrange(year, month)
        days = []
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            days.append(DayCell(
                date=day,
                is_booked=day in booked_dates,
                is_today=day == today,
                is_past=day < today
            ))

        return MonthGrid(
            year=year,
            month=month,
            title=f"{calendar.month_name[month]} {year}",
            leading_blanks=(first_weekday - self.first_weekday) % 7,
            days=days
        )


def _as_date(value) -> date:
    # datetime is a date subclass; drop the time of day
    if isinstance(value, datetime):
        return value.date()
    return value
