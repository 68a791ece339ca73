"""Parser turning iCal feed text into all-day booking spans."""
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Set

from icalendar.parser import Contentline, Contentlines
from icalendar.prop import vDDDTypes

from processor.models import CalendarEvent

logger = logging.getLogger(__name__)

OUTSIDE_EVENT = 'outside-event'
INSIDE_EVENT = 'inside-event'


class IcsParser:
    """
    State machine over the VEVENT blocks of an iCal document.

    Only DTSTART and DTEND are read; every other property is ignored and
    recurrence rules are not expanded.
    """

    def parse(self, ics_text: str) -> List[CalendarEvent]:
        """
        Parse feed text into calendar events.

        Args:
            ics_text: Raw iCal document

        Returns:
            List of CalendarEvent objects in document order
        """
        events = []
        state = OUTSIDE_EVENT
        start_value = None
        end_value = None

        for name, value in self._properties(ics_text):
            is_begin = name == 'BEGIN' and value == 'VEVENT'
            is_end = name == 'END' and value == 'VEVENT'

            if state == OUTSIDE_EVENT:
                if is_begin:
                    state = INSIDE_EVENT
                    start_value = end_value = None
                continue

            if is_begin or is_end:
                event = self._build_event(start_value, end_value)
                if event:
                    events.append(event)
                start_value = end_value = None
                if is_end:
                    state = OUTSIDE_EVENT
            elif name == 'DTSTART' and start_value is None:
                start_value = value
            elif name == 'DTEND' and end_value is None:
                end_value = value

        # Unterminated final block
        if state == INSIDE_EVENT:
            event = self._build_event(start_value, end_value)
            if event:
                events.append(event)

        logger.debug(f"Parsed {len(events)} events from feed")
        return events

    @staticmethod
    def _properties(ics_text: str):
        """Yield (NAME, value) pairs of the unfolded content lines."""
        for line in Contentlines.from_ical(ics_text):
            if not line:
                continue
            try:
                name, _params, value = line.parts()
            except ValueError:
                continue
            yield name.upper(), value.strip()

    def _build_event(
        self,
        start_value: Optional[str],
        end_value: Optional[str]
    ) -> Optional[CalendarEvent]:
        start = decode_date(start_value) if start_value else None
        if start is None:
            return None

        end = decode_date(end_value) if end_value else None
        if end is None or end <= start:
            # Single booked day when DTEND is absent or unusable
            try:
                end = start + timedelta(days=1)
            except OverflowError:
                return None

        return CalendarEvent(start_date=start, end_date_exclusive=end)


def decode_date(value: str) -> Optional[date]:
    """
    Decode a DTSTART/DTEND value to a calendar date.

    Time of day is discarded; durations, periods and times are not dates.

    Args:
        value: Property value such as "20250101" or "20250101T150000Z"

    Returns:
        date object, or None if the value is not a date
    """
    try:
        decoded = vDDDTypes.from_ical(value)
    except ValueError:
        return None
    if isinstance(decoded, datetime):
        return decoded.date()
    if isinstance(decoded, date):
        return decoded
    return None


def parse_date_value(line: str) -> Optional[date]:
    """
    Extract the calendar date of a DTSTART/DTEND property line.

    Args:
        line: Property line such as "DTSTART;VALUE=DATE:20250101"

    Returns:
        date object, or None if the value is not a recognized date
    """
    try:
        _name, _params, value = Contentline(line.strip()).parts()
    except ValueError:
        return None
    return decode_date(value.strip())


def expand_booked_dates(events: Iterable[CalendarEvent]) -> Set[date]:
    """
    Enumerate every date covered by the given events.

    Args:
        events: Events whose end dates are exclusive

    Returns:
        Set of booked dates
    """
    booked = set()
    for event in events:
        day = event.start_date
        while day < event.end_date_exclusive:
            booked.add(day)
            day += timedelta(days=1)
    return booked
