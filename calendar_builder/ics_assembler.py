"""Assembly of normalized events into an iCalendar document."""
import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

from icalendar import Calendar, Event, vText

from processor.models import NormalizedEvent

logger = logging.getLogger(__name__)

ICS_PRODID = "-//Action Network iCal Feed//EN"


class CalendarAssembler:
    """Builds the in-memory calendar for a set of normalized events."""

    def __init__(self, prodid: str = ICS_PRODID):
        self.prodid = prodid

    def assemble(
        self,
        name: str,
        events: Iterable[NormalizedEvent],
        stamp: Optional[datetime] = None
    ) -> Calendar:
        """
        Create a calendar with one VEVENT per normalized event.

        Args:
            name: Calendar display name
            events: Normalized events, written in the given order
            stamp: DTSTAMP for every event (default: now, UTC)

        Returns:
            icalendar Calendar ready for serialization
        """
        stamp = stamp or datetime.now(timezone.utc)

        cal = Calendar()
        cal.add("PRODID", self.prodid)
        cal.add("VERSION", "2.0")
        cal.add("CALSCALE", "GREGORIAN")
        cal.add("METHOD", "PUBLISH")
        cal.add("NAME", vText(name))
        cal.add("X-WR-CALNAME", vText(name))

        count = 0
        for event in events:
            cal.add_component(self._create_event(event, stamp))
            count += 1

        logger.info(f"Assembled calendar '{name}' with {count} events")
        return cal

    def _create_event(self, event: NormalizedEvent, stamp: datetime) -> Event:
        ve = Event()
        ve.add("UID", event.uid)
        ve.add("DTSTAMP", stamp)
        ve.add("DTSTART", event.start.astimezone(timezone.utc))
        ve.add("DTEND", event.end.astimezone(timezone.utc))
        ve.add("SUMMARY", vText(event.title))

        if event.description:
            ve.add("DESCRIPTION", vText(event.description))
        if event.venue:
            ve.add("LOCATION", vText(event.venue))
        if event.url:
            ve.add("URL", event.url)

        return ve

    @staticmethod
    def serialize(cal: Calendar) -> bytes:
        """Encode a calendar in the iCalendar wire format."""
        return cal.to_ical()
