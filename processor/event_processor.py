"""Event normalizer turning Action Network events into calendar entries."""
import hashlib
import logging
from datetime import datetime, timedelta
from typing import Iterable, List

from processor.exceptions import EventNormalizationError
from processor.models import NormalizedEvent, RawEvent

logger = logging.getLogger(__name__)


class EventNormalizer:
    """Repairs missing upstream fields and projects events for the calendar."""

    DEFAULT_DURATION = timedelta(hours=2)
    UID_DOMAIN = 'actionnetwork.org'

    def normalize_events(self, raw_events: Iterable[RawEvent]) -> List[NormalizedEvent]:
        """
        Normalize a sequence of raw events, preserving order.

        Args:
            raw_events: Events decoded from the upstream feeds

        Returns:
            List of NormalizedEvent objects

        Raises:
            EventNormalizationError: On the first event that cannot be normalized
        """
        normalized = [self.normalize(event) for event in raw_events]
        logger.info(f"Normalized {len(normalized)} events")
        return normalized

    def normalize(self, event: RawEvent) -> NormalizedEvent:
        """
        Normalize a single event.

        A missing end time is set to two hours after the start time.

        Args:
            event: Raw event

        Returns:
            NormalizedEvent object

        Raises:
            EventNormalizationError: If the event has no location, or its
                end time is not after its start time
        """
        if event.location is None:
            logger.warning(f"Event '{event.title}' has no location")
            raise EventNormalizationError(event.title, "missing location")

        end = event.end_date
        if end is None:
            end = event.start_date + self.DEFAULT_DURATION
        elif end <= event.start_date:
            raise EventNormalizationError(
                event.title,
                f"end time {end.isoformat()} is not after start time "
                f"{event.start_date.isoformat()}"
            )

        return NormalizedEvent(
            uid=self.generate_uid(event),
            title=event.title,
            start=event.start_date,
            end=end,
            description=event.description,
            venue=event.location.venue,
            url=event.browser_url
        )

    def generate_uid(self, event: RawEvent) -> str:
        """
        Build a stable calendar UID for an event.

        Uses the first upstream identifier (``action_network:<uuid>``) when
        present, otherwise a SHA256 hash of title + start time.
        """
        if event.identifiers:
            return f"{event.identifiers[0]}@{self.UID_DOMAIN}"

        return f"{self._hash_event(event.title, event.start_date)}@{self.UID_DOMAIN}"

    @staticmethod
    def _hash_event(title: str, start: datetime) -> str:
        composite = f"{title}|{start.isoformat()}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()
