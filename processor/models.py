"""Data models for Action Network events and calendar output."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from dateutil import parser

from processor.exceptions import EventDecodeError

EVENTS_KEY = 'osdi:events'


def _require_mapping(value: Any, name: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise EventDecodeError(
            f"Expected '{name}' to be an object, got {type(value).__name__}",
            field=name
        )
    return value


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise EventDecodeError(
            f"Expected '{key}' to be a string, got {type(value).__name__}",
            field=key
        )
    return value


def parse_timestamp(value: Any, name: str) -> datetime:
    """
    Parse an upstream ISO 8601 timestamp into an aware datetime.

    Naive timestamps are interpreted as UTC.

    Raises:
        EventDecodeError: If the value is not a parseable timestamp
    """
    if not isinstance(value, str) or not value.strip():
        raise EventDecodeError(f"Missing or empty timestamp '{name}'", field=name)
    try:
        parsed = parser.isoparse(value.strip())
    except (ValueError, OverflowError) as e:
        raise EventDecodeError(
            f"Invalid timestamp for '{name}': {value!r} ({e})", field=name
        ) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class EventLocation:
    """Location sub-record of an Action Network event."""
    venue: Optional[str]

    @classmethod
    def from_dict(cls, data: Any) -> 'EventLocation':
        data = _require_mapping(data, 'location')
        return cls(venue=_optional_str(data, 'venue'))


@dataclass(frozen=True)
class RawEvent:
    """Event as returned by the Action Network events endpoint."""
    title: str
    start_date: datetime
    end_date: Optional[datetime]
    description: Optional[str]
    location: Optional[EventLocation]
    identifiers: List[str] = field(default_factory=list)
    browser_url: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> 'RawEvent':
        """
        Decode one element of the ``osdi:events`` list.

        Args:
            data: JSON object for a single event

        Returns:
            RawEvent instance

        Raises:
            EventDecodeError: If required fields are missing or mistyped
        """
        data = _require_mapping(data, 'event')

        title = data.get('title')
        if not isinstance(title, str):
            raise EventDecodeError(
                "Event is missing required field: title", field='title'
            )

        end_raw = data.get('end_date')
        end_date = parse_timestamp(end_raw, 'end_date') if end_raw else None

        location_raw = data.get('location')
        location = (
            EventLocation.from_dict(location_raw)
            if location_raw is not None else None
        )

        identifiers = data.get('identifiers') or []
        if not isinstance(identifiers, list) or not all(
            isinstance(identifier, str) for identifier in identifiers
        ):
            raise EventDecodeError(
                f"Event '{title}' has malformed identifiers", field='identifiers'
            )

        return cls(
            title=title,
            start_date=parse_timestamp(data.get('start_date'), 'start_date'),
            end_date=end_date,
            description=_optional_str(data, 'description'),
            location=location,
            identifiers=list(identifiers),
            browser_url=_optional_str(data, 'browser_url')
        )


@dataclass(frozen=True)
class EventPage:
    """One page of the paginated events listing."""
    events: List[RawEvent]
    next_url: Optional[str]

    @classmethod
    def from_dict(cls, data: Any) -> 'EventPage':
        """
        Decode an OSDI collection response.

        The response embeds events under ``_embedded['osdi:events']`` and
        links to the following page under ``_links.next.href``.

        Raises:
            EventDecodeError: If the payload does not have that shape
        """
        data = _require_mapping(data, 'response')
        embedded = _require_mapping(data.get('_embedded'), '_embedded')

        raw_events = embedded.get(EVENTS_KEY)
        if not isinstance(raw_events, list):
            raise EventDecodeError(
                f"Response is missing '_embedded.{EVENTS_KEY}' list",
                field=EVENTS_KEY
            )

        next_url = None
        links = data.get('_links')
        if links is not None:
            links = _require_mapping(links, '_links')
            next_link = links.get('next')
            if next_link is not None:
                next_url = _optional_str(
                    _require_mapping(next_link, 'next'), 'href'
                )

        return cls(
            events=[RawEvent.from_dict(item) for item in raw_events],
            next_url=next_url or None
        )


@dataclass(frozen=True)
class NormalizedEvent:
    """Event reduced to the fields written to the calendar."""
    uid: str
    title: str
    start: datetime
    end: datetime
    description: Optional[str]
    venue: Optional[str]
    url: Optional[str] = None


@dataclass
class CalendarDocument:
    """Named collection of events that makes up one calendar feed."""
    name: str
    events: list
