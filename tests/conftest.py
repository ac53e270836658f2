"""Shared fixtures for Action Network feed tests."""
import json
from urllib.parse import parse_qs, urlparse

import pytest

BASE_URL = "https://actionnetwork.org/api/v2/events"


def make_event(
    title='Town Hall',
    start_date='2024-06-01T10:00:00Z',
    end_date='2024-06-01T11:30:00Z',
    description='Meet your representatives',
    venue='City Library',
    identifiers=None,
    **extra
):
    """Build an Action Network event JSON object."""
    event = {
        'title': title,
        'start_date': start_date,
        'description': description,
        'identifiers': identifiers if identifiers is not None else [
            f"action_network:{title.lower().replace(' ', '-')}"
        ],
        'browser_url': 'https://actionnetwork.org/events/town-hall',
        'location': {'venue': venue, 'locality': 'Springfield'},
    }
    if end_date is not None:
        event['end_date'] = end_date
    event.update(extra)
    return event


def make_page(events, next_href=None):
    """Build an OSDI events collection response."""
    page = {
        'total_records': len(events),
        '_embedded': {'osdi:events': events},
        '_links': {'self': {'href': BASE_URL}},
    }
    if next_href:
        page['_links']['next'] = {'href': next_href}
    return page


def paged_callback(pages):
    """
    Build a ``responses`` callback serving ``pages`` by their ``page`` param.

    Page 1 is served for requests without a ``page`` parameter.
    """
    def callback(request):
        query = parse_qs(urlparse(request.url).query)
        page_number = int(query.get('page', ['1'])[0])
        return (200, {'Content-Type': 'application/json'},
                json.dumps(pages[page_number - 1]))
    return callback


def build_pages(titles_per_page, prefix='Event'):
    """Build a chain of pages linked with ``?page=N`` next links."""
    pages = []
    for index, titles in enumerate(titles_per_page):
        next_href = None
        if index < len(titles_per_page) - 1:
            next_href = f"{BASE_URL}?page={index + 2}"
        pages.append(make_page([make_event(title=t) for t in titles], next_href))
    return pages


@pytest.fixture
def event_payload():
    """Factory fixture for single event payloads."""
    return make_event


@pytest.fixture
def page_payload():
    """Factory fixture for page payloads."""
    return make_page
