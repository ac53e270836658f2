"""Paginated client for the Action Network events API."""
import logging
import time
from datetime import datetime, timezone
from typing import Iterator, List, Optional

import requests

from processor.exceptions import (
    EventDecodeError,
    PaginationLimitError,
    UpstreamFetchError,
)
from processor.models import EventPage, RawEvent

logger = logging.getLogger(__name__)


def upcoming_events_filter(now: Optional[datetime] = None) -> str:
    """
    Build the OData filter restricting results to events starting after now.

    Args:
        now: Reference instant (default: current UTC time)

    Returns:
        Filter expression such as ``start_date gt '2024-06-01T10:00:00.000Z'``
    """
    now = now or datetime.now(timezone.utc)
    stamp = now.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%f')[:-3]
    return f"start_date gt '{stamp}Z'"


class ActionNetworkFetcher:
    """Fetches every upcoming event of one Action Network feed."""

    BASE_URL = "https://actionnetwork.org/api/v2/events"
    TOKEN_HEADER = "OSDI-API-Token"

    def __init__(
        self,
        timeout: int = 30,
        max_pages: int = 100,
        max_retries: int = 3,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_pages: Upper bound on pages followed per feed (default: 100)
            max_retries: Attempts per page request (default: 3)
            session: Optional shared requests session
        """
        self.timeout = timeout
        self.max_pages = max_pages
        self.max_retries = max(1, max_retries)
        self.session = session

    def fetch_all(self, feed_id: str, token: str) -> List[RawEvent]:
        """
        Fetch all upcoming events for a feed, following pagination links.

        Args:
            feed_id: Feed identifier, used for logging and error tagging
            token: Action Network API token for the feed

        Returns:
            Events of every page, in page order

        Raises:
            UpstreamFetchError: If any page request fails or is malformed
        """
        events: List[RawEvent] = []
        page_count = 0

        try:
            for page in self.iter_pages(feed_id, token):
                page_count += 1
                events.extend(page.events)
        except UpstreamFetchError:
            raise
        except EventDecodeError as e:
            logger.error(f"Malformed response for feed {feed_id}: {e}")
            raise UpstreamFetchError(feed_id, f"malformed response: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Request failed for feed {feed_id}: {e}")
            raise UpstreamFetchError(feed_id, str(e)) from e

        logger.info(
            f"Fetched {len(events)} events for feed {feed_id} "
            f"across {page_count} page(s)"
        )
        return events

    def iter_pages(self, feed_id: str, token: str) -> Iterator[EventPage]:
        """
        Lazily yield each page of a feed until no next link remains.

        The first request is filtered to events starting after the current
        instant; later requests follow the ``next`` link verbatim.

        Args:
            feed_id: Feed identifier
            token: Action Network API token for the feed

        Yields:
            EventPage objects in page order

        Raises:
            PaginationLimitError: If a next link remains after max_pages pages
        """
        session = self.session or requests.Session()
        url = self.BASE_URL
        params = {'filter': upcoming_events_filter()}
        headers = {
            'Content-Type': 'application/json',
            self.TOKEN_HEADER: token
        }

        try:
            for page_number in range(1, self.max_pages + 1):
                logger.debug(f"Fetching page {page_number} for feed {feed_id}")
                data = self._get_json(session, url, params, headers)
                page = EventPage.from_dict(data)
                yield page

                if not page.next_url:
                    return
                url = page.next_url
                params = None
        finally:
            if self.session is None:
                session.close()

        logger.error(
            f"Feed {feed_id} still has a next page after {self.max_pages} pages"
        )
        raise PaginationLimitError(feed_id, self.max_pages)

    def _get_json(self, session, url, params, headers):
        """
        Issue one GET request with retry logic and decode the JSON body.

        Raises:
            requests.RequestException: If all retry attempts fail
            EventDecodeError: If the body is not valid JSON
        """
        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                response = session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=self.timeout
                )
                response.raise_for_status()
                break

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

        try:
            return response.json()
        except ValueError as e:
            raise EventDecodeError(f"Response body is not valid JSON: {e}") from e
