"""Concurrent aggregation of several Action Network feeds."""
import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional, Sequence

from processor.exceptions import NoFeedsSelectedError, UnknownFeedError
from processor.models import CalendarDocument, RawEvent
from registry.credential_registry import CredentialRegistry

logger = logging.getLogger(__name__)


def derive_calendar_name(
    feed_ids: Sequence[str],
    override_name: Optional[str] = None
) -> str:
    """
    Compute the display name of a combined calendar.

    Each space-separated token is capitalised on its first character and
    lowercased elsewhere, so ``TEAM_A`` becomes ``Team_a``.

    Args:
        feed_ids: Selected feed identifiers, in request order
        override_name: Name supplied by the caller, used verbatim if given

    Returns:
        Calendar display name
    """
    if override_name:
        return override_name

    words = ' '.join(feed_ids).split(' ')
    title = ' '.join(word[:1].upper() + word[1:].lower() for word in words)
    return f"Events for {title}"


class FeedAggregator:
    """Fetches several feeds concurrently and merges their events."""

    MAX_WORKERS = 8

    def __init__(
        self,
        registry: CredentialRegistry,
        fetcher,
        max_workers: Optional[int] = None
    ):
        """
        Initialize the aggregator.

        Args:
            registry: Credential registry used to resolve feed tokens
            fetcher: Object providing ``fetch_all(feed_id, token)``
            max_workers: Thread pool size (default: one per feed, capped)
        """
        self.registry = registry
        self.fetcher = fetcher
        self.max_workers = max_workers

    def validate_selection(self, feed_ids: Sequence[str]) -> None:
        """
        Check that a selection is non-empty and fully configured.

        Raises:
            NoFeedsSelectedError: If no feed was requested
            UnknownFeedError: For the first feed without an API key
        """
        if not feed_ids:
            raise NoFeedsSelectedError()

        for feed_id in feed_ids:
            if feed_id not in self.registry:
                logger.warning(f"Rejected request for unknown feed: {feed_id}")
                raise UnknownFeedError(feed_id)

    def aggregate(
        self,
        feed_ids: Sequence[str],
        override_name: Optional[str] = None
    ) -> CalendarDocument:
        """
        Fetch all selected feeds and merge them into one calendar document.

        Events are concatenated in the order the feeds were requested, not
        the order in which fetches complete. If any feed fails, no document
        is produced and the first failure in request order is raised.

        Args:
            feed_ids: Selected feed identifiers
            override_name: Optional calendar name

        Returns:
            CalendarDocument holding the raw upstream events

        Raises:
            FeedSelectionError: If the selection is invalid (nothing fetched)
            UpstreamFetchError: If fetching any feed fails
        """
        feed_ids = list(feed_ids)
        self.validate_selection(feed_ids)

        name = derive_calendar_name(feed_ids, override_name)
        per_feed = self._fetch_concurrently(feed_ids)

        events: List[RawEvent] = []
        for feed_events in per_feed:
            events.extend(feed_events)

        logger.info(
            f"Aggregated {len(events)} events from {len(feed_ids)} feed(s) "
            f"into '{name}'"
        )
        return CalendarDocument(name=name, events=events)

    def _fetch_concurrently(self, feed_ids: List[str]) -> List[List[RawEvent]]:
        workers = self.max_workers or min(len(feed_ids), self.MAX_WORKERS)

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix='feed-fetch'
        ) as executor:
            futures = [
                executor.submit(
                    self.fetcher.fetch_all, feed_id, self.registry.lookup(feed_id)
                )
                for feed_id in feed_ids
            ]
            wait(futures)

        failures = [
            (feed_id, future.exception())
            for feed_id, future in zip(feed_ids, futures)
            if future.exception() is not None
        ]
        for feed_id, error in failures:
            logger.error(f"Feed {feed_id} failed: {error}")
        if failures:
            raise failures[0][1]

        return [future.result() for future in futures]
