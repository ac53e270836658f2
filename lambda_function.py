"""AWS Lambda handler serving Action Network event feeds as iCalendar."""
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

from calendar_builder.ics_assembler import CalendarAssembler
from fetcher.action_network import ActionNetworkFetcher
from processor.aggregator import FeedAggregator
from processor.event_processor import EventNormalizer
from processor.exceptions import (
    EventNormalizationError,
    FeedSelectionError,
    UpstreamFetchError,
)
from registry.credential_registry import CredentialRegistry, format_directory

WELCOME_TEXT = """
Hello!

This is a simple app that serves multiple Action Network Event feeds into an
iCal feed for import into Google Calendar or other Calendar systems.
"""

# Attributes present on every LogRecord; anything else came in through `extra`.
_RESERVED_LOG_ATTRS = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}

_registry: Optional[CredentialRegistry] = None


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_LOG_ATTRS and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def get_registry() -> CredentialRegistry:
    """Return the process-wide credential registry, loading it on first use."""
    global _registry
    if _registry is None:
        _registry = CredentialRegistry.from_environ()
    return _registry


def reset_registry() -> None:
    """Forget the cached registry so the next call reloads the environment."""
    global _registry
    _registry = None


def build_aggregator(registry: CredentialRegistry) -> FeedAggregator:
    """Wire the fetcher and aggregator from environment settings."""
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    max_pages = int(os.environ.get('MAX_PAGES', '100'))
    max_retries = int(os.environ.get('MAX_RETRIES', '3'))
    max_workers = os.environ.get('MAX_WORKERS')

    fetcher = ActionNetworkFetcher(
        timeout=timeout_seconds,
        max_pages=max_pages,
        max_retries=max_retries
    )
    return FeedAggregator(
        registry,
        fetcher,
        max_workers=int(max_workers) if max_workers else None
    )


def text_response(status_code: int, body: str) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'text/plain; charset=utf-8'},
        'body': body
    }


def error_response(
    status_code: int,
    message: str,
    error: Exception,
    start_time: float,
    **details: Any
) -> Dict[str, Any]:
    duration = time.time() - start_time
    body = {
        'message': message,
        'error': str(error),
        'error_type': type(error).__name__,
        'duration_seconds': round(duration, 2)
    }
    body.update(details)
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def get_feed_params(event: Dict[str, Any]) -> List[str]:
    """
    Extract the repeated ``feed`` query parameters from an API Gateway event.

    REST APIs deliver repeated parameters in ``multiValueQueryStringParameters``;
    HTTP APIs join them with commas in ``queryStringParameters``.
    """
    multi = event.get('multiValueQueryStringParameters') or {}
    if multi.get('feed'):
        return [feed for feed in multi['feed'] if feed]

    single = (event.get('queryStringParameters') or {}).get('feed')
    if not single:
        return []
    return [feed for feed in single.split(',') if feed]


def get_query_param(event: Dict[str, Any], name: str) -> Optional[str]:
    return (event.get('queryStringParameters') or {}).get(name)


def handle_directory(registry: CredentialRegistry) -> Dict[str, Any]:
    """Return the configured feed identifiers, one per line."""
    return text_response(200, format_directory(registry))


def handle_events(
    event: Dict[str, Any],
    registry: CredentialRegistry,
    start_time: float
) -> Dict[str, Any]:
    """
    Build the combined iCalendar feed for the requested feeds.

    Args:
        event: API Gateway proxy event
        registry: Credential registry
        start_time: Request start, used for duration reporting

    Returns:
        API Gateway proxy response
    """
    logger = logging.getLogger(__name__)
    feed_ids = get_feed_params(event)
    name_override = get_query_param(event, 'name')

    aggregator = build_aggregator(registry)
    normalizer = EventNormalizer()
    assembler = CalendarAssembler()

    try:
        aggregator.validate_selection(feed_ids)
    except FeedSelectionError as e:
        return text_response(400, str(e))

    try:
        logger.info("Fetching events from feeds", extra={'feeds': feed_ids})
        document = aggregator.aggregate(feed_ids, name_override)
    except UpstreamFetchError as e:
        logger.error(
            f"Failed to fetch feed events: {str(e)}",
            extra={'error_type': type(e).__name__, 'feed_id': e.feed_id},
            exc_info=True
        )
        return error_response(
            502, 'Failed to fetch feed events', e, start_time, feed_id=e.feed_id
        )

    try:
        logger.info("Normalizing events")
        normalized = normalizer.normalize_events(document.events)
    except EventNormalizationError as e:
        logger.error(
            f"Failed to normalize events: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return error_response(500, 'Failed to normalize events', e, start_time)

    calendar = assembler.assemble(document.name, normalized)
    body = assembler.serialize(calendar).decode('utf-8')

    logger.info(
        "Calendar generated successfully",
        extra={
            'calendar_name': document.name,
            'events': len(normalized),
            'duration_seconds': round(time.time() - start_time, 2)
        }
    )
    return {
        'statusCode': 200,
        'headers': {
            'Content-Type': 'text/calendar; charset=utf-8',
            'Content-Disposition': 'attachment; filename=events.ics'
        },
        'body': body
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function routing API Gateway requests.

    Args:
        event: API Gateway proxy event (REST or HTTP API)
        context: Lambda context object

    Returns:
        API Gateway proxy response dict
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    start_time = time.time()
    path = event.get('rawPath') or event.get('path') or '/'
    method = (
        event.get('httpMethod')
        or event.get('requestContext', {}).get('http', {}).get('method')
        or 'GET'
    ).upper()

    logger.info("Request received", extra={'path': path, 'method': method})

    if method != 'GET':
        return text_response(405, f"Method {method} not allowed.")

    try:
        registry = get_registry()

        if path == '/':
            return text_response(200, WELCOME_TEXT)
        if path == '/directory':
            return handle_directory(registry)
        if path == '/events':
            return handle_events(event, registry, start_time)

        return text_response(404, f"No route for {path}.")

    except Exception as e:
        logger.error(
            f"Request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return error_response(500, 'Request failed', e, start_time)
