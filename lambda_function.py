"""AWS Lambda handler for Cinema Booking Calendar Sync."""
import json
import logging
import time
from typing import Dict, Any

from config.settings import Settings
from inbox.gmail_inbox import GmailInbox
from inbox.google_auth import GoogleOAuthSession
from lookup.geocoder import GoogleGeocoder, NullGeocoder
from lookup.http_client import RetryingHttpClient
from lookup.tmdb_client import TmdbClient
from processor.booking_builder import BookingBuilder
from processor.errors import CalendarStoreError, ConfigurationError, MailboxError
from processor.grammar import build_grammars
from processor.pipeline import BookingSyncPipeline
from processor.runtime_resolver import RuntimeResolver
from storage.google_calendar import DryRunCalendarStore, GoogleCalendarStore


# Attributes every LogRecord has; anything else came in through `extra`
_RECORD_ATTRIBUTES = set(vars(logging.makeLogRecord({}))) | {'message', 'asctime'}


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
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


# Chatty client libraries kept at WARNING unless running at DEBUG
_QUIET_LOGGERS = ('botocore', 'boto3', 'urllib3', 'google.auth')


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Route every log record through a single JSON handler on the root logger.

    The Lambda runtime installs its own handler first; it is replaced so that
    records are not written twice.

    Args:
        log_level: Logging level name; unknown names fall back to INFO
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()

    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)

    json_handler = logging.StreamHandler()
    json_handler.setFormatter(JsonFormatter())
    root_logger.addHandler(json_handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


def build_pipeline(settings: Settings) -> BookingSyncPipeline:
    """
    Wire the sync pipeline from settings.

    Args:
        settings: Run configuration

    Returns:
        BookingSyncPipeline ready to run
    """
    http = RetryingHttpClient(timeout=settings.timeout_seconds)
    auth = GoogleOAuthSession(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        refresh_token=settings.google_refresh_token,
        http=http
    )

    calendar_store = GoogleCalendarStore(
        calendar_id=settings.calendar_id,
        auth=auth,
        timezone=settings.calendar_timezone,
        http=http
    )
    if settings.dry_run:
        calendar_store = DryRunCalendarStore(calendar_store)

    tmdb = TmdbClient(settings.tmdb_api_key, http=http) if settings.tmdb_api_key else None
    if settings.google_maps_api_key:
        geocoder = GoogleGeocoder(settings.google_maps_api_key, http=http)
    else:
        geocoder = NullGeocoder()

    return BookingSyncPipeline(
        inbox=GmailInbox(auth, http=http),
        calendar_store=calendar_store,
        grammars=build_grammars(settings.chains),
        builder=BookingBuilder(RuntimeResolver(tmdb), geocoder)
    )


def _error_response(message: str, error: Exception, start_time: float) -> Dict[str, Any]:
    duration = time.time() - start_time
    return {
        'statusCode': 500,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(duration, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler function for Cinema Booking Calendar Sync.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    start_time = time.time()
    setup_logging('INFO')
    logger = logging.getLogger(__name__)

    # Read configuration from environment variables
    try:
        settings = Settings.from_env()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}", exc_info=True)
        return _error_response('Invalid configuration', e, start_time)

    # Initialize logging
    setup_logging(settings.log_level)

    # Log Lambda execution start
    logger.info(
        "Lambda execution started",
        extra={
            'calendar_id': settings.calendar_id,
            'chains': list(settings.chains),
            'dry_run': settings.dry_run
        }
    )

    try:
        pipeline = build_pipeline(settings)
        sync_result = pipeline.run()

    except MailboxError as e:
        logger.error(
            f"Failed to search mailbox: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Failed to search mailbox', e, start_time)

    except CalendarStoreError as e:
        # Stop rather than guess at calendar state; the next run converges
        logger.error(
            f"Error during calendar sync: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _error_response('Failed to sync bookings with calendar', e, start_time)

    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response('Sync failed', e, start_time)

    # Calculate execution duration
    duration = time.time() - start_time

    # Log execution summary
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'bookings_parsed': sync_result.bookings,
            'events_added': sync_result.added,
            'events_updated': sync_result.updated,
            'events_deleted': sync_result.deleted,
            'events_suppressed': sync_result.suppressed,
            'messages_skipped': sync_result.skipped_messages
        }
    )

    # Return success response
    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Sync completed successfully',
            'statistics': {
                'bookings_parsed': sync_result.bookings,
                'events_added': sync_result.added,
                'events_updated': sync_result.updated,
                'events_deleted': sync_result.deleted,
                'events_suppressed': sync_result.suppressed,
                'events_unchanged': sync_result.unchanged,
                'messages_skipped': sync_result.skipped_messages,
                'duration_seconds': round(duration, 2),
                'dry_run': settings.dry_run
            },
            'errors': sync_result.errors
        })
    }
