"""Exception hierarchy for the booking sync."""


class BookingSyncError(Exception):
    """Base class for all booking sync errors."""


class GrammarDefectError(BookingSyncError):
    """A vendor grammar no longer fits the email it was applied to."""

    def __init__(self, field: str, subject: str, segment: str, reason: str):
        self.field = field
        self.subject = subject
        self.segment = segment
        super().__init__(
            f"Error occurred while attempting to find {field} in {subject}: "
            f"{reason} (segment: {segment[:200]!r})"
        )


class AmbiguousMatchError(GrammarDefectError):
    """A field expected to match once matched several times."""


class MalformedFieldError(GrammarDefectError):
    """A matched field could not be converted to its expected type."""


class LookupServiceError(BookingSyncError):
    """Runtime metadata or geocoding service failed."""


class MailboxError(BookingSyncError):
    """Mailbox search or message retrieval failed."""


class CalendarStoreError(BookingSyncError):
    """Calendar store read or write failed."""


class ConfigurationError(BookingSyncError):
    """Required configuration is missing or invalid."""
