"""Data models for booking parsing and calendar reconciliation."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple


PROVENANCE_TAG = "#cinema-booking-sync"
POST_ROLL_PADDING_MINUTES = 25
DEFAULT_RUNTIME_MINUTES = 120

IdentityKey = Tuple[str, datetime, datetime, str]


@dataclass(frozen=True)
class BookingEvent:
    """Confirmed cinema booking parsed from a confirmation email."""
    chain: str
    title: str
    film: str
    start: datetime
    end: datetime
    location: str
    attendee_count: int
    seats: str
    rating: str
    booking_reference: str
    description: str
    runtime_minutes: int

    @property
    def identity_key(self) -> IdentityKey:
        return (self.film, self.start, self.end, self.location)


@dataclass(frozen=True)
class CancellationRecord:
    """Identity of a booking that is no longer valid."""
    chain: str
    film: str
    start: datetime
    end: datetime
    location: str

    @property
    def identity_key(self) -> IdentityKey:
        return (self.film, self.start, self.end, self.location)


@dataclass
class CalendarEntry:
    """Calendar entry as reported by the calendar store."""
    id: str
    title: str
    start: datetime
    end: datetime
    location: str
    description: str = ''


@dataclass(frozen=True)
class MailQuery:
    """Mailbox search criteria, combined with AND semantics."""
    sender: str
    subjects: Tuple[str, ...] = ()

    def to_search_string(self) -> str:
        """
        Render the query in Gmail search syntax.

        Returns:
            Search string such as ``from:a@b.com subject:"tickets for"``
        """
        parts = [f"from:{self.sender}"]
        for subject in self.subjects:
            if ' ' in subject:
                subject = f'"{subject}"'
            parts.append(f"subject:{subject}")
        return ' '.join(parts)


@dataclass
class MailMessage:
    """Single message of a mail thread."""
    message_id: str
    thread_id: str
    received_at: datetime
    body: str

    @property
    def permalink(self) -> str:
        return f"https://mail.google.com/mail/u/0/#all/{self.message_id}"


@dataclass
class MailThread:
    """Mail thread returned by a mailbox search."""
    thread_id: str
    messages: List[MailMessage] = field(default_factory=list)

    def chronological(self) -> List[MailMessage]:
        return sorted(self.messages, key=lambda message: message.received_at)


class ReconcileOutcome(Enum):
    """Terminal outcome of reconciling one booking."""
    CREATED = 'created'
    UPDATED = 'updated'
    SUPPRESSED_BY_CANCELLATION = 'suppressed_by_cancellation'
    NO_OP = 'no_op'


@dataclass
class ReconcileResult:
    """Result of reconciling one booking against the calendar."""
    outcome: ReconcileOutcome
    entry_id: Optional[str] = None
    updated: bool = False
    deleted_ids: List[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Result of a full sync run."""
    bookings: int = 0
    added: int = 0
    updated: int = 0
    deleted: int = 0
    suppressed: int = 0
    unchanged: int = 0
    skipped_messages: int = 0
    errors: List[str] = field(default_factory=list)

    def record(self, result: ReconcileResult) -> None:
        """Fold a single reconciliation result into the run totals."""
        self.bookings += 1
        self.deleted += len(result.deleted_ids)
        if result.outcome is ReconcileOutcome.CREATED:
            self.added += 1
        elif result.outcome is ReconcileOutcome.UPDATED:
            self.updated += 1
        elif result.outcome is ReconcileOutcome.SUPPRESSED_BY_CANCELLATION:
            self.suppressed += 1
        else:
            self.unchanged += 1
