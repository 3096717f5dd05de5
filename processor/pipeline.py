"""Orchestration of mailbox parsing and calendar reconciliation."""
import logging
from typing import List, Protocol, Sequence

from processor.booking_builder import BookingBuilder
from processor.calendar_reconciler import CalendarReconciler, CalendarStore
from processor.cancellation_matcher import match_cancellations
from processor.errors import GrammarDefectError, LookupServiceError
from processor.grammar import VendorGrammar
from processor.models import (
    BookingEvent,
    CancellationRecord,
    MailMessage,
    MailQuery,
    MailThread,
    SyncResult,
)

logger = logging.getLogger(__name__)


class Inbox(Protocol):
    def search(self, query: MailQuery) -> List[MailThread]:
        ...


class BookingSyncPipeline:
    """
    Keeps the calendar in step with the booking emails in a mailbox.

    Vendors are processed one after another, and within a vendor each
    booking is reconciled to completion before the next one starts.
    """

    def __init__(
        self,
        inbox: Inbox,
        calendar_store: CalendarStore,
        grammars: Sequence[VendorGrammar],
        builder: BookingBuilder
    ):
        """
        Initialize the pipeline.

        Args:
            inbox: Mailbox search collaborator
            calendar_store: Calendar store collaborator
            grammars: Grammars of the cinema chains to sync
            builder: Booking builder shared by all grammars
        """
        self.inbox = inbox
        self.grammars = list(grammars)
        self.builder = builder
        self.reconciler = CalendarReconciler(calendar_store)

    def run(self) -> SyncResult:
        """
        Sync every registered cinema chain.

        Returns:
            SyncResult with per-outcome counts

        Raises:
            MailboxError: If the mailbox cannot be searched
            CalendarStoreError: If the calendar store fails
        """
        result = SyncResult()
        logger.info(f"Starting sync for {len(self.grammars)} cinema chains")

        for grammar in self.grammars:
            self.sync_chain(grammar, result)

        logger.info(
            f"Sync complete: {result.bookings} bookings, {result.added} added, "
            f"{result.updated} updated, {result.deleted} deleted, "
            f"{result.suppressed} suppressed, {result.unchanged} unchanged, "
            f"{result.skipped_messages} messages skipped"
        )
        return result

    def sync_chain(self, grammar: VendorGrammar, result: SyncResult) -> None:
        """Parse, match and reconcile the bookings of one chain."""
        bookings = self.collect_bookings(grammar, result)
        cancellations = self.collect_cancellations(grammar, result)
        logger.info(
            f"Found {len(bookings)} bookings and {len(cancellations)} cancellations "
            f"for {grammar.chain}"
        )

        for booking, cancellation in match_cancellations(bookings, cancellations):
            result.record(self.reconciler.reconcile(booking, cancellation))

    def collect_bookings(self, grammar: VendorGrammar, result: SyncResult) -> List[BookingEvent]:
        """
        Parse every booking email of a chain, oldest message first per thread.

        Messages that break the grammar, or whose lookups fail, are skipped.
        """
        bookings = []
        for message in self._messages(grammar.event_query, grammar.chain):
            try:
                booking = grammar.parse_booking(message.body, self.builder, message.permalink)
            except (GrammarDefectError, LookupServiceError) as e:
                self._skip(grammar, message, e, result)
                continue

            if booking is not None:
                bookings.append(booking)
        return bookings

    def collect_cancellations(self, grammar: VendorGrammar, result: SyncResult) -> List[CancellationRecord]:
        """
        Parse the cancellation emails of a chain, if it has a known format.

        Messages that break the grammar are skipped.
        """
        if grammar.cancellation_query is None:
            return []

        cancellations = []
        for message in self._messages(grammar.cancellation_query, grammar.chain):
            try:
                cancellation = grammar.parse_cancellation(message.body)
            except GrammarDefectError as e:
                self._skip(grammar, message, e, result)
                continue

            if cancellation is not None:
                cancellations.append(cancellation)
        return cancellations

    @staticmethod
    def _skip(grammar: VendorGrammar, message: MailMessage, error: Exception, result: SyncResult) -> None:
        error_msg = f"Skipped {grammar.chain} message {message.message_id}: {error}"
        logger.warning(error_msg)
        result.skipped_messages += 1
        result.errors.append(error_msg)

    def _messages(self, query: MailQuery, chain: str) -> List[MailMessage]:
        threads = self.inbox.search(query)
        logger.info(f"Found {len(threads)} threads from cinema chain {chain}")
        messages = []
        for thread in threads:
            for message in thread.chronological():
                messages.append(message)
        return messages
