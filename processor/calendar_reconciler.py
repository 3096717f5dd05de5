"""Reconciliation of a parsed booking against the calendar store."""
import logging
from datetime import datetime
from typing import List, Optional, Protocol

from processor.models import (
    PROVENANCE_TAG,
    BookingEvent,
    CalendarEntry,
    CancellationRecord,
    ReconcileOutcome,
    ReconcileResult,
)

logger = logging.getLogger(__name__)


class CalendarStore(Protocol):
    def query(self, start: datetime, end: datetime, description_contains: str) -> List[CalendarEntry]:
        ...

    def create(self, title: str, start: datetime, end: datetime, description: str, location: str) -> CalendarEntry:
        ...

    def update(self, entry_id: str, title: str, start: datetime, end: datetime, description: str, location: str) -> None:
        ...

    def delete(self, entry_id: str) -> None:
        ...


class CalendarReconciler:
    """
    Decides and applies the calendar changes for one booking at a time.

    Entries previously created by the sync are recognised by the provenance
    tag in their description. Among the entries representing a booking the
    first one returned by the store is canonical: it is brought up to date
    and every other one is deleted. A booking with a matched cancellation
    never gets a new entry.
    """

    def __init__(self, store: CalendarStore):
        """
        Initialize the reconciler.

        Args:
            store: Calendar store, queried fresh for every booking
        """
        self.store = store

    def reconcile(
        self,
        booking: BookingEvent,
        cancellation: Optional[CancellationRecord] = None
    ) -> ReconcileResult:
        """
        Reconcile one booking with the calendar.

        Args:
            booking: Booking parsed from the mailbox
            cancellation: Matching cancellation, if any

        Returns:
            ReconcileResult describing what was changed

        Raises:
            CalendarStoreError: If the store fails; nothing is guessed
        """
        matching = self.find_matching_entries(booking)
        result = ReconcileResult(outcome=ReconcileOutcome.NO_OP)

        if matching:
            canonical = matching[0]
            result.entry_id = canonical.id

            if self._is_stale(canonical, booking):
                logger.info(
                    f"Updating entry {canonical.id} for '{booking.title}' at {booking.start}"
                )
                self.store.update(
                    canonical.id,
                    booking.title,
                    booking.start,
                    booking.end,
                    booking.description,
                    booking.location
                )
                result.updated = True

            for duplicate in matching[1:]:
                # Never delete the entry that was just updated
                if duplicate.id == canonical.id:
                    continue
                logger.info(
                    f"Deleting duplicate entry {duplicate.id} for '{booking.title}' "
                    f"at {booking.start}"
                )
                self.store.delete(duplicate.id)
                result.deleted_ids.append(duplicate.id)

        if cancellation is not None:
            logger.info(
                f"Booking '{booking.title}' at {booking.start} is cancelled, not creating an entry"
            )
            result.outcome = ReconcileOutcome.SUPPRESSED_BY_CANCELLATION
            return result

        if not matching:
            logger.info(
                f"Creating entry '{booking.title}' from {booking.start} to {booking.end} "
                f"at {booking.location}, seats {booking.seats}"
            )
            entry = self.store.create(
                booking.title,
                booking.start,
                booking.end,
                booking.description,
                booking.location
            )
            result.entry_id = entry.id
            result.outcome = ReconcileOutcome.CREATED
            return result

        if result.updated or result.deleted_ids:
            result.outcome = ReconcileOutcome.UPDATED
        else:
            logger.debug(f"Entry {result.entry_id} for '{booking.title}' is up to date")
        return result

    def find_matching_entries(self, booking: BookingEvent) -> List[CalendarEntry]:
        """
        Return the tagged entries overlapping the booking with its title and location.

        Args:
            booking: Booking to look up

        Returns:
            Matching entries in store order
        """
        candidates = self.store.query(booking.start, booking.end, PROVENANCE_TAG)
        return [
            entry for entry in candidates
            if PROVENANCE_TAG in (entry.description or '')
            and entry.title == booking.title
            and entry.location == booking.location
        ]

    @staticmethod
    def _is_stale(entry: CalendarEntry, booking: BookingEvent) -> bool:
        return (
            entry.title != booking.title or
            entry.start != booking.start or
            entry.end != booking.end or
            entry.description != booking.description or
            entry.location != booking.location
        )
