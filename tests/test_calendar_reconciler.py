"""Unit tests for CalendarReconciler."""
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from processor.calendar_reconciler import CalendarReconciler
from processor.errors import CalendarStoreError
from processor.models import (
    PROVENANCE_TAG,
    BookingEvent,
    CalendarEntry,
    CancellationRecord,
    ReconcileOutcome,
)

from conftest import FakeCalendarStore


START = datetime(2025, 3, 1, 19, 30)
END = START + timedelta(minutes=145)
LOCATION = 'Picturehouse, Ritzy Picturehouse'


@pytest.fixture
def booking():
    return BookingEvent(
        chain='Picturehouse',
        title='Conclave',
        film='Conclave',
        start=START,
        end=END,
        location=LOCATION,
        attendee_count=2,
        seats='D-5, D-6',
        rating='Unknown',
        booking_reference='PH1',
        description=f"Booking reference: PH1\n\n{PROVENANCE_TAG}",
        runtime_minutes=120
    )


@pytest.fixture
def cancellation(booking):
    return CancellationRecord(
        chain=booking.chain,
        film=booking.film,
        start=booking.start,
        end=booking.end,
        location=booking.location
    )


def entry_for(booking, entry_id, **overrides):
    fields = dict(
        id=entry_id,
        title=booking.title,
        start=booking.start,
        end=booking.end,
        location=booking.location,
        description=booking.description
    )
    fields.update(overrides)
    return CalendarEntry(**fields)


class TestCalendarReconciler:
    """Test cases for CalendarReconciler."""

    def test_creates_missing_entry(self, booking, calendar_store):
        """Test a booking with no existing entry is created."""
        result = CalendarReconciler(calendar_store).reconcile(booking)

        assert result.outcome is ReconcileOutcome.CREATED
        assert calendar_store.created == [result.entry_id]
        entry = calendar_store.entries[0]
        assert entry.title == 'Conclave'
        assert entry.start == START
        assert entry.end == END
        assert entry.location == LOCATION
        assert entry.description == booking.description

    def test_reconcile_twice_is_idempotent(self, booking, calendar_store):
        """Test a second run neither creates nor changes anything."""
        reconciler = CalendarReconciler(calendar_store)

        first = reconciler.reconcile(booking)
        second = reconciler.reconcile(booking)

        assert first.outcome is ReconcileOutcome.CREATED
        assert second.outcome is ReconcileOutcome.NO_OP
        assert second.entry_id == first.entry_id
        assert len(calendar_store.entries) == 1
        assert calendar_store.updated == []

    def test_stale_entry_is_updated(self, booking):
        """Test an existing entry picks up new booking details."""
        stale = entry_for(
            booking,
            'e1',
            end=START + timedelta(minutes=60),
            description=f"Running time: 35 minutes\n{PROVENANCE_TAG}"
        )
        store = FakeCalendarStore([stale])

        result = CalendarReconciler(store).reconcile(booking)

        assert result.outcome is ReconcileOutcome.UPDATED
        assert store.updated == ['e1']
        assert store.created == []
        assert store.entries[0].end == END
        assert store.entries[0].description == booking.description

    @pytest.mark.parametrize('count', [2, 3, 5])
    def test_duplicates_collapse_to_canonical(self, booking, count):
        """Test N matching entries end as exactly one, carrying current values."""
        entries = [
            entry_for(booking, f"e{index}", description=f"old {index}\n{PROVENANCE_TAG}")
            for index in range(count)
        ]
        store = FakeCalendarStore(entries)

        result = CalendarReconciler(store).reconcile(booking)

        assert result.outcome is ReconcileOutcome.UPDATED
        assert result.entry_id == 'e0'
        assert result.deleted_ids == [f"e{index}" for index in range(1, count)]
        assert [entry.id for entry in store.entries] == ['e0']
        assert store.entries[0].description == booking.description
        assert store.created == []

    def test_update_happens_before_deletes(self, booking):
        """Test the canonical entry is updated before duplicates are deleted."""
        store = Mock()
        store.query.return_value = [
            entry_for(booking, 'e0', description=f"old\n{PROVENANCE_TAG}"),
            entry_for(booking, 'e1'),
        ]

        CalendarReconciler(store).reconcile(booking)

        assert [call[0] for call in store.method_calls] == ['query', 'update', 'delete']
        store.delete.assert_called_once_with('e1')
        store.create.assert_not_called()

    def test_up_to_date_duplicates_still_deleted(self, booking):
        """Test duplicates are removed even when the canonical entry is current."""
        store = FakeCalendarStore([entry_for(booking, 'e0'), entry_for(booking, 'e1')])

        result = CalendarReconciler(store).reconcile(booking)

        assert result.outcome is ReconcileOutcome.UPDATED
        assert store.updated == []
        assert store.deleted == ['e1']

    def test_untagged_entries_are_ignored(self, booking):
        """Test entries not created by the sync are never touched."""
        manual = entry_for(booking, 'manual', description='Cinema with friends')
        store = Mock()
        store.query.return_value = [manual]
        store.create.return_value = entry_for(booking, 'new')

        result = CalendarReconciler(store).reconcile(booking)

        assert result.outcome is ReconcileOutcome.CREATED
        store.update.assert_not_called()
        store.delete.assert_not_called()

    def test_other_bookings_are_ignored(self, booking):
        """Test tagged entries for other films or cinemas are left alone."""
        store = FakeCalendarStore([
            entry_for(booking, 'other-film', title='Nosferatu'),
            entry_for(booking, 'other-cinema', location='Picturehouse, Hackney Picturehouse'),
        ])

        result = CalendarReconciler(store).reconcile(booking)

        assert result.outcome is ReconcileOutcome.CREATED
        assert store.updated == []
        assert store.deleted == []
        assert len(store.entries) == 3

    def test_query_uses_booking_range_and_tag(self, booking):
        """Test the store is queried for the booking's time range and the tag."""
        store = Mock()
        store.query.return_value = []
        store.create.return_value = entry_for(booking, 'new')

        CalendarReconciler(store).reconcile(booking)

        store.query.assert_called_once_with(START, END, PROVENANCE_TAG)

    def test_cancellation_suppresses_creation(self, booking, cancellation, calendar_store):
        """Test a cancelled booking with no entry creates nothing."""
        result = CalendarReconciler(calendar_store).reconcile(booking, cancellation)

        assert result.outcome is ReconcileOutcome.SUPPRESSED_BY_CANCELLATION
        assert calendar_store.created == []
        assert calendar_store.entries == []

    def test_cancellation_updates_but_never_creates(self, booking, cancellation):
        """Test a cancelled booking's entries collapse to one updated entry."""
        store = FakeCalendarStore([
            entry_for(booking, 'e0', description=f"old\n{PROVENANCE_TAG}"),
            entry_for(booking, 'e1'),
        ])

        result = CalendarReconciler(store).reconcile(booking, cancellation)

        assert result.outcome is ReconcileOutcome.SUPPRESSED_BY_CANCELLATION
        assert store.updated == ['e0']
        assert store.deleted == ['e1']
        assert store.created == []
        assert [entry.id for entry in store.entries] == ['e0']

    def test_store_failure_propagates(self, booking):
        """Test a failing store aborts instead of guessing."""
        store = Mock()
        store.query.side_effect = CalendarStoreError('calendar unreachable')

        with pytest.raises(CalendarStoreError):
            CalendarReconciler(store).reconcile(booking)

        store.create.assert_not_called()
