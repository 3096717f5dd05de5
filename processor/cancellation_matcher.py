"""Matching of cancellation records to bookings."""
from typing import List, Optional, Sequence, Tuple

from processor.models import BookingEvent, CancellationRecord


def match_cancellations(
    bookings: Sequence[BookingEvent],
    cancellations: Sequence[CancellationRecord]
) -> List[Tuple[BookingEvent, Optional[CancellationRecord]]]:
    """
    Pair each booking with the first cancellation sharing its identity key.

    Identity is exact equality of film, start, end and location.

    Args:
        bookings: Bookings of one chain, in parse order
        cancellations: Cancellations of the same chain, in parse order

    Returns:
        List of (booking, cancellation or None) in booking order
    """
    matched = []
    for booking in bookings:
        cancellation = next(
            (
                candidate for candidate in cancellations
                if candidate.identity_key == booking.identity_key
            ),
            None
        )
        matched.append((booking, cancellation))
    return matched
