"""Assembly of canonical booking events from extracted fields."""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Protocol

from processor.models import (
    DEFAULT_RUNTIME_MINUTES,
    POST_ROLL_PADDING_MINUTES,
    PROVENANCE_TAG,
    BookingEvent,
)
from processor.runtime_resolver import RuntimeResolver

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    def geocode(self, address: str) -> List[str]:
        ...


class BookingBuilder:
    """Builds BookingEvent objects, resolving runtime and location."""

    def __init__(self, runtime_resolver: RuntimeResolver, geocoder: Geocoder):
        """
        Initialize the builder.

        Args:
            runtime_resolver: Resolver used when the vendor supplies no runtime
            geocoder: Address resolution collaborator
        """
        self.runtime_resolver = runtime_resolver
        self.geocoder = geocoder

    def build(
        self,
        chain: str,
        title: str,
        film: str,
        start: datetime,
        address: str,
        attendee_count: int,
        seats: str,
        rating: str,
        booking_reference: str,
        runtime_minutes: Optional[int] = None,
        source_link: Optional[str] = None
    ) -> BookingEvent:
        """
        Build a booking event.

        Args:
            chain: Cinema chain display name
            title: Calendar entry title
            film: Film title used for runtime lookup
            start: Screening start time
            address: Cinema name or address as written in the email
            attendee_count: Number of people going
            seats: Seat display string
            rating: Certification, "Unknown" if not provided
            booking_reference: Vendor booking reference
            runtime_minutes: Vendor-supplied runtime, if any
            source_link: Link back to the source message, if any

        Returns:
            BookingEvent with end time, location and description resolved
        """
        chain = chain.strip()
        film = film.strip()

        if runtime_minutes is None:
            runtime_minutes = self.runtime_resolver.resolve(film)
        if runtime_minutes is None:
            logger.info(
                f"No runtime known for '{film}', using default of "
                f"{DEFAULT_RUNTIME_MINUTES} minutes"
            )
            runtime_minutes = DEFAULT_RUNTIME_MINUTES

        end = start + timedelta(minutes=runtime_minutes + POST_ROLL_PADDING_MINUTES)
        location = self.resolve_location(f"{chain}, {address.strip()}")

        description = self.describe(
            booking_reference=booking_reference.strip(),
            attendee_count=attendee_count,
            seats=seats.strip(),
            rating=rating.strip(),
            runtime_minutes=runtime_minutes,
            source_link=source_link
        )

        return BookingEvent(
            chain=chain,
            title=title.strip(),
            film=film,
            start=start,
            end=end,
            location=location,
            attendee_count=attendee_count,
            seats=seats.strip(),
            rating=rating.strip(),
            booking_reference=booking_reference.strip(),
            description=description,
            runtime_minutes=runtime_minutes
        )

    def resolve_location(self, raw_location: str) -> str:
        """Return the first geocoded address, or the raw location if none."""
        raw_location = raw_location.strip()
        candidates = self.geocoder.geocode(raw_location)
        if not candidates:
            logger.info(f"Could not resolve address '{raw_location}', keeping it as written")
            return raw_location
        return candidates[0].strip()

    @staticmethod
    def describe(
        booking_reference: str,
        attendee_count: int,
        seats: str,
        rating: str,
        runtime_minutes: int,
        source_link: Optional[str] = None
    ) -> str:
        """Render the calendar entry description, ending with the provenance tag."""
        lines = [
            f"Booking reference: {booking_reference}",
            f"Attendees: {attendee_count}",
            f"Seats: {seats}",
            f"Rating: {rating}",
            f"Running time: {runtime_minutes} minutes",
        ]
        if source_link:
            lines.append(f"Email: {source_link}")
        lines.append('')
        lines.append(PROVENANCE_TAG)
        return '\n'.join(lines)
