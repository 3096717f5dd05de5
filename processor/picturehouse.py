"""Grammar for Picturehouse booking confirmation emails."""
import re
from typing import Dict, List, Optional, Union

from processor.booking_builder import BookingBuilder
from processor.grammar import (
    ALL,
    BODY,
    DETAILS_LABEL,
    FIRST,
    FieldExtractor,
    VendorGrammar,
    register_grammar,
)
from processor.models import BookingEvent, MailQuery


@register_grammar
class PicturehouseGrammar(VendorGrammar):
    """
    Picturehouse order confirmation emails.

    Date and time are separate lines written in a UK locale, no running time
    is given, and the number of attendees is the number of seats listed.
    """

    chain = 'picturehouse'
    display_name = 'Picturehouse'
    rating = 'Unknown'

    event_query = MailQuery(
        sender='no-reply@picturehouses.com',
        subjects=('Booking Confirmation for',)
    )

    DATE_FORMATS = (
        '%A %d %B %Y %H:%M',
        '%A, %d %B %Y %H:%M',
        '%a %d %b %Y %H:%M',
        '%d %B %Y %H:%M',
        '%d %b %Y %H:%M',
        '%d/%m/%Y %H:%M',
        '%A %d %B %Y %I:%M %p',
        '%A, %d %B %Y %I:%M %p',
        '%a %d %b %Y %I:%M %p',
        '%d %B %Y %I:%M %p',
        '%d %b %Y %I:%M %p',
        '%d/%m/%Y %I:%M %p',
    )

    extractors = (
        # The reference is the first bold token in the body
        FieldExtractor(
            'booking reference',
            re.compile(r'\*([a-zA-Z0-9]+)\*'),
            scope=BODY,
            mode=FIRST
        ),
        FieldExtractor(
            DETAILS_LABEL,
            re.compile(r'(?<=Your Order).*(?=About your order)', re.S),
            scope=BODY
        ),
        FieldExtractor('film name', re.compile(r'Film/Event:(.*)')),
        FieldExtractor('cinema name', re.compile(r'Cinema:(.*)')),
        FieldExtractor('date', re.compile(r'Date:(.*)')),
        FieldExtractor('time', re.compile(r'Time:(.*)')),
        FieldExtractor('screen', re.compile(r'Screen:(.*)')),
        # Every seat-shaped token in the block counts, not only those on the
        # Tickets or Member lines.
        FieldExtractor(
            'seats',
            re.compile(r'(?<=[Tickets:.*| Member])[A-Z]+-[0-9]*'),
            mode=ALL
        ),
    )

    def assemble(
        self,
        fields: Dict[str, Union[str, List[str]]],
        builder: BookingBuilder,
        source_link: Optional[str]
    ) -> Optional[BookingEvent]:
        film = fields['film name'].strip()
        start = self.parse_datetime(
            'date',
            f"{fields['date'].strip()} {fields['time'].strip()}",
            self.DATE_FORMATS
        )
        seats = fields['seats']

        return builder.build(
            chain=self.display_name,
            title=film,
            film=film,
            start=start,
            address=fields['cinema name'],
            attendee_count=len(seats),
            seats=', '.join(seats),
            rating=self.rating,
            booking_reference=fields['booking reference'],
            source_link=source_link
        )
