"""Grammar for Cineworld booking confirmation emails."""
import re
from typing import Dict, List, Optional, Union

from processor.booking_builder import BookingBuilder
from processor.grammar import (
    BODY,
    DETAILS_LABEL,
    FieldExtractor,
    VendorGrammar,
    register_grammar,
)
from processor.models import BookingEvent, MailQuery


@register_grammar
class CineworldGrammar(VendorGrammar):
    """
    Cineworld e-ticket emails.

    Fields are bold (``*value*``) in the plain-text rendering; the date holds
    day/month/year and a 24-hour time, and the running time is stated.
    """

    chain = 'cineworld'
    display_name = 'Cineworld'

    event_query = MailQuery(
        sender='tickets@cineworldtickets.com',
        subjects=('cineworld', 'tickets for')
    )

    DATE_FORMATS = ('%d/%m/%Y %H:%M',)

    extractors = (
        FieldExtractor(
            'booking reference',
            re.compile(r'Your booking reference\snumber\sis:\s\*?([a-zA-Z0-9]+)'),
            scope=BODY
        ),
        FieldExtractor(
            DETAILS_LABEL,
            re.compile(r'You are going to see: .*(?=Use your e-ticket)', re.S),
            scope=BODY
        ),
        FieldExtractor('film name', re.compile(r'You are going to see:\s\*?([^*\n]+)')),
        FieldExtractor('cinema address', re.compile(r'Cinema address?: \*?([^*\n]+)')),
        FieldExtractor('date', re.compile(r'Date: \*?([^*\n]+)')),
        FieldExtractor('ticket count', re.compile(r'Number of people going: \*?([^*\n]+)')),
        FieldExtractor('screen', re.compile(r'Screen: \*?([^*\n]+)')),
        FieldExtractor('seats', re.compile(r'Seat\(s\): \*?([^*\n]+)')),
        FieldExtractor('certification', re.compile(r'Certification: \*?([^*\n]+)')),
        FieldExtractor(
            'running time in minutes',
            re.compile(r'Running time: \*?([^*\n]*?) minutes')
        ),
    )

    def assemble(
        self,
        fields: Dict[str, Union[str, List[str]]],
        builder: BookingBuilder,
        source_link: Optional[str]
    ) -> Optional[BookingEvent]:
        film = fields['film name'].strip()
        start = self.parse_datetime('date', fields['date'], self.DATE_FORMATS)

        return builder.build(
            chain=self.display_name,
            title=film,
            film=film,
            start=start,
            address=fields['cinema address'],
            attendee_count=self.parse_int(fields, 'ticket count'),
            seats=fields['seats'],
            rating=fields['certification'],
            booking_reference=fields['booking reference'],
            runtime_minutes=self.parse_int(fields, 'running time in minutes'),
            source_link=source_link
        )
