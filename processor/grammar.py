"""Vendor grammar base for extracting bookings from confirmation emails."""
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Type, Union

from processor.booking_builder import BookingBuilder
from processor.errors import AmbiguousMatchError, MalformedFieldError
from processor.models import BookingEvent, CancellationRecord, MailQuery

logger = logging.getLogger(__name__)

BODY = 'body'
DETAILS = 'details'

ONE = 'one'
FIRST = 'first'
ALL = 'all'

DETAILS_LABEL = 'booking details'

SUBJECT_NAMES = {BODY: 'mail body', DETAILS: 'booking details'}


@dataclass(frozen=True)
class FieldExtractor:
    """
    Labelled pattern for one field of a booking email.

    The value of a match is its first capture group when the pattern has
    one, otherwise the whole match.
    """
    label: str
    pattern: re.Pattern
    scope: str = DETAILS
    mode: str = ONE

    def extract(self, text: str) -> Union[None, str, List[str]]:
        """
        Apply the pattern to text.

        Args:
            text: Text to search

        Returns:
            None when nothing matches, a list of values in ALL mode,
            otherwise the single value

        Raises:
            AmbiguousMatchError: If a ONE-mode pattern matches more than once
        """
        values = [
            match.group(1) if match.re.groups else match.group(0)
            for match in self.pattern.finditer(text)
        ]
        # A label with nothing after it is a missing field
        values = [value for value in values if value and value.strip()]
        if not values:
            return None
        if self.mode == ALL:
            return values
        if self.mode == ONE and len(values) > 1:
            raise AmbiguousMatchError(
                self.label,
                SUBJECT_NAMES[self.scope],
                text,
                f"found {len(values)} matches, expected one"
            )
        return values[0]


class VendorGrammar(ABC):
    """
    Text-extraction ruleset for one cinema chain.

    Subclasses declare the mailbox queries, the booking-details block pattern
    and the ordered field extractors, and assemble the extracted fields into a
    BookingEvent.
    """

    chain: str = ''
    event_query: MailQuery
    cancellation_query: Optional[MailQuery] = None
    extractors: Sequence[FieldExtractor] = ()

    def extract_fields(self, body: str) -> Optional[Dict[str, Union[str, List[str]]]]:
        """
        Run every extractor, narrowing to the booking-details block first.

        Args:
            body: Plain-text message body

        Returns:
            Field values keyed by label, or None if any field is missing
        """
        fields = {}
        details = None

        for extractor in self.extractors:
            if extractor.scope == DETAILS:
                if details is None:
                    details = fields.get(DETAILS_LABEL)
                if details is None:
                    raise ValueError(
                        f"{self.chain} grammar extracts '{extractor.label}' "
                        f"before the booking details block"
                    )
                text = details
            else:
                text = body

            value = extractor.extract(text)
            if value is None:
                logger.info(
                    f"No {extractor.label} found in {SUBJECT_NAMES[extractor.scope]}; "
                    f"not a {self.chain} booking email"
                )
                return None
            fields[extractor.label] = value

        return fields

    def parse_booking(
        self,
        body: str,
        builder: BookingBuilder,
        source_link: Optional[str] = None
    ) -> Optional[BookingEvent]:
        """
        Parse a message body into a booking.

        Args:
            body: Plain-text message body
            builder: Builder resolving runtime and location
            source_link: Optional link back to the source message

        Returns:
            BookingEvent, or None if the body is not a booking email

        Raises:
            GrammarDefectError: If the email no longer fits the grammar
        """
        fields = self.extract_fields(body)
        if fields is None:
            return None
        return self.assemble(fields, builder, source_link)

    def parse_cancellation(self, body: str) -> Optional[CancellationRecord]:
        """Parse a cancellation email; no cancellation format is known by default."""
        return None

    @abstractmethod
    def assemble(
        self,
        fields: Dict[str, Union[str, List[str]]],
        builder: BookingBuilder,
        source_link: Optional[str]
    ) -> Optional[BookingEvent]:
        """Build a BookingEvent from extracted field values."""

    def parse_int(self, fields: Dict[str, Union[str, List[str]]], label: str) -> int:
        """
        Strictly parse a positive integer field.

        Raises:
            MalformedFieldError: If the value is not a positive integer
        """
        raw = str(fields[label]).strip()
        if not re.fullmatch(r'[0-9]+', raw) or int(raw) < 1:
            raise MalformedFieldError(
                label, SUBJECT_NAMES[DETAILS], raw, "expected a positive integer"
            )
        return int(raw)

    def parse_datetime(self, label: str, value: str, formats: Sequence[str]) -> datetime:
        """
        Parse a date/time string against the grammar's layouts.

        Raises:
            MalformedFieldError: If no layout matches
        """
        value = ' '.join(value.split())
        for fmt in formats:
            try:
                return datetime.strptime(value, fmt)
            except ValueError:
                continue

        raise MalformedFieldError(
            label, SUBJECT_NAMES[DETAILS], value, "unrecognised date layout"
        )


_REGISTRY: Dict[str, Type[VendorGrammar]] = {}


def register_grammar(cls: Type[VendorGrammar]) -> Type[VendorGrammar]:
    """Class decorator registering a grammar under its chain name."""
    _REGISTRY[cls.chain] = cls
    return cls


def build_grammars(chains: Sequence[str]) -> List[VendorGrammar]:
    """
    Instantiate the grammars for the given chains, in order.

    Args:
        chains: Chain names such as 'cineworld'

    Returns:
        List of VendorGrammar instances

    Raises:
        KeyError: If a chain has no registered grammar
    """
    # Import for registration side effects
    import processor.cineworld  # noqa: F401
    import processor.picturehouse  # noqa: F401

    grammars = []
    for chain in chains:
        chain = chain.strip().lower()
        if chain not in _REGISTRY:
            raise KeyError(
                f"No grammar registered for cinema chain '{chain}'. "
                f"Known chains: {', '.join(sorted(_REGISTRY))}"
            )
        grammars.append(_REGISTRY[chain]())
    return grammars
