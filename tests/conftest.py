"""Shared fixtures and fake collaborators for the test suite."""
from dataclasses import replace
from datetime import datetime

import pytest

from processor.booking_builder import BookingBuilder
from processor.models import CalendarEntry, MailMessage, MailThread
from processor.runtime_resolver import RuntimeResolver


CINEWORLD_BODY = """\
Hi Alex,

Thanks for booking with Cineworld.

Your booking reference number is: *CW4X9K2P*

You are going to see: *Wicked*
Cinema address: *Leicester Square, 5-6 Leicester Square, London WC2H 7NA*
Date: *25/12/2024 18:30*
Number of people going: *2*
Screen: *Screen 3*
Seat(s): *F7, F8*
Certification: *PG*
Running time: *118 minutes*

Use your e-ticket to get into the cinema. Just show it at the door.

Cineworld Cinemas Limited
"""

PICTUREHOUSE_BODY = """\
Thanks for your booking!

Booking reference: *PH55102*

Your Order
Film/Event: Paddington in Peru (2D)
Cinema: Ritzy Picturehouse
Date: Saturday 28 December 2024
Time: 14:30
Screen: Screen 2
Tickets: Adult G-12
 Member G-13

About your order
Please arrive in good time. Tickets are non-refundable.
"""


class FakeMetadataClient:
    """Metadata service answering from a title -> runtime mapping."""

    def __init__(self, runtimes=None):
        self.runtimes = runtimes or {}
        self.searches = []

    def search(self, term):
        self.searches.append(term)
        if term not in self.runtimes:
            return []
        return [{'id': term, 'title': term}]

    def detail(self, candidate_id):
        return {'id': candidate_id, 'runtime': self.runtimes[candidate_id]}


class FakeGeocoder:
    """Geocoder answering from an address -> formatted address mapping."""

    def __init__(self, addresses=None):
        self.addresses = addresses or {}
        self.requests = []

    def geocode(self, address):
        self.requests.append(address)
        if address in self.addresses:
            return [self.addresses[address]]
        return []


class FakeCalendarStore:
    """In-memory calendar store keeping entries in creation order."""

    def __init__(self, entries=None):
        self.entries = list(entries or [])
        self.created = []
        self.updated = []
        self.deleted = []
        self._next_id = len(self.entries) + 1

    def query(self, start, end, description_contains):
        return [
            replace(entry) for entry in self.entries
            if entry.start < end and entry.end > start
            and description_contains in entry.description
        ]

    def create(self, title, start, end, description, location):
        entry = CalendarEntry(
            id=f"entry-{self._next_id}",
            title=title,
            start=start,
            end=end,
            location=location,
            description=description
        )
        self._next_id += 1
        self.entries.append(entry)
        self.created.append(entry.id)
        return replace(entry)

    def update(self, entry_id, title, start, end, description, location):
        entry = self._get(entry_id)
        entry.title = title
        entry.start = start
        entry.end = end
        entry.description = description
        entry.location = location
        self.updated.append(entry_id)

    def delete(self, entry_id):
        self.entries.remove(self._get(entry_id))
        self.deleted.append(entry_id)

    def _get(self, entry_id):
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        raise KeyError(entry_id)


class FakeInbox:
    """Inbox returning canned threads per sender address."""

    def __init__(self, threads_by_sender=None):
        self.threads_by_sender = threads_by_sender or {}
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        return self.threads_by_sender.get(query.sender, [])


def make_thread(thread_id, *bodies, first_received=datetime(2024, 12, 1, 9, 0)):
    """Build a thread whose messages arrive one hour apart, newest first."""
    messages = [
        MailMessage(
            message_id=f"{thread_id}-{index}",
            thread_id=thread_id,
            received_at=first_received.replace(hour=first_received.hour + index),
            body=body
        )
        for index, body in enumerate(bodies)
    ]
    return MailThread(thread_id=thread_id, messages=list(reversed(messages)))


@pytest.fixture
def cineworld_body():
    return CINEWORLD_BODY


@pytest.fixture
def picturehouse_body():
    return PICTUREHOUSE_BODY


@pytest.fixture
def metadata_client():
    return FakeMetadataClient({'Paddington in Peru': 95})


@pytest.fixture
def geocoder():
    return FakeGeocoder()


@pytest.fixture
def builder(metadata_client, geocoder):
    return BookingBuilder(RuntimeResolver(metadata_client), geocoder)


@pytest.fixture
def calendar_store():
    return FakeCalendarStore()
