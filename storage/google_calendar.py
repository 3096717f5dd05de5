"""Google Calendar store for booking entries."""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote
from zoneinfo import ZoneInfo

import requests
from google.auth.exceptions import GoogleAuthError

from inbox.google_auth import GoogleOAuthSession
from lookup.http_client import RetryingHttpClient
from processor.calendar_reconciler import CalendarStore
from processor.errors import CalendarStoreError
from processor.models import CalendarEntry

logger = logging.getLogger(__name__)


class GoogleCalendarStore:
    """
    Calendar store backed by one Google calendar.

    Datetimes are naive local times in the calendar's timezone on the way in
    and on the way out.
    """

    BASE_URL = "https://www.googleapis.com/calendar/v3/calendars"

    def __init__(
        self,
        calendar_id: str,
        auth: GoogleOAuthSession,
        timezone: str = 'Europe/London',
        http: Optional[RetryingHttpClient] = None
    ):
        """
        Initialize the calendar store.

        Args:
            calendar_id: Google calendar id
            auth: OAuth session with calendar scope
            timezone: IANA timezone of the booking times
            http: HTTP client (default: RetryingHttpClient())
        """
        self.calendar_id = calendar_id
        self.auth = auth
        self.timezone = timezone
        self.tz = ZoneInfo(timezone)
        self.http = http or RetryingHttpClient()
        self.events_url = f"{self.BASE_URL}/{quote(calendar_id, safe='@.')}/events"
        logger.info(f"Initialized GoogleCalendarStore for calendar: {calendar_id}")

    def query(self, start: datetime, end: datetime, description_contains: str) -> List[CalendarEntry]:
        """
        List the entries overlapping [start, end) that mention a text.

        Args:
            start: Range start
            end: Range end
            description_contains: Text searched for in entries

        Returns:
            Entries in the order returned by Google, all-day entries excluded

        Raises:
            CalendarStoreError: If the calendar cannot be read
        """
        params = {
            'timeMin': self._to_rfc3339(start),
            'timeMax': self._to_rfc3339(end),
            'q': description_contains,
            'singleEvents': 'true',
            'timeZone': self.timezone
        }
        items = []

        try:
            # Handle pagination
            while True:
                response = self.http.get(self.events_url, params=params, headers=self.auth.headers())
                payload = response.json()
                items.extend(payload.get('items', []))

                if 'nextPageToken' not in payload:
                    break
                params = dict(params, pageToken=payload['nextPageToken'])
        except (requests.RequestException, GoogleAuthError) as e:
            raise CalendarStoreError(f"Error querying calendar {self.calendar_id}: {e}") from e

        entries = []
        for item in items:
            entry = self._item_to_entry(item)
            if entry and description_contains in entry.description:
                entries.append(entry)
        return entries

    def create(self, title: str, start: datetime, end: datetime, description: str, location: str) -> CalendarEntry:
        """
        Create an entry.

        Raises:
            CalendarStoreError: If the entry cannot be created
        """
        body = self._entry_to_item(title, start, end, description, location)
        try:
            response = self.http.post(self.events_url, json=body, headers=self.auth.headers())
        except (requests.RequestException, GoogleAuthError) as e:
            raise CalendarStoreError(f"Error creating entry '{title}': {e}") from e

        entry = self._item_to_entry(response.json())
        logger.info(f"Created entry {entry.id} '{title}'")
        return entry

    def update(self, entry_id: str, title: str, start: datetime, end: datetime, description: str, location: str) -> None:
        """
        Overwrite an entry's title, times, description and location.

        Raises:
            CalendarStoreError: If the entry cannot be updated
        """
        body = self._entry_to_item(title, start, end, description, location)
        try:
            self.http.request(
                'PATCH',
                f"{self.events_url}/{entry_id}",
                json=body,
                headers=self.auth.headers()
            )
        except (requests.RequestException, GoogleAuthError) as e:
            raise CalendarStoreError(f"Error updating entry {entry_id}: {e}") from e
        logger.info(f"Updated entry {entry_id} '{title}'")

    def delete(self, entry_id: str) -> None:
        """
        Delete an entry.

        An entry that is already gone counts as deleted.

        Raises:
            CalendarStoreError: If the entry cannot be deleted
        """
        try:
            self.http.request('DELETE', f"{self.events_url}/{entry_id}", headers=self.auth.headers())
        except requests.HTTPError as e:
            if e.response is None or e.response.status_code not in (404, 410):
                raise CalendarStoreError(f"Error deleting entry {entry_id}: {e}") from e
            logger.info(f"Entry {entry_id} was already deleted")
            return
        except (requests.RequestException, GoogleAuthError) as e:
            raise CalendarStoreError(f"Error deleting entry {entry_id}: {e}") from e
        logger.info(f"Deleted entry {entry_id}")

    def _to_rfc3339(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=self.tz)
        return value.isoformat()

    def _to_local(self, value: str) -> datetime:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        if parsed.tzinfo is None:
            return parsed
        return parsed.astimezone(self.tz).replace(tzinfo=None)

    def _entry_to_item(self, title: str, start: datetime, end: datetime, description: str, location: str) -> Dict[str, Any]:
        return {
            'summary': title,
            'description': description,
            'location': location,
            'start': {'dateTime': start.isoformat(), 'timeZone': self.timezone},
            'end': {'dateTime': end.isoformat(), 'timeZone': self.timezone}
        }

    def _item_to_entry(self, item: Dict[str, Any]) -> Optional[CalendarEntry]:
        start = item.get('start', {}).get('dateTime')
        end = item.get('end', {}).get('dateTime')
        if not start or not end:
            return None

        return CalendarEntry(
            id=item['id'],
            title=item.get('summary', ''),
            start=self._to_local(start),
            end=self._to_local(end),
            location=item.get('location', ''),
            description=item.get('description', '')
        )


class DryRunCalendarStore:
    """Reads from a real store but only logs the changes it would make."""

    def __init__(self, store: CalendarStore):
        self.store = store
        self._created = 0

    def query(self, start: datetime, end: datetime, description_contains: str) -> List[CalendarEntry]:
        return self.store.query(start, end, description_contains)

    def create(self, title: str, start: datetime, end: datetime, description: str, location: str) -> CalendarEntry:
        self._created += 1
        logger.info(f"[dry run] Would create entry '{title}' from {start} to {end} at {location}")
        return CalendarEntry(
            id=f"dry-run-{self._created}",
            title=title,
            start=start,
            end=end,
            location=location,
            description=description
        )

    def update(self, entry_id: str, title: str, start: datetime, end: datetime, description: str, location: str) -> None:
        logger.info(f"[dry run] Would update entry {entry_id} to '{title}' from {start} to {end}")

    def delete(self, entry_id: str) -> None:
        logger.info(f"[dry run] Would delete entry {entry_id}")
