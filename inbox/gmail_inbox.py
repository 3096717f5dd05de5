"""Gmail mailbox search for booking confirmation threads."""
import base64
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests
from google.auth.exceptions import GoogleAuthError
from bs4 import BeautifulSoup

from inbox.google_auth import GoogleOAuthSession
from lookup.http_client import RetryingHttpClient
from processor.errors import MailboxError
from processor.models import MailMessage, MailQuery, MailThread

logger = logging.getLogger(__name__)


class GmailInbox:
    """Searches a Gmail mailbox through the Gmail REST API."""

    BASE_URL = "https://gmail.googleapis.com/gmail/v1/users/me"
    PAGE_SIZE = 100

    def __init__(self, auth: GoogleOAuthSession, http: Optional[RetryingHttpClient] = None):
        """
        Initialize the inbox.

        Args:
            auth: OAuth session with gmail.readonly scope
            http: HTTP client (default: RetryingHttpClient())
        """
        self.auth = auth
        self.http = http or RetryingHttpClient()

    def search(self, query: MailQuery) -> List[MailThread]:
        """
        Find every thread matching a query, with full message bodies.

        Args:
            query: Search criteria

        Returns:
            List of MailThread objects

        Raises:
            MailboxError: If Gmail cannot be searched
        """
        search_string = query.to_search_string()
        logger.info(f"Searching mailbox with query: {search_string}")

        try:
            thread_ids = self._list_thread_ids(search_string)
            return [self._get_thread(thread_id) for thread_id in thread_ids]
        except (requests.RequestException, GoogleAuthError) as e:
            raise MailboxError(f"Mailbox search '{search_string}' failed: {e}") from e

    def _list_thread_ids(self, search_string: str) -> List[str]:
        thread_ids = []
        params = {'q': search_string, 'maxResults': self.PAGE_SIZE}

        # Handle pagination
        while True:
            response = self.http.get(
                f"{self.BASE_URL}/threads",
                params=params,
                headers=self.auth.headers()
            )
            payload = response.json()
            thread_ids.extend(thread['id'] for thread in payload.get('threads', []))

            if 'nextPageToken' not in payload:
                return thread_ids
            params = dict(params, pageToken=payload['nextPageToken'])

    def _get_thread(self, thread_id: str) -> MailThread:
        response = self.http.get(
            f"{self.BASE_URL}/threads/{thread_id}",
            params={'format': 'full'},
            headers=self.auth.headers()
        )
        messages = [
            MailMessage(
                message_id=message['id'],
                thread_id=thread_id,
                received_at=datetime.fromtimestamp(int(message.get('internalDate', 0)) / 1000),
                body=self.extract_body(message.get('payload', {}))
            )
            for message in response.json().get('messages', [])
        ]
        return MailThread(thread_id=thread_id, messages=messages)

    @classmethod
    def extract_body(cls, payload: Dict[str, Any]) -> str:
        """
        Return the plain-text body of a message payload.

        The text/plain part is preferred; otherwise the text/html part is
        converted to text.

        Args:
            payload: Gmail message payload

        Returns:
            Plain-text body, empty if the message has no text part
        """
        plain = cls._find_part(payload, 'text/plain')
        if plain is not None:
            return plain

        html = cls._find_part(payload, 'text/html')
        if html is not None:
            soup = BeautifulSoup(html, 'html.parser')
            return soup.get_text('\n')

        return ''

    @classmethod
    def _find_part(cls, part: Dict[str, Any], mime_type: str) -> Optional[str]:
        if part.get('mimeType') == mime_type and part.get('body', {}).get('data'):
            return cls._decode(part['body']['data'])

        for child in part.get('parts', []) or []:
            found = cls._find_part(child, mime_type)
            if found is not None:
                return found
        return None

    @staticmethod
    def _decode(data: str) -> str:
        padded = data + '=' * (-len(data) % 4)
        return base64.urlsafe_b64decode(padded).decode('utf-8', errors='replace')
