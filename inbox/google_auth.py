"""OAuth2 access tokens for the Gmail and Google Calendar APIs."""
import logging
from typing import Dict, Optional

from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials

from lookup.http_client import RetryingHttpClient

logger = logging.getLogger(__name__)


class GoogleOAuthSession:
    """Holds user credentials built from a stored refresh token."""

    TOKEN_URI = "https://oauth2.googleapis.com/token"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        http: Optional[RetryingHttpClient] = None
    ):
        """
        Initialize the session.

        Args:
            client_id: OAuth client id
            client_secret: OAuth client secret
            refresh_token: Refresh token granted for the Gmail and Calendar scopes
            http: HTTP client whose session carries the token requests
        """
        self.http = http or RetryingHttpClient()
        self.credentials = Credentials(
            token=None,
            refresh_token=refresh_token,
            client_id=client_id,
            client_secret=client_secret,
            token_uri=self.TOKEN_URI
        )

    def access_token(self) -> str:
        """
        Return a valid access token, refreshing it when missing or expired.

        Raises:
            google.auth.exceptions.GoogleAuthError: If the refresh is rejected
                or the token endpoint cannot be reached
        """
        if not self.credentials.valid:
            logger.info("Refreshing Google access token")
            self.credentials.refresh(Request(session=self.http.session))
        return self.credentials.token

    def headers(self) -> Dict[str, str]:
        return {'Authorization': f"Bearer {self.access_token()}"}
