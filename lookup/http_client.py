"""HTTP session with retry and exponential backoff for external services."""
import logging
import time
from typing import Optional

import requests

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# A POST may have been applied before its response was lost
IDEMPOTENT_METHODS = {'GET', 'HEAD', 'PUT', 'PATCH', 'DELETE'}


class RetryingHttpClient:
    """Thin wrapper around requests.Session retrying transient failures."""

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 3,
        base_delay: float = 1,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the HTTP client.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per request (default: 3)
            base_delay: Backoff delay before the second attempt, in seconds
            session: Optional pre-configured session
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.session = session or requests.Session()

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Send a request, retrying connection errors, timeouts, 429 and 5xx.

        Only idempotent methods are retried; a POST is attempted once.

        Args:
            method: HTTP method
            url: Request URL
            **kwargs: Passed through to requests.Session.request

        Returns:
            Successful response

        Raises:
            requests.RequestException: If the request fails with a
                non-retryable status or all retry attempts fail
        """
        kwargs.setdefault('timeout', self.timeout)
        attempts = self.max_retries if method.upper() in IDEMPOTENT_METHODS else 1

        for attempt in range(attempts):
            try:
                logger.debug(f"{method} {url} (attempt {attempt + 1}/{attempts})")
                response = self.session.request(method, url, **kwargs)
                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if not self._is_retryable(e) or attempt >= attempts - 1:
                    if attempt > 0:
                        logger.error(
                            f"All {attempt + 1} attempts for {method} {url} failed. "
                            f"Last error: {e}"
                        )
                    raise

                # Calculate exponential backoff delay
                delay = self.base_delay * (2 ** attempt)
                logger.warning(
                    f"Request failed (attempt {attempt + 1}/{attempts}): {e}. "
                    f"Retrying in {delay} seconds..."
                )
                time.sleep(delay)

    def get(self, url: str, **kwargs) -> requests.Response:
        return self.request('GET', url, **kwargs)

    def post(self, url: str, **kwargs) -> requests.Response:
        return self.request('POST', url, **kwargs)

    @staticmethod
    def _is_retryable(error: requests.RequestException) -> bool:
        if isinstance(error, requests.HTTPError):
            response = error.response
            return response is not None and response.status_code in RETRYABLE_STATUS_CODES
        return isinstance(error, (requests.ConnectionError, requests.Timeout))
