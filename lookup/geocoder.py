"""Address resolution for cinema locations."""
import logging
from typing import List, Optional

import requests

from lookup.http_client import RetryingHttpClient
from processor.errors import LookupServiceError

logger = logging.getLogger(__name__)


class GoogleGeocoder:
    """Resolves free-text addresses with the Google Geocoding API."""

    BASE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: str, http: Optional[RetryingHttpClient] = None, region: str = 'uk'):
        self.api_key = api_key
        self.http = http or RetryingHttpClient()
        self.region = region

    def geocode(self, address: str) -> List[str]:
        """
        Geocode a free-text address.

        Args:
            address: Address such as "Picturehouse, Ritzy"

        Returns:
            Formatted addresses, best first; empty if nothing was found

        Raises:
            LookupServiceError: If the service fails or rejects the request
        """
        params = {'address': address, 'key': self.api_key, 'region': self.region}
        try:
            response = self.http.get(self.BASE_URL, params=params)
        except requests.RequestException as e:
            raise LookupServiceError(f"Geocoding '{address}' failed: {e}") from e

        payload = response.json()
        status = payload.get('status')
        if status == 'ZERO_RESULTS':
            return []
        if status != 'OK':
            raise LookupServiceError(
                f"Geocoding '{address}' failed with status {status}: "
                f"{payload.get('error_message', '')}"
            )

        return [
            result['formatted_address']
            for result in payload.get('results', [])
            if result.get('formatted_address')
        ]


class NullGeocoder:
    """Geocoder used when no API key is configured; resolves nothing."""

    def geocode(self, address: str) -> List[str]:
        return []
