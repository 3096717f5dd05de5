"""Film metadata lookups against The Movie Database (TMDB) API."""
import logging
from typing import Any, Dict, List, Optional

import requests

from lookup.http_client import RetryingHttpClient
from processor.errors import LookupServiceError

logger = logging.getLogger(__name__)


class TmdbClient:
    """Search and detail lookups for films on TMDB."""

    BASE_URL = "https://api.themoviedb.org/3"

    def __init__(self, api_key: str, http: Optional[RetryingHttpClient] = None, language: str = 'en-GB'):
        """
        Initialize the TMDB client.

        Args:
            api_key: TMDB v3 API key
            http: HTTP client (default: RetryingHttpClient())
            language: Result language
        """
        self.api_key = api_key
        self.http = http or RetryingHttpClient()
        self.language = language

    def search(self, term: str) -> List[Dict[str, Any]]:
        """
        Search films by title.

        Args:
            term: Normalized title

        Returns:
            Candidates in TMDB's order, possibly empty

        Raises:
            LookupServiceError: If TMDB cannot be reached
        """
        params = {
            'api_key': self.api_key,
            'query': term,
            'language': self.language,
            'page': 1
        }
        try:
            response = self.http.get(f"{self.BASE_URL}/search/movie", params=params)
        except requests.RequestException as e:
            raise LookupServiceError(f"TMDB search for '{term}' failed: {e}") from e

        results = response.json().get('results') or []
        logger.debug(f"TMDB search for '{term}' returned {len(results)} results")
        return results

    def detail(self, candidate_id: Any) -> Optional[Dict[str, Any]]:
        """
        Fetch the detail record of a film.

        Args:
            candidate_id: TMDB movie id

        Returns:
            Detail record, or None if TMDB has no such film

        Raises:
            LookupServiceError: If TMDB cannot be reached
        """
        params = {'api_key': self.api_key, 'language': self.language}
        try:
            response = self.http.get(f"{self.BASE_URL}/movie/{candidate_id}", params=params)
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return None
            raise LookupServiceError(f"TMDB detail for {candidate_id} failed: {e}") from e
        except requests.RequestException as e:
            raise LookupServiceError(f"TMDB detail for {candidate_id} failed: {e}") from e

        return response.json()
