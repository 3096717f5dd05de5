"""Film runtime lookup for vendors that do not state a running time."""
import logging
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger(__name__)


class MetadataClient(Protocol):
    def search(self, term: str) -> List[Dict[str, Any]]:
        ...

    def detail(self, candidate_id: Any) -> Optional[Dict[str, Any]]:
        ...


# Applied outside in: "+ <bonus>" qualifiers, then format tags, then edition
# markers, then programme prefixes.
BONUS_SEPARATOR = ' + '

EDITION_SUFFIXES = (
    "(Director's Cut)",
    "(Extended Edition)",
    "(Anniversary Edition)",
    "(Special Edition)",
    "(4K Restoration)",
    "- 4K Restoration",
    "(Re-release)",
    "(Subtitled)",
    "(Dubbed)",
)

FORMAT_SUFFIXES = (
    "(IMAX 3D)",
    "(IMAX)",
    "(4DX 3D)",
    "(4DX)",
    "(ScreenX)",
    "(Superscreen)",
    "(3D)",
    "(2D)",
    "(HFR)",
)

PROGRAM_PREFIXES = (
    "Dementia Friendly Screening:",
    "Autism Friendly Screening:",
    "Members' Screening:",
    "Member Screening:",
    "Big Scream:",
    "Toddler Time:",
    "Kids' Club:",
    "Silver Screen:",
    "Discover Tuesdays:",
    "Culture Shock:",
    "Preview:",
)


def normalize_title(title: str) -> str:
    """
    Strip vendor-specific noise from a film title before searching.

    Args:
        title: Raw film title as written in the booking email

    Returns:
        Search term
    """
    term = title.strip()

    if BONUS_SEPARATOR in term:
        term = term.split(BONUS_SEPARATOR, 1)[0].strip()

    for suffix in FORMAT_SUFFIXES + EDITION_SUFFIXES:
        if term.endswith(suffix):
            term = term[:-len(suffix)].strip()

    for prefix in PROGRAM_PREFIXES:
        if term.startswith(prefix):
            term = term[len(prefix):].strip()

    return term or title.strip()


class RuntimeResolver:
    """Resolves a film's runtime in minutes from a metadata service."""

    def __init__(self, client: Optional[MetadataClient]):
        """
        Initialize the resolver.

        Args:
            client: Metadata service, or None to always report unknown
        """
        self.client = client
        self._cache: Dict[str, Optional[int]] = {}

    def resolve(self, film: str) -> Optional[int]:
        """
        Look up the runtime of a film.

        Args:
            film: Raw film title

        Returns:
            Runtime in minutes, or None if unknown

        Raises:
            LookupServiceError: If the metadata service fails
        """
        if self.client is None:
            return None

        term = normalize_title(film)
        if term in self._cache:
            return self._cache[term]

        runtime = self._lookup(term)
        self._cache[term] = runtime
        return runtime

    def _lookup(self, term: str) -> Optional[int]:
        results = self.client.search(term)
        if not results:
            logger.info(f"No metadata search results for '{term}'")
            return None

        candidate_id = results[0].get('id')
        if candidate_id is None:
            return None

        detail = self.client.detail(candidate_id)
        if not detail:
            logger.info(f"No metadata detail for '{term}' (id {candidate_id})")
            return None

        runtime = detail.get('runtime')
        if not isinstance(runtime, int) or isinstance(runtime, bool) or runtime <= 0:
            logger.info(f"No usable runtime for '{term}' (id {candidate_id}): {runtime!r}")
            return None

        logger.info(f"Resolved runtime of '{term}' to {runtime} minutes")
        return runtime
