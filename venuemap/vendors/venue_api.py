"""Client for the internal venue store's search endpoint."""

import logging
from typing import Any, Dict, List, Sequence

import requests

from venuemap.etl.transform import to_internal_venue
from venuemap.models import InternalVenue

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

VENUE_TYPES = ("bar", "night_club", "music_venue")


class VenueApiError(RuntimeError):
    """Raised when the venue store answers with a non-2xx status."""


def search_venues(
    query: str,
    base_url: str,
    types: Sequence[str] = VENUE_TYPES,
    timeout: float = 10,
) -> Dict[str, Any]:
    body = {"query": query, "includeNameVariants": True, "types": list(types)}
    response = _SESSION.post(f"{base_url}/api/venues/search", json=body, timeout=timeout)
    if not (200 <= response.status_code < 300):
        logger.error("Venue search returned %s: %s", response.status_code, response.text[:500])
        raise VenueApiError(f"HTTP {response.status_code}")
    return response.json()


class VenueApiClient:
    """Internal venue store; results include venues matched through their name variants."""

    def __init__(self, base_url: str, timeout: float = 10):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def search(self, query: str) -> List[InternalVenue]:
        logger.info("Searching internal venues for query=%s", query)
        payload = search_venues(query, self.base_url, timeout=self.timeout)
        venues = []
        for raw in payload.get("venues") or []:
            if not isinstance(raw, dict):
                continue
            venue = to_internal_venue(raw)
            if venue is not None:
                venues.append(venue)
        return venues
