"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, List, Optional

import requests

from venuemap.core.geo import Coordinate
from venuemap.etl.transform import to_external_candidate
from venuemap.models import ExternalCandidate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
DEFAULT_RADIUS_M = 5000


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def text_search(
    query: str,
    api_key: str,
    location: Optional[Coordinate] = None,
    radius: int = DEFAULT_RADIUS_M,
    timeout: float = 10,
) -> Dict[str, Any]:
    params: Dict[str, Any] = {"query": query, "key": api_key}
    if location is not None:
        params["location"] = f"{location.latitude},{location.longitude}"
        params["radius"] = radius
    response = _SESSION.get(f"{_BASE_URL}/textsearch/json", params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("text_search failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status)
    return payload


class GooglePlacesProvider:
    """External place-search provider backed by Places text search."""

    source = "google_places"

    def __init__(self, api_key: str, timeout: float = 10, radius: int = DEFAULT_RADIUS_M):
        self.api_key = api_key
        self.timeout = timeout
        self.radius = radius

    def search(self, query: str, center: Optional[Coordinate] = None) -> List[ExternalCandidate]:
        logger.info("Running Places text search for query=%s center=%s", query, center)
        payload = text_search(query, self.api_key, location=center, radius=self.radius, timeout=self.timeout)
        candidates = []
        for result in payload.get("results", []):
            candidate = to_external_candidate(result, source=self.source)
            if candidate is not None:
                candidates.append(candidate)
        return candidates
