"""SerpAPI Google Maps as an alternate external place-search provider."""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Dict, Iterable, List, Optional

from serpapi import GoogleSearch

from venuemap.core.geo import Coordinate
from venuemap.etl.transform import to_external_candidate
from venuemap.models import ExternalCandidate

logger = logging.getLogger(__name__)

RETRY_LIMIT = 1
RETRY_DELAY_SECONDS = 0.5
DEFAULT_ZOOM = 14


class SerpApiError(RuntimeError):
    """Raised when SerpAPI answers with an error payload."""


def build_serpapi_params(query: str, api_key: str, center: Optional[Coordinate] = None) -> Dict[str, Any]:
    """Construct SerpAPI request parameters for the Google Maps engine."""
    if not query or not query.strip():
        raise ValueError("Query must be provided for SerpAPI lookups.")

    params: Dict[str, Any] = {
        "engine": "google_maps",
        "q": query.strip(),
        "api_key": api_key,
        "type": "search",
    }
    if center is not None:
        params["ll"] = f"@{center.latitude},{center.longitude},{DEFAULT_ZOOM}z"
    return params


def fetch_from_serpapi(params: Dict[str, Any]) -> Dict[str, Any]:
    """Call SerpAPI Google Maps and return the raw JSON response with retry logic."""
    attempt = 0
    while True:
        attempt += 1
        try:
            logger.info("Calling SerpAPI (attempt %s) for q=%s ll=%s", attempt, params.get("q"), params.get("ll"))
            data = GoogleSearch(params).get_dict()
            if not data:
                raise SerpApiError("SerpAPI returned an empty payload.")
            if "error" in data:
                raise SerpApiError(f"SerpAPI returned an error response: {data.get('error')}")
            return data
        except Exception as exc:
            logger.warning("SerpAPI request failed (attempt %s/%s): %s", attempt, RETRY_LIMIT + 1, exc)
            if attempt > RETRY_LIMIT:
                raise
            time.sleep(RETRY_DELAY_SECONDS + random.uniform(0, 0.3))


def parse_serpapi_maps(data: Optional[Dict[str, Any]]) -> List[ExternalCandidate]:
    """Extract SerpAPI local/place results into ExternalCandidate objects."""
    if not data:
        return []

    items = _extract_items(data)
    if not items:
        place_results = data.get("place_results")
        if isinstance(place_results, list):
            items = place_results
        elif isinstance(place_results, dict):
            items = [place_results]

    candidates: List[ExternalCandidate] = []
    for raw in items:
        if not isinstance(raw, dict):
            continue
        candidate = to_external_candidate(raw, source="serpapi")
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def _extract_items(data: Dict[str, Any]) -> Iterable[Any]:
    """SerpAPI sometimes returns local_results as a list or nested dict."""
    local_results = data.get("local_results")
    if isinstance(local_results, list):
        return local_results
    if isinstance(local_results, dict):
        for maybe in (local_results.get("places"), local_results.get("results")):
            if isinstance(maybe, list):
                return maybe
    return []


class SerpApiProvider:
    source = "serpapi"

    def __init__(self, api_key: str):
        self.api_key = api_key

    def search(self, query: str, center: Optional[Coordinate] = None) -> List[ExternalCandidate]:
        params = build_serpapi_params(query, self.api_key, center)
        return parse_serpapi_maps(fetch_from_serpapi(params))
