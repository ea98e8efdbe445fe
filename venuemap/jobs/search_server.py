"""HTTP entrypoint exposing resolved venue search and event grouping."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict

import requests
from flask import Flask, jsonify, request

from venuemap.core.config import get_settings
from venuemap.core.geo import coordinate_from
from venuemap.etl.transform import to_geo_events
from venuemap.markers.grouping import group_events
from venuemap.matching.search import VenueSearch, build_search
from venuemap.vendors.venue_api import VenueApiError

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App ----------
app = Flask(__name__)


@lru_cache(maxsize=1)
def get_search() -> VenueSearch:
    return build_search(get_settings())


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "external_provider": settings.external_provider,
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


@app.post("/venues/search")
def search_venues() -> Any:
    """
    Search internal venues and external places, dropping external duplicates.
    Required JSON fields: query
    Optional: lat, lng (bias for the external provider)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    query = str(payload.get("query") or "").strip()
    if not query:
        return jsonify({"error": "missing fields: query"}), 400

    center = None
    if payload.get("lat") is not None or payload.get("lng") is not None:
        center = coordinate_from(payload.get("lat"), payload.get("lng"))
        if center is None:
            return jsonify({"error": "lat and lng must be a valid coordinate"}), 400

    try:
        result = get_search().search(query, center)
    except (VenueApiError, requests.RequestException) as exc:
        logger.error("Venue store search failed for query=%s: %s", query, exc)
        return jsonify({"error": "venue search unavailable"}), 502

    return jsonify({"data": result.to_dict()}), 200


@app.post("/events/groups")
def events_groups() -> Any:
    """Group posted events by location key and report the count per key."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    events_raw = payload.get("events")
    if not isinstance(events_raw, list):
        return jsonify({"error": "events must be a list"}), 400

    groups = group_events(to_geo_events(events_raw), get_settings().location_key_precision)
    data = [
        {
            "locationKey": key,
            "eventCount": group.event_count,
            "eventIds": [event.id for event in group.events],
            "representativeEventId": group.representative.id,
        }
        for key, group in groups.items()
    ]
    return jsonify({"data": data}), 200


def main() -> None:
    port = get_settings().port
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
