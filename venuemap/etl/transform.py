"""Utilities for turning venue API, Places and event payloads into model objects."""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from venuemap.core.geo import Coordinate, coordinate_from
from venuemap.models import ExternalCandidate, GeoEvent, InternalVenue

logger = logging.getLogger(__name__)


def parse_location(location: Any) -> Optional[Coordinate]:
    """Accept ``{"lat": .., "lng": ..}`` or ``{"latitude": .., "longitude": ..}``."""
    if not isinstance(location, dict):
        return None
    lat = location.get("lat", location.get("latitude"))
    lng = location.get("lng", location.get("longitude"))
    return coordinate_from(lat, lng)


def to_internal_venue(payload: Dict[str, Any]) -> Optional[InternalVenue]:
    venue_id = _strip_or_none(payload.get("id"))
    if not venue_id:
        logger.debug("Skipping venue without id: %s", payload)
        return None

    variants = payload.get("nameVariants") or []
    if isinstance(variants, str):
        variants = [variants]

    return InternalVenue(
        id=venue_id,
        name=_strip_or_none(payload.get("name")) or "",
        name_variants=tuple(v for v in (_strip_or_none(v) for v in variants) if v),
        address=_strip_or_none(payload.get("address")),
        coordinate=parse_location(payload.get("location")),
        external_id=_strip_or_none(payload.get("googlePlaceId")),
        verified=bool(payload.get("validated", False)),
    )


def to_external_candidate(result: Dict[str, Any], source: str = "google_places") -> Optional[ExternalCandidate]:
    """Map a Places text-search result (or a SerpAPI local result) to an ExternalCandidate."""
    external_id = _strip_or_none(result.get("place_id") or result.get("placeId"))
    name = _strip_or_none(result.get("name") or result.get("title"))
    if not external_id or not name:
        logger.debug("Skipping place without place_id or name: %s", result)
        return None

    geometry = result.get("geometry")
    geometry = geometry.get("location") if isinstance(geometry, dict) else None
    coordinate = parse_location(geometry or result.get("gps_coordinates") or result.get("location"))

    return ExternalCandidate(
        external_id=external_id,
        name=name,
        address=_strip_or_none(result.get("formatted_address") or result.get("address")),
        coordinate=coordinate,
        source=source,
    )


def to_geo_event(payload: Dict[str, Any]) -> Optional[GeoEvent]:
    event_id = _strip_or_none(payload.get("id"))
    if not event_id:
        return None
    return GeoEvent(
        id=event_id,
        coordinate=parse_location(payload.get("location")),
        start=parse_start(payload.get("date"), payload.get("startTime")),
        name=_strip_or_none(payload.get("name")) or "",
        venue_ref=_strip_or_none(payload.get("venueId")),
        venue_name=_strip_or_none(payload.get("venueName")) or "",
        artist_refs=tuple(str(a) for a in payload.get("artistIds") or []),
    )


def to_geo_events(payloads: Iterable[Any]) -> List[GeoEvent]:
    events = []
    for payload in payloads or []:
        if not isinstance(payload, dict):
            continue
        event = to_geo_event(payload)
        if event is not None:
            events.append(event)
    return events


def parse_start(day: Any, time_of_day: Any = None) -> Optional[datetime]:
    """Combine an ISO date and an optional ``HH:MM`` time; None if the date is unusable."""
    if isinstance(day, datetime):
        return day
    if isinstance(day, date):
        return datetime(day.year, day.month, day.day)
    day_str = _strip_or_none(day)
    if not day_str:
        return None
    try:
        parsed = datetime.fromisoformat(day_str)
    except ValueError:
        return None

    time_str = _strip_or_none(time_of_day)
    if time_str and len(day_str) == 10:
        try:
            hours, minutes = (int(part) for part in time_str.split(":")[:2])
            parsed = parsed.replace(hour=hours, minute=minutes)
        except ValueError:
            logger.debug("Ignoring unparseable start time %r", time_str)
    return parsed


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None
