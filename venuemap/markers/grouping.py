"""Bucketing of events into co-located groups, plus the filters applied beforehand."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from venuemap.core import geo
from venuemap.models import GeoEvent, LocationGroup

logger = logging.getLogger(__name__)

FILTER_ARTIST = "artist"
FILTER_VENUE = "venue"
FILTER_NOMATCH = "nomatch"


def group_events(
    events: Iterable[GeoEvent],
    precision: int = geo.DEFAULT_KEY_PRECISION,
) -> Dict[str, LocationGroup]:
    """Group events by location key.

    Events without a usable coordinate are skipped. Keys appear in order of
    first appearance and each group keeps the relative order of its events.
    """
    buckets: Dict[str, List[GeoEvent]] = {}
    anchors: Dict[str, geo.Coordinate] = {}
    skipped = 0
    for event in events:
        if not geo.is_valid(event.coordinate):
            skipped += 1
            continue
        key = geo.location_key(event.coordinate, precision)
        if key not in buckets:
            buckets[key] = []
            anchors[key] = event.coordinate
        buckets[key].append(event)

    if skipped:
        logger.debug("Skipped %d events without a usable location", skipped)
    return {
        key: LocationGroup(location_key=key, coordinate=anchors[key], events=tuple(bucket))
        for key, bucket in buckets.items()
    }


def representative_events(groups: Dict[str, LocationGroup]) -> List[GeoEvent]:
    return [group.representative for group in groups.values()]


def filter_events(
    events: Iterable[GeoEvent],
    date_range: Optional[Tuple[Optional[date], Optional[date]]] = None,
    filter_type: Optional[str] = None,
    term: Optional[str] = None,
) -> List[GeoEvent]:
    """Apply the map's date-range and artist/venue search filters.

    ``date_range`` bounds are inclusive and compared against the event's start
    date; events without a start date are dropped when a range is given. A
    ``filter_type`` of ``"nomatch"`` means the search found nothing.
    """
    selected = list(events)

    if date_range is not None:
        start, end = (_as_date(bound) for bound in date_range)
        selected = [event for event in selected if _in_range(event, start, end)]

    if filter_type == FILTER_NOMATCH:
        return []
    needle = (term or "").strip().lower()
    if filter_type and needle:
        if filter_type == FILTER_ARTIST:
            selected = [event for event in selected if needle in event.name.lower()]
        elif filter_type == FILTER_VENUE:
            selected = [event for event in selected if needle in event.venue_name.lower()]
        else:
            logger.warning("Ignoring unknown event filter type %r", filter_type)
    return selected


def _as_date(value: Optional[date]) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def _in_range(event: GeoEvent, start: Optional[date], end: Optional[date]) -> bool:
    if event.start is None:
        return False
    day = event.start.date()
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True
