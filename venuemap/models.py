"""Data models shared by the venue matcher and the event marker layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Tuple, Union

from venuemap.core.geo import Coordinate


@dataclass(frozen=True, slots=True)
class InternalVenue:
    """A venue owned by the internal venue store."""

    id: str
    name: str
    name_variants: Tuple[str, ...] = ()
    address: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    external_id: Optional[str] = None
    verified: bool = False
    kind: Literal["internal"] = field(default="internal", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "name": self.name,
            "nameVariants": list(self.name_variants),
            "address": self.address,
            "location": _coordinate_dict(self.coordinate),
            "externalId": self.external_id,
            "verified": self.verified,
        }


@dataclass(frozen=True, slots=True)
class ExternalCandidate:
    """A place returned by the external place-search provider for a single search."""

    external_id: str
    name: str
    address: Optional[str] = None
    coordinate: Optional[Coordinate] = None
    source: str = "google_places"
    kind: Literal["external"] = field(default="external", init=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "externalId": self.external_id,
            "name": self.name,
            "address": self.address,
            "location": _coordinate_dict(self.coordinate),
            "source": self.source,
        }


VenueCandidate = Union[InternalVenue, ExternalCandidate]


@dataclass(frozen=True, slots=True)
class ResolvedCandidateSet:
    internal_venues: Tuple[InternalVenue, ...] = ()
    external_candidates: Tuple[ExternalCandidate, ...] = ()
    degraded: bool = False

    @property
    def candidates(self) -> Tuple[VenueCandidate, ...]:
        """Internal venues first, then the surviving external candidates."""
        return self.internal_venues + self.external_candidates

    def to_dict(self) -> Dict[str, Any]:
        return {
            "internalVenues": [venue.to_dict() for venue in self.internal_venues],
            "externalCandidates": [candidate.to_dict() for candidate in self.external_candidates],
            "degraded": self.degraded,
        }


@dataclass(frozen=True, slots=True)
class GeoEvent:
    id: str
    coordinate: Optional[Coordinate]
    start: Optional[datetime] = None
    name: str = ""
    venue_ref: Optional[str] = None
    venue_name: str = ""
    artist_refs: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class LocationGroup:
    location_key: str
    coordinate: Coordinate
    events: Tuple[GeoEvent, ...]

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def representative(self) -> GeoEvent:
        return self.events[0]


@dataclass(slots=True)
class MarkerRecord:
    """Registry entry for one visible marker; mutated only by the reconciler."""

    location_key: str
    handle: Any
    event_count: int
    representative_event: GeoEvent


def _coordinate_dict(coordinate: Optional[Coordinate]) -> Optional[Dict[str, float]]:
    if coordinate is None:
        return None
    return {"lat": coordinate.latitude, "lng": coordinate.longitude}
