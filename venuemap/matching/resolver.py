"""De-duplication of external place candidates against internal venues.

Each external candidate is compared with every internal venue, trying three
tiers in order and stopping at the first hit:

1. identity  - the venue's external id equals the candidate's id (case-sensitive)
2. proximity - both coordinates are known and lie less than ``radius_m`` apart
3. name      - normalized name similarity against the venue name or any of its
               name variants is above ``threshold``

A matched candidate is dropped. Internal venues are always returned verbatim
and first; surviving external candidates keep their original order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

from venuemap.core import geo
from venuemap.core.similarity import best_similarity, normalize_name
from venuemap.models import ExternalCandidate, InternalVenue, ResolvedCandidateSet

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_M = 50.0
DEFAULT_SIMILARITY_THRESHOLD = 85


class MatchTier(Enum):
    IDENTITY = 1
    PROXIMITY = 2
    NAME = 3


@dataclass(frozen=True)
class _PreparedVenue:
    venue: InternalVenue
    coordinate: Optional[geo.Coordinate]
    names: Tuple[str, ...]


def prepare(venue: InternalVenue) -> _PreparedVenue:
    names = [normalize_name(venue.name)]
    for variant in venue.name_variants:
        normalized = normalize_name(variant)
        if normalized not in names:
            names.append(normalized)
    # An empty name can never be a fuzzy match.
    names = [name for name in names if name]
    coordinate = venue.coordinate if geo.is_valid(venue.coordinate) else None
    return _PreparedVenue(venue=venue, coordinate=coordinate, names=tuple(names))


def match_tier(
    venue: _PreparedVenue,
    candidate: ExternalCandidate,
    candidate_name: str,
    *,
    radius_m: float = DEFAULT_RADIUS_M,
    threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
) -> Optional[MatchTier]:
    if venue.venue.external_id and venue.venue.external_id == candidate.external_id:
        return MatchTier.IDENTITY

    if venue.coordinate is not None and geo.is_valid(candidate.coordinate):
        if geo.distance(venue.coordinate, candidate.coordinate) < radius_m:
            return MatchTier.PROXIMITY

    if candidate_name and venue.names and best_similarity(candidate_name, venue.names) > threshold:
        return MatchTier.NAME
    return None


def find_match(
    candidate: ExternalCandidate,
    venues: Sequence[_PreparedVenue],
    *,
    radius_m: float = DEFAULT_RADIUS_M,
    threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
) -> Optional[Tuple[InternalVenue, MatchTier]]:
    """Return the first internal venue the candidate duplicates, with the tier that matched."""
    candidate_name = normalize_name(candidate.name)
    for venue in venues:
        tier = match_tier(venue, candidate, candidate_name, radius_m=radius_m, threshold=threshold)
        if tier is not None:
            return venue.venue, tier
    return None


def resolve(
    internal_results: Iterable[InternalVenue],
    external_results: Iterable[ExternalCandidate],
    *,
    radius_m: float = DEFAULT_RADIUS_M,
    threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
    degraded: bool = False,
) -> ResolvedCandidateSet:
    internal = tuple(internal_results or ())
    external = tuple(external_results or ())
    prepared = [prepare(venue) for venue in internal]

    kept: List[ExternalCandidate] = []
    for candidate in external:
        match = find_match(candidate, prepared, radius_m=radius_m, threshold=threshold)
        if match is None:
            kept.append(candidate)
            continue
        venue, tier = match
        logger.debug(
            "Dropping external candidate %s (%s): %s match with venue %s",
            candidate.external_id,
            candidate.name,
            tier.name.lower(),
            venue.id,
        )

    logger.info(
        "Resolved %d internal venues and %d external candidates: kept=%d dropped=%d",
        len(internal),
        len(external),
        len(kept),
        len(external) - len(kept),
    )
    return ResolvedCandidateSet(internal_venues=internal, external_candidates=tuple(kept), degraded=degraded)
