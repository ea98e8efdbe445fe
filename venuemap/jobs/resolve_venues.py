"""CLI job that runs one dual-source venue search and prints the resolved set."""

import argparse
import json
import logging
from typing import Optional

from venuemap.core.config import ConfigError, get_settings
from venuemap.core.geo import coordinate_from
from venuemap.matching.search import build_search
from venuemap.models import ResolvedCandidateSet

logger = logging.getLogger(__name__)


def run_resolve(query: str, lat: Optional[float] = None, lng: Optional[float] = None) -> ResolvedCandidateSet:
    query = query.strip()
    if not query:
        raise ValueError("Query must not be empty")

    center = coordinate_from(lat, lng) if lat is not None and lng is not None else None
    with build_search(get_settings()) as search:
        result = search.search(query, center)

    logger.info(
        "Resolved query=%s: %d internal venues, %d external candidates%s",
        query,
        len(result.internal_venues),
        len(result.external_candidates),
        " (degraded)" if result.degraded else "",
    )
    return result


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search venues across the internal store and the place provider.")
    parser.add_argument("query", help="Venue name to search, e.g. 'the garage'")
    parser.add_argument("--lat", type=float, default=None, help="Latitude of the map center")
    parser.add_argument("--lng", type=float, default=None, help="Longitude of the map center")
    return parser.parse_args()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = _parse_args()
    try:
        result = run_resolve(args.query, lat=args.lat, lng=args.lng)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except Exception as exc:  # noqa: BLE001
        logger.error("Venue search failed: %s", exc, exc_info=True)
        return 1
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
