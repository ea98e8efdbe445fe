"""Dual-source venue search: internal store plus external provider, de-duplicated.

User-driven searches go through :meth:`VenueSearch.request`, which debounces
input and applies last-write-wins: every request takes a new generation number
and any run whose generation is no longer current is abandoned, either while
waiting out the debounce window or when its responses arrive.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, List, Optional, Protocol

from venuemap.core.config import ConfigError, Settings
from venuemap.core.geo import Coordinate
from venuemap.matching.resolver import DEFAULT_RADIUS_M, DEFAULT_SIMILARITY_THRESHOLD, resolve
from venuemap.models import ExternalCandidate, InternalVenue, ResolvedCandidateSet

logger = logging.getLogger(__name__)


class InternalVenueStore(Protocol):
    def search(self, query: str) -> List[InternalVenue]: ...


class PlaceSearchProvider(Protocol):
    def search(self, query: str, center: Optional[Coordinate] = None) -> List[ExternalCandidate]: ...


class VenueSearch:
    def __init__(
        self,
        store: InternalVenueStore,
        provider: Optional[PlaceSearchProvider] = None,
        *,
        timeout: float = 5.0,
        debounce_ms: int = 400,
        radius_m: float = DEFAULT_RADIUS_M,
        threshold: int = DEFAULT_SIMILARITY_THRESHOLD,
        on_result: Optional[Callable[[ResolvedCandidateSet], None]] = None,
    ):
        self.store = store
        self.provider = provider
        self.timeout = timeout
        self.debounce_seconds = debounce_ms / 1000.0
        self.radius_m = radius_m
        self.threshold = threshold
        self.on_result = on_result

        self._cond = threading.Condition()
        self._generation = 0
        self._latest: Optional[ResolvedCandidateSet] = None
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="venue-search")
        self._provider_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="place-provider")

    @property
    def generation(self) -> int:
        with self._cond:
            return self._generation

    @property
    def latest(self) -> Optional[ResolvedCandidateSet]:
        """Result of the most recent request that was not superseded."""
        with self._cond:
            return self._latest

    def request(self, query: str, center: Optional[Coordinate] = None) -> "Future[Optional[ResolvedCandidateSet]]":
        """Queue a debounced search that supersedes every earlier request.

        The future resolves to None when the request was superseded before its
        result could be applied.
        """
        with self._cond:
            self._generation += 1
            generation = self._generation
            self._cond.notify_all()
        return self._executor.submit(self._run, generation, query, center)

    def search(self, query: str, center: Optional[Coordinate] = None) -> ResolvedCandidateSet:
        """Run one search immediately, outside the debounce/supersede cycle."""
        internal = self.store.search(query)
        external, degraded = self._search_external(query, center)
        return resolve(internal, external, radius_m=self.radius_m, threshold=self.threshold, degraded=degraded)

    def close(self) -> None:
        with self._cond:
            self._generation += 1
            self._cond.notify_all()
        self._executor.shutdown(wait=True)
        self._provider_executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> "VenueSearch":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _is_current(self, generation: int) -> bool:
        with self._cond:
            return generation == self._generation

    def _run(self, generation: int, query: str, center: Optional[Coordinate]) -> Optional[ResolvedCandidateSet]:
        with self._cond:
            superseded = self._cond.wait_for(lambda: self._generation != generation, timeout=self.debounce_seconds)
        if superseded:
            logger.debug("Search generation %s superseded during debounce", generation)
            return None

        logger.info("Issuing venue search generation=%s query=%s", generation, query)
        result = self.search(query, center)

        with self._cond:
            if generation != self._generation:
                logger.debug("Discarding stale search response generation=%s current=%s", generation, self._generation)
                return None
            self._latest = result
            # Delivered under the lock so a newer request cannot overtake it.
            if self.on_result is not None:
                self.on_result(result)
        return result

    def _search_external(self, query: str, center: Optional[Coordinate]):
        if self.provider is None:
            return [], False
        future = self._provider_executor.submit(self.provider.search, query, center)
        try:
            return list(future.result(timeout=self.timeout)), False
        except FutureTimeoutError:
            future.cancel()
            logger.warning("External place search timed out after %.1fs; returning internal venues only", self.timeout)
        except Exception as exc:  # noqa: BLE001
            logger.warning("External place search failed: %s; returning internal venues only", exc)
        return [], True


def build_search(settings: Settings, **kwargs) -> VenueSearch:
    """Wire the venue store client and the configured external provider."""
    from venuemap.vendors.venue_api import VenueApiClient

    store = VenueApiClient(settings.venue_api_url)
    provider: Optional[PlaceSearchProvider] = None
    if settings.external_provider == "google_places":
        if settings.google_api_key:
            from venuemap.vendors.google_places import GooglePlacesProvider

            provider = GooglePlacesProvider(settings.google_api_key, timeout=settings.external_timeout)
    elif settings.external_provider == "serpapi":
        if settings.serpapi_api_key:
            from venuemap.vendors.serpapi_maps import SerpApiProvider

            provider = SerpApiProvider(settings.serpapi_api_key)
    else:
        raise ConfigError(f"Unknown external provider {settings.external_provider!r}")

    return VenueSearch(
        store,
        provider,
        timeout=settings.external_timeout,
        debounce_ms=settings.search_debounce_ms,
        radius_m=settings.match_radius_m,
        threshold=settings.name_similarity_threshold,
        **kwargs,
    )
