"""Event marker layer: filters, groups and reconciles events as the collection changes."""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from venuemap.core.config import Settings
from venuemap.markers.grouping import filter_events, group_events, representative_events
from venuemap.markers.reconcile import ClusterLayer, ClusterOptions, MarkerReconciler, MarkerRenderer, ReconcileStats
from venuemap.models import GeoEvent, LocationGroup

logger = logging.getLogger(__name__)


class EventMarkerLayer:
    """Single writer for the marker registry.

    ``update`` may be called from any thread. Only one reconciliation runs at a
    time; collections that arrive while one is in flight are coalesced and the
    next cycle always runs against the newest one.
    """

    def __init__(
        self,
        reconciler: MarkerReconciler,
        precision: int = 6,
    ):
        self.reconciler = reconciler
        self.precision = precision
        self._state = threading.Lock()
        self._writer = threading.Lock()
        self._events: List[GeoEvent] = []
        self._pending: Optional[List[GeoEvent]] = None
        self._groups: Dict[str, LocationGroup] = {}
        self._date_range: Optional[Tuple[Optional[date], Optional[date]]] = None
        self._filter_type: Optional[str] = None
        self._term: Optional[str] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        renderer: MarkerRenderer,
        cluster: Optional[ClusterLayer] = None,
        on_select: Optional[Callable[[Sequence[GeoEvent]], None]] = None,
    ) -> "EventMarkerLayer":
        options = ClusterOptions(
            max_cluster_radius=settings.cluster_max_radius,
            disable_clustering_at_zoom=settings.cluster_disable_at_zoom,
        )
        reconciler = MarkerReconciler(
            renderer,
            cluster,
            strict=settings.strict_invariants,
            on_select=on_select,
            cluster_options=options,
        )
        return cls(reconciler, precision=settings.location_key_precision)

    @property
    def groups(self) -> Dict[str, LocationGroup]:
        with self._state:
            return dict(self._groups)

    def representative_events(self) -> List[GeoEvent]:
        return representative_events(self.groups)

    def update(self, events: Iterable[GeoEvent]) -> Optional[ReconcileStats]:
        """Replace the event collection and reconcile markers against it.

        Returns the stats of the last cycle this call ran, or None when another
        thread's in-flight cycle will pick the collection up instead.
        """
        with self._state:
            self._events = list(events)
            self._pending = self._events
        return self._drain()

    def set_filters(
        self,
        date_range: Optional[Tuple[Optional[date], Optional[date]]] = None,
        filter_type: Optional[str] = None,
        term: Optional[str] = None,
    ) -> Optional[ReconcileStats]:
        with self._state:
            self._date_range = date_range
            self._filter_type = filter_type
            self._term = term
            self._pending = self._events
        return self._drain()

    def on_viewport_change(self) -> None:
        self.reconciler.refresh_cluster()

    def clear(self) -> Optional[ReconcileStats]:
        return self.update([])

    def _drain(self) -> Optional[ReconcileStats]:
        stats = None
        while True:
            if not self._writer.acquire(blocking=False):
                return stats
            try:
                while True:
                    with self._state:
                        events, self._pending = self._pending, None
                        filters = (self._date_range, self._filter_type, self._term)
                    if events is None:
                        break
                    groups = group_events(filter_events(events, *filters), self.precision)
                    with self._state:
                        self._groups = groups
                    stats = self.reconciler.reconcile(dict(self.reconciler.snapshot), groups)
            finally:
                self._writer.release()
            with self._state:
                if self._pending is None:
                    return stats
