"""Differential marker reconciliation.

The reconciler owns the table of live markers, keyed by location key. Each
cycle compares the previous and current location groups and applies the
minimal set of operations through the rendering collaborator:

* key appears                  -> create a marker
* key present, same count      -> nothing
* key present, count changed   -> replace the marker (destroy, then create)
* key disappears               -> destroy the marker

The renderer has no update call, so a new count needs a new handle.
"""

from __future__ import annotations

import logging
import threading
import types
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Set

from venuemap.core.geo import Coordinate
from venuemap.models import GeoEvent, LocationGroup, MarkerRecord

logger = logging.getLogger(__name__)


class ReconcileInvariantError(RuntimeError):
    """Raised in strict mode when the registry or the previous snapshot is inconsistent."""


class MarkerRenderer(Protocol):
    def create_marker(self, coordinate: Coordinate, label: str) -> Any: ...

    def destroy_marker(self, handle: Any) -> None: ...

    def bind_click(self, handle: Any, callback: Callable[[], None]) -> None: ...


class ClusterLayer(Protocol):
    def configure(self, max_cluster_radius: int, disable_clustering_at_zoom: int) -> None: ...

    def set_handles(self, handles: Sequence[Any]) -> None: ...


@dataclass(frozen=True)
class ClusterOptions:
    max_cluster_radius: int = 40
    disable_clustering_at_zoom: int = 12


class OpKind(Enum):
    CREATE = "create"
    REPLACE = "replace"
    REMOVE = "remove"


@dataclass(frozen=True)
class MarkerOp:
    kind: OpKind
    location_key: str
    group: Optional[LocationGroup] = None


@dataclass
class ReconcileStats:
    created: int = 0
    replaced: int = 0
    removed: int = 0
    unchanged: int = 0
    failed: int = 0
    resynced: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.created or self.replaced or self.removed)


def diff_groups(previous: Mapping[str, LocationGroup], current: Mapping[str, LocationGroup]) -> List[MarkerOp]:
    """Removals first, then creates and replacements in current-group order."""
    ops = [MarkerOp(OpKind.REMOVE, key) for key in previous if key not in current]
    for key, group in current.items():
        before = previous.get(key)
        if before is None:
            ops.append(MarkerOp(OpKind.CREATE, key, group))
        elif before.event_count != group.event_count:
            ops.append(MarkerOp(OpKind.REPLACE, key, group))
    return ops


def marker_label(group: LocationGroup) -> str:
    if group.event_count == 1:
        return group.representative.name or group.location_key
    return str(group.event_count)


class MarkerRegistry:
    """location key -> MarkerRecord table. Only the reconciler writes to it."""

    def __init__(self):
        self._records: Dict[str, MarkerRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def get(self, key: str) -> Optional[MarkerRecord]:
        return self._records.get(key)

    def handles(self) -> List[Any]:
        return [record.handle for record in self._records.values()]

    def view(self) -> Mapping[str, MarkerRecord]:
        return types.MappingProxyType(self._records)

    def _add(self, record: MarkerRecord) -> None:
        if record.location_key in self._records:
            raise ReconcileInvariantError(f"Duplicate marker for location {record.location_key}")
        self._records[record.location_key] = record

    def _pop(self, key: str) -> Optional[MarkerRecord]:
        return self._records.pop(key, None)

    def _clear(self) -> List[MarkerRecord]:
        records = list(self._records.values())
        self._records.clear()
        return records


class MarkerReconciler:
    def __init__(
        self,
        renderer: MarkerRenderer,
        cluster: Optional[ClusterLayer] = None,
        *,
        strict: bool = False,
        on_select: Optional[Callable[[Sequence[GeoEvent]], None]] = None,
        cluster_options: Optional[ClusterOptions] = None,
    ):
        self.renderer = renderer
        self.cluster = cluster
        self.strict = strict
        self.on_select = on_select
        self.cluster_options = cluster_options or ClusterOptions()
        self.registry = MarkerRegistry()
        self._snapshot: Dict[str, LocationGroup] = {}
        # Keys whose marker could not be created; retried on the next cycle.
        self._retry: Set[str] = set()
        self._lock = threading.Lock()
        if cluster is not None:
            cluster.configure(
                max_cluster_radius=self.cluster_options.max_cluster_radius,
                disable_clustering_at_zoom=self.cluster_options.disable_clustering_at_zoom,
            )

    @property
    def snapshot(self) -> Mapping[str, LocationGroup]:
        """The groups applied by the last cycle, i.e. the next cycle's previous groups."""
        return types.MappingProxyType(self._snapshot)

    def reconcile(
        self,
        previous_groups: Mapping[str, LocationGroup],
        current_groups: Mapping[str, LocationGroup],
    ) -> ReconcileStats:
        with self._lock:
            if not self._is_consistent(previous_groups):
                return self._resync(current_groups)

            ops = diff_groups(previous_groups, current_groups)
            keyed = {op.location_key for op in ops}
            for key in sorted(self._retry - keyed):
                if key in current_groups:
                    ops.append(MarkerOp(OpKind.CREATE, key, current_groups[key]))
            self._retry.clear()

            stats = ReconcileStats()
            try:
                self._apply(ops, stats)
            except ReconcileInvariantError:
                if self.strict:
                    raise
                logger.exception("Marker registry invariant violated; rebuilding from current groups")
                return self._resync(current_groups)

            stats.unchanged = len(current_groups) - stats.created - stats.replaced - stats.failed
            self._refresh_unchanged(current_groups)
            self._snapshot = dict(current_groups)
            self._finish(stats)
            return stats

    def clear(self) -> ReconcileStats:
        """Destroy every marker; same as reconciling against no groups."""
        return self.reconcile(dict(self._snapshot), {})

    def _is_consistent(self, previous_groups: Mapping[str, LocationGroup]) -> bool:
        expected = {key: group.event_count for key, group in self._snapshot.items()}
        supplied = {key: group.event_count for key, group in previous_groups.items()}
        if expected != supplied:
            message = "Reconcile called with a stale previous snapshot"
        elif set(self.registry) != set(expected) - self._retry:
            message = "Marker registry does not match the previous snapshot"
        else:
            return True
        if self.strict:
            raise ReconcileInvariantError(message)
        logger.error("%s; rebuilding markers from current groups", message)
        return False

    def _apply(self, ops: Sequence[MarkerOp], stats: ReconcileStats) -> None:
        for op in ops:
            logger.debug("Marker op %s %s", op.kind.value, op.location_key)
            if op.kind is OpKind.REMOVE:
                if self._destroy(op.location_key):
                    stats.removed += 1
            elif op.kind is OpKind.REPLACE:
                self._destroy(op.location_key)
                if self._create(op.group):
                    stats.replaced += 1
                else:
                    stats.failed += 1
            else:
                if self._create(op.group):
                    stats.created += 1
                else:
                    stats.failed += 1

    def _create(self, group: LocationGroup) -> bool:
        key = group.location_key
        if key in self.registry:
            raise ReconcileInvariantError(f"Marker already registered for location {key}")
        handle = None
        try:
            handle = self.renderer.create_marker(group.coordinate, marker_label(group))
            if self.on_select is not None:
                self.renderer.bind_click(handle, lambda: self._select(key))
        except Exception:  # noqa: BLE001
            logger.exception("Failed to create marker for %s; will retry next cycle", key)
            if handle is not None:
                self._safe_destroy(handle, key)
            self._retry.add(key)
            return False
        self.registry._add(
            MarkerRecord(
                location_key=key,
                handle=handle,
                event_count=group.event_count,
                representative_event=group.representative,
            )
        )
        return True

    def _destroy(self, key: str) -> bool:
        record = self.registry._pop(key)
        if record is None:
            return False
        self._safe_destroy(record.handle, key)
        return True

    def _safe_destroy(self, handle: Any, key: str) -> None:
        try:
            self.renderer.destroy_marker(handle)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to destroy marker for %s", key)

    def _refresh_unchanged(self, current_groups: Mapping[str, LocationGroup]) -> None:
        for key, group in current_groups.items():
            record = self.registry.get(key)
            if record is not None:
                record.representative_event = group.representative

    def _resync(self, current_groups: Mapping[str, LocationGroup]) -> ReconcileStats:
        for record in self.registry._clear():
            self._safe_destroy(record.handle, record.location_key)
        self._retry.clear()

        stats = ReconcileStats(resynced=True)
        self._apply([MarkerOp(OpKind.CREATE, key, group) for key, group in current_groups.items()], stats)
        self._snapshot = dict(current_groups)
        self._finish(stats)
        return stats

    def _finish(self, stats: ReconcileStats) -> None:
        if stats.changed or stats.failed or stats.resynced:
            self.refresh_cluster()
        logger.info(
            "Reconciled markers: created=%d replaced=%d removed=%d unchanged=%d failed=%d live=%d",
            stats.created,
            stats.replaced,
            stats.removed,
            stats.unchanged,
            stats.failed,
            len(self.registry),
        )

    def refresh_cluster(self) -> None:
        """Hand the live marker handles to the cluster layer; called on handle-set and viewport changes."""
        if self.cluster is None:
            return
        handles = self.registry.handles() if len(self.registry) > 1 else []
        try:
            self.cluster.set_handles(handles)
        except Exception:  # noqa: BLE001
            logger.exception("Cluster layer rejected %d marker handles", len(handles))

    def _select(self, key: str) -> None:
        group = self._snapshot.get(key)
        if group is not None and self.on_select is not None:
            self.on_select(list(group.events))
