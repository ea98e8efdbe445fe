import threading
from datetime import date, datetime

from venuemap.core.config import Settings
from venuemap.core.geo import Coordinate
from venuemap.markers.layer import EventMarkerLayer
from venuemap.markers.reconcile import MarkerReconciler
from venuemap.models import GeoEvent

from test_reconcile import DummyCluster, DummyRenderer

A = Coordinate(51.5074, -0.1278)
B = Coordinate(53.4808, -2.2426)


def gig(event_id, coordinate, name="Gig", day=1):
    return GeoEvent(id=event_id, coordinate=coordinate, name=name, start=datetime(2025, 6, day, 20, 0))


def test_update_creates_and_then_keeps_markers():
    renderer = DummyRenderer()
    layer = EventMarkerLayer(MarkerReconciler(renderer, DummyCluster()))
    events = [gig("1", A), gig("2", A), gig("3", A), gig("4", B)]

    first = layer.update(events)
    second = layer.update(list(events))

    assert first.created == 2
    assert not second.changed
    assert len(renderer.created) == 2
    assert [e.id for e in layer.representative_events()] == ["1", "4"]


def test_filters_reconcile_against_last_events():
    renderer = DummyRenderer()
    layer = EventMarkerLayer(MarkerReconciler(renderer))
    layer.update([gig("1", A, name="Blur"), gig("2", B, name="Oasis")])

    stats = layer.set_filters(filter_type="artist", term="blur")

    assert stats.removed == 1
    assert list(layer.groups) == ["51.507400,-0.127800"]

    stats = layer.set_filters(date_range=(date(2025, 6, 2), None))
    assert stats.removed == 1
    assert layer.groups == {}


def test_clear_removes_everything():
    renderer = DummyRenderer()
    layer = EventMarkerLayer(MarkerReconciler(renderer))
    layer.update([gig("1", A), gig("2", B)])

    layer.clear()

    assert renderer.live == {}


def test_update_during_cycle_is_coalesced_onto_latest():
    applied = []
    entered = threading.Event()
    proceed = threading.Event()

    class BlockingRenderer(DummyRenderer):
        def create_marker(self, coordinate, label):
            if not entered.is_set():
                entered.set()
                proceed.wait(timeout=2)
            return super().create_marker(coordinate, label)

    renderer = BlockingRenderer()
    reconciler = MarkerReconciler(renderer)
    original = reconciler.reconcile

    def recording(previous, current):
        applied.append(list(current))
        return original(previous, current)

    reconciler.reconcile = recording
    layer = EventMarkerLayer(reconciler)

    worker = threading.Thread(target=layer.update, args=([gig("1", A)],))
    worker.start()
    assert entered.wait(timeout=2)

    assert layer.update([gig("2", B)]) is None
    assert layer.update([gig("3", A), gig("4", B)]) is None
    proceed.set()
    worker.join(timeout=2)

    assert applied == [["51.507400,-0.127800"], ["51.507400,-0.127800", "53.480800,-2.242600"]]
    assert set(reconciler.registry) == {"51.507400,-0.127800", "53.480800,-2.242600"}


def test_from_settings():
    settings = Settings(location_key_precision=3, strict_invariants=True)

    layer = EventMarkerLayer.from_settings(settings, DummyRenderer())
    layer.update([gig("1", Coordinate(51.5074, -0.1278))])

    assert layer.precision == 3
    assert layer.reconciler.strict is True
    assert list(layer.groups) == ["51.507,-0.128"]


def test_viewport_change_refreshes_cluster():
    cluster = DummyCluster()
    layer = EventMarkerLayer(MarkerReconciler(DummyRenderer(), cluster))
    layer.update([gig("1", A), gig("2", B)])
    calls = len(cluster.calls)

    layer.on_viewport_change()

    assert len(cluster.calls) == calls + 1
    assert len(cluster.calls[-1]) == 2


def test_from_settings_configures_cluster_layer():
    cluster = DummyCluster()
    settings = Settings(cluster_max_radius=60, cluster_disable_at_zoom=14)

    EventMarkerLayer.from_settings(settings, DummyRenderer(), cluster)

    assert cluster.options == (60, 14)


def test_cluster_layer_gets_default_options():
    cluster = DummyCluster()

    EventMarkerLayer(MarkerReconciler(DummyRenderer(), cluster))

    assert cluster.options == (40, 12)
