from datetime import date, datetime

from venuemap.core.geo import Coordinate
from venuemap.markers.grouping import filter_events, group_events, representative_events
from venuemap.models import GeoEvent

A = Coordinate(51.5074, -0.1278)
B = Coordinate(53.4808, -2.2426)


def make_event(event_id, coordinate, name="Gig", venue_name="The Garage", start=datetime(2025, 6, 1, 20, 0)):
    return GeoEvent(id=event_id, coordinate=coordinate, start=start, name=name, venue_name=venue_name)


def test_groups_co_located_events_in_order():
    events = [make_event("1", A), make_event("2", B), make_event("3", A), make_event("4", A)]

    groups = group_events(events)

    assert list(groups) == ["51.507400,-0.127800", "53.480800,-2.242600"]
    assert [e.id for e in groups["51.507400,-0.127800"].events] == ["1", "3", "4"]
    assert groups["51.507400,-0.127800"].event_count == 3
    assert groups["53.480800,-2.242600"].event_count == 1


def test_groups_by_key_precision():
    nearly_a = Coordinate(51.50740000004, -0.12780000001)

    groups = group_events([make_event("1", A), make_event("2", nearly_a)])

    assert len(groups) == 1


def test_skips_events_without_location():
    events = [make_event("1", None), make_event("2", Coordinate(0.0, 0.0)), make_event("3", A)]

    groups = group_events(events)

    assert [g.representative.id for g in groups.values()] == ["3"]


def test_grouping_is_idempotent():
    events = [make_event("1", A), make_event("2", B), make_event("3", A)]

    assert group_events(events) == group_events(events)
    assert group_events([]) == {}


def test_representative_events():
    events = [make_event("1", A), make_event("2", B), make_event("3", A)]

    assert [e.id for e in representative_events(group_events(events))] == ["1", "2"]


def test_filter_by_inclusive_date_range():
    events = [
        make_event("early", A, start=datetime(2025, 5, 31, 23, 0)),
        make_event("first", A, start=datetime(2025, 6, 1, 9, 0)),
        make_event("last", A, start=datetime(2025, 6, 7, 22, 0)),
        make_event("late", A, start=datetime(2025, 6, 8, 0, 30)),
        make_event("undated", A, start=None),
    ]

    selected = filter_events(events, date_range=(date(2025, 6, 1), date(2025, 6, 7)))

    assert [e.id for e in selected] == ["first", "last"]


def test_filter_by_artist_and_venue_term():
    events = [
        make_event("1", A, name="Arctic Monkeys", venue_name="Leadmill"),
        make_event("2", B, name="Blur", venue_name="The Garage"),
    ]

    assert [e.id for e in filter_events(events, filter_type="artist", term="MONKEYS")] == ["1"]
    assert [e.id for e in filter_events(events, filter_type="venue", term="garage")] == ["2"]
    assert filter_events(events, filter_type="artist", term="  ") == events
    assert filter_events(events, filter_type="nomatch", term="x") == []
