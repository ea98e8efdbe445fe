from datetime import date, datetime

from venuemap.core.geo import Coordinate
from venuemap.etl import transform


def test_parse_location_variants():
    assert transform.parse_location({"lat": 51.5, "lng": -0.1}) == Coordinate(51.5, -0.1)
    assert transform.parse_location({"latitude": "51.5", "longitude": "-0.1"}) == Coordinate(51.5, -0.1)
    assert transform.parse_location({"lat": 0, "lng": 0}) is None
    assert transform.parse_location(None) is None
    assert transform.parse_location("51.5,-0.1") is None


def test_to_internal_venue_defaults():
    venue = transform.to_internal_venue({"id": " v1 ", "name": " The Garage ", "nameVariants": "Garage"})

    assert venue.id == "v1"
    assert venue.name == "The Garage"
    assert venue.name_variants == ("Garage",)
    assert venue.coordinate is None
    assert venue.external_id is None
    assert venue.verified is False
    assert transform.to_internal_venue({"name": "No id"}) is None


def test_to_external_candidate_from_places_result():
    candidate = transform.to_external_candidate(
        {
            "place_id": "ChIJ1",
            "name": "The Garage",
            "formatted_address": "Highbury Corner",
            "geometry": {"location": {"lat": 51.546, "lng": -0.104}},
        }
    )

    assert candidate.external_id == "ChIJ1"
    assert candidate.coordinate == Coordinate(51.546, -0.104)
    assert candidate.kind == "external"
    assert transform.to_external_candidate({"place_id": "x"}) is None


def test_to_geo_events_skips_junk():
    events = transform.to_geo_events(
        [
            {
                "id": "e1",
                "name": "Blur",
                "date": "2025-06-01",
                "startTime": "20:30",
                "venueId": "v1",
                "venueName": "The Garage",
                "artistIds": ["a1", "a2"],
                "location": {"lat": 51.546, "lng": -0.104},
            },
            {"name": "no id"},
            "junk",
        ]
    )

    assert len(events) == 1
    event = events[0]
    assert event.start == datetime(2025, 6, 1, 20, 30)
    assert event.artist_refs == ("a1", "a2")
    assert event.venue_ref == "v1"


def test_parse_start():
    assert transform.parse_start("2025-06-01") == datetime(2025, 6, 1)
    assert transform.parse_start("2025-06-01", "25:00") == datetime(2025, 6, 1)
    assert transform.parse_start("2025-06-01", "late") == datetime(2025, 6, 1)
    assert transform.parse_start(date(2025, 6, 1)) == datetime(2025, 6, 1)
    assert transform.parse_start("not a date") is None
    assert transform.parse_start(None) is None


def test_to_external_candidate_tolerates_malformed_geometry():
    candidate = transform.to_external_candidate({"place_id": "ChIJ1", "name": "The Garage", "geometry": "broken"})

    assert candidate.external_id == "ChIJ1"
    assert candidate.coordinate is None
