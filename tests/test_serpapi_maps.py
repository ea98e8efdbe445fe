from unittest.mock import patch

import pytest

from venuemap.core.geo import Coordinate
from venuemap.vendors import serpapi_maps


def test_build_params_requires_query():
    with pytest.raises(ValueError):
        serpapi_maps.build_serpapi_params("  ", "key")


def test_build_params_with_center():
    params = serpapi_maps.build_serpapi_params(" the garage ", "key", Coordinate(51.5, -0.12))
    assert params["q"] == "the garage"
    assert params["engine"] == "google_maps"
    assert params["ll"] == "@51.5,-0.12,14z"


def test_parse_local_results():
    data = {
        "local_results": [
            {
                "place_id": "ChIJ1",
                "title": "The Garage",
                "address": "Highbury Corner",
                "gps_coordinates": {"latitude": 51.546, "longitude": -0.104},
            },
            {"place_id": "ChIJ2", "title": "Bad coords", "gps_coordinates": {"latitude": "n/a"}},
            {"title": "No id"},
            "junk",
        ]
    }

    candidates = serpapi_maps.parse_serpapi_maps(data)

    assert [c.external_id for c in candidates] == ["ChIJ1", "ChIJ2"]
    assert candidates[0].coordinate == Coordinate(51.546, -0.104)
    assert candidates[0].source == "serpapi"
    assert candidates[1].coordinate is None


def test_parse_nested_and_place_results():
    nested = {"local_results": {"places": [{"place_id": "A", "title": "Royal Oak"}]}}
    single = {"place_results": {"place_id": "B", "title": "Crown"}}

    assert [c.external_id for c in serpapi_maps.parse_serpapi_maps(nested)] == ["A"]
    assert [c.external_id for c in serpapi_maps.parse_serpapi_maps(single)] == ["B"]
    assert serpapi_maps.parse_serpapi_maps({}) == []


@patch("venuemap.vendors.serpapi_maps.time.sleep")
@patch("venuemap.vendors.serpapi_maps.GoogleSearch")
def test_fetch_retries_then_raises(mock_search, mock_sleep):
    mock_search.return_value.get_dict.return_value = {"error": "Invalid API key"}

    with pytest.raises(serpapi_maps.SerpApiError):
        serpapi_maps.fetch_from_serpapi({"q": "garage"})

    assert mock_search.call_count == serpapi_maps.RETRY_LIMIT + 1
    assert mock_sleep.call_count == serpapi_maps.RETRY_LIMIT


@patch("venuemap.vendors.serpapi_maps.GoogleSearch")
def test_provider_search(mock_search):
    mock_search.return_value.get_dict.return_value = {"local_results": [{"place_id": "A", "title": "Royal Oak"}]}

    candidates = serpapi_maps.SerpApiProvider("key").search("royal oak")

    assert [c.name for c in candidates] == ["Royal Oak"]
    params = mock_search.call_args[0][0]
    assert params["api_key"] == "key"
    assert "ll" not in params
