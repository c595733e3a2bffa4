import threading
from types import SimpleNamespace

import pytest
from geopy.exc import GeocoderTimedOut

from conftest import FakeGeolocator
from core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from services import place_service
from services.place_service import PlaceService


def test_autocomplete_returns_suggestions(geolocator):
    service = PlaceService(geolocator=geolocator, limit=3)

    suggestions = service.autocomplete("  blue tokai ")

    assert [s.place_id for s in suggestions] == ["101", "102"]
    assert suggestions[0].description == "Blue Tokai, Indiranagar, Bengaluru"
    assert suggestions[0].types == ["amenity", "cafe"]
    query, kwargs = geolocator.calls[0]
    assert query == "blue tokai"
    assert kwargs["exactly_one"] is False
    assert kwargs["limit"] == 3


def test_details_answer_from_previous_suggestions(geolocator):
    service = PlaceService(geolocator=geolocator)
    service.autocomplete("blue tokai")

    details = service.details("102")

    assert details.name == "Blue Tokai"
    assert (details.latitude, details.longitude) == (12.9352, 77.6245)


def test_details_for_unknown_place():
    with pytest.raises(NotFoundError):
        PlaceService(geolocator=FakeGeolocator()).details("404")


def test_short_query_skips_lookup():
    geolocator = FakeGeolocator()
    assert PlaceService(geolocator=geolocator).autocomplete("b") == []
    assert geolocator.calls == []


def test_empty_query_is_rejected():
    with pytest.raises(ValidationError):
        PlaceService(geolocator=FakeGeolocator()).autocomplete("   ")


def test_geocoder_failure_is_reported():
    service = PlaceService(geolocator=FakeGeolocator(error=GeocoderTimedOut("slow")))
    with pytest.raises(ExternalServiceError) as exc_info:
        service.autocomplete("blue tokai")
    assert exc_info.value.status_code == 503


class NumberedGeolocator:
    """Returns one place per query, numbered by the query text."""

    def geocode(self, query, **kwargs):
        number = int(query.split()[-1])
        return [SimpleNamespace(
            latitude=12.0, longitude=77.0, address=f"Stop {number}, Bengaluru",
            raw={"place_id": number, "display_name": f"Stop {number}, Bengaluru"},
        )]


def test_details_cache_stays_bounded_under_concurrent_lookups(monkeypatch):
    monkeypatch.setattr(place_service, "DETAILS_CACHE_SIZE", 50)
    service = PlaceService(geolocator=NumberedGeolocator())

    def lookup(start):
        for number in range(start, start + 200):
            service.autocomplete(f"stop {number}")

    threads = [threading.Thread(target=lookup, args=(offset * 200,)) for offset in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(service._details) == 50
