import random
from urllib.parse import parse_qs, urlparse

import pytest

from freight.services.routing import estimate_trip, format_address, static_map_url
from freight.services.payments import parse_distance_miles, parse_duration_hours
from freight.services.telemetry import get_vehicle_locations


def test_estimate_trip_without_stops():
    trip = estimate_trip([])
    assert (trip.distance, trip.duration, trip.fuel_cost) == (
        "0 miles",
        "0 hours 0 minutes",
        "$0",
    )


def test_estimate_trip_is_parseable_and_seedable():
    stops = [object()]
    trip = estimate_trip(stops, rng=random.Random(7))
    assert trip == estimate_trip(stops, rng=random.Random(7))
    assert 200 <= parse_distance_miles(trip.distance) <= 999
    assert 4 <= parse_duration_hours(trip.duration) < 16
    assert trip.fuel_cost.startswith("$")


@pytest.mark.django_db
def test_static_map_for_single_stop(location_factory):
    stop = location_factory(street_address="1 Bay St")
    url = static_map_url([stop], api_key="abc")
    params = parse_qs(urlparse(url).query)
    assert params["center"] == [format_address(stop)]
    assert params["zoom"] == ["13"]
    assert params["markers"] == [f"color:red|{format_address(stop)}"]
    assert params["key"] == ["abc"]


def test_static_map_without_stops_shows_country():
    params = parse_qs(urlparse(static_map_url([])).query)
    assert params["center"] == ["United States"]
    assert params["zoom"] == ["4"]
    assert "key" not in params


@pytest.mark.django_db
def test_no_static_map_for_routes(location_factory):
    stops = [location_factory(sequence_number=0), location_factory(sequence_number=1)]
    assert static_map_url(stops, api_key="abc") is None


def test_vehicle_locations():
    vehicles = get_vehicle_locations(rng=random.Random(1))
    assert [v.name for v in vehicles] == ["Truck 001", "Truck 002", "Truck 003"]
    for vehicle in vehicles:
        assert vehicle.last_location is not None
        if vehicle.is_active:
            assert 25 <= vehicle.speed <= 90
        else:
            assert vehicle.speed == 0
