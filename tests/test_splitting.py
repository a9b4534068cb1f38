import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from freight.models import Location, Manifest, OrderLeg, SplitPoint
from freight.services.exceptions import OriginalLegNotFound
from freight.services.splitting import build_split_point, split_order

pytestmark = pytest.mark.django_db

GPS_POINT = {
    "name": "Highway 401 handoff",
    "split_type": "gps",
    "latitude": Decimal("43.700110"),
    "longitude": Decimal("-79.416300"),
}


def test_split_creates_two_children_under_original(
    dispatcher, order_factory, manifest_factory
):
    order = order_factory()
    original = order.top_level_leg()
    manifest = manifest_factory()
    original.manifest = manifest
    original.save()

    point, children = split_order(
        actor=dispatcher, order=order, split_point=GPS_POINT, reason="Driver swap"
    )

    assert point.pk and point.split_type == SplitPoint.SplitType.GPS
    assert [child.split_sequence for child in children] == [1, 2]
    for child in children:
        assert child.parent_leg == original
        assert child.split_point == point
        assert child.status == Manifest.Status.PENDING
        assert child.split_reason == "Driver swap"
        assert child.manifest is None
        assert child.is_split_child

    original.refresh_from_db()
    assert original.manifest == manifest
    assert order.legs.count() == 3
    assert order.top_level_leg() == original


def test_split_without_leg_writes_nothing(dispatcher, order_factory):
    order = order_factory(with_leg=False)
    with pytest.raises(OriginalLegNotFound):
        split_order(actor=dispatcher, order=order, split_point=GPS_POINT)
    assert not SplitPoint.objects.exists()
    assert not OrderLeg.objects.exists()


def test_invalid_split_point_is_rejected(dispatcher, order_factory):
    order = order_factory()
    with pytest.raises(ValidationError) as excinfo:
        split_order(
            actor=dispatcher,
            order=order,
            split_point={"name": "Yard", "split_type": "terminal"},
        )
    assert "terminal" in excinfo.value.message_dict
    assert order.legs.count() == 1


def test_build_split_point_drops_other_type_fields(city_factory):
    point = build_split_point(
        {
            **GPS_POINT,
            "split_type": "location",
            "street_address": "77 Dock St",
            "city": city_factory(),
        }
    )
    assert point.street_address == "77 Dock St"
    assert point.latitude is None
    assert point.longitude is None
    assert point.terminal is None
    point.full_clean()


def test_split_with_leg_locations(dispatcher, order_factory, city_factory):
    order = order_factory()
    city = city_factory()

    def row(name, day):
        return {
            "name": name,
            "street_address": "3 Relay Rd",
            "city": city,
            "date": datetime.date(2030, 7, day),
            "time": datetime.time(7, 30),
        }

    _, children = split_order(
        actor=dispatcher,
        order=order,
        split_point=GPS_POINT,
        legs=[
            {"pickup_locations": [row("Origin", 1)], "delivery_locations": [row("Relay", 2)]},
            {"pickup_locations": [row("Relay", 2)], "delivery_locations": [row("Destination", 3)]},
        ],
    )

    first, second = children
    assert [loc.name for loc in first.locations.order_by("location_type")] == [
        "Relay",
        "Origin",
    ]
    assert second.locations.filter(
        location_type=Location.LocationType.DELIVERY, name="Destination"
    ).exists()
    assert not order.locations.exists()
