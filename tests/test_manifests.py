import datetime
import logging
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from freight.models import Location, Manifest, ManifestHistory, OrderLeg
from freight.services import manifests as manifest_service
from freight.services.exceptions import AssignmentConflict
from freight.services.manifests import ManifestWorkflow

pytestmark = pytest.mark.django_db


@pytest.fixture
def resources(driver_factory, vehicle_factory):
    return driver_factory(), vehicle_factory()


def _create(dispatcher, order, driver, vehicle, **kwargs):
    kwargs.setdefault("rate", Decimal("30.00"))
    return manifest_service.create_manifest(
        actor=dispatcher, order=order, driver=driver, vehicle=vehicle, **kwargs
    )


def test_create_manifest_links_order_and_records_history(
    dispatcher, order_factory, resources
):
    order = order_factory()
    driver, vehicle = resources

    manifest = _create(dispatcher, order, driver, vehicle, status="in_progress")

    assert manifest.created_by == dispatcher
    assert manifest.driver_rate == Decimal("30.00")
    leg = OrderLeg.objects.get(manifest=manifest)
    assert leg.order == order
    assert leg.status == Manifest.Status.IN_PROGRESS
    entry = ManifestHistory.objects.get(manifest=manifest)
    assert entry.previous_status == ""
    assert entry.status == Manifest.Status.IN_PROGRESS
    assert entry.driver_name == driver.full_name
    assert entry.vehicle_number == vehicle.number
    assert entry.changed_by == dispatcher


def test_create_manifest_requires_driver_vehicle_and_rate(dispatcher, order_factory):
    with pytest.raises(ValidationError) as excinfo:
        _create(dispatcher, order_factory(), None, None, rate="0")
    assert excinfo.value.message_dict == {
        "driver": ["Driver is required"],
        "vehicle": ["Vehicle is required"],
        "driver_rate": ["Valid driver rate is required"],
    }
    assert not Manifest.objects.exists()


def test_double_booked_driver_needs_confirmation(
    dispatcher, order_factory, manifest_factory, vehicle_factory
):
    busy = manifest_factory(status="pending")
    order = order_factory()

    with pytest.raises(AssignmentConflict) as excinfo:
        _create(dispatcher, order, busy.driver, vehicle_factory())
    assert excinfo.value.message == (
        f"Driver is already assigned to manifest #{busy.number}"
    )
    assert [c.resource for c in excinfo.value.conflicts] == ["driver"]
    assert Manifest.objects.count() == 1

    manifest = _create(dispatcher, order, busy.driver, vehicle_factory(), confirm=True)
    assert manifest.driver == busy.driver
    assert Manifest.objects.count() == 2


def test_driver_on_finished_manifest_is_free(
    dispatcher, order_factory, manifest_factory, vehicle_factory
):
    done = manifest_factory(status="completed")
    manifest_factory(driver=done.driver, status="cancelled")
    manifest = _create(dispatcher, order_factory(), done.driver, vehicle_factory())
    assert manifest.pk


def test_update_manifest_skips_itself_in_conflict_check(
    dispatcher, manifest_factory
):
    manifest = manifest_factory(status="pending")
    manifest_service.update_manifest(
        actor=dispatcher,
        manifest=manifest,
        fields={"driver": manifest.driver, "status": "in_progress"},
    )
    manifest.refresh_from_db()
    assert manifest.status == Manifest.Status.IN_PROGRESS

    entry = manifest.history.get()
    assert entry.previous_status == Manifest.Status.PENDING
    assert entry.status == Manifest.Status.IN_PROGRESS


def test_update_manifest_conflict_with_other_manifest(dispatcher, manifest_factory):
    other = manifest_factory(status="in_progress")
    manifest = manifest_factory()

    with pytest.raises(AssignmentConflict) as excinfo:
        manifest_service.update_manifest(
            actor=dispatcher,
            manifest=manifest,
            fields={"vehicle": other.vehicle},
        )
    assert excinfo.value.message == (
        f"Vehicle is already assigned to manifest #{other.number}"
    )
    assert not ManifestHistory.objects.exists()


def test_off_path_status_change_is_allowed_and_logged(
    dispatcher, manifest_factory, caplog
):
    manifest = manifest_factory(status="completed")
    with caplog.at_level(logging.WARNING, logger="freight.services.manifests"):
        manifest_service.update_manifest(
            actor=dispatcher, manifest=manifest, fields={"status": "pending"}
        )
    manifest.refresh_from_db()
    assert manifest.status == Manifest.Status.PENDING
    assert "moved off the usual path" in caplog.text


@pytest.mark.parametrize(
    "current, new, expected",
    [
        ("pending", "in_progress", True),
        ("pending", "cancelled", True),
        ("in_progress", "completed", True),
        ("pending", "pending", True),
        ("pending", "completed", False),
        ("completed", "pending", False),
        ("cancelled", "in_progress", False),
    ],
)
def test_workflow_expected_transitions(current, new, expected):
    assert ManifestWorkflow.is_expected_transition(current, new) is expected


def test_workflow_next_statuses():
    assert ManifestWorkflow.next_statuses("in_progress") == ["completed", "cancelled"]
    assert ManifestWorkflow.next_statuses("completed") == []


def _stop(city, location_type="pickup", name="Stop", **overrides):
    stop = {
        "location_type": location_type,
        "name": name,
        "street_address": "9 Yard Rd",
        "city": city,
        "date": datetime.date(2030, 6, 1),
        "time": datetime.time(10, 0),
        "contact_name": None,
        "contact_phone": "",
        "special_instructions": "",
        "terminal": None,
    }
    stop.update(overrides)
    return stop


def test_save_manifest_stops_replaces_list_in_order(
    dispatcher, manifest_factory, city_factory, terminal_factory
):
    manifest = manifest_factory()
    city = city_factory()
    terminal = terminal_factory()
    manifest_service.save_manifest_stops(
        actor=dispatcher, manifest=manifest, stops=[_stop(city, name="Old")]
    )

    manifest_service.save_manifest_stops(
        actor=dispatcher,
        manifest=manifest,
        stops=[
            _stop(city, "drop_off", "Yard", terminal=terminal),
            _stop(city, "delivery", "Customer"),
        ],
    )

    stops = list(manifest.stops.order_by("sequence_number"))
    assert [(s.name, s.sequence_number) for s in stops] == [("Yard", 0), ("Customer", 1)]
    assert stops[0].terminal == terminal
    assert stops[0].location_type == Location.LocationType.DROP_OFF
    assert stops[1].contact_name == ""


def test_save_manifest_stops_validates_each_row(
    dispatcher, manifest_factory, city_factory, terminal_factory
):
    manifest = manifest_factory()
    city = city_factory()
    with pytest.raises(ValidationError) as excinfo:
        manifest_service.save_manifest_stops(
            actor=dispatcher,
            manifest=manifest,
            stops=[
                _stop(city, "drop_off"),
                _stop(city, "pickup", terminal=terminal_factory()),
                _stop(city, "", name=""),
            ],
        )
    errors = excinfo.value.message_dict
    assert errors["stops.0.terminal"] == ["Terminal is required for drop-off stops"]
    assert errors["stops.1.terminal"] == ["Only drop-off stops can use a terminal"]
    assert errors["stops.2.location_type"] == ["Stop type is required"]
    assert not manifest.stops.exists()


def test_drop_off_stop_takes_name_and_address_from_terminal(
    dispatcher, manifest_factory, terminal_factory
):
    manifest = manifest_factory()
    terminal = terminal_factory(name="East Yard", street_address="12 Rail Rd")

    (stop,) = manifest_service.save_manifest_stops(
        actor=dispatcher,
        manifest=manifest,
        stops=[
            {
                "location_type": "drop_off",
                "terminal": terminal,
                "name": "",
                "street_address": "",
                "city": None,
                "date": datetime.date(2030, 6, 1),
                "time": datetime.time(10, 0),
            }
        ],
    )

    stop.refresh_from_db()
    assert stop.terminal == terminal
    assert stop.name == "East Yard"
    assert stop.street_address == "12 Rail Rd"
    assert stop.city == terminal.city
    assert stop.contact_name == ""


def test_pickup_stop_still_needs_its_address(dispatcher, manifest_factory, city_factory):
    stop = _stop(city_factory(), "pickup", name="")
    stop["city"] = None
    with pytest.raises(ValidationError) as excinfo:
        manifest_service.save_manifest_stops(
            actor=dispatcher, manifest=manifest_factory(), stops=[stop]
        )
    assert excinfo.value.message_dict == {
        "stops.0.name": ["Location name is required"],
        "stops.0.city": ["City is required"],
    }


def test_search_manifests(manifest_factory, driver_factory, order_factory):
    alice = driver_factory(first_name="Zephyrine", last_name="Moreau")
    first = manifest_factory(driver=alice, status="pending")
    second = manifest_factory(status="completed")
    order = order_factory(customer_name="Northwind Traders")
    OrderLeg.objects.create(order=order, manifest=second)

    search = manifest_service.search_manifests
    assert list(search(search="zephyr")) == [first]
    assert list(search(search="northwind")) == [second]
    assert list(search(search=second.number)) == [second]
    assert list(search(status="completed")) == [second]
    assert list(search(status="all")) == [second, first]
    assert list(search(driver_id=alice.pk)) == [first]
    assert list(search(vehicle_id=second.vehicle_id)) == [second]
    assert list(search(order="asc")) == [first, second]
