import pytest

from freight.forms import (
    LocationForm,
    ManifestAssignmentForm,
    ManifestStopForm,
    OrderForm,
    SplitPointForm,
)
from freight.models import Driver
from freight.services.locations import LocationLookup

pytestmark = pytest.mark.django_db


def test_order_form_reports_first_step_with_errors(order_fields):
    form = OrderForm(data={**order_fields, "contact_person": "J", "weight": "0"})
    assert not form.is_valid()
    assert form.errors["contact_person"] == ["Contact person must be at least 2 characters"]
    assert form.errors["weight"] == ["Weight must be a positive number"]
    assert form.step_of_first_error() == 1


def test_order_form_starts_new_orders_in_default_currency(settings, order_factory):
    settings.FREIGHT_DEFAULT_CURRENCY = "USD"
    assert OrderForm()["currency"].value() == "USD"
    assert OrderForm(instance=order_factory(currency="CAD"))["currency"].value() == "CAD"


def test_order_form_duplicate_tender_message(order_factory, order_fields):
    order_factory(load_tender_number=order_fields["load_tender_number"])
    form = OrderForm(data=order_fields)
    assert not form.is_valid()
    assert form.errors["load_tender_number"] == ["This load tender number already exists"]


def test_location_form_chains_dropdowns(city_factory):
    city = city_factory()
    state = city.state
    city_factory()  # a city in another state

    form = LocationForm(
        data={"pickup-0-country": state.country_id, "pickup-0-state": state.pk},
        prefix="pickup-0",
    )

    assert list(form.fields["state"].queryset) == [state]
    assert list(form.fields["city"].queryset) == [city]
    assert form.fields["country"].widget.attrs["hx-target"] == "#id_pickup-0-state"
    assert form.fields["state"].widget.attrs["hx-target"] == "#id_pickup-0-city"


def test_location_form_without_selection_offers_nothing():
    form = LocationForm()
    assert not form.fields["state"].queryset.exists()
    assert not form.fields["city"].queryset.exists()


def test_stop_form_requires_terminal_for_drop_off(city_factory):
    city = city_factory()
    form = ManifestStopForm(
        data={
            "location_type_choice": "drop_off",
            "name": "Yard",
            "street_address": "5 Rail Rd",
            "country": city.state.country_id,
            "state": city.state_id,
            "city": city.pk,
            "date": "2030-01-02",
            "time": "09:00",
        }
    )
    assert not form.is_valid()
    assert form.errors["terminal"] == ["Terminal is required for drop-off stops"]


def test_stop_form_accepts_drop_off_with_only_terminal(terminal_factory):
    terminal = terminal_factory()
    form = ManifestStopForm(
        data={
            "location_type_choice": "drop_off",
            "terminal": terminal.pk,
            "date": "2030-01-02",
            "time": "09:00",
        }
    )
    assert form.is_valid(), form.errors
    data = form.location_data()
    assert data["location_type"] == "drop_off"
    assert data["terminal"] == terminal
    assert data["city"] is None


def test_stop_form_requires_address_for_pickup():
    form = ManifestStopForm(
        data={"location_type_choice": "pickup", "date": "2030-01-02", "time": "09:00"}
    )
    assert not form.is_valid()
    assert form.errors["name"] == ["Location name is required"]
    assert form.errors["street_address"] == ["Street address is required"]
    assert form.errors["city"] == ["City is required"]


def test_assignment_form_offers_active_drivers_only(driver_factory, manifest_factory):
    active = driver_factory()
    on_leave = driver_factory(status=Driver.Status.ON_LEAVE)

    form = ManifestAssignmentForm()
    assert list(form.fields["driver"].queryset) == [active]

    manifest = manifest_factory(driver=on_leave)
    form = ManifestAssignmentForm(instance=manifest)
    assert on_leave in form.fields["driver"].queryset


def test_split_point_form_requires_fields_of_chosen_type():
    form = SplitPointForm(data={"name": "Relay", "split_type": "location"})
    assert not form.is_valid()
    assert set(form.errors) == {"street_address", "city"}


def test_location_form_renders_options_from_lookup(location_factory):
    location = location_factory()
    state = location.city.state
    lookup = LocationLookup().preload([location])

    form = LocationForm(instance=location, lookup=lookup)

    assert (state.pk, state.name) in form.fields["state"].widget.choices
    assert f'value="{location.city_id}" selected' in str(form["city"])
