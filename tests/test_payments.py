from decimal import Decimal

import pytest

from freight.services.payments import (
    DEFAULT_ADDITIONAL_CHARGES,
    calculate_payment,
    manifest_payment,
    parse_distance_miles,
    parse_duration_hours,
)
from freight.services.routing import TripEstimate


@pytest.mark.parametrize(
    "text, hours",
    [
        ("2 hours 30 minutes", Decimal("2.5")),
        ("1 hour 15 minutes", Decimal("1.25")),
        ("45 minutes", Decimal("0.75")),
        ("3 hours", Decimal("3")),
        ("", Decimal("0")),
        ("soon", Decimal("0")),
    ],
)
def test_parse_duration_hours(text, hours):
    assert parse_duration_hours(text) == hours


@pytest.mark.parametrize(
    "text, miles",
    [
        ("300 miles", Decimal("300")),
        ("1,250.5 miles", Decimal("1250.5")),
        ("far", Decimal("0")),
        (None, Decimal("0")),
    ],
)
def test_parse_distance_miles(text, miles):
    assert parse_distance_miles(text) == miles


def test_hourly_pay():
    summary = calculate_payment("hourly", Decimal("25"), duration="2 hours 30 minutes")
    assert summary.base_pay == Decimal("62.5")
    assert summary.quantity == Decimal("2.5")
    assert summary.unit == "hours"


def test_mileage_pay():
    summary = calculate_payment("mileage", "2", distance="300 miles")
    assert summary.base_pay == Decimal("600")
    assert summary.unit == "miles"


def test_default_additional_charges_total():
    summary = calculate_payment("hourly", Decimal("25"), duration="2 hours 30 minutes")
    assert [charge.charge_type for charge in summary.additional_charges] == [
        "Detention Time",
        "Extra Stop",
        "Tolls",
        "Fuel Surcharge",
        "Special Handling",
    ]
    assert summary.additional_total == Decimal("245.75")
    assert summary.grand_total == Decimal("308.25")


def test_no_additional_charges():
    summary = calculate_payment(
        "mileage", Decimal("1.5"), distance="10 miles", additional_charges=()
    )
    assert summary.additional_total == Decimal("0")
    assert summary.grand_total == Decimal("15.0")


def test_missing_rate_pays_nothing():
    summary = calculate_payment("hourly", None, duration="8 hours")
    assert summary.base_pay == Decimal("0")
    assert summary.grand_total == sum(c.total for c in DEFAULT_ADDITIONAL_CHARGES)


@pytest.mark.django_db
def test_manifest_payment_uses_trip_estimate(manifest_factory):
    manifest = manifest_factory(driver_payment_type="mileage", driver_rate=Decimal("0.75"))
    trip = TripEstimate(distance="400 miles", duration="6 hours 0 minutes", fuel_cost="$120")
    assert manifest_payment(manifest, trip).base_pay == Decimal("300.00")
