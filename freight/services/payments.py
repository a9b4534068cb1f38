"""
Driver pay for a manifest.

Hourly drivers are paid rate × trip hours, mileage drivers rate × miles.
The additional charges are a fixed illustrative list until real accessorial
data is wired in. Amounts are kept as Decimal; rounding to cents happens only
when displayed.
"""

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional

from freight.models import Manifest

_DURATION_PART = re.compile(
    r"(\d+(?:\.\d+)?)\s*(hours?|hrs?|h|minutes?|mins?|m)\b", re.IGNORECASE
)
_LEADING_NUMBER = re.compile(r"^\s*(\d[\d,]*(?:\.\d+)?)")


@dataclass(frozen=True)
class AdditionalCharge:
    charge_type: str
    total: Decimal
    notes: str = ""
    quantity: Optional[Decimal] = None
    rate: Optional[Decimal] = None


DEFAULT_ADDITIONAL_CHARGES = (
    AdditionalCharge(
        "Detention Time",
        Decimal("62.50"),
        "Waiting at loading dock",
        quantity=Decimal("2.5"),
        rate=Decimal("25"),
    ),
    AdditionalCharge(
        "Extra Stop",
        Decimal("50.00"),
        "Unscheduled delivery location",
        quantity=Decimal("1"),
        rate=Decimal("50"),
    ),
    AdditionalCharge(
        "Tolls",
        Decimal("35.75"),
        "Highway tolls",
        quantity=Decimal("1"),
        rate=Decimal("35.75"),
    ),
    AdditionalCharge(
        "Fuel Surcharge",
        Decimal("22.50"),
        "5% surcharge on 450.00 due to fuel price increase",
    ),
    AdditionalCharge(
        "Special Handling",
        Decimal("75.00"),
        "Oversized item handling",
        quantity=Decimal("1"),
        rate=Decimal("75"),
    ),
)


@dataclass
class PaymentSummary:
    payment_type: str
    rate: Decimal
    quantity: Decimal
    unit: str
    base_pay: Decimal
    additional_charges: list = field(default_factory=list)

    @property
    def additional_total(self) -> Decimal:
        return sum((charge.total for charge in self.additional_charges), Decimal("0"))

    @property
    def grand_total(self) -> Decimal:
        return self.base_pay + self.additional_total


def parse_duration_hours(duration: str) -> Decimal:
    """'2 hours 30 minutes' -> Decimal('2.5'). Unparseable text counts as 0."""
    hours = Decimal("0")
    minutes = Decimal("0")
    for amount, unit in _DURATION_PART.findall(duration or ""):
        if unit.lower().startswith("h"):
            hours += Decimal(amount)
        else:
            minutes += Decimal(amount)
    return hours + minutes / Decimal("60")


def parse_distance_miles(distance: str) -> Decimal:
    """'300 miles' -> Decimal('300'). Unparseable text counts as 0."""
    match = _LEADING_NUMBER.match(distance or "")
    if not match:
        return Decimal("0")
    try:
        return Decimal(match.group(1).replace(",", ""))
    except InvalidOperation:
        return Decimal("0")


def calculate_payment(
    payment_type,
    rate,
    duration="",
    distance="",
    additional_charges=DEFAULT_ADDITIONAL_CHARGES,
) -> PaymentSummary:
    rate = Decimal(str(rate or 0))
    if payment_type == Manifest.PaymentType.HOURLY:
        quantity, unit = parse_duration_hours(duration), "hours"
    else:
        quantity, unit = parse_distance_miles(distance), "miles"
    return PaymentSummary(
        payment_type=payment_type,
        rate=rate,
        quantity=quantity,
        unit=unit,
        base_pay=rate * quantity,
        additional_charges=list(additional_charges),
    )


def manifest_payment(manifest, trip) -> PaymentSummary:
    """Payment summary for `manifest` over an estimated `trip`."""
    return calculate_payment(
        manifest.driver_payment_type,
        manifest.driver_rate,
        duration=trip.duration,
        distance=trip.distance,
    )
