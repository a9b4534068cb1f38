"""
Order entry rules, grouped by the three steps of the new-order wizard:

1. customer info
2. load details
3. pickup / delivery locations

Each `*_errors` helper returns a {field: message} dict so forms and services
can share them. `validate_*` helpers raise instead.
"""

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from freight.models import Location, Order
from freight.services.exceptions import ScheduleError

PHONE_RE = re.compile(r"^\+?[0-9\-\(\)\s]{7,20}$")

CUSTOMER_FIELDS = ("customer_name", "customer_address", "contact_person", "phone_number")
LOAD_FIELDS = (
    "load_tender_number",
    "rate",
    "currency",
    "commodity",
    "weight",
    "reference_number",
)
ORDER_FIELDS = CUSTOMER_FIELDS + LOAD_FIELDS

LOCATION_FIELDS = (
    "name",
    "street_address",
    "city",
    "date",
    "time",
    "contact_name",
    "contact_phone",
    "special_instructions",
    "terminal",
)
REQUIRED_LOCATION_FIELDS = {
    "name": "Location name is required",
    "street_address": "Street address is required",
    "city": "City is required",
    "date": "Date is required",
    "time": "Time is required",
}
# A drop-off takes its name and address from the terminal.
REQUIRED_DROP_OFF_FIELDS = {
    "date": "Date is required",
    "time": "Time is required",
}
ADDRESS_FIELDS = ("name", "street_address", "city")


def _text(fields, name):
    return str(fields.get(name) or "").strip()


def _positive_decimal(value):
    if value in (None, ""):
        return None
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        return None
    return number if number.is_finite() and number > 0 else None


def customer_errors(fields):
    errors = {}
    if len(_text(fields, "customer_name")) < 2:
        errors["customer_name"] = "Customer name must be at least 2 characters"
    if len(_text(fields, "customer_address")) < 5:
        errors["customer_address"] = "Customer address must be at least 5 characters"
    if len(_text(fields, "contact_person")) < 2:
        errors["contact_person"] = "Contact person must be at least 2 characters"
    if not PHONE_RE.match(_text(fields, "phone_number")):
        errors["phone_number"] = (
            "Invalid phone number format. Please enter a valid phone number"
        )
    return errors


def load_errors(fields):
    errors = {}
    if not _text(fields, "load_tender_number"):
        errors["load_tender_number"] = "Load tender number is required"
    if _positive_decimal(fields.get("rate")) is None:
        errors["rate"] = "Rate must be a positive number"
    currency = fields.get("currency") or settings.FREIGHT_DEFAULT_CURRENCY
    if currency not in Order.Currency.values:
        errors["currency"] = "Currency must be CAD or USD"
    if len(_text(fields, "commodity")) < 2:
        errors["commodity"] = "Commodity must be at least 2 characters"
    if _positive_decimal(fields.get("weight")) is None:
        errors["weight"] = "Weight must be a positive number"
    return errors


def location_errors(location, location_type):
    required = (
        REQUIRED_DROP_OFF_FIELDS
        if location_type == Location.LocationType.DROP_OFF
        else REQUIRED_LOCATION_FIELDS
    )
    errors = {
        field: message
        for field, message in required.items()
        if location.get(field) in (None, "")
    }
    terminal = location.get("terminal")
    if location_type == Location.LocationType.DROP_OFF and not terminal:
        errors["terminal"] = "Terminal is required for drop-off stops"
    elif location_type != Location.LocationType.DROP_OFF and terminal:
        errors["terminal"] = "Only drop-off stops can use a terminal"
    return errors


def scheduled_at(location):
    return timezone.make_aware(datetime.combine(location["date"], location["time"]))


def schedule_is_valid(pickups, deliveries):
    """Every pickup happens strictly before every delivery."""
    latest_pickup = max(scheduled_at(loc) for loc in pickups)
    earliest_delivery = min(scheduled_at(loc) for loc in deliveries)
    return latest_pickup < earliest_delivery


def validate_order_fields(fields):
    errors = {**customer_errors(fields), **load_errors(fields)}
    if errors:
        raise ValidationError(errors)


def validate_locations(pickups, deliveries, *, require_both=True):
    if require_both and not pickups:
        raise ValidationError("At least one pickup location is required")
    if require_both and not deliveries:
        raise ValidationError("At least one delivery location is required")

    errors = {}
    for prefix, location_type, rows in (
        ("pickup_locations", Location.LocationType.PICKUP, pickups),
        ("delivery_locations", Location.LocationType.DELIVERY, deliveries),
    ):
        for index, location in enumerate(rows):
            for field, message in location_errors(location, location_type).items():
                errors[f"{prefix}.{index}.{field}"] = message
    if errors:
        raise ValidationError(errors)

    if pickups and deliveries and not schedule_is_valid(pickups, deliveries):
        raise ScheduleError()
