"""
Order entity manager.

Creating an order writes the order, its pickup/delivery locations, the
initial leg and an audit row in one transaction: either all of them land or
none do.
"""

import logging

from django.conf import settings
from django.db import IntegrityError, transaction

from freight.models import AuditLog, Location, Manifest, Order, OrderLeg
from freight.services import require_actor
from freight.services.exceptions import (
    DuplicateEntry,
    DuplicateLoadTender,
    OriginalLegNotFound,
)
from freight.validation import (
    LOCATION_FIELDS,
    ORDER_FIELDS,
    validate_locations,
    validate_order_fields,
)

logger = logging.getLogger(__name__)


def translate_integrity_error(exc, load_tender_number=""):
    """
    Map a unique-constraint failure to a user-facing error.

    Backends word the message differently (postgres: "duplicate key value
    violates unique constraint ..._load_tender_number_key", sqlite: "UNIQUE
    constraint failed: freight_order.load_tender_number"), so match loosely.
    """
    message = str(exc).lower()
    if "load_tender_number" in message:
        return DuplicateLoadTender(load_tender_number)
    if "duplicate" in message or "unique" in message:
        return DuplicateEntry(details={"error": str(exc)})
    return None


def _order_values(fields):
    return {name: fields[name] for name in ORDER_FIELDS if name in fields}


def _location_values(location):
    return {name: location.get(name) for name in LOCATION_FIELDS if name in location}


def create_locations(owner_kwargs, location_type, rows):
    created = []
    for index, row in enumerate(rows):
        values = _location_values(row)
        values.setdefault("contact_name", "")
        values.setdefault("contact_phone", "")
        values["special_instructions"] = values.get("special_instructions") or ""
        created.append(
            Location.objects.create(
                **owner_kwargs,
                location_type=location_type,
                sequence_number=index,
                **values,
            )
        )
    return created


def create_order(*, actor, fields, pickup_locations, delivery_locations):
    """
    Create an order with its locations, initial leg and audit row.

    Args:
        actor: signed-in user performing the operation
        fields: customer and load fields (see validation.ORDER_FIELDS)
        pickup_locations: list of location dicts, in display order
        delivery_locations: list of location dicts, in display order

    Returns:
        The created Order

    Raises:
        ValidationError: a field or location is missing/invalid
        ScheduleError: a pickup is not strictly before every delivery
        DuplicateLoadTender / DuplicateEntry: unique constraint violated
    """
    require_actor(actor)
    validate_order_fields(fields)
    validate_locations(pickup_locations, delivery_locations)

    values = _order_values(fields)
    values["currency"] = values.get("currency") or settings.FREIGHT_DEFAULT_CURRENCY
    try:
        with transaction.atomic():
            order = Order.objects.create(created_by=actor, **values)
            create_locations(
                {"order": order}, Location.LocationType.PICKUP, pickup_locations
            )
            create_locations(
                {"order": order}, Location.LocationType.DELIVERY, delivery_locations
            )
            OrderLeg.objects.create(
                order=order, sequence_number=1, status=Manifest.Status.PENDING
            )
            AuditLog.log_change(
                order,
                action=AuditLog.Action.CREATE,
                user=actor,
                new_data=order.snapshot(),
            )
    except IntegrityError as exc:
        error = translate_integrity_error(exc, fields.get("load_tender_number", ""))
        if error is None:
            raise
        logger.warning("Order create rejected: %s", error.message)
        raise error from exc

    logger.info(
        "Order %s created by %s with %d pickup(s) and %d delivery(ies)",
        order.order_number,
        actor,
        len(pickup_locations),
        len(delivery_locations),
    )
    return order


def update_order(*, actor, order, fields, locations=None):
    """
    Edit an order and its existing locations in place.

    `locations` maps Location pk → dict of new values. The previous and new
    snapshots go to the audit trail together with the change.
    """
    require_actor(actor)
    validate_order_fields(fields)

    locations = {int(pk): values for pk, values in (locations or {}).items()}
    existing = {loc.pk: loc for loc in order.locations.select_related("city")}

    # The schedule rule covers the whole plan, edited rows or not.
    pickups, deliveries = [], []
    for pk, location in existing.items():
        row = {**location.snapshot(), "city": location.city, **locations.get(pk, {})}
        if location.location_type == Location.LocationType.PICKUP:
            pickups.append(row)
        else:
            deliveries.append(row)
    validate_locations(pickups, deliveries, require_both=False)

    # Bound ModelForms write into the instance while validating, so the
    # "before" picture comes from the database.
    previous = Order.objects.get(pk=order.pk).snapshot()
    try:
        with transaction.atomic():
            for name, value in _order_values(fields).items():
                setattr(order, name, value)
            order.save()
            for pk, values in locations.items():
                location = existing.get(pk)
                if location is None:
                    continue
                for name, value in _location_values(values).items():
                    setattr(location, name, value)
                location.special_instructions = location.special_instructions or ""
                location.save()
            AuditLog.log_change(
                order,
                action=AuditLog.Action.UPDATE,
                user=actor,
                previous_data=previous,
                new_data=order.snapshot(),
            )
    except IntegrityError as exc:
        error = translate_integrity_error(exc, fields.get("load_tender_number", ""))
        if error is None:
            raise
        logger.warning("Order %s update rejected: %s", order.order_number, error.message)
        raise error from exc

    logger.info("Order %s updated by %s", order.order_number, actor)
    return order


@transaction.atomic
def assign_manifest(*, actor, order, manifest):
    """Point the order's top-level leg at an existing manifest."""
    require_actor(actor)
    leg = order.top_level_leg()
    if leg is None:
        raise OriginalLegNotFound(order.order_number)
    leg.manifest = manifest
    leg.save(update_fields=["manifest", "updated_at"])
    logger.info(
        "Order %s leg %s assigned to manifest #%s",
        order.order_number,
        leg.pk,
        manifest.number,
    )
    return leg
