"""
Manifest entity manager: create/assign, edit in place, stop lists and the
manifest board filters.
"""

import logging
from decimal import Decimal, InvalidOperation

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q

from freight.models import Location, Manifest, ManifestHistory, OrderLeg
from freight.services import require_actor
from freight.services.assignments import check_assignment
from freight.services.exceptions import AssignmentConflict
from freight.validation import ADDRESS_FIELDS, LOCATION_FIELDS, location_errors

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "manifest_type",
    "order_type",
    "driver",
    "vehicle",
    "trailer",
    "driver_payment_type",
    "driver_rate",
    "status",
)


class ManifestWorkflow:
    """
    Intended status path for a manifest.

    The status stays a free choice in every edit form; this graph only
    tells callers whether a change follows the usual path.
    """

    EXPECTED_TRANSITIONS = {
        Manifest.Status.PENDING: [Manifest.Status.IN_PROGRESS, Manifest.Status.CANCELLED],
        Manifest.Status.IN_PROGRESS: [Manifest.Status.COMPLETED, Manifest.Status.CANCELLED],
        Manifest.Status.COMPLETED: [],
        Manifest.Status.CANCELLED: [],
    }

    @classmethod
    def is_expected_transition(cls, current_status, new_status):
        if current_status == new_status:
            return True
        return new_status in cls.EXPECTED_TRANSITIONS.get(current_status, [])

    @classmethod
    def next_statuses(cls, current_status):
        return list(cls.EXPECTED_TRANSITIONS.get(current_status, []))


def _positive_rate(rate):
    try:
        value = Decimal(str(rate))
    except (InvalidOperation, TypeError):
        return None
    return value if value.is_finite() and value > 0 else None


def validate_assignment(*, driver, vehicle, rate):
    errors = {}
    if driver is None:
        errors["driver"] = "Driver is required"
    if vehicle is None:
        errors["vehicle"] = "Vehicle is required"
    if _positive_rate(rate) is None:
        errors["driver_rate"] = "Valid driver rate is required"
    if errors:
        raise ValidationError(errors)


def _raise_on_conflicts(*, driver, vehicle, exclude_manifest_id=None, confirm=False):
    conflicts = check_assignment(
        driver_id=driver.pk if driver else None,
        vehicle_id=vehicle.pk if vehicle else None,
        exclude_manifest_id=exclude_manifest_id,
    )
    if not conflicts:
        return
    if not confirm:
        raise AssignmentConflict(conflicts)
    logger.warning(
        "Assignment saved despite conflicts: %s",
        ", ".join(f"{c.resource} on #{c.manifest_number}" for c in conflicts),
    )


def create_manifest(
    *,
    actor,
    order,
    driver,
    vehicle,
    rate,
    trailer=None,
    manifest_type=Manifest.ManifestType.PICKUP,
    order_type=Manifest.OrderType.FTL,
    payment_type=Manifest.PaymentType.HOURLY,
    status=Manifest.Status.PENDING,
    confirm=False,
):
    """
    Create a manifest for `order` and link it through a new leg.

    Args:
        confirm: save even if the driver or vehicle is on another active
            manifest. Without it an AssignmentConflict is raised.

    Returns:
        The created Manifest

    Raises:
        ValidationError: driver, vehicle or a positive rate is missing
        AssignmentConflict: double booking found and not confirmed
    """
    require_actor(actor)
    validate_assignment(driver=driver, vehicle=vehicle, rate=rate)
    _raise_on_conflicts(driver=driver, vehicle=vehicle, confirm=confirm)

    with transaction.atomic():
        manifest = Manifest.objects.create(
            manifest_type=manifest_type,
            order_type=order_type,
            driver=driver,
            vehicle=vehicle,
            trailer=trailer,
            driver_payment_type=payment_type,
            driver_rate=_positive_rate(rate),
            status=status,
            created_by=actor,
        )
        OrderLeg.objects.create(
            order=order, manifest=manifest, sequence_number=1, status=status
        )
        ManifestHistory.record(manifest, changed_by=actor)

    logger.info(
        "Manifest #%s created for order %s (driver=%s, vehicle=%s)",
        manifest.number,
        order.order_number,
        driver,
        vehicle,
    )
    return manifest


def update_manifest(*, actor, manifest, fields, confirm=False):
    """
    Edit a manifest's resources, pay terms or status in place.

    The double-booking check skips the manifest being edited. Off-path
    status changes are allowed and logged.
    """
    require_actor(actor)
    values = {name: fields[name] for name in EDITABLE_FIELDS if name in fields}
    driver = values.get("driver", manifest.driver)
    vehicle = values.get("vehicle", manifest.vehicle)
    rate = values.get("driver_rate", manifest.driver_rate)
    validate_assignment(driver=driver, vehicle=vehicle, rate=rate)
    _raise_on_conflicts(
        driver=driver,
        vehicle=vehicle,
        exclude_manifest_id=manifest.pk,
        confirm=confirm,
    )

    previous_status = (
        Manifest.objects.filter(pk=manifest.pk).values_list("status", flat=True).first()
        or manifest.status
    )
    new_status = values.get("status", previous_status)
    if not ManifestWorkflow.is_expected_transition(previous_status, new_status):
        logger.warning(
            "Manifest #%s moved off the usual path: %s -> %s",
            manifest.number,
            previous_status,
            new_status,
        )

    with transaction.atomic():
        for name, value in values.items():
            setattr(manifest, name, value)
        manifest.driver_rate = _positive_rate(rate)
        manifest.save()
        ManifestHistory.record(
            manifest, changed_by=actor, previous_status=previous_status
        )

    logger.info(
        "Manifest #%s updated by %s (%s -> %s)",
        manifest.number,
        actor,
        previous_status,
        new_status,
    )
    return manifest


def _fill_from_terminal(values):
    terminal = values["terminal"]
    defaults = {
        "name": terminal.name,
        "street_address": terminal.street_address,
        "city": terminal.city,
    }
    for field in ADDRESS_FIELDS:
        if values[field] in (None, ""):
            values[field] = defaults[field]


def save_manifest_stops(*, actor, manifest, stops):
    """
    Replace the manifest's stop list. List order is driving order.

    Drop-offs left without a name, address or city take the terminal's.

    Raises:
        ValidationError: a stop is missing a field or breaks the
            drop-off/terminal rule (keys are "stops.<index>.<field>")
    """
    require_actor(actor)
    errors = {}
    for index, stop in enumerate(stops):
        stop_type = stop.get("location_type")
        if stop_type not in Location.LocationType.values:
            errors[f"stops.{index}.location_type"] = "Stop type is required"
            continue
        for field, message in location_errors(stop, stop_type).items():
            errors[f"stops.{index}.{field}"] = message
    if errors:
        raise ValidationError(errors)

    with transaction.atomic():
        manifest.stops.all().delete()  # type: ignore
        created = []
        for index, stop in enumerate(stops):
            values = {name: stop.get(name) for name in LOCATION_FIELDS}
            if stop["location_type"] == Location.LocationType.DROP_OFF:
                _fill_from_terminal(values)
            else:
                values["terminal"] = None
            for optional in ("contact_name", "contact_phone", "special_instructions"):
                values[optional] = values[optional] or ""
            created.append(
                Location.objects.create(
                    manifest=manifest,
                    location_type=stop["location_type"],
                    sequence_number=index,
                    **values,
                )
            )
        manifest.save(update_fields=["updated_at"])

    logger.info("Manifest #%s stops saved (%d)", manifest.number, len(created))
    return created


def search_manifests(
    queryset=None,
    *,
    search="",
    status="",
    driver_id=None,
    vehicle_id=None,
    order="desc",
):
    """Filter the manifest board. Empty/"all" filters are ignored."""
    if queryset is None:
        queryset = Manifest.objects.all()
    queryset = queryset.select_related("driver", "vehicle", "trailer")

    search = (search or "").strip()
    if search:
        queryset = queryset.filter(
            Q(number__icontains=search)
            | Q(driver__first_name__icontains=search)
            | Q(driver__last_name__icontains=search)
            | Q(vehicle__number__icontains=search)
            | Q(legs__order__order_number__icontains=search)
            | Q(legs__order__customer_name__icontains=search)
        ).distinct()
    if status and status != "all":
        queryset = queryset.filter(status=status)
    if driver_id and driver_id != "all":
        queryset = queryset.filter(driver_id=driver_id)
    if vehicle_id and vehicle_id != "all":
        queryset = queryset.filter(vehicle_id=vehicle_id)

    if order == "asc":
        return queryset.order_by("created_at", "pk")
    return queryset.order_by("-created_at", "-pk")
