"""
Double-booking checks for drivers and vehicles.

The predicate works on manifests already fetched into memory, so the same
rule serves the create dialog and the edit-in-place list. It is advisory:
two dispatchers saving at the same moment can both pass the check.
"""

from typing import Iterable, NamedTuple, Optional

from django.db.models import Q

from freight.models import ACTIVE_MANIFEST_STATUSES, Manifest


class Conflict(NamedTuple):
    resource: str
    manifest_number: str


# resource name -> manifest attribute holding its id
RESOURCE_FIELDS = {
    "driver": "driver_id",
    "vehicle": "vehicle_id",
}


def _get(manifest, field):
    if isinstance(manifest, dict):
        return manifest.get(field)
    return getattr(manifest, field)


def is_resource_double_booked(
    manifests: Iterable,
    resource_id,
    resource_field: str,
    exclude_manifest_id=None,
    active_statuses=ACTIVE_MANIFEST_STATUSES,
) -> bool:
    """
    True if another manifest holds `resource_id` in `resource_field` while
    its status is active.

    `manifests` may hold model instances or plain dicts.
    """
    if resource_id in (None, ""):
        return False
    return any(
        _conflicting(m, resource_id, resource_field, exclude_manifest_id, active_statuses)
        for m in manifests
    )


def _conflicting(manifest, resource_id, resource_field, exclude_manifest_id, active_statuses):
    if exclude_manifest_id is not None and str(_get(manifest, "id")) == str(
        exclude_manifest_id
    ):
        return False
    return (
        str(_get(manifest, resource_field)) == str(resource_id)
        and _get(manifest, "status") in active_statuses
    )


def find_conflicts(
    manifests: Iterable,
    *,
    driver_id=None,
    vehicle_id=None,
    exclude_manifest_id=None,
) -> list[Conflict]:
    """First conflicting manifest per resource, driver before vehicle."""
    manifests = list(manifests)
    conflicts = []
    for resource, resource_id in (("driver", driver_id), ("vehicle", vehicle_id)):
        field = RESOURCE_FIELDS[resource]
        if not is_resource_double_booked(
            manifests, resource_id, field, exclude_manifest_id
        ):
            continue
        match = next(
            m
            for m in manifests
            if _conflicting(
                m, resource_id, field, exclude_manifest_id, ACTIVE_MANIFEST_STATUSES
            )
        )
        conflicts.append(Conflict(resource, _get(match, "number")))
    return conflicts


def active_manifest_snapshot(
    driver_id=None, vehicle_id=None, exclude_manifest_id: Optional[int] = None
):
    """Active manifests that share the driver or the vehicle."""
    resources = Q()
    if driver_id:
        resources |= Q(driver_id=driver_id)
    if vehicle_id:
        resources |= Q(vehicle_id=vehicle_id)
    if not resources:
        return []

    queryset = Manifest.objects.filter(resources, status__in=ACTIVE_MANIFEST_STATUSES)
    if exclude_manifest_id is not None:
        queryset = queryset.exclude(pk=exclude_manifest_id)
    return list(queryset.order_by("created_at", "pk"))


def check_assignment(*, driver_id=None, vehicle_id=None, exclude_manifest_id=None):
    snapshot = active_manifest_snapshot(driver_id, vehicle_id, exclude_manifest_id)
    return find_conflicts(
        snapshot,
        driver_id=driver_id,
        vehicle_id=vehicle_id,
        exclude_manifest_id=exclude_manifest_id,
    )
