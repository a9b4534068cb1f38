"""
Order splitting.

A split divides the order's top-level leg at a split point into exactly two
child legs. It is shallow: the parent leg keeps its manifest, and nothing is
re-planned for the children.
"""

import logging

from django.db import transaction

from freight.models import Location, Manifest, OrderLeg, SplitPoint
from freight.services import require_actor
from freight.services.exceptions import OriginalLegNotFound
from freight.services.orders import create_locations

logger = logging.getLogger(__name__)

SPLIT_CHILDREN = 2


def build_split_point(data):
    """
    Unsaved SplitPoint holding only the fields its type uses.

    `data` carries name, split_type and any of the per-type fields; fields
    that belong to other types are dropped.
    """
    split_type = data.get("split_type")
    point = SplitPoint(name=data.get("name", ""), split_type=split_type)
    for field in SplitPoint.FIELDS_BY_TYPE.get(split_type, ()):
        setattr(point, field, data.get(field))
    point.street_address = point.street_address or ""
    return point


@transaction.atomic
def split_order(*, actor, order, split_point, reason="", legs=None):
    """
    Split the order's top-level leg in two.

    Args:
        actor: signed-in user performing the split
        order: Order to split
        split_point: dict of split point fields (see build_split_point)
        reason: free text stored on both children
        legs: optional list of up to two dicts with "pickup_locations" and
            "delivery_locations" for the matching child leg

    Returns:
        (split_point, [first_child, second_child])

    Raises:
        ValidationError: the split point fields do not match its type
        OriginalLegNotFound: the order has no top-level leg
    """
    require_actor(actor)

    point = build_split_point(split_point)
    point.full_clean()

    original = order.top_level_leg()
    if original is None:
        raise OriginalLegNotFound(order.order_number)

    point.save()
    children = [
        OrderLeg.objects.create(
            order=order,
            parent_leg=original,
            split_point=point,
            split_sequence=sequence,
            sequence_number=original.sequence_number,
            status=Manifest.Status.PENDING,
            split_reason=reason or "",
        )
        for sequence in range(1, SPLIT_CHILDREN + 1)
    ]

    for child, plan in zip(children, legs or []):
        create_locations(
            {"leg": child},
            Location.LocationType.PICKUP,
            plan.get("pickup_locations", []),
        )
        create_locations(
            {"leg": child},
            Location.LocationType.DELIVERY,
            plan.get("delivery_locations", []),
        )

    logger.info(
        "Order %s leg %s split at %s into legs %s",
        order.order_number,
        original.pk,
        point,
        [child.pk for child in children],
    )
    return point, children
