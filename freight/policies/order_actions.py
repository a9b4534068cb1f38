from freight.models import ACTIVE_MANIFEST_STATUSES, Manifest, Order
from freight.policies.roles import can_dispatch


def actions_for(user, order: Order) -> list[str]:
    """Buttons shown on the order page for this user right now."""
    actions: list[str] = []

    if can_dispatch(user):
        actions.append("edit_order")
        actions.append("create_assignment")
        top_leg = order.top_level_leg()
        if top_leg is not None:
            actions.append("split_order")
            if Manifest.objects.filter(status__in=ACTIVE_MANIFEST_STATUSES).exists():
                actions.append("assign_manifest")

    actions.append("view_history")
    return actions
