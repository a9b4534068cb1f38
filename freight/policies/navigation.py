from freight.policies.roles import can_dispatch, is_accounts


def get_sidebar_items(user):
    """
    Pure function. No request. No DB writes. Safe to test.
    """
    if not getattr(user, "is_authenticated", False):
        return []

    items = [{"label": "Overview", "url": "dashboard"}]
    if can_dispatch(user):
        items += [
            {"label": "New Order", "url": "create_order"},
            {"label": "Orders", "url": "orders_list"},
            {"label": "Manifests", "url": "manifests_list"},
        ]
    elif is_accounts(user):
        items += [
            {"label": "Orders", "url": "orders_list"},
            {"label": "Manifests", "url": "manifests_list"},
        ]
    return items
