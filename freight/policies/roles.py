def is_accounts(user) -> bool:
    return getattr(user, "role", None) == "accounts"


def can_dispatch(user) -> bool:
    """Dispatchers, fleet managers and admins create orders and assignments."""
    return bool(
        getattr(user, "is_superuser", False)
        or getattr(user, "role", None) in {"dispatcher", "fleet_manager", "admin"}
    )
