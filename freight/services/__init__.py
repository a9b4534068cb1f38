from .exceptions import AuthenticationRequired


def require_actor(actor):
    """Every mutating operation names the signed-in user performing it."""
    if actor is None or not getattr(actor, "is_authenticated", False):
        raise AuthenticationRequired()
    return actor
