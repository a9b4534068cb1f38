from django.conf import settings

from freight.policies.navigation import get_sidebar_items


def layout_context(request):
    user = request.user

    if not user.is_authenticated:
        return {}

    return {
        "sidebar_items": get_sidebar_items(user),
        "overview_refresh_seconds": settings.FREIGHT_OVERVIEW_REFRESH_SECONDS,
    }
