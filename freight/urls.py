"""
URL routing for the dispatch back office.

- /orders/ → order list
- /orders/new/ → new-order wizard
- /orders/<pk>/ → order details + edit
- /orders/<pk>/split|assignments/new|assign-manifest/ → order actions
- /manifests/ → manifest board
- /manifests/<pk>/ → stops, route preview, payment
- /locations/states|cities/ and /overview/vehicles/ → HTMX partials
"""

from django.urls import path

from .views import (
    assign_manifest,
    create_assignment,
    create_order,
    dashboard,
    location_cities,
    location_states,
    manifest_detail,
    manifest_edit,
    manifest_history,
    manifest_stops,
    manifests_list,
    order_detail,
    orders_list,
    overview_vehicles,
    split_order,
)

urlpatterns = [
    path("", dashboard, name="dashboard"),
    # HTMX partials
    path("overview/vehicles/", overview_vehicles, name="overview_vehicles"),
    path("locations/states/", location_states, name="location_states"),
    path("locations/cities/", location_cities, name="location_cities"),
    # Orders
    path("orders/", orders_list, name="orders_list"),
    path("orders/new/", create_order, name="create_order"),
    path("orders/<int:pk>/", order_detail, name="order_detail"),
    path("orders/<int:pk>/split/", split_order, name="split_order"),
    path(
        "orders/<int:pk>/assignments/new/",
        create_assignment,
        name="create_assignment",
    ),
    path(
        "orders/<int:pk>/assign-manifest/",
        assign_manifest,
        name="assign_manifest",
    ),
    # Manifests
    path("manifests/", manifests_list, name="manifests_list"),
    path("manifests/<int:pk>/", manifest_detail, name="manifest_detail"),
    path("manifests/<int:pk>/edit/", manifest_edit, name="manifest_edit"),
    path("manifests/<int:pk>/stops/", manifest_stops, name="manifest_stops"),
    path("manifests/<int:pk>/history/", manifest_history, name="manifest_history"),
]
