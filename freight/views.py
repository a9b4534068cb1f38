import logging
import random

from django.conf import settings
from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.db.models import Count, Q
from django.forms import modelformset_factory
from django.shortcuts import get_object_or_404, redirect, render
from django.views.decorators.http import require_GET, require_POST

from .forms import (
    AssignManifestForm,
    DeliveryFormSet,
    LegDeliveryFormSet,
    LegPickupFormSet,
    LocationForm,
    ManifestAssignmentForm,
    ManifestFilterForm,
    ManifestStopFormSet,
    OrderForm,
    PickupFormSet,
    SplitPointForm,
)
from .models import (
    ACTIVE_MANIFEST_STATUSES,
    Location,
    Manifest,
    Order,
)
from .policies.order_actions import actions_for
from .policies.roles import can_dispatch
from .services import locations as location_service
from .services import manifests as manifest_service
from .services import orders as order_service
from .services.exceptions import AssignmentConflict, ServiceError
from .services.payments import manifest_payment
from .services.routing import estimate_trip, static_map_url
from .services.splitting import split_order as split_order_service
from .services.telemetry import get_vehicle_locations

logger = logging.getLogger(__name__)

LocationEditFormSet = modelformset_factory(Location, form=LocationForm, extra=0)


def _report(request, exc):
    """Show a service or validation failure as banner messages."""
    if isinstance(exc, ServiceError):
        messages.error(request, exc.message)
        return
    for message in exc.messages:
        messages.error(request, message)


def _deny_unless_dispatcher(request):
    if can_dispatch(request.user):
        return None
    messages.error(request, "Only dispatchers can change orders and manifests.")
    return redirect("dashboard")


# ============================================================================
# OVERVIEW
# ============================================================================


@login_required
def dashboard(request):
    """Fleet overview: KPIs, recent orders and live vehicle positions."""
    manifest_counts = Manifest.objects.aggregate(
        active=Count("pk", filter=Q(status__in=ACTIVE_MANIFEST_STATUSES)),
        in_progress=Count("pk", filter=Q(status=Manifest.Status.IN_PROGRESS)),
    )
    context = {
        "order_count": Order.objects.count(),
        "active_manifest_count": manifest_counts["active"],
        "in_progress_count": manifest_counts["in_progress"],
        "recent_orders": Order.objects.all()[:10],
        "vehicles": get_vehicle_locations(),
        "refresh_seconds": settings.FREIGHT_OVERVIEW_REFRESH_SECONDS,
    }
    return render(request, "freight/dashboard.html", context)


@login_required
@require_GET
def overview_vehicles(request):
    """HTMX partial polled by the overview page."""
    return render(
        request,
        "freight/partials/vehicle_positions.html",
        {
            "vehicles": get_vehicle_locations(),
            "refresh_seconds": settings.FREIGHT_OVERVIEW_REFRESH_SECONDS,
        },
    )


# ============================================================================
# LOCATION LOOKUPS (HTMX)
# ============================================================================


def _lookup_param(request, name):
    # Formset selects are prefixed ("pickup-0-country"), so match the suffix.
    if name in request.GET:
        return request.GET[name]
    return next(
        (value for key, value in request.GET.items() if key.endswith(f"-{name}")), ""
    )


@login_required
@require_GET
def location_states(request):
    states = location_service.states_for_country(_lookup_param(request, "country"))
    return render(
        request,
        "freight/partials/options.html",
        {"options": states, "placeholder": "Select state/province"},
    )


@login_required
@require_GET
def location_cities(request):
    cities = location_service.cities_for_state(_lookup_param(request, "state"))
    return render(
        request,
        "freight/partials/options.html",
        {"options": cities, "placeholder": "Select city"},
    )


# ============================================================================
# ORDERS
# ============================================================================


@login_required
def orders_list(request):
    search = request.GET.get("q", "").strip()
    orders = Order.objects.annotate(leg_count=Count("legs"))
    if search:
        orders = orders.filter(
            Q(order_number__icontains=search)
            | Q(customer_name__icontains=search)
            | Q(load_tender_number__icontains=search)
        )
    return render(
        request, "freight/orders_list.html", {"orders": orders, "search": search}
    )


@login_required
def create_order(request):
    """
    New-order wizard: customer info, load details, pickup/delivery stops.

    All three steps post together; the template reopens the first step
    that has an error.
    """
    denied = _deny_unless_dispatcher(request)
    if denied:
        return denied

    if request.method == "POST":
        form = OrderForm(request.POST)
        pickups = PickupFormSet(request.POST, prefix="pickup")
        deliveries = DeliveryFormSet(request.POST, prefix="delivery")
        if form.is_valid() and pickups.is_valid() and deliveries.is_valid():
            try:
                order = order_service.create_order(
                    actor=request.user,
                    fields=form.cleaned_data,
                    pickup_locations=[f.location_data() for f in pickups.forms],
                    delivery_locations=[f.location_data() for f in deliveries.forms],
                )
            except (ServiceError, ValidationError) as exc:
                logger.warning("Order create failed: %s", exc)
                _report(request, exc)
            else:
                messages.success(request, f"Order {order.order_number} created.")
                return redirect("order_detail", pk=order.pk)
    else:
        form = OrderForm()
        pickups = PickupFormSet(prefix="pickup")
        deliveries = DeliveryFormSet(prefix="delivery")

    current_step = form.step_of_first_error() if form.is_bound else None
    if current_step is None and form.is_bound:
        current_step = 3
    return render(
        request,
        "freight/order_form.html",
        {
            "form": form,
            "pickup_formset": pickups,
            "delivery_formset": deliveries,
            "current_step": current_step or 1,
        },
    )


@login_required
def order_detail(request, pk):
    """Order overview plus the in-place editor for order and locations."""
    order = get_object_or_404(Order, pk=pk)
    locations = order.locations.select_related(  # type: ignore
        "city__state__country", "terminal"
    )

    if request.method == "POST":
        denied = _deny_unless_dispatcher(request)
        if denied:
            return denied
        form = OrderForm(request.POST, instance=order)
        location_formset = LocationEditFormSet(
            request.POST, queryset=locations, prefix="locations"
        )
        if form.is_valid() and location_formset.is_valid():
            try:
                order_service.update_order(
                    actor=request.user,
                    order=order,
                    fields=form.cleaned_data,
                    locations={
                        f.instance.pk: f.location_data() for f in location_formset.forms
                    },
                )
            except (ServiceError, ValidationError) as exc:
                logger.warning("Order %s update failed: %s", order.order_number, exc)
                _report(request, exc)
            else:
                messages.success(request, "Order updated successfully.")
                return redirect("order_detail", pk=order.pk)
    else:
        form = OrderForm(instance=order)
        location_formset = LocationEditFormSet(
            queryset=locations,
            prefix="locations",
            form_kwargs={"lookup": location_service.LocationLookup().preload(locations)},
        )

    legs = order.legs.select_related(  # type: ignore
        "manifest__driver", "manifest__vehicle", "split_point"
    )
    return render(
        request,
        "freight/order_detail.html",
        {
            "order": order,
            "form": form,
            "location_formset": location_formset,
            "pickups": [loc for loc in locations if loc.location_type == Location.LocationType.PICKUP],
            "deliveries": [
                loc for loc in locations if loc.location_type == Location.LocationType.DELIVERY
            ],
            "legs": legs,
            "manifests": order.manifests().select_related("driver", "vehicle", "trailer"),
            "audit_logs": order.audit_logs.select_related("created_by")[:20],  # type: ignore
            "available_manifests": Manifest.objects.filter(
                status__in=ACTIVE_MANIFEST_STATUSES
            ),
            "available_actions": actions_for(request.user, order),
        },
    )


def _leg_formsets(data=None):
    """Optional pickup/delivery plan for each of the two split legs."""
    return [
        {
            "pickup_locations": LegPickupFormSet(data, prefix=f"{leg}-pickup"),
            "delivery_locations": LegDeliveryFormSet(data, prefix=f"{leg}-delivery"),
        }
        for leg in ("leg1", "leg2")
    ]


def _leg_plan(formsets):
    # Blank extra rows come back with empty cleaned_data.
    return {
        key: [form.location_data() for form in formset.forms if form.cleaned_data]
        for key, formset in formsets.items()
    }


@login_required
def split_order(request, pk):
    order = get_object_or_404(Order, pk=pk)
    denied = _deny_unless_dispatcher(request)
    if denied:
        return denied

    if request.method == "POST":
        form = SplitPointForm(request.POST)
        leg_formsets = _leg_formsets(request.POST)
        plans_valid = all(
            [formset.is_valid() for plan in leg_formsets for formset in plan.values()]
        )
        if form.is_valid() and plans_valid:
            try:
                point, children = split_order_service(
                    actor=request.user,
                    order=order,
                    split_point=form.split_point_data(),
                    reason=form.cleaned_data["reason"],
                    legs=[_leg_plan(plan) for plan in leg_formsets],
                )
            except (ServiceError, ValidationError) as exc:
                logger.warning("Split of %s failed: %s", order.order_number, exc)
                _report(request, exc)
            else:
                messages.success(
                    request, f"Order split at {point.name} into {len(children)} legs."
                )
                return redirect("order_detail", pk=order.pk)
    else:
        form = SplitPointForm()
        leg_formsets = _leg_formsets()

    return render(
        request,
        "freight/split_form.html",
        {"order": order, "form": form, "leg_formsets": leg_formsets},
    )


@login_required
@require_POST
def assign_manifest(request, pk):
    """Attach an existing manifest to the order's top-level leg."""
    order = get_object_or_404(Order, pk=pk)
    denied = _deny_unless_dispatcher(request)
    if denied:
        return denied

    form = AssignManifestForm(request.POST)
    if not form.is_valid():
        for error in form.errors.get("manifest", []):
            messages.error(request, error)
        return redirect("order_detail", pk=order.pk)

    manifest = form.cleaned_data["manifest"]
    try:
        order_service.assign_manifest(actor=request.user, order=order, manifest=manifest)
    except ServiceError as exc:
        _report(request, exc)
    else:
        messages.success(request, f"Manifest #{manifest.number} assigned.")
    return redirect("order_detail", pk=order.pk)


@login_required
def create_assignment(request, pk):
    """
    New manifest for an order. A driver/vehicle already on an active
    manifest gets a confirmation page instead of an error.
    """
    order = get_object_or_404(Order, pk=pk)
    denied = _deny_unless_dispatcher(request)
    if denied:
        return denied

    if request.method == "POST":
        form = ManifestAssignmentForm(request.POST)
        if form.is_valid():
            data = form.cleaned_data
            try:
                manifest = manifest_service.create_manifest(
                    actor=request.user,
                    order=order,
                    driver=data["driver"],
                    vehicle=data["vehicle"],
                    trailer=data.get("trailer"),
                    rate=data["driver_rate"],
                    manifest_type=data["manifest_type"],
                    order_type=data["order_type"],
                    payment_type=data["driver_payment_type"],
                    status=data["status"],
                    confirm=data.get("confirm", False),
                )
            except AssignmentConflict as exc:
                return render(
                    request,
                    "freight/assignment_confirm.html",
                    {"order": order, "form": form, "conflicts": exc.conflicts},
                )
            except (ServiceError, ValidationError) as exc:
                _report(request, exc)
            else:
                messages.success(request, f"Manifest #{manifest.number} created.")
                return redirect("order_detail", pk=order.pk)
    else:
        form = ManifestAssignmentForm()

    return render(
        request, "freight/assignment_form.html", {"order": order, "form": form}
    )


# ============================================================================
# MANIFESTS
# ============================================================================


@login_required
def manifests_list(request):
    """Manifest board with search, status/driver/vehicle filters and sort."""
    filter_form = ManifestFilterForm(request.GET or None)
    filters = filter_form.cleaned_data if filter_form.is_valid() else {}
    driver = filters.get("driver")
    vehicle = filters.get("vehicle")
    manifests = manifest_service.search_manifests(
        search=filters.get("search", ""),
        status=filters.get("status", ""),
        driver_id=driver.pk if driver else None,
        vehicle_id=vehicle.pk if vehicle else None,
        order=filters.get("order") or "desc",
    )
    view_mode = "grid" if request.GET.get("view") == "grid" else "list"
    return render(
        request,
        "freight/manifests_list.html",
        {"manifests": manifests, "filter_form": filter_form, "view_mode": view_mode},
    )


@login_required
def manifest_detail(request, pk):
    """Stops, route preview and driver payment summary."""
    manifest = get_object_or_404(
        Manifest.objects.select_related("driver", "vehicle", "trailer"), pk=pk
    )
    stops = list(
        manifest.stops.select_related("city__state__country", "terminal")  # type: ignore
    )
    # Seeded per manifest so the estimate is stable across reloads.
    trip = estimate_trip(stops, rng=random.Random(manifest.pk))
    return render(
        request,
        "freight/manifest_detail.html",
        {
            "manifest": manifest,
            "stops": sorted(stops, key=lambda stop: stop.sequence_number),
            "orders": manifest.orders(),
            "trip": trip,
            "payment": manifest_payment(manifest, trip),
            "map_url": static_map_url(stops, settings.GOOGLE_MAPS_API_KEY),
        },
    )


@login_required
def manifest_edit(request, pk):
    """Edit-in-place of driver, vehicle, trailer, pay terms and status."""
    manifest = get_object_or_404(Manifest, pk=pk)
    denied = _deny_unless_dispatcher(request)
    if denied:
        return denied

    if request.method == "POST":
        form = ManifestAssignmentForm(request.POST, instance=manifest)
        if form.is_valid():
            try:
                manifest_service.update_manifest(
                    actor=request.user,
                    manifest=manifest,
                    fields=form.assignment_data(),
                    confirm=form.cleaned_data.get("confirm", False),
                )
            except AssignmentConflict as exc:
                return render(
                    request,
                    "freight/assignment_confirm.html",
                    {"manifest": manifest, "form": form, "conflicts": exc.conflicts},
                )
            except (ServiceError, ValidationError) as exc:
                _report(request, exc)
            else:
                messages.success(request, f"Manifest #{manifest.number} updated.")
                return redirect("manifest_detail", pk=manifest.pk)
    else:
        form = ManifestAssignmentForm(instance=manifest)

    return render(
        request,
        "freight/assignment_form.html",
        {"manifest": manifest, "form": form},
    )


@login_required
def manifest_history(request, pk):
    manifest = get_object_or_404(Manifest, pk=pk)
    history = manifest.history.select_related("changed_by")  # type: ignore
    return render(
        request,
        "freight/manifest_history.html",
        {"manifest": manifest, "history": history},
    )


def _stop_initial(stop):
    state = stop.city.state
    return {
        "location_type_choice": stop.location_type,
        "name": stop.name,
        "street_address": stop.street_address,
        "country": state.country_id,
        "state": state.pk,
        "city": stop.city_id,
        "date": stop.date,
        "time": stop.time,
        "contact_name": stop.contact_name,
        "contact_phone": stop.contact_phone,
        "special_instructions": stop.special_instructions,
        "terminal": stop.terminal_id,
    }


@login_required
def manifest_stops(request, pk):
    """Ordered stop list of a manifest. Row order is driving order."""
    manifest = get_object_or_404(Manifest, pk=pk)
    denied = _deny_unless_dispatcher(request)
    if denied:
        return denied

    if request.method == "POST":
        formset = ManifestStopFormSet(request.POST, prefix="stops")
        if formset.is_valid():
            stops = [
                f.location_data()
                for f in formset.forms
                if f.cleaned_data and not f.cleaned_data.get("DELETE")
            ]
            try:
                manifest_service.save_manifest_stops(
                    actor=request.user, manifest=manifest, stops=stops
                )
            except (ServiceError, ValidationError) as exc:
                _report(request, exc)
            else:
                messages.success(request, "Stops saved.")
                return redirect("manifest_detail", pk=manifest.pk)
    else:
        stops = manifest.stops.select_related("city__state").order_by(  # type: ignore
            "sequence_number"
        )
        formset = ManifestStopFormSet(
            prefix="stops", initial=[_stop_initial(stop) for stop in stops]
        )

    return render(
        request,
        "freight/manifest_stops.html",
        {"manifest": manifest, "formset": formset},
    )
