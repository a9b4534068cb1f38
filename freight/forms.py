from typing import cast

from django import forms
from django.conf import settings
from django.core.validators import MinValueValidator
from django.forms import ModelChoiceField, formset_factory
from django.urls import reverse

from .models import (
    ACTIVE_MANIFEST_STATUSES,
    City,
    Country,
    Driver,
    Location,
    Manifest,
    Order,
    SplitPoint,
    State,
    Terminal,
    Trailer,
    Vehicle,
)
from .validation import (
    ADDRESS_FIELDS,
    CUSTOMER_FIELDS,
    customer_errors,
    load_errors,
    location_errors,
)


class OrderForm(forms.ModelForm):
    """
    Customer + load details of an order (wizard steps 1 and 2).

    Rules live in `freight.validation` so the service layer enforces the same
    ones; the form only maps them onto fields.
    """

    STEPS = {
        1: CUSTOMER_FIELDS,
        2: ("load_tender_number", "rate", "currency", "commodity", "weight", "reference_number"),
    }

    class Meta:
        model = Order
        fields = [
            # customer
            "customer_name",
            "customer_address",
            "contact_person",
            "phone_number",
            # load
            "load_tender_number",
            "rate",
            "currency",
            "commodity",
            "weight",
            "reference_number",
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance.pk is None:
            self.initial["currency"] = settings.FREIGHT_DEFAULT_CURRENCY

        placeholders = {
            "customer_name": "Customer or shipper name",
            "phone_number": "+1 (555) 123-4567",
            "load_tender_number": "Tender # from the customer",
            "rate": "0.00",
            "weight": "lbs",
        }
        for name, field in self.fields.items():
            if name in placeholders:
                field.widget.attrs.setdefault("placeholder", placeholders[name])

        # "Must be a positive number" comes from validation, not the model.
        for name in ("rate", "weight"):
            self.fields[name].validators = [
                validator
                for validator in self.fields[name].validators
                if not isinstance(validator, MinValueValidator)
            ]

    def clean(self):
        cleaned_data = super().clean()
        for field, message in {
            **customer_errors(cleaned_data),
            **load_errors(cleaned_data),
        }.items():
            if field in self.fields and field not in self.errors:
                self.add_error(field, message)
        return cleaned_data

    def step_of_first_error(self):
        for step, fields in self.STEPS.items():
            if any(name in self.errors for name in fields):
                return step
        return None


class LocationForm(forms.ModelForm):
    """
    A pickup, delivery or drop-off row with cascading country → state → city
    dropdowns (HTMX swaps the dependent options).
    """

    country = forms.ModelChoiceField(queryset=Country.objects.all(), required=False)
    state = forms.ModelChoiceField(queryset=State.objects.none(), required=False)

    class Meta:
        model = Location
        fields = [
            "name",
            "street_address",
            "country",
            "state",
            "city",
            "date",
            "time",
            "contact_name",
            "contact_phone",
            "special_instructions",
        ]
        widgets = {
            "date": forms.DateInput(attrs={"type": "date"}),
            "time": forms.TimeInput(attrs={"type": "time", "step": "60"}),
            "special_instructions": forms.Textarea(attrs={"rows": 2}),
        }

    location_type = Location.LocationType.PICKUP

    def __init__(self, *args, **kwargs):
        self.location_type = kwargs.pop("location_type", self.location_type)
        lookup = kwargs.pop("lookup", None)
        super().__init__(*args, **kwargs)

        country_id = None
        state_id = None
        # EDIT: start from the saved city
        if self.instance and self.instance.pk and self.instance.city_id:
            state = self.instance.city.state
            state_id = state.pk
            country_id = state.country_id
            self.initial.setdefault("state", state_id)
            self.initial.setdefault("country", country_id)
        # GET with initial rows (manifest stop editor)
        country_id = country_id or self.initial.get("country")
        state_id = state_id or self.initial.get("state")
        # POST: whatever the user picked
        if self.add_prefix("country") in self.data:
            country_id = self.data.get(self.add_prefix("country"))
        if self.add_prefix("state") in self.data:
            state_id = self.data.get(self.add_prefix("state"))

        state_field = cast(ModelChoiceField, self.fields["state"])
        city_field = cast(ModelChoiceField, self.fields["city"])
        state_field.queryset = (
            State.objects.filter(country_id=country_id) if country_id else State.objects.none()
        )
        city_field.queryset = (
            City.objects.filter(state_id=state_id) if state_id else City.objects.none()
        )
        # Many rows share a country/state: render options from the shared cache.
        if lookup is not None and not self.is_bound:
            if country_id:
                state_field.widget.choices = [("", state_field.empty_label)] + [
                    (state.pk, state.name) for state in lookup.states(country_id)
                ]
            if state_id:
                city_field.widget.choices = [("", city_field.empty_label)] + [
                    (city.pk, city.name) for city in lookup.cities(state_id)
                ]

        self.fields["country"].widget.attrs.update(
            {
                "hx-get": reverse("location_states"),
                "hx-target": f"#{self['state'].auto_id}",
                "hx-trigger": "change",
            }
        )
        self.fields["state"].widget.attrs.update(
            {
                "hx-get": reverse("location_cities"),
                "hx-target": f"#{self['city'].auto_id}",
                "hx-trigger": "change",
            }
        )

    def clean(self):
        cleaned_data = super().clean()
        for field, message in location_errors(cleaned_data, self.location_type).items():
            if field in self.fields and field not in self.errors:
                self.add_error(field, message)
        return cleaned_data

    def location_data(self):
        """Cleaned values the services accept (no dropdown-only fields)."""
        data = dict(self.cleaned_data)
        data.pop("country", None)
        data.pop("state", None)
        return data


class PickupLocationForm(LocationForm):
    location_type = Location.LocationType.PICKUP


class DeliveryLocationForm(LocationForm):
    location_type = Location.LocationType.DELIVERY


PickupFormSet = formset_factory(
    PickupLocationForm, extra=0, min_num=1, validate_min=True
)
DeliveryFormSet = formset_factory(
    DeliveryLocationForm, extra=0, min_num=1, validate_min=True
)

# Split legs: the plan is optional, so an untouched row is skipped.
LegPickupFormSet = formset_factory(PickupLocationForm, extra=1)
LegDeliveryFormSet = formset_factory(DeliveryLocationForm, extra=1)


class ManifestStopForm(LocationForm):
    location_type_choice = forms.ChoiceField(
        label="Stop type", choices=Location.LocationType.choices
    )
    terminal = forms.ModelChoiceField(queryset=Terminal.objects.all(), required=False)

    field_order = ["location_type_choice", "terminal"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Drop-offs may leave these blank; clean() applies the per-type rule.
        for name in ADDRESS_FIELDS:
            self.fields[name].required = False
        if self.instance and self.instance.pk:
            self.initial.setdefault("location_type_choice", self.instance.location_type)
            self.initial.setdefault("terminal", self.instance.terminal_id)

    def clean(self):
        self.location_type = self.data.get(
            self.add_prefix("location_type_choice"), self.location_type
        )
        return super().clean()

    def location_data(self):
        data = super().location_data()
        data["location_type"] = data.pop("location_type_choice")
        return data


ManifestStopFormSet = formset_factory(
    ManifestStopForm, extra=0, min_num=1, validate_min=True, can_delete=True
)


class ManifestAssignmentForm(forms.ModelForm):
    """Create or edit a manifest assignment. Only active resources are offered."""

    confirm = forms.BooleanField(required=False, widget=forms.HiddenInput)

    class Meta:
        model = Manifest
        fields = [
            "manifest_type",
            "order_type",
            "driver",
            "vehicle",
            "trailer",
            "driver_payment_type",
            "driver_rate",
            "status",
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)

        driver_field = cast(ModelChoiceField, self.fields["driver"])
        vehicle_field = cast(ModelChoiceField, self.fields["vehicle"])
        trailer_field = cast(ModelChoiceField, self.fields["trailer"])
        driver_field.queryset = Driver.objects.filter(status=Driver.Status.ACTIVE)
        vehicle_field.queryset = Vehicle.objects.filter(status=Vehicle.Status.ACTIVE)
        trailer_field.queryset = Trailer.objects.filter(status=Trailer.Status.ACTIVE)

        # Keep the current resources selectable when editing.
        if self.instance and self.instance.pk:
            for field, current in (
                (driver_field, self.instance.driver_id),
                (vehicle_field, self.instance.vehicle_id),
                (trailer_field, self.instance.trailer_id),
            ):
                if current:
                    field.queryset = field.queryset | field.queryset.model.objects.filter(
                        pk=current
                    )

        driver_field.required = True
        vehicle_field.required = True
        driver_field.error_messages["required"] = "Driver is required"
        vehicle_field.error_messages["required"] = "Vehicle is required"
        self.fields["driver_rate"].error_messages["required"] = "Valid driver rate is required"
        self.fields["driver_rate"].widget.attrs.setdefault("placeholder", "0.00")

    def clean_driver_rate(self):
        rate = self.cleaned_data.get("driver_rate")
        if rate is None or rate <= 0:
            raise forms.ValidationError("Valid driver rate is required")
        return rate

    def assignment_data(self):
        data = dict(self.cleaned_data)
        data.pop("confirm", None)
        return data


class AssignManifestForm(forms.Form):
    """Pick an existing active manifest for the order's top-level leg."""

    manifest = forms.ModelChoiceField(
        queryset=Manifest.objects.none(),
        empty_label=None,
        error_messages={
            "required": "Select a manifest to assign",
            "invalid_choice": "That manifest is no longer available",
        },
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        manifest_field = cast(ModelChoiceField, self.fields["manifest"])
        manifest_field.queryset = Manifest.objects.filter(
            status__in=ACTIVE_MANIFEST_STATUSES
        )


class SplitPointForm(forms.Form):
    name = forms.CharField(max_length=200)
    split_type = forms.ChoiceField(
        choices=SplitPoint.SplitType.choices,
        widget=forms.RadioSelect,
        initial=SplitPoint.SplitType.GPS,
    )
    latitude = forms.DecimalField(max_digits=9, decimal_places=6, required=False)
    longitude = forms.DecimalField(max_digits=9, decimal_places=6, required=False)
    street_address = forms.CharField(max_length=200, required=False)
    city = forms.ModelChoiceField(queryset=City.objects.all(), required=False)
    terminal = forms.ModelChoiceField(queryset=Terminal.objects.all(), required=False)
    reason = forms.CharField(widget=forms.Textarea(attrs={"rows": 3}), required=False)

    def clean(self):
        cleaned_data = super().clean()
        split_type = cleaned_data.get("split_type")
        for field in SplitPoint.FIELDS_BY_TYPE.get(split_type, ()):
            if cleaned_data.get(field) in (None, ""):
                self.add_error(field, "Required for this split point type.")
        return cleaned_data

    def split_point_data(self):
        data = dict(self.cleaned_data)
        data.pop("reason", None)
        return data


class ManifestFilterForm(forms.Form):
    SORT_CHOICES = [("desc", "Newest first"), ("asc", "Oldest first")]

    search = forms.CharField(required=False)
    status = forms.ChoiceField(
        required=False, choices=[("all", "All statuses")] + Manifest.Status.choices
    )
    driver = forms.ModelChoiceField(queryset=Driver.objects.all(), required=False)
    vehicle = forms.ModelChoiceField(queryset=Vehicle.objects.all(), required=False)
    order = forms.ChoiceField(required=False, choices=SORT_CHOICES)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["search"].widget.attrs.setdefault(
            "placeholder", "Manifest, driver, vehicle, order or customer"
        )
