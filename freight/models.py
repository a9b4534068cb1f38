import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.forms.models import model_to_dict
from django.utils import timezone

User = get_user_model()


def _generate_number(prefix):
    stamp = timezone.now().strftime("%Y%m%d%H%M%S")
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:6].upper()}"


class BaseModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


# ============================================================================
# LOCATION HIERARCHY
# ============================================================================


class Country(BaseModel):
    name = models.CharField(max_length=100, unique=True)
    code = models.CharField(max_length=3, unique=True, help_text="ISO code, e.g. CA")

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "countries"

    def __str__(self):
        return self.name


class State(BaseModel):
    """Province or state within a country."""

    country = models.ForeignKey(
        Country, on_delete=models.CASCADE, related_name="states"
    )
    name = models.CharField(max_length=100)
    code = models.CharField(max_length=5, blank=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(
                fields=["country", "name"], name="unique_state_per_country"
            )
        ]

    def __str__(self):
        return self.name


class City(BaseModel):
    state = models.ForeignKey(State, on_delete=models.CASCADE, related_name="cities")
    name = models.CharField(max_length=100)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "cities"
        constraints = [
            models.UniqueConstraint(fields=["state", "name"], name="unique_city_per_state")
        ]

    def __str__(self):
        return f"{self.name}, {self.state.name}"


class Terminal(BaseModel):
    """Company depot where freight can be dropped between legs."""

    name = models.CharField(max_length=200)
    street_address = models.CharField(max_length=200)
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="terminals")

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# ============================================================================
# FLEET (referenced by manifests, never owned)
# ============================================================================


class Driver(BaseModel):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"
        ON_LEAVE = "on_leave", "On Leave"

    first_name = models.CharField(max_length=50)
    last_name = models.CharField(max_length=50)
    phone = models.CharField(max_length=20, blank=True)
    license_number = models.CharField(max_length=50, unique=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE
    )

    class Meta:
        ordering = ["first_name", "last_name"]

    def __str__(self):
        return self.full_name

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


class Vehicle(BaseModel):
    """Power unit (tractor or straight truck)."""

    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"
        MAINTENANCE = "maintenance", "In Maintenance"

    class VehicleType(models.TextChoices):
        TRACTOR = "tractor", "Tractor"
        STRAIGHT_TRUCK = "straight_truck", "Straight Truck"
        VAN = "van", "Cargo Van"

    number = models.CharField(max_length=50, unique=True, help_text="Fleet unit number")
    vehicle_type = models.CharField(
        max_length=20, choices=VehicleType.choices, default=VehicleType.TRACTOR
    )
    license_plate = models.CharField(max_length=20, blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE
    )

    class Meta:
        ordering = ["number"]

    def __str__(self):
        return self.number


class Trailer(BaseModel):
    class Status(models.TextChoices):
        ACTIVE = "active", "Active"
        INACTIVE = "inactive", "Inactive"
        MAINTENANCE = "maintenance", "In Maintenance"

    class TrailerType(models.TextChoices):
        DRY_VAN = "dry_van", "Dry Van"
        REEFER = "reefer", "Refrigerated (Reefer)"
        FLATBED = "flatbed", "Flatbed"

    number = models.CharField(max_length=50, unique=True)
    trailer_type = models.CharField(
        max_length=20, choices=TrailerType.choices, default=TrailerType.DRY_VAN
    )
    length_feet = models.PositiveIntegerField(default=53)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE
    )

    class Meta:
        ordering = ["number"]

    def __str__(self):
        return f"{self.number} ({self.get_trailer_type_display()})"  # type: ignore


# ============================================================================
# ORDERS
# ============================================================================


class Order(BaseModel):
    """Customer shipment request. Owns its locations and legs."""

    class Currency(models.TextChoices):
        CAD = "CAD", "Canadian Dollar"
        USD = "USD", "US Dollar"

    order_number = models.CharField(max_length=40, unique=True, editable=False)

    # Customer
    customer_name = models.CharField(max_length=200)
    customer_address = models.CharField(max_length=255)
    contact_person = models.CharField(max_length=100)
    phone_number = models.CharField(max_length=20)

    # Load details
    load_tender_number = models.CharField(
        max_length=50,
        unique=True,
        error_messages={"unique": "This load tender number already exists"},
        help_text="Customer's load tender reference",
    )
    rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    currency = models.CharField(
        max_length=3, choices=Currency.choices, default=Currency.CAD
    )
    commodity = models.CharField(max_length=200)
    weight = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Weight in lbs",
    )
    reference_number = models.CharField(max_length=50, blank=True)

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders_created",
    )

    class Meta:
        ordering = ["-created_at"]

    def save(self, *args, **kwargs):
        if not self.order_number:
            self.order_number = _generate_number("ORD")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.order_number} - {self.customer_name}"

    @property
    def pickups(self):
        return self.locations.filter(location_type=Location.LocationType.PICKUP)  # type: ignore

    @property
    def deliveries(self):
        return self.locations.filter(location_type=Location.LocationType.DELIVERY)  # type: ignore

    def top_level_leg(self):
        """The leg every split hangs from: earliest leg without a parent."""
        return (
            self.legs.filter(parent_leg__isnull=True)  # type: ignore
            .order_by("sequence_number", "created_at", "pk")
            .first()
        )

    def manifests(self):
        return Manifest.objects.filter(legs__order=self).distinct()

    def snapshot(self):
        """JSON-ready copy of the order and its locations for the audit trail."""
        data = model_to_dict(
            self,
            fields=[
                "customer_name",
                "customer_address",
                "contact_person",
                "phone_number",
                "load_tender_number",
                "rate",
                "currency",
                "commodity",
                "weight",
                "reference_number",
            ],
        )
        data["id"] = self.pk
        data["order_number"] = self.order_number
        data["pickup_locations"] = [loc.snapshot() for loc in self.pickups]
        data["delivery_locations"] = [loc.snapshot() for loc in self.deliveries]
        return data


class Location(BaseModel):
    """
    A stop. Owned by an order (order-level plan), a leg (split plan) or a
    manifest (driver stop list).

    `location_type` decides which fields are mandatory: drop-offs go to a
    company terminal, pickups and deliveries never do.
    """

    class LocationType(models.TextChoices):
        PICKUP = "pickup", "Pickup"
        DELIVERY = "delivery", "Delivery"
        DROP_OFF = "drop_off", "Terminal Drop-off"

    # Owners
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="locations",
    )
    leg = models.ForeignKey(
        "OrderLeg",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="locations",
    )
    manifest = models.ForeignKey(
        "Manifest",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="stops",
    )

    location_type = models.CharField(max_length=10, choices=LocationType.choices)
    name = models.CharField(max_length=200)
    street_address = models.CharField(max_length=200)
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="+")
    date = models.DateField()
    time = models.TimeField()

    contact_name = models.CharField(max_length=100, blank=True)
    contact_phone = models.CharField(max_length=20, blank=True)
    special_instructions = models.TextField(blank=True)

    sequence_number = models.PositiveIntegerField(
        default=0, help_text="Position within its type (pickups and deliveries count separately)"
    )
    terminal = models.ForeignKey(
        Terminal,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="drop_offs",
        help_text="Only for terminal drop-offs",
    )

    class Meta:
        ordering = ["location_type", "sequence_number", "pk"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(order__isnull=False)
                    | models.Q(leg__isnull=False)
                    | models.Q(manifest__isnull=False)
                ),
                name="location_has_owner",
                violation_error_message="A location must belong to an order, leg or manifest.",
            )
        ]

    def __str__(self):
        return f"{self.get_location_type_display()} #{self.sequence_number}: {self.name}"  # type: ignore

    def clean(self):
        errors = {}
        if self.location_type == self.LocationType.DROP_OFF and not self.terminal_id:
            errors["terminal"] = "A terminal is required for terminal drop-offs."
        if self.location_type != self.LocationType.DROP_OFF and self.terminal_id:
            errors["terminal"] = "Only terminal drop-offs can reference a terminal."
        if errors:
            raise ValidationError(errors)

    @property
    def full_address(self):
        state = self.city.state
        return ", ".join(
            [self.street_address, self.city.name, state.name, state.country.name]
        )

    def snapshot(self):
        return {
            "id": self.pk,
            "type": self.location_type,
            "name": self.name,
            "street_address": self.street_address,
            "city_id": self.city_id,
            "date": self.date,
            "time": self.time,
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "special_instructions": self.special_instructions,
            "sequence_number": self.sequence_number,
            "terminal_id": self.terminal_id,
        }


# ============================================================================
# MANIFESTS & LEGS
# ============================================================================


class Manifest(BaseModel):
    """A driver's run: resources, pay terms and a status label."""

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class ManifestType(models.TextChoices):
        PICKUP = "pickup", "Pickup"
        DELIVERY = "delivery", "Delivery"
        LINEHAUL = "linehaul", "Linehaul"

    class OrderType(models.TextChoices):
        FTL = "ftl", "Full Truckload (FTL)"
        LTL = "ltl", "Less Than Truckload (LTL)"

    class PaymentType(models.TextChoices):
        HOURLY = "hourly", "Hourly"
        MILEAGE = "mileage", "Per Mile"

    number = models.CharField(max_length=40, unique=True, editable=False)
    manifest_type = models.CharField(
        max_length=10, choices=ManifestType.choices, default=ManifestType.PICKUP
    )
    order_type = models.CharField(
        max_length=3, choices=OrderType.choices, default=OrderType.FTL
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )

    # Resources
    driver = models.ForeignKey(
        Driver,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="manifests",
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="manifests",
    )
    trailer = models.ForeignKey(
        Trailer,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="manifests",
    )

    # Driver pay
    driver_payment_type = models.CharField(
        max_length=10, choices=PaymentType.choices, default=PaymentType.HOURLY
    )
    driver_rate = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Per hour or per mile, depending on payment type",
    )

    created_by = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="manifests_created",
    )

    class Meta:
        ordering = ["-created_at", "-pk"]

    def save(self, *args, **kwargs):
        if not self.number:
            self.number = _generate_number("MAN")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"#{self.number}"

    @property
    def is_active(self):
        return self.status in ACTIVE_MANIFEST_STATUSES

    def orders(self):
        return Order.objects.filter(legs__manifest=self).distinct()


ACTIVE_MANIFEST_STATUSES = frozenset(
    {Manifest.Status.PENDING, Manifest.Status.IN_PROGRESS}
)


class SplitPoint(BaseModel):
    """
    Where a shipment changes hands. Exactly one field group is populated,
    chosen by `split_type`.
    """

    class SplitType(models.TextChoices):
        GPS = "gps", "GPS Coordinates"
        LOCATION = "location", "Street Address"
        TERMINAL = "terminal", "Terminal"

    FIELDS_BY_TYPE = {
        SplitType.GPS: ("latitude", "longitude"),
        SplitType.LOCATION: ("street_address", "city"),
        SplitType.TERMINAL: ("terminal",),
    }

    name = models.CharField(max_length=200)
    split_type = models.CharField(max_length=10, choices=SplitType.choices)

    latitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    street_address = models.CharField(max_length=200, blank=True)
    city = models.ForeignKey(
        City, on_delete=models.PROTECT, null=True, blank=True, related_name="+"
    )
    terminal = models.ForeignKey(
        Terminal,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="split_points",
    )

    def __str__(self):
        return f"{self.name} ({self.get_split_type_display()})"  # type: ignore

    @classmethod
    def discriminant_fields(cls):
        return [field for fields in cls.FIELDS_BY_TYPE.values() for field in fields]

    def clean(self):
        required = self.FIELDS_BY_TYPE.get(self.split_type)
        if required is None:
            raise ValidationError({"split_type": "Unknown split point type."})

        errors = {}
        for field in self.discriminant_fields():
            value = getattr(self, field)
            populated = value not in (None, "")
            if field in required and not populated:
                errors[field] = (
                    f"Required for {self.get_split_type_display()} split points."  # type: ignore
                )
            elif field not in required and populated:
                errors[field] = (
                    f"Not used by {self.get_split_type_display()} split points."  # type: ignore
                )
        if errors:
            raise ValidationError(errors)


class OrderLeg(BaseModel):
    """
    A segment of an order's journey. Split children point at their parent
    leg and share the split point that divided it.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="legs")
    manifest = models.ForeignKey(
        Manifest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="legs",
    )
    sequence_number = models.PositiveIntegerField(default=1)
    status = models.CharField(
        max_length=20,
        choices=Manifest.Status.choices,
        default=Manifest.Status.PENDING,
    )

    # Split lineage
    parent_leg = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="children",
    )
    split_point = models.ForeignKey(
        SplitPoint,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="legs",
    )
    split_sequence = models.PositiveSmallIntegerField(null=True, blank=True)
    split_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["sequence_number", "split_sequence", "created_at", "pk"]

    def __str__(self):
        if self.split_sequence:
            return f"{self.order.order_number} leg {self.sequence_number}.{self.split_sequence}"
        return f"{self.order.order_number} leg {self.sequence_number}"

    @property
    def is_split_child(self):
        return self.parent_leg_id is not None


# ============================================================================
# APPEND-ONLY TRAILS
# ============================================================================


class ManifestHistory(models.Model):
    """One row per manifest create/update with resource snapshots."""

    manifest = models.ForeignKey(
        Manifest, on_delete=models.CASCADE, related_name="history"
    )
    manifest_number = models.CharField(max_length=40)
    previous_status = models.CharField(
        max_length=20, choices=Manifest.Status.choices, blank=True
    )
    status = models.CharField(max_length=20, choices=Manifest.Status.choices)

    driver = models.ForeignKey(
        Driver, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    driver_name = models.CharField(max_length=101, blank=True)
    vehicle = models.ForeignKey(
        Vehicle, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    vehicle_number = models.CharField(max_length=50, blank=True)
    trailer = models.ForeignKey(
        Trailer, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    changed_at = models.DateTimeField(default=timezone.now)
    changed_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )

    class Meta:
        ordering = ["-changed_at", "-pk"]
        verbose_name_plural = "manifest history"

    def __str__(self):
        return f"#{self.manifest_number} {self.previous_status or '-'} → {self.status}"

    @classmethod
    def record(cls, manifest, *, changed_by, previous_status=""):
        driver = manifest.driver
        vehicle = manifest.vehicle
        return cls.objects.create(
            manifest=manifest,
            manifest_number=manifest.number,
            previous_status=previous_status,
            status=manifest.status,
            driver=driver,
            driver_name=driver.full_name if driver else "",
            vehicle=vehicle,
            vehicle_number=vehicle.number if vehicle else "",
            trailer=manifest.trailer,
            changed_by=changed_by,
        )


class AuditLog(models.Model):
    """Before/after snapshot of an order, written on every create and update."""

    class Action(models.TextChoices):
        CREATE = "create", "Create"
        UPDATE = "update", "Update"

    order = models.ForeignKey(
        Order,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="audit_logs",
    )
    action = models.CharField(max_length=10, choices=Action.choices)
    table_name = models.CharField(max_length=50, default="orders")
    record_id = models.CharField(max_length=40)
    previous_data = models.JSONField(encoder=DjangoJSONEncoder, null=True, blank=True)
    new_data = models.JSONField(encoder=DjangoJSONEncoder, default=dict)

    created_by = models.ForeignKey(
        User, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-pk"]

    def __str__(self):
        return f"{self.action} {self.table_name}:{self.record_id}"

    @classmethod
    def log_change(cls, order, *, action, user, new_data, previous_data=None):
        return cls.objects.create(
            order=order,
            action=action,
            table_name="orders",
            record_id=str(order.pk),
            previous_data=previous_data,
            new_data=new_data,
            created_by=user,
        )
