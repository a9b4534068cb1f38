"""Factories for generating demo/test data with factory_boy and Faker.

Use sequences for unique identifiers and Faker for descriptive fields.
"""

import datetime
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from factory import Faker
from factory.django import DjangoModelFactory

from . import models


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()
        django_get_or_create = ("username",)

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda obj: f"{obj.username}@example.com")
    first_name = Faker("first_name")
    last_name = Faker("last_name")
    role = "dispatcher"
    is_staff = True
    is_active = True

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        password = kwargs.pop("password", "password123")
        user = super()._create(model_class, *args, **kwargs)
        user.set_password(password)
        user.save()
        return user


# Location hierarchy


class CountryFactory(DjangoModelFactory):
    class Meta:
        model = models.Country
        django_get_or_create = ("code",)

    name = factory.Sequence(lambda n: f"Country {n}")
    code = factory.Sequence(lambda n: f"{n % 1000:03d}")


class StateFactory(DjangoModelFactory):
    class Meta:
        model = models.State

    country = factory.SubFactory(CountryFactory)
    name = factory.Sequence(lambda n: f"State {n}")
    code = factory.Sequence(lambda n: f"S{n % 1000:03d}")


class CityFactory(DjangoModelFactory):
    class Meta:
        model = models.City

    state = factory.SubFactory(StateFactory)
    name = factory.Sequence(lambda n: f"City {n}")


class TerminalFactory(DjangoModelFactory):
    class Meta:
        model = models.Terminal

    name = factory.Sequence(lambda n: f"Terminal {n}")
    street_address = Faker("street_address")
    city = factory.SubFactory(CityFactory)


# Fleet


class DriverFactory(DjangoModelFactory):
    class Meta:
        model = models.Driver

    first_name = Faker("first_name")
    last_name = Faker("last_name")
    phone = factory.Sequence(lambda n: f"555-{n % 900 + 100:03d}-{n % 10000:04d}")
    license_number = factory.Sequence(lambda n: f"DL{40000 + n}")
    status = models.Driver.Status.ACTIVE


class VehicleFactory(DjangoModelFactory):
    class Meta:
        model = models.Vehicle

    number = factory.Sequence(lambda n: f"TRK{n:04d}")
    vehicle_type = models.Vehicle.VehicleType.TRACTOR
    license_plate = factory.Sequence(lambda n: f"PLT{1000 + n}")
    status = models.Vehicle.Status.ACTIVE


class TrailerFactory(DjangoModelFactory):
    class Meta:
        model = models.Trailer

    number = factory.Sequence(lambda n: f"TRL{n:04d}")
    trailer_type = models.Trailer.TrailerType.DRY_VAN
    status = models.Trailer.Status.ACTIVE


# Orders & manifests


class OrderFactory(DjangoModelFactory):
    class Meta:
        model = models.Order
        skip_postgeneration_save = True

    customer_name = Faker("company")
    customer_address = Faker("street_address")
    contact_person = Faker("name")
    phone_number = factory.Sequence(lambda n: f"+1 555-{n % 900 + 100:03d}-{n % 10000:04d}")
    load_tender_number = factory.Sequence(lambda n: f"LT-{10000 + n}")
    rate = Decimal("1500.00")
    currency = models.Order.Currency.CAD
    commodity = "General freight"
    weight = Decimal("42000")
    created_by = factory.SubFactory(UserFactory)

    @factory.post_generation
    def with_leg(obj, create, extracted, **kwargs):
        # Orders always start with one pending top-level leg.
        if create and extracted is not False:
            models.OrderLeg.objects.create(order=obj, sequence_number=1)


class LocationFactory(DjangoModelFactory):
    class Meta:
        model = models.Location

    order = factory.SubFactory(OrderFactory)
    location_type = models.Location.LocationType.PICKUP
    name = Faker("company")
    street_address = Faker("street_address")
    city = factory.SubFactory(CityFactory)
    date = factory.LazyFunction(lambda: datetime.date.today() + datetime.timedelta(days=1))
    time = datetime.time(8, 0)
    sequence_number = 0


class ManifestFactory(DjangoModelFactory):
    class Meta:
        model = models.Manifest

    driver = factory.SubFactory(DriverFactory)
    vehicle = factory.SubFactory(VehicleFactory)
    driver_payment_type = models.Manifest.PaymentType.HOURLY
    driver_rate = Decimal("25.00")
    status = models.Manifest.Status.PENDING
    created_by = factory.SubFactory(UserFactory)
