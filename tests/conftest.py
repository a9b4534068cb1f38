import datetime

import pytest

from freight import factories


@pytest.fixture
def user_factory():
    return factories.UserFactory


@pytest.fixture
def city_factory():
    return factories.CityFactory


@pytest.fixture
def terminal_factory():
    return factories.TerminalFactory


@pytest.fixture
def driver_factory():
    return factories.DriverFactory


@pytest.fixture
def vehicle_factory():
    return factories.VehicleFactory


@pytest.fixture
def trailer_factory():
    return factories.TrailerFactory


@pytest.fixture
def order_factory():
    return factories.OrderFactory


@pytest.fixture
def location_factory():
    return factories.LocationFactory


@pytest.fixture
def manifest_factory():
    return factories.ManifestFactory


@pytest.fixture
def dispatcher(user_factory):
    return user_factory(username="dispatcher", role="dispatcher")


@pytest.fixture
def dispatcher_client(client, dispatcher):
    client.force_login(dispatcher)
    return client


@pytest.fixture
def order_fields():
    return {
        "customer_name": "Maple Leaf Foods",
        "customer_address": "100 Front St W",
        "contact_person": "Jane Roe",
        "phone_number": "+1 (416) 555-0100",
        "load_tender_number": "LT-2024-001",
        "rate": "1850.00",
        "currency": "CAD",
        "commodity": "Frozen goods",
        "weight": "38000",
        "reference_number": "PO-7781",
    }


@pytest.fixture
def make_location(city_factory):
    city = city_factory()

    def make(name="Dock", day=1, hour=8, **overrides):
        location = {
            "name": name,
            "street_address": "1 Industrial Rd",
            "city": city,
            "date": datetime.date(2030, 5, day),
            "time": datetime.time(hour, 0),
            "contact_name": "",
            "contact_phone": "",
            "special_instructions": "",
        }
        location.update(overrides)
        return location

    return make
