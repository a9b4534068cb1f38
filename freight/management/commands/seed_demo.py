"""Seed demo data: location hierarchy, terminals, drivers, vehicles and trailers."""

import random

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from factory import random as factory_random
from faker import Faker

from freight import factories
from freight.models import City, Country, State

GEOGRAPHY = {
    ("Canada", "CA"): {
        ("Ontario", "ON"): ["Toronto", "Ottawa", "Hamilton"],
        ("Quebec", "QC"): ["Montreal", "Quebec City"],
        ("British Columbia", "BC"): ["Vancouver", "Surrey"],
    },
    ("United States", "US"): {
        ("New York", "NY"): ["Buffalo", "Rochester"],
        ("Michigan", "MI"): ["Detroit", "Grand Rapids"],
        ("Washington", "WA"): ["Seattle", "Spokane"],
    },
}


class Command(BaseCommand):
    help = "Seed demo data for locations, terminals, drivers, vehicles and trailers"

    def add_arguments(self, parser):
        parser.add_argument("--terminals", type=int, default=3)
        parser.add_argument("--drivers", type=int, default=8)
        parser.add_argument("--vehicles", type=int, default=6)
        parser.add_argument("--trailers", type=int, default=6)
        parser.add_argument(
            "--seed", type=int, default=None, help="Seed for Faker/random"
        )

    @transaction.atomic
    def handle(self, *args, **options):
        seed = options.get("seed")
        if seed is not None:
            random.seed(seed)
            factory_random.reseed_random(seed)
            Faker.seed(seed)
            self.stdout.write(self.style.NOTICE(f"Seeding randomness with seed={seed}"))

        dispatcher = self._get_or_create_user("dispatcher", role="dispatcher")
        self.stdout.write(self.style.SUCCESS(f"Using user: {dispatcher.username}"))

        self.stdout.write("Creating countries, states and cities...")
        cities = self._seed_geography()

        self.stdout.write("Creating terminals...")
        terminals = [
            factories.TerminalFactory(city=random.choice(cities))
            for _ in range(options["terminals"])
        ]

        self.stdout.write("Creating fleet...")
        drivers = factories.DriverFactory.create_batch(options["drivers"])
        vehicles = factories.VehicleFactory.create_batch(options["vehicles"])
        trailers = factories.TrailerFactory.create_batch(options["trailers"])

        self.stdout.write(self.style.SUCCESS("Seed complete."))
        self.stdout.write(
            self.style.SUCCESS(
                f"Cities: {len(cities)}, Terminals: {len(terminals)}, "
                f"Drivers: {len(drivers)}, Vehicles: {len(vehicles)}, "
                f"Trailers: {len(trailers)}"
            )
        )

    def _seed_geography(self):
        cities = []
        for (country_name, country_code), states in GEOGRAPHY.items():
            country, _ = Country.objects.get_or_create(
                code=country_code, defaults={"name": country_name}
            )
            for (state_name, state_code), city_names in states.items():
                state, _ = State.objects.get_or_create(
                    country=country, name=state_name, defaults={"code": state_code}
                )
                for city_name in city_names:
                    city, _ = City.objects.get_or_create(state=state, name=city_name)
                    cities.append(city)
        return cities

    def _get_or_create_user(self, username: str, role: str):
        User = get_user_model()
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                "email": f"{username}@example.com",
                "role": role,
                "is_staff": True,
            },
        )
        if created:
            user.set_password("password123")
            user.save()
        return user
