from io import StringIO

import pytest
from django.core.management import call_command

from freight.models import City, Driver, Terminal, Trailer, Vehicle

pytestmark = pytest.mark.django_db


def test_seed_demo_is_repeatable():
    out = StringIO()
    call_command(
        "seed_demo",
        "--terminals=2",
        "--drivers=3",
        "--vehicles=2",
        "--trailers=1",
        "--seed=42",
        stdout=out,
    )
    call_command("seed_demo", "--terminals=0", "--drivers=0", "--vehicles=0", "--trailers=0", stdout=out)

    assert City.objects.count() == 13
    assert Terminal.objects.count() == 2
    assert Driver.objects.count() == 3
    assert Vehicle.objects.count() == 2
    assert Trailer.objects.count() == 1
    assert "Seed complete." in out.getvalue()
