"""
Country → state → city lookups for the cascading address dropdowns.

A failed lookup is logged and yields an empty list; the dropdown simply
stays empty and the user can re-open the form.
"""

import logging

from django.db import DatabaseError

from freight.models import City, Country, State

logger = logging.getLogger(__name__)


def countries():
    try:
        return list(Country.objects.order_by("name"))
    except DatabaseError:
        logger.exception("Country lookup failed")
        return []


def states_for_country(country_id):
    if not country_id:
        return []
    try:
        return list(State.objects.filter(country_id=country_id).order_by("name"))
    except (DatabaseError, ValueError):
        logger.exception("State lookup failed for country_id=%s", country_id)
        return []


def cities_for_state(state_id):
    if not state_id:
        return []
    try:
        return list(City.objects.filter(state_id=state_id).order_by("name"))
    except (DatabaseError, ValueError):
        logger.exception("City lookup failed for state_id=%s", state_id)
        return []


class LocationLookup:
    """
    Per-editor cache of dropdown options.

    The order details editor shows many locations at once, most sharing a
    country and state, so each country/state is fetched at most once.
    """

    def __init__(self):
        self.states_by_country = {}
        self.cities_by_state = {}

    def states(self, country_id):
        key = str(country_id)
        if key not in self.states_by_country:
            self.states_by_country[key] = states_for_country(country_id)
        return self.states_by_country[key]

    def cities(self, state_id):
        key = str(state_id)
        if key not in self.cities_by_state:
            self.cities_by_state[key] = cities_for_state(state_id)
        return self.cities_by_state[key]

    def preload(self, locations):
        """Warm the cache for every state/city referenced by `locations`."""
        for location in locations:
            state = location.city.state
            self.states(state.country_id)
            self.cities(state.pk)
        return self
