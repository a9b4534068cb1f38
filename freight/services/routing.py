"""Route preview helpers: rough trip estimate and a static map image URL."""

import random
from dataclasses import dataclass
from urllib.parse import quote_plus, urlencode

STATIC_MAP_ENDPOINT = "https://maps.googleapis.com/maps/api/staticmap"
MAP_SIZE = "600x400"


@dataclass(frozen=True)
class TripEstimate:
    distance: str
    duration: str
    fuel_cost: str


def estimate_trip(stops, rng=random):
    """
    Placeholder estimate until a routing provider is connected.

    Figures are random within typical regional-haul ranges; strings use the
    "N miles" / "H hours M minutes" format the payment calculator parses.
    """
    if not stops:
        return TripEstimate(distance="0 miles", duration="0 hours 0 minutes", fuel_cost="$0")
    miles = rng.randint(200, 999)
    hours = rng.randint(4, 15)
    minutes = rng.randint(0, 58)
    fuel = rng.randint(100, 399)
    return TripEstimate(
        distance=f"{miles} miles",
        duration=f"{hours} hours {minutes} minutes",
        fuel_cost=f"${fuel}",
    )


def format_address(location):
    parts = [location.street_address]
    city = getattr(location, "city", None)
    if city is not None:
        parts.append(city.name)
        parts.append(city.state.name)
        parts.append(city.state.country.name)
    return ", ".join(part for part in parts if part)


def static_map_url(stops, api_key=""):
    """
    Static map for zero or one stop, None for a multi-stop route (the page
    draws a route illustration instead).
    """
    ordered = sorted(stops, key=lambda stop: stop.sequence_number)
    if len(ordered) >= 2:
        return None

    params = {"size": MAP_SIZE, "maptype": "roadmap"}
    if ordered:
        center = format_address(ordered[0])
        params.update(center=center, zoom=13, markers=f"color:red|{center}")
    else:
        params.update(center="United States", zoom=4)
    if api_key:
        params["key"] = api_key
    return f"{STATIC_MAP_ENDPOINT}?{urlencode(params, quote_via=quote_plus)}"
