"""Services - live weather, IP geolocation and the background feed."""

from .feed import FeedUpdate, SimulatedFeed, WeatherFeed, simulated_observation
from .location import GeoLocation, lookup_location
from .weather import Units, WeatherObservation, fetch_observation, format_hud

__all__ = [
    "FeedUpdate",
    "GeoLocation",
    "SimulatedFeed",
    "Units",
    "WeatherFeed",
    "WeatherObservation",
    "fetch_observation",
    "format_hud",
    "lookup_location",
    "simulated_observation",
]
