from dataclasses import dataclass
from types import MappingProxyType


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float


LOCATIONS: MappingProxyType[str, Coordinates] = MappingProxyType(
    {
        "Chennai": Coordinates(13.0827, 80.2707),
        "Mumbai": Coordinates(19.0760, 72.8777),
        "Delhi": Coordinates(28.6139, 77.2090),
        "Bangalore": Coordinates(12.9716, 77.5946),
        "Kolkata": Coordinates(22.5726, 88.3639),
        "Hyderabad": Coordinates(17.3850, 78.4867),
        "Pune": Coordinates(18.5204, 73.8567),
    }
)

_BY_LOWER_NAME = {name.lower(): coords for name, coords in LOCATIONS.items()}


def resolve_location(name: str | None) -> Coordinates | None:
    """Look up a place name, falling back to a case-insensitive match.

    Unknown places return None; callers treat that as "no geographic data".
    """
    if not name:
        return None
    coords = LOCATIONS.get(name)
    if coords is not None:
        return coords
    return _BY_LOWER_NAME.get(name.strip().lower())


def supported_locations() -> list[str]:
    return sorted(LOCATIONS)
