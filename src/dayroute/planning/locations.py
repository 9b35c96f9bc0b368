# src/dayroute/planning/locations.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from ..core.errors import ValidationError
from ..core.models import Location, TravelEdge

logger = logging.getLogger(__name__)

HOME_LOCATION_ID = "ertsfeld"
LUNCH_LOCATION_ID = "lugano"
POST_LUNCH_LOCATION_ID = "bellinzona"

DEFAULT_LOCATIONS: tuple[Location, ...] = (
    Location("lugano", "Lugano"),
    Location("bellinzona", "Bellinzona"),
    Location("giubiasco", "Giubiasco"),
    Location("ertsfeld", "Ertsfeld"),
)

# Approximate driving times in minutes. Symmetric in value, stored per direction.
DEFAULT_TRAVEL_TIMES: tuple[tuple[str, str, int], ...] = (
    ("ertsfeld", "lugano", 25),
    ("ertsfeld", "bellinzona", 15),
    ("ertsfeld", "giubiasco", 10),
    ("lugano", "ertsfeld", 25),
    ("lugano", "bellinzona", 35),
    ("lugano", "giubiasco", 30),
    ("bellinzona", "ertsfeld", 15),
    ("bellinzona", "lugano", 35),
    ("bellinzona", "giubiasco", 8),
    ("giubiasco", "ertsfeld", 10),
    ("giubiasco", "lugano", 30),
    ("giubiasco", "bellinzona", 8),
)


class LocationGraph:
    """
    Static set of places and directed travel durations.

    Read-only after construction. Lookups never raise: an unknown location or
    a missing edge is reported as None.
    """

    def __init__(self, locations: Iterable[Location], edges: Iterable[TravelEdge]) -> None:
        self._locations: dict[str, Location] = {}
        for loc in locations:
            if not loc.id or not loc.id.strip():
                raise ValidationError("location id is required")
            self._locations[loc.id] = loc

        self._edges: dict[tuple[str, str], TravelEdge] = {}
        for edge in edges:
            if edge.duration_minutes < 1:
                raise ValidationError(
                    f"travel time {edge.from_location_id}->{edge.to_location_id} must be positive"
                )
            for loc_id in (edge.from_location_id, edge.to_location_id):
                if loc_id not in self._locations:
                    raise ValidationError(f"travel edge references unknown location {loc_id!r}")
            self._edges[(edge.from_location_id, edge.to_location_id)] = edge

        logger.debug(
            "LocationGraph ready locations=%s edges=%s", len(self._locations), len(self._edges)
        )

    @classmethod
    def default(cls) -> LocationGraph:
        return cls(
            DEFAULT_LOCATIONS,
            (TravelEdge(a, b, d) for a, b, d in DEFAULT_TRAVEL_TIMES),
        )

    def location_by_id(self, location_id: str | None) -> Location | None:
        if not location_id:
            return None
        return self._locations.get(location_id)

    def list_locations(self) -> list[Location]:
        return list(self._locations.values())

    def travel_time(self, from_id: str, to_id: str) -> int | None:
        edge = self._edges.get((from_id, to_id))
        return edge.duration_minutes if edge is not None else None

    def edges(self) -> list[TravelEdge]:
        return list(self._edges.values())

    def reachable_from(self, location_id: str) -> list[Location]:
        """Locations with a known travel time from location_id (itself excluded)."""
        return [
            loc
            for loc in self._locations.values()
            if loc.id != location_id and (location_id, loc.id) in self._edges
        ]

    def __contains__(self, location_id: object) -> bool:
        return location_id in self._locations

    def __len__(self) -> int:
        return len(self._locations)
