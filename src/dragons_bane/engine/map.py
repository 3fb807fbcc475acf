"""Map and fog-of-war projection.

Projects the part of the world the player knows into renderable grid
coordinates. Every visible location reveals the 3x3 block of tiles around
it; everything else stays fogged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from dragons_bane.engine.knowledge import known_locations
from dragons_bane.models.enums import Terrain
from dragons_bane.models.world import WorldState


PREVIEW_RADIUS = 1


@dataclass(frozen=True)
class MapLocation:
    id: str
    name: str
    x: int
    y: int
    terrain: Terrain
    is_current: bool


@dataclass(frozen=True)
class MapProjection:
    """What the player can see on the map.

    Attributes:
        locations: Known locations, in knowledge order.
        explored_tiles: ``(x, y)`` tiles revealed around known locations.
    """

    locations: tuple[MapLocation, ...] = ()
    explored_tiles: frozenset[tuple[int, int]] = field(default_factory=frozenset)

    def tile_keys(self) -> list[str]:
        """Explored tiles as sorted ``"x,y"`` strings."""
        return [f"{x},{y}" for x, y in sorted(self.explored_tiles)]

    def to_payload(self) -> dict[str, Any]:
        """Presentation payload: ``{locations: [...], exploredTiles: [...]}``."""
        return {
            "locations": [
                {
                    "id": location.id,
                    "name": location.name,
                    "x": location.x,
                    "y": location.y,
                    "terrain": location.terrain.value,
                    "isCurrent": location.is_current,
                }
                for location in self.locations
            ],
            "exploredTiles": self.tile_keys(),
        }


def project_map(state: WorldState) -> MapProjection:
    """Project the player's known world.

    Visible locations are those in the player's knowledge (matched by id
    or case-insensitive name) plus the current location, one entry each.
    """
    current_id = state.player.current_location_id
    visible = known_locations(state)

    tiles: set[tuple[int, int]] = set()
    for location in visible:
        cx, cy = location.coordinates.x, location.coordinates.y
        for dx in range(-PREVIEW_RADIUS, PREVIEW_RADIUS + 1):
            for dy in range(-PREVIEW_RADIUS, PREVIEW_RADIUS + 1):
                tiles.add((cx + dx, cy + dy))

    return MapProjection(
        locations=tuple(
            MapLocation(
                id=location.id,
                name=location.name,
                x=location.coordinates.x,
                y=location.coordinates.y,
                terrain=location.terrain,
                is_current=location.id == current_id,
            )
            for location in visible
        ),
        explored_tiles=frozenset(tiles),
    )


__all__ = ["MapLocation", "MapProjection", "project_map"]
