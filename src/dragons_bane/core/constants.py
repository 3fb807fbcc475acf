"""World engine constants for Dragon's Bane.

Rules numbers shared by the reducer, combat resolver, travel model and
simulation clock.
"""

from __future__ import annotations

# =============================================================================
# Clamping Ranges
# =============================================================================

ATTITUDE_MIN = -100
ATTITUDE_MAX = 100
"""NPC attitude toward the player."""

REPUTATION_MIN = -100
REPUTATION_MAX = 100
"""Player reputation with a faction."""

DANGER_MIN = 0
DANGER_MAX = 10
"""Location danger level."""

# =============================================================================
# Seed World
# =============================================================================

START_LOCATION_ID = "loc_millbrook_square"
"""Where a new character begins."""

DEFAULT_NPC_HEALTH = 50
DEFAULT_NPC_STRENGTH = 5
DEFAULT_NPC_DEFENSE = 5

DEFAULT_PLAYER_HEALTH = 100
DEFAULT_PLAYER_STRENGTH = 10
DEFAULT_PLAYER_DEFENSE = 10
DEFAULT_PLAYER_MAGIC = 5

# =============================================================================
# Combat
# =============================================================================

DAMAGE_VARIANCE = 3.0
"""Half-width of the uniform noise added to every hit."""

DEFENSE_FACTOR = 0.5
"""Share of the defender's defense subtracted from the attacker's strength."""

DEFEND_DAMAGE_MULTIPLIER = 0.5
"""Incoming damage multiplier after the player defends."""

FLEE_SUCCESS_CHANCE = 0.5

XP_PER_LEVEL = 50
"""Experience needed per current level to advance."""

LEVEL_UP_MAX_HEALTH = 10
LEVEL_UP_STRENGTH = 2
LEVEL_UP_DEFENSE = 1

# =============================================================================
# Travel
# =============================================================================

TERRAIN_MODIFIERS: dict[str, int] = {
    "village": -2,
    "road": -1,
    "plains": 0,
    "forest": 1,
    "water": 1,
    "swamp": 2,
    "mountain": 2,
    "desert": 2,
    "cave": 3,
    "dungeon": 4,
}
"""Fixed per-terrain encounter bias."""

ENCOUNTER_BASE_CHANCE = 0.15
ENCOUNTER_DANGER_WEIGHT = 0.4
ENCOUNTER_DISTANCE_WEIGHT = 0.05
ENCOUNTER_DISTANCE_CAP = 0.3
ENCOUNTER_TERRAIN_WEIGHT = 0.02
ENCOUNTER_MIN_CHANCE = 0.05
ENCOUNTER_MAX_CHANCE = 0.9

ROUTE_BOX_PADDING = 1
"""Tiles added around the route bounding box when sampling danger."""

# =============================================================================
# Location Simulation
# =============================================================================

SIMULATION_BASE_CHANCE = 0.1
SIMULATION_CHANCE_PER_ACTION = 0.04
SIMULATION_MAX_CHANCE = 0.9
RECENT_VISIT_WINDOW = 20
"""Actions since the last visit under which a location counts as fresh."""

# =============================================================================
# History
# =============================================================================

MAX_DEEDS_REMEMBERED = 10
"""Significant events copied into a deceased hero's record."""

FLASHBACK_EVENT_PREVIEW = 100
"""Characters of a flashback quoted in its discovery event."""
