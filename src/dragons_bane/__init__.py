"""Dragon's Bane - deterministic world engine for a narrator-driven RPG.

NEURO-SYMBOLIC ARCHITECTURE:
- Python owns TRUTH (WorldState, combat and travel rolls, invariants)
- Narrative collaborators handle INTERFACE (prose, dialogue, encounter flavor)
- Collaborators NEVER mutate the world directly; they emit state changes

Example:
    >>> from dragons_bane import WorldService, WorldStore
    >>>
    >>> service = WorldService(WorldStore("data/dragons_bane.db"))
    >>> world = service.load_or_seed()
    >>> outcome = service.apply_action(
    ...     "I ask Pip to come along",
    ...     {"stateChanges": [{"type": "add_companion", "data": {"npcId": "npc_pip_stablehand"}}]},
    ... )
    >>> outcome.state.player.companion_ids
    ['npc_pip_stablehand']

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 world model and state change union.
    engine: Reducer, combat, travel, simulation clock, map and death handling.
    storage: SQLite world store.
    world: The Millbrook seed world.
    service: The single-writer WorldService.
"""

from __future__ import annotations

# Core
from dragons_bane.core.config import Settings, get_settings
from dragons_bane.core.exceptions import DragonsBaneError
from dragons_bane.core.logging import configure_logging, get_logger

# World model
from dragons_bane.models import WorldState, parse_state_change

# Engine
from dragons_bane.engine import (
    SeededRandom,
    apply_state_changes,
    process_combat_action,
    project_map,
    reduce,
    resolve_travel,
)

# Service & storage
from dragons_bane.service import ActionResolution, TurnOutcome, WorldService
from dragons_bane.storage import WorldStore
from dragons_bane.world import create_seed_world


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "DragonsBaneError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # Model
    "WorldState",
    "parse_state_change",
    # Engine
    "SeededRandom",
    "reduce",
    "apply_state_changes",
    "process_combat_action",
    "resolve_travel",
    "project_map",
    # Service
    "ActionResolution",
    "TurnOutcome",
    "WorldService",
    "WorldStore",
    "create_seed_world",
]
