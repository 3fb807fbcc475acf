"""Location simulation clock.

When the player returns to a location, the world may have moved on while
they were away: NPCs come and go, items change hands. This module decides
whether that off-screen churn should be generated and filters the
resulting changes so they can never drag the player's companions (or the
player) around.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dragons_bane.core.constants import (
    RECENT_VISIT_WINDOW,
    SIMULATION_BASE_CHANCE,
    SIMULATION_CHANCE_PER_ACTION,
    SIMULATION_MAX_CHANCE,
)
from dragons_bane.core.exceptions import StateChangeError
from dragons_bane.core.logging import get_logger
from dragons_bane.engine.random_source import RandomSource
from dragons_bane.engine.reducer import ReductionResult, reduce
from dragons_bane.models.changes import (
    AddCompanion,
    BaseChange,
    CompanionRejoin,
    CompanionWaitAtHome,
    MoveNpc,
    MovePlayer,
    NpcDeath,
    RemoveCompanion,
    parse_state_change,
)
from dragons_bane.models.world import Location, WorldState


logger = get_logger(__name__)


def elapsed_since_visit(location: Location, action_counter: int) -> int | None:
    """Actions since the last visit, or None for a never-visited location."""
    if location.last_visited_at_action is None:
        return None
    return action_counter - location.last_visited_at_action


def simulation_chance(elapsed: int) -> float:
    """``min(0.9, 0.1 + 0.04 * elapsed)``, or 0 when no time has passed."""
    if elapsed <= 0:
        return 0.0
    return min(SIMULATION_MAX_CHANCE, SIMULATION_BASE_CHANCE + SIMULATION_CHANCE_PER_ACTION * elapsed)


def should_simulate(location: Location, action_counter: int, rng: RandomSource) -> bool:
    """Decide whether off-screen changes happen for this entry.

    Never-visited locations and locations where no time has passed are
    never simulated. Otherwise one draw against ``simulation_chance``
    decides.
    """
    elapsed = elapsed_since_visit(location, action_counter)
    if elapsed is None or elapsed <= 0:
        return False

    chance = simulation_chance(elapsed)
    simulate = rng.random() < chance
    logger.debug(
        "Simulation check",
        location_id=location.id,
        elapsed=elapsed,
        chance=round(chance, 3),
        recent=elapsed < RECENT_VISIT_WINDOW,
        simulate=simulate,
    )
    return simulate


def _touches_companion(state: WorldState, change: BaseChange) -> bool:
    if isinstance(change, MovePlayer):
        return True
    if isinstance(change, (AddCompanion, RemoveCompanion, CompanionWaitAtHome, CompanionRejoin)):
        return True
    if isinstance(change, (MoveNpc, NpcDeath)):
        npc = state.npcs.get(change.npc_id)
        return npc is not None and npc.is_companion
    return False


def apply_offscreen_changes(
    state: WorldState,
    location_id: str,
    changes: Iterable[BaseChange | Mapping[str, Any]],
) -> ReductionResult:
    """Apply simulated changes for a location, minus anything touching companions.

    Companions travel with the player and are never relocated, recruited,
    dismissed or killed off-screen. Player movement is dropped too.

    Args:
        state: The current world.
        location_id: The location being simulated (for logging).
        changes: Changes proposed by the simulation collaborator.

    Returns:
        ReductionResult; filtered changes are reported as warnings.
    """
    allowed: list[BaseChange | Mapping[str, Any]] = []
    filtered: list[str] = []

    for raw in changes:
        try:
            change = parse_state_change(raw)
        except StateChangeError:
            # Let the reducer record the malformed change.
            allowed.append(raw)
            continue
        if _touches_companion(state, change):
            filtered.append(f"{change.type}: not allowed off-screen")
            logger.info("Filtered off-screen change", location_id=location_id, change_type=change.type)
            continue
        allowed.append(change)

    result = reduce(state, allowed)
    result.warnings = filtered + result.warnings
    return result


__all__ = [
    "elapsed_since_visit",
    "simulation_chance",
    "should_simulate",
    "apply_offscreen_changes",
]
