"""Deterministic world engine.

Pure functions over ``WorldState``: the reducer, the combat resolver, the
travel and encounter model, the location simulation clock, the map and
journal projections, death handling and play-style tracking. None of them
mutate their input; all randomness comes from an injected ``RandomSource``.
"""

from __future__ import annotations

from dragons_bane.engine.behavior import (
    dominant_patterns,
    score_action,
    update_behavior_patterns,
)
from dragons_bane.engine.combat import (
    CombatResult,
    calculate_damage,
    initiate_combat,
    process_combat_action,
)
from dragons_bane.engine.death import handle_player_death
from dragons_bane.engine.journal import JournalProjection, project_journal
from dragons_bane.engine.knowledge import (
    known_locations,
    knows_location,
    resolve_location,
    validate_knowledge,
)
from dragons_bane.engine.map import MapLocation, MapProjection, project_map
from dragons_bane.engine.random_source import RandomSource, SeededRandom
from dragons_bane.engine.reducer import (
    ReductionResult,
    append_event,
    apply_state_changes,
    place_item,
    reduce,
    relocate_npc,
)
from dragons_bane.engine.simulation import (
    apply_offscreen_changes,
    elapsed_since_visit,
    should_simulate,
    simulation_chance,
)
from dragons_bane.engine.travel import (
    EncounterClassifier,
    EncounterContext,
    RoutePlan,
    TravelEncounter,
    TravelResult,
    encounter_chance,
    plan_route,
    resolve_travel,
)


__all__ = [
    # Randomness
    "RandomSource",
    "SeededRandom",
    # Reducer
    "ReductionResult",
    "reduce",
    "apply_state_changes",
    "relocate_npc",
    "place_item",
    "append_event",
    # Combat
    "CombatResult",
    "calculate_damage",
    "initiate_combat",
    "process_combat_action",
    # Travel
    "RoutePlan",
    "plan_route",
    "encounter_chance",
    "EncounterContext",
    "TravelEncounter",
    "EncounterClassifier",
    "TravelResult",
    "resolve_travel",
    # Simulation
    "elapsed_since_visit",
    "simulation_chance",
    "should_simulate",
    "apply_offscreen_changes",
    # Projections & knowledge
    "MapLocation",
    "MapProjection",
    "project_map",
    "resolve_location",
    "known_locations",
    "knows_location",
    "validate_knowledge",
    "JournalProjection",
    "project_journal",
    # Death & behavior
    "handle_player_death",
    "score_action",
    "update_behavior_patterns",
    "dominant_patterns",
]
