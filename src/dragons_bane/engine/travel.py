"""Travel and encounter model.

Fast travel between known locations carries risk. The engine computes the
route's danger and the encounter probability and makes the single draw
that decides whether something happens on the way. What happens is chosen
by an external classifier; the engine turns its answer into state changes.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from dragons_bane.core.constants import (
    ENCOUNTER_BASE_CHANCE,
    ENCOUNTER_DANGER_WEIGHT,
    ENCOUNTER_DISTANCE_CAP,
    ENCOUNTER_DISTANCE_WEIGHT,
    ENCOUNTER_MAX_CHANCE,
    ENCOUNTER_MIN_CHANCE,
    ENCOUNTER_TERRAIN_WEIGHT,
    ROUTE_BOX_PADDING,
    TERRAIN_MODIFIERS,
)
from dragons_bane.core.exceptions import TravelError, ValidationError
from dragons_bane.core.logging import get_logger
from dragons_bane.engine.combat import initiate_combat
from dragons_bane.engine.knowledge import known_locations, resolve_location
from dragons_bane.engine.random_source import RandomSource
from dragons_bane.engine.reducer import reduce
from dragons_bane.models.changes import (
    AddItem,
    BaseChange,
    CreateNpc,
    ItemDraft,
    MovePlayer,
    NPCDraft,
    PlayerDamage,
)
from dragons_bane.models.enums import EncounterType, Terrain
from dragons_bane.models.factories import new_id
from dragons_bane.models.world import Location, WorldModel, WorldState


logger = get_logger(__name__)

HOSTILE_ATTITUDE = -50


# =============================================================================
# Route Planning
# =============================================================================


@dataclass(frozen=True)
class RoutePlan:
    """Risk inputs for a trip between two locations.

    Attributes:
        origin_id: Departure location.
        destination_id: Arrival location.
        average_danger: Mean danger level of the sampled locations.
        terrains_crossed: Distinct terrains along the route, endpoints first.
        distance: Manhattan distance in tiles.
    """

    origin_id: str
    destination_id: str
    average_danger: float
    terrains_crossed: tuple[Terrain, ...]
    distance: int


def plan_route(state: WorldState, from_id: str, to_id: str) -> RoutePlan:
    """Sample the route between two locations.

    Danger is averaged over both endpoints and every location the player
    knows whose coordinates fall inside the route's bounding box, padded by
    one tile on each side.

    Raises:
        TravelError: If either endpoint does not exist.
    """
    origin = state.locations.get(from_id)
    if origin is None:
        raise TravelError(f"Unknown origin: {from_id}", destination_id=to_id)
    destination = state.locations.get(to_id)
    if destination is None:
        raise TravelError(f"Unknown destination: {to_id}", destination_id=to_id)

    a, b = origin.coordinates, destination.coordinates
    min_x, max_x = min(a.x, b.x) - ROUTE_BOX_PADDING, max(a.x, b.x) + ROUTE_BOX_PADDING
    min_y, max_y = min(a.y, b.y) - ROUTE_BOX_PADDING, max(a.y, b.y) + ROUTE_BOX_PADDING

    sampled: dict[str, Location] = {origin.id: origin, destination.id: destination}
    for location in known_locations(state):
        c = location.coordinates
        if min_x <= c.x <= max_x and min_y <= c.y <= max_y:
            sampled.setdefault(location.id, location)

    terrains = tuple(dict.fromkeys(location.terrain for location in sampled.values()))
    average = sum(location.danger_level for location in sampled.values()) / len(sampled)

    return RoutePlan(
        origin_id=origin.id,
        destination_id=destination.id,
        average_danger=average,
        terrains_crossed=terrains,
        distance=a.manhattan(b),
    )


def encounter_chance(plan: RoutePlan) -> float:
    """Probability of an encounter on this route, clamped to [0.05, 0.9].

    A zero-distance route carries no risk at all.
    """
    if plan.distance == 0:
        return 0.0
    terrain_bias = sum(TERRAIN_MODIFIERS.get(t, 0) for t in plan.terrains_crossed)
    chance = (
        ENCOUNTER_BASE_CHANCE
        + ENCOUNTER_DANGER_WEIGHT * (plan.average_danger / 10)
        + min(ENCOUNTER_DISTANCE_WEIGHT * plan.distance, ENCOUNTER_DISTANCE_CAP)
        + terrain_bias * ENCOUNTER_TERRAIN_WEIGHT
    )
    return max(ENCOUNTER_MIN_CHANCE, min(chance, ENCOUNTER_MAX_CHANCE))


# =============================================================================
# Encounter Classification
# =============================================================================


class EncounterContext(WorldModel):
    """Risk inputs handed to the encounter classifier."""

    origin_id: str
    origin_name: str
    destination_id: str
    destination_name: str
    distance: int
    average_danger: float
    terrains_crossed: list[Terrain]
    encounter_chance: float
    player_level: int
    player_health: int


class TravelEncounter(WorldModel):
    """The classifier's answer.

    Attributes:
        type: What happened on the road.
        description: Narrative summary (opaque to the engine).
        blocks_arrival: Non-combat encounters that stop the journey.
        npc: Hostile for combat, a stranger for meetings.
        item: What a discovery turns up.
        damage: Health lost to an environmental hazard.
    """

    type: EncounterType = EncounterType.NONE
    description: str = ""
    blocks_arrival: bool = False
    npc: NPCDraft | None = None
    item: ItemDraft | None = None
    damage: int = Field(default=0, ge=0)


EncounterClassifier = Callable[[EncounterContext], "TravelEncounter | Mapping[str, Any]"]


@dataclass
class TravelResult:
    """Outcome of a travel request.

    Attributes:
        state: The world after travel.
        arrived: Whether the player reached the destination.
        final_location_id: Where the player ended up.
        route: The sampled route.
        encounter_chance: Probability used for the draw.
        encounter: The classified encounter, if one triggered.
        spawned_npc_id: NPC created by a combat or meeting encounter.
        combat_started: A hostile encounter put the player in combat.
        warnings: Encounter changes the reducer skipped.
    """

    state: WorldState
    arrived: bool
    final_location_id: str
    route: RoutePlan
    encounter_chance: float
    encounter: TravelEncounter | None = None
    spawned_npc_id: str | None = None
    combat_started: bool = False
    warnings: list[str] = field(default_factory=list)


def resolve_travel(
    state: WorldState,
    destination: str,
    rng: RandomSource,
    classifier: EncounterClassifier | None = None,
) -> TravelResult:
    """Travel from the current location to a known destination.

    Args:
        state: The current world.
        destination: Destination id or name; must be known to the player.
        rng: Random source for the encounter draw.
        classifier: Decides what an encounter is. Without one, triggered
            encounters pass uneventfully.

    Returns:
        TravelResult describing the new world and what happened.

    Raises:
        TravelError: If combat is active or the destination is missing or
            unknown to the player.
    """
    if state.combat_state is not None:
        raise TravelError("Cannot travel while in combat", destination_id=destination)

    target = resolve_location(state, destination)
    if target is None:
        raise TravelError(f"Destination not found: {destination}", destination_id=destination)
    if all(location.id != target.id for location in known_locations(state)):
        raise TravelError(
            f"You don't know the way to {target.name}", destination_id=target.id
        )

    origin_id = state.player.current_location_id
    route = plan_route(state, origin_id, target.id)

    if target.id == origin_id:
        return TravelResult(
            state=state.model_copy(deep=True),
            arrived=True,
            final_location_id=origin_id,
            route=route,
            encounter_chance=0.0,
        )

    chance = encounter_chance(route)
    roll = rng.random()
    encounter: TravelEncounter | None = None
    if roll < chance:
        encounter = _classify(state, route, chance, classifier)

    logger.info(
        "Travel resolved",
        origin_id=origin_id,
        destination_id=target.id,
        distance=route.distance,
        encounter_chance=round(chance, 3),
        roll=round(roll, 3),
        encounter=encounter.type if encounter else None,
    )

    changes: list[BaseChange] = []
    spawned_npc_id: str | None = None
    is_combat = encounter is not None and encounter.type == EncounterType.COMBAT
    arrives = not is_combat and not (encounter is not None and encounter.blocks_arrival)
    final_location_id = target.id if arrives else origin_id

    if encounter is not None:
        if encounter.type in (EncounterType.COMBAT, EncounterType.NPC_MEETING):
            draft = (encounter.npc or NPCDraft()).model_copy(deep=True)
            draft.id = draft.id if draft.id and draft.id not in state.npcs else new_id("npc")
            draft.current_location_id = origin_id if is_combat else final_location_id
            if is_combat and draft.attitude is None:
                draft.attitude = HOSTILE_ATTITUDE
            spawned_npc_id = draft.id
            changes.append(CreateNpc(npc=draft))
        elif encounter.type == EncounterType.DISCOVERY and encounter.item is not None:
            changes.append(AddItem(item=encounter.item))
        elif encounter.type == EncounterType.ENVIRONMENTAL and encounter.damage:
            changes.append(PlayerDamage(amount=encounter.damage))

    if arrives:
        changes.append(MovePlayer(location_id=target.id))

    reduction = reduce(state, changes)
    new_state = reduction.state
    combat_started = False
    if is_combat and spawned_npc_id in new_state.npcs:
        new_state = initiate_combat(new_state, spawned_npc_id)
        combat_started = True

    return TravelResult(
        state=new_state,
        arrived=arrives,
        final_location_id=final_location_id,
        route=route,
        encounter_chance=chance,
        encounter=encounter,
        spawned_npc_id=spawned_npc_id,
        combat_started=combat_started,
        warnings=reduction.warnings,
    )


def _classify(
    state: WorldState,
    route: RoutePlan,
    chance: float,
    classifier: EncounterClassifier | None,
) -> TravelEncounter:
    if classifier is None:
        return TravelEncounter(type=EncounterType.NONE)

    origin = state.locations[route.origin_id]
    destination = state.locations[route.destination_id]
    context = EncounterContext(
        origin_id=origin.id,
        origin_name=origin.name,
        destination_id=destination.id,
        destination_name=destination.name,
        distance=route.distance,
        average_danger=route.average_danger,
        terrains_crossed=list(route.terrains_crossed),
        encounter_chance=chance,
        player_level=state.player.level,
        player_health=state.player.health,
    )
    answer = classifier(context)
    if isinstance(answer, TravelEncounter):
        return answer
    try:
        return TravelEncounter.model_validate(answer)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Encounter classification could not be read",
            field_name="encounter",
            invalid_value=answer,
            details={"errors": exc.errors(include_url=False)},
        ) from exc


__all__ = [
    "RoutePlan",
    "plan_route",
    "encounter_chance",
    "EncounterContext",
    "TravelEncounter",
    "EncounterClassifier",
    "TravelResult",
    "resolve_travel",
]
