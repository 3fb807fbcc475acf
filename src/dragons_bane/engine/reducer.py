"""State reducer: applies ordered state changes to a WorldState.

Each change kind has exactly one handler, registered with ``@handles``.
Handlers mutate a private working copy; the reducer discards that copy when
a handler raises, so every change is all-or-nothing and a bad change never
aborts the rest of the batch.

Example:
    >>> result = reduce(world, [{"type": "gold_change", "data": {"amount": 5}}])
    >>> result.state.player.gold - world.player.gold
    5
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from pydantic import ValidationError as PydanticValidationError

from dragons_bane.core.constants import (
    ATTITUDE_MAX,
    ATTITUDE_MIN,
    FLASHBACK_EVENT_PREVIEW,
    REPUTATION_MAX,
    REPUTATION_MIN,
)
from dragons_bane.core.exceptions import StateChangeError
from dragons_bane.core.logging import get_logger
from dragons_bane.models.changes import (
    CHANGE_TYPES,
    AddBlessing,
    AddCompanion,
    AddCurse,
    AddItem,
    AddKnowledge,
    AddQuest,
    BaseChange,
    ClaimHome,
    CompanionRejoin,
    CompanionWaitAtHome,
    CreateLocation,
    CreateNpc,
    CreateStructure,
    DestroyStructure,
    GoldChange,
    MoveNpc,
    MovePlayer,
    NpcDeath,
    PlayerDamage,
    PlayerHeal,
    PlayerTransform,
    RemoveCompanion,
    RemoveItem,
    RetrieveItemFromHome,
    RevealFlashback,
    StoreItemAtHome,
    UpdateFaction,
    UpdateLocation,
    UpdateNpcAttitude,
    UpdateQuest,
    parse_state_change,
)
from dragons_bane.models.enums import EventType, QuestStatus
from dragons_bane.models.factories import (
    build_item,
    build_location,
    build_npc,
    build_quest,
    build_structure,
    new_id,
    step_toward,
)
from dragons_bane.models.world import (
    NPC,
    Location,
    WorldEvent,
    WorldItem,
    WorldState,
    clamp,
)


logger = get_logger(__name__)

C = TypeVar("C", bound=BaseChange)
ChangeHandler = Callable[[WorldState, Any], None]


# =============================================================================
# Handler Registry
# =============================================================================

_change_handlers: dict[str, ChangeHandler] = {}


def handles(change_type: str) -> Callable[[Callable[[WorldState, C], None]], Callable[[WorldState, C], None]]:
    """Register a handler for one change kind."""

    def decorator(func: Callable[[WorldState, C], None]) -> Callable[[WorldState, C], None]:
        if change_type in _change_handlers:
            raise RuntimeError(f"Duplicate handler for state change: {change_type}")
        _change_handlers[change_type] = func
        return func

    return decorator


@dataclass
class ReductionResult:
    """Outcome of applying a batch of changes.

    Attributes:
        state: The new WorldState.
        applied: Changes that were applied, in order.
        warnings: One entry per skipped change.
    """

    state: WorldState
    applied: list[BaseChange] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def reduce(
    state: WorldState,
    changes: Iterable[BaseChange | Mapping[str, Any]],
) -> ReductionResult:
    """Apply changes in order and return the resulting world.

    The input state is never mutated. Unknown kinds and malformed or
    inapplicable changes are skipped with a logged warning.

    Args:
        state: The current world.
        changes: Typed changes or ``{type, data}`` documents.

    Returns:
        ReductionResult with the new state and a record of what happened.
    """
    working = state.model_copy(deep=True)
    result = ReductionResult(state=working)

    for index, raw in enumerate(changes):
        try:
            change = parse_state_change(raw)
        except StateChangeError as exc:
            _skip(result, index, exc.details.get("change_type"), exc.message)
            continue

        candidate = working.model_copy(deep=True)
        try:
            _change_handlers[change.type](candidate, change)
        except StateChangeError as exc:
            _skip(result, index, change.type, exc.message)
            continue
        except PydanticValidationError as exc:
            _skip(result, index, change.type, f"{change.type}: {exc.error_count()} invalid field(s)")
            continue

        working = candidate
        result.applied.append(change)
        logger.debug("Applied state change", change_type=change.type, index=index)

    result.state = working
    return result


def apply_state_changes(
    state: WorldState,
    changes: Iterable[BaseChange | Mapping[str, Any]],
) -> WorldState:
    """Apply changes in order, returning only the new state."""
    return reduce(state, changes).state


def _skip(result: ReductionResult, index: int, change_type: str | None, reason: str) -> None:
    result.warnings.append(reason)
    logger.warning("Skipped state change", change_type=change_type, index=index, reason=reason)


# =============================================================================
# Lookup Helpers
# =============================================================================


def _require_npc(state: WorldState, npc_id: str, change_type: str) -> NPC:
    npc = state.npcs.get(npc_id)
    if npc is None:
        raise StateChangeError(f"{change_type}: NPC not found: {npc_id}", change_type=change_type)
    return npc


def _require_location(state: WorldState, location_id: str, change_type: str) -> Location:
    location = state.locations.get(location_id)
    if location is None:
        raise StateChangeError(
            f"{change_type}: location not found: {location_id}", change_type=change_type
        )
    return location


def _require_home(state: WorldState, change_type: str) -> Location:
    home_id = state.player.home_location_id
    if not home_id:
        raise StateChangeError(f"{change_type}: player has no home", change_type=change_type)
    return _require_location(state, home_id, change_type)


def _item_container(
    state: WorldState,
    location_id: str | None,
    npc_id: str | None,
    change_type: str,
) -> list[WorldItem]:
    if npc_id:
        return _require_npc(state, npc_id, change_type).inventory
    if location_id:
        return _require_location(state, location_id, change_type).items
    return state.player.inventory


def place_item(container: list[WorldItem], item: WorldItem) -> WorldItem:
    """Append ``item``, reissuing its id if the container already holds it."""
    if any(existing.id == item.id for existing in container):
        item = item.model_copy(update={"id": new_id("item")})
    container.append(item)
    return item


def _take_item(container: list[WorldItem], item_id: str) -> WorldItem | None:
    for index, item in enumerate(container):
        if item.id == item_id:
            return container.pop(index)
    return None


def relocate_npc(state: WorldState, npc: NPC, location_id: str) -> None:
    """Move an NPC, updating both sides of the presence back-reference."""
    old = state.locations.get(npc.current_location_id)
    if old is not None:
        old.present_npc_ids = [i for i in old.present_npc_ids if i != npc.id]
    npc.current_location_id = location_id
    new = state.locations.get(location_id)
    if new is not None and npc.id not in new.present_npc_ids:
        new.present_npc_ids.append(npc.id)


def append_event(
    state: WorldState,
    description: str,
    event_type: EventType,
    *,
    involved_npc_ids: list[str] | None = None,
    location_id: str | None = None,
    is_significant: bool = False,
) -> WorldEvent:
    event = WorldEvent(
        id=new_id("event"),
        action_number=state.action_counter,
        description=description,
        type=event_type,
        involved_npc_ids=involved_npc_ids or [],
        location_id=location_id or state.player.current_location_id,
        is_significant=is_significant,
    )
    state.event_history.append(event)
    return event


def _append_unique(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


# =============================================================================
# Player
# =============================================================================


@handles("move_player")
def _move_player(state: WorldState, change: MovePlayer) -> None:
    destination = _require_location(state, change.location_id, change.type)
    state.player.current_location_id = destination.id
    destination.last_visited_at_action = state.action_counter

    for companion_id in state.player.companion_ids:
        companion = state.npcs.get(companion_id)
        if companion is not None and not companion.waiting_at_home:
            relocate_npc(state, companion, destination.id)


@handles("gold_change")
def _gold_change(state: WorldState, change: GoldChange) -> None:
    state.player.gold = max(0, state.player.gold + change.amount)


@handles("player_damage")
def _player_damage(state: WorldState, change: PlayerDamage) -> None:
    state.player.health = max(0, state.player.health - change.amount)


@handles("player_heal")
def _player_heal(state: WorldState, change: PlayerHeal) -> None:
    state.player.health = min(state.player.max_health, state.player.health + change.amount)


@handles("add_knowledge")
def _add_knowledge(state: WorldState, change: AddKnowledge) -> None:
    knowledge = state.player.knowledge
    if change.skill:
        knowledge.skills[change.skill] = change.level
        return
    # Validated: both set when no skill is given.
    knowledge.add(change.knowledge_type, change.value)  # type: ignore[arg-type]


@handles("reveal_flashback")
def _reveal_flashback(state: WorldState, change: RevealFlashback) -> None:
    content = change.flashback_content
    _append_unique(state.player.revealed_backstory, content)
    if change.revealed_skill is not None:
        state.player.knowledge.skills[change.revealed_skill.name] = change.revealed_skill.level

    preview = content[:FLASHBACK_EVENT_PREVIEW]
    if len(content) > FLASHBACK_EVENT_PREVIEW:
        preview += "..."
    append_event(
        state,
        f"A memory from the past was revealed: {preview}",
        EventType.DISCOVERY,
        is_significant=True,
    )


@handles("player_transform")
def _player_transform(state: WorldState, change: PlayerTransform) -> None:
    _append_unique(state.player.transformations, change.transformation)


@handles("add_curse")
def _add_curse(state: WorldState, change: AddCurse) -> None:
    _append_unique(state.player.curses, change.curse)


@handles("add_blessing")
def _add_blessing(state: WorldState, change: AddBlessing) -> None:
    _append_unique(state.player.blessings, change.blessing)


# =============================================================================
# Items
# =============================================================================


@handles("add_item")
def _add_item(state: WorldState, change: AddItem) -> None:
    container = _item_container(state, change.to_location, change.to_npc, change.type)
    place_item(container, build_item(change.item))


@handles("remove_item")
def _remove_item(state: WorldState, change: RemoveItem) -> None:
    container = _item_container(state, change.from_location, change.from_npc, change.type)
    _take_item(container, change.item_id)


# =============================================================================
# NPCs & Companions
# =============================================================================


@handles("move_npc")
def _move_npc(state: WorldState, change: MoveNpc) -> None:
    npc = _require_npc(state, change.npc_id, change.type)
    destination = _require_location(state, change.location_id, change.type)
    if (
        npc.is_companion
        and not npc.waiting_at_home
        and destination.id != state.player.current_location_id
    ):
        raise StateChangeError(
            f"move_npc: {npc.id} is travelling with the player", change_type=change.type
        )
    relocate_npc(state, npc, destination.id)


@handles("update_npc_attitude")
def _update_npc_attitude(state: WorldState, change: UpdateNpcAttitude) -> None:
    npc = _require_npc(state, change.npc_id, change.type)
    if change.attitude is not None:
        attitude = change.attitude
    else:
        attitude = npc.attitude + (change.change or 0)
    npc.attitude = clamp(attitude, ATTITUDE_MIN, ATTITUDE_MAX)


@handles("npc_death")
def _npc_death(state: WorldState, change: NpcDeath) -> None:
    npc = _require_npc(state, change.npc_id, change.type)
    npc.is_alive = False
    npc.stats.health = 0
    npc.death_description = change.death_description
    npc.is_companion = False
    npc.waiting_at_home = False
    state.player.companion_ids = [i for i in state.player.companion_ids if i != npc.id]

    combat = state.combat_state
    if combat is not None:
        if combat.enemy_npc_id == npc.id:
            state.combat_state = None
        else:
            combat.companions_in_combat = [i for i in combat.companions_in_combat if i != npc.id]


@handles("add_companion")
def _add_companion(state: WorldState, change: AddCompanion) -> None:
    npc = _require_npc(state, change.npc_id, change.type)
    if npc.id in state.player.companion_ids:
        return
    if not npc.is_alive:
        raise StateChangeError(f"add_companion: {npc.id} is dead", change_type=change.type)

    relocate_npc(state, npc, state.player.current_location_id)
    npc.is_companion = True
    npc.waiting_at_home = False
    state.player.companion_ids.append(npc.id)


@handles("remove_companion")
def _remove_companion(state: WorldState, change: RemoveCompanion) -> None:
    npc = _require_npc(state, change.npc_id, change.type)
    npc.is_companion = False
    npc.waiting_at_home = False
    state.player.companion_ids = [i for i in state.player.companion_ids if i != npc.id]


@handles("create_npc")
def _create_npc(state: WorldState, change: CreateNpc) -> None:
    npc = build_npc(change.npc, default_location_id=state.player.current_location_id)
    if npc.id in state.npcs:
        raise StateChangeError(f"create_npc: NPC already exists: {npc.id}", change_type=change.type)
    _require_location(state, npc.current_location_id, change.type)

    state.npcs[npc.id] = npc
    state.locations[npc.current_location_id].present_npc_ids.append(npc.id)


@handles("companion_wait_at_home")
def _companion_wait_at_home(state: WorldState, change: CompanionWaitAtHome) -> None:
    home = _require_home(state, change.type)
    npc = _require_npc(state, change.npc_id, change.type)
    if npc.id not in state.player.companion_ids:
        raise StateChangeError(
            f"companion_wait_at_home: not a companion: {npc.id}", change_type=change.type
        )
    relocate_npc(state, npc, home.id)
    npc.waiting_at_home = True


@handles("companion_rejoin")
def _companion_rejoin(state: WorldState, change: CompanionRejoin) -> None:
    npc = _require_npc(state, change.npc_id, change.type)
    if npc.id not in state.player.companion_ids:
        raise StateChangeError(
            f"companion_rejoin: not a companion: {npc.id}", change_type=change.type
        )
    here = _require_location(state, state.player.current_location_id, change.type)
    relocate_npc(state, npc, here.id)
    npc.waiting_at_home = False


# =============================================================================
# Locations & Structures
# =============================================================================

_FIXED_LOCATION_FIELDS = frozenset({"id", "coordinates", "presentNpcIds"})


@handles("create_location")
def _create_location(state: WorldState, change: CreateLocation) -> None:
    coordinates = None
    if change.direction and change.from_location_id:
        origin = _require_location(state, change.from_location_id, change.type)
        coordinates = step_toward(origin.coordinates, change.direction)
    elif change.location.coordinates is None:
        logger.warning("Location created without coordinates", location_name=change.location.name)

    location = build_location(change.location, coordinates=coordinates)
    if location.id in state.locations:
        raise StateChangeError(
            f"create_location: location already exists: {location.id}", change_type=change.type
        )
    location.present_npc_ids = [npc.id for npc in state.npcs_at(location.id)]
    state.locations[location.id] = location


@handles("update_location")
def _update_location(state: WorldState, change: UpdateLocation) -> None:
    location = _require_location(state, change.location_id, change.type)
    fields = Location.model_fields
    updates = {
        fields[key].alias if key in fields else key: value
        for key, value in change.updates.items()
    }
    merged = location.model_dump(by_alias=True)
    merged.update({k: v for k, v in updates.items() if k not in _FIXED_LOCATION_FIELDS})
    state.locations[location.id] = Location.model_validate(merged)


@handles("create_structure")
def _create_structure(state: WorldState, change: CreateStructure) -> None:
    location_id = change.location_id or state.player.current_location_id
    location = _require_location(state, location_id, change.type)
    location.structures.append(
        build_structure(change.structure, built_at_action=state.action_counter)
    )


@handles("destroy_structure")
def _destroy_structure(state: WorldState, change: DestroyStructure) -> None:
    location_id = change.location_id or state.player.current_location_id
    location = _require_location(state, location_id, change.type)
    remaining = [s for s in location.structures if s.id != change.structure_id]
    if len(remaining) == len(location.structures):
        raise StateChangeError(
            f"destroy_structure: structure not found: {change.structure_id}",
            change_type=change.type,
        )
    location.structures = remaining


# =============================================================================
# Home
# =============================================================================


@handles("claim_home")
def _claim_home(state: WorldState, change: ClaimHome) -> None:
    location_id = change.location_id or state.player.current_location_id
    state.player.home_location_id = _require_location(state, location_id, change.type).id


@handles("store_item_at_home")
def _store_item_at_home(state: WorldState, change: StoreItemAtHome) -> None:
    home = _require_home(state, change.type)
    item = _take_item(state.player.inventory, change.item_id)
    if item is None:
        raise StateChangeError(
            f"store_item_at_home: item not in inventory: {change.item_id}", change_type=change.type
        )
    place_item(home.items, item)


@handles("retrieve_item_from_home")
def _retrieve_item_from_home(state: WorldState, change: RetrieveItemFromHome) -> None:
    home = _require_home(state, change.type)
    if state.player.current_location_id != home.id:
        raise StateChangeError("retrieve_item_from_home: player not at home", change_type=change.type)
    item = _take_item(home.items, change.item_id)
    if item is None:
        raise StateChangeError(
            f"retrieve_item_from_home: item not found at home: {change.item_id}",
            change_type=change.type,
        )
    place_item(state.player.inventory, item)


# =============================================================================
# Quests & Factions
# =============================================================================


@handles("add_quest")
def _add_quest(state: WorldState, change: AddQuest) -> None:
    quest = build_quest(change.quest)
    if quest.id in state.quests:
        raise StateChangeError(f"add_quest: quest already exists: {quest.id}", change_type=change.type)
    state.quests[quest.id] = quest


@handles("update_quest")
def _update_quest(state: WorldState, change: UpdateQuest) -> None:
    quest = state.quests.get(change.quest_id)
    if quest is None:
        raise StateChangeError(f"update_quest: quest not found: {change.quest_id}", change_type=change.type)

    if change.status is not None:
        quest.status = change.status

    for objective in change.completed_objectives:
        if objective in quest.objectives:
            _append_unique(quest.completed_objectives, objective)
        else:
            logger.debug("Ignored unknown objective", quest_id=quest.id, objective=objective)

    if quest.status == QuestStatus.ACTIVE and quest.all_objectives_complete:
        quest.status = QuestStatus.COMPLETED


@handles("update_faction")
def _update_faction(state: WorldState, change: UpdateFaction) -> None:
    faction = state.factions.get(change.faction_id)
    if faction is None:
        raise StateChangeError(
            f"update_faction: faction not found: {change.faction_id}", change_type=change.type
        )
    if change.reputation is not None:
        reputation = change.reputation
    else:
        reputation = faction.player_reputation + (change.reputation_change or 0)
    faction.player_reputation = clamp(reputation, REPUTATION_MIN, REPUTATION_MAX)


_unhandled = CHANGE_TYPES - _change_handlers.keys()
if _unhandled:
    raise RuntimeError(f"State changes without a handler: {sorted(_unhandled)}")


__all__ = [
    "ReductionResult",
    "reduce",
    "apply_state_changes",
    "relocate_npc",
    "place_item",
    "append_event",
]
