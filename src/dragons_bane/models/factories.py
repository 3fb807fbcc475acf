"""Builders that turn partial drafts into complete world entities.

Every builder accepts a draft model or a plain mapping and always returns a
fully populated entity that satisfies its model invariants.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from dragons_bane.core.constants import (
    DEFAULT_NPC_DEFENSE,
    DEFAULT_NPC_HEALTH,
    DEFAULT_NPC_STRENGTH,
    DEFAULT_PLAYER_DEFENSE,
    DEFAULT_PLAYER_HEALTH,
    DEFAULT_PLAYER_MAGIC,
    DEFAULT_PLAYER_STRENGTH,
)
from dragons_bane.models.changes import (
    ItemDraft,
    LocationDraft,
    NPCDraft,
    PlayerDraft,
    QuestDraft,
    StatsDraft,
    StructureDraft,
)
from dragons_bane.models.enums import ItemType, QuestStatus, StructureType, Terrain
from dragons_bane.models.world import (
    NPC,
    Coordinates,
    Location,
    NPCStats,
    Player,
    PlayerKnowledge,
    Quest,
    Structure,
    WorldItem,
)


DIRECTION_OFFSETS: dict[str, tuple[int, int]] = {
    "north": (0, 1),
    "south": (0, -1),
    "east": (1, 0),
    "west": (-1, 0),
    "northeast": (1, 1),
    "northwest": (-1, 1),
    "southeast": (1, -1),
    "southwest": (-1, -1),
}


def new_id(prefix: str) -> str:
    """Generate a unique entity id such as ``npc_3f2a9c81d0e4``."""
    return f"{prefix}_{uuid4().hex[:12]}"


def step_toward(origin: Coordinates, direction: str) -> Coordinates:
    """Coordinates one tile from ``origin`` in a compass direction.

    Unknown directions resolve to ``origin`` itself.
    """
    dx, dy = DIRECTION_OFFSETS.get(direction.strip().lower(), (0, 0))
    return Coordinates(x=origin.x + dx, y=origin.y + dy)


def _coerce(draft: Any, model: type) -> Any:
    if draft is None:
        return model()
    if isinstance(draft, model):
        return draft
    if isinstance(draft, Mapping):
        return model.model_validate(draft)
    raise TypeError(f"Expected {model.__name__} or mapping, got {type(draft).__name__}")


def _enum_or(enum_type: type, value: str | None, fallback: Any) -> Any:
    try:
        return enum_type(value) if value else fallback
    except ValueError:
        return fallback


def build_item(draft: ItemDraft | Mapping[str, Any] | None = None) -> WorldItem:
    """Build a WorldItem. Unknown item types become ``misc``."""
    item = _coerce(draft, ItemDraft)
    return WorldItem(
        id=item.id or new_id("item"),
        name=item.name or "Unknown Item",
        description=item.description or "",
        type=_enum_or(ItemType, item.type, ItemType.MISC),
        effect=item.effect,
        value=max(0, item.value or 0),
    )


def build_npc(
    draft: NPCDraft | Mapping[str, Any],
    *,
    default_location_id: str,
) -> NPC:
    """Build a living, non-companion NPC.

    Args:
        draft: Partial NPC description.
        default_location_id: Where the NPC stands if the draft says nothing.

    Returns:
        A complete NPC. Stats default to the standard commoner block and
        health is clamped to the resulting maximum.
    """
    npc = _coerce(draft, NPCDraft)
    stats = npc.stats or StatsDraft()
    max_health = stats.max_health or DEFAULT_NPC_HEALTH
    health = stats.health if stats.health is not None else max_health

    return NPC(
        id=npc.id or new_id("npc"),
        name=npc.name or "Unknown Stranger",
        description=npc.description or "",
        physical_description=npc.physical_description or "",
        soul_instruction=npc.soul_instruction or "",
        current_location_id=npc.current_location_id or default_location_id,
        home_location_id=npc.home_location_id,
        knowledge=list(npc.knowledge),
        conversation_history=list(npc.conversation_history),
        player_name_known=npc.player_name_known,
        attitude=npc.attitude or 0,
        is_companion=False,
        is_animal=npc.is_animal,
        inventory=[build_item(item) for item in npc.inventory],
        stats=NPCStats(
            health=health,
            max_health=max_health,
            strength=DEFAULT_NPC_STRENGTH if stats.strength is None else stats.strength,
            defense=DEFAULT_NPC_DEFENSE if stats.defense is None else stats.defense,
        ),
        is_alive=True,
        is_canonical=False,
        faction_ids=list(npc.faction_ids),
        experience_reward=npc.experience_reward,
        gold_reward=npc.gold_reward,
    )


def build_player(
    draft: PlayerDraft | Mapping[str, Any],
    *,
    location_id: str,
    knowledge: PlayerKnowledge | None = None,
) -> Player:
    """Build a level 1 character standing at ``location_id``.

    Args:
        draft: The new character. A name is required.
        location_id: Where the character begins.
        knowledge: What the character already knows. Defaults to the
            starting location alone.

    Returns:
        A full-health Player with no companions, deeds or play-style
        history. Health is clamped to the resulting maximum.
    """
    player = _coerce(draft, PlayerDraft)
    max_health = player.max_health or DEFAULT_PLAYER_HEALTH
    health = max_health if player.health is None else min(player.health, max_health)

    return Player(
        name=player.name,
        physical_description=player.physical_description or "",
        hidden_backstory=player.hidden_backstory or "",
        origin=player.origin or "",
        current_location_id=location_id,
        home_location_id=player.home_location_id,
        health=max(0, health),
        max_health=max_health,
        strength=DEFAULT_PLAYER_STRENGTH if player.strength is None else player.strength,
        defense=DEFAULT_PLAYER_DEFENSE if player.defense is None else player.defense,
        magic=DEFAULT_PLAYER_MAGIC if player.magic is None else player.magic,
        gold=player.gold or 0,
        inventory=[build_item(item) for item in player.inventory],
        knowledge=knowledge or PlayerKnowledge(locations=[location_id]),
    )


def build_location(
    draft: LocationDraft | Mapping[str, Any],
    *,
    coordinates: Coordinates | None = None,
) -> Location:
    """Build a non-canonical, never-visited location.

    ``coordinates`` overrides the draft's own position. Presence lists start
    empty; the caller derives them from the NPCs.
    """
    location = _coerce(draft, LocationDraft)
    return Location(
        id=location.id or new_id("loc"),
        name=location.name or "Unknown Location",
        description=location.description or "",
        image_prompt=location.image_prompt or location.description or "",
        coordinates=coordinates or location.coordinates or Coordinates(),
        terrain=_enum_or(Terrain, location.terrain, Terrain.PLAINS),
        danger_level=location.danger_level or 0,
        items=[build_item(item) for item in location.items],
        is_canonical=False,
    )


def build_structure(
    draft: StructureDraft | Mapping[str, Any],
    *,
    built_at_action: int,
) -> Structure:
    structure = _coerce(draft, StructureDraft)
    return Structure(
        id=structure.id or new_id("struct"),
        name=structure.name or "Unknown Structure",
        description=structure.description or "",
        type=_enum_or(StructureType, structure.type, StructureType.MARKER),
        built_at_action=(
            structure.built_at_action
            if structure.built_at_action is not None
            else built_at_action
        ),
        owner_id=structure.owner_id,
    )


def build_quest(draft: QuestDraft | Mapping[str, Any]) -> Quest:
    quest = draft if isinstance(draft, QuestDraft) else QuestDraft.model_validate(draft)
    return Quest(
        id=quest.id or new_id("quest"),
        title=quest.title,
        description=quest.description,
        giver_npc_id=quest.giver_npc_id,
        status=QuestStatus.ACTIVE,
        objectives=list(dict.fromkeys(quest.objectives)),
        completed_objectives=[],
        rewards=quest.rewards,
    )


__all__ = [
    "DIRECTION_OFFSETS",
    "new_id",
    "step_toward",
    "build_item",
    "build_npc",
    "build_player",
    "build_location",
    "build_structure",
    "build_quest",
]
