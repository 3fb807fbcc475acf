"""Player death with world persistence.

The world outlives its heroes. When the player dies, the character is
frozen into a DeceasedHero record, their belongings stay where they fell,
companions scatter, and a fresh character starts over in the same world.
"""

from __future__ import annotations

from dragons_bane.core.constants import MAX_DEEDS_REMEMBERED, START_LOCATION_ID
from dragons_bane.core.exceptions import InvalidGameStateError
from dragons_bane.core.logging import get_logger
from dragons_bane.engine.reducer import append_event, place_item
from dragons_bane.models.enums import EventType
from dragons_bane.models.factories import new_id
from dragons_bane.models.world import (
    DeceasedHero,
    ItemsLeftBehind,
    Player,
    PlayerKnowledge,
    WorldState,
)


logger = get_logger(__name__)

DEED_EVENT_TYPES = frozenset(
    {EventType.COMBAT, EventType.QUEST, EventType.DISCOVERY, EventType.RELATIONSHIP}
)


def handle_player_death(
    state: WorldState,
    death_description: str,
    *,
    start_location_id: str = START_LOCATION_ID,
) -> WorldState:
    """Retire the current character and prepare a fresh one.

    Args:
        state: The world at the moment of death.
        death_description: How the hero died.
        start_location_id: Where the next character begins.

    Returns:
        A new world with the hero recorded, their items dropped at the
        death location, companions released and a fresh player.

    Raises:
        InvalidGameStateError: If the start location does not exist.
    """
    if start_location_id not in state.locations:
        raise InvalidGameStateError(
            f"Start location missing: {start_location_id}",
            current_state="player_death",
        )

    new_state = state.model_copy(deep=True)
    player = new_state.player
    death_location_id = player.current_location_id
    description = death_description or "met an untimely end"

    deeds = [
        event.description
        for event in new_state.event_history
        if event.is_significant and event.type in DEED_EVENT_TYPES
    ][-MAX_DEEDS_REMEMBERED:]

    known_by = [
        npc.id
        for npc in new_state.npcs.values()
        if npc.is_alive
        and (npc.conversation_history or npc.player_name_known or npc.is_companion)
    ]

    hero = DeceasedHero(
        id=new_id("hero"),
        name=player.name,
        physical_description=player.physical_description,
        origin=player.origin,
        died_at_action=new_state.action_counter,
        death_description=description,
        death_location_id=death_location_id,
        major_deeds=tuple(deeds),
        items_left_behind=(
            ItemsLeftBehind(location_id=death_location_id, items=tuple(player.inventory)),
        ),
        known_by_npc_ids=tuple(known_by),
    )
    new_state.deceased_heroes.append(hero)

    death_location = new_state.locations.get(death_location_id)
    if death_location is not None:
        for item in player.inventory:
            place_item(death_location.items, item)

    for companion_id in player.companion_ids:
        companion = new_state.npcs.get(companion_id)
        if companion is not None:
            companion.is_companion = False
            companion.waiting_at_home = False

    new_state.combat_state = None
    append_event(
        new_state,
        death_description or "The hero fell",
        EventType.DEATH,
        location_id=death_location_id,
        is_significant=True,
    )

    new_state.player = Player(
        current_location_id=start_location_id,
        knowledge=PlayerKnowledge(locations=[start_location_id]),
    )
    logger.info(
        "Player died",
        hero_id=hero.id,
        death_location_id=death_location_id,
        deeds=len(deeds),
        known_by=len(known_by),
    )
    return new_state


__all__ = ["handle_player_death"]
