"""Tests for player death and world persistence across heroes."""

from __future__ import annotations

import pytest

from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.core.exceptions import InvalidGameStateError
from dragons_bane.engine import append_event, apply_state_changes, handle_player_death, initiate_combat
from dragons_bane.models import EventType, WorldItem, WorldState
from dragons_bane.world import seed_id


FORGE = seed_id("loc", "ironheart forge")


@pytest.fixture
def doomed(world: WorldState, pip_id: str) -> WorldState:
    """A seasoned hero with gear, a companion and some history."""
    world = apply_state_changes(world, [{"type": "add_companion", "data": {"npcId": pip_id}}])
    world.player.name = "Aldric"
    world.player.inventory.append(WorldItem(id="item_blade", name="Notched Blade"))
    world.player.gold = 80
    world.action_counter = 12
    append_event(world, "Slew the mill rats", EventType.COMBAT, is_significant=True)
    append_event(world, "Chatted about the weather", EventType.DIALOGUE, is_significant=True)
    append_event(world, "Lost a skirmish", EventType.COMBAT)
    return world


class TestHandlePlayerDeath:
    """Tests for handle_player_death."""

    def test_hero_recorded(self, doomed: WorldState, pip_id: str) -> None:
        """Test the dead character is frozen into a DeceasedHero."""
        state = handle_player_death(doomed, "Fell from the mill roof")

        hero = state.deceased_heroes[-1]
        assert hero.name == "Aldric"
        assert hero.died_at_action == 12
        assert hero.death_description == "Fell from the mill roof"
        assert hero.death_location_id == START_LOCATION_ID
        assert hero.major_deeds == ("Slew the mill rats",)
        assert hero.items_left_behind[0].items[0].id == "item_blade"
        assert pip_id in hero.known_by_npc_ids
        assert doomed.deceased_heroes == []

    def test_items_stay_where_hero_fell(self, doomed: WorldState) -> None:
        """Test the inventory is dropped at the death location."""
        state = handle_player_death(doomed, "Struck by lightning")

        dropped = [item.id for item in state.locations[START_LOCATION_ID].items]
        assert "item_blade" in dropped
        assert state.player.inventory == []

    def test_companions_released(self, doomed: WorldState, pip_id: str) -> None:
        """Test companions stop following and stay in the world."""
        state = handle_player_death(doomed, "Struck by lightning")

        pip = state.npcs[pip_id]
        assert pip.is_companion is False
        assert pip.is_alive is True
        assert state.player.companion_ids == []
        assert state.find_inconsistencies() == []

    def test_fresh_player(self, doomed: WorldState) -> None:
        """Test the next character starts from scratch at the start location."""
        state = handle_player_death(doomed, "Struck by lightning")

        player = state.player
        assert player.name is None
        assert player.current_location_id == START_LOCATION_ID
        assert player.health == 100
        assert player.level == 1
        assert player.gold == 0
        assert player.knowledge.locations == [START_LOCATION_ID]
        assert state.action_counter == 12
        assert state.event_history[-1].type == EventType.DEATH

    def test_combat_cleared(self, wolf_world: WorldState) -> None:
        """Test dying mid-fight leaves no combat behind."""
        state = handle_player_death(initiate_combat(wolf_world, "npc_wolf"), "Mauled by a wolf")
        assert state.combat_state is None
        assert state.npcs["npc_wolf"].is_alive is True

    def test_custom_start_location(self, doomed: WorldState) -> None:
        """Test the next character can begin elsewhere."""
        state = handle_player_death(doomed, "Drowned", start_location_id=FORGE)
        assert state.player.current_location_id == FORGE

    def test_missing_start_location(self, doomed: WorldState) -> None:
        """Test a world without the start location is rejected."""
        with pytest.raises(InvalidGameStateError):
            handle_player_death(doomed, "Drowned", start_location_id="loc_void")
