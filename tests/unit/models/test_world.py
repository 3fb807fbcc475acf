"""Tests for the world state models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.models import (
    NPC,
    DeceasedHero,
    Faction,
    ItemType,
    Location,
    NPCStats,
    Player,
    PlayerKnowledge,
    Quest,
    QuestStatus,
    Terrain,
    WorldItem,
    WorldState,
    clamp,
)
from dragons_bane.world import STARTING_LORE, seed_id


class TestClamping:
    """Tests for range clamping on load."""

    def test_clamp_helper(self) -> None:
        """Test the integer clamp helper."""
        assert clamp(150, -100, 100) == 100
        assert clamp(-150, -100, 100) == -100
        assert clamp(7, 0, 10) == 7

    @pytest.mark.parametrize(("raw", "expected"), [(-3, 0), (4, 4), (42, 10)])
    def test_location_danger_clamped(self, raw: int, expected: int) -> None:
        """Test danger level is clamped into 0..10."""
        assert Location(id="loc_x", danger_level=raw).danger_level == expected

    @pytest.mark.parametrize(("raw", "expected"), [(-500, -100), (0, 0), (250, 100)])
    def test_npc_attitude_clamped(self, raw: int, expected: int) -> None:
        """Test NPC attitude is clamped into -100..100."""
        npc = NPC(id="npc_x", current_location_id="loc_x", attitude=raw)
        assert npc.attitude == expected

    def test_faction_reputation_clamped(self) -> None:
        """Test faction reputation is clamped into -100..100."""
        assert Faction(id="f", name="F", player_reputation=300).player_reputation == 100

    def test_player_gold_never_negative(self) -> None:
        """Test gold below zero loads as zero."""
        assert Player(gold=-20).gold == 0

    def test_player_health_clamped_to_max(self) -> None:
        """Test health above max_health is clamped."""
        player = Player(health=500, max_health=120)
        assert player.health == 120

    def test_npc_health_clamped(self) -> None:
        """Test NPC health stays within [0, max_health]."""
        assert NPCStats(health=90, max_health=40).health == 40
        assert NPCStats(health=-5, max_health=40).health == 0

    def test_negative_item_value_rejected(self) -> None:
        """Test item value must be non-negative."""
        with pytest.raises(ValidationError):
            WorldItem(id="item_x", value=-1)


class TestNPCInvariants:
    """Tests for the NPC life-and-loyalty invariants."""

    def test_dead_npc_has_no_health(self) -> None:
        """Test a dead NPC loads with 0 health and no companionship."""
        npc = NPC(
            id="npc_ghost",
            current_location_id="loc_x",
            is_alive=False,
            is_companion=True,
            waiting_at_home=True,
            stats=NPCStats(health=30, max_health=30),
        )
        assert npc.stats.health == 0
        assert npc.is_companion is False
        assert npc.waiting_at_home is False

    def test_only_companions_wait_at_home(self) -> None:
        """Test waiting_at_home is cleared for non-companions."""
        npc = NPC(id="npc_x", current_location_id="loc_x", waiting_at_home=True)
        assert npc.waiting_at_home is False


class TestQuest:
    """Tests for Quest objective bookkeeping."""

    def test_completed_subset_of_objectives(self) -> None:
        """Test unknown completed objectives are dropped."""
        quest = Quest(
            id="quest_x",
            title="Wolves",
            giver_npc_id="npc_x",
            objectives=["find den", "slay alpha"],
            completed_objectives=["find den", "dance", "find den"],
        )
        assert quest.completed_objectives == ["find den"]
        assert quest.all_objectives_complete is False

    def test_all_objectives_complete(self) -> None:
        """Test completion is detected when every objective is done."""
        quest = Quest(
            id="quest_x",
            title="Wolves",
            giver_npc_id="npc_x",
            objectives=["find den"],
            completed_objectives=["find den"],
        )
        assert quest.all_objectives_complete is True
        assert quest.status == QuestStatus.ACTIVE


class TestPlayerKnowledge:
    """Tests for the knowledge buckets."""

    def test_buckets_deduplicated_on_load(self) -> None:
        """Test duplicate entries collapse preserving order."""
        knowledge = PlayerKnowledge(locations=["b", "a", "b"], lore=["x", "x"])
        assert knowledge.locations == ["b", "a"]
        assert knowledge.lore == ["x"]

    def test_add_is_append_if_absent(self) -> None:
        """Test add reports whether the value was new."""
        knowledge = PlayerKnowledge()
        assert knowledge.add("lore", "dragons sleep") is True
        assert knowledge.add("lore", "dragons sleep") is False
        assert knowledge.lore == ["dragons sleep"]


class TestSerialization:
    """Tests for the persisted document shape."""

    def test_camel_case_aliases(self, world: WorldState) -> None:
        """Test the document uses camelCase field names."""
        document = world.model_dump(by_alias=True)

        assert "actionCounter" in document
        assert "presentNpcIds" in document["locations"][START_LOCATION_ID]
        assert "currentLocationId" in document["player"]

    def test_unknown_fields_ignored(self) -> None:
        """Test fields from a newer engine are tolerated."""
        state = WorldState.model_validate({"actionCounter": 3, "weather": "rain"})
        assert state.action_counter == 3

    def test_round_trip(self, world: WorldState) -> None:
        """Test a world survives a JSON round trip unchanged."""
        restored = WorldState.model_validate_json(world.model_dump_json(by_alias=True))
        assert restored == world

    def test_deceased_hero_frozen(self) -> None:
        """Test hero records cannot be edited."""
        hero = DeceasedHero(
            id="hero_1",
            died_at_action=4,
            death_description="Fell",
            death_location_id=START_LOCATION_ID,
        )
        with pytest.raises(ValidationError):
            hero.death_description = "Rose again"


class TestSeedWorld:
    """Tests for the Millbrook seed world."""

    def test_seed_is_consistent(self, world: WorldState) -> None:
        """Test the seed world satisfies every cross-entity invariant."""
        assert world.find_inconsistencies() == []

    def test_seed_contents(self, world: WorldState) -> None:
        """Test the shape of the starting world."""
        assert world.action_counter == 0
        assert len(world.locations) == 5
        assert len(world.npcs) == 4
        assert len(world.factions) == 3
        assert world.player.current_location_id == START_LOCATION_ID
        assert world.player.gold == 25
        assert STARTING_LORE in world.player.knowledge.lore
        assert world.locations[START_LOCATION_ID].terrain == Terrain.VILLAGE

    def test_pip_in_square(self, world: WorldState, pip_id: str) -> None:
        """Test Pip starts next to the player."""
        assert pip_id in world.locations[START_LOCATION_ID].present_npc_ids
        assert [npc.id for npc in world.npcs_at(START_LOCATION_ID)] == [pip_id]

    def test_grimjaw_sells_a_dagger(self, world: WorldState) -> None:
        """Test canonical items are attached to their owners."""
        grimjaw = world.npcs[seed_id("npc", "grimjaw smith")]
        assert grimjaw.inventory[0].type == ItemType.WEAPON


class TestFindInconsistencies:
    """Tests for WorldState.find_inconsistencies."""

    def test_detects_stale_presence(self, world: WorldState, pip_id: str) -> None:
        """Test a presence list that disagrees with NPC positions is reported."""
        world.npcs[pip_id].current_location_id = seed_id("loc", "rusty tankard")

        problems = world.find_inconsistencies()

        assert any(START_LOCATION_ID in problem for problem in problems)

    def test_detects_stray_companion(self, world: WorldState, pip_id: str) -> None:
        """Test a companion away from the player is reported."""
        world.player.companion_ids.append(pip_id)
        world.npcs[pip_id].is_companion = True
        world.player.current_location_id = seed_id("loc", "ironheart forge")

        problems = world.find_inconsistencies()

        assert f"companion {pip_id} is not with the player" in problems
