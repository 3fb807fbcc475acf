"""Integration tests for the world service.

Tests whole turns against a real SQLite store: seeding, actions, combat,
travel, off-screen simulation, conversations, death and failed saves.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pytest

from dragons_bane.core.config import Settings
from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.core.exceptions import (
    CombatError,
    InteractionError,
    InvalidGameStateError,
    PersistenceError,
    TravelError,
    ValidationError,
)
from dragons_bane.core.logging import configure_logging
from dragons_bane.engine import SeededRandom
from dragons_bane.models import QuestStatus, WorldState
from dragons_bane.service import ActionResolution, WorldService
from dragons_bane.storage import WorldStore
from dragons_bane.world import seed_id

pytestmark = pytest.mark.integration

TAVERN = seed_id("loc", "rusty tankard")
FORGE = seed_id("loc", "ironheart forge")
MARTA = seed_id("npc", "marta barkeep")


def move_to(location_id: str) -> dict[str, object]:
    return {"type": "move_player", "data": {"locationId": location_id}}


class TestSeeding:
    """Test first-run behavior."""

    def test_first_run_seeds_and_saves(self, service: WorldService, store: WorldStore) -> None:
        """An empty store is seeded with the starting village."""
        state = service.load_or_seed()

        assert state.action_counter == 0
        assert state.player.current_location_id == START_LOCATION_ID
        assert store.load() == state
        assert service.dirty is False

    def test_existing_world_is_loaded(self, store: WorldStore, world: WorldState) -> None:
        """A saved world is picked up instead of reseeding."""
        world.action_counter = 42
        store.save(world)

        service = WorldService(store, rng=SeededRandom(seed=1), settings=Settings())

        assert service.snapshot().action_counter == 42

    def test_snapshots_are_copies(self, service: WorldService) -> None:
        """Mutating a snapshot does not touch the live world."""
        snapshot = service.snapshot()
        snapshot.player.gold = 9999

        assert service.snapshot().player.gold == 25


class TestApplyAction:
    """Test the turn cycle."""

    def test_turn_advances_and_persists(self, service: WorldService, store: WorldStore) -> None:
        """An action applies its changes, advances the clock and survives a restart."""
        outcome = service.apply_action(
            "I walk over to the tavern",
            {
                "narrative": "You push open the tavern door.",
                "stateChanges": [move_to(TAVERN), {"type": "gold_change", "data": {"amount": -3}}],
                "suggestedActions": [{"label": "Order an ale", "type": "talk", "targetId": MARTA}],
            },
        )

        assert len(outcome.applied) == 2
        assert outcome.warnings == []
        assert outcome.state.action_counter == 1
        assert outcome.state.player.current_location_id == TAVERN
        assert outcome.state.player.gold == 22
        assert outcome.suggested_actions[0].target_id == MARTA

        restarted = WorldService(store, rng=SeededRandom(seed=7), settings=Settings())
        assert restarted.snapshot() == service.snapshot()

    def test_bad_changes_become_warnings(self, service: WorldService) -> None:
        """Unknown and invalid changes are skipped while the rest apply."""
        outcome = service.apply_action(
            "Do something strange",
            ActionResolution(
                state_changes=[
                    {"type": "summon_meteor", "data": {}},
                    move_to("loc_atlantis"),
                    {"type": "gold_change", "data": {"amount": 5}},
                ]
            ),
        )

        assert len(outcome.applied) == 1
        assert len(outcome.warnings) == 2
        assert outcome.state.player.gold == 30
        assert outcome.state.action_counter == 1

    def test_quest_updates_follow_changes(self, service: WorldService, pip_id: str) -> None:
        """Quest updates apply after the state changes, the flashback last."""
        outcome = service.apply_action(
            "Ask Pip for work",
            {
                "stateChanges": [
                    {
                        "type": "add_quest",
                        "data": {
                            "id": "quest_lost_lamb",
                            "title": "Lost Lamb",
                            "giverNpcId": pip_id,
                            "objectives": ["Find the lamb"],
                        },
                    }
                ],
                "questUpdates": [{"questId": "quest_lost_lamb", "completedObjectives": ["Find the lamb"]}],
                "revealsFlashback": "A burning barn, long ago.",
            },
        )

        state = outcome.state
        assert state.quests["quest_lost_lamb"].completed_objectives == ["Find the lamb"]
        assert "A burning barn, long ago." in state.player.revealed_backstory
        assert [change.type for change in outcome.applied] == ["add_quest", "update_quest", "reveal_flashback"]

    def test_quest_status_change(self, service: WorldService, pip_id: str) -> None:
        """A quest can be failed through a quest update."""
        service.apply_action(
            "Take the job",
            {
                "stateChanges": [
                    {
                        "type": "add_quest",
                        "data": {"id": "quest_x", "title": "X", "giverNpcId": pip_id, "objectives": ["Go"]},
                    }
                ]
            },
        )
        outcome = service.apply_action("Give up", {"questUpdates": [{"questId": "quest_x", "status": "failed"}]})

        assert outcome.state.quests["quest_x"].status == QuestStatus.FAILED

    def test_unreadable_resolution(self, service: WorldService) -> None:
        """A resolution of the wrong shape is rejected before anything changes."""
        with pytest.raises(ValidationError):
            service.apply_action("Hmm", {"stateChanges": "everything"})

        assert service.snapshot().action_counter == 0

    def test_play_style_tracked(self, service: WorldService) -> None:
        """Sneaky actions accumulate into a dominant play style."""
        for _ in range(3):
            service.apply_action("Sneak around quietly", {})

        assert service.snapshot().player.behavior_patterns.stealth == 6
        assert service.dominant_play_styles() == ["stealth"]

    def test_recent_events_limit(self, service: WorldService) -> None:
        """Recent events are bounded and keep the newest."""
        for index in range(4):
            service.apply_action(f"Remember {index}", {"revealsFlashback": f"memory {index}"})

        events = service.recent_events(limit=2)
        assert [event.description for event in events] == [
            "A memory from the past was revealed: memory 2",
            "A memory from the past was revealed: memory 3",
        ]
        assert len(service.recent_events()) == 4
        assert service.recent_events(limit=0) == []


class TestCombatThroughService:
    """Test fights driven by the service."""

    @pytest.fixture
    def wolf_service(self, store: WorldStore, wolf_world: WorldState) -> WorldService:
        store.save(wolf_world)
        return WorldService(store, rng=SeededRandom(seed=3), settings=Settings())

    def test_resolution_starts_combat(self, wolf_service: WorldService) -> None:
        """A resolution naming an enemy starts combat."""
        outcome = wolf_service.apply_action("I attack the wolf", {"initiatesCombat": "npc_wolf"})

        assert outcome.combat_started is True
        assert outcome.state.combat_state.enemy_npc_id == "npc_wolf"
        assert outcome.state.player.behavior_patterns.combat == 3

    def test_combat_that_cannot_start(self, service: WorldService) -> None:
        """A fight with someone who is not here is a warning, not an error."""
        outcome = service.apply_action("Punch Grimjaw", {"initiatesCombat": seed_id("npc", "grimjaw smith")})

        assert outcome.combat_started is False
        assert len(outcome.warnings) == 1
        assert outcome.state.combat_state is None
        assert outcome.state.action_counter == 1

    def test_exchange_until_resolved(self, wolf_service: WorldService) -> None:
        """Exchanges advance the clock and log messages until the fight ends."""
        wolf_service.start_combat("npc_wolf")

        result = wolf_service.combat_action("attack")
        turns = 1
        while not result.combat_ended:
            result = wolf_service.combat_action("attack")
            turns += 1

        state = wolf_service.snapshot()
        assert result.player_victory is True
        assert state.combat_state is None
        assert state.npcs["npc_wolf"].is_alive is False
        assert state.action_counter == turns
        assert any("wolf" in message.lower() for message in state.message_log)
        assert state.find_inconsistencies() == []

    def test_combat_action_outside_combat(self, wolf_service: WorldService) -> None:
        """Combat actions without a fight are rejected and change nothing."""
        with pytest.raises(CombatError):
            wolf_service.combat_action("attack")

        assert wolf_service.snapshot().action_counter == 0

    def test_cannot_travel_mid_fight(self, wolf_service: WorldService) -> None:
        """Travel is refused during combat."""
        wolf_service.start_combat("npc_wolf")

        with pytest.raises(TravelError):
            wolf_service.travel(TAVERN)


class TestTravelAndSimulation:
    """Test travel and the off-screen simulation hand-off."""

    def test_travel(self, service: WorldService) -> None:
        """Fast travel moves the player and advances the clock."""
        result = service.travel("the rusty tankard")

        state = service.snapshot()
        assert result.arrived is True
        assert state.player.current_location_id == TAVERN
        assert state.action_counter == 1

    def test_entry_flags_stale_location(
        self, store: WorldStore, world: WorldState, scripted_rng: Callable[..., object]
    ) -> None:
        """Entering a long-unvisited location asks for a simulation."""
        world.locations[TAVERN].last_visited_at_action = 0
        world.action_counter = 20
        store.save(world)
        service = WorldService(store, rng=scripted_rng(randoms=[0.0]), settings=Settings())

        outcome = service.apply_action("Head to the tavern", {"stateChanges": [move_to(TAVERN)]})

        assert outcome.simulate_location_id == TAVERN
        assert service.pending_simulation == TAVERN

        result = service.simulate(
            TAVERN,
            [{"type": "move_npc", "data": {"npcId": MARTA, "locationId": FORGE}}],
        )

        assert len(result.applied) == 1
        assert service.pending_simulation is None
        assert service.snapshot().npcs[MARTA].current_location_id == FORGE
        assert service.snapshot().action_counter == 21

    def test_first_visit_not_simulated(
        self, store: WorldStore, world: WorldState, scripted_rng: Callable[..., object]
    ) -> None:
        """A location never visited before has nothing to catch up on."""
        world.locations[TAVERN].last_visited_at_action = None
        store.save(world)
        service = WorldService(store, rng=scripted_rng(randoms=[0.0]), settings=Settings())

        outcome = service.apply_action("Head to the tavern", {"stateChanges": [move_to(TAVERN)]})

        assert outcome.simulate_location_id is None
        assert service.pending_simulation is None

    def test_map_and_knowledge(self, service: WorldService) -> None:
        """The map and knowledge checks read the live world."""
        assert len(service.map().locations) == 5
        assert service.knows("Pip") is True
        assert service.knows("Grimjaw") is False


class TestConversationsAndDeath:
    """Test conversations, death and reset."""

    def test_record_conversation(self, service: WorldService, pip_id: str) -> None:
        """A conversation is remembered and attitude stays in range."""
        state = service.record_conversation(
            pip_id,
            "Pip talked about the missing lamb",
            player_asked=["Seen anything odd?"],
            npc_revealed=["A lamb went missing"],
            attitude_change=50,
            lore=["Wolves prowl the eastern woods"],
        )

        pip = state.npcs[pip_id]
        assert pip.attitude == 100
        assert pip.conversation_history[-1].summary == "Pip talked about the missing lamb"
        assert "Wolves prowl the eastern woods" in state.player.knowledge.lore
        assert state.action_counter == 0

    def test_conversation_needs_present_npc(self, service: WorldService) -> None:
        """NPCs elsewhere or missing cannot be talked to."""
        with pytest.raises(InteractionError):
            service.record_conversation(MARTA, "Shouted across town")
        with pytest.raises(InteractionError):
            service.record_conversation("npc_ghost", "Whispered to nobody")

    def test_conversation_with_the_dead(self, service: WorldService, pip_id: str) -> None:
        """Dead NPCs do not talk back."""
        service.apply_action("Tragedy strikes", {"stateChanges": [{"type": "npc_death", "data": {"npcId": pip_id}}]})

        with pytest.raises(InteractionError):
            service.record_conversation(pip_id, "Hello?")

    def test_handle_death(self, service: WorldService) -> None:
        """Death retires the hero and the world carries on."""
        service.apply_action("Wander to the forge", {"stateChanges": [move_to(FORGE)]})

        state = service.handle_death("Crushed by an anvil")

        assert len(state.deceased_heroes) == 1
        assert state.deceased_heroes[0].death_location_id == FORGE
        assert state.player.current_location_id == START_LOCATION_ID
        assert state.action_counter == 1

    def test_reset(self, service: WorldService, store: WorldStore) -> None:
        """Reset replaces the world with a fresh seed."""
        service.apply_action("Wander", {"stateChanges": [move_to(FORGE)]})

        state = service.reset()

        assert state.action_counter == 0
        assert state.player.current_location_id == START_LOCATION_ID
        assert store.load() == state


class TestCharacterCreation:
    """Test installing a newly created character."""

    def test_created_character_is_remembered_at_death(self, service: WorldService) -> None:
        """The new character's name and origin reach the hero record."""
        state = service.create_character(
            {
                "name": "  Aldric  ",
                "origin": "Farmhand from the eastern fields",
                "gold": 12,
                "inventory": [{"name": "Rusty Sickle", "type": "weapon"}],
            }
        )

        assert state.player.name == "Aldric"
        assert state.player.gold == 12
        assert state.player.health == state.player.max_health
        assert state.player.inventory[0].name == "Rusty Sickle"
        assert state.player.current_location_id == START_LOCATION_ID
        assert state.action_counter == 0

        state = service.handle_death("Trampled by an ox")

        hero = state.deceased_heroes[0]
        assert hero.name == "Aldric"
        assert hero.origin == "Farmhand from the eastern fields"
        assert state.player.name is None

    def test_successor_keeps_fresh_knowledge(self, service: WorldService) -> None:
        """A character created after a death starts with the fresh knowledge."""
        service.apply_action("Wander to the forge", {"stateChanges": [move_to(FORGE)]})
        service.handle_death("Crushed by an anvil")

        state = service.create_character({"name": "Brenna"})

        assert state.player.current_location_id == START_LOCATION_ID
        assert state.player.knowledge.locations == [START_LOCATION_ID]
        assert len(state.deceased_heroes) == 1

    @pytest.mark.parametrize(
        "draft",
        [{"name": " A "}, {"name": "x" * 51}, {}, {"name": "Cara", "maxHealth": 0}, {"name": "Cara", "gold": -5}],
    )
    def test_unreadable_character(self, service: WorldService, draft: dict[str, object]) -> None:
        """Names outside 2 to 50 characters and bad stats are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            service.create_character(draft)

        assert exc_info.value.details["errors"]
        assert service.snapshot().player.name is None

    def test_unknown_home_rejected(self, service: WorldService) -> None:
        """A home that does not exist is rejected."""
        with pytest.raises(ValidationError):
            service.create_character({"name": "Dunstan", "homeLocationId": "loc_nowhere"})

    def test_npc_knowledge_updates(self, service: WorldService, pip_id: str) -> None:
        """Residents learn about the newcomer; unknown NPCs are skipped."""
        state = service.create_character(
            {"name": "Edda"},
            npc_updates=[
                {"npcId": pip_id, "newKnowledge": ["A stranger named Edda arrived", "Edda carries no sword"]},
                {"npcId": pip_id, "newKnowledge": ["A stranger named Edda arrived"]},
                {"npcId": "npc_nobody", "newKnowledge": ["Lost"]},
            ],
        )

        knowledge = state.npcs[pip_id].knowledge
        assert knowledge.count("A stranger named Edda arrived") == 1
        assert "Edda carries no sword" in knowledge
        assert "npc_nobody" not in state.npcs

    def test_fresh_world(self, service: WorldService, store: WorldStore) -> None:
        """A fresh world discards the old one before placing the character."""
        service.apply_action("Wander", {"stateChanges": [move_to(FORGE)]})

        state = service.create_character({"name": "Fenn"}, fresh_world=True)

        assert state.action_counter == 0
        assert state.player.name == "Fenn"
        assert state.player.current_location_id == START_LOCATION_ID
        assert store.load() == state

    def test_no_creation_mid_fight(self, store: WorldStore, wolf_world: WorldState) -> None:
        """A character cannot be swapped in during combat."""
        store.save(wolf_world)
        service = WorldService(store, rng=SeededRandom(seed=3), settings=Settings())
        service.start_combat("npc_wolf")

        with pytest.raises(InvalidGameStateError):
            service.create_character({"name": "Gwen"})

        assert service.snapshot().player.name is None


class TestJournal:
    """Test the journal read through the service."""

    def test_journal_groups_quests_and_heroes(self, service: WorldService, pip_id: str) -> None:
        """Quests are grouped by outcome and fallen heroes are listed."""
        service.create_character({"name": "Hale"})
        service.apply_action(
            "Take two jobs",
            {
                "stateChanges": [
                    {
                        "type": "add_quest",
                        "data": {"id": "quest_a", "title": "A", "giverNpcId": pip_id, "objectives": ["Go"]},
                    },
                    {
                        "type": "add_quest",
                        "data": {"id": "quest_b", "title": "B", "giverNpcId": pip_id, "objectives": ["Go"]},
                    },
                ],
                "questUpdates": [{"questId": "quest_b", "status": "impossible"}],
            },
        )
        service.record_conversation(pip_id, "Pip told old tales", lore=["The mill burned twice"])
        service.handle_death("Lost in the fog")

        journal = service.journal()

        assert [quest.id for quest in journal.active_quests] == ["quest_a"]
        assert [quest.id for quest in journal.failed_quests] == ["quest_b"]
        assert journal.known_lore == ()
        assert journal.deceased_heroes[0].name == "Hale"
        assert journal.to_payload()["deceasedHeroes"][0]["deathDescription"] == "Lost in the fog"


class TestLoggingSettings:
    """Test the service applies the logging settings."""

    def test_service_applies_log_settings(
        self, store: WorldStore, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Log level and log file come from the service settings."""
        monkeypatch.chdir(tmp_path)
        log_file = tmp_path / "logs" / "world.log"
        settings = Settings(log_level="WARNING", log_file=log_file)

        try:
            WorldService(store, rng=SeededRandom(seed=1), settings=settings)
            assert logging.getLogger().level == logging.WARNING
            assert log_file.parent.is_dir()
        finally:
            configure_logging()

    def test_embedder_keeps_its_logging(self, store: WorldStore, monkeypatch: pytest.MonkeyPatch) -> None:
        """Logging is left alone when the embedder configures it."""
        calls: list[Settings] = []
        monkeypatch.setattr("dragons_bane.service.configure_from_settings", calls.append)

        WorldService(store, rng=SeededRandom(seed=1), settings=Settings(), configure_logs=False)

        assert calls == []


class TestFailedSaves:
    """Test behavior when the store rejects a write."""

    def test_failed_save_keeps_world_live(
        self, service: WorldService, store: WorldStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failed save leaves the new world live and dirty until flushed."""
        service.load_or_seed()
        real_save = store.save
        calls = {"count": 0}

        def flaky_save(state: WorldState):
            calls["count"] += 1
            if calls["count"] == 1:
                raise PersistenceError("disk full", slot=store.slot)
            return real_save(state)

        monkeypatch.setattr(store, "save", flaky_save)

        with pytest.raises(PersistenceError):
            service.apply_action("Wander", {"stateChanges": [move_to(FORGE)]})

        assert service.dirty is True
        assert service.snapshot().action_counter == 1
        assert store.load().action_counter == 0

        service.flush()

        assert service.dirty is False
        assert store.load().action_counter == 1
