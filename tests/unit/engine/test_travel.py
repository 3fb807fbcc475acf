"""Tests for the travel and encounter model."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.core.exceptions import TravelError, ValidationError
from dragons_bane.engine import (
    EncounterContext,
    RoutePlan,
    TravelEncounter,
    encounter_chance,
    initiate_combat,
    plan_route,
    resolve_travel,
)
from dragons_bane.models import Coordinates, EncounterType, Location, Terrain, WorldState
from dragons_bane.world import seed_id


FOREST = "loc_dark_forest"
TAVERN = seed_id("loc", "rusty tankard")


def classifier_returning(answer: dict[str, Any]) -> Callable[[EncounterContext], dict[str, Any]]:
    seen: list[EncounterContext] = []

    def classify(context: EncounterContext) -> dict[str, Any]:
        seen.append(context)
        return answer

    classify.seen = seen  # type: ignore[attr-defined]
    return classify


class TestRoutePlanning:
    """Tests for plan_route and encounter_chance."""

    def test_plan_samples_known_locations(self, frontier_world: WorldState) -> None:
        """Test danger is averaged over every known location in the box."""
        plan = plan_route(frontier_world, START_LOCATION_ID, FOREST)

        assert plan.distance == 4
        assert plan.average_danger == pytest.approx(7 / 6)
        assert plan.terrains_crossed == (Terrain.VILLAGE, Terrain.FOREST, Terrain.ROAD)

    def test_unknown_locations_ignored(self, frontier_world: WorldState) -> None:
        """Test places the player has never heard of do not count."""
        lair = Location(
            id="loc_lair",
            name="Troll Lair",
            coordinates=Coordinates(x=2, y=0),
            terrain=Terrain.CAVE,
            danger_level=10,
        )
        frontier_world.locations[lair.id] = lair

        plan = plan_route(frontier_world, START_LOCATION_ID, FOREST)

        assert Terrain.CAVE not in plan.terrains_crossed
        assert plan.average_danger == pytest.approx(7 / 6)

    def test_missing_endpoint(self, world: WorldState) -> None:
        """Test planning to a missing location fails."""
        with pytest.raises(TravelError):
            plan_route(world, START_LOCATION_ID, "loc_nowhere")

    def test_encounter_chance_formula(self, frontier_world: WorldState) -> None:
        """Test the encounter probability for a known route."""
        plan = plan_route(frontier_world, START_LOCATION_ID, FOREST)
        expected = 0.15 + 0.4 * (7 / 6) / 10 + 0.05 * 4 + (-2 + 1 - 1) * 0.02

        assert encounter_chance(plan) == pytest.approx(expected)

    def test_encounter_chance_capped(self) -> None:
        """Test the probability never exceeds 0.9."""
        plan = RoutePlan(
            origin_id="a",
            destination_id="b",
            average_danger=10,
            terrains_crossed=(Terrain.DUNGEON, Terrain.CAVE),
            distance=40,
        )
        assert encounter_chance(plan) == pytest.approx(0.9)

    def test_zero_distance_is_safe(self) -> None:
        """Test a route that goes nowhere carries no risk."""
        plan = RoutePlan("a", "a", 10, (Terrain.DUNGEON,), 0)
        assert encounter_chance(plan) == 0.0


class TestResolveTravel:
    """Tests for resolve_travel."""

    def test_no_encounter(self, frontier_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test a roll above the chance arrives uneventfully."""
        frontier_world.action_counter = 9

        result = resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.99]))

        assert result.arrived is True
        assert result.encounter is None
        assert result.final_location_id == FOREST
        assert result.state.player.current_location_id == FOREST
        assert result.state.locations[FOREST].last_visited_at_action == 9
        assert frontier_world.player.current_location_id == START_LOCATION_ID

    def test_travel_by_name(self, frontier_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test destinations can be named case-insensitively."""
        result = resolve_travel(frontier_world, "dark forest", scripted_rng(randoms=[0.99]))
        assert result.final_location_id == FOREST

    def test_same_location_is_noop(self, world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test travelling to where you stand succeeds without a draw."""
        rng = scripted_rng(randoms=[0.0])

        result = resolve_travel(world, START_LOCATION_ID, rng)

        assert result.arrived is True
        assert result.encounter_chance == 0.0
        assert rng.random_calls == 0
        assert result.state == world

    def test_unknown_destination(self, world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test missing and unknown destinations are rejected."""
        world.locations["loc_secret"] = Location(id="loc_secret", name="Secret Grove")

        with pytest.raises(TravelError):
            resolve_travel(world, "loc_atlantis", scripted_rng())
        with pytest.raises(TravelError) as exc_info:
            resolve_travel(world, "loc_secret", scripted_rng())
        assert exc_info.value.details["destination_id"] == "loc_secret"

    def test_no_travel_in_combat(self, wolf_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test the player cannot travel away from a fight."""
        state = initiate_combat(wolf_world, "npc_wolf")
        with pytest.raises(TravelError):
            resolve_travel(state, TAVERN, scripted_rng())

    def test_combat_encounter(self, frontier_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test an ambush spawns a hostile NPC at the departure point."""
        classify = classifier_returning(
            {"type": "combat", "description": "Bandits!", "npc": {"name": "Bandit", "stats": {"health": 30, "maxHealth": 30}}}
        )

        result = resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.0]), classify)

        bandit = result.state.npcs[result.spawned_npc_id]
        assert result.arrived is False
        assert result.combat_started is True
        assert result.state.player.current_location_id == START_LOCATION_ID
        assert bandit.current_location_id == START_LOCATION_ID
        assert bandit.attitude == -50
        assert result.state.combat_state.enemy_npc_id == bandit.id
        assert result.state.find_inconsistencies() == []
        assert classify.seen[0].destination_id == FOREST

    def test_npc_meeting(self, frontier_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test a stranger met on the road waits at the destination."""
        classify = classifier_returning({"type": "npc_meeting", "npc": {"name": "Pilgrim", "attitude": 20}})

        result = resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.0]), classify)

        pilgrim = result.state.npcs[result.spawned_npc_id]
        assert result.arrived is True
        assert pilgrim.current_location_id == FOREST
        assert result.state.combat_state is None

    def test_discovery(self, frontier_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test a discovery hands the player an item."""
        classify = classifier_returning({"type": "discovery", "item": {"name": "Silver Locket", "value": 12}})

        result = resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.0]), classify)

        assert result.arrived is True
        assert result.state.player.inventory[-1].name == "Silver Locket"

    def test_blocking_hazard(self, frontier_world: WorldState, scripted_rng: Callable[..., object]) -> None:
        """Test an environmental hazard can hurt and turn the player back."""
        classify = classifier_returning({"type": "environmental", "damage": 15, "blocksArrival": True})

        result = resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.0]), classify)

        assert result.arrived is False
        assert result.state.player.health == 85
        assert result.state.player.current_location_id == START_LOCATION_ID

    def test_no_classifier_passes_quietly(
        self, frontier_world: WorldState, scripted_rng: Callable[..., object]
    ) -> None:
        """Test a triggered encounter without a classifier is uneventful."""
        result = resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.0]))

        assert result.arrived is True
        assert result.encounter == TravelEncounter(type=EncounterType.NONE)

    def test_unreadable_classification(
        self, frontier_world: WorldState, scripted_rng: Callable[..., object]
    ) -> None:
        """Test a nonsense classification is a validation error."""
        classify = classifier_returning({"type": "meteor"})

        with pytest.raises(ValidationError):
            resolve_travel(frontier_world, FOREST, scripted_rng(randoms=[0.0]), classify)
