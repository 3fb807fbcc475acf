"""Pytest configuration and shared fixtures.

This module provides common fixtures and configuration for all tests
in the Dragon's Bane test suite.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Callable

import pytest

from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.models import NPC, Coordinates, Location, NPCStats, Terrain, WorldState
from dragons_bane.world import create_seed_world, seed_id


if TYPE_CHECKING:
    from collections.abc import Generator

    from dragons_bane.service import WorldService
    from dragons_bane.storage import WorldStore


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Reset the settings cache before and after each test."""
    from dragons_bane.core.config import clear_settings_cache

    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set up mock environment variables for testing.

    Returns:
        Dictionary of environment variables that were set.
    """
    env_vars = {
        "DRAGONS_BANE_DEBUG": "true",
        "DRAGONS_BANE_LOG_LEVEL": "DEBUG",
        "DRAGONS_BANE_WORLD_SLOT": "test-slot",
        "DRAGONS_BANE_GAME_RANDOM_SEED": "42",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


# =============================================================================
# Randomness
# =============================================================================


class ScriptedRandom:
    """RandomSource that replays fixed values.

    ``uniform`` returns its scripted values verbatim (they are the noise
    itself, not a fraction of the range). Exhausted scripts repeat their
    last value.
    """

    def __init__(self, randoms: Iterable[float] = (0.5,), uniforms: Iterable[float] = (0.0,)) -> None:
        self._randoms = list(randoms) or [0.5]
        self._uniforms = list(uniforms) or [0.0]
        self.random_calls = 0
        self.uniform_calls = 0

    def random(self) -> float:
        index = min(self.random_calls, len(self._randoms) - 1)
        self.random_calls += 1
        return self._randoms[index]

    def uniform(self, a: float, b: float) -> float:
        index = min(self.uniform_calls, len(self._uniforms) - 1)
        self.uniform_calls += 1
        return self._uniforms[index]


@pytest.fixture
def scripted_rng() -> Callable[..., ScriptedRandom]:
    """Factory for scripted random sources.

    Returns:
        ``ScriptedRandom`` constructor.
    """
    return ScriptedRandom


# =============================================================================
# World Fixtures
# =============================================================================


@pytest.fixture
def world() -> WorldState:
    """Provide the Millbrook seed world at action 0."""
    return create_seed_world()


@pytest.fixture
def pip_id() -> str:
    """Id of Pip, who starts in the village square with the player."""
    return seed_id("npc", "pip stablehand")


@pytest.fixture
def wolf_world(world: WorldState) -> WorldState:
    """Seed world with a hostile wolf standing in the village square."""
    wolf = NPC(
        id="npc_wolf",
        name="Grey Wolf",
        current_location_id=START_LOCATION_ID,
        attitude=-80,
        is_animal=True,
        stats=NPCStats(health=20, max_health=20, strength=6, defense=2),
    )
    world.npcs[wolf.id] = wolf
    world.locations[START_LOCATION_ID].present_npc_ids.append(wolf.id)
    return world


@pytest.fixture
def frontier_world(world: WorldState) -> WorldState:
    """Seed world with a dangerous forest far to the east, known to the player."""
    forest = Location(
        id="loc_dark_forest",
        name="Dark Forest",
        coordinates=Coordinates(x=4, y=0),
        terrain=Terrain.FOREST,
        danger_level=6,
    )
    world.locations[forest.id] = forest
    world.player.knowledge.locations.append(forest.id)
    return world


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Path to a throwaway SQLite world store."""
    return tmp_path / "data" / "world.db"


@pytest.fixture
def store(db_path: Path) -> WorldStore:
    """Provide an empty world store in a temporary directory."""
    from dragons_bane.storage import WorldStore

    return WorldStore(db_path, slot="test")


@pytest.fixture
def service(store: WorldStore, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> WorldService:
    """Provide a WorldService over a temporary store with a fixed seed."""
    from dragons_bane.core.config import Settings
    from dragons_bane.engine import SeededRandom
    from dragons_bane.service import WorldService

    monkeypatch.chdir(tmp_path)
    return WorldService(store, rng=SeededRandom(seed=7), settings=Settings())
