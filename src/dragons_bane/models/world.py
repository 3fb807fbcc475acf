"""World state models for Dragon's Bane.

This module defines the typed shape of the single persistent world: the
player, locations, NPCs, factions, quests, the append-only history and the
transient combat state.

NEURO-SYMBOLIC PRINCIPLE:
These models are the TRUTH. Narrative collaborators read snapshots and emit
state changes; only the engine mutates a WorldState, and only on a private
copy that becomes the next live state once it is fully consistent.

Field names are snake_case in Python and camelCase in the persisted
document (``presentNpcIds``, ``actionCounter``). Unknown fields are ignored
on load so older engines can read newer documents.
"""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from dragons_bane.core.constants import (
    ATTITUDE_MAX,
    ATTITUDE_MIN,
    DANGER_MAX,
    DANGER_MIN,
    DEFAULT_NPC_DEFENSE,
    DEFAULT_NPC_HEALTH,
    DEFAULT_NPC_STRENGTH,
    DEFAULT_PLAYER_DEFENSE,
    DEFAULT_PLAYER_HEALTH,
    DEFAULT_PLAYER_MAGIC,
    DEFAULT_PLAYER_STRENGTH,
    REPUTATION_MAX,
    REPUTATION_MIN,
    START_LOCATION_ID,
)
from dragons_bane.models.enums import (
    EventType,
    ItemType,
    KnowledgeType,
    QuestStatus,
    StructureType,
    Terrain,
)


def clamp(value: int, low: int, high: int) -> int:
    """Clamp an integer into the inclusive range [low, high]."""
    return max(low, min(high, value))


# =============================================================================
# Base Model
# =============================================================================


class WorldModel(BaseModel):
    """Base class for every persisted world entity.

    Entities are mutated only by the engine, on a deep copy owned by the
    reducer, so assignment is not re-validated. Invariants are enforced at
    the mutation site and re-established on load by the validators below.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Items, Structures, Notes
# =============================================================================


class Coordinates(WorldModel):
    """Integer grid position of a location."""

    x: int = 0
    y: int = 0

    def manhattan(self, other: Coordinates) -> int:
        return abs(self.x - other.x) + abs(self.y - other.y)


class ItemEffect(WorldModel):
    """A single signed stat effect carried by an item."""

    stat: str = Field(min_length=1)
    value: int


class WorldItem(WorldModel):
    """An item value object.

    Once placed in a container (player, NPC or location) it belongs to that
    container alone until a change explicitly moves it.
    """

    id: str = Field(min_length=1)
    name: str = "Unknown Item"
    description: str = ""
    type: ItemType = ItemType.MISC
    effect: ItemEffect | None = None
    value: int = Field(default=0, ge=0, description="Gold value")
    is_canonical: bool = False


class Structure(WorldModel):
    """Something built at a location."""

    id: str = Field(min_length=1)
    name: str = "Unknown Structure"
    description: str = ""
    type: StructureType = StructureType.MARKER
    built_at_action: int = Field(default=0, ge=0)
    owner_id: str | None = None


class PlayerNote(WorldModel):
    """A note the player left at a location."""

    id: str = Field(min_length=1)
    content: str
    left_at_action: int = Field(default=0, ge=0)


# =============================================================================
# Location
# =============================================================================


class Location(WorldModel):
    """A place on the world grid.

    ``present_npc_ids`` is a back-reference: it always equals the set of
    NPCs whose ``current_location_id`` is this location's id.
    """

    id: str = Field(min_length=1)
    name: str = "Unknown Location"
    description: str = ""
    image_prompt: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    terrain: Terrain = Terrain.PLAINS
    danger_level: int = Field(default=0, description="0-10, clamped")
    present_npc_ids: list[str] = Field(default_factory=list)
    items: list[WorldItem] = Field(default_factory=list)
    structures: list[Structure] = Field(default_factory=list)
    notes: list[PlayerNote] = Field(default_factory=list)
    is_canonical: bool = False
    last_visited_at_action: int | None = None

    @field_validator("danger_level", mode="before")
    @classmethod
    def clamp_danger(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return clamp(int(value), DANGER_MIN, DANGER_MAX)
        return value

    @field_validator("present_npc_ids")
    @classmethod
    def deduplicate_npcs(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))


# =============================================================================
# NPC
# =============================================================================


class NPCStats(WorldModel):
    """Combat stats of an NPC."""

    health: int = DEFAULT_NPC_HEALTH
    max_health: int = Field(default=DEFAULT_NPC_HEALTH, ge=1)
    strength: int = DEFAULT_NPC_STRENGTH
    defense: int = DEFAULT_NPC_DEFENSE

    @model_validator(mode="after")
    def clamp_health(self) -> NPCStats:
        self.health = clamp(self.health, 0, self.max_health)
        return self


class ConversationSummary(WorldModel):
    """One exchange between the player and an NPC."""

    action_number: int = Field(ge=0)
    summary: str
    player_asked: list[str] = Field(default_factory=list)
    npc_revealed: list[str] = Field(default_factory=list)
    attitude_change: int | None = None


class NPC(WorldModel):
    """A non-player character.

    Attributes:
        soul_instruction: Behavioral profile for the narrative collaborator;
            opaque to the engine.
        attitude: Disposition toward the player, clamped to [-100, 100].
        waiting_at_home: A companion parked at the player's home; the only
            companion allowed to be away from the player.
        experience_reward: XP granted when defeated (None = derived from stats).
        gold_reward: Gold granted when defeated (None = rolled from stats).
    """

    id: str = Field(min_length=1)
    name: str = "Unknown Stranger"
    description: str = ""
    physical_description: str = ""
    soul_instruction: str = ""
    current_location_id: str = Field(min_length=1)
    home_location_id: str | None = None
    knowledge: list[str] = Field(default_factory=list)
    conversation_history: list[ConversationSummary] = Field(default_factory=list)
    player_name_known: str | None = None
    attitude: int = 0
    is_companion: bool = False
    waiting_at_home: bool = False
    is_animal: bool = False
    inventory: list[WorldItem] = Field(default_factory=list)
    stats: NPCStats = Field(default_factory=NPCStats)
    is_alive: bool = True
    death_description: str | None = None
    burial_location_id: str | None = None
    is_canonical: bool = False
    faction_ids: list[str] = Field(default_factory=list)
    experience_reward: int | None = Field(default=None, ge=0)
    gold_reward: int | None = Field(default=None, ge=0)

    @field_validator("attitude", mode="before")
    @classmethod
    def clamp_attitude(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return clamp(int(value), ATTITUDE_MIN, ATTITUDE_MAX)
        return value

    @model_validator(mode="after")
    def enforce_death(self) -> NPC:
        """A dead NPC has no health and follows no one."""
        if not self.is_alive:
            self.stats.health = 0
            self.is_companion = False
            self.waiting_at_home = False
        if not self.is_companion:
            self.waiting_at_home = False
        return self


# =============================================================================
# Factions & Quests
# =============================================================================


class Faction(WorldModel):
    """A group the player can gain or lose standing with."""

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    leader_npc_id: str | None = None
    member_npc_ids: list[str] = Field(default_factory=list)
    player_reputation: int = 0
    is_canonical: bool = False

    @field_validator("player_reputation", mode="before")
    @classmethod
    def clamp_reputation(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return clamp(int(value), REPUTATION_MIN, REPUTATION_MAX)
        return value


class Quest(WorldModel):
    """A quest given by an NPC.

    ``completed_objectives`` is always a subset of ``objectives``.
    """

    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = ""
    giver_npc_id: str
    status: QuestStatus = QuestStatus.ACTIVE
    objectives: list[str] = Field(default_factory=list)
    completed_objectives: list[str] = Field(default_factory=list)
    rewards: str | None = None

    @model_validator(mode="after")
    def restrict_completed(self) -> Quest:
        known = set(self.objectives)
        self.completed_objectives = [
            o for o in dict.fromkeys(self.completed_objectives) if o in known
        ]
        return self

    @computed_field(description="Whether every objective is done")
    @property
    def all_objectives_complete(self) -> bool:
        return bool(self.objectives) and len(self.completed_objectives) == len(
            set(self.objectives)
        )


# =============================================================================
# Player
# =============================================================================


class PlayerKnowledge(WorldModel):
    """Everything the player knows.

    This is the sole gate for what the map and travel may reveal. The four
    buckets are order-preserving sets; ``skills`` maps a skill name to a
    qualitative level.
    """

    locations: list[str] = Field(default_factory=list)
    npcs: list[str] = Field(default_factory=list)
    lore: list[str] = Field(default_factory=list)
    recipes: list[str] = Field(default_factory=list)
    skills: dict[str, str] = Field(default_factory=dict)

    @field_validator("locations", "npcs", "lore", "recipes")
    @classmethod
    def deduplicate(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    def bucket(self, knowledge_type: KnowledgeType) -> list[str]:
        return getattr(self, KnowledgeType(knowledge_type).value)

    def add(self, knowledge_type: KnowledgeType, value: str) -> bool:
        """Append ``value`` if absent. Returns True when it was added."""
        bucket = self.bucket(knowledge_type)
        if value in bucket:
            return False
        bucket.append(value)
        return True


class BehaviorPatterns(WorldModel):
    """Running tallies of the player's play style."""

    combat: int = 0
    diplomacy: int = 0
    exploration: int = 0
    social: int = 0
    stealth: int = 0
    magic: int = 0


class Player(WorldModel):
    """The single player character.

    ``gold`` never goes below zero and ``health`` stays within
    [0, max_health]. ``companion_ids`` lists living NPCs that follow the
    player.
    """

    name: str | None = None
    physical_description: str = ""
    hidden_backstory: str = ""
    revealed_backstory: list[str] = Field(default_factory=list)
    origin: str = ""
    current_location_id: str = START_LOCATION_ID
    home_location_id: str | None = None
    health: int = DEFAULT_PLAYER_HEALTH
    max_health: int = Field(default=DEFAULT_PLAYER_HEALTH, ge=1)
    strength: int = DEFAULT_PLAYER_STRENGTH
    defense: int = DEFAULT_PLAYER_DEFENSE
    magic: int = DEFAULT_PLAYER_MAGIC
    level: int = Field(default=1, ge=1)
    experience: int = Field(default=0, ge=0)
    gold: int = 0
    inventory: list[WorldItem] = Field(default_factory=list)
    companion_ids: list[str] = Field(default_factory=list)
    knowledge: PlayerKnowledge = Field(default_factory=PlayerKnowledge)
    behavior_patterns: BehaviorPatterns = Field(default_factory=BehaviorPatterns)
    transformations: list[str] = Field(default_factory=list)
    curses: list[str] = Field(default_factory=list)
    blessings: list[str] = Field(default_factory=list)
    married_to_npc_id: str | None = None
    children_npc_ids: list[str] = Field(default_factory=list)

    @field_validator("gold", mode="before")
    @classmethod
    def clamp_gold(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return max(0, int(value))
        return value

    @field_validator("companion_ids")
    @classmethod
    def deduplicate_companions(cls, value: list[str]) -> list[str]:
        return list(dict.fromkeys(value))

    @model_validator(mode="after")
    def clamp_health(self) -> Player:
        self.health = clamp(self.health, 0, self.max_health)
        return self

    def has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self.inventory)


# =============================================================================
# History
# =============================================================================


class WorldEvent(WorldModel):
    """An append-only audit log entry read by the narrative collaborators."""

    id: str = Field(min_length=1)
    action_number: int = Field(ge=0)
    description: str
    type: EventType = EventType.OTHER
    involved_npc_ids: list[str] = Field(default_factory=list)
    location_id: str
    is_significant: bool = False


class ItemsLeftBehind(WorldModel):
    """Items a fallen hero left at a location."""

    model_config = ConfigDict(frozen=True)

    location_id: str
    items: tuple[WorldItem, ...] = ()


class DeceasedHero(WorldModel):
    """Immutable snapshot of a player character at death."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str | None = None
    physical_description: str = ""
    origin: str = ""
    died_at_action: int = Field(ge=0)
    death_description: str
    death_location_id: str
    major_deeds: tuple[str, ...] = ()
    items_left_behind: tuple[ItemsLeftBehind, ...] = ()
    known_by_npc_ids: tuple[str, ...] = ()
    buried_by: str | None = None
    grave_location_id: str | None = None


# =============================================================================
# Combat & Root Aggregate
# =============================================================================


class CombatState(WorldModel):
    """Transient state of an ongoing fight. Exists only while combat is active.

    An exchange resolves the player action and the enemy reply together, so
    ``player_turn`` is only False inside that exchange. Every persisted
    combat state is waiting on the player.
    """

    enemy_npc_id: str = Field(min_length=1)
    player_turn: bool = True
    turn_count: int = Field(default=1, ge=1)
    companions_in_combat: list[str] = Field(default_factory=list)


class WorldState(WorldModel):
    """The root aggregate of all persistent game data.

    Exactly one WorldState is live per process. Engine functions never
    mutate the instance they are given; they return a new one.
    """

    version: int = 1
    action_counter: int = Field(default=0, ge=0, description="Logical clock")
    player: Player = Field(default_factory=Player)
    locations: dict[str, Location] = Field(default_factory=dict)
    npcs: dict[str, NPC] = Field(default_factory=dict)
    factions: dict[str, Faction] = Field(default_factory=dict)
    quests: dict[str, Quest] = Field(default_factory=dict)
    deceased_heroes: list[DeceasedHero] = Field(default_factory=list)
    event_history: list[WorldEvent] = Field(default_factory=list)
    message_log: list[str] = Field(default_factory=list)
    combat_state: CombatState | None = None

    @property
    def current_location(self) -> Location | None:
        """The location the player stands in, if it exists."""
        return self.locations.get(self.player.current_location_id)

    @property
    def in_combat(self) -> bool:
        return self.combat_state is not None

    def npcs_at(self, location_id: str) -> list[NPC]:
        """NPCs whose current location is ``location_id``."""
        return [npc for npc in self.npcs.values() if npc.current_location_id == location_id]

    def find_inconsistencies(self) -> list[str]:
        """Describe every broken cross-entity invariant.

        Returns:
            Human-readable violations; empty when the world is consistent.
        """
        problems: list[str] = []

        for location in self.locations.values():
            expected = {npc.id for npc in self.npcs_at(location.id)}
            actual = set(location.present_npc_ids)
            if expected != actual:
                problems.append(
                    f"location {location.id} lists {sorted(actual)} but hosts {sorted(expected)}"
                )

        for npc in self.npcs.values():
            if not npc.is_alive and npc.stats.health != 0:
                problems.append(f"dead npc {npc.id} has health {npc.stats.health}")
            if npc.is_companion != (npc.id in self.player.companion_ids):
                problems.append(f"npc {npc.id} companion flag disagrees with player")

        for companion_id in self.player.companion_ids:
            companion = self.npcs.get(companion_id)
            if companion is None or not companion.is_alive:
                problems.append(f"companion {companion_id} is missing or dead")
            elif (
                not companion.waiting_at_home
                and companion.current_location_id != self.player.current_location_id
            ):
                problems.append(f"companion {companion_id} is not with the player")

        if self.player.gold < 0:
            problems.append("player gold is negative")
        if not 0 <= self.player.health <= self.player.max_health:
            problems.append("player health out of range")

        if self.combat_state is not None:
            enemy = self.npcs.get(self.combat_state.enemy_npc_id)
            if enemy is None or not enemy.is_alive:
                problems.append("combat targets a missing or dead npc")

        return problems


__all__ = [
    "clamp",
    "WorldModel",
    "Coordinates",
    "ItemEffect",
    "WorldItem",
    "Structure",
    "PlayerNote",
    "Location",
    "NPCStats",
    "ConversationSummary",
    "NPC",
    "Faction",
    "Quest",
    "PlayerKnowledge",
    "BehaviorPatterns",
    "Player",
    "WorldEvent",
    "ItemsLeftBehind",
    "DeceasedHero",
    "CombatState",
    "WorldState",
]
