"""Enumeration types for the Dragon's Bane world model.

String enums so the persisted world document stays readable and the
external collaborators can emit plain strings.
"""

from __future__ import annotations

from enum import StrEnum


class Terrain(StrEnum):
    """Terrain of a location. Drives travel risk."""

    VILLAGE = "village"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    PLAINS = "plains"
    WATER = "water"
    CAVE = "cave"
    DUNGEON = "dungeon"
    ROAD = "road"
    SWAMP = "swamp"
    DESERT = "desert"


class ItemType(StrEnum):
    """Category of a world item."""

    WEAPON = "weapon"
    ARMOR = "armor"
    POTION = "potion"
    FOOD = "food"
    KEY = "key"
    MISC = "misc"
    MATERIAL = "material"
    BOOK = "book"
    MAGIC = "magic"


class StructureType(StrEnum):
    """Things the player or NPCs can build at a location."""

    CAMP = "camp"
    SHELTER = "shelter"
    HOUSE = "house"
    FORT = "fort"
    TRAP = "trap"
    MARKER = "marker"
    GRAVE = "grave"


class QuestStatus(StrEnum):
    """Lifecycle of a quest."""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"
    IMPOSSIBLE = "impossible"


class EventType(StrEnum):
    """Category of a world event in the audit log."""

    COMBAT = "combat"
    DIALOGUE = "dialogue"
    DISCOVERY = "discovery"
    DEATH = "death"
    QUEST = "quest"
    RELATIONSHIP = "relationship"
    FACTION = "faction"
    BUILD = "build"
    CRAFT = "craft"
    OTHER = "other"


class KnowledgeType(StrEnum):
    """Set-valued buckets of player knowledge."""

    LOCATIONS = "locations"
    NPCS = "npcs"
    LORE = "lore"
    RECIPES = "recipes"


class CombatAction(StrEnum):
    """Actions available to the player on their combat turn."""

    ATTACK = "attack"
    DEFEND = "defend"
    FLEE = "flee"
    USE_POTION = "usePotion"


class EncounterType(StrEnum):
    """Classification of a travel encounter."""

    COMBAT = "combat"
    DISCOVERY = "discovery"
    NPC_MEETING = "npc_meeting"
    ENVIRONMENTAL = "environmental"
    NONE = "none"


class SuggestedActionType(StrEnum):
    """Kinds of follow-up actions offered by the narrator."""

    MOVE = "move"
    TALK = "talk"
    EXAMINE = "examine"
    USE = "use"
    ATTACK = "attack"
    CRAFT = "craft"
    BUILD = "build"
    TRAVEL = "travel"
    OTHER = "other"


__all__ = [
    "Terrain",
    "ItemType",
    "StructureType",
    "QuestStatus",
    "EventType",
    "KnowledgeType",
    "CombatAction",
    "EncounterType",
    "SuggestedActionType",
]
