"""Typed world model for Dragon's Bane.

The world is a single ``WorldState`` aggregate. Collaborators describe
mutations as ``StateChange`` documents; builders in ``factories`` turn
partial drafts into complete entities.
"""

from __future__ import annotations

from dragons_bane.models.changes import (
    CHANGE_MODELS,
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
    ItemDraft,
    LocationDraft,
    MoveNpc,
    MovePlayer,
    NPCDraft,
    NpcDeath,
    NpcKnowledgeUpdate,
    PlayerDamage,
    PlayerDraft,
    PlayerHeal,
    PlayerTransform,
    QuestDraft,
    RemoveCompanion,
    RemoveItem,
    RetrieveItemFromHome,
    RevealedSkill,
    RevealFlashback,
    StateChange,
    StatsDraft,
    StoreItemAtHome,
    StructureDraft,
    UpdateFaction,
    UpdateLocation,
    UpdateNpcAttitude,
    UpdateQuest,
    parse_state_change,
)
from dragons_bane.models.enums import (
    CombatAction,
    EncounterType,
    EventType,
    ItemType,
    KnowledgeType,
    QuestStatus,
    StructureType,
    SuggestedActionType,
    Terrain,
)
from dragons_bane.models.factories import (
    build_item,
    build_location,
    build_npc,
    build_player,
    build_quest,
    build_structure,
    new_id,
    step_toward,
)
from dragons_bane.models.world import (
    NPC,
    BehaviorPatterns,
    CombatState,
    ConversationSummary,
    Coordinates,
    DeceasedHero,
    Faction,
    ItemEffect,
    ItemsLeftBehind,
    Location,
    NPCStats,
    Player,
    PlayerKnowledge,
    PlayerNote,
    Quest,
    Structure,
    WorldEvent,
    WorldItem,
    WorldModel,
    WorldState,
    clamp,
)


__all__ = [
    # Enums
    "Terrain",
    "ItemType",
    "StructureType",
    "QuestStatus",
    "EventType",
    "KnowledgeType",
    "CombatAction",
    "EncounterType",
    "SuggestedActionType",
    # World
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
    # Changes
    "ItemDraft",
    "StatsDraft",
    "NPCDraft",
    "LocationDraft",
    "StructureDraft",
    "QuestDraft",
    "PlayerDraft",
    "NpcKnowledgeUpdate",
    "RevealedSkill",
    "BaseChange",
    "MovePlayer",
    "AddItem",
    "RemoveItem",
    "GoldChange",
    "PlayerDamage",
    "PlayerHeal",
    "AddKnowledge",
    "MoveNpc",
    "UpdateNpcAttitude",
    "NpcDeath",
    "AddCompanion",
    "RemoveCompanion",
    "CreateNpc",
    "CreateLocation",
    "UpdateLocation",
    "CreateStructure",
    "DestroyStructure",
    "AddQuest",
    "UpdateQuest",
    "UpdateFaction",
    "ClaimHome",
    "StoreItemAtHome",
    "RetrieveItemFromHome",
    "CompanionWaitAtHome",
    "CompanionRejoin",
    "RevealFlashback",
    "PlayerTransform",
    "AddCurse",
    "AddBlessing",
    "StateChange",
    "CHANGE_MODELS",
    "CHANGE_TYPES",
    "parse_state_change",
    # Factories
    "new_id",
    "step_toward",
    "build_item",
    "build_npc",
    "build_player",
    "build_location",
    "build_structure",
    "build_quest",
]
