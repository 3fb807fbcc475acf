"""State change instructions emitted by narrative collaborators.

NEURO-SYMBOLIC PRINCIPLE:
Collaborators cannot mutate the world. They emit ``{type, data}`` requests
which are parsed here into a closed, discriminated union of typed changes
and then validated and applied by the reducer.

Every change flattens its ``data`` payload into its own fields, so
``{"type": "move_npc", "data": {"npcId": "npc_a", "locationId": "loc_b"}}``
parses into ``MoveNpc(npc_id="npc_a", location_id="loc_b")``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import Field, TypeAdapter, ValidationError, field_validator, model_validator

from dragons_bane.core.exceptions import StateChangeError
from dragons_bane.models.enums import KnowledgeType, QuestStatus
from dragons_bane.models.world import (
    ConversationSummary,
    Coordinates,
    ItemEffect,
    WorldModel,
)


NonEmptyStr = Annotated[str, Field(min_length=1)]
NonNegativeInt = Annotated[int, Field(ge=0)]


# =============================================================================
# Partial Entity Drafts
# =============================================================================


class Draft(WorldModel):
    """Partial entity description. Builders fill in whatever is missing."""


class ItemDraft(Draft):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    type: str | None = None
    effect: ItemEffect | None = None
    value: int | None = None


class StatsDraft(Draft):
    health: int | None = None
    max_health: int | None = None
    strength: int | None = None
    defense: int | None = None


class NPCDraft(Draft):
    """Partial NPC. Companion status and liveness cannot be set on creation."""

    id: str | None = None
    name: str | None = None
    description: str | None = None
    physical_description: str | None = None
    soul_instruction: str | None = None
    current_location_id: str | None = None
    home_location_id: str | None = None
    knowledge: list[str] = Field(default_factory=list)
    conversation_history: list[ConversationSummary] = Field(default_factory=list)
    player_name_known: str | None = None
    attitude: int | None = None
    is_animal: bool = False
    inventory: list[ItemDraft] = Field(default_factory=list)
    stats: StatsDraft | None = None
    faction_ids: list[str] = Field(default_factory=list)
    experience_reward: int | None = None
    gold_reward: int | None = None


class LocationDraft(Draft):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    image_prompt: str | None = None
    coordinates: Coordinates | None = None
    terrain: str | None = None
    danger_level: int | None = None
    items: list[ItemDraft] = Field(default_factory=list)


class StructureDraft(Draft):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    type: str | None = None
    built_at_action: int | None = None
    owner_id: str | None = None


class QuestDraft(Draft):
    id: str | None = None
    title: NonEmptyStr
    description: str = ""
    giver_npc_id: NonEmptyStr
    objectives: list[NonEmptyStr] = Field(min_length=1)
    rewards: str | None = None


class PlayerDraft(Draft):
    """A new character as the character creator describes them.

    Only the name is required. Stats fall back to the starting defaults.
    """

    name: str = Field(min_length=2, max_length=50)
    physical_description: str | None = None
    hidden_backstory: str | None = None
    origin: str | None = None
    health: int | None = None
    max_health: int | None = Field(default=None, ge=1)
    strength: int | None = None
    defense: int | None = None
    magic: int | None = None
    gold: NonNegativeInt | None = None
    home_location_id: str | None = None
    inventory: list[ItemDraft] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class NpcKnowledgeUpdate(WorldModel):
    """Facts an NPC learns about a newly arrived character."""

    npc_id: NonEmptyStr
    new_knowledge: list[str] = Field(default_factory=list)


class RevealedSkill(WorldModel):
    name: NonEmptyStr
    level: str = "remembered"


# =============================================================================
# State Changes
# =============================================================================


class BaseChange(WorldModel):
    """Common behavior of every state change."""

    type: str

    def to_wire(self) -> dict[str, Any]:
        """Render as the ``{type, data}`` document collaborators exchange."""
        return {
            "type": self.type,
            "data": self.model_dump(
                mode="json", by_alias=True, exclude={"type"}, exclude_none=True
            ),
        }


class MovePlayer(BaseChange):
    type: Literal["move_player"] = "move_player"
    location_id: NonEmptyStr


class AddItem(BaseChange):
    """Add an item to the player (default), a location or an NPC."""

    type: Literal["add_item"] = "add_item"
    item: ItemDraft
    to_location: str | None = None
    to_npc: str | None = None

    @model_validator(mode="after")
    def single_target(self) -> AddItem:
        if self.to_location and self.to_npc:
            raise ValueError("add_item accepts toLocation or toNpc, not both")
        return self


class RemoveItem(BaseChange):
    type: Literal["remove_item"] = "remove_item"
    item_id: NonEmptyStr
    from_location: str | None = None
    from_npc: str | None = None

    @model_validator(mode="after")
    def single_source(self) -> RemoveItem:
        if self.from_location and self.from_npc:
            raise ValueError("remove_item accepts fromLocation or fromNpc, not both")
        return self


class GoldChange(BaseChange):
    type: Literal["gold_change"] = "gold_change"
    amount: int


class PlayerDamage(BaseChange):
    type: Literal["player_damage"] = "player_damage"
    amount: NonNegativeInt


class PlayerHeal(BaseChange):
    type: Literal["player_heal"] = "player_heal"
    amount: NonNegativeInt


class AddKnowledge(BaseChange):
    """Either ``{knowledgeType, value}`` or ``{skill, level}``."""

    type: Literal["add_knowledge"] = "add_knowledge"
    knowledge_type: KnowledgeType | None = None
    value: str | None = None
    skill: str | None = None
    level: str = "novice"

    @model_validator(mode="after")
    def knowledge_or_skill(self) -> AddKnowledge:
        if self.skill:
            return self
        if self.knowledge_type is None or not self.value:
            raise ValueError("add_knowledge needs knowledgeType and value, or skill")
        return self


class MoveNpc(BaseChange):
    type: Literal["move_npc"] = "move_npc"
    npc_id: NonEmptyStr
    location_id: NonEmptyStr


class UpdateNpcAttitude(BaseChange):
    """Relative ``change`` or absolute ``attitude``; absolute wins."""

    type: Literal["update_npc_attitude"] = "update_npc_attitude"
    npc_id: NonEmptyStr
    change: int | None = None
    attitude: int | None = None

    @model_validator(mode="after")
    def change_or_attitude(self) -> UpdateNpcAttitude:
        if self.change is None and self.attitude is None:
            raise ValueError("update_npc_attitude needs change or attitude")
        return self


class NpcDeath(BaseChange):
    type: Literal["npc_death"] = "npc_death"
    npc_id: NonEmptyStr
    death_description: str = "met an untimely end"


class AddCompanion(BaseChange):
    type: Literal["add_companion"] = "add_companion"
    npc_id: NonEmptyStr


class RemoveCompanion(BaseChange):
    type: Literal["remove_companion"] = "remove_companion"
    npc_id: NonEmptyStr


class CreateNpc(BaseChange):
    type: Literal["create_npc"] = "create_npc"
    npc: NPCDraft


class CreateLocation(BaseChange):
    """Create a location, optionally placed one step from another."""

    type: Literal["create_location"] = "create_location"
    location: LocationDraft
    direction: str | None = None
    from_location_id: str | None = None


class UpdateLocation(BaseChange):
    """Merge ``updates`` into a location. Identity and position are fixed."""

    type: Literal["update_location"] = "update_location"
    location_id: NonEmptyStr
    updates: dict[str, Any]


class CreateStructure(BaseChange):
    type: Literal["create_structure"] = "create_structure"
    structure: StructureDraft
    location_id: str | None = None


class DestroyStructure(BaseChange):
    type: Literal["destroy_structure"] = "destroy_structure"
    structure_id: NonEmptyStr
    location_id: str | None = None


class AddQuest(BaseChange):
    """Accepts a nested ``quest`` or the quest fields inline."""

    type: Literal["add_quest"] = "add_quest"
    quest: QuestDraft

    @model_validator(mode="before")
    @classmethod
    def fold_inline_fields(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and "quest" not in data:
            inline = {k: v for k, v in data.items() if k != "type"}
            return {"type": data.get("type", "add_quest"), "quest": inline}
        return data


class UpdateQuest(BaseChange):
    type: Literal["update_quest"] = "update_quest"
    quest_id: NonEmptyStr
    status: QuestStatus | None = None
    completed_objectives: list[str] = Field(default_factory=list)


class UpdateFaction(BaseChange):
    type: Literal["update_faction"] = "update_faction"
    faction_id: NonEmptyStr
    reputation_change: int | None = None
    reputation: int | None = None

    @model_validator(mode="after")
    def change_or_reputation(self) -> UpdateFaction:
        if self.reputation_change is None and self.reputation is None:
            raise ValueError("update_faction needs reputationChange or reputation")
        return self


class ClaimHome(BaseChange):
    type: Literal["claim_home"] = "claim_home"
    location_id: str | None = None


class StoreItemAtHome(BaseChange):
    type: Literal["store_item_at_home"] = "store_item_at_home"
    item_id: NonEmptyStr


class RetrieveItemFromHome(BaseChange):
    type: Literal["retrieve_item_from_home"] = "retrieve_item_from_home"
    item_id: NonEmptyStr


class CompanionWaitAtHome(BaseChange):
    type: Literal["companion_wait_at_home"] = "companion_wait_at_home"
    npc_id: NonEmptyStr


class CompanionRejoin(BaseChange):
    type: Literal["companion_rejoin"] = "companion_rejoin"
    npc_id: NonEmptyStr


class RevealFlashback(BaseChange):
    type: Literal["reveal_flashback"] = "reveal_flashback"
    flashback_content: NonEmptyStr
    revealed_skill: RevealedSkill | None = None


class PlayerTransform(BaseChange):
    type: Literal["player_transform"] = "player_transform"
    transformation: NonEmptyStr


class AddCurse(BaseChange):
    type: Literal["add_curse"] = "add_curse"
    curse: NonEmptyStr


class AddBlessing(BaseChange):
    type: Literal["add_blessing"] = "add_blessing"
    blessing: NonEmptyStr


StateChange = Annotated[
    Union[
        MovePlayer,
        AddItem,
        RemoveItem,
        GoldChange,
        PlayerDamage,
        PlayerHeal,
        AddKnowledge,
        MoveNpc,
        UpdateNpcAttitude,
        NpcDeath,
        AddCompanion,
        RemoveCompanion,
        CreateNpc,
        CreateLocation,
        UpdateLocation,
        CreateStructure,
        DestroyStructure,
        AddQuest,
        UpdateQuest,
        UpdateFaction,
        ClaimHome,
        StoreItemAtHome,
        RetrieveItemFromHome,
        CompanionWaitAtHome,
        CompanionRejoin,
        RevealFlashback,
        PlayerTransform,
        AddCurse,
        AddBlessing,
    ],
    Field(discriminator="type"),
]

CHANGE_MODELS: dict[str, type[BaseChange]] = {
    model.model_fields["type"].default: model
    for model in get_args(get_args(StateChange)[0])
}
"""Change kind -> payload model."""

CHANGE_TYPES: frozenset[str] = frozenset(CHANGE_MODELS)

_state_change_adapter: TypeAdapter[StateChange] = TypeAdapter(StateChange)


def parse_state_change(raw: BaseChange | Mapping[str, Any]) -> BaseChange:
    """Parse one ``{type, data}`` document into a typed change.

    Args:
        raw: A wire document, or an already-typed change (returned as is).

    Returns:
        The typed change.

    Raises:
        StateChangeError: If the kind is unknown or the payload is malformed.
    """
    if isinstance(raw, BaseChange):
        return raw
    if not isinstance(raw, Mapping):
        raise StateChangeError(
            "State change must be a mapping",
            details={"received": type(raw).__name__},
        )

    change_type = raw.get("type")
    if change_type not in CHANGE_TYPES:
        raise StateChangeError(
            f"Unknown state change type: {change_type}",
            change_type=str(change_type),
            details={"reason": "unknown_type"},
        )

    if "data" in raw:
        data = raw["data"] or {}
    else:
        data = {key: value for key, value in raw.items() if key != "type"}
    if not isinstance(data, Mapping):
        raise StateChangeError(
            f"{change_type}: data must be an object",
            change_type=change_type,
            details={"reason": "malformed"},
        )

    try:
        return _state_change_adapter.validate_python({**data, "type": change_type})
    except ValidationError as exc:
        raise StateChangeError(
            f"{change_type}: invalid data",
            change_type=change_type,
            details={"reason": "malformed", "errors": exc.errors(include_url=False)},
        ) from exc


__all__ = [
    "Draft",
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
]
