"""Play-style tracking.

Keeps running tallies of how the player tends to act (fighting, talking,
sneaking, ...) so collaborators can offer story hooks that fit.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from dragons_bane.core.exceptions import StateChangeError
from dragons_bane.models.changes import (
    AddItem,
    AddKnowledge,
    BaseChange,
    CreateLocation,
    MovePlayer,
    UpdateNpcAttitude,
    parse_state_change,
)
from dragons_bane.models.enums import ItemType, KnowledgeType
from dragons_bane.models.world import BehaviorPatterns, WorldState


# pattern -> (keywords, points per keyword match)
KEYWORDS: dict[str, tuple[tuple[str, ...], int]] = {
    "combat": (("attack", "fight", "kill", "strike", "battle", "slay"), 1),
    "diplomacy": (
        ("negotiate", "persuade", "convince", "bargain", "compromise", "mediate", "diplomacy", "peace"),
        2,
    ),
    "social": (("talk to", "speak with", "chat", "help", "befriend", "greet"), 1),
    "exploration": (
        ("explore", "search", "investigate", "discover", "travel", "journey", "venture"),
        1,
    ),
    "stealth": (
        (
            "sneak", "hide", "steal", "pickpocket", "shadow",
            "creep", "stealthy", "quietly", "unseen", "covert",
        ),
        2,
    ),
    "magic": (
        ("cast", "spell", "magic", "enchant", "arcane", "conjure", "summon", "mystic", "sorcery"),
        2,
    ),
}

DOMINANCE_FACTOR = 1.5
DOMINANCE_MINIMUM = 3


def _parsed(changes: Iterable[BaseChange | Mapping[str, Any]]) -> list[BaseChange]:
    parsed = []
    for raw in changes:
        try:
            parsed.append(parse_state_change(raw))
        except StateChangeError:
            continue
    return parsed


def score_action(
    action: str,
    changes: Iterable[BaseChange | Mapping[str, Any]] = (),
    initiates_combat: str | None = None,
) -> dict[str, int]:
    """Points each pattern earns for one action."""
    text = action.lower()
    scores = dict.fromkeys(KEYWORDS, 0)

    for pattern, (keywords, points) in KEYWORDS.items():
        if any(keyword in text for keyword in keywords):
            scores[pattern] += points

    if initiates_combat:
        scores["combat"] += 2

    parsed = _parsed(changes)
    if any(
        isinstance(c, UpdateNpcAttitude) and ((c.change or 0) > 0 or (c.attitude or 0) > 0)
        for c in parsed
    ):
        scores["social"] += 1
    if any(
        isinstance(c, (MovePlayer, CreateLocation))
        or (isinstance(c, AddKnowledge) and c.knowledge_type == KnowledgeType.LOCATIONS)
        for c in parsed
    ):
        scores["exploration"] += 1
    if any(isinstance(c, AddItem) and c.item.type == ItemType.MAGIC for c in parsed):
        scores["magic"] += 1

    return scores


def update_behavior_patterns(
    state: WorldState,
    action: str,
    changes: Iterable[BaseChange | Mapping[str, Any]] = (),
    initiates_combat: str | None = None,
) -> WorldState:
    """Return a new world with the player's tallies updated for this action."""
    new_state = state.model_copy(deep=True)
    patterns = new_state.player.behavior_patterns
    for pattern, points in score_action(action, changes, initiates_combat).items():
        setattr(patterns, pattern, getattr(patterns, pattern) + points)
    return new_state


def dominant_patterns(patterns: BehaviorPatterns) -> list[str]:
    """Patterns well above the player's average, highest first.

    A pattern is dominant when it exceeds 1.5x the mean and has more than
    three points.
    """
    values = patterns.model_dump()
    mean = sum(values.values()) / len(values)
    threshold = mean * DOMINANCE_FACTOR
    dominant = [
        (name, value)
        for name, value in values.items()
        if value > threshold and value > DOMINANCE_MINIMUM
    ]
    return [name for name, _ in sorted(dominant, key=lambda pair: pair[1], reverse=True)]


__all__ = ["score_action", "update_behavior_patterns", "dominant_patterns"]
