"""Journal projection.

Groups the player's quests by outcome and collects what they have learned
and who came before them. Pure state, no prose.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from dragons_bane.models.enums import QuestStatus
from dragons_bane.models.world import DeceasedHero, Quest, WorldState


FAILED_STATUSES = frozenset({QuestStatus.FAILED, QuestStatus.IMPOSSIBLE})


@dataclass(frozen=True)
class JournalProjection:
    """What the player's journal shows.

    Attributes:
        active_quests: Quests still in progress.
        completed_quests: Quests finished successfully.
        failed_quests: Quests failed or made impossible.
        known_lore: Lore the current character has learned.
        deceased_heroes: Earlier characters, oldest first.
    """

    active_quests: tuple[Quest, ...] = ()
    completed_quests: tuple[Quest, ...] = ()
    failed_quests: tuple[Quest, ...] = ()
    known_lore: tuple[str, ...] = ()
    deceased_heroes: tuple[DeceasedHero, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        """Presentation payload with camelCase keys."""
        return {
            "activeQuests": [
                {
                    "id": quest.id,
                    "title": quest.title,
                    "description": quest.description,
                    "giverNpcId": quest.giver_npc_id,
                    "objectives": list(quest.objectives),
                    "completedObjectives": list(quest.completed_objectives),
                }
                for quest in self.active_quests
            ],
            "completedQuests": [
                {
                    "id": quest.id,
                    "title": quest.title,
                    "description": quest.description,
                    "giverNpcId": quest.giver_npc_id,
                    "rewards": quest.rewards,
                }
                for quest in self.completed_quests
            ],
            "failedQuests": [
                {
                    "id": quest.id,
                    "title": quest.title,
                    "description": quest.description,
                    "status": quest.status.value,
                }
                for quest in self.failed_quests
            ],
            "knownLore": list(self.known_lore),
            "deceasedHeroes": [
                {
                    "id": hero.id,
                    "name": hero.name,
                    "origin": hero.origin,
                    "deathDescription": hero.death_description,
                    "deathLocationId": hero.death_location_id,
                    "majorDeeds": list(hero.major_deeds),
                    "diedAtAction": hero.died_at_action,
                }
                for hero in self.deceased_heroes
            ],
        }


def project_journal(state: WorldState) -> JournalProjection:
    """Project the journal of the current character.

    Quests keep their insertion order within each group.
    """
    quests = [quest.model_copy(deep=True) for quest in state.quests.values()]
    return JournalProjection(
        active_quests=tuple(q for q in quests if q.status == QuestStatus.ACTIVE),
        completed_quests=tuple(q for q in quests if q.status == QuestStatus.COMPLETED),
        failed_quests=tuple(q for q in quests if q.status in FAILED_STATUSES),
        known_lore=tuple(state.player.knowledge.lore),
        deceased_heroes=tuple(state.deceased_heroes),
    )


__all__ = ["JournalProjection", "project_journal"]
