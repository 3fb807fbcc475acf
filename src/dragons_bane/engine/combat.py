"""Turn-based combat resolver.

Combat is a small state machine over ``WorldState.combat_state``::

    NotInCombat -> InCombat -> {Victory | Defeat | Fled} -> NotInCombat

One call to ``process_combat_action`` runs a full exchange: the player's
action, then (if the enemy still stands and the player did not escape) the
enemy's counter-attack. Results are structured; prose is left to the
narrative layer. Companions present in the fight are recorded but do not
roll damage.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from dragons_bane.core.constants import (
    DAMAGE_VARIANCE,
    DEFEND_DAMAGE_MULTIPLIER,
    DEFENSE_FACTOR,
    FLEE_SUCCESS_CHANCE,
    LEVEL_UP_DEFENSE,
    LEVEL_UP_MAX_HEALTH,
    LEVEL_UP_STRENGTH,
    XP_PER_LEVEL,
)
from dragons_bane.core.exceptions import CombatError
from dragons_bane.core.logging import get_logger
from dragons_bane.engine.random_source import RandomSource
from dragons_bane.engine.reducer import append_event
from dragons_bane.models.enums import CombatAction, EventType, ItemType
from dragons_bane.models.world import NPC, CombatState, Player, WorldState


logger = get_logger(__name__)


@dataclass
class CombatResult:
    """Mechanical outcome of one combat exchange.

    Attributes:
        state: The world after the exchange.
        messages: Short mechanical descriptions, in order.
        combat_ended: Whether combat is over.
        player_victory: The enemy fell.
        player_defeated: The player dropped to 0 health.
        fled: The player escaped.
        experience_gained: XP awarded on victory.
        gold_gained: Gold awarded on victory.
        leveled_up: The victory pushed the player to the next level.
    """

    state: WorldState
    messages: list[str] = field(default_factory=list)
    combat_ended: bool = False
    player_victory: bool = False
    player_defeated: bool = False
    fled: bool = False
    experience_gained: int = 0
    gold_gained: int = 0
    leveled_up: bool = False


def calculate_damage(strength: int, defense: int, rng: RandomSource) -> int:
    """Damage of one hit: ``max(1, floor(strength - 0.5*defense + r))``, r in [-3, 3]."""
    roll = rng.uniform(-DAMAGE_VARIANCE, DAMAGE_VARIANCE)
    return max(1, math.floor(strength - DEFENSE_FACTOR * defense + roll))


def initiate_combat(state: WorldState, npc_id: str) -> WorldState:
    """Start a fight with an NPC standing at the player's location.

    Args:
        state: The current world.
        npc_id: The NPC to fight.

    Returns:
        A new world with an active combat state.

    Raises:
        CombatError: If combat is already active, or the NPC is missing,
            dead, elsewhere, or one of the player's companions.
    """
    if state.combat_state is not None:
        raise CombatError(
            "Combat is already in progress",
            enemy_npc_id=state.combat_state.enemy_npc_id,
            turn_count=state.combat_state.turn_count,
        )

    npc = state.npcs.get(npc_id)
    if npc is None:
        raise CombatError(f"NPC not found: {npc_id}", enemy_npc_id=npc_id)
    if not npc.is_alive:
        raise CombatError(f"{npc.name} is already dead", enemy_npc_id=npc_id)
    if npc.current_location_id != state.player.current_location_id:
        raise CombatError(f"{npc.name} is not here", enemy_npc_id=npc_id)
    if npc.id in state.player.companion_ids:
        raise CombatError(f"{npc.name} is your companion", enemy_npc_id=npc_id)

    here = state.player.current_location_id
    companions = [
        companion.id
        for companion in (state.npcs.get(i) for i in state.player.companion_ids)
        if companion is not None
        and companion.is_alive
        and companion.current_location_id == here
    ]

    new_state = state.model_copy(deep=True)
    new_state.combat_state = CombatState(
        enemy_npc_id=npc.id,
        player_turn=True,
        turn_count=1,
        companions_in_combat=companions,
    )
    logger.info("Combat started", enemy_npc_id=npc.id, companions=companions)
    return new_state


def process_combat_action(
    state: WorldState,
    action: CombatAction | str,
    rng: RandomSource,
) -> CombatResult:
    """Resolve one player action and the enemy's response.

    Args:
        state: World with an active combat state.
        action: attack, defend, flee or usePotion.
        rng: Random source for damage, flee and gold rolls.

    Returns:
        CombatResult holding the new world and the outcome flags.

    Raises:
        CombatError: If no combat is active or the action is unknown.
    """
    if state.combat_state is None:
        raise CombatError("Not in combat")
    try:
        action = CombatAction(action)
    except ValueError as exc:
        raise CombatError(
            f"Unknown combat action: {action}",
            enemy_npc_id=state.combat_state.enemy_npc_id,
        ) from exc

    new_state = state.model_copy(deep=True)
    combat: CombatState = new_state.combat_state  # type: ignore[assignment]
    result = CombatResult(state=new_state)

    enemy = new_state.npcs.get(combat.enemy_npc_id)
    if enemy is None or not enemy.is_alive:
        new_state.combat_state = None
        result.messages.append("Enemy is no longer a threat")
        result.combat_ended = True
        result.player_victory = True
        return result

    player = new_state.player
    defending = False

    if action == CombatAction.ATTACK:
        damage = calculate_damage(player.strength, enemy.stats.defense, rng)
        enemy.stats.health = max(0, enemy.stats.health - damage)
        result.messages.append(f"You deal {damage} damage to {enemy.name}!")

    elif action == CombatAction.DEFEND:
        defending = True
        result.messages.append("You take a defensive stance!")

    elif action == CombatAction.FLEE:
        if rng.random() > FLEE_SUCCESS_CHANCE:
            new_state.combat_state = None
            result.messages.append("You managed to escape!")
            result.combat_ended = True
            result.fled = True
            logger.info("Player fled combat", enemy_npc_id=enemy.id)
            return result
        result.messages.append("You failed to escape!")

    elif action == CombatAction.USE_POTION:
        _drink_potion(player, result.messages)

    if enemy.stats.health <= 0:
        _resolve_victory(new_state, enemy, rng, result)
        return result

    # Enemy turn
    combat.player_turn = False
    multiplier = DEFEND_DAMAGE_MULTIPLIER if defending else 1
    enemy_damage = math.floor(calculate_damage(enemy.stats.strength, player.defense, rng) * multiplier)
    player.health = max(0, player.health - enemy_damage)
    result.messages.append(f"{enemy.name} deals {enemy_damage} damage to you!")

    if player.health <= 0:
        new_state.combat_state = None
        result.messages.append("You have been defeated...")
        result.combat_ended = True
        result.player_defeated = True
        logger.info("Player defeated", enemy_npc_id=enemy.id, turn_count=combat.turn_count)
        return result

    combat.turn_count += 1
    combat.player_turn = True
    return result


def _drink_potion(player: Player, messages: list[str]) -> None:
    for index, item in enumerate(player.inventory):
        if item.type == ItemType.POTION:
            break
    else:
        messages.append("You don't have any potions!")
        return

    potion = player.inventory.pop(index)
    if potion.effect is not None and potion.effect.stat.lower() == "health":
        player.health = max(0, min(player.max_health, player.health + potion.effect.value))
        messages.append(f"You used {potion.name} and restored {potion.effect.value} health!")
    else:
        messages.append(f"You used {potion.name}, but nothing happened.")


def _resolve_victory(
    state: WorldState,
    enemy: NPC,
    rng: RandomSource,
    result: CombatResult,
) -> None:
    player = state.player
    result.messages.append(f"You defeated {enemy.name}!")

    if enemy.experience_reward is not None:
        experience = enemy.experience_reward
    else:
        experience = math.floor(10 + enemy.stats.max_health * 0.5 + enemy.stats.strength * 2)
    if enemy.gold_reward is not None:
        gold = enemy.gold_reward
    else:
        gold = math.floor(rng.random() * 20 + 5 + enemy.stats.strength)

    result.messages.append(f"Gained {experience} XP and {gold} gold!")
    player.experience += experience
    player.gold += gold
    player.behavior_patterns.combat += 1

    enemy.is_alive = False
    enemy.stats.health = 0
    enemy.death_description = "Slain in combat by the player"

    xp_needed = player.level * XP_PER_LEVEL
    if player.experience >= xp_needed:
        player.level += 1
        player.experience -= xp_needed
        player.max_health += LEVEL_UP_MAX_HEALTH
        player.health = player.max_health
        player.strength += LEVEL_UP_STRENGTH
        player.defense += LEVEL_UP_DEFENSE
        result.messages.append(f"LEVEL UP! You are now level {player.level}!")
        result.leveled_up = True

    append_event(
        state,
        f"Defeated {enemy.name} in combat",
        EventType.COMBAT,
        involved_npc_ids=[enemy.id],
        is_significant=True,
    )

    state.combat_state = None
    result.combat_ended = True
    result.player_victory = True
    result.experience_gained = experience
    result.gold_gained = gold
    logger.info(
        "Combat won",
        enemy_npc_id=enemy.id,
        experience=experience,
        gold=gold,
        leveled_up=result.leveled_up,
    )


__all__ = [
    "CombatResult",
    "calculate_damage",
    "initiate_combat",
    "process_combat_action",
]
