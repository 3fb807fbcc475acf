"""World service: the single writer of the live world.

``WorldService`` owns the one live ``WorldState`` of the process. Every
mutation runs as read -> transform -> persist under one re-entrant lock,
so concurrent requests are serialized and a reader never observes a
half-applied turn. The engine functions it calls are pure; the service is
the only place where a new state becomes the live one.

Typical turn:

    >>> service = WorldService(WorldStore("data/dragons_bane.db"))
    >>> outcome = service.apply_action("I greet Pip", resolution)
    >>> if outcome.simulate_location_id:
    ...     service.simulate(outcome.simulate_location_id, offscreen_changes)
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError

from dragons_bane.core.config import Settings, get_settings
from dragons_bane.core.constants import ATTITUDE_MAX, ATTITUDE_MIN
from dragons_bane.core.exceptions import (
    CombatError,
    InteractionError,
    InvalidGameStateError,
    PersistenceError,
    ValidationError,
)
from dragons_bane.core.logging import (
    bind_context,
    clear_context,
    configure_from_settings,
    get_logger,
)
from dragons_bane.engine.behavior import dominant_patterns, update_behavior_patterns
from dragons_bane.engine.combat import CombatResult, initiate_combat, process_combat_action
from dragons_bane.engine.death import handle_player_death
from dragons_bane.engine.journal import JournalProjection, project_journal
from dragons_bane.engine.knowledge import validate_knowledge
from dragons_bane.engine.map import MapProjection, project_map
from dragons_bane.engine.random_source import RandomSource, SeededRandom
from dragons_bane.engine.reducer import ReductionResult, reduce
from dragons_bane.engine.simulation import apply_offscreen_changes, should_simulate
from dragons_bane.engine.travel import EncounterClassifier, TravelResult, resolve_travel
from dragons_bane.models.changes import (
    BaseChange,
    NpcKnowledgeUpdate,
    PlayerDraft,
    RevealFlashback,
)
from dragons_bane.models.enums import CombatAction, KnowledgeType, SuggestedActionType
from dragons_bane.models.factories import build_player
from dragons_bane.models.world import (
    ConversationSummary,
    WorldEvent,
    WorldModel,
    WorldState,
    clamp,
)
from dragons_bane.storage.database import WorldStore
from dragons_bane.world.seed import create_seed_world


logger = get_logger(__name__)


# =============================================================================
# Collaborator Contracts
# =============================================================================


class SuggestedAction(WorldModel):
    """A follow-up the narrator offers the player."""

    label: str
    type: SuggestedActionType = SuggestedActionType.OTHER
    target_id: str | None = None


class ActionResolution(WorldModel):
    """What the narrative collaborator decided a player action does.

    Attributes:
        narrative: Prose shown to the player. The engine ignores it.
        state_changes: ``{type, data}`` documents, applied in order.
        suggested_actions: Follow-ups for the presentation layer.
        initiates_combat: NPC the action picks a fight with.
        reveals_flashback: Backstory fragment the action uncovered.
        quest_updates: ``update_quest`` payloads, applied after the changes.
    """

    narrative: str = ""
    state_changes: list[dict[str, Any]] = Field(default_factory=list)
    suggested_actions: list[SuggestedAction] = Field(default_factory=list)
    initiates_combat: str | None = None
    reveals_flashback: str | None = None
    quest_updates: list[dict[str, Any]] = Field(default_factory=list)

    def all_changes(self) -> list[BaseChange | Mapping[str, Any]]:
        """State changes, then quest updates, then the flashback."""
        changes: list[BaseChange | Mapping[str, Any]] = list(self.state_changes)
        changes.extend({"type": "update_quest", "data": update} for update in self.quest_updates)
        if self.reveals_flashback:
            changes.append(RevealFlashback(flashback_content=self.reveals_flashback))
        return changes


@dataclass
class TurnOutcome:
    """Result of one resolved player action.

    Attributes:
        state: Snapshot of the world after the turn.
        applied: Changes the reducer applied.
        warnings: Changes skipped, and a combat that could not start.
        combat_started: The action put the player in combat.
        simulate_location_id: The player entered a location whose
            off-screen life should be simulated before it is described.
        suggested_actions: Passed through from the resolution.
    """

    state: WorldState
    applied: list[BaseChange] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    combat_started: bool = False
    simulate_location_id: str | None = None
    suggested_actions: list[SuggestedAction] = field(default_factory=list)


# =============================================================================
# World Service
# =============================================================================


class WorldService:
    """Owns the live world and serializes every change to it.

    Attributes:
        store: Where the world is persisted after every change.
        rng: Random source handed to combat, travel and simulation.
    """

    def __init__(
        self,
        store: WorldStore,
        *,
        rng: RandomSource | None = None,
        settings: Settings | None = None,
        configure_logs: bool = True,
    ) -> None:
        """Initialize the service. The world is loaded on first use.

        Args:
            store: Persistence gateway.
            rng: Random source. Defaults to one seeded from settings.
            settings: Application settings. Defaults to ``get_settings()``.
            configure_logs: Apply the logging settings. Embedders that
                configure logging themselves pass False.
        """
        self._settings = settings or get_settings()
        if configure_logs:
            configure_from_settings(self._settings)
        self.store = store
        self.rng = rng or SeededRandom(seed=self._settings.game.random_seed)
        self._lock = threading.RLock()
        self._state: WorldState | None = None
        self._dirty = False
        self._pending_simulation: str | None = None

        logger.info("WorldService initialized", slot=store.slot)

    # =========================================================================
    # Reading
    # =========================================================================

    @property
    def dirty(self) -> bool:
        """The live world has changes the store has not accepted yet."""
        return self._dirty

    @property
    def pending_simulation(self) -> str | None:
        """Location entered by the last move whose simulation is due."""
        return self._pending_simulation

    def load_or_seed(self) -> WorldState:
        """Load the persisted world, seeding and saving a new one on first run.

        Returns:
            Snapshot of the live world.

        Raises:
            PersistenceError: If the store cannot be read or written.
        """
        with self._lock:
            state = self.store.load()
            if state is None:
                state = create_seed_world()
                logger.info("Seeded new world", slot=self.store.slot)
                self._state = state
                self._dirty = True
                self._persist()
            else:
                self._state = state
                self._dirty = False
            return state.model_copy(deep=True)

    def snapshot(self) -> WorldState:
        """Consistent copy of the live world, safe to hand to collaborators."""
        with self._lock:
            return self._live().model_copy(deep=True)

    def recent_events(self, limit: int | None = None) -> list[WorldEvent]:
        """Most recent world events, oldest first.

        Args:
            limit: Maximum events returned. Defaults to
                ``settings.game.max_event_history``.
        """
        limit = self._settings.game.max_event_history if limit is None else limit
        with self._lock:
            history = self._live().event_history
            return [event.model_copy(deep=True) for event in history[-limit:]] if limit > 0 else []

    def map(self) -> MapProjection:
        """Fog-of-war projection of what the player knows."""
        with self._lock:
            return project_map(self._live())

    def journal(self) -> JournalProjection:
        """Quests by outcome, known lore and earlier heroes."""
        with self._lock:
            return project_journal(self._live())

    def knows(self, reference: str) -> bool:
        """Whether the player knows the referenced place, person or fact."""
        with self._lock:
            return validate_knowledge(self._live(), reference)

    def dominant_play_styles(self) -> list[str]:
        with self._lock:
            return dominant_patterns(self._live().player.behavior_patterns)

    # =========================================================================
    # Turns
    # =========================================================================

    def apply_action(
        self,
        action_text: str,
        resolution: ActionResolution | Mapping[str, Any],
    ) -> TurnOutcome:
        """Apply a narrator's resolution of a player action.

        The changes are reduced in order, play-style tallies are updated,
        combat starts if the resolution asks for it and its preconditions
        hold, and the action counter advances by one.

        Args:
            action_text: What the player typed.
            resolution: The collaborator's resolution.

        Returns:
            TurnOutcome with a snapshot of the new world.

        Raises:
            ValidationError: If the resolution cannot be read.
            PersistenceError: If the new world could not be saved. The new
                world is still live and will be saved by the next write.
        """
        resolution = self._parse_resolution(resolution)

        with self._lock:
            before = self._live()
            bind_context(action_counter=before.action_counter)
            try:
                reduction = reduce(before, resolution.all_changes())
                state = update_behavior_patterns(
                    reduction.state,
                    action_text,
                    reduction.applied,
                    resolution.initiates_combat,
                )
                warnings = list(reduction.warnings)

                combat_started = False
                if resolution.initiates_combat and state.combat_state is None:
                    try:
                        state = initiate_combat(state, resolution.initiates_combat)
                        combat_started = True
                    except CombatError as exc:
                        warnings.append(exc.message)
                        logger.warning(
                            "Combat not started",
                            enemy_npc_id=resolution.initiates_combat,
                            reason=exc.message,
                        )

                simulate_location_id = self._check_entry(before, state)
                if simulate_location_id:
                    self._pending_simulation = simulate_location_id
                state.action_counter += 1
                outcome = TurnOutcome(
                    state=state,
                    applied=reduction.applied,
                    warnings=warnings,
                    combat_started=combat_started,
                    simulate_location_id=simulate_location_id,
                    suggested_actions=resolution.suggested_actions,
                )
                logger.info(
                    "Action applied",
                    applied=len(reduction.applied),
                    skipped=len(warnings),
                    combat_started=combat_started,
                )
                self._commit(state)
                outcome.state = state.model_copy(deep=True)
                return outcome
            finally:
                clear_context()

    def start_combat(self, npc_id: str) -> WorldState:
        """Start combat with an NPC at the player's location.

        Raises:
            CombatError: If the preconditions do not hold. Nothing changes.
        """
        with self._lock:
            state = initiate_combat(self._live(), npc_id)
            self._commit(state)
            return state.model_copy(deep=True)

    def combat_action(self, action: CombatAction | str) -> CombatResult:
        """Resolve one combat exchange.

        A defeated player is left at 0 health; call ``handle_death`` with
        the narrator's description to retire the character.

        Raises:
            CombatError: If not in combat or the action is unknown.
        """
        with self._lock:
            before = self._live()
            bind_context(action_counter=before.action_counter)
            try:
                result = process_combat_action(before, action, self.rng)
                state = result.state
                state.message_log.extend(result.messages)
                state.action_counter += 1
                self._commit(state)
                result.state = state.model_copy(deep=True)
                return result
            finally:
                clear_context()

    def travel(
        self,
        destination: str,
        classifier: EncounterClassifier | None = None,
    ) -> TravelResult:
        """Fast-travel to a known location.

        Raises:
            TravelError: If in combat or the destination is missing or unknown.
        """
        with self._lock:
            before = self._live()
            bind_context(action_counter=before.action_counter)
            try:
                result = resolve_travel(before, destination, self.rng, classifier)
                state = result.state
                simulate_location_id = self._check_entry(before, state)
                if simulate_location_id:
                    self._pending_simulation = simulate_location_id
                state.action_counter += 1
                self._commit(state)
                result.state = state.model_copy(deep=True)
                return result
            finally:
                clear_context()

    def simulate(
        self,
        location_id: str,
        changes: list[BaseChange | Mapping[str, Any]],
    ) -> ReductionResult:
        """Apply off-screen changes generated for a location.

        Changes that would move, recruit, dismiss or kill a companion, or
        move the player, are dropped and reported as warnings.
        """
        with self._lock:
            result = apply_offscreen_changes(self._live(), location_id, changes)
            if self._pending_simulation == location_id:
                self._pending_simulation = None
            logger.info(
                "Location simulated",
                location_id=location_id,
                applied=len(result.applied),
                skipped=len(result.warnings),
            )
            self._commit(result.state)
            result.state = result.state.model_copy(deep=True)
            return result

    def record_conversation(
        self,
        npc_id: str,
        summary: str,
        *,
        player_asked: list[str] | None = None,
        npc_revealed: list[str] | None = None,
        attitude_change: int | None = None,
        lore: list[str] | None = None,
    ) -> WorldState:
        """Record an exchange with an NPC standing next to the player.

        The summary is appended to the NPC's conversation history, the
        attitude change is applied with clamping, the NPC becomes known to
        the player and any revealed lore is added to their knowledge.

        Raises:
            InteractionError: If the NPC is missing, dead or elsewhere.
        """
        with self._lock:
            state = self._live().model_copy(deep=True)
            npc = state.npcs.get(npc_id)
            if npc is None:
                raise InteractionError(f"NPC not found: {npc_id}", npc_id=npc_id)
            if not npc.is_alive:
                raise InteractionError(f"{npc.name} is dead", npc_id=npc_id)
            if npc.current_location_id != state.player.current_location_id:
                raise InteractionError(f"{npc.name} is not here", npc_id=npc_id)

            npc.conversation_history.append(
                ConversationSummary(
                    action_number=state.action_counter,
                    summary=summary,
                    player_asked=player_asked or [],
                    npc_revealed=npc_revealed or [],
                    attitude_change=attitude_change,
                )
            )
            if attitude_change:
                npc.attitude = clamp(npc.attitude + attitude_change, ATTITUDE_MIN, ATTITUDE_MAX)

            knowledge = state.player.knowledge
            knowledge.add(KnowledgeType.NPCS, npc.id)
            for fact in lore or []:
                knowledge.add(KnowledgeType.LORE, fact)

            logger.info("Conversation recorded", npc_id=npc.id, attitude=npc.attitude)
            self._commit(state)
            return state.model_copy(deep=True)

    def handle_death(self, death_description: str) -> WorldState:
        """Retire the current character and start a fresh one.

        Raises:
            InvalidGameStateError: If the start location is missing.
        """
        with self._lock:
            state = handle_player_death(
                self._live(),
                death_description,
                start_location_id=self._settings.game.start_location_id,
            )
            self._pending_simulation = None
            self._commit(state)
            return state.model_copy(deep=True)

    def create_character(
        self,
        draft: PlayerDraft | Mapping[str, Any],
        *,
        npc_updates: list[NpcKnowledgeUpdate | Mapping[str, Any]] | None = None,
        fresh_world: bool = False,
    ) -> WorldState:
        """Install a newly created character as the player.

        The character begins where the current player stands and keeps
        what the current player knows, which after a death is the fresh
        knowledge of the start location. NPC knowledge updates let
        residents learn about the newcomer; updates naming unknown NPCs
        are skipped. The action counter does not advance.

        Args:
            draft: The character creator's description. A name of 2 to 50
                characters is required.
            npc_updates: Facts NPCs learn about the new character.
            fresh_world: Seed a new world first instead of joining the
                live one.

        Returns:
            Snapshot of the world with the new character.

        Raises:
            ValidationError: If the draft or an update cannot be read, or
                names a home that does not exist.
            InvalidGameStateError: If the player is in combat.
        """
        try:
            player_draft = draft if isinstance(draft, PlayerDraft) else PlayerDraft.model_validate(draft)
            updates = [
                update if isinstance(update, NpcKnowledgeUpdate) else NpcKnowledgeUpdate.model_validate(update)
                for update in npc_updates or []
            ]
        except PydanticValidationError as exc:
            raise ValidationError(
                "Character could not be read",
                field_name="character",
                details={"errors": exc.errors(include_url=False, include_input=False)},
            ) from exc

        with self._lock:
            if fresh_world:
                state = create_seed_world()
            else:
                state = self._live().model_copy(deep=True)
                if state.combat_state is not None:
                    raise InvalidGameStateError(
                        "Cannot create a character during combat",
                        current_state="combat",
                        expected_states=["exploration"],
                    )

            if player_draft.home_location_id and player_draft.home_location_id not in state.locations:
                raise ValidationError(
                    f"Home location not found: {player_draft.home_location_id}",
                    field_name="home_location_id",
                    invalid_value=player_draft.home_location_id,
                )

            current = state.player
            state.player = build_player(
                player_draft,
                location_id=current.current_location_id,
                knowledge=current.knowledge,
            )

            for update in updates:
                npc = state.npcs.get(update.npc_id)
                if npc is None:
                    logger.warning("Knowledge update skipped; NPC not found", npc_id=update.npc_id)
                    continue
                for fact in update.new_knowledge:
                    if fact not in npc.knowledge:
                        npc.knowledge.append(fact)

            self._pending_simulation = None
            logger.info(
                "Character created",
                name=state.player.name,
                location_id=state.player.current_location_id,
                fresh_world=fresh_world,
            )
            self._commit(state)
            return state.model_copy(deep=True)

    def reset(self) -> WorldState:
        """Replace the world with a freshly seeded one."""
        with self._lock:
            state = create_seed_world()
            self._pending_simulation = None
            logger.warning("World reset", slot=self.store.slot)
            self._commit(state)
            return state.model_copy(deep=True)

    def flush(self) -> None:
        """Write the live world if a previous save failed.

        Raises:
            PersistenceError: If the store still rejects the write.
        """
        with self._lock:
            if self._dirty:
                self._persist()

    # =========================================================================
    # Internals
    # =========================================================================

    def _live(self) -> WorldState:
        if self._state is None:
            self.load_or_seed()
        return self._state  # type: ignore[return-value]

    def _parse_resolution(self, resolution: ActionResolution | Mapping[str, Any]) -> ActionResolution:
        if isinstance(resolution, ActionResolution):
            return resolution
        try:
            return ActionResolution.model_validate(resolution)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Action resolution could not be read",
                field_name="resolution",
                details={"errors": exc.errors(include_url=False, include_input=False)},
            ) from exc

    def _check_entry(self, before: WorldState, after: WorldState) -> str | None:
        """Roll the simulation clock when the player entered a new location.

        The roll uses the location as it was before this visit stamped it.
        """
        location_id = after.player.current_location_id
        if location_id == before.player.current_location_id:
            return None
        location = before.locations.get(location_id)
        if location is None:
            return None
        if should_simulate(location, before.action_counter, self.rng):
            return location_id
        return None

    def _commit(self, state: WorldState) -> None:
        self._state = state
        self._dirty = True
        self._persist()

    def _persist(self) -> None:
        try:
            self.store.save(self._state)  # type: ignore[arg-type]
        except PersistenceError:
            logger.error("World not saved; kept in memory", slot=self.store.slot)
            raise
        self._dirty = False


__all__ = [
    "SuggestedAction",
    "ActionResolution",
    "TurnOutcome",
    "WorldService",
]
