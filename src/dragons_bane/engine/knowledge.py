"""Knowledge gating: what the player is allowed to know about.

Player knowledge may reference locations by id or by name. Everything that
reveals the world to the player (the map, travel validation, collaborator
context) resolves references through this module.
"""

from __future__ import annotations

from dragons_bane.models.world import Location, WorldState


def resolve_location(state: WorldState, reference: str) -> Location | None:
    """Find a location by id, falling back to a case-insensitive name match."""
    location = state.locations.get(reference)
    if location is not None:
        return location
    wanted = reference.strip().lower()
    for candidate in state.locations.values():
        if candidate.name.lower() == wanted:
            return candidate
    return None


def known_locations(state: WorldState) -> list[Location]:
    """Locations the player knows, plus the one they stand in.

    Order follows the player's knowledge; duplicates (an id and a name for
    the same place) collapse to one entry.
    """
    references = [*state.player.knowledge.locations, state.player.current_location_id]
    seen: set[str] = set()
    resolved: list[Location] = []
    for reference in references:
        location = resolve_location(state, reference)
        if location is None or location.id in seen:
            continue
        seen.add(location.id)
        resolved.append(location)
    return resolved


def knows_location(state: WorldState, location_id: str) -> bool:
    return any(location.id == location_id for location in known_locations(state))


def validate_knowledge(state: WorldState, reference: str) -> bool:
    """Check whether the player knows about a referenced thing.

    Ids match exactly (case-insensitive); names, lore and recipes match by
    substring. Visible things count as known: the current location, its
    items, structures and living NPCs, the player's inventory and companions.

    Args:
        state: The current world.
        reference: An id, a name, or a fragment of lore.

    Returns:
        True if the reference is known to the player.
    """
    needle = reference.strip().lower() if reference else ""
    if not needle:
        return False

    def matches(entity_id: str, name: str) -> bool:
        return entity_id.lower() == needle or needle in name.lower()

    player = state.player
    knowledge = player.knowledge

    for location_ref in knowledge.locations:
        location = state.locations.get(location_ref)
        name = location.name if location is not None else location_ref
        if matches(location_ref, name):
            return True

    for npc_id in knowledge.npcs:
        npc = state.npcs.get(npc_id)
        if matches(npc_id, npc.name if npc is not None else ""):
            return True

    texts = [*knowledge.lore, *knowledge.recipes, *knowledge.skills]
    if any(needle in text.lower() for text in texts):
        return True

    if any(matches(item.id, item.name) for item in player.inventory):
        return True

    here = state.current_location
    if here is not None:
        if matches(here.id, here.name):
            return True
        if any(matches(item.id, item.name) for item in here.items):
            return True
        if any(matches(structure.id, structure.name) for structure in here.structures):
            return True
        for npc in state.npcs_at(here.id):
            if npc.is_alive and matches(npc.id, npc.name):
                return True

    for companion_id in player.companion_ids:
        companion = state.npcs.get(companion_id)
        if companion is not None and matches(companion.id, companion.name):
            return True

    return False


__all__ = [
    "resolve_location",
    "known_locations",
    "knows_location",
    "validate_knowledge",
]
