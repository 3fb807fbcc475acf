"""Seed world: the village of Millbrook.

The starting world every new game loads: five village locations around
the square at (0, 0), four townsfolk, three factions and a player who
knows their way around the village.
"""

from __future__ import annotations

from dragons_bane.core.constants import START_LOCATION_ID
from dragons_bane.models.enums import ItemType, Terrain
from dragons_bane.models.world import (
    NPC,
    Coordinates,
    Faction,
    ItemEffect,
    Location,
    NPCStats,
    Player,
    PlayerKnowledge,
    WorldItem,
    WorldState,
)


OPENING_MESSAGE = (
    "You stand in the village square of Millbrook, a small hamlet at the edge of "
    "civilization. Afternoon light stretches across the cobblestones, and a scrawny "
    "stablehand watches you with open curiosity. How you came to be here, you "
    "cannot quite recall..."
)

STARTING_LORE = "Millbrook is a small village at the edge of the known world."


def seed_id(prefix: str, name: str) -> str:
    """Stable id for seed content, e.g. ``seed_id("loc", "Rusty Tankard")``."""
    return f"{prefix}_{'_'.join(name.lower().split())}"


def _locations() -> list[Location]:
    return [
        Location(
            id=START_LOCATION_ID,
            name="Millbrook Village Square",
            description=(
                "A modest cobblestone plaza beneath an ancient oak, with a stone well "
                "at its center where villagers trade gossip and wares."
            ),
            image_prompt="Medieval village square, ancient oak, stone well, cobblestones, warm afternoon light",
            coordinates=Coordinates(x=0, y=0),
            terrain=Terrain.VILLAGE,
            danger_level=0,
            is_canonical=True,
        ),
        Location(
            id=seed_id("loc", "rusty tankard"),
            name="The Rusty Tankard",
            description=(
                "A squat timber tavern, smoke curling from the chimney. Inside it smells "
                "of roasting meat, spilled ale and old wood."
            ),
            image_prompt="Cozy medieval tavern interior, wooden beams, roaring fireplace, amber light",
            coordinates=Coordinates(x=0, y=1),
            terrain=Terrain.VILLAGE,
            danger_level=0,
            is_canonical=True,
        ),
        Location(
            id=seed_id("loc", "ironheart forge"),
            name="Ironheart Forge",
            description=(
                "A soot-stained workshop ringing with hammer on anvil. Blades and tools "
                "hang from every beam around a great stone forge."
            ),
            image_prompt="Medieval blacksmith forge, glowing coals, anvil, weapons on the walls, orange firelight",
            coordinates=Coordinates(x=1, y=0),
            terrain=Terrain.VILLAGE,
            danger_level=0,
            is_canonical=True,
        ),
        Location(
            id=seed_id("loc", "elder house"),
            name="Elder's Cottage",
            description=(
                "A sagging thatched cottage hung with dried herbs and bone wind chimes, "
                "its door carved with protective runes."
            ),
            image_prompt="Village elder's cottage interior, hanging herbs, scrolls, rune-carved door, candlelight",
            coordinates=Coordinates(x=-1, y=0),
            terrain=Terrain.VILLAGE,
            danger_level=0,
            is_canonical=True,
        ),
        Location(
            id=seed_id("loc", "millbrook gate"),
            name="Millbrook Village Gate",
            description=(
                "A humble wooden gate flanked by two torches. Beyond it a dirt road winds "
                "into rolling hills and old trees."
            ),
            image_prompt="Wooden village gate, two torches, dirt road into rolling hills, sunset",
            coordinates=Coordinates(x=0, y=-1),
            terrain=Terrain.ROAD,
            danger_level=1,
            is_canonical=True,
        ),
    ]


def _npcs() -> list[NPC]:
    tavern = seed_id("loc", "rusty tankard")
    forge = seed_id("loc", "ironheart forge")
    cottage = seed_id("loc", "elder house")

    return [
        NPC(
            id=seed_id("npc", "marta barkeep"),
            name="Marta the Barkeep",
            description="A stout woman with a knowing smile, owner of The Rusty Tankard.",
            physical_description="Heavyset, in her fifties, gray-streaked auburn hair in a bun, a ladle at her belt.",
            soul_instruction=(
                "Runs the tavern and trades gossip like currency: she shares what she knows "
                "for something interesting in return. Warm but no-nonsense, weak to flattery "
                "about her cooking, shrewd about money. Calls everyone 'dearie'."
            ),
            current_location_id=tavern,
            home_location_id=tavern,
            knowledge=[
                "Knows everyone in Millbrook by name",
                "Heard rumors of wolves in the western forest",
                "Knows Elder Bramwell has been troubled lately",
            ],
            attitude=50,
            stats=NPCStats(health=80, max_health=80, strength=8, defense=5),
            is_canonical=True,
            faction_ids=[seed_id("faction", "golden scale")],
        ),
        NPC(
            id=seed_id("npc", "grimjaw smith"),
            name="Grimjaw",
            description="A towering, burn-scarred blacksmith whose scowl hides a gentle heart.",
            physical_description="Nearly seven feet tall, soot-dark skin, a crooked jaw and a leather apron thick as armor.",
            soul_instruction=(
                "Speaks little and respects deeds over words. Fled some past he never "
                "discusses. Refuses to forge for the unworthy and is nearly impossible "
                "to deceive."
            ),
            current_location_id=forge,
            home_location_id=forge,
            knowledge=[
                "Knows metalworking and weapon quality",
                "Knows of old mines to the north",
                "Has heard of a dark blade that brings misfortune",
            ],
            attitude=10,
            inventory=[
                WorldItem(
                    id=seed_id("item", "simple dagger"),
                    name="Simple Iron Dagger",
                    description="A plain but well-made dagger.",
                    type=ItemType.WEAPON,
                    effect=ItemEffect(stat="strength", value=3),
                    value=15,
                    is_canonical=True,
                ),
            ],
            stats=NPCStats(health=150, max_health=150, strength=18, defense=12),
            is_canonical=True,
        ),
        NPC(
            id=seed_id("npc", "bramwell elder"),
            name="Elder Bramwell",
            description="The aged village elder whose clouded eyes see more than they should.",
            physical_description="Wispy, white-bearded, leaning on a rune-carved oak staff, robes patched many times over.",
            soul_instruction=(
                "Has guided Millbrook for forty years. Speaks in riddles, knows fragments "
                "of old magic and fears the return of something he sealed away. Tests "
                "newcomers with simple requests."
            ),
            current_location_id=cottage,
            home_location_id=cottage,
            knowledge=[
                "Knows the old lore and forgotten places",
                "Knows fragments of protective magic",
                "Remembers heroes who came before",
            ],
            attitude=30,
            stats=NPCStats(health=40, max_health=40, strength=3, defense=2),
            is_canonical=True,
            faction_ids=[seed_id("faction", "house valdris")],
        ),
        NPC(
            id=seed_id("npc", "pip stablehand"),
            name="Pip",
            description="A bright-eyed young stablehand who dreams of adventure.",
            physical_description="A freckled youth of fifteen with unruly straw-colored hair and boots too big for him.",
            soul_instruction=(
                "An orphan raised by the village who treats every stranger as a hero from "
                "the stories. Talks fast, asks too many questions, believes almost anything "
                "and wants to become a hero's companion."
            ),
            current_location_id=START_LOCATION_ID,
            home_location_id=START_LOCATION_ID,
            knowledge=[
                "Knows all the hiding spots in Millbrook",
                "Overheard merchants talking about bandits on the east road",
                "Has seen strange lights in the forest at night",
            ],
            attitude=70,
            stats=NPCStats(health=50, max_health=50, strength=5, defense=3),
            is_canonical=True,
        ),
    ]


def _factions() -> list[Faction]:
    return [
        Faction(
            id=seed_id("faction", "shadow hand"),
            name="The Shadow Hand",
            description="A secretive network of thieves and information brokers bound by a strict code.",
            is_canonical=True,
        ),
        Faction(
            id=seed_id("faction", "golden scale"),
            name="The Golden Scale Consortium",
            description="The merchants' alliance that controls most legitimate trade in the region.",
            member_npc_ids=[seed_id("npc", "marta barkeep")],
            is_canonical=True,
        ),
        Faction(
            id=seed_id("faction", "house valdris"),
            name="House Valdris",
            description="The distant noble house that rules these lands and collects their taxes.",
            member_npc_ids=[seed_id("npc", "bramwell elder")],
            is_canonical=True,
        ),
    ]


def create_seed_world() -> WorldState:
    """Build a fresh Millbrook world at action 0.

    Returns:
        A consistent WorldState: every NPC is registered at its location and
        the player knows all village locations and Pip, who stands in the
        square with them.
    """
    locations = {location.id: location for location in _locations()}
    npcs = {npc.id: npc for npc in _npcs()}
    for npc in npcs.values():
        locations[npc.current_location_id].present_npc_ids.append(npc.id)

    player = Player(
        physical_description="A traveler with road-worn clothes and weary eyes",
        origin="unknown",
        current_location_id=START_LOCATION_ID,
        gold=25,
        knowledge=PlayerKnowledge(
            locations=list(locations),
            npcs=[seed_id("npc", "pip stablehand")],
            lore=[STARTING_LORE],
        ),
    )

    return WorldState(
        version=1,
        action_counter=0,
        player=player,
        locations=locations,
        npcs=npcs,
        factions={faction.id: faction for faction in _factions()},
        message_log=[OPENING_MESSAGE],
    )


__all__ = ["create_seed_world", "seed_id", "STARTING_LORE"]
