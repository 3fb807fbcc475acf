"""Built-in world content."""

from __future__ import annotations

from dragons_bane.world.seed import STARTING_LORE, create_seed_world, seed_id


__all__ = ["create_seed_world", "seed_id", "STARTING_LORE"]
