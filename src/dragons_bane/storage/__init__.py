"""Storage module for Dragon's Bane persistence.

Provides SQLite-based storage for the single live world document.
"""

from dragons_bane.storage.database import (
    WorldRecord,
    WorldStore,
    get_world_store,
)

__all__ = [
    "WorldRecord",
    "WorldStore",
    "get_world_store",
]
