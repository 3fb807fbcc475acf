"""SQLite persistence gateway for the world document.

The whole WorldState is stored as one JSON document per slot and is
overwritten wholesale on every save. There are no partial updates.

Default location: ``data/dragons_bane.db`` (see ``StorageSettings``).
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Generator

from pydantic import ValidationError as PydanticValidationError

from dragons_bane.core.config import get_settings
from dragons_bane.core.exceptions import PersistenceError
from dragons_bane.core.logging import get_logger
from dragons_bane.models.world import WorldState


logger = get_logger(__name__)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class WorldRecord:
    """Metadata of a stored world document.

    Attributes:
        slot: Slot name.
        version: Document schema version.
        action_counter: Logical clock at save time.
        created_at: When the slot was first written.
        updated_at: When the slot was last overwritten.
    """

    slot: str
    version: int
    action_counter: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> WorldRecord:
        """Create from database row."""
        return cls(
            slot=row[0],
            version=row[1],
            action_counter=row[2],
            created_at=datetime.fromisoformat(row[3]),
            updated_at=datetime.fromisoformat(row[4]),
        )


# =============================================================================
# World Store
# =============================================================================


class WorldStore:
    """Durable home of the single live world.

    ``load()`` returning None is not an error: it means no world has been
    saved yet and the caller should seed one.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: str | Path, *, slot: str = "default") -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite file. Parent directories are created.
            slot: Name of the world document this store reads and writes.

        Raises:
            PersistenceError: If the database cannot be created.
        """
        self.db_path = Path(db_path)
        self.slot = slot
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, sqlite3.Error) as exc:
            raise PersistenceError(
                f"Cannot open world store at {self.db_path}: {exc}", slot=slot
            ) from exc

        logger.info("World store initialized", db_path=str(self.db_path), slot=slot)

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path))
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS worlds (
                    slot TEXT PRIMARY KEY,
                    version INTEGER NOT NULL,
                    action_counter INTEGER NOT NULL,
                    document TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            cursor.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,),
            )

    # =========================================================================
    # World Operations
    # =========================================================================

    def save(self, state: WorldState) -> WorldRecord:
        """Overwrite the slot with ``state``.

        Returns:
            Metadata of the written document.

        Raises:
            PersistenceError: If the write fails. Nothing is partially written.
        """
        now = datetime.now()
        document = state.model_dump_json(by_alias=True)

        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT INTO worlds (slot, version, action_counter, document, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(slot) DO UPDATE SET
                        version = excluded.version,
                        action_counter = excluded.action_counter,
                        document = excluded.document,
                        updated_at = excluded.updated_at
                """, (self.slot, state.version, state.action_counter, document,
                      now.isoformat(), now.isoformat()))
                cursor.execute("SELECT created_at FROM worlds WHERE slot = ?", (self.slot,))
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to save world: {exc}", slot=self.slot) from exc

        logger.debug("World saved", slot=self.slot, action_counter=state.action_counter)
        return WorldRecord(
            slot=self.slot,
            version=state.version,
            action_counter=state.action_counter,
            created_at=datetime.fromisoformat(row[0]) if row else now,
            updated_at=now,
        )

    def load(self) -> WorldState | None:
        """Read the slot.

        Returns:
            The stored world, or None if nothing has been saved yet.

        Raises:
            PersistenceError: If the store cannot be read or the document is
                not a valid world.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT document FROM worlds WHERE slot = ?", (self.slot,))
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to load world: {exc}", slot=self.slot) from exc

        if row is None:
            logger.info("No saved world", slot=self.slot)
            return None

        try:
            state = WorldState.model_validate_json(row[0])
        except PydanticValidationError as exc:
            raise PersistenceError(
                "Stored world document is invalid",
                slot=self.slot,
                details={"errors": exc.errors(include_url=False, include_input=False)},
            ) from exc

        logger.info("World loaded", slot=self.slot, action_counter=state.action_counter)
        return state

    def get_record(self) -> WorldRecord | None:
        """Metadata of the stored document, without parsing it.

        Raises:
            PersistenceError: If the store cannot be read.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    SELECT slot, version, action_counter, created_at, updated_at
                    FROM worlds WHERE slot = ?
                """, (self.slot,))
                row = cursor.fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read world record: {exc}", slot=self.slot) from exc

        if row:
            return WorldRecord.from_row(tuple(row))
        return None

    def delete(self) -> bool:
        """Remove the slot.

        Returns:
            True if a document was deleted, False if the slot was empty.

        Raises:
            PersistenceError: If the delete fails.
        """
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM worlds WHERE slot = ?", (self.slot,))
                deleted = cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to delete world: {exc}", slot=self.slot) from exc

        if deleted:
            logger.info("World deleted", slot=self.slot)
        return deleted


# =============================================================================
# Singleton Instance
# =============================================================================


_store_instance: WorldStore | None = None


def get_world_store() -> WorldStore:
    """Get the global world store, configured from settings.

    Returns:
        WorldStore singleton instance.
    """
    global _store_instance

    if _store_instance is None:
        storage = get_settings().storage
        _store_instance = WorldStore(storage.database_path, slot=storage.world_slot)

    return _store_instance


__all__ = ["WorldRecord", "WorldStore", "get_world_store"]
