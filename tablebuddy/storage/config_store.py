"""
Configuration store backed by SQLite.

Provides:
- Table configuration JSON storage keyed by unique name
- SQLite with WAL mode for concurrent readers
- The load/save/delete/list operations the orchestrator loads from
"""

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional
import uuid

import aiosqlite
from loguru import logger

from tablebuddy.config.settings import resolve_project_path, settings
from tablebuddy.models.config import TableConfiguration
from tablebuddy.services.protocols import ConfigSummary, StoredConfiguration

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS table_configs (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL UNIQUE,
    description TEXT,
    object_name TEXT,
    config_json TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


class SqliteConfigStore:
    """Persistent store for table configurations"""

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the configuration store

        Args:
            db_path: Path to SQLite database (defaults to settings.config_db_path)
        """
        self._conn: Optional[aiosqlite.Connection] = None
        self.db_path = Path(db_path) if db_path else resolve_project_path(settings.config_db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    async def async_init(self):
        """Open the connection and create the schema. Safe to call more than once."""
        if self._conn is not None:
            return

        conn = await aiosqlite.connect(str(self.db_path), timeout=10.0)
        try:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA synchronous=NORMAL")
            await conn.execute("PRAGMA busy_timeout=5000")
            await conn.execute(_CREATE_TABLE)
            await conn.commit()
        except Exception as e:
            logger.error(f"Failed to initialize configuration store at {self.db_path}: {e}")
            await conn.close()
            raise

        self._conn = conn
        logger.info(f"Initialized configuration store at {self.db_path}")

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("SqliteConfigStore not initialized. Call async_init() first.")
        return self._conn

    async def close(self):
        """Close the aiosqlite connection"""
        if self._conn:
            try:
                await self._conn.close()
                logger.debug("Closed configuration store connection")
            except Exception as e:
                logger.warning(f"Error closing configuration store connection: {e}")
            self._conn = None

    async def load_config(self, name: str) -> Optional[StoredConfiguration]:
        """Fetch a configuration by name, or None when no such configuration exists."""
        cursor = await self.connection.execute(
            "SELECT id, name, config_json, description, object_name FROM table_configs WHERE name = ?",
            (name,),
        )
        row = await cursor.fetchone()
        await cursor.close()
        if row is None:
            logger.debug(f"No stored configuration named '{name}'")
            return None
        return StoredConfiguration(
            id=row[0], name=row[1], config_json=row[2], description=row[3], object_name=row[4]
        )

    async def save(
        self,
        name: str,
        config: Any,
        description: Optional[str] = None,
        config_id: Optional[str] = None,
    ) -> str:
        """
        Insert or update a configuration.

        Args:
            name: Unique configuration name
            config: TableConfiguration, dict or JSON text; validated before it is stored
            description: Optional free text
            config_id: Id of an existing record to update

        Returns:
            The record id
        """
        if isinstance(config, str):
            config = TableConfiguration.from_json(config)
        elif not isinstance(config, TableConfiguration):
            config = TableConfiguration.from_dict(config)

        config_id = config_id or str(uuid.uuid4())
        updated_at = datetime.now(timezone.utc).isoformat()
        await self.connection.execute(
            """
            INSERT INTO table_configs (id, name, description, object_name, config_json, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description,
                object_name = excluded.object_name,
                config_json = excluded.config_json,
                updated_at = excluded.updated_at
            """,
            (config_id, name, description, config.object_name, config.to_json(), updated_at),
        )
        await self.connection.commit()
        logger.info(f"Saved configuration '{name}' ({config_id})")
        return config_id

    async def delete(self, config_id: str) -> None:
        await self.connection.execute("DELETE FROM table_configs WHERE id = ?", (config_id,))
        await self.connection.commit()
        logger.info(f"Deleted configuration {config_id}")

    async def list(self) -> List[ConfigSummary]:
        cursor = await self.connection.execute("SELECT id, name FROM table_configs ORDER BY name")
        rows = await cursor.fetchall()
        await cursor.close()
        return [ConfigSummary(id=row[0], name=row[1]) for row in rows]
