"""
Interfaces of the engine's external collaborators.

The remote services themselves (schema metadata, record access, query
execution, configuration storage, presentation) live outside the engine;
only their request/response contracts are fixed here.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger

from tablebuddy.models.schema import ObjectSchema, TableCache


@dataclass
class StoredConfiguration:
    """A configuration record as held by the configuration store"""
    id: str
    name: str
    config_json: Optional[str]
    description: Optional[str] = None
    object_name: Optional[str] = None


@dataclass
class ConfigSummary:
    id: str
    name: str


class ConfigStore(Protocol):
    async def load_config(self, name: str) -> Optional[StoredConfiguration]: ...

    async def save(
        self,
        name: str,
        config: Any,
        description: Optional[str] = None,
        config_id: Optional[str] = None,
    ) -> str: ...

    async def delete(self, config_id: str) -> None: ...

    async def list(self) -> List[ConfigSummary]: ...


class SchemaService(Protocol):
    async def describe(self, object_name: str) -> ObjectSchema: ...


class RecordService(Protocol):
    async def get_fields(self, record_id: str, field_names: List[str]) -> Dict[str, Any]: ...

    async def update_record(self, record_id: str, field_patch: Dict[str, Any]) -> Any:
        """
        Persist a patch.

        Returns a success result, or {"errorFields": [...], "message": ...}
        when the row is rejected. Raising a PersistenceError (or any
        exception) is treated the same way.
        """
        ...

    async def delete_record(self, record_id: str) -> None: ...


class QueryService(Protocol):
    async def validate(self, query: str) -> Optional[str]:
        """Return an error message, or None when the query is valid."""
        ...

    async def execute(self, query: str) -> TableCache: ...


class Notifier(Protocol):
    def notify(self, title: str, message: str = "", variant: str = "info", sticky: bool = False) -> None: ...


class LoggingNotifier:
    """Notifier that writes user-visible notifications to the log"""

    def notify(self, title: str, message: str = "", variant: str = "info", sticky: bool = False) -> None:
        text = f"{title}: {message}" if message else title
        if variant == "error":
            logger.error(text)
        elif variant == "warning":
            logger.warning(text)
        elif variant == "success":
            logger.success(text)
        else:
            logger.info(text)
