"""
Load pipeline context - dependencies for workflow nodes
"""

from dataclasses import dataclass

from tablebuddy.engine.merge import MergeResolutionCoordinator
from tablebuddy.services.protocols import QueryService, RecordService, SchemaService


@dataclass
class EngineContext:
    """Context holding dependencies for load workflow nodes"""

    schema_service: SchemaService
    record_service: RecordService
    query_service: QueryService
    coordinator: MergeResolutionCoordinator
