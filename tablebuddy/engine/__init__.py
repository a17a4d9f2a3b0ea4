"""
Table engine - merge resolution, columns, search, drafts, actions and the
orchestrator that sequences them
"""

from tablebuddy.engine.merge import MergeState, MergeResolutionCoordinator, format_merge_value
from tablebuddy.engine.columns import reconcile_columns
from tablebuddy.engine.search import SearchIndex, Debouncer
from tablebuddy.engine.drafts import DraftReconciliationEngine
from tablebuddy.engine.actions import (
    ActionOutcome,
    ComponentRegistry,
    ObjectCapabilities,
    PresentationComponent,
    RowAction,
    find_action_by_order,
    normalize_modal_size,
    row_actions_for,
)
from tablebuddy.engine.pipeline import build_load_workflow
from tablebuddy.engine.orchestrator import TableOrchestrator

__all__ = [
    "MergeState",
    "MergeResolutionCoordinator",
    "format_merge_value",
    "reconcile_columns",
    "SearchIndex",
    "Debouncer",
    "DraftReconciliationEngine",
    "ActionOutcome",
    "ComponentRegistry",
    "ObjectCapabilities",
    "PresentationComponent",
    "RowAction",
    "find_action_by_order",
    "normalize_modal_size",
    "row_actions_for",
    "build_load_workflow",
    "TableOrchestrator",
]
