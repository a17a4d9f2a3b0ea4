"""
Table orchestrator

Sequences the engine for one table instance: configuration load, the load
workflow (tokens, merge resolution, validation, fetch), column
reconciliation, sort and search, inline edits and saves, and actions.
"""

import asyncio
from numbers import Number
from typing import Any, Dict, List, Optional, Union
import uuid

from tablebuddy.config.constants import (
    COMPONENT_ACTION,
    DELETE_FORM_COMPONENT,
    DELETE_ROW_ACTION,
    EDIT_FORM_COMPONENT,
    EDIT_ROW_ACTION,
    FLOW_ACTION,
    FLOW_COMPONENT,
    TOPIC_LOOKUP_CONFIG_LOAD,
    TOPIC_ROW_SELECTED,
)
from tablebuddy.config.settings import settings
from tablebuddy.engine.actions import (
    ActionOutcome,
    ComponentRegistry,
    ObjectCapabilities,
    RowAction,
    find_action_by_order,
    normalize_modal_size,
    row_actions_for,
)
from tablebuddy.engine.columns import reconcile_columns
from tablebuddy.engine.context import EngineContext
from tablebuddy.engine.drafts import DraftReconciliationEngine
from tablebuddy.engine.merge import MergeResolutionCoordinator
from tablebuddy.engine.pipeline import build_load_workflow
from tablebuddy.engine.search import Debouncer, SearchIndex
from tablebuddy.engine.state import LoadState
from tablebuddy.models.config import ActionConfig, TableConfiguration
from tablebuddy.models.schema import ObjectSchema, TableCache
from tablebuddy.models.table import ColumnDescriptor, QueryDescriptor, SaveOutcome
from tablebuddy.services.message_bus import MessageBus
from tablebuddy.services.messages import generate_uuid, reduce_errors
from tablebuddy.services.protocols import (
    ConfigStore,
    LoggingNotifier,
    Notifier,
    QueryService,
    RecordService,
    SchemaService,
)
from tablebuddy.services.table_service import update_draft_values
from tablebuddy.sql.compiler import compile_query, finalize, from_raw_query
from tablebuddy.utils.errors import (
    ConfigurationNotFound,
    ConfigurationParseError,
    TableEngineError,
    UnknownComponentError,
)
from tablebuddy.utils.logger import logger


def _sort_key(field_name: str):
    def key(row: Dict[str, Any]):
        value = row.get(field_name)
        if (not value and value != 0) or isinstance(value, (dict, list)):
            return (0, 0, "")
        if isinstance(value, Number):
            return (1, value, "")
        return (2, 0, str(value))

    return key


class TableOrchestrator:
    """
    One table instance.

    Collaborators are injected; the message bus, notifier and component
    registry default to in-process implementations.

    Example:
        >>> table = TableOrchestrator(schema_service, record_service, query_service,
        ...                           record_id="001000000000001AAA", context_object_name="Account")
        >>> await table.apply_config({"objectName": "Contact", "fields": [{"fieldName": "Name"}]})
        True
        >>> [row["Name"] for row in table.rows]
        ['Ann']
    """

    def __init__(
        self,
        schema_service: SchemaService,
        record_service: RecordService,
        query_service: QueryService,
        config_store: Optional[ConfigStore] = None,
        message_bus: Optional[MessageBus] = None,
        notifier: Optional[Notifier] = None,
        registry: Optional[ComponentRegistry] = None,
        record_id: Optional[str] = None,
        context_object_name: Optional[str] = None,
        user_id: Optional[str] = None,
        boundary: Optional[str] = None,
        icon_name: str = "auto",
    ):
        self.schema_service = schema_service
        self.record_service = record_service
        self.query_service = query_service
        self.config_store = config_store
        self.bus = message_bus or MessageBus()
        self.notifier = notifier or LoggingNotifier()
        self.registry = registry or ComponentRegistry()

        self.record_id = record_id
        self.context_object_name = context_object_name
        self.user_id = user_id
        self.boundary = boundary or generate_uuid()
        self._icon_name = icon_name

        self.coordinator = MergeResolutionCoordinator()
        self.workflow = build_load_workflow(
            EngineContext(
                schema_service=schema_service,
                record_service=record_service,
                query_service=query_service,
                coordinator=self.coordinator,
            )
        )
        self._debouncer = Debouncer()
        self._init_table_state()

    def _init_table_state(self) -> None:
        self.generation = self.coordinator.generation
        self.config: Optional[TableConfiguration] = None
        self.query: Optional[QueryDescriptor] = None
        self.drafts = DraftReconciliationEngine(publish=self._publish)
        self.rows: List[Dict[str, Any]] = []
        self.columns: List[ColumnDescriptor] = []
        self.table_object_name: Optional[str] = None
        self.table_schema: Optional[ObjectSchema] = None
        self.capabilities = ObjectCapabilities()
        self.search_index: Optional[SearchIndex] = None
        self.search_text: Optional[str] = None
        self.sorted_by: Optional[str] = None
        self.sort_direction = "asc"
        self.selected_rows: List[Dict[str, Any]] = []
        self.first_selected_row: Optional[Dict[str, Any]] = None
        self.last_error: Optional[TableEngineError] = None
        self.warnings: List[str] = []
        self._all_rows: List[Dict[str, Any]] = []
        self._raw_query: Optional[str] = None

    # ---- Configuration ----

    async def load(self, config_name: str) -> bool:
        """Load a stored configuration by name and apply it."""
        if self.config_store is None:
            return self._fail("Configuration Error", ConfigurationNotFound("No configuration store available"))

        stored = await self.config_store.load_config(config_name)
        if stored is None or not stored.config_json:
            return self._fail(
                "Configuration Error",
                ConfigurationNotFound(f"Configuration '{config_name}' not found"),
            )
        return await self.apply_config(stored.config_json)

    async def apply_config(self, config: Union[TableConfiguration, Dict[str, Any], str]) -> bool:
        """
        Replace the configuration wholesale and run the load workflow.

        Returns:
            True when rows were fetched and applied
        """
        try:
            if isinstance(config, str):
                config = TableConfiguration.from_json(config)
            elif not isinstance(config, TableConfiguration):
                config = TableConfiguration.from_dict(config)
            self._resolve_external_components(config)
        except (ConfigurationParseError, UnknownComponentError) as e:
            return self._fail("Configuration Error", e)

        self.config = config
        self._raw_query = None
        self.sorted_by = None
        self.sort_direction = config.query_settings.default_sort_direction
        if config.query_settings.default_sort_field:
            self.sorted_by = config.query_settings.default_sort_field.replace(".", "_")
        self.search_text = None
        logger.info(f"Applied configuration for {config.object_name}")
        return await self._run_pipeline(compile_query(config))

    def _resolve_external_components(self, config: TableConfiguration) -> None:
        for action in config.actions.table + config.actions.overflow + config.actions.row:
            if action.type == "external-component":
                self.registry.resolve(action.target)

    # ---- Loading ----

    async def refresh(self) -> bool:
        """Restart the whole chain from the configuration or the last raw query."""
        if self._raw_query:
            return await self._run_pipeline(from_raw_query(self._raw_query))
        if self.config is None:
            logger.debug("Refresh requested before any configuration was applied")
            return False
        return await self._run_pipeline(compile_query(self.config))

    async def refresh_with_query(self, query: str) -> bool:
        """Reload from an externally supplied query, bypassing field-list assembly."""
        self._raw_query = query
        return await self._run_pipeline(from_raw_query(query))

    def reset(self) -> None:
        """Drop the configuration, tokens, rows and drafts; in-flight loads are superseded."""
        self._debouncer.cancel()
        self.coordinator.reset(self.coordinator.generation + 1)
        self._init_table_state()
        logger.info(f"Table {self.boundary} reset")

    def _initial_state(self, descriptor: QueryDescriptor, generation: int) -> LoadState:
        return {
            "generation": generation,
            "trace_id": str(uuid.uuid4()),
            "object_name": descriptor.object_name,
            "context_object_name": self.context_object_name,
            "record_id": self.record_id,
            "user_id": self.user_id,
            "built_query": descriptor.built_query,
            "resolved_query": None,
            "has_record_tokens": False,
            "fetch_fields": [],
            "warnings": [],
            "error": None,
            "error_title": None,
            "superseded": False,
            "result": None,
        }

    async def _run_pipeline(self, descriptor: QueryDescriptor) -> bool:
        generation = self.coordinator.generation + 1
        self.coordinator.reset(generation)
        self.generation = generation
        self.last_error = None

        out = await self.workflow.ainvoke(self._initial_state(descriptor, generation))

        if out.get("superseded") or not self.coordinator.is_current(generation):
            logger.info(f"Discarding results of superseded load generation {generation}")
            return False
        if out.get("error") is not None:
            return self._fail(out.get("error_title") or "Error", out["error"])

        self.query = finalize(descriptor, out["resolved_query"])
        self.warnings = list(out.get("warnings") or [])
        for warning in self.warnings:
            self.notifier.notify("Merge Field Warning", warning, variant="warning")
        return await self._apply_result(out["result"], descriptor, generation)

    async def _apply_result(self, cache: TableCache, descriptor: QueryDescriptor, generation: int) -> bool:
        object_name = cache.object_name or descriptor.object_name or (self.config and self.config.object_name)
        schema = await self._describe_table_object(object_name)
        if not self.coordinator.is_current(generation):
            logger.info(f"Discarding results of superseded load generation {generation}")
            return False

        config = self.config or TableConfiguration(object_name=object_name or "")
        self.table_object_name = object_name
        self.table_schema = schema
        self.capabilities = ObjectCapabilities.from_schema(schema)

        self.columns = reconcile_columns(
            cache.columns,
            config,
            schema=schema,
            boundary=self.boundary,
            object_name=object_name,
            row_actions_provider=self.row_actions,
        )
        self._all_rows = list(cache.rows)
        if self.sorted_by:
            self._all_rows.sort(key=_sort_key(self.sorted_by), reverse=self.sort_direction == "desc")
        self._rebuild_view()

        self.drafts.flush_cleared()
        self.selected_rows = [self._clean_row(row) for row in self.selected_rows]
        if self.first_selected_row is not None:
            self.first_selected_row = self._clean_row(self.first_selected_row)
        self._publish_lookup_config()

        logger.info(
            f"Table {self.boundary} loaded {len(self._all_rows)} row(s), {len(self.columns)} column(s) "
            f"(generation {generation})"
        )
        return True

    async def _describe_table_object(self, object_name: Optional[str]) -> Optional[ObjectSchema]:
        if not object_name:
            return None
        try:
            return await self.schema_service.describe(object_name)
        except Exception as e:
            message = "; ".join(reduce_errors(e)) or str(e)
            logger.warning(f"Describe of {object_name} failed: {message}")
            self.notifier.notify("Schema Lookup Error", message, variant="warning")
            return None

    def _fail(self, title: str, error: TableEngineError) -> bool:
        self.last_error = error
        message = "; ".join(reduce_errors(error)) or error.__class__.__name__
        logger.error(f"{title}: {message}")
        self.notifier.notify(title, message, variant="error", sticky=True)
        return False

    # ---- Sort and search ----

    @property
    def search_enabled(self) -> bool:
        return bool(self.config and self.config.display_settings.show_search)

    def _rebuild_view(self) -> None:
        if self.search_enabled:
            self.search_index = SearchIndex.build(self._all_rows)
            self.rows = self.search_index.filter(self.search_text)
        else:
            self.search_index = None
            self.rows = list(self._all_rows)

    def sort(self, field_name: str, direction: str = "asc") -> List[Dict[str, Any]]:
        """
        Sort the full row set, empty values first in ascending order, and
        re-apply the active search.
        """
        self.sorted_by = field_name
        self.sort_direction = "desc" if (direction or "").lower() == "desc" else "asc"
        self._all_rows = sorted(
            self._all_rows, key=_sort_key(field_name), reverse=self.sort_direction == "desc"
        )
        self._rebuild_view()
        return self.rows

    def apply_search(self, text: Optional[str]) -> List[Dict[str, Any]]:
        """Filter the displayed rows immediately."""
        self.search_text = text
        if self.search_index is not None:
            self.rows = self.search_index.filter(text)
        return self.rows

    def search(self, text: Optional[str]) -> asyncio.Task:
        """Debounced apply_search: rapid calls collapse into the last one."""
        return self._debouncer.call(self.apply_search, text)

    # ---- Inline editing ----

    def edit_cells(self, draft_values: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        self.drafts.apply_draft_values(draft_values)
        return self.drafts.draft_values

    async def save(self) -> SaveOutcome:
        """
        Persist every draft row concurrently and merge the outcome back.

        Row numbers in the error summary come from the displayed order at
        submission. Edits made while the save is in flight stay in draft.
        Any success triggers a refresh.
        """
        if not self.drafts.has_drafts:
            return SaveOutcome()

        snapshot = self.drafts.commit(self.rows)
        outcome = await update_draft_values(self.record_service, snapshot)
        self.drafts.reconcile(outcome, snapshot)
        if outcome.successes:
            await self.refresh()
        return outcome

    def cancel_drafts(self) -> List[Any]:
        return self.drafts.cancel()

    # ---- Selection ----

    def _clean_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Drop scalar keys the table object does not know (flattened aliases, formulas)."""
        known = self.table_schema.fields if self.table_schema is not None else {}
        if not known:
            return dict(row)
        return {
            key: value for key, value in row.items()
            if isinstance(value, (dict, list)) or key in known
        }

    def select_rows(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if rows:
            self.selected_rows = [self._clean_row(row) for row in rows]
            self.first_selected_row = self.selected_rows[0]
        self._publish(TOPIC_ROW_SELECTED, {"selectedRows": list(rows or [])})
        return self.selected_rows

    # ---- Actions ----

    def row_actions(self, row: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Actions offered on a row, computed when the row's menu opens."""
        configs = self.config.actions.row if self.config else []
        return [action.to_dict() for action in row_actions_for(configs, self.capabilities)]

    async def dispatch_row_action(
        self, action: Union[RowAction, Dict[str, Any]], row: Dict[str, Any]
    ) -> Optional[ActionOutcome]:
        if isinstance(action, dict):
            action = RowAction(
                label=action.get("label", ""),
                name=action.get("name", ""),
                target=action.get("target"),
                dialog_size=action.get("dialogSize"),
            )
        identity = settings.identity_field
        object_label = self.capabilities.label or ""

        if action.name == EDIT_ROW_ACTION:
            payload = {
                "recordId": row.get(identity),
                "objectName": self.table_object_name,
                "editableFields": sorted(self.config.editable_field_set) if self.config else [],
                "modalHeader": f"Edit {object_label} Record",
                "size": "large",
            }
            return await self._render(EDIT_FORM_COMPONENT, payload)
        if action.name == DELETE_ROW_ACTION:
            payload = {
                "recordId": row.get(identity),
                "recordName": row.get("Name") or row.get("CaseNumber") or row.get(identity),
                "modalHeader": f"Delete {object_label}",
                "size": "small",
            }
            return await self._render(DELETE_FORM_COMPONENT, payload)
        if action.name == FLOW_ACTION:
            return await self._open_flow(action.target, action.dialog_size, row)
        if action.name == COMPONENT_ACTION:
            return await self._open_component(action.target, action.label, action.dialog_size, row)

        logger.warning(f"Unknown row action '{action.name}'")
        return None

    async def dispatch_table_action(self, order: int) -> Optional[ActionOutcome]:
        return await self._dispatch_by_order(self.config.actions.table if self.config else [], order)

    async def dispatch_overflow_action(self, order: int) -> Optional[ActionOutcome]:
        return await self._dispatch_by_order(self.config.actions.overflow if self.config else [], order)

    async def _dispatch_by_order(self, actions: List[ActionConfig], order: int) -> Optional[ActionOutcome]:
        action = find_action_by_order(actions, order)
        if action is None:
            logger.debug(f"No action with order {order}")
            return None
        if action.type == "flow":
            return await self._open_flow(action.target, action.dialog_size)
        if action.type == "external-component":
            return await self._open_component(action.target, action.label, action.dialog_size)
        return None

    def _action_rows(self, row: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if row is not None:
            return [self._clean_row(row)]
        return [self._clean_row(r) for r in self.selected_rows]

    async def _open_flow(
        self, flow_name: Optional[str], dialog_size: Optional[str], row: Optional[Dict[str, Any]] = None
    ) -> Optional[ActionOutcome]:
        selected = self._action_rows(row)
        input_variables = []
        if selected:
            input_variables.append({"name": "SelectedRows", "type": "SObject", "value": selected})
            input_variables.append({"name": "FirstSelectedRow", "type": "SObject", "value": selected[0]})
        if self.boundary:
            input_variables.append({"name": "UniqueBoundary", "type": "String", "value": self.boundary})
        if self.record_id:
            input_variables.append({"name": "SourceRecordId", "type": "String", "value": self.record_id})

        payload = {
            "flowName": flow_name,
            "inputVariables": input_variables,
            "modalHeader": flow_name,
            "size": normalize_modal_size(dialog_size),
        }
        return await self._render(FLOW_COMPONENT, payload)

    async def _open_component(
        self,
        component_name: Optional[str],
        label: Optional[str],
        dialog_size: Optional[str],
        row: Optional[Dict[str, Any]] = None,
    ) -> Optional[ActionOutcome]:
        payload = {
            "uniqueBoundary": self.boundary,
            "selectedRows": self._action_rows(row),
            "sourceRecordId": self.record_id,
            "modalHeader": label or component_name,
            "size": normalize_modal_size(dialog_size),
        }
        return await self._render(component_name, payload)

    async def _render(self, component_name: Optional[str], payload: Dict[str, Any]) -> Optional[ActionOutcome]:
        try:
            component = self.registry.resolve(component_name)
        except UnknownComponentError as e:
            self._fail("Configuration Error", e)
            return None

        outcome = await component.render(self.boundary, payload)
        if outcome is not None and outcome.committed:
            logger.info(f"Component '{component_name}' committed a change ({outcome.status}), refreshing")
            await self.refresh()
        return outcome

    # ---- Message bus ----

    def _publish(self, key: str, value: Any = None) -> None:
        self.bus.publish(key, value, boundary=self.boundary)

    def _publish_lookup_config(self) -> None:
        if self.config and self.config.lookup_display_config:
            self._publish(TOPIC_LOOKUP_CONFIG_LOAD, {"lookupConfigs": self.config.lookup_payload()})

    def handle_editable_cell_rendered(self) -> None:
        """Republish lookup display configuration for cells rendered after the load."""
        self._publish_lookup_config()

    # ---- Derived view state ----

    @property
    def record_count_display(self) -> Optional[str]:
        if self.config and self.config.display_settings.show_record_count and self.rows:
            return f"({len(self.rows)})"
        return None

    @property
    def selection_mode(self) -> Dict[str, Any]:
        checkbox_type = self.config.display_settings.checkbox_type if self.config else "none"
        hide_checkbox = checkbox_type == "none"
        return {
            "hideCheckbox": hide_checkbox,
            "maxRowSelection": 1 if checkbox_type == "single" else settings.max_row_selection,
            "showRowNumberColumn": not hide_checkbox,
        }

    @property
    def show_refresh(self) -> bool:
        return bool(self.config and self.config.display_settings.show_refresh)

    @property
    def icon_name(self) -> Optional[str]:
        if self._icon_name == "auto":
            return self.table_schema.icon_name if self.table_schema is not None else None
        return self._icon_name
