"""
Row, table and overflow actions

Row actions are computed per row from the configured actions and the table
object's capabilities. Table and overflow actions are dispatched by their
declared order. Presentation components (edit and delete forms, flows,
external components) are resolved through a registry by name.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from loguru import logger

from tablebuddy.config.constants import (
    COMMITTED_STATUSES,
    COMPONENT_ACTION,
    DEFAULT_MODAL_SIZE,
    DELETE_ROW_ACTION,
    EDIT_ROW_ACTION,
    FLOW_ACTION,
    MODAL_SIZES,
)
from tablebuddy.models.config import ActionConfig
from tablebuddy.models.schema import ObjectSchema
from tablebuddy.utils.errors import UnknownComponentError


def normalize_modal_size(dialog_size: Optional[str]) -> str:
    """
    Map a requested dialog size onto small/medium/large.

    Examples:
        >>> normalize_modal_size("LARGE")
        'large'
        >>> normalize_modal_size("huge")
        'medium'
    """
    if not dialog_size:
        return DEFAULT_MODAL_SIZE
    size = str(dialog_size).lower()
    return size if size in MODAL_SIZES else DEFAULT_MODAL_SIZE


@dataclass(frozen=True)
class ObjectCapabilities:
    """What the current user may do with records of the table object"""
    updateable: bool = False
    deletable: bool = False
    label: Optional[str] = None

    @classmethod
    def from_schema(cls, schema: Optional[ObjectSchema]) -> "ObjectCapabilities":
        if schema is None:
            return cls()
        return cls(updateable=schema.updateable, deletable=schema.deletable, label=schema.label)


@dataclass
class RowAction:
    label: str
    name: str
    target: Optional[str] = None
    dialog_size: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"label": self.label, "name": self.name}
        if self.target is not None:
            data["target"] = self.target
        if self.dialog_size is not None:
            data["dialogSize"] = self.dialog_size
        return data


def row_actions_for(configs: List[ActionConfig], capabilities: ObjectCapabilities) -> List[RowAction]:
    """
    Actions offered on a row.

    Built-in edit is offered only when the object is updateable and built-in
    delete only when it is deletable. Flow and external-component actions are
    always offered with their target and normalized dialog size.
    """
    actions = []
    for config in configs:
        if config.type == "builtin":
            if config.name == EDIT_ROW_ACTION and capabilities.updateable:
                actions.append(RowAction(label=config.label, name=EDIT_ROW_ACTION))
            elif config.name == DELETE_ROW_ACTION and capabilities.deletable:
                actions.append(RowAction(label=config.label, name=DELETE_ROW_ACTION))
        elif config.type == "flow":
            actions.append(RowAction(
                label=config.label,
                name=FLOW_ACTION,
                target=config.target,
                dialog_size=normalize_modal_size(config.dialog_size),
            ))
        elif config.type == "external-component":
            actions.append(RowAction(
                label=config.label,
                name=COMPONENT_ACTION,
                target=config.target,
                dialog_size=normalize_modal_size(config.dialog_size),
            ))
    return actions


def find_action_by_order(actions: List[ActionConfig], order: int) -> Optional[ActionConfig]:
    """Look an action up by its declared order, not its list position."""
    for action in actions:
        if action.order == order:
            return action
    return None


@dataclass
class ActionOutcome:
    """Result returned by a presentation component"""
    status: Optional[str] = None
    result: Any = None

    @property
    def committed(self) -> bool:
        return (self.status or "").lower() in COMMITTED_STATUSES


class PresentationComponent(Protocol):
    async def render(self, boundary: Optional[str], payload: Dict[str, Any]) -> Optional[ActionOutcome]: ...


@dataclass
class ComponentRegistry:
    """Presentation components by name"""
    components: Dict[str, PresentationComponent] = field(default_factory=dict)

    def register(self, name: str, component: PresentationComponent) -> None:
        self.components[name] = component
        logger.debug(f"Registered presentation component '{name}'")

    def resolve(self, name: Optional[str]) -> PresentationComponent:
        component = self.components.get(name or "")
        if component is None:
            raise UnknownComponentError(f"No presentation component registered as '{name}'")
        return component

    def __contains__(self, name: str) -> bool:
        return name in self.components
