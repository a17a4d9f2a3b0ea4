"""
Shared fixtures: in-memory collaborators for the table engine
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional

import pytest

from tablebuddy.engine.actions import ActionOutcome, ComponentRegistry
from tablebuddy.engine.orchestrator import TableOrchestrator
from tablebuddy.models.schema import ObjectSchema, TableCache
from tablebuddy.services.message_bus import MessageBus
from tablebuddy.services.protocols import StoredConfiguration
from tablebuddy.sql.analysis import SqlglotQueryValidator, extract_object_name

ACCOUNT_ID = "001000000000001AAA"
USER_ID = "005000000000001AAA"

CONTACT_ROWS = [
    {
        "Id": "003000000000001AAA",
        "Name": "Ann Lee",
        "Email": "ann@acme.com",
        "Title": "CTO",
        "Account": {"Id": ACCOUNT_ID, "Name": "Acme"},
    },
    {
        "Id": "003000000000002AAA",
        "Name": "Bob Stone",
        "Email": "bob@zeta.io",
        "Title": None,
        "Account": {"Id": "001000000000002AAA", "Name": "Zeta"},
    },
    {
        "Id": "003000000000003AAA",
        "Name": "Cara Diaz",
        "Email": "cara@acme.com",
        "Title": "VP Sales",
        "Account": {"Id": ACCOUNT_ID, "Name": "Acme"},
    },
]

CONTACT_COLUMNS = [
    {"fieldName": "Name", "label": "Full Name", "type": "customName", "sortable": False},
    {"fieldName": "Email", "label": "Email", "type": "email"},
    {"fieldName": "Title", "label": "Title", "type": "customPicklist", "typeAttributes": {"columnName": "Title"}},
    {"fieldName": "Account_Name", "label": "Account Name", "type": "customLookup"},
    {"fieldName": "RecordTypeId", "label": "Record Type ID", "type": "text"},
]

ACCOUNT_ROWS = [
    {"Id": ACCOUNT_ID, "Name": "Acme", "Industry": "Tech"},
    {"Id": "001000000000002AAA", "Name": "Zeta", "Industry": "Tech"},
]

ACCOUNT_COLUMNS = [
    {"fieldName": "Name", "label": "Account Name", "type": "text"},
]


def contact_schema() -> ObjectSchema:
    return ObjectSchema.model_validate({
        "objectName": "Contact",
        "label": "Contact",
        "updateable": True,
        "deletable": False,
        "iconUrl": "https://example.com/img/icon/t4v35/standard/contact_120.png",
        "fields": {
            "Id": {"dataType": "Id"},
            "Name": {"dataType": "String", "updateable": True},
            "Email": {"dataType": "Email", "updateable": True},
            "Title": {"dataType": "Picklist", "updateable": True},
            "AccountId": {"dataType": "Reference"},
            "Department": {"dataType": "String"},
            "NumberOfReports__c": {"dataType": "Double"},
        },
    })


def account_schema() -> ObjectSchema:
    return ObjectSchema.model_validate({
        "objectName": "Account",
        "label": "Account",
        "updateable": True,
        "deletable": True,
        "iconUrl": "https://example.com/img/icon/t4v35/standard/account_120.png",
        "fields": {
            "Id": {"dataType": "Id"},
            "Name": {"dataType": "String"},
            "Industry": {"dataType": "Picklist"},
            "NumberOfEmployees": {"dataType": "Integer"},
            "IsPartner": {"dataType": "Boolean"},
            "Rating__c": {"dataType": "Geolocation"},
        },
    })


class FakeSchemaService:
    """Describe results by object name; describes of gated objects wait for the gate"""

    def __init__(self, schemas: Optional[Dict[str, ObjectSchema]] = None):
        self.schemas = schemas if schemas is not None else {
            "Contact": contact_schema(),
            "Account": account_schema(),
        }
        self.calls: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.gated_objects: set = set()

    async def describe(self, object_name: str) -> ObjectSchema:
        self.calls.append(object_name)
        if self.gate is not None and object_name in self.gated_objects:
            await self.gate.wait()
        if object_name not in self.schemas:
            raise ValueError(f"Unknown object {object_name}")
        return self.schemas[object_name]


class FakeRecordService:
    """Host record values plus scripted update failures; updates wait for the gate when set"""

    def __init__(self, records: Optional[Dict[str, Dict[str, Any]]] = None):
        self.records = records if records is not None else {
            ACCOUNT_ID: {
                "Id": ACCOUNT_ID,
                "Name": "Acme",
                "Industry": "Tech",
                "NumberOfEmployees": 250,
                "IsPartner": True,
            },
        }
        self.failures: Dict[str, Exception] = {}
        self.error_payloads: Dict[str, Dict[str, Any]] = {}
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[str] = []
        self.field_requests: List[List[str]] = []
        self.updates: List[tuple] = []
        self.deleted: List[str] = []

    async def get_fields(self, record_id: str, field_names: List[str]) -> Dict[str, Any]:
        self.field_requests.append(list(field_names))
        record = self.records[record_id]
        return {name: record.get(name) for name in field_names}

    async def update_record(self, record_id: str, field_patch: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append(record_id)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if record_id in self.failures:
            raise self.failures[record_id]
        if record_id in self.error_payloads:
            return self.error_payloads[record_id]
        self.updates.append((record_id, dict(field_patch)))
        return {"id": record_id}

    async def delete_record(self, record_id: str) -> None:
        self.deleted.append(record_id)


class FakeQueryService:
    """Validates with sqlglot and serves canned tables by FROM object"""

    def __init__(self, tables: Optional[Dict[str, Dict[str, Any]]] = None):
        self.tables = tables if tables is not None else {
            "Contact": {"columns": CONTACT_COLUMNS, "rows": CONTACT_ROWS},
            "Account": {"columns": ACCOUNT_COLUMNS, "rows": ACCOUNT_ROWS},
        }
        self.validator = SqlglotQueryValidator()
        self.validated: List[str] = []
        self.executed: List[str] = []
        self.fail_execute: Optional[Exception] = None

    async def validate(self, query: str) -> Optional[str]:
        self.validated.append(query)
        return self.validator.check(query)

    async def execute(self, query: str) -> TableCache:
        self.executed.append(query)
        if self.fail_execute is not None:
            raise self.fail_execute
        object_name = extract_object_name(query)
        table = self.tables[object_name]
        return TableCache(
            object_name=object_name,
            columns=copy.deepcopy(table["columns"]),
            rows=copy.deepcopy(table["rows"]),
        )


class RecordingNotifier:
    def __init__(self):
        self.notifications: List[Dict[str, Any]] = []

    def notify(self, title: str, message: str = "", variant: str = "info", sticky: bool = False) -> None:
        self.notifications.append(
            {"title": title, "message": message, "variant": variant, "sticky": sticky}
        )

    def titles(self, variant: Optional[str] = None) -> List[str]:
        return [n["title"] for n in self.notifications if variant is None or n["variant"] == variant]


class RecordingComponent:
    """Presentation component returning a fixed outcome"""

    def __init__(self, status: Optional[str] = None):
        self.status = status
        self.calls: List[tuple] = []

    async def render(self, boundary, payload):
        self.calls.append((boundary, payload))
        return ActionOutcome(status=self.status)


class FakeConfigStore:
    def __init__(self, configs: Optional[Dict[str, str]] = None):
        self.configs = configs or {}

    async def load_config(self, name):
        if name not in self.configs:
            return None
        return StoredConfiguration(id=f"cfg-{name}", name=name, config_json=self.configs[name])


@pytest.fixture
def schema_service():
    return FakeSchemaService()


@pytest.fixture
def record_service():
    return FakeRecordService()


@pytest.fixture
def query_service():
    return FakeQueryService()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def published(bus):
    """Every message published on the table-1 boundary, in order"""
    messages = []
    bus.subscribe(messages.append, boundary="table-1")
    return messages


@pytest.fixture
def registry():
    return ComponentRegistry()


@pytest.fixture
def make_table(schema_service, record_service, query_service, notifier, bus, registry):
    """Factory for orchestrators on an Account record page"""

    def _make(**kwargs) -> TableOrchestrator:
        options = {
            "record_id": ACCOUNT_ID,
            "context_object_name": "Account",
            "user_id": USER_ID,
            "boundary": "table-1",
        }
        options.update(kwargs)
        return TableOrchestrator(
            schema_service,
            record_service,
            query_service,
            message_bus=bus,
            notifier=notifier,
            registry=registry,
            **options,
        )

    return _make


@pytest.fixture
def contact_config():
    return {
        "objectName": "Contact",
        "fields": [
            {"fieldName": "Name", "label": "Contact", "visible": True, "sortable": True},
            {"fieldName": "Email", "visible": True, "width": 220},
            {"fieldName": "Title", "visible": True},
            {"fieldName": "Account.Name", "label": "Company", "visible": True},
        ],
        "querySettings": {
            "whereClause": "AccountId = $recordId",
            "limit": 50,
            "defaultSortField": "Name",
            "defaultSortDirection": "asc",
        },
        "displaySettings": {
            "showSearch": True,
            "showRecordCount": True,
            "checkboxType": "multi",
            "editableFields": ["Name", "Title"],
        },
        "actions": {
            "row": [
                {"label": "Edit", "type": "builtin", "name": "edit_row", "order": 1},
                {"label": "Delete", "type": "builtin", "name": "delete_row", "order": 2},
                {"label": "Escalate", "type": "flow", "flowApiName": "Escalate_Contact", "dialogSize": "Large", "order": 3},
            ],
            "table": [
                {"label": "New Case", "type": "flow", "flowApiName": "New_Case", "order": 2},
            ],
        },
        "lookupDisplayConfig": {
            "Account": {"titleField": "Name", "subtitleField": "Industry", "iconName": "standard:account"},
        },
    }
