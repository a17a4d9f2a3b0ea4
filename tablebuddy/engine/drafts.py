"""
Draft reconciliation

Pending cell edits are kept per row identity as the superposition of every
uncommitted field change for that row. A save snapshots the drafts together
with the displayed row order, and its outcome is merged back: failed rows
keep their drafts and gain an error, successful rows leave the draft set and
wait for the next successful refresh before their cells are cleared.
"""

from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from loguru import logger

from tablebuddy.config.constants import TOPIC_CANCEL_DRAFT, TOPIC_SET_DRAFT_VALUE
from tablebuddy.config.settings import settings
from tablebuddy.models.table import CommitSnapshot, RowError, SaveOutcome, TableError

Publisher = Callable[[str, Any], None]


class DraftReconciliationEngine:
    """Owns the draft entries, row errors and pending clearance of one table"""

    def __init__(self, publish: Optional[Publisher] = None, identity_field: Optional[str] = None):
        self.identity_field = identity_field or settings.identity_field
        self._publish = publish
        self._drafts: Dict[Any, Dict[str, Any]] = {}
        self._errors: Dict[Any, RowError] = {}
        self._table_error: Optional[TableError] = None
        self._pending_clearance: List[Any] = []

    # ---- Read-only views ----

    @property
    def drafts(self) -> Mapping[Any, Mapping[str, Any]]:
        return MappingProxyType({row_id: MappingProxyType(dict(patch)) for row_id, patch in self._drafts.items()})

    @property
    def errors(self) -> Mapping[Any, RowError]:
        return MappingProxyType(dict(self._errors))

    @property
    def table_error(self) -> Optional[TableError]:
        return self._table_error

    @property
    def pending_clearance(self) -> List[Any]:
        return list(self._pending_clearance)

    @property
    def draft_values(self) -> List[Dict[str, Any]]:
        """Drafts as the grid renders them: one dict per row, identity included."""
        return [{self.identity_field: row_id, **patch} for row_id, patch in self._drafts.items()]

    @property
    def has_drafts(self) -> bool:
        return bool(self._drafts)

    # ---- Editing ----

    def apply_edit(self, row_id: Any, field_patch: Dict[str, Any]) -> None:
        """
        Merge a field patch into the row's draft (later values win per field).

        Examples:
            >>> engine = DraftReconciliationEngine()
            >>> engine.apply_edit("a1", {"A": 1})
            >>> engine.apply_edit("a1", {"B": 2})
            >>> dict(engine.drafts["a1"])
            {'A': 1, 'B': 2}
        """
        patch = {k: v for k, v in field_patch.items() if k != self.identity_field}
        if not patch:
            return
        self._drafts.setdefault(row_id, {}).update(patch)
        if row_id in self._pending_clearance:
            self._pending_clearance.remove(row_id)

    def apply_draft_values(self, draft_values: Iterable[Dict[str, Any]]) -> None:
        """Apply grid draft values, each carrying its row identity."""
        for draft in draft_values:
            row_id = draft.get(self.identity_field)
            if row_id is None:
                logger.warning(f"Ignoring draft without {self.identity_field}: {draft}")
                continue
            self.apply_edit(row_id, draft)

    def discard_field(self, row_id: Any, field_name: str) -> None:
        """Drop one pending field; the row leaves the draft set with its last field."""
        patch = self._drafts.get(row_id)
        if patch is None:
            return
        patch.pop(field_name, None)
        if not patch:
            del self._drafts[row_id]
            self._errors.pop(row_id, None)

    # ---- Saving ----

    def commit(self, current_rows: List[Dict[str, Any]]) -> CommitSnapshot:
        """
        Snapshot the drafts for persistence.

        Row numbers are one-based positions in the currently displayed order
        (0 for a row that is not displayed). Drafts are not modified.
        """
        positions = {}
        for index, row in enumerate(current_rows):
            positions.setdefault(row.get(self.identity_field), index + 1)

        record_inputs = []
        row_number_map = {}
        patches = {}
        for row_id, patch in self._drafts.items():
            record_inputs.append({"fields": {self.identity_field: row_id, **patch}})
            row_number_map[row_id] = positions.get(row_id, 0)
            patches[row_id] = dict(patch)
        return CommitSnapshot(record_inputs=record_inputs, row_number_map=row_number_map, patches=patches)

    def _settle(self, row_id: Any, submitted: Optional[Dict[str, Any]]) -> bool:
        """
        Drop the fields a successful save persisted.

        Fields edited again after the snapshot (or added since) stay in the
        draft. Returns True when nothing is left for the row.
        """
        patch = self._drafts.get(row_id)
        if patch is None:
            return True
        if submitted is None:
            del self._drafts[row_id]
            return True
        for field_name, value in submitted.items():
            if field_name in patch and patch[field_name] == value:
                del patch[field_name]
        if patch:
            logger.debug(f"Row {row_id} was edited during save, keeping {sorted(patch)} in draft")
            return False
        del self._drafts[row_id]
        return True

    def reconcile(self, outcome: SaveOutcome, snapshot: Optional[CommitSnapshot] = None) -> None:
        """
        Merge a save outcome back into the draft and error state.

        With the snapshot the save was submitted from, only the submitted
        field values are cleared from successful rows; without it the whole
        row draft is cleared.
        """
        for row_id in outcome.successes:
            submitted = snapshot.patches.get(row_id) if snapshot is not None else None
            self._errors.pop(row_id, None)
            if not self._settle(row_id, submitted):
                continue
            if row_id not in self._pending_clearance:
                self._pending_clearance.append(row_id)

        for row_id, row_error in outcome.row_errors.items():
            if row_id in self._drafts:
                self._errors[row_id] = row_error

        self._table_error = outcome.summary if outcome.has_errors else None

        logger.info(
            f"Reconciled save: {len(outcome.successes)} succeeded, {len(outcome.row_errors)} failed, "
            f"{len(self._drafts)} row(s) still in draft"
        )

        if not self._drafts:
            self._errors = {}
            self._table_error = None

    def flush_cleared(self) -> List[Any]:
        """
        Clear the cells of rows saved before the latest refresh.

        Returns:
            The row ids that were cleared
        """
        if not self._pending_clearance:
            return []
        row_ids = list(self._pending_clearance)
        self._pending_clearance = []
        self._notify(TOPIC_SET_DRAFT_VALUE, {"rowKeysToNull": row_ids})
        if not self._drafts:
            self._errors = {}
            self._table_error = None
        return row_ids

    def cancel(self, row_ids: Optional[Iterable[Any]] = None) -> List[Any]:
        """
        Discard the drafts of the given rows (all rows when omitted),
        whatever their save state.
        """
        row_ids = list(self._drafts) if row_ids is None else list(row_ids)
        for row_id in row_ids:
            self._drafts.pop(row_id, None)
            self._errors.pop(row_id, None)
            if row_id in self._pending_clearance:
                self._pending_clearance.remove(row_id)

        self._notify(TOPIC_SET_DRAFT_VALUE, {"rowKeysToNull": row_ids})
        self._notify(TOPIC_CANCEL_DRAFT, None)

        if not self._drafts:
            self._errors = {}
            self._table_error = None
            self._pending_clearance = []
        return row_ids

    def _notify(self, key: str, value: Any) -> None:
        if self._publish is not None:
            self._publish(key, value)
