"""
Reconciliation engine.

Reconciles the data rows of a grid against persisted records of one entity
kind, keyed by a normalized natural key:

1. All-empty rows are ignored (not counted).
2. Empty natural key -> skipped.
3. Key already seen earlier in the file -> skipped.
4. Typed fields / cross-references invalid -> skipped, whole row dropped.
5. Unknown key -> insert. On insert failure the key is re-queried; if the
   record now exists the row falls through to the update path, else skipped.
6. Known key -> sparse patch of present-and-different fields. Empty patch ->
   unchanged, otherwise updated.

Row problems never abort the run; only structural problems (no header, no
mandatory column) raise.
"""

from abc import ABC, abstractmethod
from typing import Optional

import structlog

from models.imports import (
    CanonicalField,
    HeaderMapping,
    ImportKind,
    ImportResult,
    RowOutcome,
    RowStatus,
)
from parsers.field_mapper import build_header_mapping, cell_for, require_field
from parsers.grid_reader import RawGrid
from parsers.header_detector import find_first_non_empty_row
from services.natural_key_index import NaturalKeyIndex
from utils.text_utils import is_blank_row

logger = structlog.get_logger(__name__)

PERSIST_FAILED = "failed to persist"
DUPLICATE_IN_FILE = "duplicate in file"


class RowRejected(Exception):
    """A row failed validation. The message is reported back verbatim."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ReconciliationTarget(ABC):
    """
    One entity kind the engine can reconcile into.

    Subclasses own the store access and the field rules; the engine owns the
    row loop, de-duplication and the insert/re-query/update sequence.
    """

    kind: ImportKind
    key_field: CanonicalField

    @abstractmethod
    def normalize_key(self, raw: Optional[str]) -> str:
        """Natural key normalization for this kind."""

    @abstractmethod
    def load_index(self) -> NaturalKeyIndex:
        """Load every existing record once, before the row loop."""

    @abstractmethod
    def parse_row(self, row: list[str], mapping: HeaderMapping) -> dict:
        """
        Typed, present (non-blank) field values of one row.

        Raises:
            RowRejected: A field is invalid or a reference is unresolved
        """

    @abstractmethod
    def build_insert(self, raw_key: str, values: dict) -> dict:
        """Payload for a brand new record."""

    @abstractmethod
    def compute_patch(self, existing: dict, values: dict) -> dict:
        """Fields present in `values` that differ from `existing`."""

    @abstractmethod
    def insert(self, payload: dict) -> dict:
        """Insert and return the stored record. Store errors propagate."""

    @abstractmethod
    def update(self, record_id: int, patch: dict) -> dict:
        """Apply a patch and return the stored record. Store errors propagate."""

    @abstractmethod
    def find_by_key(self, raw_key: str) -> Optional[dict]:
        """Fresh store lookup for one key (used after an insert failure)."""

    def empty_key_message(self) -> str:
        return f"{self.key_field.value} is empty"

    def after_write(self, record: dict, previous: Optional[dict]) -> None:
        """Hook run after a successful create (previous=None) or update."""


class ReconciliationEngine:
    """Runs one grid through one target. Stateless between runs."""

    def run(self, grid: RawGrid, target: ReconciliationTarget) -> ImportResult:
        """
        Reconcile every data row of `grid`.

        Raises:
            EmptyInputError: Grid has no rows
            MissingHeaderError: No row has content
            MissingRequiredHeaderError: Mandatory column not mapped
        """
        header_index = find_first_non_empty_row(grid.rows)
        mapping = build_header_mapping(grid.row(header_index), target.kind)
        require_field(mapping, target.kind)

        index = target.load_index()
        result = ImportResult(kind=target.kind)
        seen: set[str] = set()

        logger.info(
            "import_started",
            kind=target.kind.value,
            header_row=header_index + 1,
            data_rows=len(grid) - header_index - 1,
            existing=len(index),
        )

        for offset, cells in enumerate(grid.rows[header_index + 1:]):
            row_number = header_index + 2 + offset
            row = list(cells)
            if is_blank_row(row):
                continue

            outcome = self._reconcile_row(row, row_number, mapping, index, seen, target)
            result.record(outcome)
            if outcome.is_error:
                logger.debug(
                    "row_skipped",
                    kind=target.kind.value,
                    row=row_number,
                    key=outcome.key,
                    reason=outcome.message,
                )

        logger.info(
            "import_finished",
            kind=target.kind.value,
            total_rows=result.total_rows,
            created=result.created,
            updated=result.updated,
            skipped=result.skipped,
            unchanged=result.unchanged,
        )
        return result

    def _reconcile_row(
        self,
        row: list[str],
        row_number: int,
        mapping: HeaderMapping,
        index: NaturalKeyIndex,
        seen: set[str],
        target: ReconciliationTarget,
    ) -> RowOutcome:
        raw_key = cell_for(row, mapping, target.key_field)
        key = target.normalize_key(raw_key)
        if not key:
            return RowOutcome(row_number, RowStatus.SKIPPED, message=target.empty_key_message())

        if key in seen:
            return RowOutcome(row_number, RowStatus.SKIPPED, key=raw_key, message=DUPLICATE_IN_FILE)
        seen.add(key)

        try:
            values = target.parse_row(row, mapping)
        except RowRejected as e:
            return RowOutcome(row_number, RowStatus.SKIPPED, key=raw_key, message=e.message)

        existing = index.get(raw_key)
        if existing is None:
            return self._create(row_number, raw_key, values, index, target)
        return self._update(row_number, raw_key, existing, values, index, target)

    def _create(
        self,
        row_number: int,
        raw_key: str,
        values: dict,
        index: NaturalKeyIndex,
        target: ReconciliationTarget,
    ) -> RowOutcome:
        try:
            record = target.insert(target.build_insert(raw_key, values))
        except Exception as e:
            logger.warning(
                "insert_failed_requerying",
                kind=target.kind.value,
                row=row_number,
                key=raw_key,
                error=str(e),
            )
            try:
                found = target.find_by_key(raw_key)
            except Exception as requery_error:
                logger.error(
                    "requery_failed",
                    kind=target.kind.value,
                    row=row_number,
                    key=raw_key,
                    error=str(requery_error),
                )
                found = None

            if found is None:
                return RowOutcome(row_number, RowStatus.SKIPPED, key=raw_key, message=PERSIST_FAILED)

            index.put(raw_key, found)
            return self._update(row_number, raw_key, found, values, index, target)

        index.put(raw_key, record)
        target.after_write(record, None)
        return RowOutcome(row_number, RowStatus.CREATED, key=raw_key)

    def _update(
        self,
        row_number: int,
        raw_key: str,
        existing: dict,
        values: dict,
        index: NaturalKeyIndex,
        target: ReconciliationTarget,
    ) -> RowOutcome:
        patch = target.compute_patch(existing, values)
        if not patch:
            return RowOutcome(row_number, RowStatus.UNCHANGED, key=raw_key)

        try:
            target.update(existing["id"], patch)
        except Exception as e:
            logger.error(
                "update_failed",
                kind=target.kind.value,
                row=row_number,
                key=raw_key,
                error=str(e),
            )
            return RowOutcome(row_number, RowStatus.SKIPPED, key=raw_key, message=PERSIST_FAILED)

        merged = {**existing, **patch}
        index.put(raw_key, merged)
        target.after_write(merged, existing)
        return RowOutcome(row_number, RowStatus.UPDATED, key=raw_key)
