"""Append application records to a destination sheet.

Every append re-reads the live header row, so columns added, removed or
reordered by hand in the sheet are picked up on the next submission. The
header is repaired in place: missing required labels are added to the right
of whatever is already there, existing columns are never moved.
"""
import logging
from datetime import datetime, timezone

from .errors import HeaderReconciliationFailure, RemoteReadError, RemoteStoreError
from .models import AppendResult, HeaderMapping, HeaderState
from .schemas import FIELD_BY_HEADER, REQUIRED_HEADERS, TIMESTAMP_HEADER

logger = logging.getLogger(__name__)


def utc_timestamp():
    """Current time as ISO-8601 UTC with milliseconds, e.g. 2024-05-01T09:30:00.000Z"""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _label_key(label):
    return str(label).strip().casefold()


def map_headers(existing, required=REQUIRED_HEADERS):
    """Locate each required label in an existing header row.

    Labels are matched trimmed and case-insensitively; the first occurrence
    wins. Labels not found map to None and total_columns is the width of the
    existing row.
    """
    positions = {}
    for index, label in enumerate(existing):
        positions.setdefault(_label_key(label), index)

    columns = {label: positions.get(_label_key(label)) for label in required}
    return HeaderMapping(columns, len(existing))


def extend_mapping(mapping):
    """Give every absent label a new column to the right, in required order"""
    missing = mapping.missing()
    for offset, label in enumerate(missing):
        mapping.columns[label] = mapping.total_columns + offset
    mapping.total_columns += len(missing)
    return missing


def build_row(mapping, record, timestamp):
    row = [""] * mapping.total_columns
    for label, index in mapping.columns.items():
        if index is None:
            continue
        if label == TIMESTAMP_HEADER:
            row[index] = timestamp
            continue
        attr = FIELD_BY_HEADER.get(label)
        value = getattr(record, attr, "") if attr else ""
        row[index] = "" if value is None else str(value)
    return row


class RowWriter:
    """Writes one record per call to a tabular store, repairing the header row first"""

    def __init__(self, store, tab_name=None, default_tab_name="Sheet1", clock=utc_timestamp):
        self.store = store
        self.tab_name = tab_name or None
        self.default_tab_name = default_tab_name
        self.clock = clock

    def resolve_tab(self, sheet_id):
        if self.tab_name:
            return self.tab_name
        try:
            return self.store.first_tab_name(sheet_id)
        except RemoteStoreError as e:
            logger.warning("Could not look up tabs of %s, using %r: %s", sheet_id, self.default_tab_name, e)
            return self.default_tab_name

    def reconcile_headers(self, sheet_id, tab_name):
        """Make sure row 1 carries every required label and return the column mapping.

        Raises HeaderReconciliationFailure when the header cannot be read or
        written; the exception carries the mapping to fall back on.
        """
        try:
            existing = self.store.get_first_row(sheet_id, tab_name)
        except RemoteReadError as e:
            raise HeaderReconciliationFailure(f"reading header of {sheet_id}/{tab_name}: {e}") from e

        if not existing:
            mapping = HeaderMapping.identity(REQUIRED_HEADERS)
            self._write_header(sheet_id, tab_name, list(REQUIRED_HEADERS), 1, mapping)
            logger.info("Headers created on %s/%s", sheet_id, tab_name)
            return mapping, HeaderState.WRITTEN

        mapping = map_headers(existing)
        missing = extend_mapping(mapping)
        if not missing:
            logger.debug("Headers already complete on %s/%s", sheet_id, tab_name)
            return mapping, HeaderState.COMPLETE

        self._write_header(sheet_id, tab_name, missing, len(existing) + 1, mapping)
        logger.info("Added missing headers %s on %s/%s", ", ".join(missing), sheet_id, tab_name)
        return mapping, HeaderState.EXTENDED

    def _write_header(self, sheet_id, tab_name, labels, start_column, mapping):
        try:
            self.store.set_row(sheet_id, tab_name, 1, labels, start_column=start_column)
        except RemoteStoreError as e:
            raise HeaderReconciliationFailure(
                f"writing header of {sheet_id}/{tab_name}: {e}", mapping=mapping
            ) from e

    def append(self, sheet_id, record):
        tab_name = self.resolve_tab(sheet_id)

        try:
            mapping, state = self.reconcile_headers(sheet_id, tab_name)
        except HeaderReconciliationFailure as e:
            mapping = e.mapping or HeaderMapping.identity(REQUIRED_HEADERS)
            state = HeaderState.FALLBACK
            logger.warning("Header reconciliation failed, appending with default columns: %s", e)

        row = build_row(mapping, record, self.clock())

        # RemoteWriteError propagates to the caller
        rows_added = self.store.append_row(sheet_id, tab_name, row)
        if rows_added != 1:
            logger.warning("Expected 1 row added to %s/%s, store reported %s", sheet_id, tab_name, rows_added)
        else:
            logger.info("Data appended successfully: %s rows added to %s/%s", rows_added, sheet_id, tab_name)

        return AppendResult(rows_added=rows_added, tab_name=tab_name, header_state=state)
