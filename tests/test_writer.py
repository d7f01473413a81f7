import logging
import re

import pytest

from app.errors import RemoteWriteError
from app.models import HeaderState
from app.schemas import REQUIRED_HEADERS
from app.writer import RowWriter, map_headers, utc_timestamp

from conftest import FROZEN_TIMESTAMP


def test_empty_tab_gets_full_header_and_row(store, writer, record):
    store.sheets["S1"] = {"Sheet1": []}

    result = writer.append("S1", record)

    rows = store.sheets["S1"]["Sheet1"]
    assert rows[0] == REQUIRED_HEADERS
    assert rows[1] == [FROZEN_TIMESTAMP, "Jane", "j@x.com", "123", "A", "Thailand",
                       "", "visit", "", "high", ""]
    assert result.rows_added == 1
    assert result.tab_name == "Sheet1"
    assert result.header_state == HeaderState.WRITTEN


def test_missing_tab_uses_default_name(store, writer, record):
    # No tabs known: tab lookup fails and the header read finds no range
    result = writer.append("S1", record)

    assert result.tab_name == "Sheet1"
    assert store.sheets["S1"]["Sheet1"][0] == REQUIRED_HEADERS
    assert len(store.sheets["S1"]["Sheet1"]) == 2


def test_configured_tab_skips_lookup(store, record):
    writer = RowWriter(store, tab_name="Applications", clock=lambda: FROZEN_TIMESTAMP)

    result = writer.append("S1", record)

    assert result.tab_name == "Applications"
    assert not store.writes("first_tab_name")


def test_reordered_complete_header_is_not_rewritten(store, writer, record):
    header = list(reversed(REQUIRED_HEADERS)) + ["Internal Status"]
    store.sheets["S1"] = {"Leads": [header]}

    result = writer.append("S1", record)

    assert not store.writes("set_row")
    assert result.header_state == HeaderState.COMPLETE
    row = store.sheets["S1"]["Leads"][1]
    assert len(row) == len(header)
    assert row[header.index("Name")] == "Jane"
    assert row[header.index("Email")] == "j@x.com"
    assert row[header.index("Desired Country")] == "Thailand"
    assert row[header.index("Timestamp")] == FROZEN_TIMESTAMP
    assert row[header.index("Internal Status")] == ""


def test_partial_header_is_extended_in_required_order(store, writer, record):
    header = ["Email", "Notes", "Name", "Timestamp"]
    missing = [h for h in REQUIRED_HEADERS if h not in header]
    store.sheets["S1"] = {"Sheet1": [list(header)]}

    result = writer.append("S1", record)

    assert missing == ["Phone", "Address", "Desired Country", "Other Country Interested",
                       "Visa Type", "Degree Level", "Urgency", "Additional Notes"]
    (call,) = store.writes("set_row")
    assert call[3:] == (1, missing, len(header) + 1)

    new_header = store.sheets["S1"]["Sheet1"][0]
    assert new_header[:4] == header
    assert new_header[4:] == missing
    assert result.header_state == HeaderState.EXTENDED

    row = store.sheets["S1"]["Sheet1"][1]
    assert row[:4] == ["j@x.com", "", "Jane", FROZEN_TIMESTAMP]
    assert row[new_header.index("Urgency")] == "high"
    assert row[new_header.index("Visa Type")] == "visit"
    assert len(row) == len(new_header)


def test_reconcile_is_idempotent(store, writer):
    store.sheets["S1"] = {"Sheet1": [["Name", "Email"]]}

    writer.reconcile_headers("S1", "Sheet1")
    header_after_first = list(store.sheets["S1"]["Sheet1"][0])
    _, state = writer.reconcile_headers("S1", "Sheet1")

    assert state == HeaderState.COMPLETE
    assert store.sheets["S1"]["Sheet1"][0] == header_after_first
    assert len(store.writes("set_row")) == 1


def test_header_labels_match_case_insensitively():
    mapping = map_headers(["  name ", "EMAIL", "Name"])

    assert mapping.columns["Name"] == 0
    assert mapping.columns["Email"] == 1
    assert mapping.columns["Phone"] is None
    assert mapping.total_columns == 3


def test_optional_fields_are_blank_strings(store, writer, record):
    writer.append("S1", record)

    row = store.sheets["S1"]["Sheet1"][1]
    assert row[REQUIRED_HEADERS.index("Other Country Interested")] == ""
    assert row[REQUIRED_HEADERS.index("Degree Level")] == ""
    assert row[REQUIRED_HEADERS.index("Additional Notes")] == ""
    assert None not in row


def test_header_read_failure_falls_back_to_default_columns(store, writer, record, caplog):
    store.fail.add("get_first_row")

    with caplog.at_level(logging.WARNING):
        result = writer.append("S1", record)

    assert result.header_state == HeaderState.FALLBACK
    assert not store.writes("set_row")
    (call,) = store.writes("append_row")
    assert call[3][1] == "Jane"
    assert len(call[3]) == len(REQUIRED_HEADERS)
    assert "Header reconciliation failed" in caplog.text


def test_header_write_failure_still_appends(store, writer, record):
    store.sheets["S1"] = {"Sheet1": [["Name"]]}
    store.fail.add("set_row")

    result = writer.append("S1", record)

    assert result.header_state == HeaderState.FALLBACK
    row = store.sheets["S1"]["Sheet1"][1]
    # Extension mapping is kept: Name stays in column A
    assert row[0] == "Jane"
    assert row[1] == FROZEN_TIMESTAMP


def test_append_failure_propagates(store, writer, record):
    store.fail.add("append_row")

    with pytest.raises(RemoteWriteError):
        writer.append("S1", record)


def test_unexpected_row_count_is_a_warning(store, writer, record, caplog):
    store.rows_added = 0

    with caplog.at_level(logging.WARNING):
        result = writer.append("S1", record)

    assert result.rows_added == 0
    assert "Expected 1 row added" in caplog.text


def test_header_is_fetched_on_every_append(store, writer, record):
    writer.append("S1", record)
    writer.append("S1", record)

    assert len(store.writes("get_first_row")) == 2
    assert len(store.sheets["S1"]["Sheet1"]) == 3


def test_utc_timestamp_format():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", utc_timestamp())
