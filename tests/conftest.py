import pytest

from app import create_app
from app.errors import RemoteReadError, RemoteWriteError
from app.models import ApplicationRecord
from app.writer import RowWriter
from config import TestingConfig

FROZEN_TIMESTAMP = "2024-05-01T09:30:00.000Z"


class FakeStore:
    """In-memory tabular store: {spreadsheet_id: {tab_name: [rows]}}"""

    def __init__(self, sheets=None):
        self.sheets = sheets if sheets is not None else {}
        self.calls = []
        self.fail = set()
        self.rows_added = 1

    def tab(self, spreadsheet_id, tab_name):
        return self.sheets.setdefault(spreadsheet_id, {}).setdefault(tab_name, [])

    def first_tab_name(self, spreadsheet_id):
        self.calls.append(("first_tab_name", spreadsheet_id))
        if "first_tab_name" in self.fail or not self.sheets.get(spreadsheet_id):
            raise RemoteReadError("tabs unavailable")
        return next(iter(self.sheets[spreadsheet_id]))

    def get_first_row(self, spreadsheet_id, tab_name):
        self.calls.append(("get_first_row", spreadsheet_id, tab_name))
        if "get_first_row" in self.fail:
            raise RemoteReadError("read failed")
        rows = self.sheets.get(spreadsheet_id, {}).get(tab_name)
        if rows is None:
            return None
        return list(rows[0]) if rows else []

    def set_row(self, spreadsheet_id, tab_name, row_index, values, start_column=1):
        self.calls.append(("set_row", spreadsheet_id, tab_name, row_index, list(values), start_column))
        if "set_row" in self.fail:
            raise RemoteWriteError("write failed")
        rows = self.tab(spreadsheet_id, tab_name)
        while len(rows) < row_index:
            rows.append([])
        row = rows[row_index - 1]
        end = start_column - 1 + len(values)
        while len(row) < end:
            row.append("")
        row[start_column - 1:end] = list(values)

    def append_row(self, spreadsheet_id, tab_name, values):
        self.calls.append(("append_row", spreadsheet_id, tab_name, list(values)))
        if "append_row" in self.fail:
            raise RemoteWriteError("append failed")
        self.tab(spreadsheet_id, tab_name).append(list(values))
        return self.rows_added

    def writes(self, name):
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def writer(store):
    return RowWriter(store, clock=lambda: FROZEN_TIMESTAMP)


@pytest.fixture
def record():
    return ApplicationRecord(
        name="Jane",
        email="j@x.com",
        phone="123",
        address="A",
        desired_country="Thailand",
        visa_type="visit",
        urgency="high",
    )


@pytest.fixture
def app(store):
    app = create_app(TestingConfig, store=store)
    app.extensions["row_writer"].clock = lambda: FROZEN_TIMESTAMP
    return app


@pytest.fixture
def client(app):
    return app.test_client()
