import logging
import os
import threading
import zipfile

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .errors import RemoteReadError, RemoteWriteError

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Failures below the Sheets API: DNS, sockets, timeouts, token refresh
TRANSPORT_ERRORS = (OSError, httplib2.HttpLib2Error, GoogleAuthError)

# Unreadable or unwritable workbook files
WORKBOOK_ERRORS = (OSError, ValueError, KeyError, zipfile.BadZipFile, InvalidFileException)


def a1_range(tab_name, cells):
    """Quote a tab name for A1 notation: My Tab + A1 -> 'My Tab'!A1"""
    quoted = tab_name.replace("'", "''")
    return f"'{quoted}'!{cells}"


def _cell_text(value):
    return "" if value is None else str(value)


def _trim_row(values):
    """Drop trailing blank cells so the row length matches the used header width"""
    row = [_cell_text(v) for v in values]
    while row and not row[-1].strip():
        row.pop()
    return row


def _is_missing_range(error):
    # Sheets answers 400 "Unable to parse range" when the tab does not exist
    status = getattr(getattr(error, "resp", None), "status", None)
    content = error.content.decode("utf-8", "replace") if isinstance(error.content, bytes) else str(error.content)
    return str(status) == "400" and "Unable to parse range" in f"{error.reason} {content}"


class GoogleSheetsStore:
    """Tabular store backed by the Google Sheets v4 values API"""

    def __init__(self, service):
        self.service = service

    @classmethod
    def from_service_account_file(cls, key_path):
        credentials = service_account.Credentials.from_service_account_file(
            os.path.abspath(key_path), scopes=SCOPES
        )
        service = build("sheets", "v4", credentials=credentials, cache_discovery=False)
        logger.info("Google Sheets service initialized")
        return cls(service)

    def first_tab_name(self, spreadsheet_id):
        try:
            metadata = self.service.spreadsheets().get(
                spreadsheetId=spreadsheet_id,
                fields="sheets.properties.title",
            ).execute()
        except (HttpError, *TRANSPORT_ERRORS) as e:
            raise RemoteReadError(f"Could not read tabs of {spreadsheet_id}: {e}") from e

        sheets = metadata.get("sheets", [])
        if not sheets:
            raise RemoteReadError(f"Spreadsheet {spreadsheet_id} has no tabs")
        return sheets[0]["properties"]["title"]

    def get_first_row(self, spreadsheet_id, tab_name):
        try:
            response = self.service.spreadsheets().values().get(
                spreadsheetId=spreadsheet_id,
                range=a1_range(tab_name, "1:1"),
            ).execute()
        except HttpError as e:
            if _is_missing_range(e):
                return None
            raise RemoteReadError(f"Could not read header of {spreadsheet_id}/{tab_name}: {e}") from e
        except TRANSPORT_ERRORS as e:
            raise RemoteReadError(f"Could not read header of {spreadsheet_id}/{tab_name}: {e}") from e

        values = response.get("values") or []
        return _trim_row(values[0]) if values else []

    def set_row(self, spreadsheet_id, tab_name, row_index, values, start_column=1):
        cell = f"{get_column_letter(start_column)}{row_index}"
        try:
            self.service.spreadsheets().values().update(
                spreadsheetId=spreadsheet_id,
                range=a1_range(tab_name, cell),
                valueInputOption="RAW",
                body={"values": [list(values)]},
            ).execute()
        except (HttpError, *TRANSPORT_ERRORS) as e:
            raise RemoteWriteError(f"Could not write row {row_index} of {spreadsheet_id}/{tab_name}: {e}") from e

    def append_row(self, spreadsheet_id, tab_name, values):
        try:
            response = self.service.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=a1_range(tab_name, "A1"),
                # Form input is stored as typed, never parsed as numbers or formulas
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": [list(values)]},
            ).execute()
        except (HttpError, *TRANSPORT_ERRORS) as e:
            raise RemoteWriteError(f"Could not append to {spreadsheet_id}/{tab_name}: {e}") from e

        return int(response.get("updates", {}).get("updatedRows", 0))


class WorkbookStore:
    """Tabular store over local .xlsx files, one workbook per spreadsheet id"""

    def __init__(self, directory):
        self.directory = directory
        self._lock = threading.Lock()

    def _path(self, spreadsheet_id):
        return os.path.join(self.directory, f"{spreadsheet_id}.xlsx")

    def _open(self, spreadsheet_id):
        path = self._path(spreadsheet_id)
        if not os.path.exists(path):
            raise RemoteReadError(f"No workbook for spreadsheet {spreadsheet_id}")
        try:
            return load_workbook(path)
        except WORKBOOK_ERRORS as e:
            raise RemoteReadError(f"Could not open workbook {path}: {e}") from e

    def _open_for_write(self, spreadsheet_id, tab_name):
        """Load (or create) the workbook and make sure the tab exists"""
        path = self._path(spreadsheet_id)
        if os.path.exists(path):
            wb = load_workbook(path)
            if tab_name not in wb.sheetnames:
                wb.create_sheet(title=tab_name)
        else:
            wb = Workbook()
            wb.active.title = tab_name
        return wb, wb[tab_name]

    def _save(self, wb, spreadsheet_id):
        os.makedirs(self.directory, exist_ok=True)
        wb.save(self._path(spreadsheet_id))

    def first_tab_name(self, spreadsheet_id):
        with self._lock:
            wb = self._open(spreadsheet_id)
            return wb.sheetnames[0]

    def get_first_row(self, spreadsheet_id, tab_name):
        with self._lock:
            if not os.path.exists(self._path(spreadsheet_id)):
                return None
            wb = self._open(spreadsheet_id)
            if tab_name not in wb.sheetnames:
                return None
            ws = wb[tab_name]
            return _trim_row(cell.value for cell in ws[1])

    def set_row(self, spreadsheet_id, tab_name, row_index, values, start_column=1):
        with self._lock:
            try:
                wb, ws = self._open_for_write(spreadsheet_id, tab_name)
                for offset, value in enumerate(values):
                    ws.cell(row=row_index, column=start_column + offset, value=value)
                self._save(wb, spreadsheet_id)
            except WORKBOOK_ERRORS as e:
                raise RemoteWriteError(f"Could not write row {row_index} of {spreadsheet_id}/{tab_name}: {e}") from e

    def append_row(self, spreadsheet_id, tab_name, values):
        with self._lock:
            try:
                wb, ws = self._open_for_write(spreadsheet_id, tab_name)
                # Row after the last used row, like the Sheets append endpoint
                ws.append(list(values))
                self._save(wb, spreadsheet_id)
            except WORKBOOK_ERRORS as e:
                raise RemoteWriteError(f"Could not append to {spreadsheet_id}/{tab_name}: {e}") from e
        return 1
