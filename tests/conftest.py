from unittest.mock import MagicMock

import gspread
import pytest
from gspread.utils import ValueInputOption, ValueRenderOption

from gsc_analyzer.config import SheetsConfig
from gsc_analyzer.sheets.client import SheetsClient


def api_error(message: str = "backend error") -> gspread.exceptions.APIError:
    response = MagicMock()
    response.json.return_value = {
        "error": {"code": 500, "message": message, "status": "INTERNAL"}
    }
    return gspread.exceptions.APIError(response)


def _user_entered(value):
    """Rough USER_ENTERED parsing: numeric-looking text becomes a number."""
    if isinstance(value, str):
        try:
            number = float(value)
        except ValueError:
            return value
        return int(number) if number.is_integer() else number
    return value


class FakeWorksheet:
    """In-memory stand-in for gspread.Worksheet."""

    def __init__(self, title: str, rows: int = 1000, cols: int = 20):
        self.title = title
        self.row_count = rows
        self.col_count = cols
        self.values: list[list] = []
        self.formulas: list[list] = []
        self.fail_writes = False
        self.update_calls = 0
        self.value_input_option = None

    def load(self, values: list[list], formulas: list[list] | None = None) -> None:
        self.values = [list(r) for r in values]
        self.formulas = [list(r) for r in (formulas or values)]

    def get_all_values(self, value_render_option=None) -> list[list]:
        if value_render_option == ValueRenderOption.formula:
            return [list(r) for r in self.formulas]
        return [list(r) for r in self.values]

    def add_rows(self, count: int) -> None:
        self.row_count += count

    def add_cols(self, count: int) -> None:
        self.col_count += count

    def update(self, range_name=None, values=None, **kwargs) -> None:
        self.update_calls += 1
        if self.fail_writes:
            raise api_error()
        assert range_name == "A1"
        rows = []
        for row in values:
            row = list(row)
            while row and row[-1] == "":
                row.pop()
            rows.append(row)
        while rows and not rows[-1]:
            rows.pop()
        width = max((len(r) for r in rows), default=0)
        self.load([r + [""] * (width - len(r)) for r in rows])

    def append_rows(self, rows, value_input_option=None) -> None:
        if self.fail_writes:
            raise api_error()
        self.value_input_option = value_input_option
        if value_input_option == ValueInputOption.user_entered:
            rows = [[_user_entered(v) for v in r] for r in rows]
        self.load(self.values + [list(r) for r in rows])


class FakeSpreadsheet:
    def __init__(self):
        self.title = "Fake"
        self.sheets: dict[str, FakeWorksheet] = {}

    def worksheet(self, name: str) -> FakeWorksheet:
        if name not in self.sheets:
            raise gspread.WorksheetNotFound(name)
        return self.sheets[name]

    def add_worksheet(self, title: str, rows: int = 1000, cols: int = 20) -> FakeWorksheet:
        self.sheets[title] = FakeWorksheet(title, rows, cols)
        return self.sheets[title]


@pytest.fixture
def spreadsheet() -> FakeSpreadsheet:
    return FakeSpreadsheet()


@pytest.fixture
def sheets_client(spreadsheet) -> SheetsClient:
    client = SheetsClient(SheetsConfig(spreadsheet_id="sheet-id", credentials_path="creds.json"))
    client._spreadsheet = spreadsheet
    return client
