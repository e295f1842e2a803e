"""Shared fixtures: an in-memory stand-in for the Google Sheets v4 API."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, List

import httplib2
import pytest
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError

from moodwall.card_rows import COLUMNS
from moodwall.card_service import CardService
from moodwall.config import Settings, get_settings
from moodwall.main import app
from moodwall.routes.cards import get_card_service
from moodwall.sheets_store import SheetsStore

A1_RE = re.compile(r"^(?:'((?:[^']|'')+)'|([^!]+))!([A-Z]+)(\d*):([A-Z]+)(\d*)$")


def col_index(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def _formatted(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _entered(value: Any) -> Any:
    # USER_ENTERED: a leading apostrophe forces text and is not part of the value
    if isinstance(value, str) and value.startswith("'"):
        return value[1:]
    return value


class _Request:
    def __init__(self, service: "FakeSheetsService", op: str, fn):
        self._service = service
        self._op = op
        self._fn = fn

    def execute(self, http=None):
        self._service.calls.append(self._op)
        if self._op in self._service.failing:
            raise HttpError(httplib2.Response({"status": "503"}), b"backend unavailable")
        return self._fn()


class _Values:
    def __init__(self, service: "FakeSheetsService"):
        self._s = service

    def get(self, spreadsheetId, range):
        return _Request(self._s, "list", lambda: self._s._get(range))

    def append(self, spreadsheetId, range, valueInputOption, insertDataOption, body):
        return _Request(self._s, "append", lambda: self._s._append(range, body["values"]))

    def update(self, spreadsheetId, range, valueInputOption, body):
        return _Request(self._s, "update", lambda: self._s._update(range, body["values"]))


class _Spreadsheets:
    def __init__(self, service: "FakeSheetsService"):
        self._s = service

    def get(self, spreadsheetId, fields=None):
        return _Request(self._s, "metadata", self._s._metadata)

    def values(self):
        return _Values(self._s)

    def batchUpdate(self, spreadsheetId, body):
        return _Request(self._s, "delete", lambda: self._s._batch_update(body))


class FakeSheetsService:
    """Enough of ``googleapiclient`` sheets v4 for one worksheet."""

    def __init__(self, title: str = "cards", sheet_id: int = 1234, rows: List[List[Any]] = None):
        self.title = title
        self.sheet_id = sheet_id
        self.extra_titles: List[str] = []
        self.rows: List[List[Any]] = [list(r) for r in (rows or [])]
        self.calls: List[str] = []
        self.ranges: List[str] = []
        self.failing = set()

    def spreadsheets(self):
        return _Spreadsheets(self)

    # -------- behaviour --------
    def _metadata(self):
        sheets = [{"properties": {"sheetId": 1, "title": t}} for t in self.extra_titles]
        sheets.append({"properties": {"sheetId": self.sheet_id, "title": self.title}})
        return {"sheets": sheets}

    def _parse(self, a1: str):
        self.ranges.append(a1)
        m = A1_RE.match(a1)
        assert m, f"bad A1 range {a1!r}"
        title = m.group(1).replace("''", "'") if m.group(1) else m.group(2)
        assert title == self.title, f"unknown sheet {title!r}"
        row = int(m.group(4)) - 1 if m.group(4) else None
        return title, col_index(m.group(3)), row, col_index(m.group(5))

    def _trimmed(self) -> List[List[str]]:
        out = []
        for row in self.rows:
            cells = [_formatted(c) for c in row]
            while cells and cells[-1] == "":
                cells.pop()
            out.append(cells)
        while out and not out[-1]:
            out.pop()
        return out

    def _get(self, a1: str):
        self._parse(a1)
        values = self._trimmed()
        resp = {"range": a1, "majorDimension": "ROWS"}
        if values:
            resp["values"] = values
        return resp

    def _append(self, a1: str, values):
        self._parse(a1)
        self.rows = [list(r) for r in self._trimmed()]
        for v in values:
            self.rows.append([_entered(c) for c in v])
        return {"updates": {"updatedRows": len(values)}}

    def _update(self, a1: str, values):
        _, first_col, row, last_col = self._parse(a1)
        assert row is not None
        assert last_col - first_col + 1 == len(values[0])
        while len(self.rows) <= row:
            self.rows.append([])
        target = self.rows[row]
        while len(target) <= last_col:
            target.append("")
        for offset, cell in enumerate(values[0]):
            target[first_col + offset] = _entered(cell)
        return {"updatedRows": 1}

    def _batch_update(self, body):
        for req in body["requests"]:
            rng = req["deleteDimension"]["range"]
            assert rng["sheetId"] == self.sheet_id
            assert rng["dimension"] == "ROWS"
            del self.rows[rng["startIndex"]:rng["endIndex"]]
        return {"replies": [{}]}

    # -------- helpers for tests --------
    def ids(self) -> List[str]:
        return [str(r[0]) for r in self._trimmed()[1:] if r]


def card_row(card_id: str, text: str = "", mood: Any = 3, x: Any = 0, y: Any = 0, r: Any = 0,
             parts=("", "", ""), header: str = "", style: str = "polaroid",
             created_at: str = "2026-01-01T00:00:00.000Z") -> List[Any]:
    return [card_id, text, mood, style, header, *parts, x, y, r, created_at]


class StepClock:
    def __init__(self, start: datetime = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(milliseconds=1)
        return current


@pytest.fixture
def sheet():
    return FakeSheetsService(rows=[list(COLUMNS)])


@pytest.fixture
def store(sheet):
    return SheetsStore("sheet-123", "cards", service=sheet)


@pytest.fixture
def settings():
    return Settings(max_cards=7, max_image_size_kb=100)


@pytest.fixture
def service(store, settings):
    return CardService(store, settings, clock=StepClock())


@pytest.fixture
def client(service, settings):
    app.dependency_overrides[get_card_service] = lambda: service
    app.dependency_overrides[get_settings] = lambda: settings
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
