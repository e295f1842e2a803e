"""Google Sheets backed row store for the cards sheet.

Rows are addressed by their 0-based position in the list returned by
``list_rows`` (the header row counts as row 0). Positions shift after every
delete, so callers re-list before each indexed write.

The worksheet title and numeric sheetId are fetched once per store and never
refreshed; renaming the worksheet needs a process restart.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .card_rows import COLUMNS
from .config import Settings, get_settings
from .errors import StorageTransportError, StorageUnavailable

log = logging.getLogger("moodwall.sheets_store")

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
TOKEN_URI = "https://oauth2.googleapis.com/token"

TRANSPORT_ERRORS = (HttpError, GoogleAuthError, OSError)


def column_letter(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA."""
    if index < 0:
        raise ValueError("column index must be >= 0")
    letters = ""
    index += 1
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


LAST_COLUMN = column_letter(len(COLUMNS) - 1)


def quote_sheet_title(title: str) -> str:
    # always quoted: titles like "A1" or "2024" would otherwise read as cell references
    return "'" + title.replace("'", "''") + "'"


@dataclass(frozen=True)
class SheetMetadata:
    title: str
    sheet_id: int


def build_credentials(settings: Settings):
    """Service account credentials from inline env values or a key file.

    Returns None when nothing usable is configured.
    """
    try:
        if settings.sa_client_email and settings.sa_private_key:
            info = {
                "type": "service_account",
                "client_email": settings.sa_client_email,
                "private_key": settings.sa_private_key,
                "token_uri": TOKEN_URI,
            }
            return service_account.Credentials.from_service_account_info(info, scopes=SCOPES)

        key_path = settings.credentials_file
        if key_path and os.path.exists(key_path):
            return service_account.Credentials.from_service_account_file(key_path, scopes=SCOPES)
    except (ValueError, KeyError) as e:
        log.error("Google service account credentials are invalid: %s", e)
    return None


class SheetsStore:
    def __init__(
        self,
        spreadsheet_id: str,
        sheet_name: str = "cards",
        credentials: Any = None,
        service: Any = None,
    ) -> None:
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self._credentials = credentials
        self._service = service
        self._metadata: Optional[SheetMetadata] = None

    @property
    def available(self) -> bool:
        return bool(self.spreadsheet_id) and (
            self._service is not None or self._credentials is not None
        )

    def _api(self):
        if not self.available:
            raise StorageUnavailable()
        if self._service is None:
            self._service = build("sheets", "v4", credentials=self._credentials, cache_discovery=False)
        return self._service

    def _execute(self, op: str, request) -> dict:
        try:
            if self._credentials is not None:
                # httplib2 connections are not thread safe; one per call
                http = AuthorizedHttp(self._credentials, http=httplib2.Http())
                return request.execute(http=http)
            return request.execute()
        except TRANSPORT_ERRORS as e:
            log.error("sheets %s failed: %s", op, e)
            raise StorageTransportError(f"sheets {op} failed: {e}") from e

    # -------- metadata --------
    def metadata(self) -> SheetMetadata:
        if self._metadata is None:
            self._metadata = self._resolve_metadata()
        return self._metadata

    def _resolve_metadata(self) -> SheetMetadata:
        request = self._api().spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets.properties(sheetId,title)",
        )
        sheets = self._execute("metadata", request).get("sheets") or []
        if not sheets:
            raise StorageTransportError("spreadsheet has no sheets")

        props = None
        for s in sheets:
            p = s.get("properties") or {}
            if p.get("title") == self.sheet_name:
                props = p
                break
        if props is None:
            props = sheets[0].get("properties") or {}
            log.warning(
                "sheet %r not found, using first sheet %r", self.sheet_name, props.get("title")
            )

        meta = SheetMetadata(title=props.get("title", self.sheet_name), sheet_id=int(props.get("sheetId", 0)))
        log.info("resolved sheet %r (sheetId=%s)", meta.title, meta.sheet_id)
        return meta

    def _full_range(self) -> str:
        return f"{quote_sheet_title(self.metadata().title)}!A:{LAST_COLUMN}"

    # -------- rows --------
    def list_rows(self, raise_errors: bool = False) -> List[List[Any]]:
        """Read every row of A:L, header included.

        Transport failures give an empty list unless ``raise_errors`` is set.
        """
        try:
            request = self._api().spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=self._full_range(),
            )
            resp = self._execute("list", request)
        except StorageTransportError:
            if raise_errors:
                raise
            return []
        return resp.get("values") or []

    def append_row(self, fields: Sequence[Any]) -> None:
        request = self._api().spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=self._full_range(),
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": [list(fields)]},
        )
        self._execute("append", request)

    def update_range(self, row_index: int, fields: Sequence[Any], start_column: int = 0) -> None:
        """Overwrite ``fields`` on one row, starting at column ``start_column``."""
        if row_index < 0:
            raise ValueError("row_index must be >= 0")
        if not fields:
            return
        title = quote_sheet_title(self.metadata().title)
        row = row_index + 1
        first = column_letter(start_column)
        last = column_letter(start_column + len(fields) - 1)
        request = self._api().spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{title}!{first}{row}:{last}{row}",
            valueInputOption="USER_ENTERED",
            body={"values": [list(fields)]},
        )
        self._execute("update", request)

    def delete_row(self, row_index: int) -> None:
        if row_index < 0:
            raise ValueError("row_index must be >= 0")
        body = {
            "requests": [{
                "deleteDimension": {
                    "range": {
                        "sheetId": self.metadata().sheet_id,
                        "dimension": "ROWS",
                        "startIndex": row_index,
                        "endIndex": row_index + 1,
                    }
                }
            }]
        }
        request = self._api().spreadsheets().batchUpdate(spreadsheetId=self.spreadsheet_id, body=body)
        self._execute("delete", request)

    def ensure_header(self) -> bool:
        """Write the column header into an empty sheet. True when written."""
        if self.list_rows(raise_errors=True):
            return False
        self.update_range(0, COLUMNS)
        log.info("wrote header row to empty sheet %r", self.metadata().title)
        return True


_STORE: Optional[SheetsStore] = None


def get_store() -> SheetsStore:
    global _STORE
    if _STORE is None:
        settings = get_settings()
        _STORE = SheetsStore(
            settings.spreadsheet_id,
            settings.sheet_name,
            credentials=build_credentials(settings),
        )
        if not _STORE.available:
            log.warning("Google Sheets is not configured; the board is read-only and empty")
    return _STORE
