"""Wrapper for Google Sheets API interactions."""

from typing import Any, Dict, List, Optional

from googleapiclient.discovery import Resource
from googleapiclient.errors import HttpError
from google.oauth2.credentials import Credentials

import config
from api_clients import build_service
from core.extractor import parse_config_rows
from core.models import ExamConfig
from utils.error_handler import APIError, SheetLookupError
from utils.logger import get_logger
from utils.retry import retry_on_exception

logger = get_logger()

RETRYABLE_SHEETS_ERRORS = (HttpError, TimeoutError, ConnectionError)
RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)

def should_retry_sheets(e: Exception) -> bool:
    """Retry predicate: rate limits, server errors and connection problems."""
    if isinstance(e, HttpError):
        return e.resp.status in RETRYABLE_STATUS_CODES
    return isinstance(e, (TimeoutError, ConnectionError))

def quote_sheet_title(title: str) -> str:
    """A1 notation range covering a whole sheet."""
    return "'" + title.replace("'", "''") + "'"


class SheetsService:
    """Provides methods to interact with the Google Sheets API."""

    SERVICE_NAME = 'sheets'
    VERSION = 'v4'

    def __init__(self, credentials: Optional[Credentials] = None, service: Optional[Resource] = None):
        """Initializes the SheetsService.

        Args:
            credentials: Valid Google OAuth 2.0 credentials.
            service: Prebuilt service resource, used instead of building one.

        Raises:
            AuthenticationError: If credentials are invalid.
            APIError: If the Sheets service cannot be built.
        """
        logger.debug("Initializing SheetsService...")
        self.service: Resource = service or build_service(self.SERVICE_NAME, self.VERSION, credentials)
        logger.debug("SheetsService initialized successfully.")

    def _api_error(self, e: HttpError, action: str) -> APIError:
        logger.error(f"Failed to {action}: {e.resp.status} {e.content}", exc_info=config.DEBUG)
        if e.resp.status == 404:
            return APIError(f"Spreadsheet not found (404) while trying to {action}.",
                            status_code=404, service=self.SERVICE_NAME)
        if e.resp.status == 403:
            return APIError(f"Permission denied (403) while trying to {action}. Check sharing and scopes.",
                            status_code=403, service=self.SERVICE_NAME)
        return APIError(f"Failed to {action}: {e.resp.status}",
                        status_code=e.resp.status, service=self.SERVICE_NAME)

    def _transport_error(self, e: Exception, action: str) -> APIError:
        logger.error(f"Failed to {action}: {type(e).__name__} {e}", exc_info=config.DEBUG)
        return APIError(f"Network error while trying to {action}: {e}", service=self.SERVICE_NAME)

    @retry_on_exception(exceptions=RETRYABLE_SHEETS_ERRORS, max_attempts=3, should_retry=should_retry_sheets)
    def _execute(self, request) -> Dict[str, Any]:
        return request.execute()

    def get_sheet_titles(self, spreadsheet_id: str) -> List[str]:
        """Titles of all sheets in a spreadsheet, in tab order."""
        try:
            meta = self._execute(self.service.spreadsheets().get(
                spreadsheetId=spreadsheet_id, fields="sheets.properties.title"))
        except HttpError as e:
            raise self._api_error(e, f"read sheet list of {spreadsheet_id}") from e
        except (TimeoutError, ConnectionError) as e:
            raise self._transport_error(e, f"read sheet list of {spreadsheet_id}") from e
        return [s.get('properties', {}).get('title', '') for s in meta.get('sheets', [])]

    def get_values(self, spreadsheet_id: str, sheet_title: str) -> List[List[str]]:
        """All values of a sheet as formatted strings, header row first."""
        logger.debug(f"Reading sheet '{sheet_title}' of {spreadsheet_id}...")
        try:
            response = self._execute(self.service.spreadsheets().values().get(
                spreadsheetId=spreadsheet_id,
                range=quote_sheet_title(sheet_title),
                valueRenderOption="FORMATTED_VALUE",
            ))
        except HttpError as e:
            raise self._api_error(e, f"read sheet '{sheet_title}' of {spreadsheet_id}") from e
        except (TimeoutError, ConnectionError) as e:
            raise self._transport_error(e, f"read sheet '{sheet_title}' of {spreadsheet_id}") from e
        values = response.get('values', [])
        logger.debug(f"Read {len(values)} rows from '{sheet_title}'.")
        return values

    def add_sheet(self, spreadsheet_id: str, title: str) -> None:
        logger.info(f"Creating sheet '{title}' in {spreadsheet_id}.")
        body = {"requests": [{"addSheet": {"properties": {"title": title}}}]}
        try:
            self._execute(self.service.spreadsheets().batchUpdate(spreadsheetId=spreadsheet_id, body=body))
        except HttpError as e:
            raise self._api_error(e, f"create sheet '{title}' in {spreadsheet_id}") from e
        except (TimeoutError, ConnectionError) as e:
            raise self._transport_error(e, f"create sheet '{title}' in {spreadsheet_id}") from e

    def append_rows(self, spreadsheet_id: str, sheet_title: str, rows: List[List[Any]]) -> None:
        """Appends rows after the last row of a sheet in a single call."""
        if not rows:
            return
        try:
            self._execute(self.service.spreadsheets().values().append(
                spreadsheetId=spreadsheet_id,
                range=quote_sheet_title(sheet_title),
                valueInputOption="RAW",
                insertDataOption="INSERT_ROWS",
                body={"values": rows},
            ))
        except HttpError as e:
            raise self._api_error(e, f"append {len(rows)} rows to '{sheet_title}'") from e
        except (TimeoutError, ConnectionError) as e:
            raise self._transport_error(e, f"append {len(rows)} rows to '{sheet_title}'") from e
        logger.info(f"Appended {len(rows)} rows to '{sheet_title}' in {spreadsheet_id}.")

    # --- Grader specific reads and writes ---

    def read_config_records(self, master_spreadsheet_id: str) -> List[ExamConfig]:
        """Reads the CONFIG sheet of the master spreadsheet.

        Raises:
            SheetLookupError: If the CONFIG sheet does not exist.
        """
        if config.MASTER_CONFIG_SHEET not in self.get_sheet_titles(master_spreadsheet_id):
            raise SheetLookupError(f"{config.MASTER_CONFIG_SHEET} sheet not found in master spreadsheet {master_spreadsheet_id}.")
        records = parse_config_rows(self.get_values(master_spreadsheet_id, config.MASTER_CONFIG_SHEET))
        logger.info(f"Loaded {len(records)} exam configurations.")
        return records

    def read_answer_key(self, spreadsheet_id: str) -> List[List[str]]:
        """Raw ANSWER_KEY values of a response spreadsheet.

        Raises:
            SheetLookupError: If the ANSWER_KEY sheet does not exist.
        """
        if config.ANSWER_KEY_SHEET not in self.get_sheet_titles(spreadsheet_id):
            raise SheetLookupError(f"{config.ANSWER_KEY_SHEET} sheet not found in {spreadsheet_id}.")
        return self.get_values(spreadsheet_id, config.ANSWER_KEY_SHEET)

    def resolve_response_sheet(self, spreadsheet_id: str, sheet_name: Optional[str]) -> str:
        """The configured response sheet if it exists, else the first sheet."""
        wanted = sheet_name or config.DEFAULT_RESPONSE_SHEET
        titles = self.get_sheet_titles(spreadsheet_id)
        if wanted in titles:
            return wanted
        if not titles:
            raise SheetLookupError(f"Spreadsheet {spreadsheet_id} has no sheets.")
        logger.warning(f"Response sheet '{wanted}' not found in {spreadsheet_id}; using '{titles[0]}'.")
        return titles[0]

    def ensure_grade_sheet(self, spreadsheet_id: str, header: List[str]) -> None:
        """Creates the AI_GRADES sheet with its header row when missing."""
        if config.GRADE_SHEET_NAME in self.get_sheet_titles(spreadsheet_id):
            return
        self.add_sheet(spreadsheet_id, config.GRADE_SHEET_NAME)
        self.append_rows(spreadsheet_id, config.GRADE_SHEET_NAME, [header])
