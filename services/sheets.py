"""Google Sheets access for the print-order tables.

This module is the only place that talks to the Sheets API:
1. Fetch a whole table range
2. Overwrite one row in place
3. Append a row (API append, or write at row count + 1)
4. Delete a row by shifting the rows below it up

Calls run the blocking googleapiclient request on the client's own
single-worker executor so callers can await them. The httplib2 transport
under the service object must not be used from two threads at once.
Transport and auth errors propagate unchanged; no retry is applied at
this layer.
"""
import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from core.config import ConfigurationError, SheetsConfig
from schemas.row_codec import extend_header, missing_columns, span_for
from schemas.sheet_tables import SheetTable

logger = logging.getLogger(__name__)


class SheetsError(Exception):
    """Raised when the spreadsheet does not have the expected structure."""
    pass


class AppendStrategy(Enum):
    """How a new row is placed."""
    APPEND = "append"        # let the API pick the next empty row
    NEXT_ROW = "next_row"    # read the row count, write at count + 1


def split_col_span(col_span: str) -> Tuple[str, str]:
    """"A:O" -> ("A", "O")."""
    start, _, end = col_span.partition(":")
    return start, end or start


class SheetsClient:
    """Async Google Sheets API client authenticated with a service account."""

    SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]
    TOKEN_URI = "https://oauth2.googleapis.com/token"
    VALUE_INPUT_OPTION = "USER_ENTERED"

    def __init__(
        self,
        spreadsheet_id: str,
        service_account_email: str,
        private_key: str,
        service: Any = None,
    ):
        if not spreadsheet_id:
            raise ConfigurationError("GOOGLE_SHEET_ID not set")
        if not service_account_email or not private_key:
            raise ConfigurationError("Google service account env not set")

        self.spreadsheet_id = spreadsheet_id
        self.service_account_email = service_account_email
        self._private_key = private_key
        self._service = service
        self._sheet_ids: Dict[str, int] = {}  # sheet name -> numeric sheetId
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sheets-api")

    def _get_service(self):
        """Get or create the Sheets API service."""
        if self._service is not None:
            return self._service

        from google.oauth2 import service_account
        from googleapiclient.discovery import build

        creds = service_account.Credentials.from_service_account_info(
            {
                "type": "service_account",
                "client_email": self.service_account_email,
                "private_key": self._private_key,
                "token_uri": self.TOKEN_URI,
            },
            scopes=self.SCOPES,
        )
        self._service = build("sheets", "v4", credentials=creds, cache_discovery=False)
        return self._service

    async def _execute(self, request) -> Dict[str, Any]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, request.execute)

    def close(self) -> None:
        """Stop the request thread. Pending requests finish first."""
        self._executor.shutdown(wait=True)

    @staticmethod
    def _get_range(sheet_name: str, range_notation: str = "") -> str:
        """Get full range notation with sheet name."""
        if range_notation:
            return f"'{sheet_name}'!{range_notation}"
        return f"'{sheet_name}'"

    async def fetch_range(self, sheet_name: str, col_span: str) -> List[List[str]]:
        """Read every row of the span. Trailing empty cells may be omitted per row."""
        service = self._get_service()
        result = await self._execute(
            service.spreadsheets().values().get(
                spreadsheetId=self.spreadsheet_id,
                range=self._get_range(sheet_name, col_span),
            )
        )
        rows = result.get("values", [])
        logger.debug(f"Fetched {len(rows)} rows from {sheet_name}!{col_span}")
        return rows

    async def write_row(
        self,
        sheet_name: str,
        row_number: int,
        col_span: str,
        row: List[str],
    ) -> None:
        """Overwrite one full row (1-based row number)."""
        start, end = split_col_span(col_span)
        service = self._get_service()
        await self._execute(
            service.spreadsheets().values().update(
                spreadsheetId=self.spreadsheet_id,
                range=self._get_range(sheet_name, f"{start}{row_number}:{end}{row_number}"),
                valueInputOption=self.VALUE_INPUT_OPTION,
                body={"values": [row]},
            )
        )
        logger.debug(f"Wrote row {row_number} of {sheet_name}")

    async def append_row(
        self,
        sheet_name: str,
        col_span: str,
        row: List[str],
        strategy: AppendStrategy = AppendStrategy.APPEND,
    ) -> int:
        """Add a row at the end of the table. Returns the row number, -1 if unknown.

        NEXT_ROW reads the current row count and writes just below it. Two
        concurrent writers can pick the same row; the later write wins.
        """
        if strategy == AppendStrategy.NEXT_ROW:
            rows = await self.fetch_range(sheet_name, col_span)
            next_row = len(rows) + 1
            await self.write_row(sheet_name, next_row, col_span, row)
            return next_row

        service = self._get_service()
        result = await self._execute(
            service.spreadsheets().values().append(
                spreadsheetId=self.spreadsheet_id,
                range=self._get_range(sheet_name, col_span),
                valueInputOption=self.VALUE_INPUT_OPTION,
                insertDataOption="INSERT_ROWS",
                body={"values": [row]},
            )
        )

        # Format: 'Sheet'!A5:O5
        updated_range = result.get("updates", {}).get("updatedRange", "")
        if "!" in updated_range:
            range_part = updated_range.split("!")[-1]
            return int("".join(filter(str.isdigit, range_part.split(":")[0])))
        return -1

    async def _get_sheet_id(self, sheet_name: str) -> int:
        """Numeric sheetId of a tab, needed for structural batch updates."""
        if sheet_name in self._sheet_ids:
            return self._sheet_ids[sheet_name]

        service = self._get_service()
        result = await self._execute(
            service.spreadsheets().get(
                spreadsheetId=self.spreadsheet_id,
                fields="sheets.properties",
            )
        )
        for sheet in result.get("sheets", []):
            props = sheet.get("properties", {})
            self._sheet_ids[props.get("title", "")] = props.get("sheetId")

        if sheet_name not in self._sheet_ids:
            raise SheetsError(f"Sheet not found in spreadsheet: {sheet_name}")
        return self._sheet_ids[sheet_name]

    async def delete_row(self, sheet_name: str, row_number: int) -> None:
        """Remove a row; rows below it move up by one."""
        sheet_id = await self._get_sheet_id(sheet_name)
        service = self._get_service()
        await self._execute(
            service.spreadsheets().batchUpdate(
                spreadsheetId=self.spreadsheet_id,
                body={
                    "requests": [
                        {
                            "deleteDimension": {
                                "range": {
                                    "sheetId": sheet_id,
                                    "dimension": "ROWS",
                                    "startIndex": row_number - 1,
                                    "endIndex": row_number,
                                }
                            }
                        }
                    ]
                },
            )
        )
        logger.info(f"Deleted row {row_number} of {sheet_name}")


def create_client_from_config(config: SheetsConfig, service: Optional[Any] = None) -> SheetsClient:
    """Create SheetsClient from config. Raises ConfigurationError if credentials are missing."""
    return SheetsClient(
        spreadsheet_id=config.spreadsheet_id,
        service_account_email=config.service_account_email,
        private_key=config.service_account_private_key,
        service=service,
    )


async def ensure_schema_columns(
    client: SheetsClient,
    sheet_name: str,
    rows: List[List[str]],
    table: SheetTable,
) -> List[List[str]]:
    """Add any schema columns a header tab lacks, before a row is written.

    Returns ``rows`` with the extended header in place of row 1. Positional
    tabs and complete headers are returned untouched, without a write.
    """
    missing = missing_columns(rows, table)
    if not missing:
        return rows

    header = extend_header(rows, table)
    await client.write_row(sheet_name, 1, span_for(header), header)
    logger.warning(f"Added missing columns to {sheet_name} header: {', '.join(missing)}")
    if len(header) > table.width:
        logger.warning(
            f"{sheet_name} header is wider than {table.col_span}; "
            f"columns past {table.col_span} are not read back"
        )
    return [header] + list(rows[1:])
