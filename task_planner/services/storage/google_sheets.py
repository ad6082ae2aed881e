"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is a supported backend because:
1. Users can inspect (and hand-fix) their planner data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No transactions: each delete is its own API call, which is exactly
  how the cleanup engine treats deletes anyway
- Deleting a row shifts the rows below it, so row numbers are looked
  up fresh on every delete and never cached
- Limited query capabilities (we read whole sheets and filter in Python)

Each entity kind lives in its own worksheet, one record per row.
List-valued fields are JSON-serialized into a single cell.
"""

import json
from typing import Any, Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from task_planner.config import get_settings
from task_planner.models.audit import AuditEvent, AuditEventType, AuditSeverity
from task_planner.models.records import EntityKind, PlannerRecord, get_kind_spec
from task_planner.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RecordStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Column layout per record sheet. Columns ending in "_json" hold the
# JSON encoding of the field named by the prefix.
RECORD_COLUMNS: dict[EntityKind, list[str]] = {
    EntityKind.TASK: [
        "id",
        "created_at",
        "updated_at",
        "title",
        "description",
        "completed",
        "archived",
        "due_date",
        "project_id",
        "category_ids_json",
        "parent_task_id",
        "priority",
        "recurring_task_id",
        "completed_at",
    ],
    EntityKind.PROJECT: [
        "id",
        "created_at",
        "updated_at",
        "name",
        "description",
        "color",
        "order",
    ],
    EntityKind.CATEGORY: [
        "id",
        "created_at",
        "updated_at",
        "name",
        "color",
    ],
}

BOOLEAN_COLUMNS = {"completed", "archived"}

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

# Retry only what is plausibly transient (quota, 5xx). Anything else,
# including "row not found", fails immediately.
retry_transient = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_worksheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_records_sheet(self, kind: EntityKind) -> gspread.Worksheet:
        """Get or create the worksheet for one entity kind."""
        return self._get_or_create_worksheet(
            self._settings.sheet_name_for(kind),
            RECORD_COLUMNS[kind],
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRecordStore(RecordStoreInterface):
    """
    Google Sheets implementation of the planner record store.

    Every read goes to the sheet; nothing is cached, so a list
    after a delete always reflects the delete.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._skipped: dict[EntityKind, int] = {}

    def _record_to_row(self, kind: EntityKind, record: PlannerRecord) -> list:
        """Convert a record to a spreadsheet row."""
        data = record.model_dump(mode="json")
        row = []
        for column in RECORD_COLUMNS[kind]:
            if column.endswith("_json"):
                row.append(json.dumps(data.get(column[:-5]) or []))
                continue
            value = data.get(column)
            row.append("" if value is None else str(value))
        return row

    def _row_to_record(self, kind: EntityKind, row: list) -> PlannerRecord:
        """Convert a spreadsheet row to a record of the given kind."""
        # Handle missing columns gracefully
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        data: dict[str, Any] = {}
        for index, column in enumerate(RECORD_COLUMNS[kind]):
            raw = safe_get(index)
            if not raw:
                # Empty cell: let the model default apply
                continue
            if column.endswith("_json"):
                data[column[:-5]] = json.loads(raw)
            elif column in BOOLEAN_COLUMNS:
                data[column] = raw.strip().lower() == "true"
            else:
                data[column] = raw

        return get_kind_spec(kind).model.model_validate(data)

    @staticmethod
    def _find_row_number(all_rows: list[list], record_id: str) -> Optional[int]:
        """1-based sheet row holding record_id (row 1 is the header)."""
        for idx, row in enumerate(all_rows[1:], start=2):
            if row and row[0] == record_id:
                return idx
        return None

    @retry_transient
    async def list_records(self, kind: EntityKind) -> list[PlannerRecord]:
        """Read every record of a kind, in sheet order."""
        kind = EntityKind(kind)
        try:
            sheet = self._client.get_records_sheet(kind)
            all_rows = sheet.get_all_values()[1:]  # Skip header
        except gspread.exceptions.APIError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to list {kind.value} records: {e}")

        records = []
        skipped = 0
        for row_number, row in enumerate(all_rows, start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(self._row_to_record(kind, row))
            except Exception as e:
                logger.warning(
                    "malformed_row_skipped",
                    kind=kind.value,
                    row=row_number,
                    error=str(e),
                )
                skipped += 1
        self._skipped[kind] = skipped
        return records

    def skipped_count(self, kind: EntityKind) -> int:
        return self._skipped.get(EntityKind(kind), 0)

    async def get_record(
        self,
        kind: EntityKind,
        record_id: str,
    ) -> Optional[PlannerRecord]:
        """Retrieve a record by its ID."""
        kind = EntityKind(kind)
        try:
            sheet = self._client.get_records_sheet(kind)
            all_rows = sheet.get_all_values()
        except Exception as e:
            raise StorageError(f"Failed to get {kind.value}: {e}")

        row_number = self._find_row_number(all_rows, record_id)
        if row_number is None:
            return None
        return self._row_to_record(kind, all_rows[row_number - 1])

    @retry_transient
    async def save_record(self, kind: EntityKind, record: PlannerRecord) -> None:
        """Append a new record row."""
        kind = EntityKind(kind)
        try:
            sheet = self._client.get_records_sheet(kind)
            if self._find_row_number(sheet.get_all_values(), record.id) is not None:
                raise DuplicateError(f"{kind.value} already exists: {record.id}")
            sheet.append_row(self._record_to_row(kind, record), value_input_option="RAW")
        except (DuplicateError, gspread.exceptions.APIError):
            raise
        except Exception as e:
            raise StorageError(f"Failed to save {kind.value}: {e}")

    async def delete_record(self, kind: EntityKind, record_id: str) -> None:
        """Delete the row holding record_id."""
        kind = EntityKind(kind)
        try:
            await self._delete_row(kind, record_id)
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {kind.value} {record_id}: {e}")

    @retry_transient
    async def _delete_row(self, kind: EntityKind, record_id: str) -> None:
        sheet = self._client.get_records_sheet(kind)
        # Row numbers shift after every delete; always look up fresh
        row_number = self._find_row_number(sheet.get_all_values(), record_id)
        if row_number is None:
            raise NotFoundError(f"{kind.value} not found: {record_id}")
        sheet.delete_rows(row_number)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=safe_get(1),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except Exception:
                    continue
        return events

    @retry_transient
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except gspread.exceptions.APIError:
            raise
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning(
                "audit_sheet_write_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [
                e for e in self._read_events() if e.correlation_id == correlation_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            events = self._read_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
