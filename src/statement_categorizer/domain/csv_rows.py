import base64
import binascii
import csv
import io
import json
import re
from dataclasses import dataclass, field

from statement_categorizer.errors import CSVParseError
from statement_categorizer.logger import get_logger
from statement_categorizer.models import ImportRowError, TransactionFields

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("Date", "Amount", "Payee")

# Optional bank columns mapped onto transaction fields.
OPTIONAL_COLUMNS = {
    "Particulars": "particulars",
    "Code": "code",
    "Reference": "reference",
    "Tran Type": "tran_type",
    "This Party Account": "this_party_account",
    "Other Party Account": "other_party_account",
    "Serial": "serial",
    "Transaction Code": "transaction_code",
    "Batch Number": "batch_number",
    "Originating Bank/Branch": "originating_bank_branch",
}

PREVIEW_LENGTH = 100
BOM = "\ufeff"

_DATE_PATTERN = re.compile(r"^[0-9]{1,2}/[0-9]{1,2}/[0-9]{4}$")
_AMOUNT_PATTERN = re.compile(r"^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)$")


@dataclass(frozen=True)
class CSVRow:
    row_number: int
    values: dict[str, str]
    errors: tuple[ImportRowError, ...] = field(default=())

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def get(self, column: str) -> str | None:
        value = self.values.get(column)
        return value if value else None

    @property
    def date(self) -> str:
        return self.values.get("Date", "")

    @property
    def amount(self) -> str:
        return self.values.get("Amount", "")

    @property
    def payee(self) -> str:
        return self.values.get("Payee", "")

    @property
    def reference(self) -> str | None:
        return self.get("Reference")

    def to_json(self) -> str:
        return json.dumps(self.values)


def is_statement_date(value: str) -> bool:
    return bool(_DATE_PATTERN.match(value))


def is_decimal_amount(value: str) -> bool:
    return bool(_AMOUNT_PATTERN.match(value))


def convert_to_iso_date(ddmmyyyy: str) -> str:
    """Convert ``DD/MM/YYYY`` to ``YYYY-MM-DD``.

    Calendar correctness is not checked: ``31/02/2024`` becomes ``2024-02-31``.
    """
    parts = ddmmyyyy.split("/")
    if len(parts) != 3:
        raise ValueError(f"Invalid date format: {ddmmyyyy}. Expected DD/MM/YYYY")
    day, month, year = parts
    return f"{year}-{month.zfill(2)}-{day.zfill(2)}"


def validate_row(values: dict[str, str], row_number: int) -> list[ImportRowError]:
    errors: list[ImportRowError] = []

    for column in REQUIRED_COLUMNS:
        value = values.get(column)
        if not value or not value.strip():
            errors.append(ImportRowError(
                row=row_number,
                message=f"Missing required field: {column}",
                field=column,
            ))

    amount = values.get("Amount")
    if amount and not is_decimal_amount(amount):
        errors.append(ImportRowError(
            row=row_number,
            message=f"Invalid amount format: {amount}",
            field="Amount",
        ))

    date_value = values.get("Date")
    if date_value and not is_statement_date(date_value):
        errors.append(ImportRowError(
            row=row_number,
            message=f"Invalid date format: {date_value}. Expected DD/MM/YYYY",
            field="Date",
        ))

    return errors


def _read_records(content: str) -> list[dict[str, str]]:
    # Spreadsheet exports often start with a byte order mark.
    reader = csv.reader(io.StringIO(content.removeprefix(BOM)), strict=True)
    try:
        lines = [[cell.strip() for cell in line] for line in reader if line]
    except csv.Error as exc:
        raise CSVParseError(str(exc)) from exc

    # Whitespace-only lines count as blank.
    lines = [line for line in lines if line != [""]]
    if not lines:
        return []

    header, *body = lines
    records: list[dict[str, str]] = []
    for index, line in enumerate(body):
        if len(line) != len(header):
            raise CSVParseError(
                f"Invalid record length on record {index + 1}: "
                f"expected {len(header)} columns, got {len(line)}"
            )
        records.append(dict(zip(header, line)))
    return records


def parse_csv(content: str) -> tuple[list[CSVRow], list[ImportRowError]]:
    """Parse statement CSV text into annotated rows and row-level errors.

    Row numbers are 1-based and count the header line, so the first data row is 2.
    A structurally unreadable document yields no rows and a single row-0 error.
    """
    try:
        records = _read_records(content)
    except CSVParseError as exc:
        logger.error("[CSV] Parse failed: %s", exc)
        return [], [ImportRowError(
            row=0,
            message=f"CSV parsing failed: {exc}",
            raw_data=content[:PREVIEW_LENGTH],
        )]

    rows: list[CSVRow] = []
    errors: list[ImportRowError] = []
    for index, values in enumerate(records):
        row_number = index + 2
        row_errors = validate_row(values, row_number)
        rows.append(CSVRow(row_number=row_number, values=values, errors=tuple(row_errors)))
        errors.extend(row_errors)

    logger.info("[CSV] Parsed %d rows with %d validation errors.", len(rows), len(errors))
    return rows, errors


def row_to_fields(row: CSVRow) -> TransactionFields:
    processed_raw = row.get("Processed Date")
    optional = {attr: row.get(column) for column, attr in OPTIONAL_COLUMNS.items()}
    return TransactionFields(
        date=convert_to_iso_date(row.date),
        amount=float(row.amount),
        payee=row.payee,
        processed_date=convert_to_iso_date(processed_raw) if processed_raw else None,
        **optional,
    )


def decode_upload(file_content: str) -> str:
    """Decode base64 upload content, falling back to the raw text.

    Line breaks and other whitespace inside the base64 payload are ignored, so
    wrapped output from ``base64`` tools decodes as well.
    """
    compact = "".join(file_content.split())
    try:
        return base64.b64decode(compact, validate=True).decode("utf-8-sig")
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return file_content
