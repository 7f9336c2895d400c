"""CSV and Excel import/export for the deductions screen."""
import csv
import io
import zipfile
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Literal, Tuple

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.datavalidation import DataValidation

from ..models import Deduction, Employee
from ..models.records import DEDUCTION_FIELDS

SheetFormat = Literal["csv", "xlsx"]

MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

FIELD_HEADERS = {
    "advance": "Advance",
    "charge_store": "Charge Store",
    "charge": "Charge",
    "meals": "Meals",
    "miscellaneous": "Miscellaneous",
    "other_deductions": "Other Deductions",
}

TEMPLATE_HEADERS = (
    ["Employee ID", "Employee Name", "Department"]
    + [FIELD_HEADERS[f] for f in DEDUCTION_FIELDS]
    + ["Cutoff", "Date"]
)
EXPORT_HEADERS = TEMPLATE_HEADERS + ["Status", "Is Default"]
SHEET_TITLE = "Deductions"

# xlsx files are zip archives
XLSX_MAGIC = b"PK\x03\x04"


class UnreadableSheet(ValueError):
    pass


@dataclass
class ImportRow:
    row_number: int
    idno: str
    amounts: dict[str, float]


@dataclass
class ParsedImport:
    rows: List[ImportRow] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


# ---------- writing ----------


def _write_csv(rows: Iterable[list]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def _write_xlsx(rows: List[list]) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = SHEET_TITLE
    first_amount = 4
    for r, row in enumerate(rows):
        if r:
            row = list(row)
            for c in range(first_amount - 1, first_amount - 1 + len(DEDUCTION_FIELDS)):
                row[c] = float(row[c] or 0)
        ws.append(row)

    for c in range(first_amount, first_amount + len(DEDUCTION_FIELDS)):
        letter = get_column_letter(c)
        for cell in ws[letter][1:]:
            cell.number_format = "#,##0.00"

    cutoff_col = get_column_letter(TEMPLATE_HEADERS.index("Cutoff") + 1)
    dv = DataValidation(type="list", formula1='"1st,2nd"', allow_blank=True)
    ws.add_data_validation(dv)
    dv.add(f"{cutoff_col}2:{cutoff_col}{max(len(rows), 2)}")

    for c, header in enumerate(rows[0], start=1):
        ws.column_dimensions[get_column_letter(c)].width = max(12, len(str(header)) + 2)
    ws.freeze_panes = "A2"

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def write_rows(rows: List[list], fmt: SheetFormat) -> bytes:
    return _write_xlsx(rows) if fmt == "xlsx" else _write_csv(rows)


def template_rows(employees: Iterable[Employee], cutoff: str, today: str) -> List[list]:
    """One zeroed row per active employee, ready to be filled in."""

    rows: List[list] = [TEMPLATE_HEADERS]
    for emp in employees:
        rows.append(
            [emp.idno, emp.display_name, emp.department or ""]
            + ["0.00"] * len(DEDUCTION_FIELDS)
            + [cutoff, today]
        )
    return rows


def export_rows(entries: Iterable[Tuple[Employee, Deduction | None]], cutoff: str) -> List[list]:
    rows: List[list] = [EXPORT_HEADERS]
    for emp, ded in entries:
        amounts = [f"{getattr(ded, f) or 0:.2f}" if ded else "0.00" for f in DEDUCTION_FIELDS]
        if ded is None:
            tail = [cutoff, "", "No Data", "No"]
        else:
            tail = [
                ded.cutoff,
                ded.date.isoformat(),
                "Posted" if ded.is_posted else "Pending",
                "Yes" if ded.is_default else "No",
            ]
        rows.append([emp.idno, emp.display_name, emp.department or ""] + amounts + tail)
    return rows


# ---------- reading ----------


def _decode(raw: bytes) -> str:
    for enc in ("utf-8-sig", "utf-8", "cp1252"):
        try:
            return raw.decode(enc)
        except UnicodeDecodeError:
            continue
    return raw.decode("latin-1", "replace")


def _csv_rows(raw: bytes) -> Iterator[List[str]]:
    text = _decode(raw)
    try:
        delim = csv.Sniffer().sniff(text[:4096], delimiters=",;\t").delimiter
    except csv.Error:
        delim = ","
    yield from csv.reader(io.StringIO(text), delimiter=delim)


def _xlsx_rows(raw: bytes) -> Iterator[List[str]]:
    try:
        wb = load_workbook(io.BytesIO(raw), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
        raise UnreadableSheet("The import file is not a readable Excel workbook.") from exc
    try:
        ws = wb[SHEET_TITLE] if SHEET_TITLE in wb.sheetnames else wb.worksheets[0]
        for values in ws.iter_rows(values_only=True):
            yield ["" if v is None else str(v) for v in values]
    finally:
        wb.close()


def is_xlsx(raw: bytes) -> bool:
    return raw.startswith(XLSX_MAGIC)


def _amount(text: str) -> float:
    cleaned = (text or "").replace(",", "").strip()
    return float(cleaned) if cleaned else 0.0


def parse_import(raw: bytes) -> ParsedImport:
    """Parse an uploaded sheet: ID, name, department, then the six amounts.

    Excel workbooks are recognised by their zip signature; anything else
    is read as delimited text. The first row is a header. Blank rows are
    skipped; rows with a non-numeric or negative amount are reported and
    left out.
    """

    reader = _xlsx_rows(raw) if is_xlsx(raw) else _csv_rows(raw)
    parsed = ParsedImport()
    next(reader, None)
    for index, row in enumerate(reader):
        row_number = index + 2
        if not any(cell.strip() for cell in row):
            continue
        idno = row[0].strip()
        cells = row[3 : 3 + len(DEDUCTION_FIELDS)]
        cells += [""] * (len(DEDUCTION_FIELDS) - len(cells))
        try:
            amounts = {f: _amount(c) for f, c in zip(DEDUCTION_FIELDS, cells)}
        except ValueError:
            parsed.errors.append(f"Row {row_number}: amounts must be numeric.")
            continue
        if any(v < 0 for v in amounts.values()):
            parsed.errors.append(f"Row {row_number}: amounts cannot be negative.")
            continue
        parsed.rows.append(ImportRow(row_number=row_number, idno=idno, amounts=amounts))
    return parsed
