import io

from openpyxl import Workbook
from openpyxl.styles import Font

from .schemas import ImportResult

ERROR_REPORT_HEADERS = ("row", "field", "severity", "message")


def build_error_workbook(result: ImportResult) -> bytes:
    """Build an Excel file listing every import error and warning, one per line."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Import errors"
    ws.append(list(ERROR_REPORT_HEADERS))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    if not result.errors:
        ws.append(["", "", "", "No errors"])
    for error in result.errors:
        ws.append([error.row_number, error.field, error.severity.value, error.message])
    ws.column_dimensions["D"].width = 80
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
