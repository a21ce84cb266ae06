"""
Export Service - route details as a formatted Excel workbook (openpyxl)
"""
import io
from datetime import datetime, timezone
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from wasteroute.viewmodels.route_details import RouteDetailsUiState


# ==================== Styles ====================

_HEADER_FILL = PatternFill(start_color="1F4E79", end_color="1F4E79", fill_type="solid")
_HEADER_FONT = Font(name="Arial", bold=True, color="FFFFFF", size=11)
_TITLE_FONT = Font(name="Arial", bold=True, size=14)
_SUBTITLE_FONT = Font(name="Arial", bold=False, size=10, color="666666")
_TOTAL_FONT = Font(name="Arial", bold=True, size=11)
_TOTAL_FILL = PatternFill(start_color="D9E2F3", end_color="D9E2F3", fill_type="solid")
_ISSUE_FILL = PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid")

_THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)

_LEFT_ALIGN = Alignment(horizontal="left", vertical="center", wrap_text=True)

ROUTE_DETAILS_HEADERS = [
    "Step",
    "TPS ID",
    "TPS Name",
    "Address",
    "Completed",
    "Completed At (UTC)",
    "Proof Photo",
    "Notes",
    "Issue",
]


def _auto_fit_columns(ws: Any) -> None:
    """Fit column widths to content, between 10 and 40 characters"""
    for col_cells in ws.columns:
        max_length = 0
        col_letter = get_column_letter(col_cells[0].column)
        for cell in col_cells:
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        ws.column_dimensions[col_letter].width = min(max(max_length + 4, 10), 40)


def _apply_row_style(ws: Any, row: int, col_count: int, font=None, fill=None) -> None:
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        if font is not None:
            cell.font = font
        if fill is not None:
            cell.fill = fill
        cell.alignment = _LEFT_ALIGN
        cell.border = _THIN_BORDER


def _write_title(ws: Any, title: str, subtitle: str, start_row: int = 1) -> int:
    """Write title and subtitle, return the next free row"""
    ws.cell(row=start_row, column=1, value=title).font = _TITLE_FONT
    ws.cell(row=start_row + 1, column=1, value=subtitle).font = _SUBTITLE_FONT
    return start_row + 3


# Excel evaluates cells starting with these as formulas
_FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")


def _sanitize_text(value: str) -> str:
    """Neutralise text Excel would interpret as a formula by prefixing a quote"""
    if isinstance(value, str) and value and value[0] in _FORMULA_PREFIXES:
        return f"'{value}"
    return value


def format_millis(value: int | None) -> str:
    if value is None:
        return ""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")


def generate_route_details_excel(state: RouteDetailsUiState) -> bytes:
    """
    Build an XLSX workbook for a loaded route.

    Args:
        state: a loaded route details snapshot (``schedule`` must be set)

    Returns:
        bytes - XLSX file content
    """
    if state.schedule is None:
        raise ValueError("Route details are not loaded")

    wb = Workbook()
    ws = wb.active
    ws.title = "Route Details"

    driver_name = state.driver.name if state.driver is not None else "Unassigned"
    title = f"Route {_sanitize_text(state.schedule.id)}"
    subtitle = (
        f"Driver: {_sanitize_text(driver_name)} | "
        f"Status: {state.schedule.status.value} | "
        f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M')} UTC"
    )
    header_row = _write_title(ws, title, subtitle)

    col_count = len(ROUTE_DETAILS_HEADERS)
    for col, header in enumerate(ROUTE_DETAILS_HEADERS, 1):
        ws.cell(row=header_row, column=col, value=header)
    _apply_row_style(ws, header_row, col_count, font=_HEADER_FONT, fill=_HEADER_FILL)

    for i, step in enumerate(state.route_steps):
        row = header_row + 1 + i
        values = [
            step.step_number,
            _sanitize_text(step.tps_id),
            _sanitize_text(step.tps_name),
            _sanitize_text(step.tps_address),
            "Yes" if step.is_completed else "No",
            format_millis(step.completed_at),
            _sanitize_text(step.proof_photo_url or ""),
            _sanitize_text(step.notes),
            "Yes" if step.has_issue else "",
        ]
        for col, value in enumerate(values, 1):
            ws.cell(row=row, column=col, value=value)
        _apply_row_style(ws, row, col_count, fill=_ISSUE_FILL if step.has_issue else None)

    progress = state.progress
    total_row = header_row + 1 + len(state.route_steps)
    ws.cell(row=total_row, column=1, value="Total")
    ws.cell(row=total_row, column=3, value=f"{progress.total_steps} stops")
    ws.cell(row=total_row, column=5, value=f"{progress.completed_steps}/{progress.total_steps}")
    ws.cell(row=total_row, column=7, value=f"{progress.steps_with_photos} photos")
    ws.cell(row=total_row, column=9, value=f"{progress.steps_with_issues} issues")
    _apply_row_style(ws, total_row, col_count, font=_TOTAL_FONT, fill=_TOTAL_FILL)

    _auto_fit_columns(ws)

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    return output.getvalue()
