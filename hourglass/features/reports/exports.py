"""
Report Export Module

This module renders a grouped report to downloadable artifacts.

Features:
- CSV export
- Excel workbook export
- Landscape PDF export with page numbering
- Printable HTML view

Data Model:
- ExportRow: flattened entry (date, client, project, task, person, hours, notes)
- ReportDocument: grouped report plus the header information exports print

Notes:
- CSV, Excel and PDF flatten entries in sorted group order
- The print view keeps group header rows and hides the grouped column
- Reports without rows are rejected before anything is rendered

Dependencies:
- csv for CSV
- openpyxl for Excel
- reportlab for PDF

Author: Hourglass Development Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from html import escape
from io import BytesIO, StringIO
from typing import List, NamedTuple, Optional
import csv
import logging

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from hourglass.shared.exceptions import EmptyExportError
from hourglass.shared.models import GroupBy
from hourglass.shared.time_utils import format_simple_time

from .date_range import DateRange, report_now
from .grouping import flatten_groups, format_display_date
from .models import FilterTag, ReportGroup, TimeEntry

logger = logging.getLogger(__name__)

EXPORT_HEADERS = ["Date", "Client", "Project", "Task", "Person", "Hours"]
XLSX_SHEET_TITLE = "Time Report"
XLSX_COLUMN_WIDTHS = {"A": 12, "B": 25, "C": 30, "D": 25, "E": 20, "F": 15}
FILENAME_PREFIX = "detailed-time-report"

CONTENT_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
    "print": "text/html; charset=utf-8",
}

# PDF palette
HEADER_FILL = colors.Color(55 / 255, 65 / 255, 81 / 255)
ALTERNATE_FILL = colors.Color(249 / 255, 250 / 255, 251 / 255)
TOTAL_FILL = colors.Color(243 / 255, 244 / 255, 246 / 255)
GRID_COLOR = colors.Color(229 / 255, 231 / 255, 235 / 255)

styles = getSampleStyleSheet()


class ExportRow(NamedTuple):
    date: str
    client: str
    project: str
    task: str
    person: str
    hours: float
    notes: str

    def cells(self) -> List[str]:
        return [self.date, self.client, self.project, self.task, self.person, f"{self.hours:.2f}"]


@dataclass
class ReportDocument:
    """
    Everything an export needs to render.

    Attributes:
        groups (List[ReportGroup]): Sorted groups
        total_hours (float): Grand total
        group_by (GroupBy): Active grouping
        period (Optional[DateRange]): Report window, None when unbounded
        clients (List[FilterTag]): Selected clients
        projects (List[FilterTag]): Selected projects
        tasks (List[FilterTag]): Selected tasks
        generated_at (datetime): Render timestamp
    """
    groups: List[ReportGroup]
    total_hours: float
    group_by: GroupBy = GroupBy.DATE
    period: Optional[DateRange] = None
    clients: List[FilterTag] = field(default_factory=list)
    projects: List[FilterTag] = field(default_factory=list)
    tasks: List[FilterTag] = field(default_factory=list)
    generated_at: datetime = field(default_factory=report_now)


def to_export_row(entry: TimeEntry) -> ExportRow:
    return ExportRow(
        date=format_display_date(entry.date),
        client=entry.client.name if entry.client else "",
        project=entry.project.name if entry.project else "",
        task=entry.task.name if entry.task else "",
        person=entry.user.full_name if entry.user else "",
        hours=entry.hours,
        notes=entry.notes,
    )


def export_rows(groups: List[ReportGroup]) -> List[ExportRow]:
    """
    Flatten groups into export rows.

    Raises:
        EmptyExportError: If there is nothing to export
    """
    rows = [to_export_row(entry) for entry in flatten_groups(groups)]
    if not rows:
        raise EmptyExportError()
    return rows


def export_filename(period: Optional[DateRange], extension: str) -> str:
    """detailed-time-report_<dd-MM-yyyy>_to_<dd-MM-yyyy>.<ext>"""
    if period is None:
        return f"{FILENAME_PREFIX}.{extension}"
    return f"{FILENAME_PREFIX}_{period.format('%d-%m-%Y', '_to_')}.{extension}"


def format_period(period: Optional[DateRange], pattern: str = "%d/%m/%Y") -> str:
    if period is None:
        return "All dates"
    return period.format(pattern, " - ")


def _names(tags: List[FilterTag]) -> str:
    return ", ".join(tag.name for tag in tags) if tags else "All"


def _hours_label(hours: float) -> str:
    """e.g. "1.50 (1:30)"."""
    return f"{hours:.2f} ({format_simple_time(hours)})"


def render_csv(document: ReportDocument) -> str:
    """
    Render the report as CSV.

    Returns:
        str: Header, one row per entry, a blank line, then the total row
    """
    rows = export_rows(document.groups)
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        writer.writerow(row.cells())
    writer.writerow([])
    writer.writerow(["", "", "", "", "Total", f"{document.total_hours:.2f}"])
    return buffer.getvalue()


def render_xlsx(document: ReportDocument) -> bytes:
    """
    Render the report as a single-sheet workbook.

    Returns:
        bytes: XLSX file content
    """
    rows = export_rows(document.groups)

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = XLSX_SHEET_TITLE
    sheet.append(EXPORT_HEADERS)
    for cell in sheet[1]:
        cell.font = Font(bold=True)

    for row in rows:
        sheet.append([row.date, row.client, row.project, row.task, row.person, round(row.hours, 2)])
    sheet.append([])
    sheet.append(["", "", "", "", "Total", round(document.total_hours, 2)])
    for cell in sheet[sheet.max_row]:
        cell.font = Font(bold=True)

    for column, width in XLSX_COLUMN_WIDTHS.items():
        sheet.column_dimensions[column].width = width

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


class NumberedCanvas(canvas.Canvas):
    """Canvas that stamps a generation footer with "Page X of Y" on every page."""

    generated_label = ""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int):
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawCentredString(
            width / 2,
            10 * mm,
            f"{self.generated_label} | Page {self._pageNumber} of {page_count}"
        )


def render_pdf(document: ReportDocument) -> bytes:
    """
    Render the report as a landscape PDF.

    Returns:
        bytes: PDF content

    Notes:
        - Title, period, total hours and client filter above the table
        - Header band repeats on every page
        - Alternating row fill and a bold total row
    """
    rows = export_rows(document.groups)

    buffer = BytesIO()
    pdf = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=14 * mm,
        rightMargin=14 * mm,
        topMargin=14 * mm,
        bottomMargin=18 * mm,
        title="Detailed Time Report",
    )

    story = [
        Paragraph("Detailed Time Report", styles["Title"]),
        Paragraph(f"Period: {escape(format_period(document.period))}", styles["Normal"]),
        Paragraph(f"Total Hours: {_hours_label(document.total_hours)}", styles["Normal"]),
        Paragraph(f"Clients: {escape(_names(document.clients))}", styles["Normal"]),
        Spacer(1, 6 * mm),
    ]

    data = [EXPORT_HEADERS] + [row.cells() for row in rows]
    data.append(["", "", "", "", "Total", f"{document.total_hours:.2f}"])
    total_row = len(data) - 1

    table_style = [
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_FILL),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (-1, 0), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.25, GRID_COLOR),
        ("BACKGROUND", (0, total_row), (-1, total_row), TOTAL_FILL),
        ("FONTNAME", (0, total_row), (-1, total_row), "Helvetica-Bold"),
    ]
    for index in range(2, total_row, 2):
        table_style.append(("BACKGROUND", (0, index), (-1, index), ALTERNATE_FILL))

    table = Table(data, repeatRows=1, colWidths=[28 * mm, 55 * mm, 65 * mm, 55 * mm, 45 * mm, 20 * mm])
    table.setStyle(TableStyle(table_style))
    story.append(table)

    generated_label = f"Generated on {document.generated_at.strftime('%d/%m/%Y %H:%M')}"
    canvas_class = type("ReportCanvas", (NumberedCanvas,), {"generated_label": generated_label})
    pdf.build(story, canvasmaker=canvas_class)
    return buffer.getvalue()


def render_print_html(document: ReportDocument) -> str:
    """
    Render a standalone printable HTML page.

    Returns:
        str: HTML that opens the print dialog once loaded

    Notes:
        - One header row per group with its total
        - Entry rows omit the grouped column
        - Notes render as a sub-row under their entry
    """
    rows = export_rows(document.groups)
    logger.debug(f"Rendering print view for {len(rows)} entries")

    columns = [name for name in EXPORT_HEADERS[:-1] if name.lower() != _grouped_column(document.group_by)]
    columns.append("Hours")
    column_count = len(columns)

    body = []
    for group in document.groups:
        body.append(
            '<tr class="group-row">'
            f'<td colspan="{column_count - 1}">{escape(group.label)}</td>'
            f'<td class="hours">{_hours_label(group.total_hours)}</td>'
            "</tr>"
        )
        for entry in group.entries:
            row = to_export_row(entry)
            values = {
                "date": row.date,
                "client": row.client,
                "project": row.project,
                "task": row.task,
                "person": row.person,
            }
            cells = "".join(
                f"<td>{escape(values[name.lower()])}</td>" for name in columns[:-1]
            )
            body.append(f'<tr class="entry-row">{cells}<td class="hours">{row.hours:.2f}</td></tr>')
            if row.notes:
                body.append(
                    f'<tr class="notes-row"><td colspan="{column_count}">{escape(row.notes)}</td></tr>'
                )
    body.append(
        '<tr class="total-row">'
        f'<td colspan="{column_count - 1}">Total</td>'
        f'<td class="hours">{document.total_hours:.2f}</td>'
        "</tr>"
    )

    header_cells = "".join(f"<th>{escape(name)}</th>" for name in columns)
    period = escape(format_period(document.period, "%B %d, %Y"))
    generated = escape(document.generated_at.strftime("%d/%m/%Y %H:%M"))

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Detailed Time Report</title>
<style>
body {{ font-family: Arial, sans-serif; font-size: 12px; color: #111827; }}
table {{ width: 100%; border-collapse: collapse; }}
th {{ background: #374151; color: #fff; text-align: left; padding: 6px; }}
td {{ padding: 4px 6px; border-bottom: 1px solid #e5e7eb; }}
.hours {{ text-align: right; }}
.group-row td {{ background: #f3f4f6; font-weight: bold; }}
.notes-row td {{ color: #6b7280; font-style: italic; padding-left: 24px; }}
.total-row td {{ font-weight: bold; border-top: 2px solid #374151; }}
.footer {{ margin-top: 16px; color: #6b7280; font-size: 10px; }}
</style>
</head>
<body>
<h1>Detailed Time Report</h1>
<div class="summary">
<p>Period: {period}</p>
<p>Grouped by: {escape(document.group_by.label)}</p>
<p>Clients: {escape(_names(document.clients))}</p>
<p>Projects: {escape(_names(document.projects))}</p>
<p>Tasks: {escape(_names(document.tasks))}</p>
<p>Total Hours: {_hours_label(document.total_hours)}</p>
</div>
<table>
<thead><tr>{header_cells}</tr></thead>
<tbody>
{chr(10).join(body)}
</tbody>
</table>
<div class="footer">Generated on {generated}</div>
<script>window.onload = function () {{ window.print(); }};</script>
</body>
</html>
"""


def _grouped_column(group_by: GroupBy) -> str:
    return GroupBy(group_by).value


def render_export(document: ReportDocument, export_format: str):
    """
    Dispatch to a renderer.

    Args:
        document: Report to render
        export_format: csv, xlsx, pdf or print

    Returns:
        Tuple[bytes | str, str, str]: (content, content type, file name)

    Raises:
        EmptyExportError: If the report has no rows
        ValueError: For an unknown format
    """
    if export_format == "csv":
        content = render_csv(document)
    elif export_format == "xlsx":
        content = render_xlsx(document)
    elif export_format == "pdf":
        content = render_pdf(document)
    elif export_format == "print":
        content = render_print_html(document)
    else:
        raise ValueError(f"Unsupported export format: {export_format}")

    extension = "html" if export_format == "print" else export_format
    return content, CONTENT_TYPES[export_format], export_filename(document.period, extension)
