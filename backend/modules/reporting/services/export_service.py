# backend/modules/reporting/services/export_service.py

import io
import csv
import logging
import re
from typing import List, Dict, Any, Optional, Sequence
from datetime import datetime

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate,
    Table,
    TableStyle,
    Paragraph,
    Spacer,
)

from ..constants import EXPORT_EXTENSIONS
from ..schemas.report_schemas import ColumnSpec, ColumnType, ExportFormat

logger = logging.getLogger(__name__)

# Wide reports switch the PDF to landscape
LANDSCAPE_COLUMN_THRESHOLD = 6


def build_export_filename(
    report_id: str, export_format: ExportFormat, now: Optional[datetime] = None
) -> str:
    """`<report-name>-<timestamp>.<ext>` with a filesystem-safe report name"""
    name = re.sub(r"[^a-z0-9]+", "-", report_id.lower()).strip("-") or "report"
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"{name}-{timestamp}.{EXPORT_EXTENSIONS[export_format.value]}"


class ExportService:
    """Serializes report rows into CSV, Excel or PDF bytes"""

    def export(
        self,
        export_format: ExportFormat,
        title: str,
        columns: Sequence[ColumnSpec],
        rows: Sequence[Dict[str, Any]],
        summary: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """
        Export rows in the requested format.

        Args:
            export_format: Target format
            title: Report name shown in Excel and PDF headings
            columns: Exportable columns, in output order
            rows: Result rows keyed by column key
            summary: Optional report summary appended to Excel and PDF output

        Returns:
            The serialized file content
        """
        if export_format == ExportFormat.CSV:
            return self.to_csv(columns, rows)
        if export_format == ExportFormat.EXCEL:
            return self.to_excel(title, columns, rows, summary)
        if export_format == ExportFormat.PDF:
            return self.to_pdf(title, columns, rows, summary)
        raise ValueError(f"Unsupported export format: {export_format}")

    def to_csv(self, columns: Sequence[ColumnSpec], rows: Sequence[Dict[str, Any]]) -> bytes:
        """Export data to CSV; an empty result yields the header row only"""

        output = io.StringIO()
        writer = csv.writer(output)
        writer.writerow([column.label for column in columns])

        for row in rows:
            writer.writerow([self._format_csv_value(row.get(column.key)) for column in columns])

        return output.getvalue().encode("utf-8")

    def to_excel(
        self,
        title: str,
        columns: Sequence[ColumnSpec],
        rows: Sequence[Dict[str, Any]],
        summary: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """Export data to Excel format"""

        wb = openpyxl.Workbook()
        ws = wb.active
        ws.title = title[:31] or "Report"

        # Styling
        header_font = Font(bold=True, color="FFFFFF")
        header_fill = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
        center_alignment = Alignment(horizontal="center", vertical="center")
        last_column = get_column_letter(max(len(columns), 1))

        # Title row
        ws.merge_cells(f"A1:{last_column}1")
        ws["A1"] = title
        ws["A1"].font = Font(bold=True, size=14)
        ws["A1"].alignment = center_alignment

        ws.merge_cells(f"A2:{last_column}2")
        ws["A2"] = f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} | Records: {len(rows)}"
        ws["A2"].alignment = center_alignment

        # Headers (starting from row 4)
        for col, column in enumerate(columns, 1):
            cell = ws.cell(row=4, column=col)
            cell.value = column.label
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = center_alignment

        for row_idx, row in enumerate(rows, 5):
            for col_idx, column in enumerate(columns, 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=self._excel_value(row.get(column.key)))
                if column.type == ColumnType.CURRENCY:
                    cell.number_format = "#,##0.00"
                elif column.type == ColumnType.PERCENTAGE:
                    cell.number_format = "0.00"

        if summary:
            summary_row = len(rows) + 6
            ws.cell(row=summary_row, column=1, value="Summary").font = Font(bold=True)
            for offset, (key, value) in enumerate(summary.items(), 1):
                ws.cell(row=summary_row + offset, column=1, value=key)
                ws.cell(row=summary_row + offset, column=2, value=self._excel_value(value))

        # Auto-adjust column widths
        for column_cells in ws.columns:
            max_length = max(
                (len(str(cell.value)) for cell in column_cells[3:] if cell.value is not None),
                default=0,
            )
            ws.column_dimensions[get_column_letter(column_cells[0].column)].width = min(max_length + 2, 50)

        output = io.BytesIO()
        wb.save(output)
        return output.getvalue()

    def to_pdf(
        self,
        title: str,
        columns: Sequence[ColumnSpec],
        rows: Sequence[Dict[str, Any]],
        summary: Optional[Dict[str, Any]] = None,
    ) -> bytes:
        """Export data to PDF format"""

        output = io.BytesIO()
        pagesize = landscape(A4) if len(columns) > LANDSCAPE_COLUMN_THRESHOLD else A4
        doc = SimpleDocTemplate(output, pagesize=pagesize, title=title)
        styles = getSampleStyleSheet()
        elements: List[Any] = []

        title_style = ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=16,
            spaceAfter=20,
            alignment=1,  # Center alignment
        )
        elements.append(Paragraph(title, title_style))
        elements.append(
            Paragraph(
                f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}<br/>"
                f"Total Records: {len(rows)}",
                styles["Normal"],
            )
        )
        elements.append(Spacer(1, 20))

        if not rows:
            elements.append(Paragraph("No data available for the selected criteria.", styles["Normal"]))
        else:
            table_data = [[column.label for column in columns]]
            for row in rows:
                table_data.append([self._format_pdf_value(row.get(column.key), column) for column in columns])

            table = Table(table_data, repeatRows=1)
            table.setStyle(
                TableStyle(
                    [
                        ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
                        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
                        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                        ("FONTSIZE", (0, 0), (-1, 0), 9),
                        ("BOTTOMPADDING", (0, 0), (-1, 0), 10),
                        ("BACKGROUND", (0, 1), (-1, -1), colors.beige),
                        ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                        ("FONTSIZE", (0, 1), (-1, -1), 7),
                        ("GRID", (0, 0), (-1, -1), 1, colors.black),
                    ]
                )
            )
            elements.append(table)

        if summary:
            elements.append(Spacer(1, 20))
            elements.append(Paragraph("Summary", styles["Heading2"]))
            lines = "<br/>".join(f"{key}: {self._format_csv_value(value)}" for key, value in summary.items())
            elements.append(Paragraph(lines, styles["Normal"]))

        doc.build(elements)
        return output.getvalue()

    @staticmethod
    def _format_csv_value(value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value)

    @staticmethod
    def _excel_value(value: Any) -> Any:
        if isinstance(value, datetime) and value.tzinfo is not None:
            # openpyxl cannot store timezone-aware datetimes
            return value.replace(tzinfo=None)
        if isinstance(value, (str, int, float, bool, datetime)) or value is None:
            return value
        return str(value)

    @staticmethod
    def _format_pdf_value(value: Any, column: ColumnSpec) -> str:
        if value is None:
            return ""
        if column.type == ColumnType.CURRENCY and isinstance(value, (int, float)):
            return f"${value:,.2f}"
        if column.type == ColumnType.PERCENTAGE and isinstance(value, (int, float)):
            return f"{value:.1f}%"
        return str(value)
