# backend/modules/reporting/tests/test_export_service.py

import csv
import io
from datetime import datetime

import openpyxl
import pytest

from modules.reporting.definitions import SALES_BY_CUSTOMER
from modules.reporting.schemas.report_schemas import ExportFormat
from modules.reporting.services.export_service import ExportService, build_export_filename

ROWS = [
    {
        "customerName": "Acme Corp",
        "company": "Acme",
        "customerType": "B2B",
        "invoiceCount": 3,
        "totalSales": 1200.5,
        "totalTax": 120.05,
        "salesWithTax": 1320.55,
        "averageOrderValue": 440.18,
    },
    {
        "customerName": "Jane Doe",
        "company": None,
        "customerType": "B2C",
        "invoiceCount": 1,
        "totalSales": 80,
        "totalTax": 8,
        "salesWithTax": 88,
        "averageOrderValue": 88,
    },
]


@pytest.fixture
def export_service():
    return ExportService()


@pytest.fixture
def columns():
    return SALES_BY_CUSTOMER.export_columns


class TestCsvExport:

    def test_header_and_rows(self, export_service, columns):
        content = export_service.to_csv(columns, ROWS).decode("utf-8")
        lines = list(csv.reader(io.StringIO(content)))

        assert lines[0] == [column.label for column in columns]
        assert lines[1][0] == "Acme Corp"
        assert lines[2][1] == ""
        assert len(lines) == 3

    def test_empty_result_has_header_only(self, export_service, columns):
        content = export_service.export(ExportFormat.CSV, "Sales by Customer", columns, [])

        assert content.decode("utf-8").strip().splitlines() == [
            ",".join(column.label for column in columns)
        ]


class TestBinaryExports:

    def test_excel(self, export_service, columns):
        content = export_service.export(
            ExportFormat.EXCEL, "Sales by Customer", columns, ROWS, {"totalRevenue": 1408.55}
        )

        assert content[:2] == b"PK"
        sheet = openpyxl.load_workbook(io.BytesIO(content)).active
        assert sheet["A1"].value == "Sales by Customer"
        assert sheet.cell(row=4, column=1).value == "Customer Name"
        assert sheet.cell(row=5, column=1).value == "Acme Corp"
        assert sheet.cell(row=9, column=1).value == "totalRevenue"

    def test_pdf(self, export_service, columns):
        content = export_service.export(ExportFormat.PDF, "Sales by Customer", columns, ROWS)

        assert content.startswith(b"%PDF")

    def test_pdf_without_rows(self, export_service, columns):
        content = export_service.to_pdf("Sales by Customer", columns, [])

        assert content.startswith(b"%PDF")


class TestExportFilename:

    @pytest.mark.parametrize(
        "export_format,extension",
        [(ExportFormat.CSV, "csv"), (ExportFormat.EXCEL, "xlsx"), (ExportFormat.PDF, "pdf")],
    )
    def test_filename(self, export_format, extension):
        filename = build_export_filename("sales-by-customer", export_format, now=datetime(2025, 8, 1, 9, 5, 3))

        assert filename == f"sales-by-customer-20250801_090503.{extension}"

    def test_unsafe_characters_are_replaced(self):
        filename = build_export_filename("../Sales By/Customer", ExportFormat.CSV, now=datetime(2025, 8, 1))

        assert filename == "sales-by-customer-20250801_000000.csv"
