"""Tests for XLSX report assembly."""

from decimal import Decimal

import openpyxl

from orderbot.orders import RowRecord
from orderbot.report import COLUMNS, OrdersReportWriter, report_filename, rows_to_frame


def _row(title: str, quantity: int = 1) -> RowRecord:
    return RowRecord(
        order_number="#1001",
        title=title,
        quantity=quantity,
        city="Bengaluru",
        phone="+91 90000 00000",
        address="12 MG Road, Bengaluru",
        financial_status="paid",
        total_price=Decimal("2499.50"),
    )


def test_report_filename() -> None:
    assert (
        report_filename("unfulfilled", "Bangalore", "2024-01-01")
        == "unfulfilled-bangalore-orders-2024-01-01.xlsx"
    )
    assert report_filename("all", "São Paulo!", "2024-01-01") == (
        "all-s-o-paulo-orders-2024-01-01.xlsx"
    )


def test_rows_to_frame_uses_headers_in_order() -> None:
    frame = rows_to_frame([_row("Tea")])

    assert list(frame.columns) == [header for _, header, _ in COLUMNS]
    assert frame.iloc[0]["Total Price (₹)"] == 2499.5


def test_render_writes_sheet(tmp_path) -> None:
    rows = [_row("Tea", 2), _row("Mug", 1)]
    output = tmp_path / "reports" / "orders.xlsx"

    path = OrdersReportWriter().render(rows, output)

    assert path == output.resolve()
    workbook = openpyxl.load_workbook(path)
    sheet = workbook["Orders"]
    values = list(sheet.iter_rows(values_only=True))

    assert values[0] == tuple(header for _, header, _ in COLUMNS)
    assert values[1][:3] == ("#1001", "Tea", 2)
    assert values[2][1] == "Mug"
    assert values[2][7] == 2499.5
    assert sheet.freeze_panes == "A2"
    assert sheet.auto_filter.ref is not None


def test_render_empty_rows_writes_header_only(tmp_path) -> None:
    path = OrdersReportWriter().render([], tmp_path / "empty.xlsx")

    sheet = openpyxl.load_workbook(path)["Orders"]
    assert sheet.max_row == 1
