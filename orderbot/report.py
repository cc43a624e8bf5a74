"""XLSX report assembly for filtered order rows."""

import logging
import re
from pathlib import Path
from typing import List, Sequence, Tuple

import pandas as pd

from .orders import RowRecord

logger = logging.getLogger(__name__)

SHEET_NAME = "Orders"

# (row field, header, column width)
COLUMNS: List[Tuple[str, str, int]] = [
    ("order_number", "Order Number", 18),
    ("title", "Product Title", 36),
    ("quantity", "Quantity", 10),
    ("city", "City", 16),
    ("phone", "Phone", 16),
    ("address", "Full Address", 60),
    ("financial_status", "Financial Status", 18),
    ("total_price", "Total Price (₹)", 16),
]


def _slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "orders"


def report_filename(variant: str, city_slug: str, label: str) -> str:
    """E.g. ``unfulfilled-bangalore-orders-2024-01-01.xlsx``."""
    return f"{_slugify(variant)}-{_slugify(city_slug)}-orders-{label}.xlsx"


def rows_to_frame(rows: Sequence[RowRecord]) -> pd.DataFrame:
    records = []
    for row in rows:
        data = row.to_dict()
        data["total_price"] = float(data["total_price"])
        records.append(data)

    fields = [name for name, _, _ in COLUMNS]
    frame = pd.DataFrame.from_records(records, columns=fields)
    return frame.rename(columns={name: header for name, header, _ in COLUMNS})


class OrdersReportWriter:
    """Renders report rows as a single-sheet Excel workbook."""

    def __init__(self) -> None:
        self.logger = logging.getLogger(__name__)

    def render(self, rows: Sequence[RowRecord], output_path: Path) -> Path:
        """Write ``rows`` to ``output_path`` and return the resolved path."""
        output_path = Path(output_path).resolve()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        df = rows_to_frame(rows)

        try:
            with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
                df.to_excel(writer, sheet_name=SHEET_NAME, index=False)

                workbook = writer.book
                worksheet = writer.sheets[SHEET_NAME]

                header_format = workbook.add_format({"bold": True})
                money_format = workbook.add_format({"num_format": "#,##0.00"})

                for col_num, (name, header, width) in enumerate(COLUMNS):
                    worksheet.write(0, col_num, header, header_format)
                    cell_format = money_format if name == "total_price" else None
                    worksheet.set_column(col_num, col_num, width, cell_format)

                worksheet.freeze_panes(1, 0)
                worksheet.autofilter(0, 0, max(len(df), 1), len(COLUMNS) - 1)

        except Exception as e:
            self.logger.error(f"Error generating XLSX: {e}")
            raise

        self.logger.info(f"Excel written: {output_path} ({len(df)} rows)")
        return output_path
