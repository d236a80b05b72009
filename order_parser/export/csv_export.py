"""
CSV export for university purchase requests.

Handles:
- Fixed 11-column header row
- One row per line item with shared header data on each row
- Comma substitution in item names
- UTF-8 with BOM so Excel shows Japanese text correctly

The format is consumed by an existing accounting import, so it is written
by hand rather than with the csv module: fields are never quoted, commas
in item names become full-width commas, and rows are joined with a bare
newline without a trailing one.
"""

import logging
import re
from pathlib import Path
from typing import Any, Union

from order_parser.errors import ExportError
from order_parser.models.invoice import InvoiceData

logger = logging.getLogger(__name__)

BOM = "\ufeff"
FULLWIDTH_COMMA = "\uff0c"
CSV_MIME_TYPE = "text/csv;charset=utf-8"

# Characters that cannot appear in a file name on common filesystems
_UNSAFE_FILE_NAME_CHARS = re.compile(r'[\\/:*?"<>|]')


def format_number(value: Any) -> str:
    """Print a number the way the accounting sheet expects: 1, not 1.0."""
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


class CsvExporter:
    """Exports an InvoiceData as a purchase request CSV."""

    # Column headers, in order
    HEADERS = [
        "起案日",      # date
        "依頼者",      # requester
        "納入先名",    # delivery destination
        "相手先",      # vendor
        "品名",        # item name
        "数量",        # quantity
        "単位",        # unit
        "税込単価",    # unit price incl. tax
        "金額(税込)",  # amount incl. tax
        "本体価格",    # net price
        "消費税額",    # tax amount
    ]

    # Row dict keys, in column order
    COLUMNS = [
        "date",
        "requester_name",
        "delivery_destination",
        "vendor_name",
        "name",
        "quantity",
        "unit",
        "unit_price_inc_tax",
        "amount_inc_tax",
        "net_price",
        "tax_amount",
    ]

    def _format_row(self, row: dict) -> list[str]:
        cells = []
        for key in self.COLUMNS:
            value = row.get(key)
            if key == "name":
                value = str(value).replace(",", FULLWIDTH_COMMA)
            elif isinstance(value, (int, float)):
                value = format_number(value)
            cells.append("" if value is None else str(value))
        return cells

    def render(self, invoice: InvoiceData) -> str:
        """Render the CSV text, BOM included."""
        lines = [",".join(self.HEADERS)]
        lines.extend(",".join(self._format_row(row)) for row in invoice.to_export_rows())
        return BOM + "\n".join(lines)

    def to_bytes(self, invoice: InvoiceData) -> bytes:
        return self.render(invoice).encode("utf-8")

    def file_name(self, invoice: InvoiceData) -> str:
        """Download name; the date is free text, so path separators are replaced."""
        date = _UNSAFE_FILE_NAME_CHARS.sub("-", invoice.date.strip())
        return f"purchase_request_{date}.csv"

    def export(self, invoice: InvoiceData, directory: Union[str, Path]) -> Path:
        """
        Write the CSV into ``directory``.

        Args:
            invoice: Invoice to export
            directory: Target directory, created if missing

        Returns:
            Path to the exported file

        Raises:
            ExportError: the directory or file could not be written
        """
        directory = Path(directory)
        file_path = directory / self.file_name(invoice)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(self.to_bytes(invoice))
        except OSError as e:
            raise ExportError(f"Cannot write {file_path}: {e}")
        logger.info(f"Exported {len(invoice.items)} rows to {file_path}")
        return file_path


def export_invoice(invoice: InvoiceData, directory: Union[str, Path]) -> Path:
    """
    Convenience function to export an invoice.

    Args:
        invoice: Invoice to export
        directory: Target directory

    Returns:
        Path to exported file
    """
    exporter = CsvExporter()
    return exporter.export(invoice, directory)
