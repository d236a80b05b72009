"""
Invoice data models.

``InvoiceData`` is the editable record for one uploaded document: a
header shared by every row plus an ordered list of ``LineItem``.
Derived amounts live only in ``CalculatedLineItem`` projections, which
are rebuilt from the current items on every read.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from order_parser.config import get_config
from order_parser.pricing.tax import calculate_total, derive

HEADER_FIELDS = ("date", "vendor_name", "requester_name", "delivery_destination")
TEXT_ITEM_FIELDS = ("name", "unit")
NUMERIC_ITEM_FIELDS = ("quantity", "unit_price_inc_tax")


def generate_id() -> str:
    """Opaque identifier for a line item."""
    return uuid.uuid4().hex[:12]


def today_iso() -> str:
    return date.today().isoformat()


def default_unit() -> str:
    return get_config().default_unit


@dataclass
class LineItem:
    """A single purchased item, priced tax-inclusive."""
    name: str = ""
    quantity: float = 1.0
    unit: str = field(default_factory=default_unit)
    unit_price_inc_tax: float = 0.0
    id: str = field(default_factory=generate_id)


@dataclass(frozen=True)
class CalculatedLineItem:
    """Read-only view of a LineItem with its derived yen amounts."""
    id: str
    name: str
    quantity: float
    unit: str
    unit_price_inc_tax: float
    amount_inc_tax: int
    net_price: int
    tax_amount: int

    @classmethod
    def from_item(cls, item: LineItem) -> "CalculatedLineItem":
        amounts = derive(item.unit_price_inc_tax, item.quantity)
        return cls(
            id=item.id,
            name=item.name,
            quantity=item.quantity,
            unit=item.unit,
            unit_price_inc_tax=item.unit_price_inc_tax,
            amount_inc_tax=amounts.amount_inc_tax,
            net_price=amounts.net_price,
            tax_amount=amounts.tax_amount,
        )


@dataclass
class InvoiceData:
    """Header fields plus ordered line items for one document."""
    date: str = field(default_factory=today_iso)
    vendor_name: str = ""
    requester_name: str = ""
    delivery_destination: str = ""
    items: list[LineItem] = field(default_factory=list)

    # -- header -----------------------------------------------------------

    def set_header_field(self, name: str, value: Any) -> None:
        """Replace one header attribute. Values are stored as text."""
        if name not in HEADER_FIELDS:
            raise ValueError(f"Unknown header field: {name}")
        setattr(self, name, "" if value is None else str(value))

    # -- items ------------------------------------------------------------

    def find_item(self, item_id: str) -> Optional[LineItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def add_item(self) -> LineItem:
        """Append an empty row and return it."""
        item = LineItem()
        self.items.append(item)
        return item

    def update_item_field(self, item_id: str, name: str, value: Any) -> None:
        """
        Replace one field of the item with ``item_id``.

        Unknown ids are ignored so a stale widget callback cannot fail the
        page. Negative numbers are accepted as entered.
        """
        if name not in TEXT_ITEM_FIELDS and name not in NUMERIC_ITEM_FIELDS:
            raise ValueError(f"Unknown item field: {name}")

        item = self.find_item(item_id)
        if item is None:
            return

        if name in TEXT_ITEM_FIELDS:
            setattr(item, name, "" if value is None else str(value))
        else:
            setattr(item, name, float(value or 0))

    def delete_item(self, item_id: str) -> None:
        """Remove the item with ``item_id``; no-op if absent."""
        self.items = [item for item in self.items if item.id != item_id]

    # -- derived ----------------------------------------------------------

    def calculated_items(self) -> list[CalculatedLineItem]:
        return [CalculatedLineItem.from_item(item) for item in self.items]

    def total_amount(self) -> int:
        """Sum of the floored per-line tax-inclusive amounts."""
        return calculate_total(line.amount_inc_tax for line in self.calculated_items())

    def to_export_rows(self) -> list[dict]:
        """
        One dict per line, header values repeated on every row.

        Keys follow the CSV column order.
        """
        rows = []
        for line in self.calculated_items():
            rows.append({
                "date": self.date,
                "requester_name": self.requester_name,
                "delivery_destination": self.delivery_destination,
                "vendor_name": self.vendor_name,
                "name": line.name,
                "quantity": line.quantity,
                "unit": line.unit,
                "unit_price_inc_tax": line.unit_price_inc_tax,
                "amount_inc_tax": line.amount_inc_tax,
                "net_price": line.net_price,
                "tax_amount": line.tax_amount,
            })
        return rows


@dataclass
class ExtractionResult:
    """Outcome of decoding one extraction service response."""
    success: bool
    invoice: Optional[InvoiceData] = None
    raw_response: str = ""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
