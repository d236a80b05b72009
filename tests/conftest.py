from io import BytesIO

import pytest
from PIL import Image

from order_parser.config import reset_config
from order_parser.models.invoice import InvoiceData, LineItem


@pytest.fixture(autouse=True)
def _reset_config(monkeypatch):
    # Tests must never pick up a real key from the environment or a .env file.
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def api_key():
    return "AIza-test-key-0123456789abcdef"


@pytest.fixture
def png_bytes():
    def _make(width=300, height=150, mode="RGB"):
        buffer = BytesIO()
        Image.new(mode, (width, height), color="white").save(buffer, format="PNG")
        return buffer.getvalue()
    return _make


@pytest.fixture
def pdf_bytes():
    return b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


@pytest.fixture
def sample_invoice():
    return InvoiceData(
        date="2024-05-01",
        vendor_name="Amazon Japan G.K.",
        requester_name="山田 太郎",
        delivery_destination="工学部 情報工学科",
        items=[
            LineItem(name="Pen, Blue", quantity=2, unit="本", unit_price_inc_tax=110),
            LineItem(name="ノート A4", quantity=3, unit="冊", unit_price_inc_tax=333),
        ],
    )
