"""Tests for the order-parser command line."""

import json
from unittest.mock import patch

import pytest

from order_parser.cli import main
from order_parser.config import get_config
from order_parser.errors import ExtractionServiceError
from order_parser.models.invoice import InvoiceData, LineItem


@pytest.fixture
def pdf_file(tmp_path, pdf_bytes):
    path = tmp_path / "receipt.pdf"
    path.write_bytes(pdf_bytes)
    return path


@pytest.fixture
def extracted():
    return InvoiceData(
        date="2024-07-01",
        vendor_name="ヨドバシカメラ",
        items=[LineItem(name="USBケーブル, 1m", quantity=2, unit="本", unit_price_inc_tax=1100)],
    )


def test_extract_writes_csv(tmp_path, pdf_file, extracted, api_key, capsys):
    out_dir = tmp_path / "out"
    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.return_value = extracted
        code = main([
            "extract", str(pdf_file),
            "--output-dir", str(out_dir),
            "--api-key", api_key,
            "--requester", "山田 太郎",
            "--destination", "工学部",
        ])

    assert code == 0
    document, key = extractor_cls.return_value.extract.call_args.args
    assert document.media_type == "application/pdf"
    assert key == api_key

    csv_text = (out_dir / "purchase_request_2024-07-01.csv").read_text(encoding="utf-8-sig")
    assert csv_text.split("\n")[1] == (
        "2024-07-01,山田 太郎,工学部,ヨドバシカメラ,USBケーブル， 1m,2,本,1100,2200,2000,200"
    )
    assert "Total (incl. tax): ¥2,200" in capsys.readouterr().out


def test_extract_can_save_json(tmp_path, pdf_file, extracted, api_key):
    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.return_value = extracted
        code = main(["extract", str(pdf_file), "--output-dir", str(tmp_path), "--api-key", api_key, "--json"])

    assert code == 0
    data = json.loads((tmp_path / "purchase_request_2024-07-01.json").read_text(encoding="utf-8"))
    assert data["vendor_name"] == "ヨドバシカメラ"
    assert data["items"][0]["quantity"] == 2


def test_extract_uses_configured_key(tmp_path, pdf_file, extracted, api_key):
    get_config().gemini.api_key = api_key
    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.return_value = extracted
        assert main(["extract", str(pdf_file), "--output-dir", str(tmp_path)]) == 0
    assert extractor_cls.return_value.extract.call_args.args[1] == api_key


def test_extract_without_key_fails(tmp_path, pdf_file, capsys):
    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        code = main(["extract", str(pdf_file), "--output-dir", str(tmp_path)])

    assert code == 1
    extractor_cls.return_value.extract.assert_not_called()
    assert "API Keyが設定されていません。" in capsys.readouterr().out


def test_extract_rejects_unsupported_file(tmp_path, api_key, capsys):
    path = tmp_path / "notes.txt"
    path.write_text("hello", encoding="utf-8")

    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        code = main(["extract", str(path), "--output-dir", str(tmp_path), "--api-key", api_key])

    assert code == 1
    extractor_cls.return_value.extract.assert_not_called()
    assert "対応していないファイル形式です" in capsys.readouterr().out
    assert not list(tmp_path.glob("*.csv"))


def test_extract_reports_service_failure(tmp_path, pdf_file, api_key, capsys):
    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.side_effect = ExtractionServiceError("Gemini returned status 400")
        code = main(["extract", str(pdf_file), "--output-dir", str(tmp_path), "--api-key", api_key])

    assert code == 1
    assert "AI解析に失敗しました" in capsys.readouterr().out


def test_check_reports_missing_key(capsys):
    assert main(["check"]) == 1
    assert "Gemini API key not set" in capsys.readouterr().out


def test_check_with_key(api_key):
    assert main(["check", "--api-key", api_key]) == 0


def test_no_command_prints_help():
    assert main([]) == 1


def test_extract_with_slashed_date_writes_csv(tmp_path, pdf_file, api_key):
    out_dir = tmp_path / "out"
    invoice = InvoiceData(date="2024/05/01", items=[LineItem(name="Pen", unit_price_inc_tax=110)])

    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.return_value = invoice
        code = main(["extract", str(pdf_file), "--output-dir", str(out_dir), "--api-key", api_key])

    assert code == 0
    assert (out_dir / "purchase_request_2024-05-01.csv").exists()


def test_extract_reports_unwritable_output_dir(tmp_path, pdf_file, extracted, api_key, capsys):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.return_value = extracted
        code = main(["extract", str(pdf_file), "--output-dir", str(blocker), "--api-key", api_key])

    assert code == 1
    assert "CSVの保存に失敗しました。" in capsys.readouterr().out


def test_output_dir_updates_configured_export_dir(tmp_path, pdf_file, extracted, api_key):
    out_dir = tmp_path / "out"
    with patch("order_parser.cli.InvoiceExtractor") as extractor_cls:
        extractor_cls.return_value.extract.return_value = extracted
        main(["extract", str(pdf_file), "--output-dir", str(out_dir), "--api-key", api_key])

    assert get_config().export_dir == out_dir
