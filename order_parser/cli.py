"""
Command-line interface for Order Parser.

Provides extract and check commands.
"""

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from .config import get_config, update_config
from .documents.loader import read_document
from .errors import ExportError, MissingCredentialError, OrderParserError
from .export.csv_export import CsvExporter
from .llm.extractor import InvoiceExtractor
from .models.invoice import InvoiceData

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def print_invoice_summary(invoice: InvoiceData):
    """Print a human-readable summary of an extracted invoice."""
    print(f"\n{'=' * 50}")
    print("📋 PURCHASE REQUEST")
    print("=" * 50)
    print(f"Date:         {invoice.date}")
    print(f"Vendor:       {invoice.vendor_name or '-'}")
    print(f"Requester:    {invoice.requester_name or '-'}")
    print(f"Destination:  {invoice.delivery_destination or '-'}")
    print(f"\nItems ({len(invoice.items)}):")
    for line in invoice.calculated_items():
        print(
            f"  • {line.name} x{line.quantity:g} {line.unit} "
            f"@ ¥{line.unit_price_inc_tax:,g} = ¥{line.amount_inc_tax:,} "
            f"(net ¥{line.net_price:,}, tax ¥{line.tax_amount:,})"
        )
    print(f"\nTotal (incl. tax): ¥{invoice.total_amount():,}")


def extract_command(args) -> int:
    """Extract one document and write the purchase request CSV."""
    config = get_config()
    api_key = args.api_key or config.gemini.api_key

    print(f"📄 Extracting: {args.file}")
    print("-" * 50)

    try:
        if not api_key:
            raise MissingCredentialError("Set GEMINI_API_KEY or pass --api-key")

        document = read_document(args.file, config)
        invoice = InvoiceExtractor().extract(document, api_key)

        if args.requester:
            invoice.set_header_field("requester_name", args.requester)
        if args.destination:
            invoice.set_header_field("delivery_destination", args.destination)

        print_invoice_summary(invoice)

        if args.output_dir:
            config = update_config(export_dir=Path(args.output_dir))
        csv_path = CsvExporter().export(invoice, config.export_dir)
        print(f"\n💾 Saved to: {csv_path}")

        if args.json:
            json_path = csv_path.with_suffix(".json")
            try:
                with open(json_path, "w", encoding="utf-8") as f:
                    json.dump(asdict(invoice), f, indent=2, ensure_ascii=False)
            except OSError as e:
                raise ExportError(f"Cannot write {json_path}: {e}")
            print(f"💾 Extracted data saved to: {json_path}")

        return 0

    except OrderParserError as e:
        logger.debug("Extraction failed", exc_info=True)
        print(f"\n❌ {e.user_message}")
        print(f"   ({e.message})")
        return 1


def check_command(args) -> int:
    """Report configuration status."""
    config = get_config()
    valid, message = config.gemini.validate_api_key(args.api_key)

    print(f"Model:          {config.gemini.model}")
    print(f"Endpoint:       {config.gemini.endpoint()}")
    print(f"Accepted types: {', '.join(config.accepted_media_types)}")
    print(f"Export dir:     {config.export_dir}")
    print(f"{'✅' if valid else '❌'} {message}")
    return 0 if valid else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Order Parser - Turn invoices and receipts into purchase request CSVs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Extract a receipt into ./out/purchase_request_<date>.csv
  order-parser extract receipt.pdf --output-dir out --requester "山田 太郎"

  # Check the configured API key
  order-parser check
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    extract_parser = subparsers.add_parser(
        "extract",
        help="Extract a document into a purchase request CSV"
    )
    extract_parser.add_argument("file", help="PDF, JPG, PNG or WEBP document")
    extract_parser.add_argument("--output-dir", help="Directory for the CSV (default: ~/Downloads)")
    extract_parser.add_argument("--requester", help="Requester name to fill in")
    extract_parser.add_argument("--destination", help="Delivery destination to fill in")
    extract_parser.add_argument("--api-key", help="Gemini API key (default: GEMINI_API_KEY)")
    extract_parser.add_argument("--json", action="store_true", help="Also save extracted data as JSON")

    check_parser = subparsers.add_parser("check", help="Check configuration")
    check_parser.add_argument("--api-key", help="Gemini API key to check instead of GEMINI_API_KEY")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)

    if args.command == "extract":
        return extract_command(args)
    elif args.command == "check":
        return check_command(args)

    return 0


if __name__ == "__main__":
    sys.exit(main())
