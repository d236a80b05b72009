"""
Response decoder for purchase request extraction.

Handles:
- JSON extraction from model responses
- Per-field defaulting of missing or malformed values
- Warnings for suspicious but usable results

A response that contains no JSON object is a decode failure. Anything
else yields a usable InvoiceData, however incomplete.
"""

import json
import logging
import math
import re
from typing import Any, Optional

from order_parser.config import AppConfig, get_config
from order_parser.errors import ResponseDecodeError
from order_parser.models.invoice import ExtractionResult, InvoiceData, LineItem, today_iso

logger = logging.getLogger(__name__)

# Currency marks and digit grouping seen in Japanese receipts
_NUMBER_NOISE = re.compile(r"[¥￥円,，\s]")


class InvoiceParser:
    """
    Parses model responses into InvoiceData.

    Response keys are the camelCase names of the response schema.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or get_config()

    def parse_response(self, response: str) -> ExtractionResult:
        """
        Parse a model response.

        Args:
            response: Raw response text

        Returns:
            ExtractionResult with the decoded invoice or errors
        """
        errors = []
        warnings = []

        json_str = self._extract_json(response or "")
        if not json_str:
            errors.append("No valid JSON found in response")
            return ExtractionResult(success=False, raw_response=response, errors=errors)

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            errors.append(f"JSON parse error: {str(e)}")
            return ExtractionResult(success=False, raw_response=response, errors=errors)

        if not isinstance(data, dict):
            errors.append(f"Expected a JSON object, got {type(data).__name__}")
            return ExtractionResult(success=False, raw_response=response, errors=errors)

        invoice = self._dict_to_invoice(data, warnings)
        warnings.extend(self._validate_extraction(invoice))

        return ExtractionResult(
            success=True,
            invoice=invoice,
            raw_response=response,
            errors=errors,
            warnings=warnings,
        )

    def decode(self, response: str) -> InvoiceData:
        """Like parse_response, but raise ResponseDecodeError on failure."""
        result = self.parse_response(response)
        if not result.success:
            raise ResponseDecodeError("; ".join(result.errors))
        for warning in result.warnings:
            logger.info(f"Extraction warning: {warning}")
        return result.invoice

    def _extract_json(self, response: str) -> Optional[str]:
        """Extract JSON object from response string."""
        # Try the entire response as JSON
        stripped = response.strip()
        if stripped.startswith("{"):
            try:
                json.loads(stripped)
                return stripped
            except json.JSONDecodeError:
                pass

        # Try to find JSON block in markdown code blocks
        code_block_pattern = r"```(?:json)?\s*(\{[\s\S]*?\})\s*```"
        match = re.search(code_block_pattern, response)
        if match:
            return match.group(1)

        # Try to find raw JSON object
        match = re.search(r"(\{[\s\S]*\})", response)
        if match:
            try:
                json.loads(match.group(1))
                return match.group(1)
            except json.JSONDecodeError:
                pass

        return None

    def _dict_to_invoice(self, data: dict, warnings: list) -> InvoiceData:
        """Convert a decoded JSON object to InvoiceData, defaulting per field."""
        items = []
        raw_items = data.get("items")
        if raw_items is not None and not isinstance(raw_items, list):
            warnings.append(f"Ignoring items of type {type(raw_items).__name__}")
            raw_items = None

        for index, item_data in enumerate(raw_items or []):
            if not isinstance(item_data, dict):
                warnings.append(f"Skipped line item {index + 1}: not an object")
                continue
            items.append(self._dict_to_item(item_data))

        return InvoiceData(
            date=self._text(data.get("date")) or today_iso(),
            vendor_name=self._text(data.get("vendorName")),
            requester_name=self._text(data.get("requesterName")),
            delivery_destination=self._text(data.get("deliveryDestination")),
            items=items,
        )

    def _dict_to_item(self, item_data: dict) -> LineItem:
        # Zero or unreadable quantities fall back to 1, like a missing one
        quantity = self._parse_number(item_data.get("quantity")) or 1.0
        price = self._parse_number(item_data.get("unitPriceIncTax")) or 0.0
        return LineItem(
            name=self._text(item_data.get("name")) or self.config.unknown_item_name,
            quantity=quantity,
            unit=self._text(item_data.get("unit")) or self.config.default_unit,
            unit_price_inc_tax=price,
        )

    @staticmethod
    def _text(value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    @staticmethod
    def _parse_number(value: Any) -> Optional[float]:
        """Parse a finite number from JSON numbers or numeric strings."""
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            cleaned = _NUMBER_NOISE.sub("", value)
            try:
                number = float(cleaned)
            except ValueError:
                return None
        else:
            return None

        return number if math.isfinite(number) else None

    def _validate_extraction(self, invoice: InvoiceData) -> list[str]:
        """Return warnings for fields the user should double-check."""
        warnings = []

        if not invoice.vendor_name:
            warnings.append("Missing vendor name")

        if not re.fullmatch(r"\d{4}-\d{2}-\d{2}", invoice.date):
            warnings.append(f"Date '{invoice.date}' is not in YYYY-MM-DD format")

        if len(invoice.items) == 0:
            warnings.append("No line items extracted")

        for item in invoice.items:
            if item.quantity < 0 or item.unit_price_inc_tax < 0:
                warnings.append(f"Negative quantity or price for '{item.name}'")

        return warnings


def parse_llm_response(response: str) -> ExtractionResult:
    """
    Convenience function to parse a model response.

    Args:
        response: Raw response text

    Returns:
        ExtractionResult with parsed data
    """
    parser = InvoiceParser()
    return parser.parse_response(response)
