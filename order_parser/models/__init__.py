"""Data models for invoices and their line items."""

from .invoice import CalculatedLineItem, ExtractionResult, InvoiceData, LineItem

__all__ = ["CalculatedLineItem", "ExtractionResult", "InvoiceData", "LineItem"]
