"""
Order Parser - Purchase request CSVs from invoices and receipts.

This package provides functionality for:
- Gemini-powered extraction of invoice header and line items
- Consumption tax breakdown of tax-inclusive prices
- CSV export for the university accounting system
"""

__version__ = "0.1.0"
__author__ = "Order Parser"
