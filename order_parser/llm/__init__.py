"""LLM module for purchase request extraction with Gemini."""

from .client import GeminiClient
from .extractor import InvoiceExtractor
from .parser import InvoiceParser

__all__ = ["GeminiClient", "InvoiceExtractor", "InvoiceParser"]
