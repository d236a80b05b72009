"""
Document to InvoiceData extraction.

Glues the Gemini client to the response decoder. Every failure leaves as
an ExtractionServiceError subclass (or MissingCredentialError), so callers
only need to show ``error.user_message``.
"""

import logging
from typing import Optional

from order_parser.documents.loader import UploadedDocument
from order_parser.errors import ExtractionServiceError, OrderParserError
from order_parser.llm.client import GeminiClient
from order_parser.llm.parser import InvoiceParser
from order_parser.models.invoice import InvoiceData

logger = logging.getLogger(__name__)


class InvoiceExtractor:
    """Extracts a purchase request from one uploaded document."""

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        parser: Optional[InvoiceParser] = None,
    ):
        self.client = client or GeminiClient()
        self.parser = parser or InvoiceParser()

    def extract(self, document: UploadedDocument, api_key: str) -> InvoiceData:
        """
        Run extraction for ``document`` using ``api_key``.

        Raises:
            MissingCredentialError: no API key
            ExtractionServiceError: transport, service or decode failure
        """
        try:
            response = self.client.extract(document, api_key)
            invoice = self.parser.decode(response)
        except OrderParserError as e:
            logger.warning(f"Extraction failed for {document.file_name or 'upload'}: {e}")
            raise
        except Exception as e:
            logger.exception("Unexpected extraction failure")
            raise ExtractionServiceError(f"Unexpected extraction failure: {e}") from e

        logger.info(
            f"Extracted {len(invoice.items)} line item(s) from "
            f"{document.file_name or 'upload'} using {self.client.get_provider_name()}"
        )
        return invoice
