"""
Gemini client for document extraction.

Sends one document inline to the generateContent endpoint and returns the
raw JSON text of the model's answer. Connection-level failures are
retried with exponential backoff.
"""

import logging
from typing import Optional

import requests
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from order_parser.config import GeminiConfig, get_config
from order_parser.documents.loader import UploadedDocument
from order_parser.errors import (
    ExtractionConnectionError,
    ExtractionServiceError,
    InvalidCredentialError,
    MissingCredentialError,
    ResponseDecodeError,
)
from order_parser.llm.prompts import build_request_body

logger = logging.getLogger(__name__)


class GeminiClient:
    """Client for the Gemini REST API."""

    def __init__(self, config: Optional[GeminiConfig] = None):
        """Initialize Gemini client."""
        self.config = config or get_config().gemini

    def get_provider_name(self) -> str:
        return "Gemini"

    def _get_headers(self, api_key: str) -> dict:
        """Get request headers with authentication."""
        return {
            "x-goog-api-key": api_key,
            "Content-Type": "application/json",
        }

    def extract(self, document: UploadedDocument, api_key: str) -> str:
        """
        Extract invoice data from a document.

        Args:
            document: Validated upload
            api_key: Gemini API key for this session

        Returns:
            The model's JSON answer as text

        Raises:
            MissingCredentialError: if ``api_key`` is empty
            ExtractionServiceError: on any service or transport failure
        """
        if not api_key:
            raise MissingCredentialError("No Gemini API key provided")

        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.config.max_retries)),
            wait=wait_exponential(multiplier=1, min=2, max=10),
            retry=retry_if_exception_type(ExtractionConnectionError),
            reraise=True,
        )
        return retrying(self._send, document, api_key)

    def _send(self, document: UploadedDocument, api_key: str) -> str:
        body = build_request_body(
            document.media_type,
            document.to_base64(),
            temperature=self.config.temperature,
        )

        logger.info(
            f"Sending {document.media_type} ({document.size:,} bytes) to {self.config.model}"
        )

        try:
            response = requests.post(
                self.config.endpoint(),
                headers=self._get_headers(api_key),
                json=body,
                timeout=self.config.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise ExtractionConnectionError(f"Failed to connect to Gemini: {e}")
        except requests.exceptions.Timeout:
            raise ExtractionConnectionError("Gemini request timed out")

        self._check_status(response)

        try:
            result = response.json()
        except ValueError as e:
            raise ResponseDecodeError(f"Gemini returned a non-JSON body: {e}")

        return self._response_text(result)

    def _check_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status == 200:
            return
        if status in (401, 403) or (status == 400 and "API_KEY_INVALID" in response.text):
            raise InvalidCredentialError(f"Gemini rejected the API key (status {status})")
        if status == 429:
            raise ExtractionConnectionError("Gemini rate limit exceeded")
        if status >= 500:
            raise ExtractionConnectionError(f"Gemini returned status {status}")
        raise ExtractionServiceError(f"Gemini returned status {status}: {response.text[:500]}")

    def _response_text(self, result: dict) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = result.get("candidates") if isinstance(result, dict) else None
        if not candidates:
            feedback = result.get("promptFeedback", {}) if isinstance(result, dict) else {}
            reason = feedback.get("blockReason", "no candidates")
            raise ResponseDecodeError(f"No response from Gemini: {reason}")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise ResponseDecodeError("No response text from Gemini")
        return text
