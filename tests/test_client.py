"""Tests for the Gemini client and the extraction pipeline.

The HTTP layer is patched; no test talks to the network.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from order_parser.config import GeminiConfig
from order_parser.documents.loader import UploadedDocument, load_document
from order_parser.errors import (
    ExtractionConnectionError,
    ExtractionServiceError,
    InvalidCredentialError,
    MissingCredentialError,
    ResponseDecodeError,
    UnsupportedFileTypeError,
)
from order_parser.llm.client import GeminiClient
from order_parser.llm.extractor import InvoiceExtractor


def _response(status_code=200, payload=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.text = text or json.dumps(payload or {})
    response.json.return_value = payload
    return response


def _candidate(text):
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


@pytest.fixture
def document(pdf_bytes):
    return UploadedDocument(file_name="invoice.pdf", media_type="application/pdf", content=pdf_bytes)


@pytest.fixture
def client():
    config = GeminiConfig(
        base_url="https://example.test/v1beta",
        model="gemini-test",
        api_key="",
        max_retries=1,
    )
    return GeminiClient(config)


def test_request_shape(client, document, api_key):
    with patch("order_parser.llm.client.requests.post") as post:
        post.return_value = _response(payload=_candidate('{"items": []}'))
        text = client.extract(document, api_key)

    assert text == '{"items": []}'
    url = post.call_args.args[0]
    kwargs = post.call_args.kwargs
    assert url == "https://example.test/v1beta/models/gemini-test:generateContent"
    assert kwargs["headers"]["x-goog-api-key"] == api_key
    assert kwargs["timeout"] == client.config.timeout

    body = kwargs["json"]
    inline = body["contents"][0]["parts"][0]["inlineData"]
    assert inline["mimeType"] == "application/pdf"
    assert inline["data"] == document.to_base64()
    assert body["generationConfig"]["responseMimeType"] == "application/json"
    assert "items" in body["generationConfig"]["responseSchema"]["properties"]
    assert "大学の経理事務" in body["systemInstruction"]["parts"][0]["text"]


def test_text_parts_are_joined(client, document, api_key):
    payload = {"candidates": [{"content": {"parts": [{"text": '{"items":'}, {"text": " []}"}]}}]}
    with patch("order_parser.llm.client.requests.post", return_value=_response(payload=payload)):
        assert client.extract(document, api_key) == '{"items": []}'


def test_missing_api_key_never_calls_service(client, document):
    with patch("order_parser.llm.client.requests.post") as post:
        with pytest.raises(MissingCredentialError) as excinfo:
            client.extract(document, "")

    post.assert_not_called()
    assert excinfo.value.user_message == "API Keyが設定されていません。"


@pytest.mark.parametrize("status", [401, 403])
def test_rejected_key(client, document, api_key, status):
    with patch("order_parser.llm.client.requests.post", return_value=_response(status, {"error": {}})):
        with pytest.raises(InvalidCredentialError):
            client.extract(document, api_key)


def test_invalid_key_reported_as_bad_request(client, document, api_key):
    response = _response(400, {"error": {}}, text='{"error": {"status": "INVALID_ARGUMENT", "reason": "API_KEY_INVALID"}}')
    with patch("order_parser.llm.client.requests.post", return_value=response):
        with pytest.raises(InvalidCredentialError):
            client.extract(document, api_key)


def test_other_bad_request_is_service_error(client, document, api_key):
    with patch("order_parser.llm.client.requests.post", return_value=_response(400, {"error": {}})):
        with pytest.raises(ExtractionServiceError) as excinfo:
            client.extract(document, api_key)
    assert not isinstance(excinfo.value, (ExtractionConnectionError, InvalidCredentialError))


@pytest.mark.parametrize("status", [429, 500, 503])
def test_transient_statuses_are_connection_errors(client, document, api_key, status):
    with patch("order_parser.llm.client.requests.post", return_value=_response(status, {})):
        with pytest.raises(ExtractionConnectionError):
            client.extract(document, api_key)


def test_timeout_is_connection_error(client, document, api_key):
    with patch("order_parser.llm.client.requests.post", side_effect=requests.exceptions.Timeout()):
        with pytest.raises(ExtractionConnectionError):
            client.extract(document, api_key)


def test_connection_errors_are_retried(document, api_key):
    client = GeminiClient(GeminiConfig(base_url="https://example.test", model="m", max_retries=3))
    responses = [
        requests.exceptions.ConnectionError("reset"),
        _response(503, {}),
        _response(payload=_candidate('{"items": []}')),
    ]
    with patch("order_parser.llm.client.requests.post", side_effect=responses) as post, \
            patch("tenacity.nap.time.sleep"):
        assert client.extract(document, api_key) == '{"items": []}'
    assert post.call_count == 3


def test_no_candidates_is_decode_error(client, document, api_key):
    payload = {"promptFeedback": {"blockReason": "SAFETY"}}
    with patch("order_parser.llm.client.requests.post", return_value=_response(payload=payload)):
        with pytest.raises(ResponseDecodeError, match="SAFETY"):
            client.extract(document, api_key)


def test_non_json_body_is_decode_error(client, document, api_key):
    response = _response(text="<html>")
    response.json.side_effect = ValueError("Expecting value")
    with patch("order_parser.llm.client.requests.post", return_value=response):
        with pytest.raises(ResponseDecodeError):
            client.extract(document, api_key)


# -- InvoiceExtractor --------------------------------------------------------

def test_extractor_returns_invoice(client, document, api_key):
    answer = json.dumps({
        "date": "2024-05-01",
        "vendorName": "ASKUL",
        "items": [{"name": "Pen, Blue", "quantity": 3, "unitPriceIncTax": 333}],
    })
    with patch("order_parser.llm.client.requests.post", return_value=_response(payload=_candidate(answer))):
        invoice = InvoiceExtractor(client=client).extract(document, api_key)

    assert invoice.vendor_name == "ASKUL"
    assert invoice.total_amount() == 999


def test_extractor_missing_items_is_not_an_error(client, document, api_key):
    answer = json.dumps({"date": "2024-05-01", "vendorName": "ASKUL"})
    with patch("order_parser.llm.client.requests.post", return_value=_response(payload=_candidate(answer))):
        invoice = InvoiceExtractor(client=client).extract(document, api_key)
    assert invoice.items == []


def test_extractor_wraps_unexpected_errors(document, api_key):
    broken = MagicMock()
    broken.extract.side_effect = KeyError("candidates")
    with pytest.raises(ExtractionServiceError):
        InvoiceExtractor(client=broken).extract(document, api_key)


def test_extractor_propagates_decode_failure(client, document, api_key):
    with patch("order_parser.llm.client.requests.post", return_value=_response(payload=_candidate("sorry"))):
        with pytest.raises(ResponseDecodeError):
            InvoiceExtractor(client=client).extract(document, api_key)


def test_unsupported_upload_never_reaches_service(api_key):
    with patch("order_parser.llm.client.requests.post") as post:
        with pytest.raises(UnsupportedFileTypeError):
            document = load_document(b"just text", "text/plain", "notes.txt")
            InvoiceExtractor().extract(document, api_key)
    post.assert_not_called()
