"""
Exceptions raised across the upload, extraction and export workflow.

Every exception carries a ``user_message``: the single line shown to the
user in the UI. The exception's own message stays technical and is what
ends up in the logs.

    OrderParserError
    ├── UnsupportedFileTypeError
    ├── MissingCredentialError
    ├── FileReadError
    ├── ExportError
    └── ExtractionServiceError
        ├── ExtractionConnectionError
        ├── InvalidCredentialError
        └── ResponseDecodeError
"""

UNSUPPORTED_FILE_MESSAGE = "対応していないファイル形式です。PDF, JPG, PNGのみアップロード可能です。"
MISSING_CREDENTIAL_MESSAGE = "API Keyが設定されていません。"
FILE_READ_MESSAGE = "ファイルの読み込みに失敗しました。"
EXTRACTION_FAILED_MESSAGE = "AI解析に失敗しました。もう一度試すか、手動で入力してください。"
EXPORT_FAILED_MESSAGE = "CSVの保存に失敗しました。"


class OrderParserError(Exception):
    """Base exception for Order Parser errors."""

    user_message = "処理を開始できませんでした。"

    def __init__(self, message: str = "", details: dict = None):
        self.message = message or self.user_message
        self.details = details or {}
        super().__init__(self.message)


class UnsupportedFileTypeError(OrderParserError):
    """Uploaded file is not one of the accepted media types."""

    user_message = UNSUPPORTED_FILE_MESSAGE

    def __init__(self, media_type: str, message: str = ""):
        self.media_type = media_type
        super().__init__(
            message or f"Unsupported media type: {media_type or 'unknown'}",
            {"media_type": media_type},
        )


class MissingCredentialError(OrderParserError):
    """No API key available for the extraction call."""

    user_message = MISSING_CREDENTIAL_MESSAGE


class FileReadError(OrderParserError):
    """File could not be read, or its content is not a valid document."""

    user_message = FILE_READ_MESSAGE


class ExportError(OrderParserError):
    """The CSV could not be written."""

    user_message = EXPORT_FAILED_MESSAGE


class ExtractionServiceError(OrderParserError):
    """The extraction service failed to produce a usable response."""

    user_message = EXTRACTION_FAILED_MESSAGE


class ExtractionConnectionError(ExtractionServiceError):
    """Transport-level failure: network error, timeout, rate limit or 5xx."""
    pass


class InvalidCredentialError(ExtractionServiceError):
    """The service rejected the API key."""
    pass


class ResponseDecodeError(ExtractionServiceError):
    """The service answered, but not with a decodable invoice object."""
    pass
