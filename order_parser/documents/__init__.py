"""Document intake: media type checks and image preparation."""

from .loader import UploadedDocument, load_document, read_document

__all__ = ["UploadedDocument", "load_document", "read_document"]
