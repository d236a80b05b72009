"""
Per-session state: the API key and the in-flight extraction.

Both wrap a mutable mapping. In the UI that mapping is Streamlit's
``st.session_state``, so nothing outlives the browser session; tests pass
a plain dict.
"""

import logging
import uuid
from collections.abc import MutableMapping
from typing import Any, Optional

logger = logging.getLogger(__name__)

API_KEY_STORAGE_KEY = "gemini_api_key"
PENDING_STORAGE_KEY = "extraction_token"


class CredentialStore:
    """
    Session-scoped holder for the Gemini API key.

    ``load`` runs once at start-up; ``save`` and ``clear`` are the only
    mutations. The key is read with ``api_key`` and handed to the
    extraction call explicitly.
    """

    def __init__(self, storage: MutableMapping, key: str = API_KEY_STORAGE_KEY):
        self._storage = storage
        self._key = key

    def load(self, default: str = "") -> str:
        """Seed the store from ``default`` unless a key is already saved."""
        if not self._storage.get(self._key) and default:
            self._storage[self._key] = default.strip()
        return self.api_key

    def save(self, api_key: str) -> None:
        self._storage[self._key] = (api_key or "").strip()
        logger.info("API key saved for this session")

    def clear(self) -> None:
        self._storage.pop(self._key, None)
        logger.info("API key cleared")

    @property
    def api_key(self) -> str:
        return self._storage.get(self._key) or ""

    @property
    def is_set(self) -> bool:
        return bool(self.api_key)


class ExtractionSession:
    """
    Single-flight guard for extraction requests.

    ``begin`` hands out a token and refuses while another request is
    pending. ``finish`` reports whether the response for a token may
    still be applied: after ``cancel`` (reset, new upload, key cleared)
    the late response is dropped.
    """

    def __init__(self, storage: MutableMapping, key: str = PENDING_STORAGE_KEY):
        self._storage = storage
        self._key = key

    @property
    def pending(self) -> bool:
        return bool(self._storage.get(self._key))

    def begin(self) -> Optional[str]:
        """Start a request; returns its token, or None if one is in flight."""
        if self.pending:
            logger.info("Extraction already in progress, ignoring new request")
            return None
        token = uuid.uuid4().hex
        self._storage[self._key] = token
        return token

    def finish(self, token: str) -> bool:
        """End the request for ``token``; True if its result is still wanted."""
        current = self._storage.get(self._key)
        if current != token:
            logger.info("Discarding stale extraction response")
            return False
        self._storage.pop(self._key, None)
        return True

    def release(self, token: str) -> None:
        """Clear the pending flag if it still belongs to ``token``."""
        if self._storage.get(self._key) == token:
            self._storage.pop(self._key, None)

    def cancel(self) -> None:
        """Forget the pending request so its response is discarded."""
        self._storage.pop(self._key, None)

    def apply(self, token: str, result: Any, target_key: str) -> bool:
        """Store ``result`` under ``target_key`` if ``token`` is still current."""
        if not self.finish(token):
            return False
        self._storage[target_key] = result
        return True
