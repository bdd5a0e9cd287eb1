from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opensearchpy.exceptions import ConnectionError as OpenSearchConnectionError
from opensearchpy.exceptions import TransportError

# Fragments of store error payloads that mean the point-in-time is gone
SESSION_ERROR_MARKERS = (
    "search_context_missing_exception",
    "no search context found",
    "point in time id",
    "pit id",
)


class PitPagerError(Exception):
    """Base exception for all pitpager errors."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class ConfigurationError(PitPagerError):
    """Raised for invalid options. Never retried."""


class StoreError(PitPagerError):
    """Raised when the document store rejects a request."""

    def __init__(
        self,
        message: str,
        index: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.index = index


class StoreTransportError(StoreError):
    """Raised on network/IO failures talking to the store. Safe to retry."""

    def __init__(
        self,
        message: str = "Transport failure",
        index: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, index, original_error)


class SessionExpiredError(StoreError):
    """Raised when the store no longer knows the point-in-time of a query."""

    def __init__(
        self,
        message: str = "Point-in-time session expired or not found",
        pit_id: str | None = None,
        index: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, index, original_error)
        self.pit_id = pit_id


class IndexNotFoundError(StoreError):
    """Raised when the target index does not exist."""

    def __init__(self, index: str, original_error: Exception | None = None) -> None:
        super().__init__(f"Index '{index}' not found", index, original_error)


class CursorError(PitPagerError):
    """Raised when a page cannot be used to advance a cursor."""

    def __init__(
        self,
        message: str,
        index: str | None = None,
        field: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message, original_error)
        self.index = index
        self.field = field


class CursorSerializationError(PitPagerError):
    """Raised when a persisted cursor cannot be read back."""


def _error_text(error: TransportError) -> str:
    return f"{error.error} {error.info}".lower()


def is_session_error(error: TransportError) -> bool:
    """Tells whether a store error is about a missing or expired point-in-time."""
    text = _error_text(error)
    return any(marker in text for marker in SESSION_ERROR_MARKERS)


@contextmanager
def handle_store_errors(
    index: str | None = None, pit_id: str | None = None
) -> Generator[None, None, None]:
    """
    Context manager that catches opensearchpy TransportError
    and raises the appropriate PitPagerError subclass.

    Args:
        index: Optional index name for better error messages
        pit_id: Optional point-in-time id the request was bound to

    Usage:
        with handle_store_errors(index="orders"):
            client.search(body=...)
    """
    try:
        yield
    except OpenSearchConnectionError as e:
        # Covers ConnectionTimeout and SSLError as well
        raise StoreTransportError(
            message=f"Transport failure: {e}", index=index, original_error=e
        ) from e
    except TransportError as e:
        status: Any = e.status_code

        if is_session_error(e):
            raise SessionExpiredError(pit_id=pit_id, index=index, original_error=e) from e

        if "index_not_found_exception" in _error_text(e):
            raise IndexNotFoundError(index=index or "unknown", original_error=e) from e

        # Unknown error: wrap in generic StoreError
        raise StoreError(
            message=f"Store error ({status}): {e.error}", index=index, original_error=e
        ) from e
