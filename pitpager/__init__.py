from .config import ConnectionOptions, RepositoryOptions, StreamOptions
from .cursor import LONG_MAX, LONG_MIN, Cursor, CursorField
from .exceptions import (
    ConfigurationError,
    CursorError,
    CursorSerializationError,
    IndexNotFoundError,
    PitPagerError,
    SessionExpiredError,
    StoreError,
    StoreTransportError,
)
from .pagination import DOCUMENT_ID_FIELD, DOCUMENT_INDEX_FIELD, PageResult
from .query import CursorQueryBuilder, QueryStrategy
from .repository import CursorRepository
from .retry import RetryingExecutor
from .serde import CursorSerde
from .store import DocumentStore, OpenSearchStore, build_client

__all__ = [
    "Cursor",
    "CursorField",
    "LONG_MIN",
    "LONG_MAX",
    "CursorSerde",
    "PageResult",
    "DOCUMENT_ID_FIELD",
    "DOCUMENT_INDEX_FIELD",
    # Paging
    "CursorRepository",
    "CursorQueryBuilder",
    "QueryStrategy",
    "RetryingExecutor",
    # Store access
    "DocumentStore",
    "OpenSearchStore",
    "build_client",
    # Options
    "RepositoryOptions",
    "ConnectionOptions",
    "StreamOptions",
    # Exceptions
    "PitPagerError",
    "ConfigurationError",
    "StoreError",
    "StoreTransportError",
    "SessionExpiredError",
    "IndexNotFoundError",
    "CursorError",
    "CursorSerializationError",
]
