from collections.abc import Iterator

from ._logging import logger, redact_pit_id
from .config import ConnectionOptions, RepositoryOptions
from .cursor import Cursor
from .exceptions import ConfigurationError, PitPagerError, SessionExpiredError
from .pagination import PageResult
from .query import CursorQueryBuilder
from .retry import RetryingExecutor
from .store import DocumentStore, OpenSearchStore


class CursorRepository:
    """
    Pages through one index in strictly increasing cursor order.

    Each search opens (or reuses) a point-in-time, builds the query excluding
    the keys already delivered, runs it through the retrying executor and
    returns the page with the cursor advanced past it.

    An expired point-in-time is recovered once: the stale id is closed best
    effort, the cursor is reframed and the search is retried on a fresh
    point-in-time. A second session error is raised: it points to a real
    problem (keep-alive too short for the processing time, or too many
    duplicate sort keys to page through in one session).
    """

    def __init__(
        self,
        store: DocumentStore,
        options: RepositoryOptions | None = None,
        executor: RetryingExecutor | None = None,
    ) -> None:
        self.store = store
        self.options = options or RepositoryOptions()
        self.executor = executor or RetryingExecutor(max_attempts=3, backoff_seconds=1.0)

    @classmethod
    def from_connection(
        cls, connection: ConnectionOptions, options: RepositoryOptions | None = None
    ) -> "CursorRepository":
        """Creates a repository on an OpenSearch cluster."""
        executor = RetryingExecutor(
            max_attempts=connection.max_connection_attempts,
            backoff_seconds=connection.connection_retry_backoff,
        )
        return cls(OpenSearchStore.from_options(connection), options, executor)

    # --- POINT-IN-TIME LIFECYCLE ---

    def open_pit(self, index: str) -> str:
        if not index:
            raise ConfigurationError("Index cannot be empty")
        return self.executor.call(self.store.open_pit, index, self.options.pit_timeout)

    def close_pit(self, pit_id: str | None) -> None:
        """Closes a point-in-time. Closing None or an already closed id is a no-op."""
        if pit_id is None:
            return
        self.store.close_pit(pit_id)

    def _close_quietly(self, pit_id: str | None, index: str) -> None:
        # Never let cleanup replace the error being handled
        try:
            self.close_pit(pit_id)
        except PitPagerError as e:
            logger.warning(
                "Failed to close point-in-time, leaving it to expire",
                extra={"index": index, "pit_hash": redact_pit_id(pit_id), "error": str(e)},
            )

    # --- SEARCH ---

    def search(self, cursor: Cursor) -> PageResult:
        """
        Fetches the page following a cursor.

        Returns:
            PageResult with the documents and the cursor to use next. An empty
            page keeps the cursor position. Its point-in-time is reopened so
            documents indexed since the previous snapshot become visible.

        Raises:
            StoreTransportError: When all connection attempts failed
            SessionExpiredError: When the point-in-time expired twice in a row
            StoreError: For any other store failure
            CursorError: When the page cannot advance the cursor
        """
        if cursor is None:
            raise ConfigurationError("Cursor cannot be None")

        try:
            return self._search_with_recovery(cursor)
        except PitPagerError as e:
            logger.error(
                f"Search failed on index '{cursor.index}': {e}",
                extra={
                    "index": cursor.index,
                    "cursor_fields": cursor.field_names,
                    "error_type": type(e).__name__,
                    "scroll_limit": cursor.scroll_limit,
                },
            )
            raise

    def _search_with_recovery(self, cursor: Cursor) -> PageResult:
        try:
            page = self._search_page(cursor)
        except SessionExpiredError:
            if not cursor.is_scrollable:
                # The point-in-time was just opened, expiry is not the cause
                raise
        else:
            if page.is_empty and cursor.is_scrollable and self.options.use_point_in_time:
                return self._search_new_snapshot(cursor)
            return page

        logger.warning(
            "Point-in-time expired, reframing cursor",
            extra={
                "index": cursor.index,
                "pit_hash": redact_pit_id(cursor.pit_id),
                "scroll_limit": cursor.scroll_limit + 1,
                "running_document_count": cursor.running_document_count,
            },
        )
        self._close_quietly(cursor.pit_id, cursor.index)

        # The reframed cursor is not scrollable: a second session error propagates
        return self._search_page(cursor.reframe())

    def _search_new_snapshot(self, cursor: Cursor) -> PageResult:
        """
        Repeats an exhausted search on a new point-in-time.

        A point-in-time only sees documents indexed before it was opened, so
        the current one can never show what arrived since. Its sort key is
        only valid inside it and is dropped with it.
        """
        logger.info(
            "Point-in-time exhausted, reopening on a new snapshot",
            extra={
                "index": cursor.index,
                "pit_hash": redact_pit_id(cursor.pit_id),
                "running_document_count": cursor.running_document_count,
            },
        )
        self._close_quietly(cursor.pit_id, cursor.index)
        return self._search_page(cursor.without_session())

    def _search_page(self, cursor: Cursor) -> PageResult:
        use_pit = self.options.use_point_in_time

        builder = CursorQueryBuilder(cursor).size(self.options.page_size)

        pit_id: str | None = None
        opened_pit: str | None = None
        if use_pit:
            pit_id = cursor.pit_id
            if pit_id is None:
                pit_id = opened_pit = self.open_pit(cursor.index)
            builder.point_in_time(pit_id, keep_alive=self.options.pit_keep_alive)

        body = builder.build()

        logger.info(
            "Executing search page",
            extra={
                "index": cursor.index,
                "strategy": builder.strategy.value,
                "page_size": self.options.page_size,
                "pit_hash": redact_pit_id(pit_id),
                "has_cursor": not cursor.is_fresh,
            },
        )

        try:
            response = self.executor.call(
                self.store.search, body, index=None if use_pit else cursor.index
            )
        except PitPagerError:
            if opened_pit is not None:
                self._close_quietly(opened_pit, cursor.index)
            raise

        if use_pit:
            # The store may hand back a refreshed id
            pit_id = response.get("pit_id") or pit_id

        hits = response.get("hits", {}).get("hits", [])
        page = PageResult.from_hits(hits, cursor, pit_id, track_sort_values=use_pit)

        logger.info(
            "Fetched page",
            extra={
                "index": cursor.index,
                "count": page.count,
                "running_document_count": page.next_cursor.running_document_count,
            },
        )
        return page

    def pages(self, cursor: Cursor) -> Iterator[PageResult]:
        """
        Lazily pages from a cursor until the index is exhausted.

        Each yielded page's next_cursor is the resume point once its documents
        are processed. The final empty page is not yielded.

        Usage:
            for page in repository.pages(cursor):
                handle(page.documents)
                save(page.next_cursor)
        """
        while True:
            page = self.search(cursor)
            if page.is_empty:
                if page.next_cursor.pit_id != cursor.pit_id:
                    # Opened by this last search, no caller holds it
                    self._close_quietly(page.next_cursor.pit_id, cursor.index)
                return
            yield page
            cursor = page.next_cursor

    # --- INDEX ADMINISTRATION ---

    def cat_indices(self, prefix: str) -> list[str]:
        """Lists the names of the indices starting with prefix."""
        return self.executor.call(self.store.list_indices, prefix)

    def refresh_index(self, index: str) -> None:
        """Makes recent writes to an index visible to new searches."""
        self.executor.call(self.store.refresh, index)
