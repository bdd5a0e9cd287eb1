from dataclasses import dataclass, field

from pydantic import ValidationError as PydanticValidationError

from .cursor import LONG_MIN, Cursor, CursorField, CursorValue
from .exceptions import ConfigurationError

MIN_PIT_TIMEOUT_SECONDS = 35
PIT_KEEP_ALIVE_MARGIN_SECONDS = 5


@dataclass
class RepositoryOptions:
    """
    Paging behaviour of a CursorRepository.

    page_size and pit_timeout_seconds are clamped to their minimums
    rather than rejected.
    """

    page_size: int = 5000
    pit_timeout_seconds: int = 300
    use_point_in_time: bool = True

    def __post_init__(self) -> None:
        self.page_size = max(1, self.page_size)
        self.pit_timeout_seconds = max(MIN_PIT_TIMEOUT_SECONDS, self.pit_timeout_seconds)

    @property
    def pit_timeout(self) -> str:
        """Keep-alive requested when a point-in-time is opened, e.g. '300s'."""
        return f"{self.pit_timeout_seconds}s"

    @property
    def pit_keep_alive(self) -> str:
        """
        Keep-alive renewed on each search.

        Kept shorter than the point-in-time's own timeout so it cannot expire
        between building the request and the store executing it.
        """
        return f"{self.pit_timeout_seconds - PIT_KEEP_ALIVE_MARGIN_SECONDS}s"


@dataclass
class ConnectionOptions:
    """
    How to reach the document store.

    When region is set requests are signed with AWS SigV4 using the
    credentials boto3 resolves (env, profile, instance role...).
    """

    hosts: list[str] = field(default_factory=lambda: ["http://localhost:9200"])
    region: str | None = None
    service: str = "es"
    verify_certs: bool = True
    username: str | None = None
    password: str | None = None
    timeout: float = 30.0
    max_connection_attempts: int = 3
    connection_retry_backoff: float = 1.0

    def __post_init__(self) -> None:
        if not self.hosts:
            raise ConfigurationError("At least one store host is required")
        if self.max_connection_attempts < 1:
            raise ConfigurationError(
                f"max_connection_attempts should be > 0, got {self.max_connection_attempts}"
            )
        if self.connection_retry_backoff < 0:
            raise ConfigurationError(
                f"connection_retry_backoff cannot be negative, got {self.connection_retry_backoff}"
            )
        if (self.username is None) != (self.password is None):
            raise ConfigurationError("username and password must be set together")


@dataclass
class StreamOptions:
    """
    Describes one extraction stream: the index and the fields it is ordered by.
    """

    index: str
    incrementing_field: str
    incrementing_field_initial_value: CursorValue = LONG_MIN
    secondary_incrementing_field: str | None = None
    secondary_initial_value: CursorValue | None = None
    secondary_sort: bool = False

    def cursor_fields(self) -> list[CursorField]:
        """
        Builds the ordered cursor fields for this stream.

        Raises:
            ConfigurationError: If required fields are missing
        """
        if not self.index:
            raise ConfigurationError("Stream index is required")
        if not self.incrementing_field:
            raise ConfigurationError(f"Incrementing field is required for index '{self.index}'")

        initial_values = [self.incrementing_field_initial_value]
        names = [self.incrementing_field]

        if self.secondary_sort:
            if not self.secondary_incrementing_field:
                raise ConfigurationError(
                    f"Secondary sort requested for index '{self.index}' "
                    f"but no secondary incrementing field is set"
                )
            names.append(self.secondary_incrementing_field)
            initial = self.secondary_initial_value
            initial_values.append(LONG_MIN if initial is None else initial)

        try:
            return [
                CursorField(field=name, initial_value=value)
                for name, value in zip(names, initial_values)
            ]
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid initial cursor values for index '{self.index}': {e}", original_error=e
            ) from e

    def initial_cursor(self) -> Cursor:
        """Returns the cursor a brand new stream starts from."""
        return Cursor.of(self.index, self.cursor_fields())
