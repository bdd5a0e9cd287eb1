"""
Bounded retries with a fixed backoff around one remote call.

Only transport failures are retried. Application errors (malformed query,
expired point-in-time...) propagate on the first occurrence; session expiry
is recovered one layer up by the repository.
"""

import time
from collections.abc import Callable
from typing import Any, TypeVar

from ._logging import logger
from .exceptions import ConfigurationError, StoreTransportError

R = TypeVar("R")


class RetryingExecutor:
    """
    Runs a callable up to max_attempts times, pausing backoff_seconds
    between failed attempts. No jitter, no exponential growth.
    """

    def __init__(
        self,
        max_attempts: int,
        backoff_seconds: float,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ConfigurationError(f"max_attempts should be > 0, got {max_attempts}")
        if backoff_seconds < 0:
            raise ConfigurationError(f"backoff_seconds cannot be negative, got {backoff_seconds}")

        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def call(self, func: Callable[..., R], *args: Any, **kwargs: Any) -> R:
        """
        Calls func, retrying on StoreTransportError.

        Raises:
            StoreTransportError: The last transport failure once all attempts are used
        """
        name = getattr(func, "__name__", repr(func))
        last_error: StoreTransportError | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                return func(*args, **kwargs)
            except StoreTransportError as e:
                last_error = e

                if attempt >= self.max_attempts:
                    break

                logger.warning(
                    f"Attempt {attempt}/{self.max_attempts} failed for {name}: {e}. "
                    f"Retrying in {self.backoff_seconds:.2f}s...",
                    extra={"attempt": attempt, "max_attempts": self.max_attempts},
                )
                self._sleep(self.backoff_seconds)

        logger.error(
            f"All {self.max_attempts} attempts failed for {name}",
            extra={"max_attempts": self.max_attempts},
        )
        assert last_error is not None
        raise last_error
