"""
Document store access.

CursorRepository talks to the store through the small DocumentStore protocol.
OpenSearchStore implements it over an opensearch-py client and translates
client exceptions into pitpager errors, so the repository only ever sees
StoreTransportError (retry), SessionExpiredError (reframe) or other
StoreError subclasses (fatal).
"""

from typing import Any, Protocol

import boto3
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection
from opensearchpy.exceptions import NotFoundError

from ._logging import logger, redact_pit_id
from .config import ConnectionOptions
from .exceptions import ConfigurationError, SessionExpiredError, handle_store_errors


class DocumentStore(Protocol):
    """The store capabilities the pagination engine relies on."""

    def search(self, body: dict[str, Any], index: str | None = None) -> dict[str, Any]: ...

    def open_pit(self, index: str, keep_alive: str) -> str: ...

    def close_pit(self, pit_id: str) -> None: ...

    def list_indices(self, prefix: str) -> list[str]: ...

    def refresh(self, index: str) -> None: ...


def build_client(options: ConnectionOptions) -> OpenSearch:
    """
    Creates an opensearch-py client from connection options.

    With a region set, requests are signed with AWS SigV4 using whatever
    credentials boto3 resolves. Otherwise basic auth is used when a
    username is given.

    Raises:
        ConfigurationError: If a region is set but no AWS credentials resolve
    """
    http_auth: Any = None

    if options.region:
        credentials = boto3.Session().get_credentials()
        if credentials is None:
            raise ConfigurationError(
                f"No AWS credentials found to sign requests for region '{options.region}'"
            )
        http_auth = AWSV4SignerAuth(credentials, options.region, options.service)
    elif options.username is not None:
        http_auth = (options.username, options.password)

    logger.info(
        "Creating store client",
        extra={"hosts": options.hosts, "region": options.region, "signed": bool(options.region)},
    )
    return OpenSearch(
        hosts=options.hosts,
        http_auth=http_auth,
        verify_certs=options.verify_certs,
        connection_class=RequestsHttpConnection,
        timeout=options.timeout,
        # RetryingExecutor owns the retry policy, one call is one HTTP attempt
        max_retries=0,
        retry_on_timeout=False,
    )


class OpenSearchStore:
    """DocumentStore backed by an OpenSearch (or Elasticsearch compatible) cluster."""

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_options(cls, options: ConnectionOptions) -> "OpenSearchStore":
        return cls(build_client(options))

    def search(self, body: dict[str, Any], index: str | None = None) -> dict[str, Any]:
        """
        Runs a search.

        Requests bound to a point-in-time must not name an index, the
        point-in-time already does.
        """
        pit_id = body.get("pit", {}).get("id")
        with handle_store_errors(index=index, pit_id=pit_id):
            if index is None:
                return self.client.search(body=body)
            return self.client.search(body=body, index=index)

    def open_pit(self, index: str, keep_alive: str) -> str:
        with handle_store_errors(index=index):
            response = self.client.create_pit(index=index, keep_alive=keep_alive)
        pit_id = response["pit_id"]

        logger.info(
            "Opened point-in-time",
            extra={"index": index, "keep_alive": keep_alive, "pit_hash": redact_pit_id(pit_id)},
        )
        return pit_id

    def close_pit(self, pit_id: str) -> None:
        """Closes a point-in-time. Unknown or already expired ids are ignored."""
        try:
            with handle_store_errors(pit_id=pit_id):
                try:
                    self.client.delete_pit(body={"pit_id": [pit_id]})
                except NotFoundError:
                    logger.debug(
                        "Point-in-time already closed", extra={"pit_hash": redact_pit_id(pit_id)}
                    )
                    return
        except SessionExpiredError:
            logger.debug("Point-in-time already expired", extra={"pit_hash": redact_pit_id(pit_id)})
            return

        logger.info("Closed point-in-time", extra={"pit_hash": redact_pit_id(pit_id)})

    def list_indices(self, prefix: str) -> list[str]:
        with handle_store_errors():
            rows = self.client.cat.indices(format="json", h="index")
        return sorted(row["index"] for row in rows if row["index"].startswith(prefix))

    def refresh(self, index: str) -> None:
        with handle_store_errors(index=index):
            self.client.indices.refresh(index=index)
