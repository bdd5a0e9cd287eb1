import hashlib
import logging

# Create the library logger
logger = logging.getLogger("pitpager")

# Add NullHandler to prevent "No handlers could be found" warnings
# if the application doesn't configure logging.
logger.addHandler(logging.NullHandler())


def redact_pit_id(pit_id: str | None) -> str | None:
    """
    Shortens a point-in-time id for logging.

    PIT ids are long opaque tokens that grant read access to a snapshot,
    so only a short hash is logged. It still allows correlating log lines.
    """
    if pit_id is None:
        return None
    try:
        return hashlib.sha256(pit_id.encode("utf-8")).hexdigest()[:8]
    except Exception:
        return "<redaction_failed>"
