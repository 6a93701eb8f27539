"""
Exception hierarchy for the short URL service.

Validation and lookup failures are expected outcomes: the API layer turns
them into normal JSON payloads (HTTP 200). Only faults that escape this
hierarchy become HTTP 500.
"""


class ShortUrlError(Exception):
    """Base class for all service errors"""

    message = "server error"

    def __init__(self, detail: str = None):
        super().__init__(detail or self.message)


class InvalidUrl(ShortUrlError):
    """Malformed URL, disallowed scheme, or unresolvable hostname"""

    message = "invalid url"


class WrongFormat(ShortUrlError):
    """Short URL path segment is not an integer"""

    message = "Wrong format"


class RecordNotFound(ShortUrlError):
    """No record for the given short URL"""

    message = "No short URL found for the given input"


class StoreFailure(ShortUrlError):
    """
    A store operation failed (connection error, timeout, query error).

    Raised by the durable store and absorbed by the gateway's failover.
    If it escapes the gateway the fallback failed too.
    """


class DuplicateRecordError(ShortUrlError):
    """Insert hit a unique constraint on original_url or short_url"""
