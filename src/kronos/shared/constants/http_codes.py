"""HTTP Status Code Constants.

This module contains HTTP status code constants for clear and
type-safe handling of responses produced by the network and the cache.
"""


class HTTPStatusCodes:
    """HTTP status code constants."""

    # 2xx Success
    OK = 200
    NO_CONTENT = 204

    # 4xx Client Errors
    NOT_FOUND = 404
    GONE = 410

    # 5xx Server Errors
    SERVICE_UNAVAILABLE = 503

    # Range treated as a successful ("ok") response
    OK_RANGE_START = 200
    OK_RANGE_END = 299


class HTTPStatusTexts:
    """Reason phrases used for synthesized responses."""

    OK = "OK"
    SERVICE_UNAVAILABLE = "Service Unavailable"


class ContentTypes:
    """Content-Type header values."""

    JSON = "application/json"
    TEXT = "text/plain; charset=utf-8"


class HTTPHeaders:
    """HTTP header names."""

    CONTENT_TYPE = "Content-Type"
    USER_AGENT = "User-Agent"
    ACCEPT = "Accept"
