"""Request and response values exchanged between pages, cache and network.

Bodies are held as bytes, so a response can be stored and returned any
number of times; ``clone()`` exists so call sites read like the code that
hands one copy to the cache and another to the caller.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any
from urllib.parse import urljoin, urlsplit

from kronos.shared.constants import (
    ContentTypes,
    Destinations,
    HTTPHeaders,
    HTTPStatusCodes,
    HTTPStatusTexts,
)


def resolve_url(origin: str, url: str) -> str:
    """Resolve ``url`` against ``origin`` unless it is already absolute."""
    if urlsplit(url).scheme:
        return url
    return urljoin(origin.rstrip("/") + "/", url)


def same_origin(origin: str, url: str) -> bool:
    a, b = urlsplit(origin), urlsplit(url)
    return (a.scheme, a.netloc) == (b.scheme, b.netloc)


@dataclass(frozen=True)
class Request:
    """An outgoing HTTP request seen by the worker."""

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    destination: str = ""
    body: bytes = b""

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def is_navigation(self) -> bool:
        """True for HTML document (navigation) requests."""
        return self.destination == Destinations.DOCUMENT

    @property
    def is_get(self) -> bool:
        return self.method.upper() == "GET"


@dataclass(frozen=True)
class Response:
    """An HTTP response, live from the network or read back from a bucket."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    status_text: str = ""
    url: str = ""

    @property
    def ok(self) -> bool:
        return HTTPStatusCodes.OK_RANGE_START <= self.status <= HTTPStatusCodes.OK_RANGE_END

    @property
    def content_type(self) -> str | None:
        for name, value in self.headers.items():
            if name.lower() == HTTPHeaders.CONTENT_TYPE.lower():
                return value
        return None

    def clone(self) -> Response:
        return replace(self, headers=dict(self.headers))

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body)


def offline_text_response() -> Response:
    """503 returned when a cache-first asset is neither cached nor reachable."""
    return Response(
        status=HTTPStatusCodes.SERVICE_UNAVAILABLE,
        body=b"Offline",
        headers={HTTPHeaders.CONTENT_TYPE: ContentTypes.TEXT},
        status_text=HTTPStatusTexts.SERVICE_UNAVAILABLE,
    )


def offline_json_response() -> Response:
    """503 JSON body returned when network-first has nothing to fall back on."""
    return Response(
        status=HTTPStatusCodes.SERVICE_UNAVAILABLE,
        body=json.dumps({"error": "Offline"}, separators=(",", ":")).encode("utf-8"),
        headers={HTTPHeaders.CONTENT_TYPE: ContentTypes.JSON},
        status_text=HTTPStatusTexts.SERVICE_UNAVAILABLE,
    )
