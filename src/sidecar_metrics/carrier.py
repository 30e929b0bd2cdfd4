"""Request carrier protocol and the default proxy request implementation."""

import threading
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx


@runtime_checkable
class RequestCarrier(Protocol):
    """Protocol for the mutable request/response carrier handed to handlers.

    The instrumentation reads ``path`` and writes the span id through
    ``set_header``; it never owns the carrier's lifecycle.
    """

    path: str
    headers: Any  # Mutable header mapping (httpx.Headers for ProxyRequest)

    def set_header(self, name: str, value: str) -> None:
        """Set an outbound header, replacing any existing value."""
        ...


@dataclass
class ProxyRequest:
    """Request flowing through the sidecar.

    ``headers`` is the outbound header set: what the sidecar forwards
    upstream and echoes to the client. Header writes go through
    ``set_header`` so a writer on the completion thread and a reader on the
    caller thread never observe a half-applied update.

    Examples:
        >>> request = ProxyRequest.from_url("GET", "http://sidecar/api/foo?x=1")
        >>> request.path
        '/api/foo'
        >>> request.set_header("Proxy-Span-Id", "abc")
        >>> request.get_header("proxy-span-id")
        'abc'
    """

    method: str
    path: str
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    query: str = ""

    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)

    @classmethod
    def from_url(
        cls, method: str, url: str | httpx.URL, headers: Any = None
    ) -> "ProxyRequest":
        """Build a request from a full URL.

        Args:
            method: HTTP method
            url: Absolute or relative URL; only path and query are kept
            headers: Initial headers (mapping or list of pairs)
        """
        parsed = httpx.URL(url)
        return cls(
            method=method.upper(),
            path=parsed.path,
            headers=httpx.Headers(headers),
            query=parsed.query.decode("ascii"),
        )

    @classmethod
    def from_httpx(cls, request: httpx.Request) -> "ProxyRequest":
        """Build a carrier from an inbound httpx request."""
        return cls.from_url(request.method, request.url, request.headers)

    def set_header(self, name: str, value: str) -> None:
        with self._lock:
            self.headers[name] = value

    def get_header(self, name: str, default: str | None = None) -> str | None:
        with self._lock:
            return self.headers.get(name, default)

    def header_items(self) -> list[tuple[str, str]]:
        """Consistent snapshot of the outbound headers."""
        with self._lock:
            return list(self.headers.items())


__all__ = ["RequestCarrier", "ProxyRequest"]
