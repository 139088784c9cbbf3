"""
Gate Connection
===============

The per-request context threaded through pipelines and handlers.

A ``Conn`` carries the incoming request (method, path, headers, body)
together with the response being built for it. Middleware steps and
handlers write the response through ``put_resp_header``,
``put_resp_content_type`` and ``send_resp``; a step that has already
produced the final response calls ``halt()`` so the dispatcher stops.

The dispatcher itself only ever reads ``method``, ``path`` and
``halted``. Everything else belongs to middleware and handlers.

Example:
    conn = Conn("GET", "/api", headers=[("authorization", "Bearer x")])
    conn.put_resp_content_type("application/json")
    conn.send_resp(200, '{"ok": true}')
"""

from __future__ import annotations

from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Optional,
    Tuple,
    Union,
)
from urllib.parse import parse_qs


class Headers:
    """
    Case-insensitive request headers.

    Accepts ASGI-style ``(bytes, bytes)`` pairs or plain strings.

    Example:
        headers["Content-Type"]  # application/json
        headers["content-type"]  # application/json (same)
        headers.get("X-Custom", "default")
    """

    def __init__(
        self,
        raw_headers: Union[Iterable[Tuple[Any, Any]], Dict[str, str], None] = None,
    ) -> None:
        self._headers: Dict[str, str] = {}

        if raw_headers is None:
            return
        if isinstance(raw_headers, dict):
            raw_headers = raw_headers.items()

        for key, value in raw_headers:
            if isinstance(key, bytes):
                key = key.decode("latin-1")
            if isinstance(value, bytes):
                value = value.decode("latin-1")
            self._headers[key.lower()] = value

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get header value."""
        return self._headers.get(key.lower(), default)

    def __getitem__(self, key: str) -> str:
        return self._headers[key.lower()]

    def __contains__(self, key: str) -> bool:
        return key.lower() in self._headers

    def __len__(self) -> int:
        return len(self._headers)

    def items(self) -> List[Tuple[str, str]]:
        return list(self._headers.items())

    def to_dict(self) -> Dict[str, str]:
        return self._headers.copy()


class Conn:
    """
    Request context for a single dispatch.

    Attributes:
        method: Upper-cased HTTP method
        path: Request path, compared literally against routes
        headers: Request headers
        query_string: Raw query string
        body: Raw request body
        assigns: Free-form storage for data passed between steps
        halted: True once a response has been produced and
            processing must stop
        status: Response status (None until a response is sent)
        resp_headers: Response headers
        resp_body: Response body
    """

    __slots__ = (
        "method",
        "path",
        "headers",
        "query_string",
        "body",
        "assigns",
        "halted",
        "status",
        "resp_headers",
        "resp_body",
        "_query",
    )

    def __init__(
        self,
        method: str,
        path: str,
        *,
        headers: Union[Iterable[Tuple[Any, Any]], Dict[str, str], None] = None,
        query_string: Union[bytes, str] = b"",
        body: bytes = b"",
    ) -> None:
        self.method: str = method.upper()
        self.path: str = path
        self.headers = headers if isinstance(headers, Headers) else Headers(headers)
        if isinstance(query_string, bytes):
            query_string = query_string.decode("utf-8", errors="replace")
        self.query_string: str = query_string
        self.body: bytes = body
        self.assigns: Dict[str, Any] = {}
        self.halted: bool = False
        self.status: Optional[int] = None
        self.resp_headers: Dict[str, str] = {}
        self.resp_body: bytes = b""
        self._query: Optional[Dict[str, List[str]]] = None

    @classmethod
    def from_scope(cls, scope: Dict[str, Any], body: bytes = b"") -> "Conn":
        """Create a Conn from an ASGI HTTP scope and its full body."""
        return cls(
            scope.get("method", "GET"),
            scope.get("path", "/"),
            headers=scope.get("headers", []),
            query_string=scope.get("query_string", b""),
            body=body,
        )

    @property
    def query(self) -> Dict[str, List[str]]:
        """Parsed query parameters."""
        if self._query is None:
            self._query = parse_qs(self.query_string, keep_blank_values=True)
        return self._query

    @property
    def sent(self) -> bool:
        """True once ``send_resp`` has been called."""
        return self.status is not None

    def assign(self, key: str, value: Any) -> "Conn":
        """Store a value for later steps and the handler."""
        self.assigns[key] = value
        return self

    def put_resp_header(self, name: str, value: str) -> "Conn":
        """Set a response header, replacing any previous value."""
        self.resp_headers[name.lower()] = value
        return self

    def put_resp_content_type(self, content_type: str, charset: str = "utf-8") -> "Conn":
        """Set the response Content-Type."""
        if charset and "charset=" not in content_type:
            content_type = f"{content_type}; charset={charset}"
        return self.put_resp_header("content-type", content_type)

    def send_resp(self, status: int, body: Union[str, bytes, None] = b"") -> "Conn":
        """
        Write the response status and body.

        This does not halt the conn. A middleware step that responds
        on its own must also call ``halt()``.
        """
        if body is None:
            body = b""
        elif isinstance(body, str):
            body = body.encode("utf-8")
        self.status = status
        self.resp_body = body
        return self

    def halt(self) -> "Conn":
        """Stop any further pipeline steps and the route handler."""
        self.halted = True
        return self

    def __repr__(self) -> str:
        flag = " halted" if self.halted else ""
        return f"<Conn {self.method} {self.path} status={self.status}{flag}>"
