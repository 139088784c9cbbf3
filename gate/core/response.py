"""
Gate Response Objects
=====================

Response values produced by handlers and sent by the ASGI host.

Handlers may return a ``Response`` directly, or anything
``to_response`` knows how to convert:

    Conn            -> status, headers and body written on the conn
    Response        -> as-is
    dict / list     -> JSONResponse
    (body, status)  -> converted body with the given status
    str / bytes     -> PlainTextResponse
"""

from __future__ import annotations

import copy
from http import HTTPStatus
from typing import (
    Any,
    Callable,
    Coroutine,
    Dict,
    List,
    Optional,
    Tuple,
)

import orjson

from gate.core.conn import Conn


HTTP_STATUS_PHRASES = {s.value: s.phrase for s in HTTPStatus}


class Response:
    """
    Base HTTP response.

    Example:
        return Response("Hello, World!")
        return Response("Not Found", status_code=404)
    """

    media_type: str = "text/plain"
    charset: str = "utf-8"

    def __init__(
        self,
        content: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        media_type: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}

        if media_type:
            self.media_type = media_type

        self.body = self._render_content(content)

        if "content-type" not in self.headers:
            content_type = self.media_type
            if self.charset and content_type.startswith("text/"):
                content_type += f"; charset={self.charset}"
            self.headers["content-type"] = content_type

        self.headers["content-length"] = str(len(self.body))

    def _render_content(self, content: Any) -> bytes:
        """Convert content to bytes."""
        if content is None:
            return b""
        if isinstance(content, bytes):
            return content
        if isinstance(content, str):
            return content.encode(self.charset)
        return str(content).encode(self.charset)

    def _get_headers(self) -> List[tuple]:
        """Headers as ASGI byte pairs."""
        return [(k.encode("latin-1"), v.encode("latin-1")) for k, v in self.headers.items()]

    async def send(
        self,
        send: Callable[[Dict[str, Any]], Coroutine[Any, Any, None]],
    ) -> None:
        """Send response via ASGI interface."""
        await send({
            "type": "http.response.start",
            "status": self.status_code,
            "headers": self._get_headers(),
        })
        await send({
            "type": "http.response.body",
            "body": self.body,
        })

    def copy(
        self,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> "Response":
        """Return a shallow copy with a new status and/or headers."""
        clone = copy.copy(self)
        clone.status_code = self.status_code if status_code is None else status_code
        clone.headers = dict(self.headers if headers is None else headers)
        return clone

    @classmethod
    def error(cls, status_code: int, message: str) -> "Response":
        """Create a plain-text error response."""
        return PlainTextResponse(message, status_code=status_code)

    @property
    def status_phrase(self) -> str:
        return HTTP_STATUS_PHRASES.get(self.status_code, "Unknown")

    def __repr__(self) -> str:
        return f"<Response {self.status_code} {self.status_phrase}>"


class PlainTextResponse(Response):
    media_type = "text/plain"


class HTMLResponse(Response):
    media_type = "text/html"


class JSONResponse(Response):
    """
    JSON content response, serialized with orjson.

    Example:
        return JSONResponse({"message": "Welcome to the API"})
    """

    media_type = "application/json"

    def _render_content(self, content: Any) -> bytes:
        return orjson.dumps(content)


def from_conn(conn: Conn) -> Response:
    """
    Build a Response from what was written on a conn.

    A conn that never called ``send_resp`` becomes an empty 204 when
    halted without a response, otherwise an empty 200.
    """
    status = conn.status
    if status is None:
        status = 204 if conn.halted else 200
    return Response(conn.resp_body, status_code=status, headers=conn.resp_headers)


def to_response(result: Any, conn: Optional[Conn] = None) -> Response:
    """
    Convert a dispatch result into a Response.

    Args:
        result: What ``dispatch`` returned
        conn: The conn the request was dispatched with. Headers the
            pipeline wrote on it are added to the response. Its
            Content-Type wins over the converted value's unless the
            handler returned a ``Response`` itself.

    Raises:
        TypeError: If the result has no known conversion
    """
    if isinstance(result, Conn):
        return from_conn(result)

    response, explicit = _convert(result)

    if conn is not None and conn.resp_headers:
        headers = {k: v for k, v in conn.resp_headers.items() if k != "content-length"}
        if explicit:
            headers.update(response.headers)
        else:
            headers = {**response.headers, **headers}
            headers["content-length"] = response.headers["content-length"]
        response = response.copy(headers=headers)

    return response


def _convert(result: Any) -> Tuple[Response, bool]:
    """Return the converted response, and whether the handler built it."""
    if isinstance(result, Response):
        return result, True
    if isinstance(result, tuple) and len(result) == 2:
        body, status = result
        response, explicit = _convert(body)
        return response.copy(status_code=status), explicit
    if isinstance(result, (dict, list)):
        return JSONResponse(result), False
    if isinstance(result, (str, bytes)):
        return PlainTextResponse(result), False
    if result is None:
        return Response(status_code=204), False
    raise TypeError(f"Cannot convert {type(result).__name__} to a response")
