"""
Gate Application
================

ASGI host for a routing table.

``GateApp`` reads each HTTP request in full, turns it into a ``Conn``,
dispatches it synchronously and sends whatever the dispatch produced.
Failures raised during dispatch are logged here and answered with a 500;
the dispatcher itself never catches them.

Example:
    router = Router()
    ...
    app = GateApp(router)

    if __name__ == "__main__":
        app.run()

    # or: uvicorn myapp:app
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Coroutine,
    Dict,
    List,
    Optional,
    Union,
)

from gate.core.config import Config
from gate.core.conn import Conn
from gate.core.dispatcher import Dispatcher
from gate.core.response import Response, to_response
from gate.core.router import Router, RouteTable
from gate.utils.logger import configure_logging, get_logger

Receive = Callable[[], Coroutine[Any, Any, Dict[str, Any]]]
Send = Callable[[Dict[str, Any]], Coroutine[Any, Any, None]]


class GateApp:
    """
    ASGI application serving one routing table.

    Args:
        routes: A ``Router`` (built here) or an already built ``RouteTable``
        config: Configuration; defaults to ``Config.from_env()``
        configure_logs: Apply ``log.level`` and ``log.format`` from the
            config to the gate loggers
    """

    def __init__(
        self,
        routes: Union[Router, RouteTable],
        config: Optional[Config] = None,
        *,
        configure_logs: bool = True,
    ) -> None:
        self.config = config or Config.from_env()

        if configure_logs:
            configure_logging(
                level=self.config.get("log.level", "INFO"),
                format=self.config.get("log.format", "text"),
            )
        self.logger = get_logger("gate.app")

        self.table = routes.build() if isinstance(routes, Router) else routes
        self.dispatcher = Dispatcher.from_config(self.table, self.config)

    @property
    def debug(self) -> bool:
        return self.config.debug

    def handle(self, conn: Conn) -> Response:
        """
        Dispatch a conn and convert the result into a Response.

        Response headers written on the conn by the pipeline are kept
        when the handler returns a plain value.
        """
        return to_response(self.dispatcher.dispatch(conn), conn)

    async def __call__(self, scope: Dict[str, Any], receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            await self._handle_http(scope, receive, send)
        elif scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
        else:
            raise ValueError(f"Unsupported scope type: {scope['type']}")

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self.logger.info("Gate started", routes=len(self.table))
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    async def _handle_http(self, scope: Dict[str, Any], receive: Receive, send: Send) -> None:
        body = await _read_body(receive)

        try:
            response = self.handle(Conn.from_scope(scope, body))
        except Exception as e:
            self.logger.error(
                "Request failed",
                exception=e,
                method=scope.get("method", "GET"),
                path=scope.get("path", "/"),
            )
            message = f"{type(e).__name__}: {e}" if self.debug else "Internal Server Error"
            response = Response.error(500, message)

        await response.send(send)

    def run(
        self,
        host: str = "127.0.0.1",
        port: int = 8000,
        log_level: str = "info",
    ) -> None:
        """Serve the app with uvicorn."""
        import uvicorn

        uvicorn.run(self, host=host, port=port, log_level=log_level, lifespan="on")


async def _read_body(receive: Receive) -> bytes:
    chunks: List[bytes] = []
    while True:
        message = await receive()
        if message["type"] == "http.request":
            chunks.append(message.get("body", b""))
            if not message.get("more_body", False):
                break
        elif message["type"] == "http.disconnect":
            break
    return b"".join(chunks)
