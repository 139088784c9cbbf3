"""
Gate Dispatcher
===============

Runtime entry point: match a conn to a route, run the route's pipeline,
then call its handler.

    no route matches        -> not-found response, nothing else runs
    pipeline halts the conn -> the halted conn is the response
    otherwise               -> handler(conn)

Nothing here catches exceptions. A failure in a condition, step or
handler reaches the caller of ``dispatch`` as raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Optional

from gate.core.config import Config
from gate.core.pipeline import PipelineExecutor
from gate.core.router import RouteTable
from gate.utils.logger import get_logger

if TYPE_CHECKING:
    from gate.core.conn import Conn

logger = get_logger("gate.dispatch")

NOT_FOUND_STATUS = 404
NOT_FOUND_BODY = "Oops!"

NotFoundHandler = Callable[["Conn"], Any]


def not_found(
    status: int = NOT_FOUND_STATUS,
    body: str = NOT_FOUND_BODY,
) -> NotFoundHandler:
    """Build a fallback that writes a fixed response on the conn."""
    def fallback(conn: "Conn") -> "Conn":
        return conn.send_resp(status, body)

    fallback.__name__ = "not_found"
    return fallback


class Dispatcher:
    """
    Dispatches conns against an immutable routing table.

    Holds no per-request state, so one dispatcher can serve any number
    of concurrent requests.

    Example:
        dispatcher = Dispatcher(router.build())
        result = dispatcher.dispatch(Conn("GET", "/api"))
    """

    __slots__ = ("table", "executor", "fallback")

    def __init__(
        self,
        table: RouteTable,
        *,
        fallback: Optional[NotFoundHandler] = None,
        executor: Optional[PipelineExecutor] = None,
    ) -> None:
        self.table = table
        self.fallback = fallback or not_found()
        self.executor = executor or PipelineExecutor()

    @classmethod
    def from_config(cls, table: RouteTable, config: Config) -> "Dispatcher":
        """Create a dispatcher whose fallback comes from ``router.not_found.*``."""
        fallback = not_found(
            status=config.get_int("router.not_found.status", NOT_FOUND_STATUS),
            body=str(config.get("router.not_found.body", NOT_FOUND_BODY)),
        )
        return cls(table, fallback=fallback)

    def dispatch(self, conn: "Conn") -> Any:
        """
        Handle one request.

        Returns:
            The handler's result, the halted conn, or the fallback's
            result when no route matches
        """
        entry = self.table.match(conn.method, conn.path)

        if entry is None:
            logger.debug("No route matched", method=conn.method, path=conn.path)
            return self.fallback(conn)

        conn = self.executor.run(entry.pipeline, conn)

        if conn.halted:
            return conn

        return entry.route.handler(conn)

    __call__ = dispatch
