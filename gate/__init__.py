"""
Gate
====

Named middleware pipelines with conditional steps, bound to routes.

Declare pipelines and the routes that use them, build an immutable
routing table, and dispatch requests against it:

    from gate import Conn, Dispatcher, Router, put_resp_content_type

    router = Router()
    with router.gate("api"):
        router.plug(put_resp_content_type, "application/json")

        @router.get("/api")
        def api(conn):
            return conn.send_resp(200, '{"message": "Welcome to the API"}')

    dispatcher = Dispatcher(router.build())
    conn = dispatcher.dispatch(Conn("GET", "/api"))

Serve it over ASGI with ``GateApp(router)``.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

from gate.core.application import GateApp
from gate.core.config import Config
from gate.core.conn import Conn
from gate.core.dispatcher import Dispatcher, not_found
from gate.core.exceptions import BuildError, ConfigError, DeclarationError, GateError
from gate.core.middleware import (
    Middleware,
    RequestId,
    RequestLogger,
    RequireHeader,
    TrustedHost,
    has_header,
    negate,
    put_resp_content_type,
    put_resp_header,
)
from gate.core.pipeline import Pipeline, PipelineExecutor
from gate.core.response import JSONResponse, Response
from gate.core.router import Router, RouteTable
from gate.utils.logger import configure_logging, get_logger

__all__ = [
    "__version__",
    "GateApp",
    "Config",
    "Conn",
    "Dispatcher",
    "not_found",
    "GateError",
    "DeclarationError",
    "BuildError",
    "ConfigError",
    "Middleware",
    "RequestId",
    "RequestLogger",
    "RequireHeader",
    "TrustedHost",
    "has_header",
    "negate",
    "put_resp_content_type",
    "put_resp_header",
    "Pipeline",
    "PipelineExecutor",
    "Response",
    "JSONResponse",
    "Router",
    "RouteTable",
    "configure_logging",
    "get_logger",
]
