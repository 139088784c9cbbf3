"""
Gate Core Module
================

- Router: declares pipelines and routes, builds the routing table
- PipelineRegistry / PipelineExecutor: step collection and execution
- Dispatcher: matches a conn and drives pipeline and handler
- Conn: the per-request context
- GateApp: ASGI host
"""

from gate.core.application import GateApp
from gate.core.config import Config
from gate.core.conn import Conn, Headers
from gate.core.dispatcher import Dispatcher, not_found
from gate.core.exceptions import BuildError, ConfigError, DeclarationError, GateError
from gate.core.middleware import (
    Middleware,
    MiddlewareStep,
    RequestId,
    RequestLogger,
    RequireHeader,
    TrustedHost,
    has_header,
    negate,
    put_resp_content_type,
    put_resp_header,
)
from gate.core.pipeline import Pipeline, PipelineExecutor, PipelineRegistry, run_pipeline
from gate.core.response import HTMLResponse, JSONResponse, PlainTextResponse, Response, to_response
from gate.core.router import Route, RouteEntry, Router, RouteTable

__all__ = [
    "GateApp",
    "Config",
    "Conn",
    "Headers",
    "Dispatcher",
    "not_found",
    "GateError",
    "DeclarationError",
    "BuildError",
    "ConfigError",
    "Middleware",
    "MiddlewareStep",
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
    "PipelineRegistry",
    "run_pipeline",
    "Response",
    "JSONResponse",
    "HTMLResponse",
    "PlainTextResponse",
    "to_response",
    "Route",
    "RouteEntry",
    "Router",
    "RouteTable",
]
