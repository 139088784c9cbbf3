"""
Gate Middleware
===============

Middleware steps run, in declared order, before a route's handler.

A step target is any callable with the shape::

    def step(conn: Conn, options: Any) -> Conn: ...

It returns the (possibly updated) conn. A step that has produced the
final response itself calls ``conn.send_resp(...)`` and ``conn.halt()``;
the remaining steps and the handler are then skipped.

Class-based middleware subclasses ``Middleware``. ``init(options)`` runs
once when the step is declared and its return value is what ``call``
receives on every request:

    class RequireRole(Middleware):
        def init(self, options):
            return set(options)

        def call(self, conn, roles):
            if conn.assigns.get("role") not in roles:
                return conn.send_resp(403, "Forbidden").halt()
            return conn

A step may carry conditions: callables taking the conn and returning a
bool. The step only runs when every condition is true.
"""

from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    Union,
)

from gate.core.exceptions import DeclarationError
from gate.utils.logger import LogLevel, get_logger

if TYPE_CHECKING:
    from gate.core.conn import Conn


StepCallable = Callable[["Conn", Any], "Conn"]
Condition = Callable[["Conn"], bool]


class Middleware(ABC):
    """
    Base class for middleware with a declaration-time ``init`` step.

    Instances are callable with ``(conn, options)`` so they satisfy the
    same contract as plain function steps.
    """

    def init(self, options: Any) -> Any:
        """
        Prepare options once, when the step is declared.

        Returns:
            The value passed to ``call`` on every request
        """
        return options

    @abstractmethod
    def call(self, conn: "Conn", options: Any) -> "Conn":
        """Process the conn and return it."""

    def __call__(self, conn: "Conn", options: Any) -> "Conn":
        return self.call(conn, options)


@dataclass(frozen=True)
class MiddlewareStep:
    """
    One declared pipeline step.

    Attributes:
        target: Callable taking ``(conn, options)``
        options: Value passed to the target verbatim
        conditions: Predicates that must all hold for the step to run
        name: Display name used in logs and route listings
    """
    target: StepCallable
    options: Any = None
    conditions: Tuple[Condition, ...] = ()
    name: str = field(default="")

    def __post_init__(self) -> None:
        if not self.name:
            object.__setattr__(self, "name", _callable_name(self.target))


def make_step(
    target: Union[StepCallable, Middleware, Type[Middleware]],
    options: Any = None,
    conditions: Iterable[Condition] = (),
) -> MiddlewareStep:
    """
    Resolve a declared target into a MiddlewareStep.

    Middleware classes are instantiated and ``init`` is applied to the
    options here, once.

    Raises:
        DeclarationError: If the target or a condition is not callable
    """
    if isinstance(target, type):
        if not issubclass(target, Middleware):
            raise DeclarationError(
                f"Middleware class {target.__name__} must subclass gate.Middleware"
            )
        target = target()

    if not callable(target):
        raise DeclarationError(f"Middleware step {target!r} is not callable")

    if isinstance(target, Middleware):
        options = target.init(options)

    conditions = tuple(conditions)
    for condition in conditions:
        if not callable(condition):
            raise DeclarationError(f"Condition {condition!r} is not callable")

    return MiddlewareStep(target=target, options=options, conditions=conditions)


def _callable_name(target: Any) -> str:
    name = getattr(target, "__name__", None)
    if name is None:
        name = type(target).__name__
    return name


# Built-in steps

def put_resp_content_type(conn: "Conn", content_type: str) -> "Conn":
    """Set the response Content-Type, e.g. ``"application/json"``."""
    return conn.put_resp_content_type(content_type)


def put_resp_header(
    conn: "Conn",
    header: Union[Tuple[str, str], Dict[str, str]],
) -> "Conn":
    """Set one ``(name, value)`` header, or every header of a dict."""
    items = header.items() if isinstance(header, dict) else [header]
    for name, value in items:
        conn.put_resp_header(name, value)
    return conn


class RequestLogger(Middleware):
    """
    Log each request passing through the pipeline.

    Options: a log level name (default "info").

    Example:
        router.plug(RequestLogger, "debug")
    """

    def __init__(self) -> None:
        self.logger = get_logger("gate.request")

    def init(self, options: Any) -> LogLevel:
        return LogLevel.parse(options or "info")

    def call(self, conn: "Conn", level: LogLevel) -> "Conn":
        conn.assign("request_started", time.perf_counter())
        self.logger.log(level, f"{conn.method} {conn.path}")
        return conn


class RequestId(Middleware):
    """
    Assign a request ID, reusing the client's when present.

    The ID is stored in ``conn.assigns["request_id"]`` and echoed in the
    response header. Options: the header name (default "x-request-id").
    """

    def init(self, options: Any) -> str:
        return (options or "x-request-id").lower()

    def call(self, conn: "Conn", header_name: str) -> "Conn":
        request_id = conn.headers.get(header_name) or uuid.uuid4().hex
        conn.assign("request_id", request_id)
        return conn.put_resp_header(header_name, request_id)


class RequireHeader(Middleware):
    """
    Halt unless a request header has the expected value.

    Options:
        header: Header name (default "authorization")
        value: Expected value
        status: Status sent on mismatch (default 401)
        body: Body sent on mismatch (default "Unauthorized")

    Example:
        router.plug(RequireHeader, {"value": "Bearer valid_token"})
    """

    def init(self, options: Any) -> Dict[str, Any]:
        options = dict(options or {})
        if "value" not in options:
            raise DeclarationError("RequireHeader needs an expected 'value'")
        options.setdefault("header", "authorization")
        options.setdefault("status", 401)
        options.setdefault("body", "Unauthorized")
        return options

    def call(self, conn: "Conn", options: Dict[str, Any]) -> "Conn":
        if conn.headers.get(options["header"]) == options["value"]:
            return conn
        return conn.send_resp(options["status"], options["body"]).halt()


class TrustedHost(Middleware):
    """
    Halt with 400 when the Host header is not allowed.

    Options: allowed host names; ``"*.example.com"`` also matches the
    bare domain and any subdomain.
    """

    def init(self, options: Any) -> List[str]:
        hosts = [options] if isinstance(options, str) else list(options or [])
        if not hosts:
            raise DeclarationError("TrustedHost needs at least one allowed host")
        return hosts

    def call(self, conn: "Conn", allowed_hosts: List[str]) -> "Conn":
        if "*" in allowed_hosts:
            return conn

        host = (conn.headers.get("host") or "").split(":")[0]
        for pattern in allowed_hosts:
            if pattern.startswith("*."):
                if host.endswith(pattern[1:]) or host == pattern[2:]:
                    return conn
            elif host == pattern:
                return conn

        return conn.send_resp(400, "Invalid host header").halt()


# Condition helpers

def has_header(name: str, value: Optional[str] = None) -> Condition:
    """
    Condition: the request carries header ``name`` (with ``value``, if given).

    Example:
        router.plug(load_user, conditions=[has_header("authorization")])
    """
    def condition(conn: "Conn") -> bool:
        actual = conn.headers.get(name)
        if value is None:
            return actual is not None
        return actual == value

    condition.__name__ = f"has_header({name!r})"
    return condition


def negate(condition: Condition) -> Condition:
    """Condition that holds when ``condition`` does not."""
    def negated(conn: "Conn") -> bool:
        return not condition(conn)

    negated.__name__ = f"not {_callable_name(condition)}"
    return negated


def describe_conditions(conditions: Sequence[Condition]) -> str:
    return " and ".join(_callable_name(c) for c in conditions)
