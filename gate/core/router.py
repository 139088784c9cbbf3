"""
Gate Router
===========

Declares pipelines and routes, and builds them into a routing table.

Routes are matched by exact (method, path) equality, in the order they
were declared: the first match wins. A route is bound to the pipeline
that is active when it is declared.

Example:
    router = Router()

    with router.gate("browser"):
        router.plug(put_resp_content_type, "text/html")
        router.plug(RequireHeader, {"value": "Bearer valid_token"})

        @router.get("/")
        def index(conn):
            return conn.send_resp(200, "Welcome to the homepage")

    with router.gate("api"):
        router.plug(put_resp_content_type, "application/json")

        @router.get("/api")
        def api(conn):
            return conn.send_resp(200, '{"message": "Welcome to the API"}')

    table = router.build()

The same declarations can be made without the context manager through
``begin_pipeline``, ``add_step`` and ``add_route``.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

from gate.core.config import DUPLICATE_ROUTE_POLICIES
from gate.core.exceptions import BuildError, DeclarationError
from gate.core.middleware import Condition, MiddlewareStep
from gate.core.pipeline import Pipeline, PipelineRegistry
from gate.utils.logger import get_logger

if TYPE_CHECKING:
    from gate.core.config import Config
    from gate.core.conn import Conn

logger = get_logger("gate.router")

Handler = Callable[["Conn"], Any]


class HTTPMethod(str, Enum):
    """HTTP methods accepted in route declarations."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"


class _Active:
    def __repr__(self) -> str:
        return "<active pipeline>"


ACTIVE = _Active()


@dataclass(frozen=True)
class Route:
    """
    A declared route.

    Attributes:
        method: Upper-case HTTP method
        path: Literal request path
        pipeline_name: Pipeline run before the handler, or None
        handler: Callable taking the conn and returning the response
    """
    method: str
    path: str
    pipeline_name: Optional[str]
    handler: Handler

    @property
    def key(self) -> Tuple[str, str]:
        return self.method, self.path


@dataclass(frozen=True)
class RouteEntry:
    """A route with its pipeline resolved at build time."""
    route: Route
    pipeline: Optional[Pipeline]

    def matches(self, method: str, path: str) -> bool:
        return self.route.method == method and self.route.path == path


class RouteTable:
    """
    Immutable, ordered routing table.

    Safe to share between concurrent requests: nothing in it changes
    after ``Router.build()``.
    """

    __slots__ = ("_entries", "_pipelines")

    def __init__(
        self,
        entries: Iterable[RouteEntry],
        pipelines: Mapping[str, Pipeline],
    ) -> None:
        self._entries: Tuple[RouteEntry, ...] = tuple(entries)
        self._pipelines = pipelines

    @property
    def entries(self) -> Tuple[RouteEntry, ...]:
        return self._entries

    @property
    def routes(self) -> List[Route]:
        return [entry.route for entry in self._entries]

    @property
    def pipelines(self) -> Mapping[str, Pipeline]:
        return self._pipelines

    def match(self, method: str, path: str) -> Optional[RouteEntry]:
        """
        Find the first entry declared for (method, path).

        Returns:
            The matching entry, or None
        """
        for entry in self._entries:
            if entry.matches(method, path):
                return entry
        return None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RouteEntry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RouteTable):
            return NotImplemented
        return self._entries == other._entries and dict(self._pipelines) == dict(other._pipelines)

    __hash__ = None

    def __repr__(self) -> str:
        return f"<RouteTable routes={len(self._entries)} pipelines={len(self._pipelines)}>"


def normalize_method(method: str) -> str:
    """Upper-case and validate an HTTP method."""
    try:
        return HTTPMethod(str(method).upper()).value
    except ValueError:
        raise DeclarationError(f"Unknown HTTP method: {method!r}") from None


class Router:
    """
    Builder for a routing table.

    Declarations are recorded in call order. ``build()`` validates them
    and returns an immutable ``RouteTable``; after that, every declaring
    call raises ``BuildError``.

    Args:
        duplicate_routes: What to do when two routes share a
            (method, path): "first" keeps both and the earliest one
            wins at dispatch, "reject" fails the build
    """

    def __init__(self, *, duplicate_routes: str = "first") -> None:
        if duplicate_routes not in DUPLICATE_ROUTE_POLICIES:
            raise DeclarationError(
                f"duplicate_routes must be one of {', '.join(DUPLICATE_ROUTE_POLICIES)}, "
                f"got {duplicate_routes!r}"
            )
        self.duplicate_routes = duplicate_routes
        self._registry = PipelineRegistry()
        self._routes: List[Route] = []
        self._table: Optional[RouteTable] = None

    @classmethod
    def from_config(cls, config: "Config") -> "Router":
        """Create a router using ``router.duplicate_routes`` from config."""
        return cls(duplicate_routes=config.duplicate_routes)

    @property
    def built(self) -> bool:
        return self._table is not None

    @property
    def active_pipeline(self) -> Optional[str]:
        return self._registry.active

    def _check_mutable(self) -> None:
        if self._table is not None:
            raise BuildError("Router cannot be changed after build()")

    # Pipelines

    def begin_pipeline(self, name: str) -> None:
        """Open pipeline ``name``; later steps and routes attach to it."""
        self._check_mutable()
        self._registry.begin_pipeline(name)

    def end_pipeline(self) -> None:
        """Clear the active pipeline; later routes run no pipeline."""
        self._check_mutable()
        self._registry.activate(None)

    @contextmanager
    def gate(self, name: str) -> Iterator["Router"]:
        """
        Declare a pipeline and the routes using it in a ``with`` block.

        The previously active pipeline is restored when the block exits.
        """
        previous = self._registry.active
        self.begin_pipeline(name)
        try:
            yield self
        finally:
            if self._table is None:
                self._registry.activate(previous)

    def add_step(
        self,
        target: Any,
        options: Any = None,
        conditions: Iterable[Condition] = (),
    ) -> MiddlewareStep:
        """Append a middleware step to the active pipeline."""
        self._check_mutable()
        return self._registry.add_step(target, options, conditions)

    def plug(
        self,
        target: Any,
        options: Any = None,
        conditions: Iterable[Condition] = (),
    ) -> "Router":
        """Chainable form of ``add_step``."""
        self.add_step(target, options, conditions)
        return self

    # Routes

    def add_route(
        self,
        method: str,
        path: str,
        handler: Handler,
        pipeline_name: Any = ACTIVE,
    ) -> Route:
        """
        Append a route.

        Args:
            method: HTTP method
            path: Literal path
            handler: Callable taking the conn
            pipeline_name: Pipeline to run first; defaults to the active
                one. Pass None for no pipeline.
        """
        self._check_mutable()

        if pipeline_name is ACTIVE:
            pipeline_name = self._registry.active
        if not callable(handler):
            raise DeclarationError(f"Handler for {method} {path} is not callable")
        if not isinstance(path, str) or not path.startswith("/"):
            raise DeclarationError(f"Route path must start with '/', got {path!r}")

        route = Route(
            method=normalize_method(method),
            path=path,
            pipeline_name=pipeline_name,
            handler=handler,
        )
        self._routes.append(route)
        return route

    def route(
        self,
        path: str,
        methods: Optional[List[str]] = None,
        *,
        pipeline: Any = ACTIVE,
    ) -> Callable[[Handler], Handler]:
        """
        Decorator registering a handler for one or more methods.

        Example:
            @router.route("/items", methods=["GET", "HEAD"])
            def items(conn):
                ...
        """
        methods = methods or ["GET"]

        def decorator(handler: Handler) -> Handler:
            for method in methods:
                self.add_route(method, path, handler, pipeline)
            return handler

        return decorator

    def get(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["GET"], **kwargs)

    def post(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["POST"], **kwargs)

    def put(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["PUT"], **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["PATCH"], **kwargs)

    def delete(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["DELETE"], **kwargs)

    def head(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["HEAD"], **kwargs)

    def options(self, path: str, **kwargs: Any) -> Callable[[Handler], Handler]:
        return self.route(path, ["OPTIONS"], **kwargs)

    # Build

    def build(self) -> RouteTable:
        """
        Validate declarations and return the immutable routing table.

        Building twice returns the same table.

        Raises:
            DeclarationError: If a route names an undeclared pipeline, or
                duplicate routes are found and the policy is "reject"
        """
        if self._table is not None:
            return self._table

        for route in self._routes:
            if route.pipeline_name is not None and route.pipeline_name not in self._registry:
                raise DeclarationError(
                    f"Route {route.method} {route.path} uses undeclared pipeline "
                    f"'{route.pipeline_name}'"
                )

        self._check_duplicates()

        pipelines = self._registry.freeze()
        entries = [
            RouteEntry(
                route=route,
                pipeline=pipelines[route.pipeline_name] if route.pipeline_name is not None else None,
            )
            for route in self._routes
        ]
        self._table = RouteTable(entries, pipelines)

        logger.info(
            "Routing table built",
            routes=len(entries),
            pipelines=len(pipelines),
        )
        return self._table

    def _check_duplicates(self) -> None:
        seen: Dict[Tuple[str, str], Route] = {}
        for route in self._routes:
            first = seen.get(route.key)
            if first is None:
                seen[route.key] = route
                continue

            if self.duplicate_routes == "reject":
                raise DeclarationError(f"Duplicate route {route.method} {route.path}")
            logger.warning(
                "Duplicate route, the first declaration wins",
                method=route.method,
                path=route.path,
                kept=_handler_name(first.handler),
                ignored=_handler_name(route.handler),
            )


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__name__", type(handler).__name__)
