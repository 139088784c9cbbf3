"""Tests for route declaration and table building."""

import pytest

from gate import BuildError, Config, DeclarationError, Router, put_resp_content_type
from gate.core.router import RouteTable


def handler(conn):
    return conn.send_resp(200, "ok")


def other(conn):
    return conn.send_resp(200, "other")


class TestRouteDeclaration:
    """Tests for binding routes to pipelines."""

    def test_route_binds_to_active_pipeline(self, router):
        router.begin_pipeline("api")
        route = router.add_route("GET", "/api", handler)

        assert route.pipeline_name == "api"

    def test_route_without_active_pipeline_has_none(self, router):
        route = router.add_route("GET", "/", handler)

        assert route.pipeline_name is None

    def test_explicit_pipeline_overrides_active(self, router):
        router.begin_pipeline("api")
        router.begin_pipeline("browser")
        route = router.add_route("GET", "/", handler, pipeline_name="api")
        bare = router.add_route("GET", "/health", handler, pipeline_name=None)

        assert route.pipeline_name == "api"
        assert bare.pipeline_name is None

    def test_gate_block_restores_previous_pipeline(self, router):
        with router.gate("browser"):
            assert router.active_pipeline == "browser"

            @router.get("/")
            def index(conn):
                return conn

        assert router.active_pipeline is None
        outside = router.add_route("GET", "/outside", handler)

        table = router.build()

        assert [r.pipeline_name for r in table.routes] == ["browser", None]
        assert outside.pipeline_name is None

    def test_end_pipeline_clears_cursor(self, router):
        router.begin_pipeline("api")
        router.end_pipeline()

        assert router.add_route("GET", "/", handler).pipeline_name is None
        with pytest.raises(DeclarationError):
            router.add_step(put_resp_content_type, "text/html")

    def test_methods_are_normalized(self, router):
        assert router.add_route("get", "/", handler).method == "GET"

    def test_unknown_method_fails(self, router):
        with pytest.raises(DeclarationError, match="Unknown HTTP method"):
            router.add_route("FETCH", "/", handler)

    def test_path_must_be_absolute(self, router):
        with pytest.raises(DeclarationError):
            router.add_route("GET", "api", handler)

    def test_handler_must_be_callable(self, router):
        with pytest.raises(DeclarationError):
            router.add_route("GET", "/", "handler")

    def test_route_decorator_registers_each_method(self, router):
        @router.route("/items", methods=["GET", "HEAD"])
        def items(conn):
            return conn

        table = router.build()

        assert [(r.method, r.path) for r in table.routes] == [("GET", "/items"), ("HEAD", "/items")]
        assert table.routes[0].handler is items

    def test_shortcut_decorators(self, router):
        for name in ("get", "post", "put", "patch", "delete", "head", "options"):
            getattr(router, name)("/thing")(handler)

        methods = [r.method for r in router.build().routes]

        assert methods == ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

    def test_plug_is_chainable(self, router):
        router.begin_pipeline("api")
        result = router.plug(put_resp_content_type, "application/json").plug(
            put_resp_content_type, "text/html"
        )

        assert result is router
        assert len(router.build().pipelines["api"]) == 2


class TestBuild:
    """Tests for building the immutable routing table."""

    def test_build_is_idempotent(self, router):
        with router.gate("api"):
            router.plug(put_resp_content_type, "application/json")
            router.add_route("GET", "/api", handler)

        first = router.build()
        second = router.build()

        assert first is second
        assert first == second
        assert first.match("GET", "/api") is second.match("GET", "/api")

    def test_routes_keep_declaration_order(self, router):
        router.add_route("GET", "/b", handler)
        router.add_route("GET", "/a", handler)
        router.add_route("POST", "/b", handler)

        table = router.build()

        assert [(r.method, r.path) for r in table.routes] == [
            ("GET", "/b"),
            ("GET", "/a"),
            ("POST", "/b"),
        ]

    def test_entries_carry_resolved_pipeline(self, router):
        with router.gate("api"):
            router.plug(put_resp_content_type, "application/json")
            router.add_route("GET", "/api", handler)
        router.add_route("GET", "/", handler)

        table = router.build()

        assert table.entries[0].pipeline is table.pipelines["api"]
        assert table.entries[1].pipeline is None

    def test_mutation_after_build_fails(self, router):
        router.begin_pipeline("api")
        router.build()

        with pytest.raises(BuildError):
            router.add_route("GET", "/late", handler)
        with pytest.raises(BuildError):
            router.add_step(put_resp_content_type, "text/html")
        with pytest.raises(BuildError):
            router.begin_pipeline("late")
        with pytest.raises(BuildError):
            router.end_pipeline()

    def test_undeclared_pipeline_fails_at_build(self, router):
        router.add_route("GET", "/", handler, pipeline_name="missing")

        with pytest.raises(DeclarationError, match="undeclared pipeline 'missing'"):
            router.build()

    def test_empty_pipeline_is_allowed(self, router):
        router.begin_pipeline("empty")
        router.add_route("GET", "/", handler)

        table = router.build()

        assert len(table.pipelines["empty"]) == 0

    def test_table_match_first_declared_wins(self, router):
        router.add_route("GET", "/x", handler)
        router.add_route("GET", "/x", other)

        entry = router.build().match("GET", "/x")

        assert entry.route.handler is handler

    def test_table_match_is_exact(self, router):
        router.add_route("GET", "/x", handler)
        table = router.build()

        assert table.match("GET", "/x/") is None
        assert table.match("POST", "/x") is None
        assert table.match("GET", "/X") is None

    def test_equal_tables_from_same_declarations(self):
        def declare():
            router = Router()
            with router.gate("api"):
                router.add_route("GET", "/api", handler)
            return router.build()

        assert declare() == declare()
        assert isinstance(declare(), RouteTable)

    def test_build_logs_summary(self, router, log_records):
        router.add_route("GET", "/", handler)
        router.build()

        summary = [r for r in log_records if r.message == "Routing table built"]
        assert summary[0].context == {"routes": 1, "pipelines": 0}


class TestDuplicateRoutes:
    """Tests for the duplicate route policy."""

    def test_first_policy_keeps_both_and_warns(self, router, log_records):
        router.add_route("GET", "/x", handler)
        router.add_route("GET", "/x", other)

        table = router.build()

        assert len(table) == 2
        warnings = [r for r in log_records if r.message.startswith("Duplicate route")]
        assert warnings[0].context["kept"] == "handler"
        assert warnings[0].context["ignored"] == "other"

    def test_reject_policy_fails_build(self):
        router = Router(duplicate_routes="reject")
        router.add_route("GET", "/x", handler)
        router.add_route("GET", "/x", other)

        with pytest.raises(DeclarationError, match="Duplicate route GET /x"):
            router.build()

    def test_same_path_different_method_is_not_duplicate(self):
        router = Router(duplicate_routes="reject")
        router.add_route("GET", "/x", handler)
        router.add_route("POST", "/x", handler)

        assert len(router.build()) == 2

    def test_policy_from_config(self):
        router = Router.from_config(Config({"router": {"duplicate_routes": "reject"}}))

        assert router.duplicate_routes == "reject"

    def test_unknown_policy_fails(self):
        with pytest.raises(DeclarationError):
            Router(duplicate_routes="last")
