"""Tests for the ASGI host."""

import httpx
import orjson
import pytest

from gate import Config, GateApp, RequestId, Router, put_resp_content_type


def require_auth(conn, options):
    if conn.headers.get("authorization") == "Bearer valid_token":
        return conn
    return conn.send_resp(401, "Unauthorized").halt()


def build_router():
    router = Router()

    with router.gate("browser"):
        router.plug(put_resp_content_type, "text/html")
        router.plug(require_auth)

        @router.get("/")
        def index(conn):
            return conn.send_resp(200, "Welcome to the homepage")

    with router.gate("api"):
        router.plug(put_resp_content_type, "application/json")

        @router.get("/api")
        def api(conn):
            return conn.send_resp(200, orjson.dumps({"message": "Welcome to the API"}))

        @router.post("/api/items")
        def create_item(conn):
            return orjson.loads(conn.body), 201

    @router.get("/broken")
    def broken(conn):
        raise RuntimeError("database unavailable")

    return router


def make_client(config=None):
    app = GateApp(build_router(), config or Config(), configure_logs=False)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_api_route():
    async with make_client() as client:
        response = await client.get("/api")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json; charset=utf-8"
    assert response.json() == {"message": "Welcome to the API"}


@pytest.mark.asyncio
async def test_halted_request():
    async with make_client() as client:
        response = await client.get("/")

    assert response.status_code == 401
    assert response.text == "Unauthorized"


@pytest.mark.asyncio
async def test_authorized_request():
    async with make_client() as client:
        response = await client.get("/", headers={"Authorization": "Bearer valid_token"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "text/html; charset=utf-8"
    assert response.text == "Welcome to the homepage"


@pytest.mark.asyncio
async def test_not_found():
    async with make_client() as client:
        response = await client.get("/missing")

    assert response.status_code == 404
    assert response.text == "Oops!"


@pytest.mark.asyncio
async def test_request_body_and_tuple_result():
    async with make_client() as client:
        response = await client.post("/api/items", json={"name": "widget"})

    assert response.status_code == 201
    assert response.json() == {"name": "widget"}


@pytest.mark.asyncio
async def test_handler_error_returns_500(log_records):
    async with make_client() as client:
        response = await client.get("/broken")

    assert response.status_code == 500
    assert response.text == "Internal Server Error"
    failures = [r for r in log_records if r.message == "Request failed"]
    assert isinstance(failures[0].exception, RuntimeError)
    assert failures[0].context == {"method": "GET", "path": "/broken"}


@pytest.mark.asyncio
async def test_debug_mode_shows_error():
    async with make_client(Config({"app": {"debug": True}})) as client:
        response = await client.get("/broken")

    assert response.status_code == 500
    assert "RuntimeError: database unavailable" in response.text


@pytest.mark.asyncio
async def test_configured_not_found():
    config = Config({"router": {"not_found": {"status": 410, "body": "Gone"}}})

    async with make_client(config) as client:
        response = await client.get("/missing")

    assert response.status_code == 410
    assert response.text == "Gone"


def test_accepts_built_table():
    table = build_router().build()

    app = GateApp(table, Config(), configure_logs=False)

    assert app.table is table


def build_page_router():
    router = Router()

    with router.gate("browser"):
        router.plug(put_resp_content_type, "text/html")
        router.plug(RequestId)

        @router.get("/page")
        def page(conn):
            return "<h1>hi</h1>"

    with router.gate("api"):
        router.plug(RequestId)

        @router.get("/api")
        def api(conn):
            return {"message": "Welcome to the API"}

    return router


@pytest.mark.asyncio
async def test_pipeline_headers_kept_for_plain_results():
    app = GateApp(build_page_router(), Config(), configure_logs=False)
    transport = httpx.ASGITransport(app=app)

    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        page = await client.get("/page", headers={"X-Request-ID": "abc"})
        api = await client.get("/api", headers={"X-Request-ID": "abc"})

    assert page.headers["content-type"] == "text/html; charset=utf-8"
    assert page.headers["x-request-id"] == "abc"
    assert page.text == "<h1>hi</h1>"
    assert api.headers["content-type"] == "application/json"
    assert api.headers["x-request-id"] == "abc"
    assert api.json() == {"message": "Welcome to the API"}


async def call_asgi(app, scope):
    messages = []

    async def receive():
        return {"type": "http.request", "body": b"", "more_body": False}

    async def send(message):
        messages.append(message)

    await app({"type": "http", "method": "GET", "headers": [], **scope}, receive, send)
    return messages


@pytest.mark.asyncio
async def test_invalid_utf8_query_string():
    app = GateApp(build_page_router(), Config(), configure_logs=False)

    messages = await call_asgi(app, {"path": "/page", "query_string": b"q=\xff"})

    assert messages[0]["status"] == 200
    assert messages[1]["body"] == b"<h1>hi</h1>"


@pytest.mark.asyncio
async def test_bad_scope_is_answered_with_500(log_records):
    app = GateApp(build_page_router(), Config(), configure_logs=False)

    messages = await call_asgi(app, {"path": "/page", "headers": None, "method": None})

    assert messages[0]["status"] == 500
    assert [r.message for r in log_records if r.message == "Request failed"]
