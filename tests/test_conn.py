"""Tests for the request context and response conversion."""

import orjson
import pytest

from gate import Conn
from gate.core.conn import Headers
from gate.core.response import JSONResponse, PlainTextResponse, Response, from_conn, to_response


class TestConn:
    """Tests for Conn."""

    def test_method_is_upper_cased(self):
        assert Conn("get", "/").method == "GET"

    def test_headers_are_case_insensitive(self):
        conn = Conn("GET", "/", headers=[(b"Content-Type", b"text/plain")])

        assert conn.headers["content-type"] == "text/plain"
        assert conn.headers.get("CONTENT-TYPE") == "text/plain"
        assert "Content-Type" in conn.headers

    def test_from_scope(self):
        scope = {
            "type": "http",
            "method": "POST",
            "path": "/items",
            "query_string": b"page=2&tag=a&tag=b",
            "headers": [(b"host", b"example.com")],
        }

        conn = Conn.from_scope(scope, b'{"name": "x"}')

        assert conn.method == "POST"
        assert conn.path == "/items"
        assert conn.query == {"page": ["2"], "tag": ["a", "b"]}
        assert conn.headers["host"] == "example.com"
        assert conn.body == b'{"name": "x"}'

    def test_response_writers_chain(self):
        conn = Conn("GET", "/")

        result = (
            conn.put_resp_header("X-Frame-Options", "DENY")
            .put_resp_content_type("application/json")
            .send_resp(201, "{}")
        )

        assert result is conn
        assert conn.sent
        assert conn.status == 201
        assert conn.resp_body == b"{}"
        assert conn.resp_headers == {
            "x-frame-options": "DENY",
            "content-type": "application/json; charset=utf-8",
        }

    def test_send_resp_does_not_halt(self):
        conn = Conn("GET", "/").send_resp(200, "ok")

        assert not conn.halted
        assert conn.halt().halted

    def test_content_type_with_explicit_charset_is_kept(self):
        conn = Conn("GET", "/").put_resp_content_type("text/html; charset=latin-1")

        assert conn.resp_headers["content-type"] == "text/html; charset=latin-1"

    def test_assigns(self):
        conn = Conn("GET", "/").assign("user", "ada")

        assert conn.assigns == {"user": "ada"}

    def test_empty_headers(self):
        assert len(Headers()) == 0


class TestToResponse:
    """Tests for converting dispatch results."""

    def test_conn_conversion(self):
        conn = Conn("GET", "/").put_resp_content_type("application/json").send_resp(200, "{}")

        response = to_response(conn)

        assert response.status_code == 200
        assert response.body == b"{}"
        assert response.headers["content-type"] == "application/json; charset=utf-8"
        assert response.headers["content-length"] == "2"

    def test_halted_conn_without_response_is_204(self):
        assert from_conn(Conn("GET", "/").halt()).status_code == 204

    def test_unsent_conn_is_empty_200(self):
        response = from_conn(Conn("GET", "/"))

        assert response.status_code == 200
        assert response.body == b""

    def test_dict_becomes_json(self):
        response = to_response({"message": "Welcome to the API"})

        assert isinstance(response, JSONResponse)
        assert orjson.loads(response.body) == {"message": "Welcome to the API"}
        assert response.headers["content-type"] == "application/json"

    def test_tuple_sets_status(self):
        response = to_response(({"error": "nope"}, 422))

        assert response.status_code == 422
        assert isinstance(response, JSONResponse)

    def test_text(self):
        response = to_response("hello")

        assert isinstance(response, PlainTextResponse)
        assert response.body == b"hello"
        assert response.headers["content-type"] == "text/plain; charset=utf-8"

    def test_response_passes_through(self):
        response = Response("x", status_code=202)

        assert to_response(response) is response

    def test_none_is_204(self):
        assert to_response(None).status_code == 204

    def test_unknown_type_fails(self):
        with pytest.raises(TypeError):
            to_response(object())

    def test_error_response(self):
        response = Response.error(500, "Internal Server Error")

        assert response.status_code == 500
        assert response.status_phrase == "Internal Server Error"


class TestPipelineHeaders:
    """Tests for keeping headers written by the pipeline."""

    def _conn(self):
        return (
            Conn("GET", "/")
            .put_resp_content_type("text/html")
            .put_resp_header("x-request-id", "abc")
        )

    def test_plain_value_keeps_pipeline_headers(self):
        response = to_response("<h1>hi</h1>", self._conn())

        assert response.headers["content-type"] == "text/html; charset=utf-8"
        assert response.headers["x-request-id"] == "abc"
        assert response.headers["content-length"] == "11"

    def test_dict_keeps_pipeline_headers(self):
        conn = Conn("GET", "/").put_resp_header("x-request-id", "abc")

        response = to_response({"ok": True}, conn)

        assert response.headers["content-type"] == "application/json"
        assert response.headers["x-request-id"] == "abc"

    def test_explicit_response_content_type_wins(self):
        response = to_response(JSONResponse({"ok": True}), self._conn())

        assert response.headers["content-type"] == "application/json"
        assert response.headers["x-request-id"] == "abc"

    def test_explicit_response_is_not_modified(self):
        shared = JSONResponse({"ok": True})

        to_response(shared, self._conn())

        assert "x-request-id" not in shared.headers

    def test_status_tuple_does_not_modify_shared_response(self):
        shared = JSONResponse({"ok": True})

        response = to_response((shared, 201))

        assert response.status_code == 201
        assert shared.status_code == 200
        assert response.body == shared.body

    def test_invalid_utf8_query_is_replaced(self):
        conn = Conn.from_scope({"method": "GET", "path": "/", "query_string": b"q=\xff"})

        assert conn.query == {"q": ["\ufffd"]}
