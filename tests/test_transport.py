"""Tests for the protocol helpers and the line-oriented serving loop."""

from __future__ import annotations

import io
import json

import pytest

from conftest import parse_lines, request
from jumble.errors import INVALID_REQUEST, METHOD_NOT_FOUND, PARSE_ERROR, InvalidRequestError
from jumble.protocol import encode, parse_message, text_result
from jumble.transport import serve


def _serve(dispatcher, *lines):
    instream = io.StringIO("".join(line + "\n" for line in lines))
    out = io.StringIO()
    count = serve(dispatcher, instream, out)
    return parse_lines(out.getvalue()), count, out.getvalue()


class TestProtocol:
    def test_parse_request(self):
        req = parse_message(request("tools/list", id=7))
        assert req.method == "tools/list"
        assert req.id == 7
        assert not req.is_notification

    def test_null_id_is_not_a_notification(self):
        req = parse_message({"jsonrpc": "2.0", "method": "x", "id": None})
        assert not req.is_notification
        assert req.id is None

    def test_notification(self):
        assert parse_message(request("initialized", id=None)).is_notification

    @pytest.mark.parametrize("message", [[1, 2], "text", 3, {"id": 1}, {"method": ""}])
    def test_invalid(self, message):
        with pytest.raises(InvalidRequestError):
            parse_message(message)

    def test_encode_is_one_line(self):
        line = encode({"jsonrpc": "2.0", "id": 1, "result": text_result("a\nb → c")})
        assert "\n" not in line
        assert line.isascii()
        assert json.loads(line)["result"]["content"][0]["text"] == "a\nb → c"


class TestServe:
    def test_responses_in_order(self, dispatcher):
        responses, count, _ = _serve(
            dispatcher,
            json.dumps(request("initialize", {}, id=1)),
            json.dumps(request("tools/list", id=2)),
            json.dumps(request("tools/call", {"name": "list_projects"}, id=3)),
        )
        assert [r["id"] for r in responses] == [1, 2, 3]
        assert count == 3

    def test_notification_produces_no_line(self, dispatcher):
        responses, _, _ = _serve(
            dispatcher,
            json.dumps(request("notifications/initialized", id=None)),
            json.dumps(request("tools/list", id="after")),
        )
        assert [r["id"] for r in responses] == ["after"]

    def test_parse_error_has_no_id_and_loop_continues(self, dispatcher):
        responses, _, _ = _serve(
            dispatcher,
            "{not json",
            json.dumps(request("tools/list", id=2)),
        )
        assert responses[0]["error"]["code"] == PARSE_ERROR
        assert "id" not in responses[0]
        assert responses[1]["id"] == 2

    def test_oversized_integer_is_parse_error(self, dispatcher):
        responses, _, _ = _serve(
            dispatcher,
            "1" * 5000,
            json.dumps(request("tools/list", id=2)),
        )
        assert responses[0]["error"]["code"] == PARSE_ERROR
        assert "id" not in responses[0]
        assert responses[1]["id"] == 2

    def test_deep_nesting_is_parse_error(self, dispatcher):
        responses, _, _ = _serve(
            dispatcher,
            "[" * 200000,
            json.dumps(request("tools/list", id=2)),
        )
        assert responses[0]["error"]["code"] == PARSE_ERROR
        assert "id" not in responses[0]
        assert responses[1]["id"] == 2

    def test_lone_surrogate_id_is_written_as_ascii(self, dispatcher):
        responses, _, raw = _serve(
            dispatcher,
            '{"jsonrpc":"2.0","id":"\\ud800","method":"tools/list"}',
            '{"jsonrpc":"2.0","id":1,"method":"no/\\udfff"}',
            json.dumps(request("tools/list", id=2)),
        )
        raw.encode("utf-8")
        assert raw.isascii()
        assert responses[0]["id"] == "\ud800"
        assert "tools" in responses[0]["result"]
        assert responses[1]["error"]["code"] == METHOD_NOT_FOUND
        assert responses[2]["id"] == 2

    def test_non_object_is_invalid_request(self, dispatcher):
        responses, _, _ = _serve(dispatcher, "[1, 2, 3]")
        assert responses[0]["error"]["code"] == INVALID_REQUEST
        assert "id" not in responses[0]

    def test_invalid_request_echoes_id(self, dispatcher):
        responses, _, _ = _serve(dispatcher, json.dumps({"jsonrpc": "2.0", "id": 9}))
        assert responses[0]["id"] == 9
        assert responses[0]["error"]["code"] == INVALID_REQUEST

    def test_blank_lines_ignored(self, dispatcher):
        responses, _, _ = _serve(dispatcher, "", "   ", json.dumps(request("tools/list", id=1)))
        assert len(responses) == 1

    def test_one_object_per_line(self, dispatcher):
        _, _, raw = _serve(
            dispatcher,
            json.dumps(request("tools/call", {"name": "get_workspace_overview"}, id=1)),
        )
        assert raw.count("\n") == 1
        assert raw.endswith("\n")

    def test_eof_returns(self, dispatcher):
        _, count, raw = _serve(dispatcher)
        assert count == 0
        assert raw == ""
