"""JSON-RPC 2.0 message shapes for the line-oriented server.

A request carries ``jsonrpc``, ``method``, optional ``params`` and an
optional ``id``. A message without an ``id`` key is a notification and is
never answered. Error responses to messages whose id is unknown (parse
errors, non-object input) omit ``id`` entirely.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from jumble.errors import PARSE_ERROR, InvalidRequestError

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "jumble"

_MISSING = object()


@dataclass(frozen=True)
class Request:
    method: str
    params: Any = field(default_factory=dict)
    id: Any = _MISSING

    @property
    def is_notification(self) -> bool:
        return self.id is _MISSING


def parse_message(message: Any) -> Request:
    """Validate a decoded JSON value as a request.

    Raises InvalidRequestError for anything that is not an object with a
    string ``method``.
    """
    if not isinstance(message, dict):
        raise InvalidRequestError("Invalid Request: expected a JSON object")
    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise InvalidRequestError("Invalid Request: missing 'method'")
    params = message.get("params", {})
    if params is None:
        params = {}
    return Request(method=method, params=params, id=message.get("id", _MISSING))


def success(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error(request_id: Any, err: dict, include_id: bool = True) -> dict:
    response: dict = {"jsonrpc": JSONRPC_VERSION}
    if include_id:
        response["id"] = request_id
    response["error"] = err
    return response


def parse_error(detail: str) -> dict:
    """Response for an input line that is not valid JSON; carries no id."""
    return error(None, {"code": PARSE_ERROR, "message": f"Parse error: {detail}"}, include_id=False)


def text_result(text: str) -> dict:
    """Wrap operation output in the ``tools/call`` content envelope."""
    return {"content": [{"type": "text", "text": text}]}


def encode(response: dict) -> str:
    """Serialize a response as exactly one line of compact JSON."""
    return json.dumps(response, ensure_ascii=True, separators=(",", ":"))
