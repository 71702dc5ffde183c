"""Request dispatch: one decoded message in, at most one response out."""

from __future__ import annotations

import logging
from typing import Any

from jumble import __version__
from jumble.errors import (
    INTERNAL_ERROR,
    InvalidParamsError,
    JumbleError,
    MethodNotFoundError,
)
from jumble.protocol import (
    PROTOCOL_VERSION,
    SERVER_NAME,
    Request,
    error,
    parse_message,
    success,
    text_result,
)
from jumble.tools import TOOLS, tools_list
from jumble.workspace.store import ContextStore

log = logging.getLogger(__name__)

INITIALIZED_NOTIFICATIONS = frozenset({"initialized", "notifications/initialized"})


class Dispatcher:
    """Routes requests to the handshake, the catalog, or an operation."""

    def __init__(self, store: ContextStore) -> None:
        self.store = store
        self._methods = {
            "initialize": self._initialize,
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }
        for name in INITIALIZED_NOTIFICATIONS:
            self._methods[name] = self._initialized

    def handle(self, message: Any) -> dict | None:
        """Answer one decoded JSON value.

        Returns None for notifications. Handler failures become error
        responses; nothing raised here escapes to the serving loop.
        """
        try:
            request = parse_message(message)
        except JumbleError as exc:
            has_id = isinstance(message, dict) and "id" in message
            return error(message.get("id") if has_id else None, exc.to_error(), include_id=has_id)

        if request.is_notification:
            self._notify(request)
            return None

        try:
            result = self._call(request)
        except JumbleError as exc:
            log.debug("%s failed: %s", request.method, exc.message)
            return error(request.id, exc.to_error())
        except Exception as exc:
            log.exception("Unexpected error handling %s", request.method)
            return error(request.id, {
                "code": INTERNAL_ERROR,
                "message": f"Internal error: {exc}",
                "data": {"kind": "internal"},
            })
        return success(request.id, result)

    def _notify(self, request: Request) -> None:
        if request.method not in self._methods:
            log.debug("Ignoring notification %s", request.method)
            return
        try:
            self._call(request)
        except JumbleError as exc:
            log.debug("Notification %s failed: %s", request.method, exc.message)
        except Exception:
            log.exception("Unexpected error handling notification %s", request.method)

    def _call(self, request: Request) -> Any:
        method = self._methods.get(request.method)
        if method is None:
            raise MethodNotFoundError(request.method)
        return method(request.params)

    def _initialized(self, params: Any) -> dict:
        log.debug("Client initialized")
        return {}

    def _initialize(self, params: Any) -> dict:
        if isinstance(params, dict):
            client = params.get("clientInfo") or {}
            if isinstance(client, dict) and client.get("name"):
                log.info("Client connected: %s %s", client.get("name"), client.get("version", ""))
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    def _tools_list(self, params: Any) -> dict:
        return tools_list()

    def _tools_call(self, params: Any) -> dict:
        if not isinstance(params, dict):
            raise InvalidParamsError("tools/call params must be an object")
        name = params.get("name")
        spec = TOOLS.get(name) if isinstance(name, str) else None
        if spec is None:
            raise InvalidParamsError(
                f"Unknown tool: {name}",
                {"tool": name, "available": sorted(TOOLS)},
            )
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError(
                f"Arguments for {name} must be an object", {"tool": name}
            )
        spec.validate(arguments)
        log.debug("tools/call %s %s", name, arguments)
        return text_result(spec.handler(self.store, arguments))
