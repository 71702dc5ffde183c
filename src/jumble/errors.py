"""Standardized error codes for jumble.

Protocol error scheme (JSON-RPC 2.0 + jumble server range):

    -32700  PARSE_ERROR       -- input line is not valid JSON (response has no id)
    -32600  INVALID_REQUEST   -- JSON that is not a request object
    -32601  METHOD_NOT_FOUND  -- unknown method
    -32602  INVALID_PARAMS    -- bad tool name, arguments, or argument values
    -32603  INTERNAL_ERROR    -- unexpected failure inside a handler
    -32001  NOT_FOUND         -- unknown project, concept, skill, doc, command
    -32002  AMBIGUOUS_MATCH   -- a partial name matched several candidates
    -32003  RELOAD_FAILED     -- reload failed, previous state still served

Callers can tell "you asked for something that does not exist" (-32001)
apart from "be more specific" (-32002) and "the server broke" (-32603).
"""

from __future__ import annotations

import click

# ---------------------------------------------------------------------------
# Error code constants
# ---------------------------------------------------------------------------

PARSE_ERROR: int = -32700
INVALID_REQUEST: int = -32600
METHOD_NOT_FOUND: int = -32601
INVALID_PARAMS: int = -32602
INTERNAL_ERROR: int = -32603
NOT_FOUND: int = -32001
AMBIGUOUS_MATCH: int = -32002
RELOAD_FAILED: int = -32003

# CLI exit codes
EXIT_ERROR: int = 1

# ---------------------------------------------------------------------------
# Protocol-level exceptions (caught by the dispatcher, never cross the loop)
# ---------------------------------------------------------------------------


class JumbleError(Exception):
    """Base class for errors that become structured protocol errors."""

    code: int = INTERNAL_ERROR
    kind: str = "internal"

    def __init__(self, message: str, data: dict | None = None):
        super().__init__(message)
        self.message = message
        self.data = data or {}

    def to_error(self) -> dict:
        """Return the ``{code, message, data?}`` object for a response."""
        error: dict = {"code": self.code, "message": self.message}
        detail = {"kind": self.kind, **self.data}
        error["data"] = detail
        return error


class InvalidRequestError(JumbleError):
    """The message decoded but is not a JSON-RPC request object."""

    code = INVALID_REQUEST
    kind = "invalid_request"


class MethodNotFoundError(JumbleError):
    """Raised for any method outside the dispatcher's state machine."""

    code = METHOD_NOT_FOUND
    kind = "method_not_found"

    def __init__(self, method: str):
        super().__init__(f"Method not found: {method}", {"method": method})


class InvalidParamsError(JumbleError):
    """Unknown tool, non-object arguments, or a bad argument value."""

    code = INVALID_PARAMS
    kind = "invalid_params"


class NotFoundError(JumbleError):
    """A project, concept, skill, doc or command lookup found nothing.

    *available* lists the names the caller could have asked for.
    """

    code = NOT_FOUND
    kind = "not_found"

    def __init__(self, message: str, available: list[str] | None = None):
        data = {}
        if available is not None:
            data["available"] = sorted(available)
        super().__init__(message, data)


class AmbiguousMatchError(JumbleError):
    """A partial name matched more than one candidate."""

    code = AMBIGUOUS_MATCH
    kind = "ambiguous"

    def __init__(self, what: str, query: str, candidates: list[str]):
        self.candidates = sorted(candidates)
        super().__init__(
            f"{what.capitalize()} '{query}' is ambiguous. "
            f"Did you mean one of: {', '.join(self.candidates)}?",
            {"query": query, "candidates": self.candidates},
        )


class ReloadError(JumbleError):
    """Reload failed; the previously loaded workspace is still served."""

    code = RELOAD_FAILED
    kind = "reload_failed"


class DiscoveryError(Exception):
    """The workspace root could not be walked at all.

    Per-file problems never raise this; they degrade to defaults.
    """


# ---------------------------------------------------------------------------
# CLI exceptions (caught by click's error handler)
# ---------------------------------------------------------------------------


class JumbleCliError(click.ClickException):
    """Base class for CLI startup errors with exit codes."""

    def __init__(self, message: str, exit_code: int = EXIT_ERROR):
        super().__init__(message)
        self.exit_code = exit_code

    def format_message(self) -> str:
        return self.message
