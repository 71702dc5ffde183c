"""Line-oriented stdio transport.

One JSON message per input line, one compact JSON response per output
line. Requests are handled strictly in arrival order and each response is
flushed before the next line is read.
"""

from __future__ import annotations

import json
import logging
from typing import TextIO

from jumble.dispatcher import Dispatcher
from jumble.protocol import encode, parse_error

log = logging.getLogger(__name__)


def handle_line(dispatcher: Dispatcher, line: str) -> dict | None:
    """Decode one input line and return the response, if any."""
    try:
        message = json.loads(line)
    except (ValueError, RecursionError) as exc:
        log.debug("Unparseable input line: %s", exc)
        return parse_error(str(exc))
    return dispatcher.handle(message)


def serve(dispatcher: Dispatcher, instream: TextIO, outstream: TextIO) -> int:
    """Serve until *instream* reaches end of input.

    Blank lines are skipped. Returns the number of responses written.
    """
    written = 0
    log.info("Serving on stdio")
    for line in instream:
        if not line.strip():
            continue
        response = handle_line(dispatcher, line)
        if response is None:
            continue
        outstream.write(encode(response) + "\n")
        outstream.flush()
        written += 1
    log.info("Input closed, shutting down after %d response(s)", written)
    return written
