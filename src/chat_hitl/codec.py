"""Wire encodings for JSON-RPC messages.

Two stdio framings are understood: ``Content-Length`` headers followed by a
blank line and the body (the LSP convention), and newline-delimited JSON.
Server-sent event frames are produced for the push channel.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from .errors import PARSE_ERROR, RpcError

logger = logging.getLogger(__name__)

FRAMED = "content-length"
LINES = "jsonl"

_HEADER_END = b"\r\n\r\n"
_CONTENT_LENGTH = re.compile(rb"content-length:\s*(\d+)", re.IGNORECASE)
_HEADER_LINE = re.compile(rb"[A-Za-z][A-Za-z0-9-]*:")


@dataclass
class Frame:
    body: bytes
    framing: str


class FrameDecoder:
    """Incremental stdio decoder.

    Feed raw bytes as they arrive; complete message bodies come back in
    order. Header blocks without a Content-Length are skipped.
    """

    def __init__(self) -> None:
        self._buffer = b""

    def feed(self, data: bytes) -> list[Frame]:
        self._buffer += data
        frames = []
        while True:
            frame = self._next_frame()
            if frame is None:
                break
            frames.append(frame)
        return frames

    def _next_frame(self) -> Frame | None:
        stripped = self._buffer.lstrip()
        if not stripped:
            self._buffer = b""
            return None

        if not _HEADER_LINE.match(stripped):
            newline = stripped.find(b"\n")
            if newline == -1:
                return None
            self._buffer = stripped[newline + 1:]
            return Frame(stripped[:newline].strip(), LINES)

        header_end = stripped.find(_HEADER_END)
        if header_end == -1:
            return None

        match = _CONTENT_LENGTH.search(stripped[:header_end])
        start = header_end + len(_HEADER_END)
        if not match:
            logger.warning("Skipping frame without Content-Length: %r", stripped[:header_end])
            self._buffer = stripped[start:]
            return self._next_frame()

        end = start + int(match.group(1))
        if len(stripped) < end:
            self._buffer = stripped
            return None
        self._buffer = stripped[end:]
        return Frame(stripped[start:end], FRAMED)


def encode_frame(message: dict, framing: str = FRAMED) -> bytes:
    body = json.dumps(message, ensure_ascii=False).encode("utf-8")
    if framing == LINES:
        return body + b"\n"
    return f"Content-Length: {len(body)}\r\n\r\n".encode("ascii") + body


def decode_body(body: bytes | str) -> Any:
    """Parse a JSON body, raising RpcError(PARSE_ERROR) on malformed input."""
    try:
        if isinstance(body, bytes):
            body = body.decode("utf-8")
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RpcError(PARSE_ERROR, "Parse error") from e


def sse_event(data: Any, event: str | None = None) -> str:
    """Format one server-sent event; non-string data is JSON encoded."""
    payload = data if isinstance(data, str) else json.dumps(data, ensure_ascii=False)
    lines = [f"event: {event}"] if event else []
    lines.extend(f"data: {line}" for line in payload.split("\n"))
    return "\n".join(lines) + "\n\n"


def sse_comment(text: str) -> str:
    return f": {text}\n\n"
