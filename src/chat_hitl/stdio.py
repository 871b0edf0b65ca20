"""MCP over stdin/stdout for agents that launch the tool as a subprocess.

Requests are read with the framing the agent uses and answered in kind.
``tools/call`` is forwarded to the Leader's ``/dialog`` endpoint, so each
request runs in its own task: a dialog can stay open for hours while
``tools/list`` keeps being answered.
"""

import asyncio
import logging
import sys
from typing import BinaryIO

from .codec import FRAMED, FrameDecoder, encode_frame
from .rpc import RpcHandler

logger = logging.getLogger(__name__)

READ_CHUNK = 65536


class StdioServer:
    def __init__(self, handler: RpcHandler, reader: asyncio.StreamReader, writer: BinaryIO) -> None:
        self.handler = handler
        self.reader = reader
        self.writer = writer
        self.decoder = FrameDecoder()
        self._tasks: set[asyncio.Task] = set()

    async def serve(self) -> None:
        """Read until EOF, then wait for in-flight requests to finish."""
        while True:
            chunk = await self.reader.read(READ_CHUNK)
            if not chunk:
                break
            for frame in self.decoder.feed(chunk):
                task = asyncio.create_task(self._handle(frame.body, frame.framing))
                self._tasks.add(task)
                task.add_done_callback(self._tasks.discard)
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _handle(self, body: bytes, framing: str = FRAMED) -> None:
        response = await self.handler.handle_body(body)
        if response is not None:
            self.send(response, framing)

    def send(self, message: dict, framing: str = FRAMED) -> None:
        self.writer.write(encode_frame(message, framing))
        self.writer.flush()


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def run_stdio(handler: RpcHandler) -> None:
    reader = await open_stdin_reader()
    logger.info("chat-hitl MCP server started on stdio")
    await StdioServer(handler, reader, sys.stdout.buffer).serve()
