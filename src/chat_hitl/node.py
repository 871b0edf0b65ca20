"""Endpoint arbitration: one Leader per port, everyone else follows.

The first front-end process to bind the coordination port hosts the
registry and HTTP surface. A process that finds the port taken polls the
Leader instead. A port change stops whichever role is running and goes
through the same arbitration again.
"""

import asyncio
import logging
import socket
import sys
from enum import Enum
from pathlib import Path

import uvicorn

from .client import LeaderClient
from .config import DEFAULT_POLL_INTERVAL, SNAPSHOT_INTERVAL, base_url, get_host
from .follower import PollingBridge
from .hub import DialogHub
from .presenter import ExternalPresenter, Presenter
from .server import create_app
from .snapshot import SnapshotStore

logger = logging.getLogger(__name__)


class Role(str, Enum):
    LEADER = "leader"
    FOLLOWER = "follower"


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind and listen on host:port, raising OSError if it is taken."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        if sys.platform == "win32":
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
        else:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
        sock.listen(128)
    except OSError:
        sock.close()
        raise
    return sock


class Node:
    """One front-end process, either Leader or Follower."""

    def __init__(
        self,
        port: int,
        presenter: Presenter | None = None,
        workspaces: list[str] | None = None,
        host: str | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        snapshot_path: Path | None = None,
        snapshot_interval: float = SNAPSHOT_INTERVAL,
    ) -> None:
        self.port = port
        self.host = host or get_host()
        self.presenter = presenter or ExternalPresenter()
        self.workspaces = list(workspaces or [])
        self.poll_interval = poll_interval
        self.snapshot_path = snapshot_path
        self.snapshot_interval = snapshot_interval

        self.role: Role | None = None
        self.hub: DialogHub | None = None
        self.bridge: PollingBridge | None = None
        self._server: uvicorn.Server | None = None
        self._server_task: asyncio.Task | None = None
        self._snapshot_task: asyncio.Task | None = None
        self._lock = asyncio.Lock()

    @property
    def url(self) -> str:
        return base_url(self.port, self.host)

    async def start(self) -> Role:
        async with self._lock:
            return await self._start()

    async def stop(self) -> None:
        async with self._lock:
            await self._stop()

    async def rebind(self, port: int) -> Role:
        """Tear down the current role and arbitrate again on a new port."""
        async with self._lock:
            logger.info("Re-binding from port %d to %d", self.port, port)
            await self._stop()
            self.port = port
            return await self._start()

    async def _start(self) -> Role:
        try:
            sock = bind_socket(self.host, self.port)
        except OSError as e:
            logger.info("Port %d is in use (%s), starting as follower", self.port, e)
            await self._start_follower()
            return self.role

        try:
            await self._start_leader(sock)
        except RuntimeError as e:
            logger.error("Leader startup on port %d failed: %s", self.port, e)
            await self._start_follower()
        return self.role

    async def _start_leader(self, sock: socket.socket) -> None:
        snapshot = SnapshotStore(self.snapshot_path) if self.snapshot_path else None
        hub = DialogHub(
            presenter=self.presenter,
            workspaces=self.workspaces,
            snapshot=snapshot,
            port=self.port,
            host=self.host,
        )
        hub.restore_snapshot()

        config = uvicorn.Config(
            create_app(hub),
            log_level="warning",
            lifespan="off",
            timeout_graceful_shutdown=1,
        )
        server = uvicorn.Server(config)
        task = asyncio.create_task(server.serve(sockets=[sock]))
        while not server.started:
            if task.done():
                sock.close()
                await hub.close()
                raise RuntimeError("server exited during startup")
            await asyncio.sleep(0.01)

        self.hub = hub
        self._server = server
        self._server_task = task
        if snapshot is not None:
            self._snapshot_task = asyncio.create_task(self._snapshot_loop())
        self.role = Role.LEADER
        logger.info("Leader listening on %s", self.url)

    async def _start_follower(self) -> None:
        bridge = PollingBridge(
            LeaderClient(self.url),
            self.presenter,
            workspaces=self.workspaces,
            interval=self.poll_interval,
        )
        bridge.start()
        self.bridge = bridge
        self.role = Role.FOLLOWER

    async def _stop(self) -> None:
        role, self.role = self.role, None
        if role is Role.LEADER:
            if self._snapshot_task is not None:
                self._snapshot_task.cancel()
                await asyncio.gather(self._snapshot_task, return_exceptions=True)
                self._snapshot_task = None
            await self.hub.close()
            self._server.should_exit = True
            await asyncio.gather(self._server_task, return_exceptions=True)
            self.hub = None
            self._server = None
            self._server_task = None
        elif role is Role.FOLLOWER:
            await self.bridge.stop()
            await self.bridge.client.aclose()
            self.bridge = None

    async def _snapshot_loop(self) -> None:
        while True:
            await asyncio.sleep(self.snapshot_interval)
            self.hub.save_snapshot()

    async def serve_forever(self, port_source=None, check_interval: float = 2.0) -> None:
        """Run until the Leader's server exits, re-binding when the port changes.

        ``port_source`` is polled for the configured port, e.g. config.get_port.
        """
        while True:
            await asyncio.sleep(check_interval)
            if self.role is Role.LEADER and self._server_task.done():
                logger.info("Leader server exited")
                return
            if port_source is None:
                continue
            try:
                port = port_source()
            except ValueError as e:
                logger.error("Ignoring invalid port setting: %s", e)
                continue
            if port != self.port:
                await self.rebind(port)
