"""Follower-side polling of the Leader for dialogs this window should show."""

import asyncio
import logging

import httpx

from .client import LeaderClient
from .config import DEFAULT_POLL_INTERVAL
from .core import DialogRequest
from .presenter import Presenter
from .workspace import should_claim

logger = logging.getLogger(__name__)


class PollingBridge:
    """Poll ``/pending`` on a fixed interval and relay answers to ``/respond``.

    Ids already handed to the presenter are remembered until the Leader
    acknowledges the relay or stops listing them, so a request is shown once
    per window. Every network error is logged and retried on the next tick;
    the Leader may simply be restarting.
    """

    def __init__(
        self,
        client: LeaderClient,
        presenter: Presenter,
        workspaces: list[str] | None = None,
        interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self.client = client
        self.presenter = presenter
        self.workspaces = list(workspaces or [])
        self.interval = interval
        self.seen: set[str] = set()
        # Relayed ids the last poll may still list; dropped once the Leader stops listing them.
        self._relayed: set[str] = set()
        self._presenting: set[str] = set()
        self._loop_task: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def start(self) -> None:
        if self.running:
            return
        logger.info(
            "Polling %s for %s every %.1fs",
            self.client.base_url,
            ", ".join(self.workspaces) or "all workspaces",
            self.interval,
        )
        self._loop_task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        tasks = list(self._tasks)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
            self._loop_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self.seen.clear()
        self._relayed.clear()
        self._presenting.clear()

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)

    async def tick(self) -> None:
        """Fetch pending dialogs once and present the ones not seen yet."""
        requests, complete = await self._fetch()
        if complete:
            listed = {r.id for r in requests}
            self._relayed &= listed
            # Ids the Leader no longer lists were answered somewhere else.
            self.seen &= listed | self._presenting
        for request in requests:
            if request.id in self.seen or request.id in self._relayed:
                continue
            if not should_claim(request.workspace, self.workspaces):
                continue
            self.seen.add(request.id)
            self._presenting.add(request.id)
            task = asyncio.create_task(self._present(request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _fetch(self) -> tuple[list[DialogRequest], bool]:
        found: dict[str, DialogRequest] = {}
        complete = True
        for workspace in self.workspaces or [None]:
            try:
                requests = await self.client.list_pending(workspace)
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("Polling leader failed: %s", e)
                complete = False
                continue
            for request in requests:
                found.setdefault(request.id, request)
        return list(found.values()), complete

    async def _present(self, request: DialogRequest) -> None:
        try:
            resolution = await self.presenter.present(request, [])
        except Exception as e:
            logger.error("Presenter %s failed for %s: %s", self.presenter.name, request.id, e)
            self.seen.discard(request.id)
            return
        finally:
            self._presenting.discard(request.id)
        if resolution is None:
            # Answered out of band directly against the Leader.
            return

        while True:
            try:
                accepted = await self.client.respond(request.id, resolution)
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("Relaying %s failed, retrying: %s", request.id, e)
                await asyncio.sleep(self.interval)
                continue
            break

        if not accepted:
            logger.info("Dialog %s was already answered elsewhere", request.id)
        self._relayed.add(request.id)
        self.seen.discard(request.id)
