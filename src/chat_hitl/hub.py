"""Leader-side dialog state and local presentation."""

import asyncio
import logging

from .config import DEFAULT_PORT, VERSION, base_url, get_host
from .core import DialogRequest, DialogResolution
from .fanout import Broadcaster
from .presenter import ExternalPresenter, Presenter
from .registry import PendingRegistry
from .snapshot import SnapshotStore
from .workspace import should_claim

logger = logging.getLogger(__name__)


class DialogHub:
    """Everything the Leader owns: registry, history, fan-out and presenter.

    Handed to the HTTP app and the RPC handler; nothing else reaches the
    registry directly.
    """

    def __init__(
        self,
        presenter: Presenter | None = None,
        workspaces: list[str] | None = None,
        registry: PendingRegistry | None = None,
        snapshot: SnapshotStore | None = None,
        port: int = DEFAULT_PORT,
        host: str | None = None,
        version: str = VERSION,
    ) -> None:
        self.presenter = presenter or ExternalPresenter()
        self.workspaces = list(workspaces or [])
        self.registry = registry or PendingRegistry()
        self.broadcaster = Broadcaster()
        self.snapshot = snapshot
        self.port = port
        self.host = host or get_host()
        self.version = version
        self.stale: list[DialogRequest] = []
        self._tasks: set[asyncio.Task] = set()

    @property
    def ledger(self):
        return self.registry.ledger

    @property
    def endpoint_url(self) -> str:
        """Where stream clients POST their messages."""
        return f"{base_url(self.port, self.host)}/messages"

    async def request_dialog(self, reason: str, workspace: str) -> DialogResolution:
        """Submit a dialog, offer it locally and wait for the human."""
        request, future = self.registry.submit(reason, workspace)
        self.offer(request)
        return await asyncio.shield(future)

    def offer(self, request: DialogRequest) -> None:
        if not should_claim(request.workspace, self.workspaces):
            logger.debug("Dialog %s left for another window", request.id)
            return
        task = asyncio.create_task(self._present(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _present(self, request: DialogRequest) -> None:
        history = self.ledger.entries(request.workspace)
        try:
            resolution = await self.presenter.present(request, history)
        except Exception as e:
            logger.error(
                "Presenter %s failed for %s: %s. The dialog stays pending; "
                "answer it with `chat-hitl respond %s`",
                self.presenter.name,
                request.id,
                e,
                request.id,
            )
            return
        if resolution is not None:
            self.respond(request.id, resolution)

    def respond(self, dialog_id: str, resolution: DialogResolution) -> bool:
        return self.registry.resolve(dialog_id, resolution)

    def restore_snapshot(self) -> None:
        if self.snapshot is None:
            return
        self.stale = self.snapshot.load()
        for request in self.stale:
            logger.warning(
                "Dialog %s for %s was still pending when the last process exited: %s",
                request.id,
                request.workspace or "<none>",
                request.reason,
            )

    def save_snapshot(self) -> None:
        if self.snapshot is not None:
            self.snapshot.save(self.registry.list_pending())

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self.save_snapshot()
