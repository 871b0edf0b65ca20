"""In-flight dialog requests awaiting exactly one resolution."""

import asyncio
import logging
import secrets
import time

from .core import DialogRequest, DialogResolution, HistoryEntry
from .history import HistoryLedger
from .workspace import same_or_containing

logger = logging.getLogger(__name__)


def new_dialog_id() -> str:
    return f"dialog_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


class PendingRegistry:
    """Pending dialogs keyed by id.

    Each entry carries an asyncio.Future that the submitter awaits. The
    registry is only touched from the event loop thread, so no locking is
    needed: resolve() pops the entry before completing the future, which
    makes every later resolve() for the same id a harmless miss.
    """

    def __init__(self, ledger: HistoryLedger | None = None) -> None:
        self.ledger = ledger if ledger is not None else HistoryLedger()
        self._pending: dict[str, tuple[DialogRequest, asyncio.Future]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, dialog_id: str) -> bool:
        return dialog_id in self._pending

    def submit(self, reason: str, workspace: str) -> tuple[DialogRequest, asyncio.Future]:
        """Register a new request and return it with its resolution future."""
        sequence = self.ledger.next_sequence(workspace)
        request = DialogRequest(
            id=new_dialog_id(),
            reason=reason,
            workspace=workspace,
            sequence_number=sequence,
        )
        future = asyncio.get_running_loop().create_future()
        self._pending[request.id] = (request, future)
        logger.info("Dialog %s submitted for %s (#%d)", request.id, workspace or "<none>", sequence)
        return request, future

    def resolve(self, dialog_id: str, resolution: DialogResolution) -> bool:
        """Resolve a pending request; False if it is unknown or already resolved."""
        item = self._pending.pop(dialog_id, None)
        if item is None:
            logger.debug("Resolve for unknown dialog %s ignored", dialog_id)
            return False

        request, future = item
        self.ledger.append(
            request.workspace,
            HistoryEntry(
                timestamp=time.time(),
                reason=request.reason,
                user_input=resolution.user_input,
                continued=resolution.should_continue,
            ),
        )
        if not future.done():
            future.set_result(resolution)
        logger.info(
            "Dialog %s resolved (%s)",
            dialog_id,
            "continue" if resolution.should_continue else "stop",
        )
        return True

    def get(self, dialog_id: str) -> DialogRequest | None:
        item = self._pending.get(dialog_id)
        return item[0] if item else None

    def list_pending(self, workspace: str | None = None) -> list[DialogRequest]:
        """Return pending requests, optionally filtered by workspace containment."""
        requests = [request for request, _ in self._pending.values()]
        if workspace:
            requests = [r for r in requests if same_or_containing(r.workspace, workspace)]
        return requests

